"""
Tests for the shared layer: settings, logging, db helpers and HTTP error translation.
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dataservices.results import ArgumentNullError, ExceptionError, NotFoundError, Result
from shared.config.logging import StructuredFormatter, get_logger, mask_user_id
from shared.config.settings import Settings
from shared.infrastructure import db
from shared.utils.exceptions import raise_for_result


class TestSettings:
    def test_development_defaults_pass(self):
        assert Settings().validate_production_settings() == []

    def test_production_rejects_development_defaults(self):
        errors = Settings(environment="production").validate_production_settings()

        assert any("DEBUG" in e for e in errors)
        assert any("DATABASE_URL" in e for e in errors)

    def test_page_size_consistency(self):
        errors = Settings(default_page_size=500, max_page_size=100).validate_production_settings()

        assert errors == ["DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE"]


class TestLogging:
    def test_structured_formatter_includes_extra_data(self):
        logger = get_logger("tests.structured")
        record = logger.makeRecord(
            logger.name, logging.INFO, __file__, 1, "Entity added", (), None,
            extra={"extra_data": {"entity": "Widget"}},
        )

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "Entity added"
        assert payload["data"] == {"entity": "Widget"}

    def test_keyword_context_is_attached(self, caplog):
        logger = get_logger("tests.context")

        with caplog.at_level(logging.INFO, logger="tests.context"):
            logger.info("Entities added", count=3)

        assert caplog.records[-1].extra_data == {"count": 3}

    def test_mask_user_id(self):
        assert mask_user_id("alice@example.com") == "al***"
        assert mask_user_id("a") == "a***"
        assert mask_user_id(None) == "<anonymous>"


class TestDatabaseHelpers:
    @pytest.mark.asyncio
    async def test_safe_commit_rolls_back_and_reraises(self):
        session = MagicMock(spec=AsyncSession)
        session.commit = AsyncMock(side_effect=RuntimeError("lost connection"))
        session.rollback = AsyncMock()

        with pytest.raises(RuntimeError):
            await db.safe_commit(session)

        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_db_context_uses_session_factory(self, monkeypatch, session_factory):
        opened = []

        def factory():
            session = session_factory()
            opened.append(session)
            return session

        monkeypatch.setattr(db, "SessionLocal", factory)

        async with db.get_db_context() as session:
            assert isinstance(session, AsyncSession)

        assert opened == [session]

    def test_sqlite_engine_has_no_pool_sizing(self):
        assert "pool_size" not in db._engine_options("sqlite+aiosqlite:///:memory:")
        assert db._engine_options("postgresql+asyncpg://db/app")["pool_size"] == 10


class TestRaiseForResult:
    def test_success_returns_value(self):
        assert raise_for_result(Result.success(5)) == 5

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (NotFoundError(), 404),
            (ArgumentNullError(parameter_name="entry"), 400),
            (ExceptionError.from_exception(RuntimeError("boom")), 500),
        ],
    )
    def test_failure_maps_to_http_status(self, error, status_code):
        with pytest.raises(HTTPException) as exc_info:
            raise_for_result(Result.failure(error), entity="Widget", entity_id=1)

        assert exc_info.value.status_code == status_code

    def test_internal_details_are_not_exposed(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_for_result(Result.failure(ExceptionError.from_exception(RuntimeError("secret"))))

        assert "secret" not in exc_info.value.detail
