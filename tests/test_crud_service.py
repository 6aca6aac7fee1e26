"""
Tests for CrudDataService.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.orm import selectinload

from dataservices.repositories import Repository, Specification
from dataservices.results import ArgumentNullError, ExceptionError, NotFoundError
from dataservices.services import CrudDataService
from dataservices.unit_of_work import UnitOfWork
from shared.utils.exceptions import DuplicateTrackingError, EntityNotFoundError
from tests.models import Part, Tag, TagOutput, Token, Widget, WidgetCreate, WidgetPatch


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_and_save_returns_id(self, widget_service, fetch):
        result = await widget_service.add(WidgetCreate(name="bolt", price=3), should_save=True)

        assert isinstance(result.value, int)
        stored = await fetch(Widget, result.value)
        assert (stored.name, stored.price, stored.is_active) == ("bolt", 3, True)

    @pytest.mark.asyncio
    async def test_add_without_save_only_tracks(self, widget_service, uow, fetch):
        result = await widget_service.add(Widget(id=70, name="pending"))

        assert result.is_success
        assert result.value == 0
        assert len(uow.context.new) == 1
        assert await fetch(Widget, 70) is None

    @pytest.mark.asyncio
    async def test_add_then_commit_separately(self, widget_service, fetch):
        await widget_service.add(Widget(id=71, name="later"))

        commit = await widget_service.commit()

        assert commit.is_success
        assert (await fetch(Widget, 71)).name == "later"

    @pytest.mark.asyncio
    async def test_add_with_user_stamps_created_by(self, widget_service, fetch):
        result = await widget_service.add(WidgetCreate(name="bolt"), should_save=True, user_id="u-1")

        assert (await fetch(Widget, result.value)).created_by == "u-1"

    @pytest.mark.asyncio
    async def test_add_range_returns_ids_in_order(self, widget_service, fetch):
        result = await widget_service.add_range(
            [WidgetCreate(name="a"), {"name": "b", "price": 4}, Widget(name="c")],
            should_save=True,
        )

        ids = result.value
        assert len(ids) == 3
        assert [(await fetch(Widget, i)).name for i in ids] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_add_range_without_save_returns_empty(self, widget_service):
        result = await widget_service.add_range([WidgetCreate(name="a")])

        assert result.value == []

    @pytest.mark.asyncio
    async def test_natural_key(self, tag_service, fetch):
        result = await tag_service.add(TagOutput(code="green", label="Green"), should_save=True)

        assert result.value == "green"
        assert (await fetch(Tag, "green")).label == "Green"

    @pytest.mark.asyncio
    async def test_natural_key_without_save_returns_default(self, tag_service):
        result = await tag_service.add(Tag(code="green", label="Green"))

        assert result.value == ""

    @pytest.mark.asyncio
    async def test_uuid_key_without_save_returns_none(self, uow, mapper):
        service = CrudDataService(uow, mapper, Token, id_type=uuid.UUID)

        result = await service.add(Token(label="x"))

        assert result.is_success
        assert result.value is None
        assert len(uow.context.new) == 1

    @pytest.mark.asyncio
    async def test_uuid_key_saved_returns_generated_id(self, uow, mapper, fetch):
        service = CrudDataService(uow, mapper, Token, id_type=uuid.UUID)

        result = await service.add(Token(label="x"), should_save=True)

        assert isinstance(result.value, uuid.UUID)
        assert (await fetch(Token, result.value)).label == "x"

    @pytest.mark.asyncio
    async def test_duplicate_key_is_exception_error(self, tag_service, seed_tags):
        result = await tag_service.add(Tag(code="red", label="Again"), should_save=True)

        assert result.is_error(ExceptionError)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_begin_update_detached_entity(self, widget_service, seed_widgets, fetch):
        bolt = seed_widgets[0]
        bolt.price = 9

        assert widget_service.begin_update(bolt).is_success
        await widget_service.commit()

        assert (await fetch(Widget, bolt.id)).price == 9

    @pytest.mark.asyncio
    async def test_begin_update_patch_leaves_unset_fields(self, widget_service, seed_widgets, fetch):
        nut = seed_widgets[1]

        widget_service.begin_update(WidgetPatch(id=nut.id, name="hex nut"))
        await widget_service.commit("editor")

        stored = await fetch(Widget, nut.id)
        assert (stored.name, stored.price) == ("hex nut", 2)
        assert stored.updated_by == "editor"

    @pytest.mark.asyncio
    async def test_begin_update_duplicate_fails_without_swap(self, widget_service, seed_widgets):
        await widget_service.get(seed_widgets[0].id)

        result = widget_service.begin_update(WidgetPatch(id=seed_widgets[0].id, name="x"))

        assert result.is_error(ExceptionError)
        assert isinstance(result.error.exception, DuplicateTrackingError)

    @pytest.mark.asyncio
    async def test_begin_update_swap_replaces_tracked(self, widget_service, seed_widgets, fetch):
        await widget_service.get(seed_widgets[0].id)

        result = widget_service.begin_update(
            WidgetPatch(id=seed_widgets[0].id, name="swapped"), swap_attached=True
        )
        await widget_service.commit()

        assert result.is_success
        assert (await fetch(Widget, seed_widgets[0].id)).name == "swapped"

    @pytest.mark.asyncio
    async def test_begin_update_range(self, widget_service, seed_widgets, fetch):
        patches = [WidgetPatch(id=w.id, price=1) for w in seed_widgets[:2]]

        assert widget_service.begin_update_range(patches).is_success
        await widget_service.commit()

        assert [(await fetch(Widget, w.id)).price for w in seed_widgets[:2]] == [1, 1]


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_detached_entity(self, widget_service, seed_widgets, fetch):
        result = await widget_service.delete(seed_widgets[0], should_save=True)

        assert result.is_success
        assert await fetch(Widget, seed_widgets[0].id) is None

    @pytest.mark.asyncio
    async def test_delete_by_id(self, widget_service, seed_widgets, fetch):
        await widget_service.delete_by_id(seed_widgets[1].id, should_save=True)

        assert await fetch(Widget, seed_widgets[1].id) is None
        assert await fetch(Widget, seed_widgets[0].id) is not None

    @pytest.mark.asyncio
    async def test_delete_by_missing_id(self, widget_service, seed_widgets):
        result = await widget_service.delete_by_id(9999, should_save=True)

        assert result.is_error(ExceptionError)
        assert isinstance(result.error.exception, EntityNotFoundError)

    @pytest.mark.asyncio
    async def test_delete_range_by_ids_is_all_or_nothing(self, widget_service, seed_widgets, fetch):
        ids = [seed_widgets[0].id, 9999, seed_widgets[1].id]

        result = await widget_service.delete_range_by_ids(ids, should_save=True)

        assert result.is_error(ExceptionError)
        assert await fetch(Widget, seed_widgets[0].id) is not None
        assert await fetch(Widget, seed_widgets[1].id) is not None

    @pytest.mark.asyncio
    async def test_delete_range(self, widget_service, seed_widgets):
        await widget_service.delete_range(seed_widgets, should_save=True)

        assert (await widget_service.long_count()).value == 0

    @pytest.mark.asyncio
    async def test_delete_cascades_to_parts(self, widget_service, seed_widget_with_parts, fetch):
        await widget_service.delete_by_id(seed_widget_with_parts.id, should_save=True)

        part_ids = [p.id for p in seed_widget_with_parts.parts]
        assert [await fetch(Part, i) for i in part_ids] == [None, None]


class TestDisable:
    @pytest.mark.asyncio
    async def test_disable_by_id_stamps_audit_fields(self, widget_service, seed_widgets, fetch):
        await widget_service.disable_by_id(seed_widgets[0].id, should_save=True, user_id="u-2")

        stored = await fetch(Widget, seed_widgets[0].id)
        assert stored.is_active is False
        assert stored.deleted_at is not None
        assert stored.deleted_by == "u-2"

    @pytest.mark.asyncio
    async def test_disable_detached_entity(self, widget_service, seed_widgets, fetch):
        await widget_service.disable(seed_widgets[1], should_save=True)

        stored = await fetch(Widget, seed_widgets[1].id)
        assert stored.is_active is False
        assert stored.deleted_by is None

    @pytest.mark.asyncio
    async def test_disable_range_by_ids(self, widget_service, seed_widgets, read_only_widgets):
        await widget_service.disable_range_by_ids([w.id for w in seed_widgets[:2]], should_save=True)

        assert (await read_only_widgets.any(Widget.is_active.is_(True))).value is False

    @pytest.mark.asyncio
    async def test_disable_range(self, widget_service, seed_widgets, fetch):
        await widget_service.disable_range([WidgetPatch(id=w.id) for w in seed_widgets], should_save=True)

        assert all([(await fetch(Widget, w.id)).is_active is False for w in seed_widgets])

    @pytest.mark.asyncio
    async def test_disable_without_soft_delete_support(self, tag_service, seed_tags):
        result = await tag_service.disable_by_id("red")

        assert result.is_error(ExceptionError)
        assert isinstance(result.error.exception, TypeError)


class TestDetach:
    @pytest.mark.asyncio
    async def test_detach_cascades_to_loaded_parts(self, widget_service, uow, seed_widget_with_parts):
        spec = Specification(
            Widget.id == seed_widget_with_parts.id, includes=[selectinload(Widget.parts)]
        )
        widget = (await widget_service.get_single_by_spec(spec)).value
        parts = list(widget.parts)

        assert widget_service.detach(widget).is_success

        assert widget not in uow.context
        assert all(part not in uow.context for part in parts)

    @pytest.mark.asyncio
    async def test_detached_changes_are_not_saved(self, widget_service, seed_widgets, fetch):
        widget = (await widget_service.get(seed_widgets[0].id)).value
        widget.name = "discarded"

        widget_service.detach(widget)
        await widget_service.commit()

        assert (await fetch(Widget, widget.id)).name == "bolt"


class TestServiceContract:
    """Argument checks, fault conversion and the auto-commit rule, against mocks."""

    @pytest.fixture
    def repository(self):
        return MagicMock(spec=Repository)

    @pytest.fixture
    def mocked_uow(self, repository):
        unit_of_work = MagicMock(spec=UnitOfWork)
        unit_of_work.get_repository.return_value = repository
        unit_of_work.commit = AsyncMock()
        return unit_of_work

    @pytest.fixture
    def service(self, mocked_uow, mapper):
        return CrudDataService(mocked_uow, mapper, Widget)

    @pytest.mark.asyncio
    async def test_null_arguments(self, service, mocked_uow):
        results = [
            await service.add(None),
            await service.add_range(None),
            service.begin_update(None),
            service.begin_update_range(None),
            await service.delete(None),
            await service.delete_by_id(None),
            await service.delete_range(None),
            await service.delete_range_by_ids(None),
            await service.disable(None),
            await service.disable_by_id(None),
            await service.disable_range(None),
            await service.disable_range_by_ids(None),
            service.detach(None),
        ]

        assert all(r.is_error(ArgumentNullError) for r in results)
        mocked_uow.get_repository.assert_not_called()
        mocked_uow.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commits_only_when_asked(self, service, mocked_uow, repository):
        await service.delete_by_id(1)

        repository.delete_by_id.assert_awaited_once_with(1)
        mocked_uow.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_passes_user_id(self, service, mocked_uow):
        await service.disable_by_id(1, should_save=True, user_id="u")

        mocked_uow.commit.assert_awaited_once_with("u")

    @pytest.mark.asyncio
    async def test_commit_without_user_id(self, service, mocked_uow):
        await service.delete_range_by_ids([1, 2], should_save=True)

        mocked_uow.commit.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_commit_fault_becomes_exception_error(self, service, mocked_uow):
        mocked_uow.commit.side_effect = RuntimeError("disk full")

        result = await service.delete_by_id(1, should_save=True)

        assert result.is_error(ExceptionError)
        assert "disk full" in result.error.message

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, service, repository):
        repository.delete_by_id.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await service.delete_by_id(1, should_save=True)


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_saved_entity_is_found_by_key(self, widget_service, mapper, session_factory):
        new_id = (await widget_service.add(WidgetCreate(name="bolt", price=3), should_save=True)).value

        async with UnitOfWork(session_factory()) as other:
            found = await CrudDataService(other, mapper, Widget).get(new_id)

        assert (found.value.id, found.value.name, found.value.price) == (new_id, "bolt", 3)

    @pytest.mark.asyncio
    async def test_deleted_entity_is_not_found(self, widget_service, seed_widgets):
        await widget_service.delete_by_id(seed_widgets[0].id, should_save=True)

        assert (await widget_service.get(seed_widgets[0].id)).is_error(NotFoundError)

    @pytest.mark.asyncio
    async def test_disabled_entity_is_found_with_flag_cleared(self, widget_service, seed_widgets):
        await widget_service.disable_by_id(seed_widgets[0].id, should_save=True)

        result = await widget_service.get(seed_widgets[0].id)

        assert result.value.is_active is False
