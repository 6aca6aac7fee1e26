"""
Shared infrastructure used by the data services layer.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Limits, service lifetimes

- shared.infrastructure: Database
  - db.py: Async SQLAlchemy engine/sessions, safe_commit()

- shared.utils: Utilities
  - exceptions.py: Library exceptions and HTTP exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Limits, ServiceLifetime
    from shared.utils.exceptions import EntityNotFoundError, raise_for_result
"""
