"""
Storage query executor.

The similarity service talks to the database only through this seam, so a
test can hand it a fake and a caller can decide how sessions are scoped.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from itemsearch.config.logging import get_logger
from itemsearch.core.exceptions import StorageError

logger = get_logger(__name__)


class QueryExecutor(Protocol):
    """Runs parameterized statements against the storage engine."""

    async def fetch_all(self, statement: Executable) -> list[Mapping[str, Any]]:
        """Run a statement and return every row as a column-name mapping."""
        ...

    async def execute(self, statement: Executable) -> int:
        """Run a write statement and return the affected row count."""
        ...


class SessionQueryExecutor:
    """QueryExecutor backed by a SQLAlchemy AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_all(self, statement: Executable) -> list[Mapping[str, Any]]:
        try:
            result = await self.session.execute(statement)
            rows = list(result.mappings().all())
            # INSERT/UPDATE ... RETURNING comes through here as well
            if statement.is_dml:
                await self.session.commit()
            return rows
        except (SQLAlchemyError, OSError) as e:
            raise await self._abort(e) from e

    async def execute(self, statement: Executable) -> int:
        try:
            result = await self.session.execute(statement)
            await self.session.commit()
            return result.rowcount
        except (SQLAlchemyError, OSError) as e:
            raise await self._abort(e) from e

    async def _abort(self, exc: Exception) -> StorageError:
        """Roll back the failed transaction so the session stays usable."""
        try:
            await self.session.rollback()
        except (SQLAlchemyError, OSError) as rollback_exc:
            logger.warning(
                "Rollback after storage failure failed",
                exception=rollback_exc.__class__.__name__,
                message=str(rollback_exc),
            )
        return self._storage_error(exc)

    @staticmethod
    def _storage_error(exc: Exception) -> StorageError:
        logger.warning(
            "Storage failure",
            exception=exc.__class__.__name__,
            message=str(exc),
        )
        return StorageError(
            "Database statement failed",
            details={"exception": exc.__class__.__name__, "reason": str(exc)},
        )
