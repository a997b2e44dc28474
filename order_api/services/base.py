from __future__ import annotations

import logging
from typing import List

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from order_api.core.errors import (
    AggregateValidationError,
    ConcurrencyConflictError,
    EntityValidationError,
)
from order_api.core.validation import DatabaseValidatable, ValidationResult
from order_api.db.base import Base, EntityObject
from order_api.db.run_migrations import upgrade_on_connection

logger = logging.getLogger(__name__)


class BaseUnitOfWork:
    """
    Transactional boundary over one AsyncSession shared by several repositories.

    Repositories stage changes on the session; save_changes validates every
    staged entity and commits them together. The unit of work owns the session
    and closes it on close() / when leaving `async with`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._closed = False

    async def __aenter__(self) -> "BaseUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # PUBLIC_INTERFACE
    async def close(self) -> None:
        """Release the session; an uncommitted transaction is rolled back."""
        if not self._closed:
            self._closed = True
            await self.session.close()

    def _staged_entities(self) -> List[EntityObject]:
        """Added entities first (in staging order), then modified ones."""
        sync = self.session.sync_session
        staged = list(sync.new)
        staged.extend(obj for obj in sync.dirty if sync.is_modified(obj, include_collections=False))
        return [obj for obj in staged if isinstance(obj, EntityObject)]

    async def _collect_failures(self, entities: List[EntityObject]) -> List[ValidationResult]:
        failures: List[ValidationResult] = []
        # Database checks must only see committed rows, never the staged ones.
        with self.session.sync_session.no_autoflush:
            for entity in entities:
                if isinstance(entity, DatabaseValidatable):
                    result = await entity.validate_with_database(self)
                    if result is not None and result.message:
                        failures.append(result)
                failures.extend(entity.validate())
        return failures

    # PUBLIC_INTERFACE
    async def save_changes(self) -> int:
        """
        Validate all staged entities, then commit.

        Every added or modified entity is checked with its database-dependent
        validation (if it implements DatabaseValidatable) and its field
        validation. All failures are collected before anything is raised.

        Returns:
            number of inserted, updated and deleted entities
        Raises:
            EntityValidationError: exactly one validation failure
            AggregateValidationError: more than one validation failure
            ConcurrencyConflictError: a row_version no longer matched at commit
            SQLAlchemyError: any other store failure (transaction rolled back)
        """
        failures = await self._collect_failures(self._staged_entities())
        if len(failures) == 1:
            raise EntityValidationError(failures[0])
        if failures:
            raise AggregateValidationError(failures)

        sync = self.session.sync_session
        modified = [obj for obj in sync.dirty if sync.is_modified(obj, include_collections=False)]
        versioned = modified + list(sync.deleted)
        affected = len(sync.new) + len(versioned)
        # A failed flush expires these objects, so identify them up front.
        targets = [(type(obj).__name__, sa_inspect(obj).identity) for obj in versioned]
        try:
            await self.session.commit()
        except StaleDataError as exc:
            logger.warning("Concurrency conflict while saving changes: %s", exc)
            await self.session.rollback()
            # Only a single updated/deleted entity can be named reliably.
            entity_type, identity = targets[0] if len(targets) == 1 else (None, None)
            raise ConcurrencyConflictError(
                "The record was modified or deleted by someone else since it was read.",
                entity_type=entity_type,
                entity_id=identity[0] if identity else None,
            ) from exc
        except SQLAlchemyError:
            logger.exception("Saving changes failed, transaction rolled back")
            await self.session.rollback()
            raise
        logger.info("Saved %d change(s)", affected)
        return affected

    # PUBLIC_INTERFACE
    async def delete_database(self) -> None:
        """Drop all mapped tables (and the migration history); staged changes are discarded."""
        self.session.expunge_all()
        conn = await self.session.connection()
        await conn.run_sync(Base.metadata.drop_all)
        await conn.execute(text("DROP TABLE IF EXISTS alembic_version"))
        await self.session.commit()
        logger.info("Database schema dropped")

    # PUBLIC_INTERFACE
    async def create_database(self) -> None:
        """Create all mapped tables that do not exist yet."""
        conn = await self.session.connection()
        await conn.run_sync(Base.metadata.create_all)
        await self.session.commit()
        logger.info("Database schema created")

    # PUBLIC_INTERFACE
    async def migrate_database(self) -> None:
        """Apply all pending Alembic migrations on this unit of work's connection."""
        conn = await self.session.connection()
        await conn.run_sync(upgrade_on_connection)
        await self.session.commit()
        logger.info("Database migrated to head")
