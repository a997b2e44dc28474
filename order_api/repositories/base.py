from __future__ import annotations

import logging
from typing import Any, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy import ColumnElement, Executable, Select, exists, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import QueryableAttribute, make_transient_to_detached, selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.interfaces import LoaderOption

from order_api.core.errors import InvalidOperationError
from order_api.db.base import EntityObject

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity", bound=EntityObject)
TResult = TypeVar("TResult")

# Execution option marking a statement whose entity results must not stay tracked.
NO_TRACKING = "no_tracking"

Filter = Optional[ColumnElement[bool]]
OrderBy = Optional[Union[Any, Sequence[Any]]]
Include = Union[QueryableAttribute, LoaderOption]


class BaseRepository:
    """
    Base class for repositories providing common statement helpers.

    Repositories only stage changes on the session; committing is the job of the
    unit of work that owns the session.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> List[Any]:
        """
        Execute and return the scalars as a list.

        Statements carrying the NO_TRACKING execution option hand back entities
        detached from the session, unless they were already tracked before.
        """
        untracked = bool(statement.get_execution_options().get(NO_TRACKING))
        known = set(self.session.sync_session.identity_map.keys()) if untracked else None
        result = await self.execute(statement, params)
        items = list(result.scalars())
        if known is not None:
            for item in items:
                state = sa_inspect(item, raiseerr=False)
                if state is not None and state.key not in known and item in self.session.sync_session:
                    self.session.expunge(item)
        return items

    async def scalar(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return the first column of the first row."""
        result = await self.execute(statement, params)
        return result.scalar()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()


class GenericRepository(BaseRepository, Generic[TEntity]):
    """
    Uniform query/CRUD facade for one entity type.

    Queries are composed from SQLAlchemy stages in a fixed order:
    include (eager loading) -> filter -> order_by -> offset/limit.

    Parameters shared by the query methods:
      disable_tracking: return entities detached from the session (read-only use)
      filter: boolean column expression, e.g. Customer.last_name == "Huber"
      order_by: one order clause or a sequence of them
      includes: relationship attributes to eager load (or ready-made loader options)
    """

    def __init__(self, session: AsyncSession, model: Type[TEntity]) -> None:
        super().__init__(session)
        self.model = model

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    # Query building

    @staticmethod
    def _loader(include: Include) -> LoaderOption:
        if isinstance(include, QueryableAttribute):
            return selectinload(include)
        return include

    def _compose(
        self,
        stmt: Select,
        disable_tracking: bool,
        filter: Filter,
        order_by: OrderBy,
        includes: Iterable[Include],
    ) -> Select:
        if disable_tracking:
            stmt = stmt.execution_options(**{NO_TRACKING: True})
        includes = list(includes or ())
        if includes:
            stmt = stmt.options(*(self._loader(i) for i in includes))
        if filter is not None:
            stmt = stmt.where(filter)
        if order_by is not None:
            clauses = order_by if isinstance(order_by, (list, tuple)) else (order_by,)
            stmt = stmt.order_by(*clauses)
        return stmt

    @staticmethod
    def _check_page(page: int, page_size: int) -> None:
        if page < 0:
            raise ValueError("Page number must be greater than or equal to zero.")
        if page_size <= 0:
            raise ValueError("Page size must be greater than zero.")

    def _paged(self, stmt: Select, order_by: OrderBy, page: int, page_size: int) -> Select:
        # Without an explicit order the primary key keeps pages stable.
        if order_by is None:
            stmt = stmt.order_by(self.model.id)
        return stmt.offset(page * page_size).limit(page_size)

    # PUBLIC_INTERFACE
    def query(
        self,
        disable_tracking: bool = True,
        filter: Filter = None,
        order_by: OrderBy = None,
        includes: Iterable[Include] = (),
    ) -> Select:
        """Build (but do not execute) a select over the entity."""
        return self._compose(select(self.model), disable_tracking, filter, order_by, includes)

    # PUBLIC_INTERFACE
    async def get(
        self,
        disable_tracking: bool = True,
        filter: Filter = None,
        order_by: OrderBy = None,
        includes: Iterable[Include] = (),
    ) -> List[TEntity]:
        """Execute query(...) and return the entities."""
        return await self.scalars(self.query(disable_tracking, filter, order_by, includes))

    # PUBLIC_INTERFACE
    async def get_page(
        self,
        page: int,
        page_size: int,
        disable_tracking: bool = True,
        filter: Filter = None,
        order_by: OrderBy = None,
        includes: Iterable[Include] = (),
    ) -> List[TEntity]:
        """
        Return one page of entities.

        Parameters:
            page: zero-based page index (0 = first page)
            page_size: number of entities per page
        Raises:
            ValueError: page < 0 or page_size <= 0 (checked before any query runs)
        """
        self._check_page(page, page_size)
        stmt = self.query(disable_tracking, filter, order_by, includes)
        return await self.scalars(self._paged(stmt, order_by, page, page_size))

    # PUBLIC_INTERFACE
    def get_projected(
        self,
        result_type: Type[TResult],
        disable_tracking: bool = True,
        filter: Filter = None,
        order_by: OrderBy = None,
        selector: Optional[Sequence[Any]] = None,
        includes: Iterable[Include] = (),
    ) -> Select:
        """
        Build a select reshaped by `selector`, a sequence of labelled column
        expressions whose labels match the fields of `result_type`.

        Without a selector the plain entity query is returned, which is only
        allowed when `result_type` is the entity type itself. Includes only
        apply to entity queries; a column projection reaches related data
        through its own expressions.

        Raises:
            InvalidOperationError: no selector and result_type is not the entity type
        """
        if selector is None:
            if result_type is not self.model:
                raise InvalidOperationError(
                    "No selector provided, and the result type is not the entity type."
                )
            return self.query(disable_tracking, filter, order_by, includes)
        stmt = select(*selector).select_from(self.model)
        return self._compose(stmt, False, filter, order_by, ())

    # PUBLIC_INTERFACE
    async def get_projected_page(
        self,
        result_type: Type[TResult],
        page: int,
        page_size: int,
        disable_tracking: bool = True,
        filter: Filter = None,
        order_by: OrderBy = None,
        selector: Optional[Sequence[Any]] = None,
        includes: Iterable[Include] = (),
    ) -> List[TResult]:
        """Zero-based page of projected results; same range checks as get_page."""
        self._check_page(page, page_size)
        stmt = self.get_projected(result_type, disable_tracking, filter, order_by, selector, includes)
        stmt = self._paged(stmt, order_by, page, page_size)
        if selector is None:
            return await self.scalars(stmt)
        result = await self.execute(stmt)
        return [self._convert(result_type, row) for row in result.mappings()]

    @staticmethod
    def _convert(result_type: Type[TResult], row: Mapping[str, Any]) -> TResult:
        validate = getattr(result_type, "model_validate", None)
        if validate is not None:
            return validate(dict(row))
        return result_type(**row)

    # Lookups

    # PUBLIC_INTERFACE
    async def get_by_id(self, id: int) -> Optional[TEntity]:
        """Return the entity with the given key or None (logged as a warning)."""
        try:
            entity = await self.session.get(self.model, id)
        except SQLAlchemyError:
            logger.exception("Error retrieving entity of type %s with ID %s", self.entity_name, id)
            raise
        if entity is None:
            logger.warning("Entity of type %s with ID %s not found.", self.entity_name, id)
        return entity

    # PUBLIC_INTERFACE
    async def exists(self, id: int) -> bool:
        return bool(await self.scalar(select(exists().where(self.model.id == id))))

    # PUBLIC_INTERFACE
    async def count(self, filter: Filter = None) -> int:
        """Count the entities matching the optional filter."""
        stmt = select(func.count()).select_from(self.model)
        if filter is not None:
            stmt = stmt.where(filter)
        return int(await self.scalar(stmt) or 0)

    # Staging changes

    # PUBLIC_INTERFACE
    async def add(self, entity: TEntity) -> TEntity:
        """Stage a new entity for insertion on the next save."""
        try:
            self.session.add(entity)
        except SQLAlchemyError:
            logger.exception("Error adding entity of type %s: %r", self.entity_name, entity)
            raise
        logger.info("Entity of type %s added: %r", self.entity_name, entity)
        return entity

    # PUBLIC_INTERFACE
    async def add_range(self, entities: Iterable[TEntity]) -> None:
        """Stage several new entities in one call."""
        staged = list(entities)
        try:
            self.session.add_all(staged)
        except SQLAlchemyError:
            logger.exception("Error adding %d entities of type %s", len(staged), self.entity_name)
            raise
        logger.info("%d entities of type %s added", len(staged), self.entity_name)

    def _mark_modified(self, entity: TEntity) -> None:
        """
        Track `entity` and flag every loaded column as changed so the next save
        writes the full row. An entity without a key is staged as new instead.
        """
        state = sa_inspect(entity)
        if state.transient:
            if entity.id is None:
                self.session.add(entity)
                return
            make_transient_to_detached(entity)
        if state.detached:
            self.session.add(entity)
        mapper = state.mapper
        skip = {col.key for col in mapper.primary_key}
        if mapper.version_id_col is not None:
            skip.add(mapper.get_property_by_column(mapper.version_id_col).key)
        for prop in mapper.column_attrs:
            if prop.key not in skip and prop.key in state.dict:
                flag_modified(entity, prop.key)

    # PUBLIC_INTERFACE
    def attach(self, entity: TEntity) -> None:
        """Attach a detached entity and mark it fully modified."""
        try:
            self._mark_modified(entity)
        except SQLAlchemyError:
            logger.exception("Error attaching entity of type %s: %r", self.entity_name, entity)
            raise

    # PUBLIC_INTERFACE
    def update(self, entity: TEntity) -> None:
        """Mark the entity as fully modified for the next save."""
        try:
            self._mark_modified(entity)
        except SQLAlchemyError:
            logger.exception("Error updating entity of type %s: %r", self.entity_name, entity)
            raise
        logger.info("Entity of type %s updated: %r", self.entity_name, entity)

    # PUBLIC_INTERFACE
    async def delete(self, id: int) -> bool:
        """Stage removal by key. Returns False (and stages nothing) if there is no such entity."""
        try:
            entity = await self.session.get(self.model, id)
            if entity is None:
                logger.warning("Delete failed: Entity of type %s with ID %s not found.", self.entity_name, id)
                return False
            await self.session.delete(entity)
        except SQLAlchemyError:
            logger.exception("Error deleting entity of type %s with ID %s", self.entity_name, id)
            raise
        logger.info("Entity of type %s with ID %s deleted.", self.entity_name, id)
        return True

    # PUBLIC_INTERFACE
    async def remove(self, entity: TEntity) -> None:
        """Stage removal by reference; a detached entity is attached first."""
        try:
            state = sa_inspect(entity)
            if state.transient:
                make_transient_to_detached(entity)
            if state.detached:
                self.session.add(entity)
            await self.session.delete(entity)
        except SQLAlchemyError:
            logger.exception("Error removing entity of type %s: %r", self.entity_name, entity)
            raise
        logger.info("Entity of type %s removed: %r", self.entity_name, entity)

    # PUBLIC_INTERFACE
    def has_changes(self) -> bool:
        """True if the session holds pending inserts, updates or deletes."""
        session = self.session.sync_session
        return bool(
            session.new
            or session.deleted
            or any(session.is_modified(obj) for obj in session.dirty)
        )
