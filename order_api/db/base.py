from __future__ import annotations

from typing import Any, Dict, FrozenSet, List

from sqlalchemy import Integer, MetaData, String
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from order_api.core.validation import ValidationResult, max_length, required


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class EntityObject(Base):
    """
    Abstract base for all domain entities.

    Provides an integer identity key generated by the database and an integer
    concurrency token. The token is mapped as the SQLAlchemy version counter, so
    every UPDATE/DELETE is issued with `WHERE row_version = <loaded value>` and a
    mismatch surfaces as StaleDataError at flush time.
    """
    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> Dict[str, Any]:
        return {"version_id_col": cls.__table__.c.row_version}

    def validate(self) -> List[ValidationResult]:
        """
        Stateless field validation derived from the column declarations.

        - columns declared with info={"required": True} must not be empty
        - String(n) columns must not exceed n characters

        Attributes never loaded from the database are skipped; they still hold
        the stored value. Subclasses extend the list with their own rules.
        """
        results: List[ValidationResult] = []
        unloaded = self.unloaded_attributes()
        for column in self.__table__.columns:
            if column.key in unloaded:
                continue
            value = getattr(self, column.key, None)
            if column.info.get("required"):
                result = required(value, column.key)
                if result is not None:
                    results.append(result)
                    continue
            if isinstance(column.type, String) and column.type.length:
                result = max_length(value, column.type.length, column.key)
                if result is not None:
                    results.append(result)
        return results

    def unloaded_attributes(self) -> FrozenSet[str]:
        """Attributes of a persistent entity that hold no value in memory (stored value not loaded)."""
        state = sa_inspect(self)
        return frozenset(state.unloaded) if state.has_identity else frozenset()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
