"""SQLAlchemy-backed entity store.

Implements the store operations the access gate and the batch protocol
consume (``find_role_by_id``, ``count_existing``, ``mutate_many``) plus the
single-entity reads and writes used by the route handlers. Each call is one
round trip under ``settings.store_timeout_seconds``; driver errors and
timeouts are re-raised as StoreError.
"""

import asyncio
from collections.abc import Awaitable, Collection, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from weather_api.config import settings
from weather_api.core.batch import DeleteAll, DerivedField, Mutation, SetFields, SetRole
from weather_api.core.exceptions import StoreError
from weather_api.core.identifiers import new_object_id
from weather_api.logging_config import get_logger
from weather_api.models.credential import Credential, Role
from weather_api.models.reading import READING_FIELD_LABELS, Reading

logger = get_logger(__name__)

T = TypeVar("T")


class SqlEntityStore:
    """Store operations common to every collection keyed by object ID."""

    model: Any = None
    mutable_fields: frozenset[str] = frozenset()

    def __init__(self, db: AsyncSession, timeout: float | None = None):
        self._db = db
        self._timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            await self._rollback(operation)
            raise StoreError(operation, "timed out") from exc
        except SQLAlchemyError as exc:
            await self._rollback(operation)
            raise StoreError(operation, str(exc)) from exc

    async def _rollback(self, operation: str) -> None:
        try:
            await self._db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback failed", operation=operation)

    async def _commit_execute(self, statement: Any) -> int:
        result = await self._db.execute(statement)
        await self._db.commit()
        return result.rowcount

    async def count_existing(self, ids: Collection[str]) -> int:
        """Count how many of ``ids`` currently exist."""
        statement = (
            select(func.count()).select_from(self.model).where(self.model.id.in_(ids))
        )

        async def _count() -> int:
            result = await self._db.execute(statement)
            return result.scalar_one()

        return await self._run("count_existing", _count())

    async def mutate_many(self, ids: Collection[str], mutation: Mutation) -> int:
        """Apply ``mutation`` to exactly ``ids`` and return the affected count."""
        if isinstance(mutation, DeleteAll):
            statement = delete(self.model).where(self.model.id.in_(ids))
        else:
            statement = (
                update(self.model)
                .where(self.model.id.in_(ids))
                .values(**self._values_for(mutation))
            )
        statement = statement.execution_options(synchronize_session=False)
        return await self._run("mutate_many", self._commit_execute(statement))

    def _values_for(self, mutation: Mutation) -> dict[str, Any]:
        if isinstance(mutation, SetFields):
            return self._resolve_fields(mutation.fields)
        raise TypeError(
            f"{type(mutation).__name__} is not supported on {self.model.__tablename__}"
        )

    def _resolve_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        if not fields:
            raise ValueError("No fields to set")
        unknown = set(fields) - self.mutable_fields
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")

        values = {}
        for name, value in fields.items():
            if isinstance(value, DerivedField):
                column = getattr(self.model, value.source)
                value = column * value.scale + value.offset
            values[name] = value
        return values


class CredentialStore(SqlEntityStore):
    """Store for the ``access`` collection."""

    model = Credential

    async def find_role_by_id(self, credential_id: str) -> Role | None:
        """Return the credential's role, or None if it does not exist."""
        statement = select(Credential.role).where(Credential.id == credential_id)

        async def _find() -> Role | None:
            result = await self._db.execute(statement)
            return result.scalar_one_or_none()

        return await self._run("find_role_by_id", _find())

    async def insert_many(self, count: int, role: Role) -> list[Credential]:
        """Issue ``count`` credentials in one insert."""
        created_at = datetime.now(UTC)
        credentials = [
            Credential(id=new_object_id(), role=role, created_at=created_at)
            for _ in range(count)
        ]

        async def _insert() -> list[Credential]:
            self._db.add_all(credentials)
            await self._db.commit()
            return credentials

        return await self._run("insert_credentials", _insert())

    def _values_for(self, mutation: Mutation) -> dict[str, Any]:
        if isinstance(mutation, SetRole):
            return {"role": Role(mutation.role)}
        return super()._values_for(mutation)


class ReadingStore(SqlEntityStore):
    """Store for the ``readings`` collection."""

    model = Reading
    mutable_fields = frozenset(READING_FIELD_LABELS)

    async def insert(self, fields: Mapping[str, Any]) -> Reading:
        """Insert one reading carrying exactly ``fields``."""
        reading = Reading(id=new_object_id(), **fields)

        async def _insert() -> Reading:
            self._db.add(reading)
            await self._db.commit()
            return reading

        return await self._run("insert_reading", _insert())

    async def max_precipitation_since(self, since: datetime) -> float | None:
        """Highest precipitation among readings taken at or after ``since``."""
        statement = select(func.max(Reading.precipitation_mm_h)).where(
            Reading.time >= since
        )

        async def _max() -> float | None:
            result = await self._db.execute(statement)
            return result.scalar_one_or_none()

        return await self._run("max_precipitation", _max())

    async def find_between(self, start: datetime, end: datetime) -> list[Reading]:
        """Readings with ``start <= time < end``, oldest first."""
        statement = (
            select(Reading)
            .where(Reading.time >= start, Reading.time < end)
            .order_by(Reading.time)
        )

        async def _find() -> list[Reading]:
            result = await self._db.execute(statement)
            return list(result.scalars().all())

        return await self._run("find_readings", _find())
