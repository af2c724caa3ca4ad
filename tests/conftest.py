"""Pytest configuration and shared fixtures.

Route tests run against in-memory stores injected through
``app.dependency_overrides``; no database is needed.
"""

import os
from collections.abc import AsyncGenerator, Callable, Collection, Mapping
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing the app (NullPool, no rate limits)
os.environ["TESTING"] = "true"

from weather_api.core.auth import get_credential_store, get_reading_store
from weather_api.core.batch import DeleteAll, DerivedField, Mutation, SetFields, SetRole
from weather_api.core.exceptions import StoreError
from weather_api.core.identifiers import new_object_id
from weather_api.main import app
from weather_api.models.credential import Credential, Role
from weather_api.models.reading import Reading


class InMemoryCredentialStore:
    """Credential store keeping ``{id: role}`` in a dict."""

    def __init__(self, roles: Mapping[str, Role] | None = None):
        self.roles: dict[str, Role] = dict(roles or {})
        self.lookups = 0
        self.mutations = 0
        self.fail_on: set[str] = set()
        self.before_mutate: Callable[[], None] | None = None

    def add(self, role: Role) -> str:
        key = new_object_id()
        self.roles[key] = role
        return key

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(operation, "connection refused")

    async def find_role_by_id(self, credential_id: str) -> Role | None:
        self.lookups += 1
        self._maybe_fail("find_role_by_id")
        return self.roles.get(credential_id)

    async def count_existing(self, ids: Collection[str]) -> int:
        self._maybe_fail("count_existing")
        return sum(1 for i in ids if i in self.roles)

    async def mutate_many(self, ids: Collection[str], mutation: Mutation) -> int:
        self.mutations += 1
        if self.before_mutate is not None:
            self.before_mutate()
        self._maybe_fail("mutate_many")
        present = [i for i in ids if i in self.roles]
        for i in present:
            if isinstance(mutation, DeleteAll):
                del self.roles[i]
            elif isinstance(mutation, SetRole):
                self.roles[i] = mutation.role
            else:
                raise TypeError("credentials only support DeleteAll and SetRole")
        return len(present)

    async def insert_many(self, count: int, role: Role) -> list[Credential]:
        self._maybe_fail("insert_credentials")
        created_at = datetime.now(UTC)
        credentials = []
        for _ in range(count):
            key = self.add(role)
            credentials.append(Credential(id=key, role=role, created_at=created_at))
        return credentials


class InMemoryReadingStore:
    """Reading store keeping ``{id: fields}`` in a dict."""

    def __init__(self):
        self.docs: dict[str, dict[str, Any]] = {}
        self.fail_on: set[str] = set()
        self.mutations = 0

    def add(self, **fields: Any) -> str:
        key = new_object_id()
        fields.setdefault("time", datetime.now(UTC))
        self.docs[key] = fields
        return key

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(operation, "connection refused")

    async def count_existing(self, ids: Collection[str]) -> int:
        self._maybe_fail("count_existing")
        return sum(1 for i in ids if i in self.docs)

    async def mutate_many(self, ids: Collection[str], mutation: Mutation) -> int:
        self.mutations += 1
        self._maybe_fail("mutate_many")
        present = [i for i in ids if i in self.docs]
        for i in present:
            if isinstance(mutation, DeleteAll):
                del self.docs[i]
            elif isinstance(mutation, SetFields):
                doc = self.docs[i]
                for name, value in mutation.fields.items():
                    if isinstance(value, DerivedField):
                        value = value.evaluate(doc.get(value.source))
                    doc[name] = value
            else:
                raise TypeError("readings do not have roles")
        return len(present)

    async def insert(self, fields: Mapping[str, Any]) -> Reading:
        self._maybe_fail("insert_reading")
        key = new_object_id()
        self.docs[key] = dict(fields)
        return Reading(id=key, **fields)

    async def max_precipitation_since(self, since: datetime) -> float | None:
        self._maybe_fail("max_precipitation")
        values = [
            d["precipitation_mm_h"]
            for d in self.docs.values()
            if d.get("precipitation_mm_h") is not None and d["time"] >= since
        ]
        return max(values) if values else None

    async def find_between(self, start: datetime, end: datetime) -> list[Reading]:
        self._maybe_fail("find_readings")
        return [
            Reading(id=key, **doc)
            for key, doc in sorted(self.docs.items(), key=lambda kv: kv[1]["time"])
            if start <= doc["time"] < end
        ]


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def reading_store() -> InMemoryReadingStore:
    return InMemoryReadingStore()


@pytest.fixture
def admin_key(credential_store) -> str:
    return credential_store.add(Role.ADMIN)


@pytest.fixture
def station_key(credential_store) -> str:
    return credential_store.add(Role.STATION)


@pytest.fixture
def client_key(credential_store) -> str:
    return credential_store.add(Role.CLIENT)


@pytest_asyncio.fixture
async def client(
    credential_store, reading_store
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the in-memory stores."""
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    app.dependency_overrides[get_reading_store] = lambda: reading_store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
