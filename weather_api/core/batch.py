"""Verify-then-mutate protocol for operations addressing many entities.

The store only offers unconditional multi-row updates and deletes, so an
all-or-nothing effect is obtained at the application level: count how
many of the requested entities exist, refuse the whole request unless all
of them do, then mutate exactly that set. An entity removed by a
concurrent request between the count and the mutation shows up as a
PARTIAL_EFFECT outcome instead of a silent success.
"""

import enum
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from weather_api.core.exceptions import StoreError
from weather_api.core.identifiers import (
    InvalidIdentifierError,
    ValidationPolicy,
    normalize_identifiers,
)
from weather_api.logging_config import get_logger
from weather_api.models.credential import Role

logger = get_logger(__name__)


class BatchOutcome(str, enum.Enum):
    """Outcome of a batch mutation."""

    OK = "ok"
    NOT_FOUND = "not_found"
    PARTIAL_EFFECT = "partial_effect"
    STORE_ERROR = "store_error"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class DerivedField:
    """A field value computed per entity from another field.

    ``value = source * scale + offset``; a missing source yields null.
    """

    source: str
    scale: float = 1.0
    offset: float = 0.0

    def evaluate(self, source_value: float | None) -> float | None:
        if source_value is None:
            return None
        return source_value * self.scale + self.offset


@dataclass(frozen=True)
class DeleteAll:
    """Delete every entity in the set."""


@dataclass(frozen=True)
class SetFields:
    """Set (add or overwrite) the given fields on every entity in the set."""

    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetRole:
    """Reassign the role of every credential in the set."""

    role: Role


Mutation = DeleteAll | SetFields | SetRole


class BatchStore(Protocol):
    """The part of an entity store the protocol needs."""

    async def count_existing(self, ids: Collection[str]) -> int: ...

    async def mutate_many(self, ids: Collection[str], mutation: Mutation) -> int: ...


@dataclass(frozen=True)
class BatchResult:
    """What a batch call did.

    Attributes:
        outcome: Overall outcome
        applied_count: Entities affected by the mutation
        verified_count: Entities found to exist before mutating
        requested_count: Distinct well-formed identifiers requested
        detail: Human-readable explanation
    """

    outcome: BatchOutcome
    applied_count: int = 0
    verified_count: int = 0
    requested_count: int = 0
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is BatchOutcome.OK


class BatchConsistencyProtocol:
    """Apply one mutation to a named set of entities, or to none of them."""

    def __init__(self, store: BatchStore, entity_name: str = "entity"):
        self._store = store
        self._entity_name = entity_name

    async def apply_batch(
        self,
        target_ids: Iterable[Any],
        mutation: Mutation,
        policy: ValidationPolicy,
    ) -> BatchResult:
        """Verify that every target exists, then mutate exactly those targets.

        Store failures and bad identifiers are reported as a BatchOutcome,
        never raised. Nothing is retried.

        Raises:
            ValueError: If the store rejects the mutation's fields.
            TypeError: If the store does not support the mutation kind.
            Both are raised after verification but before anything is
            written.
        """
        entity = self._entity_name
        try:
            ids = normalize_identifiers(target_ids, policy)
        except InvalidIdentifierError as exc:
            return BatchResult(
                outcome=BatchOutcome.INVALID_INPUT,
                detail=f"{entity} ID(s) submitted are invalid: {exc.value!r}",
            )
        if not ids:
            return BatchResult(
                outcome=BatchOutcome.INVALID_INPUT,
                detail=f"No valid {entity} IDs submitted",
            )

        requested = len(ids)
        try:
            existing = await self._store.count_existing(ids)
        except StoreError:
            logger.exception(
                "Batch verification failed",
                entity=entity,
                requested=requested,
            )
            return BatchResult(
                outcome=BatchOutcome.STORE_ERROR,
                requested_count=requested,
                detail="Database error while verifying targets",
            )

        if existing != requested:
            logger.info(
                "Batch rejected, targets missing",
                entity=entity,
                requested=requested,
                existing=existing,
            )
            return BatchResult(
                outcome=BatchOutcome.NOT_FOUND,
                verified_count=existing,
                requested_count=requested,
                detail=f"{requested - existing} of {requested} {entity}(s) not found",
            )

        try:
            applied = await self._store.mutate_many(ids, mutation)
        except StoreError:
            logger.exception(
                "Batch mutation failed",
                entity=entity,
                mutation=type(mutation).__name__,
                verified=existing,
            )
            return BatchResult(
                outcome=BatchOutcome.STORE_ERROR,
                verified_count=existing,
                requested_count=requested,
                detail="Database error while applying changes",
            )

        if applied != existing:
            logger.warning(
                "Batch partially applied",
                entity=entity,
                mutation=type(mutation).__name__,
                verified=existing,
                applied=applied,
            )
            return BatchResult(
                outcome=BatchOutcome.PARTIAL_EFFECT,
                applied_count=applied,
                verified_count=existing,
                requested_count=requested,
                detail=(
                    f"{applied} of {existing} verified {entity}(s) were changed; "
                    "the set was modified concurrently"
                ),
            )

        logger.info(
            "Batch applied",
            entity=entity,
            mutation=type(mutation).__name__,
            applied=applied,
        )
        return BatchResult(
            outcome=BatchOutcome.OK,
            applied_count=applied,
            verified_count=existing,
            requested_count=requested,
            detail=f"{applied} {entity}(s) affected",
        )
