"""Object identifier helpers.

Identifiers are 12-byte values rendered as 24 lower-case hex characters:
a 4-byte big-endian UNIX timestamp, 5 bytes of per-process randomness and
a 3-byte rolling counter. Anything else presented as an identifier is
malformed.
"""

import enum
import itertools
import re
import secrets
import time
from collections.abc import Iterable
from typing import Any

_OBJECT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")
_PROCESS_UNIQUE = secrets.token_bytes(5)
_counter = itertools.count(secrets.randbelow(0xFFFFFF))


class ValidationPolicy(str, enum.Enum):
    """How malformed members of an identifier set are treated."""

    STRICT = "strict"  # any malformed member rejects the whole set
    LENIENT = "lenient"  # malformed members are dropped


class InvalidIdentifierError(ValueError):
    """Raised under the strict policy for a malformed identifier."""

    def __init__(self, value: Any):
        super().__init__(f"Malformed identifier: {value!r}")
        self.value = value


def is_valid_object_id(value: Any) -> bool:
    """Return True if ``value`` is a 24-character hex string."""
    return isinstance(value, str) and _OBJECT_ID_PATTERN.fullmatch(value) is not None


def new_object_id() -> str:
    """Generate a fresh identifier."""
    timestamp = int(time.time()).to_bytes(4, "big")
    count = (next(_counter) & 0xFFFFFF).to_bytes(3, "big")
    return (timestamp + _PROCESS_UNIQUE + count).hex()


def normalize_identifiers(
    identifiers: Iterable[Any],
    policy: ValidationPolicy,
) -> list[str]:
    """Validate, lower-case and de-duplicate an identifier set.

    First-seen order is preserved.

    Raises:
        InvalidIdentifierError: On the first malformed member under
            ``ValidationPolicy.STRICT``.
    """
    normalized: dict[str, None] = {}
    for identifier in identifiers:
        if not is_valid_object_id(identifier):
            if policy is ValidationPolicy.STRICT:
                raise InvalidIdentifierError(identifier)
            continue
        normalized.setdefault(identifier.lower(), None)
    return list(normalized)
