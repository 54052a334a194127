"""Ordered field lookups for node responses whose shape varies between versions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence


@dataclass(frozen=True)
class FieldAccessor:
    name: str
    read: Callable[[Any], Any]

    @classmethod
    def key(cls, field_name: str) -> "FieldAccessor":
        def read(response: Any) -> Any:
            if isinstance(response, dict):
                return response.get(field_name)
            return getattr(response, field_name, None)

        return cls(name=field_name, read=read)


def first_present(
    response: Any, accessors: Sequence[FieldAccessor]
) -> tuple[str, Any] | None:
    """Return ``(accessor name, value)`` for the first accessor with a value.

    Empty strings, ``None`` and zero count as absent.
    """
    for accessor in accessors:
        value = accessor.read(response)
        if value not in (None, "", 0):
            return accessor.name, value
    return None


TRANSACTION_ID_ACCESSORS: tuple[FieldAccessor, ...] = tuple(
    FieldAccessor.key(name)
    for name in ("txId", "txid", "txID", "transactionId", "transaction_id")
)

CONFIRMED_ROUND_ACCESSORS: tuple[FieldAccessor, ...] = tuple(
    FieldAccessor.key(name) for name in ("confirmed-round", "confirmedRound", "round")
)


def extract_transaction_id(response: Any) -> str | None:
    found = first_present(response, TRANSACTION_ID_ACCESSORS)
    return str(found[1]) if found else None


def extract_confirmed_round(response: Any) -> int | None:
    found = first_present(response, CONFIRMED_ROUND_ACCESSORS)
    return int(found[1]) if found else None
