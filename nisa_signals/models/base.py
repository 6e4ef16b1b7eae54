"""
Shared base for models that cross the HTTP boundary.

Python attributes are snake_case; the wire format is camelCase
(``adjusted_close`` ↔ ``adjustedClose``, ``dist_from_52w_high`` ↔
``distFrom52wHigh``).  Both spellings are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def to_camel(name: str) -> str:
    """Convert ``snake_case`` to ``camelCase`` without touching digit runs."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class WireModel(BaseModel):
    """Frozen model serialised with camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
