"""Resolved identity of an authenticated caller."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """Opaque identifier of an authenticated user."""

    id: str

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("principal id must be a non-empty string")

    def __str__(self) -> str:
        return self.id
