"""Preconditions — expected-snapshot guards for conditional store writes.

Invariants:
    - A Precondition is an immutable mapping field -> expected value
    - Expected value None means "field is absent" (SQL IS NULL)
    - An empty Precondition adds no condition: the write applies to any existing record
    - The store compiles the mapping into its write condition (SQL: WHERE clause);
      describe() renders it for the log line of a lost write

Design Decisions:
    - Field snapshot over opaque tokens: "used_at is still absent" and
      "version is unchanged" are both expressed the same way
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Precondition:
    """Expected field values a record must hold for a write to take effect."""
    expected: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "expected", MappingProxyType(dict(self.expected)))

    @classmethod
    def version(cls, version: int) -> "Precondition":
        """Record unchanged since it was read."""
        return cls({"version": version})

    @classmethod
    def field_is(cls, name: str, value: Any) -> "Precondition":
        return cls({name: value})

    @classmethod
    def field_absent(cls, name: str) -> "Precondition":
        return cls({name: None})

    def describe(self) -> str:
        return ", ".join(
            f"{name} is absent" if value is None else f"{name} == {value!r}"
            for name, value in self.expected.items()
        ) or "always"
