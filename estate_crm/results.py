"""Result types for the data-access layer.

Read functions degrade to an empty ``Rows`` on failure so pages keep
rendering; ``Rows.error`` lets a caller tell "no rows" apart from "query
failed". Mutations report through ``MutationResult`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterator, Sequence, TypeVar, overload

T = TypeVar("T")


@dataclass
class Rows(Sequence[T], Generic[T]):
    items: list[T] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> Rows[T]:
        return cls(items=[], error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index):
        return self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __eq__(self, other) -> bool:
        if isinstance(other, Rows):
            return self.items == other.items and self.error == other.error
        if isinstance(other, list):
            return self.items == other
        return NotImplemented


@dataclass(frozen=True)
class MutationResult:
    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> MutationResult:
        return cls(success=True, error=None)

    @classmethod
    def fail(cls, error: str) -> MutationResult:
        return cls(success=False, error=error)

    def as_dict(self) -> dict:
        return {"success": self.success, "error": self.error}
