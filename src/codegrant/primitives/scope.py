"""Access token scope (RFC 6749 Section 3.3)."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Scope:
    """Ordered set of scope tokens rendered as a space-delimited string."""

    tokens: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        seen: dict[str, None] = {}
        for token in self.tokens:
            if not token or " " in token:
                raise ValueError(f"Invalid scope token: {token!r}")
            seen.setdefault(token)
        object.__setattr__(self, "tokens", tuple(seen))

    @classmethod
    def of(cls, *tokens: str) -> Scope:
        return cls(tokens)

    @classmethod
    def parse(cls, value: str) -> Scope:
        """Parse a space-delimited scope string."""
        return cls(tuple(value.split()))

    @classmethod
    def coerce(cls, value: Scope | str | Iterable[str]) -> Scope:
        if isinstance(value, Scope):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        return cls(tuple(value))

    @property
    def value(self) -> str:
        return " ".join(self.tokens)

    def issuperset(self, other: Scope) -> bool:
        return set(self.tokens).issuperset(other.tokens)

    def __contains__(self, token: object) -> bool:
        return token in self.tokens

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __str__(self) -> str:
        return self.value
