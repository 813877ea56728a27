"""
Price data models.

A ``CacheSnapshot`` is never modified after construction. The cache replaces
its snapshot reference in a single assignment, so a reader holding a snapshot
always sees one complete generation of prices.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


@dataclass(frozen=True)
class PriceRecord:
    """One name/value pair as published by the reference feed."""
    name: str
    value: float


@dataclass(frozen=True)
class PriceEntry:
    """A cached reference price."""
    name: str
    value: float
    category: str
    refreshed_at: float              # Clock time of the refresh that produced it


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable name to price mapping for one refresh generation."""
    entries: Mapping[str, PriceEntry] = field(default_factory=lambda: MappingProxyType({}))
    generation: int = 0
    refreshed_at: Optional[float] = None   # None until the first refresh
    failed_categories: frozenset[str] = frozenset()
    folded: Mapping[str, PriceEntry] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        entries: Iterable[PriceEntry],
        generation: int,
        refreshed_at: float,
        failed_categories: Iterable[str] = ()
    ) -> 'CacheSnapshot':
        """
        Create a snapshot from price entries.

        Later entries with the same name replace earlier ones. The case-folded
        index keeps the lexicographically smallest original name when two
        names fold to the same key.
        """
        by_name: dict[str, PriceEntry] = {}
        for entry in entries:
            by_name[entry.name] = entry

        folded: dict[str, PriceEntry] = {}
        for name in sorted(by_name):
            folded.setdefault(name.casefold(), by_name[name])

        return cls(
            entries=MappingProxyType(by_name),
            generation=generation,
            refreshed_at=refreshed_at,
            failed_categories=frozenset(failed_categories),
            folded=MappingProxyType(folded),
        )

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, key: str) -> Optional[PriceEntry]:
        """
        Resolve a name to a price entry.

        Tries an exact match, then a case-insensitive match, then a
        case-insensitive substring match in either direction. Among substring
        matches the longest name wins, ties broken by name order.
        """
        if not key:
            return None

        entry = self.entries.get(key)
        if entry is not None:
            return entry

        needle = key.casefold()
        entry = self.folded.get(needle)
        if entry is not None:
            return entry

        matches = [
            (folded_name, candidate)
            for folded_name, candidate in self.folded.items()
            if needle in folded_name or folded_name in needle
        ]
        if not matches:
            return None

        _, best = min(matches, key=lambda match: (-len(match[0]), match[0]))
        return best
