"""Choosing which inventory or storage items feed the apparatus."""

from typing import Iterable, Optional

from ..config.defaults import InstanceParams
from ..game.models import Item


def _folded(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(name.casefold() for name in names)


class ItemSelector:
    """Matches items against the configured key item rules."""

    def __init__(self, params: Optional[InstanceParams] = None) -> None:
        self.params = params or InstanceParams()
        self._key_class = self.params.key_item_class.casefold()
        self._preferred = _folded(self.params.preferred_names)
        self._blacklisted = frozenset(_folded(self.params.blacklisted_names))
        self._optional = frozenset(_folded(self.params.optional_item_names))
        self._keep = frozenset(_folded(self.params.keep_names))

    def is_key_item(self, item: Item) -> bool:
        """
        Whether an item can open an instance.

        The class must contain the configured key class, the tier must fall
        within the configured range (unknown tier 0 is accepted) and the name
        must not be blacklisted.
        """
        if self._key_class not in item.item_class.casefold():
            return False
        if item.tier and not self.params.min_tier <= item.tier <= self.params.max_tier:
            return False
        return item.name.casefold() not in self._blacklisted

    def select_key_item(self, items: Iterable[Item]) -> Optional[Item]:
        """Pick the key item to load: preferred names first, in configured order."""
        candidates = [item for item in items if self.is_key_item(item)]
        if not candidates:
            return None

        for preferred in self._preferred:
            for item in candidates:
                if item.name.casefold() == preferred:
                    return item

        return candidates[0]

    def is_optional_item(self, item: Item) -> bool:
        return item.name.casefold() in self._optional

    def select_optional(self, items: Iterable[Item]) -> list[Item]:
        """Secondary items to load, up to the configured maximum."""
        selected = [item for item in items if self.is_optional_item(item)]
        return selected[:self.params.max_optional_items]

    def is_reserved(self, item: Item) -> bool:
        """Items that must stay in the inventory and never be stashed."""
        return (
            self.is_key_item(item)
            or self.is_optional_item(item)
            or item.name.casefold() in self._keep
        )
