"""Ground item pickup decisions."""

from typing import Iterable, Optional

import structlog

from ..config.defaults import LootParams
from ..game.models import GroundItem, Item, Position
from .cache import ReferencePriceCache

logger = structlog.get_logger(__name__)

_CURRENCY_CLASSES = frozenset({"currency", "stackablecurrency"})


def _contains_any(value: str, needles: frozenset[str]) -> bool:
    folded = value.casefold()
    return any(needle in folded for needle in needles)


class LootFilter:
    """
    Decides which ground items are worth picking up.

    Order of checks: blacklist, mandatory classes, then either the reference
    price threshold or, with the price filter disabled, the pickup classes.
    Items that failed to be picked up are ignored until the next instance.
    """

    def __init__(self, cache: Optional[ReferencePriceCache], params: Optional[LootParams] = None):
        self.cache = cache
        self.params = params or LootParams()
        self._blacklisted = frozenset(name.casefold() for name in self.params.blacklisted_names)
        self._mandatory = frozenset(cls.casefold() for cls in self.params.mandatory_classes)
        self._pickup = frozenset(cls.casefold() for cls in self.params.pickup_classes)
        self._ignored: set[int] = set()

    def value_of(self, item: Item) -> Optional[float]:
        if self.cache is None or not self.params.use_price_filter:
            return None
        return self.cache.get_value(item.name)

    def should_pickup(self, item: Item) -> bool:
        return self._assess(item)[0]

    def _assess(self, item: Item) -> tuple[bool, Optional[float]]:
        """Pickup decision and reference value, looked up at most once."""
        if item.name.casefold() in self._blacklisted:
            return False, None

        value = self.value_of(item)
        if _contains_any(item.item_class, self._mandatory):
            return True, value

        if self.cache is not None and self.params.use_price_filter:
            if value is not None:
                return value >= self.params.min_value, value
            return self._fallback(item), None

        return _contains_any(item.item_class, self._pickup), None

    def candidates(self, ground_items: Iterable[GroundItem], origin: Position) -> list[GroundItem]:
        """
        Ground items worth picking up within range.

        Most valuable first, then closest first.
        """
        if not self.params.enabled:
            return []

        ranked = []
        for ground in ground_items:
            if ground.object_id in self._ignored:
                continue
            distance = origin.distance_to(ground.position)
            if distance >= self.params.max_range:
                continue
            wanted, value = self._assess(ground.item)
            if wanted:
                ranked.append((-(value or 0.0), distance, ground))

        ranked.sort(key=lambda entry: entry[:2])
        return [ground for _, _, ground in ranked]

    def ignore(self, object_id: int) -> None:
        """Skip a ground item for the rest of the instance."""
        self._ignored.add(object_id)

    def is_ignored(self, object_id: int) -> bool:
        return object_id in self._ignored

    def reset_instance(self) -> None:
        if self._ignored:
            logger.debug("Clearing loot ignore list", count=len(self._ignored))
        self._ignored.clear()

    def _fallback(self, item: Item) -> bool:
        if self.params.always_pickup_unknown_currency and item.item_class.casefold() in _CURRENCY_CLASSES:
            logger.info("Picking up currency with unknown value", item=item.name)
            return True
        return False
