"""
Per-pass execution context.

The orchestrator builds one ``ExecutionContext`` at the start of every pass
and hands the same snapshot to every predicate it evaluates and to the
routine it selects. Nothing in a context is mutated after construction.
"""

from dataclasses import dataclass
from typing import Optional

from ..config.defaults import BotConfig
from ..device.selection import ItemSelector
from ..game.interfaces import StateQuery
from ..game.models import AreaInfo, GroundItem, Item, ObjectKind, Position, WorldObject
from ..prices.loot import LootFilter
from ..stats.statistics import RunStatistics
from ..utils.time import Clock, resolve_clock


@dataclass(frozen=True)
class ExecutionContext:
    """Snapshot of the client and session state for one orchestrator pass."""
    timestamp: float
    position: Position
    area: AreaInfo
    inventory_items: tuple[Item, ...]
    free_cells: int
    inventory_full: bool
    health_percent: float
    status_flags: frozenset[str]
    device_open: bool
    device_items: tuple[Item, ...]
    portal: Optional[WorldObject]            # Portal into an unfinished instance
    exploration_target: Optional[Position]
    exploration_percent: float
    monsters_remaining: int
    loot_candidates: tuple[GroundItem, ...]
    stashable_items: tuple[Item, ...]
    instances_started: int
    instances_completed: int
    instance_elapsed: float
    session_limit_reached: bool

    # Thresholds the derived properties are evaluated against
    target_exploration_percent: float = 80.0
    monsters_remaining_threshold: int = -1
    min_health_percent: float = 20.0
    max_instance_seconds: float = 600.0

    @property
    def in_safe_area(self) -> bool:
        return self.area.is_safe

    @property
    def in_instance(self) -> bool:
        return self.area.is_instance

    @property
    def has_portal(self) -> bool:
        return self.portal is not None

    @property
    def low_health(self) -> bool:
        return self.health_percent < self.min_health_percent

    @property
    def time_limit_reached(self) -> bool:
        return self.max_instance_seconds > 0 and self.instance_elapsed >= self.max_instance_seconds

    @property
    def instance_complete(self) -> bool:
        """Explored enough, or few enough monsters left when that check is enabled."""
        if not self.in_instance:
            return False
        if self.exploration_percent >= self.target_exploration_percent:
            return True
        return (
            self.monsters_remaining_threshold >= 0
            and 0 <= self.monsters_remaining <= self.monsters_remaining_threshold
        )

    @property
    def leave_reason(self) -> Optional[str]:
        """Why the instance should be left now, or None to stay."""
        if not self.in_instance:
            return None
        if self.low_health:
            return "low_health"
        if self.inventory_full:
            return "inventory_full"
        if self.instance_complete:
            return "instance_complete"
        if self.time_limit_reached:
            return "time_limit"
        return None

    @property
    def should_leave_instance(self) -> bool:
        return self.leave_reason is not None


class ContextBuilder:
    """Polls the client and the session services into an ExecutionContext."""

    def __init__(
        self,
        query: StateQuery,
        stats: RunStatistics,
        loot_filter: LootFilter,
        selector: ItemSelector,
        config: BotConfig,
        clock: Optional[Clock] = None
    ):
        self.query = query
        self.stats = stats
        self.loot_filter = loot_filter
        self.selector = selector
        self.config = config
        self.clock = resolve_clock(clock)

    def build(self) -> ExecutionContext:
        query = self.query
        area = query.area()
        position = query.position()
        inventory = tuple(query.inventory_items())
        free_cells = query.inventory_free_cells()
        inventory_full = free_cells < self.config.exit.inventory_free_cells_threshold

        loot: tuple[GroundItem, ...] = ()
        if area.is_instance and not inventory_full:
            loot = tuple(self.loot_filter.candidates(query.ground_items(), position))

        stashable: tuple[Item, ...] = ()
        if area.is_safe:
            stashable = tuple(item for item in inventory if not self.selector.is_reserved(item))

        portal = query.find_object(ObjectKind.PORTAL)
        if portal is not None and (not portal.targetable or self.stats.is_finished(portal.leads_to)):
            portal = None

        max_instances = self.config.session.max_instances
        instance = self.config.instance

        return ExecutionContext(
            timestamp=self.clock.now(),
            position=position,
            area=area,
            inventory_items=inventory,
            free_cells=free_cells,
            inventory_full=inventory_full,
            health_percent=query.health_percent(),
            status_flags=frozenset(query.status_flags()),
            device_open=query.device_open(),
            device_items=tuple(query.device_items()),
            portal=portal,
            exploration_target=query.exploration_target() if area.is_instance else None,
            exploration_percent=query.exploration_percent() if area.is_instance else 0.0,
            monsters_remaining=query.monsters_remaining() if area.is_instance else -1,
            loot_candidates=loot,
            stashable_items=stashable,
            instances_started=self.stats.instances_started,
            instances_completed=self.stats.instances_completed,
            instance_elapsed=self.stats.instance_elapsed(),
            session_limit_reached=max_instances > 0 and self.stats.instances_completed >= max_instances,
            target_exploration_percent=instance.target_exploration_percent,
            monsters_remaining_threshold=instance.monsters_remaining_threshold,
            min_health_percent=self.config.exit.min_health_percent,
            max_instance_seconds=instance.max_instance_seconds,
        )
