"""Pytest configuration and shared fixtures."""

import itertools
from typing import Callable, Optional

import pytest

from mapbot_app.control.breaker import ErrorCircuitBreaker
from mapbot_app.errors import ExternalDataUnavailableError
from mapbot_app.game.models import (
    ActionResult,
    AreaInfo,
    AreaKind,
    GroundItem,
    Item,
    ObjectKind,
    Position,
    WorldObject,
)
from mapbot_app.prices.feed import CategorySource
from mapbot_app.prices.models import PriceRecord
from mapbot_app.utils.time import ManualClock

HIDEOUT = AreaInfo("hideout", AreaKind.SAFE, "Hideout")


class FakeGame:
    """
    In-memory game client implementing both StateQuery and ActionExecutor.

    Actions change the state after configurable delays measured on the
    manual clock, so bounded polls observe the change only once enough
    simulated time has passed.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.pos = Position(0.0, 0.0)
        self.current_area = HIDEOUT
        self.inventory: list[Item] = []
        self.free_cells = 60
        self.health = 100.0
        self.flags: frozenset[str] = frozenset()
        self.overlay = False
        self.device_is_open = False
        self.device_contents: list[Item] = []
        self.slots: Optional[int] = None
        self.storage_is_open = False
        self.storage_contents: list[Item] = []
        self.objects: dict[ObjectKind, WorldObject] = {}
        self.ground: list[GroundItem] = []
        self.target: Optional[Position] = None
        self.explored = 0.0
        self.monsters = -1

        # Behaviour knobs
        self.forced_results: dict[str, ActionResult] = {}
        self.stuck_items: set[int] = set()
        self.open_delay = 0.3
        self.place_delay = 0.2
        self.close_delay = 0.5
        self.transition_delay = 1.0
        self.device_responds = True
        self.device_closes_on_activate = True
        self.teleport_moves = False

        self.log: list[tuple] = []
        self._pending: list[tuple[float, Callable[[], None]]] = []
        self._instance_ids = itertools.count(1)
        clock.on_advance(self._apply_due)

    # Scheduling

    def schedule(self, delay: float, change: Callable[[], None]) -> None:
        if delay <= 0:
            change()
        else:
            self._pending.append((self.clock.now() + delay, change))

    def _apply_due(self, now: float) -> None:
        due = [entry for entry in self._pending if entry[0] <= now]
        self._pending = [entry for entry in self._pending if entry[0] > now]
        for _, change in due:
            change()

    def actions_named(self, name: str) -> list[tuple]:
        return [entry for entry in self.log if entry[0] == name]

    # Setup helpers

    def place(self, kind: ObjectKind, position: Position, name: str = "", leads_to: Optional[str] = None,
              object_id: int = 0) -> WorldObject:
        obj = WorldObject(object_id or len(self.objects) + 100, name or kind.value, kind, position,
                          leads_to=leads_to)
        self.objects[kind] = obj
        return obj

    def enter_instance(self, area_id: str = "map-1") -> None:
        self.current_area = AreaInfo(area_id, AreaKind.INSTANCE, area_id)
        self.objects.pop(ObjectKind.PORTAL, None)
        self.device_is_open = False
        self.storage_is_open = False

    # StateQuery

    def position(self) -> Position:
        return self.pos

    def area(self) -> AreaInfo:
        return self.current_area

    def inventory_items(self) -> list[Item]:
        return list(self.inventory)

    def inventory_free_cells(self) -> int:
        return self.free_cells

    def health_percent(self) -> float:
        return self.health

    def status_flags(self) -> frozenset[str]:
        return self.flags

    def overlay_open(self) -> bool:
        return self.overlay or self.storage_is_open

    def device_open(self) -> bool:
        return self.device_is_open

    def device_items(self) -> list[Item]:
        return list(self.device_contents)

    def device_slots(self) -> Optional[int]:
        return self.slots

    def storage_open(self) -> bool:
        return self.storage_is_open

    def storage_items(self) -> list[Item]:
        return list(self.storage_contents)

    def find_object(self, kind: ObjectKind) -> Optional[WorldObject]:
        return self.objects.get(kind)

    def ground_items(self) -> list[GroundItem]:
        return list(self.ground)

    def exploration_target(self) -> Optional[Position]:
        return self.target

    def exploration_percent(self) -> float:
        return self.explored

    def monsters_remaining(self) -> int:
        return self.monsters

    # ActionExecutor

    def _forced(self, name: str) -> Optional[ActionResult]:
        return self.forced_results.get(name)

    def move_towards(self, point: Position) -> ActionResult:
        self.log.append(("move_towards", point))
        forced = self._forced("move_towards")
        if forced:
            return forced
        if self.teleport_moves:
            self.pos = point
        return ActionResult.OK

    def interact(self, obj: WorldObject) -> ActionResult:
        self.log.append(("interact", obj.kind))
        forced = self._forced("interact")
        if forced:
            return forced

        if obj.kind == ObjectKind.APPARATUS and self.device_responds:
            self.schedule(self.open_delay, self._open_device)
        elif obj.kind == ObjectKind.STORAGE:
            self.schedule(self.open_delay, self._open_storage)
        elif obj.kind == ObjectKind.PORTAL:
            self.schedule(self.transition_delay, lambda: self._take_portal(obj))
        return ActionResult.OK

    def press_key(self, code: str) -> ActionResult:
        self.log.append(("press_key", code))
        if code == "escape":
            self.overlay = False
            self.storage_is_open = False
            self.device_is_open = False
        elif code == "t" and self.current_area.is_instance:
            self.schedule(0.2, lambda: self.place(
                ObjectKind.PORTAL, Position(self.pos.x + 3, self.pos.y), "Town Portal", leads_to="hideout"
            ))
        return ActionResult.OK

    def move_item(self, item_id: int) -> ActionResult:
        self.log.append(("move_item", item_id))
        forced = self._forced("move_item")
        if forced:
            return forced
        if item_id in self.stuck_items:
            return ActionResult.NO_SPACE

        item = self._take(self.inventory, item_id)
        if item is not None:
            if self.device_is_open:
                self.schedule(self.place_delay, lambda: self.device_contents.append(item))
                return ActionResult.OK
            if self.storage_is_open:
                self.schedule(self.place_delay, lambda: self.storage_contents.append(item))
                return ActionResult.OK
            self.inventory.append(item)
            return ActionResult.UI_NOT_OPEN

        for container in (self.device_contents, self.storage_contents):
            item = self._take(container, item_id)
            if item is not None:
                self.schedule(self.place_delay, lambda: self.inventory.append(item))
                return ActionResult.OK

        return ActionResult.ITEM_NOT_FOUND

    def pick_up(self, item: GroundItem) -> ActionResult:
        self.log.append(("pick_up", item.object_id))
        forced = self._forced("pick_up")
        if forced:
            return forced
        self.ground = [g for g in self.ground if g.object_id != item.object_id]
        self.inventory.append(item.item)
        return ActionResult.OK

    def activate_device(self) -> ActionResult:
        self.log.append(("activate_device",))
        forced = self._forced("activate_device")
        if forced:
            return forced
        if self.device_closes_on_activate:
            self.schedule(self.close_delay, self._device_activated)
        return ActionResult.OK

    # Internal state changes

    @staticmethod
    def _take(container: list[Item], item_id: int) -> Optional[Item]:
        for index, item in enumerate(container):
            if item.item_id == item_id:
                return container.pop(index)
        return None

    def _open_device(self) -> None:
        self.device_is_open = True

    def _open_storage(self) -> None:
        self.storage_is_open = True

    def _device_activated(self) -> None:
        self.device_is_open = False
        self.device_contents.clear()
        area_id = f"map-{next(self._instance_ids)}"
        self.place(ObjectKind.PORTAL, Position(5.0, 5.0), "Map Portal", leads_to=area_id)

    def _take_portal(self, portal: WorldObject) -> None:
        if portal.leads_to == "hideout":
            left = self.current_area.area_id
            self.current_area = HIDEOUT
            self.place(ObjectKind.PORTAL, Position(5.0, 5.0), "Map Portal", leads_to=left)
        else:
            self.enter_instance(portal.leads_to or "map-1")


class FakeFeed:
    """Reference feed serving fixed records per category name."""

    def __init__(self, records: Optional[dict[str, list[PriceRecord]]] = None):
        self.records = records or {}
        self.failing: set[str] = set()
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    def fetch(self, source: CategorySource) -> list[PriceRecord]:
        self.calls.append(source.name)
        if source.name in self.errors:
            raise self.errors[source.name]
        if source.name in self.failing:
            raise ExternalDataUnavailableError("unavailable", category=source.name, status_code=503)
        return list(self.records.get(source.name, []))


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock starting at t=1000."""
    return ManualClock(start=1000.0)


@pytest.fixture
def game(clock: ManualClock) -> FakeGame:
    return FakeGame(clock)


@pytest.fixture
def breaker(clock: ManualClock) -> ErrorCircuitBreaker:
    return ErrorCircuitBreaker(max_consecutive=10, reset_timeout=120.0, clock=clock)


@pytest.fixture
def key_item() -> Item:
    return Item(1, "Strand Map", "Maps", tier=5)


@pytest.fixture
def currency_sources() -> tuple[CategorySource, ...]:
    return (
        CategorySource(name="Currency", endpoint="currencyoverview", item_type="Currency",
                       name_field="currencyTypeName", value_field="chaosEquivalent"),
        CategorySource(name="Map", endpoint="itemoverview", item_type="Map"),
    )


def make_context(**overrides):
    """ExecutionContext with idle hideout defaults."""
    from mapbot_app.tasks.context import ExecutionContext

    values = dict(
        timestamp=1000.0,
        position=Position(0.0, 0.0),
        area=HIDEOUT,
        inventory_items=(),
        free_cells=60,
        inventory_full=False,
        health_percent=100.0,
        status_flags=frozenset(),
        device_open=False,
        device_items=(),
        portal=None,
        exploration_target=None,
        exploration_percent=0.0,
        monsters_remaining=-1,
        loot_candidates=(),
        stashable_items=(),
        instances_started=0,
        instances_completed=0,
        instance_elapsed=0.0,
        session_limit_reached=False,
    )
    values.update(overrides)
    return ExecutionContext(**values)
