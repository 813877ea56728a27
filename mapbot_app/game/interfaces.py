"""
Protocols for the external collaborators.

The control layer never reaches into the client directly; it polls a
``StateQuery`` and issues commands through an ``ActionExecutor``. Both are
expected to be cheap, synchronous calls that reflect the latest client state.
"""

from typing import Optional, Protocol

from .models import (
    ActionResult,
    AreaInfo,
    GroundItem,
    Item,
    ObjectKind,
    Position,
    WorldObject,
)


class StateQuery(Protocol):
    """Read-only view of the game client, polled fresh on every need."""

    def position(self) -> Position: ...

    def area(self) -> AreaInfo: ...

    def inventory_items(self) -> list[Item]: ...

    def inventory_free_cells(self) -> int: ...

    def health_percent(self) -> float: ...

    def status_flags(self) -> frozenset[str]: ...

    def overlay_open(self) -> bool:
        """Whether a blocking interface (storage, vendor, ...) is open."""
        ...

    def device_open(self) -> bool: ...

    def device_items(self) -> list[Item]: ...

    def device_slots(self) -> Optional[int]:
        """Apparatus capacity, or None when the client does not expose it."""
        ...

    def storage_open(self) -> bool: ...

    def storage_items(self) -> list[Item]: ...

    def find_object(self, kind: ObjectKind) -> Optional[WorldObject]:
        """Closest targetable object of the given kind, if any."""
        ...

    def ground_items(self) -> list[GroundItem]: ...

    def exploration_target(self) -> Optional[Position]:
        """Next unexplored point supplied by the navigation collaborator."""
        ...

    def exploration_percent(self) -> float: ...

    def monsters_remaining(self) -> int:
        """Monsters left in the instance, or -1 when unknown."""
        ...


class ActionExecutor(Protocol):
    """Simulated input actions; each returns a structured result code."""

    def move_towards(self, point: Position) -> ActionResult: ...

    def interact(self, obj: WorldObject) -> ActionResult: ...

    def press_key(self, code: str) -> ActionResult: ...

    def move_item(self, item_id: int) -> ActionResult:
        """Fast-move an item between the open containers."""
        ...

    def pick_up(self, item: GroundItem) -> ActionResult:
        """Click a ground item; the item leaves the ground once collected."""
        ...

    def activate_device(self) -> ActionResult: ...
