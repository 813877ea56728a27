"""
Value types exchanged with the external game client.

All types are immutable; the client is polled for fresh values every time
they are needed.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AreaKind(str, Enum):
    """Broad classification of the current area."""
    SAFE = "safe"            # Hideout: apparatus and storage live here
    TOWN = "town"
    INSTANCE = "instance"    # Contained, time-limited activity area
    UNKNOWN = "unknown"


class ObjectKind(str, Enum):
    """Kinds of world objects the control layer looks up."""
    APPARATUS = "apparatus"
    STORAGE = "storage"
    PORTAL = "portal"


class ActionResult(str, Enum):
    """Structured result code returned by every action."""
    OK = "ok"
    TARGET_NOT_FOUND = "target_not_found"
    TARGET_INVALID = "target_invalid"
    UI_NOT_OPEN = "ui_not_open"
    NO_SPACE = "no_space"
    ITEM_NOT_FOUND = "item_not_found"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"

    @property
    def ok(self) -> bool:
        return self is ActionResult.OK


@dataclass(frozen=True)
class Position:
    """Grid position in the current area."""
    x: float
    y: float

    def distance_to(self, other: "Position") -> float:
        """Euclidean distance to another position."""
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class AreaInfo:
    """Identity and kind of the current area."""
    area_id: str
    kind: AreaKind
    name: str = ""

    @property
    def is_safe(self) -> bool:
        return self.kind == AreaKind.SAFE

    @property
    def is_instance(self) -> bool:
        return self.kind == AreaKind.INSTANCE


@dataclass(frozen=True)
class Item:
    """An inventory, storage or device item."""
    item_id: int
    name: str
    item_class: str = ""
    tier: int = 0                    # 0 when unknown
    width: int = 1
    height: int = 1


@dataclass(frozen=True)
class WorldObject:
    """An interactable object in the current area."""
    object_id: int
    name: str
    kind: ObjectKind
    position: Position
    targetable: bool = True
    leads_to: Optional[str] = None   # Destination area id, for portals


@dataclass(frozen=True)
class GroundItem:
    """An item lying on the ground."""
    object_id: int
    item: Item
    position: Position
