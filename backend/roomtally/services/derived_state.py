"""
Derived-State Engine - totals, per-room status and submission readiness.

Always recomputed from scratch from the RoomCollection; nothing here is
patched incrementally or cached on a Room.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .measurement import TENTH
from .room_store import Room, RoomCollection


class RoomStatus(str, Enum):
    """Presentation badge for a room."""
    AREA = "area"      # Both dimensions known
    LINEAR = "linear"  # Exactly one dimension known
    EMPTY = "empty"    # Neither dimension known


@dataclass
class DerivedState:
    """Aggregates computed from a RoomCollection."""
    total_area: Decimal
    submission_ready: bool
    statuses: List[RoomStatus] = field(default_factory=list)
    room_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_area": float(self.total_area),
            "submission_ready": self.submission_ready,
            "statuses": [s.value for s in self.statuses],
            "room_count": self.room_count,
        }


def room_status(room: Room) -> RoomStatus:
    """Classify a room by which dimensions are present."""
    known = (room.length is not None) + (room.width is not None)
    if known == 2:
        return RoomStatus.AREA
    if known == 1:
        return RoomStatus.LINEAR
    return RoomStatus.EMPTY


def room_area(room: Room) -> Optional[Decimal]:
    """Unrounded area of a room, or None unless both dimensions are known."""
    if room.length is None or room.width is None:
        return None
    return room.length * room.width


def total_area(collection: RoomCollection) -> Decimal:
    """Sum of all room areas, rounded once at the end."""
    total = Decimal(0)
    for room in collection.rooms:
        area = room_area(room)
        if area is not None:
            total += area
    return total.quantize(TENTH, rounding=ROUND_HALF_UP)


def is_submission_ready(collection: RoomCollection) -> bool:
    """True when some named room has at least one known dimension."""
    return any(
        room.name.strip() and (room.length is not None or room.width is not None)
        for room in collection.rooms
    )


def compute_totals(collection: RoomCollection) -> DerivedState:
    return DerivedState(
        total_area=total_area(collection),
        submission_ready=is_submission_ready(collection),
        statuses=[room_status(r) for r in collection.rooms],
        room_count=len(collection.rooms),
    )
