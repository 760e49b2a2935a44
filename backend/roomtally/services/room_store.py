"""
Room Store - the canonical in-memory collection of rooms.

Every dimension written here passes through the Measurement Normalizer.
Rejected operations (bad index, invalid permutation, unknown field) are
no-ops that return False; nothing is ever half-applied.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .measurement import RawLength, parse_length
from .unit_conversion import StagedRoom, Unit, convert_collection_unit

logger = logging.getLogger(__name__)

# (unit, value) of a dimension before a unit conversion
Origin = Tuple[Unit, Decimal]


class RoomField(str, Enum):
    """Editable room fields."""
    NAME = "name"
    LENGTH = "length"
    WIDTH = "width"


@dataclass
class Room:
    """
    A single room; dimensions are canonical Decimals or None.

    origins maps a dimension name to its value before the last unit
    conversion, so converting back restores it exactly. Editing the
    dimension drops its entry.
    """
    name: str = ""
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    unit: Unit = Unit.FEET
    origins: Dict[str, Origin] = field(default_factory=dict, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "length": float(self.length) if self.length is not None else None,
            "width": float(self.width) if self.width is not None else None,
            "unit": self.unit.value,
        }


@dataclass
class RoomInput:
    """A room entry resolved from an external payload, before storage."""
    name: str = ""
    length: RawLength = None
    width: RawLength = None


Listener = Callable[["RoomCollection"], None]


@dataclass
class RoomCollection:
    """
    Ordered rooms plus the global unit and the sort-direction flag.

    sort_ascending is None while insertion order is canonical.
    """
    unit: Unit = Unit.FEET
    rooms: List[Room] = field(default_factory=list)
    sort_ascending: Optional[bool] = None
    _listeners: List[Listener] = field(default_factory=list, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.rooms)

    def __iter__(self):
        return iter(self.rooms)

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """Register a callback invoked after every applied mutation."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    def _in_bounds(self, index: int) -> bool:
        return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(self.rooms)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self) -> Room:
        """Append a blank room in the current global unit."""
        room = Room(unit=self.unit)
        self.rooms.append(room)
        self._changed()
        return room

    def update(self, index: int, field_name: Any, value: Any) -> bool:
        """Set one field of one room; dimensions are re-normalized first."""
        if not self._in_bounds(index):
            logger.debug(f"Update rejected: index {index!r} out of bounds")
            return False
        try:
            room_field = RoomField(field_name)
        except ValueError:
            logger.debug(f"Update rejected: unknown field {field_name!r}")
            return False

        room = self.rooms[index]
        if room_field == RoomField.NAME:
            name = "" if value is None else str(value)
            if name != room.name:
                # Rows are no longer known to be in sorted order
                self.sort_ascending = None
            room.name = name
        else:
            setattr(room, room_field.value, parse_length(value))
            room.origins.pop(room_field.value, None)
        self._changed()
        return True

    def remove(self, index: int) -> bool:
        """Remove the room at index."""
        if not self._in_bounds(index):
            logger.debug(f"Remove rejected: index {index!r} out of bounds")
            return False
        del self.rooms[index]
        self._changed()
        return True

    def reorder(self, new_order: Sequence[int]) -> bool:
        """
        Reorder rooms; new_order[i] is the current index of the room that
        should end up at position i. Only a permutation is accepted.
        """
        try:
            order = list(new_order)
        except TypeError:
            return False
        if any(isinstance(i, bool) or not isinstance(i, int) for i in order):
            return False
        if sorted(order) != list(range(len(self.rooms))):
            logger.debug(f"Reorder rejected: {order!r} is not a permutation")
            return False
        self.rooms = [self.rooms[i] for i in order]
        self.sort_ascending = None
        self._changed()
        return True

    def replace_all(self, rooms: Iterable[RoomInput], unit: Optional[Unit] = None) -> None:
        """Replace every room after ingestion; unit None keeps the current unit."""
        target_unit = Unit(unit) if unit is not None else self.unit
        self.rooms = [
            Room(
                name=entry.name or "",
                length=parse_length(entry.length),
                width=parse_length(entry.width),
                unit=target_unit,
            )
            for entry in rooms
        ]
        self.unit = target_unit
        self.sort_ascending = None
        self._changed()

    def sort_alphabetical(self, ascending: bool = True) -> None:
        """
        Stable, case-insensitive sort by name. Rooms with a blank name stay
        at the end in both directions.
        """
        named = [r for r in self.rooms if r.name.strip()]
        unnamed = [r for r in self.rooms if not r.name.strip()]
        named.sort(key=lambda r: r.name.strip().casefold(), reverse=not ascending)
        self.rooms = named + unnamed
        self.sort_ascending = ascending
        self._changed()

    def toggle_sort(self) -> bool:
        """Sort in the opposite direction of the last sort; ascending first."""
        ascending = not self.sort_ascending if self.sort_ascending is not None else True
        self.sort_alphabetical(ascending)
        return ascending

    def convert_unit(self, target_unit: Unit) -> bool:
        """Convert all rooms to target_unit; see convert_collection_unit."""
        return convert_collection_unit(self, target_unit)

    def clear(self, unit: Optional[Unit] = None) -> None:
        """Drop every room and reset the sort flag."""
        self.rooms = []
        if unit is not None:
            self.unit = Unit(unit)
        self.sort_ascending = None
        self._changed()

    def _commit_conversion(
        self,
        target_unit: Unit,
        staged: List[StagedRoom],
    ) -> None:
        """Apply pre-computed converted dimensions in one step."""
        for room, (length, width, origins) in zip(self.rooms, staged):
            room.length = length
            room.width = width
            room.origins = origins
            room.unit = target_unit
        self.unit = target_unit
        self._changed()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit.value,
            "sort_ascending": self.sort_ascending,
            "rooms": [r.to_dict() for r in self.rooms],
        }
