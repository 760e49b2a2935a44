"""
Unit Converter - feet <-> meters with bounded precision loss.

Single values are converted with the same rounding and zero-to-None rule as
the Measurement Normalizer. Whole collections are converted atomically:
every room is staged first and nothing is committed unless all rooms convert.
A dimension converted back to its previous unit, unedited, regains its
exact earlier value.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
import logging

from ..core.exceptions import ConversionAbort, UnitConversionError
from .measurement import round_tenth

if TYPE_CHECKING:
    from .room_store import Room, RoomCollection

logger = logging.getLogger(__name__)


class Unit(str, Enum):
    """Canonical measurement unit governing every stored dimension."""
    FEET = "ft"
    METERS = "m"


FEET_TO_METERS = Decimal("0.3048")
METERS_TO_FEET = Decimal("3.280839895013123")

# Converted (length, width) of one room plus the origins to remember
StagedRoom = Tuple[Optional[Decimal], Optional[Decimal], Dict[str, Tuple[Unit, Decimal]]]

# Case-insensitive tokens recognized in external payloads
UNIT_TOKENS = {
    "ft": Unit.FEET,
    "feet": Unit.FEET,
    "foot": Unit.FEET,
    "m": Unit.METERS,
    "meter": Unit.METERS,
    "meters": Unit.METERS,
    "metre": Unit.METERS,
    "metres": Unit.METERS,
}


def parse_unit(token: Any) -> Optional[Unit]:
    """Map a unit token to a Unit; unrecognized or absent tokens give None."""
    if isinstance(token, Unit):
        return token
    if not isinstance(token, str):
        return None
    return UNIT_TOKENS.get(token.strip().lower())


def _convert(value: Optional[Decimal], factor: Decimal) -> Optional[Decimal]:
    if value is None:
        return None
    if not isinstance(value, Decimal) or not value.is_finite() or value < 0:
        raise UnitConversionError(
            f"Cannot convert dimension {value!r}",
            details={"value": repr(value)},
        )
    try:
        return round_tenth(value * factor)
    except InvalidOperation as e:
        raise UnitConversionError(
            f"Cannot convert dimension {value!r}: {e}",
            details={"value": repr(value)},
        )


def to_meters(ft: Optional[Decimal]) -> Optional[Decimal]:
    """Convert feet to meters (rounded to one decimal, zero becomes None)."""
    return _convert(ft, FEET_TO_METERS)


def to_feet(m: Optional[Decimal]) -> Optional[Decimal]:
    """Convert meters to feet (rounded to one decimal, zero becomes None)."""
    return _convert(m, METERS_TO_FEET)


def convert_value(value: Optional[Decimal], source: Unit, target: Unit) -> Optional[Decimal]:
    """Convert a canonical value from one unit to another."""
    if source == target:
        return value
    if target == Unit.METERS:
        return to_meters(value)
    return to_feet(value)


def _stage_dimension(
    room: "Room",
    name: str,
    source: Unit,
    target: Unit,
    origins: Dict[str, Tuple[Unit, Decimal]],
) -> Optional[Decimal]:
    """
    Convert one dimension of a room, restoring its pre-conversion value
    when it was last converted out of target and not edited since.
    """
    value = getattr(room, name)
    origin = room.origins.get(name)
    if origin is not None and origin[0] == target:
        converted = origin[1]
    else:
        converted = convert_value(value, source, target)
    if value is not None and converted is not None:
        origins[name] = (source, value)
    return converted


def convert_collection_unit(collection: "RoomCollection", target_unit: Unit) -> bool:
    """
    Convert every room of a collection to target_unit, all or nothing.

    Converting back to a previous unit restores each unedited dimension to
    its exact earlier value, so a ft -> m -> ft round trip is lossless.

    Returns:
        False when the collection already uses target_unit, True otherwise

    Raises:
        ConversionAbort: A room could not be converted; the collection is
            left exactly as it was
    """
    target_unit = Unit(target_unit)
    source_unit = collection.unit
    if target_unit == source_unit:
        return False

    staged: List[StagedRoom] = []
    for index, room in enumerate(collection.rooms):
        origins: Dict[str, Tuple[Unit, Decimal]] = {}
        try:
            length = _stage_dimension(room, "length", source_unit, target_unit, origins)
            width = _stage_dimension(room, "width", source_unit, target_unit, origins)
        except UnitConversionError as e:
            logger.warning(f"Unit conversion aborted at room {index}: {e.message}")
            raise ConversionAbort(
                f"Conversion to {target_unit.value} aborted at room {index}",
                details={"index": str(index), "reason": e.message},
            )
        staged.append((length, width, origins))

    collection._commit_conversion(target_unit, staged)
    logger.info(
        f"Converted {len(staged)} rooms from {source_unit.value} to {target_unit.value}"
    )
    return True
