"""
Unit tests for the Unit Converter.

Tests cover:
- Single-value conversion and rounding
- Unit token parsing
- Atomic collection-wide conversion and rollback
"""

from decimal import Decimal

import pytest

from roomtally.core.exceptions import ConversionAbort, UnitConversionError
from roomtally.services.room_store import Room, RoomCollection, RoomInput
from roomtally.services.unit_conversion import (
    Unit,
    convert_collection_unit,
    convert_value,
    parse_unit,
    to_feet,
    to_meters,
)


@pytest.fixture
def feet_collection():
    """Two rooms in feet, one partially measured."""
    return RoomCollection(
        unit=Unit.FEET,
        rooms=[
            Room(name="Kitchen", length=Decimal("12.5"), width=Decimal("12.0"), unit=Unit.FEET),
            Room(name="Hall", length=Decimal("20.0"), width=None, unit=Unit.FEET),
        ],
    )


# =============================================================================
# Single Values
# =============================================================================


class TestSingleValues:
    """Test feet/meter conversion of one value."""

    def test_to_meters(self):
        assert to_meters(Decimal("10")) == Decimal("3.0")

    def test_to_feet(self):
        assert to_feet(Decimal("3")) == Decimal("9.8")

    def test_none_passes_through(self):
        assert to_meters(None) is None
        assert to_feet(None) is None

    def test_tiny_value_becomes_none(self):
        """0.1 ft is 0.03 m, which rounds to zero."""
        assert to_meters(Decimal("0.1")) is None

    @pytest.mark.parametrize("x", ["1.0", "3.3", "7.3", "12.5", "16.4", "25.0", "50.0", "100.0", "333.3", "512.7", "1000.0"])
    def test_round_trip_within_tolerance(self, x):
        value = Decimal(x)
        assert abs(to_feet(to_meters(value)) - value) <= Decimal("0.1")

    def test_round_trip_error_is_bounded(self):
        """Half a tenth of a meter in feet, plus the final rounding."""
        for n in range(1, 1001):
            value = Decimal(n)
            assert abs(to_feet(to_meters(value)) - value) <= Decimal("0.22"), n

    def test_negative_raises(self):
        with pytest.raises(UnitConversionError):
            to_meters(Decimal("-1"))

    def test_non_decimal_raises(self):
        with pytest.raises(UnitConversionError):
            to_feet("12")

    def test_nan_raises(self):
        with pytest.raises(UnitConversionError):
            to_feet(Decimal("NaN"))

    def test_convert_value_same_unit(self):
        assert convert_value(Decimal("4.2"), Unit.METERS, Unit.METERS) == Decimal("4.2")


class TestParseUnit:
    """Test unit token recognition."""

    @pytest.mark.parametrize("token", ["ft", "FT", "feet", "Feet", " foot "])
    def test_feet_tokens(self, token):
        assert parse_unit(token) == Unit.FEET

    @pytest.mark.parametrize("token", ["m", "M", "meters", "Metres", "meter"])
    def test_meter_tokens(self, token):
        assert parse_unit(token) == Unit.METERS

    @pytest.mark.parametrize("token", ["yd", "cm", "", None, 3, ["ft"]])
    def test_unrecognized(self, token):
        assert parse_unit(token) is None


# =============================================================================
# Collection Conversion
# =============================================================================


class TestCollectionConversion:
    """Test atomic conversion of every room."""

    def test_same_unit_is_noop(self, feet_collection):
        assert convert_collection_unit(feet_collection, Unit.FEET) is False
        assert feet_collection.rooms[0].length == Decimal("12.5")

    def test_converts_all_rooms(self, feet_collection):
        assert convert_collection_unit(feet_collection, Unit.METERS) is True

        assert feet_collection.unit == Unit.METERS
        assert all(r.unit == Unit.METERS for r in feet_collection.rooms)
        assert feet_collection.rooms[0].length == Decimal("3.8")
        assert feet_collection.rooms[0].width == Decimal("3.7")
        assert feet_collection.rooms[1].length == Decimal("6.1")
        assert feet_collection.rooms[1].width is None

    def test_round_trip(self, feet_collection):
        originals = [(r.length, r.width) for r in feet_collection.rooms]

        convert_collection_unit(feet_collection, Unit.METERS)
        convert_collection_unit(feet_collection, Unit.FEET)

        assert feet_collection.unit == Unit.FEET
        assert all(r.unit == Unit.FEET for r in feet_collection.rooms)
        for room, (length, width) in zip(feet_collection.rooms, originals):
            for after, before in ((room.length, length), (room.width, width)):
                if before is None:
                    assert after is None
                else:
                    assert abs(after - before) <= Decimal("0.1")

    def test_accepts_unit_string(self, feet_collection):
        assert convert_collection_unit(feet_collection, "m") is True
        assert feet_collection.unit == Unit.METERS

    def test_failure_leaves_collection_unchanged(self, feet_collection):
        # Bypass the normalizer to plant a value that cannot convert
        feet_collection.rooms[1].width = Decimal("-3")
        before = [(r.length, r.width, r.unit) for r in feet_collection.rooms]

        with pytest.raises(ConversionAbort) as exc_info:
            convert_collection_unit(feet_collection, Unit.METERS)

        assert exc_info.value.details["index"] == "1"
        assert feet_collection.unit == Unit.FEET
        assert [(r.length, r.width, r.unit) for r in feet_collection.rooms] == before

    def test_notifies_listeners_once(self, feet_collection):
        calls = []
        feet_collection.subscribe(lambda c: calls.append(c.unit))

        convert_collection_unit(feet_collection, Unit.METERS)

        assert calls == [Unit.METERS]


class TestRoundTripRestore:
    """Converting back restores unedited dimensions exactly."""

    @pytest.mark.parametrize("x", ["10", "11", "31", "32", "52", "73", "0.5", "999.9"])
    def test_ft_m_ft_is_exact(self, x):
        value = Decimal(x)
        rooms = RoomCollection(unit=Unit.FEET, rooms=[Room(name="A", length=value, width=value)])

        convert_collection_unit(rooms, Unit.METERS)
        convert_collection_unit(rooms, Unit.FEET)

        assert rooms.rooms[0].length == value
        assert rooms.rooms[0].width == value

    def test_every_integer_up_to_1000(self):
        values = [Decimal(n) for n in range(1, 1001)]
        rooms = RoomCollection(
            unit=Unit.FEET,
            rooms=[Room(name=str(v), length=v, width=None) for v in values],
        )

        convert_collection_unit(rooms, Unit.METERS)
        convert_collection_unit(rooms, Unit.FEET)

        assert [r.length for r in rooms.rooms] == values

    def test_m_ft_m_is_exact(self):
        rooms = RoomCollection(unit=Unit.METERS, rooms=[Room(name="A", length=Decimal("3.3"), unit=Unit.METERS)])

        convert_collection_unit(rooms, Unit.FEET)
        assert rooms.rooms[0].length == Decimal("10.8")
        convert_collection_unit(rooms, Unit.METERS)

        assert rooms.rooms[0].length == Decimal("3.3")

    def test_repeated_round_trips_do_not_drift(self):
        rooms = RoomCollection(unit=Unit.FEET, rooms=[Room(name="A", length=Decimal("10.0"))])

        for _ in range(5):
            convert_collection_unit(rooms, Unit.METERS)
            assert rooms.rooms[0].length == Decimal("3.0")
            convert_collection_unit(rooms, Unit.FEET)
            assert rooms.rooms[0].length == Decimal("10.0")

    def test_edited_dimension_is_converted(self):
        rooms = RoomCollection(unit=Unit.FEET, rooms=[Room(name="A", length=Decimal("10.0"), width=Decimal("10.0"))])
        convert_collection_unit(rooms, Unit.METERS)

        rooms.update(0, "width", "3.0")
        convert_collection_unit(rooms, Unit.FEET)

        assert rooms.rooms[0].length == Decimal("10.0")
        assert rooms.rooms[0].width == Decimal("9.8")

    def test_replaced_rooms_have_no_origins(self):
        rooms = RoomCollection(unit=Unit.FEET, rooms=[Room(name="A", length=Decimal("10.0"))])
        convert_collection_unit(rooms, Unit.METERS)

        rooms.replace_all([RoomInput(name="B", length="3.0")])
        convert_collection_unit(rooms, Unit.FEET)

        assert rooms.rooms[0].length == Decimal("9.8")

    def test_aborted_conversion_keeps_origins(self, feet_collection):
        convert_collection_unit(feet_collection, Unit.METERS)
        feet_collection.rooms[1].width = Decimal("-1")

        with pytest.raises(ConversionAbort):
            convert_collection_unit(feet_collection, Unit.FEET)

        assert feet_collection.rooms[0].origins["length"] == (Unit.FEET, Decimal("12.5"))
