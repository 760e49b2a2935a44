"""
Unit tests for the Derived-State Engine.
"""

from decimal import Decimal

import pytest

from roomtally.services.derived_state import (
    RoomStatus,
    compute_totals,
    is_submission_ready,
    room_area,
    room_status,
    total_area,
)
from roomtally.services.room_store import Room, RoomCollection


def _rooms(*rows):
    """Build a collection from (name, length, width) tuples."""
    return RoomCollection(rooms=[
        Room(
            name=name,
            length=Decimal(str(length)) if length is not None else None,
            width=Decimal(str(width)) if width is not None else None,
        )
        for name, length, width in rows
    ])


class TestTotals:
    """Total area and per-room status."""

    def test_mixed_rooms(self):
        state = compute_totals(_rooms(("A", 10, 5), ("B", None, 3), ("C", None, None)))

        assert state.total_area == Decimal("50.0")
        assert state.statuses == [RoomStatus.AREA, RoomStatus.LINEAR, RoomStatus.EMPTY]
        assert state.room_count == 3

    def test_rounded_once_at_the_end(self):
        """3 x 0.05 per room would round to 0.1 each (0.3); the sum is 0.2."""
        collection = _rooms(("A", "0.5", "0.1"), ("B", "0.5", "0.1"), ("C", "0.5", "0.1"))
        assert total_area(collection) == Decimal("0.2")

    def test_empty_collection(self):
        state = compute_totals(RoomCollection())
        assert state.total_area == Decimal("0.0")
        assert state.statuses == []

    def test_room_area(self):
        assert room_area(Room(length=Decimal("2.5"), width=Decimal("4.0"))) == Decimal("10.00")
        assert room_area(Room(length=Decimal("2.5"))) is None

    @pytest.mark.parametrize("length,width,expected", [
        (Decimal("1.0"), Decimal("1.0"), RoomStatus.AREA),
        (Decimal("1.0"), None, RoomStatus.LINEAR),
        (None, Decimal("1.0"), RoomStatus.LINEAR),
        (None, None, RoomStatus.EMPTY),
    ])
    def test_room_status(self, length, width, expected):
        assert room_status(Room(length=length, width=width)) == expected

    def test_to_dict(self):
        state = compute_totals(_rooms(("A", 3, 4)))
        assert state.to_dict() == {
            "total_area": 12.0,
            "submission_ready": True,
            "statuses": ["area"],
            "room_count": 1,
        }


class TestSubmissionReady:
    """Readiness needs one named room with a known dimension."""

    def test_empty_collection(self):
        assert is_submission_ready(RoomCollection()) is False

    def test_name_without_dimensions(self):
        assert is_submission_ready(_rooms(("Kitchen", None, None))) is False

    def test_name_with_one_dimension(self):
        assert is_submission_ready(_rooms(("Kitchen", None, 4))) is True

    def test_dimension_without_name(self):
        assert is_submission_ready(_rooms(("", 10, 12))) is False

    def test_whitespace_name_counts_as_empty(self):
        assert is_submission_ready(_rooms(("   ", 10, 12))) is False

    def test_name_and_dimension_must_share_a_room(self):
        assert is_submission_ready(_rooms(("Kitchen", None, None), ("", 10, 12))) is False

    def test_one_ready_room_is_enough(self):
        assert is_submission_ready(_rooms(("Kitchen", None, None), ("Hall", 3, None))) is True
