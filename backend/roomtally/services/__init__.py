"""
Room Data Services Package

The normalization and state-reconciliation pipeline:
- measurement: length parsing and the zero-is-absence rule
- unit_conversion: feet/meters conversion, atomic for whole collections
- payload_resolver: shape-tolerant room and analysis payload resolution
- room_store: the canonical room collection and its mutations
- derived_state: totals, per-room status and submission readiness
- transport / session: network exchanges and the owning editing session
"""

from roomtally.services.derived_state import DerivedState, RoomStatus, compute_totals, room_status
from roomtally.services.measurement import parse_length
from roomtally.services.payload_resolver import AnalysisResult, derive_rooms, resolve_analysis
from roomtally.services.room_store import Room, RoomCollection, RoomInput
from roomtally.services.session import RoomSession
from roomtally.services.unit_conversion import Unit, convert_collection_unit, to_feet, to_meters

__all__ = [
    "AnalysisResult",
    "DerivedState",
    "Room",
    "RoomCollection",
    "RoomInput",
    "RoomSession",
    "RoomStatus",
    "Unit",
    "compute_totals",
    "convert_collection_unit",
    "derive_rooms",
    "parse_length",
    "resolve_analysis",
    "room_status",
    "to_feet",
    "to_meters",
]
