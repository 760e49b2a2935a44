"""
Payload Shape Resolver - tolerant extraction of rooms from external payloads.

The extraction service returns JSON of no fixed shape. Resolution walks an
ordered list of shape matchers and stops at the first one that yields a room
list:

1. sequence - the payload itself is a list
2. rooms    - payload["rooms"] is a list
3. data     - payload["data"] is a list
4. result   - payload["result"] is a list
5. output   - payload["output"] is a list

Nothing matched means "not recognized": an empty room list with
recognized=False, never an exception.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

import json5  # Lenient JSON parser for LLM-style service output

from .measurement import parse_length
from .room_store import RoomInput
from .unit_conversion import Unit, parse_unit

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class ResolvedPayload:
    """Canonical room entries and the inferred unit of a payload."""
    rooms: List[RoomInput]
    unit: Optional[Unit]
    recognized: bool
    shape: Optional[str] = None


@dataclass
class ArtifactDimensions:
    """Dimensions of one analysis artifact; missing values are None."""
    height: Optional[Decimal] = None
    width: Optional[Decimal] = None
    depth: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "height": float(self.height) if self.height is not None else None,
            "width": float(self.width) if self.width is not None else None,
            "depth": float(self.depth) if self.depth is not None else None,
        }


@dataclass
class AnalysisResult:
    """
    Result of submitting rooms for analysis.

    Artifacts are keyed by room name as an external reference; renaming or
    removing a room does not touch them.
    """
    door_count: Optional[int] = None
    artifacts: Dict[str, ArtifactDimensions] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "door_count": self.door_count,
            "artifacts": {name: dims.to_dict() for name, dims in self.artifacts.items()},
        }


# =============================================================================
# SHAPE MATCHERS
# =============================================================================

ShapeMatcher = Tuple[str, Callable[[Any], Optional[List[Any]]]]

ROOM_LIST_KEYS = ("rooms", "data", "result", "output")
UNIT_KEYS = ("unit", "units")
NAME_KEYS = ("room", "name")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _match_sequence(payload: Any) -> Optional[List[Any]]:
    return list(payload) if _is_sequence(payload) else None


def _match_key(key: str) -> Callable[[Any], Optional[List[Any]]]:
    def matcher(payload: Any) -> Optional[List[Any]]:
        if isinstance(payload, dict) and _is_sequence(payload.get(key)):
            return list(payload[key])
        return None
    return matcher


# Resolution order is part of the ingestion contract
SHAPE_MATCHERS: Tuple[ShapeMatcher, ...] = (
    ("sequence", _match_sequence),
) + tuple((key, _match_key(key)) for key in ROOM_LIST_KEYS)


# =============================================================================
# RESOLUTION
# =============================================================================

def _first_present(item: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def _unit_of(mapping: Any) -> Optional[Unit]:
    if not isinstance(mapping, dict):
        return None
    return parse_unit(_first_present(mapping, UNIT_KEYS))


def infer_unit(payload: Any, items: List[Any]) -> Optional[Unit]:
    """Top-level unit first, then the first item carrying a recognized unit."""
    unit = _unit_of(payload)
    if unit is not None:
        return unit
    for item in items:
        unit = _unit_of(item)
        if unit is not None:
            return unit
    return None


def _room_input(item: Dict[str, Any]) -> RoomInput:
    name = _first_present(item, NAME_KEYS)
    return RoomInput(
        name="" if name is None else str(name),
        length=parse_length(item.get("length")),
        width=parse_length(item.get("width")),
    )


def derive_rooms(payload: Any) -> ResolvedPayload:
    """
    Extract canonical room entries and a unit from an arbitrary payload.

    Args:
        payload: Decoded JSON-like value (dict, list or anything else)

    Returns:
        ResolvedPayload; recognized=False when no shape matched
    """
    for shape, matcher in SHAPE_MATCHERS:
        items = matcher(payload)
        if items is None:
            continue

        rooms = []
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                logger.debug(f"Skipping non-object room entry at {position}: {item!r}")
                continue
            rooms.append(_room_input(item))

        unit = infer_unit(payload, items)
        logger.info(
            f"Resolved {len(rooms)} rooms from '{shape}' shape "
            f"(unit={unit.value if unit else 'unknown'})"
        )
        return ResolvedPayload(rooms=rooms, unit=unit, recognized=True, shape=shape)

    logger.warning(f"Payload shape not recognized: {type(payload).__name__}")
    return ResolvedPayload(rooms=[], unit=None, recognized=False)


def load_payload(raw: Union[str, bytes, None]) -> Any:
    """
    Decode a response body; strict JSON first, then json5.

    Returns None when the body is empty or cannot be decoded.
    """
    if raw is None:
        return None
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            return None
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        logger.warning("Using json5 lenient parser for response body")
        return json5.loads(raw)
    except ValueError:
        return None


# =============================================================================
# ANALYSIS RESULTS
# =============================================================================

DOOR_COUNT_KEYS = ("doorCount", "door_count", "doors")
ANALYSIS_KEYS = DOOR_COUNT_KEYS + ("artifacts",)
ANALYSIS_WRAPPER_KEYS = ("result", "data", "output")


def _door_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if _is_sequence(value):
        return len(value)
    try:
        count = int(Decimal(str(value).strip()))
    except (ArithmeticError, ValueError):
        return None
    return count if count >= 0 else None


def _artifact_dimensions(value: Any) -> ArtifactDimensions:
    if not isinstance(value, dict):
        return ArtifactDimensions()
    return ArtifactDimensions(
        height=parse_length(value.get("height")),
        width=parse_length(value.get("width")),
        depth=parse_length(value.get("depth")),
    )


def _artifacts(value: Any) -> Dict[str, ArtifactDimensions]:
    artifacts: Dict[str, ArtifactDimensions] = {}
    if isinstance(value, dict):
        for name, dims in value.items():
            artifacts[str(name)] = _artifact_dimensions(dims)
    elif _is_sequence(value):
        for item in value:
            if not isinstance(item, dict):
                continue
            name = _first_present(item, ("name", "room"))
            if name is None:
                continue
            artifacts[str(name)] = _artifact_dimensions(item)
    return artifacts


def resolve_analysis(payload: Any) -> AnalysisResult:
    """
    Shape-tolerant resolution of an analysis payload.

    Missing fields default to absent; unknown shapes give an empty result.
    """
    body = payload
    if isinstance(body, dict) and not any(k in body for k in ANALYSIS_KEYS):
        for key in ANALYSIS_WRAPPER_KEYS:
            if isinstance(body.get(key), dict):
                body = body[key]
                break
    if not isinstance(body, dict):
        return AnalysisResult()

    return AnalysisResult(
        door_count=_door_count(_first_present(body, DOOR_COUNT_KEYS)),
        artifacts=_artifacts(body.get("artifacts")),
    )
