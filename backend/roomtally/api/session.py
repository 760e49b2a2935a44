"""
Room Session API routes.

Exposes the editing session to the presentation layer: room edits, sorting,
unit conversion, payload/image ingestion, submission and export.
Every mutating endpoint returns the full session state so the client never
has to patch derived figures itself.
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..core.exceptions import ConversionAbort, SubmissionNotReadyError, TransportError
from ..services.room_export import export_rooms_to_csv, export_rooms_to_excel
from ..services.room_store import RoomField
from ..services.session import RoomSession
from ..services.unit_conversion import Unit

router = APIRouter(prefix="/session", tags=["session"])


def get_session(request: Request) -> RoomSession:
    """The session owned by the running application."""
    return request.app.state.session


# =============================================================================
# Request/Response Models
# =============================================================================


class RoomResponse(BaseModel):
    """A single room with its presentation status."""
    name: str
    length: Optional[float] = None
    width: Optional[float] = None
    unit: str
    status: str


class DerivedStateResponse(BaseModel):
    """Aggregates recomputed after every mutation."""
    total_area: float
    submission_ready: bool
    statuses: List[str]
    room_count: int


class ArtifactResponse(BaseModel):
    """Dimensions of one analysis artifact."""
    height: Optional[float] = None
    width: Optional[float] = None
    depth: Optional[float] = None


class AnalysisResponse(BaseModel):
    """Latest analysis result."""
    door_count: Optional[int] = None
    artifacts: Dict[str, ArtifactResponse] = Field(default_factory=dict)


class NoticeResponse(BaseModel):
    """A user-visible notice."""
    level: str
    message: str
    created_at: str


class AttachmentResponse(BaseModel):
    """A file referenced by the session."""
    file_id: str
    filename: str
    content_type: str
    size_bytes: int


class SessionStateResponse(BaseModel):
    """Complete session state."""
    unit: str
    sort_ascending: Optional[bool] = None
    rooms: List[RoomResponse]
    derived: DerivedStateResponse
    analysis: Optional[AnalysisResponse] = None
    ingest_status: str
    notices: List[NoticeResponse]
    attachments: List[AttachmentResponse]


class ExchangeResponse(BaseModel):
    """Outcome of a network exchange plus the resulting session state."""
    purpose: str
    outcome: str
    status_code: Optional[int] = None
    error: Optional[str] = None
    notice: Optional[str] = None
    session: SessionStateResponse


class RoomUpdateRequest(BaseModel):
    """Set one field of one room."""
    field: RoomField = Field(..., description="name, length or width")
    value: Union[str, float, None] = Field(
        None, description="New value; dimensions accept text such as 12'6\""
    )


class ReorderRequest(BaseModel):
    """New order as a permutation of current indices."""
    order: List[int]


class SortRequest(BaseModel):
    """Sort direction; omit to toggle."""
    ascending: Optional[bool] = None


class UnitRequest(BaseModel):
    """Target unit for converting every room."""
    unit: Unit


def _state(session: RoomSession) -> SessionStateResponse:
    return SessionStateResponse(**session.snapshot())


# =============================================================================
# Session Endpoints
# =============================================================================


@router.get("", response_model=SessionStateResponse)
async def get_state(session: RoomSession = Depends(get_session)):
    """Return the current rooms, derived state, analysis and notices."""
    return _state(session)


@router.delete("", response_model=SessionStateResponse)
async def reset_session(session: RoomSession = Depends(get_session)):
    """Full-session reset."""
    session.reset()
    return _state(session)


# =============================================================================
# Room Endpoints
# =============================================================================


@router.post("/rooms", response_model=SessionStateResponse)
async def add_room(session: RoomSession = Depends(get_session)):
    """Append a blank room in the current unit."""
    session.collection.add()
    return _state(session)


@router.patch("/rooms/{index}", response_model=SessionStateResponse)
async def update_room(
    index: int,
    request: RoomUpdateRequest,
    session: RoomSession = Depends(get_session),
):
    """
    Update one field of a room.

    Dimensions are normalized: text like `12'6"` becomes 12.5, and values
    that round to zero are stored as missing.
    """
    if not session.collection.update(index, request.field, request.value):
        raise HTTPException(status_code=404, detail=f"No room at index {index}")
    return _state(session)


@router.delete("/rooms/{index}", response_model=SessionStateResponse)
async def remove_room(index: int, session: RoomSession = Depends(get_session)):
    """Remove a room."""
    if not session.collection.remove(index):
        raise HTTPException(status_code=404, detail=f"No room at index {index}")
    return _state(session)


@router.post("/rooms/reorder", response_model=SessionStateResponse)
async def reorder_rooms(request: ReorderRequest, session: RoomSession = Depends(get_session)):
    """Reorder rooms; the order must be a permutation of current indices."""
    if not session.collection.reorder(request.order):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid order: {request.order}. Expected a permutation of 0..{len(session.collection) - 1}.",
        )
    return _state(session)


@router.post("/rooms/sort", response_model=SessionStateResponse)
async def sort_rooms(
    request: Optional[SortRequest] = None,
    session: RoomSession = Depends(get_session),
):
    """Sort rooms by name; unnamed rooms stay last. Omit the body to toggle."""
    if request is None or request.ascending is None:
        session.collection.toggle_sort()
    else:
        session.collection.sort_alphabetical(request.ascending)
    return _state(session)


@router.post("/unit", response_model=SessionStateResponse)
async def convert_unit(request: UnitRequest, session: RoomSession = Depends(get_session)):
    """Convert every room to the requested unit (all or nothing)."""
    try:
        session.collection.convert_unit(request.unit)
    except ConversionAbort as e:
        raise HTTPException(status_code=409, detail=e.message)
    return _state(session)


# =============================================================================
# Ingestion / Submission Endpoints
# =============================================================================


@router.post("/ingest", response_model=SessionStateResponse)
async def ingest_payload(
    payload: Any = Body(..., description="Room data of any JSON shape"),
    session: RoomSession = Depends(get_session),
):
    """
    Replace the rooms with those found in a JSON payload.

    **Recognized shapes (first match wins):** a top-level list, or an object
    whose `rooms`, `data`, `result` or `output` field is a list.
    Unrecognized payloads leave the rooms unchanged and set
    `ingest_status` to `unrecognized`.
    """
    session.ingest_payload(payload)
    return _state(session)


@router.post("/ingest/image", response_model=ExchangeResponse)
async def ingest_image(
    file: UploadFile = File(..., description="Floor plan or sketch image"),
    session: RoomSession = Depends(get_session),
):
    """Forward an image to the extraction service and ingest its rooms."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail=f"File is empty: {file.filename}")

    try:
        result = await session.ingest_image(
            filename=file.filename,
            content=content,
            content_type=file.content_type or "application/octet-stream",
        )
    except TransportError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return ExchangeResponse(**result.to_dict(), session=_state(session))


@router.post("/submit", response_model=ExchangeResponse)
async def submit_rooms(session: RoomSession = Depends(get_session)):
    """Submit the rooms for analysis."""
    try:
        result = await session.submit()
    except SubmissionNotReadyError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except TransportError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return ExchangeResponse(**result.to_dict(), session=_state(session))


# =============================================================================
# Export Endpoint
# =============================================================================


@router.get("/export")
async def export_rooms(
    format: str = Query("xlsx", description="xlsx or csv"),
    language: Optional[str] = Query(None, description="en or de"),
    session: RoomSession = Depends(get_session),
):
    """Download the room table with totals."""
    language = language or session.settings.export_language
    if format == "xlsx":
        result = export_rooms_to_excel(session.snapshot(), language=language)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    elif format == "csv":
        result = export_rooms_to_csv(session.snapshot(), language=language)
        media_type = "text/csv"
    else:
        raise HTTPException(status_code=400, detail=f"Invalid format: {format}. Use: xlsx or csv.")

    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)

    return StreamingResponse(
        iter([result.file_bytes]),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
