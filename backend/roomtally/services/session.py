"""
Room Session - the explicitly-owned, single-writer editing session.

Wires the RoomCollection to the Derived-State Engine (recomputed after every
mutation), the Payload Shape Resolver and the transport. In-memory rooms are
never lost because of a transport problem; failures become notices.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from ..core.config import Settings, get_settings
from ..core.exceptions import SubmissionNotReadyError
from .derived_state import DerivedState, compute_totals
from .payload_resolver import AnalysisResult, ResolvedPayload, derive_rooms, resolve_analysis
from .room_store import RoomCollection
from .transport import ExchangeClient, ExchangeOutcome, ExchangePurpose, ExchangeResult
from .unit_conversion import Unit, parse_unit

logger = logging.getLogger(__name__)


class IngestStatus(str, Enum):
    """State of the latest ingestion, for the presentation layer."""
    IDLE = "idle"
    LOADED = "loaded"
    UNRECOGNIZED = "unrecognized"
    SENT_UNKNOWN = "sent_unknown"
    FAILED = "failed"


@dataclass
class Notice:
    """A user-visible message."""
    level: str  # "info", "warning", "error"
    message: str
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level, "message": self.message, "created_at": self.created_at}


@dataclass
class FileReference:
    """A file handed to the transport, referenced again at submission."""
    file_id: str
    filename: str
    content_type: str
    size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "filename": self.filename,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
        }


class RoomSession:
    """
    One editing session: rooms, derived state, analysis and notices.

    All mutations are synchronous and complete before the next event is
    handled; only the two transport exchanges suspend.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[ExchangeClient] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport or ExchangeClient(self.settings)
        self.collection = RoomCollection(unit=self.default_unit)
        self.collection.subscribe(self._recompute)
        self.derived: DerivedState = compute_totals(self.collection)
        self.analysis: Optional[AnalysisResult] = None
        self.ingest_status = IngestStatus.IDLE
        self.notices: List[Notice] = []
        self.attachments: List[FileReference] = []

    @property
    def default_unit(self) -> Unit:
        unit = parse_unit(self.settings.default_unit)
        if unit is None:
            logger.warning(
                f"Unknown default unit {self.settings.default_unit!r}, using feet"
            )
            return Unit.FEET
        return unit

    def _recompute(self, collection: RoomCollection) -> None:
        self.derived = compute_totals(collection)

    def notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def _notify_exchange(self, result: ExchangeResult) -> None:
        notice = result.notice
        if notice:
            level = "info" if result.outcome == ExchangeOutcome.OPAQUE else "error"
            self.notify(level, notice)

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def ingest_payload(self, payload: Any) -> ResolvedPayload:
        """
        Replace the rooms with those resolved from an external payload.

        An unrecognized payload leaves the current rooms untouched.
        """
        resolved = derive_rooms(payload)
        if not resolved.recognized:
            self.ingest_status = IngestStatus.UNRECOGNIZED
            self.notify("warning", "The returned data was not recognized. Your rooms are unchanged.")
            return resolved

        self.collection.replace_all(resolved.rooms, resolved.unit)
        self.ingest_status = IngestStatus.LOADED
        logger.info(
            f"Ingested {len(resolved.rooms)} rooms in {self.collection.unit.value}"
        )
        return resolved

    async def ingest_image(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> ExchangeResult:
        """
        Send an image to the extraction service and ingest its answer.

        Raises:
            TransportError: No ingest endpoint configured; nothing changes
        """
        result = await self.transport.send(
            ExchangePurpose.INGEST,
            files={"file": (filename, content, content_type)},
        )
        self.attachments.append(FileReference(
            file_id=f"file_{uuid4().hex[:12]}",
            filename=filename,
            content_type=content_type,
            size_bytes=len(content),
        ))
        if result.outcome == ExchangeOutcome.PAYLOAD:
            self.ingest_payload(result.payload)
        elif result.outcome == ExchangeOutcome.OPAQUE:
            self.ingest_status = IngestStatus.SENT_UNKNOWN
        elif result.outcome in (ExchangeOutcome.FAILED, ExchangeOutcome.TIMED_OUT):
            self.ingest_status = IngestStatus.FAILED
        self._notify_exchange(result)
        return result

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def build_submission(self) -> Dict[str, Any]:
        """Normalized submission payload for the analysis service."""
        return {
            "unit": self.collection.unit.value,
            "rooms": [
                {
                    "room": room.name.strip(),
                    "length": float(room.length) if room.length is not None else None,
                    "width": float(room.width) if room.width is not None else None,
                }
                for room in self.collection.rooms
            ],
            "total_area": float(self.derived.total_area),
            "files": [ref.to_dict() for ref in self.attachments],
            "metadata": {
                "app": self.settings.app_name,
                "version": self.settings.app_version,
                "submitted_at": datetime.now(timezone.utc).isoformat(),
            },
        }

    async def submit(self) -> ExchangeResult:
        """
        Submit the rooms for analysis.

        Raises:
            SubmissionNotReadyError: No named room with a known dimension
            TransportError: No analysis endpoint configured
        """
        if not self.derived.submission_ready:
            raise SubmissionNotReadyError(
                "Add a room name and at least one dimension before submitting"
            )

        result = await self.transport.send(
            ExchangePurpose.ANALYSIS,
            json=self.build_submission(),
        )
        if result.outcome == ExchangeOutcome.PAYLOAD:
            self.analysis = resolve_analysis(result.payload)
            logger.info(
                f"Analysis received: doors={self.analysis.door_count}, "
                f"artifacts={len(self.analysis.artifacts)}"
            )
        self._notify_exchange(result)
        return result

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Full-session reset back to an empty collection in the default unit."""
        self.collection.clear(self.default_unit)
        self.analysis = None
        self.ingest_status = IngestStatus.IDLE
        self.notices = []
        self.attachments = []

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the session for the presentation layer."""
        state = self.collection.to_dict()
        for entry, status in zip(state["rooms"], self.derived.statuses):
            entry["status"] = status.value
        return {
            **state,
            "derived": self.derived.to_dict(),
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "ingest_status": self.ingest_status.value,
            "notices": [n.to_dict() for n in self.notices],
            "attachments": [a.to_dict() for a in self.attachments],
        }

    async def aclose(self) -> None:
        await self.transport.aclose()
