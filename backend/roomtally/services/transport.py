"""
Transport - outbound exchanges with the extraction and analysis services.

Each exchange is one POST bounded by a fixed timeout; a degraded resend
shares that deadline. Outcomes:
- payload:    2xx response with a decodable body
- opaque:     request sent, outcome unknown (undecodable body, or degraded
              mode after the origin refused the primary exchange)
- failed:     transport error or error status
- timed_out:  no response within the timeout; the request is cancelled
- superseded: a newer exchange of the same purpose replaced this one

Only one exchange per purpose is in flight at a time.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import logging

import httpx

from ..core.config import Settings, get_settings
from .payload_resolver import load_payload

logger = logging.getLogger(__name__)


class ExchangePurpose(str, Enum):
    """What an outbound exchange is for."""
    INGEST = "ingest"      # Upload an image, receive extracted rooms
    ANALYSIS = "analysis"  # Submit finalized rooms, receive analysis


class ExchangeOutcome(str, Enum):
    """How an outbound exchange ended."""
    PAYLOAD = "payload"
    OPAQUE = "opaque"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SUPERSEDED = "superseded"


@dataclass
class ExchangeResult:
    """Result of one outbound exchange."""
    purpose: ExchangePurpose
    outcome: ExchangeOutcome
    payload: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def notice(self) -> Optional[str]:
        """User-visible notice for this outcome, if any."""
        label = "Image upload" if self.purpose == ExchangePurpose.INGEST else "Submission"
        if self.outcome == ExchangeOutcome.OPAQUE:
            return f"{label} sent; the response could not be read, outcome unknown."
        if self.outcome == ExchangeOutcome.TIMED_OUT:
            return f"{label} timed out. Your rooms are unchanged."
        if self.outcome == ExchangeOutcome.FAILED:
            detail = f" ({self.error})" if self.error else ""
            return f"{label} failed{detail}. Your rooms are unchanged."
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "purpose": self.purpose.value,
            "outcome": self.outcome.value,
            "status_code": self.status_code,
            "error": self.error,
            "notice": self.notice,
        }


class ExchangeClient:
    """
    Async HTTP collaborator with per-purpose supersede semantics.

    Args:
        settings: Endpoint, timeout and degraded-mode configuration
        client: Optional pre-built httpx.AsyncClient (not closed by aclose)
        endpoints: Explicit endpoint overrides keyed by purpose
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        endpoints: Optional[Dict[str, str]] = None,
    ):
        self.settings = settings or get_settings()
        self.endpoints = dict(endpoints or {})
        self._client = client
        self._owns_client = client is None
        self._pending: Dict[ExchangePurpose, "asyncio.Task[ExchangeResult]"] = {}

    @property
    def timeout(self) -> float:
        return self.settings.request_timeout_s

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def endpoint_for(self, purpose: ExchangePurpose, override: Optional[str] = None) -> str:
        return self.settings.endpoint_for(
            purpose.value, override or self.endpoints.get(purpose.value)
        )

    def is_pending(self, purpose: ExchangePurpose) -> bool:
        task = self._pending.get(purpose)
        return task is not None and not task.done()

    async def send(
        self,
        purpose: ExchangePurpose,
        *,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        endpoint: Optional[str] = None,
    ) -> ExchangeResult:
        """
        Run one exchange, cancelling any pending exchange of the same purpose.

        Raises:
            TransportError: No endpoint configured for the purpose; nothing
                is sent and a pending exchange is left running
        """
        purpose = ExchangePurpose(purpose)
        url = self.endpoint_for(purpose, endpoint)

        previous = self._pending.get(purpose)
        if previous is not None and not previous.done():
            logger.info(f"Superseding pending {purpose.value} exchange")
            previous.cancel()

        task = asyncio.ensure_future(self._exchange(purpose, url, json=json, files=files))
        self._pending[purpose] = task
        try:
            return await task
        except asyncio.CancelledError:
            # Cancelled by a newer exchange rather than by our own caller
            if task.cancelled() and self._pending.get(purpose) is not task:
                return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.SUPERSEDED)
            raise
        finally:
            if self._pending.get(purpose) is task:
                del self._pending[purpose]

    async def _exchange(
        self,
        purpose: ExchangePurpose,
        url: str,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> ExchangeResult:
        client = self._get_client()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        try:
            response = await asyncio.wait_for(
                client.post(url, json=json, files=files),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"{purpose.value} exchange timed out after {self.timeout}s")
            return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.TIMED_OUT)
        except httpx.HTTPError as e:
            logger.warning(f"{purpose.value} exchange failed: {e}")
            return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.FAILED, error=str(e))

        if response.status_code in self.settings.degraded_status_codes:
            logger.warning(
                f"{purpose.value} exchange refused with {response.status_code}; "
                "re-sending in degraded mode"
            )
            remaining = deadline - loop.time()
            if remaining <= 0:
                return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.TIMED_OUT)
            return await self._send_degraded(
                purpose, url, remaining, json=json, files=files
            )

        if response.is_error:
            return ExchangeResult(
                purpose=purpose,
                outcome=ExchangeOutcome.FAILED,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        payload = load_payload(response.content)
        if payload is None:
            return ExchangeResult(
                purpose=purpose,
                outcome=ExchangeOutcome.OPAQUE,
                status_code=response.status_code,
            )
        return ExchangeResult(
            purpose=purpose,
            outcome=ExchangeOutcome.PAYLOAD,
            payload=payload,
            status_code=response.status_code,
        )

    async def _send_degraded(
        self,
        purpose: ExchangePurpose,
        url: str,
        timeout: float,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> ExchangeResult:
        """
        Re-send without ever reading the response body, within what is left
        of the exchange's timeout.
        """
        client = self._get_client()

        async def fire() -> None:
            async with client.stream("POST", url, json=json, files=files):
                pass

        try:
            await asyncio.wait_for(fire(), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.TIMED_OUT)
        except httpx.HTTPError as e:
            return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.FAILED, error=str(e))
        return ExchangeResult(purpose=purpose, outcome=ExchangeOutcome.OPAQUE)

    async def aclose(self) -> None:
        """Cancel pending exchanges and close the owned HTTP client."""
        for task in self._pending.values():
            if not task.done():
                task.cancel()
        self._pending.clear()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
