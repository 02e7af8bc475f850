"""HTTP delivery channel for relayed documents.

Posts JSON batches to webhook URLs with httpx. Delivery is fire-and-forget
from the caller's point of view: ``deliver`` schedules the POST on the
running event loop and returns immediately. Failures (network errors,
non-2xx responses, timeouts) are logged and recorded, never raised.

There is no retry and no backoff: a failed delivery is simply lost.

Usage:
    channel = HttpDeliveryChannel(timeout_seconds=10.0)
    channel.deliver("https://peer.example.com/form", [{"schemaType": "form"}])
    ...
    await channel.drain()
    await channel.close()
"""

import asyncio
import json
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Set

import httpx

from docrelay.logging import get_component_logger
from docrelay.protocols import LoggerProtocol

JSON_HEADERS = {"content-type": "application/json"}


def _encode(payload: Any) -> str:
    return json.dumps(payload, default=str)


def _count(payload: Any) -> int:
    return len(payload) if isinstance(payload, list) else 1


class DeliveryStatus(str, Enum):
    """Delivery outcome."""
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """Result of one delivery attempt."""
    url: str
    status: DeliveryStatus
    documents: int
    response_status: Optional[int] = None
    error: Optional[str] = None
    delivered_at: Optional[datetime] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status.value,
            "documents": self.documents,
            "response_status": self.response_status,
            "error": self.error,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "duration_ms": self.duration_ms,
        }


class HttpDeliveryChannel:
    """DeliveryChannelProtocol implementation over httpx.AsyncClient."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 30.0,
        history_size: int = 100,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize channel.

        Args:
            client: Shared client; created lazily (and owned) if None
            timeout_seconds: Per-request timeout for an owned client
            history_size: Number of recent DeliveryResults kept
            logger: Optional logger
        """
        self._client = client
        self._owns_client = client is None
        self._timeout_seconds = timeout_seconds
        self._pending: Set[asyncio.Task] = set()
        self._results: Deque[DeliveryResult] = deque(maxlen=history_size)
        self._logger = get_component_logger("HttpDeliveryChannel", logger)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._client

    def deliver(self, url: str, payload: Any) -> Optional["asyncio.Task[DeliveryResult]"]:
        """Schedule a POST of ``payload`` to ``url`` without waiting for it.

        The body is encoded before returning, so later changes to the
        payload objects are not sent.

        Returns:
            The delivery task (awaiting it never raises), or None when no
            event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.warning("delivery_no_event_loop", url=url)
            return None

        task = loop.create_task(self._send(url, _encode(payload), _count(payload)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def post(self, url: str, payload: Any) -> DeliveryResult:
        """POST ``payload`` as JSON and record the outcome."""
        return await self._send(url, _encode(payload), _count(payload))

    async def _send(self, url: str, body: str, count: int) -> DeliveryResult:
        start_time = time.time()

        try:
            response = await self._get_client().post(
                url,
                content=body,
                headers=JSON_HEADERS,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            result = DeliveryResult(
                url=url,
                status=DeliveryStatus.FAILED,
                documents=count,
                response_status=e.response.status_code,
                error=str(e),
            )
        except Exception as e:
            result = DeliveryResult(
                url=url,
                status=DeliveryStatus.FAILED,
                documents=count,
                error=f"{type(e).__name__}: {e}",
            )
        else:
            result = DeliveryResult(
                url=url,
                status=DeliveryStatus.DELIVERED,
                documents=count,
                response_status=response.status_code,
                delivered_at=datetime.now(timezone.utc),
            )

        result.duration_ms = (time.time() - start_time) * 1000
        self._results.append(result)

        if result.ok:
            self._logger.debug(
                "delivery_succeeded",
                url=url,
                documents=count,
                response_status=result.response_status,
            )
        else:
            self._logger.warning(
                "delivery_failed",
                url=url,
                documents=count,
                response_status=result.response_status,
                error=result.error,
            )
        return result

    def get_delivery_results(self, limit: int = 100) -> List[DeliveryResult]:
        """Most recent delivery results, oldest first."""
        if limit <= 0:
            return []
        return list(self._results)[-limit:]

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Finish in-flight deliveries and close an owned client."""
        await self.drain()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = [
    "DeliveryResult",
    "DeliveryStatus",
    "HttpDeliveryChannel",
    "JSON_HEADERS",
]
