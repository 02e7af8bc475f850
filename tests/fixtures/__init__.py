"""Test doubles and document builders shared across the suite."""

from typing import Any, Dict, List, Optional, Tuple

from docrelay.protocols import SubscribeCommand, now_ms


class RecordingChannel:
    """DeliveryChannelProtocol double that records instead of sending."""

    def __init__(self) -> None:
        self.deliveries: List[Tuple[str, Any]] = []

    def deliver(self, url: str, payload: Any) -> None:
        self.deliveries.append((url, payload))

    def to(self, url: str) -> List[Any]:
        """Payloads delivered to ``url``, in order."""
        return [payload for target, payload in self.deliveries if target == url]

    def clear(self) -> None:
        self.deliveries.clear()


def subscribe_document(webhook: str, schema_type: str, token: str = "", **params: Any) -> Dict[str, Any]:
    """Wire-shaped subscribe command document."""
    return {
        "schemaType": "command",
        "command": "subscribe",
        "params": {"webhook": webhook, "schemaType": schema_type, **params},
        "token": token,
        "timestamp": now_ms(),
    }


def command_document(command: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "schemaType": "command",
        "command": command,
        "params": params or {},
        "token": "",
        "timestamp": now_ms(),
    }


def make_subscription(webhook: str, schema_type: str, **params: Any) -> SubscribeCommand:
    return SubscribeCommand(
        params={"webhook": webhook, "schemaType": schema_type, **params},
        timestamp=now_ms(),
    )


def form(id: int, status: str, **fields: Any) -> Dict[str, Any]:
    return {"schemaType": "form", "id": id, "status": status, **fields}


__all__ = [
    "RecordingChannel",
    "command_document",
    "form",
    "make_subscription",
    "subscribe_document",
]
