"""Subscription Registry - webhook URL to its live subscription.

Invariant: at most one subscription per webhook. A new subscribe command
for a webhook replaces the stored one in place (last writer wins, no
merge), even when it targets a different schema type.

Subscriptions live until removed or until the configured expiry policy
reports them expired. Expired entries are purged lazily on read.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from docrelay.events import EVENT_SUBSCRIPTION, CommandBus
from docrelay.logging import get_component_logger
from docrelay.protocols import ExpiryPolicyProtocol, LoggerProtocol, SubscribeCommand


# =============================================================================
# EXPIRY POLICIES
# =============================================================================

class NeverExpire:
    """Subscriptions stay live for the process lifetime."""

    def is_expired(self, subscription: SubscribeCommand, registered_at: float, now: float) -> bool:
        return False


@dataclass
class TTLExpiry:
    """Subscriptions expire a fixed time after they were (re)registered.

    Subscribers are expected to re-send their subscribe command before the
    TTL runs out; each re-subscription restarts the clock.
    """
    ttl_seconds: float

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

    def is_expired(self, subscription: SubscribeCommand, registered_at: float, now: float) -> bool:
        return now - registered_at >= self.ttl_seconds


# =============================================================================
# REGISTRY
# =============================================================================

@dataclass
class _Entry:
    subscription: SubscribeCommand
    registered_at: float


class SubscriptionRegistry:
    """Thread-safe map from webhook URL to the subscription that claimed it."""

    def __init__(
        self,
        bus: Optional[CommandBus] = None,
        expiry_policy: Optional[ExpiryPolicyProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize registry.

        Args:
            bus: Receives a "subscription" event per upsert
            expiry_policy: Decides liveness, defaults to NeverExpire
            logger: Optional logger
            clock: Monotonic time source (injectable for tests)
        """
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.RLock()
        self._bus = bus
        self._expiry_policy = expiry_policy or NeverExpire()
        self._clock = clock
        self._logger = get_component_logger("SubscriptionRegistry", logger)

    def upsert(self, subscription: SubscribeCommand) -> Optional[SubscribeCommand]:
        """Store ``subscription`` under its webhook, replacing any previous one.

        The "subscription" event fires after the mutation is committed.

        Returns:
            The replaced subscription, if one was live
        """
        webhook = subscription.webhook
        with self._lock:
            previous = self._entries.get(webhook)
            self._entries[webhook] = _Entry(subscription, self._clock())

        self._logger.info(
            "subscription_registered",
            webhook=webhook,
            schema_type=subscription.target_schema_type,
            replaced=previous is not None,
        )

        if self._bus is not None:
            self._bus.emit(EVENT_SUBSCRIPTION, subscription)

        return previous.subscription if previous else None

    def remove(self, webhook: str) -> bool:
        """Remove the subscription for a webhook.

        Returns:
            True if a subscription was removed
        """
        with self._lock:
            removed = self._entries.pop(webhook, None)

        if removed is not None:
            self._logger.info(
                "subscription_removed",
                webhook=webhook,
                schema_type=removed.subscription.target_schema_type,
            )
        return removed is not None

    def get(self, webhook: str) -> Optional[SubscribeCommand]:
        self.purge_expired()
        with self._lock:
            entry = self._entries.get(webhook)
        return entry.subscription if entry else None

    def snapshot(self) -> Dict[str, SubscribeCommand]:
        """Copy of the live map, webhook -> subscription."""
        self.purge_expired()
        with self._lock:
            return {webhook: entry.subscription for webhook, entry in self._entries.items()}

    def for_schema_type(self, schema_type: str) -> List[SubscribeCommand]:
        """Live subscriptions targeting ``schema_type``, in registration order."""
        return [
            subscription
            for subscription in self.snapshot().values()
            if subscription.target_schema_type == schema_type
        ]

    def purge_expired(self) -> int:
        """Drop subscriptions the expiry policy reports as expired.

        Returns:
            Number of subscriptions dropped
        """
        now = self._clock()
        with self._lock:
            expired = [
                webhook
                for webhook, entry in self._entries.items()
                if self._expiry_policy.is_expired(entry.subscription, entry.registered_at, now)
            ]
            for webhook in expired:
                del self._entries[webhook]

        for webhook in expired:
            self._logger.info("subscription_expired", webhook=webhook)
        return len(expired)

    def to_dict(self) -> Dict[str, dict]:
        """JSON-safe view, webhook -> subscribe command wire shape."""
        return {webhook: subscription.to_dict() for webhook, subscription in self.snapshot().items()}

    def __len__(self) -> int:
        return len(self.snapshot())

    def __contains__(self, webhook: object) -> bool:
        return isinstance(webhook, str) and self.get(webhook) is not None
