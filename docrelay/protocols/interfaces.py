"""Protocol definitions - interfaces for dependency injection.

These are typing.Protocol classes for static type checking. The actor
core only talks to its collaborators (logging, outbound transport, query
evaluation, subscription expiry) through these interfaces.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Dict, Mapping, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from docrelay.protocols.types import SubscribeCommand


# =============================================================================
# LOGGING
# =============================================================================

@runtime_checkable
class LoggerProtocol(Protocol):
    """Structured logging interface."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def bind(self, **kwargs: Any) -> "LoggerProtocol": ...


# =============================================================================
# DELIVERY
# =============================================================================

@runtime_checkable
class DeliveryChannelProtocol(Protocol):
    """Outbound transport for relayed documents.

    ``deliver`` is fire-and-forget: it must not block the caller and must
    never raise into the dispatch path. Implementations may return an
    awaitable that resolves once the delivery attempt has finished.
    """

    def deliver(self, url: str, payload: Any) -> Optional[Awaitable[Any]]: ...


# =============================================================================
# QUERY
# =============================================================================

@runtime_checkable
class QueryPredicateProtocol(Protocol):
    """Evaluates a declarative filter against a single document."""

    def matches(self, document: Mapping[str, Any], query: Optional[Dict[str, Any]]) -> bool: ...


# =============================================================================
# SUBSCRIPTION EXPIRY
# =============================================================================

@runtime_checkable
class ExpiryPolicyProtocol(Protocol):
    """Decides whether a stored subscription is still live.

    Args (of is_expired):
        subscription: The stored subscribe command
        registered_at: Monotonic time the subscription was stored
        now: Current monotonic time
    """

    def is_expired(
        self,
        subscription: "SubscribeCommand",
        registered_at: float,
        now: float,
    ) -> bool: ...


__all__ = [
    "LoggerProtocol",
    "DeliveryChannelProtocol",
    "QueryPredicateProtocol",
    "ExpiryPolicyProtocol",
]
