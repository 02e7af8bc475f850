"""Protocol layer: interfaces and wire types shared by every component."""

from docrelay.protocols.interfaces import (
    DeliveryChannelProtocol,
    ExpiryPolicyProtocol,
    LoggerProtocol,
    QueryPredicateProtocol,
)
from docrelay.protocols.types import (
    COMMAND_SCHEMA_TYPE,
    SCHEMA_TYPE_KEY,
    SUBSCRIBE_COMMAND,
    AnyCommand,
    Command,
    CommandParseError,
    Document,
    HydrateFn,
    OnIncoming,
    SchemaTypeConfig,
    SubscribeCommand,
    SubscribeParams,
    SubscriptionHandlerOptions,
    UnknownSchemaTypeError,
    now_ms,
    parse_command,
)

__all__ = [
    # Interfaces
    "DeliveryChannelProtocol",
    "ExpiryPolicyProtocol",
    "LoggerProtocol",
    "QueryPredicateProtocol",
    # Types
    "COMMAND_SCHEMA_TYPE",
    "SCHEMA_TYPE_KEY",
    "SUBSCRIBE_COMMAND",
    "AnyCommand",
    "Command",
    "CommandParseError",
    "Document",
    "HydrateFn",
    "OnIncoming",
    "SchemaTypeConfig",
    "SubscribeCommand",
    "SubscribeParams",
    "SubscriptionHandlerOptions",
    "UnknownSchemaTypeError",
    "now_ms",
    "parse_command",
]
