"""Document and command types exchanged between actors.

Documents travel as plain JSON objects; the only mandatory key is
``schemaType``. Commands are documents of schema type ``"command"`` and are
parsed into a small tagged union: ``SubscribeCommand`` for well-formed
subscribe requests, and the generic ``Command`` variant (raw params bag)
for everything else, so unknown or malformed commands degrade instead of
failing the dispatch.
"""

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

if TYPE_CHECKING:
    from docrelay.actor import Actor

# =============================================================================
# CONSTANTS
# =============================================================================

SCHEMA_TYPE_KEY = "schemaType"
COMMAND_SCHEMA_TYPE = "command"
SUBSCRIBE_COMMAND = "subscribe"

Document = Dict[str, Any]


class CommandParseError(ValueError):
    """Raised when a command document does not fit its variant."""


class UnknownSchemaTypeError(LookupError):
    """Raised when a batch arrives for a schema type nobody registered."""

    def __init__(self, schema_type: str) -> None:
        super().__init__(f"Schema type not registered: {schema_type!r}")
        self.schema_type = schema_type


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds (wire timestamp unit)."""
    return int(time.time() * 1000)


# =============================================================================
# COMMANDS
# =============================================================================

@dataclass
class Command:
    """Actor-to-actor instruction carried as a document.

    This is also the opaque fallback variant: ``params`` is kept as the raw
    key/value bag received on the wire.
    """
    command: str
    params: Dict[str, Any] = field(default_factory=dict)
    token: str = ""
    timestamp: int = 0

    @property
    def schema_type(self) -> str:
        return COMMAND_SCHEMA_TYPE

    @classmethod
    def create(
        cls,
        command: str,
        params: Optional[Dict[str, Any]] = None,
        token: str = "",
    ) -> "Command":
        """Build an outgoing command stamped with the current time."""
        return cls(
            command=command,
            params=dict(params or {}),
            token=token,
            timestamp=now_ms(),
        )

    def to_dict(self) -> Document:
        """Serialize to the wire shape."""
        return {
            SCHEMA_TYPE_KEY: COMMAND_SCHEMA_TYPE,
            "command": self.command,
            "params": dict(self.params),
            "token": self.token,
            "timestamp": self.timestamp,
        }


@dataclass
class SubscribeParams:
    """Typed view of a subscribe command's params.

    Attributes:
        webhook: URL that receives relayed documents; subscription identity
        schema_type: Document type being subscribed to
        throttle: Carried for the subscriber's benefit, not enforced
        max_size: Carried for the subscriber's benefit, not enforced
        hydrate: Request a one-time snapshot on subscribe
        query: Mongo-style filter, None means match-all
        extra: Unrecognized keys, preserved for round-tripping
    """
    webhook: str
    schema_type: str
    throttle: Optional[float] = None
    max_size: Optional[int] = None
    hydrate: bool = False
    query: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ("webhook", SCHEMA_TYPE_KEY, "throttle", "maxSize", "hydrate", "query")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SubscribeParams":
        """Parse wire params.

        Raises:
            CommandParseError: If webhook or schemaType is missing or not a
                non-empty string, or query is not an object.
        """
        webhook = data.get("webhook")
        schema_type = data.get(SCHEMA_TYPE_KEY)
        if not isinstance(webhook, str) or not webhook:
            raise CommandParseError("subscribe params require a 'webhook' string")
        if not isinstance(schema_type, str) or not schema_type:
            raise CommandParseError("subscribe params require a 'schemaType' string")

        query = data.get("query")
        if query is not None and not isinstance(query, dict):
            raise CommandParseError("subscribe 'query' must be an object")

        return cls(
            webhook=webhook,
            schema_type=schema_type,
            throttle=data.get("throttle"),
            max_size=data.get("maxSize"),
            hydrate=data.get("hydrate") is True,
            query=query,
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        result["webhook"] = self.webhook
        result[SCHEMA_TYPE_KEY] = self.schema_type
        if self.throttle is not None:
            result["throttle"] = self.throttle
        if self.max_size is not None:
            result["maxSize"] = self.max_size
        if self.hydrate:
            result["hydrate"] = True
        if self.query is not None:
            result["query"] = self.query
        return result


@dataclass
class SubscribeCommand(Command):
    """Command with ``command == "subscribe"`` and validated params."""
    command: str = SUBSCRIBE_COMMAND
    subscribe_params: SubscribeParams = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.command != SUBSCRIBE_COMMAND:
            raise CommandParseError(f"not a subscribe command: {self.command!r}")
        self.subscribe_params = SubscribeParams.from_dict(self.params)

    @property
    def webhook(self) -> str:
        return self.subscribe_params.webhook

    @property
    def target_schema_type(self) -> str:
        return self.subscribe_params.schema_type

    @property
    def query(self) -> Optional[Dict[str, Any]]:
        return self.subscribe_params.query

    @property
    def wants_hydration(self) -> bool:
        return self.subscribe_params.hydrate


AnyCommand = Union[SubscribeCommand, Command]


def parse_command(document: Mapping[str, Any]) -> AnyCommand:
    """Parse a command document into its variant.

    Never raises for shape problems: a subscribe command with unusable
    params comes back as the generic ``Command`` variant.
    """
    raw_params = document.get("params")
    params = dict(raw_params) if isinstance(raw_params, dict) else {}
    command = document.get("command")
    token = document.get("token")
    timestamp = document.get("timestamp")

    values = dict(
        command=command if isinstance(command, str) else "",
        params=params,
        token=token if isinstance(token, str) else "",
        timestamp=timestamp if isinstance(timestamp, (int, float)) else 0,
    )

    if values["command"] == SUBSCRIBE_COMMAND:
        try:
            return SubscribeCommand(**values)
        except CommandParseError:
            pass
    return Command(**values)


# =============================================================================
# SCHEMA TYPE CONFIGURATION
# =============================================================================

OnIncoming = Callable[[List[Document], "Actor"], Any]
HydrateFn = Callable[[SubscribeCommand], Union[Sequence[Document], Awaitable[Sequence[Document]]]]


@dataclass
class SubscriptionHandlerOptions:
    """Options for a schema type's subscription handler.

    Attributes:
        hydrate: Produces the snapshot relayed to a new subscriber that
            asked for hydration. May be sync or async.
    """
    hydrate: Optional[HydrateFn] = None


@dataclass
class SchemaTypeConfig:
    """Per document-type registration.

    Attributes:
        on_incoming: Called with the incoming batch and the owning actor;
            its (possibly awaited) result becomes the endpoint response
        allow_subscribe: Whether subscribe commands for this type are honored
        persist: Consumed by collaborators only
        webhook: Consumed by collaborators only
        hydrate: Snapshot producer handed to the subscription handler
    """
    on_incoming: Optional[OnIncoming] = None
    allow_subscribe: bool = False
    persist: bool = False
    webhook: bool = False
    hydrate: Optional[HydrateFn] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view used by the capabilities endpoint."""
        return {
            "webhook": self.webhook,
            "persist": self.persist,
            "allowSubscribe": self.allow_subscribe,
        }


__all__ = [
    "SCHEMA_TYPE_KEY",
    "COMMAND_SCHEMA_TYPE",
    "SUBSCRIBE_COMMAND",
    "Document",
    "CommandParseError",
    "Command",
    "SubscribeParams",
    "SubscribeCommand",
    "AnyCommand",
    "parse_command",
    "OnIncoming",
    "HydrateFn",
    "SubscriptionHandlerOptions",
    "SchemaTypeConfig",
    "UnknownSchemaTypeError",
    "now_ms",
]
