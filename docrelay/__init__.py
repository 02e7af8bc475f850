"""docrelay - publish/subscribe relay for typed JSON documents.

Actors exchange documents over HTTP. Each actor exposes one inbound
endpoint per schema type it understands and re-broadcasts matching
documents to the webhooks that subscribed to that type. Subscriptions are
themselves requested with "command" documents, so control-plane signaling
reuses the document pipeline.

Sub-packages:
- protocols/  - interfaces and wire types (documents, commands)
- events/     - command bus
- registry/   - schema and subscription registries
- relay/      - query matching, relay engine, hydration
- delivery/   - outbound HTTP delivery (httpx)
- gateway/    - FastAPI transport
- logging/    - structlog-backed logger

Usage:
    from docrelay import Actor, SchemaTypeConfig

    actor = Actor(endpoint="https://forms.example.com")
    actor.register("form", SchemaTypeConfig(allow_subscribe=True))
"""

__version__ = "1.0.0"

from docrelay.actor import Actor  # noqa: E402
from docrelay.protocols import (  # noqa: E402
    Command,
    Document,
    SchemaTypeConfig,
    SubscribeCommand,
    SubscriptionHandlerOptions,
    parse_command,
)

__all__ = [
    "__version__",
    "Actor",
    "Command",
    "Document",
    "SchemaTypeConfig",
    "SubscribeCommand",
    "SubscriptionHandlerOptions",
    "parse_command",
]
