"""Actor - a network participant that exchanges typed JSON documents.

An actor exposes one inbound entry point per registered schema type,
relays incoming documents to the webhooks that subscribed to that type,
and turns incoming command documents into events on its command bus.

Inbound dispatch order for a batch of schema type T:
1. Relay the raw batch to every current subscription of T.
2. Invoke T's ``on_incoming`` callback (awaited if it returns an
   awaitable); its result is the response value.

The built-in "command" schema type is registered at construction. Its
``on_incoming`` pushes every document of the batch onto the command bus
in array order, which is how subscribe commands reach the subscription
registry.

Usage:
    actor = Actor(endpoint="https://forms.example.com")
    actor.register("form", SchemaTypeConfig(
        on_incoming=store_forms,
        allow_subscribe=True,
        hydrate=load_open_forms,
    ))
    actor.on_command(lambda command: print(command.command))

    result = await actor.dispatch("form", [{"schemaType": "form", "id": 1}])
"""

import inspect
from typing import Any, Awaitable, Dict, Mapping, Optional, Sequence

from docrelay.delivery import HttpDeliveryChannel
from docrelay.events import EVENT_COMMAND, EVENT_SUBSCRIPTION, CommandBus, Listener
from docrelay.logging import get_component_logger
from docrelay.protocols import (
    COMMAND_SCHEMA_TYPE,
    SCHEMA_TYPE_KEY,
    SUBSCRIBE_COMMAND,
    AnyCommand,
    Command,
    DeliveryChannelProtocol,
    Document,
    ExpiryPolicyProtocol,
    HydrateFn,
    LoggerProtocol,
    QueryPredicateProtocol,
    SchemaTypeConfig,
    SubscribeCommand,
    SubscriptionHandlerOptions,
    UnknownSchemaTypeError,
    parse_command,
)
from docrelay.registry import SchemaRegistry, SubscriptionRegistry
from docrelay.relay import HydrationCoordinator, RelayEngine


class Actor:
    """Schema registry, subscriptions, relay and command bus for one endpoint."""

    def __init__(
        self,
        endpoint: str,
        channel: Optional[DeliveryChannelProtocol] = None,
        predicate: Optional[QueryPredicateProtocol] = None,
        expiry_policy: Optional[ExpiryPolicyProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize actor.

        Args:
            endpoint: Base URL this actor is reachable at; used to derive
                webhooks in ``subscribe``
            channel: Outbound transport, defaults to HttpDeliveryChannel
            predicate: Query evaluator, defaults to MongoQueryPredicate
            expiry_policy: Subscription expiry, defaults to never expiring
            logger: Optional logger shared by all components
        """
        self.endpoint = endpoint.rstrip("/")
        self._logger = get_component_logger("Actor", logger).bind(endpoint=self.endpoint)

        self.bus = CommandBus(logger=logger)
        self.schemas = SchemaRegistry(logger=logger)
        self.subscriptions = SubscriptionRegistry(
            bus=self.bus,
            expiry_policy=expiry_policy,
            logger=logger,
        )
        self.channel = channel or HttpDeliveryChannel(logger=logger)
        self.relay = RelayEngine(self.subscriptions, self.channel, predicate=predicate, logger=logger)
        self.hydration = HydrationCoordinator(self.relay, logger=logger)

        # schema type -> installed subscription listener
        self._subscription_handlers: Dict[str, Listener] = {}

        self.register_command_handler()

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, schema_type: str, config: Optional[SchemaTypeConfig] = None) -> None:
        """Register a schema type, creating its inbound entry point.

        Re-registering replaces the previous configuration. When
        ``config.allow_subscribe`` is set, a subscription handler for the
        type is installed (replacing any earlier one); otherwise an earlier
        handler is removed.
        """
        config = config or SchemaTypeConfig()
        self.schemas.register(schema_type, config)

        if config.allow_subscribe:
            self.register_subscription_handler(
                schema_type,
                SubscriptionHandlerOptions(hydrate=config.hydrate),
            )
        else:
            self._remove_subscription_handler(schema_type)

    def register_command_handler(
        self,
        allow_subscribe: bool = False,
        hydrate: Optional[HydrateFn] = None,
    ) -> None:
        """Register the "command" schema type.

        Installed automatically at construction. Call again with
        ``allow_subscribe=True`` to let other actors subscribe to this
        actor's command stream.
        """
        self.register(
            COMMAND_SCHEMA_TYPE,
            SchemaTypeConfig(
                on_incoming=self._emit_commands,
                allow_subscribe=allow_subscribe,
                persist=False,
                webhook=True,
                hydrate=hydrate,
            ),
        )

    def _emit_commands(self, documents: Sequence[Document], actor: "Actor") -> None:
        self._logger.info("commands_received", count=len(documents))
        for document in documents:
            self.bus.emit(EVENT_COMMAND, parse_command(document))

    def register_subscription_handler(
        self,
        schema_type: str,
        options: Optional[SubscriptionHandlerOptions] = None,
    ) -> Listener:
        """Honor subscribe commands targeting ``schema_type``.

        The handler records the subscription, then, if the subscriber asked
        for hydration and ``options.hydrate`` is set, relays a snapshot to
        that subscriber only. Hydration runs as a tracked task on the
        command bus.

        Returns:
            The installed command listener
        """
        options = options or SubscriptionHandlerOptions()

        def handle_subscribe(command: AnyCommand) -> Optional[Awaitable[Any]]:
            if command.command != SUBSCRIBE_COMMAND:
                return None
            if not isinstance(command, SubscribeCommand):
                if command.params.get(SCHEMA_TYPE_KEY) == schema_type:
                    self._logger.warning(
                        "subscribe_command_invalid",
                        schema_type=schema_type,
                        params=command.params,
                    )
                return None
            if command.target_schema_type != schema_type:
                return None

            self.handle_subscription(command)
            if options.hydrate is not None and command.wants_hydration:
                return self.hydration.hydrate(command, options.hydrate)
            return None

        self._remove_subscription_handler(schema_type)
        self.bus.subscribe(EVENT_COMMAND, handle_subscribe)
        self._subscription_handlers[schema_type] = handle_subscribe
        return handle_subscribe

    def _remove_subscription_handler(self, schema_type: str) -> None:
        handler = self._subscription_handlers.pop(schema_type, None)
        if handler is not None:
            self.bus.unsubscribe(EVENT_COMMAND, handler)

    def on_command(self, handler: Listener) -> None:
        """Register a listener called once per incoming command."""
        self.bus.subscribe(EVENT_COMMAND, handler)

    def on_subscription(self, handler: Listener) -> None:
        """Register a listener called whenever a subscription is stored."""
        self.bus.subscribe(EVENT_SUBSCRIPTION, handler)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def handle_subscription(self, subscription: SubscribeCommand) -> None:
        """Store ``subscription`` under its webhook (last writer wins)."""
        self.subscriptions.upsert(subscription)

    def remove_subscription(self, webhook: str) -> bool:
        return self.subscriptions.remove(webhook)

    def get_subscriptions(self) -> Dict[str, SubscribeCommand]:
        return self.subscriptions.snapshot()

    def get_capabilities(self) -> Mapping[str, SchemaTypeConfig]:
        return self.schemas.snapshot()

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def dispatch(self, schema_type: str, documents: Sequence[Document]) -> Any:
        """Handle an inbound batch for ``schema_type``.

        Returns:
            The ``on_incoming`` result, or None if there is no callback,
            it failed, or its result is falsy

        Raises:
            UnknownSchemaTypeError: If ``schema_type`` is not registered
        """
        config = self.schemas.get(schema_type)
        if config is None:
            raise UnknownSchemaTypeError(schema_type)

        batch = list(documents)
        self._logger.debug("batch_received", schema_type=schema_type, count=len(batch))

        self.relay_to_all_subscriptions(batch, schema_type)

        if config.on_incoming is None:
            return None

        try:
            result = config.on_incoming(batch, self)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._logger.error(
                "on_incoming_failed",
                schema_type=schema_type,
                count=len(batch),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        return result or None

    def relay_to_all_subscriptions(self, documents: Sequence[Document], schema_type: str) -> int:
        return self.relay.relay_to_all_subscriptions(documents, schema_type)

    def relay_to_subscription(self, documents: Sequence[Document], subscription: SubscribeCommand):
        return self.relay.relay_to_subscription(documents, subscription)

    # =========================================================================
    # OUTBOUND
    # =========================================================================

    def send_documents(self, target_url: str, documents: Sequence[Document]) -> Optional[Awaitable[Any]]:
        """Post a batch of documents to ``target_url`` (fire-and-forget).

        Must be called with an event loop running: the default channel logs
        ``delivery_no_event_loop`` and sends nothing otherwise. From
        synchronous bootstrap code, await ``channel.post`` inside
        ``asyncio.run`` instead.

        Returns:
            The channel's delivery handle (an awaitable task for
            HttpDeliveryChannel), or None when nothing was scheduled
        """
        self._logger.info("sending_documents", url=target_url, count=len(documents))
        return self.channel.deliver(target_url, list(documents))

    def send_command(
        self,
        target_url: str,
        command: str,
        params: Optional[Dict[str, Any]] = None,
        token: str = "",
    ) -> Optional[Awaitable[Any]]:
        """Send one command document to ``{target_url}/command``."""
        document = Command.create(command, params, token).to_dict()
        return self.send_documents(f"{target_url.rstrip('/')}/{COMMAND_SCHEMA_TYPE}", [document])

    def subscribe(
        self,
        target_url: str,
        schema_type: str,
        params: Optional[Dict[str, Any]] = None,
        token: str = "",
    ) -> Optional[Awaitable[Any]]:
        """Subscribe to ``schema_type`` documents of the actor at ``target_url``.

        The webhook defaults to ``{endpoint}/{schema_type}``; any key in
        ``params`` (``webhook``, ``query``, ``hydrate``, ...) overrides.
        Like ``send_documents``, nothing is sent without a running event
        loop.
        """
        subscribe_params = {
            SCHEMA_TYPE_KEY: schema_type,
            "webhook": f"{self.endpoint}/{schema_type}",
            **(params or {}),
        }
        return self.send_command(target_url, SUBSCRIBE_COMMAND, subscribe_params, token)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def drain(self) -> None:
        """Wait for pending listener tasks (hydration) and deliveries."""
        await self.bus.drain()
        channel_drain = getattr(self.channel, "drain", None)
        if channel_drain is not None:
            await channel_drain()

    async def close(self) -> None:
        await self.bus.drain()
        channel_close = getattr(self.channel, "close", None)
        if channel_close is not None:
            await channel_close()
        self._logger.info("actor_closed")


__all__ = ["Actor"]
