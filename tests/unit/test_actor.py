"""Unit tests for Actor registration, inbound dispatch and outbound senders."""

import pytest

from docrelay import Actor
from docrelay.protocols import (
    Command,
    SchemaTypeConfig,
    SubscribeCommand,
    UnknownSchemaTypeError,
)

from fixtures import command_document, form, make_subscription, subscribe_document


class TestConstruction:
    def test_command_type_registered_by_default(self, actor):
        capabilities = actor.get_capabilities()

        assert "command" in capabilities
        assert capabilities["command"].allow_subscribe is False
        assert capabilities["command"].webhook is True
        assert capabilities["command"].persist is False

    def test_endpoint_trailing_slash_stripped(self, channel, mock_logger):
        actor = Actor("http://actor.test/", channel=channel, logger=mock_logger)
        assert actor.endpoint == "http://actor.test"

    def test_default_channel_is_http(self, mock_logger):
        from docrelay.delivery import HttpDeliveryChannel

        actor = Actor("http://actor.test", logger=mock_logger)
        assert isinstance(actor.channel, HttpDeliveryChannel)


class TestCommandEvents:
    async def test_one_event_per_document_in_order(self, actor):
        seen = []
        actor.on_command(seen.append)

        await actor.dispatch("command", [
            command_document("advertise", {"n": 1}),
            command_document("ping"),
            subscribe_document("http://w", "form"),
        ])

        assert [c.command for c in seen] == ["advertise", "ping", "subscribe"]
        assert type(seen[0]) is Command
        assert isinstance(seen[2], SubscribeCommand)

    async def test_failing_command_listener_isolated(self, actor):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        seen = []

        def broken(command):
            raise RuntimeError("app handler failed")

        actor.on_command(broken)
        actor.on_command(seen.append)

        await actor.dispatch("command", [subscribe_document("http://w", "form")])

        assert len(seen) == 1
        assert "http://w" in actor.get_subscriptions()


class TestSubscriptionHandling:
    async def test_subscribe_scenario(self, actor, channel):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        await actor.dispatch("command", [
            subscribe_document("W", "form", query={"status": "open"}),
        ])

        await actor.dispatch("form", [
            {"schemaType": "form", "id": 1, "status": "open"},
            {"schemaType": "form", "id": 2, "status": "closed"},
        ])

        assert channel.deliveries == [("W", [{"schemaType": "form", "id": 1, "status": "open"}])]

    async def test_resubscribe_to_other_type_replaces(self, actor):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        actor.register("order", SchemaTypeConfig(allow_subscribe=True))

        await actor.dispatch("command", [
            subscribe_document("W", "form"),
            subscribe_document("W", "order"),
        ])

        subscriptions = actor.get_subscriptions()
        assert list(subscriptions) == ["W"]
        assert subscriptions["W"].target_schema_type == "order"

    async def test_subscription_to_type_without_handler_ignored(self, actor):
        actor.register("form", SchemaTypeConfig())

        await actor.dispatch("command", [subscribe_document("W", "form")])

        assert actor.get_subscriptions() == {}

    async def test_subscription_event(self, actor):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        seen = []
        actor.on_subscription(seen.append)

        await actor.dispatch("command", [subscribe_document("W", "form"), subscribe_document("W", "form")])

        assert [s.webhook for s in seen] == ["W", "W"]

    async def test_reregister_does_not_duplicate_handler(self, actor):
        seen = []
        actor.on_subscription(seen.append)
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))

        await actor.dispatch("command", [subscribe_document("W", "form")])

        assert len(seen) == 1

    async def test_reregister_without_subscribe_removes_handler(self, actor):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        actor.register("form", SchemaTypeConfig(allow_subscribe=False))

        await actor.dispatch("command", [subscribe_document("W", "form")])

        assert actor.get_subscriptions() == {}

    async def test_invalid_subscribe_logged(self, actor, mock_logger):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))

        await actor.dispatch("command", [command_document("subscribe", {"schemaType": "form"})])

        assert actor.get_subscriptions() == {}
        events = [c.args[0] for c in mock_logger.warning.call_args_list]
        assert "subscribe_command_invalid" in events

    async def test_command_type_subscriptions(self, actor, channel):
        actor.register_command_handler(allow_subscribe=True)
        await actor.dispatch("command", [subscribe_document("http://audit", "command")])

        ping = command_document("ping")
        await actor.dispatch("command", [ping])

        assert channel.to("http://audit") == [[ping]]

    async def test_remove_subscription(self, actor, channel):
        actor.register("form", SchemaTypeConfig(allow_subscribe=True))
        actor.handle_subscription(make_subscription("W", "form"))

        assert actor.remove_subscription("W") is True
        await actor.dispatch("form", [form(1, "open")])

        assert channel.deliveries == []


class TestDispatch:
    async def test_unknown_schema_type(self, actor):
        with pytest.raises(UnknownSchemaTypeError):
            await actor.dispatch("invoice", [])

    async def test_relay_runs_before_on_incoming(self, actor, channel):
        order = []

        def on_incoming(documents, owner):
            order.append(("on_incoming", len(channel.deliveries)))
            return {"stored": len(documents)}

        actor.register("form", SchemaTypeConfig(on_incoming=on_incoming, allow_subscribe=True))
        actor.handle_subscription(make_subscription("W", "form"))

        result = await actor.dispatch("form", [form(1, "open")])

        assert order == [("on_incoming", 1)]
        assert result == {"stored": 1}

    async def test_on_incoming_receives_batch_and_actor(self, actor):
        received = []
        actor.register("form", SchemaTypeConfig(on_incoming=lambda docs, owner: received.append((docs, owner))))

        batch = [form(1, "open")]
        await actor.dispatch("form", batch)

        assert received == [(batch, actor)]

    async def test_async_on_incoming_awaited(self, actor):
        async def on_incoming(documents, owner):
            return [doc["id"] for doc in documents]

        actor.register("form", SchemaTypeConfig(on_incoming=on_incoming))

        assert await actor.dispatch("form", [form(1, "open"), form(2, "open")]) == [1, 2]

    async def test_no_on_incoming_returns_none(self, actor):
        actor.register("form", SchemaTypeConfig())
        assert await actor.dispatch("form", [form(1, "open")]) is None

    @pytest.mark.parametrize("empty", [[], 0, "", False, {}])
    async def test_falsy_on_incoming_result_returns_none(self, actor, empty):
        actor.register("form", SchemaTypeConfig(on_incoming=lambda documents, owner: empty))
        assert await actor.dispatch("form", [form(1, "open")]) is None

    async def test_failing_on_incoming_still_relays(self, actor, channel, mock_logger):
        def on_incoming(documents, owner):
            raise RuntimeError("store failed")

        actor.register("form", SchemaTypeConfig(on_incoming=on_incoming))
        actor.handle_subscription(make_subscription("W", "form"))

        result = await actor.dispatch("form", [form(1, "open")])

        assert result is None
        assert channel.to("W") == [[form(1, "open")]]
        assert mock_logger.error.call_args.args[0] == "on_incoming_failed"

    async def test_subscribe_then_relay_in_same_command_batch(self, actor, channel):
        """Subscriptions from a command batch apply only after the batch is relayed."""
        actor.register_command_handler(allow_subscribe=True)
        ping = command_document("ping")

        await actor.dispatch("command", [subscribe_document("http://audit", "command"), ping])

        assert channel.deliveries == []


class TestSenders:
    def test_send_documents(self, actor, channel):
        docs = [form(1, "open")]
        actor.send_documents("http://peer/form", docs)

        assert channel.deliveries == [("http://peer/form", docs)]

    def test_send_command(self, actor, channel):
        actor.send_command("http://peer/", "advertise", {"types": ["form"]}, token="secret")

        url, payload = channel.deliveries[0]
        assert url == "http://peer/command"
        assert len(payload) == 1
        document = payload[0]
        assert document["schemaType"] == "command"
        assert document["command"] == "advertise"
        assert document["params"] == {"types": ["form"]}
        assert document["token"] == "secret"
        assert isinstance(document["timestamp"], int)

    def test_subscribe_defaults_webhook(self, actor, channel):
        actor.subscribe("http://peer", "form", {"query": {"status": "open"}})

        url, payload = channel.deliveries[0]
        assert url == "http://peer/command"
        assert payload[0]["command"] == "subscribe"
        assert payload[0]["params"] == {
            "schemaType": "form",
            "webhook": "http://actor.test/form",
            "query": {"status": "open"},
        }
        assert payload[0]["token"] == ""

    def test_subscribe_webhook_override(self, actor, channel):
        actor.subscribe("http://peer", "form", {"webhook": "http://elsewhere/in", "hydrate": True})

        params = channel.deliveries[0][1][0]["params"]
        assert params["webhook"] == "http://elsewhere/in"
        assert params["hydrate"] is True

    async def test_subscribe_round_trip_between_actors(self, channel, mock_logger):
        """A subscribe sent by one actor is honored when dispatched on another."""
        publisher = Actor("http://publisher", channel=channel, logger=mock_logger)
        publisher.register("form", SchemaTypeConfig(allow_subscribe=True))
        subscriber = Actor("http://subscriber", channel=channel, logger=mock_logger)

        subscriber.subscribe("http://publisher", "form", {"query": {"status": "open"}})
        _, command_batch = channel.deliveries.pop()
        await publisher.dispatch("command", command_batch)
        await publisher.dispatch("form", [form(1, "open"), form(2, "closed")])

        assert channel.deliveries == [("http://subscriber/form", [form(1, "open")])]
