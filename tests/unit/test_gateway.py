"""Unit tests for the FastAPI gateway.

Requests go through httpx.ASGITransport; deliveries go to the recording
channel.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from docrelay.gateway import create_app
from docrelay.protocols import SchemaTypeConfig

from fixtures import form, subscribe_document


@pytest.fixture
def app(actor) -> FastAPI:
    actor.register("form", SchemaTypeConfig(
        on_incoming=lambda docs, owner: {"received": len(docs)},
        allow_subscribe=True,
    ))
    actor.register("note", SchemaTypeConfig())
    return create_app(actor)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestInbound:
    async def test_post_returns_on_incoming_result(self, client):
        resp = await client.post("/form", json=[form(1, "open"), form(2, "open")])

        assert resp.status_code == 200
        assert resp.json() == {"received": 2}

    async def test_post_without_callback_returns_null(self, client):
        resp = await client.post("/note", json=[{"schemaType": "note"}])

        assert resp.status_code == 200
        assert resp.json() is None

    async def test_unknown_schema_type_404(self, client):
        resp = await client.post("/invoice", json=[])

        assert resp.status_code == 404

    @pytest.mark.parametrize("body", [{"schemaType": "form"}, [1, 2], "text"])
    async def test_non_array_body_400(self, client, body):
        resp = await client.post("/form", json=body)

        assert resp.status_code == 400

    async def test_invalid_json_400(self, client):
        resp = await client.post(
            "/form",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert resp.status_code == 400

    async def test_subscribe_then_relay(self, client, channel):
        resp = await client.post("/command", json=[
            subscribe_document("http://sub/form", "form", query={"status": "open"}),
        ])
        assert resp.status_code == 200
        assert resp.json() is None

        await client.post("/form", json=[form(1, "open"), form(2, "closed")])

        assert channel.deliveries == [("http://sub/form", [form(1, "open")])]

    async def test_type_registered_after_app_created(self, actor, client):
        actor.register("late", SchemaTypeConfig(on_incoming=lambda docs, owner: "ok"))

        resp = await client.post("/late", json=[])

        assert resp.json() == "ok"


class TestIntrospection:
    async def test_capabilities(self, client):
        resp = await client.get("/capabilities")

        assert resp.status_code == 200
        body = resp.json()
        assert body["form"] == {"webhook": False, "persist": False, "allowSubscribe": True}
        assert body["command"] == {"webhook": True, "persist": False, "allowSubscribe": False}
        assert set(body) == {"command", "form", "note"}

    async def test_subscriptions(self, client):
        await client.post("/command", json=[subscribe_document("http://sub/form", "form")])

        resp = await client.get("/subscriptions")

        assert resp.status_code == 200
        body = resp.json()
        assert list(body) == ["http://sub/form"]
        assert body["http://sub/form"]["command"] == "subscribe"
        assert body["http://sub/form"]["params"]["schemaType"] == "form"

    async def test_health(self, client):
        resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "endpoint": "http://actor.test"}
