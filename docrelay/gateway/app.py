"""
docrelay Gateway - FastAPI transport for an Actor.

Endpoints:
- POST /{schema_type}   inbound batch (JSON array of documents)
- GET  /capabilities    schema registry snapshot
- GET  /subscriptions   subscription registry snapshot
- GET  /health          liveness probe

The gateway holds no relay logic: it parses request bodies, rejects
malformed ones, and hands batches to ``Actor.dispatch``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from docrelay import __version__
from docrelay.actor import Actor
from docrelay.delivery import HttpDeliveryChannel
from docrelay.logging import configure_logging, get_component_logger
from docrelay.protocols import UnknownSchemaTypeError
from docrelay.registry import TTLExpiry
from docrelay.settings import Settings, get_settings


def _validate_batch(body: Any) -> list:
    if not isinstance(body, list) or not all(isinstance(doc, dict) for doc in body):
        raise HTTPException(
            status_code=400,
            detail="Request body must be a JSON array of documents",
        )
    return body


def create_app(actor: Actor, title: str = "docrelay actor") -> FastAPI:
    """Build the HTTP app serving ``actor``.

    Schema types registered on the actor after the app is built are
    served as well; unknown types answer 404.
    """
    _logger = get_component_logger("Gateway")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        _logger.info(
            "gateway_startup_complete",
            endpoint=actor.endpoint,
            schema_types=actor.schemas.schema_types(),
        )
        try:
            yield
        finally:
            _logger.info("gateway_shutdown_initiated")
            await actor.close()
            _logger.info("gateway_shutdown_complete")

    app = FastAPI(title=title, version=__version__, lifespan=lifespan)
    app.state.actor = actor

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "healthy", "endpoint": actor.endpoint})

    @app.get("/capabilities")
    async def capabilities() -> JSONResponse:
        return JSONResponse(actor.schemas.to_dict())

    @app.get("/subscriptions")
    async def subscriptions() -> JSONResponse:
        return JSONResponse(actor.subscriptions.to_dict())

    @app.post("/{schema_type}")
    async def post_documents(schema_type: str, request: Request) -> JSONResponse:
        if not actor.schemas.has(schema_type):
            raise HTTPException(status_code=404, detail=f"Schema type ({schema_type}) not registered")

        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Request body must be valid JSON")
        documents = _validate_batch(body)

        try:
            result = await actor.dispatch(schema_type, documents)
        except UnknownSchemaTypeError as e:
            # Registration changed between the check and the dispatch
            raise HTTPException(status_code=404, detail=str(e))
        return JSONResponse(jsonable_encoder(result))

    return app


def create_app_from_settings(settings: Optional[Settings] = None) -> FastAPI:
    """Composition root: configure logging, build the actor and its app."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    expiry_policy = None
    if settings.subscription_ttl_seconds is not None:
        expiry_policy = TTLExpiry(settings.subscription_ttl_seconds)

    actor = Actor(
        settings.endpoint,
        channel=HttpDeliveryChannel(
            timeout_seconds=settings.delivery_timeout_seconds,
            history_size=settings.delivery_history_size,
        ),
        expiry_policy=expiry_policy,
    )
    if settings.allow_command_subscriptions:
        actor.register_command_handler(allow_subscribe=True)
    return create_app(actor)


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "docrelay.gateway.app:create_app_from_settings",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
