"""
Webhook server for the LINE FAQ bridge.

Routes:
- GET  /                  liveness probe, literal "OK"
- GET  /healthz           JSON status of the bridge and its collaborators
- GET|HEAD /webhook       platform probes, answered without processing
- POST /webhook           signed LINE deliveries
- POST /admin/faq/reload  re-read the FAQ catalog
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

import config
from linebridge.core.bridge import ChatBridge
from linebridge.infrastructure.messaging import WebhookPayload, verify_signature

logger = logging.getLogger(__name__)


def create_app(bridge: Optional[ChatBridge] = None, channel_secret: Optional[str] = None) -> FastAPI:
    """
    Build the FastAPI application around a ChatBridge.

    Args:
        bridge: Pre-wired bridge (default: ChatBridge.from_config())
        channel_secret: Webhook signing secret (default: config.LINE_CHANNEL_SECRET)
    """
    bridge = bridge if bridge is not None else ChatBridge.from_config()
    secret = channel_secret if channel_secret is not None else config.LINE_CHANNEL_SECRET

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bridge.startup()
        yield
        await bridge.shutdown()

    app = FastAPI(title="LINE FAQ Bridge", version="1.0.0", lifespan=lifespan)
    app.state.bridge = bridge

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "OK"

    @app.get("/healthz")
    def healthcheck():
        return bridge.status()

    @app.api_route("/webhook", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    def webhook_probe():
        return "OK"

    @app.post("/webhook")
    async def receive_webhook(request: Request):
        body = await request.body()
        if not verify_signature(secret, body, request.headers.get("x-line-signature")):
            logger.error("Signature validation failed")
            return PlainTextResponse("Bad signature", status_code=401)

        try:
            payload = WebhookPayload.model_validate_json(body)
        except ValidationError as e:
            logger.error(f"JSON parse error: {e.error_count()} problem(s)")
            return PlainTextResponse("Bad request", status_code=400)

        if not payload.events:
            return Response(status_code=200)

        await bridge.handle_events(payload.events)
        return Response(status_code=200)

    @app.post("/admin/faq/reload")
    async def reload_faq():
        count = await bridge.reload_faq()
        return {"status": "ok", "items": count}

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {exc}", exc_info=exc)
        return JSONResponse({"detail": "Internal Server Error"}, status_code=500)

    return app
