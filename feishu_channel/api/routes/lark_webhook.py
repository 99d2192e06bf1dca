"""Lark/Feishu event subscription webhook endpoint.

The raw request is handed to ``EventDispatcherHandler.do()``, which owns
signature verification, payload decryption and the URL-verification
challenge. Matching events reach the handlers registered on the dispatcher.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, Response
from lark_oapi.core.model import RawRequest
from loguru import logger


def _canonical_header(name: str) -> str:
    # Starlette lower-cases header names; the SDK looks them up as X-Lark-...
    return "-".join(part.capitalize() for part in name.split("-"))


async def to_raw_request(request: Request) -> RawRequest:
    raw = RawRequest()
    raw.uri = request.url.path
    raw.body = await request.body()
    raw.headers = {_canonical_header(k): v for k, v in request.headers.items()}
    return raw


def to_response(raw: Any) -> Response:
    headers = dict(getattr(raw, "headers", None) or {})
    return Response(
        content=raw.content or b"",
        status_code=raw.status_code or 200,
        headers=headers,
    )


def build_router(event_handler: Any, path: str, account_id: str) -> APIRouter:
    """Router exposing *event_handler* at *path* for one account."""
    router = APIRouter()

    @router.post(path)
    async def lark_event(request: Request) -> Response:
        """Handle Lark event subscription callbacks."""
        try:
            raw_request = await to_raw_request(request)
            logger.debug(f"[feishu:{account_id}] Webhook: {len(raw_request.body)} bytes")
            return to_response(event_handler.do(raw_request))
        except Exception as exc:
            logger.error(f"[feishu:{account_id}] Webhook handler error: {exc}")
            return Response(
                content="Internal Server Error",
                status_code=500,
                media_type="text/plain",
            )

    return router
