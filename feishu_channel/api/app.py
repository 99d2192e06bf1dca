"""FastAPI application factory for a webhook-mode Feishu account."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from feishu_channel import __version__
from feishu_channel.settings import get_settings


def create_app(event_handler: Any, webhook_path: str, account_id: str) -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=f"{settings.app_name} ({account_id})",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    # ── mount routers ──
    from feishu_channel.api.routes import health, lark_webhook

    app.include_router(health.build_router(account_id), tags=["health"])
    app.include_router(
        lark_webhook.build_router(event_handler, webhook_path, account_id),
        tags=["lark"],
    )
    return app
