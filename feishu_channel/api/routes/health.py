"""Liveness probe."""

from fastapi import APIRouter


def build_router(account_id: str) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "account": account_id}

    return router
