"""Host integration: the reply dispatcher consumed from the bot framework."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from feishu_channel.config.schema import Config

DeliverFn = Callable[[Any], Awaitable[None]]
ErrorFn = Callable[[BaseException], None]


class ReplyDispatcher(Protocol):
    """Runs the host reply pipeline for one inbound context.

    The host awaits ``deliver`` once per reply block and calls ``on_error``
    for failures it handles itself. Exceptions it raises are treated the same
    way by the channel.
    """

    async def __call__(
        self,
        *,
        ctx: dict[str, Any],
        cfg: Config,
        deliver: DeliverFn,
        on_error: ErrorFn,
    ) -> None: ...


@dataclass
class FeishuRuntime:
    dispatch_reply: ReplyDispatcher | None = None
    load_config: Callable[[], Config] | None = None

    def resolve_config(self, fallback: Config) -> Config:
        if self.load_config is None:
            return fallback
        return self.load_config()


_runtime: FeishuRuntime | None = None


def set_feishu_runtime(runtime: FeishuRuntime) -> None:
    global _runtime
    _runtime = runtime


def get_feishu_runtime() -> FeishuRuntime:
    """Return the registered runtime, or an empty one (no dispatcher)."""
    return _runtime or FeishuRuntime()


def clear_feishu_runtime() -> None:
    global _runtime
    _runtime = None


class EchoReplyDispatcher:
    """Replies with the inbound text. Useful for smoke-testing a bot app."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    async def __call__(
        self,
        *,
        ctx: dict[str, Any],
        cfg: Config,
        deliver: DeliverFn,
        on_error: ErrorFn,
    ) -> None:
        body = str(ctx.get("Body", ""))
        logger.debug(f"Echo dispatcher replying to {ctx.get('SessionKey')}")
        await deliver({"text": f"{self.prefix}{body}"})


echo_dispatcher = EchoReplyDispatcher()
