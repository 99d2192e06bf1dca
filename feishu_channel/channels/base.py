"""Base class for chat channels."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from loguru import logger

from feishu_channel.config.accounts import ResolvedFeishuAccount
from feishu_channel.config.schema import Config

StatusSink = Callable[[dict[str, Any]], None]


class BaseChannel(ABC):
    """One running connection of a bot account to a chat platform."""

    name: str = "base"

    def __init__(
        self,
        account: ResolvedFeishuAccount,
        config: Config,
        status_sink: StatusSink | None = None,
    ) -> None:
        self.account = account
        self.config = config
        self.status_sink = status_sink
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def log_prefix(self) -> str:
        return f"[{self.name}:{self.account.account_id}]"

    @abstractmethod
    async def start(self) -> None:
        """Connect and begin receiving messages. Returns once started."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and release resources."""

    def report_status(self, **patch: Any) -> None:
        if self.status_sink is None:
            return
        try:
            self.status_sink(patch)
        except Exception as exc:
            logger.warning(f"{self.log_prefix} Status sink failed: {exc}")

    def now(self) -> float:
        return time.time()

    def is_allowed_direct(self, sender_id: str) -> bool:
        """Apply the account's direct-message policy to *sender_id*.

        ``pairing`` has no pairing store here: it behaves like ``allowlist``
        once ``allow_from`` is non-empty and like ``open`` before that.
        """
        cfg = self.account.config
        allow_from = {str(v) for v in cfg.allow_from}
        if cfg.dm_policy == "disabled":
            return False
        if cfg.dm_policy == "open":
            return True
        if cfg.dm_policy == "allowlist" or allow_from:
            return "*" in allow_from or sender_id in allow_from
        return True
