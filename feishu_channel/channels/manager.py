"""Channel manager: one FeishuChannel per enabled account."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from feishu_channel.channels.feishu import FeishuChannel
from feishu_channel.config.accounts import resolve_all_accounts
from feishu_channel.config.schema import Config


class ChannelManager:
    """Starts the configured Feishu accounts and keeps their status."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.channels: dict[str, FeishuChannel] = {}
        self.status: dict[str, dict[str, Any]] = {}
        self._init_channels()

    def _init_channels(self) -> None:
        for account in resolve_all_accounts(self.config):
            if not account.enabled:
                logger.info(f"[feishu:{account.account_id}] Disabled, skipping")
                continue
            if not account.configured:
                logger.warning(
                    f"[feishu:{account.account_id}] app_id / app_secret missing, skipping"
                )
                continue
            self.status[account.account_id] = {"running": False}
            self.channels[account.account_id] = FeishuChannel(
                account, self.config, status_sink=self._sink_for(account.account_id)
            )

    def _sink_for(self, account_id: str):
        def _sink(patch: dict[str, Any]) -> None:
            self.status.setdefault(account_id, {}).update(patch)

        return _sink

    def get_channel(self, account_id: str) -> FeishuChannel | None:
        return self.channels.get(account_id)

    @property
    def enabled_channels(self) -> list[str]:
        return list(self.channels)

    async def start_all(self) -> None:
        if not self.channels:
            logger.warning("No Feishu accounts enabled")
            return
        results = await asyncio.gather(
            *(ch.start() for ch in self.channels.values()), return_exceptions=True
        )
        for account_id, result in zip(self.channels, results):
            if isinstance(result, Exception):
                logger.error(f"[feishu:{account_id}] Failed to start: {result}")
                self.status[account_id].update(running=False, last_error=str(result))

    async def stop_all(self) -> None:
        for account_id, channel in self.channels.items():
            try:
                await channel.stop()
            except Exception as exc:
                logger.warning(f"[feishu:{account_id}] Error stopping: {exc}")
