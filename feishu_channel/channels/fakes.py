"""Test doubles for the Feishu channel: a recording sender and event builders."""

import asyncio
import json
from types import SimpleNamespace
from typing import Any

from feishu_channel.channels.send import FeishuSendResult, FeishuSender
from feishu_channel.config.accounts import ResolvedFeishuAccount
from feishu_channel.config.schema import FeishuAccountConfig


class FakeSender(FeishuSender):
    """Records outbound calls instead of hitting the Feishu API."""

    def __init__(self, send_delay: float = 0.0, fail_text: bool = False) -> None:
        super().__init__(client=None)
        self.send_delay = send_delay
        self.fail_text = fail_text
        self.fail_update = False
        self.calls: list[tuple[Any, ...]] = []
        self._next_id = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"om_{self._next_id}"

    async def send_text(self, receive_id: str, text: str) -> FeishuSendResult:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_text:
            raise RuntimeError("send failed")
        message_id = self._new_id()
        self.calls.append(("send_text", receive_id, text, message_id))
        return FeishuSendResult(ok=True, message_id=message_id)

    async def update_message(self, message_id: str, text: str) -> FeishuSendResult:
        if self.fail_update:
            raise RuntimeError("update failed")
        self.calls.append(("update", message_id, text))
        return FeishuSendResult(ok=True, message_id=message_id)

    async def delete_message(self, message_id: str) -> bool:
        self.calls.append(("delete", message_id))
        return True

    async def send_media(
        self, receive_id: str, media_url: str, caption: str = ""
    ) -> FeishuSendResult:
        self.calls.append(("send_media", receive_id, media_url, caption))
        return FeishuSendResult(ok=True, message_id=self._new_id())

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


def make_event(
    text: str = "hello",
    *,
    message_id: str = "om_in_1",
    chat_id: str = "oc_chat",
    chat_type: str = "p2p",
    sender_id: str = "ou_user",
    sender_type: str = "user",
    message_type: str = "text",
    mentions: list[Any] | None = None,
    content: str | None = None,
) -> SimpleNamespace:
    message = SimpleNamespace(
        message_id=message_id,
        chat_id=chat_id,
        chat_type=chat_type,
        message_type=message_type,
        content=content if content is not None else json.dumps({"text": text}),
        mentions=mentions,
    )
    sender = SimpleNamespace(
        sender_type=sender_type,
        sender_id=SimpleNamespace(open_id=sender_id),
    )
    return SimpleNamespace(event=SimpleNamespace(message=message, sender=sender))


def make_mention(open_id: str, key: str = "@_user_1", name: str = "bot") -> SimpleNamespace:
    return SimpleNamespace(key=key, name=name, id=SimpleNamespace(open_id=open_id))


def make_account(**overrides: Any) -> ResolvedFeishuAccount:
    cfg = FeishuAccountConfig(**{"app_id": "cli_test", "app_secret": "secret", **overrides})
    return ResolvedFeishuAccount(
        account_id="default",
        enabled=True,
        app_id=cfg.app_id,
        app_secret=cfg.app_secret,
        token_source="config",
        config=cfg,
    )

