"""The "thinking…" placeholder shown while a reply is being generated."""

from __future__ import annotations

import asyncio

from loguru import logger

from feishu_channel.channels.send import FeishuSender

PLACEHOLDER_TEXT = "正在思考…"


class ThinkingPlaceholder:
    """Races a timer against reply delivery for one inbound message.

    If no reply has been delivered after ``threshold_ms``, a placeholder text
    message is sent. Whoever settles the placeholder then owns it: the final
    text replaces it via :meth:`finish_with_text`, or :meth:`discard` recalls
    it. A send that is already in flight when the reply arrives is awaited, so
    its message id is never lost.
    """

    def __init__(
        self,
        sender: FeishuSender,
        chat_id: str,
        threshold_ms: int,
        text: str = PLACEHOLDER_TEXT,
    ) -> None:
        self.sender = sender
        self.chat_id = chat_id
        self.threshold_ms = threshold_ms
        self.text = text
        self.message_id = ""
        self._done = False
        self._sending = False
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self._done

    def arm(self) -> None:
        if self.threshold_ms <= 0 or self._task is not None or self._done:
            return
        self._task = asyncio.create_task(self._fire())

    async def _fire(self) -> None:
        await asyncio.sleep(self.threshold_ms / 1000)
        if self._done:
            return
        self._sending = True
        try:
            result = await self.sender.send_text(self.chat_id, self.text)
            self.message_id = result.message_id
        except Exception as exc:
            # Placeholder is cosmetic; the real reply still goes out.
            logger.debug(f"Placeholder send to {self.chat_id} failed: {exc}")

    def cancel(self) -> None:
        """Mark the reply as finished and stop a timer that has not fired yet."""
        self._done = True
        if self._task is not None and not self._task.done() and not self._sending:
            self._task.cancel()

    async def settle(self) -> str:
        """Stop the timer, wait for any in-flight send, return the placeholder id."""
        self.cancel()
        task = self._task
        if task is not None and not task.done():
            # wait() leaves our own cancellation alone and never cancels the timer task
            await asyncio.wait({task})
        return self.message_id

    def take(self) -> str:
        """Hand over the placeholder id; the caller becomes responsible for it."""
        message_id, self.message_id = self.message_id, ""
        return message_id

    async def discard(self) -> None:
        """Recall the placeholder if one was sent."""
        await self.settle()
        message_id = self.take()
        if message_id:
            await self.sender.delete_message(message_id)

    async def finish_with_text(self, text: str) -> None:
        """Turn the placeholder into *text*, or send *text* as a new message."""
        await self.settle()
        message_id = self.take()
        if not message_id:
            await self.sender.send_text(self.chat_id, text)
            return
        try:
            await self.sender.update_message(message_id, text)
        except Exception as exc:
            logger.warning(f"Updating placeholder {message_id} failed: {exc}")
            await self.sender.delete_message(message_id)
            await self.sender.send_text(self.chat_id, text)
