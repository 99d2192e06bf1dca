"""Feishu/Lark channel – WebSocket long-connection + HTTP webhook support.

Supports:
- Private chat (p2p): every text message goes to the reply pipeline
- Group chat: reply when the bot is @mentioned or addressed by name,
  unless the group opts out of ``requireMention``
- A "thinking…" placeholder when the reply takes longer than a threshold
"""

from __future__ import annotations

import asyncio
import json
import socket
import threading
import time as _time
from typing import Any

import lark_oapi as lark
import uvicorn
from loguru import logger

from feishu_channel.bus.events import InboundMessage, ReplyPayload
from feishu_channel.channels.base import BaseChannel, StatusSink
from feishu_channel.channels.dedup import MessageDeduplicator
from feishu_channel.channels.domain import domain_label, resolve_lark_domain
from feishu_channel.channels.group_filter import (
    resolve_require_mention,
    should_respond_in_group,
    strip_mention_placeholders,
)
from feishu_channel.channels.placeholder import ThinkingPlaceholder
from feishu_channel.channels.send import FeishuSender
from feishu_channel.config.accounts import ResolvedFeishuAccount
from feishu_channel.config.schema import Config
from feishu_channel.runtime.reply import get_feishu_runtime
from feishu_channel.settings import ChannelSettings, get_settings


class FeishuChannel(BaseChannel):
    """Feishu/Lark channel for one bot account, using the lark-oapi SDK."""

    name = "feishu"

    def __init__(
        self,
        account: ResolvedFeishuAccount,
        config: Config,
        status_sink: StatusSink | None = None,
        *,
        client: Any = None,
        sender: FeishuSender | None = None,
        settings: ChannelSettings | None = None,
    ) -> None:
        super().__init__(account, config, status_sink)
        self.settings = settings or get_settings()
        self._client: Any = client
        self._sender: FeishuSender | None = sender
        self._event_handler: Any = None  # EventDispatcherHandler – shared by WS & webhook
        self._ws_client: Any = None
        self._ws_thread: threading.Thread | None = None
        self._webhook_server: uvicorn.Server | None = None
        self._webhook_task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._bot_open_id: str = ""
        self._dedup = MessageDeduplicator(
            max_entries=self.settings.dedup_max_entries,
            ttl_seconds=self.settings.dedup_ttl_seconds,
        )

    # ── helpers ──

    @property
    def connection_mode(self) -> str:
        return self.account.config.connection_mode

    @property
    def thinking_threshold_ms(self) -> int:
        return max(0, self.account.config.thinking_threshold_ms)

    @property
    def sender(self) -> FeishuSender:
        if self._sender is None:
            if self._client is None:
                raise RuntimeError(f"{self.log_prefix} Lark client not initialised")
            self._sender = FeishuSender(
                self._client, media_max_mb=self.account.config.media_max_mb
            )
        return self._sender

    def ensure_client(self) -> Any:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self) -> Any:
        return (
            lark.Client.builder()
            .app_id(self.account.app_id)
            .app_secret(self.account.app_secret)
            .domain(resolve_lark_domain(self.account.config.domain))
            .log_level(lark.LogLevel.INFO)
            .build()
        )

    # ── bot identity ──

    def _fetch_bot_open_id_sync(self) -> None:
        """Learn the bot's own open_id so group mentions can be matched exactly.

        On failure the group filter falls back to treating any mention as a
        mention of the bot.
        """
        try:
            bot = self.sender.fetch_bot_info_sync()
        except Exception as exc:
            logger.warning(f"{self.log_prefix} Failed to fetch bot open_id: {exc}")
            return
        open_id = str(bot.get("open_id", "") or "")
        if open_id:
            self._bot_open_id = open_id
            logger.info(f"{self.log_prefix} Bot open_id from API: {open_id}")

    # ── lifecycle ──

    def get_event_handler(self) -> Any:
        """Create / return the EventDispatcherHandler (usable before start)."""
        if self._event_handler is None:
            cfg = self.account.config
            self._event_handler = (
                lark.EventDispatcherHandler.builder(
                    cfg.encrypt_key or "",
                    cfg.verification_token or "",
                    lark.LogLevel.WARNING,
                )
                .register_p2_im_message_receive_v1(self._on_message_sync)
                .build()
            )
        return self._event_handler

    async def start(self) -> None:
        if not self.account.app_id or not self.account.app_secret:
            logger.error(f"{self.log_prefix} app_id / app_secret not configured")
            return
        if self._running:
            return

        cfg = self.account.config
        logger.info(
            f"{self.log_prefix} Starting {self.connection_mode} provider "
            f"(appId={self.account.app_id}, domain={cfg.domain})"
        )

        self._loop = asyncio.get_running_loop()
        self.ensure_client()
        await self._loop.run_in_executor(None, self._fetch_bot_open_id_sync)

        # Event dispatcher (reused by both WS and webhook paths)
        self.get_event_handler()

        if self.connection_mode == "webhook":
            self._start_webhook()
        else:
            self._start_websocket()

    def _start_websocket(self) -> None:
        label = domain_label(self.account.config.domain)
        self._ws_client = lark.ws.Client(
            self.account.app_id,
            self.account.app_secret,
            event_handler=self._event_handler,
            log_level=lark.LogLevel.INFO,
            domain=resolve_lark_domain(self.account.config.domain),
        )
        restart_delay = self.settings.ws_restart_delay_seconds
        self._running = True

        def _run_ws() -> None:
            while self._running:
                try:
                    self._ws_client.start()
                except Exception as exc:
                    logger.warning(f"{self.log_prefix} {label} WebSocket error: {exc}")
                    self.report_status(last_error=str(exc))
                if self._running:
                    _time.sleep(restart_delay)

        self._ws_thread = threading.Thread(
            target=_run_ws, name=f"feishu-ws-{self.account.account_id}", daemon=True
        )
        self._ws_thread.start()
        logger.info(f"{self.log_prefix} WebSocket client started")
        self.report_status(running=True, last_start_at=self.now(), mode="websocket")

    def _start_webhook(self) -> None:
        """Serve the event dispatcher over HTTP on the account's port/path."""
        from feishu_channel.api.app import create_app

        cfg = self.account.config
        app = create_app(self._event_handler, cfg.webhook_path, self.account.account_id)
        server = uvicorn.Server(
            uvicorn.Config(app, log_level="warning", lifespan="off")
        )

        # Bind here so a busy port fails start() instead of exiting inside uvicorn.
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((cfg.webhook_host, cfg.webhook_port))
        except OSError as exc:
            sock.close()
            logger.error(f"{self.log_prefix} Webhook server error: {exc}")
            self.report_status(running=False, last_error=str(exc))
            return

        self._webhook_server = server
        self._running = True
        self._webhook_task = asyncio.create_task(self._serve_webhook(server, sock))
        logger.info(
            f"{self.log_prefix} Webhook server listening on port "
            f"{cfg.webhook_port}, path {cfg.webhook_path}"
        )
        self.report_status(running=True, last_start_at=self.now(), mode="webhook")

    async def _serve_webhook(self, server: uvicorn.Server, sock: socket.socket) -> None:
        try:
            await server.serve(sockets=[sock])
        except Exception as exc:
            logger.error(f"{self.log_prefix} Webhook server error: {exc}")
            self.report_status(running=False, last_error=str(exc))
        finally:
            sock.close()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        if self._ws_client is not None:
            logger.info(f"{self.log_prefix} Stopping WebSocket provider")
            # lark.ws.Client has no public stop; the daemon thread exits with
            # the process once the restart loop sees _running == False.
            stop = getattr(self._ws_client, "stop", None)
            if callable(stop):
                try:
                    stop()
                except Exception as exc:
                    logger.warning(f"{self.log_prefix} Error stopping WS client: {exc}")

        if self._webhook_server is not None:
            logger.info(f"{self.log_prefix} Stopping Webhook server")
            self._webhook_server.should_exit = True
            if self._webhook_task is not None:
                await self._webhook_task
            self._webhook_server = None
            self._webhook_task = None

        self.report_status(running=False, last_stop_at=self.now())

    # ── inbound (receive) ──

    def _on_message_sync(self, data: Any) -> None:
        """Called by the SDK (WS thread or webhook route) → schedule on the loop."""
        if not self._running:
            # The WS thread outlives stop(); a stopped account drops events.
            logger.debug(f"{self.log_prefix} Event received after stop, dropped")
            return
        if self._loop and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self._on_message(data), self._loop)

    async def _on_message(self, data: Any) -> None:
        try:
            await self.handle_incoming_message(data)
        except Exception as exc:
            logger.error(f"{self.log_prefix} Message handler error: {exc}")

    def parse_message(self, data: Any) -> InboundMessage | None:
        """Extract a text message from an ``im.message.receive_v1`` event.

        Returns None for events that carry nothing to answer. Duplicate
        message ids are recorded and rejected here.
        """
        event = getattr(data, "event", data)
        message = getattr(event, "message", None)
        if message is None:
            return None

        chat_id = getattr(message, "chat_id", None)
        if not chat_id:
            return None

        message_id = getattr(message, "message_id", None)
        if self._dedup.is_duplicate(message_id):
            logger.debug(f"{self.log_prefix} Duplicate message {message_id} dropped")
            return None

        sender = getattr(event, "sender", None)
        if getattr(sender, "sender_type", "") == "bot":
            return None

        # Only text messages are answered
        raw_content = getattr(message, "content", None)
        if getattr(message, "message_type", None) != "text" or not raw_content:
            return None
        try:
            text = str(json.loads(raw_content).get("text") or "").strip()
        except (json.JSONDecodeError, TypeError, AttributeError):
            return None
        if not text:
            return None

        sender_ids = getattr(sender, "sender_id", None)
        sender_id = str(getattr(sender_ids, "open_id", "") or "")
        chat_type = getattr(message, "chat_type", None)
        return InboundMessage(
            message_id=str(message_id or ""),
            chat_id=chat_id,
            chat_type="direct" if chat_type == "p2p" else "group",
            sender_id=sender_id,
            content=text,
            account_id=self.account.account_id,
            mentions=list(getattr(message, "mentions", None) or []),
            raw=data,
        )

    def accepts(self, msg: InboundMessage) -> bool:
        """Apply the DM policy and the group-mention filter (may rewrite content)."""
        cfg = self.account.config
        if not msg.is_group:
            if not self.is_allowed_direct(msg.sender_id):
                logger.debug(
                    f"{self.log_prefix} Direct message from {msg.sender_id} "
                    f"rejected by dm_policy={cfg.dm_policy}"
                )
                return False
            return True

        msg.content = strip_mention_placeholders(msg.content)
        if not msg.content:
            return False
        if not resolve_require_mention(cfg, msg.chat_id):
            return True
        if should_respond_in_group(
            msg.content, msg.mentions, cfg.bot_names, self._bot_open_id
        ):
            return True
        logger.debug(f"{self.log_prefix} Group message in {msg.chat_id} not addressed to bot")
        return False

    async def handle_incoming_message(self, data: Any) -> None:
        """Handle a single incoming Feishu message event."""
        msg = self.parse_message(data)
        if msg is None or not self.accepts(msg):
            return

        self.report_status(last_inbound_at=self.now())
        logger.info(f"{self.log_prefix} Received from {msg.sender_id}: {msg.content[:80]}")

        runtime = get_feishu_runtime()
        if runtime.dispatch_reply is None:
            logger.error(f"{self.log_prefix} Reply dispatcher not available")
            return

        placeholder = ThinkingPlaceholder(self.sender, msg.chat_id, self.thinking_threshold_ms)

        async def deliver(payload: Any) -> None:
            reply = ReplyPayload.coerce(payload)
            await placeholder.settle()

            if reply.is_silent:
                await placeholder.discard()
                return

            self.report_status(last_outbound_at=self.now())
            try:
                if reply.media_url:
                    await placeholder.discard()
                    await self.sender.send_media(msg.chat_id, reply.media_url, reply.visible_text)
                else:
                    await placeholder.finish_with_text(reply.visible_text)
            except Exception as exc:
                logger.error(f"{self.log_prefix} Failed to send reply: {exc}")

        def on_error(exc: BaseException) -> None:
            placeholder.cancel()
            logger.error(f"{self.log_prefix} Dispatcher error: {exc}")

        placeholder.arm()
        try:
            await runtime.dispatch_reply(
                ctx=msg.to_context(),
                cfg=runtime.resolve_config(self.config),
                deliver=deliver,
                on_error=on_error,
            )
        except Exception as exc:
            logger.error(f"{self.log_prefix} Dispatch error: {exc}")
        finally:
            # Whatever path we took, a placeholder nobody claimed is recalled.
            await placeholder.discard()
