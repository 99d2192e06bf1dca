"""Outbound Feishu API calls: text, message update/delete, media upload."""

from __future__ import annotations

import asyncio
import io
import json
import mimetypes
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal
from urllib.parse import unquote, urlparse

import httpx
import lark_oapi as lark
from lark_oapi.api.im.v1 import (
    CreateFileRequest,
    CreateFileRequestBody,
    CreateImageRequest,
    CreateImageRequestBody,
    CreateMessageRequest,
    CreateMessageRequestBody,
    DeleteMessageRequest,
    UpdateMessageRequest,
    UpdateMessageRequestBody,
)
from lark_oapi.core.http import HttpMethod
from lark_oapi.core.model.base_request import BaseRequest
from loguru import logger

FeishuMediaType = Literal["image", "video", "audio", "file"]

_IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".ico", ".tiff"}
_AUDIO_EXTS = {".opus"}
_VIDEO_EXTS = {".mp4"}
# File extension → Feishu upload file_type
_FILE_TYPE_MAP = {
    ".opus": "opus", ".mp4": "mp4", ".pdf": "pdf",
    ".doc": "doc", ".xls": "xls", ".ppt": "ppt",
    ".docx": "doc", ".xlsx": "xls", ".pptx": "ppt",
}
_DOWNLOAD_TIMEOUT = 30.0


class FeishuApiError(RuntimeError):
    """A Feishu OpenAPI call returned a non-zero code."""

    def __init__(self, action: str, code: Any, msg: Any, log_id: str = "") -> None:
        self.action = action
        self.code = code
        self.msg = msg
        self.log_id = log_id
        super().__init__(f"{action} failed: code={code}, msg={msg}, log_id={log_id}")


@dataclass
class FeishuSendResult:
    ok: bool
    message_id: str = ""
    error: str = ""


@dataclass
class FeishuProbeResult:
    ok: bool
    elapsed_ms: int
    bot_name: str = ""
    bot_open_id: str = ""
    error: str = ""


@dataclass
class LoadedMedia:
    data: bytes
    file_name: str
    media_type: FeishuMediaType


def receive_id_type_for(receive_id: str) -> str:
    """Group chats are ``oc_`` chat ids; anything else is treated as an open_id."""
    return "chat_id" if receive_id.startswith("oc_") else "open_id"


def classify_media(file_name: str, content_type: str = "") -> FeishuMediaType:
    ext = Path(file_name).suffix.lower()
    if ext in _IMAGE_EXTS or content_type.startswith("image/"):
        return "image"
    if ext in _AUDIO_EXTS:
        return "audio"
    if ext in _VIDEO_EXTS or content_type == "video/mp4":
        return "video"
    return "file"


def _log_id(resp: Any) -> str:
    getter = getattr(resp, "get_log_id", None)
    return str(getter() or "") if callable(getter) else ""


class FeishuSender:
    """Thin async wrapper over the blocking ``lark.Client`` IM endpoints."""

    def __init__(self, client: Any, media_max_mb: float = 20.0) -> None:
        self.client = client
        self.media_max_bytes = int(media_max_mb * 1024 * 1024)

    async def _run(self, fn: Any, request: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, request)

    @staticmethod
    def _check(action: str, resp: Any) -> None:
        if not resp.success():
            raise FeishuApiError(action, resp.code, resp.msg, _log_id(resp))

    # ── messages ──

    async def send_message(self, receive_id: str, msg_type: str, content: str) -> str:
        """Create one message; returns its message_id."""
        req = (
            CreateMessageRequest.builder()
            .receive_id_type(receive_id_type_for(receive_id))
            .request_body(
                CreateMessageRequestBody.builder()
                .receive_id(receive_id)
                .msg_type(msg_type)
                .content(content)
                .build()
            )
            .build()
        )
        resp = await self._run(self.client.im.v1.message.create, req)
        self._check("Send message", resp)
        message_id = str(getattr(getattr(resp, "data", None), "message_id", "") or "")
        logger.debug(f"Sent {msg_type} to {receive_id} ({message_id})")
        return message_id

    async def send_text(self, receive_id: str, text: str) -> FeishuSendResult:
        content = json.dumps({"text": text}, ensure_ascii=False)
        message_id = await self.send_message(receive_id, "text", content)
        return FeishuSendResult(ok=True, message_id=message_id)

    async def update_message(self, message_id: str, text: str) -> FeishuSendResult:
        """Replace the content of a text message the bot sent earlier."""
        req = (
            UpdateMessageRequest.builder()
            .message_id(message_id)
            .request_body(
                UpdateMessageRequestBody.builder()
                .msg_type("text")
                .content(json.dumps({"text": text}, ensure_ascii=False))
                .build()
            )
            .build()
        )
        resp = await self._run(self.client.im.v1.message.update, req)
        self._check("Update message", resp)
        return FeishuSendResult(ok=True, message_id=message_id)

    async def delete_message(self, message_id: str) -> bool:
        """Recall a message. Best-effort: failures are logged, not raised."""
        if not message_id:
            return False
        try:
            req = DeleteMessageRequest.builder().message_id(message_id).build()
            resp = await self._run(self.client.im.v1.message.delete, req)
            self._check("Delete message", resp)
            return True
        except Exception as exc:
            logger.warning(f"Failed to delete message {message_id}: {exc}")
            return False

    # ── media ──

    def _too_large(self, file_name: str, size: int) -> ValueError:
        return ValueError(
            f"Media {file_name} is {size} bytes, "
            f"over the {self.media_max_bytes} byte limit"
        )

    async def _download(self, media_url: str, file_name: str) -> tuple[bytes, str]:
        """Stream an http(s) download, stopping once it exceeds the size cap."""
        async with httpx.AsyncClient(
            timeout=_DOWNLOAD_TIMEOUT, follow_redirects=True
        ) as http:
            async with http.stream("GET", media_url) as resp:
                resp.raise_for_status()
                content_type = resp.headers.get("content-type", "").split(";")[0].strip()
                declared = resp.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self.media_max_bytes:
                    raise self._too_large(file_name, int(declared))
                buf = bytearray()
                async for chunk in resp.aiter_bytes():
                    buf.extend(chunk)
                    if len(buf) > self.media_max_bytes:
                        raise self._too_large(file_name, len(buf))
        return bytes(buf), content_type

    async def load_media(self, media_url: str) -> LoadedMedia:
        """Fetch media bytes from an http(s) URL, a file:// URL or a local path."""
        parsed = urlparse(media_url)
        if parsed.scheme in ("http", "https"):
            file_name = Path(unquote(parsed.path)).name or "attachment"
            data, content_type = await self._download(media_url, file_name)
            if not Path(file_name).suffix and content_type:
                file_name += mimetypes.guess_extension(content_type) or ""
        else:
            path = Path(unquote(parsed.path) if parsed.scheme == "file" else media_url)
            path = path.expanduser()
            data = await asyncio.get_running_loop().run_in_executor(None, path.read_bytes)
            file_name = path.name
            content_type = mimetypes.guess_type(file_name)[0] or ""

        if len(data) > self.media_max_bytes:
            raise self._too_large(file_name, len(data))
        return LoadedMedia(data, file_name, classify_media(file_name, content_type))

    async def upload_image(self, data: bytes) -> str:
        req = (
            CreateImageRequest.builder()
            .request_body(
                CreateImageRequestBody.builder()
                .image_type("message")
                .image(io.BytesIO(data))
                .build()
            )
            .build()
        )
        resp = await self._run(self.client.im.v1.image.create, req)
        self._check("Upload image", resp)
        return resp.data.image_key

    async def upload_file(self, data: bytes, file_name: str) -> str:
        file_type = _FILE_TYPE_MAP.get(Path(file_name).suffix.lower(), "stream")
        req = (
            CreateFileRequest.builder()
            .request_body(
                CreateFileRequestBody.builder()
                .file_type(file_type)
                .file_name(file_name)
                .file(io.BytesIO(data))
                .build()
            )
            .build()
        )
        resp = await self._run(self.client.im.v1.file.create, req)
        self._check("Upload file", resp)
        return resp.data.file_key

    async def send_media(
        self, receive_id: str, media_url: str, caption: str = ""
    ) -> FeishuSendResult:
        """Upload *media_url* and send it, followed by *caption* as text."""
        media = await self.load_media(media_url)
        if media.media_type == "image":
            image_key = await self.upload_image(media.data)
            msg_type, content = "image", {"image_key": image_key}
        else:
            file_key = await self.upload_file(media.data, media.file_name)
            msg_type = {"audio": "audio", "video": "media"}.get(media.media_type, "file")
            content = {"file_key": file_key}

        message_id = await self.send_message(
            receive_id, msg_type, json.dumps(content, ensure_ascii=False)
        )
        caption = (caption or "").strip()
        if caption:
            await self.send_text(receive_id, caption)
        return FeishuSendResult(ok=True, message_id=message_id)

    # ── bot identity ──

    def fetch_bot_info_sync(self) -> dict[str, Any]:
        """``GET /open-apis/bot/v3/info`` → the ``bot`` object (blocking)."""
        req = BaseRequest()
        req.uri = "/open-apis/bot/v3/info"
        req.http_method = HttpMethod.GET
        req.token_types = {lark.AccessTokenType.TENANT}

        resp = self.client.request(req)
        if resp.code != 0 or not (resp.raw and resp.raw.content):
            raise FeishuApiError("Bot info", resp.code, getattr(resp, "msg", ""))
        data = json.loads(resp.raw.content)
        return data.get("bot", {}) or {}

    async def probe(self) -> FeishuProbeResult:
        """Check credentials by fetching the bot's own identity."""
        started = time.monotonic()
        try:
            loop = asyncio.get_running_loop()
            bot = await loop.run_in_executor(None, self.fetch_bot_info_sync)
        except Exception as exc:
            return FeishuProbeResult(
                ok=False,
                elapsed_ms=int((time.monotonic() - started) * 1000),
                error=str(exc),
            )
        return FeishuProbeResult(
            ok=True,
            elapsed_ms=int((time.monotonic() - started) * 1000),
            bot_name=str(bot.get("app_name") or bot.get("name") or ""),
            bot_open_id=str(bot.get("open_id", "")),
        )
