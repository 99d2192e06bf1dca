"""Event types exchanged between the channel and the host reply pipeline."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

NO_REPLY = "NO_REPLY"

CHANNEL_NAME = "feishu"


@dataclass
class InboundMessage:
    """Text message received from a Feishu chat."""

    message_id: str  # dedup key
    chat_id: str
    chat_type: str  # "direct" | "group"
    sender_id: str  # open_id
    content: str
    account_id: str = "default"
    timestamp: datetime = field(default_factory=datetime.now)
    mentions: list[Any] = field(default_factory=list)
    raw: Any = None  # SDK event payload

    @property
    def is_group(self) -> bool:
        return self.chat_type == "group"

    @property
    def session_key(self) -> str:
        """Direct chats are keyed by sender, groups by chat."""
        return f"{CHANNEL_NAME}:{self.chat_id if self.is_group else self.sender_id}"

    def to_context(self) -> dict[str, Any]:
        """Normalized inbound context handed to the host reply dispatcher."""
        return {
            "Body": self.content,
            "RawBody": self.content,
            "CommandBody": self.content,
            "From": self.sender_id,
            "To": self.chat_id,
            "SessionKey": self.session_key,
            "AccountId": self.account_id,
            "MessageSid": self.message_id,
            "ChatType": self.chat_type,
            "ConversationLabel": self.chat_id,
            "SenderId": self.sender_id,
            "CommandAuthorized": True,
            "Provider": CHANNEL_NAME,
            "Surface": CHANNEL_NAME,
            "OriginatingChannel": CHANNEL_NAME,
            "OriginatingTo": self.chat_id,
            "DeliveryContext": {
                "channel": CHANNEL_NAME,
                "to": self.chat_id,
                "accountId": self.account_id,
            },
        }


@dataclass
class ReplyPayload:
    """One reply block delivered by the host."""

    text: str = ""
    media_url: str | None = None

    @classmethod
    def coerce(cls, payload: Any) -> "ReplyPayload":
        """Accept a bare string, a mapping or an object with text/media attrs."""
        if payload is None:
            return cls()
        if isinstance(payload, ReplyPayload):
            return payload
        if isinstance(payload, str):
            return cls(text=payload)
        if isinstance(payload, Mapping):
            get = payload.get
        else:
            def get(key: str, default: Any = None) -> Any:
                return getattr(payload, key, default)

        text = get("text") or get("body") or ""
        media_url = get("mediaUrl") or get("media_url")
        if not media_url:
            urls = get("mediaUrls") or get("media_urls") or []
            media_url = urls[0] if urls else None
        return cls(text=str(text), media_url=media_url or None)

    @property
    def visible_text(self) -> str:
        """Trimmed text, or "" when the host signalled NO_REPLY."""
        trimmed = (self.text or "").strip()
        if trimmed.endswith(NO_REPLY):
            return ""
        return trimmed

    @property
    def is_silent(self) -> bool:
        """True when there is nothing to send (empty or NO_REPLY text, no media)."""
        return not self.media_url and not self.visible_text
