"""Decide whether the bot should answer a group-chat message."""

import re
from collections.abc import Sequence
from typing import Any

from feishu_channel.config.schema import FeishuAccountConfig

# Feishu replaces @mentions in text content with placeholders like "@_user_1"
_MENTION_PLACEHOLDER_RE = re.compile(r"@_user_\d+\s*")


def strip_mention_placeholders(text: str) -> str:
    return _MENTION_PLACEHOLDER_RE.sub("", text or "").strip()


def _mention_open_id(mention: Any) -> str:
    if isinstance(mention, dict):
        mid = mention.get("id") or {}
        return str(mid.get("open_id", "") if isinstance(mid, dict) else "")
    mid = getattr(mention, "id", None)
    return str(getattr(mid, "open_id", "") or "") if mid is not None else ""


def is_bot_mentioned(mentions: Sequence[Any] | None, bot_open_id: str = "") -> bool:
    """True if any mention targets the bot.

    Without a known bot open_id every mention counts: a bot only receives
    group messages that @ someone when it lacks the read-all-messages scope.
    """
    if not mentions:
        return False
    if not bot_open_id:
        return True
    return any(_mention_open_id(m) == bot_open_id for m in mentions)


def mentions_bot_name(text: str, bot_names: Sequence[str] | None) -> bool:
    lowered = (text or "").lower()
    names = (name.strip().lower() for name in bot_names or ())
    return any(name and name in lowered for name in names)


def should_respond_in_group(
    text: str,
    mentions: Sequence[Any] | None,
    bot_names: Sequence[str] | None = None,
    bot_open_id: str = "",
) -> bool:
    """Respond when the bot is @-mentioned or addressed by one of its names."""
    if is_bot_mentioned(mentions, bot_open_id):
        return True
    return mentions_bot_name(text, bot_names)


def resolve_require_mention(config: FeishuAccountConfig, chat_id: str) -> bool:
    """Per-group ``require_mention`` wins over the account default."""
    group = config.groups.get(chat_id)
    if group is not None and group.require_mention is not None:
        return group.require_mention
    return config.require_mention
