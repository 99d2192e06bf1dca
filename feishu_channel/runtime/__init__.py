"""Host runtime registration."""

from feishu_channel.runtime.reply import (
    EchoReplyDispatcher,
    FeishuRuntime,
    ReplyDispatcher,
    clear_feishu_runtime,
    get_feishu_runtime,
    set_feishu_runtime,
)

__all__ = [
    "EchoReplyDispatcher",
    "FeishuRuntime",
    "ReplyDispatcher",
    "clear_feishu_runtime",
    "get_feishu_runtime",
    "set_feishu_runtime",
]
