"""Inbound/outbound event types for the reply pipeline."""

from feishu_channel.bus.events import NO_REPLY, InboundMessage, ReplyPayload

__all__ = ["InboundMessage", "ReplyPayload", "NO_REPLY"]
