"""Chat channels module."""

from feishu_channel.channels.base import BaseChannel
from feishu_channel.channels.feishu import FeishuChannel
from feishu_channel.channels.manager import ChannelManager

__all__ = ["BaseChannel", "ChannelManager", "FeishuChannel"]
