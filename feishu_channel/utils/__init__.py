"""Utility functions for feishu-channel."""

from feishu_channel.utils.log import configure_logging

__all__ = ["configure_logging"]
