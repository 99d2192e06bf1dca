"""Configuration module for feishu-channel."""

from feishu_channel.config.accounts import (
    ResolvedFeishuAccount,
    list_feishu_account_ids,
    resolve_feishu_account,
)
from feishu_channel.config.loader import get_config_path, load_config
from feishu_channel.config.schema import Config, FeishuAccountConfig, FeishuConfig

__all__ = [
    "Config",
    "FeishuAccountConfig",
    "FeishuConfig",
    "ResolvedFeishuAccount",
    "get_config_path",
    "list_feishu_account_ids",
    "load_config",
    "resolve_feishu_account",
]
