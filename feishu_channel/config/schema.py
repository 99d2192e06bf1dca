"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

ConnectionMode = Literal["websocket", "webhook"]
FeishuDomain = Literal["feishu", "lark"]
DmPolicy = Literal["pairing", "allowlist", "open", "disabled"]


class FeishuGroupConfig(BaseModel):
    """Per-group overrides, keyed by chat_id (``oc_xxx``)."""

    # None → fall back to the account-level ``require_mention``
    require_mention: bool | None = None


class FeishuAccountConfig(BaseModel):
    """Settings for one Feishu/Lark bot application."""

    name: str = ""
    enabled: bool = True
    app_id: str = ""  # cli_xxx
    app_secret: str = ""
    encrypt_key: str = ""
    verification_token: str = ""
    connection_mode: ConnectionMode = "websocket"
    domain: FeishuDomain = "feishu"
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 3000
    webhook_path: str = "/feishu/events"
    dm_policy: DmPolicy = "pairing"
    allow_from: list[str] = Field(default_factory=list)  # open_id / union_id
    thinking_threshold_ms: int = 2500  # 0 disables the placeholder
    bot_names: list[str] = Field(default_factory=list)
    media_max_mb: float = 20.0
    groups: dict[str, FeishuGroupConfig] = Field(default_factory=dict)
    require_mention: bool = True

    @field_validator("allow_from", mode="before")
    @classmethod
    def _stringify_allow_from(cls, value: object) -> object:
        # Numeric user ids are accepted in JSON config
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return value


class FeishuConfig(FeishuAccountConfig):
    """``channels.feishu`` section: top-level defaults plus named accounts."""

    accounts: dict[str, FeishuAccountConfig] = Field(default_factory=dict)
    default_account: str = ""


class ChannelsConfig(BaseModel):
    feishu: FeishuConfig = Field(default_factory=FeishuConfig)


class Config(BaseModel):
    """Root configuration."""

    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
