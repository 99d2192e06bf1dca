"""Multi-account resolution for the ``channels.feishu`` section."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from feishu_channel.config.schema import Config, FeishuAccountConfig

DEFAULT_ACCOUNT_ID = "default"

TokenSource = Literal["config", "none"]


@dataclass
class ResolvedFeishuAccount:
    """An account with top-level defaults merged in, ready for use."""

    account_id: str
    enabled: bool
    app_id: str
    app_secret: str
    token_source: TokenSource
    config: FeishuAccountConfig
    name: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_secret)


def list_feishu_account_ids(cfg: Config) -> list[str]:
    """Account ids declared under ``accounts``, or the implicit default one."""
    accounts = cfg.channels.feishu.accounts
    if not accounts:
        return [DEFAULT_ACCOUNT_ID]
    return sorted(accounts)


def resolve_default_account_id(cfg: Config) -> str:
    ids = list_feishu_account_ids(cfg)
    preferred = cfg.channels.feishu.default_account
    if preferred and preferred in ids:
        return preferred
    if DEFAULT_ACCOUNT_ID in ids:
        return DEFAULT_ACCOUNT_ID
    return ids[0]


def resolve_feishu_account(
    cfg: Config, account_id: str | None = None
) -> ResolvedFeishuAccount:
    """Merge top-level Feishu settings with one account's overrides.

    Only fields explicitly set on the account override the top level, so an
    account block may carry just ``appId``/``appSecret`` and inherit the rest.
    """
    feishu = cfg.channels.feishu
    account_id = account_id or resolve_default_account_id(cfg)

    base = feishu.model_dump(exclude={"accounts", "default_account"})
    override = feishu.accounts.get(account_id)
    if override is not None:
        base.update(override.model_dump(include=override.model_fields_set))
    merged = FeishuAccountConfig.model_validate(base)

    enabled = feishu.enabled and (override.enabled if override is not None else True)
    token_source: TokenSource = (
        "config" if merged.app_id and merged.app_secret else "none"
    )
    return ResolvedFeishuAccount(
        account_id=account_id,
        name=merged.name,
        enabled=enabled,
        app_id=merged.app_id.strip(),
        app_secret=merged.app_secret.strip(),
        token_source=token_source,
        config=merged,
    )


def resolve_all_accounts(cfg: Config) -> list[ResolvedFeishuAccount]:
    return [resolve_feishu_account(cfg, aid) for aid in list_feishu_account_ids(cfg)]
