import json

import pytest

from feishu_channel.config.accounts import (
    list_feishu_account_ids,
    resolve_all_accounts,
    resolve_default_account_id,
    resolve_feishu_account,
)
from feishu_channel.config.loader import convert_keys, convert_to_camel, load_config
from feishu_channel.config.schema import Config

_ENV_VARS = (
    "FEISHU_APP_ID",
    "FEISHU_APP_SECRET",
    "FEISHU_ENCRYPT_KEY",
    "FEISHU_VERIFICATION_TOKEN",
    "FEISHU_DOMAIN",
    "FEISHU_CONNECTION_MODE",
    "FEISHU_WEBHOOK_PORT",
    "FEISHU_ALLOW_FROM",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _config(feishu: dict) -> Config:
    return Config.model_validate(convert_keys({"channels": {"feishu": feishu}}))


def test_single_account_uses_top_level_section() -> None:
    cfg = _config({"appId": "cli_a", "appSecret": " s3cret "})

    account = resolve_feishu_account(cfg)

    assert list_feishu_account_ids(cfg) == ["default"]
    assert account.account_id == "default"
    assert account.app_secret == "s3cret"
    assert account.token_source == "config"
    assert account.configured


def test_missing_credentials_report_no_token_source() -> None:
    account = resolve_feishu_account(Config())

    assert account.token_source == "none"
    assert not account.configured


def test_account_inherits_unset_fields_from_top_level() -> None:
    cfg = _config(
        {
            "domain": "lark",
            "thinkingThresholdMs": 1000,
            "accounts": {
                "work": {"appId": "cli_w", "appSecret": "w", "thinkingThresholdMs": 0},
                "home": {"appId": "cli_h", "appSecret": "h", "enabled": False},
            },
        }
    )

    work = resolve_feishu_account(cfg, "work")
    home = resolve_feishu_account(cfg, "home")

    assert list_feishu_account_ids(cfg) == ["home", "work"]
    assert work.config.domain == "lark"
    assert work.config.thinking_threshold_ms == 0
    assert home.config.thinking_threshold_ms == 1000
    assert work.enabled and not home.enabled


def test_default_account_prefers_configured_choice() -> None:
    cfg = _config({"defaultAccount": "b", "accounts": {"a": {}, "b": {}}})
    assert resolve_default_account_id(cfg) == "b"

    cfg = _config({"defaultAccount": "missing", "accounts": {"z": {}, "a": {}}})
    assert resolve_default_account_id(cfg) == "a"


def test_disabled_section_disables_every_account() -> None:
    cfg = _config({"enabled": False, "accounts": {"a": {"appId": "x", "appSecret": "y"}}})

    assert [a.enabled for a in resolve_all_accounts(cfg)] == [False]


def test_group_and_account_keys_are_not_case_converted() -> None:
    data = {"groups": {"oc_AbC": {"requireMention": False}}, "accounts": {"myBot": {"appId": "x"}}}

    converted = convert_keys(data)

    assert converted == {
        "groups": {"oc_AbC": {"require_mention": False}},
        "accounts": {"myBot": {"app_id": "x"}},
    }
    assert convert_to_camel(converted) == data


def test_load_config_reads_file_then_env(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"channels": {"feishu": {"appId": "cli_file", "connectionMode": "webhook"}}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("FEISHU_APP_SECRET", "from-env")
    monkeypatch.setenv("FEISHU_ALLOW_FROM", "ou_a, ou_b,")

    feishu = load_config(path).channels.feishu

    assert feishu.app_id == "cli_file"
    assert feishu.app_secret == "from-env"
    assert feishu.connection_mode == "webhook"
    assert feishu.allow_from == ["ou_a", "ou_b"]


def test_load_config_falls_back_to_defaults_on_bad_json(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_config(path).channels.feishu.app_id == ""


def test_numeric_allow_from_entries_are_kept_as_strings(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "channels": {
                    "feishu": {
                        "appId": "cli_a",
                        "appSecret": "s",
                        "dmPolicy": "allowlist",
                        "allowFrom": ["ou_x", 12345],
                    }
                }
            }
        ),
        encoding="utf-8",
    )

    feishu = load_config(path).channels.feishu

    assert feishu.app_id == "cli_a"
    assert feishu.allow_from == ["ou_x", "12345"]


def test_malformed_webhook_port_env_is_ignored(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("FEISHU_WEBHOOK_PORT", "eighty")
    monkeypatch.setenv("FEISHU_APP_ID", "cli_env")

    feishu = load_config(tmp_path / "absent.json").channels.feishu

    assert feishu.webhook_port == 3000
    assert feishu.app_id == "cli_env"
