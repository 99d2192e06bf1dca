import json

import pytest
import typer
from typer.testing import CliRunner

from feishu_channel import __version__
from feishu_channel.cli.commands import app, load_dispatcher
from feishu_channel.runtime.reply import echo_dispatcher

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_load_dispatcher_resolves_module_attribute() -> None:
    assert load_dispatcher("feishu_channel.runtime.reply:echo_dispatcher") is echo_dispatcher


@pytest.mark.parametrize(
    "ref",
    ["no_colon", "feishu_channel.runtime.reply:missing", "not_a_module_xyz:thing"],
)
def test_load_dispatcher_rejects_bad_refs(ref) -> None:
    with pytest.raises(typer.BadParameter):
        load_dispatcher(ref)


def test_accounts_lists_each_account(tmp_path, monkeypatch) -> None:
    for name in ("FEISHU_APP_ID", "FEISHU_APP_SECRET"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "channels": {
                    "feishu": {
                        "accounts": {
                            "work": {"appId": "cli_work_123456", "appSecret": "w"},
                            "hook": {"connectionMode": "webhook", "webhookPort": 8080},
                        }
                    }
                }
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["accounts", "--config", str(path)])

    assert result.exit_code == 0
    assert "work" in result.output
    assert "hook" in result.output
    assert ":8080" in result.output


def test_probe_without_credentials_exits_nonzero(tmp_path, monkeypatch) -> None:
    for name in ("FEISHU_APP_ID", "FEISHU_APP_SECRET"):
        monkeypatch.delenv(name, raising=False)

    result = runner.invoke(app, ["probe", "--config", str(tmp_path / "absent.json")])

    assert result.exit_code == 1
    assert "no app_id/app_secret" in result.output
