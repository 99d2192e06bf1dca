import pytest

from feishu_channel.channels.feishu import FeishuChannel
from feishu_channel.channels.manager import ChannelManager
from feishu_channel.config.loader import convert_keys
from feishu_channel.config.schema import Config


@pytest.fixture
def multi_config() -> Config:
    return Config.model_validate(
        convert_keys(
            {
                "channels": {
                    "feishu": {
                        "accounts": {
                            "work": {"appId": "cli_w", "appSecret": "w"},
                            "off": {"appId": "cli_o", "appSecret": "o", "enabled": False},
                            "blank": {},
                        }
                    }
                }
            }
        )
    )


def test_only_enabled_configured_accounts_get_channels(multi_config) -> None:
    manager = ChannelManager(multi_config)

    assert manager.enabled_channels == ["work"]
    assert manager.get_channel("off") is None
    assert manager.status == {"work": {"running": False}}


async def test_start_failure_is_recorded_per_account(multi_config, monkeypatch) -> None:
    async def _boom(self) -> None:
        raise RuntimeError("bad credentials")

    monkeypatch.setattr(FeishuChannel, "start", _boom)
    manager = ChannelManager(multi_config)

    await manager.start_all()

    assert manager.status["work"] == {"running": False, "last_error": "bad credentials"}


async def test_status_sink_feeds_manager_status(multi_config) -> None:
    manager = ChannelManager(multi_config)

    manager.get_channel("work").report_status(running=True, mode="websocket")

    assert manager.status["work"] == {"running": True, "mode": "websocket"}
