import pytest

from feishu_channel.config.schema import Config
from feishu_channel.runtime.reply import clear_feishu_runtime


@pytest.fixture(autouse=True)
def _reset_runtime():
    clear_feishu_runtime()
    yield
    clear_feishu_runtime()


@pytest.fixture
def config() -> Config:
    return Config()
