"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger

from feishu_channel.config.schema import Config

# Load .env into os.environ (won't overwrite existing env vars)
load_dotenv(override=False)


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".feishu-channel" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, then apply env-var overrides.

    Priority (highest → lowest):
        1. FEISHU_* environment variables / .env
        2. ~/.feishu-channel/config.json
        3. Built-in defaults
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            config = Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}; using defaults")
            config = Config()
    else:
        config = Config()

    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply flat FEISHU_* env vars to the top-level Feishu section."""
    feishu = config.channels.feishu

    if val := os.environ.get("FEISHU_APP_ID"):
        feishu.app_id = val
    if val := os.environ.get("FEISHU_APP_SECRET"):
        feishu.app_secret = val
    if val := os.environ.get("FEISHU_ENCRYPT_KEY"):
        feishu.encrypt_key = val
    if val := os.environ.get("FEISHU_VERIFICATION_TOKEN"):
        feishu.verification_token = val
    if val := os.environ.get("FEISHU_DOMAIN"):
        if val.lower() in ("feishu", "lark"):
            feishu.domain = val.lower()  # type: ignore[assignment]
    if val := os.environ.get("FEISHU_CONNECTION_MODE"):
        if val.lower() in ("websocket", "webhook"):
            feishu.connection_mode = val.lower()  # type: ignore[assignment]
    if val := os.environ.get("FEISHU_WEBHOOK_PORT"):
        try:
            feishu.webhook_port = int(val)
        except ValueError:
            logger.warning(f"Ignoring FEISHU_WEBHOOK_PORT={val!r}: not an integer")
    if val := os.environ.get("FEISHU_ALLOW_FROM"):
        feishu.allow_from = [v.strip() for v in val.split(",") if v.strip()]


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    # Convert to camelCase format
    data = config.model_dump()
    data = convert_to_camel(data)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


# Keys under these parents are user data (chat ids, account ids), not field names.
_OPAQUE_KEY_PARENTS = frozenset({"accounts", "groups"})


def convert_keys(data: Any, _parent: str = "") -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        if _parent in _OPAQUE_KEY_PARENTS:
            return {k: convert_keys(v) for k, v in data.items()}
        return {
            camel_to_snake(k): convert_keys(v, camel_to_snake(k))
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any, _parent: str = "") -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        if _parent in _OPAQUE_KEY_PARENTS:
            return {k: convert_to_camel(v) for k, v in data.items()}
        return {snake_to_camel(k): convert_to_camel(v, k) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
