"""Configuration management for the practical engine."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

PRACTICAL_HOME = Path(os.environ.get("PRACTICAL_HOME", Path.home() / "practical"))
CONFIG_FILE = PRACTICAL_HOME / "config" / "practical.conf"


@dataclass
class Config:
    """Engine configuration."""

    api_base_url: str = "http://localhost:3000/api"
    api_token: str = ""
    current_user_id: str = ""
    # Default per-remote-call timeout, in seconds
    request_timeout: float = 10.0
    urgent_days: int = 3
    max_key_areas: int = 9
    max_lists: int = 10


def _strip_value(value: str) -> str:
    """Handle quoted values with inline comments: "value" # comment"""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _number(key: str, value: str, default, cast):
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Invalid {key.upper()} value {value!r}, keeping {default}")
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from practical.conf, then apply environment overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _strip_value(value.strip())

            match key:
                case "api_base_url":
                    config.api_base_url = value.rstrip("/")
                case "api_token":
                    config.api_token = value
                case "current_user_id":
                    config.current_user_id = value
                case "request_timeout":
                    config.request_timeout = _number(key, value, config.request_timeout, float)
                case "urgent_days":
                    config.urgent_days = _number(key, value, config.urgent_days, int)
                case "max_key_areas":
                    config.max_key_areas = _number(key, value, config.max_key_areas, int)
                case "max_lists":
                    config.max_lists = _number(key, value, config.max_lists, int)

    if url := os.environ.get("PRACTICAL_API_BASE_URL"):
        config.api_base_url = url.rstrip("/")
    if token := os.environ.get("PRACTICAL_API_TOKEN"):
        config.api_token = token
    if user_id := os.environ.get("PRACTICAL_USER_ID"):
        config.current_user_id = user_id

    return config
