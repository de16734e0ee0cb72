import os
import re
from pathlib import Path
from typing import List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_INTERVAL_PATTERN = re.compile(r"^\s*(?P<value>\d+)\s*(?P<unit>[smhd]?)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}

DEFAULT_TICK_SECONDS = 3600


class ConfigError(ValueError):
    """Raised when the startup configuration cannot be read or is invalid."""


def parse_interval(value: Union[str, int, float]) -> int:
    """Convert ``"1h"``, ``"30m"``, ``"45s"``, ``"2d"`` or plain seconds into seconds."""
    if isinstance(value, bool):
        raise ValueError(f"invalid interval: {value!r}")
    if isinstance(value, (int, float)):
        seconds = int(value)
    else:
        match = _INTERVAL_PATTERN.match(str(value))
        if not match:
            raise ValueError(f"invalid interval: {value!r}")
        seconds = int(match.group("value")) * _UNIT_SECONDS[match.group("unit").lower()]
    if seconds <= 0:
        raise ValueError(f"interval must be positive: {value!r}")
    return seconds


class PairConfig(BaseModel):
    pair: str = Field(min_length=1)
    interval: str = "1h"

    @field_validator("interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Union[str, int]) -> str:
        return str(value)

    @property
    def interval_seconds(self) -> Optional[int]:
        """Seconds for a recognised interval, ``None`` for free-form text."""
        try:
            return parse_interval(self.interval)
        except ValueError:
            return None


class TelegramConfig(BaseModel):
    bot_token: str = Field(min_length=1)
    chat_id: Union[int, str]

    @field_validator("chat_id")
    @classmethod
    def _check_chat_id(cls, value: Union[int, str]) -> Union[int, str]:
        if isinstance(value, int):
            return value
        text = value.strip()
        if text.startswith("@") and len(text) > 1:
            return text
        try:
            return int(text)
        except ValueError:
            raise ValueError("chat_id must be an integer or an @channel name") from None


class RedisConfig(BaseModel):
    url: str = "redis://localhost:6379"
    database: int = Field(default=0, ge=0)


class KrakenConfig(BaseModel):
    base_url: str = "https://api.kraken.com"
    timeout: float = Field(default=10.0, gt=0)


class ReplayConfig(BaseModel):
    chunk_size: int = Field(default=100, ge=1)
    delay_ms: int = Field(default=100, ge=0)


class RelayConfig(BaseModel):
    pairs: List[PairConfig] = Field(min_length=1)
    telegram: TelegramConfig
    redis: RedisConfig = Field(default_factory=RedisConfig)
    kraken: KrakenConfig = Field(default_factory=KrakenConfig)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)
    tick_interval: str = "1h"

    @field_validator("tick_interval", mode="before")
    @classmethod
    def _check_tick(cls, value: Union[str, int]) -> str:
        parse_interval(value)
        return str(value)

    @property
    def tick_seconds(self) -> int:
        return parse_interval(self.tick_interval)


class Config:
    """Environment-level settings; the YAML file holds everything else."""

    def __init__(self) -> None:
        load_dotenv()

        self.config_path: Path = Path(os.getenv("PRICE_RELAY_CONFIG", "config.yaml"))
        self.log_level: str = os.getenv("PRICE_RELAY_LOG_LEVEL", "INFO").upper()
        log_dir = os.getenv("PRICE_RELAY_LOG_DIR")
        self.log_dir: Optional[Path] = Path(log_dir) if log_dir else None

        self.telegram_bot_token: Optional[str] = self._get_optional_env("TELEGRAM_BOT_TOKEN")
        self.telegram_chat_id: Optional[str] = self._get_optional_env("TELEGRAM_CHAT_ID")
        self.redis_url: Optional[str] = self._get_optional_env("REDIS_URL")

    def _get_optional_env(self, var_name: str) -> Optional[str]:
        return os.getenv(var_name) or None


def _apply_env_overrides(raw: dict, env: Config) -> dict:
    if env.telegram_bot_token or env.telegram_chat_id:
        telegram = dict(raw.get("telegram") or {})
        if env.telegram_bot_token:
            telegram["bot_token"] = env.telegram_bot_token
        if env.telegram_chat_id:
            telegram["chat_id"] = env.telegram_chat_id
        raw["telegram"] = telegram
    if env.redis_url:
        redis = dict(raw.get("redis") or {})
        redis["url"] = env.redis_url
        raw["redis"] = redis
    return raw


def load_config(path: Optional[Path] = None, env: Optional[Config] = None) -> RelayConfig:
    env = env or config
    path = Path(path) if path else env.config_path
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Failed to parse {path}: expected a mapping at the top level")

    try:
        return RelayConfig.model_validate(_apply_env_overrides(raw, env))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc


config = Config()
