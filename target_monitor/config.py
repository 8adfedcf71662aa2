import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from . import constants as C
from .exceptions import ConfigError
from .trading_session import parse_clock

load_dotenv()


class UpstreamConfig(BaseModel):
    base_url: str = Field(default=C.QUOTE_BASE_URL)
    timeout: float = Field(default=C.QUOTE_TIMEOUT, gt=0, lt=10, description="Hard per-call timeout (seconds)")
    max_retries: int = Field(default=C.QUOTE_MAX_RETRIES, ge=0, le=5)
    retry_delay: float = Field(default=C.QUOTE_RETRY_DELAY, ge=0)
    user_agent: str = Field(default=C.QUOTE_USER_AGENT)


class CacheConfig(BaseModel):
    max_entries: int = Field(default=C.CACHE_MAX_ENTRIES, ge=1)
    sweep_interval: float = Field(default=C.CACHE_SWEEP_INTERVAL, gt=0)
    max_age: float = Field(default=C.CACHE_MAX_AGE, gt=0)


class ThrottleConfig(BaseModel):
    min_interval: float = Field(default=C.MIN_REQUEST_INTERVAL, ge=0)


class SessionConfig(BaseModel):
    timezone: str = Field(default=C.EXCHANGE_TIMEZONE)
    market_open: str = Field(default=C.MARKET_OPEN)
    market_close: str = Field(default=C.MARKET_CLOSE)
    post_market_end: str = Field(default=C.POST_MARKET_END)
    trading_ttl: float = Field(default=C.TRADING_TTL, gt=0)
    post_market_ttl: float = Field(default=C.POST_MARKET_TTL, gt=0)
    closed_ttl: float = Field(default=C.CLOSED_TTL, gt=0)

    @field_validator('market_open', 'market_close', 'post_market_end')
    @classmethod
    def valid_clock(cls, v: str) -> str:
        try:
            parse_clock(v)
        except ValueError:
            raise ValueError(f'Expected HH:MM, got {v!r}')
        return v

    @model_validator(mode='after')
    def ordered_windows(self) -> "SessionConfig":
        if not (parse_clock(self.market_open) < parse_clock(self.market_close)
                <= parse_clock(self.post_market_end)):
            raise ValueError('Session times must satisfy open < close <= post_market_end')
        return self


class StoreConfig(BaseModel):
    path: str = Field(default="monitor_store.json")


class MonitorConfig(BaseModel):
    check_interval: int = Field(default=C.CHECK_INTERVAL, ge=1)
    dispatch_interval: int = Field(default=C.DISPATCH_INTERVAL, ge=0)


class TelegramConfig(BaseModel):
    bot_token: str = Field(..., min_length=10, description="Telegram bot token")
    chat_id: str = Field(..., min_length=1, description="Telegram chat ID")

    @field_validator('bot_token', 'chat_id')
    @classmethod
    def not_placeholder(cls, v: str) -> str:
        if v.startswith('YOUR_'):
            raise ValueError('Replace placeholder values in config')
        return v


class Config(BaseModel):
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    telegram: Optional[TelegramConfig] = None
    log_level: str = Field(default="INFO")

    @classmethod
    def load(cls, path: str = "config.yaml") -> "Config":
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(p.read_text()) or {}
        except Exception as e:
            raise ConfigError(f"Failed to parse YAML: {e}")

        # Environment variable overrides for sensitive data
        if bot := os.getenv("TELEGRAM_BOT_TOKEN"):
            raw.setdefault("telegram", {})["bot_token"] = bot
        if chat := os.getenv("TELEGRAM_CHAT_ID"):
            raw.setdefault("telegram", {})["chat_id"] = chat
        if base_url := os.getenv("QUOTE_BASE_URL"):
            raw.setdefault("upstream", {})["base_url"] = base_url
        if store_path := os.getenv("STORE_PATH"):
            raw.setdefault("store", {})["path"] = store_path

        try:
            return cls(**raw)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}")
