"""
Copy Monitor Configuration

Single validated configuration for the account monitor and the copy
trading engine. Every option is enumerated here with its default;
unknown options are rejected at construction.

All monetary values use Decimal. All configs are frozen.
"""

import os
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

DEFAULT_CLOB_HOST = "https://clob.polymarket.com"
DEFAULT_DATA_API_URL = "https://data-api.polymarket.com"
DEFAULT_GAMMA_API_URL = "https://gamma-api.polymarket.com"
POLYGON_CHAIN_ID = 137


class MonitorConfig(BaseModel):
    """Which account to watch and how often."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_address: str = Field(..., description="Account whose positions are mirrored")
    poll_interval_seconds: float = Field(
        30.0, gt=0, description="Seconds between polls (default 30s)"
    )

    @field_validator("target_address")
    @classmethod
    def validate_target_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target_address is required")
        return v


class ApiConfig(BaseModel):
    """Polymarket read-only API hosts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_api_url: str = DEFAULT_DATA_API_URL
    gamma_api_url: str = DEFAULT_GAMMA_API_URL
    timeout_seconds: float = Field(30.0, gt=0)
    page_limit: int = Field(100, gt=0, description="Positions per page")
    max_pages: int = Field(10, gt=0, description="Pagination safety cap")


class CopyTradingConfig(BaseModel):
    """
    Copy trading sizing, guards and execution mode.

    Defaults:
    - dry_run: True (safe default, nothing is submitted)
    - position_size_multiplier: 1.0
    - max_position_size / max_trade_size: unbounded (None)
    - min_trade_size: $1.00
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = False
    dry_run: bool = True
    private_key: Optional[SecretStr] = Field(
        None, description="Wallet key for order signing (live mode only)"
    )
    position_size_multiplier: Decimal = Field(Decimal("1.0"), gt=0)
    max_position_size: Optional[Decimal] = Field(None, gt=0)
    max_trade_size: Optional[Decimal] = Field(None, gt=0)
    min_trade_size: Decimal = Field(Decimal("1.0"), ge=0)
    chain_id: int = POLYGON_CHAIN_ID
    clob_host: str = DEFAULT_CLOB_HOST

    @model_validator(mode="after")
    def validate_combination(self) -> "CopyTradingConfig":
        if self.max_trade_size is not None and self.min_trade_size > self.max_trade_size:
            raise ValueError(
                f"min_trade_size ({self.min_trade_size}) must be <= max_trade_size ({self.max_trade_size})"
            )
        if self.enabled and not self.dry_run and not self.private_key:
            raise ValueError("private_key is required for live copy trading")
        return self


class AppConfig(BaseModel):
    """Master configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    monitor: MonitorConfig
    copy_trading: CopyTradingConfig = Field(default_factory=CopyTradingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "AppConfig":
        """
        Load config from environment variables (and .env when present).

        Unset variables fall back to the model defaults.

        Raises:
            pydantic.ValidationError: If a value is missing or invalid
        """
        if load_dotenv_file:
            from dotenv import load_dotenv

            load_dotenv()

        monitor = {"target_address": os.getenv("TARGET_ADDRESS", "")}
        _copy_env(monitor, "poll_interval_seconds", "POLL_INTERVAL_SECONDS")

        copy_trading = {}
        _copy_env(copy_trading, "enabled", "COPY_TRADING_ENABLED", _parse_bool)
        _copy_env(copy_trading, "dry_run", "DRY_RUN", _parse_bool)
        _copy_env(copy_trading, "private_key", "PRIVATE_KEY")
        _copy_env(copy_trading, "position_size_multiplier", "POSITION_SIZE_MULTIPLIER")
        _copy_env(copy_trading, "max_position_size", "MAX_POSITION_SIZE")
        _copy_env(copy_trading, "max_trade_size", "MAX_TRADE_SIZE")
        _copy_env(copy_trading, "min_trade_size", "MIN_TRADE_SIZE")
        _copy_env(copy_trading, "chain_id", "CHAIN_ID")
        _copy_env(copy_trading, "clob_host", "CLOB_HOST")

        api = {}
        _copy_env(api, "data_api_url", "DATA_API_URL")
        _copy_env(api, "gamma_api_url", "GAMMA_API_URL")

        return cls(
            monitor=MonitorConfig(**monitor),
            copy_trading=CopyTradingConfig(**copy_trading),
            api=ApiConfig(**api),
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _copy_env(target: dict, key: str, env_name: str, convert=None) -> None:
    """Set target[key] from env_name if the variable is set and non-empty."""
    value = os.getenv(env_name)
    if value is None or value.strip() == "":
        return
    target[key] = convert(value) if convert else value.strip()
