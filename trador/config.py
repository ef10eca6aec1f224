"""Configuration loading for Trador.

Settings live in ``~/.config/trador/config.toml`` (the directory can be
moved with the ``TRADOR_HOME`` environment variable). Every section is
optional; anything missing falls back to the defaults below.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from trador.errors import ConfigError

logger = logging.getLogger(__name__)


class TradingConfig(BaseModel):
    mode: Literal["paper", "live"] = "paper"
    starting_balance: float = Field(default=10.0, gt=0)
    trade_budget: Optional[float] = Field(default=None, gt=0)
    max_active_tokens: int = Field(default=5, ge=1)
    min_trade_size: float = Field(default=0.05, ge=0)
    trade_history_limit: int = Field(default=100, ge=1)

    def budget(self) -> float:
        """Capital the diversification cap is carved out of.

        Paper mode defaults to the starting balance when no explicit
        budget is configured.
        """
        if self.trade_budget is not None:
            return self.trade_budget
        return self.starting_balance if self.mode == "paper" else 1.0

    def position_cap(self) -> float:
        return self.budget() / self.max_active_tokens


class StrategyConfig(BaseModel):
    entry_delta_pct: float = 0.6
    first_target_pct: float = 20.0
    second_target_pct: float = 40.0
    reversal_delta_pct: float = -2.5
    stop_loss_pct: float = -15.0
    scale_out_fraction: float = Field(default=0.5, gt=0, lt=1)
    valuation_history_limit: int = Field(default=20, ge=4)
    price_history_limit: int = Field(default=60, ge=1)


class SchedulerConfig(BaseModel):
    refresh_interval: float = Field(default=5.0, gt=0)
    autopilot_interval: float = Field(default=12.0, gt=0)
    commentary_probability: float = Field(default=0.15, ge=0, le=1)


class MarketConfig(BaseModel):
    chain: str = "solana"
    min_liquidity: float = Field(default=10_000.0, ge=0)
    min_volume_24h: float = Field(default=50_000.0, ge=0)
    min_txns_24h: int = Field(default=100, ge=0)
    min_age_hours: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=10.0, gt=0)


class WalletConfig(BaseModel):
    signer: Optional[str] = Field(default=None, description="'module:factory' returning a WalletSigner")
    confirm_timeout: float = Field(default=60.0, gt=0)
    slippage_bps: int = Field(default=100, ge=0)


class AIConfig(BaseModel):
    enabled: bool = True
    model: Optional[str] = None


class TradorConfig(BaseModel):
    trading: TradingConfig = Field(default_factory=TradingConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    ai: AIConfig = Field(default_factory=AIConfig)


def get_home() -> Path:
    """Get the Trador configuration directory."""
    override = os.environ.get("TRADOR_HOME")
    if override:
        return Path(override)
    return Path.home() / ".config" / "trador"


def get_config_path() -> Path:
    return get_home() / "config.toml"


def get_db_path() -> Path:
    return get_home() / "trador.db"


def load_config(path: Optional[Path] = None) -> TradorConfig:
    """Load configuration from a TOML file.

    Args:
        path: Config file path. Defaults to ``get_config_path()``.

    Returns:
        Parsed configuration, defaults when the file does not exist or
        cannot be parsed.

    Raises:
        ConfigError: If the file parses but holds invalid values.
    """
    import toml

    config_path = path or get_config_path()
    if not config_path.exists():
        return TradorConfig()

    try:
        raw = toml.load(config_path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning("Could not read %s (%s), using defaults", config_path, e)
        return TradorConfig()

    try:
        return TradorConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
