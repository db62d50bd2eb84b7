"""MarketLens — application configuration.

Loads .env variables into a typed config object.
Validates numeric ranges on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    trading_capital: float
    risk_per_trade_pct: float
    binance_base_url: str
    ema_period: int
    swing_lookback: int
    log_level: str
    health_port: int


def _validate(cfg: Config) -> None:
    if cfg.trading_capital <= 0:
        raise ValueError(
            f"TRADING_CAPITAL must be positive, got {cfg.trading_capital}"
        )
    if not 0 < cfg.risk_per_trade_pct <= 100:
        raise ValueError(
            f"TRADING_RISK_PCT must be in (0, 100], got {cfg.risk_per_trade_pct}"
        )
    if cfg.ema_period < 1:
        raise ValueError(f"EMA_PERIOD must be at least 1, got {cfg.ema_period}")
    if cfg.swing_lookback < 1:
        raise ValueError(
            f"SWING_LOOKBACK must be at least 1, got {cfg.swing_lookback}"
        )


def _env_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable is optional.  Raises ``ValueError`` naming the variable
    when a value is malformed or out of range.
    """
    load_dotenv(dotenv_path=env_path)

    cfg = Config(
        trading_capital=_env_number("TRADING_CAPITAL", "144", float),
        risk_per_trade_pct=_env_number("TRADING_RISK_PCT", "2", float),
        binance_base_url=os.environ.get(
            "BINANCE_BASE_URL", "https://api.binance.com"
        ).rstrip("/"),
        ema_period=_env_number("EMA_PERIOD", "200", int),
        swing_lookback=_env_number("SWING_LOOKBACK", "5", int),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=_env_number("HEALTH_PORT", "8080", int),
    )
    _validate(cfg)
    return cfg
