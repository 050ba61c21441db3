"""Bot configuration loaded from environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from dotenv import load_dotenv

_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_UINT_RE = re.compile(r"\+?\d+")
_ADDRESS_RE = re.compile(r"(?:0x)?([0-9a-fA-F]{40})")
_U64_MAX = 2**64 - 1


class OrderType(str, Enum):
    """Order time-in-force used when placing arbitrage orders."""

    GTC = "GTC"
    GTD = "GTD"
    FOK = "FOK"
    FAK = "FAK"


def parse_arbitrage_order_type(s: str) -> OrderType:
    """Parse an order type case-insensitively; unknown values give GTD."""
    try:
        return OrderType(s.strip().upper())
    except ValueError:
        return OrderType.GTD


def _parse_float(raw: Optional[str], default: float) -> float:
    if raw is not None and _FLOAT_RE.fullmatch(raw):
        return float(raw)
    return default


def _parse_uint(raw: Optional[str], default: int) -> int:
    if raw is not None and _UINT_RE.fullmatch(raw):
        value = int(raw)
        if value <= _U64_MAX:
            return value
    return default


def _parse_address(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    match = _ADDRESS_RE.fullmatch(raw)
    if match is None:
        return None
    return "0x" + match.group(1).lower()


def parse_slippage(s: str) -> tuple[float, float]:
    """Parse comma-separated slippage as (first, second).

    A single value applies to both; unparsable parts count as 0.0.
    """
    parts = [_parse_float(part.strip(), 0.0) for part in s.split(",")]
    if not parts:
        return (0.0, 0.01)
    if len(parts) == 1:
        return (parts[0], parts[0])
    return (parts[0], parts[1])


@dataclass
class Config:
    """Runtime settings for the arbitrage bot."""

    private_key: str
    proxy_address: Optional[str] = None
    min_profit_threshold: float = 0.001
    max_order_size_usdc: float = 100.0
    crypto_symbols: list[str] = field(
        default_factory=lambda: ["btc", "eth", "xrp", "sol"]
    )
    market_refresh_advance_secs: int = 5
    risk_max_exposure_usdc: float = 1000.0
    risk_imbalance_threshold: float = 0.1
    hedge_take_profit_pct: float = 0.05
    hedge_stop_loss_pct: float = 0.05
    arbitrage_execution_spread: float = 0.01
    slippage: tuple[float, float] = (0.0, 0.01)
    gtd_expiration_secs: int = 300
    arbitrage_order_type: OrderType = OrderType.GTD
    stop_arbitrage_before_end_minutes: int = 0
    merge_interval_minutes: int = 0
    min_yes_price_threshold: float = 0.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a config from ``environ`` (or the process environment plus .env)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        private_key = environ.get("POLYMARKET_PRIVATE_KEY")
        if private_key is None:
            raise ValueError("POLYMARKET_PRIVATE_KEY must be set")

        symbols = environ.get("CRYPTO_SYMBOLS", "btc,eth,xrp,sol")
        return cls(
            private_key=private_key,
            proxy_address=_parse_address(environ.get("POLYMARKET_PROXY_ADDRESS")),
            min_profit_threshold=_parse_float(environ.get("MIN_PROFIT_THRESHOLD"), 0.001),
            max_order_size_usdc=_parse_float(environ.get("MAX_ORDER_SIZE_USDC"), 100.0),
            crypto_symbols=[s.strip().lower() for s in symbols.split(",")],
            market_refresh_advance_secs=_parse_uint(
                environ.get("MARKET_REFRESH_ADVANCE_SECS"), 5
            ),
            risk_max_exposure_usdc=_parse_float(
                environ.get("RISK_MAX_EXPOSURE_USDC"), 1000.0
            ),
            risk_imbalance_threshold=_parse_float(
                environ.get("RISK_IMBALANCE_THRESHOLD"), 0.1
            ),
            hedge_take_profit_pct=_parse_float(environ.get("HEDGE_TAKE_PROFIT_PCT"), 0.05),
            hedge_stop_loss_pct=_parse_float(environ.get("HEDGE_STOP_LOSS_PCT"), 0.05),
            arbitrage_execution_spread=_parse_float(
                environ.get("ARBITRAGE_EXECUTION_SPREAD"), 0.01
            ),
            slippage=parse_slippage(environ.get("SLIPPAGE", "0,0.01")),
            gtd_expiration_secs=_parse_uint(environ.get("GTD_EXPIRATION_SECS"), 300),
            arbitrage_order_type=parse_arbitrage_order_type(
                environ.get("ARBITRAGE_ORDER_TYPE", "GTD")
            ),
            stop_arbitrage_before_end_minutes=_parse_uint(
                environ.get("STOP_ARBITRAGE_BEFORE_END_MINUTES"), 0
            ),
            merge_interval_minutes=_parse_uint(environ.get("MERGE_INTERVAL_MINUTES"), 0),
            min_yes_price_threshold=_parse_float(
                environ.get("MIN_YES_PRICE_THRESHOLD"), 0.0
            ),
        )