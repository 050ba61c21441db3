"""Market discovery, arbitrage detection and position and risk tracking for hourly up-or-down prediction markets."""

__version__ = "0.1.0"