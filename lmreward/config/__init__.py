"""
lmreward Configuration

Loads config.toml (plus an optional per-network overlay).
Environment variables override TOML values.
"""

from .loader import (
    BLPRewardConfig,
    DistributorConfig,
    EligibilityConfig,
    LendingRewardConfig,
    LMRewardConfig,
    LoggingConfig,
    MarketConfig,
    MarketRewardConfig,
    PoolConfig,
    ValidSuppliesConfig,
    load_config,
    parse_amount,
)

__all__ = [
    "BLPRewardConfig",
    "DistributorConfig",
    "EligibilityConfig",
    "LendingRewardConfig",
    "LMRewardConfig",
    "LoggingConfig",
    "MarketConfig",
    "MarketRewardConfig",
    "PoolConfig",
    "ValidSuppliesConfig",
    "load_config",
    "parse_amount",
]
