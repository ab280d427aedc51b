"""
Liquidity-mining reward accounting: the eligible-balance ledger
(RewardDistributorManager) and per-token index distributors.
"""

from .distribution import DistributionState, Side, accrued
from .distributor import (
    DistributionPausedError,
    InvalidRewardTokenError,
    MarketNotListedError,
    RatioTooHighError,
    RewardDistributor,
    RewardDistributorError,
    SameTreasuryAddressError,
    TreasuryIsZeroAddressError,
)
from .manager import (
    InvalidEligibilityManagerError,
    InvalidRewardDistributorError,
    RewardDistributorAlreadyExistError,
    RewardDistributorDoesNotExistError,
    RewardDistributorManager,
    RewardDistributorManagerError,
    SameEligibilityManagerError,
)

__all__ = [
    # Core
    "RewardDistributor",
    "RewardDistributorManager",
    # Index primitives
    "DistributionState",
    "Side",
    "accrued",
    # Distributor errors
    "DistributionPausedError",
    "InvalidRewardTokenError",
    "MarketNotListedError",
    "RatioTooHighError",
    "RewardDistributorError",
    "SameTreasuryAddressError",
    "TreasuryIsZeroAddressError",
    # Manager errors
    "InvalidEligibilityManagerError",
    "InvalidRewardDistributorError",
    "RewardDistributorAlreadyExistError",
    "RewardDistributorDoesNotExistError",
    "RewardDistributorManagerError",
    "SameEligibilityManagerError",
]
