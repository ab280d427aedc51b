"""
BLP staking: pools holding LP positions and their reward streams.
"""

from .blp_reward import (
    BLPReward,
    BLPRewardError,
    BLPSameTreasuryAddressError,
    BLPTreasuryIsZeroAddressError,
    CallerIsNotStakingPoolError,
)
from .pool import (
    BLPStakingPool,
    InsufficientStakeError,
    InvalidRewardDistributorManagerError,
    RewardDistributorIsZeroAddressError,
    StakeAmountIsZeroError,
    StakingPoolError,
    StakingRewardDistributorAlreadyExistError,
    StakingRewardDistributorDoesNotExistError,
    WithdrawAmountIsZeroError,
)

__all__ = [
    "BLPReward",
    "BLPStakingPool",
    # Pool errors
    "InsufficientStakeError",
    "InvalidRewardDistributorManagerError",
    "RewardDistributorIsZeroAddressError",
    "StakeAmountIsZeroError",
    "StakingPoolError",
    "StakingRewardDistributorAlreadyExistError",
    "StakingRewardDistributorDoesNotExistError",
    "WithdrawAmountIsZeroError",
    # Reward errors
    "BLPRewardError",
    "BLPSameTreasuryAddressError",
    "BLPTreasuryIsZeroAddressError",
    "CallerIsNotStakingPoolError",
]
