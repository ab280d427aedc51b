"""
Eligibility engine: values BLP stake against valid-market supply.
"""

from .manager import (
    EligibilityManager,
    EligibilityManagerError,
    InvalidStakingPoolError,
    InvalidSupplyError,
    StakingPoolAlreadyExistError,
    StakingPoolDoesNotExistError,
    ValidSupplyAlreadyExistError,
    ValidSupplyDoesNotExistError,
)

__all__ = [
    "EligibilityManager",
    "EligibilityManagerError",
    "InvalidStakingPoolError",
    "InvalidSupplyError",
    "StakingPoolAlreadyExistError",
    "StakingPoolDoesNotExistError",
    "ValidSupplyAlreadyExistError",
    "ValidSupplyDoesNotExistError",
]
