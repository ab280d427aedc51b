"""
Fungible tokens used as reward tokens, BLP tokens and lending underlyings.
"""

from .token import (
    MAX_UINT256,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    RewardToken,
    RewardTokenError,
)

__all__ = [
    "MAX_UINT256",
    "InsufficientAllowanceError",
    "InsufficientBalanceError",
    "RewardToken",
    "RewardTokenError",
]
