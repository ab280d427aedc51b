"""
Lending protocol collaborators.

Interfaces the reward engine depends on, plus in-memory reference
implementations (oracle, markets, controller) used to drive it.
"""

from .controller import InMemoryController
from .interfaces import (
    LendingController,
    LendingHookSink,
    LendingMarket,
    PriceOracle,
    StakingPool,
)
from .market import (
    InMemoryMarket,
    InsufficientSharesError,
    MarketError,
    RepayExceedsBorrowError,
)
from .oracle import SimplePriceOracle

__all__ = [
    # Interfaces
    "LendingController",
    "LendingHookSink",
    "LendingMarket",
    "PriceOracle",
    "StakingPool",
    # Reference implementations
    "InMemoryController",
    "InMemoryMarket",
    "SimplePriceOracle",
    # Errors
    "InsufficientSharesError",
    "MarketError",
    "RepayExceedsBorrowError",
]
