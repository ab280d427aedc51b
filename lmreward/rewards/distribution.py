"""
Distribution index primitives shared by the manager and the distributors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ..constants import DOUBLE


class Side(Enum):
    """Which half of a market an index tracks."""
    SUPPLY = "supply"
    BORROW = "borrow"

    @classmethod
    def of(cls, is_borrow: bool) -> "Side":
        return cls.BORROW if is_borrow else cls.SUPPLY

    @property
    def is_borrow(self) -> bool:
        return self is Side.BORROW


@dataclass
class DistributionState:
    """Cumulative reward per unit of eligible balance (DOUBLE-scaled)."""
    index: int = 0
    timestamp: int = 0

    def accrue(self, now: int, speed: int, eligible_total: int) -> bool:
        """
        Move the state to *now*. The index grows by
        ``speed × Δt × DOUBLE / eligible_total`` only when all three factors
        are non-zero; the timestamp always advances.

        Returns True if the index changed.
        """
        delta_t = now - self.timestamp
        grew = False
        if delta_t > 0 and speed > 0 and eligible_total > 0:
            self.index += speed * delta_t * DOUBLE // eligible_total
            grew = True
        if now > self.timestamp:
            self.timestamp = now
        return grew

    def to_dict(self) -> Dict[str, Any]:
        return {"index": str(self.index), "timestamp": self.timestamp}


def accrued(balance: int, index: int, snapshot: int) -> int:
    """Reward owed to *balance* for the index moving from *snapshot* to *index*."""
    if balance <= 0 or index <= snapshot:
        return 0
    return balance * (index - snapshot) // DOUBLE
