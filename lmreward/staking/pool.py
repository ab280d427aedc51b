"""
BLP Staking Pool

Holds staked BLP (LP) tokens. Positions here are what the eligibility
engine values against an account's lending supply, so every stake and
withdraw:

    1. settles the pool's BLPReward streams for the account
    2. moves the LP tokens and updates the position
    3. asks the reward distributor manager (if set) to refresh the
       account's eligibility
"""

from typing import TYPE_CHECKING, Dict, List, Optional

from ..exceptions import (
    AlreadyExistsError,
    DoesNotExistError,
    InvalidCapabilityError,
    InvalidParameterError,
    LMRewardError,
    ZeroAddressError,
)
from ..logger import get_logger
from ..state import Clock, Ownable, transaction
from ..tokens.token import RewardToken
from ..utils.address import is_zero_address, to_address
from ..utils.ordered_set import AddressSet

if TYPE_CHECKING:
    from ..rewards.manager import RewardDistributorManager
    from .blp_reward import BLPReward

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class StakingPoolError(LMRewardError):
    """Base exception for staking pool operations."""


class StakeAmountIsZeroError(StakingPoolError, InvalidParameterError):
    """Stake of zero tokens."""


class WithdrawAmountIsZeroError(StakingPoolError, InvalidParameterError):
    """Withdraw of zero tokens."""


class InsufficientStakeError(StakingPoolError, InvalidParameterError):
    """Withdraw larger than the staked position."""


class RewardDistributorIsZeroAddressError(StakingPoolError, ZeroAddressError):
    """Distributor cannot be the zero address."""


class StakingRewardDistributorAlreadyExistError(StakingPoolError, AlreadyExistsError):
    """Distributor is already attached to the pool."""


class StakingRewardDistributorDoesNotExistError(StakingPoolError, DoesNotExistError):
    """Distributor is not attached to the pool."""


class InvalidRewardDistributorManagerError(StakingPoolError, InvalidCapabilityError):
    """Candidate cannot refresh eligible balances."""


# ══════════════════════════════════════════════════════════════════════
#  STAKING POOL
# ══════════════════════════════════════════════════════════════════════

class BLPStakingPool(Ownable):
    """Staking pool for one BLP token."""

    _STATE_FIELDS = Ownable._STATE_FIELDS + ("_total_supply", "_balances", "_distributor_set")
    _REF_FIELDS = ("_distributors", "reward_distributor_manager")

    def __init__(
        self,
        owner: str,
        lp_token: RewardToken,
        clock: Clock,
        address: Optional[str] = None,
    ):
        super().__init__(owner, clock, address=address, label=f"staking-pool:{lp_token.symbol}")
        self.lp_token = lp_token
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._distributor_set = AddressSet()
        self._distributors: Dict[str, "BLPReward"] = {}
        self.reward_distributor_manager: Optional["RewardDistributorManager"] = None

    # ── Views ─────────────────────────────────────────────────────────

    def is_staking_pool(self) -> bool:
        return True

    @property
    def staking_token(self) -> str:
        return self.lp_token.address

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def get_reward_distributors(self) -> List[str]:
        return self._distributor_set.values()

    def _distributor_list(self) -> List["BLPReward"]:
        return [self._distributors[a] for a in self._distributor_set]

    # ── Hooks around a balance change ─────────────────────────────────

    def _before_balance_change(self, account: str) -> None:
        for distributor in self._distributor_list():
            distributor.update_reward(self.address, account)

    def _after_balance_change(self, account: str) -> None:
        if self.reward_distributor_manager is not None:
            self.reward_distributor_manager.update_eligible_balance(account)

    def _transaction(self):
        distributors = self._distributor_list()
        return transaction(self, self.lp_token, *distributors)

    # ── Staking ───────────────────────────────────────────────────────

    def stake(self, caller: str, recipient: str, amount: int) -> None:
        """Pull *amount* LP from the caller and credit it to *recipient*."""
        if amount <= 0:
            raise StakeAmountIsZeroError("Stake amount is zero")
        recipient = to_address(recipient)
        with self._transaction():
            self._before_balance_change(recipient)
            self.lp_token.transfer_from(self.address, caller, self.address, amount)
            self._total_supply += amount
            self._balances[recipient] = self.balance_of(recipient) + amount
            self._emit(
                "Staked", spender=caller, recipient=recipient,
                amount=amount, total=self.balance_of(recipient),
            )
            self._after_balance_change(recipient)
        logger.debug("Staked %d %s for %s", amount, self.lp_token.symbol, recipient)

    def withdraw(self, caller: str, amount: int) -> None:
        if amount <= 0:
            raise WithdrawAmountIsZeroError("Withdraw amount is zero")
        balance = self.balance_of(caller)
        if amount > balance:
            raise InsufficientStakeError(f"{caller} staked {balance}, cannot withdraw {amount}")
        with self._transaction():
            self._before_balance_change(caller)
            self._total_supply -= amount
            self._balances[caller] = balance - amount
            self.lp_token.transfer(self.address, caller, amount)
            self._emit("Withdrawn", recipient=caller, amount=amount, total=self.balance_of(caller))
            self._after_balance_change(caller)
        logger.debug("Withdrawn %d %s for %s", amount, self.lp_token.symbol, caller)

    # ── Admin ─────────────────────────────────────────────────────────

    def _add_reward_distributor(self, caller: str, distributor: "BLPReward") -> None:
        self._require_owner(caller)
        if distributor is None or is_zero_address(getattr(distributor, "address", distributor)):
            raise RewardDistributorIsZeroAddressError("Reward distributor is the zero address")
        if not self._distributor_set.add(distributor.address):
            raise StakingRewardDistributorAlreadyExistError(
                f"Reward distributor {distributor.address} already exists"
            )
        self._distributors[distributor.address] = distributor
        self._emit("AddRewardDistributor", distributor=distributor.address)
        logger.info("%s: added BLP reward %s", self.lp_token.symbol, distributor.address)

    def _remove_reward_distributor(self, caller: str, distributor) -> None:
        self._require_owner(caller)
        address = to_address(distributor)
        if not self._distributor_set.remove(address):
            raise StakingRewardDistributorDoesNotExistError(
                f"Reward distributor {address} does not exist"
            )
        del self._distributors[address]
        self._emit("RemoveRewardDistributor", distributor=address)

    def _set_reward_distributor_manager(self, caller: str, manager: "RewardDistributorManager") -> None:
        self._require_owner(caller)
        if not callable(getattr(manager, "update_eligible_balance", None)):
            raise InvalidRewardDistributorManagerError(f"{manager!r} is not a reward distributor manager")
        self.reward_distributor_manager = manager
        self._emit("NewRewardDistributorManager", manager=manager.address)
        logger.info("%s: reward distributor manager set to %s", self.lp_token.symbol, manager.address)
