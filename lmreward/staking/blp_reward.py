"""
BLP Reward

Rate-per-second reward stream for stakers of one BLP staking pool:

    rewardPerToken = stored + rate × Δt × 1e18 / totalStaked
    earned(acct)   = staked × (rewardPerToken − paid[acct]) / 1e18 + rewards[acct]

Nothing accrues while the pool is empty. Rewards are paid from
``treasury`` through a pre-approved allowance.
"""

from typing import TYPE_CHECKING, Dict, Optional

from ..constants import BASE
from ..exceptions import (
    InvalidParameterError,
    LMRewardError,
    SameValueError,
    UnauthorizedError,
    ZeroAddressError,
)
from ..logger import get_logger
from ..state import Clock, Ownable, transaction
from ..tokens.token import RewardToken
from ..utils.address import is_zero_address, to_address

if TYPE_CHECKING:
    from .pool import BLPStakingPool

logger = get_logger(__name__)


class BLPRewardError(LMRewardError):
    """Base exception for BLP reward operations."""


class BLPTreasuryIsZeroAddressError(BLPRewardError, ZeroAddressError):
    """Treasury cannot be the zero address."""


class BLPSameTreasuryAddressError(BLPRewardError, SameValueError):
    """Treasury is already set to that address."""


class CallerIsNotStakingPoolError(BLPRewardError, UnauthorizedError):
    """Only the bound staking pool may settle rewards."""


class BLPReward(Ownable):
    """Single-token reward stream for one staking pool."""

    _STATE_FIELDS = Ownable._STATE_FIELDS + (
        "treasury", "reward_rate", "last_update_time", "reward_per_token_stored",
        "_reward_distributed_stored", "_user_reward_per_token_paid", "_rewards",
    )

    def __init__(
        self,
        owner: str,
        staking_pool: "BLPStakingPool",
        reward_token: RewardToken,
        treasury: str,
        clock: Clock,
        address: Optional[str] = None,
    ):
        super().__init__(
            owner, clock, address=address,
            label=f"blp-reward:{staking_pool.address}:{reward_token.symbol}",
        )
        if is_zero_address(treasury):
            raise BLPTreasuryIsZeroAddressError("Treasury cannot be the zero address")
        self.staking_pool = staking_pool
        self.reward_token = reward_token
        self.treasury = to_address(treasury)

        self.reward_rate = 0
        self.last_update_time = clock.now()
        self.reward_per_token_stored = 0
        self._reward_distributed_stored = 0
        self._user_reward_per_token_paid: Dict[str, int] = {}
        self._rewards: Dict[str, int] = {}

    # ── Views ─────────────────────────────────────────────────────────

    def _elapsed(self) -> int:
        return max(self.clock.now() - self.last_update_time, 0)

    def reward_per_token(self) -> int:
        total = self.staking_pool.total_supply
        if total == 0:
            return self.reward_per_token_stored
        return self.reward_per_token_stored + self.reward_rate * self._elapsed() * BASE // total

    def reward_distributed(self) -> int:
        """Cumulative reward emitted to stakers so far."""
        if self.staking_pool.total_supply == 0:
            return self._reward_distributed_stored
        return self._reward_distributed_stored + self.reward_rate * self._elapsed()

    def earned(self, account: str) -> int:
        paid = self._user_reward_per_token_paid.get(account, 0)
        balance = self.staking_pool.balance_of(account)
        return balance * (self.reward_per_token() - paid) // BASE + self._rewards.get(account, 0)

    # ── Settlement ────────────────────────────────────────────────────

    def _update_reward(self, account: Optional[str]) -> None:
        self.reward_per_token_stored = self.reward_per_token()
        self._reward_distributed_stored = self.reward_distributed()
        self.last_update_time = self.clock.now()
        if account is not None:
            self._rewards[account] = self.earned(account)
            self._user_reward_per_token_paid[account] = self.reward_per_token_stored

    def update_reward(self, caller: str, account: str) -> None:
        """Settle *account* before its stake changes. Pool only."""
        if caller != self.staking_pool.address:
            raise CallerIsNotStakingPoolError("BLPReward: caller is not the staking pool")
        self._update_reward(account)

    def get_reward(self, caller: str, account: str) -> int:
        """Pay *account* everything it has earned. Anyone may trigger it."""
        account = to_address(account)
        with transaction(self, self.reward_token):
            self._update_reward(account)
            reward = self._rewards.get(account, 0)
            if reward > 0:
                self._rewards[account] = 0
                self.reward_token.transfer_from(self.address, self.treasury, account, reward)
                self._emit("RewardPaid", account=account, reward=reward)
                logger.debug("BLP reward paid: %d %s to %s", reward, self.reward_token.symbol, account)
        return reward

    # ── Admin ─────────────────────────────────────────────────────────

    def set_reward_rate(self, caller: str, reward_rate: int) -> None:
        self._require_owner(caller)
        if reward_rate < 0:
            raise InvalidParameterError("Reward rate cannot be negative")
        self._update_reward(None)
        old = self.reward_rate
        self.reward_rate = reward_rate
        self._emit("RewardRateUpdated", old_reward_rate=old, new_reward_rate=reward_rate)
        logger.info("%s reward rate %d -> %d", self.reward_token.symbol, old, reward_rate)

    def _set_treasury(self, caller: str, treasury: str) -> None:
        self._require_owner(caller)
        if is_zero_address(treasury):
            raise BLPTreasuryIsZeroAddressError("Treasury cannot be the zero address")
        treasury = to_address(treasury)
        if treasury == self.treasury:
            raise BLPSameTreasuryAddressError("Treasury is already set to that address")
        old = self.treasury
        self.treasury = treasury
        self._emit("TreasuryUpdated", old_treasury=old, new_treasury=treasury)

    def rescue_tokens(self, caller: str, token: RewardToken, amount: int, to: str) -> None:
        """Send tokens held by this contract to *to*."""
        self._require_owner(caller)
        token.transfer(self.address, to, amount)
        self._emit("TokensRescued", token=token.address, amount=amount, to=to_address(to))
