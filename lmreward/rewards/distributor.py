"""
Reward Distributor

One distributor per reward token. Compound-style dual index per market:

    supply index  += supplySpeed × Δt × 1e36 / eligibleTotalSupply
    borrow index  += borrowSpeed × Δt × 1e36 / eligibleTotalBorrow
    reward[acct]  += eligibleBalance × (index − acctSnapshot) / 1e36

Eligible balances and totals are read from the RewardDistributorManager,
which is also the only caller allowed to trigger payouts. Rewards are
paid out of ``treasury`` through a pre-approved allowance.

State machine:
    Paused --(_unpause with speeds)--> Active --(_pause)--> Paused
A zero speed acts as a per-market pause.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from ..constants import BASE, DEFAULT_BOUNTY_RATIO, MAX_BOUNTY_RATIO
from ..exceptions import (
    CallerIsNotRewardManagerError,
    InvalidParameterError,
    LMRewardError,
    SameValueError,
    ZeroAddressError,
)
from ..logger import get_logger
from ..state import Clock, Ownable, transaction
from ..tokens.token import RewardToken
from ..utils.address import is_zero_address, to_address
from .distribution import DistributionState, Side, accrued

if TYPE_CHECKING:
    from .manager import RewardDistributorManager

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class RewardDistributorError(LMRewardError):
    """Base exception for reward distributor operations."""


class RatioTooHighError(RewardDistributorError, InvalidParameterError):
    """Bounty ratio above the protocol maximum."""


class TreasuryIsZeroAddressError(RewardDistributorError, ZeroAddressError):
    """Treasury cannot be the zero address."""


class SameTreasuryAddressError(RewardDistributorError, SameValueError):
    """Treasury is already set to that address."""


class InvalidRewardTokenError(RewardDistributorError, InvalidParameterError):
    """Reward token is missing or unchanged."""


class DistributionPausedError(RewardDistributorError):
    """Speeds can only be changed through _unpause while paused."""


class MarketNotListedError(RewardDistributorError, InvalidParameterError):
    """Speed set for a market the lending controller does not list."""


# ══════════════════════════════════════════════════════════════════════
#  REWARD DISTRIBUTOR
# ══════════════════════════════════════════════════════════════════════

class RewardDistributor(Ownable):
    """
    Index-based accrual and payout for one reward token.

    Settlement entry points (``update_distribution_state``,
    ``update_reward``, ``update_reward_batch``) and claims only accept
    the reward distributor manager as caller.
    """

    _STATE_FIELDS = Ownable._STATE_FIELDS + (
        "paused", "treasury", "bounty_ratio",
        "_speeds", "_states", "_account_indexes", "_rewards",
    )
    _REF_FIELDS = ("reward_token",)

    def __init__(
        self,
        owner: str,
        reward_token: RewardToken,
        treasury: str,
        reward_distributor_manager: "RewardDistributorManager",
        clock: Clock,
        bounty_ratio: int = DEFAULT_BOUNTY_RATIO,
        address: Optional[str] = None,
    ):
        super().__init__(owner, clock, address=address, label=f"distributor:{reward_token.symbol}")
        if is_zero_address(treasury):
            raise TreasuryIsZeroAddressError("Treasury cannot be the zero address")
        if bounty_ratio < 0 or bounty_ratio > MAX_BOUNTY_RATIO:
            raise RatioTooHighError(f"Bounty ratio {bounty_ratio} exceeds {MAX_BOUNTY_RATIO}")

        self.reward_token = reward_token
        self.treasury = to_address(treasury)
        self.reward_distributor_manager = reward_distributor_manager
        self.bounty_ratio = bounty_ratio
        self.paused = True

        self._speeds: Dict[Side, Dict[str, int]] = {Side.SUPPLY: {}, Side.BORROW: {}}
        self._states: Dict[Side, Dict[str, DistributionState]] = {Side.SUPPLY: {}, Side.BORROW: {}}
        self._account_indexes: Dict[Side, Dict[Tuple[str, str], int]] = {
            Side.SUPPLY: {}, Side.BORROW: {},
        }
        self._rewards: Dict[str, int] = {}

        logger.info(
            "Reward distributor deployed: %s for %s, treasury=%s",
            self.address, reward_token.symbol, self.treasury,
        )

    # ── Capability probe ──────────────────────────────────────────────

    def is_reward_distributor(self) -> bool:
        return True

    # ── Read-only views ───────────────────────────────────────────────

    def reward(self, account: str) -> int:
        return self._rewards.get(account, 0)

    def distribution_speed(self, market: str) -> int:
        """Borrow-side speed (reward units per second)."""
        return self._speeds[Side.BORROW].get(market, 0)

    def distribution_supply_speed(self, market: str) -> int:
        return self._speeds[Side.SUPPLY].get(market, 0)

    def distribution_supply_state(self, market: str) -> DistributionState:
        state = self._states[Side.SUPPLY].get(market)
        return DistributionState(state.index, state.timestamp) if state else DistributionState()

    def distribution_borrow_state(self, market: str) -> DistributionState:
        state = self._states[Side.BORROW].get(market)
        return DistributionState(state.index, state.timestamp) if state else DistributionState()

    def distribution_supplier_index(self, market: str, account: str) -> int:
        return self._account_indexes[Side.SUPPLY].get((market, account), 0)

    def distribution_borrower_index(self, market: str, account: str) -> int:
        return self._account_indexes[Side.BORROW].get((market, account), 0)

    # ── Guards ────────────────────────────────────────────────────────

    def _require_manager(self, caller: str) -> None:
        if caller != self.reward_distributor_manager.address:
            raise CallerIsNotRewardManagerError(
                "RewardDistributor: caller is not the reward distributor manager"
            )

    def _all_markets(self) -> List[str]:
        return [m.address for m in self.reward_distributor_manager.controller.get_all_itokens()]

    # ── Index maths ───────────────────────────────────────────────────

    def _state(self, market: str, side: Side) -> DistributionState:
        state = self._states[side].get(market)
        if state is None:
            state = DistributionState(index=0, timestamp=self.clock.now())
            self._states[side][market] = state
        return state

    def _eligible_total(self, market: str, side: Side) -> int:
        manager = self.reward_distributor_manager
        if side is Side.BORROW:
            return manager.eligible_total_borrow(market)
        return manager.eligible_total_supply(market)

    def _eligible_balance(self, market: str, account: str, side: Side) -> int:
        manager = self.reward_distributor_manager
        if side is Side.BORROW:
            return manager.eligible_borrow(market, account)
        return manager.eligible_supply(market, account)

    def _update_distribution_state(self, market: str, side: Side) -> DistributionState:
        state = self._state(market, side)
        speed = self._speeds[side].get(market, 0)
        if state.accrue(self.clock.now(), speed, self._eligible_total(market, side)):
            logger.debug(
                "%s %s index %s -> %d", self.reward_token.symbol, side.value, market, state.index
            )
        return state

    def _update_reward(self, market: str, account: str, side: Side) -> None:
        index = self._state(market, side).index
        key = (market, account)
        snapshot = self._account_indexes[side].get(key, 0)
        amount = accrued(self._eligible_balance(market, account, side), index, snapshot)
        if amount:
            self._rewards[account] = self._rewards.get(account, 0) + amount
        self._account_indexes[side][key] = index

    # ── Settlement (manager only) ─────────────────────────────────────

    def update_distribution_state(self, caller: str, market: str, is_borrow: bool) -> None:
        self._require_manager(caller)
        self._update_distribution_state(market, Side.of(is_borrow))

    def update_reward(self, caller: str, market: str, account: str, is_borrow: bool) -> None:
        self._require_manager(caller)
        self._update_reward(market, account, Side.of(is_borrow))

    def _settle(self, accounts: Iterable[str], markets: Iterable[str], sides: Sequence[Side]) -> None:
        accounts = list(accounts)
        for market in markets:
            for side in sides:
                self._update_distribution_state(market, side)
                for account in accounts:
                    self._update_reward(market, account, side)

    def update_reward_batch(self, caller: str, accounts: Sequence[str], markets: Sequence[str]) -> None:
        """Settle both sides of *markets* for *accounts*."""
        self._require_manager(caller)
        self._settle(accounts, markets, (Side.SUPPLY, Side.BORROW))

    # ── Claims (manager only) ─────────────────────────────────────────

    def _pay(self, recipient: str, amount: int) -> None:
        if amount > 0:
            self.reward_token.transfer_from(self.address, self.treasury, recipient, amount)

    def _claim(self, accounts: Iterable[str]) -> None:
        for account in accounts:
            amount = self._rewards.get(account, 0)
            if amount == 0:
                continue
            self._rewards[account] = 0
            self._pay(account, amount)
            self._emit("RewardDistributed", account=account, amount=amount)
            logger.debug("Claimed %d %s for %s", amount, self.reward_token.symbol, account)

    def claim_reward(self, caller: str, accounts: Sequence[str], markets: Sequence[str]) -> None:
        self._require_manager(caller)
        with transaction(self, self.reward_token):
            self._settle(accounts, markets, (Side.SUPPLY, Side.BORROW))
            self._claim(accounts)

    def claim_rewards(
        self,
        caller: str,
        accounts: Sequence[str],
        supply_markets: Sequence[str],
        borrow_markets: Sequence[str],
    ) -> None:
        self._require_manager(caller)
        with transaction(self, self.reward_token):
            self._settle(accounts, supply_markets, (Side.SUPPLY,))
            self._settle(accounts, borrow_markets, (Side.BORROW,))
            self._claim(accounts)

    def claim_all_reward(self, caller: str, accounts: Sequence[str]) -> None:
        self._require_manager(caller)
        with transaction(self, self.reward_token):
            self._settle(accounts, self._all_markets(), (Side.SUPPLY, Side.BORROW))
            self._claim(accounts)

    def claim_bounty(self, caller: str, accounts: Sequence[str], hunter: str) -> None:
        """
        Pay out rewards of accounts whose eligibility lapsed, splitting off
        ``bounty_ratio`` for the hunter. The manager has already settled and
        zeroed their eligible balances.
        """
        self._require_manager(caller)
        with transaction(self, self.reward_token):
            for account in accounts:
                amount = self._rewards.get(account, 0)
                if amount == 0:
                    continue
                bounty = amount * self.bounty_ratio // BASE
                self._rewards[account] = 0
                self._pay(account, amount - bounty)
                self._pay(hunter, bounty)
                self._emit("BountyClaimed", account=account, hunter=hunter, reward=amount, bounty=bounty)
                logger.info(
                    "Bounty: %s paid %d %s for %s (reward %d)",
                    hunter, bounty, self.reward_token.symbol, account, amount,
                )

    # ── Admin ─────────────────────────────────────────────────────────

    def _set_speed(self, market: str, side: Side, speed: int) -> None:
        # Accrue at the old speed up to now before switching.
        self._update_distribution_state(market, side)
        if self._speeds[side].get(market, 0) == speed:
            return
        self._speeds[side][market] = speed
        if side is Side.BORROW:
            self._emit("DistributionSpeedUpdated", market=market, speed=speed)
        else:
            self._emit("DistributionSupplySpeedUpdated", market=market, speed=speed)

    def _set_speeds(
        self,
        borrow_markets: Sequence[str],
        borrow_speeds: Sequence[int],
        supply_markets: Sequence[str],
        supply_speeds: Sequence[int],
    ) -> None:
        if len(borrow_markets) != len(borrow_speeds) or len(supply_markets) != len(supply_speeds):
            raise InvalidParameterError("Length of markets and speeds mismatch")
        controller = self.reward_distributor_manager.controller
        for market, speed in list(zip(borrow_markets, borrow_speeds)) + list(zip(supply_markets, supply_speeds)):
            if not controller.has_itoken(market):
                raise MarketNotListedError(f"Market {market} has not been listed")
            if speed < 0:
                raise InvalidParameterError("Speed cannot be negative")
        for market, speed in zip(borrow_markets, borrow_speeds):
            self._set_speed(to_address(market), Side.BORROW, speed)
        for market, speed in zip(supply_markets, supply_speeds):
            self._set_speed(to_address(market), Side.SUPPLY, speed)

    def _unpause(
        self,
        caller: str,
        borrow_markets: Sequence[str],
        borrow_speeds: Sequence[int],
        supply_markets: Sequence[str],
        supply_speeds: Sequence[int],
    ) -> None:
        self._require_owner(caller)
        with transaction(self):
            self.paused = False
            self._emit("Paused", paused=False)
            self._set_speeds(borrow_markets, borrow_speeds, supply_markets, supply_speeds)
        logger.info("%s distribution unpaused", self.reward_token.symbol)

    def _pause(self, caller: str) -> None:
        self._require_owner(caller)
        for side in (Side.SUPPLY, Side.BORROW):
            for market in list(self._speeds[side]):
                self._set_speed(market, side, 0)
        self.paused = True
        self._emit("Paused", paused=True)
        logger.info("%s distribution paused", self.reward_token.symbol)

    def _set_distribution_speeds(
        self,
        caller: str,
        borrow_markets: Sequence[str],
        borrow_speeds: Sequence[int],
        supply_markets: Sequence[str],
        supply_speeds: Sequence[int],
    ) -> None:
        self._require_owner(caller)
        if self.paused:
            raise DistributionPausedError("Can not change speeds when paused")
        with transaction(self):
            self._set_speeds(borrow_markets, borrow_speeds, supply_markets, supply_speeds)

    def _set_reward_token(self, caller: str, reward_token: RewardToken) -> None:
        self._require_owner(caller)
        if reward_token is None or reward_token is self.reward_token:
            raise InvalidRewardTokenError("Invalid new reward token")
        old = self.reward_token
        self.reward_token = reward_token
        self._emit("NewRewardToken", old_reward_token=old.address, new_reward_token=reward_token.address)
        logger.info("NewRewardToken %s -> %s", old.symbol, reward_token.symbol)

    def _set_treasury(self, caller: str, treasury: str) -> None:
        self._require_owner(caller)
        if is_zero_address(treasury):
            raise TreasuryIsZeroAddressError("Treasury cannot be the zero address")
        treasury = to_address(treasury)
        if treasury == self.treasury:
            raise SameTreasuryAddressError("Treasury is already set to that address")
        old = self.treasury
        self.treasury = treasury
        self._emit("NewTreasury", old_treasury=old, new_treasury=treasury)
        logger.info("NewTreasury %s -> %s", old, treasury)

    def _set_bounty_ratio(self, caller: str, bounty_ratio: int) -> None:
        self._require_owner(caller)
        if bounty_ratio > MAX_BOUNTY_RATIO:
            raise RatioTooHighError(f"Bounty ratio {bounty_ratio} exceeds {MAX_BOUNTY_RATIO}")
        if bounty_ratio < 0:
            raise InvalidParameterError("Bounty ratio cannot be negative")
        old = self.bounty_ratio
        self.bounty_ratio = bounty_ratio
        self._emit("NewBountyRatio", old_bounty_ratio=old, new_bounty_ratio=bounty_ratio)
        logger.info("NewBountyRatio %d -> %d", old, bounty_ratio)
