"""
Reward Distributor Manager

Single recipient of lending-action hooks. Maintains the Eligible-Balance
Ledger, the per-market, per-account share of supply and borrow that
belongs to eligible accounts:

    eligibleTotalSupply(m) == Σ eligibleSupply(m, a)   for every market m
    eligibleTotalBorrow(m) == Σ eligibleBorrow(m, a)

and fans accrual out to every registered RewardDistributor. Before any
ledger entry changes, every distributor settles the affected
(market, side) index and the account's reward, so the elapsed interval is
always accrued on the pre-mutation balances.

Hook semantics with ``refresh_eligibility``:

    False  known eligible   -> apply the action's delta
           otherwise        -> untouched (even if now actually eligible)
    True   ineligible -> eligible  -> join: every market set to current balances
           eligible -> ineligible  -> leave: every market zeroed
           stays eligible          -> apply the action's delta
           stays ineligible        -> untouched
"""

from typing import Dict, List, Optional, Sequence, Tuple

from ..exceptions import (
    AlreadyExistsError,
    CallerIsNotControllerError,
    DoesNotExistError,
    InvalidCapabilityError,
    InvalidEligibilityError,
    LMRewardError,
    SameValueError,
)
from ..lending.interfaces import LendingController, LendingMarket
from ..logger import get_logger
from ..state import Clock, Ownable, transaction
from ..utils.address import to_address
from ..utils.fixed_point import normalize_borrow
from ..utils.ordered_set import AddressSet
from .distribution import Side
from .distributor import RewardDistributor

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class RewardDistributorManagerError(LMRewardError):
    """Base exception for reward distributor manager operations."""


class InvalidEligibilityManagerError(RewardDistributorManagerError, InvalidCapabilityError):
    """Candidate does not behave as an eligibility manager."""


class SameEligibilityManagerError(RewardDistributorManagerError, SameValueError):
    """Eligibility manager is already set to that instance."""


class InvalidRewardDistributorError(RewardDistributorManagerError, InvalidCapabilityError):
    """Candidate is not a reward distributor bound to this manager."""


class RewardDistributorAlreadyExistError(RewardDistributorManagerError, AlreadyExistsError):
    """Distributor is already registered."""


class RewardDistributorDoesNotExistError(RewardDistributorManagerError, DoesNotExistError):
    """Distributor is not registered."""


# ══════════════════════════════════════════════════════════════════════
#  REWARD DISTRIBUTOR MANAGER
# ══════════════════════════════════════════════════════════════════════

class RewardDistributorManager(Ownable):
    """
    Lending hook sink, eligible-balance ledger and distributor fan-out.

    Implements the ``LendingHookSink`` protocol.
    """

    _STATE_FIELDS = Ownable._STATE_FIELDS + (
        "_distributor_set",
        "_is_eligible",
        "_eligible_supply",
        "_eligible_borrow",
        "_eligible_total_supply",
        "_eligible_total_borrow",
    )
    _REF_FIELDS = ("_distributors", "eligibility_manager")

    def __init__(
        self,
        owner: str,
        controller: LendingController,
        eligibility_manager,
        clock: Clock,
        address: Optional[str] = None,
    ):
        super().__init__(owner, clock, address=address, label="reward-distributor-manager")
        self.controller = controller
        self.eligibility_manager = eligibility_manager

        self._distributor_set = AddressSet()
        self._distributors: Dict[str, RewardDistributor] = {}

        self._is_eligible: Dict[str, bool] = {}
        self._eligible_supply: Dict[Tuple[str, str], int] = {}   # (market, account)
        self._eligible_borrow: Dict[Tuple[str, str], int] = {}
        self._eligible_total_supply: Dict[str, int] = {}
        self._eligible_total_borrow: Dict[str, int] = {}

    # ── Read-only views ───────────────────────────────────────────────

    def is_eligible(self, account: str) -> bool:
        """Eligibility as last recorded by the ledger."""
        return self._is_eligible.get(account, False)

    def eligible_supply(self, market, account: str) -> int:
        return self._eligible_supply.get((to_address(market), account), 0)

    def eligible_borrow(self, market, account: str) -> int:
        return self._eligible_borrow.get((to_address(market), account), 0)

    def eligible_total_supply(self, market) -> int:
        return self._eligible_total_supply.get(to_address(market), 0)

    def eligible_total_borrow(self, market) -> int:
        return self._eligible_total_borrow.get(to_address(market), 0)

    def get_reward_distributors(self) -> List[str]:
        return self._distributor_set.values()

    def reward_distributor(self, address: str) -> RewardDistributor:
        if address not in self._distributor_set:
            raise RewardDistributorDoesNotExistError(f"Distributor {address} does not exist")
        return self._distributors[address]

    def _distributor_list(self) -> List[RewardDistributor]:
        return [self._distributors[a] for a in self._distributor_set]

    # ── Guards ────────────────────────────────────────────────────────

    def _require_controller(self, caller: str) -> None:
        if caller != self.controller.address:
            raise CallerIsNotControllerError(
                "RewardDistributorManager: caller is not the controller"
            )

    def transaction_scope(self) -> Tuple:
        """Components any hook may mutate, for callers that need a wider atomic scope."""
        distributors = self._distributor_list()
        return (self, *distributors, *(d.reward_token for d in distributors))

    def _transaction(self):
        return transaction(*self.transaction_scope())

    # ── Distributor fan-out ───────────────────────────────────────────

    def update_distribution_state(self, market, is_borrow: bool) -> None:
        market = to_address(market)
        for distributor in self._distributor_list():
            distributor.update_distribution_state(self.address, market, is_borrow)

    def update_reward(self, market, account: str, is_borrow: bool) -> None:
        market = to_address(market)
        for distributor in self._distributor_list():
            distributor.update_reward(self.address, market, account, is_borrow)

    def update_reward_batch(self, accounts: Sequence[str], markets: Sequence) -> None:
        markets = [to_address(m) for m in markets]
        for distributor in self._distributor_list():
            distributor.update_reward_batch(self.address, accounts, markets)

    def _settle(self, market: str, account: str, side: Side) -> None:
        for distributor in self._distributor_list():
            distributor.update_distribution_state(self.address, market, side.is_borrow)
            distributor.update_reward(self.address, market, account, side.is_borrow)

    # ── Ledger primitives ─────────────────────────────────────────────

    def _ledgers(self, side: Side):
        if side is Side.BORROW:
            return self._eligible_borrow, self._eligible_total_borrow
        return self._eligible_supply, self._eligible_total_supply

    def _set_balance(self, market: str, account: str, side: Side, new_balance: int) -> None:
        """Settle, then set the account's eligible balance and adjust the total."""
        balances, totals = self._ledgers(side)
        key = (market, account)
        old_balance = balances.get(key, 0)
        if new_balance == old_balance:
            return
        self._settle(market, account, side)
        balances[key] = new_balance
        totals[market] = totals.get(market, 0) + new_balance - old_balance
        logger.debug(
            "Eligible %s %s/%s: %d -> %d (total %d)",
            side.value, market, account, old_balance, new_balance, totals[market],
        )

    def _apply_delta(self, market: str, account: str, side: Side, delta: int) -> None:
        if delta == 0:
            return
        balances, _ = self._ledgers(side)
        old_balance = balances.get((market, account), 0)
        # A repay normalized at a later borrow index can exceed the recorded share.
        self._set_balance(market, account, side, max(old_balance + delta, 0))

    def _join(self, account: str) -> None:
        for market in self.controller.get_all_itokens():
            self._set_balance(market.address, account, Side.SUPPLY, market.balance_of(account))
            principal, interest_index = market.borrow_snapshot(account)
            self._set_balance(
                market.address, account, Side.BORROW, normalize_borrow(principal, interest_index)
            )
        self._is_eligible[account] = True
        self._emit("UpdateEligibility", account=account, eligible=True)
        logger.info("Account %s became eligible", account)

    def _leave(self, account: str) -> None:
        for market in self.controller.get_all_itokens():
            self._set_balance(market.address, account, Side.SUPPLY, 0)
            self._set_balance(market.address, account, Side.BORROW, 0)
        self._is_eligible[account] = False
        self._emit("UpdateEligibility", account=account, eligible=False)
        logger.info("Account %s became ineligible", account)

    def _evaluate(self, account: str) -> bool:
        eligible, valid = self.eligibility_manager.refresh(account)
        if not valid:
            raise InvalidEligibilityError(
                f"RewardDistributorManager: invalid eligibility for {account}"
            )
        return bool(eligible)

    def _refresh(self, account: str) -> bool:
        """Re-evaluate eligibility and join/leave on a transition."""
        eligible = self._evaluate(account)
        known = self.is_eligible(account)
        if eligible and not known:
            self._join(account)
        elif known and not eligible:
            self._leave(account)
        return eligible

    def _update_account(
        self,
        market: str,
        account: str,
        side: Side,
        delta: int,
        refresh_eligibility: bool,
    ) -> None:
        known = self.is_eligible(account)
        if not refresh_eligibility:
            if known:
                self._apply_delta(market, account, side, delta)
            return

        eligible = self._evaluate(account)
        if eligible and not known:
            # Hooks run after the action, so current balances include it.
            self._join(account)
        elif known and not eligible:
            self._leave(account)
        elif eligible:
            self._apply_delta(market, account, side, delta)

    # ── Lending hooks (controller only) ───────────────────────────────

    def after_mint(
        self,
        caller: str,
        market: LendingMarket,
        minter: str,
        mint_amount: int,
        minted_amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            self._update_account(market.address, minter, Side.SUPPLY, minted_amount, refresh_eligibility)

    def after_redeem(
        self,
        caller: str,
        market: LendingMarket,
        redeemer: str,
        redeem_amount: int,
        redeemed_underlying: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            self._update_account(market.address, redeemer, Side.SUPPLY, -redeem_amount, refresh_eligibility)

    def after_borrow(
        self,
        caller: str,
        market: LendingMarket,
        borrower: str,
        borrow_amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            delta = normalize_borrow(borrow_amount, market.borrow_index)
            self._update_account(market.address, borrower, Side.BORROW, delta, refresh_eligibility)

    def after_repay_borrow(
        self,
        caller: str,
        market: LendingMarket,
        payer: str,
        borrower: str,
        repay_amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            delta = normalize_borrow(repay_amount, market.borrow_index)
            self._update_account(market.address, borrower, Side.BORROW, -delta, refresh_eligibility)

    def after_liquidate_borrow(
        self,
        caller: str,
        market: LendingMarket,
        collateral: LendingMarket,
        liquidator: str,
        borrower: str,
        repaid_amount: int,
        seized_amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        """
        The repay and the seize are reported through their own hooks; this
        one only re-evaluates both parties when asked to.
        """
        self._require_controller(caller)
        with self._transaction():
            self._update_account(market.address, borrower, Side.BORROW, 0, refresh_eligibility)
            self._update_account(collateral.address, liquidator, Side.SUPPLY, 0, refresh_eligibility)

    def after_seize(
        self,
        caller: str,
        collateral: LendingMarket,
        market: LendingMarket,
        liquidator: str,
        borrower: str,
        seized_amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            self._update_account(collateral.address, borrower, Side.SUPPLY, -seized_amount, refresh_eligibility)
            self._update_account(collateral.address, liquidator, Side.SUPPLY, seized_amount, refresh_eligibility)

    def after_transfer(
        self,
        caller: str,
        market: LendingMarket,
        sender: str,
        recipient: str,
        amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            self._update_account(market.address, sender, Side.SUPPLY, -amount, refresh_eligibility)
            self._update_account(market.address, recipient, Side.SUPPLY, amount, refresh_eligibility)

    def after_flashloan(
        self,
        caller: str,
        market: LendingMarket,
        to: str,
        amount: int,
        refresh_eligibility: bool = False,
    ) -> None:
        self._require_controller(caller)
        with self._transaction():
            self._update_account(market.address, to, Side.SUPPLY, 0, refresh_eligibility)

    # ── Eligibility refresh (permissionless) ──────────────────────────

    def update_eligible_balance(self, account: str) -> bool:
        """Refresh one account. Returns its eligibility."""
        with self._transaction():
            return self._refresh(account)

    def update_eligible_balances(self, accounts: Sequence[str]) -> List[bool]:
        with self._transaction():
            return [self._refresh(account) for account in accounts]

    # ── Claims ────────────────────────────────────────────────────────

    def claim_reward(self, accounts: Sequence[str], markets: Sequence) -> None:
        """Claim both supply and borrow rewards of *markets* for *accounts*."""
        markets = [to_address(m) for m in markets]
        with self._transaction():
            for distributor in self._distributor_list():
                distributor.claim_reward(self.address, accounts, markets)

    def claim_rewards(
        self,
        accounts: Sequence[str],
        supply_markets: Sequence,
        borrow_markets: Sequence,
    ) -> None:
        supply_markets = [to_address(m) for m in supply_markets]
        borrow_markets = [to_address(m) for m in borrow_markets]
        with self._transaction():
            for distributor in self._distributor_list():
                distributor.claim_rewards(self.address, accounts, supply_markets, borrow_markets)

    def claim_all_reward(self, accounts: Sequence[str]) -> None:
        with self._transaction():
            for distributor in self._distributor_list():
                distributor.claim_all_reward(self.address, accounts)

    def claim_bounty(self, caller: str, accounts: Sequence[str]) -> List[str]:
        """
        For every account the ledger still treats as eligible but which is
        no longer actually eligible: drop it from the ledger, pay out its
        accrued rewards and hand ``bounty_ratio`` of them to *caller*.

        Accounts that are still eligible are skipped. Returns the accounts
        that were bountied.
        """
        bountied: List[str] = []
        with self._transaction():
            for account in accounts:
                if not self.is_eligible(account) or account in bountied:
                    continue
                if self._evaluate(account):
                    continue
                self._leave(account)
                bountied.append(account)

            if bountied:
                for distributor in self._distributor_list():
                    distributor.claim_bounty(self.address, bountied, caller)
        if bountied:
            logger.info("Bounty claimed by %s for %d account(s)", caller, len(bountied))
        return bountied

    # ── Admin ─────────────────────────────────────────────────────────

    def _set_eligibility_manager(self, caller: str, eligibility_manager) -> None:
        self._require_owner(caller)
        probe = getattr(eligibility_manager, "is_eligibility_manager", None)
        if probe is None or not probe():
            raise InvalidEligibilityManagerError(f"{eligibility_manager!r} is not an eligibility manager")
        if eligibility_manager is self.eligibility_manager:
            raise SameEligibilityManagerError("Eligibility manager unchanged")
        old = self.eligibility_manager
        self.eligibility_manager = eligibility_manager
        self._emit(
            "NewEligibilityManager",
            old_eligibility_manager=getattr(old, "address", None),
            new_eligibility_manager=getattr(eligibility_manager, "address", None),
        )
        logger.info("NewEligibilityManager %s", getattr(eligibility_manager, "address", eligibility_manager))

    def _add_reward_distributor_internal(self, distributor: RewardDistributor) -> None:
        probe = getattr(distributor, "is_reward_distributor", None)
        if probe is None or not probe() or distributor.reward_distributor_manager is not self:
            raise InvalidRewardDistributorError(f"{distributor!r} is not a distributor of this manager")
        if not self._distributor_set.add(distributor.address):
            raise RewardDistributorAlreadyExistError(
                f"Distributor {distributor.address} already exists"
            )
        self._distributors[distributor.address] = distributor
        self._emit("AddRewardDistributor", distributor=distributor.address)
        logger.info("AddRewardDistributor %s (%s)", distributor.address, distributor.reward_token.symbol)

    def _remove_reward_distributor_internal(self, distributor) -> None:
        address = to_address(distributor)
        if not self._distributor_set.remove(address):
            raise RewardDistributorDoesNotExistError(f"Distributor {address} does not exist")
        del self._distributors[address]
        self._emit("RemoveRewardDistributor", distributor=address)
        logger.info("RemoveRewardDistributor %s", address)

    def _add_reward_distributor(self, caller: str, distributor: RewardDistributor) -> None:
        self._require_owner(caller)
        self._add_reward_distributor_internal(distributor)

    def _add_reward_distributors(self, caller: str, distributors: Sequence[RewardDistributor]) -> None:
        self._require_owner(caller)
        with transaction(self):
            for distributor in distributors:
                self._add_reward_distributor_internal(distributor)

    def _remove_reward_distributor(self, caller: str, distributor) -> None:
        self._require_owner(caller)
        self._remove_reward_distributor_internal(distributor)

    def _remove_reward_distributors(self, caller: str, distributors: Sequence) -> None:
        self._require_owner(caller)
        with transaction(self):
            for distributor in distributors:
                self._remove_reward_distributor_internal(distributor)
