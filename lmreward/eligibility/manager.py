"""
Eligibility Manager

Decides whether an account is entitled to liquidity-mining rewards by
comparing the value of its BLP staking positions against the value of
its supply in the valid markets:

    eligible  ⇔  BLPValue ≥ SupplyValue × thresholdRatio / 1e18

Both valuations come with a validity flag; a stale or missing oracle
price makes the whole answer indeterminate. A zero threshold ratio
disables the staking gate entirely.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from ..constants import BASE, DEFAULT_THRESHOLD_RATIO
from ..exceptions import (
    AlreadyExistsError,
    DoesNotExistError,
    InvalidCapabilityError,
    LMRewardError,
)
from ..lending.interfaces import LendingController, LendingMarket, StakingPool
from ..logger import get_logger
from ..state import Clock, Ownable, transaction
from ..utils.address import is_zero_address, to_address
from ..utils.ordered_set import AddressSet

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class EligibilityManagerError(LMRewardError):
    """Base exception for eligibility manager operations."""


class StakingPoolAlreadyExistError(EligibilityManagerError, AlreadyExistsError):
    """BLP staking pool is already registered."""


class StakingPoolDoesNotExistError(EligibilityManagerError, DoesNotExistError):
    """BLP staking pool is not registered."""


class InvalidStakingPoolError(EligibilityManagerError, InvalidCapabilityError):
    """Candidate is not a staking pool, or has no staking token."""


class ValidSupplyAlreadyExistError(EligibilityManagerError, AlreadyExistsError):
    """Market already counts toward supply value."""


class ValidSupplyDoesNotExistError(EligibilityManagerError, DoesNotExistError):
    """Market does not count toward supply value."""


class InvalidSupplyError(EligibilityManagerError, InvalidCapabilityError):
    """Market is not listed by the lending controller."""


# ══════════════════════════════════════════════════════════════════════
#  ELIGIBILITY MANAGER
# ══════════════════════════════════════════════════════════════════════

class EligibilityManager(Ownable):
    """
    Eligibility engine.

    Registries (owner-gated, ordered, duplicate-free):
        - BLP staking pools, each mapped to its underlying LP token
        - valid supplies: markets whose supply counts toward the threshold
    """

    _STATE_FIELDS = Ownable._STATE_FIELDS + (
        "_pool_set", "_blps", "_supply_set", "threshold_ratio",
    )
    _REF_FIELDS = ("_pools", "_supplies")

    def __init__(
        self,
        owner: str,
        controller: LendingController,
        clock: Clock,
        threshold_ratio: int = DEFAULT_THRESHOLD_RATIO,
        address: Optional[str] = None,
    ):
        super().__init__(owner, clock, address=address, label="eligibility-manager")
        self.controller = controller
        self.threshold_ratio = threshold_ratio

        self._pool_set = AddressSet()
        self._pools: Dict[str, StakingPool] = {}
        self._blps: Dict[str, str] = {}          # pool -> underlying LP token

        self._supply_set = AddressSet()
        self._supplies: Dict[str, LendingMarket] = {}

    # ── Capability probe ──────────────────────────────────────────────

    def is_eligibility_manager(self) -> bool:
        return True

    # ── Getters ───────────────────────────────────────────────────────

    def get_blp_staking_pools(self) -> List[str]:
        return self._pool_set.values()

    def blps(self, pool) -> Optional[str]:
        """Underlying LP token of *pool*, or None when not registered."""
        return self._blps.get(to_address(pool))

    def get_valid_supplies(self) -> List[str]:
        return self._supply_set.values()

    # ── Valuation ─────────────────────────────────────────────────────

    def get_supply_value(self, account: str) -> Tuple[int, bool]:
        """Σ shares × exchangeRate / 1e18 × price over the valid supplies."""
        oracle = self.controller.price_oracle
        value = 0
        valid = True
        for address in self._supply_set:
            market = self._supplies[address]
            price, status = oracle.get_underlying_price_and_status(address)
            if not status:
                valid = False
            balance = market.balance_of(account)
            value += balance * market.exchange_rate_stored() // BASE * price
        return value, valid

    def get_blp_value(self, account: str) -> Tuple[int, bool]:
        """Σ staked × LP price over the registered staking pools."""
        oracle = self.controller.price_oracle
        value = 0
        valid = True
        for address in self._pool_set:
            price, status = oracle.get_underlying_price_and_status(self._blps[address])
            if not status:
                valid = False
            value += self._pools[address].balance_of(account) * price
        return value, valid

    def is_eligible(self, account: str) -> Tuple[bool, bool]:
        """
        Returns ``(eligible, valid)``.

        A zero threshold ratio short-circuits to ``(True, True)`` without
        consulting the oracle.
        """
        if self.threshold_ratio == 0:
            return True, True

        supply_value, supply_valid = self.get_supply_value(account)
        blp_value, blp_valid = self.get_blp_value(account)
        valid = supply_valid and blp_valid
        if not valid:
            return False, False

        return blp_value >= supply_value * self.threshold_ratio // BASE, True

    def refresh(self, account: str) -> Tuple[bool, bool]:
        """Eligibility as used by reward accounting."""
        return self.is_eligible(account)

    # ── Admin: BLP staking pools ──────────────────────────────────────

    def _add_blp_staking_pool_internal(self, pool: StakingPool) -> None:
        try:
            is_pool = bool(pool.is_staking_pool())
            underlying = pool.staking_token
        except AttributeError:
            raise InvalidStakingPoolError(f"{pool!r} is not a staking pool")
        if not is_pool or not underlying or is_zero_address(underlying):
            raise InvalidStakingPoolError(f"{pool!r} is not a staking pool")

        address = pool.address
        if address in self._pool_set:
            raise StakingPoolAlreadyExistError(f"Staking pool {address} already exists")

        self._pool_set.add(address)
        self._pools[address] = pool
        self._blps[address] = underlying
        self._emit("AddBLPStakingPool", pool=address, underlying=underlying)
        logger.info("AddBLPStakingPool %s (underlying %s)", address, underlying)

    def _remove_blp_staking_pool_internal(self, pool) -> None:
        address = to_address(pool)
        if not self._pool_set.remove(address):
            raise StakingPoolDoesNotExistError(f"Staking pool {address} does not exist")
        del self._pools[address]
        del self._blps[address]
        self._emit("RemoveBLPStakingPool", pool=address)
        logger.info("RemoveBLPStakingPool %s", address)

    def _add_blp_staking_pool(self, caller: str, pool: StakingPool) -> None:
        self._require_owner(caller)
        self._add_blp_staking_pool_internal(pool)

    def _add_blp_staking_pools(self, caller: str, pools: Sequence[StakingPool]) -> None:
        self._require_owner(caller)
        with transaction(self):
            for pool in pools:
                self._add_blp_staking_pool_internal(pool)

    def _remove_blp_staking_pool(self, caller: str, pool) -> None:
        self._require_owner(caller)
        self._remove_blp_staking_pool_internal(pool)

    def _remove_blp_staking_pools(self, caller: str, pools: Sequence) -> None:
        self._require_owner(caller)
        with transaction(self):
            for pool in pools:
                self._remove_blp_staking_pool_internal(pool)

    # ── Admin: valid supplies ─────────────────────────────────────────

    def _add_valid_supply_internal(self, market: LendingMarket) -> None:
        address = market.address
        if not self.controller.has_itoken(address):
            raise InvalidSupplyError(f"{address} is not a listed market")
        if address in self._supply_set:
            raise ValidSupplyAlreadyExistError(f"Valid supply {address} already exists")

        self._supply_set.add(address)
        self._supplies[address] = market
        self._emit("AddValidSupply", supply=address)
        logger.info("AddValidSupply %s", address)

    def _remove_valid_supply_internal(self, market) -> None:
        address = to_address(market)
        if not self._supply_set.remove(address):
            raise ValidSupplyDoesNotExistError(f"Valid supply {address} does not exist")
        del self._supplies[address]
        self._emit("RemoveValidSupply", supply=address)
        logger.info("RemoveValidSupply %s", address)

    def _add_valid_supply(self, caller: str, market: LendingMarket) -> None:
        self._require_owner(caller)
        self._add_valid_supply_internal(market)

    def _add_valid_supplies(self, caller: str, markets: Sequence[LendingMarket]) -> None:
        self._require_owner(caller)
        with transaction(self):
            for market in markets:
                self._add_valid_supply_internal(market)

    def _remove_valid_supply(self, caller: str, market) -> None:
        self._require_owner(caller)
        self._remove_valid_supply_internal(market)

    def _remove_valid_supplies(self, caller: str, markets: Sequence) -> None:
        self._require_owner(caller)
        with transaction(self):
            for market in markets:
                self._remove_valid_supply_internal(market)

    # ── Admin: threshold ──────────────────────────────────────────────

    def _set_threshold_ratio(self, caller: str, threshold_ratio: int) -> None:
        self._require_owner(caller)
        if threshold_ratio < 0:
            raise EligibilityManagerError("Threshold ratio cannot be negative")
        old = self.threshold_ratio
        self.threshold_ratio = threshold_ratio
        self._emit("NewThresholdRatio", old_threshold_ratio=old, new_threshold_ratio=threshold_ratio)
        logger.info("NewThresholdRatio %d -> %d", old, threshold_ratio)
