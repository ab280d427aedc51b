"""
Reference Lending Controller

Market registry, oracle holder and hook dispatcher. The controller is the
only address a reward manager accepts hook calls from.
"""

from typing import Dict, List, Optional, Tuple

from ..constants import BASE, DEFAULT_LIQUIDATION_INCENTIVE
from ..exceptions import AlreadyExistsError, DoesNotExistError, InvalidParameterError
from ..logger import get_logger
from ..state import Clock, Ownable
from ..utils.address import to_address
from ..utils.ordered_set import AddressSet
from .interfaces import LendingHookSink, PriceOracle
from .market import InMemoryMarket, MarketError

logger = get_logger(__name__)


class InMemoryController(Ownable):
    """Controller for a set of in-memory markets."""

    _STATE_FIELDS = Ownable._STATE_FIELDS + ("_market_set", "liquidation_incentive")
    _REF_FIELDS = ("_markets",)

    def __init__(
        self,
        owner: str,
        price_oracle: PriceOracle,
        clock: Clock,
        liquidation_incentive: int = DEFAULT_LIQUIDATION_INCENTIVE,
        address: Optional[str] = None,
    ):
        super().__init__(owner, clock, address=address, label="controller")
        self._price_oracle = price_oracle
        self._market_set = AddressSet()
        self._markets: Dict[str, InMemoryMarket] = {}
        self.liquidation_incentive = liquidation_incentive
        self.reward_distributor_manager: Optional[LendingHookSink] = None

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def price_oracle(self) -> PriceOracle:
        return self._price_oracle

    def is_controller(self) -> bool:
        return True

    def get_all_itokens(self) -> List[InMemoryMarket]:
        return [self._markets[address] for address in self._market_set]

    def has_itoken(self, market) -> bool:
        return to_address(market) in self._market_set

    def get_itoken(self, market) -> InMemoryMarket:
        address = to_address(market)
        if address not in self._market_set:
            raise DoesNotExistError(f"Market {address} is not listed")
        return self._markets[address]

    # ── Admin ─────────────────────────────────────────────────────────

    def _add_market(self, caller: str, market: InMemoryMarket) -> None:
        self._require_owner(caller)
        if not self._market_set.add(market.address):
            raise AlreadyExistsError(f"Market {market.name} already listed")
        self._markets[market.address] = market
        market.controller = self
        self._emit("MarketAdded", market=market.address)
        logger.info("Market listed: %s (%s)", market.name, market.address)

    def _set_reward_distributor_manager(self, caller: str, manager: LendingHookSink) -> None:
        self._require_owner(caller)
        old = self.reward_distributor_manager
        self.reward_distributor_manager = manager
        self._emit(
            "NewRewardDistributorManager",
            old_manager=getattr(old, "address", None),
            new_manager=getattr(manager, "address", None),
        )

    def _set_liquidation_incentive(self, caller: str, incentive: int) -> None:
        self._require_owner(caller)
        if incentive < BASE:
            raise InvalidParameterError("Liquidation incentive must be >= 1")
        self.liquidation_incentive = incentive

    # ── Hooks ─────────────────────────────────────────────────────────

    def dispatch_hook(self, hook: str, *args, refresh_eligibility: bool = False) -> None:
        """Forward a market action to the reward manager, if one is configured."""
        if self.reward_distributor_manager is None:
            return
        getattr(self.reward_distributor_manager, hook)(
            self.address, *args, refresh_eligibility=refresh_eligibility
        )

    def reward_scope(self) -> Tuple:
        """Reward-side components to snapshot around a multi-hook market action."""
        if self.reward_distributor_manager is None:
            return ()
        return self.reward_distributor_manager.transaction_scope()

    # ── Liquidation maths ─────────────────────────────────────────────

    def liquidate_calculate_seize_tokens(
        self,
        borrowed: InMemoryMarket,
        collateral: InMemoryMarket,
        repay_amount: int,
    ) -> int:
        """
        Collateral shares worth ``repay_amount`` of the borrowed asset, plus
        the liquidation incentive.
        """
        borrowed_price, borrowed_ok = self._price_oracle.get_underlying_price_and_status(borrowed.address)
        collateral_price, collateral_ok = self._price_oracle.get_underlying_price_and_status(collateral.address)
        if not (borrowed_ok and collateral_ok) or collateral_price == 0:
            raise MarketError("Invalid price for liquidation")
        value = repay_amount * borrowed_price * self.liquidation_incentive // BASE
        return value // (collateral_price * collateral.exchange_rate_stored() // BASE)
