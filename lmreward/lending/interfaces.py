"""
Lending Collaborator Interfaces

Structural types for everything the reward engine consumes from, or
exposes to, the lending protocol:
  - PriceOracle           (price + validity per asset)
  - LendingMarket         (an iToken: supply shares, borrow snapshots)
  - LendingController     (market enumeration, oracle, hook dispatch)
  - LendingHookSink       (the after-action hooks the controller invokes)
  - StakingPool           (BLP staking positions read by eligibility)

Hooks run synchronously inside the lending action. If a hook raises,
the whole action is unwound.
"""

from __future__ import annotations

from typing import List, Protocol, Tuple, runtime_checkable


class PriceOracle(Protocol):
    """Protocol that price oracles must implement."""

    def get_underlying_price_and_status(self, asset: str) -> Tuple[int, bool]: ...


class LendingMarket(Protocol):
    """Protocol for a single lending market (iToken)."""

    address: str
    name: str

    def balance_of(self, account: str) -> int: ...
    def borrow_snapshot(self, account: str) -> Tuple[int, int]: ...
    def exchange_rate_stored(self) -> int: ...

    @property
    def borrow_index(self) -> int: ...


class LendingController(Protocol):
    """Protocol for the lending controller."""

    address: str

    @property
    def price_oracle(self) -> PriceOracle: ...

    def get_all_itokens(self) -> List[LendingMarket]: ...
    def has_itoken(self, market: str) -> bool: ...
    def is_controller(self) -> bool: ...


@runtime_checkable
class LendingHookSink(Protocol):
    """
    Receiver of lending-action hooks.

    Every hook is invoked by the controller after the action has updated
    market balances, with ``caller`` set to the controller's address.
    """

    def after_mint(self, caller: str, market: LendingMarket, minter: str,
                   mint_amount: int, minted_amount: int,
                   refresh_eligibility: bool = False) -> None: ...

    def after_redeem(self, caller: str, market: LendingMarket, redeemer: str,
                     redeem_amount: int, redeemed_underlying: int,
                     refresh_eligibility: bool = False) -> None: ...

    def after_borrow(self, caller: str, market: LendingMarket, borrower: str,
                     borrow_amount: int, refresh_eligibility: bool = False) -> None: ...

    def after_repay_borrow(self, caller: str, market: LendingMarket, payer: str,
                           borrower: str, repay_amount: int,
                           refresh_eligibility: bool = False) -> None: ...

    def after_liquidate_borrow(self, caller: str, market: LendingMarket,
                               collateral: LendingMarket, liquidator: str,
                               borrower: str, repaid_amount: int, seized_amount: int,
                               refresh_eligibility: bool = False) -> None: ...

    def after_seize(self, caller: str, collateral: LendingMarket, market: LendingMarket,
                    liquidator: str, borrower: str, seized_amount: int,
                    refresh_eligibility: bool = False) -> None: ...

    def after_transfer(self, caller: str, market: LendingMarket, sender: str,
                       recipient: str, amount: int,
                       refresh_eligibility: bool = False) -> None: ...

    def after_flashloan(self, caller: str, market: LendingMarket, to: str,
                        amount: int, refresh_eligibility: bool = False) -> None: ...

    def transaction_scope(self) -> Tuple: ...


class StakingPool(Protocol):
    """Protocol for a BLP staking pool as seen by eligibility."""

    address: str

    @property
    def staking_token(self) -> str: ...

    def balance_of(self, account: str) -> int: ...
    def is_staking_pool(self) -> bool: ...
