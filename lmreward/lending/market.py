"""
Reference Lending Market (iToken)

In-memory market that keeps only what the reward engine reads:
  - supply shares per account (``balance_of``)
  - borrow snapshots ``(principal, interest_index)`` per account
  - the market-wide ``borrow_index`` and ``exchange_rate``

Underlying-token movements, interest-rate models and collateral checks
are not modelled. Every action reports itself to the controller, which
forwards it to the reward hooks; a failing hook unwinds the action.
"""

from typing import TYPE_CHECKING, Dict, Optional, Tuple

from ..constants import BASE
from ..exceptions import InvalidParameterError, LMRewardError
from ..logger import get_logger
from ..state import Clock, Contract, transaction
from ..utils.address import to_address

if TYPE_CHECKING:
    from .controller import InMemoryController

logger = get_logger(__name__)


class MarketError(LMRewardError):
    """Base exception for reference market operations."""


class InsufficientSharesError(MarketError):
    """Account does not hold enough supply shares."""


class RepayExceedsBorrowError(MarketError):
    """Repay amount larger than the outstanding borrow."""


class InMemoryMarket(Contract):
    """
    Lending market holding supply shares and borrow snapshots.

    ``exchange_rate`` converts shares to underlying (BASE-scaled) and
    ``borrow_index`` is the cumulative interest factor (BASE-scaled).
    """

    _STATE_FIELDS = (
        "_balances", "_total_supply", "_borrows", "_total_borrows",
        "_borrow_index", "_exchange_rate",
    )

    def __init__(
        self,
        name: str,
        clock: Clock,
        controller: Optional["InMemoryController"] = None,
        exchange_rate: int = BASE,
        borrow_index: int = BASE,
        address: Optional[str] = None,
    ):
        super().__init__(clock, address=address, label=f"market:{name}")
        if exchange_rate <= 0:
            raise InvalidParameterError("Exchange rate must be positive")
        if borrow_index < 0:
            raise InvalidParameterError("Borrow index cannot be negative")
        self.name = name
        self.controller = controller
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        self._borrows: Dict[str, Tuple[int, int]] = {}
        self._total_borrows = 0
        self._borrow_index = borrow_index
        self._exchange_rate = exchange_rate

    # ── Views ─────────────────────────────────────────────────────────

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def total_borrows(self) -> int:
        return self._total_borrows

    @property
    def borrow_index(self) -> int:
        return self._borrow_index

    def exchange_rate_stored(self) -> int:
        return self._exchange_rate

    def borrow_snapshot(self, account: str) -> Tuple[int, int]:
        return self._borrows.get(account, (0, 0))

    def borrow_balance_stored(self, account: str) -> int:
        principal, interest_index = self.borrow_snapshot(account)
        if principal == 0 or interest_index == 0:
            return 0
        return principal * self._borrow_index // interest_index

    # ── Market parameters ─────────────────────────────────────────────

    def set_exchange_rate(self, exchange_rate: int) -> None:
        if exchange_rate <= 0:
            raise InvalidParameterError("Exchange rate must be positive")
        self._exchange_rate = exchange_rate

    def accrue_interest(self, new_borrow_index: int) -> None:
        """Move the borrow index forward, growing every outstanding borrow."""
        if new_borrow_index < self._borrow_index:
            raise InvalidParameterError("Borrow index cannot decrease")
        if self._borrow_index:
            self._total_borrows = self._total_borrows * new_borrow_index // self._borrow_index
        self._borrow_index = new_borrow_index

    # ── Internal bookkeeping ──────────────────────────────────────────

    def _credit(self, account: str, shares: int) -> None:
        self._balances[account] = self.balance_of(account) + shares

    def _debit(self, account: str, shares: int) -> None:
        balance = self.balance_of(account)
        if balance < shares:
            raise InsufficientSharesError(
                f"{account} holds {balance} {self.name} shares, needs {shares}"
            )
        self._balances[account] = balance - shares

    def _set_borrow(self, account: str, amount: int) -> None:
        self._borrows[account] = (amount, self._borrow_index) if amount else (0, 0)

    def _dispatch(self, hook: str, *args, refresh_eligibility: bool = False) -> None:
        if self.controller is not None:
            self.controller.dispatch_hook(hook, *args, refresh_eligibility=refresh_eligibility)

    # ── Actions ───────────────────────────────────────────────────────

    def mint(self, caller: str, recipient: str, amount: int, refresh_eligibility: bool = False) -> int:
        """Supply *amount* underlying for *recipient*; returns shares minted."""
        if amount <= 0:
            raise InvalidParameterError("Mint amount must be positive")
        recipient = to_address(recipient)
        with transaction(self):
            shares = amount * BASE // self._exchange_rate
            self._credit(recipient, shares)
            self._total_supply += shares
            self._dispatch("after_mint", self, recipient, amount, shares,
                           refresh_eligibility=refresh_eligibility)
        logger.debug("%s mint %s shares=%d", self.name, recipient, shares)
        return shares

    def redeem(self, caller: str, shares: int, refresh_eligibility: bool = False) -> int:
        """Burn *shares* of the caller; returns the underlying released."""
        if shares <= 0:
            raise InvalidParameterError("Redeem amount must be positive")
        with transaction(self):
            self._debit(caller, shares)
            self._total_supply -= shares
            underlying = shares * self._exchange_rate // BASE
            self._dispatch("after_redeem", self, caller, shares, underlying,
                           refresh_eligibility=refresh_eligibility)
        logger.debug("%s redeem %s shares=%d", self.name, caller, shares)
        return underlying

    def borrow(self, caller: str, amount: int, refresh_eligibility: bool = False) -> None:
        if amount <= 0:
            raise InvalidParameterError("Borrow amount must be positive")
        with transaction(self):
            self._set_borrow(caller, self.borrow_balance_stored(caller) + amount)
            self._total_borrows += amount
            self._dispatch("after_borrow", self, caller, amount,
                           refresh_eligibility=refresh_eligibility)
        logger.debug("%s borrow %s amount=%d", self.name, caller, amount)

    def _repay(self, borrower: str, amount: int) -> None:
        outstanding = self.borrow_balance_stored(borrower)
        if amount > outstanding:
            raise RepayExceedsBorrowError(
                f"Repay {amount} exceeds {borrower}'s borrow {outstanding} on {self.name}"
            )
        self._set_borrow(borrower, outstanding - amount)
        self._total_borrows = max(self._total_borrows - amount, 0)

    def repay_borrow(self, caller: str, amount: int, refresh_eligibility: bool = False) -> None:
        self.repay_borrow_behalf(caller, caller, amount, refresh_eligibility)

    def repay_borrow_behalf(
        self, caller: str, borrower: str, amount: int, refresh_eligibility: bool = False
    ) -> None:
        if amount <= 0:
            raise InvalidParameterError("Repay amount must be positive")
        borrower = to_address(borrower)
        with transaction(self):
            self._repay(borrower, amount)
            self._dispatch("after_repay_borrow", self, caller, borrower, amount,
                           refresh_eligibility=refresh_eligibility)

    def liquidate_borrow(
        self,
        caller: str,
        borrower: str,
        repay_amount: int,
        collateral: "InMemoryMarket",
        refresh_eligibility: bool = False,
    ) -> int:
        """
        Repay part of *borrower*'s debt and seize collateral shares for the
        caller. Returns the number of shares seized.

        Hooks fire in order: repay (borrower's debt falls), seize
        (collateral shares move), liquidate.
        """
        if self.controller is None:
            raise MarketError("Market is not attached to a controller")
        if repay_amount <= 0:
            raise InvalidParameterError("Liquidation amount must be positive")
        borrower = to_address(borrower)
        if borrower == caller:
            raise MarketError("Borrower cannot liquidate itself")

        seize_tokens = self.controller.liquidate_calculate_seize_tokens(
            self, collateral, repay_amount
        )
        collateral_balance = collateral.balance_of(borrower)
        if collateral_balance < seize_tokens:
            raise InsufficientSharesError(
                f"{borrower} holds {collateral_balance} {collateral.name} shares, needs {seize_tokens}"
            )

        # The hooks commit reward state one by one; snapshot it with the markets.
        with transaction(self, collateral, *self.controller.reward_scope()):
            self._repay(borrower, repay_amount)
            self._dispatch("after_repay_borrow", self, caller, borrower, repay_amount,
                           refresh_eligibility=refresh_eligibility)

            collateral._debit(borrower, seize_tokens)
            collateral._credit(caller, seize_tokens)
            self._dispatch("after_seize", collateral, self, caller, borrower, seize_tokens,
                           refresh_eligibility=refresh_eligibility)

            self._dispatch("after_liquidate_borrow", self, collateral, caller, borrower,
                           repay_amount, seize_tokens,
                           refresh_eligibility=refresh_eligibility)
        logger.info(
            "%s liquidation: %s repaid %d for %s, seized %d %s",
            self.name, caller, repay_amount, borrower, seize_tokens, collateral.name,
        )
        return seize_tokens

    def transfer(self, caller: str, recipient: str, shares: int, refresh_eligibility: bool = False) -> None:
        if shares <= 0:
            raise InvalidParameterError("Transfer amount must be positive")
        recipient = to_address(recipient)
        if recipient == caller:
            raise MarketError("Cannot transfer to self")
        with transaction(self):
            self._debit(caller, shares)
            self._credit(recipient, shares)
            self._dispatch("after_transfer", self, caller, recipient, shares,
                           refresh_eligibility=refresh_eligibility)

    def flashloan(self, caller: str, to: str, amount: int, refresh_eligibility: bool = False) -> None:
        """Borrow and return within the same call; balances are unchanged."""
        if amount <= 0:
            raise InvalidParameterError("Flashloan amount must be positive")
        to = to_address(to)
        with transaction(self):
            self._dispatch("after_flashloan", self, to, amount,
                           refresh_eligibility=refresh_eligibility)
