"""
Fungible Token

Python-native ERC-20 style token used for reward tokens, BLP (LP) tokens
and lending underlyings:
  - transfer, approve, transferFrom, balanceOf, allowance
  - owner-gated mint for treasury funding and test fixtures

Amounts are integers in the token's smallest unit.
"""

from typing import Dict, Optional, Tuple

from ..exceptions import InvalidParameterError, LMRewardError
from ..logger import get_logger
from ..state import Clock, Ownable
from ..utils.address import to_address

logger = get_logger(__name__)

MAX_UINT256 = 2**256 - 1


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class RewardTokenError(LMRewardError):
    """Base exception for token operations."""


class InsufficientBalanceError(RewardTokenError):
    """Raised when sender balance is too low."""


class InsufficientAllowanceError(RewardTokenError):
    """Raised when spender allowance is too low."""


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

class RewardToken(Ownable):
    """
    Fungible token.

    Mirrors ERC-20 semantics:
        - balance_of(address) -> int
        - transfer(caller, recipient, amount)
        - approve(caller, spender, amount)
        - transfer_from(caller, sender, recipient, amount)
        - total_supply -> int

    An allowance of MAX_UINT256 is treated as infinite and never decreases.
    """

    _STATE_FIELDS = Ownable._STATE_FIELDS + ("_total_supply", "_balances", "_allowances")

    def __init__(
        self,
        name: str,
        symbol: str,
        owner: str,
        clock: Clock,
        decimals: int = 18,
        address: Optional[str] = None,
    ):
        if not name:
            raise InvalidParameterError("Token name cannot be empty")
        if not symbol:
            raise InvalidParameterError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise InvalidParameterError(f"Decimals must be 0-18, got {decimals}")

        super().__init__(owner, clock, address=address, label=f"token:{symbol}")
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # ── Core ERC-20 operations ────────────────────────────────────────

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidParameterError("Transfer amount cannot be negative")
        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount} {self.symbol}"
            )
        self._balances[sender] = bal - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        self._emit("Transfer", sender=sender, recipient=recipient, amount=amount)

    def transfer(self, caller: str, recipient: str, amount: int) -> bool:
        recipient = to_address(recipient)
        self._move(caller, recipient, amount)
        logger.debug("Transfer: %s -> %s %d %s", caller, recipient, amount, self.symbol)
        return True

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise InvalidParameterError("Allowance amount cannot be negative")
        spender = to_address(spender)
        self._allowances[(caller, spender)] = amount
        self._emit("Approval", owner=caller, spender=spender, amount=amount)
        return True

    def transfer_from(self, caller: str, sender: str, recipient: str, amount: int) -> bool:
        """Transfer on behalf of *sender* using the caller's allowance."""
        sender = to_address(sender)
        recipient = to_address(recipient)
        allow = self.allowance(sender, caller)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount} {self.symbol}"
            )
        self._move(sender, recipient, amount)
        if allow != MAX_UINT256:
            self._allowances[(sender, caller)] = allow - amount
        logger.debug(
            "transferFrom: spender=%s %s -> %s %d %s", caller, sender, recipient, amount, self.symbol
        )
        return True

    # ── Supply management ─────────────────────────────────────────────

    def mint(self, caller: str, recipient: str, amount: int) -> None:
        self._require_owner(caller)
        if amount <= 0:
            raise InvalidParameterError("Mint amount must be positive")
        recipient = to_address(recipient)
        self._total_supply += amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        self._emit("Transfer", sender=None, recipient=recipient, amount=amount)
        logger.debug("Mint: %d %s -> %s", amount, self.symbol, recipient)
