"""
Reference price oracle.

Owner-set price and validity flag per asset. Prices are BASE-scaled and
quoted per smallest unit of the asset, the way the lending protocol's
oracle reports them.
"""

from typing import Dict, Optional, Tuple

from ..exceptions import InvalidParameterError
from ..logger import get_logger
from ..state import Clock, Ownable
from ..utils.address import to_address

logger = get_logger(__name__)


class SimplePriceOracle(Ownable):
    """Price feed with an explicit per-asset validity flag."""

    _STATE_FIELDS = Ownable._STATE_FIELDS + ("_prices", "_status")

    def __init__(self, owner: str, clock: Clock, address: Optional[str] = None):
        super().__init__(owner, clock, address=address, label="oracle")
        self._prices: Dict[str, int] = {}
        self._status: Dict[str, bool] = {}

    def set_price(self, caller: str, asset, price: int, valid: bool = True) -> None:
        self._require_owner(caller)
        if price < 0:
            raise InvalidParameterError("Price cannot be negative")
        asset = to_address(asset)
        self._prices[asset] = price
        self._status[asset] = valid
        self._emit("PriceUpdated", asset=asset, price=price, valid=valid)
        logger.debug("Price %s = %d (valid=%s)", asset, price, valid)

    def set_status(self, caller: str, asset, valid: bool) -> None:
        self._require_owner(caller)
        asset = to_address(asset)
        self._status[asset] = valid

    def get_underlying_price(self, asset) -> int:
        return self._prices.get(to_address(asset), 0)

    def get_underlying_price_and_status(self, asset) -> Tuple[int, bool]:
        """Unknown assets report ``(0, False)``."""
        asset = to_address(asset)
        price = self._prices.get(asset, 0)
        return price, self._status.get(asset, False) and price > 0
