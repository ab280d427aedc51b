"""
Operational planning for a live deployment.

Each operation is split into a pure ``plan_*`` step that diffs the
current on-chain-style state against the target schedule, and an
``apply_*`` step that executes only what the plan says changed.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Mapping, Sequence, Tuple

from ..config.loader import LendingRewardConfig, LMRewardConfig
from ..constants import SECONDS_PER_DAY
from ..lending.interfaces import LendingMarket
from ..logger import get_logger
from ..rewards.distributor import RewardDistributor
from ..staking.blp_reward import BLPReward
from ..utils.fixed_point import ceil_div

logger = get_logger(__name__)


def daily_to_speed(daily_amount: int) -> int:
    """Per-second speed for a daily amount, rounded up."""
    if daily_amount < 0:
        raise ValueError("Daily amount cannot be negative")
    return ceil_div(daily_amount, SECONDS_PER_DAY)


# ── Lending reward speeds ─────────────────────────────────────────────

@dataclass
class SpeedPlan:
    """Arguments for one ``_unpause`` or ``_set_distribution_speeds`` call."""
    method: str
    borrow_markets: List[str] = field(default_factory=list)
    borrow_speeds: List[int] = field(default_factory=list)
    supply_markets: List[str] = field(default_factory=list)
    supply_speeds: List[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.borrow_markets and not self.supply_markets

    def args(self) -> Tuple[List[str], List[int], List[str], List[int]]:
        return self.borrow_markets, self.borrow_speeds, self.supply_markets, self.supply_speeds


def target_speeds(
    markets: Mapping[str, LendingMarket],
    reward: LendingRewardConfig,
) -> Dict[str, Tuple[int, int]]:
    """
    ``market address -> (supply_speed, borrow_speed)`` for every listed
    market. Markets missing from the schedule target zero.
    """
    speeds = {market.address: (0, 0) for market in markets.values()}
    for symbol, daily in reward.markets.items():
        market = markets.get(symbol)
        if market is None:
            logger.warning("%s schedule names unlisted market %s", reward.reward_token, symbol)
            continue
        speeds[market.address] = (daily_to_speed(daily.supply), daily_to_speed(daily.borrow))
    return speeds


def plan_unpause(
    distributor: RewardDistributor,
    market_speeds: Mapping[str, Tuple[int, int]],
) -> SpeedPlan:
    """Only speeds that differ from the distributor's current ones are planned."""
    plan = SpeedPlan(method="_unpause" if distributor.paused else "_set_distribution_speeds")
    for market, (supply_speed, borrow_speed) in market_speeds.items():
        if distributor.distribution_supply_speed(market) != supply_speed:
            plan.supply_markets.append(market)
            plan.supply_speeds.append(supply_speed)
        if distributor.distribution_speed(market) != borrow_speed:
            plan.borrow_markets.append(market)
            plan.borrow_speeds.append(borrow_speed)
    return plan


def apply_unpause(distributor: RewardDistributor, owner: str, plan: SpeedPlan) -> bool:
    if plan.is_empty:
        logger.info("%s speeds already up to date", distributor.reward_token.symbol)
        return False
    getattr(distributor, plan.method)(owner, *plan.args())
    logger.info(
        "%s %s: %d supply / %d borrow speed(s) changed",
        distributor.reward_token.symbol, plan.method,
        len(plan.supply_markets), len(plan.borrow_markets),
    )
    return True


def plan_pause(distributor: RewardDistributor) -> bool:
    """True when the distributor is running and needs pausing."""
    return not distributor.paused


def apply_pause(distributor: RewardDistributor, owner: str) -> bool:
    if not plan_pause(distributor):
        return False
    distributor._pause(owner)
    return True


# ── BLP reward rates ──────────────────────────────────────────────────

def plan_blp_rates(
    rewards: Mapping[Hashable, BLPReward],
    targets: Mapping[Hashable, int],
) -> Dict[Hashable, Tuple[int, int]]:
    """``key -> (current_rate, target_rate)`` for the rates that change."""
    plan: Dict[Hashable, Tuple[int, int]] = {}
    for key, rate in targets.items():
        if key not in rewards:
            raise KeyError(f"No BLP reward for {key!r}")
        current = rewards[key].reward_rate
        if current != rate:
            plan[key] = (current, rate)
    return plan


def apply_blp_rates(
    rewards: Mapping[Hashable, BLPReward],
    owner: str,
    plan: Mapping[Hashable, Tuple[int, int]],
) -> int:
    for key, (_, rate) in plan.items():
        rewards[key].set_reward_rate(owner, rate)
    return len(plan)


# ── Valid supplies ────────────────────────────────────────────────────

def target_valid_supplies(config: LMRewardConfig, markets: Mapping[str, LendingMarket]) -> List[str]:
    valid = config.eligibility.valid_supplies
    if valid.all_markets:
        return [market.address for market in markets.values()]
    return [markets[symbol].address for symbol in valid.symbols]


def plan_valid_supplies(current: Sequence[str], target: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Returns ``(to_add, to_remove)``, each in the order of its source list."""
    to_add = [address for address in target if address not in current]
    to_remove = [address for address in current if address not in target]
    return to_add, to_remove


def apply_valid_supplies(
    eligibility_manager,
    owner: str,
    to_add: Sequence[str],
    to_remove: Sequence[str],
) -> None:
    if to_remove:
        eligibility_manager._remove_valid_supplies(owner, list(to_remove))
        logger.info("Removed %d valid supply market(s)", len(to_remove))
    if to_add:
        controller = eligibility_manager.controller
        eligibility_manager._add_valid_supplies(owner, [controller.get_itoken(a) for a in to_add])
        logger.info("Added %d valid supply market(s)", len(to_add))
