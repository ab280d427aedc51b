"""
In-memory deployment builder.

Wires a complete system from an ``LMRewardConfig``: oracle, controller
and markets, LP tokens and BLP staking pools, the eligibility manager,
the reward distributor manager, one RewardDistributor per lending reward
token and one BLPReward per (pool, token) stream. Treasury balances and
allowances are set up so payouts work out of the box.

Deployment order follows the dependency graph:
    staking pools → eligibility manager → reward manager → distributors
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..config.loader import LMRewardConfig
from ..constants import BASE
from ..eligibility.manager import EligibilityManager
from ..lending.controller import InMemoryController
from ..lending.market import InMemoryMarket
from ..lending.oracle import SimplePriceOracle
from ..logger import get_logger
from ..rewards.distributor import RewardDistributor
from ..rewards.manager import RewardDistributorManager
from ..staking.blp_reward import BLPReward
from ..staking.pool import BLPStakingPool
from ..state import BlockClock, Clock
from ..tokens.token import MAX_UINT256, RewardToken
from ..utils.address import derive_address, to_address
from .operations import (
    apply_blp_rates,
    apply_unpause,
    apply_valid_supplies,
    plan_blp_rates,
    plan_unpause,
    plan_valid_supplies,
    target_speeds,
    target_valid_supplies,
)

logger = get_logger(__name__)

DEFAULT_TREASURY_FUNDING = 10**9 * BASE


@dataclass
class Deployment:
    """Every component of a wired system, by symbol / name."""
    clock: Clock
    owner: str
    treasury: str
    oracle: SimplePriceOracle
    controller: InMemoryController
    eligibility_manager: EligibilityManager
    reward_manager: RewardDistributorManager
    markets: Dict[str, InMemoryMarket] = field(default_factory=dict)
    reward_tokens: Dict[str, RewardToken] = field(default_factory=dict)
    lp_tokens: Dict[str, RewardToken] = field(default_factory=dict)
    pools: Dict[str, BLPStakingPool] = field(default_factory=dict)
    distributors: Dict[str, RewardDistributor] = field(default_factory=dict)
    blp_rewards: Dict[Tuple[str, str], BLPReward] = field(default_factory=dict)

    def market(self, symbol: str) -> InMemoryMarket:
        return self.markets[symbol]

    def pool(self, name: str) -> BLPStakingPool:
        return self.pools[name]


def _fund_treasury(token: RewardToken, owner: str, treasury: str, amount: int) -> None:
    if amount > 0:
        token.mint(owner, treasury, amount)


def build_deployment(
    config: LMRewardConfig,
    clock: Optional[Clock] = None,
    owner: Optional[str] = None,
    treasury_funding: int = DEFAULT_TREASURY_FUNDING,
) -> Deployment:
    """Build and configure a full in-memory deployment from *config*."""
    config.validate()
    clock = clock or BlockClock()
    owner = to_address(owner or derive_address("lmreward:owner"))
    treasury = to_address(config.distributor.treasury or derive_address("lmreward:treasury"))

    # ── Lending side ──────────────────────────────────────────────────
    oracle = SimplePriceOracle(owner, clock)
    controller = InMemoryController(owner, oracle, clock)
    markets: Dict[str, InMemoryMarket] = {}
    for market_config in config.markets:
        market = InMemoryMarket(market_config.symbol, clock, exchange_rate=market_config.exchange_rate)
        controller._add_market(owner, market)
        oracle.set_price(owner, market.address, market_config.price)
        markets[market_config.symbol] = market

    # ── Staking pools ─────────────────────────────────────────────────
    lp_tokens: Dict[str, RewardToken] = {}
    pools: Dict[str, BLPStakingPool] = {}
    for pool_config in config.pools:
        lp = RewardToken(f"{pool_config.name} LP", f"{pool_config.name}_LP", owner, clock)
        pool = BLPStakingPool(owner, lp, clock)
        oracle.set_price(owner, lp.address, pool_config.price)
        lp_tokens[pool_config.name] = lp
        pools[pool_config.name] = pool

    # ── Eligibility ───────────────────────────────────────────────────
    eligibility_manager = EligibilityManager(
        owner, controller, clock, threshold_ratio=config.eligibility.threshold_ratio
    )
    if pools:
        eligibility_manager._add_blp_staking_pools(owner, list(pools.values()))
    to_add, to_remove = plan_valid_supplies(
        eligibility_manager.get_valid_supplies(), target_valid_supplies(config, markets)
    )
    apply_valid_supplies(eligibility_manager, owner, to_add, to_remove)

    # ── Reward manager ────────────────────────────────────────────────
    reward_manager = RewardDistributorManager(owner, controller, eligibility_manager, clock)
    controller._set_reward_distributor_manager(owner, reward_manager)
    for pool in pools.values():
        pool._set_reward_distributor_manager(owner, reward_manager)

    # ── Reward tokens (treasury-funded) ───────────────────────────────
    reward_tokens: Dict[str, RewardToken] = {}
    for symbol in config.reward_tokens():
        token = RewardToken(symbol, symbol, owner, clock)
        _fund_treasury(token, owner, treasury, treasury_funding)
        reward_tokens[symbol] = token

    # ── Lending distributors ──────────────────────────────────────────
    distributors: Dict[str, RewardDistributor] = {}
    for reward in config.lending_rewards:
        token = reward_tokens[reward.reward_token]
        distributor = RewardDistributor(
            owner, token, treasury, reward_manager, clock,
            bounty_ratio=config.distributor.bounty_ratio,
        )
        token.approve(treasury, distributor.address, MAX_UINT256)
        reward_manager._add_reward_distributor(owner, distributor)
        apply_unpause(distributor, owner, plan_unpause(distributor, target_speeds(markets, reward)))
        distributors[reward.reward_token] = distributor

    # ── BLP reward streams ────────────────────────────────────────────
    blp_rewards: Dict[Tuple[str, str], BLPReward] = {}
    for stream in config.blp_rewards:
        token = reward_tokens[stream.reward_token]
        pool = pools[stream.pool]
        blp_reward = BLPReward(owner, pool, token, treasury, clock)
        token.approve(treasury, blp_reward.address, MAX_UINT256)
        pool._add_reward_distributor(owner, blp_reward)
        blp_rewards[(stream.pool, stream.reward_token)] = blp_reward
    apply_blp_rates(
        blp_rewards, owner,
        plan_blp_rates(blp_rewards, {(s.pool, s.reward_token): s.rate for s in config.blp_rewards}),
    )

    logger.info(
        "Deployment built: %d market(s), %d pool(s), %d distributor(s), %d BLP stream(s)",
        len(markets), len(pools), len(distributors), len(blp_rewards),
    )
    return Deployment(
        clock=clock,
        owner=owner,
        treasury=treasury,
        oracle=oracle,
        controller=controller,
        eligibility_manager=eligibility_manager,
        reward_manager=reward_manager,
        markets=markets,
        reward_tokens=reward_tokens,
        lp_tokens=lp_tokens,
        pools=pools,
        distributors=distributors,
        blp_rewards=blp_rewards,
    )
