"""
Shared fixtures: a small wired system of oracle, controller, two markets,
one BLP staking pool, eligibility manager, reward distributor manager and
a single reward distributor funded from a treasury.
"""

from dataclasses import dataclass
from typing import Dict, Iterable

import pytest

from lmreward.constants import BASE
from lmreward.eligibility import EligibilityManager
from lmreward.lending import InMemoryController, InMemoryMarket, SimplePriceOracle
from lmreward.rewards import RewardDistributor, RewardDistributorManager
from lmreward.staking import BLPStakingPool
from lmreward.state import BlockClock
from lmreward.tokens import MAX_UINT256, RewardToken
from lmreward.utils import derive_address

OWNER = derive_address("test:owner")
TREASURY = derive_address("test:treasury")
ALICE = derive_address("test:alice")
BOB = derive_address("test:bob")
CAROL = derive_address("test:carol")
HUNTER = derive_address("test:hunter")

START_TIME = 1_700_000_000
THRESHOLD = 10**16  # 1%


@dataclass
class World:
    clock: BlockClock
    oracle: SimplePriceOracle
    controller: InMemoryController
    usdc: InMemoryMarket
    eth: InMemoryMarket
    lp: RewardToken
    pool: BLPStakingPool
    em: EligibilityManager
    rdm: RewardDistributorManager
    reward_token: RewardToken
    distributor: RewardDistributor

    # ── Actions ───────────────────────────────────────────────────────

    def stake(self, account: str, amount: int) -> None:
        self.lp.mint(OWNER, account, amount)
        self.lp.approve(account, self.pool.address, amount)
        self.pool.stake(account, account, amount)

    def unpause(self, market: InMemoryMarket, supply_speed: int = 0, borrow_speed: int = 0) -> None:
        self.distributor._unpause(
            OWNER, [market.address], [borrow_speed], [market.address], [supply_speed]
        )

    def advance(self, seconds: int) -> None:
        self.clock.advance(seconds)

    # ── Checks ────────────────────────────────────────────────────────

    def markets(self) -> Iterable[InMemoryMarket]:
        return self.controller.get_all_itokens()

    def assert_ledger_consistent(self) -> None:
        """Every eligible total equals the sum of its per-account entries."""
        for market in self.markets():
            supply_sum = sum(v for (m, _), v in self.rdm._eligible_supply.items() if m == market.address)
            borrow_sum = sum(v for (m, _), v in self.rdm._eligible_borrow.items() if m == market.address)
            assert self.rdm.eligible_total_supply(market) == supply_sum
            assert self.rdm.eligible_total_borrow(market) == borrow_sum


def build_world(
    threshold_ratio: int = THRESHOLD,
    lp_price: int = BASE,
    usdc_price: int = BASE,
    eth_price: int = 2_000 * BASE,
) -> World:
    clock = BlockClock(START_TIME)
    oracle = SimplePriceOracle(OWNER, clock)
    controller = InMemoryController(OWNER, oracle, clock)

    usdc = InMemoryMarket("iUSDC", clock)
    eth = InMemoryMarket("iETH", clock)
    for market, price in ((usdc, usdc_price), (eth, eth_price)):
        controller._add_market(OWNER, market)
        oracle.set_price(OWNER, market.address, price)

    lp = RewardToken("DF UTS LP", "DF_UTS_LP", OWNER, clock)
    oracle.set_price(OWNER, lp.address, lp_price)
    pool = BLPStakingPool(OWNER, lp, clock)

    em = EligibilityManager(OWNER, controller, clock, threshold_ratio=threshold_ratio)
    em._add_blp_staking_pool(OWNER, pool)
    em._add_valid_supplies(OWNER, [usdc, eth])

    rdm = RewardDistributorManager(OWNER, controller, em, clock)
    controller._set_reward_distributor_manager(OWNER, rdm)
    pool._set_reward_distributor_manager(OWNER, rdm)

    reward_token = RewardToken("Unitus", "UTS", OWNER, clock)
    reward_token.mint(OWNER, TREASURY, 10**30)
    distributor = RewardDistributor(OWNER, reward_token, TREASURY, rdm, clock)
    reward_token.approve(TREASURY, distributor.address, MAX_UINT256)
    rdm._add_reward_distributor(OWNER, distributor)

    return World(
        clock=clock, oracle=oracle, controller=controller, usdc=usdc, eth=eth,
        lp=lp, pool=pool, em=em, rdm=rdm, reward_token=reward_token,
        distributor=distributor,
    )


@pytest.fixture
def world() -> World:
    return build_world()
