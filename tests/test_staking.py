"""
BLP Staking Test Suite

Coverage:
  - Staking pool positions, approvals and rollback
  - Eligibility refresh after stake / withdraw
  - BLPReward stream maths, payout, rate changes and admin
"""

import pytest

from lmreward.constants import BASE, SECONDS_PER_DAY, ZERO_ADDRESS
from lmreward.exceptions import InvalidParameterError, NotOwnerError, UnauthorizedError
from lmreward.staking import (
    BLPReward,
    BLPSameTreasuryAddressError,
    BLPTreasuryIsZeroAddressError,
    CallerIsNotStakingPoolError,
    InsufficientStakeError,
    InvalidRewardDistributorManagerError,
    StakeAmountIsZeroError,
    StakingRewardDistributorAlreadyExistError,
    StakingRewardDistributorDoesNotExistError,
    WithdrawAmountIsZeroError,
)
from lmreward.tokens import MAX_UINT256, InsufficientAllowanceError

from conftest import ALICE, BOB, OWNER, TREASURY

RATE = 10**16  # 0.01 per second


def make_blp_reward(world, rate=RATE):
    blp_reward = BLPReward(OWNER, world.pool, world.reward_token, TREASURY, world.clock)
    world.reward_token.approve(TREASURY, blp_reward.address, MAX_UINT256)
    world.pool._add_reward_distributor(OWNER, blp_reward)
    if rate:
        blp_reward.set_reward_rate(OWNER, rate)
    return blp_reward


# ══════════════════════════════════════════════════════════════════════
#  STAKING POOL
# ══════════════════════════════════════════════════════════════════════

class TestStakingPool:

    def test_probe_and_staking_token(self, world):
        assert world.pool.is_staking_pool()
        assert world.pool.staking_token == world.lp.address

    def test_stake_moves_lp_into_pool(self, world):
        world.stake(ALICE, 5 * BASE)
        assert world.pool.balance_of(ALICE) == 5 * BASE
        assert world.pool.total_supply == 5 * BASE
        assert world.lp.balance_of(world.pool.address) == 5 * BASE
        assert world.lp.balance_of(ALICE) == 0
        event = world.pool.events_named("Staked")[-1]
        assert event["recipient"] == ALICE and event["total"] == 5 * BASE

    def test_stake_for_another_account(self, world):
        world.lp.mint(OWNER, BOB, BASE)
        world.lp.approve(BOB, world.pool.address, BASE)
        world.pool.stake(BOB, ALICE, BASE)
        assert world.pool.balance_of(ALICE) == BASE
        assert world.pool.balance_of(BOB) == 0
        assert world.pool.events_named("Staked")[-1]["spender"] == BOB

    def test_stake_without_approval_rolls_back(self, world):
        world.lp.mint(OWNER, ALICE, BASE)
        with pytest.raises(InsufficientAllowanceError):
            world.pool.stake(ALICE, ALICE, BASE)
        assert world.pool.balance_of(ALICE) == 0
        assert world.pool.total_supply == 0
        assert world.pool.events_named("Staked") == []

    def test_zero_amounts(self, world):
        with pytest.raises(StakeAmountIsZeroError):
            world.pool.stake(ALICE, ALICE, 0)
        with pytest.raises(WithdrawAmountIsZeroError):
            world.pool.withdraw(ALICE, 0)

    def test_withdraw(self, world):
        world.stake(ALICE, 5 * BASE)
        world.pool.withdraw(ALICE, 2 * BASE)
        assert world.pool.balance_of(ALICE) == 3 * BASE
        assert world.lp.balance_of(ALICE) == 2 * BASE
        assert world.pool.events_named("Withdrawn")[-1]["amount"] == 2 * BASE

    def test_withdraw_more_than_staked(self, world):
        world.stake(ALICE, BASE)
        with pytest.raises(InsufficientStakeError):
            world.pool.withdraw(ALICE, 2 * BASE)

    def test_stake_refreshes_eligibility(self, world):
        world.usdc.mint(ALICE, ALICE, 100 * BASE)
        assert not world.rdm.is_eligible(ALICE)
        world.stake(ALICE, BASE)
        assert world.rdm.is_eligible(ALICE)

    def test_pool_without_manager_skips_refresh(self, world):
        world.pool.reward_distributor_manager = None
        world.usdc.mint(ALICE, ALICE, 100 * BASE)
        world.stake(ALICE, BASE)
        assert not world.rdm.is_eligible(ALICE)

    def test_invalid_manager(self, world):
        with pytest.raises(InvalidRewardDistributorManagerError):
            world.pool._set_reward_distributor_manager(OWNER, world.em)

    def test_set_manager_emits(self, world):
        world.pool._set_reward_distributor_manager(OWNER, world.rdm)
        event = world.pool.events_named("NewRewardDistributorManager")[-1]
        assert event["manager"] == world.rdm.address

    def test_distributor_registry(self, world):
        blp_reward = make_blp_reward(world, rate=0)
        assert world.pool.get_reward_distributors() == [blp_reward.address]
        with pytest.raises(StakingRewardDistributorAlreadyExistError):
            world.pool._add_reward_distributor(OWNER, blp_reward)
        world.pool._remove_reward_distributor(OWNER, blp_reward)
        with pytest.raises(StakingRewardDistributorDoesNotExistError):
            world.pool._remove_reward_distributor(OWNER, blp_reward)

    def test_admin_requires_owner(self, world):
        with pytest.raises(NotOwnerError, match="onlyOwner"):
            world.pool._set_reward_distributor_manager(ALICE, world.rdm)


# ══════════════════════════════════════════════════════════════════════
#  BLP REWARD
# ══════════════════════════════════════════════════════════════════════

class TestBLPReward:

    def test_single_staker_daily_stream(self, world):
        blp_reward = make_blp_reward(world)
        world.stake(ALICE, 100 * BASE)
        world.advance(SECONDS_PER_DAY)

        assert blp_reward.earned(ALICE) == 864 * BASE
        assert blp_reward.reward_distributed() == 864 * BASE

        paid = blp_reward.get_reward(ALICE, ALICE)
        assert paid == 864 * BASE
        assert world.reward_token.balance_of(ALICE) == 864 * BASE
        assert blp_reward.earned(ALICE) == 0
        assert blp_reward.events_named("RewardPaid")[-1]["reward"] == 864 * BASE

    def test_stakers_split_by_position(self, world):
        blp_reward = make_blp_reward(world)
        world.stake(ALICE, BASE)
        world.stake(BOB, 3 * BASE)
        world.advance(400)

        assert blp_reward.earned(ALICE) == 400 * RATE // 4
        assert blp_reward.earned(BOB) == 400 * RATE * 3 // 4

    def test_nothing_accrues_while_pool_is_empty(self, world):
        blp_reward = make_blp_reward(world)
        world.advance(1_000)
        world.stake(ALICE, BASE)
        world.advance(10)

        assert blp_reward.earned(ALICE) == 10 * RATE
        assert blp_reward.reward_distributed() == 10 * RATE

    def test_withdraw_settles_before_balance_change(self, world):
        blp_reward = make_blp_reward(world)
        world.stake(ALICE, 2 * BASE)
        world.advance(100)
        world.pool.withdraw(ALICE, BASE)
        world.advance(100)

        # Sole staker the whole time: every emitted unit is hers.
        assert blp_reward.earned(ALICE) == 200 * RATE

    def test_rate_change_settles_at_old_rate(self, world):
        blp_reward = make_blp_reward(world)
        world.stake(ALICE, BASE)
        world.advance(100)
        blp_reward.set_reward_rate(OWNER, 3 * RATE)
        world.advance(100)

        assert blp_reward.earned(ALICE) == 400 * RATE
        event = blp_reward.events_named("RewardRateUpdated")[-1]
        assert event["old_reward_rate"] == RATE and event["new_reward_rate"] == 3 * RATE

    def test_update_reward_is_pool_only(self, world):
        blp_reward = make_blp_reward(world)
        with pytest.raises(CallerIsNotStakingPoolError):
            blp_reward.update_reward(ALICE, ALICE)
        with pytest.raises(UnauthorizedError):
            blp_reward.update_reward(OWNER, ALICE)

    def test_get_reward_without_allowance_rolls_back(self, world):
        blp_reward = make_blp_reward(world)
        world.stake(ALICE, BASE)
        world.advance(100)
        world.reward_token.approve(TREASURY, blp_reward.address, 0)

        with pytest.raises(InsufficientAllowanceError):
            blp_reward.get_reward(BOB, ALICE)
        assert blp_reward.earned(ALICE) == 100 * RATE

    def test_negative_rate(self, world):
        blp_reward = make_blp_reward(world, rate=0)
        with pytest.raises(InvalidParameterError):
            blp_reward.set_reward_rate(OWNER, -1)

    def test_treasury_admin(self, world):
        blp_reward = make_blp_reward(world, rate=0)
        with pytest.raises(BLPTreasuryIsZeroAddressError):
            BLPReward(OWNER, world.pool, world.reward_token, ZERO_ADDRESS, world.clock)
        with pytest.raises(BLPSameTreasuryAddressError):
            blp_reward._set_treasury(OWNER, TREASURY)
        with pytest.raises(BLPTreasuryIsZeroAddressError):
            blp_reward._set_treasury(OWNER, ZERO_ADDRESS)
        blp_reward._set_treasury(OWNER, BOB)
        assert blp_reward.treasury == BOB
        assert blp_reward.events_named("TreasuryUpdated")[-1]["new_treasury"] == BOB

    def test_rescue_tokens(self, world):
        blp_reward = make_blp_reward(world, rate=0)
        world.reward_token.transfer(TREASURY, blp_reward.address, 5 * BASE)

        blp_reward.rescue_tokens(OWNER, world.reward_token, 5 * BASE, BOB)
        assert world.reward_token.balance_of(BOB) == 5 * BASE
        with pytest.raises(NotOwnerError, match="onlyOwner"):
            blp_reward.rescue_tokens(ALICE, world.reward_token, 1, ALICE)
