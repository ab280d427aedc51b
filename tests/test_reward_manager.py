"""
Reward Distributor Manager Test Suite

Coverage:
  - Hook access control (controller only)
  - Eligible-balance ledger: join / leave / delta / untouched transitions
  - Borrow normalization by the market borrow index
  - Liquidation, transfer and flashloan hooks
  - Settlement ordering, no double counting, eligibility gating
  - Claims and bounty
  - Admin: distributors and eligibility manager
"""

from unittest.mock import MagicMock

import pytest

from lmreward.constants import BASE
from lmreward.eligibility import EligibilityManager
from lmreward.exceptions import (
    CallerIsNotControllerError,
    InvalidAddressError,
    InvalidEligibilityError,
    NotOwnerError,
)
from lmreward.lending import InsufficientSharesError, MarketError
from lmreward.rewards import (
    InvalidEligibilityManagerError,
    InvalidRewardDistributorError,
    RewardDistributor,
    RewardDistributorAlreadyExistError,
    RewardDistributorDoesNotExistError,
    RewardDistributorManager,
    SameEligibilityManagerError,
)
from lmreward.tokens import RewardToken
from lmreward.utils import derive_address

from conftest import ALICE, BOB, CAROL, HUNTER, OWNER, START_TIME, TREASURY


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

SUPPLY = 100 * BASE


def make_eligible(world, account=ALICE, supply=SUPPLY):
    """Supply to iUSDC, then stake exactly the 1% threshold in BLP."""
    world.usdc.mint(account, account, supply)
    world.stake(account, supply // 100)
    assert world.rdm.is_eligible(account)


# ══════════════════════════════════════════════════════════════════════
#  HOOK ACCESS
# ══════════════════════════════════════════════════════════════════════

class TestHookAccess:

    def test_hook_rejects_non_controller(self, world):
        with pytest.raises(CallerIsNotControllerError, match="not the controller"):
            world.rdm.after_mint(ALICE, world.usdc, ALICE, BASE, BASE)

    def test_every_hook_checks_caller(self, world):
        rdm, usdc = world.rdm, world.usdc
        calls = [
            lambda: rdm.after_redeem(ALICE, usdc, ALICE, 1, 1),
            lambda: rdm.after_borrow(ALICE, usdc, ALICE, 1),
            lambda: rdm.after_repay_borrow(ALICE, usdc, ALICE, ALICE, 1),
            lambda: rdm.after_liquidate_borrow(ALICE, usdc, usdc, BOB, ALICE, 1, 1),
            lambda: rdm.after_seize(ALICE, usdc, usdc, BOB, ALICE, 1),
            lambda: rdm.after_transfer(ALICE, usdc, ALICE, BOB, 1),
            lambda: rdm.after_flashloan(ALICE, usdc, ALICE, 1),
        ]
        for call in calls:
            with pytest.raises(CallerIsNotControllerError):
                call()


# ══════════════════════════════════════════════════════════════════════
#  LEDGER TRANSITIONS
# ══════════════════════════════════════════════════════════════════════

class TestLedgerTransitions:

    def test_market_argument_forms(self, world):
        make_eligible(world)
        assert world.rdm.eligible_supply(world.usdc.address.lower(), ALICE) == SUPPLY
        assert world.rdm.eligible_total_supply(world.usdc.address) == SUPPLY
        with pytest.raises(InvalidAddressError):
            world.rdm.eligible_supply("iUSDC", ALICE)

    def test_mint_while_ineligible_is_not_counted(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 0
        assert world.rdm.eligible_total_supply(world.usdc) == 0
        assert not world.rdm.is_eligible(ALICE)

    def test_join_counts_current_balances(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.stake(ALICE, BASE)

        assert world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == SUPPLY
        assert world.rdm.eligible_total_supply(world.usdc) == SUPPLY
        event = world.rdm.events_named("UpdateEligibility")[-1]
        assert event["account"] == ALICE and event["eligible"] is True
        world.assert_ledger_consistent()

    def test_known_eligible_applies_delta_without_refresh(self, world):
        make_eligible(world)
        world.usdc.mint(ALICE, ALICE, 50 * BASE)

        # Actually ineligible now, but nothing asked for a refresh.
        assert world.em.is_eligible(ALICE) == (False, True)
        assert world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 150 * BASE
        world.assert_ledger_consistent()

    def test_refresh_leaves_when_no_longer_eligible(self, world):
        make_eligible(world)
        world.usdc.mint(ALICE, ALICE, 50 * BASE, refresh_eligibility=True)

        assert not world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 0
        assert world.rdm.eligible_total_supply(world.usdc) == 0
        world.assert_ledger_consistent()

    def test_refresh_joins_with_post_action_balance(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.em._set_threshold_ratio(OWNER, 0)
        world.usdc.mint(ALICE, ALICE, 10 * BASE, refresh_eligibility=True)

        assert world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 110 * BASE

    def test_refresh_applies_delta_when_staying_eligible(self, world):
        make_eligible(world)
        world.stake(ALICE, BASE)
        world.usdc.mint(ALICE, ALICE, 50 * BASE, refresh_eligibility=True)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 150 * BASE

    def test_ineligible_refresh_stays_untouched(self, world):
        world.usdc.mint(BOB, BOB, SUPPLY, refresh_eligibility=True)
        world.usdc.mint(BOB, BOB, SUPPLY, refresh_eligibility=True)
        assert world.rdm.eligible_supply(world.usdc, BOB) == 0
        assert not world.rdm.is_eligible(BOB)

    def test_redeem_reduces_eligible_supply(self, world):
        make_eligible(world)
        world.usdc.redeem(ALICE, 30 * BASE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 70 * BASE
        world.assert_ledger_consistent()

    def test_join_covers_every_market(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.eth.mint(ALICE, ALICE, BASE)
        # usdc 100e36 + eth 2000e36 → 1% is 21 LP at price 1
        world.stake(ALICE, 21 * BASE)

        assert world.rdm.eligible_supply(world.usdc, ALICE) == SUPPLY
        assert world.rdm.eligible_supply(world.eth, ALICE) == BASE
        world.assert_ledger_consistent()

    def test_update_eligible_balances_batch(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.usdc.mint(BOB, BOB, 3 * SUPPLY)
        world.em._set_threshold_ratio(OWNER, 0)

        assert world.rdm.update_eligible_balances([ALICE, BOB]) == [True, True]
        assert world.rdm.eligible_total_supply(world.usdc) == 4 * SUPPLY
        world.assert_ledger_consistent()

    def test_withdraw_below_threshold_leaves(self, world):
        make_eligible(world)
        world.pool.withdraw(ALICE, BASE // 2)
        assert not world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_total_supply(world.usdc) == 0


class TestInvalidEligibility:

    def test_invalid_price_reverts_whole_action(self, world):
        make_eligible(world)
        world.oracle.set_status(OWNER, world.usdc.address, False)

        with pytest.raises(InvalidEligibilityError):
            world.usdc.mint(ALICE, ALICE, 10 * BASE, refresh_eligibility=True)

        assert world.usdc.balance_of(ALICE) == SUPPLY
        assert world.rdm.eligible_supply(world.usdc, ALICE) == SUPPLY

    def test_invalid_price_ignored_without_refresh(self, world):
        make_eligible(world)
        world.oracle.set_status(OWNER, world.usdc.address, False)
        world.usdc.mint(ALICE, ALICE, 10 * BASE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 110 * BASE

    def test_update_eligible_balance_reverts_batch(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.em._set_threshold_ratio(OWNER, 0)
        world.rdm.update_eligible_balance(ALICE)
        world.em._set_threshold_ratio(OWNER, 10**16)
        world.oracle.set_status(OWNER, world.lp.address, False)

        with pytest.raises(InvalidEligibilityError):
            world.rdm.update_eligible_balances([BOB, ALICE])
        assert world.rdm.is_eligible(ALICE)

    def test_stake_reverts_when_price_invalid(self, world):
        world.usdc.mint(ALICE, ALICE, SUPPLY)
        world.oracle.set_status(OWNER, world.lp.address, False)
        world.lp.mint(OWNER, ALICE, BASE)
        world.lp.approve(ALICE, world.pool.address, BASE)

        with pytest.raises(InvalidEligibilityError):
            world.pool.stake(ALICE, ALICE, BASE)
        assert world.pool.balance_of(ALICE) == 0
        assert world.lp.balance_of(ALICE) == BASE


# ══════════════════════════════════════════════════════════════════════
#  BORROW NORMALIZATION
# ══════════════════════════════════════════════════════════════════════

class TestBorrowNormalization:

    def test_borrow_delta_divided_by_borrow_index(self, world):
        make_eligible(world)
        world.usdc.accrue_interest(2 * BASE)
        world.usdc.borrow(ALICE, 10 * BASE)
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 5 * BASE

    def test_repay_delta_divided_by_borrow_index(self, world):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.usdc.accrue_interest(2 * BASE)
        world.usdc.repay_borrow(ALICE, 10 * BASE)
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 5 * BASE
        world.assert_ledger_consistent()

    def test_join_normalizes_borrow_snapshot(self, world):
        world.usdc.mint(BOB, BOB, SUPPLY)
        world.usdc.accrue_interest(2 * BASE)
        world.usdc.borrow(BOB, 10 * BASE)
        world.stake(BOB, BASE)
        assert world.rdm.eligible_borrow(world.usdc, BOB) == 5 * BASE

    def test_repay_behalf_targets_borrower(self, world):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.usdc.repay_borrow_behalf(CAROL, ALICE, 4 * BASE)
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 6 * BASE
        assert world.rdm.eligible_borrow(world.usdc, CAROL) == 0


# ══════════════════════════════════════════════════════════════════════
#  LIQUIDATION / TRANSFER / FLASHLOAN
# ══════════════════════════════════════════════════════════════════════

class TestLiquidation:

    @pytest.mark.parametrize("refresh", [False, True])
    def test_liquidation_moves_collateral_and_debt(self, world, refresh):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 10 * BASE

        seized = world.usdc.liquidate_borrow(
            CAROL, ALICE, 10 * BASE, world.usdc, refresh_eligibility=refresh
        )

        assert seized == 11 * BASE
        assert world.usdc.balance_of(CAROL) == 11 * BASE
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 0
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 89 * BASE
        # Liquidator is not eligible: its seized shares are not counted.
        assert world.rdm.eligible_supply(world.usdc, CAROL) == 0
        world.assert_ledger_consistent()

    def test_eligible_liquidator_receives_seized_shares(self, world):
        make_eligible(world)
        make_eligible(world, account=CAROL)
        world.usdc.borrow(ALICE, 10 * BASE)

        world.usdc.liquidate_borrow(CAROL, ALICE, 10 * BASE, world.usdc)

        assert world.rdm.eligible_supply(world.usdc, CAROL) == SUPPLY + 11 * BASE
        assert world.rdm.eligible_total_supply(world.usdc) == 2 * SUPPLY
        world.assert_ledger_consistent()

    def test_liquidation_without_collateral_leaves_ledger_untouched(self, world):
        make_eligible(world)
        world.eth.borrow(ALICE, 10 * BASE)

        # Alice holds no iETH to seize.
        with pytest.raises(InsufficientSharesError):
            world.eth.liquidate_borrow(CAROL, ALICE, 5 * BASE, world.eth)

        assert world.eth.borrow_balance_stored(ALICE) == 10 * BASE
        assert world.rdm.eligible_borrow(world.eth, ALICE) == 10 * BASE
        assert world.rdm.eligible_total_borrow(world.eth) == 10 * BASE
        world.assert_ledger_consistent()

    def test_liquidation_with_invalid_price_leaves_ledger_untouched(self, world):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.oracle.set_status(OWNER, world.usdc.address, False)

        with pytest.raises(MarketError):
            world.usdc.liquidate_borrow(CAROL, ALICE, 10 * BASE, world.usdc)

        assert world.usdc.borrow_balance_stored(ALICE) == 10 * BASE
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 10 * BASE
        assert world.rdm.eligible_supply(world.usdc, ALICE) == SUPPLY

    def test_failing_seize_hook_unwinds_repay_hook(self, world, monkeypatch):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.unpause(world.usdc, borrow_speed=BASE)
        world.advance(100)
        borrow_state = world.distributor.distribution_borrow_state(world.usdc.address)

        def reject_seize(*args, **kwargs):
            raise InvalidEligibilityError("seize rejected")

        monkeypatch.setattr(world.rdm, "after_seize", reject_seize)
        with pytest.raises(InvalidEligibilityError):
            world.usdc.liquidate_borrow(CAROL, ALICE, 10 * BASE, world.usdc)

        assert world.usdc.borrow_balance_stored(ALICE) == 10 * BASE
        assert world.usdc.balance_of(CAROL) == 0
        assert world.rdm.eligible_borrow(world.usdc, ALICE) == 10 * BASE
        assert world.rdm.eligible_total_borrow(world.usdc) == 10 * BASE
        assert world.distributor.distribution_borrow_state(world.usdc.address) == borrow_state
        assert world.distributor.reward(ALICE) == 0
        world.assert_ledger_consistent()


class TestTransferAndFlashloan:

    def test_transfer_to_ineligible(self, world):
        make_eligible(world)
        world.usdc.transfer(ALICE, BOB, 40 * BASE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 60 * BASE
        assert world.rdm.eligible_supply(world.usdc, BOB) == 0
        assert world.rdm.eligible_total_supply(world.usdc) == 60 * BASE
        world.assert_ledger_consistent()

    def test_transfer_between_eligible_keeps_total(self, world):
        make_eligible(world)
        make_eligible(world, account=BOB, supply=3 * SUPPLY)
        world.usdc.transfer(ALICE, BOB, 40 * BASE)

        assert world.rdm.eligible_supply(world.usdc, ALICE) == 60 * BASE
        assert world.rdm.eligible_supply(world.usdc, BOB) == 340 * BASE
        assert world.rdm.eligible_total_supply(world.usdc) == 4 * SUPPLY
        world.assert_ledger_consistent()

    def test_flashloan_without_refresh_does_not_settle(self, world):
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

        world.usdc.flashloan(ALICE, ALICE, 50 * BASE)

        state = world.distributor.distribution_supply_state(world.usdc.address)
        assert state.timestamp == START_TIME
        assert world.rdm.eligible_supply(world.usdc, ALICE) == SUPPLY

    def test_flashloan_with_refresh_can_leave(self, world):
        make_eligible(world)
        world.oracle.set_price(OWNER, world.lp.address, BASE // 2)
        world.usdc.flashloan(ALICE, ALICE, BASE, refresh_eligibility=True)
        assert not world.rdm.is_eligible(ALICE)


# ══════════════════════════════════════════════════════════════════════
#  ACCRUAL THROUGH THE LEDGER
# ══════════════════════════════════════════════════════════════════════

class TestAccrual:

    def test_settles_before_balance_change(self, world):
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

        world.usdc.mint(ALICE, ALICE, SUPPLY)
        # The first 100 s accrued on the old 100e18 balance.
        assert world.distributor.reward(ALICE) == 100 * BASE

        world.advance(100)
        world.rdm.update_reward_batch([ALICE], [world.usdc])
        assert world.distributor.reward(ALICE) == 200 * BASE

    def test_no_double_counting(self, world):
        make_eligible(world)
        make_eligible(world, account=BOB, supply=3 * SUPPLY)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

        world.rdm.update_reward_batch([ALICE, BOB], [world.usdc])
        alice = world.distributor.reward(ALICE)
        bob = world.distributor.reward(BOB)
        assert alice == 25 * BASE
        assert bob == 75 * BASE
        assert alice + bob == BASE * 100

    def test_ineligible_never_accrues(self, world):
        make_eligible(world)
        world.usdc.mint(BOB, BOB, SUPPLY)
        world.usdc.borrow(BOB, 10 * BASE)
        world.unpause(world.usdc, supply_speed=BASE, borrow_speed=BASE)
        world.advance(1_000)

        world.usdc.mint(BOB, BOB, SUPPLY)
        world.rdm.update_reward_batch([BOB], [world.usdc])
        assert world.distributor.reward(BOB) == 0
        world.rdm.update_reward_batch([ALICE], [world.usdc])
        assert world.distributor.reward(ALICE) == 1_000 * BASE

    def test_leave_settles_accrued_reward(self, world):
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

        world.pool.withdraw(ALICE, BASE)
        assert world.distributor.reward(ALICE) == 100 * BASE

        world.advance(100)
        world.rdm.update_reward_batch([ALICE], [world.usdc])
        assert world.distributor.reward(ALICE) == 100 * BASE

    def test_update_reward_fan_out_reaches_every_distributor(self, world):
        second_token = RewardToken("Arbitrum", "ARB", OWNER, world.clock)
        second = RewardDistributor(OWNER, second_token, TREASURY, world.rdm, world.clock)
        world.rdm._add_reward_distributor(OWNER, second)
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        second._unpause(OWNER, [], [], [world.usdc.address], [2 * BASE])
        world.advance(10)

        world.rdm.update_distribution_state(world.usdc, False)
        world.rdm.update_reward(world.usdc, ALICE, False)

        assert world.distributor.reward(ALICE) == 10 * BASE
        assert second.reward(ALICE) == 20 * BASE


# ══════════════════════════════════════════════════════════════════════
#  CLAIMS AND BOUNTY
# ══════════════════════════════════════════════════════════════════════

class TestClaims:

    def test_claim_reward_pays_account(self, world):
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

        world.rdm.claim_reward([ALICE], [world.usdc])

        assert world.reward_token.balance_of(ALICE) == 100 * BASE
        assert world.distributor.reward(ALICE) == 0
        event = world.distributor.events_named("RewardDistributed")[-1]
        assert event["account"] == ALICE and event["amount"] == 100 * BASE

    def test_claim_all_reward(self, world):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.unpause(world.usdc, supply_speed=BASE, borrow_speed=BASE)
        world.advance(50)

        world.rdm.claim_all_reward([ALICE])
        assert world.reward_token.balance_of(ALICE) == 100 * BASE

    def test_claim_rewards_by_side(self, world):
        make_eligible(world)
        world.usdc.borrow(ALICE, 10 * BASE)
        world.unpause(world.usdc, supply_speed=BASE, borrow_speed=BASE)
        world.advance(50)

        world.rdm.claim_rewards([ALICE], [world.usdc], [])
        assert world.reward_token.balance_of(ALICE) == 50 * BASE

    def test_claim_for_ineligible_pays_nothing(self, world):
        world.usdc.mint(BOB, BOB, SUPPLY)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)
        world.rdm.claim_all_reward([BOB])
        assert world.reward_token.balance_of(BOB) == 0


class TestBounty:

    def _accrue(self, world):
        make_eligible(world)
        world.unpause(world.usdc, supply_speed=BASE)
        world.advance(100)

    def test_bounty_splits_reward(self, world):
        self._accrue(world)
        world.oracle.set_price(OWNER, world.lp.address, 1)

        bountied = world.rdm.claim_bounty(HUNTER, [ALICE])

        assert bountied == [ALICE]
        assert world.reward_token.balance_of(HUNTER) == BASE
        assert world.reward_token.balance_of(ALICE) == 99 * BASE
        assert not world.rdm.is_eligible(ALICE)
        assert world.rdm.eligible_supply(world.usdc, ALICE) == 0
        event = world.distributor.events_named("BountyClaimed")[-1]
        assert event["hunter"] == HUNTER and event["bounty"] == BASE
        world.assert_ledger_consistent()

    def test_bounty_noop_when_still_eligible(self, world):
        self._accrue(world)
        assert world.rdm.claim_bounty(HUNTER, [ALICE]) == []
        assert world.reward_token.balance_of(HUNTER) == 0
        assert world.rdm.is_eligible(ALICE)

    def test_bounty_skips_never_eligible_accounts(self, world):
        world.usdc.mint(BOB, BOB, SUPPLY)
        assert world.rdm.claim_bounty(HUNTER, [BOB]) == []

    def test_bounty_invalid_price_raises(self, world):
        self._accrue(world)
        world.oracle.set_status(OWNER, world.lp.address, False)
        with pytest.raises(InvalidEligibilityError):
            world.rdm.claim_bounty(HUNTER, [ALICE])
        assert world.rdm.is_eligible(ALICE)


# ══════════════════════════════════════════════════════════════════════
#  ADMIN
# ══════════════════════════════════════════════════════════════════════

class TestAdmin:

    def test_add_existing_distributor(self, world):
        with pytest.raises(RewardDistributorAlreadyExistError):
            world.rdm._add_reward_distributor(OWNER, world.distributor)

    def test_remove_unknown_distributor(self, world):
        with pytest.raises(RewardDistributorDoesNotExistError):
            world.rdm._remove_reward_distributor(OWNER, derive_address("test:nobody"))

    def test_remove_and_list_distributors(self, world):
        world.rdm._remove_reward_distributor(OWNER, world.distributor)
        assert world.rdm.get_reward_distributors() == []
        assert world.rdm.events_named("RemoveRewardDistributor")[-1]["distributor"] == world.distributor.address

    def test_batch_remove_is_atomic(self, world):
        with pytest.raises(RewardDistributorDoesNotExistError):
            world.rdm._remove_reward_distributors(
                OWNER, [world.distributor, derive_address("test:nobody")]
            )
        assert world.rdm.get_reward_distributors() == [world.distributor.address]

    def test_distributor_bound_to_other_manager(self, world):
        other = RewardDistributorManager(OWNER, world.controller, world.em, world.clock)
        stray = RewardDistributor(OWNER, world.reward_token, TREASURY, other, world.clock)
        with pytest.raises(InvalidRewardDistributorError):
            world.rdm._add_reward_distributor(OWNER, stray)

    def test_add_distributor_requires_owner(self, world):
        with pytest.raises(NotOwnerError, match="onlyOwner"):
            world.rdm._add_reward_distributor(ALICE, world.distributor)

    def test_set_eligibility_manager(self, world):
        new_em = EligibilityManager(OWNER, world.controller, world.clock)
        world.rdm._set_eligibility_manager(OWNER, new_em)
        assert world.rdm.eligibility_manager is new_em
        event = world.rdm.events_named("NewEligibilityManager")[-1]
        assert event["new_eligibility_manager"] == new_em.address

    def test_set_same_eligibility_manager(self, world):
        with pytest.raises(SameEligibilityManagerError):
            world.rdm._set_eligibility_manager(OWNER, world.em)

    def test_set_invalid_eligibility_manager(self, world):
        fake = MagicMock()
        fake.is_eligibility_manager.return_value = False
        with pytest.raises(InvalidEligibilityManagerError):
            world.rdm._set_eligibility_manager(OWNER, fake)
