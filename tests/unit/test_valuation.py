"""
test_valuation.py - Unit tests for real, reported and withdrawable value
"""

import pytest
from datetime import timedelta

from vault import ValuationEngine, VaultInsolvent
from vault.fees import FeeState

from tests.conftest import POS_DEBT_WETH, POS_WETH, make_vault, usdc, weth


class TestRealValue:

    def test_mixed_assets(self, env, funded_vault):
        funded_vault.add_position("gov", 1, POS_WETH)
        env.custody.mint("WETH", "usdc-vault", weth("0.5"))
        assert funded_vault.real_value() == usdc(2_000)

    def test_debt_is_subtracted(self, env, funded_vault):
        funded_vault.add_position("gov", 0, POS_DEBT_WETH, in_debt_array=True)
        env.market.borrow("usdc-vault", "WETH", weth("0.1"))
        # borrowed WETH sits outside any credit position
        assert funded_vault.real_value() == usdc(800)

    def test_insolvent(self, env, funded_vault):
        funded_vault.add_position("gov", 0, POS_DEBT_WETH, in_debt_array=True)
        env.market.borrow("usdc-vault", "WETH", weth(1))
        with pytest.raises(VaultInsolvent):
            funded_vault.real_value()


class TestReportedValue:

    def test_locked_profit_released_linearly(self, env, funded_vault):
        engine = ValuationEngine(funded_vault.ctx)
        fees = FeeState(
            profit_accrual_period=86_400,
            locked_profit=usdc(100),
            locked_profit_start=env.custody.current_time,
        )
        positions = funded_vault.state.positions
        assert engine.reported_value(positions, fees) == usdc(900)
        env.advance(hours=6)
        assert engine.reported_value(positions, fees) == usdc(925)
        env.advance(days=1)
        assert engine.reported_value(positions, fees) == usdc(1_000)

    def test_lock_never_exceeds_value(self, env, funded_vault):
        engine = ValuationEngine(funded_vault.ctx)
        fees = FeeState(
            profit_accrual_period=86_400,
            locked_profit=usdc(5_000),
            locked_profit_start=env.custody.current_time - timedelta(seconds=1),
        )
        assert engine.reported_value(funded_vault.state.positions, fees) == 0

    def test_vault_reports_locked_gain(self, env):
        vault = make_vault(env, profit_accrual_period=86_400)
        vault.deposit("alice", usdc(100), "alice")
        env.custody.mint("USDC", "usdc-vault", usdc(48))
        vault.accrue("gov")
        assert vault.total_value() == usdc(100)
        env.advance(hours=12)
        assert vault.total_value() == usdc(124)


class TestWithdrawableValue:

    def test_priced_in_vault_asset(self, env, funded_vault):
        funded_vault.add_position("gov", 1, POS_WETH)
        env.custody.mint("WETH", "usdc-vault", weth(1))
        assert funded_vault.total_withdrawable_value() == usdc(3_000)
