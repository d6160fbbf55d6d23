"""
Round-Trip Conformance Tests

INVARIANTS:

    1. Previews are exact: at the same instant,
           preview_deposit(a) == deposit(a)      preview_mint(s)  == mint(s)
           preview_redeem(s)  == redeem(s)       preview_withdraw(a) == withdraw(a)

    2. Round trips never profit: depositing a and immediately redeeming
       every share received pays out at most a, whatever the fees, the
       share price or the vault's history.

Rounding always favours the vault; these properties are what that buys.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from tests.conftest import build_env, make_vault, usdc


fee_bps = st.integers(min_value=0, max_value=1_000)
deposit_amount = st.integers(min_value=1_000, max_value=usdc(5_000))
yield_bps = st.integers(min_value=0, max_value=20_000)
share_amount = st.integers(min_value=10 ** 15, max_value=10 ** 21)


def _seeded_vault(join_bps, exit_bps, seed_assets, gain_bps):
    """Vault seeded by carol, then grown by gain_bps of the seed."""
    env = build_env()
    vault = make_vault(env, join_fee_bps=join_bps, exit_fee_bps=exit_bps)
    vault.deposit("carol", seed_assets, "carol")
    windfall = seed_assets * gain_bps // 10_000
    if windfall:
        env.custody.mint("USDC", vault.name, windfall)
    return env, vault


class TestPreviewsAreExact:

    @given(fee_bps, fee_bps, deposit_amount, yield_bps, deposit_amount)
    @settings(max_examples=100, deadline=None)
    def test_deposit_and_redeem(self, join_bps, exit_bps, seed, gain_bps, amount):
        env, vault = _seeded_vault(join_bps, exit_bps, seed, gain_bps)

        expected_shares = vault.preview_deposit(amount)
        assert vault.deposit("bob", amount, "bob") == expected_shares

        expected_assets = vault.preview_redeem(expected_shares)
        assert vault.redeem("bob", expected_shares, "bob") == expected_assets

    @given(fee_bps, fee_bps, deposit_amount, yield_bps, share_amount)
    @settings(max_examples=100, deadline=None)
    def test_mint_and_withdraw(self, join_bps, exit_bps, seed, gain_bps, amount):
        env, vault = _seeded_vault(join_bps, exit_bps, seed, gain_bps)

        expected_assets = vault.preview_mint(amount)
        assert vault.mint("bob", amount, "bob") == expected_assets

        payout = vault.max_withdraw("bob")
        if payout:
            expected_shares = vault.preview_withdraw(payout)
            assert vault.withdraw("bob", payout, "bob") == expected_shares


class TestRoundTripsNeverProfit:

    @given(fee_bps, fee_bps, deposit_amount, yield_bps, deposit_amount)
    @settings(max_examples=200, deadline=None)
    def test_deposit_then_redeem(self, join_bps, exit_bps, seed, gain_bps, amount):
        env, vault = _seeded_vault(join_bps, exit_bps, seed, gain_bps)
        start = env.custody.get_balance("bob", "USDC")

        received = vault.deposit("bob", amount, "bob")
        vault.redeem("bob", received, "bob")

        assert env.custody.get_balance("bob", "USDC") <= start

    @given(fee_bps, fee_bps, deposit_amount, yield_bps, share_amount)
    @settings(max_examples=200, deadline=None)
    def test_mint_then_redeem(self, join_bps, exit_bps, seed, gain_bps, amount):
        env, vault = _seeded_vault(join_bps, exit_bps, seed, gain_bps)
        start = env.custody.get_balance("bob", "USDC")

        vault.mint("bob", amount, "bob")
        vault.redeem("bob", amount, "bob")

        assert env.custody.get_balance("bob", "USDC") <= start
