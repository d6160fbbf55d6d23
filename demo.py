#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Vault Step by Step

A pedagogical walk through a pooled investment vault. Each step builds on
the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - Custody, governance registry, creating a vault
  4-5:  Holders      - Deposits into shares, conversions and previews
  6-7:  Strategy     - Rebalancing into a lending market, batch rollback
  8-9:  Fees         - Performance fee, locked profit, the high-water mark
  10:   Exits        - Withdrawals draining positions in order
  11:   Guarantees   - Rollback and conservation

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
    python demo.py --json    # Structured logs as JSON lines
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from vault import (
    Asset, Custody, Registry, StaticPricingSource, StaticFeeManager,
    TokenAdapter, LendingMarket, LendingAdapter,
    Vault, VaultConfig, FeeConfig, AdapterCall,
    PRICE_ROUTER_SLOT, FEE_MANAGER_SLOT,
    VaultError, configure_logging,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Initial funding, whole USDC
    alice_initial_usdc: int = 10_000
    bob_initial_usdc: int = 10_000

    # Vault fee schedule
    performance_fee: str = "0.1"
    profit_accrual_period: int = 86_400

    # Strategy
    supplied_to_market: int = 1_500
    market_interest: int = 150


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv
JSON_LOGS = "--json" in sys.argv


def usdc(amount) -> int:
    return int(Decimal(str(amount)) * 10 ** 6)


def fmt_usdc(units: int) -> str:
    return f"{Decimal(units) / 10 ** 6:,.2f} USDC"


def fmt_shares(units: int) -> str:
    return f"{Decimal(units) / 10 ** 18:,.6f} shares"


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_custody() -> Custody:
    """Create the custody ledger that holds every token balance."""
    step_header(1, "Custody", "Tokens live in one double-entry custody ledger")

    custody = Custody("demo", CONFIG.start_time)
    custody.register_asset(Asset("USDC", "USD Coin", 6))
    for holder in ("alice", "bob", "gov", "fees"):
        custody.register_holder(holder)
    custody.mint("USDC", "alice", usdc(CONFIG.alice_initial_usdc))
    custody.mint("USDC", "bob", usdc(CONFIG.bob_initial_usdc))

    print(f"alice: {fmt_usdc(custody.get_balance('alice', 'USDC'))}")
    print(f"bob:   {fmt_usdc(custody.get_balance('bob', 'USDC'))}")
    print(f"\nConservation: {custody.verify_conservation()}")
    print("""
    Minting debits the system holder, so every asset always sums to zero
    across all holders. Nothing is created out of thin air.
    """)
    return custody


def step_02_registry(custody: Custody):
    """Set up governance: prices, fee recipient, trusted adaptors and positions."""
    step_header(2, "Governance Registry", "Governance decides what a vault may touch")

    pricing = StaticPricingSource({"USDC": Decimal("1")}, {"USDC": 6})
    registry = Registry()
    registry.set_address(PRICE_ROUTER_SLOT, pricing)
    registry.set_address(FEE_MANAGER_SLOT, StaticFeeManager("fees"))
    registry.trust_adaptor(TokenAdapter())
    registry.trust_adaptor(LendingAdapter())

    market = LendingMarket(custody, "aave")
    market.list_asset("USDC")

    registry.trust_position(1, "token", False, {"asset": "USDC"})
    registry.trust_position(2, "lending", False, {"market": market, "asset": "USDC"})

    print("Trusted adaptors:  token, lending")
    print("Trusted positions: 1 = idle USDC, 2 = USDC supplied to aave")
    return registry, market


def step_03_create_vault(custody: Custody, registry: Registry) -> Vault:
    step_header(3, "Create the Vault", "A vault pools one asset and issues shares")

    config = VaultConfig(fees=FeeConfig(
        performance_fee=CONFIG.performance_fee,
        profit_accrual_period=CONFIG.profit_accrual_period,
    ))
    vault = Vault("usdc-vault", "USDC", custody, registry, "gov", holding_position_id=1, config=config)
    vault.add_position("gov", 1, 2)
    vault.add_adaptor_to_catalogue("gov", "lending")

    print(f">>> {vault!r}")
    print(f"Credit positions: {vault.credit_positions}  (index 0 is the holding position)")
    print(f"Performance fee:  {CONFIG.performance_fee}")
    return vault


# ============================================================================
# PHASE 2: HOLDERS (Steps 4-5)
# ============================================================================

def step_04_deposits(vault: Vault):
    step_header(4, "Deposits", "Deposits mint shares at the current share price")

    for user, amount in (("alice", 1_000), ("bob", 1_000)):
        minted = vault.deposit(user, usdc(amount), user)
        print(f"{user} deposits {fmt_usdc(usdc(amount))} -> {fmt_shares(minted)}")

    print(f"\nTotal supply: {fmt_shares(vault.total_supply)}")
    print(f"Total value:  {fmt_usdc(vault.total_value())}")


def step_05_previews(vault: Vault):
    step_header(5, "Previews", "Every flow can be quoted exactly before it runs")

    print(f"preview_deposit(100 USDC)  = {fmt_shares(vault.preview_deposit(usdc(100)))}")
    print(f"preview_redeem(100 shares) = {fmt_usdc(vault.preview_redeem(100 * 10 ** 18))}")
    print(f"max_withdraw(alice)        = {fmt_usdc(vault.max_withdraw('alice'))}")


# ============================================================================
# PHASE 3: STRATEGY (Steps 6-7)
# ============================================================================

def step_06_rebalance(vault: Vault, market: LendingMarket):
    step_header(6, "Rebalance", "The strategist moves funds between positions")

    result = vault.rebalance("gov", [
        AdapterCall("lending", "supply", {
            "market": market, "asset": "USDC", "amount": usdc(CONFIG.supplied_to_market),
        }),
    ])
    print(f"Value before: {fmt_usdc(result.value_before)}")
    print(f"Value after:  {fmt_usdc(result.value_after)}")
    print(f"Supplied to aave: {fmt_usdc(market.supplied(vault.name, 'USDC'))}")


def step_07_rollback(vault: Vault, market: LendingMarket):
    step_header(7, "Strategist Limits", "A batch that breaks a rule is rolled back as a whole")

    vault.add_adaptor_to_catalogue("gov", "token")
    before = market.supplied(vault.name, "USDC")
    try:
        vault.rebalance("gov", [
            AdapterCall("lending", "redeem", {"market": market, "asset": "USDC", "amount": usdc(100)}),
            AdapterCall("token", "transfer", {"asset": "USDC", "amount": usdc(100), "receiver": "bob"}),
        ])
    except VaultError as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")
    print(f"Supplied to aave: {fmt_usdc(market.supplied(vault.name, 'USDC'))} (was {fmt_usdc(before)})")
    print("""
    Strategist calls may only pay the vault itself, and the batch must
    leave real value within the deviation band and share supply unchanged.
    """)


# ============================================================================
# PHASE 4: FEES (Steps 8-9)
# ============================================================================

def step_08_performance_fee(custody: Custody, vault: Vault, market: LendingMarket):
    step_header(8, "Performance Fee", "Gains over the high-water mark pay a fee in new shares")

    market.accrue_interest(vault.name, "USDC", usdc(CONFIG.market_interest))
    accrual = vault.accrue("gov")
    print(f"Real value:        {fmt_usdc(accrual.real_value)}")
    print(f"Performance fee:   {fmt_usdc(accrual.performance_fee_value)}")
    print(f"Fee shares minted: {fmt_shares(accrual.performance_shares)}")
    print(f"Locked profit:     {fmt_usdc(accrual.locked_profit)}")
    print(f"Reported value:    {fmt_usdc(vault.total_value())}")


def step_09_release(custody: Custody, vault: Vault):
    step_header(9, "Profit Release", "Locked profit is released linearly")

    for hours in (6, 6, 12):
        custody.advance_time(custody.current_time + timedelta(hours=hours))
        print(f"{custody.current_time}: reported value {fmt_usdc(vault.total_value())}")
    print(f"\nHigh-water mark price: {Decimal(vault.fees.high_water_mark_price) / 10 ** 18:.6f}")


# ============================================================================
# PHASE 5: EXITS AND GUARANTEES (Steps 10-11)
# ============================================================================

def step_10_exit(custody: Custody, vault: Vault, market: LendingMarket):
    step_header(10, "Exit", "Withdrawals drain the holding position first, then the market")

    shares = vault.balance_of("alice")
    paid = vault.redeem("alice", shares, "alice")
    print(f"alice redeems {fmt_shares(shares)} -> {fmt_usdc(paid)}")
    print(f"Vault idle USDC:  {fmt_usdc(custody.get_balance(vault.name, 'USDC'))}")
    print(f"Supplied to aave: {fmt_usdc(market.supplied(vault.name, 'USDC'))}")


def step_11_guarantees(custody: Custody, vault: Vault):
    step_header(11, "Guarantees", "Failures change nothing; balances always conserve")

    supply = vault.total_supply
    try:
        vault.redeem("bob", vault.balance_of("bob") + 1, "bob")
    except VaultError as exc:
        print(f"Rejected: {type(exc).__name__}")
    print(f"Supply unchanged: {vault.total_supply == supply}")
    print(f"Conservation:     {custody.verify_conservation()}")


def main():
    configure_logging(level="WARNING" if not JSON_LOGS else "INFO", json=JSON_LOGS)

    print("\n" + "=" * 70)
    print("       POOLED VAULT TUTORIAL")
    print("=" * 70)

    custody = step_01_custody()
    wait_for_enter()

    registry, market = step_02_registry(custody)
    wait_for_enter()

    vault = step_03_create_vault(custody, registry)
    wait_for_enter()

    step_04_deposits(vault)
    wait_for_enter()

    step_05_previews(vault)
    wait_for_enter()

    step_06_rebalance(vault, market)
    wait_for_enter()

    step_07_rollback(vault, market)
    wait_for_enter()

    step_08_performance_fee(custody, vault, market)
    wait_for_enter()

    step_09_release(custody, vault)
    wait_for_enter()

    step_10_exit(custody, vault, market)
    wait_for_enter()

    step_11_guarantees(custody, vault)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

      - Custody conserves every asset (sum = 0)
      - Governance trusts adaptors and positions; vaults choose among them
      - Shares are minted and burned at the post-fee share price
      - Rebalances are bounded by value deviation and fully atomic
      - Performance fees only apply above the high-water mark
      - Profit is unlocked gradually so it cannot be sniped

    Next steps:
      - Read vault/vault.py for the full public surface
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
