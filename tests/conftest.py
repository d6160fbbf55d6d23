"""
conftest.py - Shared pytest fixtures for vault tests

Provides common fixtures used across unit, conformance and functional tests:
- A custody ledger with USDC (6 decimals) and WETH (18 decimals), funded users
- A registry with a price router, fee manager, adapters and trusted positions
- A lending market with WETH liquidity
- A USDC vault owned by "gov"
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict

from vault import (
    Asset, Custody, Registry, StaticPricingSource, StaticFeeManager,
    Vault, VaultConfig, FeeConfig,
    TokenAdapter, LendingMarket, LendingAdapter, DebtAdapter, VaultSharesAdapter,
    PRICE_ROUTER_SLOT, FEE_MANAGER_SLOT, AUTOMATION_ACTOR_SLOT,
)

from tests.fakes import StrategistFake, HookedTokenAdapter


T0 = datetime(2025, 1, 1)

USDC = Asset("USDC", "USD Coin", 6)
WETH = Asset("WETH", "Wrapped Ether", 18)

USERS = ("alice", "bob", "carol")

# Trusted position ids
POS_USDC = 1
POS_WETH = 2
POS_LEND_USDC = 3
POS_DEBT_WETH = 4
POS_HOOKED_USDC = 9


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def usdc(amount) -> int:
    """Whole (or Decimal) USDC to native units."""
    return int(Decimal(str(amount)) * 10 ** 6)


def weth(amount) -> int:
    return int(Decimal(str(amount)) * 10 ** 18)


def shares(amount) -> int:
    """Whole shares to 18-decimal units."""
    return int(Decimal(str(amount)) * 10 ** 18)


def custody_snapshot(custody: Custody) -> Dict[str, Dict[str, int]]:
    """Plain copy of all non-zero custody balances."""
    return {
        holder: {asset: amount for asset, amount in balances.items() if amount}
        for holder, balances in custody.balances.items()
    }


def vault_snapshot(vault: Vault) -> dict:
    """Comparable view of a vault's share ledger and state."""
    state = vault.state
    return {
        "supply": vault.shares.total_supply,
        "balances": dict(vault.shares.balances),
        "allowances": dict(vault.shares.allowances),
        "fees": state.fees.copy(),
        "credit": list(state.positions.credit_positions),
        "debt": list(state.positions.debt_positions),
        "holding": state.holding_position_id,
        "catalogue": set(state.adaptor_catalogue),
        "shutdown": state.is_shutdown,
    }


def make_vault(env, name: str = "usdc-vault", holding_position_id: int = POS_USDC, **config) -> Vault:
    """Create a USDC vault owned by gov with an optional fee schedule."""
    fee_keys = {"join_fee_bps", "exit_fee_bps", "management_fee", "performance_fee", "profit_accrual_period"}
    fee_args = {k: v for k, v in config.items() if k in fee_keys}
    vault_args = {k: v for k, v in config.items() if k not in fee_keys}
    return Vault(
        name, "USDC", env.custody, env.registry, "gov", holding_position_id,
        config=VaultConfig(fees=FeeConfig(**fee_args), **vault_args),
    )


class Env:
    """Bundle of the shared collaborators a test vault needs."""

    def __init__(self, custody, registry, pricing, market, fee_manager, hooked):
        self.custody = custody
        self.registry = registry
        self.pricing = pricing
        self.market = market
        self.fee_manager = fee_manager
        self.hooked = hooked

    def advance(self, **kwargs) -> datetime:
        self.custody.advance_time(self.custody.current_time + timedelta(**kwargs))
        return self.custody.current_time


# =============================================================================
# FIXTURES
# =============================================================================

def build_env() -> Env:
    """Custody, registry, pricing and a lending market, all wired together."""
    custody = Custody("main", T0)
    custody.register_asset(USDC)
    custody.register_asset(WETH)
    for holder in USERS + ("gov", "fees", "keeper"):
        custody.register_holder(holder)
    for user in USERS:
        custody.mint("USDC", user, usdc(10_000))

    pricing = StaticPricingSource(
        {"USDC": Decimal("1"), "WETH": Decimal("2000")},
        {"USDC": 6, "WETH": 18},
    )
    fee_manager = StaticFeeManager("fees")

    registry = Registry()
    registry.set_address(PRICE_ROUTER_SLOT, pricing)
    registry.set_address(FEE_MANAGER_SLOT, fee_manager)
    registry.set_address(AUTOMATION_ACTOR_SLOT, "keeper")

    hooked = HookedTokenAdapter()
    for adapter in (TokenAdapter(), LendingAdapter(), DebtAdapter(), VaultSharesAdapter(),
                    StrategistFake(), hooked):
        registry.trust_adaptor(adapter)

    market = LendingMarket(custody, "aave")
    market.list_asset("USDC")
    market.list_asset("WETH")
    custody.mint("WETH", "aave", weth(1_000))

    registry.trust_position(POS_USDC, "token", False, {"asset": "USDC"})
    registry.trust_position(POS_WETH, "token", False, {"asset": "WETH"})
    registry.trust_position(POS_LEND_USDC, "lending", False, {"market": market, "asset": "USDC"})
    registry.trust_position(POS_DEBT_WETH, "debt", True, {"market": market, "asset": "WETH"})
    registry.trust_position(POS_HOOKED_USDC, "hooked-token", False, {"asset": "USDC"})

    return Env(custody, registry, pricing, market, fee_manager, hooked)


@pytest.fixture
def env():
    return build_env()


@pytest.fixture
def vault(env):
    """Fee-free USDC vault owned by gov, holding position POS_USDC."""
    return make_vault(env)


@pytest.fixture
def funded_vault(env, vault):
    """Vault with 1,000 USDC deposited by alice."""
    vault.deposit("alice", usdc(1_000), "alice")
    return vault
