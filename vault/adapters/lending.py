"""
lending.py - Simulated lending market and its supply-side adapter

LendingMarket is a minimal external money market living in custody:
- Supplying an asset mints a 1:1 receipt token to the supplier
- Borrowing an asset mints a 1:1 debt token to the borrower
- The market's own custody balance of an asset is its available liquidity
- Interest is injected explicitly (accrue_interest / accrue_debt_interest)

Health factor = collateral value * liquidation threshold / debt value (WAD),
with collateral and debt priced through the caller's pricing port.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from ..core import (
    Asset, Transfer, AdapterData, ConfigurationData, PricingPort,
    SYSTEM_HOLDER, WAD,
    HealthFactorBreached, InsufficientBalance, InvalidConfiguration,
)
from ..fixed_point import mul_div
from ..log import get_logger
from .base import AdapterContext, BaseAdapter


log = get_logger(__name__)

# Health factor reported for a borrower without debt.
NO_DEBT_HEALTH_FACTOR = 2 ** 256 - 1

DEFAULT_LIQUIDATION_THRESHOLD = 8 * WAD // 10
DEFAULT_MIN_HEALTH_FACTOR = 105 * WAD // 100


class LendingMarket:
    """
    Example:
        market = LendingMarket(custody, "aave")
        market.list_asset("USDC")
        market.supply("alice", "USDC", 100 * 10**6)
        market.receipt_symbol("USDC")  # "aave-USDC"
    """

    def __init__(self, custody, name: str, liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD):
        if not 0 < liquidation_threshold <= WAD:
            raise InvalidConfiguration(f"Liquidation threshold must be within (0, 1], got {liquidation_threshold}")
        self.custody = custody
        self.name = name
        self.liquidation_threshold = liquidation_threshold
        self.reserves: Dict[str, Tuple[str, str]] = {}
        custody.register_holder(name)

    def list_asset(self, underlying: str) -> Tuple[str, str]:
        """Register receipt and debt tokens for an underlying asset."""
        if underlying in self.reserves:
            raise InvalidConfiguration(f"{self.name}: {underlying} already listed")
        decimals = self.custody.get_asset(underlying).decimals
        receipt = f"{self.name}-{underlying}"
        debt = f"{self.name}-debt-{underlying}"
        self.custody.register_asset(Asset(receipt, f"{self.name} supplied {underlying}", decimals))
        self.custody.register_asset(Asset(debt, f"{self.name} borrowed {underlying}", decimals))
        self.reserves[underlying] = (receipt, debt)
        return receipt, debt

    def receipt_symbol(self, underlying: str) -> str:
        return self._reserve(underlying)[0]

    def debt_symbol(self, underlying: str) -> str:
        return self._reserve(underlying)[1]

    def _reserve(self, underlying: str) -> Tuple[str, str]:
        if underlying not in self.reserves:
            raise InvalidConfiguration(f"{self.name}: {underlying} not listed")
        return self.reserves[underlying]

    # ========================================================================
    # READS
    # ========================================================================

    def supplied(self, holder: str, underlying: str) -> int:
        return self.custody.get_balance(holder, self.receipt_symbol(underlying))

    def borrowed(self, holder: str, underlying: str) -> int:
        return self.custody.get_balance(holder, self.debt_symbol(underlying))

    def liquidity(self, underlying: str) -> int:
        return self.custody.get_balance(self.name, underlying)

    def has_debt(self, holder: str) -> bool:
        return any(self.borrowed(holder, u) for u in self.reserves)

    def health_factor(self, holder: str, pricing: PricingPort, quote_asset: str) -> int:
        collateral = sum(
            pricing.value(u, self.supplied(holder, u), quote_asset) for u in self.reserves
        )
        debt = sum(
            pricing.value(u, self.borrowed(holder, u), quote_asset) for u in self.reserves
        )
        if debt == 0:
            return NO_DEBT_HEALTH_FACTOR
        return mul_div(mul_div(collateral, self.liquidation_threshold, WAD), WAD, debt)

    # ========================================================================
    # ACTIONS
    # ========================================================================

    def supply(self, holder: str, underlying: str, amount: int) -> None:
        receipt = self.receipt_symbol(underlying)
        self.custody.execute([
            Transfer(amount, underlying, holder, self.name, "supply"),
            Transfer(amount, receipt, SYSTEM_HOLDER, holder, "supply receipt"),
        ])

    def redeem(self, holder: str, underlying: str, amount: int, receiver: str) -> None:
        """
        Raises:
            InsufficientBalance: If the holder's receipts or market liquidity fall short
        """
        if amount > self.liquidity(underlying):
            raise InsufficientBalance(
                f"{self.name}: liquidity {self.liquidity(underlying)} {underlying} < {amount}"
            )
        receipt = self.receipt_symbol(underlying)
        self.custody.execute([
            Transfer(amount, receipt, holder, SYSTEM_HOLDER, "redeem receipt"),
            Transfer(amount, underlying, self.name, receiver, "redeem"),
        ])

    def borrow(self, holder: str, underlying: str, amount: int) -> None:
        debt = self.debt_symbol(underlying)
        self.custody.execute([
            Transfer(amount, underlying, self.name, holder, "borrow"),
            Transfer(amount, debt, SYSTEM_HOLDER, holder, "debt"),
        ])

    def repay(self, holder: str, underlying: str, amount: int) -> int:
        """Repay up to the outstanding debt; returns the amount repaid."""
        amount = min(amount, self.borrowed(holder, underlying))
        if amount == 0:
            return 0
        debt = self.debt_symbol(underlying)
        self.custody.execute([
            Transfer(amount, underlying, holder, self.name, "repay"),
            Transfer(amount, debt, holder, SYSTEM_HOLDER, "repay debt"),
        ])
        return amount

    def accrue_interest(self, holder: str, underlying: str, amount: int) -> None:
        """Credit supplier interest, funded by new underlying in the market."""
        self.custody.execute([
            Transfer(amount, self.receipt_symbol(underlying), SYSTEM_HOLDER, holder, "interest"),
            Transfer(amount, underlying, SYSTEM_HOLDER, self.name, "interest funding"),
        ])

    def accrue_debt_interest(self, holder: str, underlying: str, amount: int) -> None:
        self.custody.mint(self.debt_symbol(underlying), holder, amount, "debt interest")

    def __repr__(self):
        return f"LendingMarket({self.name}, reserves={sorted(self.reserves)})"


def check_health(ctx: AdapterContext, market: LendingMarket, minimum: int) -> int:
    """
    Raises:
        HealthFactorBreached: If the vault's health factor in market is below minimum
    """
    health_factor = market.health_factor(ctx.vault_id, ctx.pricing, ctx.vault_asset)
    if health_factor < minimum:
        raise HealthFactorBreached(health_factor, minimum)
    return health_factor


class LendingAdapter(BaseAdapter):
    """
    Supply side of a lending market.

    adapter_data: {"market": LendingMarket, "asset": underlying symbol}
    configuration_data: {"min_health_factor": WAD} (optional)

    Strategist operations:
        supply(market, asset, amount)
        redeem(market, asset, amount, min_health_factor=None)
    """

    identifier = "lending"
    operations = {"supply": "supply", "redeem": "redeem"}

    def __init__(self, min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR):
        self.min_health_factor = min_health_factor

    def _minimum(self, configuration_data: Optional[ConfigurationData]) -> int:
        if configuration_data and "min_health_factor" in configuration_data:
            return configuration_data["min_health_factor"]
        return self.min_health_factor

    def deposit(
        self, ctx: AdapterContext, amount: int,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        adapter_data["market"].supply(ctx.vault_id, self.asset_of(adapter_data), amount)

    def withdraw(
        self, ctx: AdapterContext, amount: int, receiver: str,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        ctx.require_receiver(receiver)
        market = adapter_data["market"]
        market.redeem(ctx.vault_id, self.asset_of(adapter_data), amount, receiver)
        check_health(ctx, market, self._minimum(configuration_data))

    def withdrawable_from(
        self, ctx: AdapterContext, adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> int:
        market = adapter_data["market"]
        # Collateral backing a loan is never offered to withdrawing users.
        if market.has_debt(ctx.vault_id):
            return 0
        underlying = self.asset_of(adapter_data)
        return min(market.supplied(ctx.vault_id, underlying), market.liquidity(underlying))

    def balance_of(self, ctx: AdapterContext, adapter_data: AdapterData) -> int:
        return adapter_data["market"].supplied(ctx.vault_id, self.asset_of(adapter_data))

    def supply(self, ctx: AdapterContext, market: LendingMarket, asset: str, amount: int) -> None:
        market.supply(ctx.vault_id, asset, amount)
        log.debug("lending_supply", vault=ctx.vault_id, market=market.name, asset=asset, amount=amount)

    def redeem(
        self, ctx: AdapterContext, market: LendingMarket, asset: str, amount: int,
        min_health_factor: Optional[int] = None,
    ) -> None:
        market.redeem(ctx.vault_id, asset, amount, ctx.vault_id)
        check_health(ctx, market, min_health_factor or self.min_health_factor)
        log.debug("lending_redeem", vault=ctx.vault_id, market=market.name, asset=asset, amount=amount)
