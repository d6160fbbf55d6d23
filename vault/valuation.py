"""
valuation.py - Net asset value of a vault

Value is always expressed in the vault's accounting asset, native decimals:

    real value      = credit balances - debt balances (priced via value_delta)
    reported value  = real value - profit still locked (see fees.py)
    withdrawable    = credit positions' withdrawable amounts, priced

Pricing failures propagate; a valuation is either exact or it does not happen.
"""

from __future__ import annotations
from typing import Iterable, List, Tuple

from .core import Position, VaultInsolvent
from .adapters.base import AdapterContext
from .fees import FeeState, calculate_locked_remaining, calculate_reported_value


class ValuationEngine:
    """Reads positions through their adapters and prices them."""

    def __init__(self, ctx: AdapterContext):
        self.ctx = ctx

    def _balances(self, positions: Iterable[Position]) -> Tuple[List[str], List[int]]:
        assets, amounts = [], []
        for position in positions:
            assets.append(position.asset)
            amounts.append(position.adapter.balance_of(self.ctx, position.adapter_data))
        return assets, amounts

    def real_value(self, positions) -> int:
        """
        Credit minus debt in vault-asset units.

        Args:
            positions: The vault's PositionLedger

        Raises:
            VaultInsolvent: If debt exceeds credit
        """
        credit_assets, credit_amounts = self._balances(positions.credits())
        debt_assets, debt_amounts = self._balances(positions.debts())
        value = self.ctx.pricing.value_delta(
            credit_assets, credit_amounts, debt_assets, debt_amounts, self.ctx.vault_asset
        )
        if value < 0:
            raise VaultInsolvent(f"{self.ctx.vault_id}: net value {value} is negative")
        return value

    def reported_value(self, positions, fees: FeeState) -> int:
        """Real value less profit still locked at the current time."""
        real = self.real_value(positions)
        locked = calculate_locked_remaining(
            fees.locked_profit, fees.locked_profit_start, fees.profit_accrual_period, self.ctx.now
        )
        return calculate_reported_value(real, locked)

    def withdrawable_value(self, positions) -> int:
        """What credit positions could pay out right now, in vault-asset units."""
        total = 0
        for position in positions.credits():
            amount = position.adapter.withdrawable_from(
                self.ctx, position.adapter_data, position.configuration_data
            )
            if amount:
                total += self.ctx.pricing.value(position.asset, amount, self.ctx.vault_asset)
        return total
