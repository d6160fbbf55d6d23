"""
debt.py - Borrow side of a lending market

A debt position reports what the vault owes; valuation subtracts it. Users
can never deposit into or withdraw from a debt position; only strategist
operations (borrow, repay) move it.
"""

from __future__ import annotations
from typing import Optional

from ..core import AdapterData, ConfigurationData, UnsupportedOperation
from ..log import get_logger
from .base import AdapterContext, BaseAdapter
from .lending import DEFAULT_MIN_HEALTH_FACTOR, LendingMarket, check_health


log = get_logger(__name__)


class DebtAdapter(BaseAdapter):
    """
    adapter_data: {"market": LendingMarket, "asset": borrowed symbol}

    Strategist operations:
        borrow(market, asset, amount, min_health_factor=None)
        repay(market, asset, amount)
    """

    identifier = "debt"
    operations = {"borrow": "borrow", "repay": "repay"}

    def __init__(self, min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR):
        self.min_health_factor = min_health_factor

    def is_debt(self) -> bool:
        return True

    def deposit(
        self, ctx: AdapterContext, amount: int,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        raise UnsupportedOperation("Debt positions do not accept user deposits")

    def withdraw(
        self, ctx: AdapterContext, amount: int, receiver: str,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        raise UnsupportedOperation("Debt positions cannot be withdrawn from")

    def withdrawable_from(
        self, ctx: AdapterContext, adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> int:
        return 0

    def balance_of(self, ctx: AdapterContext, adapter_data: AdapterData) -> int:
        return adapter_data["market"].borrowed(ctx.vault_id, self.asset_of(adapter_data))

    def borrow(
        self, ctx: AdapterContext, market: LendingMarket, asset: str, amount: int,
        min_health_factor: Optional[int] = None,
    ) -> None:
        market.borrow(ctx.vault_id, asset, amount)
        check_health(ctx, market, min_health_factor or self.min_health_factor)
        log.debug("debt_borrow", vault=ctx.vault_id, market=market.name, asset=asset, amount=amount)

    def repay(self, ctx: AdapterContext, market: LendingMarket, asset: str, amount: int) -> int:
        repaid = market.repay(ctx.vault_id, asset, amount)
        log.debug("debt_repay", vault=ctx.vault_id, market=market.name, asset=asset, amount=repaid)
        return repaid
