"""
vault_shares.py - Shares of another vault (fund-of-funds)

The position's asset is the target vault's accounting asset and its balance
is what the held shares would redeem for right now. Deposits and
withdrawals go through the target vault's public entry points with this
vault as the caller, so the target's fees, limits and checks all apply.
"""

from __future__ import annotations
from typing import Any, Optional

from ..core import AdapterData, ConfigurationData
from ..log import get_logger
from .base import AdapterContext, BaseAdapter


log = get_logger(__name__)


class VaultSharesAdapter(BaseAdapter):
    """
    adapter_data: {"vault": target Vault}

    Strategist operations:
        deposit(vault, amount)
        withdraw(vault, amount)
        redeem(vault, shares)
    """

    identifier = "vault_shares"
    operations = {
        "deposit": "deposit_into",
        "withdraw": "withdraw_from",
        "redeem": "redeem_from",
    }

    def asset_of(self, adapter_data: AdapterData) -> str:
        return adapter_data["vault"].asset

    def nested_vault(self, adapter_data: AdapterData) -> Optional[Any]:
        return adapter_data["vault"]

    def deposit(
        self, ctx: AdapterContext, amount: int,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        target = adapter_data["vault"]
        target.deposit(ctx.vault_id, amount, ctx.vault_id)

    def withdraw(
        self, ctx: AdapterContext, amount: int, receiver: str,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        ctx.require_receiver(receiver)
        target = adapter_data["vault"]
        target.withdraw(ctx.vault_id, amount, receiver, ctx.vault_id)

    def withdrawable_from(
        self, ctx: AdapterContext, adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> int:
        return adapter_data["vault"].max_withdraw(ctx.vault_id)

    def balance_of(self, ctx: AdapterContext, adapter_data: AdapterData) -> int:
        target = adapter_data["vault"]
        shares = target.balance_of(ctx.vault_id)
        if shares == 0:
            return 0
        return target.preview_redeem(shares)

    def deposit_into(self, ctx: AdapterContext, vault, amount: int) -> int:
        minted = vault.deposit(ctx.vault_id, amount, ctx.vault_id)
        log.debug("vault_shares_deposit", vault=ctx.vault_id, target=vault.name, assets=amount, shares=minted)
        return minted

    def withdraw_from(self, ctx: AdapterContext, vault, amount: int) -> int:
        return vault.withdraw(ctx.vault_id, amount, ctx.vault_id, ctx.vault_id)

    def redeem_from(self, ctx: AdapterContext, vault, shares: int) -> int:
        return vault.redeem(ctx.vault_id, shares, ctx.vault_id, ctx.vault_id)
