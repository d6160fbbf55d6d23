"""
token.py - Plain token held directly by the vault

The simplest position: the vault's own custody balance of an asset. The
holding position of every vault uses this adapter for its accounting asset.
"""

from __future__ import annotations

from ..core import AdapterData, ConfigurationData
from .base import AdapterContext, BaseAdapter


class TokenAdapter(BaseAdapter):
    """
    adapter_data: {"asset": symbol}

    Strategist operations:
        transfer(asset, amount, receiver): move tokens out of the vault
    """

    identifier = "token"
    operations = {"transfer": "transfer"}

    def deposit(
        self, ctx: AdapterContext, amount: int,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        # Tokens already sit in the vault's custody account.
        pass

    def withdraw(
        self, ctx: AdapterContext, amount: int, receiver: str,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        ctx.require_receiver(receiver)
        ctx.custody.transfer(self.asset_of(adapter_data), ctx.vault_id, receiver, amount, "withdraw")

    def balance_of(self, ctx: AdapterContext, adapter_data: AdapterData) -> int:
        return ctx.custody.get_balance(ctx.vault_id, self.asset_of(adapter_data))

    def transfer(self, ctx: AdapterContext, asset: str, amount: int, receiver: str) -> None:
        ctx.require_receiver(receiver)
        ctx.custody.transfer(asset, ctx.vault_id, receiver, amount, "strategist transfer")
