"""
base.py - Adapter execution context and shared adapter behaviour

Adapters are stateless. Everything they touch lives in custody (or in a
simulated external market that itself keeps its balances in custody) and
is reached through the AdapterContext a vault passes into every call.
"""

from __future__ import annotations
from typing import Any, ClassVar, Dict, Mapping, Optional

from ..core import (
    AdapterData, ConfigurationData, PricingPort,
    ExternalReceiverBlocked, UnsupportedOperation,
)


class AdapterContext:
    """
    Handle through which an adapter acts on behalf of one vault.

    Attributes:
        custody: The shared custody ledger.
        vault_id: Custody holder id of the vault (the vault's name).
        vault_asset: Accounting asset symbol of the vault.
        pricing: The vault's cached pricing port.
        block_external_receiver: Set for the duration of a rebalance; adapters
            may then only pay out to the vault itself.
    """

    def __init__(self, custody, vault_id: str, vault_asset: str, pricing: PricingPort):
        self.custody = custody
        self.vault_id = vault_id
        self.vault_asset = vault_asset
        self.pricing = pricing
        self.block_external_receiver = False

    @property
    def now(self):
        return self.custody.current_time

    def require_receiver(self, receiver: str) -> None:
        """
        Raises:
            ExternalReceiverBlocked: If a rebalance is running and receiver is not the vault
        """
        if self.block_external_receiver and receiver != self.vault_id:
            raise ExternalReceiverBlocked(
                f"{self.vault_id}: payout to {receiver} blocked during rebalance"
            )

    def __repr__(self):
        return f"AdapterContext({self.vault_id}, asset={self.vault_asset})"


class BaseAdapter:
    """
    Common adapter plumbing.

    Subclasses set `identifier`, implement the position methods, and list
    their strategist operations in `operations` (operation name -> method
    name). execute() dispatches through that table only.
    """

    identifier: ClassVar[str] = ""
    operations: ClassVar[Dict[str, str]] = {}

    def asset_of(self, adapter_data: AdapterData) -> str:
        return adapter_data["asset"]

    def is_debt(self) -> bool:
        return False

    def nested_vault(self, adapter_data: AdapterData) -> Optional[Any]:
        """The vault this position holds shares of, if any."""
        return None

    def execute(self, ctx: AdapterContext, operation: str, params: Mapping[str, Any]) -> Any:
        """
        Run a strategist operation.

        Raises:
            UnsupportedOperation: If the operation is not in this adapter's table
        """
        method_name = self.operations.get(operation)
        if method_name is None:
            raise UnsupportedOperation(f"{self.identifier}: unknown operation {operation!r}")
        return getattr(self, method_name)(ctx, **dict(params))

    def withdrawable_from(
        self, ctx: AdapterContext, adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> int:
        return self.balance_of(ctx, adapter_data)

    def balance_of(self, ctx: AdapterContext, adapter_data: AdapterData) -> int:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.identifier})"
