"""
rebalance.py - Invariant-checked strategist batches

A rebalance is a list of AdapterCall items dispatched to trusted adapters.
Around the batch the engine checks:
- total share supply is unchanged
- real total value stays within [before * (1 - d), before * (1 + d)]
While the batch runs, adapters may only pay out to the vault itself.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .core import (
    WAD,
    AdaptorNotInCatalogue, AdaptorNotTrusted, SharesChanged, ValueDeviated,
)
from .fixed_point import mul_div
from .log import get_logger


log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AdapterCall:
    """
    One strategist operation.

    Attributes:
        adaptor_id: Registry id of the adapter to run.
        operation: Name in the adapter's operation table (e.g. "supply").
        params: Keyword arguments for the operation.
    """
    adaptor_id: str
    operation: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.adaptor_id:
            raise ValueError("AdapterCall adaptor_id cannot be empty")
        if not self.operation:
            raise ValueError("AdapterCall operation cannot be empty")


@dataclass(frozen=True, slots=True)
class RebalanceResult:
    value_before: int
    value_after: int
    supply: int
    results: Tuple[Any, ...] = ()


def deviation_bounds(value_before: int, deviation: int) -> Tuple[int, int]:
    """Inclusive [low, high] band around value_before for a WAD deviation."""
    low = mul_div(value_before, WAD - deviation, WAD, round_up=True)
    high = mul_div(value_before, WAD + deviation, WAD)
    return low, high


class RebalanceEngine:
    """Runs strategist batches for one vault."""

    def __init__(self, vault):
        self.vault = vault

    def _resolve(self, calls: Sequence[AdapterCall]) -> List:
        """
        Raises:
            AdaptorNotTrusted: If governance does not trust an adaptor
            AdaptorNotInCatalogue: If the vault has not enabled an adaptor
        """
        registry = self.vault.registry
        catalogue = self.vault.state.adaptor_catalogue
        adapters = []
        for call in calls:
            if not registry.is_adaptor_trusted(call.adaptor_id):
                raise AdaptorNotTrusted(f"Adaptor {call.adaptor_id} not trusted")
            if call.adaptor_id not in catalogue:
                raise AdaptorNotInCatalogue(
                    f"Adaptor {call.adaptor_id} not in {self.vault.name} catalogue"
                )
            adapters.append(registry.get_adaptor(call.adaptor_id))
        return adapters

    def rebalance(self, calls: Sequence[AdapterCall]) -> RebalanceResult:
        """
        Raises:
            ValueDeviated: If real total value left the deviation band
            SharesChanged: If total share supply changed
        """
        vault = self.vault
        adapters = self._resolve(calls)

        value_before = vault.real_value()
        supply_before = vault.shares.total_supply

        results: List[Any] = []
        vault.ctx.block_external_receiver = True
        try:
            for call, adapter in zip(calls, adapters):
                results.append(adapter.execute(vault.ctx, call.operation, call.params))
                log.debug(
                    "rebalance_call", vault=vault.name,
                    adaptor=call.adaptor_id, operation=call.operation,
                )
        finally:
            vault.ctx.block_external_receiver = False

        value_after = vault.real_value()
        supply_after = vault.shares.total_supply
        if supply_after != supply_before:
            raise SharesChanged(supply_before, supply_after)

        deviation = vault.state.rebalance_deviation
        low, high = deviation_bounds(value_before, deviation)
        if not low <= value_after <= high:
            raise ValueDeviated(value_before, value_after, deviation)

        log.info(
            "rebalance", vault=vault.name, calls=len(calls),
            value_before=value_before, value_after=value_after,
        )
        return RebalanceResult(value_before, value_after, supply_after, tuple(results))


def calls_from_mappings(items: Sequence[Dict[str, Any]]) -> List[AdapterCall]:
    """Build AdapterCall items from plain dicts (e.g. parsed JSON)."""
    return [
        AdapterCall(item["adaptor_id"], item["operation"], dict(item.get("params", {})))
        for item in items
    ]
