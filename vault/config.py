"""
config.py - Validated vault configuration

FeeConfig and VaultConfig are frozen dataclasses that normalize their inputs
on construction: fractional rates may be given as Decimal or str
("0.02" for 2%) and are stored as WAD integers; integers are taken as WAD
already. Invalid values raise at construction, before any vault exists.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Union

from .core import (
    DEFAULT_REBALANCE_DEVIATION, MAX_REBALANCE_DEVIATION,
    InvalidConfiguration, InvalidDeviationBound,
)
from .fees import (
    validate_join_exit_fee, validate_management_fee, validate_performance_fee,
    validate_profit_accrual_period,
)
from .fixed_point import to_wad


Rate = Union[int, Decimal, str]

# Share supply cap meaning "no cap".
UNLIMITED_SHARE_SUPPLY = 2 ** 192 - 1


def _as_wad(value: Rate, label: str) -> int:
    try:
        return to_wad(value)
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"{label}: cannot interpret {value!r} as a rate") from exc


@dataclass(frozen=True, slots=True)
class FeeConfig:
    """
    Fee schedule of a vault.

    Attributes:
        join_fee_bps: Deposit/mint surcharge, basis points (max 1000).
        exit_fee_bps: Withdraw/redeem surcharge, basis points (max 1000).
        management_fee: Annual fee, WAD (max 10%).
        performance_fee: Share of gains over the high-water mark, WAD (max 50%).
        profit_accrual_period: Seconds over which gains unlock (max 30 days, 0 = off).
    """
    join_fee_bps: int = 0
    exit_fee_bps: int = 0
    management_fee: Rate = 0
    performance_fee: Rate = 0
    profit_accrual_period: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'management_fee', _as_wad(self.management_fee, "management_fee"))
        object.__setattr__(self, 'performance_fee', _as_wad(self.performance_fee, "performance_fee"))
        validate_join_exit_fee(self.join_fee_bps)
        validate_join_exit_fee(self.exit_fee_bps)
        validate_management_fee(self.management_fee)
        validate_performance_fee(self.performance_fee)
        validate_profit_accrual_period(self.profit_accrual_period)


@dataclass(frozen=True, slots=True)
class VaultConfig:
    """
    Attributes:
        share_supply_cap: Maximum total shares (18 decimals).
        rebalance_deviation: Allowed real-value drift per rebalance, WAD (max 10%).
        fees: Fee schedule.
    """
    share_supply_cap: int = UNLIMITED_SHARE_SUPPLY
    rebalance_deviation: Rate = DEFAULT_REBALANCE_DEVIATION
    fees: FeeConfig = field(default_factory=FeeConfig)

    def __post_init__(self):
        if not isinstance(self.share_supply_cap, int) or self.share_supply_cap < 0:
            raise InvalidConfiguration(f"share_supply_cap must be a non-negative int, got {self.share_supply_cap!r}")
        deviation = _as_wad(self.rebalance_deviation, "rebalance_deviation")
        object.__setattr__(self, 'rebalance_deviation', validate_deviation(deviation))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> VaultConfig:
        """
        Build from a plain mapping, e.g. parsed JSON:

            {"share_supply_cap": 10**24, "rebalance_deviation": "0.001",
             "fees": {"management_fee": "0.02", "performance_fee": "0.1"}}

        Raises:
            InvalidConfiguration: On unknown keys
        """
        known = {"share_supply_cap", "rebalance_deviation", "fees"}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown vault config keys: {sorted(unknown)}")
        fee_data = dict(data.get("fees", {}))
        fee_fields = set(FeeConfig.__dataclass_fields__)
        unknown = set(fee_data) - fee_fields
        if unknown:
            raise InvalidConfiguration(f"Unknown fee config keys: {sorted(unknown)}")
        kwargs = {k: data[k] for k in ("share_supply_cap", "rebalance_deviation") if k in data}
        return cls(fees=FeeConfig(**fee_data), **kwargs)


def validate_deviation(deviation: int) -> int:
    if not isinstance(deviation, int) or not 0 <= deviation <= MAX_REBALANCE_DEVIATION:
        raise InvalidDeviationBound(
            f"Rebalance deviation must be within 0..{MAX_REBALANCE_DEVIATION}, got {deviation}"
        )
    return deviation
