"""
fees.py - Fee accrual: management, performance, join/exit and locked profit

Pure calculation functions (calculate_*) take integers and return integers.
FeeEngine combines them into a FeeAccrual for one vault at one instant, and
applies an accrual to a FeeState.

Conventions:
    - value18: vault value rescaled to 18 decimals (same scale as shares)
    - prices are WAD share prices: value18 * WAD // supply
    - join/exit fees are basis points; every other rate is a WAD fraction

Order of accrual:
    1. Management shares on the current supply for the elapsed time
    2. Performance shares on the supply including management shares
    3. High-water mark advanced to the post-fee price (never lowered)
    4. Net profit over the mark locked and released linearly, if enabled
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple

from .core import (
    WAD, BPS, SECONDS_PER_YEAR, FEE_MANAGER_SLOT,
    MAX_JOIN_EXIT_FEE_BPS, MAX_MANAGEMENT_FEE, MAX_PERFORMANCE_FEE,
    MAX_PROFIT_ACCRUAL_PERIOD,
    InvalidFeeRate, elapsed_seconds,
)
from .fixed_point import exp_wad, ln_wad, mul_div, to_share_scale, from_share_scale
from .shares import ShareLedger
from .log import get_logger


log = get_logger(__name__)


# ============================================================================
# STATE
# ============================================================================

@dataclass
class FeeState:
    """
    Mutable fee bookkeeping of one vault.

    Attributes:
        join_fee_bps: Surcharge on deposits/mints, basis points.
        exit_fee_bps: Surcharge on withdrawals/redeems, basis points.
        management_fee: Annual management fee, WAD fraction.
        management_rate_constant: -ln(1 - management_fee) / year, WAD per second.
        performance_fee: Share of gains over the mark, WAD fraction.
        high_water_mark_price: WAD share price; 0 until first accrual.
        high_water_mark_reset_time: Last owner reset, or None.
        last_management_claim: Time management fees were last accrued.
        profit_accrual_period: Seconds over which locked profit is released (0 = off).
        locked_profit: Locked amount at locked_profit_start, native asset units.
        locked_profit_start: When the current lock began.
    """
    join_fee_bps: int = 0
    exit_fee_bps: int = 0
    management_fee: int = 0
    management_rate_constant: int = 0
    performance_fee: int = 0
    high_water_mark_price: int = 0
    high_water_mark_reset_time: Optional[datetime] = None
    last_management_claim: Optional[datetime] = None
    profit_accrual_period: int = 0
    locked_profit: int = 0
    locked_profit_start: Optional[datetime] = None

    def copy(self) -> FeeState:
        return replace(self)


@dataclass(frozen=True, slots=True)
class FeeAccrual:
    """
    Outcome of accruing fees at one instant.

    Computed identically by preview and claim; only claim applies it.
    A failed accrual (see FeeEngine) has every fee zeroed, including the
    join/exit surcharges the entry/exit path reads from here.
    """
    timestamp: datetime
    real_value: int
    supply: int
    management_shares: int = 0
    performance_shares: int = 0
    performance_fee_value: int = 0
    high_water_mark_price: int = 0
    locked_profit: int = 0
    locked_profit_start: Optional[datetime] = None
    reported_value: int = 0
    join_fee_bps: int = 0
    exit_fee_bps: int = 0
    recipient: Optional[str] = None
    failed: bool = False

    @property
    def fee_shares(self) -> int:
        return self.management_shares + self.performance_shares

    @property
    def supply_after(self) -> int:
        return self.supply + self.fee_shares


# ============================================================================
# VALIDATION
# ============================================================================

def validate_join_exit_fee(bps: int) -> int:
    if not isinstance(bps, int) or not 0 <= bps <= MAX_JOIN_EXIT_FEE_BPS:
        raise InvalidFeeRate(f"Join/exit fee must be within 0..{MAX_JOIN_EXIT_FEE_BPS} bps, got {bps}")
    return bps


def validate_management_fee(rate: int) -> int:
    if not isinstance(rate, int) or not 0 <= rate <= MAX_MANAGEMENT_FEE:
        raise InvalidFeeRate(f"Management fee must be within 0..{MAX_MANAGEMENT_FEE}, got {rate}")
    return rate


def validate_performance_fee(rate: int) -> int:
    if not isinstance(rate, int) or not 0 <= rate <= MAX_PERFORMANCE_FEE:
        raise InvalidFeeRate(f"Performance fee must be within 0..{MAX_PERFORMANCE_FEE}, got {rate}")
    return rate


def validate_profit_accrual_period(seconds: int) -> int:
    if not isinstance(seconds, int) or not 0 <= seconds <= MAX_PROFIT_ACCRUAL_PERIOD:
        raise InvalidFeeRate(
            f"Profit accrual period must be within 0..{MAX_PROFIT_ACCRUAL_PERIOD}s, got {seconds}"
        )
    return seconds


# ============================================================================
# PURE CALCULATIONS
# ============================================================================

def calculate_management_rate_constant(management_fee: int) -> int:
    """
    Continuous per-second rate a such that e^(a * year) = 1 / (1 - f).

    Charging supply * (e^(a*dt) - 1) new shares over dt then dilutes holders
    by exactly f per year, however often fees are claimed.
    """
    validate_management_fee(management_fee)
    if management_fee == 0:
        return 0
    return -ln_wad(WAD - management_fee) // SECONDS_PER_YEAR


def calculate_management_fee_shares(supply: int, rate_constant: int, elapsed: int) -> int:
    """New shares owed for elapsed seconds: supply * (e^(a*dt) - 1)."""
    if supply == 0 or rate_constant == 0 or elapsed <= 0:
        return 0
    return mul_div(supply, exp_wad(rate_constant * elapsed) - WAD, WAD)


def calculate_share_price(value18: int, supply: int) -> int:
    """WAD price of one share; WAD for an empty vault."""
    if supply == 0:
        return WAD
    return mul_div(value18, WAD, supply)


def calculate_performance_fee(
    value18: int,
    supply: int,
    high_water_mark_price: int,
    performance_fee: int,
) -> Tuple[int, int]:
    """
    Performance fee on the gain above the high-water mark.

    The fee value is G = rate * (value - supply * mark). The fee is paid by
    minting f shares such that the new shares are worth exactly G:
        G = f / (supply + f) * value   =>   f = G * supply / (value - G)

    Returns:
        Tuple of (fee_value18, fee_shares); (0, 0) when there is no mark,
        no rate, no supply or no gain.
    """
    if high_water_mark_price == 0 or performance_fee == 0 or supply == 0:
        return 0, 0
    gain = calculate_gain(value18, supply, high_water_mark_price)
    if gain == 0:
        return 0, 0
    fee_value = mul_div(gain, performance_fee, WAD)
    if fee_value == 0:
        return 0, 0
    return fee_value, mul_div(fee_value, supply, value18 - fee_value)


def calculate_gain(value18: int, supply: int, high_water_mark_price: int) -> int:
    """Value above supply * mark, or 0."""
    if high_water_mark_price == 0:
        return 0
    threshold = mul_div(supply, high_water_mark_price, WAD)
    return max(value18 - threshold, 0)


def calculate_locked_remaining(
    locked_profit: int,
    locked_profit_start: Optional[datetime],
    profit_accrual_period: int,
    now: datetime,
) -> int:
    """Portion of a lock not yet released at `now` (linear release)."""
    if locked_profit == 0 or profit_accrual_period == 0:
        return 0
    elapsed = elapsed_seconds(locked_profit_start, now)
    if elapsed >= profit_accrual_period:
        return 0
    return mul_div(locked_profit, profit_accrual_period - elapsed, profit_accrual_period)


def calculate_reported_value(real_value: int, locked_remaining: int) -> int:
    """Value holders can convert against: real value less still-locked profit."""
    return real_value - min(locked_remaining, real_value)


def calculate_entry_fee(assets: int, fee_bps: int) -> int:
    """Fee taken out of a gross deposit (rounded up)."""
    return mul_div(assets, fee_bps, BPS, round_up=True)


def calculate_exit_fee(shares: int, fee_bps: int) -> int:
    """Fee taken out of gross redeemed shares (rounded up)."""
    return mul_div(shares, fee_bps, BPS, round_up=True)


def gross_up(net: int, fee_bps: int) -> int:
    """Smallest gross amount whose net after a bps fee covers `net`."""
    if fee_bps == 0:
        return net
    return mul_div(net, BPS, BPS - fee_bps, round_up=True)


# ============================================================================
# ENGINE
# ============================================================================

class FeeEngine:
    """
    Computes and applies fee accruals for one vault.

    The fee manager (registry slot FEE_MANAGER_SLOT) names the recipient of
    fee shares. Any exception raised while resolving the recipient or
    computing an accrual is absorbed: the vault call proceeds with zero fees
    and a `fee_accrual_failed` warning is logged. User funds are never held
    hostage by a broken fee policy.
    """

    def __init__(self, vault_name: str, registry, asset_decimals: int):
        self.vault_name = vault_name
        self.registry = registry
        self.asset_decimals = asset_decimals

    def compute(self, fees: FeeState, real_value: int, supply: int, now: datetime) -> FeeAccrual:
        """Accrual at `now` without touching state. May raise."""
        decimals = self.asset_decimals

        locked_remaining = calculate_locked_remaining(
            fees.locked_profit, fees.locked_profit_start, fees.profit_accrual_period, now
        )

        if supply == 0:
            return FeeAccrual(
                timestamp=now,
                real_value=real_value,
                supply=0,
                high_water_mark_price=fees.high_water_mark_price or WAD,
                locked_profit=fees.locked_profit,
                locked_profit_start=fees.locked_profit_start,
                reported_value=calculate_reported_value(real_value, locked_remaining),
                join_fee_bps=fees.join_fee_bps,
                exit_fee_bps=fees.exit_fee_bps,
                recipient=self._recipient(fees),
            )

        value18 = to_share_scale(real_value, decimals)
        mark = fees.high_water_mark_price

        elapsed = elapsed_seconds(fees.last_management_claim, now)
        management_shares = calculate_management_fee_shares(
            supply, fees.management_rate_constant, elapsed
        )
        supply_after_management = supply + management_shares

        fee_value18, performance_shares = calculate_performance_fee(
            value18, supply_after_management, mark, fees.performance_fee
        )
        supply_after = supply_after_management + performance_shares

        post_fee_price = calculate_share_price(value18, supply_after)
        new_mark = post_fee_price if mark == 0 else max(mark, post_fee_price)

        gain18 = calculate_gain(value18, supply_after_management, mark)
        if fees.profit_accrual_period > 0 and gain18 > 0:
            # unreleased profit rolls into the new lock
            locked = locked_remaining + from_share_scale(gain18 - fee_value18, decimals)
            locked_start = now
            reported_locked = locked
        else:
            locked = fees.locked_profit
            locked_start = fees.locked_profit_start
            reported_locked = locked_remaining

        accrual = FeeAccrual(
            timestamp=now,
            real_value=real_value,
            supply=supply,
            management_shares=management_shares,
            performance_shares=performance_shares,
            performance_fee_value=from_share_scale(fee_value18, decimals),
            high_water_mark_price=new_mark,
            locked_profit=locked,
            locked_profit_start=locked_start,
            reported_value=calculate_reported_value(real_value, reported_locked),
            join_fee_bps=fees.join_fee_bps,
            exit_fee_bps=fees.exit_fee_bps,
        )
        return replace(accrual, recipient=self._recipient(fees, accrual))

    def safe_compute(self, fees: FeeState, real_value: int, supply: int, now: datetime) -> FeeAccrual:
        """compute(), falling back to a zero-fee accrual on any failure."""
        try:
            return self.compute(fees, real_value, supply, now)
        except Exception:
            log.warning("fee_accrual_failed", vault=self.vault_name, exc_info=True)
            locked = calculate_locked_remaining(
                fees.locked_profit, fees.locked_profit_start, fees.profit_accrual_period, now
            )
            return FeeAccrual(
                timestamp=now,
                real_value=real_value,
                supply=supply,
                high_water_mark_price=fees.high_water_mark_price,
                locked_profit=fees.locked_profit,
                locked_profit_start=fees.locked_profit_start,
                reported_value=calculate_reported_value(real_value, locked),
                failed=True,
            )

    def apply(self, fees: FeeState, accrual: FeeAccrual, shares: ShareLedger) -> None:
        """
        Mint fee shares and advance fee state. Failed accruals change nothing.

        Args:
            fees: State to mutate
            accrual: Result of compute()/safe_compute() at the same instant
            shares: The vault's ShareLedger
        """
        if accrual.failed:
            return
        if accrual.fee_shares:
            shares.mint(accrual.recipient, accrual.fee_shares)
        fees.last_management_claim = accrual.timestamp
        fees.high_water_mark_price = accrual.high_water_mark_price
        fees.locked_profit = accrual.locked_profit
        fees.locked_profit_start = accrual.locked_profit_start
        if accrual.fee_shares:
            log.info(
                "fees_claimed",
                vault=self.vault_name,
                management_shares=accrual.management_shares,
                performance_shares=accrual.performance_shares,
                recipient=accrual.recipient,
                high_water_mark=accrual.high_water_mark_price,
            )

    def _recipient(self, fees: FeeState, accrual: Optional[FeeAccrual] = None) -> Optional[str]:
        """Resolve the fee sink, only when some fee could be charged."""
        charges = fees.join_fee_bps or fees.exit_fee_bps or (accrual is not None and accrual.fee_shares)
        if not charges:
            return None
        manager = self.registry.get_address(FEE_MANAGER_SLOT)
        return manager.fee_recipient(self.vault_name)


class StaticFeeManager:
    """Fee manager sending every vault's fees to fixed recipients."""

    def __init__(self, default_recipient: str, overrides=None):
        self.default_recipient = default_recipient
        self.overrides = dict(overrides or {})

    def fee_recipient(self, vault_name: str) -> str:
        return self.overrides.get(vault_name, self.default_recipient)
