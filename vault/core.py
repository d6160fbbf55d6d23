"""
Core types, constants and protocols for the vault engine.

This module provides the foundational pieces every other module builds on:
1. Decimal context and fixed-point constants (WAD scale, basis points, limits)
2. Exceptions: VaultError and the typed failure families callers can catch
3. Immutable data structures: Asset, Transfer
4. Protocols: PricingPort, PositionAdapter, FeeManager
5. Type aliases for the opaque adapter blobs

Nothing in this module mutates state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import (
    Any, Dict, Mapping, Optional, Protocol, Sequence, TYPE_CHECKING,
    runtime_checkable,
)

if TYPE_CHECKING:
    from .adapters.base import AdapterContext


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Exponentials, logarithms and price conversions are evaluated in Decimal and
# then truncated back into integers. The context is configured once at import.
#
# PRECONDITION: No other code should modify the global Decimal context.
# If a different precision is needed locally, use decimal.localcontext().
#
_VAULT_DECIMAL_CONTEXT = getcontext()
_VAULT_DECIMAL_CONTEXT.prec = 50
_VAULT_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved holder used for issuance and redemption of tokens in custody.
# The system holder is exempt from balance validation.
SYSTEM_HOLDER = "system"

# Fixed-point scale: 1.0 == 10**18.
WAD = 10 ** 18
SHARE_DECIMALS = 18

# Join/exit fees are expressed in basis points.
BPS = 10_000

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Bounded-resource limits
MAX_POSITIONS = 16
MAX_NESTING_DEPTH = 3

# Rebalance deviation bound: default 0.03%, hard ceiling 10%.
DEFAULT_REBALANCE_DEVIATION = 3 * WAD // 10_000
MAX_REBALANCE_DEVIATION = WAD // 10

# Fee ceilings
MAX_JOIN_EXIT_FEE_BPS = 1_000
MAX_MANAGEMENT_FEE = WAD // 10
MAX_PERFORMANCE_FEE = WAD // 2
MAX_PROFIT_ACCRUAL_PERIOD = 30 * 24 * 60 * 60

HIGH_WATER_MARK_RESET_INTERVAL = timedelta(days=30)

# Registry address slots
PRICE_ROUTER_SLOT = "price_router"
FEE_MANAGER_SLOT = "fee_manager"
AUTOMATION_ACTOR_SLOT = "automation_actor"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque blob identifying which external market a position points at.
AdapterData = Mapping[str, Any]

# Opaque policy parameters interpreted only by the adapter (e.g. min health factor).
ConfigurationData = Mapping[str, Any]

# Mapping from asset symbol to an integer quantity in native decimals.
BalanceMap = Dict[str, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VaultError(Exception):
    """Base exception for all vault-related errors."""
    pass


# --- Configuration ----------------------------------------------------------

class ConfigurationError(VaultError):
    """Invalid configuration, rejected before any state change."""
    pass


class InvalidFeeRate(ConfigurationError):
    """Raised when a fee rate is negative or above its ceiling."""
    pass


class InvalidDeviationBound(ConfigurationError):
    """Raised when the rebalance deviation bound exceeds MAX_REBALANCE_DEVIATION."""
    pass


class InvalidConfiguration(ConfigurationError):
    """Raised for malformed vault configuration values."""
    pass


class PositionNotTrusted(ConfigurationError):
    """Raised when a position id is not in the governance catalogue."""
    pass


class AdaptorNotTrusted(ConfigurationError):
    """Raised when an adaptor is unknown to or distrusted by governance."""
    pass


class AdaptorNotInCatalogue(ConfigurationError):
    """Raised when a rebalance targets an adaptor the vault has not enabled."""
    pass


class PositionAlreadyUsed(ConfigurationError):
    """Raised when adding a position that is already in the vault."""
    pass


class PositionNotUsed(ConfigurationError):
    """Raised when referencing a position the vault does not hold."""
    pass


class DebtFlagMismatch(ConfigurationError):
    """Raised when a position is added to the wrong (credit/debt) sequence."""
    pass


class InvalidHoldingPosition(ConfigurationError):
    """Raised when the holding position is unusable, or would be removed."""
    pass


class PositionNotEmpty(ConfigurationError):
    """Raised when removing a position that still reports a balance."""

    def __init__(self, position_id: int, balance: int):
        super().__init__(f"Position {position_id} still holds {balance}")
        self.position_id = position_id
        self.balance = balance


class PositionNotDistrusted(ConfigurationError):
    """Raised when force-removing a position governance still trusts."""
    pass


class PositionIdMismatch(ConfigurationError):
    """Raised when the supplied id does not match the id stored at an index."""
    pass


class ExpectedAddressMismatch(ConfigurationError):
    """Raised when a caller-supplied expected value does not match governance."""
    pass


class NestingCycle(ConfigurationError):
    """Raised when holding another vault would create a dependency cycle."""
    pass


class NestingTooDeep(ConfigurationError):
    """Raised when vault-of-vault nesting exceeds MAX_NESTING_DEPTH."""
    pass


class ResetTooSoon(ConfigurationError):
    """Raised when the high-water mark is reset before the cooldown elapsed."""
    pass


# --- Invariant violations ---------------------------------------------------

class InvariantViolation(VaultError):
    """An engine invariant would be broken; the whole call is aborted."""
    pass


class ValueDeviated(InvariantViolation):
    """Raised when total value after a rebalance leaves the deviation band."""

    def __init__(self, value_before: int, value_after: int, bound: int):
        super().__init__(
            f"Total value moved from {value_before} to {value_after} "
            f"(allowed deviation {bound}/{WAD})"
        )
        self.value_before = value_before
        self.value_after = value_after
        self.bound = bound


class SharesChanged(InvariantViolation):
    """Raised when total share supply changes across a rebalance."""

    def __init__(self, supply_before: int, supply_after: int):
        super().__init__(f"Share supply changed from {supply_before} to {supply_after}")
        self.supply_before = supply_before
        self.supply_after = supply_after


class HealthFactorBreached(InvariantViolation):
    """Raised when a lending position would fall below its minimum health factor."""

    def __init__(self, health_factor: int, minimum: int):
        super().__init__(f"Health factor {health_factor} below minimum {minimum}")
        self.health_factor = health_factor
        self.minimum = minimum


class ExternalReceiverBlocked(InvariantViolation):
    """Raised when an adapter tries to pay out to a non-vault receiver during a rebalance."""
    pass


class VaultInsolvent(InvariantViolation):
    """Raised when debt exceeds credit, or shares exist against zero value."""
    pass


# --- Resource exhaustion ----------------------------------------------------

class ResourceExhausted(VaultError):
    """A bounded resource ran out; the shortfall is reported so callers can retry smaller."""
    pass


class PositionArrayFull(ResourceExhausted):
    """Raised when a position sequence already holds MAX_POSITIONS entries."""
    pass


class IncompleteWithdraw(ResourceExhausted):
    """Raised when credit positions cannot cover a withdrawal."""

    def __init__(self, remaining: int):
        super().__init__(f"Withdrawal short by {remaining}")
        self.remaining = remaining


class SupplyCapExceeded(ResourceExhausted):
    """Raised when a deposit or mint would push supply past the share cap."""

    def __init__(self, requested: int, available: int):
        super().__init__(f"Requested {requested} shares, only {available} available under cap")
        self.requested = requested
        self.available = available


class InsufficientBalance(ResourceExhausted):
    """Raised when a holder does not have enough tokens or shares."""
    pass


class InsufficientAllowance(ResourceExhausted):
    """Raised when a spender's allowance does not cover the amount."""
    pass


# --- Reentrancy, availability, access ----------------------------------------

class ReentrancyError(VaultError):
    """Raised when an entry point is called while another one is in progress."""
    pass


# Short alias used in messages and tests.
Reentrant = ReentrancyError


class VaultPaused(VaultError):
    """Raised when governance has paused the vault."""
    pass


class VaultShutdown(VaultError):
    """Raised when a deposit-side operation is attempted on a shut down vault."""
    pass


class AccessDenied(VaultError):
    """Raised when the caller is not the owner (or automation actor where allowed)."""
    pass


# --- External dependencies ----------------------------------------------------

class ExternalDependencyFailure(VaultError):
    """A pricing port or fee policy failed."""
    pass


class UnsupportedAsset(ExternalDependencyFailure):
    """Raised by a pricing port for assets it does not track."""
    pass


# --- Amounts ----------------------------------------------------------------

class InvalidAmount(VaultError):
    """Raised for negative or otherwise unusable amounts."""
    pass


class ZeroShares(InvalidAmount):
    """Raised when a conversion yields zero shares."""
    pass


class ZeroAssets(InvalidAmount):
    """Raised when a conversion yields zero assets."""
    pass


class UnsupportedOperation(VaultError):
    """Raised when an adapter does not support a requested operation."""
    pass


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Asset:
    """
    A token the custody ledger can hold.

    Attributes:
        symbol: Short identifier (e.g., "USDC", "aUSDC").
        name: Human-readable name.
        decimals: Number of decimals of the integer representation (0..18).
    """
    symbol: str
    name: str
    decimals: int = 18

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Asset symbol cannot be empty")
        if not 0 <= self.decimals <= 18:
            raise ValueError(f"Asset decimals must be within 0..18, got {self.decimals}")

    @property
    def unit(self) -> int:
        """One whole token in native integer units."""
        return 10 ** self.decimals


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement of an asset between two custody holders.

    Attributes:
        amount: Positive integer quantity in the asset's native decimals.
        asset: Symbol of the asset being moved.
        source: Holder debited.
        dest: Holder credited.
        memo: Free-form reason, kept in the transfer log.
    """
    amount: int
    asset: str
    source: str
    dest: str
    memo: str = ""

    def __post_init__(self):
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise ValueError(f"Transfer amount must be int, got {type(self.amount)}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")
        if not self.source or not self.dest:
            raise ValueError("Transfer source and dest cannot be empty")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Transfer({self.amount} {self.asset}: {self.source}→{self.dest})"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PricingPort(Protocol):
    """
    Answers "what is asset X worth in asset Y".

    Synchronous and authoritative for a given call. Implementations raise
    UnsupportedAsset for assets they do not track; callers treat any
    exception as fatal for the enclosing valuation.
    """

    def is_supported(self, asset: str) -> bool:
        ...

    def price_in_usd(self, asset: str) -> Decimal:
        ...

    def value(self, from_asset: str, amount: int, to_asset: str) -> int:
        ...

    def value_delta(
        self,
        credit_assets: Sequence[str],
        credit_amounts: Sequence[int],
        debt_assets: Sequence[str],
        debt_amounts: Sequence[int],
        quote_asset: str,
    ) -> int:
        ...


@runtime_checkable
class PositionAdapter(Protocol):
    """
    Capability interface every position adapter implements.

    Adapters are stateless: all state they touch lives in custody and is
    reached through the AdapterContext passed into every call. The engine
    never looks inside adapter_data or configuration_data.
    """

    identifier: str

    def deposit(
        self, ctx: 'AdapterContext', amount: int,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        ...

    def withdraw(
        self, ctx: 'AdapterContext', amount: int, receiver: str,
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> None:
        ...

    def withdrawable_from(
        self, ctx: 'AdapterContext',
        adapter_data: AdapterData, configuration_data: ConfigurationData,
    ) -> int:
        ...

    def balance_of(self, ctx: 'AdapterContext', adapter_data: AdapterData) -> int:
        ...

    def asset_of(self, adapter_data: AdapterData) -> str:
        ...

    def is_debt(self) -> bool:
        ...

    def execute(self, ctx: 'AdapterContext', operation: str, params: Mapping[str, Any]) -> Any:
        ...


@runtime_checkable
class FeeManager(Protocol):
    """External fee policy: decides where fee shares are sent."""

    def fee_recipient(self, vault_name: str) -> str:
        ...


# ============================================================================
# POSITIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PositionBinding:
    """
    Governance-side description of a trusted position id.

    Attributes:
        position_id: Stable numeric id.
        adaptor_id: Registry id of the adapter implementing the position.
        is_debt: Governance's own debt classification.
        adapter_data: Opaque blob identifying the external market.
    """
    position_id: int
    adaptor_id: str
    is_debt: bool
    adapter_data: AdapterData


@dataclass(frozen=True, slots=True)
class Position:
    """
    A position as held by a vault: the governance binding plus the vault's
    own configuration blob and a resolved adapter reference.
    """
    position_id: int
    adapter: PositionAdapter
    is_debt: bool
    adapter_data: AdapterData
    configuration_data: ConfigurationData

    @property
    def asset(self) -> str:
        return self.adapter.asset_of(self.adapter_data)


def ensure_non_negative(amount: int, label: str = "amount") -> int:
    """Validate an integer amount argument."""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{label} must be int, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmount(f"{label} must be non-negative, got {amount}")
    return amount


def elapsed_seconds(start: Optional[datetime], end: datetime) -> int:
    """Whole seconds between two logical timestamps (0 if start is None or in the future)."""
    if start is None or end <= start:
        return 0
    return int((end - start).total_seconds())
