"""
vault - Pooled Investment Vault Engine

Accounting and rebalancing engine for a vault that pools one asset into
shares and deploys it across pluggable positions.

Usage:
    from decimal import Decimal
    from vault import (
        Asset, Custody, Registry, StaticPricingSource, TokenAdapter, Vault,
        PRICE_ROUTER_SLOT,
    )

    custody = Custody("main")
    custody.register_asset(Asset("USDC", "USD Coin", 6))
    custody.register_holder("alice")
    custody.mint("USDC", "alice", 1_000 * 10**6)

    registry = Registry()
    registry.set_address(PRICE_ROUTER_SLOT, StaticPricingSource({"USDC": Decimal("1")}, {"USDC": 6}))
    registry.trust_adaptor(TokenAdapter())
    registry.trust_position(1, "token", False, {"asset": "USDC"})

    vault = Vault("usdc-vault", "USDC", custody, registry, owner="gov", holding_position_id=1)
    shares = vault.deposit("alice", 100 * 10**6, "alice")
"""

__version__ = "0.1.0"

# Core types
from .core import (
    Asset,
    Transfer,
    Position,
    PositionBinding,
    PricingPort,
    PositionAdapter,
    FeeManager,
    SYSTEM_HOLDER,
    WAD,
    BPS,
    SHARE_DECIMALS,
    SECONDS_PER_YEAR,
    MAX_POSITIONS,
    MAX_NESTING_DEPTH,
    DEFAULT_REBALANCE_DEVIATION,
    MAX_REBALANCE_DEVIATION,
    HIGH_WATER_MARK_RESET_INTERVAL,
    PRICE_ROUTER_SLOT,
    FEE_MANAGER_SLOT,
    AUTOMATION_ACTOR_SLOT,
    # Errors
    VaultError,
    ConfigurationError,
    InvalidFeeRate,
    InvalidDeviationBound,
    InvalidConfiguration,
    PositionNotTrusted,
    AdaptorNotTrusted,
    AdaptorNotInCatalogue,
    PositionAlreadyUsed,
    PositionNotUsed,
    DebtFlagMismatch,
    InvalidHoldingPosition,
    PositionNotEmpty,
    PositionNotDistrusted,
    PositionIdMismatch,
    ExpectedAddressMismatch,
    NestingCycle,
    NestingTooDeep,
    ResetTooSoon,
    InvariantViolation,
    ValueDeviated,
    SharesChanged,
    HealthFactorBreached,
    ExternalReceiverBlocked,
    VaultInsolvent,
    ResourceExhausted,
    PositionArrayFull,
    IncompleteWithdraw,
    SupplyCapExceeded,
    InsufficientBalance,
    InsufficientAllowance,
    ReentrancyError,
    Reentrant,
    VaultPaused,
    VaultShutdown,
    AccessDenied,
    ExternalDependencyFailure,
    UnsupportedAsset,
    InvalidAmount,
    ZeroShares,
    ZeroAssets,
    UnsupportedOperation,
)

# Infrastructure
from .custody import Custody
from .shares import ShareLedger
from .registry import Registry
from .pricing_source import StaticPricingSource
from .config import FeeConfig, VaultConfig, UNLIMITED_SHARE_SUPPLY
from .log import configure_logging, get_logger

# Engines
from .fees import FeeState, FeeAccrual, FeeEngine, StaticFeeManager
from .positions import PositionLedger
from .valuation import ValuationEngine
from .entry_exit import EntryExitEngine
from .rebalance import AdapterCall, RebalanceEngine, RebalanceResult

# Vault
from .vault import Vault, VaultState

# Adapters
from .adapters import (
    AdapterContext,
    BaseAdapter,
    TokenAdapter,
    LendingMarket,
    LendingAdapter,
    DebtAdapter,
    VaultSharesAdapter,
)

__all__ = [
    '__version__',
    # Core
    'Asset', 'Transfer', 'Position', 'PositionBinding',
    'PricingPort', 'PositionAdapter', 'FeeManager',
    'SYSTEM_HOLDER', 'WAD', 'BPS', 'SHARE_DECIMALS', 'SECONDS_PER_YEAR',
    'MAX_POSITIONS', 'MAX_NESTING_DEPTH',
    'DEFAULT_REBALANCE_DEVIATION', 'MAX_REBALANCE_DEVIATION',
    'HIGH_WATER_MARK_RESET_INTERVAL',
    'PRICE_ROUTER_SLOT', 'FEE_MANAGER_SLOT', 'AUTOMATION_ACTOR_SLOT',
    # Errors
    'VaultError', 'ConfigurationError', 'InvalidFeeRate', 'InvalidDeviationBound',
    'InvalidConfiguration', 'PositionNotTrusted', 'AdaptorNotTrusted',
    'AdaptorNotInCatalogue', 'PositionAlreadyUsed', 'PositionNotUsed',
    'DebtFlagMismatch', 'InvalidHoldingPosition', 'PositionNotEmpty',
    'PositionNotDistrusted', 'PositionIdMismatch', 'ExpectedAddressMismatch',
    'NestingCycle', 'NestingTooDeep', 'ResetTooSoon',
    'InvariantViolation', 'ValueDeviated', 'SharesChanged', 'HealthFactorBreached',
    'ExternalReceiverBlocked', 'VaultInsolvent',
    'ResourceExhausted', 'PositionArrayFull', 'IncompleteWithdraw',
    'SupplyCapExceeded', 'InsufficientBalance', 'InsufficientAllowance',
    'ReentrancyError', 'Reentrant', 'VaultPaused', 'VaultShutdown', 'AccessDenied',
    'ExternalDependencyFailure', 'UnsupportedAsset',
    'InvalidAmount', 'ZeroShares', 'ZeroAssets', 'UnsupportedOperation',
    # Infrastructure
    'Custody', 'ShareLedger', 'Registry', 'StaticPricingSource',
    'FeeConfig', 'VaultConfig', 'UNLIMITED_SHARE_SUPPLY',
    'configure_logging', 'get_logger',
    # Engines
    'FeeState', 'FeeAccrual', 'FeeEngine', 'StaticFeeManager',
    'PositionLedger', 'ValuationEngine', 'EntryExitEngine',
    'AdapterCall', 'RebalanceEngine', 'RebalanceResult',
    # Vault
    'Vault', 'VaultState',
    # Adapters
    'AdapterContext', 'BaseAdapter', 'TokenAdapter',
    'LendingMarket', 'LendingAdapter', 'DebtAdapter', 'VaultSharesAdapter',
]
