"""
Reference position adapters.

- TokenAdapter: tokens held directly by the vault
- LendingAdapter / DebtAdapter: supply and borrow sides of a LendingMarket
- VaultSharesAdapter: shares of another vault
"""

from .base import AdapterContext, BaseAdapter
from .token import TokenAdapter
from .lending import (
    LendingMarket, LendingAdapter, check_health,
    DEFAULT_LIQUIDATION_THRESHOLD, DEFAULT_MIN_HEALTH_FACTOR, NO_DEBT_HEALTH_FACTOR,
)
from .debt import DebtAdapter
from .vault_shares import VaultSharesAdapter

__all__ = [
    'AdapterContext', 'BaseAdapter',
    'TokenAdapter',
    'LendingMarket', 'LendingAdapter', 'check_health',
    'DEFAULT_LIQUIDATION_THRESHOLD', 'DEFAULT_MIN_HEALTH_FACTOR', 'NO_DEBT_HEALTH_FACTOR',
    'DebtAdapter',
    'VaultSharesAdapter',
]
