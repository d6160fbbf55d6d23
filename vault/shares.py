"""
shares.py - Vault share token

ShareLedger tracks the vault's share supply, per-holder balances and
allowances. Shares always carry 18 decimals. Minting and burning are reserved
for the entry/exit path and the fee engine; holders move shares among
themselves with transfer/approve/transfer_from.
"""

from __future__ import annotations
from typing import Dict, Tuple

from .core import (
    InsufficientAllowance, InsufficientBalance, InvalidAmount,
    ensure_non_negative,
)


# Allowance value that is never decremented.
UNLIMITED_ALLOWANCE = 2 ** 256 - 1


class ShareLedger:
    """
    Share balances for one vault.

    Invariant: total_supply == sum(balances.values()) at all times.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.total_supply: int = 0
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    # ========================================================================
    # SUPPLY CHANGES
    # ========================================================================

    def mint(self, holder: str, amount: int) -> None:
        ensure_non_negative(amount, "shares")
        if amount == 0:
            return
        self.balances[holder] = self.balances.get(holder, 0) + amount
        self.total_supply += amount

    def burn(self, holder: str, amount: int) -> None:
        """
        Raises:
            InsufficientBalance: If holder owns fewer than amount shares
        """
        ensure_non_negative(amount, "shares")
        if amount == 0:
            return
        balance = self.balance_of(holder)
        if balance < amount:
            raise InsufficientBalance(f"{holder} holds {balance} {self.symbol}, needs {amount}")
        self._set_balance(holder, balance - amount)
        self.total_supply -= amount

    # ========================================================================
    # HOLDER OPERATIONS
    # ========================================================================

    def transfer(self, source: str, dest: str, amount: int) -> None:
        """
        Raises:
            InsufficientBalance: If source owns fewer than amount shares
            InvalidAmount: If source and dest are the same holder
        """
        ensure_non_negative(amount, "shares")
        if source == dest:
            raise InvalidAmount("Cannot transfer shares to self")
        if amount == 0:
            return
        balance = self.balance_of(source)
        if balance < amount:
            raise InsufficientBalance(f"{source} holds {balance} {self.symbol}, needs {amount}")
        self._set_balance(source, balance - amount)
        self.balances[dest] = self.balances.get(dest, 0) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        ensure_non_negative(amount, "allowance")
        if amount == 0:
            self.allowances.pop((owner, spender), None)
        else:
            self.allowances[(owner, spender)] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """
        Consume allowance; an owner spending its own shares needs none.

        Raises:
            InsufficientAllowance: If the allowance is smaller than amount
        """
        if owner == spender:
            return
        current = self.allowance(owner, spender)
        if current == UNLIMITED_ALLOWANCE:
            return
        if current < amount:
            raise InsufficientAllowance(
                f"{spender} may spend {current} of {owner}'s {self.symbol}, needs {amount}"
            )
        self.approve(owner, spender, current - amount)

    def transfer_from(self, spender: str, source: str, dest: str, amount: int) -> None:
        self.spend_allowance(source, spender, amount)
        self.transfer(source, dest, amount)

    # ========================================================================
    # SAVEPOINTS
    # ========================================================================

    def snapshot(self) -> Tuple[int, Dict[str, int], Dict[Tuple[str, str], int]]:
        return self.total_supply, dict(self.balances), dict(self.allowances)

    def restore(self, snapshot) -> None:
        self.total_supply, balances, allowances = snapshot
        self.balances = dict(balances)
        self.allowances = dict(allowances)

    def _set_balance(self, holder: str, amount: int) -> None:
        if amount == 0:
            self.balances.pop(holder, None)
        else:
            self.balances[holder] = amount

    def __repr__(self):
        return f"ShareLedger({self.symbol}, supply={self.total_supply}, holders={len(self.balances)})"
