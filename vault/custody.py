"""
custody.py - Authoritative Asset Custody Ledger

Custody is the single ledger every vault, adapter and simulated external
market shares. It is the only module that moves token balances.

Key responsibilities:
    - Holds integer token balances per holder, per asset
    - Executes transfer batches atomically (all transfers succeed or none do)
    - Issues and redeems tokens through SYSTEM_HOLDER (conservation: every
      asset's balances, system holder included, always sum to zero)
    - Tracks logical time
    - Provides savepoints (atomic()) that roll back balances AND the state of
      every attached participant, so a failing vault call leaves no trace
"""

from __future__ import annotations
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Protocol, Set, Tuple

from .core import (
    Asset, Transfer, BalanceMap,
    SYSTEM_HOLDER,
    InsufficientBalance, InvalidConfiguration,
)
from .log import get_logger


log = get_logger(__name__)


class Participant(Protocol):
    """Anything whose state must roll back together with custody balances."""

    def snapshot_state(self) -> Any:
        ...

    def restore_state(self, snapshot: Any) -> None:
        ...


class Custody:
    """
    Token custody ledger with atomic batches and savepoints.

    Design Principles:
        - Always validates: balances can never go negative except for the
          system holder, which issues and absorbs supply.
        - Always logs: every applied transfer is appended to transfer_log.

    Thread Safety:
        Not thread-safe. Calls are single-threaded and synchronous.

    Example:
        custody = Custody("main")
        custody.register_asset(Asset("USDC", "USD Coin", 6))
        custody.register_holder("alice")
        custody.mint("USDC", "alice", 1_000 * 10**6)
        custody.transfer("USDC", "alice", "vault", 100 * 10**6)
    """

    def __init__(self, name: str, initial_time: Optional[datetime] = None):
        """
        Create a custody ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting logical time (default: 2025-01-01)
        """
        self.name = name
        self.assets: Dict[str, Asset] = {}
        self.balances: Dict[str, Dict[str, int]] = {}
        self.registered_holders: Set[str] = set()
        self.transfer_log: List[Transfer] = []
        self._current_time: datetime = initial_time or datetime(2025, 1, 1)
        self._participants: List[Participant] = []

        self.registered_holders.add(SYSTEM_HOLDER)
        self.balances[SYSTEM_HOLDER] = defaultdict(int)

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    @property
    def participants(self) -> Tuple[Participant, ...]:
        """Participants attached for savepoints, in attach order."""
        return tuple(self._participants)

    def get_asset(self, symbol: str) -> Asset:
        if symbol not in self.assets:
            raise InvalidConfiguration(f"Asset {symbol} not registered")
        return self.assets[symbol]

    def get_balance(self, holder: str, asset: str) -> int:
        """
        Balance of an asset held by a holder.

        Raises:
            InvalidConfiguration: If holder or asset is not registered
        """
        if holder not in self.registered_holders:
            raise InvalidConfiguration(f"Holder {holder} not registered")
        if asset not in self.assets:
            raise InvalidConfiguration(f"Asset {asset} not registered")
        return self.balances[holder].get(asset, 0)

    def get_holder_balances(self, holder: str) -> BalanceMap:
        if holder not in self.registered_holders:
            raise InvalidConfiguration(f"Holder {holder} not registered")
        return {k: v for k, v in self.balances[holder].items() if v}

    def total_supply(self, asset: str) -> int:
        """Outstanding supply of an asset: everything not held by the system holder."""
        if asset not in self.assets:
            raise InvalidConfiguration(f"Asset {asset} not registered")
        return sum(
            self.balances[h].get(asset, 0)
            for h in sorted(self.registered_holders)
            if h != SYSTEM_HOLDER
        )

    def is_registered(self, holder: str) -> bool:
        return holder in self.registered_holders

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that every asset's balances sum to zero across all holders.

        Issuance debits the system holder, so the system balance is always the
        negative of outstanding supply.

        Returns:
            Dict with 'valid' (bool) and 'discrepancies' (list of
            {'asset', 'sum'} entries for assets that do not balance).
        """
        discrepancies = []
        for symbol in sorted(self.assets):
            total = sum(self.balances[h].get(symbol, 0) for h in self.registered_holders)
            if total != 0:
                discrepancies.append({'asset': symbol, 'sum': total})
        return {'valid': not discrepancies, 'discrepancies': discrepancies}

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the logical clock. Time only moves forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_holder(self, holder: str) -> str:
        """
        Register a holder (user, vault, external market).

        Raises:
            ValueError: If already registered
        """
        if holder in self.registered_holders:
            raise ValueError(f"Holder {holder} already registered")
        self.registered_holders.add(holder)
        self.balances[holder] = defaultdict(int)
        return holder

    def register_asset(self, asset: Asset) -> None:
        """
        Register a token.

        Raises:
            ValueError: If the symbol is already registered
        """
        if asset.symbol in self.assets:
            raise ValueError(f"Asset {asset.symbol} already registered")
        self.assets[asset.symbol] = asset
        log.debug("asset_registered", custody=self.name, asset=asset.symbol, decimals=asset.decimals)

    def attach(self, participant: Participant) -> None:
        """Include a participant's state in every savepoint."""
        if participant not in self._participants:
            self._participants.append(participant)

    # ========================================================================
    # TRANSFERS (Mutating)
    # ========================================================================

    def transfer(self, asset: str, source: str, dest: str, amount: int, memo: str = "") -> Optional[Transfer]:
        """
        Move tokens between two holders. A zero amount is a no-op.

        Returns:
            The applied Transfer, or None for a zero amount

        Raises:
            InsufficientBalance: If source would go negative
        """
        if amount == 0:
            return None
        transfer = Transfer(amount, asset, source, dest, memo)
        self.execute([transfer])
        return transfer

    def mint(self, asset: str, dest: str, amount: int, memo: str = "issue") -> Optional[Transfer]:
        """Issue new tokens to dest (debits the system holder)."""
        return self.transfer(asset, SYSTEM_HOLDER, dest, amount, memo)

    def burn(self, asset: str, source: str, amount: int, memo: str = "redeem") -> Optional[Transfer]:
        """Return tokens from source to the system holder."""
        return self.transfer(asset, source, SYSTEM_HOLDER, amount, memo)

    def execute(self, transfers: List[Transfer]) -> None:
        """
        Apply a batch of transfers atomically.

        The batch is validated as a whole against net balance changes before
        anything is applied.

        Raises:
            InvalidConfiguration: Unregistered asset or holder
            InsufficientBalance: A non-system holder would go negative
        """
        if not transfers:
            return
        valid, reason = self._validate(transfers)
        if not valid:
            raise InsufficientBalance(reason)
        for t in transfers:
            self.balances[t.source][t.asset] -= t.amount
            self.balances[t.dest][t.asset] += t.amount
            self.transfer_log.append(t)

    def _validate(self, transfers: List[Transfer]) -> Tuple[bool, str]:
        """
        Validate a batch against registration and balance constraints.

        Returns:
            Tuple of (success, reason)
        """
        for t in transfers:
            if t.asset not in self.assets:
                raise InvalidConfiguration(f"Asset {t.asset} not registered")
            if t.source not in self.registered_holders:
                raise InvalidConfiguration(f"Holder {t.source} not registered")
            if t.dest not in self.registered_holders:
                raise InvalidConfiguration(f"Holder {t.dest} not registered")

        net: Dict[Tuple[str, str], int] = {}
        for t in transfers:
            net[(t.source, t.asset)] = net.get((t.source, t.asset), 0) - t.amount
            net[(t.dest, t.asset)] = net.get((t.dest, t.asset), 0) + t.amount

        # SYSTEM_HOLDER is exempt: it issues and absorbs supply
        for (holder, asset), delta in net.items():
            if holder == SYSTEM_HOLDER:
                continue
            proposed = self.balances[holder][asset] + delta
            if proposed < 0:
                return False, f"{holder} {asset}: balance {self.balances[holder][asset]} < {-delta}"
        return True, ""

    # ========================================================================
    # SAVEPOINTS
    # ========================================================================

    def _snapshot(self) -> Tuple[Dict[str, Dict[str, int]], int, List[Tuple[Participant, Any]]]:
        balances = {h: dict(b) for h, b in self.balances.items()}
        participants = [(p, p.snapshot_state()) for p in self._participants]
        return balances, len(self.transfer_log), participants

    def _restore(self, snapshot) -> None:
        balances, log_length, participants = snapshot
        self.balances = {h: defaultdict(int, b) for h, b in balances.items()}
        del self.transfer_log[log_length:]
        for participant, state in participants:
            participant.restore_state(state)

    @contextmanager
    def atomic(self) -> Iterator['Custody']:
        """
        Savepoint scope: on any exception, balances, the transfer log and all
        attached participants are restored, then the exception propagates.

        Scopes nest; an inner failure that the outer scope catches only
        unwinds the inner scope.
        """
        snapshot = self._snapshot()
        try:
            yield self
        except BaseException:
            self._restore(snapshot)
            raise

    def clone(self) -> Custody:
        """
        Independent copy of balances, assets, holders, log and time.

        Participants are not carried over.
        """
        cloned = Custody.__new__(Custody)
        cloned.name = self.name
        cloned.assets = dict(self.assets)
        cloned.registered_holders = set(self.registered_holders)
        cloned.balances = {h: defaultdict(int, b) for h, b in self.balances.items()}
        cloned.transfer_log = list(self.transfer_log)
        cloned._current_time = self._current_time
        cloned._participants = []
        return cloned


__all__ = ['Custody', 'Participant']
