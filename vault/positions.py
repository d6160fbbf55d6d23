"""
positions.py - Ordered credit and debt positions of one vault

PositionLedger keeps two disjoint ordered sequences of position ids:
- credit_positions: assets the vault owns, drained in order on withdrawal
- debt_positions: liabilities, subtracted from value

Structural rules (enforced here):
- An id appears in at most one sequence, at most once
- No sequence exceeds MAX_POSITIONS entries
- Indices are contiguous; insertion at any index 0..len is allowed

Policy rules that need the outside world (governance trust, pricing
support, fund-of-funds nesting) are the module-level check_* functions,
called by the vault before it touches the ledger.
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Set

from .core import (
    Position, PositionBinding, PricingPort,
    MAX_NESTING_DEPTH, MAX_POSITIONS,
    DebtFlagMismatch, InvalidConfiguration, NestingCycle, NestingTooDeep,
    PositionAlreadyUsed, PositionArrayFull, PositionNotTrusted, PositionNotUsed,
    UnsupportedAsset,
)


class PositionLedger:
    """
    Example:
        ledger = PositionLedger()
        ledger.insert(0, position, in_debt_array=False)
        ledger.credit_positions  # [position.position_id]
    """

    def __init__(self):
        self.positions: Dict[int, Position] = {}
        self.credit_positions: List[int] = []
        self.debt_positions: List[int] = []

    @property
    def used(self) -> Set[int]:
        return set(self.positions)

    def is_used(self, position_id: int) -> bool:
        return position_id in self.positions

    def get(self, position_id: int) -> Position:
        """
        Raises:
            PositionNotUsed: If the vault does not hold the position
        """
        if position_id not in self.positions:
            raise PositionNotUsed(f"Position {position_id} not used")
        return self.positions[position_id]

    def sequence(self, in_debt_array: bool) -> List[int]:
        return self.debt_positions if in_debt_array else self.credit_positions

    def credits(self) -> Iterator[Position]:
        """Credit positions in withdrawal order."""
        return (self.positions[pid] for pid in self.credit_positions)

    def debts(self) -> Iterator[Position]:
        return (self.positions[pid] for pid in self.debt_positions)

    def insert(self, index: int, position: Position, in_debt_array: bool) -> None:
        """
        Raises:
            PositionAlreadyUsed: If the id is already held
            DebtFlagMismatch: If the position's debt flag disagrees with the target sequence
            PositionArrayFull: If the target sequence is full
            InvalidConfiguration: If index is outside 0..len
        """
        if position.position_id in self.positions:
            raise PositionAlreadyUsed(f"Position {position.position_id} already used")
        if position.is_debt != in_debt_array:
            raise DebtFlagMismatch(
                f"Position {position.position_id} is_debt={position.is_debt}, "
                f"target sequence is {'debt' if in_debt_array else 'credit'}"
            )
        sequence = self.sequence(in_debt_array)
        if len(sequence) >= MAX_POSITIONS:
            raise PositionArrayFull(f"Already holding {MAX_POSITIONS} positions")
        self._check_index(index, len(sequence) + 1)
        sequence.insert(index, position.position_id)
        self.positions[position.position_id] = position

    def pop(self, index: int, in_debt_array: bool) -> Position:
        sequence = self.sequence(in_debt_array)
        self._check_index(index, len(sequence))
        position_id = sequence.pop(index)
        return self.positions.pop(position_id)

    def at(self, index: int, in_debt_array: bool) -> Position:
        sequence = self.sequence(in_debt_array)
        self._check_index(index, len(sequence))
        return self.positions[sequence[index]]

    def swap(self, index1: int, index2: int, in_debt_array: bool) -> None:
        sequence = self.sequence(in_debt_array)
        self._check_index(index1, len(sequence))
        self._check_index(index2, len(sequence))
        sequence[index1], sequence[index2] = sequence[index2], sequence[index1]

    def copy(self) -> PositionLedger:
        cloned = PositionLedger()
        cloned.positions = dict(self.positions)
        cloned.credit_positions = list(self.credit_positions)
        cloned.debt_positions = list(self.debt_positions)
        return cloned

    @staticmethod
    def _check_index(index: int, bound: int) -> None:
        if not isinstance(index, int) or not 0 <= index < bound:
            raise InvalidConfiguration(f"Position index {index} out of range 0..{bound - 1}")

    def __len__(self):
        return len(self.positions)

    def __repr__(self):
        return f"PositionLedger(credit={self.credit_positions}, debt={self.debt_positions})"


# ============================================================================
# POLICY CHECKS
# ============================================================================

def check_trusted(registry, position_id: int, in_debt_array: bool) -> PositionBinding:
    """
    Raises:
        PositionNotTrusted: If governance does not (or no longer) trust the id
        DebtFlagMismatch: If governance's debt flag disagrees with the target sequence
    """
    if not registry.is_position_trusted(position_id):
        raise PositionNotTrusted(f"Position {position_id} not trusted")
    binding = registry.get_position(position_id)
    if binding.is_debt != in_debt_array:
        raise DebtFlagMismatch(
            f"Position {position_id} is_debt={binding.is_debt}, "
            f"target sequence is {'debt' if in_debt_array else 'credit'}"
        )
    return binding


def check_pricing(pricing: PricingPort, asset: str) -> None:
    """
    Raises:
        UnsupportedAsset: If the pricing port cannot value the asset
    """
    if not pricing.is_supported(asset):
        raise UnsupportedAsset(f"Pricing does not support {asset}")


def nesting_depth(vault) -> int:
    """Longest chain of vault-share positions below `vault` (0 if none)."""
    depths = [1 + nesting_depth(child) for child in vault.nested_vaults()]
    return max(depths, default=0)


def holding_depth(vault) -> int:
    """Longest chain of vaults holding `vault` through vault-share positions (0 if none)."""
    depths = [1 + holding_depth(parent) for parent in vault.holding_vaults()]
    return max(depths, default=0)


def reaches(vault, target) -> bool:
    """True if `target` is `vault` or held, directly or transitively, by it."""
    if vault is target:
        return True
    return any(reaches(child, target) for child in vault.nested_vaults())


def check_nesting(owner, position: Position) -> None:
    """
    Validate holding the vault behind `position` (if any) from `owner`.

    Raises:
        NestingCycle: If the held vault is, or transitively holds, owner
        NestingTooDeep: If the longest chain through owner, counting the vaults
            already holding owner as well as those below the held vault,
            exceeds MAX_NESTING_DEPTH
    """
    lookup = getattr(position.adapter, "nested_vault", None)
    nested = lookup(position.adapter_data) if lookup else None
    if nested is None:
        return
    if reaches(nested, owner):
        raise NestingCycle(f"{owner.name} is reachable from {nested.name}")
    depth = holding_depth(owner) + 1 + nesting_depth(nested)
    if depth > MAX_NESTING_DEPTH:
        raise NestingTooDeep(f"Holding {nested.name} gives depth {depth} > {MAX_NESTING_DEPTH}")
