"""
test_positions.py - Unit tests for PositionLedger and position policy checks

Tests:
- Insertion order, index validation and capacity
- Debt/credit separation
- Trust and pricing checks
- Fund-of-funds nesting: cycles and depth
"""

import pytest

from vault import (
    MAX_POSITIONS, Position, PositionLedger, TokenAdapter, DebtAdapter, VaultSharesAdapter,
    DebtFlagMismatch, InvalidConfiguration, NestingCycle, NestingTooDeep,
    PositionAlreadyUsed, PositionArrayFull, PositionNotTrusted, PositionNotUsed,
    UnsupportedAsset,
)
from vault.positions import (
    check_nesting, check_pricing, check_trusted, holding_depth, nesting_depth,
)

from tests.conftest import POS_USDC, POS_DEBT_WETH, make_vault, usdc


def token_position(position_id: int, asset: str = "USDC") -> Position:
    return Position(position_id, TokenAdapter(), False, {"asset": asset}, {})


def debt_position(position_id: int) -> Position:
    return Position(position_id, DebtAdapter(), True, {"asset": "WETH"}, {})


class TestLedger:

    def test_insert_order(self):
        ledger = PositionLedger()
        ledger.insert(0, token_position(1), False)
        ledger.insert(0, token_position(2), False)
        ledger.insert(2, token_position(3), False)
        assert ledger.credit_positions == [2, 1, 3]
        assert [p.position_id for p in ledger.credits()] == [2, 1, 3]

    def test_index_out_of_range(self):
        ledger = PositionLedger()
        with pytest.raises(InvalidConfiguration):
            ledger.insert(1, token_position(1), False)

    def test_duplicate_id(self):
        ledger = PositionLedger()
        ledger.insert(0, token_position(1), False)
        with pytest.raises(PositionAlreadyUsed):
            ledger.insert(1, token_position(1), False)

    def test_debt_flag_checked(self):
        ledger = PositionLedger()
        with pytest.raises(DebtFlagMismatch):
            ledger.insert(0, debt_position(1), False)
        with pytest.raises(DebtFlagMismatch):
            ledger.insert(0, token_position(2), True)

    def test_sequences_are_separate(self):
        ledger = PositionLedger()
        ledger.insert(0, token_position(1), False)
        ledger.insert(0, debt_position(2), True)
        assert ledger.credit_positions == [1]
        assert ledger.debt_positions == [2]
        assert ledger.used == {1, 2}
        assert len(ledger) == 2

    def test_capacity(self):
        ledger = PositionLedger()
        for i in range(MAX_POSITIONS):
            ledger.insert(i, token_position(i + 1), False)
        with pytest.raises(PositionArrayFull):
            ledger.insert(0, token_position(MAX_POSITIONS + 1), False)
        # debt sequence has its own capacity
        ledger.insert(0, debt_position(100), True)

    def test_pop_and_swap(self):
        ledger = PositionLedger()
        for i in range(3):
            ledger.insert(i, token_position(i + 1), False)
        ledger.swap(0, 2, False)
        assert ledger.credit_positions == [3, 2, 1]
        removed = ledger.pop(1, False)
        assert removed.position_id == 2
        assert ledger.credit_positions == [3, 1]
        assert not ledger.is_used(2)

    def test_get_unused(self):
        with pytest.raises(PositionNotUsed):
            PositionLedger().get(5)

    def test_copy_is_independent(self):
        ledger = PositionLedger()
        ledger.insert(0, token_position(1), False)
        cloned = ledger.copy()
        cloned.insert(1, token_position(2), False)
        assert ledger.credit_positions == [1]


class TestPolicyChecks:

    def test_check_trusted(self, env):
        binding = check_trusted(env.registry, POS_USDC, False)
        assert binding.adaptor_id == "token"

    def test_check_trusted_wrong_sequence(self, env):
        with pytest.raises(DebtFlagMismatch):
            check_trusted(env.registry, POS_DEBT_WETH, False)

    def test_check_trusted_unknown(self, env):
        with pytest.raises(PositionNotTrusted):
            check_trusted(env.registry, 999, False)

    def test_check_trusted_distrusted(self, env):
        env.registry.distrust_position(POS_USDC)
        with pytest.raises(PositionNotTrusted):
            check_trusted(env.registry, POS_USDC, False)

    def test_check_pricing(self, env):
        check_pricing(env.pricing, "WETH")
        with pytest.raises(UnsupportedAsset):
            check_pricing(env.pricing, "DOGE")


class TestNesting:

    def _shares_position(self, position_id, target) -> Position:
        return Position(position_id, VaultSharesAdapter(), False, {"vault": target}, {})

    def test_plain_position_is_not_nested(self, vault):
        check_nesting(vault, token_position(50))

    def test_self_reference_is_a_cycle(self, vault):
        with pytest.raises(NestingCycle):
            check_nesting(vault, self._shares_position(50, vault))

    def test_depth_counts_chain(self, env):
        child = make_vault(env, "child")
        parent = make_vault(env, "parent")
        env.registry.trust_position(10, "vault_shares", False, {"vault": child})
        parent.add_position("gov", 1, 10)
        assert nesting_depth(parent) == 1
        assert nesting_depth(child) == 0
        assert holding_depth(child) == 1
        assert holding_depth(parent) == 0
        assert child.holding_vaults() == [parent]

    def test_cycle_detected_through_chain(self, env):
        child = make_vault(env, "child")
        parent = make_vault(env, "parent")
        env.registry.trust_position(10, "vault_shares", False, {"vault": child})
        env.registry.trust_position(11, "vault_shares", False, {"vault": parent})
        parent.add_position("gov", 1, 10)
        with pytest.raises(NestingCycle):
            child.add_position("gov", 1, 11)
        assert child.credit_positions == [POS_USDC]

    def test_depth_limit(self, env):
        vaults = [make_vault(env, f"v{i}") for i in range(5)]
        for i in range(4):
            env.registry.trust_position(20 + i, "vault_shares", False, {"vault": vaults[i + 1]})
        # v2 -> v3 -> v4, then v1 -> v2 (depth 3) is the limit
        vaults[3].add_position("gov", 1, 23)
        vaults[2].add_position("gov", 1, 22)
        vaults[1].add_position("gov", 1, 21)
        with pytest.raises(NestingTooDeep):
            vaults[0].add_position("gov", 1, 20)

    def test_nested_vault_value(self, env):
        child = make_vault(env, "child")
        parent = make_vault(env, "parent")
        env.registry.trust_position(10, "vault_shares", False, {"vault": child})
        parent.add_position("gov", 1, 10)
        assert parent.nested_vaults() == [child]
        assert child.total_value() == usdc(0)
