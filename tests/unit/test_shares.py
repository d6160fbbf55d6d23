"""
test_shares.py - Unit tests for ShareLedger

Tests:
- Mint/burn and supply tracking
- Transfers and allowances
- Snapshots
"""

import pytest

from vault import InsufficientAllowance, InsufficientBalance, InvalidAmount, ShareLedger
from vault.shares import UNLIMITED_ALLOWANCE


@pytest.fixture
def ledger():
    ledger = ShareLedger("v-shares")
    ledger.mint("alice", 100)
    return ledger


class TestSupply:

    def test_mint_increases_supply(self, ledger):
        ledger.mint("bob", 50)
        assert ledger.total_supply == 150
        assert ledger.balance_of("bob") == 50

    def test_burn_decreases_supply(self, ledger):
        ledger.burn("alice", 40)
        assert ledger.total_supply == 60
        assert ledger.balance_of("alice") == 60

    def test_burn_more_than_held(self, ledger):
        with pytest.raises(InsufficientBalance):
            ledger.burn("alice", 101)

    def test_negative_amount(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.mint("alice", -1)

    def test_emptied_holder_removed(self, ledger):
        ledger.burn("alice", 100)
        assert "alice" not in ledger.balances
        assert ledger.total_supply == 0


class TestTransfers:

    def test_transfer(self, ledger):
        ledger.transfer("alice", "bob", 30)
        assert ledger.balance_of("alice") == 70
        assert ledger.balance_of("bob") == 30
        assert ledger.total_supply == 100

    def test_transfer_to_self_rejected(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.transfer("alice", "alice", 1)

    def test_transfer_from_spends_allowance(self, ledger):
        ledger.approve("alice", "bob", 50)
        ledger.transfer_from("bob", "alice", "carol", 20)
        assert ledger.allowance("alice", "bob") == 30
        assert ledger.balance_of("carol") == 20

    def test_transfer_from_without_allowance(self, ledger):
        with pytest.raises(InsufficientAllowance):
            ledger.transfer_from("bob", "alice", "bob", 1)

    def test_unlimited_allowance_not_decremented(self, ledger):
        ledger.approve("alice", "bob", UNLIMITED_ALLOWANCE)
        ledger.transfer_from("bob", "alice", "bob", 10)
        assert ledger.allowance("alice", "bob") == UNLIMITED_ALLOWANCE

    def test_owner_needs_no_allowance(self, ledger):
        ledger.spend_allowance("alice", "alice", 100)
        assert ledger.allowance("alice", "alice") == 0


class TestSnapshot:

    def test_restore(self, ledger):
        snap = ledger.snapshot()
        ledger.mint("bob", 10)
        ledger.approve("alice", "bob", 5)
        ledger.restore(snap)
        assert ledger.total_supply == 100
        assert ledger.balance_of("bob") == 0
        assert ledger.allowance("alice", "bob") == 0
        assert sum(ledger.balances.values()) == ledger.total_supply
