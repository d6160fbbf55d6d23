"""
test_registry.py - Unit tests for the governance Registry

Tests:
- Adaptor trust and distrust
- Position binding validation
- Address slots
- Pause windows
"""

import pytest
from datetime import datetime, timedelta

from vault import (
    Registry, TokenAdapter, DebtAdapter,
    AdaptorNotTrusted, DebtFlagMismatch, InvalidConfiguration, PositionNotTrusted,
    PRICE_ROUTER_SLOT,
)


NOW = datetime(2025, 1, 1)


@pytest.fixture
def registry():
    registry = Registry()
    registry.trust_adaptor(TokenAdapter())
    registry.trust_adaptor(DebtAdapter())
    return registry


class TestAdaptors:

    def test_trusted_adaptor_lookup(self, registry):
        assert registry.is_adaptor_trusted("token")
        assert isinstance(registry.get_adaptor("token"), TokenAdapter)

    def test_duplicate_identifier(self, registry):
        with pytest.raises(InvalidConfiguration):
            registry.trust_adaptor(TokenAdapter())

    def test_distrusted_adaptor_cannot_return(self, registry):
        registry.distrust_adaptor("token")
        assert not registry.is_adaptor_trusted("token")
        with pytest.raises(AdaptorNotTrusted):
            registry.get_adaptor("token")
        with pytest.raises(InvalidConfiguration):
            registry.trust_adaptor(TokenAdapter())

    def test_distrust_unknown(self, registry):
        with pytest.raises(AdaptorNotTrusted):
            registry.distrust_adaptor("nope")


class TestPositions:

    def test_trust_position(self, registry):
        binding = registry.trust_position(1, "token", False, {"asset": "USDC"})
        assert binding.adaptor_id == "token"
        assert registry.is_position_trusted(1)
        assert registry.get_position(1).adapter_data == {"asset": "USDC"}

    @pytest.mark.parametrize("position_id", [0, -3, "1"])
    def test_invalid_id(self, registry, position_id):
        with pytest.raises(InvalidConfiguration):
            registry.trust_position(position_id, "token", False, {"asset": "USDC"})

    def test_duplicate_id(self, registry):
        registry.trust_position(1, "token", False, {"asset": "USDC"})
        with pytest.raises(InvalidConfiguration):
            registry.trust_position(1, "token", False, {"asset": "WETH"})

    def test_unknown_adaptor(self, registry):
        with pytest.raises(AdaptorNotTrusted):
            registry.trust_position(1, "lending", False, {})

    def test_debt_flag_must_match_adaptor(self, registry):
        with pytest.raises(DebtFlagMismatch):
            registry.trust_position(1, "token", True, {"asset": "USDC"})
        with pytest.raises(DebtFlagMismatch):
            registry.trust_position(2, "debt", False, {"asset": "USDC"})

    def test_distrust_keeps_binding(self, registry):
        registry.trust_position(1, "token", False, {"asset": "USDC"})
        registry.distrust_position(1)
        assert not registry.is_position_trusted(1)
        assert registry.is_position_distrusted(1)
        assert registry.get_position(1).position_id == 1

    def test_unknown_position(self, registry):
        with pytest.raises(PositionNotTrusted):
            registry.get_position(42)


class TestAddresses:

    def test_set_and_get(self, registry):
        registry.set_address(PRICE_ROUTER_SLOT, "router")
        assert registry.get_address(PRICE_ROUTER_SLOT) == "router"

    def test_unset_slot(self, registry):
        with pytest.raises(InvalidConfiguration):
            registry.get_address(PRICE_ROUTER_SLOT)


class TestPause:

    def test_not_paused_by_default(self, registry):
        assert registry.pause_status("v") == (False, None)
        assert not registry.is_paused("v", NOW)

    def test_indefinite_pause(self, registry):
        registry.pause("v")
        assert registry.is_paused("v", NOW + timedelta(days=365))

    def test_pause_expires(self, registry):
        until = NOW + timedelta(hours=1)
        registry.pause("v", until)
        assert registry.is_paused("v", NOW)
        assert not registry.is_paused("v", until)

    def test_unpause(self, registry):
        registry.pause("v")
        registry.unpause("v")
        assert not registry.is_paused("v", NOW)

    def test_pause_is_per_vault(self, registry):
        registry.pause("v")
        assert not registry.is_paused("w", NOW)
