"""
test_config.py - Unit tests for FeeConfig and VaultConfig
"""

import pytest
from decimal import Decimal

from vault import (
    WAD, DEFAULT_REBALANCE_DEVIATION, MAX_REBALANCE_DEVIATION, UNLIMITED_SHARE_SUPPLY,
    FeeConfig, VaultConfig,
    InvalidConfiguration, InvalidDeviationBound, InvalidFeeRate,
)


class TestFeeConfig:

    def test_defaults_are_zero(self):
        config = FeeConfig()
        assert config.join_fee_bps == 0
        assert config.management_fee == 0
        assert config.profit_accrual_period == 0

    def test_rates_normalized_to_wad(self):
        config = FeeConfig(management_fee="0.02", performance_fee=Decimal("0.1"))
        assert config.management_fee == 2 * WAD // 100
        assert config.performance_fee == WAD // 10

    def test_int_rates_taken_as_wad(self):
        assert FeeConfig(performance_fee=WAD // 5).performance_fee == WAD // 5

    def test_rate_above_cap(self):
        with pytest.raises(InvalidFeeRate):
            FeeConfig(management_fee="0.5")

    def test_join_fee_above_cap(self):
        with pytest.raises(InvalidFeeRate):
            FeeConfig(join_fee_bps=1_001)

    def test_unparseable_rate(self):
        with pytest.raises(InvalidConfiguration):
            FeeConfig(management_fee="two percent")

    def test_frozen(self):
        config = FeeConfig()
        with pytest.raises(AttributeError):
            config.join_fee_bps = 5


class TestVaultConfig:

    def test_defaults(self):
        config = VaultConfig()
        assert config.share_supply_cap == UNLIMITED_SHARE_SUPPLY
        assert config.rebalance_deviation == DEFAULT_REBALANCE_DEVIATION

    def test_deviation_bounds(self):
        assert VaultConfig(rebalance_deviation="0.1").rebalance_deviation == MAX_REBALANCE_DEVIATION
        with pytest.raises(InvalidDeviationBound):
            VaultConfig(rebalance_deviation="0.1000001")

    def test_negative_cap(self):
        with pytest.raises(InvalidConfiguration):
            VaultConfig(share_supply_cap=-1)

    def test_from_mapping(self):
        config = VaultConfig.from_mapping({
            "share_supply_cap": 10 ** 24,
            "rebalance_deviation": "0.001",
            "fees": {"management_fee": "0.02", "exit_fee_bps": 25},
        })
        assert config.share_supply_cap == 10 ** 24
        assert config.rebalance_deviation == WAD // 1_000
        assert config.fees.management_fee == 2 * WAD // 100
        assert config.fees.exit_fee_bps == 25

    def test_from_mapping_unknown_key(self):
        with pytest.raises(InvalidConfiguration):
            VaultConfig.from_mapping({"leverage": 3})

    def test_from_mapping_unknown_fee_key(self):
        with pytest.raises(InvalidConfiguration):
            VaultConfig.from_mapping({"fees": {"carry": "0.2"}})
