"""
pricing_source.py - Pricing infrastructure for vault valuation

Classes:
- StaticPricingSource: In-process PricingPort with USD prices per asset

All conversions go through the base currency (USD): an amount of asset X is
worth amount * price(X) / price(Y) units of asset Y, adjusted for the two
assets' decimals and truncated to an integer.
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Dict, Mapping, Sequence

from .core import UnsupportedAsset, VaultInsolvent


class StaticPricingSource:
    """
    Pricing source with static prices, updatable between calls.

    Implements the PricingPort protocol. The base currency always prices
    at 1.0.

    Example:
        pricing = StaticPricingSource(
            {"USDC": Decimal("1"), "WETH": Decimal("2500")},
            decimals={"USDC": 6, "WETH": 18},
        )
        pricing.value("WETH", 10**18, "USDC")  # 2_500 * 10**6
    """

    def __init__(
        self,
        prices: Mapping[str, Decimal],
        decimals: Mapping[str, int],
        base_currency: str = "USD",
    ):
        """
        Initialize with a static price map.

        Args:
            prices: Asset symbol -> price in base currency
            decimals: Asset symbol -> native decimals of its integer amounts
            base_currency: The currency in which prices are quoted
        """
        self.base_currency = base_currency
        self.prices: Dict[str, Decimal] = {k: Decimal(v) for k, v in prices.items()}
        self.decimals: Dict[str, int] = dict(decimals)
        self.prices[base_currency] = Decimal("1.0")
        self.decimals.setdefault(base_currency, 18)
        for symbol, price in self.prices.items():
            if price <= 0:
                raise ValueError(f"Price for {symbol} must be positive, got {price}")

    def is_supported(self, asset: str) -> bool:
        return asset in self.prices and asset in self.decimals

    def price_in_usd(self, asset: str) -> Decimal:
        """
        Raises:
            UnsupportedAsset: If the asset has no price or decimals
        """
        if not self.is_supported(asset):
            raise UnsupportedAsset(f"No price for {asset}")
        return self.prices[asset]

    def value(self, from_asset: str, amount: int, to_asset: str) -> int:
        """Amount of from_asset expressed in to_asset native units, rounded down."""
        if from_asset == to_asset:
            return amount
        price_from = self.price_in_usd(from_asset)
        price_to = self.price_in_usd(to_asset)
        if amount == 0:
            return 0
        raw = (
            Decimal(amount) * price_from * (Decimal(10) ** self.decimals[to_asset])
            / (price_to * (Decimal(10) ** self.decimals[from_asset]))
        )
        return int(raw.to_integral_value(rounding=ROUND_FLOOR))

    def value_delta(
        self,
        credit_assets: Sequence[str],
        credit_amounts: Sequence[int],
        debt_assets: Sequence[str],
        debt_amounts: Sequence[int],
        quote_asset: str,
    ) -> int:
        """
        Net value of credit minus debt in quote_asset units.

        Raises:
            ValueError: If asset and amount sequences differ in length
            VaultInsolvent: If debt exceeds credit
        """
        if len(credit_assets) != len(credit_amounts) or len(debt_assets) != len(debt_amounts):
            raise ValueError("Asset and amount sequences must have equal length")
        credit = sum(self.value(a, n, quote_asset) for a, n in zip(credit_assets, credit_amounts))
        debt = sum(self.value(a, n, quote_asset) for a, n in zip(debt_assets, debt_amounts))
        if debt > credit:
            raise VaultInsolvent(f"Debt {debt} exceeds credit {credit} in {quote_asset}")
        return credit - debt

    def update_price(self, asset: str, price: Decimal, decimals: int = None):
        """Update (or add) the price of an asset."""
        price = Decimal(price)
        if price <= 0:
            raise ValueError(f"Price for {asset} must be positive, got {price}")
        self.prices[asset] = price
        if decimals is not None:
            self.decimals[asset] = decimals

    def update_prices(self, prices: Mapping[str, Decimal]):
        """Update multiple prices at once."""
        for asset, price in prices.items():
            self.update_price(asset, price)

    def __repr__(self):
        return f"StaticPricingSource({len(self.prices)} prices, base={self.base_currency})"
