"""
entry_exit.py - Deposits, mints, withdrawals and redemptions

Every flow follows the same steps:
    1. Claim fees, giving the post-fee (value, supply) pair
    2. Apply the join/exit surcharge
    3. Convert between assets and shares, rounding in the vault's favour
    4. Move assets: into the holding position, or out of credit positions in order

Conversions run on the 18-decimal scale (value18 = value * 10**(18 - decimals))
against one virtual share backed by one unit of value18:
    shares = assets18 * (supply + 1) / (value18 + 1)
    assets = shares * (value18 + 1) / (supply + 1)
An empty vault converts at one share (10**18) per whole asset unit. The
virtual share takes its cut of any donation made to a near-empty vault, so
inflating the share price costs the donor more than it can take from the
next depositor.
"""

from __future__ import annotations
from typing import Tuple

from .core import (
    ensure_non_negative,
    IncompleteWithdraw, InsufficientBalance, SupplyCapExceeded, VaultInsolvent,
    ZeroAssets, ZeroShares,
)
from .adapters.base import AdapterContext
from .fees import calculate_entry_fee, calculate_exit_fee, gross_up
from .fixed_point import mul_div, to_share_scale
from .log import get_logger


log = get_logger(__name__)

VIRTUAL_SHARES = 1
VIRTUAL_ASSETS = 1


# ============================================================================
# CONVERSIONS
# ============================================================================

def convert_to_shares(assets: int, value: int, supply: int, decimals: int, round_up: bool = False) -> int:
    """
    Raises:
        VaultInsolvent: If shares exist against zero value
    """
    if supply and value == 0:
        raise VaultInsolvent(f"{supply} shares outstanding against zero value")
    return mul_div(
        to_share_scale(assets, decimals),
        supply + VIRTUAL_SHARES,
        to_share_scale(value, decimals) + VIRTUAL_ASSETS,
        round_up,
    )


def convert_to_assets(shares: int, value: int, supply: int, decimals: int, round_up: bool = False) -> int:
    return mul_div(
        shares,
        to_share_scale(value, decimals) + VIRTUAL_ASSETS,
        (supply + VIRTUAL_SHARES) * to_share_scale(1, decimals),
        round_up,
    )


def quote_deposit(assets: int, value: int, supply: int, decimals: int, fee_bps: int) -> Tuple[int, int]:
    """(shares to receiver, shares to fee sink) for depositing gross `assets`."""
    fee_assets = calculate_entry_fee(assets, fee_bps)
    shares = convert_to_shares(assets - fee_assets, value, supply, decimals)
    fee_shares = convert_to_shares(fee_assets, value, supply, decimals) if fee_assets else 0
    return shares, fee_shares


def quote_mint(shares: int, value: int, supply: int, decimals: int, fee_bps: int) -> Tuple[int, int]:
    """(gross assets owed, shares to fee sink) for minting exactly `shares`."""
    net_assets = convert_to_assets(shares, value, supply, decimals, round_up=True)
    gross_assets = gross_up(net_assets, fee_bps)
    fee_assets = gross_assets - net_assets
    fee_shares = convert_to_shares(fee_assets, value, supply, decimals) if fee_assets else 0
    return gross_assets, fee_shares


def quote_withdraw(assets: int, value: int, supply: int, decimals: int, fee_bps: int) -> Tuple[int, int]:
    """(gross shares spent, of which to fee sink) for withdrawing exactly `assets`."""
    net_shares = convert_to_shares(assets, value, supply, decimals, round_up=True)
    gross_shares = gross_up(net_shares, fee_bps)
    return gross_shares, gross_shares - net_shares


def quote_redeem(shares: int, value: int, supply: int, decimals: int, fee_bps: int) -> Tuple[int, int]:
    """(assets paid out, shares to fee sink) for redeeming gross `shares`."""
    fee_shares = calculate_exit_fee(shares, fee_bps)
    assets = convert_to_assets(shares - fee_shares, value, supply, decimals)
    return assets, fee_shares


# ============================================================================
# WITHDRAWAL PIPELINE
# ============================================================================

def withdraw_in_order(ctx: AdapterContext, positions, assets: int, receiver: str) -> None:
    """
    Pay `assets` (vault-asset units) to receiver from credit positions in order.

    Each position pays out in its own asset; its withdrawable amount is
    priced into vault-asset terms to decide how much of the debt it covers.

    Raises:
        IncompleteWithdraw: If credit positions run dry before `assets` is met
    """
    remaining = assets
    for position in positions.credits():
        if remaining == 0:
            break
        available_native = position.adapter.withdrawable_from(
            ctx, position.adapter_data, position.configuration_data
        )
        if available_native == 0:
            continue
        asset = position.asset
        available = ctx.pricing.value(asset, available_native, ctx.vault_asset)
        if available == 0:
            continue

        if remaining >= available:
            taken, amount = available, available_native
        else:
            taken = remaining
            amount = min(ctx.pricing.value(ctx.vault_asset, remaining, asset), available_native)
        remaining -= taken

        if amount:
            position.adapter.withdraw(
                ctx, amount, receiver, position.adapter_data, position.configuration_data
            )
        log.debug(
            "position_drained",
            vault=ctx.vault_id,
            position_id=position.position_id,
            asset=asset,
            amount=amount,
            remaining=remaining,
        )

    if remaining > 0:
        raise IncompleteWithdraw(remaining)


# ============================================================================
# ENGINE
# ============================================================================

class EntryExitEngine:
    """
    User-facing asset/share flows for one vault.

    Called from the vault's entry points, i.e. inside the reentrancy lock and
    a custody savepoint: any exception rolls the whole call back.
    """

    def __init__(self, vault):
        self.vault = vault

    def _check_cap(self, supply: int, new_shares: int) -> None:
        cap = self.vault.state.share_supply_cap
        if supply + new_shares > cap:
            raise SupplyCapExceeded(new_shares, max(cap - supply, 0))

    def _pay_in(self, caller: str, assets: int) -> None:
        vault = self.vault
        vault.custody.transfer(vault.asset, caller, vault.name, assets, "deposit")
        holding = vault.state.positions.get(vault.state.holding_position_id)
        holding.adapter.deposit(vault.ctx, assets, holding.adapter_data, holding.configuration_data)

    def _pay_exit_fee(self, owner: str, fee_shares: int, recipient) -> None:
        if fee_shares and recipient != owner:
            self.vault.shares.transfer(owner, recipient, fee_shares)

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        """
        Raises:
            ZeroShares: If assets convert to no shares
            SupplyCapExceeded: If the shares (fee shares included) exceed the cap
        """
        vault = self.vault
        ensure_non_negative(assets, "assets")
        accrual = vault.accrue_fees()
        value, supply = accrual.reported_value, accrual.supply_after

        shares, fee_shares = quote_deposit(assets, value, supply, vault.decimals, accrual.join_fee_bps)
        if shares == 0:
            raise ZeroShares(f"Depositing {assets} {vault.asset} yields no shares")
        self._check_cap(supply, shares + fee_shares)

        self._pay_in(caller, assets)
        vault.shares.mint(receiver, shares)
        if fee_shares:
            vault.shares.mint(accrual.recipient, fee_shares)
        log.info(
            "deposit", vault=vault.name, caller=caller, receiver=receiver,
            assets=assets, shares=shares, fee_shares=fee_shares,
        )
        return shares

    def mint(self, caller: str, shares: int, receiver: str) -> int:
        """
        Raises:
            ZeroShares: If shares is zero
            SupplyCapExceeded: If the shares (fee shares included) exceed the cap
        """
        vault = self.vault
        ensure_non_negative(shares, "shares")
        if shares == 0:
            raise ZeroShares("Cannot mint zero shares")
        accrual = vault.accrue_fees()
        value, supply = accrual.reported_value, accrual.supply_after

        assets, fee_shares = quote_mint(shares, value, supply, vault.decimals, accrual.join_fee_bps)
        if assets == 0:
            raise ZeroAssets(f"Minting {shares} shares costs no assets")
        self._check_cap(supply, shares + fee_shares)

        self._pay_in(caller, assets)
        vault.shares.mint(receiver, shares)
        if fee_shares:
            vault.shares.mint(accrual.recipient, fee_shares)
        log.info(
            "mint", vault=vault.name, caller=caller, receiver=receiver,
            assets=assets, shares=shares, fee_shares=fee_shares,
        )
        return assets

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        """
        Raises:
            ZeroAssets: If assets is zero
            InsufficientAllowance: If caller may not spend owner's shares
            InsufficientBalance: If owner holds too few shares
            IncompleteWithdraw: If positions cannot cover the assets
        """
        vault = self.vault
        ensure_non_negative(assets, "assets")
        if assets == 0:
            raise ZeroAssets("Cannot withdraw zero assets")
        accrual = vault.accrue_fees()
        value, supply = accrual.reported_value, accrual.supply_after

        shares, fee_shares = quote_withdraw(assets, value, supply, vault.decimals, accrual.exit_fee_bps)
        self._exit(caller, owner, shares, fee_shares, accrual.recipient)
        withdraw_in_order(vault.ctx, vault.state.positions, assets, receiver)
        log.info(
            "withdraw", vault=vault.name, caller=caller, receiver=receiver, owner=owner,
            assets=assets, shares=shares, fee_shares=fee_shares,
        )
        return shares

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        """
        Raises:
            ZeroAssets: If the shares redeem for nothing
            InsufficientAllowance: If caller may not spend owner's shares
            InsufficientBalance: If owner holds too few shares
            IncompleteWithdraw: If positions cannot cover the assets
        """
        vault = self.vault
        ensure_non_negative(shares, "shares")
        accrual = vault.accrue_fees()
        value, supply = accrual.reported_value, accrual.supply_after

        assets, fee_shares = quote_redeem(shares, value, supply, vault.decimals, accrual.exit_fee_bps)
        if assets == 0:
            raise ZeroAssets(f"Redeeming {shares} shares yields no assets")
        self._exit(caller, owner, shares, fee_shares, accrual.recipient)
        withdraw_in_order(vault.ctx, vault.state.positions, assets, receiver)
        log.info(
            "redeem", vault=vault.name, caller=caller, receiver=receiver, owner=owner,
            assets=assets, shares=shares, fee_shares=fee_shares,
        )
        return assets

    def _exit(self, caller: str, owner: str, shares: int, fee_shares: int, recipient) -> None:
        """Spend allowance, pay the exit fee in shares, burn the rest."""
        vault = self.vault
        held = vault.shares.balance_of(owner)
        if held < shares:
            raise InsufficientBalance(f"{owner} holds {held} {vault.shares.symbol}, needs {shares}")
        vault.shares.spend_allowance(owner, caller, shares)
        self._pay_exit_fee(owner, fee_shares, recipient)
        vault.shares.burn(owner, shares - fee_shares)
