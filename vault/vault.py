"""
vault.py - Vault aggregate and entry points

A Vault pools one accounting asset into shares and deploys it across
positions. It wires together:
    - ShareLedger (shares.py)         share balances and allowances
    - PositionLedger (positions.py)   ordered credit/debt positions
    - FeeEngine (fees.py)             management/performance/join/exit fees
    - ValuationEngine (valuation.py)  net asset value
    - EntryExitEngine (entry_exit.py) deposit/mint/withdraw/redeem
    - RebalanceEngine (rebalance.py)  strategist batches

Execution model:
    Every state-changing entry point runs as
        reentrancy check -> pause check -> lock -> custody savepoint -> body
    and releases the lock in a finally block. Any exception restores custody
    balances and the state of every vault attached to the same custody, so a
    call either fully happens or leaves no trace.

Access:
    Owner-only administration, controller (owner or cached automation actor)
    rebalancing and accrual, and user flows open to any caller. Callers are
    identified by the explicit `caller` argument.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from functools import wraps
from typing import Any, List, Optional, Sequence, Set, Tuple

from .core import (
    Position, PositionBinding, PricingPort, ConfigurationData,
    WAD, BPS, AUTOMATION_ACTOR_SLOT, PRICE_ROUTER_SLOT, HIGH_WATER_MARK_RESET_INTERVAL,
    AccessDenied, AdaptorNotTrusted, ExpectedAddressMismatch, InvalidConfiguration,
    InvalidHoldingPosition, PositionAlreadyUsed, PositionIdMismatch,
    PositionNotDistrusted, PositionNotEmpty, ReentrancyError, ResetTooSoon,
    ValueDeviated, VaultPaused, VaultShutdown,
    ensure_non_negative,
)
from .adapters.base import AdapterContext
from .config import VaultConfig, UNLIMITED_SHARE_SUPPLY, validate_deviation
from .entry_exit import (
    EntryExitEngine, convert_to_assets, convert_to_shares,
    quote_deposit, quote_mint, quote_redeem, quote_withdraw,
)
from .fees import (
    FeeAccrual, FeeEngine, FeeState,
    calculate_management_rate_constant, calculate_share_price,
    validate_join_exit_fee, validate_management_fee, validate_performance_fee,
    validate_profit_accrual_period,
)
from .fixed_point import mul_div, to_share_scale, to_wad
from .log import get_logger
from .positions import PositionLedger, check_nesting, check_pricing, check_trusted
from .rebalance import AdapterCall, RebalanceEngine, RebalanceResult, deviation_bounds
from .shares import ShareLedger
from .valuation import ValuationEngine


log = get_logger(__name__)

# Default tolerance when switching price routers, basis points.
DEFAULT_PRICE_ROUTER_RANGE_BPS = 500


@dataclass
class VaultState:
    """
    Mutable per-vault state, snapshotted as a unit for rollback.

    Position objects and adapters are shared between snapshots; only the
    containers are copied.
    """
    owner: str
    holding_position_id: int
    share_supply_cap: int
    rebalance_deviation: int
    pricing: PricingPort
    fees: FeeState
    positions: PositionLedger = field(default_factory=PositionLedger)
    adaptor_catalogue: Set[str] = field(default_factory=set)
    automation_actor: Optional[str] = None
    is_shutdown: bool = False

    def copy(self) -> VaultState:
        return replace(
            self,
            fees=self.fees.copy(),
            positions=self.positions.copy(),
            adaptor_catalogue=set(self.adaptor_catalogue),
        )


# ============================================================================
# ENTRY-POINT DECORATORS
# ============================================================================

def entry_point(check_pause: bool = True):
    """Run a state-changing method under the lock and a custody savepoint."""
    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            if self._locked:
                raise ReentrancyError(f"{self.name}.{method.__name__} called during an in-progress call")
            if check_pause and self.is_paused():
                raise VaultPaused(f"{self.name} is paused")
            self._locked = True
            try:
                with self.custody.atomic():
                    return method(self, *args, **kwargs)
            finally:
                self._locked = False
        return wrapper
    return decorator


def read(check_pause: bool = True):
    """Guard a read: fail fast while locked, and (optionally) while paused."""
    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            if self._locked:
                raise ReentrancyError(f"{self.name}.{method.__name__} called during an in-progress call")
            if check_pause and self.is_paused():
                raise VaultPaused(f"{self.name} is paused")
            return method(self, *args, **kwargs)
        return wrapper
    return decorator


class Vault:
    """
    Pooled investment vault.

    Example:
        vault = Vault("usdc-vault", "USDC", custody, registry, owner="gov",
                      holding_position_id=1)
        shares = vault.deposit("alice", 100 * 10**6, "alice")
        vault.redeem("alice", shares, "alice", "alice")
    """

    def __init__(
        self,
        name: str,
        asset: str,
        custody,
        registry,
        owner: str,
        holding_position_id: int,
        holding_configuration: Optional[ConfigurationData] = None,
        config: Optional[VaultConfig] = None,
    ):
        """
        Create a vault and install its holding position at credit index 0.

        Args:
            name: Vault name; also its custody holder id
            asset: Accounting asset symbol (registered in custody)
            custody: Shared Custody ledger
            registry: Governance Registry (must hold a price router)
            owner: Holder id allowed to administer the vault
            holding_position_id: Trusted credit position in `asset`
            holding_configuration: Configuration blob for the holding position
            config: Caps, deviation bound and fee schedule

        Raises:
            InvalidHoldingPosition: If the holding position's asset is not `asset`
            UnsupportedAsset: If the price router cannot price `asset`
        """
        config = config or VaultConfig()
        self.name = name
        self.asset = asset
        self.custody = custody
        self.registry = registry
        self.decimals = custody.get_asset(asset).decimals
        self.shares = ShareLedger(f"{name}-shares")

        pricing = registry.get_address(PRICE_ROUTER_SLOT)
        check_pricing(pricing, asset)

        fee_config = config.fees
        fees = FeeState(
            join_fee_bps=fee_config.join_fee_bps,
            exit_fee_bps=fee_config.exit_fee_bps,
            management_fee=fee_config.management_fee,
            management_rate_constant=calculate_management_rate_constant(fee_config.management_fee),
            performance_fee=fee_config.performance_fee,
            last_management_claim=custody.current_time,
            profit_accrual_period=fee_config.profit_accrual_period,
        )
        self.state = VaultState(
            owner=owner,
            holding_position_id=holding_position_id,
            share_supply_cap=config.share_supply_cap,
            rebalance_deviation=config.rebalance_deviation,
            pricing=pricing,
            fees=fees,
        )

        custody.register_holder(name)
        self.ctx = AdapterContext(custody, name, asset, pricing)
        self.valuation = ValuationEngine(self.ctx)
        self.fee_engine = FeeEngine(name, registry, self.decimals)
        self.entry_exit = EntryExitEngine(self)
        self.rebalancer = RebalanceEngine(self)
        self._locked = False

        binding = check_trusted(registry, holding_position_id, False)
        holding = self._bind(binding, holding_configuration or {})
        if holding.asset != asset:
            raise InvalidHoldingPosition(
                f"Holding position {holding_position_id} holds {holding.asset}, vault asset is {asset}"
            )
        self.state.positions.insert(0, holding, False)

        custody.attach(self)
        log.info("vault_created", vault=name, asset=asset, owner=owner, holding_position_id=holding_position_id)

    # ========================================================================
    # ROLLBACK PARTICIPATION
    # ========================================================================

    def snapshot_state(self) -> Tuple[VaultState, Any]:
        return self.state.copy(), self.shares.snapshot()

    def restore_state(self, snapshot) -> None:
        state, shares = snapshot
        self.state = state.copy()
        self.shares.restore(shares)
        self.ctx.pricing = self.state.pricing
        self.ctx.block_external_receiver = False

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @property
    def now(self) -> datetime:
        return self.custody.current_time

    @property
    def owner(self) -> str:
        return self.state.owner

    def _bind(self, binding: PositionBinding, configuration_data: ConfigurationData) -> Position:
        adapter = self.registry.get_adaptor(binding.adaptor_id)
        return Position(
            position_id=binding.position_id,
            adapter=adapter,
            is_debt=binding.is_debt,
            adapter_data=binding.adapter_data,
            configuration_data=dict(configuration_data),
        )

    def _require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise AccessDenied(f"{caller} is not the owner of {self.name}")

    def _require_controller(self, caller: str) -> None:
        """Owner, or the cached automation actor while governance still names it."""
        if caller == self.state.owner:
            return
        actor = self.state.automation_actor
        if actor is not None and caller == actor and self._registry_value(AUTOMATION_ACTOR_SLOT) == actor:
            return
        raise AccessDenied(f"{caller} may not operate {self.name}")

    def _require_open(self) -> None:
        if self.state.is_shutdown:
            raise VaultShutdown(f"{self.name} is shut down")

    def _registry_value(self, slot: str) -> Any:
        try:
            return self.registry.get_address(slot)
        except InvalidConfiguration:
            return None

    def real_value(self) -> int:
        """Unguarded real value, for use inside entry points."""
        return self.valuation.real_value(self.state.positions)

    def accrue_fees(self) -> FeeAccrual:
        """Claim fees now; inside entry points only."""
        accrual = self.fee_engine.safe_compute(
            self.state.fees, self.real_value(), self.shares.total_supply, self.now
        )
        self.fee_engine.apply(self.state.fees, accrual, self.shares)
        return accrual

    def _preview_accrual(self) -> FeeAccrual:
        return self.fee_engine.safe_compute(
            self.state.fees, self.real_value(), self.shares.total_supply, self.now
        )

    def nested_vaults(self) -> List[Vault]:
        """Vaults held directly through vault-share positions."""
        nested = []
        for position in self.state.positions.positions.values():
            lookup = getattr(position.adapter, "nested_vault", None)
            target = lookup(position.adapter_data) if lookup else None
            if target is not None:
                nested.append(target)
        return nested

    def holding_vaults(self) -> List[Vault]:
        """Vaults on the same custody holding this one through vault-share positions."""
        return [
            participant for participant in self.custody.participants
            if isinstance(participant, Vault) and self in participant.nested_vaults()
        ]

    # ========================================================================
    # PLAIN READS
    # ========================================================================

    def is_paused(self) -> bool:
        return self.registry.is_paused(self.name, self.now)

    @property
    def is_shutdown(self) -> bool:
        return self.state.is_shutdown

    @property
    def total_supply(self) -> int:
        return self.shares.total_supply

    def balance_of(self, holder: str) -> int:
        return self.shares.balance_of(holder)

    def allowance(self, owner: str, spender: str) -> int:
        return self.shares.allowance(owner, spender)

    @property
    def credit_positions(self) -> List[int]:
        return list(self.state.positions.credit_positions)

    @property
    def debt_positions(self) -> List[int]:
        return list(self.state.positions.debt_positions)

    @property
    def fees(self) -> FeeState:
        return self.state.fees

    # ========================================================================
    # GUARDED READS
    # ========================================================================

    @read()
    def total_value(self) -> int:
        """Reported value: real value less locked profit, unclaimed fees included."""
        return self.valuation.reported_value(self.state.positions, self.state.fees)

    @read()
    def total_withdrawable_value(self) -> int:
        return self.valuation.withdrawable_value(self.state.positions)

    @read()
    def share_price(self) -> int:
        """WAD price of one share after pending fees."""
        accrual = self._preview_accrual()
        return calculate_share_price(
            to_share_scale(accrual.reported_value, self.decimals), accrual.supply_after
        )

    @read()
    def preview_fees(self) -> FeeAccrual:
        return self._preview_accrual()

    @read()
    def convert_to_shares(self, assets: int) -> int:
        accrual = self._preview_accrual()
        return convert_to_shares(assets, accrual.reported_value, accrual.supply_after, self.decimals)

    @read()
    def convert_to_assets(self, shares: int) -> int:
        accrual = self._preview_accrual()
        return convert_to_assets(shares, accrual.reported_value, accrual.supply_after, self.decimals)

    @read()
    def preview_deposit(self, assets: int) -> int:
        return self._preview_deposit(assets)

    @read()
    def preview_mint(self, shares: int) -> int:
        accrual = self._preview_accrual()
        assets, _ = quote_mint(
            shares, accrual.reported_value, accrual.supply_after, self.decimals, accrual.join_fee_bps
        )
        return assets

    @read()
    def preview_withdraw(self, assets: int) -> int:
        accrual = self._preview_accrual()
        shares, _ = quote_withdraw(
            assets, accrual.reported_value, accrual.supply_after, self.decimals, accrual.exit_fee_bps
        )
        return shares

    @read()
    def preview_redeem(self, shares: int) -> int:
        return self._preview_redeem(shares)

    def _preview_deposit(self, assets: int) -> int:
        accrual = self._preview_accrual()
        shares, _ = quote_deposit(
            assets, accrual.reported_value, accrual.supply_after, self.decimals, accrual.join_fee_bps
        )
        return shares

    def _preview_redeem(self, shares: int) -> int:
        accrual = self._preview_accrual()
        assets, _ = quote_redeem(
            shares, accrual.reported_value, accrual.supply_after, self.decimals, accrual.exit_fee_bps
        )
        return assets

    @read(check_pause=False)
    def max_deposit(self, receiver: str) -> int:
        if self.is_paused() or self.state.is_shutdown:
            return 0
        cap = self.state.share_supply_cap
        if cap == UNLIMITED_SHARE_SUPPLY:
            return UNLIMITED_SHARE_SUPPLY
        accrual = self._preview_accrual()
        room = max(cap - accrual.supply_after, 0)
        return convert_to_assets(room, accrual.reported_value, accrual.supply_after, self.decimals)

    @read(check_pause=False)
    def max_mint(self, receiver: str) -> int:
        if self.is_paused() or self.state.is_shutdown:
            return 0
        cap = self.state.share_supply_cap
        if cap == UNLIMITED_SHARE_SUPPLY:
            return UNLIMITED_SHARE_SUPPLY
        accrual = self._preview_accrual()
        room = max(cap - accrual.supply_after, 0)
        # fee shares count toward the cap
        return mul_div(room, BPS - accrual.join_fee_bps, BPS)

    @read(check_pause=False)
    def max_withdraw(self, owner: str) -> int:
        if self.is_paused():
            return 0
        held = self.shares.balance_of(owner)
        if held == 0:
            return 0
        return min(self._preview_redeem(held), self.valuation.withdrawable_value(self.state.positions))

    @read(check_pause=False)
    def max_redeem(self, owner: str) -> int:
        if self.is_paused():
            return 0
        held = self.shares.balance_of(owner)
        if held == 0:
            return 0
        withdrawable = self.valuation.withdrawable_value(self.state.positions)
        if self._preview_redeem(held) <= withdrawable:
            return held
        accrual = self._preview_accrual()
        net = convert_to_shares(withdrawable, accrual.reported_value, accrual.supply_after, self.decimals)
        gross = mul_div(net, BPS, BPS - accrual.exit_fee_bps)
        return min(gross, held)

    # ========================================================================
    # USER ENTRY POINTS
    # ========================================================================

    @entry_point()
    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        """Deposit `assets` from caller; returns shares minted to receiver."""
        self._require_open()
        return self.entry_exit.deposit(caller, assets, receiver)

    @entry_point()
    def mint(self, caller: str, shares: int, receiver: str) -> int:
        """Mint exactly `shares` to receiver; returns assets taken from caller."""
        self._require_open()
        return self.entry_exit.mint(caller, shares, receiver)

    @entry_point()
    def withdraw(self, caller: str, assets: int, receiver: str, owner: Optional[str] = None) -> int:
        """Pay exactly `assets` to receiver; returns shares taken from owner."""
        return self.entry_exit.withdraw(caller, assets, receiver, owner or caller)

    @entry_point()
    def redeem(self, caller: str, shares: int, receiver: str, owner: Optional[str] = None) -> int:
        """Redeem `shares` of owner; returns assets paid to receiver."""
        return self.entry_exit.redeem(caller, shares, receiver, owner or caller)

    @entry_point(check_pause=False)
    def transfer(self, caller: str, to: str, amount: int) -> None:
        self.shares.transfer(caller, to, amount)

    @entry_point(check_pause=False)
    def approve(self, caller: str, spender: str, amount: int) -> None:
        self.shares.approve(caller, spender, amount)

    @entry_point(check_pause=False)
    def transfer_from(self, caller: str, source: str, to: str, amount: int) -> None:
        self.shares.transfer_from(caller, source, to, amount)

    # ========================================================================
    # CONTROLLER ENTRY POINTS
    # ========================================================================

    @entry_point()
    def rebalance(self, caller: str, calls: Sequence[AdapterCall]) -> RebalanceResult:
        """
        Run a strategist batch (no fee claim).

        Raises:
            AccessDenied: If caller is neither owner nor the confirmed automation actor
            VaultShutdown: If the vault is shut down
        """
        self._require_controller(caller)
        self._require_open()
        return self.rebalancer.rebalance(calls)

    @entry_point()
    def accrue(self, caller: str) -> FeeAccrual:
        """Claim fees without a user action."""
        self._require_controller(caller)
        return self.accrue_fees()

    # ========================================================================
    # OWNER: POSITIONS
    # ========================================================================

    @entry_point(check_pause=False)
    def add_position(
        self,
        caller: str,
        index: int,
        position_id: int,
        configuration_data: Optional[ConfigurationData] = None,
        in_debt_array: bool = False,
    ) -> Position:
        """
        Raises:
            PositionAlreadyUsed, PositionNotTrusted, DebtFlagMismatch,
            PositionArrayFull, UnsupportedAsset, NestingCycle, NestingTooDeep
        """
        self._require_owner(caller)
        self._require_open()
        if self.state.positions.is_used(position_id):
            raise PositionAlreadyUsed(f"Position {position_id} already used")
        binding = check_trusted(self.registry, position_id, in_debt_array)
        position = self._bind(binding, configuration_data or {})
        check_pricing(self.state.pricing, position.asset)
        check_nesting(self, position)
        self.state.positions.insert(index, position, in_debt_array)
        log.info(
            "position_added", vault=self.name, position_id=position_id,
            index=index, is_debt=in_debt_array, asset=position.asset,
        )
        return position

    @entry_point(check_pause=False)
    def remove_position(self, caller: str, index: int, in_debt_array: bool = False) -> int:
        """
        Raises:
            InvalidHoldingPosition: If the slot holds the holding position
            PositionNotEmpty: If the adapter still reports a balance
        """
        self._require_owner(caller)
        position = self.state.positions.at(index, in_debt_array)
        if position.position_id == self.state.holding_position_id:
            raise InvalidHoldingPosition(f"Position {position.position_id} is the holding position")
        balance = position.adapter.balance_of(self.ctx, position.adapter_data)
        if balance != 0:
            raise PositionNotEmpty(position.position_id, balance)
        self.state.positions.pop(index, in_debt_array)
        log.info("position_removed", vault=self.name, position_id=position.position_id, index=index)
        return position.position_id

    @entry_point(check_pause=False)
    def force_remove_position(
        self, caller: str, index: int, position_id: int, in_debt_array: bool = False,
    ) -> None:
        """
        Drop a governance-distrusted position regardless of its balance.

        Raises:
            PositionIdMismatch: If position_id is not the id at index
            PositionNotDistrusted: If governance still trusts it
            InvalidHoldingPosition: If it is the holding position
        """
        self._require_owner(caller)
        position = self.state.positions.at(index, in_debt_array)
        if position.position_id != position_id:
            raise PositionIdMismatch(
                f"Index {index} holds position {position.position_id}, not {position_id}"
            )
        if not self.registry.is_position_distrusted(position_id):
            raise PositionNotDistrusted(f"Position {position_id} is still trusted")
        if position_id == self.state.holding_position_id:
            raise InvalidHoldingPosition(f"Position {position_id} is the holding position")
        self.state.positions.pop(index, in_debt_array)
        log.warning("position_force_removed", vault=self.name, position_id=position_id, index=index)

    @entry_point(check_pause=False)
    def set_holding_position(self, caller: str, position_id: int) -> None:
        """
        Raises:
            PositionNotUsed: If the vault does not hold the position
            InvalidHoldingPosition: If it is debt or not in the vault asset
        """
        self._require_owner(caller)
        position = self.state.positions.get(position_id)
        if position.is_debt:
            raise InvalidHoldingPosition(f"Position {position_id} is debt")
        if position.asset != self.asset:
            raise InvalidHoldingPosition(
                f"Position {position_id} holds {position.asset}, vault asset is {self.asset}"
            )
        self.state.holding_position_id = position_id
        log.info("holding_position_set", vault=self.name, position_id=position_id)

    @entry_point(check_pause=False)
    def swap_positions(self, caller: str, index1: int, index2: int, in_debt_array: bool = False) -> None:
        self._require_owner(caller)
        self.state.positions.swap(index1, index2, in_debt_array)
        log.info("positions_swapped", vault=self.name, index1=index1, index2=index2, is_debt=in_debt_array)

    # ========================================================================
    # OWNER: CATALOGUE, LIMITS, LIFECYCLE
    # ========================================================================

    @entry_point(check_pause=False)
    def add_adaptor_to_catalogue(self, caller: str, adaptor_id: str) -> None:
        self._require_owner(caller)
        if not self.registry.is_adaptor_trusted(adaptor_id):
            raise AdaptorNotTrusted(f"Adaptor {adaptor_id} not trusted")
        self.state.adaptor_catalogue.add(adaptor_id)
        log.info("adaptor_enabled", vault=self.name, adaptor=adaptor_id)

    @entry_point(check_pause=False)
    def remove_adaptor_from_catalogue(self, caller: str, adaptor_id: str) -> None:
        self._require_owner(caller)
        self.state.adaptor_catalogue.discard(adaptor_id)
        log.info("adaptor_disabled", vault=self.name, adaptor=adaptor_id)

    @entry_point(check_pause=False)
    def set_share_supply_cap(self, caller: str, cap: int) -> None:
        self._require_owner(caller)
        self.state.share_supply_cap = ensure_non_negative(cap, "share_supply_cap")
        log.info("share_supply_cap_set", vault=self.name, cap=cap)

    @entry_point(check_pause=False)
    def set_rebalance_deviation(self, caller: str, deviation) -> None:
        self._require_owner(caller)
        self.state.rebalance_deviation = validate_deviation(to_wad(deviation))
        log.info("rebalance_deviation_set", vault=self.name, deviation=self.state.rebalance_deviation)

    @entry_point(check_pause=False)
    def initiate_shutdown(self, caller: str) -> None:
        self._require_owner(caller)
        if self.state.is_shutdown:
            raise VaultShutdown(f"{self.name} is already shut down")
        self.state.is_shutdown = True
        log.warning("shutdown_initiated", vault=self.name)

    @entry_point(check_pause=False)
    def lift_shutdown(self, caller: str) -> None:
        self._require_owner(caller)
        if not self.state.is_shutdown:
            raise InvalidConfiguration(f"{self.name} is not shut down")
        self.state.is_shutdown = False
        log.info("shutdown_lifted", vault=self.name)

    @entry_point(check_pause=False)
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._require_owner(caller)
        self.state.owner = new_owner
        log.info("ownership_transferred", vault=self.name, owner=new_owner)

    # ========================================================================
    # OWNER: FEES
    # ========================================================================
    #
    # Management fee, performance fee and accrual period changes first claim
    # fees at the old settings, so a new rate never applies to time that has
    # already passed. Join and exit fees are charged per flow and take effect
    # on the next one.

    @entry_point(check_pause=False)
    def set_join_fee(self, caller: str, fee_bps: int) -> None:
        self._require_owner(caller)
        self.state.fees.join_fee_bps = validate_join_exit_fee(fee_bps)
        log.info("join_fee_set", vault=self.name, fee_bps=fee_bps)

    @entry_point(check_pause=False)
    def set_exit_fee(self, caller: str, fee_bps: int) -> None:
        self._require_owner(caller)
        self.state.fees.exit_fee_bps = validate_join_exit_fee(fee_bps)
        log.info("exit_fee_set", vault=self.name, fee_bps=fee_bps)

    @entry_point(check_pause=False)
    def set_management_fee(self, caller: str, fee) -> None:
        self._require_owner(caller)
        fee = validate_management_fee(to_wad(fee))
        self.accrue_fees()
        self.state.fees.management_fee = fee
        self.state.fees.management_rate_constant = calculate_management_rate_constant(fee)
        log.info("management_fee_set", vault=self.name, fee=fee)

    @entry_point(check_pause=False)
    def set_performance_fee(self, caller: str, fee) -> None:
        self._require_owner(caller)
        fee = validate_performance_fee(to_wad(fee))
        self.accrue_fees()
        self.state.fees.performance_fee = fee
        log.info("performance_fee_set", vault=self.name, fee=fee)

    @entry_point(check_pause=False)
    def set_profit_accrual_period(self, caller: str, seconds: int) -> None:
        self._require_owner(caller)
        seconds = validate_profit_accrual_period(seconds)
        self.accrue_fees()
        self.state.fees.profit_accrual_period = seconds
        log.info("profit_accrual_period_set", vault=self.name, seconds=seconds)

    @entry_point(check_pause=False)
    def reset_high_water_mark(self, caller: str) -> int:
        """
        Move the mark to the current post-fee price, at most once per interval.

        Raises:
            ResetTooSoon: If the previous reset is more recent than the interval
        """
        self._require_owner(caller)
        fees = self.state.fees
        last = fees.high_water_mark_reset_time
        if last is not None and self.now - last < HIGH_WATER_MARK_RESET_INTERVAL:
            raise ResetTooSoon(f"Next reset allowed at {last + HIGH_WATER_MARK_RESET_INTERVAL}")
        accrual = self.accrue_fees()
        mark = calculate_share_price(
            to_share_scale(accrual.real_value, self.decimals), self.shares.total_supply
        )
        fees.high_water_mark_price = mark
        fees.high_water_mark_reset_time = self.now
        log.warning("high_water_mark_reset", vault=self.name, mark=mark)
        return mark

    # ========================================================================
    # OWNER: CACHED GOVERNANCE VALUES
    # ========================================================================

    @entry_point(check_pause=False)
    def cache_price_router(
        self,
        caller: str,
        expected: PricingPort,
        check_total_value: bool = True,
        allowable_range_bps: int = DEFAULT_PRICE_ROUTER_RANGE_BPS,
    ) -> None:
        """
        Switch to governance's current price router.

        Raises:
            ExpectedAddressMismatch: If governance's router is not `expected`
            UnsupportedAsset: If the new router cannot price a held asset
            ValueDeviated: If real value moves more than allowable_range_bps
        """
        self._require_owner(caller)
        current = self.registry.get_address(PRICE_ROUTER_SLOT)
        if current is not expected:
            raise ExpectedAddressMismatch(f"{self.name}: registry price router is not the expected one")
        if not 0 <= allowable_range_bps <= BPS:
            raise InvalidConfiguration(f"allowable_range_bps must be within 0..{BPS}")

        check_pricing(current, self.asset)
        for position in self.state.positions.positions.values():
            check_pricing(current, position.asset)

        value_before = self.real_value() if check_total_value else 0
        self.state.pricing = current
        self.ctx.pricing = current
        if check_total_value:
            value_after = self.real_value()
            bound = mul_div(allowable_range_bps, WAD, BPS)
            low, high = deviation_bounds(value_before, bound)
            if not low <= value_after <= high:
                raise ValueDeviated(value_before, value_after, bound)
        log.info("price_router_cached", vault=self.name)

    @entry_point(check_pause=False)
    def cache_automation_actor(self, caller: str, expected: str) -> None:
        """
        Raises:
            ExpectedAddressMismatch: If governance's actor is not `expected`
        """
        self._require_owner(caller)
        current = self._registry_value(AUTOMATION_ACTOR_SLOT)
        if current is None or current != expected:
            raise ExpectedAddressMismatch(
                f"{self.name}: registry automation actor {current!r} != expected {expected!r}"
            )
        self.state.automation_actor = current
        log.info("automation_actor_cached", vault=self.name, actor=current)

    def __repr__(self):
        return (
            f"Vault({self.name}, asset={self.asset}, supply={self.shares.total_supply}, "
            f"positions={len(self.state.positions)})"
        )
