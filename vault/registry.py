"""
registry.py - Governance registry

The registry is the trust anchor shared by every vault:
- Catalogue of trusted adaptors and positions (position id -> adaptor + data)
- Named address slots (price router, fee manager, automation actor)
- Per-vault pause signals with an absolute end-of-pause timestamp

Vaults never trust a value from the registry blindly when it changes: cached
values (price router, automation actor) are switched only through an
owner-supplied expected-value handshake on the vault.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional, Set, Tuple

from .core import (
    AdapterData, PositionAdapter, PositionBinding,
    AdaptorNotTrusted, DebtFlagMismatch, InvalidConfiguration, PositionNotTrusted,
)
from .log import get_logger


log = get_logger(__name__)


class Registry:
    """
    In-process governance registry.

    Example:
        registry = Registry()
        registry.trust_adaptor(TokenAdapter())
        registry.trust_position(1, "token", False, {"asset": "USDC"})
        registry.set_address(PRICE_ROUTER_SLOT, pricing)
    """

    def __init__(self):
        self._adaptors: Dict[str, PositionAdapter] = {}
        self._distrusted_adaptors: Set[str] = set()
        self._positions: Dict[int, PositionBinding] = {}
        self._distrusted_positions: Set[int] = set()
        self._addresses: Dict[str, Any] = {}
        self._pauses: Dict[str, Optional[datetime]] = {}

    # ========================================================================
    # ADAPTORS
    # ========================================================================

    def trust_adaptor(self, adapter: PositionAdapter) -> str:
        """
        Add an adapter to the catalogue under its identifier.

        Raises:
            InvalidConfiguration: If the identifier is already taken or was distrusted
        """
        adaptor_id = adapter.identifier
        if adaptor_id in self._adaptors:
            raise InvalidConfiguration(f"Adaptor {adaptor_id} already trusted")
        if adaptor_id in self._distrusted_adaptors:
            raise InvalidConfiguration(f"Adaptor {adaptor_id} was distrusted and cannot be re-added")
        self._adaptors[adaptor_id] = adapter
        log.info("adaptor_trusted", adaptor=adaptor_id)
        return adaptor_id

    def distrust_adaptor(self, adaptor_id: str) -> None:
        if adaptor_id not in self._adaptors:
            raise AdaptorNotTrusted(f"Adaptor {adaptor_id} not trusted")
        del self._adaptors[adaptor_id]
        self._distrusted_adaptors.add(adaptor_id)
        log.info("adaptor_distrusted", adaptor=adaptor_id)

    def is_adaptor_trusted(self, adaptor_id: str) -> bool:
        return adaptor_id in self._adaptors

    def get_adaptor(self, adaptor_id: str) -> PositionAdapter:
        """
        Raises:
            AdaptorNotTrusted: If unknown or distrusted
        """
        if adaptor_id not in self._adaptors:
            raise AdaptorNotTrusted(f"Adaptor {adaptor_id} not trusted")
        return self._adaptors[adaptor_id]

    # ========================================================================
    # POSITIONS
    # ========================================================================

    def trust_position(
        self,
        position_id: int,
        adaptor_id: str,
        is_debt: bool,
        adapter_data: AdapterData,
    ) -> PositionBinding:
        """
        Bind a position id to a trusted adaptor and its market data.

        Raises:
            InvalidConfiguration: If the id is taken or non-positive
            AdaptorNotTrusted: If the adaptor is not trusted
            DebtFlagMismatch: If is_debt disagrees with the adaptor
        """
        if not isinstance(position_id, int) or position_id <= 0:
            raise InvalidConfiguration(f"Position id must be a positive int, got {position_id!r}")
        if position_id in self._positions or position_id in self._distrusted_positions:
            raise InvalidConfiguration(f"Position {position_id} already registered")
        adapter = self.get_adaptor(adaptor_id)
        if adapter.is_debt() != is_debt:
            raise DebtFlagMismatch(
                f"Position {position_id}: is_debt={is_debt} but adaptor {adaptor_id} "
                f"is_debt={adapter.is_debt()}"
            )
        binding = PositionBinding(position_id, adaptor_id, is_debt, dict(adapter_data))
        self._positions[position_id] = binding
        log.info("position_trusted", position_id=position_id, adaptor=adaptor_id, is_debt=is_debt)
        return binding

    def distrust_position(self, position_id: int) -> None:
        """Mark a position as distrusted; vaults may then force-remove it."""
        if position_id not in self._positions:
            raise PositionNotTrusted(f"Position {position_id} not trusted")
        self._distrusted_positions.add(position_id)
        log.warning("position_distrusted", position_id=position_id)

    def is_position_trusted(self, position_id: int) -> bool:
        return position_id in self._positions and position_id not in self._distrusted_positions

    def is_position_distrusted(self, position_id: int) -> bool:
        return position_id in self._distrusted_positions

    def get_position(self, position_id: int) -> PositionBinding:
        """
        Binding for a position, distrusted or not.

        Raises:
            PositionNotTrusted: If the id was never trusted
        """
        if position_id not in self._positions:
            raise PositionNotTrusted(f"Position {position_id} not trusted")
        return self._positions[position_id]

    # ========================================================================
    # ADDRESS SLOTS
    # ========================================================================

    def set_address(self, slot: str, value: Any) -> None:
        self._addresses[slot] = value
        log.info("address_set", slot=slot, value=repr(value))

    def get_address(self, slot: str) -> Any:
        """
        Raises:
            InvalidConfiguration: If the slot was never set
        """
        if slot not in self._addresses:
            raise InvalidConfiguration(f"Registry slot {slot} not set")
        return self._addresses[slot]

    # ========================================================================
    # PAUSE SIGNALS
    # ========================================================================

    def pause(self, vault_name: str, until: Optional[datetime] = None) -> None:
        """Pause a vault until an absolute time (None: until unpaused)."""
        self._pauses[vault_name] = until
        log.warning("vault_paused", vault=vault_name, until=until.isoformat() if until else None)

    def unpause(self, vault_name: str) -> None:
        self._pauses.pop(vault_name, None)
        log.info("vault_unpaused", vault=vault_name)

    def pause_status(self, vault_name: str) -> Tuple[bool, Optional[datetime]]:
        """(pause flag, end-of-pause timestamp) as set by governance."""
        if vault_name not in self._pauses:
            return False, None
        return True, self._pauses[vault_name]

    def is_paused(self, vault_name: str, now: datetime) -> bool:
        flagged, until = self.pause_status(vault_name)
        return flagged and (until is None or now < until)
