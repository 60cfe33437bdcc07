"""Per-user scaled balance ledger for the custodial position."""

import logging
from typing import Iterator

from services.vault.src.vault.domain.fixed_point import to_underlying
from services.vault.src.vault.domain.models import UserPosition
from services.vault.src.vault.domain.registry import normalize_address

logger = logging.getLogger(__name__)


class ScaledBalanceLedger:
    """
    Attributes the custodial account's pooled balances to individual users.

    Balances are held as index-independent scaled shares:

        underlying = scaled * index // INDEX_PRECISION

    Credits take the scaled delta the pool itself minted (measured as
    after - before around the pool call), never a locally divided amount,
    so the ledger stays bit-consistent with the pool's rounding.
    """

    def __init__(self):
        # user -> asset -> position
        self._positions: dict[str, dict[str, UserPosition]] = {}

    def position(self, user: str, asset: str) -> UserPosition:
        """Return the position, or an empty detached one if never touched."""
        u, a = normalize_address(user), normalize_address(asset)
        existing = self._positions.get(u, {}).get(a)
        if existing is not None:
            return existing
        return UserPosition(user_address=u, asset_address=a)

    def _position_for_update(self, user: str, asset: str) -> UserPosition:
        u, a = normalize_address(user), normalize_address(asset)
        by_asset = self._positions.setdefault(u, {})
        if a not in by_asset:
            by_asset[a] = UserPosition(user_address=u, asset_address=a)
        return by_asset[a]

    def scaled_supply_of(self, user: str, asset: str) -> int:
        return self.position(user, asset).scaled_supply

    def scaled_debt_of(self, user: str, asset: str) -> int:
        return self.position(user, asset).scaled_debt

    def credit_supply(self, user: str, asset: str, scaled_delta: int) -> None:
        _require_non_negative(scaled_delta)
        self._position_for_update(user, asset).scaled_supply += scaled_delta

    def credit_debt(self, user: str, asset: str, scaled_delta: int) -> None:
        _require_non_negative(scaled_delta)
        self._position_for_update(user, asset).scaled_debt += scaled_delta

    def debit_supply(self, user: str, asset: str, measured_scaled_delta: int) -> int:
        """Burn up to `measured_scaled_delta` supply shares. Returns shares burned."""
        _require_non_negative(measured_scaled_delta)
        position = self._position_for_update(user, asset)
        burned = _clamp(measured_scaled_delta, position.scaled_supply, "supply", position)
        position.scaled_supply -= burned
        return burned

    def debit_debt(self, user: str, asset: str, measured_scaled_delta: int) -> int:
        """Burn up to `measured_scaled_delta` debt shares. Returns shares burned."""
        _require_non_negative(measured_scaled_delta)
        position = self._position_for_update(user, asset)
        burned = _clamp(measured_scaled_delta, position.scaled_debt, "debt", position)
        position.scaled_debt -= burned
        return burned

    def underlying_supply(self, user: str, asset: str, current_index: int) -> int:
        scaled = self.scaled_supply_of(user, asset)
        if scaled == 0:
            return 0
        return to_underlying(scaled, current_index)

    def underlying_debt(self, user: str, asset: str, current_index: int) -> int:
        scaled = self.scaled_debt_of(user, asset)
        if scaled == 0:
            return 0
        return to_underlying(scaled, current_index)

    def users(self) -> list[str]:
        return list(self._positions)

    def positions(self) -> Iterator[UserPosition]:
        for by_asset in self._positions.values():
            yield from by_asset.values()

    def positions_of(self, user: str) -> list[UserPosition]:
        return list(self._positions.get(normalize_address(user), {}).values())

    @classmethod
    def from_positions(cls, positions: list[UserPosition]) -> "ScaledBalanceLedger":
        ledger = cls()
        for p in positions:
            target = ledger._position_for_update(p.user_address, p.asset_address)
            target.scaled_supply = p.scaled_supply
            target.scaled_debt = p.scaled_debt
        return ledger


def _require_non_negative(delta: int) -> None:
    if delta < 0:
        raise ValueError(f"Scaled delta must be non-negative, got {delta}")


def _clamp(measured: int, current: int, kind: str, position: UserPosition) -> int:
    if measured <= current:
        return measured
    logger.warning(
        f"Clamped {kind} burn for {position.user_address} in {position.asset_address}: "
        f"pool reported {measured}, user holds {current}"
    )
    return current
