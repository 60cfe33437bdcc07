"""Ordered registry of assets the vault accepts."""

import logging

from services.vault.src.vault.domain.errors import AssetNotListed, ZeroAddress
from services.vault.src.vault.domain.fixed_point import ZERO_ADDRESS
from services.vault.src.vault.domain.models import ListedAsset

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    return address.lower()


class AssetRegistry:
    """
    Append-only listing of assets with per-asset deposit/borrow flags.

    Listing order never changes, so risk aggregation iterates the same
    sequence on every computation.
    """

    def __init__(self):
        self._assets: dict[str, ListedAsset] = {}

    def list_asset(
        self, asset: str, enable_deposit: bool = True, enable_borrow: bool = True
    ) -> ListedAsset:
        """List an asset. Repeat calls return the existing entry unchanged."""
        key = normalize_address(asset)
        if key == ZERO_ADDRESS:
            raise ZeroAddress("asset")

        existing = self._assets.get(key)
        if existing is not None:
            return existing

        listed = ListedAsset(
            address=key,
            position=max((a.position for a in self._assets.values()), default=0) + 1,
            deposits_enabled=enable_deposit,
            borrows_enabled=enable_borrow,
        )
        self._assets[key] = listed
        logger.info(
            f"Listed asset {key} at position {listed.position} "
            f"(deposits={enable_deposit}, borrows={enable_borrow})"
        )
        return listed

    def set_deposits_enabled(self, asset: str, enabled: bool) -> None:
        self._require(asset).deposits_enabled = enabled
        logger.info(f"Deposits for {normalize_address(asset)} set to {enabled}")

    def set_borrows_enabled(self, asset: str, enabled: bool) -> None:
        self._require(asset).borrows_enabled = enabled
        logger.info(f"Borrows for {normalize_address(asset)} set to {enabled}")

    def get(self, asset: str) -> ListedAsset | None:
        return self._assets.get(normalize_address(asset))

    def is_listed(self, asset: str) -> bool:
        return normalize_address(asset) in self._assets

    def deposits_enabled(self, asset: str) -> bool:
        listed = self.get(asset)
        return listed is not None and listed.deposits_enabled

    def borrows_enabled(self, asset: str) -> bool:
        listed = self.get(asset)
        return listed is not None and listed.borrows_enabled

    def ordered_listed_assets(self) -> tuple[str, ...]:
        # dict preserves insertion order, which is listing order
        return tuple(self._assets)

    def entries(self) -> list[ListedAsset]:
        return list(self._assets.values())

    def _require(self, asset: str) -> ListedAsset:
        listed = self.get(asset)
        if listed is None:
            raise AssetNotListed(normalize_address(asset))
        return listed

    @classmethod
    def from_entries(cls, entries: list[ListedAsset]) -> "AssetRegistry":
        """Rebuild a registry from persisted entries, honouring stored positions."""
        registry = cls()
        for entry in sorted(entries, key=lambda e: e.position):
            registry._assets[normalize_address(entry.address)] = ListedAsset(
                address=normalize_address(entry.address),
                position=entry.position,
                deposits_enabled=entry.deposits_enabled,
                borrows_enabled=entry.borrows_enabled,
            )
        return registry
