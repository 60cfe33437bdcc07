"""
Composition root for a database-backed custodial vault.

Usage:
    engine = get_engine()
    vault = build_vault(engine, pool, oracle, tokens)
"""
import logging

from sqlalchemy.engine import Engine

from services.vault.src.vault.adapters.aave_v3.config import AssetListing, get_default_config
from services.vault.src.vault.adapters.aave_v3.interfaces import (
    LendingPool,
    PriceOracle,
    TokenGateway,
)
from services.vault.src.vault.config import settings
from services.vault.src.vault.db.engine import init_db
from services.vault.src.vault.db.repository import (
    OperationsRepository,
    PositionRepository,
    RegistryRepository,
)
from services.vault.src.vault.domain.models import ListedAsset, OperationResult
from services.vault.src.vault.domain.workflows import CustodialVault

logger = logging.getLogger(__name__)


class PersistentVault(CustodialVault):
    """
    CustodialVault that writes through to the database.

    The touched position and the operation journal entry are saved before
    the workflow releases the lock; registry changes are saved as they happen.
    """

    def __init__(
        self,
        engine: Engine,
        pool: LendingPool,
        oracle: PriceOracle,
        tokens: TokenGateway,
        **risk_params,
    ):
        self.registry_repo = RegistryRepository(engine)
        self.position_repo = PositionRepository(engine)
        self.operations_repo = OperationsRepository(engine)
        super().__init__(
            self.registry_repo.load(),
            self.position_repo.load(),
            pool,
            oracle,
            tokens,
            **risk_params,
        )

    def list_asset(
        self, asset: str, enable_deposit: bool = True, enable_borrow: bool = True
    ) -> ListedAsset:
        with self._lock:
            listed = super().list_asset(asset, enable_deposit, enable_borrow)
            self.registry_repo.save(self.registry)
            return listed

    def set_deposits_enabled(self, asset: str, enabled: bool) -> None:
        with self._lock:
            super().set_deposits_enabled(asset, enabled)
            self.registry_repo.save(self.registry)

    def set_borrows_enabled(self, asset: str, enabled: bool) -> None:
        with self._lock:
            super().set_borrows_enabled(asset, enabled)
            self.registry_repo.save(self.registry)

    def _committed(self, result: OperationResult) -> OperationResult:
        position = self.ledger.position(result.user_address, result.asset_address)
        self.position_repo.save_positions([position])
        self.operations_repo.insert_operations([result])
        logger.debug(f"Persisted {result.kind.value} for {result.user_address}")
        return result


def build_vault(
    engine: Engine,
    pool: LendingPool,
    oracle: PriceOracle,
    tokens: TokenGateway,
    listings: list[AssetListing] | None = None,
) -> PersistentVault:
    """
    Build a vault from persisted state and the configured risk settings.

    Args:
        engine: Database holding the registry, positions and operation journal
        pool, oracle, tokens: Lending pool collaborators
        listings: Assets to list (default: the configured chain's listings).
            Assets already listed keep their position and flags.

    Returns:
        The ready-to-use vault
    """
    init_db(engine)

    vault = PersistentVault(
        engine,
        pool,
        oracle,
        tokens,
        min_health_factor=settings.min_health_factor,
        min_account_health_factor=settings.min_account_health_factor,
        borrow_buffer_bps=settings.borrow_buffer_bps,
        interest_rate_mode=settings.interest_rate_mode,
    )

    if listings is None:
        listings = get_default_config().get_listings(settings.chain_id)
    for listing in listings:
        if not vault.is_listed(listing.address):
            vault.list_asset(listing.address, listing.enable_deposit, listing.enable_borrow)

    logger.info(
        f"Vault ready: account={vault.account} assets={len(vault.ordered_listed_assets())} "
        f"positions={len(list(vault.ledger.positions()))}"
    )
    return vault
