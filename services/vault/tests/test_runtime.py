"""Tests for building a database-backed vault."""

import pytest
from sqlalchemy import create_engine

from services.vault.src.vault.adapters.aave_v3.config import AssetListing
from services.vault.src.vault.adapters.aave_v3.mock_pool import PoolError
from services.vault.src.vault.config import settings
from services.vault.src.vault.db.repository import (
    OperationsRepository,
    PositionRepository,
    RegistryRepository,
)
from services.vault.src.vault.domain.errors import UserLTVCapacityExceeded
from services.vault.src.vault.domain.fixed_point import WAD
from services.vault.src.vault.domain.models import OperationKind
from services.vault.src.vault.runtime import build_vault

from services.vault.tests.helpers import ALICE, ONE_USDC, ONE_WETH, USDC, WETH

LISTINGS = [
    AssetListing(symbol="WETH", address=WETH),
    AssetListing(symbol="USDC", address=USDC),
]


@pytest.fixture
def db_engine():
    return create_engine("sqlite:///:memory:")


@pytest.fixture
def persistent_vault(db_engine, pool, oracle, tokens):
    return build_vault(db_engine, pool, oracle, tokens, listings=LISTINGS)


class TestBuildVault:
    def test_seeds_listings(self, persistent_vault, db_engine):
        assert persistent_vault.ordered_listed_assets() == (WETH, USDC)
        assert RegistryRepository(db_engine).load().ordered_listed_assets() == (WETH, USDC)

    def test_rebuild_keeps_listing_and_flags(self, persistent_vault, db_engine, pool, oracle, tokens):
        persistent_vault.set_borrows_enabled(USDC, False)

        rebuilt = build_vault(db_engine, pool, oracle, tokens, listings=LISTINGS)

        assert rebuilt.ordered_listed_assets() == (WETH, USDC)
        assert rebuilt.borrows_enabled(USDC) is False

    def test_risk_settings_reach_the_vault(self, db_engine, pool, oracle, tokens, monkeypatch):
        monkeypatch.setattr(settings, "min_health_factor", 2 * WAD)
        monkeypatch.setattr(settings, "min_account_health_factor", 3 * WAD // 2)
        monkeypatch.setattr(settings, "borrow_buffer_bps", 9_000)
        monkeypatch.setattr(settings, "interest_rate_mode", 1)

        vault = build_vault(db_engine, pool, oracle, tokens, listings=LISTINGS)

        assert vault.risk.min_health_factor == 2 * WAD
        assert vault.risk.borrow_buffer_bps == 9_000
        assert vault.min_account_health_factor == 3 * WAD // 2
        assert vault.interest_rate_mode == 1

    def test_default_listings_follow_configured_chain(self, db_engine, pool, oracle, tokens, monkeypatch):
        monkeypatch.setattr(settings, "chain_id", "base")

        vault = build_vault(db_engine, pool, oracle, tokens)

        assert vault.ordered_listed_assets() == (
            "0x4200000000000000000000000000000000000006",
            "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        )


class TestWriteThrough:
    def test_deposit_is_journaled_and_persisted(self, persistent_vault, db_engine):
        persistent_vault.deposit(ALICE, WETH, ONE_WETH)

        operations = OperationsRepository(db_engine).get_operations(ALICE)
        assert [op.kind for op in operations] == [OperationKind.DEPOSIT]
        assert operations[0].scaled_delta == ONE_WETH

        ledger = PositionRepository(db_engine).load()
        assert ledger.scaled_supply_of(ALICE, WETH) == ONE_WETH

    def test_rebuilt_vault_restores_positions(self, persistent_vault, db_engine, pool, oracle, tokens):
        persistent_vault.deposit(ALICE, WETH, ONE_WETH)
        persistent_vault.borrow(ALICE, USDC, 1000 * ONE_USDC)
        persistent_vault.repay(ALICE, USDC, 400 * ONE_USDC)

        rebuilt = build_vault(db_engine, pool, oracle, tokens, listings=LISTINGS)

        assert rebuilt.scaled_supply_of(ALICE, WETH) == ONE_WETH
        assert rebuilt.scaled_debt_of(ALICE, USDC) == 600 * ONE_USDC
        kinds = [op.kind for op in OperationsRepository(db_engine).get_operations(ALICE)]
        assert kinds == [OperationKind.DEPOSIT, OperationKind.BORROW, OperationKind.REPAY]

    def test_rejected_operation_is_not_journaled(self, persistent_vault, db_engine):
        with pytest.raises(UserLTVCapacityExceeded):
            persistent_vault.borrow(ALICE, USDC, ONE_USDC)

        assert OperationsRepository(db_engine).get_operations(ALICE) == []

    def test_pool_failure_is_not_persisted(self, persistent_vault, db_engine, pool):
        pool.fail_next = PoolError("SUPPLY_CAP_EXCEEDED")

        with pytest.raises(PoolError):
            persistent_vault.deposit(ALICE, WETH, ONE_WETH)

        assert OperationsRepository(db_engine).get_operations() == []
        assert PositionRepository(db_engine).load().scaled_supply_of(ALICE, WETH) == 0
