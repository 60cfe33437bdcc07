"""Shared in-memory pool, oracle and vault fixtures."""

import pytest

from services.vault.src.vault.adapters.aave_v3.mock_pool import (
    InMemoryLendingPool,
    InMemoryPriceOracle,
    InMemoryTokenGateway,
)
from services.vault.src.vault.domain.ledger import ScaledBalanceLedger
from services.vault.src.vault.domain.registry import AssetRegistry
from services.vault.src.vault.domain.workflows import CustodialVault

from services.vault.tests.helpers import (
    ALICE,
    BOB,
    CUSTODY,
    ONE_USDC,
    ONE_WETH,
    USDC,
    USDC_PRICE,
    WETH,
    WETH_PRICE,
)


@pytest.fixture
def tokens():
    gateway = InMemoryTokenGateway(account=CUSTODY)
    for user in (ALICE, BOB):
        gateway.mint(WETH, user, 100 * ONE_WETH)
        gateway.mint(USDC, user, 100_000 * ONE_USDC)
    return gateway


@pytest.fixture
def oracle():
    o = InMemoryPriceOracle()
    o.set_price(WETH, WETH_PRICE, decimals=18)
    o.set_price(USDC, USDC_PRICE, decimals=6)
    return o


@pytest.fixture
def pool(tokens, oracle):
    p = InMemoryLendingPool(tokens, oracle)
    p.add_reserve(WETH, ltv_bps=8000, liquidation_threshold_bps=8250, decimals=18)
    p.add_reserve(USDC, ltv_bps=7500, liquidation_threshold_bps=8000, decimals=6)
    # Liquidity supplied by other pool participants
    tokens.mint(WETH, p.address, 1_000 * ONE_WETH)
    tokens.mint(USDC, p.address, 10_000_000 * ONE_USDC)
    return p


@pytest.fixture
def registry():
    r = AssetRegistry()
    r.list_asset(WETH, enable_deposit=True, enable_borrow=True)
    r.list_asset(USDC, enable_deposit=True, enable_borrow=True)
    return r


@pytest.fixture
def ledger():
    return ScaledBalanceLedger()


@pytest.fixture
def vault(registry, ledger, pool, oracle, tokens):
    return CustodialVault(registry, ledger, pool, oracle, tokens)
