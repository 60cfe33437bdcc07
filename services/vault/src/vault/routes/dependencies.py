import logging
from contextlib import contextmanager
from typing import Iterator

import httpx
from fastapi import HTTPException

from services.vault.src.vault.adapters.aave_v3.config import get_default_config
from services.vault.src.vault.adapters.aave_v3.rpc_reader import AaveV3RpcReader, RpcError
from services.vault.src.vault.config import settings
from services.vault.src.vault.db.engine import get_engine
from services.vault.src.vault.db.repository import (
    OperationsRepository,
    PositionRepository,
    RegistryRepository,
)
from services.vault.src.vault.domain.errors import AssetNotListed, VaultError
from services.vault.src.vault.domain.workflows import VaultReader

logger = logging.getLogger(__name__)


def get_vault_reader() -> VaultReader:
    """Build a read-only vault view from persisted state and the chain's RPC."""
    chain = get_default_config().get_chain(settings.chain_id)
    if chain is None:
        raise HTTPException(status_code=500, detail=f"Unknown chain: {settings.chain_id}")

    engine = get_engine()
    rpc = AaveV3RpcReader(
        settings.rpc_url or chain.rpc_url,
        pool_address=chain.pool_address,
        oracle_address=chain.oracle_address,
    )
    return VaultReader(
        RegistryRepository(engine).load(),
        PositionRepository(engine).load(),
        rpc,
        rpc,
        min_health_factor=settings.min_health_factor,
        borrow_buffer_bps=settings.borrow_buffer_bps,
    )


def get_operations_repository() -> OperationsRepository:
    return OperationsRepository(get_engine())


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map vault and upstream failures to HTTP errors."""
    try:
        yield
    except AssetNotListed as e:
        raise HTTPException(status_code=404, detail=str(e))
    except VaultError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (RpcError, httpx.HTTPError) as e:
        logger.error(f"Upstream RPC failure: {e}")
        raise HTTPException(status_code=502, detail=f"Upstream RPC failure: {e}")
