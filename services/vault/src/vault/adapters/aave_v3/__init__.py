from services.vault.src.vault.adapters.aave_v3.config import (
    VaultDeploymentConfig,
    get_default_config,
)
from services.vault.src.vault.adapters.aave_v3.interfaces import (
    LendingPool,
    PoolReader,
    PriceOracle,
    TokenGateway,
)
from services.vault.src.vault.adapters.aave_v3.rpc_reader import AaveV3RpcReader, RpcError

__all__ = [
    "AaveV3RpcReader",
    "LendingPool",
    "PoolReader",
    "PriceOracle",
    "RpcError",
    "TokenGateway",
    "VaultDeploymentConfig",
    "get_default_config",
]
