from services.vault.src.vault.schemas.responses import (
    AccountRiskResponse,
    AssetsResponse,
    ListedAssetResponse,
    OperationResponse,
    OperationsResponse,
    PositionResponse,
    RiskResponse,
    UserPositionsResponse,
)

__all__ = [
    "AccountRiskResponse",
    "AssetsResponse",
    "ListedAssetResponse",
    "OperationResponse",
    "OperationsResponse",
    "PositionResponse",
    "RiskResponse",
    "UserPositionsResponse",
]
