from fastapi import APIRouter, Depends

from services.vault.src.vault.domain.workflows import VaultReader
from services.vault.src.vault.routes.dependencies import get_vault_reader
from services.vault.src.vault.schemas.responses import AssetsResponse, ListedAssetResponse

router = APIRouter(tags=["assets"])


@router.get("/assets", response_model=AssetsResponse)
def get_assets(reader: VaultReader = Depends(get_vault_reader)) -> AssetsResponse:
    """Listed assets in listing order with their deposit/borrow flags."""
    return AssetsResponse(
        assets=[
            ListedAssetResponse.model_validate(entry)
            for entry in reader.registry.entries()
        ]
    )
