from fastapi import APIRouter, Depends

from services.vault.src.vault.config import settings
from services.vault.src.vault.domain.registry import normalize_address
from services.vault.src.vault.domain.workflows import VaultReader
from services.vault.src.vault.routes.dependencies import get_vault_reader, translate_errors
from services.vault.src.vault.schemas.responses import AccountRiskResponse

router = APIRouter(tags=["account"])


@router.get("/account", response_model=AccountRiskResponse)
def get_account_risk(reader: VaultReader = Depends(get_vault_reader)) -> AccountRiskResponse:
    """Pool-reported collateral, debt and health factor of the custodial account."""
    account = normalize_address(settings.custodial_account)
    with translate_errors():
        snapshot = reader.pool.account_risk_snapshot(account)
    return AccountRiskResponse(
        account=account,
        collateral_base=str(snapshot.collateral_base),
        debt_base=str(snapshot.debt_base),
        available_borrows_base=str(snapshot.available_borrows_base),
        liquidation_threshold_bps=snapshot.liquidation_threshold_bps,
        ltv_bps=snapshot.ltv_bps,
        health_factor=str(snapshot.health_factor),
    )
