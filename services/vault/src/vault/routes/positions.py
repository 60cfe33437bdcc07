from fastapi import APIRouter, Depends

from services.vault.src.vault.domain.errors import AssetNotListed
from services.vault.src.vault.domain.registry import normalize_address
from services.vault.src.vault.domain.workflows import VaultReader
from services.vault.src.vault.routes.dependencies import get_vault_reader, translate_errors
from services.vault.src.vault.schemas.responses import (
    PositionResponse,
    RiskResponse,
    UserPositionsResponse,
)

router = APIRouter(tags=["positions"])


def _position_response(reader: VaultReader, user: str, asset: str) -> PositionResponse:
    return PositionResponse(
        user_address=normalize_address(user),
        asset_address=normalize_address(asset),
        scaled_supply=str(reader.scaled_supply_of(user, asset)),
        scaled_debt=str(reader.scaled_debt_of(user, asset)),
        underlying_supply=str(reader.underlying_supply_of(user, asset)),
        underlying_debt=str(reader.underlying_debt_of(user, asset)),
    )


@router.get("/positions/{user_address}", response_model=UserPositionsResponse)
def get_user_positions(
    user_address: str,
    reader: VaultReader = Depends(get_vault_reader),
) -> UserPositionsResponse:
    """All non-empty positions of a user, in listing order."""
    with translate_errors():
        positions = [
            _position_response(reader, user_address, asset)
            for asset in reader.ordered_listed_assets()
            if not reader.ledger.position(user_address, asset).is_empty
        ]
    return UserPositionsResponse(
        user_address=normalize_address(user_address), positions=positions
    )


@router.get("/positions/{user_address}/{asset_address}", response_model=PositionResponse)
def get_position(
    user_address: str,
    asset_address: str,
    reader: VaultReader = Depends(get_vault_reader),
) -> PositionResponse:
    with translate_errors():
        if not reader.is_listed(asset_address):
            raise AssetNotListed(normalize_address(asset_address))
        return _position_response(reader, user_address, asset_address)


@router.get("/risk/{user_address}", response_model=RiskResponse)
def get_user_risk(
    user_address: str,
    reader: VaultReader = Depends(get_vault_reader),
) -> RiskResponse:
    """
    Aggregate collateral, LTV capacity and debt across every listed asset.

    Values are in the oracle's base currency; health factor is WAD-scaled.
    """
    with translate_errors():
        snapshot = reader.risk_snapshot_of(user_address)
    hf = snapshot.health_factor
    return RiskResponse(
        user_address=snapshot.user_address,
        collateral_adjusted=str(snapshot.collateral_adjusted),
        collateral_ltv=str(snapshot.collateral_ltv),
        debt=str(snapshot.debt),
        health_factor=str(hf) if hf is not None else None,
        borrow_room=str(snapshot.borrow_room),
    )
