from datetime import datetime

from pydantic import BaseModel, ConfigDict

# Integer amounts are serialised as strings: uint256 values overflow
# JavaScript numbers on the client side.


class ListedAssetResponse(BaseModel):
    """A listed asset and its eligibility flags."""

    model_config = ConfigDict(from_attributes=True)

    address: str
    position: int
    deposits_enabled: bool
    borrows_enabled: bool


class AssetsResponse(BaseModel):
    assets: list[ListedAssetResponse]


class PositionResponse(BaseModel):
    """A user's balances in a single asset."""

    user_address: str
    asset_address: str
    scaled_supply: str
    scaled_debt: str
    underlying_supply: str
    underlying_debt: str


class UserPositionsResponse(BaseModel):
    user_address: str
    positions: list[PositionResponse]


class RiskResponse(BaseModel):
    """Aggregate risk for a user across every listed asset."""

    user_address: str
    collateral_adjusted: str
    collateral_ltv: str
    debt: str
    health_factor: str | None = None  # WAD, None when the user has no debt
    borrow_room: str


class AccountRiskResponse(BaseModel):
    """Pool-level view of the custodial account."""

    account: str
    collateral_base: str
    debt_base: str
    available_borrows_base: str
    liquidation_threshold_bps: int
    ltv_bps: int
    health_factor: str


class OperationResponse(BaseModel):
    kind: str
    user_address: str
    asset_address: str
    requested_amount: str
    actual_amount: str
    scaled_delta: str
    refund: str
    timestamp: datetime | None = None


class OperationsResponse(BaseModel):
    user_address: str
    operations: list[OperationResponse]
