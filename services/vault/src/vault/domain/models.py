from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from services.vault.src.vault.domain.fixed_point import health_factor


@dataclass
class ListedAsset:
    address: str
    position: int  # 1-based, append-only
    deposits_enabled: bool
    borrows_enabled: bool


@dataclass
class UserPosition:
    """A user's scaled shares in a single asset."""

    user_address: str
    asset_address: str
    scaled_supply: int = 0
    scaled_debt: int = 0

    @property
    def is_empty(self) -> bool:
        return self.scaled_supply == 0 and self.scaled_debt == 0


@dataclass(frozen=True)
class ReserveConfiguration:
    # Basis points, e.g. 8000 = 80%
    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int = 0
    decimals: Optional[int] = None


@dataclass(frozen=True)
class ReserveTokens:
    a_token: Optional[str]
    variable_debt_token: Optional[str]


@dataclass(frozen=True)
class PriceQuote:
    asset_address: str
    price: int  # base currency units (8 decimals for Aave V3)
    decimals: int  # asset decimals


@dataclass(frozen=True)
class RiskSnapshot:
    """Aggregate per-user risk in base-currency units."""

    user_address: str
    collateral_adjusted: int  # sum(value * liquidation_threshold)
    collateral_ltv: int  # sum(value * ltv)
    debt: int

    @property
    def health_factor(self) -> int | None:
        """WAD health factor, None when the user has no debt."""
        return health_factor(self.collateral_adjusted, self.debt)

    @property
    def borrow_room(self) -> int:
        return max(0, self.collateral_ltv - self.debt)


@dataclass(frozen=True)
class AccountRiskSnapshot:
    """Pool-level view of the custodial account (getUserAccountData)."""

    collateral_base: int
    debt_base: int
    available_borrows_base: int
    liquidation_threshold_bps: int
    ltv_bps: int
    health_factor: int


class OperationKind(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"


@dataclass
class OperationResult:
    """Outcome of a committed workflow."""

    kind: OperationKind
    user_address: str
    asset_address: str
    requested_amount: int
    actual_amount: int
    scaled_delta: int  # minted for deposit/borrow, burned for withdraw/repay
    refund: int = 0
    timestamp: Optional[datetime] = None
