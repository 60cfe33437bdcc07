"""Abstract collaborators the vault core consumes.

The lending pool, price oracle and token plumbing are external systems;
the core only depends on these interfaces.
"""

from abc import ABC, abstractmethod

from services.vault.src.vault.domain.models import (
    AccountRiskSnapshot,
    ReserveConfiguration,
    ReserveTokens,
)

VARIABLE_RATE_MODE = 2


class PoolReader(ABC):
    """Read side of an Aave V3 style pool."""

    @abstractmethod
    def normalized_supply_index(self, asset: str) -> int:
        """Current liquidity index for the reserve (RAY)."""

    @abstractmethod
    def normalized_debt_index(self, asset: str) -> int:
        """Current variable borrow index for the reserve (RAY)."""

    @abstractmethod
    def reserve_configuration(self, asset: str) -> ReserveConfiguration:
        """LTV and liquidation threshold of the reserve, in basis points."""

    @abstractmethod
    def reserve_tokens(self, asset: str) -> ReserveTokens:
        """aToken and variable debt token addresses of the reserve."""

    @abstractmethod
    def account_risk_snapshot(self, account: str) -> AccountRiskSnapshot:
        """Account-wide collateral, debt and health factor (getUserAccountData)."""

    @abstractmethod
    def scaled_supply_balance(self, asset: str, account: str) -> int:
        """Scaled aToken balance of `account`."""

    @abstractmethod
    def scaled_debt_balance(self, asset: str, account: str) -> int:
        """Scaled variable debt balance of `account`."""


class LendingPool(PoolReader):
    """Full pool: reads plus the four state-changing calls."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Pool address, the spender approved before supply/repay."""

    @abstractmethod
    def supply(self, asset: str, amount: int, on_behalf_of: str) -> None:
        pass

    @abstractmethod
    def withdraw(self, asset: str, amount: int, to: str) -> int:
        """Withdraw and return the amount actually sent to `to`."""

    @abstractmethod
    def borrow(self, asset: str, amount: int, rate_mode: int, on_behalf_of: str) -> None:
        pass

    @abstractmethod
    def repay(self, asset: str, amount: int, rate_mode: int, on_behalf_of: str) -> int:
        """Repay and return the amount actually repaid."""


class PriceOracle(ABC):
    @abstractmethod
    def asset_price(self, asset: str) -> int:
        """Price of one whole token in the base currency."""

    @abstractmethod
    def asset_decimals(self, asset: str) -> int:
        pass


class TokenGateway(ABC):
    """Trusted token movement on behalf of the custodial account."""

    @property
    @abstractmethod
    def account(self) -> str:
        """The custodial account holding pooled positions."""

    @abstractmethod
    def pull(self, asset: str, from_user: str, amount: int) -> None:
        """Move `amount` from the user to the custodial account."""

    @abstractmethod
    def push(self, asset: str, to_user: str, amount: int) -> None:
        """Move `amount` from the custodial account to the user."""

    @abstractmethod
    def approve(self, asset: str, spender: str, amount: int) -> None:
        """Set the custodial account's allowance for `spender`."""
