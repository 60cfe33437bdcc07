"""In-memory pool, oracle and token collaborators for testing without network calls.

The pool reproduces the parts of Aave V3 accounting the vault observes:
half-up ray math on mint/burn, full-balance withdraw via MAX_UINT256,
repay capped at the outstanding debt, and allowance-checked pulls.
"""

from dataclasses import dataclass
from typing import Callable

from services.vault.src.vault.adapters.aave_v3.interfaces import (
    LendingPool,
    PriceOracle,
    TokenGateway,
)
from services.vault.src.vault.domain.fixed_point import (
    BPS_DENOM,
    MAX_UINT256,
    RAY,
    WAD,
    percent_of,
    ray_div,
    ray_mul,
    to_base_value,
)
from services.vault.src.vault.domain.models import (
    AccountRiskSnapshot,
    ReserveConfiguration,
    ReserveTokens,
)


class PoolError(Exception):
    """Raised by the in-memory pool where the real pool would revert."""


class TokenTransferError(Exception):
    """Raised on insufficient balance or allowance."""


class InMemoryTokenGateway(TokenGateway):
    def __init__(self, account: str = "0xcustody"):
        self._account = account.lower()
        self.balances: dict[tuple[str, str], int] = {}
        self.allowances: dict[tuple[str, str, str], int] = {}
        self.approvals: list[tuple[str, str, int]] = []

    @property
    def account(self) -> str:
        return self._account

    def mint(self, asset: str, holder: str, amount: int) -> None:
        key = (asset.lower(), holder.lower())
        self.balances[key] = self.balances.get(key, 0) + amount

    def balance_of(self, asset: str, holder: str) -> int:
        return self.balances.get((asset.lower(), holder.lower()), 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self.allowances.get((asset.lower(), owner.lower(), spender.lower()), 0)

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        available = self.balance_of(asset, sender)
        if amount > available:
            raise TokenTransferError(
                f"Insufficient {asset} balance for {sender}: {available} < {amount}"
            )
        self.balances[(asset.lower(), sender.lower())] = available - amount
        self.mint(asset, recipient, amount)

    def transfer_from(
        self, asset: str, owner: str, spender: str, recipient: str, amount: int
    ) -> None:
        allowed = self.allowance(asset, owner, spender)
        if amount > allowed:
            raise TokenTransferError(
                f"Insufficient {asset} allowance for {spender}: {allowed} < {amount}"
            )
        self.transfer(asset, owner, recipient, amount)
        self.allowances[(asset.lower(), owner.lower(), spender.lower())] = allowed - amount

    def pull(self, asset: str, from_user: str, amount: int) -> None:
        self.transfer(asset, from_user, self._account, amount)

    def push(self, asset: str, to_user: str, amount: int) -> None:
        self.transfer(asset, self._account, to_user, amount)

    def approve(self, asset: str, spender: str, amount: int) -> None:
        key = (asset.lower(), self._account, spender.lower())
        # Some tokens (USDT) reject nonzero -> nonzero allowance changes
        if amount != 0 and self.allowances.get(key, 0) != 0:
            raise TokenTransferError(f"Nonzero allowance already set for {spender}")
        self.allowances[key] = amount
        self.approvals.append((asset.lower(), spender.lower(), amount))


class InMemoryPriceOracle(PriceOracle):
    def __init__(self):
        self.prices: dict[str, int] = {}
        self.decimals: dict[str, int] = {}

    def set_price(self, asset: str, price: int, decimals: int = 18) -> None:
        self.prices[asset.lower()] = price
        self.decimals[asset.lower()] = decimals

    def asset_price(self, asset: str) -> int:
        try:
            return self.prices[asset.lower()]
        except KeyError:
            raise PoolError(f"No price for asset {asset}") from None

    def asset_decimals(self, asset: str) -> int:
        try:
            return self.decimals[asset.lower()]
        except KeyError:
            raise PoolError(f"No decimals for asset {asset}") from None


@dataclass
class _Reserve:
    config: ReserveConfiguration
    tokens: ReserveTokens
    supply_index: int = RAY
    debt_index: int = RAY


class InMemoryLendingPool(LendingPool):
    """Aave V3 style pool holding scaled balances per account."""

    def __init__(
        self,
        tokens: InMemoryTokenGateway,
        oracle: PriceOracle | None = None,
        address: str = "0xpool",
    ):
        self.tokens = tokens
        self.oracle = oracle
        self._address = address.lower()
        self.reserves: dict[str, _Reserve] = {}
        self.scaled_supply: dict[tuple[str, str], int] = {}
        self.scaled_debt: dict[tuple[str, str], int] = {}
        self.account_snapshot_override: AccountRiskSnapshot | None = None
        # Failure/side-effect injection for tests
        self.fail_next: Exception | None = None
        self.on_call: Callable[[str], None] | None = None
        self.calls: list[tuple[str, str, int]] = []

    @property
    def address(self) -> str:
        return self._address

    def add_reserve(
        self,
        asset: str,
        ltv_bps: int = 8000,
        liquidation_threshold_bps: int = 8250,
        decimals: int = 18,
        supply_index: int = RAY,
        debt_index: int = RAY,
        a_token: str | None = "",
        variable_debt_token: str | None = "",
    ) -> None:
        key = asset.lower()
        self.reserves[key] = _Reserve(
            config=ReserveConfiguration(
                ltv_bps=ltv_bps,
                liquidation_threshold_bps=liquidation_threshold_bps,
                decimals=decimals,
            ),
            tokens=ReserveTokens(
                a_token=f"a{key}" if a_token == "" else a_token,
                variable_debt_token=(
                    f"variableDebt{key}" if variable_debt_token == "" else variable_debt_token
                ),
            ),
            supply_index=supply_index,
            debt_index=debt_index,
        )

    def set_indices(
        self, asset: str, supply_index: int | None = None, debt_index: int | None = None
    ) -> None:
        reserve = self._reserve(asset)
        if supply_index is not None:
            reserve.supply_index = supply_index
        if debt_index is not None:
            reserve.debt_index = debt_index

    # Reads

    def normalized_supply_index(self, asset: str) -> int:
        return self._reserve(asset).supply_index

    def normalized_debt_index(self, asset: str) -> int:
        return self._reserve(asset).debt_index

    def reserve_configuration(self, asset: str) -> ReserveConfiguration:
        return self._reserve(asset).config

    def reserve_tokens(self, asset: str) -> ReserveTokens:
        return self._reserve(asset).tokens

    def scaled_supply_balance(self, asset: str, account: str) -> int:
        return self.scaled_supply.get((asset.lower(), account.lower()), 0)

    def scaled_debt_balance(self, asset: str, account: str) -> int:
        return self.scaled_debt.get((asset.lower(), account.lower()), 0)

    def account_risk_snapshot(self, account: str) -> AccountRiskSnapshot:
        if self.account_snapshot_override is not None:
            return self.account_snapshot_override
        if self.oracle is None:
            raise PoolError("Account snapshot requires a price oracle")

        collateral = 0
        debt = 0
        weighted_lt = 0
        weighted_ltv = 0
        for asset, reserve in self.reserves.items():
            price = self.oracle.asset_price(asset)
            decimals = self.oracle.asset_decimals(asset)
            supplied = ray_mul(self.scaled_supply_balance(asset, account), reserve.supply_index)
            borrowed = ray_mul(self.scaled_debt_balance(asset, account), reserve.debt_index)
            value = to_base_value(supplied, price, decimals)
            collateral += value
            weighted_lt += value * reserve.config.liquidation_threshold_bps
            weighted_ltv += value * reserve.config.ltv_bps
            debt += to_base_value(borrowed, price, decimals)

        lt_bps = weighted_lt // collateral if collateral else 0
        ltv_bps = weighted_ltv // collateral if collateral else 0
        hf = MAX_UINT256 if debt == 0 else percent_of(collateral, lt_bps) * WAD // debt
        return AccountRiskSnapshot(
            collateral_base=collateral,
            debt_base=debt,
            available_borrows_base=max(0, collateral * ltv_bps // BPS_DENOM - debt),
            liquidation_threshold_bps=lt_bps,
            ltv_bps=ltv_bps,
            health_factor=hf,
        )

    # Writes

    def supply(self, asset: str, amount: int, on_behalf_of: str) -> None:
        self._enter("supply", asset, amount)
        reserve = self._reserve(asset)
        if amount <= 0:
            raise PoolError("INVALID_AMOUNT")
        minted = ray_div(amount, reserve.supply_index)
        self.tokens.transfer_from(
            asset, self.tokens.account, self._address, self._address, amount
        )
        key = (asset.lower(), on_behalf_of.lower())
        self.scaled_supply[key] = self.scaled_supply.get(key, 0) + minted

    def withdraw(self, asset: str, amount: int, to: str) -> int:
        self._enter("withdraw", asset, amount)
        reserve = self._reserve(asset)
        key = (asset.lower(), self.tokens.account)
        scaled = self.scaled_supply.get(key, 0)
        balance = ray_mul(scaled, reserve.supply_index)
        if amount == MAX_UINT256:
            amount = balance
        if amount <= 0 or amount > balance:
            raise PoolError("NOT_ENOUGH_AVAILABLE_USER_BALANCE")
        burned = min(ray_div(amount, reserve.supply_index), scaled)
        self.scaled_supply[key] = scaled - burned
        self.tokens.transfer(asset, self._address, to, amount)
        return amount

    def borrow(self, asset: str, amount: int, rate_mode: int, on_behalf_of: str) -> None:
        self._enter("borrow", asset, amount)
        reserve = self._reserve(asset)
        if amount <= 0:
            raise PoolError("INVALID_AMOUNT")
        minted = ray_div(amount, reserve.debt_index)
        self.tokens.transfer(asset, self._address, self.tokens.account, amount)
        key = (asset.lower(), on_behalf_of.lower())
        self.scaled_debt[key] = self.scaled_debt.get(key, 0) + minted

    def repay(self, asset: str, amount: int, rate_mode: int, on_behalf_of: str) -> int:
        self._enter("repay", asset, amount)
        reserve = self._reserve(asset)
        key = (asset.lower(), on_behalf_of.lower())
        scaled = self.scaled_debt.get(key, 0)
        outstanding = ray_mul(scaled, reserve.debt_index)
        if outstanding == 0:
            raise PoolError("NO_DEBT_OF_SELECTED_TYPE")
        paid = min(amount, outstanding)
        burned = scaled if paid == outstanding else min(ray_div(paid, reserve.debt_index), scaled)
        self.tokens.transfer_from(
            asset, self.tokens.account, self._address, self._address, paid
        )
        self.scaled_debt[key] = scaled - burned
        return paid

    def _enter(self, operation: str, asset: str, amount: int) -> None:
        self.calls.append((operation, asset.lower(), amount))
        if self.on_call is not None:
            self.on_call(operation)
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    def _reserve(self, asset: str) -> _Reserve:
        try:
            return self.reserves[asset.lower()]
        except KeyError:
            raise PoolError(f"Reserve not initialized: {asset}") from None
