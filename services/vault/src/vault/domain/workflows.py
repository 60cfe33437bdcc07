"""Deposit / withdraw / borrow / repay flows for the pooled custodial position.

Each flow validates eligibility, gates on risk where the operation can
reduce solvency, calls the pool, measures the pool's own scaled-balance
delta around the call, and only then applies it to the ledger. A failed
pool call leaves the ledger untouched.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, TypeVar

from services.vault.src.vault.adapters.aave_v3.interfaces import (
    VARIABLE_RATE_MODE,
    LendingPool,
    PoolReader,
    PriceOracle,
    TokenGateway,
)
from services.vault.src.vault.domain.errors import (
    AccountHealthFactorTooLow,
    AmountExceedsRepayable,
    AmountExceedsWithdrawable,
    AssetNotListed,
    BorrowsDisabled,
    DepositsDisabled,
    MissingReserveToken,
    NoScaledBalance,
    OperationsPaused,
    ReentrantCall,
    ZeroAddress,
    ZeroAmount,
)
from services.vault.src.vault.domain.fixed_point import WAD, ZERO_ADDRESS
from services.vault.src.vault.domain.ledger import ScaledBalanceLedger
from services.vault.src.vault.domain.models import (
    ListedAsset,
    OperationKind,
    OperationResult,
    ReserveTokens,
    RiskSnapshot,
)
from services.vault.src.vault.domain.registry import AssetRegistry, normalize_address
from services.vault.src.vault.domain.risk import (
    DEFAULT_BORROW_BUFFER_BPS,
    DEFAULT_MIN_HEALTH_FACTOR,
    RiskEngine,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VaultReader:
    """Read-only queries over the ledger, registry and pool indices."""

    def __init__(
        self,
        registry: AssetRegistry,
        ledger: ScaledBalanceLedger,
        pool: PoolReader,
        oracle: PriceOracle,
        min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR,
        borrow_buffer_bps: int = DEFAULT_BORROW_BUFFER_BPS,
    ):
        self.registry = registry
        self.ledger = ledger
        self.pool = pool
        self.oracle = oracle
        self.risk = RiskEngine(
            registry,
            ledger,
            pool,
            oracle,
            min_health_factor=min_health_factor,
            borrow_buffer_bps=borrow_buffer_bps,
        )

    def scaled_supply_of(self, user: str, asset: str) -> int:
        return self.ledger.scaled_supply_of(user, asset)

    def scaled_debt_of(self, user: str, asset: str) -> int:
        return self.ledger.scaled_debt_of(user, asset)

    def underlying_supply_of(self, user: str, asset: str) -> int:
        if self.ledger.scaled_supply_of(user, asset) == 0:
            return 0
        return self.ledger.underlying_supply(
            user, asset, self.pool.normalized_supply_index(asset)
        )

    def underlying_debt_of(self, user: str, asset: str) -> int:
        if self.ledger.scaled_debt_of(user, asset) == 0:
            return 0
        return self.ledger.underlying_debt(
            user, asset, self.pool.normalized_debt_index(asset)
        )

    def is_listed(self, asset: str) -> bool:
        return self.registry.is_listed(asset)

    def deposits_enabled(self, asset: str) -> bool:
        return self.registry.deposits_enabled(asset)

    def borrows_enabled(self, asset: str) -> bool:
        return self.registry.borrows_enabled(asset)

    def ordered_listed_assets(self) -> tuple[str, ...]:
        return self.registry.ordered_listed_assets()

    def risk_snapshot_of(self, user: str) -> RiskSnapshot:
        return self.risk.snapshot(user)

    def health_factor_of(self, user: str) -> int | None:
        return self.risk.health_factor(user)


class CustodialVault(VaultReader):
    """
    The state-changing surface of the pooled position.

    All entry points are serialized on one lock. A call-depth flag rejects
    re-entry from inside a pool call, and a pause switch blocks every
    workflow while leaving reads available.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        ledger: ScaledBalanceLedger,
        pool: LendingPool,
        oracle: PriceOracle,
        tokens: TokenGateway,
        min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR,
        min_account_health_factor: int = WAD,
        borrow_buffer_bps: int = DEFAULT_BORROW_BUFFER_BPS,
        interest_rate_mode: int = VARIABLE_RATE_MODE,
    ):
        super().__init__(
            registry,
            ledger,
            pool,
            oracle,
            min_health_factor=min_health_factor,
            borrow_buffer_bps=borrow_buffer_bps,
        )
        self.pool: LendingPool = pool
        self.tokens = tokens
        self.min_account_health_factor = min_account_health_factor
        self.interest_rate_mode = interest_rate_mode

        self._lock = threading.RLock()
        self._entered = False
        self._paused = False
        self._reserve_tokens: dict[str, ReserveTokens] = {}

    @property
    def account(self) -> str:
        return self.tokens.account

    @property
    def paused(self) -> bool:
        return self._paused

    # Administration

    def pause(self) -> None:
        with self._lock:
            self._paused = True
        logger.warning("Vault operations paused")

    def unpause(self) -> None:
        with self._lock:
            self._paused = False
        logger.info("Vault operations resumed")

    def list_asset(
        self, asset: str, enable_deposit: bool = True, enable_borrow: bool = True
    ) -> ListedAsset:
        with self._lock:
            return self.registry.list_asset(asset, enable_deposit, enable_borrow)

    def set_deposits_enabled(self, asset: str, enabled: bool) -> None:
        with self._lock:
            self.registry.set_deposits_enabled(asset, enabled)

    def set_borrows_enabled(self, asset: str, enabled: bool) -> None:
        with self._lock:
            self.registry.set_borrows_enabled(asset, enabled)

    # Workflows

    def deposit(self, user: str, asset: str, amount: int) -> OperationResult:
        with self._guarded("deposit"):
            user, asset = self._require_addresses(user, asset)
            listed = self._require_listed(asset)
            if not listed.deposits_enabled:
                raise DepositsDisabled(asset)
            _require_amount(amount)
            self._require_reserve_tokens(asset)

            before = self.pool.scaled_supply_balance(asset, self.account)
            self._funded_pool_call(
                asset, user, amount, lambda: self.pool.supply(asset, amount, self.account)
            )
            after = self.pool.scaled_supply_balance(asset, self.account)

            minted = max(0, after - before)
            self.ledger.credit_supply(user, asset, minted)
            logger.info(f"Deposit: user={user} asset={asset} amount={amount} scaled={minted}")
            return self._committed(
                _result(OperationKind.DEPOSIT, user, asset, amount, amount, minted)
            )

    def withdraw(self, user: str, asset: str, amount: int) -> OperationResult:
        with self._guarded("withdraw"):
            return self._withdraw(user, asset, amount, full=False)

    def withdraw_all(self, user: str, asset: str) -> OperationResult:
        with self._guarded("withdraw_all"):
            user, asset = self._require_addresses(user, asset)
            self._require_listed(asset)
            if self.ledger.scaled_supply_of(user, asset) == 0:
                raise NoScaledBalance(user, asset, "supply")
            amount = self.underlying_supply_of(user, asset)
            return self._withdraw(user, asset, amount, full=True)

    def borrow(self, user: str, asset: str, amount: int) -> OperationResult:
        with self._guarded("borrow"):
            user, asset = self._require_addresses(user, asset)
            listed = self._require_listed(asset)
            if not listed.borrows_enabled:
                raise BorrowsDisabled(asset)
            _require_amount(amount)
            self._require_reserve_tokens(asset)

            self._check_account_health()
            self.risk.check_borrow(user, asset, amount)

            before = self.pool.scaled_debt_balance(asset, self.account)
            self.pool.borrow(asset, amount, self.interest_rate_mode, self.account)
            after = self.pool.scaled_debt_balance(asset, self.account)

            minted = max(0, after - before)
            # Debt is credited only once the user holds the borrowed funds
            self.tokens.push(asset, user, amount)
            self.ledger.credit_debt(user, asset, minted)
            logger.info(f"Borrow: user={user} asset={asset} amount={amount} scaled={minted}")
            return self._committed(
                _result(OperationKind.BORROW, user, asset, amount, amount, minted)
            )

    def repay(self, user: str, asset: str, amount: int) -> OperationResult:
        with self._guarded("repay"):
            return self._repay(user, asset, amount, full=False)

    def repay_all(self, user: str, asset: str) -> OperationResult:
        with self._guarded("repay_all"):
            user, asset = self._require_addresses(user, asset)
            self._require_listed(asset)
            if self.ledger.scaled_debt_of(user, asset) == 0:
                raise NoScaledBalance(user, asset, "debt")
            amount = self.underlying_debt_of(user, asset)
            return self._repay(user, asset, amount, full=True)

    # Internals

    def _withdraw(self, user: str, asset: str, amount: int, full: bool) -> OperationResult:
        user, asset = self._require_addresses(user, asset)
        self._require_listed(asset)
        _require_amount(amount)
        scaled = self.ledger.scaled_supply_of(user, asset)
        if scaled == 0:
            raise NoScaledBalance(user, asset, "supply")
        available = self.underlying_supply_of(user, asset)
        if amount > available:
            raise AmountExceedsWithdrawable(amount, available)
        self._require_reserve_tokens(asset)

        self._check_account_health()
        self.risk.check_withdraw(user, asset, amount)

        before = self.pool.scaled_supply_balance(asset, self.account)
        actual = self.pool.withdraw(asset, amount, user)
        after = self.pool.scaled_supply_balance(asset, self.account)

        measured = max(0, before - after)
        # A full exit settles every share the user holds
        burned = self.ledger.debit_supply(user, asset, max(measured, scaled) if full else measured)
        logger.info(
            f"Withdraw: user={user} asset={asset} amount={amount} "
            f"actual={actual} scaled={burned}"
        )
        return self._committed(
            _result(OperationKind.WITHDRAW, user, asset, amount, actual, burned)
        )

    def _repay(self, user: str, asset: str, amount: int, full: bool) -> OperationResult:
        user, asset = self._require_addresses(user, asset)
        self._require_listed(asset)
        _require_amount(amount)
        scaled = self.ledger.scaled_debt_of(user, asset)
        if scaled == 0:
            raise NoScaledBalance(user, asset, "debt")
        outstanding = self.underlying_debt_of(user, asset)
        if amount > outstanding:
            raise AmountExceedsRepayable(amount, outstanding)
        self._require_reserve_tokens(asset)

        before = self.pool.scaled_debt_balance(asset, self.account)
        repaid = self._funded_pool_call(
            asset,
            user,
            amount,
            lambda: self.pool.repay(asset, amount, self.interest_rate_mode, self.account),
        )
        after = self.pool.scaled_debt_balance(asset, self.account)

        measured = max(0, before - after)
        burned = self.ledger.debit_debt(user, asset, max(measured, scaled) if full else measured)

        refund = amount - repaid
        if refund > 0:
            self.tokens.push(asset, user, refund)
        logger.info(
            f"Repay: user={user} asset={asset} amount={amount} "
            f"repaid={repaid} scaled={burned} refund={max(refund, 0)}"
        )
        return self._committed(
            _result(
                OperationKind.REPAY, user, asset, amount, repaid, burned, refund=max(refund, 0)
            )
        )

    def _committed(self, result: OperationResult) -> OperationResult:
        """Called under the lock once a workflow has updated the ledger."""
        return result

    @contextmanager
    def _guarded(self, operation: str) -> Iterator[None]:
        with self._lock:
            if self._entered:
                raise ReentrantCall(operation)
            if self._paused:
                raise OperationsPaused()
            self._entered = True
            try:
                yield
            finally:
                self._entered = False

    def _funded_pool_call(
        self, asset: str, user: str, amount: int, call: Callable[[], T]
    ) -> T:
        """Pull funds, approve the pool for one call, reset the approval.

        If the pool call fails the pulled funds go back to the user.
        """
        self.tokens.pull(asset, user, amount)
        try:
            self.tokens.approve(asset, self.pool.address, amount)
            try:
                return call()
            finally:
                # Reset to zero for tokens that reject nonzero -> nonzero changes
                self.tokens.approve(asset, self.pool.address, 0)
        except Exception:
            logger.warning(f"Pool call failed, returning {amount} {asset} to {user}")
            self.tokens.push(asset, user, amount)
            raise

    def _check_account_health(self) -> None:
        snapshot = self.pool.account_risk_snapshot(self.account)
        if snapshot.debt_base > 0 and snapshot.health_factor <= self.min_account_health_factor:
            logger.warning(f"Custodial account health factor {snapshot.health_factor} too low")
            raise AccountHealthFactorTooLow(
                snapshot.health_factor, self.min_account_health_factor
            )

    def _require_reserve_tokens(self, asset: str) -> ReserveTokens:
        cached = self._reserve_tokens.get(asset)
        if cached is not None:
            return cached
        tokens = self.pool.reserve_tokens(asset)
        if not tokens.a_token:
            raise MissingReserveToken(asset, "aToken")
        if not tokens.variable_debt_token:
            raise MissingReserveToken(asset, "variable debt token")
        # Only complete lookups are cached, so a missing token is re-queried
        self._reserve_tokens[asset] = tokens
        return tokens

    def _require_listed(self, asset: str) -> ListedAsset:
        listed = self.registry.get(asset)
        if listed is None:
            raise AssetNotListed(asset)
        return listed

    @staticmethod
    def _require_addresses(user: str, asset: str) -> tuple[str, str]:
        user, asset = normalize_address(user), normalize_address(asset)
        if user == ZERO_ADDRESS:
            raise ZeroAddress("user")
        if asset == ZERO_ADDRESS:
            raise ZeroAddress("asset")
        return user, asset


def _require_amount(amount: int) -> None:
    if amount <= 0:
        raise ZeroAmount()


def _result(
    kind: OperationKind,
    user: str,
    asset: str,
    requested: int,
    actual: int,
    scaled_delta: int,
    refund: int = 0,
) -> OperationResult:
    return OperationResult(
        kind=kind,
        user_address=user,
        asset_address=asset,
        requested_amount=requested,
        actual_amount=actual,
        scaled_delta=scaled_delta,
        refund=refund,
        timestamp=datetime.now(timezone.utc),
    )
