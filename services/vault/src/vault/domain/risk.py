"""Per-user, multi-asset risk aggregation and borrow/withdraw gates."""

import logging

from services.vault.src.vault.adapters.aave_v3.interfaces import PoolReader, PriceOracle
from services.vault.src.vault.domain.errors import (
    BorrowValueTooSmall,
    PostOperationHealthFactorTooLow,
    UserHealthFactorTooLow,
    UserLTVCapacityExceeded,
    WithdrawExceedsUserCollateral,
)
from services.vault.src.vault.domain.fixed_point import (
    WAD,
    health_factor,
    percent_of,
    to_base_value,
)
from services.vault.src.vault.domain.ledger import ScaledBalanceLedger
from services.vault.src.vault.domain.models import PriceQuote, RiskSnapshot
from services.vault.src.vault.domain.registry import AssetRegistry, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_MIN_HEALTH_FACTOR = WAD
DEFAULT_BORROW_BUFFER_BPS = 9_500


def require_healthy(snapshot: RiskSnapshot, min_health_factor: int) -> None:
    """Raise UserHealthFactorTooLow if the user has debt and HF <= minimum."""
    current_hf = snapshot.health_factor
    if current_hf is not None and current_hf <= min_health_factor:
        raise UserHealthFactorTooLow(current_hf, min_health_factor)


def evaluate_borrow(
    snapshot: RiskSnapshot,
    borrow_value: int,
    min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR,
    borrow_buffer_bps: int = DEFAULT_BORROW_BUFFER_BPS,
) -> int:
    """
    Gate a borrow of `borrow_value` (base currency) against a snapshot.

    Returns the post-borrow health factor.

    Raises:
        UserHealthFactorTooLow: existing debt already at or below the minimum HF.
        BorrowValueTooSmall: the borrow is worth 0 in the base currency.
        UserLTVCapacityExceeded: value above the buffered LTV room.
        PostOperationHealthFactorTooLow: HF after the borrow at or below minimum.
    """
    require_healthy(snapshot, min_health_factor)

    # A zero-value borrow leaves the post-borrow HF undefined without debt
    if borrow_value == 0:
        raise BorrowValueTooSmall(borrow_value)

    capacity = percent_of(snapshot.borrow_room, borrow_buffer_bps)
    if borrow_value > capacity:
        raise UserLTVCapacityExceeded(borrow_value, capacity)

    post_hf = snapshot.collateral_adjusted * WAD // (snapshot.debt + borrow_value)
    if post_hf <= min_health_factor:
        raise PostOperationHealthFactorTooLow(post_hf, min_health_factor)
    return post_hf


def evaluate_withdraw(
    snapshot: RiskSnapshot,
    withdraw_value: int,
    liquidation_threshold_bps: int,
    min_health_factor: int = DEFAULT_MIN_HEALTH_FACTOR,
) -> int | None:
    """
    Gate a withdrawal of `withdraw_value` (base currency) against a snapshot.

    Returns the post-withdraw health factor, or None when the user has no
    debt (nothing can be liquidated, so the withdrawal always passes).
    """
    if snapshot.debt == 0:
        return None

    require_healthy(snapshot, min_health_factor)

    reduction = percent_of(withdraw_value, liquidation_threshold_bps)
    if reduction >= snapshot.collateral_adjusted:
        raise WithdrawExceedsUserCollateral(reduction, snapshot.collateral_adjusted)

    post_hf = (snapshot.collateral_adjusted - reduction) * WAD // snapshot.debt
    if post_hf <= min_health_factor:
        raise PostOperationHealthFactorTooLow(post_hf, min_health_factor)
    return post_hf


class RiskEngine:
    """
    Aggregates one user's positions across every listed asset.

    Collateral and debt are shared across the whole custodial book, so a
    gate on one asset must see the user's positions in all of them.
    """

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
        self.min_health_factor = min_health_factor
        self.borrow_buffer_bps = borrow_buffer_bps

    def quote(self, asset: str) -> PriceQuote:
        return PriceQuote(
            asset_address=normalize_address(asset),
            price=self.oracle.asset_price(asset),
            decimals=self.oracle.asset_decimals(asset),
        )

    def value_of(self, asset: str, amount: int) -> int:
        """Convert a token amount to base-currency value via the oracle."""
        q = self.quote(asset)
        return to_base_value(amount, q.price, q.decimals)

    def snapshot(self, user: str) -> RiskSnapshot:
        collateral_adjusted = 0
        collateral_ltv = 0
        debt = 0

        for asset in self.registry.ordered_listed_assets():
            position = self.ledger.position(user, asset)
            if position.is_empty:
                continue

            config = self.pool.reserve_configuration(asset)

            if position.scaled_supply > 0:
                supplied = self.ledger.underlying_supply(
                    user, asset, self.pool.normalized_supply_index(asset)
                )
                value = self.value_of(asset, supplied)
                collateral_adjusted += percent_of(value, config.liquidation_threshold_bps)
                collateral_ltv += percent_of(value, config.ltv_bps)

            if position.scaled_debt > 0:
                borrowed = self.ledger.underlying_debt(
                    user, asset, self.pool.normalized_debt_index(asset)
                )
                debt += self.value_of(asset, borrowed)

        snapshot = RiskSnapshot(
            user_address=normalize_address(user),
            collateral_adjusted=collateral_adjusted,
            collateral_ltv=collateral_ltv,
            debt=debt,
        )
        logger.debug(f"Risk snapshot: {snapshot}")
        return snapshot

    def health_factor(self, user: str) -> int | None:
        s = self.snapshot(user)
        return health_factor(s.collateral_adjusted, s.debt)

    def check_borrow(self, user: str, asset: str, amount: int) -> int:
        snapshot = self.snapshot(user)
        # Fail on an already-unhealthy user before touching the oracle for `asset`
        require_healthy(snapshot, self.min_health_factor)
        return evaluate_borrow(
            snapshot,
            self.value_of(asset, amount),
            self.min_health_factor,
            self.borrow_buffer_bps,
        )

    def check_withdraw(self, user: str, asset: str, amount: int) -> int | None:
        snapshot = self.snapshot(user)
        if snapshot.debt == 0:
            return None
        config = self.pool.reserve_configuration(asset)
        return evaluate_withdraw(
            snapshot,
            self.value_of(asset, amount),
            config.liquidation_threshold_bps,
            self.min_health_factor,
        )
