import pytest

from services.vault.src.vault.adapters.aave_v3.mock_pool import (
    InMemoryLendingPool,
    PoolError,
    TokenTransferError,
)
from services.vault.src.vault.domain.fixed_point import MAX_UINT256, RAY, WAD

from services.vault.tests.helpers import CUSTODY, ONE_USDC, ONE_WETH, USDC, WETH


def fund_and_approve(tokens, pool, asset, amount):
    tokens.mint(asset, CUSTODY, amount)
    tokens.approve(asset, pool.address, amount)


class TestTokenGateway:
    def test_pull_and_push(self, tokens):
        tokens.pull(WETH, "0xalice", ONE_WETH)
        assert tokens.balance_of(WETH, CUSTODY) == ONE_WETH
        tokens.push(WETH, "0xbob", ONE_WETH)
        assert tokens.balance_of(WETH, "0xbob") == 101 * ONE_WETH

    def test_insufficient_balance(self, tokens):
        with pytest.raises(TokenTransferError):
            tokens.push(WETH, "0xalice", 1)

    def test_nonzero_to_nonzero_approval_rejected(self, tokens):
        tokens.approve(USDC, "0xpool", 10)
        with pytest.raises(TokenTransferError):
            tokens.approve(USDC, "0xpool", 20)
        tokens.approve(USDC, "0xpool", 0)
        tokens.approve(USDC, "0xpool", 20)
        assert tokens.allowance(USDC, CUSTODY, "0xpool") == 20


class TestLendingPool:
    def test_supply_mints_scaled_shares(self, pool, tokens):
        pool.set_indices(WETH, supply_index=2 * RAY)
        fund_and_approve(tokens, pool, WETH, 10)

        pool.supply(WETH, 10, CUSTODY)

        assert pool.scaled_supply_balance(WETH, CUSTODY) == 5
        assert tokens.allowance(WETH, CUSTODY, pool.address) == 0

    def test_supply_requires_allowance(self, pool, tokens):
        tokens.mint(WETH, CUSTODY, 10)
        with pytest.raises(TokenTransferError):
            pool.supply(WETH, 10, CUSTODY)

    def test_withdraw_max_takes_full_balance(self, pool, tokens):
        fund_and_approve(tokens, pool, WETH, 1000)
        pool.supply(WETH, 1000, CUSTODY)
        pool.set_indices(WETH, supply_index=11 * RAY // 10)

        withdrawn = pool.withdraw(WETH, MAX_UINT256, "0xalice")

        assert withdrawn == 1100
        assert pool.scaled_supply_balance(WETH, CUSTODY) == 0

    def test_withdraw_above_balance_reverts(self, pool):
        with pytest.raises(PoolError):
            pool.withdraw(WETH, 1, "0xalice")

    def test_repay_capped_at_outstanding(self, pool, tokens):
        pool.borrow(USDC, 100 * ONE_USDC, 2, CUSTODY)
        fund_and_approve(tokens, pool, USDC, 500 * ONE_USDC)

        paid = pool.repay(USDC, 500 * ONE_USDC, 2, CUSTODY)

        assert paid == 100 * ONE_USDC
        assert pool.scaled_debt_balance(USDC, CUSTODY) == 0

    def test_repay_without_debt_reverts(self, pool):
        with pytest.raises(PoolError):
            pool.repay(USDC, 1, 2, CUSTODY)

    def test_unknown_reserve(self, pool):
        with pytest.raises(PoolError):
            pool.normalized_supply_index("0xdai")

    def test_generated_reserve_tokens(self, pool):
        tokens = pool.reserve_tokens(WETH)
        assert tokens.a_token == "a0xweth"
        assert tokens.variable_debt_token == "variableDebt0xweth"

    def test_calls_are_recorded(self, pool):
        pool.borrow(WETH, 1, 2, CUSTODY)
        assert pool.calls == [("borrow", WETH, 1)]


class TestAccountSnapshot:
    def test_no_debt_has_max_health_factor(self, pool):
        assert pool.account_risk_snapshot(CUSTODY).health_factor == MAX_UINT256

    def test_weighted_threshold(self, pool, tokens):
        fund_and_approve(tokens, pool, WETH, ONE_WETH)
        pool.supply(WETH, ONE_WETH, CUSTODY)
        pool.borrow(USDC, 1000 * ONE_USDC, 2, CUSTODY)

        snapshot = pool.account_risk_snapshot(CUSTODY)

        assert snapshot.collateral_base == 2000 * 10**8
        assert snapshot.debt_base == 1000 * 10**8
        assert snapshot.liquidation_threshold_bps == 8250
        assert snapshot.available_borrows_base == 600 * 10**8
        assert snapshot.health_factor == 165 * WAD // 100

    def test_requires_oracle(self, tokens):
        pool = InMemoryLendingPool(tokens)
        with pytest.raises(PoolError):
            pool.account_risk_snapshot(CUSTODY)
