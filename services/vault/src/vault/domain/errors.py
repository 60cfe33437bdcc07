"""Named failures raised by the vault core.

Every error is raised before any ledger or registry mutation, so a failed
request never leaves partial state behind.
"""


class VaultError(Exception):
    """Base class for all vault failures."""


# Eligibility


class EligibilityError(VaultError):
    def __init__(self, asset: str, message: str):
        self.asset = asset
        super().__init__(message)


class AssetNotListed(EligibilityError):
    def __init__(self, asset: str):
        super().__init__(asset, f"Asset not listed: {asset}")


class DepositsDisabled(EligibilityError):
    def __init__(self, asset: str):
        super().__init__(asset, f"Deposits disabled for asset: {asset}")


class BorrowsDisabled(EligibilityError):
    def __init__(self, asset: str):
        super().__init__(asset, f"Borrows disabled for asset: {asset}")


# Input


class InputError(VaultError):
    pass


class ZeroAmount(InputError):
    def __init__(self):
        super().__init__("Amount must be greater than zero")


class ZeroAddress(InputError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Zero address not allowed for {field}")


class BorrowValueTooSmall(InputError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"Borrow value {value} rounds to zero in the base currency")


# Balance state


class BalanceStateError(VaultError):
    pass


class NoScaledBalance(BalanceStateError):
    def __init__(self, user: str, asset: str, kind: str):
        self.user = user
        self.asset = asset
        self.kind = kind  # "supply" or "debt"
        super().__init__(f"User {user} has no scaled {kind} in {asset}")


class AmountExceedsWithdrawable(BalanceStateError):
    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Withdraw amount {requested} exceeds withdrawable balance {available}"
        )


class AmountExceedsRepayable(BalanceStateError):
    def __init__(self, requested: int, outstanding: int):
        self.requested = requested
        self.outstanding = outstanding
        super().__init__(
            f"Repay amount {requested} exceeds outstanding debt {outstanding}"
        )


# Integration


class IntegrationError(VaultError):
    pass


class MissingReserveToken(IntegrationError):
    def __init__(self, asset: str, token_kind: str):
        self.asset = asset
        self.token_kind = token_kind
        super().__init__(f"Pool reports no {token_kind} for asset {asset}")


# Risk


class RiskError(VaultError):
    pass


class AccountHealthFactorTooLow(RiskError):
    def __init__(self, health_factor: int, minimum: int):
        self.health_factor = health_factor
        self.minimum = minimum
        super().__init__(
            f"Custodial account health factor {health_factor} <= minimum {minimum}"
        )


class UserHealthFactorTooLow(RiskError):
    def __init__(self, health_factor: int, minimum: int):
        self.health_factor = health_factor
        self.minimum = minimum
        super().__init__(f"User health factor {health_factor} <= minimum {minimum}")


class UserLTVCapacityExceeded(RiskError):
    def __init__(self, requested_value: int, capacity: int):
        self.requested_value = requested_value
        self.capacity = capacity
        super().__init__(
            f"Borrow value {requested_value} exceeds buffered LTV capacity {capacity}"
        )


class WithdrawExceedsUserCollateral(RiskError):
    def __init__(self, reduction: int, collateral_adjusted: int):
        self.reduction = reduction
        self.collateral_adjusted = collateral_adjusted
        super().__init__(
            f"Collateral reduction {reduction} >= adjusted collateral {collateral_adjusted}"
        )


class PostOperationHealthFactorTooLow(RiskError):
    def __init__(self, health_factor: int, minimum: int):
        self.health_factor = health_factor
        self.minimum = minimum
        super().__init__(
            f"Post-operation health factor {health_factor} <= minimum {minimum}"
        )


PostHealthFactorTooLow = PostOperationHealthFactorTooLow


# Control


class ControlError(VaultError):
    pass


class OperationsPaused(ControlError):
    def __init__(self):
        super().__init__("Vault operations are paused")


class ReentrantCall(ControlError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Reentrant call rejected: {operation}")
