"""Fixed-point constants and helpers shared with the Aave V3 pool."""

# Aave uses RAY (1e27) for growth indices, WAD (1e18) for health factors
# and basis points (1e4) for LTV / liquidation thresholds.
RAY = 10**27
WAD = 10**18
HALF_RAY = RAY // 2
BPS_DENOM = 10_000

# Must match the pool's own index precision exactly
INDEX_PRECISION = RAY

MAX_UINT256 = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def ray_mul(a: int, b: int) -> int:
    """Multiply two ray values, rounding half up (Aave WadRayMath.rayMul)."""
    return (a * b + HALF_RAY) // RAY


def ray_div(a: int, b: int) -> int:
    """Divide two ray values, rounding half up (Aave WadRayMath.rayDiv)."""
    return (a * RAY + b // 2) // b


def to_underlying(scaled: int, index: int) -> int:
    """Convert scaled shares to underlying units, rounding down."""
    return scaled * index // INDEX_PRECISION


def to_base_value(amount: int, price: int, decimals: int) -> int:
    """Value of `amount` token units in the oracle's base currency."""
    return amount * price // 10**decimals


def percent_of(value: int, bps: int) -> int:
    return value * bps // BPS_DENOM


def health_factor(collateral_adjusted: int, debt: int) -> int | None:
    """
    HF = collateral_adjusted / debt, in WAD.

    Returns None if no debt (infinite HF).
    """
    if debt == 0:
        return None
    return collateral_adjusted * WAD // debt
