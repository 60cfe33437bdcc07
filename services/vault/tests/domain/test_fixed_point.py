from services.vault.src.vault.domain.fixed_point import (
    HALF_RAY,
    RAY,
    WAD,
    health_factor,
    percent_of,
    ray_div,
    ray_mul,
    to_base_value,
    to_underlying,
)


class TestRayMath:
    def test_ray_mul_rounds_half_up(self):
        assert ray_mul(1, HALF_RAY) == 1
        assert ray_mul(1, HALF_RAY - 1) == 0

    def test_ray_div_rounds_half_up(self):
        # 1 / 2 = 0.5 -> 1
        assert ray_div(1, 2 * RAY) == 1
        # 1 / 3 = 0.33 -> 0
        assert ray_div(1, 3 * RAY) == 0

    def test_identity_at_unit_index(self):
        assert ray_mul(12345, RAY) == 12345
        assert ray_div(12345, RAY) == 12345


class TestConversions:
    def test_to_underlying_rounds_down(self):
        # 3 * 1.5 = 4.5 -> 4
        assert to_underlying(3, RAY * 3 // 2) == 4

    def test_to_underlying_with_grown_index(self):
        assert to_underlying(1000, 105 * RAY // 100) == 1050

    def test_to_base_value(self):
        # 1.5 WETH at $2000 (8 decimals)
        assert to_base_value(15 * 10**17, 2000 * 10**8, 18) == 3000 * 10**8

    def test_percent_of(self):
        assert percent_of(2000, 8250) == 1650
        assert percent_of(640, 9500) == 608


class TestHealthFactor:
    def test_none_without_debt(self):
        assert health_factor(1000, 0) is None

    def test_wad_scaled(self):
        assert health_factor(1650, 1000) == 165 * WAD // 100
