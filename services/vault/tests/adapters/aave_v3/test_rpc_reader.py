from unittest.mock import MagicMock, patch

import pytest

from services.vault.src.vault.adapters.aave_v3.rpc_reader import (
    DECIMALS,
    GET_ASSET_PRICE,
    GET_CONFIGURATION,
    GET_RESERVE_DATA,
    GET_RESERVE_NORMALIZED_INCOME,
    GET_USER_ACCOUNT_DATA,
    SCALED_BALANCE_OF,
    AaveV3RpcReader,
    RpcError,
    decode_reserve_configuration,
    decode_words,
    encode_address_arg,
    word_to_address,
)
from services.vault.src.vault.domain.fixed_point import RAY

POOL = "0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2"
ORACLE = "0x54586be62e3c3580375ae3723c145253060ca0c2"
WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
A_WETH = "0x4d5f47fa6a74757f35c14fd3a6ef8e3c9bc514e8"
VDEBT_WETH = "0xea51d7853eefb32b6ee06b1c12e6dcca88be0ffe"
CUSTODY = "0x00000000000000000000000000000000000000c5"


def encode(*words):
    return "0x" + "".join(format(w, "064x") for w in words)


def address_word(address):
    return int(address, 16)


def reserve_data(a_token, debt_token):
    words = [0] * 15
    words[8] = address_word(a_token) if a_token else 0
    words[10] = address_word(debt_token) if debt_token else 0
    return encode(*words)


@pytest.fixture
def reader():
    return AaveV3RpcReader("https://rpc.example.com", POOL, ORACLE)


def fake_chain(responses):
    """eth_call stand-in keyed on (to, selector)."""

    def eth_call(to, data):
        return responses[(to, data[:10])]

    return eth_call


class TestAbiHelpers:
    def test_encode_address_arg(self):
        encoded = encode_address_arg("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2")
        assert len(encoded) == 64
        assert encoded.endswith("c02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
        assert encoded.startswith("000000000000000000000000")

    def test_decode_words(self):
        assert decode_words(encode(1, 2, 3)) == [1, 2, 3]

    def test_word_to_address(self):
        assert word_to_address(address_word(A_WETH)) == A_WETH
        assert word_to_address(0) is None

    def test_decode_reserve_configuration(self):
        # decimals 18, bonus 10500, threshold 8250, ltv 8000
        bitmap = (18 << 48) | (10500 << 32) | (8250 << 16) | 8000
        config = decode_reserve_configuration(bitmap | (1 << 56))
        assert config.ltv_bps == 8000
        assert config.liquidation_threshold_bps == 8250
        assert config.liquidation_bonus_bps == 10500
        assert config.decimals == 18


class TestEthCall:
    @patch("services.vault.src.vault.adapters.aave_v3.rpc_reader.httpx.Client")
    def test_posts_json_rpc_payload(self, mock_client_cls, reader):
        client = MagicMock()
        mock_client_cls.return_value.__enter__.return_value = client
        client.post.return_value.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": encode(RAY)}

        assert reader.normalized_supply_index(WETH) == RAY

        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == "https://rpc.example.com"
        assert payload["method"] == "eth_call"
        call = payload["params"][0]
        assert call["to"] == POOL
        assert call["data"] == GET_RESERVE_NORMALIZED_INCOME + encode_address_arg(WETH)

    @patch("services.vault.src.vault.adapters.aave_v3.rpc_reader.httpx.Client")
    def test_rpc_error_raises(self, mock_client_cls, reader):
        client = MagicMock()
        mock_client_cls.return_value.__enter__.return_value = client
        client.post.return_value.json.return_value = {"error": {"code": -32000, "message": "execution reverted"}}

        with pytest.raises(RpcError) as exc:
            reader.asset_price(WETH)
        assert exc.value.method == GET_ASSET_PRICE

    @patch("services.vault.src.vault.adapters.aave_v3.rpc_reader.httpx.Client")
    def test_empty_result_raises(self, mock_client_cls, reader):
        client = MagicMock()
        mock_client_cls.return_value.__enter__.return_value = client
        client.post.return_value.json.return_value = {"result": "0x"}

        with pytest.raises(RpcError):
            reader.normalized_supply_index(WETH)


class TestReads:
    def test_reserve_configuration(self, reader, monkeypatch):
        bitmap = (18 << 48) | (10500 << 32) | (8300 << 16) | 8050
        monkeypatch.setattr(
            reader, "eth_call", fake_chain({(POOL, GET_CONFIGURATION): encode(bitmap)})
        )
        config = reader.reserve_configuration(WETH)
        assert (config.ltv_bps, config.liquidation_threshold_bps) == (8050, 8300)

    def test_reserve_tokens_are_memoized(self, reader, monkeypatch):
        calls = []

        def eth_call(to, data):
            calls.append(data[:10])
            return reserve_data(A_WETH, VDEBT_WETH)

        monkeypatch.setattr(reader, "eth_call", eth_call)

        tokens = reader.reserve_tokens(WETH)
        reader.reserve_tokens(WETH)

        assert tokens.a_token == A_WETH
        assert tokens.variable_debt_token == VDEBT_WETH
        assert calls == [GET_RESERVE_DATA]

    def test_incomplete_reserve_tokens_are_not_memoized(self, reader, monkeypatch):
        calls = []

        def eth_call(to, data):
            calls.append(data[:10])
            return reserve_data(A_WETH, None)

        monkeypatch.setattr(reader, "eth_call", eth_call)

        assert reader.reserve_tokens(WETH).variable_debt_token is None
        reader.reserve_tokens(WETH)
        assert len(calls) == 2

    def test_scaled_balances_read_from_reserve_tokens(self, reader, monkeypatch):
        monkeypatch.setattr(
            reader,
            "eth_call",
            fake_chain(
                {
                    (POOL, GET_RESERVE_DATA): reserve_data(A_WETH, VDEBT_WETH),
                    (A_WETH, SCALED_BALANCE_OF): encode(5 * 10**18),
                    (VDEBT_WETH, SCALED_BALANCE_OF): encode(2 * 10**18),
                }
            ),
        )
        assert reader.scaled_supply_balance(WETH, CUSTODY) == 5 * 10**18
        assert reader.scaled_debt_balance(WETH, CUSTODY) == 2 * 10**18

    def test_account_risk_snapshot(self, reader, monkeypatch):
        monkeypatch.setattr(
            reader,
            "eth_call",
            fake_chain(
                {
                    (POOL, GET_USER_ACCOUNT_DATA): encode(
                        2000 * 10**8, 1000 * 10**8, 600 * 10**8, 8250, 8000, 165 * 10**16
                    )
                }
            ),
        )
        snapshot = reader.account_risk_snapshot(CUSTODY)
        assert snapshot.debt_base == 1000 * 10**8
        assert snapshot.health_factor == 165 * 10**16

    def test_zero_price_raises(self, reader, monkeypatch):
        monkeypatch.setattr(
            reader, "eth_call", fake_chain({(ORACLE, GET_ASSET_PRICE): encode(0)})
        )
        with pytest.raises(RpcError):
            reader.asset_price(WETH)

    def test_decimals_are_cached(self, reader, monkeypatch):
        calls = []

        def eth_call(to, data):
            calls.append((to, data))
            return encode(6)

        monkeypatch.setattr(reader, "eth_call", eth_call)

        assert reader.asset_decimals(WETH) == 6
        assert reader.asset_decimals(WETH.upper().replace("0X", "0x")) == 6
        assert calls == [(WETH, DECIMALS)]
