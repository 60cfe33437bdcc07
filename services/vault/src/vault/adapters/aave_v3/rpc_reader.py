"""Read-only Aave V3 pool and oracle access over Ethereum JSON-RPC."""

import logging
from typing import Any

import httpx

from services.vault.src.vault.adapters.aave_v3.interfaces import PoolReader, PriceOracle
from services.vault.src.vault.domain.fixed_point import ZERO_ADDRESS
from services.vault.src.vault.domain.models import (
    AccountRiskSnapshot,
    ReserveConfiguration,
    ReserveTokens,
)

logger = logging.getLogger(__name__)

# Function selectors
GET_RESERVE_NORMALIZED_INCOME = "0xd15e0053"  # getReserveNormalizedIncome(address)
GET_RESERVE_NORMALIZED_VARIABLE_DEBT = "0x386497fd"  # getReserveNormalizedVariableDebt(address)
GET_CONFIGURATION = "0xc44b11f7"  # getConfiguration(address)
GET_RESERVE_DATA = "0x35ea6a75"  # getReserveData(address)
GET_USER_ACCOUNT_DATA = "0xbf92857c"  # getUserAccountData(address)
SCALED_BALANCE_OF = "0x1da24f3e"  # scaledBalanceOf(address)
GET_ASSET_PRICE = "0xb3596f07"  # getAssetPrice(address)
DECIMALS = "0x313ce567"  # decimals()

# Word offsets in the getReserveData() return tuple
RESERVE_DATA_A_TOKEN = 8
RESERVE_DATA_VARIABLE_DEBT_TOKEN = 10

_MASK_16 = (1 << 16) - 1
_MASK_8 = (1 << 8) - 1


class RpcError(Exception):
    """Raised when the node returns a JSON-RPC error or an empty result."""

    def __init__(self, method: str, detail: Any):
        self.method = method
        self.detail = detail
        super().__init__(f"RPC call {method} failed: {detail}")


def encode_address_arg(address: str) -> str:
    """ABI-encode an address argument (32-byte left padded, no 0x)."""
    return address[2:].lower().zfill(64)


def decode_words(hex_result: str) -> list[int]:
    """Split an ABI-encoded result into 32-byte words."""
    body = hex_result[2:] if hex_result.startswith("0x") else hex_result
    return [int(body[i : i + 64], 16) for i in range(0, len(body), 64)]


def word_to_address(word: int) -> str | None:
    address = "0x" + format(word, "040x")[-40:]
    return None if address == ZERO_ADDRESS else address


def decode_reserve_configuration(bitmap: int) -> ReserveConfiguration:
    """Decode the ReserveConfigurationMap bit layout.

    bits 0-15 LTV, 16-31 liquidation threshold, 32-47 liquidation bonus,
    48-55 decimals.
    """
    return ReserveConfiguration(
        ltv_bps=bitmap & _MASK_16,
        liquidation_threshold_bps=(bitmap >> 16) & _MASK_16,
        liquidation_bonus_bps=(bitmap >> 32) & _MASK_16,
        decimals=(bitmap >> 48) & _MASK_8,
    )


class AaveV3RpcReader(PoolReader, PriceOracle):
    """Reads pool indices, reserve configuration, balances and oracle prices."""

    def __init__(
        self,
        rpc_url: str,
        pool_address: str,
        oracle_address: str,
        timeout: float = 10.0,
    ):
        self.rpc_url = rpc_url
        self.pool_address = pool_address
        self.oracle_address = oracle_address
        self.timeout = timeout
        self._reserve_tokens: dict[str, ReserveTokens] = {}
        self._decimals: dict[str, int] = {}

    def eth_call(self, to: str, data: str) -> str:
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [{"to": to, "data": data}, "latest"],
            "id": 1,
        }

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            result = response.json()

        if "error" in result:
            raise RpcError(data[:10], result["error"])

        hex_result = result.get("result", "0x")
        if len(hex_result) <= 2:
            raise RpcError(data[:10], "empty result")
        return hex_result

    def _call_words(self, to: str, selector: str, address_arg: str | None = None) -> list[int]:
        data = selector + (encode_address_arg(address_arg) if address_arg else "")
        return decode_words(self.eth_call(to, data))

    def normalized_supply_index(self, asset: str) -> int:
        return self._call_words(self.pool_address, GET_RESERVE_NORMALIZED_INCOME, asset)[0]

    def normalized_debt_index(self, asset: str) -> int:
        return self._call_words(
            self.pool_address, GET_RESERVE_NORMALIZED_VARIABLE_DEBT, asset
        )[0]

    def reserve_configuration(self, asset: str) -> ReserveConfiguration:
        bitmap = self._call_words(self.pool_address, GET_CONFIGURATION, asset)[0]
        return decode_reserve_configuration(bitmap)

    def reserve_tokens(self, asset: str) -> ReserveTokens:
        key = asset.lower()
        if key in self._reserve_tokens:
            return self._reserve_tokens[key]

        words = self._call_words(self.pool_address, GET_RESERVE_DATA, asset)
        if len(words) <= RESERVE_DATA_VARIABLE_DEBT_TOKEN:
            raise RpcError(GET_RESERVE_DATA, f"short reserve data ({len(words)} words)")
        tokens = ReserveTokens(
            a_token=word_to_address(words[RESERVE_DATA_A_TOKEN]),
            variable_debt_token=word_to_address(words[RESERVE_DATA_VARIABLE_DEBT_TOKEN]),
        )
        if tokens.a_token and tokens.variable_debt_token:
            self._reserve_tokens[key] = tokens
        return tokens

    def account_risk_snapshot(self, account: str) -> AccountRiskSnapshot:
        words = self._call_words(self.pool_address, GET_USER_ACCOUNT_DATA, account)
        if len(words) < 6:
            raise RpcError(GET_USER_ACCOUNT_DATA, f"short account data ({len(words)} words)")
        return AccountRiskSnapshot(
            collateral_base=words[0],
            debt_base=words[1],
            available_borrows_base=words[2],
            liquidation_threshold_bps=words[3],
            ltv_bps=words[4],
            health_factor=words[5],
        )

    def scaled_supply_balance(self, asset: str, account: str) -> int:
        a_token = self.reserve_tokens(asset).a_token
        if a_token is None:
            return 0
        return self._call_words(a_token, SCALED_BALANCE_OF, account)[0]

    def scaled_debt_balance(self, asset: str, account: str) -> int:
        debt_token = self.reserve_tokens(asset).variable_debt_token
        if debt_token is None:
            return 0
        return self._call_words(debt_token, SCALED_BALANCE_OF, account)[0]

    def asset_price(self, asset: str) -> int:
        price = self._call_words(self.oracle_address, GET_ASSET_PRICE, asset)[0]
        if price == 0:
            raise RpcError(GET_ASSET_PRICE, f"zero price for {asset}")
        return price

    def asset_decimals(self, asset: str) -> int:
        key = asset.lower()
        if key not in self._decimals:
            self._decimals[key] = self._call_words(asset, DECIMALS)[0]
            logger.debug(f"Decimals for {key}: {self._decimals[key]}")
        return self._decimals[key]
