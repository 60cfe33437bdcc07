import os

from pydantic import BaseModel, Field


class ChainDeployment(BaseModel):
    chain_id: str
    name: str
    rpc_url: str
    pool_address: str  # Aave V3 Pool proxy
    oracle_address: str  # AaveOracle


class AssetListing(BaseModel):
    symbol: str
    address: str = Field(..., description="Lowercase underlying asset address")
    enable_deposit: bool = True
    enable_borrow: bool = True


class VaultDeploymentConfig(BaseModel):
    chains: list[ChainDeployment]
    listings: dict[str, list[AssetListing]]  # chain_id -> assets in listing order

    def get_chain(self, chain_id: str) -> ChainDeployment | None:
        for chain in self.chains:
            if chain.chain_id == chain_id:
                return chain
        return None

    def get_listings(self, chain_id: str) -> list[AssetListing]:
        return self.listings.get(chain_id, [])


def get_default_config() -> VaultDeploymentConfig:
    """Aave V3 deployments on Ethereum mainnet and Base with WETH and USDC."""
    return VaultDeploymentConfig(
        chains=[
            ChainDeployment(
                chain_id="ethereum",
                name="Ethereum Mainnet",
                rpc_url=os.environ.get("ETH_RPC_URL", "https://ethereum.publicnode.com"),
                pool_address="0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2",
                oracle_address="0x54586be62e3c3580375ae3723c145253060ca0c2",
            ),
            ChainDeployment(
                chain_id="base",
                name="Base",
                rpc_url=os.environ.get("BASE_RPC_URL", "https://base.publicnode.com"),
                pool_address="0xa238dd80c259a72e81d7e4664a9801593f98d1c5",
                oracle_address="0x2cc0fc26ed4563a5ce5e8bdcfe1a2878676ae156",
            ),
        ],
        listings={
            "ethereum": [
                AssetListing(
                    symbol="WETH",
                    address="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
                ),
                AssetListing(
                    symbol="USDC",
                    address="0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
                ),
            ],
            "base": [
                AssetListing(
                    symbol="WETH",
                    address="0x4200000000000000000000000000000000000006",
                ),
                AssetListing(
                    symbol="USDC",
                    address="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
                ),
            ],
        },
    )
