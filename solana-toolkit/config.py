"""Toolkit settings read from ``NFT_TOOLKIT_*`` environment variables or a ``.env`` file."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NETWORK_RPC_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}


class NFTToolkitSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NFT_TOOLKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    network: str = Field(default="devnet")
    keypair_path: str = Field(default="~/.config/solana/id.json")
    # A fee payer mnemonic takes precedence over keypair_path.
    mnemonic: Optional[str] = Field(default=None)
    poll_interval: float = Field(default=2.0, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


def resolve_rpc_url(network: str) -> str:
    """Map a cluster name to its public RPC endpoint; anything else is taken as a URL."""
    return NETWORK_RPC_URLS.get(network, network)


def get_settings() -> NFTToolkitSettings:
    return NFTToolkitSettings()
