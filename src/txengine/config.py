"""
Configuration management for the transaction engine.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from txengine.core.options import (
    LEGACY,
    BuildOptions,
    Commitment,
    SendOptions,
    TransactionBuilderOptions,
)


class NetworkType(str, Enum):
    """Solana clusters."""
    MAINNET = "mainnet-beta"
    DEVNET = "devnet"
    TESTNET = "testnet"
    LOCALNET = "localnet"


class EngineConfig(BaseSettings):
    """
    Configuration settings for the transaction engine.

    All settings can be configured via environment variables with the
    TXENGINE_ prefix. Instances are frozen; derive builder defaults with
    ``to_builder_options()``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TXENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.DEVNET,
        description="Solana cluster to connect to"
    )
    rpc_url: Optional[str] = Field(
        default=None,
        description="Custom JSON-RPC endpoint (optional)"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for RPC requests"
    )

    # Wallet settings
    wallet_keypair_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON keypair file (64-byte array)"
    )

    # Build defaults
    blockhash_commitment: Commitment = Field(
        default=Commitment.CONFIRMED,
        description="Commitment used when fetching the latest blockhash"
    )
    max_supported_transaction_version: Union[int, str] = Field(
        default=0,
        description="Transaction format: 'legacy' or a version number"
    )

    # Send defaults
    skip_preflight: bool = Field(
        default=False,
        description="Skip the preflight simulation on submission"
    )
    preflight_commitment: Commitment = Field(
        default=Commitment.CONFIRMED,
        description="Commitment used for preflight simulation"
    )
    max_retries: Optional[int] = Field(
        default=3,
        ge=0,
        description="Maximum times the RPC node retries sending"
    )

    # Confirmation settings
    confirmation_commitment: Commitment = Field(
        default=Commitment.CONFIRMED,
        description="Commitment level to wait for"
    )
    confirm_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Delay between signature status polls"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("max_supported_transaction_version", mode="before")
    @classmethod
    def _parse_version(cls, value):
        if isinstance(value, str) and value != LEGACY:
            return int(value)
        return value

    @property
    def endpoint(self) -> str:
        """Get the JSON-RPC URL based on network."""
        if self.rpc_url:
            return self.rpc_url

        network_urls = {
            NetworkType.MAINNET: "https://api.mainnet-beta.solana.com",
            NetworkType.DEVNET: "https://api.devnet.solana.com",
            NetworkType.TESTNET: "https://api.testnet.solana.com",
            NetworkType.LOCALNET: "http://127.0.0.1:8899",
        }
        return network_urls.get(self.network, "https://api.devnet.solana.com")

    def to_builder_options(self) -> TransactionBuilderOptions:
        """Build the immutable default options owned by a TransactionBuilder."""
        return TransactionBuilderOptions(
            default_build_option=BuildOptions(
                blockhash_commitment=self.blockhash_commitment,
                max_supported_transaction_version=self.max_supported_transaction_version,
            ),
            default_send_option=SendOptions(
                skip_preflight=self.skip_preflight,
                preflight_commitment=self.preflight_commitment,
                max_retries=self.max_retries,
            ),
            default_confirmation_commitment=self.confirmation_commitment,
        )


def load_config(**overrides) -> EngineConfig:
    """Create a configuration from the environment, applying explicit overrides."""
    return EngineConfig(**overrides)
