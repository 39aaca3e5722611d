"""Application configuration using pydantic-settings.

All values come from environment variables (or a local .env file). The
relayer private key and forwarder address have no defaults: the process
refuses to start without them.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

# Must be set explicitly when ENVIRONMENT=production
PRODUCTION_REQUIRED = ("rpc_url", "chain_id", "frontend_url")


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or malformed."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid relayer configuration: " + "; ".join(problems))


@dataclass(frozen=True)
class RelayerConfig:
    """Immutable relayer configuration handed to the gateway and service."""

    rpc_url: str
    chain_id: int
    forwarder_address: str
    relayer_private_key: str = field(repr=False)
    gas_limit: int = 200000
    confirmation_timeout: float = 120.0
    min_relayer_balance: Decimal = Decimal("0.01")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Chain
    # ======================
    rpc_url: str = Field(default="http://localhost:8545", description="JSON-RPC endpoint")
    chain_id: int = Field(default=31337, description="EVM chain ID")
    forwarder_address: str = Field(default="", description="Forwarder contract address")
    forwarder_name: str = Field(default="PotholesForwarder", description="EIP-712 domain name")
    forwarder_version: str = Field(default="1", description="EIP-712 domain version")

    # ======================
    # Relayer wallet
    # ======================
    relayer_private_key: str = Field(default="", description="Relayer hot wallet key", repr=False)
    gas_limit: int = Field(default=200000, gt=0, description="Gas ceiling for execute() transactions")
    min_relayer_balance: Decimal = Field(
        default=Decimal("0.01"), description="Refuse to relay below this balance (ETH)"
    )
    confirmation_timeout: float = Field(
        default=120.0, gt=0, description="Seconds to wait for a relayed tx to be mined"
    )
    signer_lock_timeout: float = Field(
        default=180.0, gt=0, description="Seconds a request waits behind another from the same signer"
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=3001, description="API server port")
    frontend_url: str = Field(default="http://localhost:3000", description="Allowed CORS origin")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def validate_required(self) -> None:
        """Check required values up front.

        Raises:
            ConfigurationError: listing every missing or malformed value
        """
        problems = []

        if not self.forwarder_address:
            problems.append("FORWARDER_ADDRESS is not set")
        elif not ADDRESS_RE.match(self.forwarder_address):
            problems.append("FORWARDER_ADDRESS is not a valid address")

        if not self.relayer_private_key:
            problems.append("RELAYER_PRIVATE_KEY is not set")
        elif not PRIVATE_KEY_RE.match(self.relayer_private_key):
            problems.append("RELAYER_PRIVATE_KEY must be 32 bytes of hex")

        if self.is_production:
            for name in PRODUCTION_REQUIRED:
                if name not in self.model_fields_set:
                    problems.append(f"{name.upper()} must be set explicitly in production")

        if problems:
            raise ConfigurationError(problems)

    def to_relayer_config(self) -> RelayerConfig:
        """Validate and freeze the chain-facing part of the settings."""
        self.validate_required()
        return RelayerConfig(
            rpc_url=self.rpc_url,
            chain_id=self.chain_id,
            forwarder_address=self.forwarder_address,
            relayer_private_key=self.relayer_private_key,
            gas_limit=self.gas_limit,
            confirmation_timeout=self.confirmation_timeout,
            min_relayer_balance=self.min_relayer_balance,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "port": self.port,
            "frontend_url": self.frontend_url,
            "rpc_url": self.rpc_url,
            "chain_id": self.chain_id,
            "forwarder_address": self.forwarder_address or "(not set)",
            "relayer_private_key": "***" if self.relayer_private_key else "(not set)",
            "gas_limit": self.gas_limit,
            "min_relayer_balance": str(self.min_relayer_balance),
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_cors_origins(settings: Optional[Settings] = None) -> list[str]:
    """Allowed CORS origins (comma-separated FRONTEND_URL)."""
    settings = settings or get_settings()
    return [o.strip() for o in settings.frontend_url.split(",") if o.strip()]
