"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dake.program.config import ProgramConfig
from dake.services.ledger.config import LedgerConfig
from dake.services.oracle.config import OracleConfig
from dake.wallet import Wallet, load_wallet

logger = logging.getLogger(__name__)

YAML_SECTIONS = ("ledger", "oracle", "program")


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Secrets
    wallet_keypair: str = ""  # base58 secret key
    wallet_keypair_path: str = ""  # Alternative: Solana CLI keypair file
    logfire_token: str = ""

    # Nested configuration sections
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    program: ProgramConfig = Field(default_factory=ProgramConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def cluster(self) -> str:
        """Cluster name guessed from the RPC URL, used to tag telemetry."""
        url = self.ledger.rpc_url
        for name in ("devnet", "testnet", "mainnet"):
            if name in url:
                return name
        return "localnet" if "localhost" in url or "127.0.0.1" in url else "custom"

    def get_wallet(self) -> Wallet | None:
        """Wallet from either the base58 secret or the keypair file."""
        return load_wallet(self.wallet_keypair, self.wallet_keypair_path)

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m dake init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in YAML_SECTIONS:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name] or {})
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
