"""Application configuration."""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LedgerConfig(BaseModel):
    """Ledger query service settings."""

    network: int = Field(
        default_factory=lambda: int(os.environ.get("WALLETMIGRATE_NETWORK", "1"))
    )
    base_url: str = Field(
        default_factory=lambda: os.environ.get(
            "WALLETMIGRATE_BLOCKFROST_URL", "https://cardano-mainnet.blockfrost.io/api/v0"
        )
    )
    project_id: str = Field(
        default_factory=lambda: os.environ.get("WALLETMIGRATE_BLOCKFROST_PROJECT_ID", "")
    )
    request_timeout_seconds: int = 15
    page_size: int = 100


class ToolchainConfig(BaseModel):
    """External multisig toolchain (script deriver and transaction builder)."""

    path: str = Field(
        default_factory=lambda: os.environ.get(
            "WALLETMIGRATE_TOOLCHAIN_PATH", "/usr/local/bin/multisig-tool"
        )
    )
    timeout_seconds: int = 60


class StoreConfig(BaseModel):
    """Durable store settings."""

    path: Path = Field(
        default_factory=lambda: Path(
            os.environ.get(
                "WALLETMIGRATE_DATA_PATH",
                str(Path.home() / ".walletmigrate" / "store.json"),
            )
        )
    )


class PerformanceConfig(BaseModel):
    """Timeouts and polling."""

    status_lookup_timeout_seconds: float = 10.0
    completion_poll_interval_seconds: float = 10.0


class UIConfig(BaseModel):
    """UI settings."""

    theme: str = "dark"
    invite_base_url: str = Field(
        default_factory=lambda: os.environ.get(
            "WALLETMIGRATE_INVITE_URL", "https://multisig.example.org"
        )
    )
    export_dir: Path = Field(
        default_factory=lambda: Path(
            os.environ.get(
                "WALLETMIGRATE_EXPORT_DIR",
                str(Path.home() / ".walletmigrate" / "exports"),
            )
        )
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    log_level: str = Field(
        default_factory=lambda: os.environ.get("WALLETMIGRATE_LOG_LEVEL", "INFO")
    )

    @classmethod
    def load(cls, config_path: Path | None = None) -> "AppConfig":
        """Load configuration from file or defaults."""
        if config_path is None:
            config_path = Path.home() / ".walletmigrate" / "config.toml"

        if config_path.exists():
            import tomllib

            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
                return cls.model_validate(data)
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable config %s: %s", config_path, e)

        return cls()


def configure_logging(level: str) -> None:
    """Set up root logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global config instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config
