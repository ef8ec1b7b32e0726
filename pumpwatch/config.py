"""Environment-based configuration with validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root or cwd
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()

logger = logging.getLogger(__name__)


def _env(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: int = 0) -> int:
    return int(os.getenv(key, str(default)))


def _env_float(key: str, default: float = 0.0) -> float:
    return float(os.getenv(key, str(default)))


def _env_bool(key: str, default: bool = False) -> bool:
    return os.getenv(key, str(default)).lower() in ("1", "true", "yes")


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """RPC endpoint and the contracts being watched."""

    rpc_url: str = field(
        default_factory=lambda: _env("RPC_URL", "https://rpc.xlayer.tech")
    )
    factory_address: str = field(
        default_factory=lambda: _env(
            "FACTORY_ADDRESS", "0xC4cEBDf3D4bBF14812DcCB1ccB20AB26EA547f44"
        )
    )
    reference_asset_address: str = field(
        default_factory=lambda: _env(
            "REFERENCE_ASSET_ADDRESS", "0xe538905cf8410324e03a5a23c1c177a474d59b2b"
        )
    )
    reference_asset_symbol: str = field(
        default_factory=lambda: _env("REFERENCE_ASSET_SYMBOL", "OKB")
    )
    block_poll_seconds: float = field(
        default_factory=lambda: _env_float("BLOCK_POLL_SECONDS", 3.0)
    )
    rpc_timeout_seconds: float = field(
        default_factory=lambda: _env_float("RPC_TIMEOUT_SECONDS", 10.0)
    )


@dataclass(frozen=True, slots=True)
class TelegramConfig:
    """Telegram bot credentials and delivery settings."""

    api_id: int = field(default_factory=lambda: _env_int("TELEGRAM_API_ID"))
    api_hash: str = field(default_factory=lambda: _env("TELEGRAM_API_HASH"))
    bot_token: str = field(default_factory=lambda: _env("BOT_TOKEN"))
    session_name: str = field(
        default_factory=lambda: _env("TELEGRAM_SESSION_NAME", "pumpwatch")
    )
    # "telethon" sends through the bot session, "botapi" through HTTPS
    backend: str = field(
        default_factory=lambda: _env("NOTIFIER_BACKEND", "telethon").lower()
    )
    send_timeout_seconds: float = field(
        default_factory=lambda: _env_float("SEND_TIMEOUT_SECONDS", 10.0)
    )


@dataclass(frozen=True, slots=True)
class MarketCapConfig:
    """Market-cap alert polling."""

    check_interval_seconds: float = field(
        default_factory=lambda: _env_float("MC_CHECK_INTERVAL_SECONDS", 300.0)
    )
    tick_seconds: float = field(
        default_factory=lambda: _env_float("MC_TICK_SECONDS", 30.0)
    )
    max_concurrency: int = field(
        default_factory=lambda: _env_int("MC_MAX_CONCURRENCY", 5)
    )


@dataclass(frozen=True, slots=True)
class MetricsConfig:
    """Prometheus metrics settings."""

    enabled: bool = field(
        default_factory=lambda: _env_bool("METRICS_ENABLED", False)
    )
    port: int = field(
        default_factory=lambda: _env_int("METRICS_PORT", 9090)
    )


@dataclass(frozen=True, slots=True)
class HealthConfig:
    """Health check endpoint settings."""

    enabled: bool = field(
        default_factory=lambda: _env_bool("HEALTH_ENABLED", True)
    )
    port: int = field(
        default_factory=lambda: _env_int("HEALTH_PORT", 8080)
    )


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Root application configuration aggregating all sub-configs."""

    chain: ChainConfig = field(default_factory=ChainConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    market_cap: MarketCapConfig = field(default_factory=MarketCapConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    log_level: str = field(
        default_factory=lambda: _env("LOG_LEVEL", "INFO")
    )
    log_json: bool = field(
        default_factory=lambda: _env_bool("LOG_JSON", False)
    )

    def validate(self) -> None:
        """Validate required fields; exits on failure."""
        errors: list[str] = []
        if not self.telegram.bot_token:
            errors.append("BOT_TOKEN is required")
        if not self.telegram.api_id:
            errors.append("TELEGRAM_API_ID is required")
        if not self.telegram.api_hash:
            errors.append("TELEGRAM_API_HASH is required")
        if self.telegram.backend not in ("telethon", "botapi"):
            errors.append("NOTIFIER_BACKEND must be 'telethon' or 'botapi'")
        if not self.chain.rpc_url:
            errors.append("RPC_URL is required")
        if not self.chain.factory_address:
            errors.append("FACTORY_ADDRESS is required")
        if not self.chain.reference_asset_address:
            errors.append("REFERENCE_ASSET_ADDRESS is required")
        if self.market_cap.max_concurrency < 1:
            errors.append("MC_MAX_CONCURRENCY must be at least 1")
        if errors:
            for err in errors:
                logger.error("Config error: %s", err)
            raise SystemExit(
                "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )
        logger.info("Configuration validated successfully")
