"""Runtime configuration for storefront."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

# Can be overridden via STOREFRONT_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
SNAPSHOT_FILE = "storefront.json"

PATHAO_LIVE_URL = "https://api-hermes.pathao.com/aladdin/api/v1"
PATHAO_SANDBOX_URL = "https://courier-api-sandbox.pathao.com/aladdin/api/v1"
STEADFAST_LIVE_URL = "https://portal.steadfast.com.bd/api/v1"
GRAPH_HOST = "https://graph.facebook.com/v18.0"

COURIER_TIMEOUT = 15.0
CONVERSION_TIMEOUT = 8.0
SIMULATION_DELAY = 1.5  # fake courier latency when no credentials are set

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class AppConfig:
    """Process-level settings. Credentials live in the record store."""

    data_dir: Path
    courier_timeout: float = COURIER_TIMEOUT
    conversion_timeout: float = CONVERSION_TIMEOUT
    graph_host: str = GRAPH_HOST
    simulation_delay: float = SIMULATION_DELAY
    log_level: str = "INFO"

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / SNAPSHOT_FILE

    @classmethod
    def from_env(cls, data_dir: Path | None = None) -> "AppConfig":
        """Build config from STOREFRONT_* environment variables."""
        env = os.environ
        return cls(
            data_dir=data_dir or Path(env.get("STOREFRONT_DATA_DIR", _default_data_dir)),
            courier_timeout=float(env.get("STOREFRONT_COURIER_TIMEOUT", COURIER_TIMEOUT)),
            conversion_timeout=float(
                env.get("STOREFRONT_CONVERSION_TIMEOUT", CONVERSION_TIMEOUT)
            ),
            graph_host=env.get("STOREFRONT_GRAPH_HOST", GRAPH_HOST).rstrip("/"),
            simulation_delay=float(
                env.get("STOREFRONT_SIMULATION_DELAY", SIMULATION_DELAY)
            ),
            log_level=env.get("STOREFRONT_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for CLI and server entry points."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
