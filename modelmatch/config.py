"""Centralised settings for the modelmatch client.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Remote API
    # ------------------------------------------------------------------
    base_url: str = field(
        default_factory=lambda: os.environ.get(
            "MODELMATCH_BASE_URL", "https://api.physna.com"
        )
    )
    tenant: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_TENANT", "")
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("MODELMATCH_REQUEST_TIMEOUT", "180.0"))
    )
    page_size: int = field(
        default_factory=lambda: int(os.environ.get("MODELMATCH_PAGE_SIZE", "50"))
    )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    access_token: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_ACCESS_TOKEN", "")
    )
    identity_provider_url: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_IDENTITY_PROVIDER_URL", "")
    )
    client_id: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_CLIENT_ID", "")
    )
    client_secret: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_CLIENT_SECRET", "")
    )

    # ------------------------------------------------------------------
    # Match report / label propagation
    # ------------------------------------------------------------------
    max_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("MODELMATCH_MAX_CONCURRENCY", "8"))
    )
    max_assembly_depth: int = field(
        default_factory=lambda: int(os.environ.get("MODELMATCH_MAX_ASSEMBLY_DEPTH", "64"))
    )

    # ------------------------------------------------------------------
    # CLI
    # ------------------------------------------------------------------
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("MODELMATCH_CONFIG_DIR", Path.home() / ".modelmatch")
        )
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("MODELMATCH_LOG_LEVEL", "WARNING")
    )

    def ensure_config_dir(self) -> None:
        """Create the CLI configuration directory if it does not exist."""
        self.cli_config_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from modelmatch.config import settings
settings = Settings()
