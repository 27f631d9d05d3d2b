"""Backend configuration settings.

All runtime configuration is read from the environment (optionally seeded from
a ``.env`` file) exactly once and frozen into a ``Settings`` object that is
passed to the components that need it.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / "./../.env"
if env_path.exists():
    load_dotenv(env_path)

# =============================================================================
# Inference backend defaults
# =============================================================================

DEFAULT_OLLAMA_HOST = "localhost"
DEFAULT_OLLAMA_PORT = 11434
DEFAULT_MODEL = "qwen2.5:3b"
DEFAULT_TIMEOUT_SECONDS = 300.0
HEALTH_TIMEOUT_SECONDS = 5.0

# =============================================================================
# Server / storage defaults
# =============================================================================

DEFAULT_SERVER_PORT = 3000
DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at start-up."""

    ollama_scheme: str = "http"
    ollama_host: str = DEFAULT_OLLAMA_HOST
    ollama_port: int = DEFAULT_OLLAMA_PORT
    default_model: str = DEFAULT_MODEL
    request_timeout_s: float = DEFAULT_TIMEOUT_SECONDS
    health_timeout_s: float = HEALTH_TIMEOUT_SECONDS

    server_host: str = "0.0.0.0"
    server_port: int = DEFAULT_SERVER_PORT
    data_dir: Path = Path("Data")
    public_dir: Path = Path("public")
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    chunk_size: int = 8192
    allowed_origins: List[str] = field(
        default_factory=lambda: _split_csv(DEFAULT_ALLOWED_ORIGINS)
    )
    log_level: str = "INFO"

    @property
    def ollama_base_url(self) -> str:
        return f"{self.ollama_scheme}://{self.ollama_host}:{self.ollama_port}"

    @property
    def upload_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def download_dir(self) -> Path:
        return self.data_dir / "downloads"

    def validate(self) -> None:
        """Reject settings that would make the service unusable."""
        if not self.default_model.strip():
            raise ValueError("DEFAULT_MODEL must be non-empty")
        if self.request_timeout_s <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be positive")
        if self.health_timeout_s <= 0:
            raise ValueError("HEALTH_TIMEOUT_S must be positive")
        if not 0 < self.ollama_port < 65536:
            raise ValueError("OLLAMA_PORT must be a valid TCP port")
        if self.max_upload_size <= 0:
            raise ValueError("MAX_UPLOAD_SIZE must be positive")
        if self.chunk_size <= 0:
            raise ValueError("CHUNK_SIZE must be positive")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        settings = cls(
            ollama_scheme=os.getenv("OLLAMA_SCHEME", "http"),
            ollama_host=os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
            ollama_port=int(os.getenv("OLLAMA_PORT", str(DEFAULT_OLLAMA_PORT))),
            default_model=os.getenv("DEFAULT_MODEL", DEFAULT_MODEL),
            request_timeout_s=float(os.getenv("REQUEST_TIMEOUT_S", str(DEFAULT_TIMEOUT_SECONDS))),
            health_timeout_s=float(os.getenv("HEALTH_TIMEOUT_S", str(HEALTH_TIMEOUT_SECONDS))),
            server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
            server_port=int(os.getenv("SERVER_PORT", str(DEFAULT_SERVER_PORT))),
            data_dir=Path(os.getenv("DATA_DIR", "Data")),
            public_dir=Path(os.getenv("PUBLIC_DIR", "public")),
            max_upload_size=int(os.getenv("MAX_UPLOAD_SIZE", str(DEFAULT_MAX_UPLOAD_SIZE))),
            chunk_size=int(os.getenv("CHUNK_SIZE", "8192")),
            allowed_origins=_split_csv(os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        settings.validate()
        return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings, reading the environment on first use."""
    return Settings.from_env()
