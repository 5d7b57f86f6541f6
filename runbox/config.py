"""
Centralized runtime configuration for runbox.

Values come from environment variables (optionally loaded from a .env file
at the project root) and are read once into an immutable Settings object.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
_ENV_PATH = BASE_DIR / ".env"
if _ENV_PATH.is_file():
    load_dotenv(_ENV_PATH)

# Languages whose image can be overridden with RUNBOX_IMAGE_<LANG>
IMAGE_OVERRIDE_LANGUAGES = ("js", "python", "cpp", "ts")


def _get(key: str, default: str = "") -> str:
    return (os.environ.get(key) or default).strip()


def _get_int(key: str, default: int) -> int:
    value = _get(key)
    return int(value) if value else default


def _get_float(key: str, default: float) -> float:
    value = _get(key)
    return float(value) if value else default


@dataclass(frozen=True)
class Settings:
    """Immutable service settings. Build with Settings.from_env()."""

    # Sandbox limits
    execution_timeout: float = 10.0
    max_concurrency: int = 4
    admission_timeout: float = 30.0
    max_code_bytes: int = 64 * 1024
    max_output_bytes: int = 1024 * 1024
    workdir: str = "/tmp"

    # Per-language image overrides, e.g. {"python": "python:3.12-slim"}
    image_overrides: Dict[str, str] = field(default_factory=dict)

    # HTTP gateway
    cors_origins: Tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        overrides = {}
        for language in IMAGE_OVERRIDE_LANGUAGES:
            image = _get(f"RUNBOX_IMAGE_{language.upper()}")
            if image:
                overrides[language] = image

        origins = tuple(
            origin.strip()
            for origin in _get("RUNBOX_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        )

        return cls(
            execution_timeout=_get_float("RUNBOX_EXECUTION_TIMEOUT", 10.0),
            max_concurrency=_get_int("RUNBOX_MAX_CONCURRENCY", 4),
            admission_timeout=_get_float("RUNBOX_ADMISSION_TIMEOUT", 30.0),
            max_code_bytes=_get_int("RUNBOX_MAX_CODE_BYTES", 64 * 1024),
            max_output_bytes=_get_int("RUNBOX_MAX_OUTPUT_BYTES", 1024 * 1024),
            workdir=_get("RUNBOX_WORKDIR", "/tmp"),
            image_overrides=overrides,
            cors_origins=origins or ("*",),
            host=_get("RUNBOX_HOST", "0.0.0.0"),
            port=_get_int("RUNBOX_PORT", 3000),
            log_level=_get("RUNBOX_LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
