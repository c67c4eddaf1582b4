"""Configuration helpers for the catalog service.

All runtime settings are collected here and handed to the Flask application
factory, so tests can build an app with explicit values instead of relying
on module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import os

from dotenv import load_dotenv


@dataclass(frozen=True)
class ServiceConfig:
    """Strongly typed configuration for the catalog service."""

    base_dir: Path
    data_dir: Path
    secret_key: str
    allowed_origins: tuple[str, ...]
    force_tls: bool = False
    host: str = "0.0.0.0"
    port: int = 8787
    token_max_years: int = 10

    @property
    def token_max_age(self) -> int:
        return self.token_max_years * 365 * 24 * 60 * 60


def _env_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_origins(raw: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = [piece.strip() for piece in raw.split(",")]
    else:
        items = [piece.strip() for piece in raw]
    return tuple(filter(None, items)) or ("*",)


def load_service_config(base_dir: Path, env: Mapping[str, str] | None = None) -> ServiceConfig:
    """Load service configuration from the given base directory and env mapping."""

    base_dir = Path(base_dir)
    load_dotenv(base_dir / ".env")
    env_map = dict(os.environ if env is None else env)

    data_dir = Path(env_map.get("CATALOG_DATA_DIR", "") or base_dir / "data")
    if not data_dir.is_absolute():
        data_dir = base_dir / data_dir

    return ServiceConfig(
        base_dir=base_dir,
        data_dir=data_dir,
        secret_key=env_map.get("SECRET_KEY", "dev-change-me"),
        allowed_origins=_coerce_origins(env_map.get("ALLOWED_ORIGINS", "*")),
        force_tls=_env_bool(env_map.get("FORCE_TLS"), False),
        host=env_map.get("API_HOST", "0.0.0.0"),
        port=int(env_map.get("API_PORT", "8787")),
        token_max_years=int(env_map.get("TOKEN_MAX_YEARS", "10")),
    )
