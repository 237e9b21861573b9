"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (sandbox/proceso/almacenamiento) lean config de forma consistente.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario.

    `TOKENMETER_CONFIG_DIR` tiene prioridad; si no, `~/.tokenmeter`.
    """

    override = (os.environ.get("TOKENMETER_CONFIG_DIR") or "").strip()
    if override:
        return Path(override)
    return Path.home() / ".tokenmeter"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOKENMETER_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Directorio raíz (providers/, config.json). Por defecto ~/.tokenmeter.",
    )

    transform_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=120,
        description="Plazo máximo (wall-clock) de un transform en el sandbox.",
    )
    max_transform_length: int = Field(
        default=10_000,
        ge=1,
        description="Longitud máxima admitida de un transform script (caracteres).",
    )
    transform_memory_limit_mb: int = Field(
        default=64,
        ge=8,
        le=4096,
        description="Límite de memoria del motor JS dentro del proceso sandbox.",
    )

    fetch_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Timeout opcional del subproceso de fetch (lo aplica el llamador, no el Core).",
    )
    refresh_interval_seconds: int = Field(
        default=900,
        ge=60,
        le=86_400,
        description="Intervalo entre refrescos programados (segundos).",
    )
    refresh_max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Providers ejecutados en paralelo durante un refresco.",
    )

    def resolved_config_dir(self) -> Path:
        return self.config_dir or get_user_config_dir()


def get_providers_dir(settings: AppSettings | None = None) -> Path:
    """Directorio donde viven los `<id>.json` de cada provider."""

    settings = settings or AppSettings()
    return settings.resolved_config_dir() / "providers"
