"""Persistencia de providers en JSON (`<config_dir>/providers/<id>.json`).

Por qué JSON:
- Es el formato que el usuario edita, copia o importa a mano.
- Mantiene el esquema camelCase del fichero sin renombrar nada en el Core.

Importante:
- El `id` se convierte en nombre de fichero: `validate_identifier` corre
  antes de cualquier lectura/escritura/borrado basada en él.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from core.domain.models import Provider, TestResult
from core.services.policy import validate_identifier
from core.services.provider_runner import prepare_command

logger = logging.getLogger(__name__)


def _provider_path(providers_dir: Path, provider_id: str) -> Path:
    validate_identifier(provider_id)
    return providers_dir / f"{provider_id}.json"


def load_providers(providers_dir: Path) -> list[Provider]:
    """Carga todos los `*.json`; los ficheros corruptos se saltan con un warning."""

    providers_dir.mkdir(parents=True, exist_ok=True)
    providers: list[Provider] = []
    for path in sorted(providers_dir.glob("*.json")):
        try:
            raw = path.read_text(encoding="utf-8")
            providers.append(Provider.model_validate(json.loads(raw)))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to parse provider %s: %s", path, exc)
    return providers


def load_provider(providers_dir: Path, provider_id: str) -> Provider:
    path = _provider_path(providers_dir, provider_id)
    raw = path.read_text(encoding="utf-8")
    return Provider.model_validate(json.loads(raw))


def _write_atomic(path: Path, provider: Provider) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = provider.model_dump(mode="json", by_alias=True)
    tmp_path = path.with_suffix(".json.tmp")
    tmp_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    os.replace(tmp_path, path)


def save_provider(providers_dir: Path, provider: Provider) -> Path:
    """Valida (id, entorno y comando sustituido) y escribe de forma atómica."""

    path = _provider_path(providers_dir, provider.id)
    prepare_command(provider.fetch_script, provider.env)
    _write_atomic(path, provider)
    return path


def delete_provider(providers_dir: Path, provider_id: str) -> bool:
    """Borra el fichero del provider; que no exista no es un error."""

    path = _provider_path(providers_dir, provider_id)
    if not path.exists():
        return False
    path.unlink()
    return True


def record_outcome(providers_dir: Path, provider: Provider, result: TestResult) -> Provider:
    """Anota `lastFetched`/`lastError` tras una ejecución y lo persiste."""

    updated = provider.model_copy(
        update={
            "last_fetched": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            "last_error": None if result.success else result.error,
        }
    )
    _write_atomic(_provider_path(providers_dir, updated.id), updated)
    return updated
