"""Lanzamiento del comando de fetch.

Por qué un adaptador:
- Aísla `subprocess` del Core (el orquestador solo ve `CommandSpawner`).
- Una sola política de lanzamiento: argv directo (`shell=False`) y entorno
  *reemplazado* por el del provider, nunca heredado del proceso anfitrión.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Mapping, Sequence

from core.domain.errors import FetchProcessFailed

logger = logging.getLogger(__name__)


def run_command(
    argv: Sequence[str],
    env: Mapping[str, str],
    timeout: float | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Ejecuta `argv` con exactamente `env` y captura stdout/stderr en bytes.

    El Core no impone timeout; `timeout` solo existe para llamadores que lo quieran.
    """

    if not argv:
        raise FetchProcessFailed("Empty fetch script")

    logger.debug("Spawning %s with env keys %s", argv[0], sorted(env))
    try:
        return subprocess.run(
            list(argv),
            env=dict(env),
            capture_output=True,
            shell=False,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace")
        raise FetchProcessFailed(
            f"Fetch timed out after {timeout}s",
            stderr=stderr,
        ) from exc
    except OSError as exc:
        raise FetchProcessFailed(f"Could not start '{argv[0]}': {exc}") from exc
