"""Sobres IPC del sandbox de transforms.

Solo viajan tipos simples (pickle entre procesos): nunca objetos del motor JS.
"""

from __future__ import annotations

from dataclasses import dataclass

KIND_OK = "ok"
KIND_RUNTIME = "compile_or_runtime_error"
KIND_NOT_SERIALIZABLE = "result_not_serializable"


@dataclass(frozen=True)
class SandboxEnvelope:
    """Resultado que el proceso sandbox envía al llamador."""

    ok: bool
    kind: str
    payload: str = ""
