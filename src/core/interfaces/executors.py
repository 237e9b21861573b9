"""Contratos de los colaboradores del orquestador.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite sustituir el lanzamiento de procesos y el sandbox por dobles en
  tests sin acoplar el Core a `subprocess` ni a `quickjs`.
"""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ProcessOutput(Protocol):
    """Lo mínimo que el orquestador lee de un proceso terminado."""

    returncode: int
    stdout: bytes
    stderr: bytes


@runtime_checkable
class CommandSpawner(Protocol):
    """Lanza argv directamente (nunca vía shell) con *exactamente* `env`.

    Errores de arranque o timeout se reportan como `FetchProcessFailed`.
    """

    def __call__(
        self,
        argv: Sequence[str],
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> ProcessOutput:
        ...


@runtime_checkable
class TransformRunner(Protocol):
    """Ejecuta un transform sobre un payload JSON y devuelve JSON como texto.

    Los fallos se reportan como subclases de `SandboxFailed`.
    """

    def run(self, snippet: str, payload: str) -> str:
        ...
