"""Sandbox de transforms (QuickJS en un proceso desechable).

Por qué un paquete:
- Separa el sobre IPC (tipos simples) del runner que gestiona procesos.
- Implementa `core.interfaces.executors.TransformRunner`.
"""

from adapters.sandbox.envelope import SandboxEnvelope
from adapters.sandbox.runner import (
    DEFAULT_TIMEOUT_SECONDS,
    MAX_SCRIPT_LENGTH,
    TransformSandbox,
    build_program,
    run_transform,
)

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "MAX_SCRIPT_LENGTH",
    "SandboxEnvelope",
    "TransformSandbox",
    "build_program",
    "run_transform",
]
