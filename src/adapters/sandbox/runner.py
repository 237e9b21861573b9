"""Sandbox de transforms: un proceso desechable con un intérprete JS nuevo por llamada.

Modelo de ejecución:
- El snippet del usuario es una expresión que evalúa a una función unaria.
- Se sintetiza el programa `var response = <payload>; var transform = <snippet>;
  JSON.stringify(transform(response));` (convención de llamada que los
  transforms existentes esperan) y se evalúa en un `quickjs.Context` creado
  dentro de un proceso hijo "spawn".
- El llamador espera en un canal de un solo uso como mucho hasta el plazo;
  si vence, mata al hijo. Un transform que no termina no deja trabajadores
  huérfanos consumiendo CPU.

Sin reutilización: cada llamada obtiene su propio proceso y su propio
contexto, así un snippet hostil no puede ensuciar una ejecución posterior.
"""

from __future__ import annotations

import json
import logging
import multiprocessing as mp
import time
from multiprocessing.connection import Connection, wait
from typing import TYPE_CHECKING

import quickjs

from adapters.sandbox.envelope import (
    KIND_NOT_SERIALIZABLE,
    KIND_OK,
    KIND_RUNTIME,
    SandboxEnvelope,
)
from core.domain.errors import (
    CompileOrRuntimeError,
    InvalidPayloadJson,
    OversizedScript,
    ResultNotSerializable,
    SandboxTimeout,
)

if TYPE_CHECKING:
    from core.config import AppSettings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
MAX_SCRIPT_LENGTH = 10_000
DEFAULT_MEMORY_LIMIT_MB = 64

# Margen para que un hijo que ya respondió termine por sí solo antes de matarlo.
_EXIT_GRACE_SECONDS = 0.5


def build_program(snippet: str, payload: str) -> str:
    """Programa sintetizado: payload ligado, transform definido, invocación serializada."""

    return (
        f"var response = {payload};\n"
        f"var transform = {snippet};\n"
        "JSON.stringify(transform(response));\n"
    )


def child_execute(program: str, memory_limit_mb: int, conn: Connection) -> None:
    """Evalúa `program` en un contexto QuickJS nuevo y envía siempre un sobre."""

    try:
        context = quickjs.Context()
        context.set_memory_limit(memory_limit_mb * 1024 * 1024)
        try:
            out = context.eval(program)
        except quickjs.JSException as exc:
            conn.send(SandboxEnvelope(False, KIND_RUNTIME, str(exc)))
            return
        if not isinstance(out, str):
            # JSON.stringify devuelve undefined para funciones/undefined.
            conn.send(SandboxEnvelope(False, KIND_NOT_SERIALIZABLE, type(out).__name__))
            return
        conn.send(SandboxEnvelope(True, KIND_OK, out))
    except Exception as exc:  # noqa: BLE001 - el hijo siempre debe responder
        conn.send(SandboxEnvelope(False, KIND_RUNTIME, f"unexpected sandbox error: {exc}"))
    finally:
        conn.close()


class TransformSandbox:
    """Ejecutor de transforms con plazo wall-clock y aislamiento por proceso."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_script_length: int = MAX_SCRIPT_LENGTH,
        memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_script_length = max_script_length
        self.memory_limit_mb = memory_limit_mb

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "TransformSandbox":
        if settings is None:
            # Diferido: el hijo "spawn" re-importa este módulo.
            from core.config import AppSettings  # noqa: PLC0415

            settings = AppSettings()
        return cls(
            timeout_seconds=settings.transform_timeout_seconds,
            max_script_length=settings.max_transform_length,
            memory_limit_mb=settings.transform_memory_limit_mb,
        )

    def run(self, snippet: str, payload: str) -> str:
        """Ejecuta `snippet` sobre `payload` y devuelve el JSON resultante como texto.

        Raises:
            OversizedScript: el snippet supera el máximo (antes de lanzar nada).
            InvalidPayloadJson: el payload no es JSON válido (antes de lanzar nada).
            CompileOrRuntimeError: error de sintaxis o de ejecución en JS.
            ResultNotSerializable: el transform no produjo un valor serializable.
            SandboxTimeout: venció el plazo; el proceso hijo se mata.
        """

        if len(snippet) > self.max_script_length:
            raise OversizedScript(
                f"Script exceeds maximum length of {self.max_script_length} characters"
            )
        try:
            json.loads(payload)
        except ValueError as exc:
            raise InvalidPayloadJson(f"Invalid JSON data: {exc}") from exc

        deadline = time.monotonic() + self.timeout_seconds
        envelope = self._run_isolated(build_program(snippet, payload), deadline)

        if envelope is None:
            raise SandboxTimeout(
                f"Script execution exceeded timeout of {self.timeout_seconds:g}s"
            )
        if envelope.ok:
            return envelope.payload
        if envelope.kind == KIND_NOT_SERIALIZABLE:
            raise ResultNotSerializable(
                f"Failed to convert result: transform returned a non-serializable value ({envelope.payload})"
            )
        raise CompileOrRuntimeError(envelope.payload)

    def _run_isolated(self, program: str, deadline: float) -> SandboxEnvelope | None:
        ctx = mp.get_context("spawn")
        receiver, sender = ctx.Pipe(duplex=False)
        process = ctx.Process(
            target=child_execute,
            args=(program, self.memory_limit_mb, sender),
            daemon=True,
        )
        process.start()
        sender.close()

        envelope: SandboxEnvelope | None = None
        exited = False
        try:
            while envelope is None and not exited:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                ready = wait([receiver, process.sentinel], timeout=remaining)
                if not ready:
                    break
                if receiver.poll():
                    try:
                        envelope = receiver.recv()
                    except EOFError:
                        # Pipe cerrado sin sobre: el hijo murió, aunque aún no se haya recogido.
                        exited = True
                elif process.sentinel in ready:
                    exited = True
        finally:
            receiver.close()
            timed_out = envelope is None and not exited
            if not timed_out:
                process.join(_EXIT_GRACE_SECONDS)
            if process.is_alive():
                process.kill()
            process.join(_EXIT_GRACE_SECONDS)

        if envelope is None and not timed_out:
            logger.warning("Sandbox process exited without a result (exit code %s)", process.exitcode)
            return SandboxEnvelope(
                False,
                KIND_RUNTIME,
                f"sandbox process exited without a result (exit code {process.exitcode})",
            )
        if envelope is None:
            logger.warning("Transform exceeded %.1fs deadline; sandbox process killed", self.timeout_seconds)
        return envelope


def run_transform(snippet: str, payload: str, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """Atajo funcional sobre `TransformSandbox.run` con los límites por defecto."""

    return TransformSandbox(timeout_seconds=timeout_seconds).run(snippet, payload)
