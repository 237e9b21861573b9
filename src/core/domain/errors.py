"""Taxonomía de errores del Core.

Por qué una jerarquía propia:
- Cada fallo de ejecución de un provider debe llegar al usuario con el
  motivo más específico posible (regla + fragmento, timeout vs. error JS,
  stderr del fetch).
- El orquestador convierte cualquier `TokenMeterError` en un `TestResult`
  fallido; nada de lo que haga un provider debe tumbar al llamador.
"""

from __future__ import annotations


class TokenMeterError(Exception):
    """Base de todos los errores del dominio."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationRejected(TokenMeterError):
    """Violación de política. Nunca se reintenta; el usuario la corrige."""

    kind = "validation_rejected"

    def __init__(self, rule: str, fragment: str, message: str) -> None:
        super().__init__(message)
        self.rule = rule
        self.fragment = fragment


class FetchProcessFailed(TokenMeterError):
    """El comando de fetch no pudo lanzarse o terminó con estado != 0."""

    kind = "fetch_failed"

    def __init__(self, message: str, *, stderr: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class DecodeFailed(TokenMeterError):
    """Salida no UTF-8 o JSON mal formado (fetch o transform)."""

    kind = "decode_failed"


class SandboxFailed(TokenMeterError):
    """Fallo dentro del sandbox de transform."""

    kind = "sandbox_failed"


class OversizedScript(SandboxFailed):
    kind = "oversized_script"


class InvalidPayloadJson(SandboxFailed):
    kind = "invalid_payload_json"


class CompileOrRuntimeError(SandboxFailed):
    kind = "compile_or_runtime_error"

    def __init__(self, detail: str) -> None:
        super().__init__(f"Script execution error: {detail}")
        self.detail = detail


class ResultNotSerializable(SandboxFailed):
    kind = "result_not_serializable"


class SandboxTimeout(SandboxFailed):
    kind = "timeout"
