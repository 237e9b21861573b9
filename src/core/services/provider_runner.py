"""Orquestación de la ejecución de un provider.

Secuencia (cada paso es una compuerta; el primer fallo corta y su motivo es
el resultado):

1. Validar entorno, sustituir `${VAR}` y validar el comando *ya sustituido*
   con un único conjunto de reglas.
2. Tokenizar; un argv vacío es un rechazo.
3. Lanzar argv[0] con argv[1:] y el entorno del provider como único entorno.
4. Estado != 0: el stderr capturado es el motivo; stdout no se interpreta.
5. Decodificar stdout como UTF-8.
6. Sin transform: stdout debe ser JSON y se devuelve tal cual.
7. Con transform: el sandbox lo ejecuta y su salida debe ser JSON.

El orquestador no persiste nada ni comparte estado mutable entre
invocaciones; quien necesite "un refresco a la vez" serializa fuera.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from adapters.fetch_process import run_command
from adapters.sandbox import TransformSandbox
from core.config import AppSettings
from core.domain.errors import (
    DecodeFailed,
    FetchProcessFailed,
    SandboxFailed,
    TokenMeterError,
    ValidationRejected,
)
from core.domain.models import (
    Command,
    ExecutionMode,
    Provider,
    ProviderTrayStats,
    ProviderUsageResult,
    TestResult,
)
from core.interfaces.executors import CommandSpawner, TransformRunner
from core.services.command_line import substitute, tokenize
from core.services.policy import validate_environment, validate_fetch_script

logger = logging.getLogger(__name__)

_ERROR_PREFIXES: tuple[tuple[type[TokenMeterError], str], ...] = (
    (ValidationRejected, "Validation error"),
    (FetchProcessFailed, "Fetch failed"),
    (DecodeFailed, "Decode error"),
    (SandboxFailed, "Transform failed"),
)


def describe_error(exc: TokenMeterError) -> str:
    """Motivo visible para el usuario: etapa + detalle más específico."""

    for cls, prefix in _ERROR_PREFIXES:
        if isinstance(exc, cls):
            return f"{prefix}: {exc}"
    return str(exc)


def prepare_command(template: str, env: Mapping[str, str]) -> Command:
    """Pasos 1-2: valida, sustituye, re-valida y tokeniza.

    La validación del fetch script se aplica al comando sustituido, así un
    valor de entorno no puede introducir nada que la plantilla no podría.
    """

    validate_environment(env)
    command_line = substitute(template, env).strip()
    validate_fetch_script(command_line)

    argv = tokenize(command_line)
    if argv is None:
        raise ValidationRejected(
            "tokenize",
            command_line,
            "Invalid fetch script: unmatched quotes or escape sequences",
        )
    if not argv:
        raise ValidationRejected("empty", "", "Empty fetch script")
    return Command(argv=tuple(argv), env=dict(env))


def tray_stats_from_result(provider: Provider, result: TestResult) -> ProviderTrayStats:
    """Reduce un `TestResult` a la línea de bandeja (`nombre: --` si no hay datos útiles)."""

    if not result.success:
        return ProviderTrayStats.from_provider(provider, None)
    try:
        usage = ProviderUsageResult.model_validate(result.data)
    except ValidationError as exc:
        logger.warning("Provider %s returned an unexpected shape: %s", provider.id, exc)
        return ProviderTrayStats.from_provider(provider, None)
    return ProviderTrayStats.from_provider(provider, usage)


def _parse_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise DecodeFailed(f"{source} is not valid JSON: {exc}") from exc


class ProviderRunner:
    """Ejecuta providers con colaboradores inyectables (proceso y sandbox)."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        spawn: CommandSpawner | None = None,
        sandbox: TransformRunner | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._spawn: CommandSpawner = spawn or run_command
        self._sandbox: TransformRunner = sandbox or TransformSandbox.from_settings(self._settings)

    def execute_provider(self, provider: Provider, mode: ExecutionMode = ExecutionMode.TEST) -> TestResult:
        """Ejecuta un provider y devuelve siempre un `TestResult` (nunca lanza por culpa del provider)."""

        logger.debug("Executing provider %s (%s)", provider.id, mode.value)
        try:
            data = self._execute(provider)
        except TokenMeterError as exc:
            logger.warning("Provider %s failed [%s]: %s", provider.id, exc.kind, exc)
            return TestResult.failure(describe_error(exc))
        logger.debug("Provider %s succeeded", provider.id)
        return TestResult.ok(data)

    def _execute(self, provider: Provider) -> Any:
        command = prepare_command(provider.fetch_script, provider.env)

        output = self._spawn(
            command.argv,
            command.env,
            timeout=self._settings.fetch_timeout_seconds,
        )
        if output.returncode != 0:
            stderr = (output.stderr or b"").decode("utf-8", errors="replace")
            message = stderr.strip() or f"command exited with status {output.returncode}"
            raise FetchProcessFailed(message, stderr=stderr, returncode=output.returncode)

        try:
            stdout = output.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFailed(f"fetch output is not valid UTF-8: {exc}") from exc

        if not provider.transform_script:
            return _parse_json(stdout, "fetch output")

        result = self._sandbox.run(provider.transform_script, stdout)
        return _parse_json(result, "transform output")

    def fetch_provider_for_tray(self, provider: Provider) -> ProviderTrayStats:
        """Ejecuta en modo refresco y reduce el resultado a una línea de bandeja."""

        return tray_stats_from_result(provider, self.execute_provider(provider, ExecutionMode.REFRESH))

    def refresh_all(
        self,
        providers: Sequence[Provider],
        *,
        max_workers: int | None = None,
    ) -> list[tuple[Provider, TestResult]]:
        """Ejecuta los providers habilitados en paralelo (modo refresco), preservando el orden."""

        enabled = [p for p in providers if p.enabled]
        if not enabled:
            return []
        workers = max_workers or self._settings.refresh_max_workers
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tokenmeter-refresh") as pool:
            results = list(pool.map(lambda p: self.execute_provider(p, ExecutionMode.REFRESH), enabled))
        return list(zip(enabled, results))


def execute_provider(provider: Provider, mode: ExecutionMode = ExecutionMode.TEST) -> TestResult:
    """Atajo con los colaboradores por defecto."""

    return ProviderRunner().execute_provider(provider, mode)
