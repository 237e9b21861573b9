"""Política de seguridad para providers (allow-list primero, deny-list después).

Por qué así:
- El primer token debe pertenecer a una allow-list mínima de clientes HTTP de
  solo lectura antes de consultar ninguna deny-list; la superficie de ataque
  queda acotada a "trucos de argumentos contra binarios conocidos".
- Los predicados son puros y totales: nunca lanzan nada distinto de
  `ValidationRejected`, sea cual sea la entrada.

Las tablas de reglas son constantes inmutables del proceso; se leen sin
sincronización desde cualquier hilo.
"""

from __future__ import annotations

import logging
from typing import Mapping

from core.domain.errors import ValidationRejected
from core.services.command_line import tokenize

logger = logging.getLogger(__name__)


ALLOWED_COMMANDS: tuple[str, ...] = ("curl", "wget", "http", "httpie")

# Orden relevante: el primer patrón encontrado es el que se reporta.
DANGEROUS_PATTERNS: tuple[str, ...] = (
    ";", "&&", "||", "|", "`", "$(", "${", "\n", "\r", ">", "<", ">>", "<<", "&>", "2>",
)
DANGEROUS_URL_PATTERNS: tuple[str, ...] = ("file://", "file:", "@/", "@./", "@~/")

# Opciones (forma exacta o `--opt=valor`) que escriben a disco o leen ficheros locales.
DANGEROUS_OPTIONS: frozenset[str] = frozenset(
    {
        "-o",
        "-O",
        "--output",
        "--output-document",
        "--output-file",
        "--output-dir",
        "--append-output",
        "--download",
        "--data-binary",
        "--upload-file",
        "--config",
        "--dump-header",
        "--cookie-jar",
        "--stderr",
        "--libcurl",
        "--etag-save",
        "--hsts",
        "--alt-svc",
        "--remote-name",
        "--remote-name-all",
        "--remote-header-name",
        "--input-file",
        "--post-file",
        "--body-file",
        "--save-cookies",
        "--load-cookies",
        "--directory-prefix",
        "--execute",
        "--session",
        "--session-read-only",
    }
)
DANGEROUS_OPTION_PREFIXES: tuple[str, ...] = ("--trace",)

# Letras de opción corta peligrosas por cliente; también valen pegadas (`-o/tmp/x`)
# o dentro de un grupo (`-sSo/tmp/x`).
DANGEROUS_SHORT_OPTIONS: dict[str, frozenset[str]] = {
    "curl": frozenset("oOTKDc"),
    "wget": frozenset("oOaie"),
    "http": frozenset("od"),
    "httpie": frozenset("od"),
}
# Opciones cortas que consumen el resto del grupo como valor (`-HX-Key:v`).
_VALUE_SHORT_OPTIONS = frozenset("AbBCdEeFHlmPQRrtTUuwXxYyz")
# Opciones cuyo valor interpreta `@` como "leer fichero".
_FORM_OPTIONS: frozenset[str] = frozenset({"-F", "--form"})
_URLENCODE_OPTIONS: frozenset[str] = frozenset({"--data-urlencode"})

DANGEROUS_ENV_VARS: frozenset[str] = frozenset(
    {
        "LD_PRELOAD",
        "LD_LIBRARY_PATH",
        "DYLD_INSERT_LIBRARIES",
        "DYLD_LIBRARY_PATH",
        "PATH",
        "HOME",
        "SHELL",
        "BASH_ENV",
        "ENV",
        "IFS",
    }
)
DANGEROUS_VALUE_CHARS: frozenset[str] = frozenset(
    {";", "&", "|", "`", "$", "(", ")", "{", "}", "[", "]", "<", ">", "\n", "\r", "\0", "'", '"'}
)

_PATH_SEPARATORS = ("/", "\\")


def validate_identifier(identifier: str) -> None:
    """Rechaza ids que podrían escapar del directorio de providers.

    Prohibidos: vacío, separadores (`/`, `\\`), NUL y `..` como segmento
    completo o pegado a un separador. `foo..bar` es válido.
    """

    has_path_chars = any(sep in identifier for sep in _PATH_SEPARATORS) or "\0" in identifier
    is_traversal = (
        identifier == ".."
        or identifier.startswith(("../", "..\\"))
        or "/.." in identifier
        or "\\.." in identifier
    )
    if not identifier or has_path_chars or is_traversal:
        raise ValidationRejected(
            "identifier",
            identifier,
            "Provider ID is empty or contains invalid characters",
        )


def validate_environment(env: Mapping[str, str]) -> None:
    """Valida claves y valores del entorno del provider.

    Los valores acaban sustituidos en la plantilla y re-tokenizados, así que
    cualquier carácter con significado para un shell se considera vector de
    inyección aunque nunca lo vea un shell real.
    """

    for key, value in env.items():
        if not key or "=" in key or "\0" in key:
            raise ValidationRejected(
                "env_key",
                key,
                f"Invalid environment variable key: '{key}'",
            )
        if key.upper() in DANGEROUS_ENV_VARS:
            raise ValidationRejected(
                "env_denied",
                key,
                f"Environment variable '{key}' is not allowed for security reasons",
            )
        bad = next((c for c in value if c in DANGEROUS_VALUE_CHARS), None)
        if bad is not None:
            raise ValidationRejected(
                "env_value",
                bad,
                f"Environment variable value for '{key}' contains dangerous character: {bad!r}",
            )


def validate_fetch_script(script: str) -> None:
    """Valida un fetch script contra el conjunto completo de reglas.

    Orden: allow-list del comando, patrones peligrosos, esquemas de URL que
    leen ficheros locales y, si tokeniza, opciones peligrosas y sintaxis `@file`.
    """

    trimmed = script.strip()

    words = trimmed.split()
    first_word = words[0] if words else ""
    if first_word not in ALLOWED_COMMANDS:
        raise ValidationRejected(
            "allowed_commands",
            first_word,
            f"Fetch script must start with one of: {', '.join(ALLOWED_COMMANDS)}. Got: '{first_word}'",
        )

    pattern = next((p for p in DANGEROUS_PATTERNS if p in trimmed), None)
    if pattern is not None:
        raise ValidationRejected(
            "dangerous_pattern",
            pattern,
            f"Fetch script contains dangerous pattern: {pattern!r}. Only simple HTTP commands are allowed.",
        )

    lower = trimmed.lower()
    pattern = next((p for p in DANGEROUS_URL_PATTERNS if p in lower), None)
    if pattern is not None:
        raise ValidationRejected(
            "dangerous_url",
            pattern,
            f"Fetch script contains dangerous pattern: '{pattern}'. Only http/https URLs are allowed.",
        )

    tokens = tokenize(trimmed)
    if tokens is None:
        # Sin tokens no hay chequeo por opción; el orquestador rechaza al tokenizar.
        logger.debug("Fetch script does not tokenize; skipping option checks")
        return

    command = tokens[0] if tokens else first_word
    previous = ""
    for token in tokens[1:]:
        option = _dangerous_option(command, token)
        if option is not None:
            raise ValidationRejected(
                "dangerous_option",
                token,
                f"Fetch script contains dangerous option: '{option}'. Output redirection is not allowed.",
            )
        if _reads_local_file(command, token, previous):
            raise ValidationRejected(
                "at_file",
                token,
                "Fetch script contains '@file' syntax which could read local files. This is not allowed.",
            )
        previous = token


def _dangerous_option(command: str, token: str) -> str | None:
    """Devuelve la opción peligrosa que contiene `token`, si hay alguna."""

    if token.startswith("--"):
        name = token.split("=", 1)[0]
        if name in DANGEROUS_OPTIONS or name.startswith(DANGEROUS_OPTION_PREFIXES):
            return name
        return None
    if token in DANGEROUS_OPTIONS:
        return token
    if not token.startswith("-") or len(token) < 2:
        return None

    dangerous = DANGEROUS_SHORT_OPTIONS.get(command, frozenset())
    for index, letter in enumerate(token[1:], start=1):
        if letter in dangerous:
            # `-O-`/`-o-`: salida a stdout.
            if letter in "oO" and token[index + 1:] == "-":
                return None
            return f"-{letter}"
        if letter in _VALUE_SHORT_OPTIONS:
            return None
    return None


def _reads_local_file(command: str, token: str, previous: str) -> bool:
    if token.startswith("@") and len(token) > 1:
        return True
    if "=@" in token:
        return True
    # `-d@fichero`: opción corta con el valor pegado.
    if len(token) > 2 and token[0] == "-" and token[1] != "-" and token[2] == "@":
        return True
    if previous in _FORM_OPTIONS or token.startswith(("-F", "--form=")):
        return "@" in token
    if previous in _URLENCODE_OPTIONS or token.startswith("--data-urlencode="):
        value = token.split("=", 1)[1] if token.startswith("--") else token
        marker = next((c for c in value if c in "@="), "")
        return marker == "@"
    if command in ("http", "httpie") and not token.startswith("-") and "://" not in token:
        # Campo de fichero de httpie: `campo@ruta`.
        head, sep, _ = token.partition("@")
        return bool(sep) and head != "" and not any(c in head for c in ":=/")
    return False
