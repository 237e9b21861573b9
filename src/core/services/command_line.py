"""Tokenizador y sustitución `${VAR}` para fetch scripts.

Por qué aquí:
- Es lógica pura del Core (sin I/O): el validador y el orquestador la comparten.
- La tokenización nunca interpreta metacaracteres (`;`, `|`, `` ` ``, `$( )`):
  solo parte en palabras respetando comillas. Rechazarlos es cosa de la política.
"""

from __future__ import annotations

import shlex
from typing import Iterable, Mapping


def substitute(template: str, env: Mapping[str, str]) -> str:
    """Reemplaza cada `${KEY}` literal por su valor; las claves ausentes quedan intactas.

    Sustitución puramente textual: no entiende de comillas y corre *antes*
    de tokenizar.
    """

    result = template
    for key, value in env.items():
        result = result.replace(f"${{{key}}}", value)
    return result


def tokenize(command: str) -> list[str] | None:
    """Word-splitting estilo POSIX (comillas simples/dobles y escapes).

    Devuelve `None` cuando las comillas no cierran o un escape queda colgando:
    señal de "no ejecutar este comando", no una excepción.
    """

    lexer = shlex.shlex(command, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError:
        return None


def join(tokens: Iterable[str]) -> str:
    """Inverso de `tokenize`: re-cita cada token para que la re-tokenización sea estable."""

    return shlex.join(tokens)


def parse_command(template: str, env: Mapping[str, str]) -> list[str] | None:
    """Sustituye y tokeniza en un paso."""

    return tokenize(substitute(template, env))
