"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- El formato en disco de un provider usa camelCase; los alias permiten leerlo
  y escribirlo tal cual sin renombrar a mano.

Nota:
- Estos modelos describen *qué* es un provider y su resultado, no *cómo* se ejecuta.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class Provider(BaseModel):
    """Un provider definido por el usuario: comando de fetch + transform opcional.

    Reglas:
    - `id` se usa como nombre de fichero; se valida con `validate_identifier`
      antes de cualquier escritura.
    - `env` es el *único* entorno con el que se lanza el comando.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Identificador único y seguro como nombre de fichero.")
    name: str = Field(..., description="Nombre visible del provider.")
    enabled: bool = Field(default=True, description="Si participa en los refrescos programados.")
    fetch_script: str = Field(default="", description="Comando de fetch (una línea, cliente HTTP).")
    transform_script: str = Field(
        default="",
        description="Función JS opcional que transforma el JSON del fetch.",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Variables de entorno del comando; también alimentan `${VAR}`.",
    )
    last_fetched: str | None = Field(default=None, description="Último fetch (ISO-8601, UTC).")
    last_error: str | None = Field(default=None, description="Último error, si lo hubo.")


@dataclass(frozen=True)
class Command:
    """Comando listo para lanzar: argv tokenizado + entorno con el que corre."""

    argv: tuple[str, ...]
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("Command argv must not be empty")

    @property
    def executable(self) -> str:
        return self.argv[0]

    @property
    def args(self) -> tuple[str, ...]:
        return self.argv[1:]


class ExecutionMode(str, Enum):
    """Quién pide la ejecución: misma lógica, distintos efectos aguas abajo."""

    TEST = "test"
    REFRESH = "refresh"


class TestResult(BaseModel):
    """Resultado etiquetado de una ejecución: éxito con datos o fallo con motivo."""

    __test__ = False  # pytest: no es una clase de tests

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Any | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any) -> "TestResult":
        return cls(success=True, data=data, error=None)

    @classmethod
    def failure(cls, error: str) -> "TestResult":
        return cls(success=False, data=None, error=error)


class ProviderUsageResult(BaseModel):
    """Forma que el transform debe devolver para pintarse en la bandeja."""

    model_config = ConfigDict(extra="ignore")

    cost: float | None = None
    tokens: int | None = None
    used: float | None = None
    total: float | None = None

    def format_display(self, name: str) -> str:
        if self.used is not None and self.total is not None:
            percent = round(self.used / self.total * 100) if self.total > 0 else 0
            bar = render_progress_bar(self.used, self.total, 10)
            return (
                f"🔋 {name}: [{bar}] {format_number(int(self.used))}/"
                f"{format_number(int(self.total))} ({percent}%)"
            )

        parts = [f"🔋 {name}:"]
        if self.cost is not None:
            parts.append(f"${self.cost:.2f}")
        if self.tokens is not None:
            parts.append(f"/ {format_number(self.tokens)}")
        if len(parts) == 1:
            parts.append("--")
        return " ".join(parts)


class ProviderTrayStats(BaseModel):
    """Línea de bandeja para un provider."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    display_text: str

    @classmethod
    def from_provider(cls, provider: Provider, result: ProviderUsageResult | None) -> "ProviderTrayStats":
        if result is None:
            display_text = f"{provider.name}: --"
        else:
            display_text = result.format_display(provider.name)
        return cls(name=provider.name, display_text=display_text)


def format_number(num: int) -> str:
    """Formatea con sufijos K/M/B."""

    if num >= 1_000_000_000:
        return f"{num / 1_000_000_000:.1f}B"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def render_progress_bar(used: float, total: float, width: int) -> str:
    ratio = min(max(used / total, 0.0), 1.0) if total > 0 else 0.0
    filled = round(ratio * width)
    return "█" * filled + "░" * max(width - filled, 0)
