"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

import json
from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from core.domain.models import Provider, ProviderTrayStats, TestResult


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (solo en modos interactivos)."""

    title = Text("TokenMeter", style="bold cyan")
    subtitle = Text("Providers • Fetch scripts • Transforms", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_providers_table(providers: Sequence[Provider]) -> Table:
    table = Table(title="Providers")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Enabled", style="green")
    table.add_column("Last fetched", style="dim")
    table.add_column("Last error", style="red")
    for provider in providers:
        table.add_row(
            provider.id,
            provider.name,
            "yes" if provider.enabled else "no",
            provider.last_fetched or "-",
            provider.last_error or "",
        )
    return table


def build_checks_table(title: str, rows: Sequence[tuple[str, bool, str]]) -> Table:
    """Tabla Check/Status/Details (validate, doctor)."""

    table = Table(title=title)
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    for check, ok, details in rows:
        table.add_row(check, "OK" if ok else "FAIL", details)
    return table


def build_result_panel(provider: Provider, result: TestResult) -> Panel:
    """Panel con el `TestResult` de una ejecución."""

    if result.success:
        body = Syntax(json.dumps(result.data, indent=2, ensure_ascii=False), "json")
        return Panel(body, title=Text(f"{provider.name}: OK", style="bold green"), border_style="green")

    body = Text(result.error or "unknown error")
    return Panel(body, title=Text(f"{provider.name}: FAILED", style="bold red"), border_style="red")


def build_tray_panel(stats: Sequence[ProviderTrayStats]) -> Panel:
    body = Text()
    for line in stats:
        body.append(line.display_text + "\n")
    if not stats:
        body.append("No enabled providers", style="dim")
    return Panel(body, title=Text("Tray", style="bold yellow"), border_style="yellow")
