"""CLI de TokenMeter (Typer + Rich).

Por qué una CLI fina:
- Toda la lógica vive en `core/` (validación, orquestación) y `adapters/`
  (proceso, sandbox, almacenamiento); aquí solo se decide qué imprimir.
- Sirve de arnés para probar un provider sin la app de bandeja.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.provider_store import delete_provider, load_provider, load_providers, record_outcome
from cli import doctor
from cli.ui_components import (
    build_checks_table,
    build_providers_table,
    build_result_panel,
    build_tray_panel,
    print_banner,
)
from core.config import AppSettings, get_providers_dir
from core.domain.errors import ValidationRejected
from core.domain.models import ExecutionMode, Provider
from core.services.policy import validate_environment, validate_identifier
from core.services.provider_runner import ProviderRunner, prepare_command, tray_stats_from_result

app = typer.Typer(no_args_is_help=True, help="Run and validate usage/cost providers.")
providers_app = typer.Typer(no_args_is_help=True, help="Manage stored providers.")
app.add_typer(providers_app, name="providers")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    _configure_logging(verbose)


def _read_provider_file(path: Path) -> Provider:
    try:
        return Provider.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as exc:
        raise typer.BadParameter(f"Cannot read provider file {path}: {exc}") from exc


def _load_stored(provider_id: str) -> Provider:
    try:
        return load_provider(get_providers_dir(AppSettings()), provider_id)
    except ValidationRejected as exc:
        raise typer.BadParameter(str(exc)) from exc
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Provider '{provider_id}' not found") from exc
    except (OSError, ValueError, ValidationError) as exc:
        raise typer.BadParameter(f"Provider '{provider_id}' is unreadable: {exc}") from exc


@app.command()
def validate(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Provider JSON file.")) -> None:
    """Run every security check against a provider file without executing it."""

    provider = _read_provider_file(path)
    rows: list[tuple[str, bool, str]] = []

    def check(name: str, fn, *args) -> None:  # noqa: ANN001, ANN002
        try:
            fn(*args)
        except ValidationRejected as exc:
            rows.append((name, False, str(exc)))
        else:
            rows.append((name, True, ""))

    check("Identifier", validate_identifier, provider.id)
    check("Environment", validate_environment, provider.env)
    check("Fetch script", prepare_command, provider.fetch_script, provider.env)

    _console.print(build_checks_table(f"Validate: {provider.name}", rows))
    if not all(ok for _, ok, _ in rows):
        raise typer.Exit(code=1)


@app.command()
def test(
    provider_id: str | None = typer.Argument(None, help="Stored provider id."),
    file: Path | None = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Provider JSON file."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw TestResult as JSON."),
) -> None:
    """Execute one provider once (interactive test)."""

    if file is not None:
        provider = _read_provider_file(file)
    elif provider_id is not None:
        provider = _load_stored(provider_id)
    else:
        raise typer.BadParameter("Pass a provider id or --file")

    result = ProviderRunner(AppSettings()).execute_provider(provider, ExecutionMode.TEST)

    if as_json:
        typer.echo(result.model_dump_json())
    else:
        _console.print(build_result_panel(provider, result))
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def refresh(
    watch: bool = typer.Option(False, "--watch", help="Keep refreshing every refresh interval."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not print the banner."),
) -> None:
    """Refresh every enabled provider and record the outcome on disk."""

    settings = AppSettings()
    providers_dir = get_providers_dir(settings)
    runner = ProviderRunner(settings)
    if not quiet:
        print_banner(_console)

    while True:
        outcomes = runner.refresh_all(load_providers(providers_dir))
        stats = []
        for provider, result in outcomes:
            try:
                record_outcome(providers_dir, provider, result)
            except ValidationRejected as exc:
                logging.getLogger(__name__).warning("Not recording outcome for %r: %s", provider.id, exc)
            stats.append(tray_stats_from_result(provider, result))
        _console.print(build_tray_panel(stats))
        if not watch:
            break
        time.sleep(settings.refresh_interval_seconds)


@providers_app.command("list")
def list_providers() -> None:
    """List stored providers."""

    providers = load_providers(get_providers_dir(AppSettings()))
    _console.print(build_providers_table(providers))


@providers_app.command("show")
def show_provider(provider_id: str = typer.Argument(..., help="Stored provider id.")) -> None:
    """Print a stored provider (environment values are masked)."""

    provider = _load_stored(provider_id)
    payload = provider.model_dump(mode="json", by_alias=True)
    payload["env"] = {key: "***" for key in provider.env}
    _console.print_json(json.dumps(payload))


@providers_app.command("delete")
def remove_provider(provider_id: str = typer.Argument(..., help="Stored provider id.")) -> None:
    """Delete a stored provider."""

    try:
        removed = delete_provider(get_providers_dir(AppSettings()), provider_id)
    except ValidationRejected as exc:
        raise typer.BadParameter(str(exc)) from exc
    if removed:
        _console.print(f"[green]Deleted provider:[/green] {provider_id}")
    else:
        _console.print(f"[yellow]No provider named:[/yellow] {provider_id}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
