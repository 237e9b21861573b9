"""Doctor command for environment diagnostics."""

from __future__ import annotations

import os
import shutil

import typer
from rich.console import Console

from adapters.sandbox import TransformSandbox
from cli.ui_components import build_checks_table
from core.config import AppSettings, get_providers_dir
from core.domain.errors import SandboxFailed
from core.services.policy import ALLOWED_COMMANDS

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_config_dir(settings: AppSettings) -> tuple[bool, str]:
    providers_dir = get_providers_dir(settings)
    try:
        providers_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, str(exc)
    if not os.access(providers_dir, os.W_OK):
        return False, f"{providers_dir} is not writable"
    return True, str(providers_dir)


def _check_sandbox(settings: AppSettings) -> tuple[bool, str]:
    """Run a trivial transform end-to-end through a real sandbox process."""

    try:
        out = TransformSandbox.from_settings(settings).run("(r) => ({ ok: r.ping === 1 })", '{"ping": 1}')
    except SandboxFailed as exc:
        return False, str(exc)
    return out == '{"ok":true}', out


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    rows: list[tuple[str, bool, str]] = []

    ok_dir, detail_dir = _check_config_dir(settings)
    rows.append(("Providers dir", ok_dir, detail_dir))

    # Los fetch scripts corren con entorno vacío: el binario se resuelve con el PATH por defecto.
    default_path = os.defpath
    found_any = False
    for name in ALLOWED_COMMANDS:
        location = shutil.which(name, path=default_path)
        found_any = found_any or location is not None
        rows.append((f"HTTP client '{name}'", location is not None, location or "not on default PATH"))

    ok_sandbox, detail_sandbox = _check_sandbox(settings)
    rows.append(("Transform sandbox", ok_sandbox, detail_sandbox))

    _console.print(build_checks_table("TokenMeter Doctor", rows))

    if not found_any:
        _console.print(
            f"\n[yellow]Note:[/yellow] none of {', '.join(ALLOWED_COMMANDS)} is on {default_path}; "
            "fetch scripts will fail to start."
        )
    if not (ok_dir and ok_sandbox):
        raise typer.Exit(code=1)
