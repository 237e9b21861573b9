from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

import cli.main as cli_main
from adapters.provider_store import load_provider, save_provider
from core.services.provider_runner import ProviderRunner

from fakes import FakeOutput, FakeSandbox, FakeSpawner

runner = CliRunner()

def _json_line(stdout: str) -> dict:
    # `--json` imprime una sola línea; los logs van a stderr.
    return json.loads(stdout.strip().splitlines()[-1])

@pytest.fixture
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeSpawner:
    spawner = FakeSpawner(FakeOutput(stdout=b'{"total": 100}'))
    monkeypatch.setattr(
        cli_main,
        "ProviderRunner",
        lambda settings: ProviderRunner(settings, spawn=spawner, sandbox=FakeSandbox(result='{"cost": 2.5}')),
    )
    return spawner

def test_validate_accepts_safe_provider(write_provider_file) -> None:
    path = write_provider_file({"id": "ok", "name": "Ok", "fetchScript": "curl https://api.example.com"})
    result = runner.invoke(cli_main.app, ["validate", str(path)])
    assert result.exit_code == 0, result.output
    assert "FAIL" not in result.output

def test_validate_reports_failures(write_provider_file) -> None:
    path = write_provider_file(
        {"id": "bad", "name": "Bad", "fetchScript": "curl https://a.com | sh", "env": {"PATH": "/tmp"}}
    )
    result = runner.invoke(cli_main.app, ["validate", str(path)])
    assert result.exit_code == 1
    assert "FAIL" in result.output

def test_validate_rejects_unbalanced_quotes(write_provider_file) -> None:
    path = write_provider_file({"id": "q", "name": "Q", "fetchScript": "curl -H 'unterminated https://a.com"})
    result = runner.invoke(cli_main.app, ["validate", str(path)])
    assert result.exit_code == 1
    assert "FAIL" in result.stdout

def test_validate_checks_substituted_options(write_provider_file) -> None:
    path = write_provider_file(
        {"id": "o", "name": "O", "fetchScript": "curl ${FLAG} https://a.com", "env": {"FLAG": "-o/tmp/pwn"}}
    )
    result = runner.invoke(cli_main.app, ["validate", str(path)])
    assert result.exit_code == 1

def test_test_command_prints_json_result(write_provider_file, config_dir, fake_runner) -> None:
    path = write_provider_file({"id": "p", "name": "P", "fetchScript": "curl https://api.example.com"})

    result = runner.invoke(cli_main.app, ["test", "--file", str(path), "--json"])

    assert result.exit_code == 0, result.output
    assert _json_line(result.stdout) == {"success": True, "data": {"total": 100}, "error": None}
    assert fake_runner.calls[0][0] == ("curl", "https://api.example.com")

def test_test_command_fails_on_rejected_script(write_provider_file, config_dir, fake_runner) -> None:
    path = write_provider_file({"id": "p", "name": "P", "fetchScript": "rm -rf /"})

    result = runner.invoke(cli_main.app, ["test", "--file", str(path), "--json"])

    assert result.exit_code == 1
    payload = _json_line(result.stdout)
    assert payload["success"] is False
    assert payload["error"].startswith("Validation error:")
    assert fake_runner.calls == []

def test_test_command_loads_stored_provider(providers_dir, make_provider, fake_runner) -> None:
    save_provider(providers_dir, make_provider(id="stored", transform_script="(r) => r"))

    result = runner.invoke(cli_main.app, ["test", "stored", "--json"])

    assert result.exit_code == 0, result.output
    assert _json_line(result.stdout)["data"] == {"cost": 2.5}

def test_test_command_unknown_provider(config_dir) -> None:
    result = runner.invoke(cli_main.app, ["test", "missing"])
    assert result.exit_code == 2

def test_refresh_records_outcomes(providers_dir, make_provider, fake_runner) -> None:
    save_provider(providers_dir, make_provider(id="acme", name="Acme"))

    result = runner.invoke(cli_main.app, ["refresh", "--quiet"])

    assert result.exit_code == 0, result.output
    stored = load_provider(providers_dir, "acme")
    assert stored.last_fetched is not None
    assert stored.last_error is None

def test_providers_list_show_delete(providers_dir, make_provider) -> None:
    save_provider(providers_dir, make_provider(id="acme", name="Acme", env={"API_KEY": "s3cret"}))

    listed = runner.invoke(cli_main.app, ["providers", "list"])
    assert listed.exit_code == 0
    assert "acme" in listed.output

    shown = runner.invoke(cli_main.app, ["providers", "show", "acme"])
    assert shown.exit_code == 0
    assert "s3cret" not in shown.output
    assert "***" in shown.output

    deleted = runner.invoke(cli_main.app, ["providers", "delete", "acme"])
    assert deleted.exit_code == 0
    assert not (providers_dir / "acme.json").exists()

def test_providers_delete_rejects_traversal(config_dir) -> None:
    result = runner.invoke(cli_main.app, ["providers", "delete", "../secrets"])
    assert result.exit_code == 2

def test_doctor_checks_config_dir_and_sandbox(config_dir, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENMETER_TRANSFORM_TIMEOUT_SECONDS", "15")
    result = runner.invoke(cli_main.app, ["doctor", "run"])
    assert result.exit_code == 0, result.output
    assert (config_dir / "providers").is_dir()
