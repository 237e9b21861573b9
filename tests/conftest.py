"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from core.config import AppSettings
from core.domain.models import Provider
from fakes import FakeOutput, FakeSpawner


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "tokenmeter"
    monkeypatch.setenv("TOKENMETER_CONFIG_DIR", str(root))
    return root


@pytest.fixture
def providers_dir(config_dir: Path) -> Path:
    return config_dir / "providers"


@pytest.fixture
def settings(config_dir: Path) -> AppSettings:
    return AppSettings(config_dir=config_dir, transform_timeout_seconds=10.0)


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner(FakeOutput(stdout=b'{"total": 100}'))


@pytest.fixture
def make_provider() -> Callable[..., Provider]:
    def _make(**overrides: Any) -> Provider:
        data: dict[str, Any] = {
            "id": "example",
            "name": "Example",
            "enabled": True,
            "fetch_script": "curl https://api.example.com",
            "transform_script": "",
            "env": {},
        }
        data.update(overrides)
        return Provider(**data)

    return _make


@pytest.fixture
def write_provider_file(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    def _write(payload: dict[str, Any]) -> Path:
        path = tmp_path / f"{payload.get('id', 'provider')}-input.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
