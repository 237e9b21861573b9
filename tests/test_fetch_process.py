from __future__ import annotations

import json
import sys

import pytest

from adapters.fetch_process import run_command
from core.domain.errors import FetchProcessFailed


def test_child_sees_only_the_given_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENMETER_HOST_SECRET", "leaked")
    script = "import json, os; print(json.dumps(dict(os.environ)))"

    completed = run_command([sys.executable, "-c", script], {"API_KEY": "k1"})

    assert completed.returncode == 0
    env = json.loads(completed.stdout)
    assert env.get("API_KEY") == "k1"
    assert "TOKENMETER_HOST_SECRET" not in env
    assert "PATH" not in env


def test_arguments_are_not_interpreted_by_a_shell() -> None:
    completed = run_command([sys.executable, "-c", "import sys; print(sys.argv[1])", "$(whoami); echo x"], {})
    assert completed.stdout.decode().strip() == "$(whoami); echo x"


def test_stderr_and_status_are_captured() -> None:
    completed = run_command([sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"], {})
    assert completed.returncode == 3
    assert completed.stderr == b"boom"


def test_missing_executable_is_fetch_failure() -> None:
    with pytest.raises(FetchProcessFailed) as excinfo:
        run_command(["definitely-not-a-real-binary-tokenmeter"], {})
    assert "Could not start" in str(excinfo.value)


def test_caller_timeout_is_fetch_failure() -> None:
    with pytest.raises(FetchProcessFailed) as excinfo:
        run_command([sys.executable, "-c", "import time; time.sleep(10)"], {}, timeout=0.5)
    assert "timed out" in str(excinfo.value)


def test_empty_argv_is_rejected() -> None:
    with pytest.raises(FetchProcessFailed):
        run_command([], {})
