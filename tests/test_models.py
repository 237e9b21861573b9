from __future__ import annotations

import pytest

from core.domain.models import (
    Command,
    Provider,
    ProviderTrayStats,
    ProviderUsageResult,
    TestResult,
    format_number,
)


def test_provider_reads_camel_case_and_snake_case() -> None:
    camel = Provider.model_validate({"id": "a", "name": "A", "fetchScript": "curl https://a.com"})
    snake = Provider(id="a", name="A", fetch_script="curl https://a.com")
    assert camel == snake
    assert camel.enabled is True
    assert camel.env == {}


def test_command_argv_must_not_be_empty() -> None:
    with pytest.raises(ValueError):
        Command(argv=())
    command = Command(argv=("curl", "https://a.com"), env={"K": "v"})
    assert command.executable == "curl"
    assert command.args == ("https://a.com",)


def test_test_result_is_either_success_or_failure() -> None:
    ok = TestResult.ok({"total": 100})
    failed = TestResult.failure("boom")
    assert ok.model_dump() == {"success": True, "data": {"total": 100}, "error": None}
    assert failed.model_dump() == {"success": False, "data": None, "error": "boom"}


@pytest.mark.parametrize(
    ("num", "expected"),
    [(0, "0"), (999, "999"), (1_000, "1.0K"), (1_500_000, "1.5M"), (2_000_000_000, "2.0B")],
)
def test_format_number(num: int, expected: str) -> None:
    assert format_number(num) == expected


def test_usage_display_with_progress_bar() -> None:
    usage = ProviderUsageResult(used=25, total=100)
    assert usage.format_display("Acme") == "🔋 Acme: [██░░░░░░░░] 25/100 (25%)"


def test_usage_display_with_zero_total() -> None:
    usage = ProviderUsageResult(used=5, total=0)
    assert usage.format_display("Acme") == "🔋 Acme: [░░░░░░░░░░] 5/0 (0%)"


def test_usage_display_cost_and_tokens() -> None:
    assert ProviderUsageResult(cost=3.456).format_display("Acme") == "🔋 Acme: $3.46"
    assert ProviderUsageResult(cost=1, tokens=2500).format_display("Acme") == "🔋 Acme: $1.00 / 2.5K"
    assert ProviderUsageResult().format_display("Acme") == "🔋 Acme: --"


def test_tray_stats_without_result() -> None:
    provider = Provider(id="a", name="Acme")
    assert ProviderTrayStats.from_provider(provider, None).display_text == "Acme: --"
