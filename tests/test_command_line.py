from __future__ import annotations

import pytest

from core.services.command_line import join, parse_command, substitute, tokenize


def test_substitute_replaces_known_keys() -> None:
    assert substitute("Bearer ${TOKEN}", {"TOKEN": "abc"}) == "Bearer abc"


def test_substitute_multiple_keys() -> None:
    env = {"HOST": "api.example.com", "TOKEN": "abc"}
    result = substitute("curl https://${HOST} -H 'Auth: ${TOKEN}'", env)
    assert result == "curl https://api.example.com -H 'Auth: abc'"


def test_substitute_leaves_missing_keys_verbatim() -> None:
    assert substitute("${MISSING}", {}) == "${MISSING}"
    assert substitute("curl https://api.com", {}) == "curl https://api.com"


def test_substitute_ignores_bare_dollar_form() -> None:
    assert substitute("$TOKEN", {"TOKEN": "abc"}) == "$TOKEN"


def test_tokenize_honours_quotes() -> None:
    parts = tokenize("curl -H 'Authorization: Bearer token' https://api.com")
    assert parts == ["curl", "-H", "Authorization: Bearer token", "https://api.com"]


def test_tokenize_double_quotes_and_escapes() -> None:
    assert tokenize('curl -H "X-A: b c" a\\ b') == ["curl", "-H", "X-A: b c", "a b"]


@pytest.mark.parametrize(
    "command",
    [
        "curl -H 'unmatched quote https://api.com",
        'curl -H "unmatched',
        "curl trailing\\",
    ],
)
def test_tokenize_returns_none_on_malformed_quoting(command: str) -> None:
    assert tokenize(command) is None


def test_tokenize_keeps_metacharacters_opaque() -> None:
    assert tokenize("curl a;b $(x) `y` | z") == ["curl", "a;b", "$(x)", "`y`", "|", "z"]


def test_tokenize_does_not_treat_hash_as_comment() -> None:
    assert tokenize("curl https://a.com/#frag") == ["curl", "https://a.com/#frag"]


def test_tokenize_empty() -> None:
    assert tokenize("") == []
    assert tokenize("   ") == []


@pytest.mark.parametrize(
    "command",
    [
        "curl -s https://api.example.com",
        "curl -H 'Authorization: Bearer token' https://api.com",
        'http GET "https://a.com/q?x=1 2" \'Accept:application/json\'',
        "wget -qO- https://api.example.com",
    ],
)
def test_join_then_tokenize_is_stable(command: str) -> None:
    tokens = tokenize(command)
    assert tokens is not None
    assert tokenize(join(tokens)) == tokens


def test_parse_command_substitutes_before_splitting() -> None:
    parts = parse_command("curl -H 'Authorization: Bearer ${TOKEN}' https://api.com", {"TOKEN": "secret"})
    assert parts is not None
    assert parts[2] == "Authorization: Bearer secret"
