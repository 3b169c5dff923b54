from __future__ import annotations

import pytest

from rubex import config


def test_default_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RUBEX_ENGINE", raising=False)
    assert config.default_engine_name() == "sre"
    monkeypatch.setenv("RUBEX_ENGINE", "   ")
    assert config.default_engine_name() == "sre"


def test_engine_env_is_reparsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUBEX_ENGINE", " Reference ")
    assert config.default_engine_name() == "reference"
    monkeypatch.setenv("RUBEX_ENGINE", "sre")
    assert config.default_engine_name() == "sre"


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, 32),
        ("", 32),
        ("8", 8),
        ("0", 1),
        ("-4", 1),
        ("lots", 32),
    ],
)
def test_subject_cache_size(monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: int) -> None:
    if raw is None:
        monkeypatch.delenv("RUBEX_SUBJECT_CACHE", raising=False)
    else:
        monkeypatch.setenv("RUBEX_SUBJECT_CACHE", raw)
    assert config.subject_cache_size() == expected
