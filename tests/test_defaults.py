"""Tests for config.defaults."""

import pytest

from config.defaults import DEFAULTS, TIMEOUT_CONFIGS, get_model, get_timeout_config


@pytest.mark.parametrize("env,expected", [
    ("production", {"timeout": 300, "request_timeout": 60}),
    ("development", {"timeout": 600, "request_timeout": 120}),
    ("LOCAL", {"timeout": 600, "request_timeout": 120}),
    ("staging", {"timeout": 300, "request_timeout": 60}),
])
def test_timeout_regimes(env, expected):
    assert get_timeout_config(env) == expected


def test_timeout_regime_from_environment(monkeypatch):
    monkeypatch.setenv("AUTOCODER_ENV", "development")
    assert get_timeout_config()["request_timeout"] == 120
    monkeypatch.delenv("AUTOCODER_ENV")
    assert get_timeout_config()["request_timeout"] == 60


def test_timeout_regime_is_a_copy():
    get_timeout_config("production")["timeout"] = 1
    assert TIMEOUT_CONFIGS["production"]["timeout"] == 300


def test_every_default_has_a_reader():
    assert "sandbox_timeout" not in DEFAULTS
    assert all(set(regime) == {"timeout", "request_timeout"} for regime in TIMEOUT_CONFIGS.values())


def test_model_override(monkeypatch):
    monkeypatch.setenv("AUTOCODER_MODEL", "claude-test")
    assert get_model() == "claude-test"
