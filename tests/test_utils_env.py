"""Tests for the environment variable utility."""

import pytest

from wattmon.utils.env import EnvVarTypeError, env_is_set, get_env


def test_get_env_basic(monkeypatch):
    """Test getting set variables and missing variables with defaults."""
    monkeypatch.setenv("WATTMON_TEST_VAR", "test_value")
    monkeypatch.delenv("WATTMON_MISSING_VAR", raising=False)

    assert get_env("WATTMON_TEST_VAR") == "test_value"
    assert get_env("WATTMON_MISSING_VAR", default="default") == "default"
    assert get_env("WATTMON_MISSING_VAR") is None


def test_get_env_empty_is_default(monkeypatch):
    """Test that an empty value falls back to the default."""
    monkeypatch.setenv("WATTMON_EMPTY", "")
    assert get_env("WATTMON_EMPTY", default=5.0, as_type=float) == 5.0
    assert not env_is_set("WATTMON_EMPTY")


def test_get_env_coercion(monkeypatch):
    """Test type coercion for common types."""
    monkeypatch.setenv("WATTMON_BOOL_TRUE", "true")
    monkeypatch.setenv("WATTMON_BOOL_FALSE", "off")
    monkeypatch.setenv("WATTMON_INT", "123")
    monkeypatch.setenv("WATTMON_FLOAT", "1.23")

    assert get_env("WATTMON_BOOL_TRUE", as_type=bool) is True
    assert get_env("WATTMON_BOOL_FALSE", as_type=bool) is False
    assert get_env("WATTMON_INT", as_type=int) == 123
    assert get_env("WATTMON_FLOAT", as_type=float) == 1.23

    # Test coercion failure
    monkeypatch.setenv("WATTMON_INVALID_INT", "not_an_int")
    with pytest.raises(EnvVarTypeError) as exc_info:
        get_env("WATTMON_INVALID_INT", as_type=int)
    assert exc_info.value.name == "WATTMON_INVALID_INT"


def test_get_env_logged(monkeypatch):
    """Test that logged reads do not change the value."""
    monkeypatch.setenv("WATTMON_LOGGED", "7")
    assert get_env("WATTMON_LOGGED", as_type=int, log=True) == 7


def test_env_is_set(monkeypatch):
    """Test presence checks."""
    monkeypatch.setenv("WATTMON_PRESENT", "1")
    monkeypatch.delenv("WATTMON_ABSENT", raising=False)
    assert env_is_set("WATTMON_PRESENT")
    assert not env_is_set("WATTMON_ABSENT")
