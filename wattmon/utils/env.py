"""Environment variable helpers with type coercion.

Every wattmon setting can be overridden from the environment, for example
``WATTMON_SAMPLE_INTERVAL=2`` or ``WATTMON_LOG_LEVEL=DEBUG``.
"""

from __future__ import annotations

import os
from typing import Any, TypeVar

T = TypeVar("T")


class EnvVarError(Exception):
    """Base exception for environment variable errors."""


class EnvVarTypeError(EnvVarError):
    """Raised when an environment variable cannot be converted to the expected type."""

    def __init__(self, name: str, value: str, expected_type: type) -> None:
        self.name = name
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Cannot convert {name}='{value}' to {expected_type.__name__}")


def _coerce_type(name: str, value: str, as_type: type) -> Any:
    """Convert a raw string to ``as_type``.

    Booleans treat "false", "0", "", "no" and "off" as False.

    Raises:
        EnvVarTypeError: If conversion fails.
    """
    try:
        if as_type is bool:
            return value.strip().lower() not in ("false", "0", "", "no", "off")
        if as_type is int:
            return int(value)
        if as_type is float:
            return float(value)
        if as_type is str:
            return value
        return as_type(value)
    except (ValueError, TypeError) as e:
        raise EnvVarTypeError(name, value, as_type) from e


def _log_access(name: str, value: str | None) -> None:
    """Log a variable read at DEBUG level once logging is configured."""
    from wattmon.utils.logger import Logger

    if Logger.is_configured():
        Logger.get("env").debug(f"ENV GET {name}={value}")


def get_env(
    name: str,
    *,
    default: Any = None,
    as_type: type[T] | None = None,
    log: bool = False,
) -> Any:
    """Get an environment variable with optional type coercion.

    Args:
        name: Environment variable name.
        default: Returned when the variable is unset or empty.
        as_type: bool, int, float, str or any callable taking one string.
        log: Log the access through Logger when it is configured.

    Returns:
        The converted value, or ``default``.

    Raises:
        EnvVarTypeError: If as_type is given and conversion fails.

    Examples:
        >>> get_env("WATTMON_SAMPLE_INTERVAL", default=5.0, as_type=float)
        5.0
    """
    value = os.environ.get(name)

    if log:
        _log_access(name, value)

    if value is None or value == "":
        return default

    if as_type is not None:
        return _coerce_type(name, value, as_type)

    return value


def env_is_set(name: str) -> bool:
    """Check if an environment variable is set and non-empty."""
    value = os.environ.get(name)
    return value is not None and value != ""
