"""Mapping of autostart settings to pytest fixture scopes."""

from __future__ import annotations

from kurento_test.config.test_configuration import (
    AUTOSTART_FALSE_VALUE,
    AUTOSTART_TEST_VALUE,
    AUTOSTART_TESTCLASS_VALUE,
    AUTOSTART_TESTSUITE_VALUE,
)
from kurento_test.errors import ConfigurationError

AUTOSTART_SCOPES: dict[str, str | None] = {
    AUTOSTART_TEST_VALUE: "function",
    AUTOSTART_TESTCLASS_VALUE: "class",
    AUTOSTART_TESTSUITE_VALUE: "session",
    AUTOSTART_FALSE_VALUE: None,
}


def autostart_scope(value: str, key: str = "autostart") -> str | None:
    """pytest scope for an autostart value, or None when the service is not started.

    Raises:
        ConfigurationError: If value is not a known autostart value
    """
    normalized = str(value).strip().lower()
    if normalized not in AUTOSTART_SCOPES:
        raise ConfigurationError(
            key, f"must be one of {', '.join(AUTOSTART_SCOPES)} (got {value!r})"
        )
    return AUTOSTART_SCOPES[normalized]
