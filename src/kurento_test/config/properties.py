"""
Property resolution for test configuration keys.

Sources, highest precedence first:
1. Explicit overrides (set_property, or --property on the pytest command line)
2. Environment variables (KMS_WS_URI, then the literal key "kms.ws.uri")
3. The "properties" object of the JSON test configuration file
4. The key's declared default

Legacy aliases of a key are consulted after its primary name at each level.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from kurento_test.config.test_configuration import ConfigKey, _to_env_name, get_key
from kurento_test.errors import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def _coerce(key: ConfigKey, value: Any) -> Any:
    """Convert a raw value to the key's type."""
    if value is None:
        return None

    target = key.value_type
    if isinstance(value, target) and not (target is int and isinstance(value, bool)):
        return value

    text = str(value).strip()
    try:
        if target is bool:
            lowered = text.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {text!r}")
        if target is int:
            return int(text)
        if target is float:
            return float(text)
    except ValueError as e:
        raise ConfigurationError(key.name, str(e)) from e

    return text


class TestProperties:
    """Resolves configuration keys against overrides, environment and config file.

    Usage:
        properties = TestProperties.from_config_file("test.conf.json")
        uri = properties.get(KmsConfig.WS_URI)
        properties.set("kms.url", uri)
    """

    __test__ = False

    def __init__(
        self,
        file_properties: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize property resolver.

        Args:
            file_properties: Values read from the JSON test configuration
            environ: Environment mapping (default: os.environ)
        """
        self._file_properties = dict(file_properties or {})
        self._environ = environ if environ is not None else os.environ
        self._overrides: dict[str, Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config_file(
        cls,
        path: str | Path | None,
        environ: Mapping[str, str] | None = None,
    ) -> TestProperties:
        """Create a resolver reading the "properties" object of a JSON file.

        A missing file is not an error; the resolver then only sees
        overrides, environment and defaults.

        Raises:
            ConfigurationError: If the file exists but is not valid JSON
        """
        file_properties: dict[str, Any] = {}
        if path is not None and Path(path).is_file():
            try:
                content = json.loads(Path(path).read_text())
            except json.JSONDecodeError as e:
                raise ConfigurationError(str(path), f"invalid JSON: {e}") from e
            file_properties = content.get("properties", {}) if isinstance(content, dict) else {}
            logger.info(f"Loaded {len(file_properties)} properties from {path}")
        return cls(file_properties=file_properties, environ=environ)

    def _lookup(self, name: str) -> tuple[bool, Any]:
        with self._lock:
            if name in self._overrides:
                return True, self._overrides[name]

        for env_name in (_to_env_name(name), name):
            if env_name in self._environ:
                return True, self._environ[env_name]

        if name in self._file_properties:
            return True, self._file_properties[name]

        return False, None

    def get(self, key: ConfigKey | str, default: Any = None) -> Any:
        """Resolve a key to its typed value.

        Args:
            key: ConfigKey or property name
            default: Value used instead of the declared default when nothing
                else sets the key

        Raises:
            ConfigurationError: If the raw value cannot be coerced
        """
        if isinstance(key, str):
            key = get_key(key)

        for name in (key.name, *key.aliases):
            found, value = self._lookup(name)
            if found:
                if name != key.name:
                    logger.warning(f"Property '{name}' is deprecated, use '{key.name}'")
                return _coerce(key, value)

        return _coerce(key, default if default is not None else key.default)

    def require(self, key: ConfigKey | str) -> Any:
        """Resolve a key that has to be set.

        Raises:
            ConfigurationError: If the key resolves to None
        """
        value = self.get(key)
        if value is None:
            name = key if isinstance(key, str) else key.name
            raise ConfigurationError(name, "property is required but not set")
        return value

    def set(self, key: ConfigKey | str, value: Any) -> None:
        """Set an explicit override for a key."""
        name = key if isinstance(key, str) else key.name
        with self._lock:
            self._overrides[name] = value

    def clear(self, key: ConfigKey | str) -> None:
        """Remove an explicit override."""
        name = key if isinstance(key, str) else key.name
        with self._lock:
            self._overrides.pop(name, None)

    def is_set(self, key: ConfigKey | str) -> bool:
        """Whether any source other than the declared default sets the key."""
        if isinstance(key, str):
            key = get_key(key)
        return any(self._lookup(name)[0] for name in (key.name, *key.aliases))


_properties: TestProperties | None = None


def get_properties() -> TestProperties:
    """Process-wide resolver, created from the harness settings on first use."""
    global _properties
    if _properties is None:
        from kurento_test.config.settings import get_settings

        _properties = TestProperties.from_config_file(get_settings().config_file)
    return _properties


def set_properties(properties: TestProperties | None) -> None:
    """Replace the process-wide resolver (None resets it)."""
    global _properties
    _properties = properties


def get_property(key: ConfigKey | str, default: Any = None) -> Any:
    """Resolve a key with the process-wide resolver."""
    return get_properties().get(key, default)


def set_property(key: ConfigKey | str, value: Any) -> None:
    """Set an explicit override on the process-wide resolver."""
    get_properties().set(key, value)
