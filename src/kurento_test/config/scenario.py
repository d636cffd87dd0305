"""
Test scenarios: which browsers a parameterized test runs against.

A scenario maps browser ids to browser definitions. Scenarios come either
from the built-in factories (local Chrome and Firefox) or from the
"executions" array of the JSON test configuration file:

    {
      "executions": [
        {"webrtc": {"browser": "chrome", "scope": "docker"}},
        {"webrtc": {"browser": "firefox", "scope": "remote", "headless": true}}
      ]
    }
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import ClassVar, Iterator

from pydantic import BaseModel, Field, ValidationError

from kurento_test.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BROWSER_ID = "webrtc"


class BrowserType(str, Enum):
    CHROME = "chrome"
    FIREFOX = "firefox"


class BrowserScope(str, Enum):
    """Where the browser runs."""

    LOCAL = "local"
    REMOTE = "remote"
    DOCKER = "docker"
    SAUCELABS = "saucelabs"


class BrowserConfig(BaseModel):
    """Definition of one browser in a scenario.

    Host, port, protocol and path override the test web application location
    for this browser only (e.g. a remote node reaching the app through
    another address).
    """

    browser: BrowserType
    scope: BrowserScope = BrowserScope.LOCAL
    version: str | None = None
    platform: str | None = None
    headless: bool = False
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    protocol: str | None = None
    path: str | None = None

    def __str__(self) -> str:
        label = f"{self.browser.value}-{self.scope.value}"
        if self.version:
            label += f"-{self.version}"
        return label


class TestScenario(BaseModel):
    """Ordered set of browsers used by one test execution."""

    __test__: ClassVar[bool] = False

    browsers: dict[str, BrowserConfig] = Field(default_factory=dict)

    def add_browser(self, browser_id: str, config: BrowserConfig) -> TestScenario:
        """Add a browser and return the scenario for chaining."""
        if browser_id in self.browsers:
            raise ValueError(f"Browser id '{browser_id}' already in scenario")
        self.browsers[browser_id] = config
        return self

    def get_browser(self, browser_id: str = DEFAULT_BROWSER_ID) -> BrowserConfig:
        """Browser definition by id.

        Raises:
            KeyError: If the scenario has no such browser
        """
        return self.browsers[browser_id]

    def first(self) -> tuple[str, BrowserConfig]:
        """First browser of the scenario.

        Raises:
            ValueError: If the scenario is empty
        """
        if not self.browsers:
            raise ValueError("Scenario has no browsers")
        return next(iter(self.browsers.items()))

    def items(self) -> Iterator[tuple[str, BrowserConfig]]:
        return iter(self.browsers.items())

    def __len__(self) -> int:
        return len(self.browsers)

    def __str__(self) -> str:
        if len(self.browsers) == 1:
            return str(self.first()[1])
        return ",".join(f"{bid}={cfg}" for bid, cfg in self.browsers.items())


def _single(browser: BrowserType, **kwargs) -> TestScenario:
    return TestScenario().add_browser(
        DEFAULT_BROWSER_ID, BrowserConfig(browser=browser, **kwargs)
    )


def local_chrome() -> list[TestScenario]:
    return [_single(BrowserType.CHROME)]


def local_firefox() -> list[TestScenario]:
    return [_single(BrowserType.FIREFOX)]


def local_chrome_and_firefox() -> list[TestScenario]:
    """One scenario per local browser, Chrome first."""
    return local_chrome() + local_firefox()


def load_scenarios(path: str | Path, executions_key: str = "executions") -> list[TestScenario]:
    """Read scenarios from the executions array of a JSON test configuration.

    Args:
        path: JSON file
        executions_key: Name of the array holding the executions

    Returns:
        One scenario per execution; empty if the file has no such array

    Raises:
        ConfigurationError: If the file is unreadable or an execution is invalid
    """
    try:
        content = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(executions_key, f"cannot read {path}: {e}") from e

    executions = content.get(executions_key, []) if isinstance(content, dict) else []
    if not isinstance(executions, list):
        raise ConfigurationError(executions_key, "executions must be a JSON array")

    scenarios = []
    for index, execution in enumerate(executions):
        try:
            scenarios.append(TestScenario(browsers=execution))
        except ValidationError as e:
            raise ConfigurationError(
                executions_key, f"execution #{index} is invalid: {e}"
            ) from e

    logger.info(f"Loaded {len(scenarios)} test scenarios from {path}")
    return scenarios


def scenarios_or_default(
    path: str | Path | None,
    default: list[TestScenario],
    executions_key: str = "executions",
) -> list[TestScenario]:
    """Scenarios from the JSON file when it defines any, otherwise the default."""
    if path is not None and Path(path).is_file():
        scenarios = load_scenarios(path, executions_key)
        if scenarios:
            return scenarios
    return default
