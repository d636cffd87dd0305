"""
Configuration for the test harness.

Exports:
    TestProperties: Property resolver (overrides, environment, file, defaults)
    get_property / set_property: Process-wide property access
    HarnessSettings: Environment-driven harness settings
    TestScenario / BrowserConfig: Browser scenarios for parameterized tests
    Protocol: Media URI schemes
"""

from kurento_test.config.properties import (
    TestProperties,
    get_properties,
    get_property,
    set_properties,
    set_property,
)
from kurento_test.config.protocol import Protocol
from kurento_test.config.scenario import (
    BrowserConfig,
    BrowserScope,
    BrowserType,
    TestScenario,
    local_chrome,
    local_chrome_and_firefox,
    local_firefox,
)
from kurento_test.config.settings import HarnessSettings, get_settings

__all__ = [
    "BrowserConfig",
    "BrowserScope",
    "BrowserType",
    "HarnessSettings",
    "Protocol",
    "TestProperties",
    "TestScenario",
    "get_properties",
    "get_property",
    "get_settings",
    "local_chrome",
    "local_chrome_and_firefox",
    "local_firefox",
    "set_properties",
    "set_property",
]
