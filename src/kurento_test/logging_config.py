"""
Logging configuration for test runs.

Usage:
  KURENTO_TEST_LOG_LEVEL=DEBUG pytest --functional
  KURENTO_TEST_LOG_FOCUS=1 pytest --functional

With focus enabled only the media server client and the browser page log at
the requested level; Selenium, urllib3, websockets and the rest of the
harness are held at WARNING to keep the timeline readable.
"""

import logging

from kurento_test.config.settings import HarnessSettings, get_settings

# Modules that keep the requested level in focus mode
FOCUSED_MODULES = [
    "kurento_test.client.jsonrpc",
    "kurento_test.client.kurento_client",
    "kurento_test.client.media_objects",
    "kurento_test.browser.webrtc_page",
    "kurento_test.testing",
]

# Third-party loggers that are chatty at DEBUG
NOISY_MODULES = [
    "selenium.webdriver.remote.remote_connection",
    "urllib3.connectionpool",
    "websockets",
    "httpx",
    "uvicorn.access",
]

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(threadName)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(settings: HarnessSettings | None = None) -> None:
    """Configure the root logger for a test session.

    Args:
        settings: Harness settings (default: loaded from environment)
    """
    settings = settings or get_settings()
    log_level = settings.log_level

    logging.basicConfig(
        level=log_level if not settings.log_focus else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,  # Override any existing config
    )

    for module in NOISY_MODULES:
        logging.getLogger(module).setLevel(logging.WARNING)

    if not settings.log_focus:
        return

    for module in FOCUSED_MODULES:
        logging.getLogger(module).setLevel(log_level)

    logging.getLogger().warning(
        f"Focused logging enabled: {', '.join(FOCUSED_MODULES)} at {log_level}"
    )
