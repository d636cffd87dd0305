"""
pytest integration for media scenario tests.

Loaded with "-p kurento_test.pytest_plugin" (see pyproject.toml). Provides:

- Command line options: --functional, --property key=value, --kms-uri
- Fixtures: kurento_properties, kms_service, kurento_client, app_server,
  selenium_grid, scenario, webdriver_session, page, repository, media_test
- Browser parametrization: tests requesting "scenario" (directly or through
  "page") run once per scenario from the JSON test configuration, or from
  the @pytest.mark.scenarios(...) default
- Retries: functional tests run up to test.num.retries times; only the last
  attempt is reported
- Failure artifacts: media server logs (test.print.log) and a browser
  screenshot under test.project.path
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Generator

import pytest
from _pytest.runner import runtestprotocol
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.webdriver import WebDriver

from kurento_test.app import TestAppServer, page_url
from kurento_test.browser.driver_factory import create_driver
from kurento_test.browser.webrtc_page import WebRtcTestPage
from kurento_test.client.kurento_client import KurentoClient
from kurento_test.config.properties import TestProperties, get_properties, set_properties
from kurento_test.config.scenario import (
    DEFAULT_BROWSER_ID,
    BrowserConfig,
    BrowserScope,
    TestScenario,
    local_chrome,
    scenarios_or_default,
)
from kurento_test.config.settings import get_settings
from kurento_test.config.test_configuration import (
    AUTOSTART_FALSE_VALUE,
    AppConfig,
    HostConfig,
    KmsConfig,
    OtherConfig,
    TestFilesConfig,
    TestServicesConfig,
)
from kurento_test.errors import KurentoTestError
from kurento_test.logging_config import configure_logging
from kurento_test.repository.client import RepositoryClient
from kurento_test.services.autostart import autostart_scope
from kurento_test.services.kms import KmsService
from kurento_test.services.selenium_grid import SeleniumGrid
from kurento_test.testing.base import MediaTestContext

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Command line and configuration
# -----------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("kurento", "media server integration tests")
    group.addoption(
        "--functional",
        action="store_true",
        default=False,
        help="run functional tests (need a media server and browsers)",
    )
    group.addoption(
        "--property",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="override a test configuration property (repeatable)",
    )
    group.addoption(
        "--kms-uri",
        default=None,
        help="use an already running media server at this WebSocket URI",
    )


def parse_property_overrides(values: list[str]) -> dict[str, str]:
    """Parse --property KEY=VALUE options.

    Raises:
        pytest.UsageError: If a value has no "="
    """
    overrides = {}
    for value in values:
        key, sep, raw = value.partition("=")
        if not sep or not key.strip():
            raise pytest.UsageError(f"--property expects KEY=VALUE, got {value!r}")
        overrides[key.strip()] = raw
    return overrides


def build_properties(config: pytest.Config) -> TestProperties:
    """Resolver for the session: JSON file, then command line overrides."""
    properties = TestProperties.from_config_file(get_settings().config_file)
    for key, value in parse_property_overrides(config.getoption("--property")).items():
        properties.set(key, value)

    kms_uri = config.getoption("--kms-uri")
    if kms_uri:
        properties.set(KmsConfig.WS_URI, kms_uri)
        properties.set(KmsConfig.AUTOSTART, AUTOSTART_FALSE_VALUE)
    return properties


def pytest_configure(config: pytest.Config) -> None:
    """Register markers, set up logging and the session's properties."""
    config.addinivalue_line(
        "markers",
        "functional: needs a media server and browsers (run with --functional)",
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "scenarios(list): default browser scenarios when the JSON configuration has none",
    )

    configure_logging(get_settings())
    set_properties(build_properties(config))


def pytest_unconfigure(config: pytest.Config) -> None:
    set_properties(None)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip functional tests unless --functional is given."""
    if config.getoption("--functional"):
        return

    skip_functional = pytest.mark.skip(reason="functional test (use --functional to run)")
    for item in items:
        if "functional" in item.keywords:
            item.add_marker(skip_functional)


def pytest_generate_tests(metafunc: pytest.Metafunc) -> None:
    """Parametrize tests using the "scenario" fixture over browser scenarios."""
    if "scenario" not in metafunc.fixturenames:
        return

    marker = metafunc.definition.get_closest_marker("scenarios")
    default = list(marker.args[0]) if marker and marker.args else local_chrome()
    properties = get_properties()
    scenarios = scenarios_or_default(
        get_settings().config_file,
        default,
        properties.get(HostConfig.TEST_CONFIG_EXECUTIONS),
    )
    metafunc.parametrize("scenario", scenarios, ids=[str(s) for s in scenarios])


# -----------------------------------------------------------------------------
# Retries and failure artifacts
# -----------------------------------------------------------------------------


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_protocol(item: pytest.Item, nextitem: pytest.Item | None) -> bool | None:
    """Re-run failing functional tests, reporting only the last attempt."""
    if item.get_closest_marker("functional") is None:
        return None

    attempts = max(1, get_properties().get(TestServicesConfig.NUM_RETRIES))
    if attempts == 1:
        return None

    item.ihook.pytest_runtest_logstart(nodeid=item.nodeid, location=item.location)
    for attempt in range(1, attempts + 1):
        reports = runtestprotocol(item, nextitem=nextitem, log=False)
        if not any(report.failed for report in reports) or attempt == attempts:
            break
        logger.warning(f"{item.nodeid} failed (attempt {attempt}/{attempts}), retrying")

    for report in reports:
        item.ihook.pytest_runtest_logreport(report=report)
    item.ihook.pytest_runtest_logfinish(nodeid=item.nodeid, location=item.location)
    return True


def artifact_path(properties: TestProperties, nodeid: str, suffix: str) -> Path:
    """Path under test.project.path for an artifact of a test."""
    name = re.sub(r"[^\w.-]+", "_", nodeid).strip("_")
    return Path(properties.get(TestFilesConfig.PROJECT_PATH)) / f"{name}{suffix}"


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo):
    outcome = yield
    report = outcome.get_result()
    if report.when != "call" or not report.failed:
        return

    funcargs = getattr(item, "funcargs", None) or {}
    properties = get_properties()

    kms = funcargs.get("kms_service")
    if kms is not None and properties.get(TestServicesConfig.PRINT_LOG):
        logs = kms.get_logs()
        if logs:
            report.sections.append(("media server log", logs))

    page = funcargs.get("page")
    if page is not None:
        path = artifact_path(properties, item.nodeid, ".png")
        try:
            page.save_screenshot(path)
            logger.info(f"Saved screenshot of failed test to {path}")
        except WebDriverException as e:
            logger.warning(f"Could not save screenshot: {e.msg}")


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


def _kms_scope(fixture_name: str, config: pytest.Config) -> str:
    key = KmsConfig.AUTOSTART
    return autostart_scope(get_properties().get(key), key.name) or "session"


def _app_scope(fixture_name: str, config: pytest.Config) -> str:
    key = AppConfig.AUTOSTART
    return autostart_scope(get_properties().get(key), key.name) or "session"


@pytest.fixture(scope="session")
def kurento_properties() -> TestProperties:
    """Properties resolved for this session."""
    return get_properties()


@pytest.fixture(scope=_kms_scope)
def kms_service(kurento_properties: TestProperties) -> Generator[KmsService, None, None]:
    """Media server, started per test, class or session according to test.kms.autostart."""
    service = KmsService(kurento_properties)
    service.start()
    yield service
    service.stop()


@pytest.fixture
def kurento_client(kms_service: KmsService) -> Generator[KurentoClient, None, None]:
    """Client connected to the media server."""
    with KurentoClient.create(kms_service.ws_uri) as client:
        yield client


@pytest.fixture(scope=_app_scope)
def app_server(kurento_properties: TestProperties) -> Generator[TestAppServer | None, None, None]:
    """Test web app, started according to test.app.autostart (None when disabled)."""
    if autostart_scope(kurento_properties.get(AppConfig.AUTOSTART)) is None:
        yield None
        return

    server = TestAppServer.from_properties(kurento_properties)
    server.start(timeout=kurento_properties.get(HostConfig.TEST_URL_TIMEOUT))
    yield server
    server.stop()


@pytest.fixture(scope="session")
def selenium_grid(kurento_properties: TestProperties) -> Generator[SeleniumGrid, None, None]:
    """Docker Selenium grid; containers are only started for docker-scope browsers."""
    grid = SeleniumGrid(kurento_properties)
    yield grid
    grid.stop()


def _browser_config(scenario: TestScenario) -> BrowserConfig:
    if DEFAULT_BROWSER_ID in scenario.browsers:
        return scenario.get_browser(DEFAULT_BROWSER_ID)
    return scenario.first()[1]


@pytest.fixture
def webdriver_session(
    scenario: TestScenario,
    kurento_properties: TestProperties,
    selenium_grid: SeleniumGrid,
) -> Generator[WebDriver, None, None]:
    """WebDriver for the scenario's browser."""
    config = _browser_config(scenario)
    remote_url = None
    if config.scope is BrowserScope.DOCKER:
        remote_url = selenium_grid.start([config.browser])

    driver = create_driver(config, kurento_properties, remote_url=remote_url)
    yield driver
    driver.quit()


@pytest.fixture
def page(
    webdriver_session: WebDriver,
    scenario: TestScenario,
    kurento_properties: TestProperties,
    app_server: TestAppServer | None,
) -> Generator[WebRtcTestPage, None, None]:
    """WebRTC test page loaded in the scenario's browser."""
    test_page = WebRtcTestPage(
        webdriver_session,
        timeout=kurento_properties.get(OtherConfig.PAGE_TIMEOUT),
        color_distance=kurento_properties.get(OtherConfig.COLOR_DISTANCE),
        threshold_time=kurento_properties.get(OtherConfig.TIME_THRESHOLD),
    )
    test_page.open(page_url(kurento_properties, _browser_config(scenario)))
    yield test_page
    try:
        test_page.close()
    except (WebDriverException, KurentoTestError) as e:
        logger.warning(f"Could not close test page: {e}")


@pytest.fixture
def repository(kurento_properties: TestProperties) -> Generator[RepositoryClient, None, None]:
    """Client for the media repository at repository.url."""
    with RepositoryClient(kurento_properties.get(OtherConfig.REPOSITORY_URL)) as client:
        yield client


@pytest.fixture
def media_test(
    request: pytest.FixtureRequest,
    kurento_properties: TestProperties,
    kurento_client: KurentoClient,
) -> MediaTestContext:
    """Context for scenario helpers; includes the page when the test uses one."""
    test_page = request.getfixturevalue("page") if "page" in request.fixturenames else None
    return MediaTestContext(
        kurento_properties,
        kurento_client=kurento_client,
        page=test_page,
        test_name=request.node.name,
    )
