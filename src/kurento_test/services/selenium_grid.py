"""
Selenium grid in Docker.

Used for browsers with scope "docker": a hub container plus one node
container per browser type. With test.selenium.record on, nodes run the VNC
debug images and a recorder container captures the node screen into the
workspace.
"""

from __future__ import annotations

import logging

import httpx

from kurento_test.config.properties import TestProperties
from kurento_test.config.scenario import BrowserType
from kurento_test.config.test_configuration import (
    DockerConfig,
    HostConfig,
    SeleniumConfig,
    TestFilesConfig,
)
from kurento_test.services.docker_manager import DockerManager
from kurento_test.sync import wait_for_condition

logger = logging.getLogger(__name__)

HUB_CONTAINER_PORT = 4444
RECORDINGS_PATH = "/recordings"

NODE_IMAGES = {
    BrowserType.CHROME: (DockerConfig.NODE_CHROME_IMAGE, DockerConfig.NODE_CHROME_DEBUG_IMAGE),
    BrowserType.FIREFOX: (DockerConfig.NODE_FIREFOX_IMAGE, DockerConfig.NODE_FIREFOX_DEBUG_IMAGE),
}


class SeleniumGrid:
    """Hub and browser nodes running as containers.

    Usage:
        grid = SeleniumGrid(properties)
        grid.start([BrowserType.CHROME])
        driver = create_driver(config, properties, remote_url=grid.hub_url)
        ...
        grid.stop()
    """

    def __init__(self, properties: TestProperties, docker: DockerManager | None = None) -> None:
        self.properties = properties
        self.docker = docker or DockerManager()
        self.hub_name = properties.get(DockerConfig.HUB_CONTAINER_NAME)
        self._hub_ip: str | None = None
        self._containers: list[str] = []

    @property
    def hub_url(self) -> str | None:
        """WebDriver URL of the hub (None before start)."""
        if self._hub_ip is None:
            return None
        return f"http://{self._hub_ip}:{HUB_CONTAINER_PORT}/wd/hub"

    @property
    def record(self) -> bool:
        return self.properties.get(SeleniumConfig.RECORD)

    def start(self, browsers: list[BrowserType]) -> str:
        """Start the hub and one node per browser type.

        Returns:
            Hub URL

        Raises:
            ServiceError: If a container cannot be started
            TimeoutError: If the hub is not ready within test.url.timeout
        """
        if self._hub_ip is None:
            self._start_hub()

        for browser in dict.fromkeys(browsers):
            self._start_node(browser)

        return self.hub_url

    def _start_hub(self) -> None:
        image = self.properties.get(DockerConfig.HUB_IMAGE)
        self.docker.pull_if_needed(image)
        self.docker.run(image, self.hub_name)
        self._containers.append(self.hub_name)
        self._hub_ip = self.docker.get_ip_address(self.hub_name)

        timeout = self.properties.get(HostConfig.TEST_URL_TIMEOUT)
        if not wait_for_condition(
            self._hub_ready,
            timeout_sec=timeout,
            poll_interval_sec=1.0,
            description="selenium hub",
        ):
            logger.error(f"Hub logs:\n{self.docker.get_logs(self.hub_name, tail=50)}")
            raise TimeoutError(f"Selenium hub failed to start within {timeout} seconds")

        logger.info(f"Selenium hub ready at {self.hub_url}")

    def _hub_ready(self) -> bool:
        response = httpx.get(f"{self.hub_url}/status", timeout=2.0)
        return response.status_code == 200

    def _start_node(self, browser: BrowserType) -> None:
        image_key, debug_image_key = NODE_IMAGES[browser]
        image = self.properties.get(debug_image_key if self.record else image_key)
        node_name = f"{self.hub_name}-node-{browser.value}"
        if node_name in self._containers:
            return

        self.docker.pull_if_needed(image)
        self.docker.run(image, node_name, links={self.hub_name: "hub"})
        self._containers.append(node_name)

        if self.record:
            self._start_recorder(node_name)

    def _start_recorder(self, node_name: str) -> None:
        image = self.properties.get(DockerConfig.VNCRECORDER_IMAGE)
        prefix = self.properties.get(DockerConfig.VNCRECORDER_CONTAINER_NAME)
        recorder_name = f"{prefix}-{node_name}"
        workspace = self.properties.get(TestFilesConfig.WORKSPACE_HOST)

        self.docker.pull_if_needed(image)
        self.docker.run(
            image,
            recorder_name,
            volumes={workspace: RECORDINGS_PATH},
            links={node_name: "vnc"},
            args=["-o", f"{RECORDINGS_PATH}/{node_name}.flv"],
        )
        self._containers.append(recorder_name)

    def stop(self) -> None:
        """Remove every container started by this grid, newest first."""
        for name in reversed(self._containers):
            self.docker.remove(name)
        self._containers.clear()
        self._hub_ip = None
