"""
Media server lifecycle for tests.

The media server is started according to test.kms.scope:

- local: spawn kms.command on this machine
- docker: run test.kms.docker.image.name in a container sharing the
  workspace directory
- external (test.kms.autostart=false): use kms.ws.uri as is

Once the WebSocket port accepts connections the URI is exported as kms.url.
"""

from __future__ import annotations

import itertools
import logging
import os
import socket
import subprocess
import time
from collections import deque
from pathlib import Path
from typing import IO
from urllib.parse import urlsplit

from kurento_test.config.properties import TestProperties
from kurento_test.config.test_configuration import (
    AUTOSTART_FALSE_VALUE,
    KMS_SCOPE_DOCKER,
    KMS_SCOPE_LOCAL,
    HostConfig,
    KmsConfig,
    S3Config,
    TestFilesConfig,
)
from kurento_test.errors import ConfigurationError, ServiceError
from kurento_test.services.docker_manager import DockerManager
from kurento_test.sync import wait_for_condition

logger = logging.getLogger(__name__)

KMS_CONTAINER_PORT = 8888
KMS_CONTAINER_PATH = "/kurento"

S3_ENVIRONMENT = {
    "S3_ACCESS_BUCKET_NAME": S3Config.BUCKET_NAME,
    "S3_ACCESS_KEY_ID": S3Config.ACCESS_KEY_ID,
    "S3_SECRET_ACCESS_KEY": S3Config.SECRET_ACCESS_KEY,
    "S3_HOSTNAME": S3Config.HOSTNAME,
}

_container_ids = itertools.count(1)


def _port_open(host: str, port: int) -> bool:
    with socket.create_connection((host, port), timeout=1):
        return True


class KmsService:
    """Starts, stops and reports on one media server instance.

    Usage:
        kms = KmsService(properties)
        ws_uri = kms.start()
        client = KurentoClient.create(ws_uri)
        ...
        kms.stop()

    The fake media server used by load tests is driven by passing
    keys=FakeKmsConfig.
    """

    def __init__(
        self,
        properties: TestProperties,
        keys: type = KmsConfig,
        docker: DockerManager | None = None,
        container_name: str | None = None,
    ) -> None:
        """Initialize media server service.

        Args:
            properties: Configuration
            keys: Key group holding WS_URI, WS_URI_EXPORT, AUTOSTART and SCOPE
            docker: Docker CLI wrapper (default: DockerManager())
            container_name: Name for the docker scope container
        """
        self.properties = properties
        self.keys = keys
        self.docker = docker or DockerManager()
        self.container_name = container_name or f"kms-{os.getpid()}-{next(_container_ids)}"
        self._ws_uri: str | None = None
        self._process: subprocess.Popen | None = None
        self._log_file: Path | None = None
        self._log_handle: IO[str] | None = None
        self._container_started = False

    @property
    def ws_uri(self) -> str | None:
        """WebSocket URI of the running server (None before start)."""
        return self._ws_uri

    @property
    def scope(self) -> str:
        autostart = str(self.properties.get(self.keys.AUTOSTART)).lower()
        if autostart == AUTOSTART_FALSE_VALUE:
            return "external"
        return str(self.properties.get(self.keys.SCOPE)).lower()

    @property
    def is_running(self) -> bool:
        if self._process is not None:
            return self._process.poll() is None
        if self._container_started:
            return self.docker.is_running(self.container_name)
        return False

    def start(self) -> str:
        """Start the server for the configured scope and wait until it listens.

        Returns:
            WebSocket URI of the server, also exported as kms.url

        Raises:
            ConfigurationError: If the scope is unknown
            ServiceError: If the server process or container cannot be started
            TimeoutError: If the server does not listen within test.url.timeout
        """
        scope = self.scope
        if scope == "external":
            self._ws_uri = self.properties.get(self.keys.WS_URI)
            logger.info(f"Using external media server at {self._ws_uri}")
        elif scope == KMS_SCOPE_LOCAL:
            self._ws_uri = self._start_local()
        elif scope == KMS_SCOPE_DOCKER:
            self._ws_uri = self._start_docker()
        else:
            raise ConfigurationError(
                self.keys.SCOPE.name,
                f"must be '{KMS_SCOPE_LOCAL}' or '{KMS_SCOPE_DOCKER}' (got {scope!r})",
            )

        if scope != "external":
            self._wait_ready(self._ws_uri)

        self.properties.set(self.keys.WS_URI_EXPORT, self._ws_uri)
        return self._ws_uri

    def _start_local(self) -> str:
        ws_uri = self.properties.get(self.keys.WS_URI)
        command = self.properties.get(KmsConfig.SERVER_COMMAND)

        env = dict(os.environ)
        env["GST_DEBUG"] = self.properties.get(KmsConfig.SERVER_DEBUG)
        plugins = self.properties.get(KmsConfig.GST_PLUGINS)
        if plugins:
            env["GST_PLUGIN_PATH"] = plugins

        workspace = Path(self.properties.get(TestFilesConfig.WORKSPACE_HOST))
        workspace.mkdir(parents=True, exist_ok=True)
        self._log_file = workspace / f"{self.container_name}.log"
        self._log_handle = self._log_file.open("w")

        logger.info(f"Starting local media server: {command}")
        try:
            self._process = subprocess.Popen(
                [command],
                env=env,
                stdout=self._log_handle,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            self._close_log()
            raise ServiceError(f"Could not start media server '{command}': {e}") from e

        return ws_uri

    def _start_docker(self) -> str:
        image = self.properties.get(KmsConfig.DOCKER_IMAGE_NAME)
        force_pull = self.properties.get(KmsConfig.DOCKER_IMAGE_FORCE_PULLING)
        self.docker.pull_if_needed(image, force=force_pull)

        env = {"GST_DEBUG": self.properties.get(KmsConfig.SERVER_DEBUG)}
        for env_name, key in S3_ENVIRONMENT.items():
            value = self.properties.get(key)
            if value:
                env[env_name] = value

        workspace_host = self.properties.get(TestFilesConfig.WORKSPACE_HOST)
        workspace = self.properties.get(TestFilesConfig.WORKSPACE)

        self.docker.run(
            image,
            self.container_name,
            env=env,
            volumes={workspace_host: workspace},
        )
        self._container_started = True

        ip_address = self.docker.get_ip_address(self.container_name)
        return f"ws://{ip_address}:{KMS_CONTAINER_PORT}{KMS_CONTAINER_PATH}"

    def _wait_ready(self, ws_uri: str) -> None:
        parts = urlsplit(ws_uri)
        host = parts.hostname or "localhost"
        port = parts.port or KMS_CONTAINER_PORT
        timeout = self.properties.get(HostConfig.TEST_URL_TIMEOUT)

        logger.info(f"Waiting for media server at {host}:{port}...")
        start_time = time.time()
        ready = wait_for_condition(
            lambda: self.is_running and _port_open(host, port),
            timeout_sec=timeout,
            poll_interval_sec=0.5,
            description=f"media server at {ws_uri}",
        )
        if not ready:
            logger.error(f"Media server logs:\n{self.get_logs(tail=50)}")
            self.stop()
            raise TimeoutError(f"Media server failed to start within {timeout} seconds")

        logger.info(f"Media server ready at {ws_uri} ({time.time() - start_time:.1f}s)")

    def stop(self) -> None:
        """Stop the server and clear kms.url."""
        if self._process is not None:
            logger.info("Stopping local media server...")
            self._process.terminate()
            try:
                self._process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                logger.warning("Media server did not terminate, killing it")
                self._process.kill()
                self._process.wait()
            self._process = None
        self._close_log()

        if self._container_started:
            self.docker.remove(self.container_name)
            self._container_started = False

        self.properties.clear(self.keys.WS_URI_EXPORT)
        self._ws_uri = None

    def _close_log(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None

    def get_logs(self, tail: int = 200) -> str:
        """Last lines of the server output ("" for external servers)."""
        if self._container_started:
            return self.docker.get_logs(self.container_name, tail=tail)
        if self._log_file is not None and self._log_file.exists():
            with self._log_file.open() as f:
                return "".join(deque(f, maxlen=tail))
        return ""
