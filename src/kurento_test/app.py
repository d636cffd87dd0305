"""
Test web application.

Serves the WebRTC test page that browsers load during scenarios. The app is
started by the pytest plugin according to test.app.autostart and runs in a
background thread of the test process.
"""

from __future__ import annotations

import logging
import tempfile
import threading
from pathlib import Path
from typing import Sequence

import trustme
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from kurento_test.config.properties import TestProperties
from kurento_test.config.scenario import BrowserConfig
from kurento_test.config.test_configuration import HostConfig
from kurento_test.errors import ServiceError
from kurento_test.sync import wait_for_condition

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "browser" / "static"
PAGE_NAME = "webrtc.html"
DEFAULT_CERT_HOSTNAMES = ("localhost", "127.0.0.1")


def _mount_path(path: str) -> str:
    path = "/" + path.strip("/")
    return path if path != "/" else ""


def create_app(path: str = "/") -> FastAPI:
    """Create the app serving the test page under path."""
    app = FastAPI(title="Kurento test app", docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.mount(_mount_path(path) or "/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    return app


def page_url(properties: TestProperties, browser: BrowserConfig | None = None) -> str:
    """URL of the test page as seen by a browser.

    Host, port, protocol and path of the browser definition take precedence
    over test.host / test.public.ip, test.port / server.port, test.protocol
    and test.path.
    """
    host = (browser and browser.host) or properties.get(HostConfig.TEST_HOST) or properties.get(
        HostConfig.TEST_PUBLIC_IP
    )
    port = (browser and browser.port) or properties.get(HostConfig.TEST_PORT) or properties.get(
        HostConfig.APP_HTTP_PORT
    )
    protocol = (browser and browser.protocol) or properties.get(HostConfig.TEST_PROTOCOL)
    path = (browser and browser.path) or properties.get(HostConfig.TEST_PATH)

    if not path.endswith("/"):
        path += "/"
    if not path.startswith("/"):
        path = "/" + path
    return f"{protocol}://{host}:{port}{path}{PAGE_NAME}"


class TestAppServer:
    """Runs the test app with uvicorn on a background thread.

    With tls on and no certificate configured, a throwaway certificate for
    hostnames is issued by a local CA (available as ca while running).

    Usage:
        server = TestAppServer(port=8443, tls=True)
        server.start()
        # ... browsers load page_url(properties) ...
        server.stop()
    """

    __test__ = False

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8443,
        path: str = "/",
        tls: bool = False,
        ssl_certfile: str | None = None,
        ssl_keyfile: str | None = None,
        hostnames: Sequence[str] = DEFAULT_CERT_HOSTNAMES,
    ) -> None:
        self.host = host
        self.port = port
        self.path = path
        self.tls = tls or ssl_certfile is not None
        self.ssl_certfile = ssl_certfile
        self.ssl_keyfile = ssl_keyfile
        self.hostnames = list(dict.fromkeys(hostnames))
        self.ca: trustme.CA | None = None
        self._cert_dir: tempfile.TemporaryDirectory | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def from_properties(cls, properties: TestProperties) -> TestAppServer:
        hostnames = [
            name
            for name in (
                properties.get(HostConfig.TEST_HOST),
                properties.get(HostConfig.TEST_PUBLIC_IP),
            )
            if name
        ]
        return cls(
            port=properties.get(HostConfig.APP_HTTP_PORT),
            path=properties.get(HostConfig.TEST_PATH),
            tls=properties.get(HostConfig.TEST_PROTOCOL) == "https",
            ssl_certfile=properties.get(HostConfig.APP_SSL_CERTFILE),
            ssl_keyfile=properties.get(HostConfig.APP_SSL_KEYFILE),
            hostnames=[*DEFAULT_CERT_HOSTNAMES, *hostnames],
        )

    @property
    def scheme(self) -> str:
        return "https" if self.tls else "http"

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _issue_certificate(self) -> str:
        self.ca = trustme.CA()
        self._cert_dir = tempfile.TemporaryDirectory(prefix="kurento-test-app-")
        certfile = Path(self._cert_dir.name) / "server.pem"
        self.ca.issue_cert(*self.hostnames).private_key_and_cert_chain_pem.write_to_path(
            str(certfile)
        )
        logger.info(f"Issued test app certificate for {', '.join(self.hostnames)}")
        return str(certfile)

    def start(self, timeout: float = 30) -> None:
        """Start serving and wait until the socket is bound.

        Raises:
            ServiceError: If the server exits while starting
            TimeoutError: If the server does not start within timeout
        """
        if self.is_running:
            logger.warning("Test app already running")
            return

        certfile = self.ssl_certfile
        if self.tls and certfile is None:
            certfile = self._issue_certificate()

        config = uvicorn.Config(
            create_app(self.path),
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
            ssl_certfile=certfile,
            ssl_keyfile=self.ssl_keyfile,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._server.run, name="test-app", daemon=True)
        self._thread.start()

        started = wait_for_condition(
            lambda: self._server.started or not self._thread.is_alive(),
            timeout_sec=timeout,
            poll_interval_sec=0.1,
            description="test app start",
        )
        if not started:
            self.stop()
            raise TimeoutError(f"Test app did not start within {timeout} seconds")
        if not self._server.started:
            self.stop()
            raise ServiceError(f"Test app exited while starting on {self.host}:{self.port}")

        if self.port == 0:
            self.port = self._server.servers[0].sockets[0].getsockname()[1]
        logger.info(f"Test app serving {self.scheme} on {self.host}:{self.port}{self.path}")

    def stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=10)
        if self._cert_dir is not None:
            self._cert_dir.cleanup()
        self._server = None
        self._thread = None
        self._cert_dir = None
        self.ca = None
        logger.info("Test app stopped")
