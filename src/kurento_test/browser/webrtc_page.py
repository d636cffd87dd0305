"""
Page object for the WebRTC test page.

Wraps a WebDriver session showing webrtc.html and exposes what scenarios
assert on: media element events ("playing", "ended"), the color rendered in
the remote video, and its elapsed play time.

All WebDriver calls happen on the calling (test) thread. ICE candidates found
by the media server arrive on the client's reader thread; they are queued and
pushed into the page the next time the test thread talks to the browser.
"""

from __future__ import annotations

import logging
import queue
import time
from pathlib import Path

from selenium.common.exceptions import TimeoutException
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support.ui import WebDriverWait

from kurento_test.browser.channel import WebRtcChannel, WebRtcMode
from kurento_test.browser.color import Color
from kurento_test.client.kurento_client import ListenerSubscription
from kurento_test.client.media_objects import WebRtcEndpoint
from kurento_test.client.models import IceCandidate, IceCandidateFoundEvent
from kurento_test.errors import BrowserError

logger = logging.getLogger(__name__)

PAGE_READY_SCRIPT = "return typeof window.kurentoTest !== 'undefined';"
ICE_GATHERING_TIMEOUT_MS = 5000


class WebRtcTestPage:
    """Browser page hosting one WebRTC session.

    Usage:
        page = WebRtcTestPage(driver, timeout=60)
        page.open("http://127.0.0.1:8443/webrtc.html")
        page.subscribe_events("playing")
        page.init_webrtc(webrtc_ep, WebRtcChannel.AUDIO_AND_VIDEO, WebRtcMode.RCV_ONLY)
        player.play()
        assert page.wait_for_event("playing")
        assert page.similar_color(GREEN)
    """

    def __init__(
        self,
        driver: WebDriver,
        timeout: float = 60,
        color_distance: float = 60,
        threshold_time: float = 5.0,
        poll_interval: float = 0.5,
    ) -> None:
        """Initialize page object.

        Args:
            driver: WebDriver session
            timeout: Seconds to wait for events and colors
            color_distance: Max RGB distance for two colors to be similar
            threshold_time: Max seconds between expected and real play time
            poll_interval: Seconds between polls of the page
        """
        self.driver = driver
        self.color_distance = color_distance
        self.threshold_time = threshold_time
        self.poll_interval = poll_interval
        self._timeout = timeout
        self._url: str | None = None
        self._endpoint: WebRtcEndpoint | None = None
        self._subscription: ListenerSubscription | None = None
        self._remote_candidates: queue.Queue[IceCandidate] = queue.Queue()

    @property
    def timeout(self) -> float:
        """Seconds scenarios should wait for asynchronous outcomes."""
        return self._timeout

    def open(self, url: str) -> None:
        """Load the test page and wait for its script to be ready.

        Raises:
            BrowserError: If the page does not load within the timeout
        """
        self._url = url
        self.driver.get(url)
        self._wait_ready()
        logger.info(f"Opened test page {url}")

    def _wait_ready(self) -> None:
        try:
            WebDriverWait(self.driver, self._timeout, poll_frequency=self.poll_interval).until(
                lambda d: d.execute_script(PAGE_READY_SCRIPT)
            )
        except TimeoutException as e:
            raise BrowserError(f"Test page not ready after {self._timeout}s") from e

    def subscribe_events(self, *event_names: str) -> None:
        """Start recording the given events of the remote video element."""
        self.driver.execute_script("kurentoTest.subscribeEvents(arguments[0]);", list(event_names))

    def wait_for_event(self, event_name: str) -> bool:
        """Wait until a subscribed event has fired.

        Returns:
            True if the event fired within the timeout
        """
        try:
            WebDriverWait(self.driver, self._timeout, poll_frequency=self.poll_interval).until(
                lambda d: self._event_fired(event_name)
            )
            return True
        except TimeoutException:
            logger.warning(f"Timeout waiting for '{event_name}' event ({self._timeout}s)")
            return False

    def _event_fired(self, event_name: str) -> bool:
        self.flush_ice_candidates()
        return bool(
            self.driver.execute_script("return kurentoTest.eventFired(arguments[0]);", event_name)
        )

    def init_webrtc(
        self,
        endpoint: WebRtcEndpoint,
        channel: WebRtcChannel = WebRtcChannel.AUDIO_AND_VIDEO,
        mode: WebRtcMode = WebRtcMode.RCV_ONLY,
    ) -> None:
        """Negotiate a WebRTC session between the page and endpoint.

        The browser gathers its candidates before returning the offer, so
        only the media server's candidates are trickled.

        Raises:
            BrowserError: If the browser fails to create the offer or apply
                the answer
        """
        self._endpoint = endpoint
        self._subscription = endpoint.add_ice_candidate_found_listener(self._on_ice_candidate)

        offer = self.driver.execute_async_script(
            "var done = arguments[arguments.length - 1];"
            "kurentoTest.createOffer(arguments[0], arguments[1], arguments[2], done);",
            channel.value,
            mode.value,
            ICE_GATHERING_TIMEOUT_MS,
        )
        if not offer or "error" in offer:
            raise BrowserError(f"Browser could not create SDP offer: {offer}")

        answer = endpoint.process_offer(offer["sdp"])

        result = self.driver.execute_async_script(
            "var done = arguments[arguments.length - 1];"
            "kurentoTest.processAnswer(arguments[0], done);",
            answer,
        )
        if not result or "error" in result:
            raise BrowserError(f"Browser could not apply SDP answer: {result}")

        endpoint.gather_candidates()
        self.flush_ice_candidates()
        logger.info(f"WebRTC session negotiated ({channel.value}, {mode.value})")

    def _on_ice_candidate(self, event: IceCandidateFoundEvent) -> None:
        self._remote_candidates.put(event.candidate)

    def flush_ice_candidates(self) -> int:
        """Push queued media server candidates into the page.

        Returns:
            Number of candidates pushed
        """
        pushed = 0
        while True:
            try:
                candidate = self._remote_candidates.get_nowait()
            except queue.Empty:
                return pushed
            self.driver.execute_script(
                "kurentoTest.addIceCandidate(arguments[0]);", candidate.to_browser()
            )
            pushed += 1

    def get_color(self, x: int | None = None, y: int | None = None) -> Color | None:
        """Color of one pixel of the remote video (center by default).

        Returns:
            The color, or None while the video has no frames
        """
        values = self.driver.execute_script(
            "return kurentoTest.getColor(arguments[0], arguments[1]);", x, y
        )
        return Color.from_sequence(values) if values else None

    def similar_color(self, expected: Color, x: int | None = None, y: int | None = None) -> bool:
        """Wait until the remote video shows a color similar to expected.

        Returns:
            True if a similar color was seen within the timeout
        """
        deadline = time.monotonic() + self._timeout
        actual: Color | None = None
        while True:
            self.flush_ice_candidates()
            actual = self.get_color(x, y)
            if actual is not None and actual.is_similar(expected, self.color_distance):
                return True
            if time.monotonic() >= deadline:
                break
            time.sleep(self.poll_interval)

        logger.warning(
            f"Color mismatch at ({x}, {y}): expected {expected}, real {actual} "
            f"(max distance {self.color_distance})"
        )
        return False

    def get_current_time(self) -> float:
        """Elapsed play time of the remote video in seconds."""
        return float(self.driver.execute_script("return kurentoTest.getCurrentTime();"))

    def compare(self, expected: float, real: float) -> bool:
        """Whether two play times match within threshold_time."""
        return abs(expected - real) <= self.threshold_time

    def close(self) -> None:
        """Close the browser side of the session and stop listening for candidates."""
        if self._endpoint is not None and self._subscription is not None:
            self._endpoint.remove_event_listener(self._subscription)
        self._endpoint = None
        self._subscription = None
        while not self._remote_candidates.empty():
            self._remote_candidates.get_nowait()
        self.driver.execute_script("if (window.kurentoTest) { kurentoTest.stop(); }")

    def reload(self) -> None:
        """Reload the page, dropping the current WebRTC session."""
        self.close()
        self.driver.refresh()
        self._wait_ready()
        logger.info("Reloaded test page")

    def save_screenshot(self, path: str | Path) -> bool:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        return self.driver.save_screenshot(str(path))
