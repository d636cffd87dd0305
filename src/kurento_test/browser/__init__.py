"""
Browser automation for WebRTC scenarios.

Exports:
    WebRtcTestPage: Page object for the WebRTC test page
    create_driver: WebDriver factory for browser definitions
    WebRtcChannel, WebRtcMode: Session options
    Color: RGB color with similarity check
"""

from kurento_test.browser import color
from kurento_test.browser.channel import WebRtcChannel, WebRtcMode
from kurento_test.browser.color import Color
from kurento_test.browser.driver_factory import create_driver
from kurento_test.browser.webrtc_page import WebRtcTestPage

__all__ = [
    "Color",
    "WebRtcChannel",
    "WebRtcMode",
    "WebRtcTestPage",
    "color",
    "create_driver",
]
