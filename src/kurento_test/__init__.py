"""
Integration-test harness for Kurento Media Server.

Drives remote media pipelines (player, recorder and WebRTC endpoints) through
the media server's JSON-RPC API while controlling browsers with Selenium.
"""

__version__ = "0.1.0"
