"""
Environment services started around tests.

Exports:
    DockerManager: docker CLI wrapper
    KmsService: Media server lifecycle (local, docker or external)
    SeleniumGrid: Selenium hub and nodes in Docker
    autostart_scope: pytest scope for an autostart setting
"""

from kurento_test.services.autostart import autostart_scope
from kurento_test.services.docker_manager import ContainerStatus, DockerManager
from kurento_test.services.kms import KmsService
from kurento_test.services.selenium_grid import SeleniumGrid

__all__ = [
    "ContainerStatus",
    "DockerManager",
    "KmsService",
    "SeleniumGrid",
    "autostart_scope",
]
