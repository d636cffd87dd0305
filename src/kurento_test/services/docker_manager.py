"""Docker container management for test services.

Thin wrapper over the docker CLI used to run the media server and the
Selenium grid in containers.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Any

from kurento_test.errors import ServiceError

logger = logging.getLogger(__name__)


@dataclass
class ContainerStatus:
    """Status of a container as reported by docker inspect."""

    name: str
    state: str
    is_running: bool
    ip_address: str | None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ContainerStatus:
        """Create ContainerStatus from docker inspect JSON output."""
        state = data.get("State") or {}
        networks = (data.get("NetworkSettings") or {}).get("Networks") or {}
        ip_address = (data.get("NetworkSettings") or {}).get("IPAddress") or None
        if not ip_address:
            ip_address = next(
                (net.get("IPAddress") for net in networks.values() if net.get("IPAddress")),
                None,
            )
        return cls(
            name=data.get("Name", "").lstrip("/"),
            state=state.get("Status", ""),
            is_running=bool(state.get("Running")),
            ip_address=ip_address,
        )


class DockerManager:
    """Runs containers through the docker CLI.

    Usage:
        docker = DockerManager()
        docker.pull_if_needed("kurento/kurento-media-server:dev")
        docker.run("kurento/kurento-media-server:dev", "kms", env={"GST_DEBUG": "3"})
        ip = docker.get_ip_address("kms")
        docker.remove("kms")
    """

    def __init__(self, docker_command: str = "docker") -> None:
        self.docker_command = docker_command

    def _run_docker(
        self,
        *args: str,
        capture_output: bool = True,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run docker command.

        Args:
            *args: Command arguments
            capture_output: Whether to capture stdout/stderr
            check: Whether to raise on non-zero exit

        Returns:
            Completed process result

        Raises:
            ServiceError: If docker is missing or the command fails with check
        """
        cmd = [self.docker_command, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=capture_output, text=True, check=check)
        except FileNotFoundError as e:
            raise ServiceError(f"docker command not found: {self.docker_command}") from e
        except subprocess.CalledProcessError as e:
            raise ServiceError(f"docker {args[0]} failed: {(e.stderr or '').strip()}") from e

    def image_exists(self, image: str) -> bool:
        result = self._run_docker("image", "inspect", image, check=False)
        return result.returncode == 0

    def pull(self, image: str) -> None:
        logger.info(f"Pulling image {image}")
        self._run_docker("pull", image)

    def pull_if_needed(self, image: str, force: bool = False) -> None:
        """Pull image when forced or when it is not available locally."""
        if force or not self.image_exists(image):
            self.pull(image)

    def run(
        self,
        image: str,
        name: str,
        env: dict[str, str] | None = None,
        volumes: dict[str, str] | None = None,
        ports: dict[int, int] | None = None,
        links: dict[str, str] | None = None,
        args: list[str] | None = None,
    ) -> str:
        """Start a detached container.

        Args:
            image: Image to run
            name: Container name
            env: Environment variables
            volumes: Host path -> container path
            ports: Host port -> container port
            links: Container name -> alias
            args: Arguments passed to the image entrypoint

        Returns:
            Container id
        """
        cmd = ["run", "-d", "--name", name]
        for key, value in (env or {}).items():
            cmd.extend(["-e", f"{key}={value}"])
        for host_path, container_path in (volumes or {}).items():
            cmd.extend(["-v", f"{host_path}:{container_path}"])
        for host_port, container_port in (ports or {}).items():
            cmd.extend(["-p", f"{host_port}:{container_port}"])
        for container, alias in (links or {}).items():
            cmd.extend(["--link", f"{container}:{alias}"])
        cmd.append(image)
        cmd.extend(args or [])

        logger.info(f"Starting container {name} ({image})")
        result = self._run_docker(*cmd)
        return result.stdout.strip()

    def remove(self, name: str) -> None:
        """Force-remove a container; missing containers are ignored."""
        logger.info(f"Removing container {name}")
        self._run_docker("rm", "-f", "-v", name, check=False)

    def get_logs(self, name: str, tail: int = 100) -> str:
        """Get container logs.

        Args:
            name: Container name
            tail: Number of lines to retrieve

        Returns:
            Log output
        """
        result = self._run_docker("logs", "--tail", str(tail), name, check=False)
        return result.stdout + result.stderr

    def inspect(self, name: str) -> ContainerStatus | None:
        """Status of a container, or None if it does not exist."""
        result = self._run_docker("inspect", name, check=False)
        if result.returncode != 0:
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse inspect output for {name}")
            return None
        return ContainerStatus.from_json(data[0]) if data else None

    def is_running(self, name: str) -> bool:
        status = self.inspect(name)
        return status is not None and status.is_running

    def get_ip_address(self, name: str) -> str:
        """IP address of a running container.

        Raises:
            ServiceError: If the container does not exist or has no address
        """
        status = self.inspect(name)
        if status is None or not status.ip_address:
            raise ServiceError(f"No IP address for container {name}")
        return status.ip_address
