"""
Thin wrapper around the Docker SDK exposing exactly the container operations
the sandbox lifecycle needs.

All methods are blocking; async callers dispatch them to a worker thread.
"""

import io
import logging
import tarfile
import time
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import docker
from docker.models.containers import Container

logger = logging.getLogger(__name__)


class ContainerRuntimeClient:
    """
    Creates, starts, streams and removes single-use containers.

    Containers are created with no TTY and no stdin; the caller owns the
    returned handle and is responsible for removing it.
    """

    def __init__(self, client: Optional[docker.DockerClient] = None, pull_missing: bool = True):
        """
        Args:
            client: Pre-configured DockerClient (connects from environment if None)
            pull_missing: Pull an image once when container creation reports it missing
        """
        self.pull_missing = pull_missing
        try:
            self.client = client or docker.from_env()
            self.client.ping()
            logger.info("Docker client initialized successfully")
        except docker.errors.DockerException as e:
            logger.error(f"Failed to initialize Docker client: {e}")
            raise RuntimeError(
                "Docker is not available. Please ensure Docker is installed and running."
            ) from e

    def create_environment(
        self,
        image: str,
        command: List[str],
        streaming: bool = True,
        working_dir: Optional[str] = None,
    ) -> Container:
        """Create (but do not start) a container running ``command``."""
        kwargs: Dict[str, Any] = dict(
            command=command,
            detach=not streaming,
            tty=False,
            stdin_open=False,
            working_dir=working_dir,
            environment={
                'PYTHONUNBUFFERED': '1',
                'PYTHONDONTWRITEBYTECODE': '1'
            },
        )
        try:
            return self.client.containers.create(image, **kwargs)
        except docker.errors.ImageNotFound:
            if not self.pull_missing:
                raise
            logger.info(f"Image {image} not present locally, pulling...")
            self.client.images.pull(image)
            return self.client.containers.create(image, **kwargs)

    def upload(self, container: Container, directory: str, files: Mapping[str, str]) -> None:
        """Write ``files`` (name -> text) into ``directory`` of a created container."""
        archive = build_archive(files)
        if not container.put_archive(directory, archive):
            raise docker.errors.APIError(
                f"Failed to upload {', '.join(sorted(files))} to {directory}"
            )

    def start(self, container: Container) -> None:
        container.start()

    def attach_output(self, container: Container) -> Iterator[bytes]:
        """Follow combined stdout/stderr until the container's process exits."""
        return container.logs(stdout=True, stderr=True, stream=True, follow=True)

    def kill(self, container: Container) -> None:
        container.kill()

    def remove(self, container: Container) -> None:
        try:
            container.remove(force=True)
        except docker.errors.NotFound:
            logger.debug(f"Container {container.short_id} already removed")

    def health_check(self, images: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Check if Docker is healthy and which images are available locally.

        Returns:
            Dict with status and details
        """
        try:
            self.client.ping()

            available = {}
            for image in sorted(set(images)):
                try:
                    self.client.images.get(image)
                    available[image] = True
                except docker.errors.ImageNotFound:
                    available[image] = False

            return {
                "status": "healthy",
                "docker_available": True,
                "images": available,
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "docker_available": False,
                "error": str(e)
            }


def build_archive(files: Mapping[str, str]) -> bytes:
    """Pack text files into an in-memory tar archive for put_archive."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            info.mode = 0o644
            info.mtime = int(time.time())
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()
