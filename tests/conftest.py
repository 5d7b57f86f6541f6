"""
Pytest configuration and fixtures for runbox tests.

FakeRuntime stands in for ContainerRuntimeClient so the lifecycle can be
exercised without a Docker daemon.
"""

import os
import threading
import time

import docker
import pytest
from hypothesis import Verbosity, settings

from runbox.services.execution import (
    EnvironmentProvisioner,
    ExecutionRunner,
    LanguageRegistry,
)

settings.register_profile(
    "default",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=20,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeContainer:
    def __init__(self, number, image, command, working_dir):
        self.id = f"{number:064x}"
        self.short_id = self.id[:12]
        self.image = image
        self.command = command
        self.working_dir = working_dir
        self.files = {}
        self.killed = threading.Event()


class FakeRuntime:
    """
    Records every container operation.

    Args:
        chunks: Output chunks the container "prints"
        fail_on: Steps that raise: create, upload, start, attach, stream, remove, kill
        hang: After emitting its chunks, the stream blocks until the container is killed
        delays: Seconds a step (create, upload) blocks before doing its work
    """

    def __init__(self, chunks=(b"",), fail_on=(), hang=False, delays=None):
        self.chunks = list(chunks)
        self.fail_on = set(fail_on)
        self.hang = hang
        self.delays = dict(delays or {})
        self.created = []
        self.uploads = []
        self.started = []
        self.killed = []
        self.removed = []

    def _maybe_fail(self, step):
        if step in self.delays:
            time.sleep(self.delays[step])
        if step in self.fail_on:
            raise docker.errors.APIError(f"simulated {step} failure")

    def create_environment(self, image, command, streaming=True, working_dir=None):
        self._maybe_fail("create")
        container = FakeContainer(len(self.created) + 1, image, command, working_dir)
        self.created.append(container)
        return container

    def upload(self, container, directory, files):
        self._maybe_fail("upload")
        container.files.update({f"{directory}/{name}": content for name, content in files.items()})
        self.uploads.append(container)

    def start(self, container):
        self._maybe_fail("start")
        self.started.append(container)

    def attach_output(self, container):
        self._maybe_fail("attach")
        return self._stream(container)

    def _stream(self, container):
        for chunk in self.chunks:
            yield chunk
        if "stream" in self.fail_on:
            raise ConnectionError("simulated stream failure")
        if self.hang:
            container.killed.wait(5)

    def kill(self, container):
        self.killed.append(container)
        container.killed.set()
        self._maybe_fail("kill")

    def remove(self, container):
        self.removed.append(container)
        self._maybe_fail("remove")

    def health_check(self, images=()):
        return {
            "status": "healthy",
            "docker_available": True,
            "images": {image: True for image in sorted(set(images))},
        }


def make_runner(runtime, **kwargs):
    provisioner = EnvironmentProvisioner(runtime, workdir="/tmp")
    return ExecutionRunner(LanguageRegistry.default(), provisioner, **kwargs)


@pytest.fixture
def registry():
    return LanguageRegistry.default()


@pytest.fixture
def fake_runtime():
    """Factory for FakeRuntime instances."""
    return FakeRuntime


@pytest.fixture
def runner_factory():
    return make_runner
