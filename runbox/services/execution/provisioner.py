"""
Environment provisioning: turns a language profile plus source code into a
created, not yet started, container.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .docker_client import ContainerRuntimeClient
from .errors import ProvisionError
from .profiles import LanguageProfile

logger = logging.getLogger(__name__)


class EnvironmentState(str, Enum):
    CREATED = "created"
    PROVISIONED = "provisioned"
    STARTED = "started"
    OUTPUT_COLLECTED = "output_collected"
    REMOVED = "removed"


@dataclass
class ExecutionEnvironment:
    """
    Handle to one provisioned container.

    Owned by the single runner invocation that created it and removed before
    that invocation returns.
    """
    handle: Any
    language: str
    image: str
    state: EnvironmentState = EnvironmentState.CREATED
    failed: bool = False

    @property
    def container_id(self) -> str:
        return str(getattr(self.handle, "id", self.handle))

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    def advance(self, state: EnvironmentState) -> None:
        logger.debug(f"Container {self.short_id}: {self.state.value} -> {state.value}")
        self.state = state


class EnvironmentProvisioner:
    """Creates containers for a language profile without starting them"""

    def __init__(self, runtime: ContainerRuntimeClient, workdir: str = "/tmp"):
        self.runtime = runtime
        self.workdir = workdir

    async def provision(self, profile: LanguageProfile, code: str) -> ExecutionEnvironment:
        """
        Create a container for ``code`` under ``profile``.

        Raises:
            ProvisionError: If the container cannot be created or the source
                cannot be delivered into it
        """
        command = profile.build_command(code)

        logger.info(f"Creating container with image: {profile.image}")
        creation = asyncio.ensure_future(
            asyncio.to_thread(
                self.runtime.create_environment,
                profile.image,
                command,
                streaming=True,
                working_dir=self.workdir,
            )
        )
        try:
            handle = await asyncio.shield(creation)
        except asyncio.CancelledError:
            # The create call still finishes in its thread; remove what it makes
            await asyncio.shield(self._discard_created(creation, profile))
            raise
        except Exception as e:
            raise ProvisionError(
                f"could not create container: {e}",
                language=profile.identifier,
                image=profile.image,
            ) from e

        environment = ExecutionEnvironment(
            handle=handle,
            language=profile.identifier,
            image=profile.image,
        )

        # The runner never sees this container until provision returns,
        # so any failure or cancellation before then removes it here
        if profile.source_file:
            try:
                await asyncio.to_thread(
                    self.runtime.upload,
                    handle,
                    self.workdir,
                    {profile.source_file: code},
                )
            except asyncio.CancelledError:
                await asyncio.shield(self._discard(environment))
                raise
            except Exception as e:
                await self._discard(environment)
                raise ProvisionError(
                    f"could not write {profile.source_file}: {e}",
                    language=profile.identifier,
                    image=profile.image,
                ) from e

        environment.advance(EnvironmentState.PROVISIONED)
        return environment

    async def _discard_created(self, creation: "asyncio.Future[Any]", profile: LanguageProfile) -> None:
        try:
            handle = await creation
        except Exception as e:
            logger.info(f"Container creation for cancelled {profile.identifier} request failed: {e}")
            return
        await self._discard(
            ExecutionEnvironment(handle=handle, language=profile.identifier, image=profile.image)
        )

    async def _discard(self, environment: ExecutionEnvironment) -> None:
        environment.failed = True
        try:
            await asyncio.to_thread(self.runtime.remove, environment.handle)
        except Exception as e:
            logger.warning(f"Failed to remove container {environment.short_id}: {e}")
        environment.advance(EnvironmentState.REMOVED)
