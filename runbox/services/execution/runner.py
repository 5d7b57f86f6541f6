"""
Sandboxed execution lifecycle for runbox.

One request, one container: resolve the language, provision a fresh
container, start it, follow its output to the end and remove it again,
whatever happened along the way.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Optional, Tuple

from .docker_client import ContainerRuntimeClient
from .errors import (
    CapacityError,
    EmptyCodeError,
    ExecutionTimeoutError,
    PayloadTooLargeError,
    RemovalError,
    StartError,
    StreamError,
)
from .profiles import LanguageProfile, LanguageRegistry
from .provisioner import EnvironmentProvisioner, EnvironmentState, ExecutionEnvironment
from .sanitizer import sanitize

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Captured output of one execution"""
    language: str
    raw_output: bytes
    sanitized_output: str
    execution_time: float = 0.0
    truncated: bool = False


class ExecutionRunner:
    """
    Runs untrusted code in single-use containers.

    Guarantees:
    - Every container created for a request is removed before the request
      returns, on success, failure, timeout or cancellation
    - Containers are never shared or reused between requests
    - At most ``max_concurrency`` containers run at once; extra requests wait
      up to ``admission_timeout`` seconds for a slot
    - Removal failures are logged and never replace the request's outcome
    """

    def __init__(
        self,
        registry: LanguageRegistry,
        provisioner: EnvironmentProvisioner,
        execution_timeout: Optional[float] = 10.0,
        max_concurrency: int = 4,
        admission_timeout: Optional[float] = 30.0,
        max_code_bytes: int = 64 * 1024,
        max_output_bytes: int = 1024 * 1024,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.registry = registry
        self.provisioner = provisioner
        self.runtime = provisioner.runtime
        self.execution_timeout = execution_timeout
        self.max_concurrency = max_concurrency
        self.admission_timeout = admission_timeout
        self.max_code_bytes = max_code_bytes
        self.max_output_bytes = max_output_bytes
        self._slots = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_settings(cls, settings, runtime: Optional[ContainerRuntimeClient] = None) -> "ExecutionRunner":
        registry = LanguageRegistry.default(settings.image_overrides)
        provisioner = EnvironmentProvisioner(
            runtime or ContainerRuntimeClient(),
            workdir=settings.workdir,
        )
        return cls(
            registry,
            provisioner,
            execution_timeout=settings.execution_timeout,
            max_concurrency=settings.max_concurrency,
            admission_timeout=settings.admission_timeout,
            max_code_bytes=settings.max_code_bytes,
            max_output_bytes=settings.max_output_bytes,
        )

    async def execute(self, language: str, code: str) -> str:
        """Run ``code`` and return its sanitized output."""
        result = await self.run(language, code)
        return result.sanitized_output

    async def run(self, language: str, code: str) -> ExecutionResult:
        """
        Run ``code`` written in ``language`` inside a fresh container.

        Args:
            language: Language identifier (js, python, cpp, ts)
            code: Source code to execute

        Returns:
            ExecutionResult with raw and sanitized output

        Raises:
            ExecutionError: Subclass naming the step that failed
        """
        profile = self.registry.resolve(language)
        self._validate(profile, code)

        start_time = time.time()
        async with self._admitted(profile):
            async with self._environment(profile, code) as environment:
                await self._start(environment)
                raw_output, truncated = await self._collect_with_deadline(environment)

        execution_time = time.time() - start_time
        logger.info(
            f"Execution completed: {language} in {execution_time:.3f}s "
            f"({len(raw_output)} bytes{', truncated' if truncated else ''})"
        )
        return ExecutionResult(
            language=language,
            raw_output=raw_output,
            sanitized_output=sanitize(raw_output),
            execution_time=execution_time,
            truncated=truncated,
        )

    def _validate(self, profile: LanguageProfile, code: str) -> None:
        if not isinstance(code, str) or not code.strip():
            raise EmptyCodeError("no source code given", language=profile.identifier)
        size = len(code.encode("utf-8", errors="surrogatepass"))
        if size > self.max_code_bytes:
            raise PayloadTooLargeError(size, self.max_code_bytes, language=profile.identifier)

    @asynccontextmanager
    async def _admitted(self, profile: LanguageProfile) -> AsyncIterator[None]:
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self.admission_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Rejecting {profile.identifier} execution: all {self.max_concurrency} slots busy")
            raise CapacityError(
                f"no execution slot free after {self.admission_timeout:g}s",
                language=profile.identifier,
            ) from None
        try:
            yield
        finally:
            self._slots.release()

    @asynccontextmanager
    async def _environment(self, profile: LanguageProfile, code: str) -> AsyncIterator[ExecutionEnvironment]:
        """Provision a container and remove it exactly once on exit."""
        environment = await self.provisioner.provision(profile, code)
        try:
            yield environment
        except BaseException:
            environment.failed = True
            raise
        finally:
            await self._teardown(environment)

    async def _start(self, environment: ExecutionEnvironment) -> None:
        logger.info(f"Starting container {environment.short_id}...")
        try:
            await asyncio.to_thread(self.runtime.start, environment.handle)
        except Exception as e:
            raise StartError(
                f"container {environment.short_id} did not start: {e}",
                language=environment.language,
                image=environment.image,
            ) from e
        environment.advance(EnvironmentState.STARTED)

    async def _collect_with_deadline(self, environment: ExecutionEnvironment) -> Tuple[bytes, bool]:
        try:
            return await asyncio.wait_for(
                self._collect(environment),
                timeout=self.execution_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Execution timeout after {self.execution_timeout:g}s, "
                f"killing container {environment.short_id}"
            )
            await self._kill(environment)
            raise ExecutionTimeoutError(
                self.execution_timeout,
                language=environment.language,
                image=environment.image,
            ) from None

    async def _collect(self, environment: ExecutionEnvironment) -> Tuple[bytes, bool]:
        try:
            stream = await asyncio.to_thread(self.runtime.attach_output, environment.handle)
            raw_output, truncated = await asyncio.to_thread(self._drain, stream)
        except Exception as e:
            raise StreamError(
                f"reading output of container {environment.short_id} failed: {e}",
                language=environment.language,
                image=environment.image,
            ) from e
        environment.advance(EnvironmentState.OUTPUT_COLLECTED)
        return raw_output, truncated

    def _drain(self, stream: Iterable[bytes]) -> Tuple[bytes, bool]:
        """Read ``stream`` to the end, keeping at most max_output_bytes."""
        buffer = bytearray()
        truncated = False
        for chunk in stream:
            # Keep reading past the limit so we still wait for the process to exit
            room = self.max_output_bytes - len(buffer)
            if len(chunk) > room:
                buffer.extend(chunk[:max(room, 0)])
                truncated = True
            else:
                buffer.extend(chunk)
        return bytes(buffer), truncated

    async def _kill(self, environment: ExecutionEnvironment) -> None:
        try:
            await asyncio.to_thread(self.runtime.kill, environment.handle)
        except Exception as e:
            # Usually the process exited between the deadline and the kill
            logger.info(f"Kill of container {environment.short_id} failed: {e}")

    async def _teardown(self, environment: ExecutionEnvironment) -> None:
        logger.info(f"Removing container {environment.short_id}...")
        try:
            # Shielded so a cancelled request still removes its container
            await asyncio.shield(asyncio.to_thread(self.runtime.remove, environment.handle))
        except Exception as e:
            environment.failed = True
            error = RemovalError(
                f"container {environment.short_id} could not be removed: {e}",
                language=environment.language,
                image=environment.image,
            )
            logger.warning(str(error))
        finally:
            environment.advance(EnvironmentState.REMOVED)
