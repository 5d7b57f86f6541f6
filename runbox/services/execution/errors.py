"""
Error taxonomy for the sandbox lifecycle.

Every failure a request can hit is an ExecutionError carrying the lifecycle
step it happened in and, when known, the language and image involved. The
HTTP layer turns any of them into a 500 with the message as body.
"""

from typing import Optional


class ExecutionError(Exception):
    """Base class for all sandbox execution failures"""

    step = "execute"

    def __init__(
        self,
        detail: str,
        language: Optional[str] = None,
        image: Optional[str] = None,
    ):
        self.detail = detail
        self.language = language
        self.image = image
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.language:
            context.append(f"language={self.language}")
        if self.image:
            context.append(f"image={self.image}")
        suffix = f" ({', '.join(context)})" if context else ""
        return f"{self.step} failed: {self.detail}{suffix}"


class NotSupportedError(ExecutionError):
    """Unknown language identifier. Client input error, never retried."""

    step = "resolve"

    def __init__(self, language: str):
        super().__init__(f"unsupported language '{language}'")
        self.language = language


class EmptyCodeError(ExecutionError):
    step = "validate"


class PayloadTooLargeError(ExecutionError):
    step = "validate"

    def __init__(self, size: int, limit: int, language: Optional[str] = None):
        self.size = size
        self.limit = limit
        super().__init__(
            f"source is {size} bytes, limit is {limit} bytes",
            language=language,
        )


class CapacityError(ExecutionError):
    """No execution slot became free within the admission timeout"""

    step = "admit"


class ProvisionError(ExecutionError):
    step = "provision"


class StartError(ExecutionError):
    step = "start"


class StreamError(ExecutionError):
    step = "stream"


class RemovalError(ExecutionError):
    """Teardown failed. Reported, never raised past the runner."""

    step = "remove"


class ExecutionTimeoutError(ExecutionError):
    step = "timeout"

    def __init__(self, timeout: float, language: Optional[str] = None, image: Optional[str] = None):
        self.timeout = timeout
        super().__init__(
            f"execution exceeded {timeout:g} second time limit",
            language=language,
            image=image,
        )
