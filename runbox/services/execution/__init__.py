"""
Execution service for sandboxed code execution.
"""

from .docker_client import ContainerRuntimeClient
from .errors import (
    CapacityError,
    EmptyCodeError,
    ExecutionError,
    ExecutionTimeoutError,
    NotSupportedError,
    PayloadTooLargeError,
    ProvisionError,
    RemovalError,
    StartError,
    StreamError,
)
from .profiles import LanguageProfile, LanguageRegistry
from .provisioner import EnvironmentProvisioner, EnvironmentState, ExecutionEnvironment
from .runner import ExecutionResult, ExecutionRunner
from .sanitizer import sanitize

__all__ = [
    "CapacityError",
    "ContainerRuntimeClient",
    "EmptyCodeError",
    "EnvironmentProvisioner",
    "EnvironmentState",
    "ExecutionEnvironment",
    "ExecutionError",
    "ExecutionResult",
    "ExecutionRunner",
    "ExecutionTimeoutError",
    "LanguageProfile",
    "LanguageRegistry",
    "NotSupportedError",
    "PayloadTooLargeError",
    "ProvisionError",
    "RemovalError",
    "StartError",
    "StreamError",
    "sanitize",
]
