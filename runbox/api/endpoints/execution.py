"""
FastAPI endpoints for sandboxed code execution.
"""

import asyncio
import threading
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
import logging

from ...config import get_settings
from ...services.execution import ExecutionRunner

logger = logging.getLogger(__name__)

router = APIRouter(tags=["execution"])

# Sync dependencies run in the threadpool; only one thread may build the runner
_runner_lock = threading.Lock()


@lru_cache(maxsize=1)
def _build_runner() -> ExecutionRunner:
    return ExecutionRunner.from_settings(get_settings())


def get_runner() -> ExecutionRunner:
    """Process-wide runner, built on first use from the environment settings."""
    try:
        with _runner_lock:
            return _build_runner()
    except RuntimeError as e:
        logger.error(f"Execution runner unavailable: {e}")
        raise HTTPException(
            status_code=503,
            detail="Execution service unavailable"
        )


# --- REQUEST MODELS ---

class ExecutionRequest(BaseModel):
    """Request body for code execution"""
    language: str = Field(..., description="Language identifier: js, python, cpp or ts")
    code: str = Field(..., description="Source code to execute")


# --- ENDPOINTS ---

@router.post("/run", response_class=PlainTextResponse)
async def run_code(
    request: ExecutionRequest,
    runner: ExecutionRunner = Depends(get_runner),
):
    """
    Execute code in a single-use Docker container.

    Returns the program's combined stdout/stderr as sanitized plain text.
    Any failure (unsupported language, container errors, timeout) is turned
    into a 500 response by the ExecutionError handler registered in main.
    """
    logger.info(f"Received request to run {request.language} code")

    output = await runner.execute(request.language, request.code)

    logger.info(f"Code executed successfully. Output: {output[:200]}")
    return PlainTextResponse(output)


@router.get("/health")
async def health_check(runner: ExecutionRunner = Depends(get_runner)):
    """
    Check if the execution service is healthy.

    Returns Docker status and local availability of each language image.
    """
    images = [runner.registry.resolve(language).image for language in runner.registry.supported()]
    health = await asyncio.to_thread(runner.runtime.health_check, images)

    if health["status"] != "healthy":
        raise HTTPException(
            status_code=503,
            detail="Execution service unavailable"
        )

    health["languages"] = runner.registry.supported()
    health["limits"] = {
        "execution_timeout": runner.execution_timeout,
        "max_concurrency": runner.max_concurrency,
        "max_code_bytes": runner.max_code_bytes,
        "max_output_bytes": runner.max_output_bytes,
    }
    return health
