# runbox/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from . import __version__
from .api.endpoints import execution
from .config import get_settings
from .services.execution import ExecutionError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="runbox", version=__version__)

# Any origin may submit code unless RUNBOX_CORS_ORIGINS narrows it
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(execution.router)


@app.exception_handler(ExecutionError)
async def execution_error_handler(request: Request, exc: ExecutionError):
    logger.error(f"Error while executing code: {exc}")
    return PlainTextResponse(str(exc), status_code=500)


@app.get("/")
async def root():
    return {"message": "runbox code execution API", "version": __version__}
