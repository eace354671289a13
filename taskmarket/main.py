# Run from project root: uvicorn taskmarket.main:app --reload

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskmarket.api.routes import router
from taskmarket.core.db import init_db_once
from taskmarket.core.errors import ServiceUnavailableError
from taskmarket.mcp.server import mcp_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db_once()
    yield


app = FastAPI(title="Task Marketplace Backend", lifespan=lifespan)
app.include_router(router)
app.include_router(mcp_router, prefix="/mcp")


@app.exception_handler(ServiceUnavailableError)
async def _service_unavailable(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    logger.warning("[main] service unavailable path=%s: %s", request.url.path, exc.message)
    return JSONResponse({"detail": exc.message}, status_code=503)
