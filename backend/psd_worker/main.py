import logging
import sys
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from psd_worker import config
from psd_worker.internal.db import init_db
from psd_worker.models.renders import HealthResponse
from psd_worker.routers import jobs, renders
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader
from psd_worker.utils.request_limits import (
    RequestSizeLimitMiddleware,
    RequestTooLargeError,
    request_too_large_handler,
)

logging.basicConfig(
    stream=sys.stdout,
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    force=True,
)
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.browser_manager = BrowserManager()
    app.state.uploader = DriveUploader()
    logger.info(f"{config.SERVICE_NAME} v{config.VERSION} started ({config.ENV})")
    yield
    await app.state.browser_manager.close()


app = FastAPI(
    title="psd-worker",
    version=config.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
)


app.add_middleware(RequestSizeLimitMiddleware)
app.add_exception_handler(RequestTooLargeError, request_too_large_handler)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.3f}"
    return response


app.include_router(renders.router, tags=["Render"])
app.include_router(jobs.router, prefix="/api/v1/renders", tags=["Render Jobs"])


@app.get("/health", tags=["Health"], response_model=HealthResponse, response_model_by_alias=True)
async def healthcheck(request: Request):
    browser_manager = getattr(request.app.state, "browser_manager", None)
    return HealthResponse(
        service=config.SERVICE_NAME,
        browser_connected=bool(browser_manager and browser_manager.is_connected()),
    )


def run():
    logger.info(f"Worker listening on port {config.PORT}")
    uvicorn.run("psd_worker.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
