"""
Submission Worker API - FastAPI Backend
Exposes the cron-triggered queue endpoint and health/status views.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.auth import require_cron_secret
from api.config import config
from api.database import SubmissionStore
from api.logging_config import logger, attach_package_loggers
from api.queue_worker import SubmissionQueueProcessor, WorkerConfig
from browser.manager import BrowserManager

VERSION = "1.0.0"


# === Response Models ===

class SubmissionOutcome(BaseModel):
    id: str
    directory: str
    status: str
    error: Optional[str] = None
    category: Optional[str] = None
    explanation: Optional[str] = None
    listing_url: Optional[str] = None
    will_retry: Optional[bool] = None
    needs_auth: Optional[bool] = None
    login_url: Optional[str] = None


class ProcessQueueResponse(BaseModel):
    processed: int
    succeeded: int = 0
    failed: int = 0
    message: Optional[str] = None
    results: List[SubmissionOutcome] = []
    timestamp: str


# === Process-level backstops ===

def install_crash_handlers(browser_manager: BrowserManager):
    """Kill the browser process if the interpreter dies from an uncaught exception."""
    previous = sys.excepthook

    def _excepthook(exc_type, exc, tb):
        logger.critical(f"Uncaught exception: {exc_type.__name__}: {exc}")
        try:
            browser_manager.force_kill()
        finally:
            previous(exc_type, exc, tb)

    sys.excepthook = _excepthook
    return previous


def _loop_exception_handler(loop, context):
    """Unhandled task errors are logged, never fatal."""
    exc = context.get("exception")
    logger.error(f"Unhandled async error: {context.get('message')}" + (f" ({exc!r})" if exc else ""))


# === Application factory ===

def create_app(
    store: Optional[SubmissionStore] = None,
    browser_manager: Optional[BrowserManager] = None,
    processor: Optional[SubmissionQueueProcessor] = None,
) -> FastAPI:
    store = store or SubmissionStore(config.DATABASE_PATH)
    browser_manager = browser_manager or BrowserManager.from_config(config)
    processor = processor or SubmissionQueueProcessor(
        store=store, browser_manager=browser_manager, config=WorkerConfig()
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management."""
        logger.info("Starting Submission Worker API...")
        attach_package_loggers(logger)
        for problem in config.validate():
            logger.warning(f"Config: missing {problem}")

        await store.init_database()
        logger.info("Database initialized")

        asyncio.get_running_loop().set_exception_handler(_loop_exception_handler)
        previous_hook = install_crash_handlers(browser_manager)

        yield

        logger.info("Shutting down Submission Worker API...")
        try:
            await browser_manager.shutdown()
            logger.info("Browser shut down")
        finally:
            sys.excepthook = previous_hook

    app = FastAPI(
        title="Submission Worker API",
        description="Automated directory submission worker",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if config.DEBUG else None,
        redoc_url="/redoc" if config.DEBUG else None,
    )
    app.state.store = store
    app.state.browser_manager = browser_manager
    app.state.processor = processor
    app.state.batch_lock = asyncio.Lock()

    # === Request Logging Middleware ===

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        start_time = datetime.now()
        response = await call_next(request)
        duration = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration:.2f}ms)")
        return response

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "linklaunch-worker",
            "browser": browser_manager.get_status(),
        }

    @app.get("/health")
    async def health():
        """Detailed health check."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "browser": browser_manager.get_status(),
            "version": VERSION,
        }

    @app.get("/submissions/counts")
    async def submission_counts() -> Dict[str, Any]:
        return {"counts": await store.get_status_counts()}

    @app.post(
        "/process-queue",
        response_model=ProcessQueueResponse,
        response_model_exclude_none=True,
        dependencies=[Depends(require_cron_secret)],
    )
    async def process_queue():
        """Process one batch of pending submissions."""
        # Batches in one process share a browser, so run them one at a time
        async with app.state.batch_lock:
            try:
                return await processor.process_batch()
            except Exception as e:
                logger.error(f"Queue processing error: {e}")
                return JSONResponse(status_code=500, content={"error": str(e)})

    return app


app = create_app()


# Run with: uvicorn api.main:app --port 3000
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
