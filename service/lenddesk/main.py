import asyncio
from contextlib import suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from lenddesk import __version__
from lenddesk.config import get_settings
from lenddesk.logging_config import setup_logging
from lenddesk.api.chat import router as chat_router, limiter
from lenddesk.api.import_linkedin import router as linkedin_router
from lenddesk.services.chat_session import get_chat_session_manager

SESSION_SWEEP_SECONDS = 300

logger = setup_logging(get_settings().log_level)

app = FastAPI(
    title="LendDesk API",
    description="LinkedIn contact import and AI loan advisor chat",
    version=__version__
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_sweeper_task: asyncio.Task | None = None


async def _sweep_idle_sessions():
    """Evict chat sessions that sat idle past their TTL."""
    while True:
        await asyncio.sleep(SESSION_SWEEP_SECONDS)
        try:
            await get_chat_session_manager().evict_expired()
        except Exception as e:
            logger.error(f"Session sweep failed: {e}")


# Lifecycle events
@app.on_event("startup")
async def startup_event():
    """Start the idle-session sweeper."""
    global _sweeper_task
    logger.info("Starting chat session sweeper")
    _sweeper_task = asyncio.create_task(_sweep_idle_sessions())


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the sweeper."""
    if _sweeper_task:
        _sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await _sweeper_task
    logger.info("Sweeper stopped")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "LendDesk API",
        "docs": "/docs"
    }


# Include routers
app.include_router(chat_router)
app.include_router(linkedin_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
