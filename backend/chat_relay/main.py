"""Chat Relay Application.

This is the main entry point for the chat relay service. Clients hold a
WebSocket to the server, which tracks who is present, fans chat messages out
to everyone and replays a bounded history to clients as they (re)connect.

Modules:
    - chat: presence coordinator, history log, message router, WebSocket API
    - client: peer-side presence reconstruction and a websockets client
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from chat_relay import __version__
from chat_relay.chat.router import router as chat_router
from chat_relay.chat.service import relay
from chat_relay.config import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# uvicorn.access logs every HTTP request and websockets logs every frame.
for _noisy in (
    "uvicorn.access",
    "websockets",
    "httpx",
    "httpcore",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in relay.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    logger.info(
        f"Chat relay running on http://{config.server.host}:{config.server.port} "
        f"(history capacity {relay.history.capacity})"
    )
    logger.info("WebSocket is ready for connections at /ws/chat")

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Chat Relay API",
    description="Real-time group chat relay with presence and bounded history",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(chat_router)


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Plain-text liveness banner."""
    return "Real-Time Chat Server is running"


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object with live connection and history counts.
    """
    return {
        "status": "ok",
        "connections": relay.manager.connection_count,
        "historySize": len(relay.history),
    }
