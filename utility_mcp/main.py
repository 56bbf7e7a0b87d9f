# utility_mcp/main.py

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from utility_mcp.core.config import settings

# DB lifecycle
from utility_mcp.core.database import mongo

# API routers
from utility_mcp.api import mcp
from utility_mcp.api.mcp import INTERNAL_ERROR

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


# ---------------------------------------------------------------------------
# Startup / Shutdown
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.SERVER_NAME}...")

    try:
        await mongo.connect()
    except Exception as e:
        # no database, no server
        logger.exception(f"Failed to connect to MongoDB: {e}")
        raise

    logger.info(f"Startup complete. ENV={settings.ENVIRONMENT}")
    logger.info(f"MCP endpoint: http://localhost:{settings.PORT}/mcp")
    logger.info(f"Health check: http://localhost:{settings.PORT}/health")

    yield

    try:
        await mongo.close()
    except Exception as e:
        logger.warning(f"Mongo close failed: {e}")

    logger.info("Shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title=settings.SERVER_NAME,
    version=settings.SERVER_VERSION,
    description="MCP server for utility customer, payment and energy analytics",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # errors escaping a route still use the JSON-RPC envelope
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    error = {"code": INTERNAL_ERROR, "message": "Internal server error"}
    if settings.DEBUG:
        error["data"] = {"type": exc.__class__.__name__, "detail": str(exc), "path": request.url.path}
    return JSONResponse(status_code=500, content={"jsonrpc": "2.0", "id": None, "error": error})

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(mcp.router, tags=["mcp"])

# ---------------------------------------------------------------------------
# Root / Health
# ---------------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "message": f"{settings.SERVER_NAME} is running",
        "version": settings.SERVER_VERSION,
        "environment": settings.ENVIRONMENT,
        "mcp": "/mcp",
        "docs": "/docs" if settings.DEBUG else None,
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "database": "connected" if mongo.is_connected else "disconnected",
        "server": settings.SERVER_NAME,
        "version": settings.SERVER_VERSION,
    }


def run() -> None:
    uvicorn.run("utility_mcp.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
