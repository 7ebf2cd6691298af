"""
SkaleBitz Backend - FastAPI Application

A lending marketplace where investors allocate funds to MSME credit facilities.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from skalebitz import __version__
from skalebitz.config import get_settings
from skalebitz.core.logging import configure_logging
from skalebitz.database.connections import get_mongo_client, close_connections
from skalebitz.database.registry import sync_registry, create_indexes
from skalebitz.routers import auth, deals, health, investments, stats, users

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("skalebitz")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Sync database registry
    - Create indexes

    Shutdown:
    - Close all database connections
    """
    logger.info("Starting up SkaleBitz Backend...")

    try:
        client = await get_mongo_client()
        await sync_registry(client)
        await create_indexes(client)
        logger.info("Database registry synced and indexes created")
    except Exception as e:
        logger.warning("Database initialization warning: %s", e)

    yield

    logger.info("Shutting down SkaleBitz Backend...")
    await close_connections()
    logger.info("Database connections closed")


app = FastAPI(
    title="SkaleBitz API",
    description="""
## SkaleBitz Lending Marketplace API

Investors fund MSME credit facilities; MSMEs list a deal and track who funded it.

### Features
- **Authentication**: JWT auth for `investor` and `msme` accounts
- **Deals**: Marketplace listing with facility size, utilized amount and remaining capacity
- **Allocation**: Server-checked investments that never exceed a deal's facility
- **Stats**: Platform overview plus investor and MSME dashboards

### Authentication
Protected endpoints expect a bearer token:
```
Authorization: Bearer your_jwt_token
```
(`?token=your_jwt_token` is accepted as well.)

Obtain a token via `POST /auth/login` or `POST /auth/register`.
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Access log line per request."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(deals.router)
app.include_router(investments.router)
app.include_router(stats.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "SkaleBitz API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
