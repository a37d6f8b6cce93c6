"""Drapery — FastAPI application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import calculate, markup, grids, export
from .services import library_client

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup checks
    library_ok = await library_client.check_health()
    if library_ok:
        logger.info(f"Library backend reachable at {library_client.LIBRARY_BASE}")
    else:
        logger.warning("Library backend not reachable at startup — only /api/calculate will work")

    yield


app = FastAPI(
    title="Drapery",
    description="Curtain fabric quantity, cost and markup calculator",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS — allow the Vite dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(calculate.router)
app.include_router(markup.router)
app.include_router(grids.router)
app.include_router(export.router)


@app.get("/health")
async def health() -> dict:
    library_ok = await library_client.check_health()
    return {
        "status": "ok",
        "library": library_ok,
    }


@app.get("/")
async def root() -> dict:
    return {"message": "Drapery API", "docs": "/docs"}
