"""
FastAPI application entry point.

Run with: uvicorn caffeine_tracker.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from caffeine_tracker.api.routes import router
from caffeine_tracker.config import LOG_LEVEL
from caffeine_tracker.core.database import init_db

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Caffeine Tracker API",
    description="Active caffeine modelling, crash prediction and safety warnings",
    version="1.0.0",
)
app.include_router(router)
