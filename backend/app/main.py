"""
Local Creator Network API - Main Application Entry Point

This module initializes the FastAPI application with:
- Database connection and schema initialization
- Background scheduler for social account resyncs and token purging
- CORS middleware for frontend communication
- Prometheus metrics middleware
- API router registration

Architecture:
    FastAPI App
    ├── Lifespan Management (startup/shutdown)
    ├── CORS Middleware (settings.cors_origins)
    ├── Prometheus Middleware + /metrics
    └── API Router
        ├── /auth - Session login and platform OAuth
        ├── /api/user, /api/creator - Profile, location and social accounts
        ├── /api/matches - Match generation, status and outreach
        └── /api/stats - Match statistics
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.database import init_db
from app.api import api_router
from app.config import get_settings
from app.middleware import setup_metrics
from app.scheduler import start_scheduler, stop_scheduler

settings = get_settings()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Initialize database tables
        2. Start background scheduler

    Shutdown:
        1. Gracefully stop the scheduler
    """
    await init_db()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Local Creator Network API",
    description="Location-based collaborator matching for content creators",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
