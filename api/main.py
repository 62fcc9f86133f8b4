"""
Lead Distribution Engine API - Main Application.

FastAPI application exposing lead ingestion and assignment actions.

Run with:
    uvicorn api.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from config import get_settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Lead Distribution Engine API",
    description="Routes portal leads to agencies by territory, subscription and rotation",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# TODO: Restrict origins once the agency dashboard has a fixed host
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lead-distribution-engine-api",
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Lead Distribution Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


from api.routers import distributions, leads

app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
app.include_router(distributions.router, prefix="/api/v1", tags=["Distributions"])
