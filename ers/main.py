"""Employer Rating Service FastAPI application."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ers.api.admin import router as admin_router
from ers.api.disputes import router as disputes_router
from ers.api.health import router as health_router
from ers.api.ratings import router as ratings_router
from ers.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ERS - Employer Rating Service",
    description="Combines project compliance and organiser expertise into versioned employer ratings",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["Health"])
app.include_router(ratings_router, prefix="/v1", tags=["Ratings"])
app.include_router(disputes_router, prefix="/v1", tags=["Disputes"])
app.include_router(admin_router, prefix="/v1/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "ERS", "version": "0.1.0", "docs": "/docs"}
