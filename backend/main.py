"""
FastAPI backend for clinic sales intelligence.
"""

import os
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.middleware.auth import FakeAuthMiddleware
from backend.routes.keywords import router as keywords_router
from backend.routes.scoring import router as scoring_router
from backend.routes.competitors import router as competitors_router
from backend.routes.signals import router as signals_router
from backend.routes.leads import router as leads_router
from clinic_intel.db import init_db

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
load_dotenv(os.path.join(_PROJECT_ROOT, ".env"))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


app = FastAPI(
    title="Clinic Sales Intelligence API",
    description="Keyword normalization, competitor analysis, scoring, signals and leads",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(FakeAuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(keywords_router)
app.include_router(scoring_router)
app.include_router(competitors_router)
app.include_router(signals_router)
app.include_router(leads_router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}
