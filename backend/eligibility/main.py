"""FastAPI application entry point."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eligibility.core import config
from eligibility.core.log import configure_logging
from eligibility.persistence.db import init_db
from eligibility.api import overrides, rules, validations

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="Course Eligibility Engine API",
    description="Prerequisite, corequisite and restriction validation for course enrollment",
    version=config.ENGINE_VERSION,
)

# CORS: allow everything for local dev (restrict for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------------------------------------------
# Startup: logging + DB schema
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    configure_logging()
    init_db()


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(validations.router)
app.include_router(rules.router)
app.include_router(overrides.router)
