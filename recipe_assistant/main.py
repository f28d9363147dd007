"""
Recipe Assistant API - Application Entry Point

Architecture Overview:
=====================
- Models (recipe_assistant/models/): ORM entities, API schemas and the
  assistant's session model (workstate, intents, recipes)

- Controllers (recipe_assistant/controllers/): Request handlers
  - recipes.py: CRUD operations for recipe management
  - cooking.py: cooking sessions, utterances and explicit commands

- Services (recipe_assistant/services/): Business logic layer
  - assistant/: classifier, knowledge base and engine
  - cooking_service.py: session ownership and write-through persistence
  - recipe_service.py: recipe lookups for the engine

Request Flow:
============
1. Request arrives at a Controller endpoint
2. Controller validates input using Pydantic Schemas
3. Controller calls the CookingService
4. The service runs the engine against the member's workstate and saves it
5. Response is serialized using Pydantic Schemas

Run with: uvicorn recipe_assistant.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipe_assistant.config import get_settings
from recipe_assistant.controllers import cooking_router, recipes_router
from recipe_assistant.database import init_db
from recipe_assistant.exceptions import (
    AssistantError,
    InvalidScaleError,
    NoActiveSessionError,
    NotFoundError,
    StepOutOfRangeError,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.api_title} {settings.api_version} started")
    yield


app = FastAPI(
    lifespan=lifespan,
    title=settings.api_title,
    description="""
    Hands-free cooking assistant.

    ## Features
    - Recipe management (CRUD operations)
    - Step-by-step cooking sessions driven by voice-transcribed text
    - Multiple labelled timers, recipe scaling, substitutions and technique help
    - Sessions are saved after every change and resume after a restart
    """,
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)   # /recipes endpoints
app.include_router(cooking_router)   # /cooking endpoints


# ============================================
# Error Mapping
# ============================================

_STATUS_CODES = (
    (NotFoundError, 404),
    (NoActiveSessionError, 409),
    (StepOutOfRangeError, 409),
    (InvalidScaleError, 422),
)


@app.exception_handler(AssistantError)
def assistant_error_handler(request: Request, exc: AssistantError):
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    if status_code == 500:
        logger.error(f"Unhandled assistant error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ============================================
# Health Check Endpoints
# ============================================

@app.get("/", tags=["health"])
def root():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.api_title,
        "version": settings.api_version
    }


@app.get("/health", tags=["health"])
def health_check():
    """Detailed health check endpoint."""
    return {
        "status": "healthy",
        "database": "sqlite" if settings.is_sqlite else "external",
        "knowledge_base": settings.knowledge_base_path or "bundled",
    }
