"""
HomeMate Web API - FastAPI application.

Users authenticate with Supabase JWTs; the weekly scheduler uses a
shared secret. Errors are returned as {"error": "<message>"}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from homemate import __version__
from homemate.config import configure_logging, get_settings
from homemate.llm.client import get_llm_config
from homemate.llm.prompt_logger import enable_prompt_logging
from homemate.web.cron_routes import router as cron_router
from homemate.web.health_routes import router as health_router

logger = logging.getLogger(__name__)

app = FastAPI(title="HomeMate", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Configure logging and report what is configured."""
    settings = get_settings()
    configure_logging()
    if settings.homemate_log_prompts:
        enable_prompt_logging(True)

    llm_config = get_llm_config()
    logger.info("HomeMate starting up...")
    logger.info(f"  Environment: {settings.homemate_env}")
    logger.info(f"  Supabase service role: {'configured' if settings.has_service_role else 'missing'}")
    logger.info(f"  LLM provider: {llm_config.provider if llm_config else 'missing'}")
    logger.info(f"  Prompt file logging: {settings.homemate_log_prompts}")


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api")
app.include_router(cron_router, prefix="/api")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Rejected request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}
