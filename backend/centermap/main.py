from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from centermap.config import get_settings
from centermap.errors import CenterMapError, describe_error
from centermap.routers import export, extract, geocoding, health, model_test, pages

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.settings = settings

    from centermap.services.aggregator import ContentAggregator
    from centermap.services.diagnostics import DiagnosticsService
    from centermap.services.geocoding import GeocodingService
    from centermap.services.llm import LLMService
    from centermap.services.overpass import OverpassClient
    from centermap.services.rate_limit import RateLimiter
    from centermap.services.search import SearchClient

    if not settings.has_gemini_api_key:
        logger.warning(
            "GEMINI_API_KEY is not set; /extract, /health and /test-model will fail until it is configured"
        )

    llm_service = LLMService(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.llm_timeout_seconds,
    )
    app.state.llm_service = llm_service

    # Nominatim: one limiter shared by reverse and forward lookups
    geocoding_service = GeocodingService(
        base_url=settings.nominatim_url,
        user_agent=settings.user_agent,
        timeout=settings.http_timeout_seconds,
        rate_limiter=RateLimiter.every(settings.nominatim_interval_seconds),
    )
    app.state.geocoding_service = geocoding_service

    search_client = SearchClient(
        base_url=settings.search_url,
        user_agent=settings.user_agent,
        timeout=settings.http_timeout_seconds,
    )
    overpass_client = OverpassClient(
        url=settings.overpass_url,
        user_agent=settings.user_agent,
        timeout=settings.http_timeout_seconds,
    )
    app.state.content_aggregator = ContentAggregator(
        search_client=search_client,
        overpass_client=overpass_client,
        # Fresh limiter per request: concurrent extractions pace independently
        rate_limiter_factory=partial(RateLimiter.every, settings.search_interval_seconds),
    )

    app.state.diagnostics_service = DiagnosticsService(settings, llm_service)

    yield

    # Shutdown: close shared HTTP clients
    await geocoding_service.close()
    await search_client.close()
    await overpass_client.close()


settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title="Training Center Mapper",
    description="Find training centers inside an area selected on a map",
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


@app.exception_handler(CenterMapError)
async def center_map_error_handler(request: Request, exc: CenterMapError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=describe_error(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request payload",
            "details": jsonable_encoder(exc.errors()),
        },
    )


app.include_router(pages.router)
app.include_router(extract.router)
app.include_router(export.router)
app.include_router(health.router)
app.include_router(model_test.router)
app.include_router(geocoding.router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("centermap.main:app", host="127.0.0.1", port=8000)
