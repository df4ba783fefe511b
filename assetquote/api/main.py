"""
AssetQuote FastAPI application.

REST endpoints for resolving free-form asset queries and fetching current
prices from the configured providers.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .deps import (
    create_redis_client,
    get_redis_client,
    get_logger,
    get_optional_quote_service,
    get_quote_service,
    set_quote_service,
    set_redis_client,
)
from .models import (
    AckResponse,
    CandidateModel,
    ChoiceRequest,
    ErrorResponse,
    HealthResponse,
    LookupRequest,
    QuoteModel,
    QuoteRequest,
    QuoteResponse,
    ResolveResponse,
)
from ..data.models import PoolExhausted
from ..pricing import normalize_symbols
from ..service import QuoteService, build_quote_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()), format=settings.log_format
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("Starting AssetQuote application...")

    redis_client = create_redis_client()
    set_redis_client(redis_client)

    service = build_quote_service(settings, redis_client=redis_client)
    await service.start()
    set_quote_service(service)

    yield

    logger.info("Shutting down AssetQuote application...")
    set_quote_service(None)
    await service.stop()

    set_redis_client(None)
    if redis_client is not None:
        await redis_client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    docs_url=settings.docs_url,
    redoc_url=settings.redoc_url,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)


# Exception handlers
@app.exception_handler(PoolExhausted)
async def pool_exhausted_handler(request, exc):
    logger.error(f"Provider keys exhausted: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error="Price provider unavailable", detail=str(exc)).model_dump(),
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc):
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="Invalid input", detail=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail="An unexpected error occurred" if not settings.debug else str(exc),
        ).model_dump(),
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check(
    redis_client=Depends(get_redis_client),
    service: Optional[QuoteService] = Depends(get_optional_quote_service),
):
    """Health check endpoint."""
    services = {}

    # Check Redis
    if redis_client:
        try:
            await redis_client.ping()
            services["redis"] = "healthy"
        except Exception:
            services["redis"] = "unhealthy"
    else:
        services["redis"] = "unavailable"

    stats = {}
    if service is not None and service.started:
        services["quote_service"] = "healthy"
        stats = service.get_stats()
        if "active_keys" in stats:
            services["coinmarketcap"] = "healthy" if stats["active_keys"] > 0 else "exhausted"
        if "stream" in stats:
            services["binance_stream"] = stats["stream"]["state"]
    else:
        services["quote_service"] = "unavailable"

    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
        stats=stats,
    )


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": settings.app_description,
        "docs": f"{settings.docs_url}",
        "health": "/health",
    }


# Resolution endpoints
@app.get(f"{settings.api_prefix}/resolve", response_model=ResolveResponse)
async def resolve_symbol(
    q: str = Query(..., min_length=1, description="Free-form asset query"),
    user_id: Optional[str] = Query(None, description="User whose history applies"),
    service: QuoteService = Depends(get_quote_service),
):
    """Resolve a free-form query to ranked symbol candidates."""
    candidates = await service.resolve(q, user_id)
    return ResolveResponse(
        query=q,
        candidates=[CandidateModel.from_candidate(c) for c in candidates],
        ambiguous=service.resolver.is_ambiguous(candidates),
    )


# Pricing endpoints
@app.post(f"{settings.api_prefix}/quotes", response_model=QuoteResponse)
async def get_quotes(
    request: QuoteRequest,
    service: QuoteService = Depends(get_quote_service),
):
    """Get current quotes for symbols of one asset class."""
    quotes = await service.get_quotes(request.symbols, request.asset_class)

    priced = {q.symbol for q in quotes}
    missing = [
        s for s in normalize_symbols(request.symbols)
        if s not in priced and f"{s}{settings.market_suffix}" not in priced
    ]
    return QuoteResponse(
        quotes=[QuoteModel.from_quote(q, service.format_quote(q, html=request.html)) for q in quotes],
        missing=missing,
    )


# Preference endpoints
@app.post(f"{settings.api_prefix}/preferences/choice", response_model=AckResponse)
async def record_choice(
    request: ChoiceRequest,
    service: QuoteService = Depends(get_quote_service),
):
    """Remember which symbol a user picked for a query."""
    if request.symbol.upper().strip() not in service.catalog:
        raise HTTPException(status_code=404, detail=f"Symbol {request.symbol} not found")
    await service.record_choice(request.user_id, request.query, request.symbol)
    return AckResponse()


@app.post(f"{settings.api_prefix}/preferences/lookup", response_model=AckResponse)
async def record_lookup(
    request: LookupRequest,
    service: QuoteService = Depends(get_quote_service),
):
    """Count a lookup towards a user's asset class preference."""
    await service.record_lookup(request.user_id, request.asset_class)
    return AckResponse()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "assetquote.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
