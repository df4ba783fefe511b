"""
Dependency injection for AssetQuote API.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from fastapi import HTTPException

from ..service import QuoteService
from .config import settings

logger = logging.getLogger(__name__)


def create_redis_client() -> Optional[redis.Redis]:
    """
    Create a Redis client for the redis storage backend.

    Returns:
        Redis client, or None when storage is in memory or the URL is invalid
    """
    if settings.storage_backend.lower() != "redis":
        return None

    try:
        return redis.from_url(settings.redis_url)
    except Exception as e:
        logger.error(f"Failed to create Redis client: {e}")
        return None


# Redis client owned by the application lifespan
_redis_client: Optional[redis.Redis] = None


def set_redis_client(client: Optional[redis.Redis]) -> None:
    global _redis_client
    _redis_client = client


def get_redis_client() -> Optional[redis.Redis]:
    """Get the application's shared Redis client, if any."""
    return _redis_client


def get_logger(name: str) -> logging.Logger:
    """
    Get configured logger.

    Args:
        name: Logger name

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(settings.log_format)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, settings.log_level.upper()))

    return logger


# Service instance owned by the application lifespan
_quote_service: Optional[QuoteService] = None


def set_quote_service(service: Optional[QuoteService]) -> None:
    global _quote_service
    _quote_service = service


def get_optional_quote_service() -> Optional[QuoteService]:
    return _quote_service


def get_quote_service() -> QuoteService:
    """Get the running quote service."""
    if _quote_service is None:
        raise HTTPException(status_code=503, detail="Quote service is not running")
    return _quote_service
