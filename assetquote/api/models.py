"""
Pydantic models for API request/response validation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from ..data.models import AssetClass, MatchCandidate, Quote


# Request Models


class QuoteRequest(BaseModel):
    """Quote lookup request."""

    symbols: List[str] = Field(..., min_length=1, max_length=50)
    asset_class: Optional[AssetClass] = None
    html: bool = False

    @field_validator("symbols")
    @classmethod
    def symbols_not_blank(cls, v):
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("at least one non-blank symbol is required")
        return cleaned


class ChoiceRequest(BaseModel):
    """Record which symbol a user picked for a query."""

    user_id: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)


class LookupRequest(BaseModel):
    """Count a lookup towards a user's asset class preference."""

    user_id: str = Field(..., min_length=1)
    asset_class: AssetClass


# Response Models


class CandidateModel(BaseModel):
    """Ranked resolution candidate."""

    symbol: str
    display_name: str
    asset_class: AssetClass
    score: int = Field(..., ge=0, le=100)

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> "CandidateModel":
        return cls(
            symbol=candidate.symbol,
            display_name=candidate.display_name,
            asset_class=candidate.asset_class,
            score=candidate.score,
        )


class ResolveResponse(BaseModel):
    """Resolution result."""

    query: str
    candidates: List[CandidateModel]
    ambiguous: bool = False


class QuoteModel(BaseModel):
    """Current price for one symbol."""

    symbol: str
    price: float
    percent_change: float
    asset_class: AssetClass
    source_adapter: str
    observed_at: datetime
    name: Optional[str] = None
    formatted: str

    @classmethod
    def from_quote(cls, quote: Quote, formatted: str) -> "QuoteModel":
        return cls(
            symbol=quote.symbol,
            price=quote.price,
            percent_change=quote.percent_change,
            asset_class=quote.asset_class,
            source_adapter=quote.source_adapter,
            observed_at=quote.observed_at,
            name=quote.name,
            formatted=formatted,
        )


class QuoteResponse(BaseModel):
    """Quote lookup result."""

    quotes: List[QuoteModel]
    missing: List[str] = Field(default_factory=list)


class AckResponse(BaseModel):
    """Acknowledgement for write requests."""

    status: str = "ok"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    services: Dict[str, str]
    stats: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: Optional[str] = None
