"""
Travel Catalog Module

Synthetic flight, train and bus offers for a route and date. Nothing is
persisted; each search fabricates a fresh, price-sorted list.

Key Components:
- generators.py: offer generation and arrival/duration arithmetic
- router.py: FastAPI search endpoints
- schemas.py: search request and offer models
"""

from .router import router
from .generators import CatalogService, compute_arrival, format_duration
from .schemas import (
    CatalogSearchRequest, FlightOffer, TrainOffer, BusOffer,
    FlightSearchResponse, TrainSearchResponse, BusSearchResponse
)

__all__ = [
    "router",
    "CatalogService",
    "compute_arrival",
    "format_duration",
    "CatalogSearchRequest",
    "FlightOffer",
    "TrainOffer",
    "BusOffer",
    "FlightSearchResponse",
    "TrainSearchResponse",
    "BusSearchResponse"
]
