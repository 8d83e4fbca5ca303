import logging
from fastapi import APIRouter, HTTPException, status

from travelhub.catalog.schemas import (
    CatalogSearchRequest, FlightSearchResponse, TrainSearchResponse, BusSearchResponse
)
from travelhub.catalog.generators import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/flights", response_model=FlightSearchResponse)
def search_flights(request: CatalogSearchRequest):
    """Search flights for a route and date"""
    try:
        return FlightSearchResponse(flights=CatalogService().search_flights(request))
    except Exception:
        logger.exception("Flight search failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search flights"
        )

@router.post("/trains", response_model=TrainSearchResponse)
def search_trains(request: CatalogSearchRequest):
    """Search trains for a route and date"""
    try:
        return TrainSearchResponse(trains=CatalogService().search_trains(request))
    except Exception:
        logger.exception("Train search failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search trains"
        )

@router.post("/buses", response_model=BusSearchResponse)
def search_buses(request: CatalogSearchRequest):
    """Search buses for a route and date"""
    try:
        return BusSearchResponse(buses=CatalogService().search_buses(request))
    except Exception:
        logger.exception("Bus search failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search buses"
        )
