"""
Trip Groups Module

Groups a user's bookings into trips and manages multi-segment trips end to end.

Key Components:
- grouping.py: partitioning, leg ordering, layovers and current-leg selection
- service.py: grouped listing, checkout and atomic trip cancellation
- sharing_service.py: trip invitations for other users
- router.py: FastAPI endpoints for trips, checkout and sharing
- schemas.py: Pydantic models for carts, trip views and shares
"""

from .router import router
from .service import TripGroupService
from .sharing_service import TripSharingService
from .grouping import compute_layovers, partition_by_trip_group, select_current_segment
from .schemas import (
    Cart, TripCheckoutResponse, TripGroupSummary, TripGroupDetail,
    TripShareRequest, TripShareRecord, ShareAccessLevel, ShareStatus
)

__all__ = [
    "router",
    "TripGroupService",
    "TripSharingService",
    "compute_layovers",
    "partition_by_trip_group",
    "select_current_segment",
    "Cart",
    "TripCheckoutResponse",
    "TripGroupSummary",
    "TripGroupDetail",
    "TripShareRequest",
    "TripShareRecord",
    "ShareAccessLevel",
    "ShareStatus"
]
