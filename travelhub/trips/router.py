import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from travelhub.database import get_db
from travelhub.auth.dependencies import get_current_user
from travelhub.bookings.schemas import BookingRecord, BookingType
from travelhub.exceptions import PersistenceError, ShareConflictError, TripAccessError
from travelhub.trips.schemas import (
    Cart, InvitationResponse, TripCancellationResult, TripCheckoutResponse,
    TripGroupDetail, TripGroupListResponse, TripShareRecord, TripShareRequest
)
from travelhub.trips.service import TripGroupService, to_segment_view
from travelhub.trips.sharing_service import TripSharingService

logger = logging.getLogger(__name__)

router = APIRouter()

def _raise_http(e: Exception):
    """Map service errors onto HTTP statuses"""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ShareConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, TripAccessError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, LookupError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, PersistenceError):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if isinstance(e, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.error(f"Trip request failed: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An error occurred")

@router.get("", response_model=TripGroupListResponse)
def list_trips(
    booking_type: Optional[BookingType] = Query(None, description="Only bookings of this type"),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the caller's bookings grouped into trips"""
    try:
        trips = TripGroupService(db).list_trip_groups(
            current_user.id, booking_type.value if booking_type else None
        )
        return TripGroupListResponse(trips=trips)
    except Exception as e:
        _raise_http(e)

@router.get("/invitations", response_model=List[TripShareRecord])
def list_invitations(current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Trip invitations addressed to the caller"""
    return TripSharingService(db).list_invitations(current_user)

@router.post("/invitations/{share_id}/respond", response_model=TripShareRecord)
def respond_to_invitation(
    share_id: str,
    response: InvitationResponse,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept or decline a trip invitation"""
    try:
        return TripSharingService(db).respond_to_invitation(current_user, share_id, response.accept)
    except Exception as e:
        _raise_http(e)

@router.post("/checkout", response_model=TripCheckoutResponse, status_code=status.HTTP_201_CREATED)
def checkout(cart: Cart, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Book every leg in the cart as one multi-segment trip"""
    try:
        summary, segments = TripGroupService(db).checkout(current_user, cart)
        return TripCheckoutResponse(
            booking=BookingRecord.model_validate(summary),
            segments=[to_segment_view(segment, segment.segment_order) for segment in segments]
        )
    except Exception as e:
        _raise_http(e)

@router.get("/{trip_group_id}", response_model=TripGroupDetail)
def get_trip(trip_group_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Itinerary of one trip with layovers and the current leg"""
    try:
        return TripGroupService(db).get_trip_group(current_user, trip_group_id)
    except Exception as e:
        _raise_http(e)

@router.post("/{trip_group_id}/cancel", response_model=TripCancellationResult)
def cancel_trip(trip_group_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Cancel every leg of a trip at once"""
    service = TripGroupService(db)
    try:
        if service.resolve_access(current_user, trip_group_id) != "owner":
            raise TripAccessError("Only the trip owner can cancel it")
        cancelled = service.cancel_trip_group(current_user.id, trip_group_id)
        return TripCancellationResult(trip_group_id=trip_group_id, cancelled_count=cancelled)
    except Exception as e:
        _raise_http(e)

@router.post("/{trip_group_id}/shares", response_model=TripShareRecord, status_code=status.HTTP_201_CREATED)
def share_trip(
    trip_group_id: str,
    request: TripShareRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Invite someone to view or join a trip"""
    try:
        return TripSharingService(db).share_trip(current_user, trip_group_id, request)
    except Exception as e:
        _raise_http(e)

@router.get("/{trip_group_id}/shares", response_model=List[TripShareRecord])
def list_shares(trip_group_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Invitations issued for a trip"""
    try:
        return TripSharingService(db).list_shares(current_user, trip_group_id)
    except Exception as e:
        _raise_http(e)

@router.delete("/{trip_group_id}/shares/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_share(
    trip_group_id: str,
    share_id: str,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Withdraw an invitation"""
    try:
        TripSharingService(db).remove_share(current_user, trip_group_id, share_id)
    except Exception as e:
        _raise_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
