import logging
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from travelhub.database import get_db
from travelhub.auth.dependencies import get_current_user
from travelhub.exceptions import (
    BookingPolicyError, PersistenceError, QRCodeFormatError, QRSignatureError
)
from travelhub.bookings.schemas import (
    BookingCreateRequest, BookingRecord, BookingResponse, BookingCancellationResult,
    BookingType, TicketScanRequest, TicketScanResult
)
from travelhub.bookings.booking_service import BookingService
from travelhub.bookings.ticket_service import TicketService
from travelhub.trips.service import TripGroupService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest = Body(...),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book a single flight, train, bus or hotel"""

    booking_service = BookingService(db)

    try:
        booking = booking_service.create_booking(current_user, request)
        return BookingResponse(booking=BookingRecord.model_validate(booking))
    except BookingPolicyError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        logger.error(f"Booking creation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred"
        )

@router.get("", response_model=List[BookingRecord])
def list_bookings(
    booking_type: Optional[BookingType] = Query(None, description="Only bookings of this type"),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's bookings, newest first"""
    booking_service = BookingService(db)
    return booking_service.get_user_bookings(
        current_user.id, booking_type.value if booking_type else None
    )

@router.post("/scan", response_model=TicketScanResult)
def scan_ticket(
    request: TicketScanRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Verify a scanned ticket QR and show its current leg"""

    ticket_service = TicketService(db)

    try:
        return ticket_service.scan_ticket(current_user, request.payload)
    except (QRCodeFormatError, QRSignatureError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/reference/{booking_reference}", response_model=BookingRecord)
def get_booking_by_reference(
    booking_reference: str,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get one of the caller's bookings by its reference"""

    booking = BookingService(db).get_booking_by_reference(booking_reference, current_user.id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking

@router.get("/{booking_id}", response_model=BookingRecord)
def get_booking(booking_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Get one of the caller's bookings"""

    booking = BookingService(db).get_booking(current_user.id, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking

@router.post("/{booking_id}/cancel", response_model=BookingCancellationResult)
def cancel_booking(booking_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Cancel a booking; grouped bookings cancel their whole trip"""

    trip_service = TripGroupService(db)

    try:
        booking, cancelled = trip_service.cancel_booking(current_user.id, booking_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return BookingCancellationResult(
        booking_id=booking.id,
        trip_group_id=booking.trip_group_id,
        cancelled_count=cancelled
    )

@router.get("/{booking_id}/qr.png")
def get_booking_qr_code(booking_id: str, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Ticket QR code as a PNG image"""

    booking = BookingService(db).get_booking(current_user.id, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")

    image = TicketService(db).generate_qr_code_image(booking)
    return Response(content=image, media_type="image/png")
