"""
Booking & Ticketing Module

Single-leg bookings, signed ticket QR codes and ticket scanning.

Key Components:
- booking_service.py: booking policy, reference generation and persistence
- qr_codec.py: HMAC-signed QR payload encoding and verification
- ticket_service.py: QR images and scan resolution with the current leg
- router.py: FastAPI endpoints for bookings and ticket scans
- schemas.py: Pydantic models for booking requests, records and scans

Features:
- Discriminated booking requests for flights, trains, buses and hotels
- Departure date policy between today and one year ahead
- Tamper-evident QR payloads verified before any lookup
- Grouped bookings cancel with their whole trip
"""

from .router import router
from .booking_service import BookingService
from .ticket_service import TicketService
from .qr_codec import QRCodeSigner, DecodedTicket
from .schemas import (
    BookingCreateRequest, BookingRecord, BookingResponse, BookingCancellationResult,
    BookingStatus, BookingType, PaymentStatus, SegmentView,
    TicketScanRequest, TicketScanResult
)

__all__ = [
    "router",
    "BookingService",
    "TicketService",
    "QRCodeSigner",
    "DecodedTicket",
    "BookingCreateRequest",
    "BookingRecord",
    "BookingResponse",
    "BookingCancellationResult",
    "BookingStatus",
    "BookingType",
    "PaymentStatus",
    "SegmentView",
    "TicketScanRequest",
    "TicketScanResult"
]
