import logging
from datetime import datetime
from io import BytesIO
from typing import Optional

import qrcode
from qrcode import constants
from PIL import Image
from sqlalchemy.orm import Session

from travelhub.config import settings
from travelhub.models import Booking, User
from travelhub.bookings.qr_codec import QRCodeSigner
from travelhub.bookings.schemas import BookingType, TicketScanResult
from travelhub.trips.service import TripGroupService, current_segment_view, to_segment_view

logger = logging.getLogger(__name__)

QR_IMAGE_SIZE = 300

class TicketService:
    """Service for ticket QR images and scanning"""

    def __init__(self, db: Session, qr_signer: Optional[QRCodeSigner] = None, accept_legacy: Optional[bool] = None):
        self.db = db
        self.qr_signer = qr_signer or QRCodeSigner(settings.QR_SIGNING_SECRET)
        self.accept_legacy = settings.QR_ACCEPT_LEGACY if accept_legacy is None else accept_legacy
        self.trip_service = TripGroupService(db, self.qr_signer)

    def scan_ticket(self, user: User, payload: str, now: Optional[datetime] = None) -> TicketScanResult:
        """Verify a scanned payload and resolve its legs and the one currently in progress"""

        now = now or datetime.now()
        decoded = self.qr_signer.decode(payload, accept_legacy=self.accept_legacy)

        # Unsigned payloads prove nothing, so they only ever resolve the scanner's own bookings
        owner_id = None if decoded.authenticated else user.id

        trip_group_id = decoded.trip_group_id
        if decoded.reference:
            booking = self.trip_service.booking_service.get_booking_by_reference(decoded.reference, owner_id)
            if not booking:
                raise LookupError("Booking not found")
            legs = [booking]
            if booking.booking_type == BookingType.MULTI_SEGMENT.value and booking.trip_group_id:
                trip_group_id = booking.trip_group_id
                legs = self.trip_service.load_group_legs(trip_group_id, owner_id) or legs
        else:
            legs = self.trip_service.load_group_legs(trip_group_id, owner_id)
            if not legs:
                raise LookupError("Booking not found")

        views = [to_segment_view(leg, position) for position, leg in enumerate(legs, start=1)]
        try:
            current = current_segment_view(legs, views, now)
        except ValueError as e:
            logger.warning(f"[Ticket Unreadable] reference={decoded.reference} trip_group_id={trip_group_id}: {e}")
            raise ValueError("Ticket schedule is unreadable") from e

        logger.info(
            f"[Ticket Scanned] reference={decoded.reference} trip_group_id={trip_group_id} "
            f"authenticated={decoded.authenticated} segments={len(views)}"
        )

        return TicketScanResult(
            reference=decoded.reference,
            authenticated=decoded.authenticated,
            trip_group_id=trip_group_id,
            segments=views,
            current_segment=current,
            is_completed=current is None,
            scanned_at=now
        )

    def generate_qr_code_image(self, booking: Booking) -> bytes:
        """PNG rendering of the booking's signed QR payload"""

        qr_data = booking.qr_code or self.qr_signer.encode(booking.booking_reference)

        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )

        qr.add_data(qr_data)
        qr.make(fit=True)

        qr_image = qr.make_image(fill_color="black", back_color="white")
        qr_image = qr_image.resize((QR_IMAGE_SIZE, QR_IMAGE_SIZE), Image.LANCZOS)

        buffer = BytesIO()
        qr_image.save(buffer, format="PNG")
        return buffer.getvalue()
