import logging
import secrets
import string
import time
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from travelhub.config import settings
from travelhub.exceptions import BookingPolicyError, PersistenceError
from travelhub.models import Booking, TripSegment, User
from travelhub.bookings.qr_codec import QRCodeSigner
from travelhub.bookings.schemas import BookingStatus, LegRequest, PaymentStatus

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.digits + string.ascii_uppercase

LEG_FIELDS = (
    "booking_type", "passenger_name", "passenger_email", "passenger_phone",
    "from_location", "to_location", "departure_date", "departure_time",
    "arrival_date", "arrival_time", "service_name", "service_number",
    "seat_number", "class_type", "price",
)

def leg_columns(leg: LegRequest) -> dict:
    """Column values shared by bookings and trip segments; arrival defaults to departure"""
    values = {field: getattr(leg, field) for field in LEG_FIELDS}
    values["passenger_email"] = str(leg.passenger_email)
    values["arrival_date"] = leg.arrival_date or leg.departure_date
    values["arrival_time"] = leg.arrival_time or leg.departure_time
    return values

class BookingService:
    """Service for writing and reading single-leg bookings"""

    def __init__(self, db: Session, qr_signer: Optional[QRCodeSigner] = None):
        self.db = db
        self.qr_signer = qr_signer or QRCodeSigner(settings.QR_SIGNING_SECRET)

    def create_booking(self, user: User, request, today: Optional[date] = None) -> Booking:
        """Validate booking policy, stamp reference and signed QR, persist one row"""

        self.check_departure_policy(request.departure_date, today)
        # A trip group id can only be reused by the user who started the group
        if request.trip_group_id and self.claimed_by_other_user(user.id, str(request.trip_group_id)):
            logger.warning(f"[Booking Rejected] trip_group_id={request.trip_group_id} user_id={user.id}")
            raise LookupError("Trip not found")

        booking_reference = self.generate_booking_reference()

        booking = Booking(
            user_id=user.id,
            booking_reference=booking_reference,
            trip_group_id=str(request.trip_group_id) if request.trip_group_id else None,
            payment_status=PaymentStatus.PENDING.value,
            status=BookingStatus.CONFIRMED.value,
            booking_details=request.details or {},
            qr_code=self.qr_signer.encode(booking_reference),
            **leg_columns(request)
        )

        try:
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"[Booking Error] user_id={user.id} type={request.booking_type}: {e}",
                exc_info=True
            )
            raise PersistenceError("Failed to create booking")

        # Identifiers only, no passenger data
        logger.info(f"[Booking Created] booking_id={booking.id} type={booking.booking_type} user_id={user.id}")
        return booking

    def get_user_bookings(self, user_id: int, booking_type: Optional[str] = None) -> List[Booking]:
        """Get all bookings for a user, newest first"""
        query = self.db.query(Booking).filter(Booking.user_id == user_id)
        if booking_type:
            query = query.filter(Booking.booking_type == booking_type)
        return query.order_by(Booking.created_at.desc()).all()

    def get_booking(self, user_id: int, booking_id: str) -> Optional[Booking]:
        """Get one of the user's bookings by ID"""
        return self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.user_id == user_id
        ).first()

    def get_booking_by_reference(self, booking_reference: str, user_id: Optional[int] = None) -> Optional[Booking]:
        """Get booking by reference, optionally restricted to one owner"""
        query = self.db.query(Booking).filter(Booking.booking_reference == booking_reference)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        return query.first()

    @staticmethod
    def check_departure_policy(departure_date: date, today: Optional[date] = None):
        """Departure must fall between today and the advance-booking horizon"""
        today = today or date.today()

        if departure_date < today:
            raise BookingPolicyError("Cannot book for past dates")

        if departure_date > today + timedelta(days=settings.BOOKING_ADVANCE_DAYS):
            raise BookingPolicyError("Cannot book more than 1 year in advance")

    def claimed_by_other_user(self, user_id: int, trip_group_id: str) -> bool:
        """Whether another user already holds a booking or segment under this trip group id"""
        foreign_booking = self.db.query(Booking.id).filter(
            Booking.user_id != user_id,
            or_(Booking.trip_group_id == trip_group_id, Booking.id == trip_group_id)
        ).first()
        if foreign_booking:
            return True
        return self.db.query(TripSegment.id).filter(
            TripSegment.user_id != user_id,
            TripSegment.trip_group_id == trip_group_id
        ).first() is not None

    @staticmethod
    def generate_booking_reference() -> str:
        """TRV + epoch milliseconds + 5 random base36 characters"""
        suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(5))
        return f"TRV{int(time.time() * 1000)}{suffix}"
