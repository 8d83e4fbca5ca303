import logging
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from travelhub.exceptions import PersistenceError
from travelhub.models import Booking, TripSegment, TripShare, User
from travelhub.bookings.booking_service import BookingService, leg_columns
from travelhub.bookings.qr_codec import QRCodeSigner
from travelhub.bookings.schemas import (
    BookingRecord, BookingStatus, BookingType, PaymentStatus, SegmentView
)
from travelhub.trips.grouping import (
    compute_layovers, group_status, leg_departure, order_legs,
    partition_by_trip_group, select_current_segment
)
from travelhub.trips.schemas import (
    Cart, ShareAccessLevel, ShareStatus, TripGroupDetail, TripGroupSummary
)

logger = logging.getLogger(__name__)

def to_segment_view(leg, position: int) -> SegmentView:
    """Render a booking or trip segment as a ticket leg"""
    return SegmentView(
        segment_order=getattr(leg, "segment_order", None) or position,
        booking_type=leg.booking_type,
        service_name=leg.service_name,
        service_number=leg.service_number,
        from_location=leg.from_location,
        to_location=leg.to_location,
        departure_date=leg.departure_date,
        departure_time=leg.departure_time,
        arrival_date=leg.arrival_date,
        arrival_time=leg.arrival_time,
        seat_number=leg.seat_number,
        class_type=leg.class_type,
        passenger_name=leg.passenger_name,
        price=float(leg.price),
        status=leg.status
    )

def current_segment_view(legs: list, views: List[SegmentView], now: datetime) -> Optional[SegmentView]:
    """Pick the current leg by departure order, whatever order the views are listed in"""
    by_departure = sorted(zip(legs, views), key=lambda pair: leg_departure(pair[0]))
    index = select_current_segment([leg for leg, _ in by_departure], now)
    if index is None:
        return None
    return by_departure[index][1]

class TripGroupService:
    """Service for trip groups: grouped listing, checkout and cancellation"""

    def __init__(self, db: Session, qr_signer: Optional[QRCodeSigner] = None):
        self.db = db
        self.booking_service = BookingService(db, qr_signer)

    def list_trip_groups(self, user_id: int, booking_type: Optional[str] = None) -> List[TripGroupSummary]:
        """Partition the user's bookings into trips, newest trip first"""

        bookings = self.booking_service.get_user_bookings(user_id, booking_type)

        summaries = []
        for key, members in partition_by_trip_group(bookings).items():
            ordered = order_legs(members)
            legs = [b for b in ordered if b.booking_type != BookingType.MULTI_SEGMENT.value]

            summaries.append(TripGroupSummary(
                trip_group_id=key,
                is_grouped=ordered[0].trip_group_id is not None,
                status=group_status(ordered),
                from_location=ordered[0].from_location,
                to_location=ordered[-1].to_location,
                departure_date=ordered[0].departure_date,
                total_price=sum(float(b.price) for b in ordered),
                bookings=[BookingRecord.model_validate(b) for b in ordered],
                layovers=compute_layovers(legs)
            ))

        return summaries

    def load_group_legs(self, trip_group_id: str, user_id: Optional[int] = None) -> list:
        """Stored segments in segment_order, else the group's own bookings by departure"""

        segment_query = self.db.query(TripSegment).filter(TripSegment.trip_group_id == trip_group_id)
        if user_id is not None:
            segment_query = segment_query.filter(TripSegment.user_id == user_id)
        segments = segment_query.order_by(TripSegment.segment_order.asc()).all()
        if segments:
            return segments

        booking_query = self.db.query(Booking).filter(
            Booking.trip_group_id == trip_group_id,
            Booking.booking_type != BookingType.MULTI_SEGMENT.value
        )
        if user_id is not None:
            booking_query = booking_query.filter(Booking.user_id == user_id)
        return order_legs(booking_query.all())

    def get_trip_group(self, user: User, trip_group_id: str, now: Optional[datetime] = None) -> TripGroupDetail:
        """Itinerary of one trip for its owner or an invitee who accepted"""

        access_level = self.resolve_access(user, trip_group_id)

        legs = self.load_group_legs(trip_group_id)
        if not legs:
            # Ungrouped bookings are listed under their own id
            single = self.db.query(Booking).filter(
                Booking.id == trip_group_id,
                Booking.trip_group_id.is_(None)
            ).first()
            legs = [single] if single else []
        if not legs:
            raise LookupError("Trip not found")

        views = [to_segment_view(leg, position) for position, leg in enumerate(legs, start=1)]
        current = current_segment_view(legs, views, now or datetime.now())

        participants = [
            share.shared_with_email
            for share in self.db.query(TripShare).filter(
                TripShare.trip_group_id == trip_group_id,
                TripShare.access_level == ShareAccessLevel.JOIN.value,
                TripShare.status == ShareStatus.ACCEPTED.value
            ).all()
        ]

        return TripGroupDetail(
            trip_group_id=trip_group_id,
            access_level=access_level,
            status=group_status(legs),
            segments=views,
            layovers=compute_layovers(order_legs(legs)),
            current_segment=current,
            is_completed=current is None,
            total_price=sum(view.price for view in views),
            participants=participants
        )

    def checkout(self, user: User, cart: Cart, today: Optional[date] = None) -> Tuple[Booking, List[TripSegment]]:
        """Book every cart leg as one trip group in a single transaction"""

        for item in cart.items:
            BookingService.check_departure_policy(item.departure_date, today)

        items = order_legs(cart.items)
        trip_group_id = str(uuid.uuid4())
        booking_reference = BookingService.generate_booking_reference()

        segments = [
            TripSegment(
                trip_group_id=trip_group_id,
                user_id=user.id,
                segment_order=position,
                payment_status=PaymentStatus.COMPLETED.value,
                status=BookingStatus.CONFIRMED.value,
                **leg_columns(item)
            )
            for position, item in enumerate(items, start=1)
        ]

        first, last = items[0], items[-1]
        summary = Booking(
            user_id=user.id,
            booking_reference=booking_reference,
            trip_group_id=trip_group_id,
            booking_type=BookingType.MULTI_SEGMENT.value,
            passenger_name=first.passenger_name,
            passenger_email=str(first.passenger_email),
            passenger_phone=first.passenger_phone,
            from_location=first.from_location,
            to_location=last.to_location,
            departure_date=first.departure_date,
            departure_time=first.departure_time,
            arrival_date=last.arrival_date or last.departure_date,
            arrival_time=last.arrival_time or last.departure_time,
            service_name=f"Multi-Segment Trip ({len(items)} legs)",
            service_number=booking_reference,
            price=sum(item.price for item in items),
            payment_status=PaymentStatus.COMPLETED.value,
            status=BookingStatus.CONFIRMED.value,
            booking_details={"segments": len(items)},
            qr_code=self.booking_service.qr_signer.encode(booking_reference)
        )

        try:
            self.db.add_all(segments)
            self.db.add(summary)
            self.db.commit()
            self.db.refresh(summary)
            for segment in segments:
                self.db.refresh(segment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Checkout Error] user_id={user.id} legs={len(items)}: {e}", exc_info=True)
            raise PersistenceError("Failed to book trip")

        logger.info(f"[Trip Booked] trip_group_id={trip_group_id} legs={len(items)} user_id={user.id}")
        return summary, segments

    def cancel_trip_group(self, user_id: int, trip_group_id: str) -> int:
        """Cancel every booking and segment of the group in one transaction"""

        booking_query = self.db.query(Booking).filter(
            Booking.trip_group_id == trip_group_id,
            Booking.user_id == user_id
        )
        segment_query = self.db.query(TripSegment).filter(
            TripSegment.trip_group_id == trip_group_id,
            TripSegment.user_id == user_id
        )

        values = {"status": BookingStatus.CANCELLED.value, "cancelled_at": datetime.now(timezone.utc)}
        try:
            if booking_query.count() == 0 and segment_query.count() == 0:
                raise LookupError("Trip not found")
            cancelled = booking_query.filter(
                Booking.status == BookingStatus.CONFIRMED.value
            ).update(values, synchronize_session=False)
            cancelled += segment_query.filter(
                TripSegment.status == BookingStatus.CONFIRMED.value
            ).update(values, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Cancellation Error] trip_group_id={trip_group_id} user_id={user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to cancel trip")

        if cancelled == 0:
            raise ValueError("Trip is already cancelled")

        logger.info(f"[Trip Cancelled] trip_group_id={trip_group_id} rows={cancelled} user_id={user_id}")
        return cancelled

    def cancel_booking(self, user_id: int, booking_id: str) -> Tuple[Booking, int]:
        """Cancel one booking, or its whole trip group when it belongs to one"""

        booking = self.booking_service.get_booking(user_id, booking_id)
        if not booking:
            raise LookupError("Booking not found")

        if booking.trip_group_id:
            cancelled = self.cancel_trip_group(user_id, booking.trip_group_id)
            self.db.refresh(booking)
            return booking, cancelled

        if booking.status != BookingStatus.CONFIRMED.value:
            raise ValueError(f"Booking cannot be cancelled. Status: {booking.status}")

        try:
            cancelled = self.db.query(Booking).filter(
                Booking.id == booking.id,
                Booking.status == BookingStatus.CONFIRMED.value
            ).update(
                {"status": BookingStatus.CANCELLED.value, "cancelled_at": datetime.now(timezone.utc)},
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Cancellation Error] booking_id={booking.id} user_id={user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to cancel booking")

        self.db.refresh(booking)
        return booking, cancelled

    def is_owner(self, user_id: int, trip_group_id: str) -> bool:
        """Whether the user bought legs of the group (or the ungrouped booking with this id) and nobody else did"""
        owns_booking = self.db.query(Booking.id).filter(
            Booking.user_id == user_id,
            or_(Booking.trip_group_id == trip_group_id, Booking.id == trip_group_id)
        ).first()
        owns_leg = owns_booking or self.db.query(TripSegment.id).filter(
            TripSegment.user_id == user_id,
            TripSegment.trip_group_id == trip_group_id
        ).first()
        if not owns_leg:
            return False
        return not self.booking_service.claimed_by_other_user(user_id, trip_group_id)

    def resolve_access(self, user: User, trip_group_id: str) -> str:
        """'owner', or the access level of an accepted invitation; unknown trips raise LookupError"""
        if self.is_owner(user.id, trip_group_id):
            return "owner"

        share = self.db.query(TripShare).filter(
            TripShare.trip_group_id == trip_group_id,
            TripShare.shared_with_email == user.email,
            TripShare.status == ShareStatus.ACCEPTED.value
        ).first()
        if share:
            return share.access_level

        raise LookupError("Trip not found")
