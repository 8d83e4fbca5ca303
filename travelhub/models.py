import uuid
from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from travelhub.database import Base

def _uuid() -> str:
    return str(uuid.uuid4())

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="user")
    trip_segments = relationship("TripSegment", back_populates="user")

# ================================
# Bookings & Trip Segments
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_reference = Column(String(40), unique=True, nullable=False, index=True)
    trip_group_id = Column(String(36), index=True)
    booking_type = Column(String(20), nullable=False)  # flight, train, bus, hotel, multi-segment

    passenger_name = Column(String(100), nullable=False)
    passenger_email = Column(String(255), nullable=False)
    passenger_phone = Column(String(15), nullable=False)

    from_location = Column(String(100), nullable=False)
    to_location = Column(String(100), nullable=False)
    departure_date = Column(Date, nullable=False)
    departure_time = Column(String(10))
    arrival_date = Column(Date)
    arrival_time = Column(String(10))

    service_name = Column(String(200), nullable=False)
    service_number = Column(String(50))
    seat_number = Column(String(20))
    class_type = Column(String(50))

    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="INR")
    payment_status = Column(String(20), default="pending")  # pending, completed, failed
    status = Column(String(20), default="confirmed")  # confirmed, cancelled, completed
    booking_details = Column(JSON, default=dict)
    qr_code = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="bookings")

class TripSegment(Base):
    __tablename__ = "trip_segments"

    id = Column(String(36), primary_key=True, default=_uuid)
    trip_group_id = Column(String(36), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    segment_order = Column(Integer, nullable=False)
    booking_type = Column(String(20), nullable=False)

    passenger_name = Column(String(100), nullable=False)
    passenger_email = Column(String(255), nullable=False)
    passenger_phone = Column(String(15), nullable=False)

    from_location = Column(String(100), nullable=False)
    to_location = Column(String(100), nullable=False)
    departure_date = Column(Date, nullable=False)
    departure_time = Column(String(10))
    arrival_date = Column(Date)
    arrival_time = Column(String(10))

    service_name = Column(String(200), nullable=False)
    service_number = Column(String(50))
    seat_number = Column(String(20))
    class_type = Column(String(50))

    price = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(String(20), default="completed")
    status = Column(String(20), default="confirmed")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    cancelled_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="trip_segments")

# ================================
# Trip Sharing
# ================================
class TripShare(Base):
    __tablename__ = "trip_shares"

    id = Column(String(36), primary_key=True, default=_uuid)
    trip_group_id = Column(String(36), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    shared_with_email = Column(String(255), nullable=False, index=True)
    access_level = Column(String(10), nullable=False)  # view, join
    status = Column(String(20), default="pending")  # pending, accepted, declined
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True))

    # Relationships
    owner = relationship("User")
