from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID
import re

from travelhub.config import settings

DEPARTURE_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
ARRIVAL_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d( \+\d)?$")

class BookingType(str, Enum):
    """Booking type enumeration"""
    FLIGHT = "flight"
    TRAIN = "train"
    BUS = "bus"
    HOTEL = "hotel"
    MULTI_SEGMENT = "multi-segment"

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

def parse_iso_date(value, message: str):
    """Accept 'YYYY-MM-DD' or a full ISO timestamp, keeping the calendar date"""
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValueError(message)
    return value

# Leg request models
class LegRequest(BaseModel):
    """Fields shared by every bookable leg"""
    passenger_name: str = Field(..., min_length=2, max_length=100)
    passenger_email: EmailStr
    passenger_phone: str = Field(..., min_length=10, max_length=15)
    from_location: str = Field(..., min_length=2, max_length=100)
    to_location: str = Field(..., min_length=2, max_length=100)
    departure_date: date
    departure_time: Optional[str] = Field(None, max_length=10)
    arrival_date: Optional[date] = None
    arrival_time: Optional[str] = Field(None, max_length=10)
    service_name: str = Field(..., min_length=1, max_length=200)
    service_number: Optional[str] = Field(None, max_length=50)
    seat_number: Optional[str] = Field(None, max_length=20)
    class_type: Optional[str] = Field(None, max_length=50)
    price: Decimal

    class Config:
        str_strip_whitespace = True

    @field_validator("departure_date", mode="before")
    @classmethod
    def validate_departure_date(cls, v):
        return parse_iso_date(v, "Invalid departure date")

    @field_validator("arrival_date", mode="before")
    @classmethod
    def validate_arrival_date(cls, v):
        return parse_iso_date(v, "Invalid arrival date")

    @field_validator("departure_time")
    @classmethod
    def validate_departure_time(cls, v):
        if v is not None and not DEPARTURE_TIME_PATTERN.match(v):
            raise ValueError("Departure time must be HH:MM")
        return v

    @field_validator("arrival_time")
    @classmethod
    def validate_arrival_time(cls, v):
        if v and not ARRIVAL_TIME_PATTERN.match(v):
            raise ValueError("Arrival time must be HH:MM, optionally followed by +N days")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v <= 0:
            raise ValueError("Price must be positive")
        if v > Decimal(str(settings.MAX_BOOKING_PRICE)):
            raise ValueError("Price too high")
        return v

class TransportLegRequest(LegRequest):
    """Flight, train and bus legs need a service number and a departure time"""
    service_number: str = Field(..., min_length=1, max_length=50)
    departure_time: str = Field(..., max_length=10)

class FlightLeg(TransportLegRequest):
    booking_type: Literal["flight"]

class TrainLeg(TransportLegRequest):
    booking_type: Literal["train"]

class BusLeg(TransportLegRequest):
    booking_type: Literal["bus"]

class HotelStay(LegRequest):
    """Hotel stay: departure_date is check-in, arrival_date is check-out"""
    booking_type: Literal["hotel"]
    arrival_date: date

    @model_validator(mode="after")
    def validate_stay(self):
        if self.arrival_date < self.departure_date:
            raise ValueError("Check-out date cannot be before check-in date")
        return self

# Booking Request Models
class BookingExtras(BaseModel):
    details: Optional[Dict[str, Any]] = None
    trip_group_id: Optional[UUID] = None

class FlightBookingRequest(FlightLeg, BookingExtras):
    pass

class TrainBookingRequest(TrainLeg, BookingExtras):
    pass

class BusBookingRequest(BusLeg, BookingExtras):
    pass

class HotelBookingRequest(HotelStay, BookingExtras):
    pass

BookingCreateRequest = Annotated[
    Union[FlightBookingRequest, TrainBookingRequest, BusBookingRequest, HotelBookingRequest],
    Field(discriminator="booking_type")
]

# Booking Response Models
class BookingRecord(BaseModel):
    """Persisted booking as returned to its owner"""
    id: str
    user_id: int
    booking_reference: str
    trip_group_id: Optional[str] = None
    booking_type: BookingType
    passenger_name: str
    passenger_email: str
    passenger_phone: str
    from_location: str
    to_location: str
    departure_date: date
    departure_time: Optional[str] = None
    arrival_date: Optional[date] = None
    arrival_time: Optional[str] = None
    service_name: str
    service_number: Optional[str] = None
    seat_number: Optional[str] = None
    class_type: Optional[str] = None
    price: float
    currency: str = "INR"
    payment_status: PaymentStatus
    status: BookingStatus
    booking_details: Optional[Dict[str, Any]] = None
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookingResponse(BaseModel):
    booking: BookingRecord

class BookingCancellationResult(BaseModel):
    booking_id: str
    trip_group_id: Optional[str] = None
    cancelled_count: int

# Ticket Models
class SegmentView(BaseModel):
    """One leg of a ticket, as shown by the ticket viewer"""
    segment_order: int
    booking_type: str
    service_name: str
    service_number: Optional[str] = None
    from_location: str
    to_location: str
    departure_date: date
    departure_time: Optional[str] = None
    arrival_date: Optional[date] = None
    arrival_time: Optional[str] = None
    seat_number: Optional[str] = None
    class_type: Optional[str] = None
    passenger_name: str
    price: float
    status: str

class TicketScanRequest(BaseModel):
    payload: str = Field(..., min_length=1, max_length=4096)

class TicketScanResult(BaseModel):
    """Resolved ticket with the leg that is current at scan time"""
    reference: Optional[str] = None
    authenticated: bool
    trip_group_id: Optional[str] = None
    segments: List[SegmentView]
    current_segment: Optional[SegmentView] = None
    is_completed: bool
    scanned_at: datetime
