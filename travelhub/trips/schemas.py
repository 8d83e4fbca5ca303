from pydantic import BaseModel, EmailStr, Field
from typing import Annotated, List, Literal, Optional, Union
from datetime import date, datetime
from enum import Enum

from travelhub.bookings.schemas import BookingRecord, BusLeg, FlightLeg, SegmentView, TrainLeg
from travelhub.trips.grouping import Layover

class ShareAccessLevel(str, Enum):
    """What an invitee may do with a shared trip"""
    VIEW = "view"
    JOIN = "join"

class ShareStatus(str, Enum):
    """Invitation status enumeration"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

# Checkout
CartItem = Annotated[Union[FlightLeg, TrainLeg, BusLeg], Field(discriminator="booking_type")]

class Cart(BaseModel):
    """Legs selected for one multi-segment checkout"""
    items: List[CartItem] = Field(..., min_length=1, max_length=10)

class TripCheckoutResponse(BaseModel):
    booking: BookingRecord
    segments: List[SegmentView]

# Grouped views
class TripGroupSummary(BaseModel):
    """One entry of the caller's trip list"""
    trip_group_id: str
    is_grouped: bool
    status: str
    from_location: str
    to_location: str
    departure_date: date
    total_price: float
    bookings: List[BookingRecord]
    layovers: List[Layover] = []

class TripGroupListResponse(BaseModel):
    trips: List[TripGroupSummary]

class TripGroupDetail(BaseModel):
    """Full itinerary of one trip group"""
    trip_group_id: str
    access_level: Literal["owner", "view", "join"]
    status: str
    segments: List[SegmentView]
    layovers: List[Layover]
    current_segment: Optional[SegmentView] = None
    is_completed: bool
    total_price: float
    participants: List[str] = []

class TripCancellationResult(BaseModel):
    trip_group_id: str
    cancelled_count: int

# Sharing
class TripShareRequest(BaseModel):
    email: EmailStr
    access_level: ShareAccessLevel = ShareAccessLevel.VIEW

class TripShareRecord(BaseModel):
    id: str
    trip_group_id: str
    shared_with_email: str
    access_level: ShareAccessLevel
    status: ShareStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class InvitationResponse(BaseModel):
    accept: bool
