from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional
import datetime

from travelhub.bookings.schemas import parse_iso_date

# Search request
class CatalogSearchRequest(BaseModel):
    """Route and date to fabricate offers for"""
    from_location: str = Field(..., alias="from", min_length=2, max_length=100)
    to_location: str = Field(..., alias="to", min_length=2, max_length=100)
    date: datetime.date
    passengers: int = Field(1, ge=1, le=9)

    class Config:
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return parse_iso_date(v, "Invalid date")

# Offers shared fields
class OfferTiming(BaseModel):
    departure_time: str
    arrival_time: str
    arrival_day_offset: int = 0
    duration: str
    duration_minutes: int
    date: datetime.date

class FlightOffer(OfferTiming):
    id: str
    airline: str
    flight_number: str
    origin: str
    origin_code: str
    destination: str
    destination_code: str
    price: int
    total_price: int
    fares: Dict[str, int]
    seats_available: int
    stops: int
    stop_location: Optional[str] = None
    baggage: str
    refundable: bool

class TrainClassFare(BaseModel):
    price: int
    available: int
    status: Literal["Available", "RAC", "Waitlist"]

class TrainOffer(OfferTiming):
    id: str
    name: str
    train_number: str
    origin: str
    destination: str
    classes: Dict[str, TrainClassFare]
    lowest_price: int
    total_price: int
    runs_on: List[str]
    platform: int
    quota: List[str]
    facilities: List[str]

class BusOffer(OfferTiming):
    id: str
    operator: str
    bus_type: str
    origin: str
    destination: str
    price: int
    total_price: int
    seats_available: int
    total_seats: int
    window_seats_available: int
    rating: float
    reviews_count: int
    boarding_points: List[str]
    dropping_points: List[str]
    amenities: List[str]
    cancellation_policy: str
    refundable: bool

# Responses
class FlightSearchResponse(BaseModel):
    flights: List[FlightOffer]

class TrainSearchResponse(BaseModel):
    trains: List[TrainOffer]

class BusSearchResponse(BaseModel):
    buses: List[BusOffer]
