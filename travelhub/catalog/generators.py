import logging
import random
import string
from typing import List, Optional, Tuple

from travelhub.catalog.schemas import (
    CatalogSearchRequest, FlightOffer, TrainOffer, TrainClassFare, BusOffer
)

logger = logging.getLogger(__name__)

AIRLINES = ["Air India", "IndiGo", "SpiceJet", "Vistara", "Go First", "AirAsia India", "Akasa Air"]
AIRPORT_CODES = {
    "Delhi": "DEL", "Mumbai": "BOM", "Bangalore": "BLR", "Bengaluru": "BLR",
    "Kolkata": "CCU", "Chennai": "MAA", "Hyderabad": "HYD", "Pune": "PNQ",
    "Ahmedabad": "AMD", "Goa": "GOI", "Jaipur": "JAI", "Kochi": "COK",
    "Lucknow": "LKO", "Chandigarh": "IXC", "Indore": "IDR", "Bhubaneswar": "BBI",
    "Varanasi": "VNS", "Patna": "PAT", "Ranchi": "IXR", "Guwahati": "GAU",
    "Srinagar": "SXR", "Amritsar": "ATQ", "Udaipur": "UDR", "Jodhpur": "JDH",
    "Mangalore": "IXE", "Coimbatore": "CJB", "Nagpur": "NAG", "Trivandrum": "TRV",
    "Visakhapatnam": "VTZ", "Vijayawada": "VGA", "Madurai": "IXM", "Agartala": "IXA",
}
STOPOVER_CITIES = ["Bangalore", "Hyderabad", "Mumbai", "Delhi"]
FLIGHT_CLASS_MULTIPLIERS = {"Economy": 1.0, "Business": 2.5}

TRAIN_NAMES = [
    "Rajdhani Express", "Shatabdi Express", "Duronto Express", "Garib Rath",
    "Humsafar Express", "Tejas Express", "Vande Bharat", "Double Decker",
    "Jan Shatabdi", "Sampark Kranti", "Purushottam Express", "Karnataka Express",
    "Chennai Express", "Mumbai Rajdhani", "Delhi Duronto", "Kolkata Mail",
]
TRAIN_CLASS_MULTIPLIERS = {"SL": 1.0, "3A": 1.8, "2A": 2.5, "1A": 4.0}
TRAIN_FACILITIES = ["Pantry Car", "Charging Point", "WiFi"]

BUS_OPERATORS = [
    "RedBus", "VRL Travels", "SRS Travels", "Orange Travels", "Parveen Travels",
    "Raj Travels", "KPN Travels", "Sharma Travels", "National Travels", "KSRTC",
    "MSRTC", "TSRTC", "IntrCity SmartBus", "Zingbus", "Abhibus",
]
BUS_TYPES = [
    "AC Sleeper", "Non-AC Sleeper", "AC Seater", "Volvo AC", "Multi-Axle",
    "Semi-Sleeper", "Volvo Multi-Axle", "Scania AC", "Mercedes AC", "Electric AC",
]
BUS_AMENITIES = [
    "WiFi", "Charging Point", "Water Bottle", "Emergency Exit",
    "Reading Light", "Blanket", "Snacks", "Live Tracking", "USB Charger",
]

MINUTE_GRID = [0, 15, 30, 45]

def compute_arrival(hour: int, minute: int, duration_minutes: int) -> Tuple[str, int]:
    """Return the arrival clock time ('HH:MM' or 'HH:MM +N') and the day offset"""
    total = hour * 60 + minute + duration_minutes
    days_later, minutes_of_day = divmod(total, 24 * 60)
    arrival = f"{minutes_of_day // 60:02d}:{minutes_of_day % 60:02d}"
    if days_later:
        arrival += f" +{days_later}"
    return arrival, days_later

def format_duration(duration_minutes: int) -> str:
    return f"{duration_minutes // 60}h {duration_minutes % 60}m"

def is_ac_bus(bus_type: str) -> bool:
    # "Non-AC" contains "AC" as well
    return "AC" in bus_type and "Non-AC" not in bus_type

class CatalogService:
    """Fabricates flight, train and bus offers for a route and date"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def search_flights(self, request: CatalogSearchRequest) -> List[FlightOffer]:
        """Generate 8-14 flights sorted by cheapest fare"""
        self._log_search("Flight", request)

        flights = []
        for _ in range(self.rng.randint(8, 14)):
            airline = self.rng.choice(AIRLINES)
            hour = self.rng.randint(5, 23)
            minute = self.rng.choice(MINUTE_GRID)
            duration = self.rng.randint(60, 299)
            stops = 1 if self.rng.random() > 0.75 else 0
            if stops == 0:
                base_price = self.rng.randint(3000, 11999)
            else:
                base_price = self.rng.randint(2000, 7999)
            arrival_time, day_offset = compute_arrival(hour, minute, duration)

            fares = {
                cabin: int(base_price * multiplier)
                for cabin, multiplier in FLIGHT_CLASS_MULTIPLIERS.items()
            }

            flights.append(FlightOffer(
                id=self._offer_id("FL"),
                airline=airline,
                flight_number=f"{airline.split(' ')[0][:2].upper()}{self.rng.randint(1000, 9999)}",
                origin=request.from_location,
                origin_code=self._airport_code(request.from_location),
                destination=request.to_location,
                destination_code=self._airport_code(request.to_location),
                departure_time=f"{hour:02d}:{minute:02d}",
                arrival_time=arrival_time,
                arrival_day_offset=day_offset,
                duration=format_duration(duration),
                duration_minutes=duration,
                date=request.date,
                price=base_price,
                total_price=base_price * request.passengers,
                fares=fares,
                seats_available=self.rng.randint(15, 94),
                stops=stops,
                stop_location=self.rng.choice(STOPOVER_CITIES) if stops else None,
                baggage="15 kg check-in, 7 kg cabin",
                refundable=self.rng.random() > 0.5
            ))

        return sorted(flights, key=lambda f: min(f.fares.values()))

    def search_trains(self, request: CatalogSearchRequest) -> List[TrainOffer]:
        """Generate 6-13 trains sorted by sleeper class fare"""
        self._log_search("Train", request)

        trains = []
        for _ in range(self.rng.randint(6, 13)):
            hour = self.rng.randint(4, 23)
            minute = self.rng.choice(MINUTE_GRID)
            duration = self.rng.randint(240, 959)
            base_price = self.rng.randint(400, 1599)
            arrival_time, day_offset = compute_arrival(hour, minute, duration)

            classes = {}
            for cls, multiplier in TRAIN_CLASS_MULTIPLIERS.items():
                available = self.rng.randint(10, 159)
                if available > 50:
                    availability_status = "Available"
                elif available > 10:
                    availability_status = "RAC"
                else:
                    availability_status = "Waitlist"
                classes[cls] = TrainClassFare(
                    price=int(base_price * multiplier),
                    available=available,
                    status=availability_status
                )

            lowest_price = min(fare.price for fare in classes.values())
            trains.append(TrainOffer(
                id=self._offer_id("TR"),
                name=self.rng.choice(TRAIN_NAMES),
                train_number=str(self.rng.randint(10000, 89999)),
                origin=request.from_location,
                destination=request.to_location,
                departure_time=f"{hour:02d}:{minute:02d}",
                arrival_time=arrival_time,
                arrival_day_offset=day_offset,
                duration=format_duration(duration),
                duration_minutes=duration,
                date=request.date,
                classes=classes,
                lowest_price=lowest_price,
                total_price=lowest_price * request.passengers,
                runs_on=["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
                platform=self.rng.randint(1, 8),
                quota=["General", "Tatkal", "Ladies"],
                facilities=[f for f in TRAIN_FACILITIES if self.rng.random() > 0.4]
            ))

        return sorted(trains, key=lambda t: t.lowest_price)

    def search_buses(self, request: CatalogSearchRequest) -> List[BusOffer]:
        """Generate 10-21 buses sorted by price"""
        self._log_search("Bus", request)

        buses = []
        for _ in range(self.rng.randint(10, 21)):
            bus_type = self.rng.choice(BUS_TYPES)
            hour = self.rng.randint(5, 23)
            minute = self.rng.choice(MINUTE_GRID)
            duration = self.rng.randint(180, 1019)
            if is_ac_bus(bus_type):
                price = self.rng.randint(600, 2399)
            else:
                price = self.rng.randint(300, 1199)
            arrival_time, day_offset = compute_arrival(hour, minute, duration)

            total_seats = 40 if "Sleeper" in bus_type else 50
            seats_available = self.rng.randint(5, total_seats - 1)
            origin, destination = request.from_location, request.to_location

            buses.append(BusOffer(
                id=self._offer_id("BS"),
                operator=self.rng.choice(BUS_OPERATORS),
                bus_type=bus_type,
                origin=origin,
                destination=destination,
                departure_time=f"{hour:02d}:{minute:02d}",
                arrival_time=arrival_time,
                arrival_day_offset=day_offset,
                duration=format_duration(duration),
                duration_minutes=duration,
                date=request.date,
                price=price,
                total_price=price * request.passengers,
                seats_available=seats_available,
                total_seats=total_seats,
                window_seats_available=int(seats_available * 0.4),
                rating=round(3.5 + self.rng.random() * 1.5, 1),
                reviews_count=self.rng.randint(100, 2099),
                boarding_points=[f"{origin} Bus Stand", f"{origin} Railway Station", f"{origin} Airport"][:self.rng.randint(1, 2)],
                dropping_points=[f"{destination} Bus Stand", f"{destination} Railway Station"],
                amenities=[a for a in BUS_AMENITIES if self.rng.random() > 0.5],
                cancellation_policy="Free cancellation up to 24 hours before departure",
                refundable=True
            ))

        return sorted(buses, key=lambda b: b.price)

    def _offer_id(self, prefix: str) -> str:
        alphabet = string.ascii_uppercase + string.digits
        return prefix + "".join(self.rng.choice(alphabet) for _ in range(9))

    @staticmethod
    def _airport_code(city: str) -> str:
        return AIRPORT_CODES.get(city, city[:3].upper())

    @staticmethod
    def _log_search(mode: str, request: CatalogSearchRequest):
        # Route and date only, never passenger data
        logger.info(f"[{mode} Search] route={request.from_location}-{request.to_location} date={request.date.isoformat()}")
