#!/usr/bin/env python3

from datetime import date, timedelta
from decimal import Decimal

from travelhub.database import Base, SessionLocal
from travelhub.auth.schemas import UserCreate
from travelhub.auth.service import UserService
from travelhub.trips.schemas import Cart
from travelhub.trips.service import TripGroupService

DEMO_EMAIL = "demo@travelhub.in"
DEMO_PASSWORD = "demo-traveller-1"

def demo_cart(departure: date) -> Cart:
    """Delhi to Goa by flight, then a bus down the coast"""
    passenger = {
        "passenger_name": "Demo Traveller",
        "passenger_email": DEMO_EMAIL,
        "passenger_phone": "9876543210",
    }
    return Cart(items=[
        {
            **passenger,
            "booking_type": "flight",
            "from_location": "Delhi",
            "to_location": "Goa",
            "departure_date": departure,
            "departure_time": "06:30",
            "arrival_time": "09:05",
            "service_name": "IndiGo",
            "service_number": "6E-2417",
            "class_type": "Economy",
            "price": Decimal("5499"),
        },
        {
            **passenger,
            "booking_type": "bus",
            "from_location": "Goa",
            "to_location": "Gokarna",
            "departure_date": departure,
            "departure_time": "13:00",
            "arrival_time": "17:30",
            "service_name": "Paulo Travels",
            "service_number": "PT-318",
            "class_type": "AC Seater",
            "price": Decimal("650"),
        },
    ])

def create_seed_data(db=None):
    own_session = db is None
    db = db or SessionLocal()

    try:
        print("🚀 Creating seed data for TravelHub...")
        Base.metadata.create_all(bind=db.get_bind())

        user = UserService.get_user_by_email(db, DEMO_EMAIL)
        if user:
            print("Demo user already exists, skipping")
            return user

        print("Creating demo user...")
        user = UserService.create_user(db, UserCreate(
            name="Demo Traveller", email=DEMO_EMAIL, password=DEMO_PASSWORD
        ))

        print("Booking demo trip...")
        summary, segments = TripGroupService(db).checkout(user, demo_cart(date.today() + timedelta(days=14)))

        print("✅ Successfully created seed data for TravelHub!")
        print(f"Created:")
        print(f"  - user {user.email} (password: {DEMO_PASSWORD})")
        print(f"  - trip {summary.booking_reference} with {len(segments)} legs")
        return user

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        if own_session:
            db.close()

if __name__ == "__main__":
    create_seed_data()
