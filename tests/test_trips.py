import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from travelhub.config import settings
from travelhub.models import Booking, TripSegment
from travelhub.trips.service import TripGroupService
from tests.factories import auth_headers, flight_payload, leg_payload, make_user


def cart(travel_date):
    # Listed out of order on purpose
    return {"items": [
        leg_payload("bus", "Delhi", "Agra", travel_date, "13:00", "17:30", 650),
        leg_payload("flight", "Mumbai", "Delhi", travel_date, "08:15", "10:20", 5400),
    ]}


@pytest.fixture
def trip(auth_client, travel_date):
    response = auth_client.post("/api/v1/trips/checkout", json=cart(travel_date))
    assert response.status_code == 201
    return response.json()


def test_checkout_writes_segments_and_summary(trip, db, signer):
    summary = trip["booking"]

    assert summary["booking_type"] == "multi-segment"
    assert summary["service_name"] == "Multi-Segment Trip (2 legs)"
    assert summary["from_location"] == "Mumbai"
    assert summary["to_location"] == "Agra"
    assert summary["price"] == 6050
    assert summary["payment_status"] == "completed"
    assert signer.decode(summary["qr_code"]).reference == summary["booking_reference"]

    segments = trip["segments"]
    assert [s["segment_order"] for s in segments] == [1, 2]
    assert [s["booking_type"] for s in segments] == ["flight", "bus"]

    stored = db.query(TripSegment).filter(TripSegment.trip_group_id == summary["trip_group_id"]).all()
    assert len(stored) == 2
    assert {s.payment_status for s in stored} == {"completed"}


def test_checkout_rejects_empty_cart(auth_client):
    response = auth_client.post("/api/v1/trips/checkout", json={"items": []})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request data"


def test_checkout_rejects_oversized_cart(auth_client, travel_date):
    items = [
        leg_payload("bus", "Pune", "Nashik", travel_date, f"{hour:02d}:00", None, 300)
        for hour in range(6, 17)
    ]

    response = auth_client.post("/api/v1/trips/checkout", json={"items": items})

    assert response.status_code == 400


def test_checkout_rejects_hotel_items(auth_client, travel_date):
    hotel = flight_payload(travel_date, booking_type="hotel")

    response = auth_client.post("/api/v1/trips/checkout", json={"items": [hotel]})

    assert response.status_code == 400


def test_checkout_applies_date_policy_to_every_item(auth_client, db, travel_date):
    items = cart(travel_date)["items"]
    items.append(leg_payload("train", "Agra", "Jhansi", date.today() - timedelta(days=2), "09:00", "12:00", 400))

    response = auth_client.post("/api/v1/trips/checkout", json={"items": items})

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot book for past dates"}
    assert db.query(Booking).count() == 0
    assert db.query(TripSegment).count() == 0


def test_list_trips_groups_bookings(auth_client, travel_date):
    trip_group_id = str(uuid.uuid4())
    auth_client.post("/api/v1/bookings", json=flight_payload(travel_date, trip_group_id=trip_group_id))
    auth_client.post(
        "/api/v1/bookings",
        json=leg_payload("train", "Delhi", "Jaipur", travel_date, "13:00", "17:45", 900) | {"trip_group_id": trip_group_id}
    )
    single = auth_client.post(
        "/api/v1/bookings", json=flight_payload(travel_date + timedelta(days=5))
    ).json()["booking"]

    trips = auth_client.get("/api/v1/trips").json()["trips"]

    by_id = {t["trip_group_id"]: t for t in trips}
    assert set(by_id) == {trip_group_id, single["id"]}

    grouped = by_id[trip_group_id]
    assert grouped["is_grouped"] is True
    assert [b["booking_type"] for b in grouped["bookings"]] == ["flight", "train"]
    assert grouped["from_location"] == "Mumbai"
    assert grouped["to_location"] == "Jaipur"
    assert grouped["total_price"] == 6300
    assert grouped["layovers"][0]["minutes"] == 160
    assert grouped["layovers"][0]["label"] == "2h 40m"

    assert by_id[single["id"]]["is_grouped"] is False


def test_trip_detail(auth_client, trip):
    trip_group_id = trip["booking"]["trip_group_id"]

    response = auth_client.get(f"/api/v1/trips/{trip_group_id}")

    assert response.status_code == 200
    detail = response.json()
    assert detail["access_level"] == "owner"
    assert detail["status"] == "confirmed"
    assert [s["from_location"] for s in detail["segments"]] == ["Mumbai", "Delhi"]
    assert detail["layovers"][0]["location"] == "Delhi"
    assert detail["layovers"][0]["minutes"] == 160
    assert detail["current_segment"]["segment_order"] == 1
    assert detail["is_completed"] is False
    assert detail["total_price"] == 6050


def test_ungrouped_booking_detail(auth_client, travel_date):
    booking = auth_client.post("/api/v1/bookings", json=flight_payload(travel_date)).json()["booking"]

    response = auth_client.get(f"/api/v1/trips/{booking['id']}")

    assert response.status_code == 200
    assert len(response.json()["segments"]) == 1
    assert response.json()["layovers"] == []


def test_unknown_trip(auth_client):
    response = auth_client.get(f"/api/v1/trips/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "Trip not found"}


def test_cancel_trip_cancels_every_row(auth_client, db, trip):
    trip_group_id = trip["booking"]["trip_group_id"]

    response = auth_client.post(f"/api/v1/trips/{trip_group_id}/cancel")

    assert response.status_code == 200
    assert response.json() == {"trip_group_id": trip_group_id, "cancelled_count": 3}
    assert {b.status for b in db.query(Booking)} == {"cancelled"}
    assert {s.status for s in db.query(TripSegment)} == {"cancelled"}
    assert all(s.cancelled_at is not None for s in db.query(TripSegment))

    again = auth_client.post(f"/api/v1/trips/{trip_group_id}/cancel")
    assert again.status_code == 400
    assert again.json() == {"error": "Trip is already cancelled"}


def test_cancel_trip_is_all_or_nothing(auth_client, db, trip, monkeypatch):
    trip_group_id = trip["booking"]["trip_group_id"]

    def failing_commit():
        raise OperationalError("UPDATE trip_segments", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", failing_commit)
    response = auth_client.post(f"/api/v1/trips/{trip_group_id}/cancel")
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to cancel trip"}
    db.expire_all()
    assert {b.status for b in db.query(Booking)} == {"confirmed"}
    assert {s.status for s in db.query(TripSegment)} == {"confirmed"}


def test_cancel_summary_booking_cancels_trip(auth_client, db, trip):
    response = auth_client.post(f"/api/v1/bookings/{trip['booking']['id']}/cancel")

    assert response.status_code == 200
    assert response.json()["cancelled_count"] == 3
    assert {s.status for s in db.query(TripSegment)} == {"cancelled"}


def test_other_user_cannot_cancel_unshared_trip(client, other_user, trip):
    response = client.post(
        f"/api/v1/trips/{trip['booking']['trip_group_id']}/cancel", headers=auth_headers(other_user)
    )

    assert response.status_code == 404


def test_cancel_trip_lookup_failure_is_opaque(auth_client, trip, monkeypatch):
    trip_group_id = trip["booking"]["trip_group_id"]

    def failing_count(self):
        raise OperationalError("SELECT count(*) FROM bookings", {}, Exception("database is locked"))

    monkeypatch.setattr(Query, "count", failing_count)
    response = auth_client.post(f"/api/v1/trips/{trip_group_id}/cancel")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to cancel trip"}
    assert "locked" not in response.text


def test_other_user_cannot_attach_to_trip(client, db, other_user, trip, travel_date):
    trip_group_id = trip["booking"]["trip_group_id"]
    headers = auth_headers(other_user)

    attach = client.post(
        "/api/v1/bookings", json=flight_payload(travel_date, trip_group_id=trip_group_id), headers=headers
    )
    detail = client.get(f"/api/v1/trips/{trip_group_id}", headers=headers)
    share = client.post(
        f"/api/v1/trips/{trip_group_id}/shares", json={"email": "kiran@travelmail.in"}, headers=headers
    )

    assert attach.status_code == 404
    assert detail.status_code == 404
    assert share.status_code == 404
    assert db.query(Booking).filter(Booking.user_id == other_user.id).count() == 0


def test_group_with_rows_from_two_users_has_no_owner(db, user, other_user, trip, travel_date):
    trip_group_id = trip["booking"]["trip_group_id"]
    db.add(Booking(
        user_id=other_user.id,
        booking_reference="TRV1767000000000ABCDE",
        trip_group_id=trip_group_id,
        booking_type="flight",
        passenger_name="Vikram Shah",
        passenger_email="vikram@travelmail.in",
        passenger_phone="9876543210",
        from_location="Agra",
        to_location="Mumbai",
        departure_date=travel_date,
        departure_time="20:00",
        service_name="Air India",
        price=4200,
        status="confirmed",
        payment_status="pending"
    ))
    db.commit()

    service = TripGroupService(db)

    assert service.is_owner(other_user.id, trip_group_id) is False
    assert service.is_owner(user.id, trip_group_id) is False


def test_cancel_trip_group_service_rejects_unknown_group(db, user):
    with pytest.raises(LookupError):
        TripGroupService(db).cancel_trip_group(user.id, str(uuid.uuid4()))


class TestSharing:
    @pytest.fixture
    def trip_group_id(self, trip):
        return trip["booking"]["trip_group_id"]

    def share(self, client, trip_group_id, email="vikram@travelmail.in", access_level="view"):
        return client.post(
            f"/api/v1/trips/{trip_group_id}/shares", json={"email": email, "access_level": access_level}
        )

    def accept(self, client, invitee, share_id, accept=True):
        return client.post(
            f"/api/v1/trips/invitations/{share_id}/respond",
            json={"accept": accept},
            headers=auth_headers(invitee)
        )

    def test_share_and_accept(self, auth_client, other_user, trip_group_id):
        share = self.share(auth_client, trip_group_id)
        assert share.status_code == 201
        assert share.json()["status"] == "pending"

        invitations = auth_client.get("/api/v1/trips/invitations", headers=auth_headers(other_user)).json()
        assert [i["id"] for i in invitations] == [share.json()["id"]]

        accepted = self.accept(auth_client, other_user, share.json()["id"])
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"
        assert accepted.json()["responded_at"] is not None

        detail = auth_client.get(f"/api/v1/trips/{trip_group_id}", headers=auth_headers(other_user))
        assert detail.status_code == 200
        assert detail.json()["access_level"] == "view"

    def test_invitation_cannot_be_answered_twice(self, auth_client, other_user, trip_group_id):
        share_id = self.share(auth_client, trip_group_id).json()["id"]
        self.accept(auth_client, other_user, share_id, accept=False)

        response = self.accept(auth_client, other_user, share_id)

        assert response.status_code == 400
        assert response.json() == {"error": "Invitation has already been declined"}

    def test_invitation_belongs_to_invitee(self, auth_client, db, trip_group_id):
        stranger = make_user(db, name="Kiran Das", email="kiran@travelmail.in")
        share_id = self.share(auth_client, trip_group_id).json()["id"]

        response = self.accept(auth_client, stranger, share_id)

        assert response.status_code == 404

    def test_pending_invitee_cannot_view(self, auth_client, other_user, trip_group_id):
        self.share(auth_client, trip_group_id)

        response = auth_client.get(f"/api/v1/trips/{trip_group_id}", headers=auth_headers(other_user))

        assert response.status_code == 404

    def test_duplicate_active_share_conflicts(self, auth_client, trip_group_id):
        self.share(auth_client, trip_group_id)

        response = self.share(auth_client, trip_group_id, email="Vikram@TravelMail.in")

        assert response.status_code == 409
        assert response.json() == {"error": "Trip is already shared with this email"}

    def test_declined_share_can_be_reissued(self, auth_client, other_user, trip_group_id):
        share_id = self.share(auth_client, trip_group_id).json()["id"]
        self.accept(auth_client, other_user, share_id, accept=False)

        assert self.share(auth_client, trip_group_id).status_code == 201

    def test_cannot_share_with_self(self, auth_client, trip_group_id):
        response = self.share(auth_client, trip_group_id, email="asha@travelmail.in")
        assert response.status_code == 409

    def test_share_cap(self, auth_client, trip_group_id, monkeypatch):
        monkeypatch.setattr(settings, "MAX_TRIP_SHARES", 1)
        self.share(auth_client, trip_group_id)

        response = self.share(auth_client, trip_group_id, email="kiran@travelmail.in")

        assert response.status_code == 409

    def test_viewer_cannot_manage_trip(self, auth_client, other_user, trip_group_id):
        share_id = self.share(auth_client, trip_group_id).json()["id"]
        self.accept(auth_client, other_user, share_id)
        headers = auth_headers(other_user)

        cancel = auth_client.post(f"/api/v1/trips/{trip_group_id}/cancel", headers=headers)
        reshare = auth_client.post(
            f"/api/v1/trips/{trip_group_id}/shares", json={"email": "kiran@travelmail.in"}, headers=headers
        )

        assert cancel.status_code == 403
        assert reshare.status_code == 403

    def test_stranger_cannot_see_shares(self, client, other_user, trip_group_id):
        response = client.get(f"/api/v1/trips/{trip_group_id}/shares", headers=auth_headers(other_user))
        assert response.status_code == 404

    def test_join_share_lists_participant(self, auth_client, other_user, trip_group_id):
        share_id = self.share(auth_client, trip_group_id, access_level="join").json()["id"]
        self.accept(auth_client, other_user, share_id)

        detail = auth_client.get(f"/api/v1/trips/{trip_group_id}").json()

        assert detail["participants"] == ["vikram@travelmail.in"]

    def test_remove_share(self, auth_client, trip_group_id):
        share_id = self.share(auth_client, trip_group_id).json()["id"]

        response = auth_client.delete(f"/api/v1/trips/{trip_group_id}/shares/{share_id}")

        assert response.status_code == 204
        assert auth_client.get(f"/api/v1/trips/{trip_group_id}/shares").json() == []

    def test_remove_unknown_share(self, auth_client, trip_group_id):
        response = auth_client.delete(f"/api/v1/trips/{trip_group_id}/shares/{uuid.uuid4()}")
        assert response.status_code == 404
