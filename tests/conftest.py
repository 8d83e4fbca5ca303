import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["QR_SIGNING_SECRET"] = "test-qr-secret"
os.environ["SECRET_KEY"] = "test-jwt-secret"

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from travelhub.database import Base, SessionLocal, engine, get_db
from travelhub.main import app
from travelhub.bookings.qr_codec import QRCodeSigner
from tests.factories import auth_headers, make_user


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # Server errors come back as 500 responses instead of being re-raised
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db, name="Vikram Shah", email="vikram@travelmail.in")


@pytest.fixture
def auth_client(client, user):
    client.headers.update(auth_headers(user))
    return client


@pytest.fixture
def signer():
    return QRCodeSigner("test-qr-secret")


@pytest.fixture
def travel_date():
    return date.today() + timedelta(days=10)
