"""
Shared test fixtures
Runs everything against the in-memory Firestore; Stripe and Gemini are unconfigured
"""
import os

# Must be set before app.core.config is imported
os.environ["USE_MOCK_FIREBASE"] = "true"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["ADMIN_PIN"] = "1844"

import pytest
from fastapi.testclient import TestClient

from app.core.firebase import MockFirestoreClient, get_db
from app.main import app
from app.schemas.content import default_site_content
from app.services.booking.form import BookingForm

API = "/api/v1"


@pytest.fixture
def mock_db():
    return MockFirestoreClient()


@pytest.fixture
def catalog():
    return default_site_content()


@pytest.fixture
def filled_form(catalog):
    """A booking form with every required field set"""
    form = BookingForm(catalog)
    form.update(
        service_type="round-trip",
        service_date="2026-11-02",
        pickup_time="08:30",
        pickup_address="Buffalo Niagara International Airport",
        dropoff_address="Delaware Ave, Buffalo",
        passengers=2,
        vehicle_id="sedan",
        full_name="Jordan Reyes",
        email="jordan@example.com",
        phone="716-555-0142",
    )
    return form


@pytest.fixture
def booking_payload():
    return {
        "serviceType": "round-trip",
        "serviceDate": "2026-11-02",
        "pickupTime": "08:30",
        "pickupAddress": "Buffalo Niagara International Airport",
        "dropoffAddress": "Delaware Ave, Buffalo",
        "passengers": 2,
        "vehicleId": "sedan",
        "fullName": "Jordan Reyes",
        "email": "jordan@example.com",
        "phone": "716-555-0142",
        "startPayment": False,
    }


@pytest.fixture
def client(mock_db):
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client():
    """Client whose Firestore dependency reports 'not configured'"""
    app.dependency_overrides[get_db] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    response = client.post(f"{API}/admin/session", json={"pin": "1844"})
    assert response.status_code == 200
    return {"X-Admin-Session": response.json()["token"]}
