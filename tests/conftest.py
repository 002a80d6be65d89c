import mongomock
import pytest
from fastapi.testclient import TestClient

from database import Store
from main import create_app


@pytest.fixture
def store():
    s = Store(mongomock.MongoClient(), "plate_share_test")
    s.ensure_indexes()
    return s


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as c:
        yield c


def food_payload(**overrides):
    body = {
        "donator": {"email": "donor@plate.org", "name": "Dana Donor"},
        "food_name": "Vegetable biryani",
        "food_image": "https://img.plate.org/biryani.jpg",
        "food_quantity": 3,
        "pickup_location": "12 Market Road",
        "expire_date": "2026-10-20",
        "additional_notes": "Keep refrigerated",
    }
    body.update(overrides)
    return body


@pytest.fixture
def food_id(client):
    res = client.post("/foods", json=food_payload())
    assert res.status_code == 200
    return res.json()["id"]
