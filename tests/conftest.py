import os
import tempfile

# Must be set before app modules read settings
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="vidhyadham-uploads-")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.db.repository import MemoryRepository
from app.services.store import SeatStore


def user_data(**overrides):
    data = {
        "name": "Asha Verma",
        "email": "asha@example.com",
        "phone": "9876543210",
        "address": "12 MG Road, Indore",
        "seat_number": 5,
        "slot": "Morning",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_user_data():
    return user_data


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest_asyncio.fixture
async def store(repository):
    seat_store = SeatStore(repository, total_seats=20)
    await seat_store.load()
    return seat_store


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client
