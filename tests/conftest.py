import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Never touch an on-disk database from the test suite
os.environ["DATABASE_URL"] = "memory://"
os.environ["DATABASE_PATH"] = ":memory:"

from records_api.database import MemoryStore, SQLiteStore
from records_api.main import create_app
from records_api.services.registry import ServiceRegistry

# A minimal valid create payload for every record type, keyed by path.
VALID_PAYLOADS = {
    "patients": {"name": "Jane Doe", "dob": "1990-05-01"},
    "providers": {"name": "Gregory House", "specialty": "Diagnostics"},
    "appointments": {
        "patientId": "patient-1",
        "providerId": "provider-1",
        "start": "2024-03-01T09:00:00.000Z",
        "end": "2024-03-01T09:30:00.000Z",
    },
    "encounters": {
        "patientId": "patient-1",
        "providerId": "provider-1",
        "date": "2024-03-01T09:00:00.000Z",
    },
    "prescriptions": {
        "patientId": "patient-1",
        "providerId": "provider-1",
        "medication": "Amoxicillin",
        "dosage": "500mg",
        "startDate": "2024-03-01",
        "endDate": "2024-03-10",
    },
    "labs": {
        "patientId": "patient-1",
        "testName": "Complete Blood Count",
        "result": "normal",
        "date": "2024-03-02",
    },
    "vitals": {
        "patientId": "patient-1",
        "date": "2024-03-01",
        "heartRate": 72,
        "bloodPressure": "120/80",
        "temperature": 36.8,
    },
    "inventory": {"name": "Sterile gauze", "quantity": 100},
    "billing": {"patientId": "patient-1", "amount": 150.0, "dueDate": "2024-04-01"},
}

RESOURCE_PATHS = list(VALID_PAYLOADS)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest_asyncio.fixture
async def sqlite_store():
    store = await SQLiteStore.connect(":memory:")
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request):
    """Run the test once against each backend."""
    if request.param == "memory":
        yield MemoryStore()
        return
    sqlite = await SQLiteStore.connect(":memory:")
    yield sqlite
    await sqlite.close()


@pytest.fixture
def registry(store):
    return ServiceRegistry(store)


@pytest_asyncio.fixture
async def async_client(memory_store):
    """Async httpx client bound to an app wired to a fresh in-memory store."""
    app = create_app(memory_store)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
