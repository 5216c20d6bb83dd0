import asyncio
import os
import tempfile

# Settings are read at import time; keep the default app off the real database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="retail-uploads-")
os.environ["NOTIFY_WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import Settings
from database import init_db
from dependencies import build_services
from main import create_app
from schemas.customer import Customer
from schemas.product import Product
from utils.cache import ReferenceCache
from utils.retry import RetryPolicy

STORE_METHODS = {"get", "insert", "update", "delete", "query"}


class RecordingSink:
    def __init__(self):
        self.messages = []
        self.error = None

    async def send(self, topic, message):
        if self.error is not None:
            raise self.error
        self.messages.append((topic, message))


class FaultyStore:
    """Wraps a TableStore, records calls and raises scheduled errors.

    ``fail("update", None, err)`` lets the first update through and raises
    ``err`` on the second one. ``yield_first`` hands control back to the
    event loop before every call so concurrent tasks interleave.
    """

    def __init__(self, inner, yield_first=False):
        self.inner = inner
        self.calls = []
        self.faults = {}
        self.yield_first = yield_first

    def fail(self, method, *errors):
        self.faults.setdefault(method, []).extend(errors)

    def count(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    def __getattr__(self, name):
        target = getattr(self.inner, name)
        if name not in STORE_METHODS:
            return target

        async def call(*args, **kwargs):
            self.calls.append((name, args))
            if self.yield_first:
                await asyncio.sleep(0)
            scheduled = self.faults.get(name)
            if scheduled:
                error = scheduled.pop(0)
                if error is not None:
                    raise error
            return await target(*args, **kwargs)

        return call


@pytest.fixture
def engine(tmp_path):
    # Store calls run in worker threads, so each session needs its own connection
    engine = create_engine(f"sqlite:///{tmp_path / 'retail.db'}", connect_args={"check_same_thread": False})
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry(sleeps):
    async def fake_sleep(delay):
        sleeps.append(delay)

    return RetryPolicy(max_attempts=3, base_delay=1.0, sleep=fake_sleep)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def cache():
    return ReferenceCache()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite://",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        PUBLIC_BASE_URL="http://testserver",
        NOTIFY_WEBHOOK_URL=None,
    )


@pytest.fixture
def services(session_factory, test_settings, retry, cache, sink):
    return build_services(session_factory, test_settings, retry=retry, cache=cache, sink=sink)


@pytest.fixture
def client(services):
    app = create_app(services)
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def customer(services):
    return await services.customers.insert(Customer(
        first_name="Thandi", surname="Mokoena", email="thandi@example.com",
        address="12 Long Street", username="thandi_m",
    ))


@pytest.fixture
async def product(services):
    return await services.products.insert(Product(
        name="Ceramic Mug", description="350 ml", price=120.5, stock_quantity=5,
    ))


def create_customer(client, username="thandi_m", email="thandi@example.com"):
    response = client.post("/customers", json={
        "first_name": "Thandi", "surname": "Mokoena", "email": email,
        "address": "12 Long Street", "username": username,
    })
    assert response.status_code == 201, response.text
    return response.json()


def create_product(client, name="Ceramic Mug", price="120.50", stock=5, files=None):
    response = client.post(
        "/products",
        data={"name": name, "description": "350 ml", "price": price, "stock_quantity": str(stock)},
        files=files,
    )
    assert response.status_code == 201, response.text
    return response.json()
