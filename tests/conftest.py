import pytest
from sqlalchemy.pool import StaticPool
from starlette.testclient import TestClient

from app import create_app
from config import Settings
from database import SessionLocal, build_engine, init_db

OAT_MILK = {
    "product_name_en": "Oat Milk",
    "labels_tags": ["en:vegan"],
    "ecoscore_grade": "b",
    "ecoscore_data": {"agribalyse": {"co2_total": 0.42}},
    "image_url": "https://images.example/oat.jpg",
}


class StubLookup:
    """Stands in for ProductLookupClient; returns canned products by barcode."""

    def __init__(self, products=None):
        self.products = dict(products or {})
        self.calls = []

    def lookup(self, barcode):
        self.calls.append(barcode)
        return self.products.get(barcode)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def lookup():
    return StubLookup({"123": OAT_MILK})


@pytest.fixture
def client(engine, lookup):
    settings = Settings(database_url="sqlite://", secret_key="test-secret", jwt_secret_key="test-jwt")
    app = create_app(settings=settings, engine=engine, lookup_client=lookup)
    with TestClient(app) as c:
        yield c


def register_and_login(client, username="alice", email="alice@example.com", password="Secret123!"):
    r = client.post(
        "/register",
        data={"username": username, "email": email, "password": password, "password_repeat": password},
        follow_redirects=False,
    )
    assert r.status_code == 303, r.text
    r = client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
    assert r.status_code == 303, r.text
    return r
