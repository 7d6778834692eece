"""
Wspolne fixtures: baza serwera w pamieci (StaticPool), klient FastAPI
z podmienionymi zaleznosciami, lokalna baza klienta offline i fałszywa siec.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.api.deps import get_lock_service, get_notification_service
from storefront.data.database import Base, get_db
from storefront.data.models import CartItemModel, ProductModel, UserModel
from storefront.main import create_app
from storefront.offline.database import create_offline_engine, init_offline_database


class FakeLockService:
    def __init__(self):
        self.locks = {}

    def acquire_checkout_lock(self, user_id, token, ttl):
        if user_id in self.locks:
            return False
        self.locks[user_id] = token
        return True

    def release_checkout_lock(self, user_id, token):
        if self.locks.get(user_id) == token:
            del self.locks[user_id]
            return True
        return False


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_order_notification(self, user_id, order_id, order_number):
        self.sent.append((user_id, order_id, order_number))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def SessionTesting(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(SessionTesting):
    session = SessionTesting()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(SessionTesting, lock_service, notifier):
    app = create_app(init_db=False)

    def override_get_db():
        db = SessionTesting()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    def _make(user_id, name="Jan", is_admin=False):
        user = UserModel(id=user_id, name=name, is_admin=is_admin)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name="Keyboard", price="10.00", stock=5, is_active=True):
        product = ProductModel(name=name, price=Decimal(price), stock_quantity=stock, is_active=is_active)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def put_in_cart(db_session):
    def _put(user_id, product_id, quantity):
        item = CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity)
        db_session.add(item)
        db_session.commit()
        return item
    return _put


def auth(user_id):
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def headers():
    return auth


# ---------- offline client ----------

@pytest.fixture
def offline_db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'offline.db'}"


@pytest.fixture
def open_offline(offline_db_url):
    async def _open():
        engine = create_offline_engine(offline_db_url)
        session_factory = await init_offline_database(engine)
        return engine, session_factory
    return _open


class FakeServer:
    """Siec dla httpx.MockTransport: trasy, log wywolan i przelacznik offline."""

    base_url = "http://shop.test"

    def __init__(self):
        self.calls = []
        self.routes = {}
        self.offline = False

    def route(self, method, path, status=200, **kwargs):
        self.routes[(method, path)] = (status, kwargs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("network unreachable", request=request)
        self.calls.append((request.method, request.url.path))
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="not found")
        status, kwargs = route
        if callable(status):
            return status(request)
        return httpx.Response(status, **kwargs)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=self.base_url)


@pytest.fixture
def server():
    return FakeServer()
