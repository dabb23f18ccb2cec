import os

# the app module builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_CONNECT_DELAY", "0")

import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models
from database import Base, create_db_engine, get_db
from main import app, get_gateway
from payments import PaymentGateway, PaymentGatewayError


class FakeGateway(PaymentGateway):
    """Gateway double: real encryption, canned token and charge answers."""

    def __init__(self, status="approved"):
        super().__init__("https://gateway.test/api", "test-secret", Fernet.generate_key())
        self.status = status
        self.token_error = None
        self.charge_error = None
        self.charges = []

    def get_token(self):
        if self.token_error:
            raise PaymentGatewayError(self.token_error)
        return "test-token"

    def charge(self, token, cryptogram, amount, order_id):
        if self.charge_error:
            raise PaymentGatewayError(self.charge_error)
        self.charges.append({"token": token, "cryptogram": cryptogram, "amount": amount, "order_id": order_id})
        return self.status


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    u = models.User(name="John Doe", email="john@example.com", address="123 Elm Street", role="client")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def product(db):
    p = models.Product(
        name="Test Product",
        description="Test Description",
        price=10.0,
        category="Test Category",
        quantity=5,
    )
    db.add(p)
    db.commit()
    return p
