"""
Pytest configuration: in-memory SQLite shared through one Session, with the
app's get_session dependency overridden to hand that Session to every route.
"""

import os

# must be set before config.py is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-0123456789abcdef0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

import models  # noqa: F401
from auth_route import create_user
from db import engine, get_session
from main import app
from models import Customer, Invoice, Package, UserRole

ADMIN_PASSWORD = "admin-pass-123"
STAFF_PASSWORD = "staff-pass-123"

@pytest.fixture(name="session")
def session_fixture():
  SQLModel.metadata.create_all(engine)
  with Session(engine) as session:
    yield session
  SQLModel.metadata.drop_all(engine)

@pytest.fixture(name="client")
def client_fixture(session: Session):
  def get_session_override():
    yield session

  app.dependency_overrides[get_session] = get_session_override
  client = TestClient(app)
  yield client
  app.dependency_overrides.clear()

@pytest.fixture
def admin_user(session: Session):
  return create_user(session, "admin", ADMIN_PASSWORD, "admin@isp.test", role=UserRole.admin)

@pytest.fixture
def staff_user(session: Session):
  return create_user(session, "staff", STAFF_PASSWORD, "staff@isp.test", role=UserRole.staff)

def login(client: TestClient, username: str, password: str) -> dict:
  r = client.post("/api/auth/login", json={"username": username, "password": password})
  assert r.status_code == 200, r.text
  return {"Authorization": f"Bearer {r.json()['token']}"}

@pytest.fixture
def admin_headers(client: TestClient, admin_user) -> dict:
  return login(client, "admin", ADMIN_PASSWORD)

@pytest.fixture
def staff_headers(client: TestClient, staff_user) -> dict:
  return login(client, "staff", STAFF_PASSWORD)

@pytest.fixture
def make_package(session: Session):
  def _make(name="Home 50", speed="50 Mbps", price="300000", **fields):
    pkg = Package(name=name, speed=speed, price=Decimal(price), **fields)
    session.add(pkg)
    session.commit()
    session.refresh(pkg)
    return pkg
  return _make

@pytest.fixture
def make_customer(session: Session):
  def _make(name="Budi Santoso", email="budi@example.com", **fields):
    customer = Customer(name=name, email=email, **fields)
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer
  return _make

@pytest.fixture
def make_invoice(session: Session):
  counter = {"n": 0}

  def _make(customer, due_date: date, amount="300000", package=None, **fields):
    counter["n"] += 1
    invoice = Invoice(
      invoice_number=fields.pop("invoice_number", f"INV-202401-{counter['n']:04d}"),
      customer_id=customer.id,
      package_id=package.id if package else None,
      amount=Decimal(amount),
      due_date=due_date,
      **fields,
    )
    session.add(invoice)
    session.commit()
    session.refresh(invoice)
    return invoice
  return _make

@pytest.fixture
def login_as(client: TestClient):
  return lambda username, password: login(client, username, password)
