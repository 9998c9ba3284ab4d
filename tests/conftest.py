import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from billing_route import get_today
from db import get_session
from main import app
from models import BusinessConfig, Client, Contract, Payment, Project, Subscription

TODAY = date(2026, 3, 15)


def dec(value) -> Decimal:
  return Decimal(str(value))


@pytest.fixture
def engine():
  engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
  )
  SQLModel.metadata.create_all(engine)
  yield engine
  SQLModel.metadata.drop_all(engine)
  engine.dispose()


@pytest.fixture
def session(engine):
  with Session(engine) as session:
    session.add(Client(id="CLI-001", name="Apex Retail", tax_id="0801-1990-00001"))
    session.add(Project(id="PRJ-001", name="Point of sale"))
    session.add(BusinessConfig(business_name="Demo Software", owner="Ana", void_key="secret"))
    session.commit()
    yield session


@pytest.fixture
def client(session):
  app.dependency_overrides[get_session] = lambda: session
  app.dependency_overrides[get_today] = lambda: TODAY
  yield TestClient(app)
  app.dependency_overrides.clear()


@pytest.fixture
def make_subscription(session):
  def make(**kw):
    values = dict(
      client_ref="CLI-001",
      project_ref="PRJ-001",
      monthly_amount=Decimal("100.00"),
      next_due_date=TODAY,
      billing_day_of_month=TODAY.day,
    )
    values.update(kw)
    sub = Subscription(**values)
    session.add(sub)
    session.commit()
    session.refresh(sub)
    return sub
  return make


@pytest.fixture
def make_contract(session):
  def make(prior_payments=(), **kw):
    values = dict(
      client_ref="CLI-001",
      project_ref="PRJ-001",
      total_amount=Decimal("1000.00"),
      initial_payment=Decimal("200.00"),
      installment_count=4,
    )
    values.update(kw)
    contract = Contract(**values)
    session.add(contract)
    session.commit()
    session.refresh(contract)
    for amount in prior_payments:
      session.add(Payment(
        type="contract",
        reference_id=contract.id,
        client_ref=contract.client_ref,
        project_ref=contract.project_ref,
        amount=Decimal(amount),
      ))
    session.commit()
    session.refresh(contract)
    return contract
  return make
