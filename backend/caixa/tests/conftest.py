import os

# Antes de importar o app: banco em memória e sem seed automático
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from caixa.core.database import SessionLocal, engine
from caixa.core.security import create_token
from caixa.main import app
from caixa.models import Base, Closing, Receivable, User
from caixa.services.seed import seed_stores
from caixa.services.storage import ClosingStorage


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_stores(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def storage(db):
    return ClosingStorage(db)


@pytest.fixture()
def users(db):
    operator = User(email="op@capao.test", store_id="capao", operator_name="Operador")
    other = User(email="op@guapiara.test", store_id="guapiara")
    admin = User(email="admin@caixa.test", store_id="admin", operator_name="Adm", is_admin=True)
    db.add_all([operator, other, admin])
    db.commit()
    return {"operator": operator, "other": other, "admin": admin}


@pytest.fixture()
def headers(users):
    return {
        role: {"Authorization": f"Bearer {create_token(str(user.id))}"}
        for role, user in users.items()
    }


@pytest.fixture()
def client(db):
    return TestClient(app)


@pytest.fixture()
def make_closing(db):
    """Insert a bare closing row, for tests that only need a parent closing."""
    def _make(store_id="capao", closing_date=date(2024, 5, 10), totals=None):
        closing = Closing(
            store_id=store_id,
            closing_date=closing_date,
            common_entries={},
            electronic_entries={},
            calculated_totals=totals or {},
        )
        db.add(closing)
        db.commit()
        db.refresh(closing)
        return closing
    return _make


@pytest.fixture()
def make_receivable(db, make_closing):
    origins = {}

    def _make(store_id="capao", amount="220.00", status="pending", origin=None):
        if origin is None:
            if store_id not in origins:
                origins[store_id] = make_closing(store_id=store_id, closing_date=date(2024, 5, 1))
            origin = origins[store_id]
        receivable = Receivable(
            store_id=store_id,
            client_name="João",
            reference="ABC1D23",
            amount=Decimal(amount),
            debit_date=origin.closing_date,
            status=status,
            origin_closing_id=origin.id,
        )
        db.add(receivable)
        db.commit()
        db.refresh(receivable)
        return receivable
    return _make
