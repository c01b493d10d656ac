import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root (containing main.py, core/, services/) is importable
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from database import Base, get_db  # noqa: E402
import models  # noqa: E402,F401
from core import registry as player_registry  # noqa: E402
from services import ledger_service  # noqa: E402

STAKE = 100
FEE_PERCENT = 5
OWNER = "owner"


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def ledger(db):
    """Registry with a 100 unit stake and a 5% fee, players A, B and C funded"""
    player_registry.initialize_registry(
        db, fee_percent=FEE_PERCENT, fixed_bet=STAKE, owner=OWNER, economic_mode=True
    )
    for identity in ("A", "B", "C"):
        ledger_service.deposit(identity, 1000, db)
    db.commit()
    return db


@pytest.fixture()
def free_ledger(db):
    """Registry without stakes"""
    player_registry.initialize_registry(
        db, fee_percent=0, fixed_bet=0, owner=OWNER, economic_mode=False
    )
    return db


@pytest.fixture()
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
