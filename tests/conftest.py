"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database, seeded with two
administrators, two supervisors and one budget plan, plus a push client
that records what it would have sent.
"""
import json
import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import ALGORITHM, SECRET_KEY
from database import Base, BudgetPlan, DeviceToken, User, get_db, ROLE_ADMIN, ROLE_SUPERVISOR
from errors import DeliveryWarning
from line_items import CATEGORY_COLUMNS
from main import app
from notifications import NotificationDispatcher
from push import get_push_client


class RecordingPushClient:
    def __init__(self):
        self.sent = []
        self.failing_tokens = set()

    def send(self, token, title, body, payload=None):
        if token in self.failing_tokens:
            raise DeliveryWarning(f"Push to {token} failed", token=token)
        self.sent.append({"to": token, "title": title, "body": body, "data": payload})
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def push():
    return RecordingPushClient()


@pytest.fixture
def dispatcher(db, push):
    return NotificationDispatcher(db, push)


@pytest.fixture
def users(db):
    seeded = {
        "admin": User(name="Admin Satu", email="admin1@example.com", role=ROLE_ADMIN),
        "admin2": User(name="Admin Dua", email="admin2@example.com", role=ROLE_ADMIN),
        "supervisor": User(name="Budi", email="budi@example.com", role=ROLE_SUPERVISOR),
        "other_supervisor": User(name="Sari", email="sari@example.com", role=ROLE_SUPERVISOR),
        "retired_admin": User(
            name="Lama", email="lama@example.com", role=ROLE_ADMIN, status_deleted=True
        ),
    }
    db.add_all(seeded.values())
    db.commit()
    return {name: user.id for name, user in seeded.items()}


@pytest.fixture
def plan_id(db, users):
    plan = BudgetPlan(
        proyek="Gudang Cikarang",
        pekerjaan="Instalasi listrik",
        lokasi="Cikarang",
        kontraktor="PT Maju",
        supervisi_id=users["supervisor"],
        status="on_progress",
    )
    db.add(plan)
    db.commit()
    return plan.id


@pytest.fixture
def store_blob(db):
    """Write a category blob directly, bypassing normalization."""

    def _store(plan_id, key, value):
        plan = db.get(BudgetPlan, plan_id)
        text = value if isinstance(value, str) or value is None else json.dumps(value)
        setattr(plan, CATEGORY_COLUMNS[key], text)
        db.commit()

    return _store


@pytest.fixture
def add_device(db):
    def _add(user_id, token, active=True):
        row = DeviceToken(user_id=user_id, device_token=token, is_active=active)
        db.add(row)
        db.commit()
        return row.id

    return _add


@pytest.fixture
def client(session_factory, push):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_client] = lambda: push
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _header(user_id, expires_in=timedelta(minutes=30)):
        claims = {"sub": str(user_id), "exp": datetime.utcnow() + expires_in}
        token = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
        return {"Authorization": f"Bearer {token}"}

    return _header
