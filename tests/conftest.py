"""
Shared fixtures: an in-memory Supabase, seeded stores/customers and a
recording notification dispatcher.
"""

import os

# Test environment variables (must be set before app.core.config is imported)
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["RESEND_API_KEY"] = ""

import random
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from tests.fake_supabase import FakeSupabase

JWT_SECRET = "test-jwt-secret"
OWNER_ID = "11111111-1111-1111-1111-111111111111"


def make_token(sub: str = OWNER_ID) -> str:
    """A Supabase-style access token signed with the test secret."""
    payload = {
        "sub": sub,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


class RecordingDispatcher:
    """NotificationDispatcher stand-in that records instead of sending."""

    def __init__(self, winner_warning: str | None = None):
        self.winner_warning = winner_warning
        self.winners: list[tuple] = []
        self.stamps: list[tuple] = []
        self.points: list[tuple] = []

    def notify_winner(self, store_id, customer, prize_name, template):
        self.winners.append((store_id, customer["id"], prize_name, template))
        return self.winner_warning

    def notify_stamp_earned(self, store_id, customer, stamps, total_stamps):
        self.stamps.append((store_id, customer["id"], stamps, total_stamps))

    def notify_points_earned(self, store_id, customer, earned, balance):
        self.points.append((store_id, customer["id"], earned, balance))


class FixedRandom:
    """Random source returning a scripted sequence of floats."""

    def __init__(self, *values: float):
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)


@pytest.fixture
def db(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr("database.supabase_client.get_supabase_client", lambda: fake)
    return fake


@pytest.fixture
def store(db):
    return db.seed(
        "stores",
        user_id=OWNER_ID,
        name="Kopi Corner",
        url="https://kopicorner.my",
        api_key="onsend-key",
        webhook_key="plugin-key",
        whatsapp_interval=30,
    )


@pytest.fixture
def make_customer(db, store):
    def _make(first_name="Aisyah", last_name="Rahman", phone=None, total_spent=0, **extra):
        return db.seed(
            "customers",
            store_id=extra.pop("store_id", store["id"]),
            first_name=first_name,
            last_name=last_name,
            phone=phone or f"6012{random.randint(1000000, 9999999)}",
            total_spent=total_spent,
            **extra,
        )
    return _make


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}
