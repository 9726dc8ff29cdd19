import httpx
import pytest

from app.core.config import get_customer_card_url
from database.connection import with_retry


def test_with_retry_recovers_from_dropped_connection(monkeypatch):
    resets = []
    monkeypatch.setattr("database.supabase_client.reset_supabase_client", lambda: resets.append(True))
    attempts = []

    @with_retry(max_retries=2, delay=0)
    def flaky():
        attempts.append(True)
        if len(attempts) < 2:
            raise httpx.RemoteProtocolError("Server disconnected")
        return "ok"

    assert flaky() == "ok"
    assert len(attempts) == 2
    assert len(resets) == 1


def test_with_retry_gives_up(monkeypatch):
    monkeypatch.setattr("database.supabase_client.reset_supabase_client", lambda: None)

    @with_retry(max_retries=1, delay=0)
    def down():
        raise httpx.ConnectError("connection refused")

    with pytest.raises(httpx.ConnectError):
        down()


def test_with_retry_does_not_retry_other_errors():
    attempts = []

    @with_retry(delay=0)
    def broken():
        attempts.append(True)
        raise ValueError("bad row")

    with pytest.raises(ValueError):
        broken()
    assert len(attempts) == 1


@pytest.mark.parametrize("store, expected", [
    ({"url": "https://kopicorner.my/"}, "https://kopicorner.my/customer"),
    ({"url": None}, "https://loopiify.netlify.app/customer"),
    (None, "https://loopiify.netlify.app/customer"),
])
def test_customer_card_url(store, expected):
    assert get_customer_card_url(store) == expected
