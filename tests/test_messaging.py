from datetime import date, datetime, timezone

import pytest

from app.domain.errors import InvalidConfigurationError, NotificationDeliveryError, NotificationNotConfiguredError
from app.repositories.store import StoreRepository
from app.services import blaster
from app.services.followups import process_due_jobs

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


class RecordingClient:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send_text(self, phone, message):
        if phone in self.fail_for:
            raise NotificationDeliveryError("OnSend returned HTTP 500", status_code=500)
        self.sent.append((phone, message))


class RecordingEmailService:
    is_configured = True

    def __init__(self):
        self.sent = []

    def send_campaign_email(self, to, subject, html, customer_name=None, store_name=None):
        self.sent.append((to, subject, customer_name, store_name))
        return True


# ============================================
# Last order window
# ============================================

def test_filter_uses_store_local_date():
    customers = [
        {"id": "late", "last_order_date": "2025-03-09T18:30:00+00:00"},   # 10 March in UTC+8
        {"id": "early", "last_order_date": "2025-03-09T10:00:00+00:00"},  # 9 March in UTC+8
        {"id": "never", "last_order_date": None},
    ]

    selected = blaster.filter_by_last_order(customers, date(2025, 3, 10), date(2025, 3, 10))

    assert [c["id"] for c in selected] == ["late"]


def test_filter_without_window_keeps_everyone():
    customers = [{"id": "a", "last_order_date": None}, {"id": "b", "last_order_date": "2025-01-01T00:00:00Z"}]
    assert blaster.filter_by_last_order(customers, None, None) == customers


def test_filter_with_open_end():
    customers = [
        {"id": "old", "last_order_date": "2025-01-01T00:00:00+00:00"},
        {"id": "new", "last_order_date": "2025-03-01T00:00:00+00:00"},
    ]
    assert [c["id"] for c in blaster.filter_by_last_order(customers, date(2025, 2, 1), None)] == ["new"]


# ============================================
# WhatsApp blast
# ============================================

def test_whatsapp_blast_sends_sequentially_and_waits(store, make_customer):
    make_customer(phone="60111", last_order_date="2025-03-02T00:00:00+00:00")
    make_customer(phone="60222", last_order_date="2025-03-01T00:00:00+00:00")
    make_customer(phone="60333", last_order_date="2025-02-01T00:00:00+00:00")
    client = RecordingClient(fail_for={"60222"})
    sleeps = []

    result = blaster.send_whatsapp_blast(
        store["id"],
        "Weekend promo!",
        start_date=date(2025, 3, 1),
        client_factory=lambda s: client,
        sleep=sleeps.append,
    )

    assert (result.total, result.sent, result.failed) == (2, 1, 1)
    assert client.sent == [("60111", "Weekend promo!")]
    assert sleeps == [30]


def test_whatsapp_blast_uses_store_interval(db, store, make_customer):
    blaster.set_whatsapp_interval(store["id"], 60)
    make_customer(phone="60111")
    make_customer(phone="60222")
    sleeps = []

    blaster.send_whatsapp_blast(store["id"], "Hi", client_factory=lambda s: RecordingClient(), sleep=sleeps.append)

    assert sleeps == [60, 60]


def test_whatsapp_blast_requires_api_key(store, make_customer):
    StoreRepository.update(store["id"], api_key=None)
    make_customer()

    with pytest.raises(NotificationNotConfiguredError):
        blaster.send_whatsapp_blast(store["id"], "Hi", client_factory=lambda s: RecordingClient(), sleep=lambda s: None)


def test_whatsapp_blast_requires_message(store):
    with pytest.raises(NotificationNotConfiguredError):
        blaster.send_whatsapp_blast(store["id"], "  ", client_factory=lambda s: RecordingClient(), sleep=lambda s: None)


@pytest.mark.parametrize("interval", [0, 15, 45, 90])
def test_interval_must_be_30_or_60(store, interval):
    with pytest.raises(InvalidConfigurationError):
        blaster.set_whatsapp_interval(store["id"], interval)


# ============================================
# Email blast
# ============================================

def test_email_blast_skips_customers_without_email(store, make_customer):
    make_customer(first_name="Aisyah", email="aisyah@example.com")
    make_customer(first_name="NoMail")
    service = RecordingEmailService()

    result = blaster.send_email_blast(store["id"], "Promo", "<p>Hi {first_name}</p>", email_service=service)

    assert (result.total, result.sent, result.failed) == (1, 1, 0)
    assert service.sent == [("aisyah@example.com", "Promo", "Aisyah", "Kopi Corner")]


def test_email_blast_requires_configuration(store):
    service = RecordingEmailService()
    service.is_configured = False

    with pytest.raises(NotificationNotConfiguredError):
        blaster.send_email_blast(store["id"], "Promo", "<p>Hi</p>", email_service=service)


# ============================================
# Follow-up jobs
# ============================================

def test_process_due_jobs_sends_and_marks(db, store, make_customer):
    customer = make_customer(phone="60111")
    due = db.seed("whatsapp_followup_jobs", store_id=store["id"], customer_id=customer["id"],
                  message="Welcome!", status="pending", scheduled_for="2025-03-15T11:00:00+00:00")
    later = db.seed("whatsapp_followup_jobs", store_id=store["id"], customer_id=customer["id"],
                    message="Come back", status="scheduled", scheduled_for="2025-03-18T12:00:00+00:00")
    client = RecordingClient()

    result = process_due_jobs(now=NOW, client_factory=lambda s: client)

    assert (result.processed, result.sent, result.failed) == (1, 1, 0)
    assert client.sent == [("60111", "Welcome!")]
    statuses = {j["id"]: j["status"] for j in db.rows("whatsapp_followup_jobs")}
    assert statuses == {due["id"]: "sent", later["id"]: "scheduled"}


def test_process_due_jobs_marks_failures(db, store, make_customer):
    customer = make_customer(phone="60222")
    job = db.seed("whatsapp_followup_jobs", store_id=store["id"], customer_id=customer["id"],
                  message="Welcome!", status="pending", scheduled_for="2025-03-15T11:00:00+00:00")

    result = process_due_jobs(now=NOW, client_factory=lambda s: RecordingClient(fail_for={"60222"}))

    assert (result.processed, result.sent, result.failed) == (1, 0, 1)
    row = db.rows("whatsapp_followup_jobs")[0]
    assert row["id"] == job["id"]
    assert row["status"] == "failed"
    assert row["error_message"] == "OnSend returned HTTP 500"


def test_process_due_jobs_without_api_key(db, store, make_customer):
    StoreRepository.update(store["id"], api_key=None)
    customer = make_customer()
    db.seed("whatsapp_followup_jobs", store_id=store["id"], customer_id=customer["id"],
            message="Welcome!", status="pending", scheduled_for="2025-03-15T11:00:00+00:00")

    result = process_due_jobs(now=NOW, client_factory=lambda s: RecordingClient())

    assert result.failed == 1
    assert db.rows("whatsapp_followup_jobs")[0]["error_message"] == "Store API key not configured"


def test_process_due_jobs_with_nothing_due(db):
    result = process_due_jobs(now=NOW, client_factory=lambda s: RecordingClient())
    assert (result.processed, result.sent, result.failed) == (0, 0, 0)
