from datetime import datetime, timezone

import pytest

from app.domain.schemas import OrderWebhookPayload, StampProgramConfig
from app.services import loyalty_programs
from app.services.order_intake import handle_order_event

NOW = datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)


def order_payload(status="completed", total=80.0, phone="012-345 6789", order_id=1001, **customer):
    return OrderWebhookPayload(
        order_id=order_id,
        customer={
            "first_name": "Aisyah",
            "last_name": "Rahman",
            "email": "aisyah@example.com",
            "phone": phone,
            "city": "Shah Alam",
            **customer,
        },
        order={
            "total": total,
            "status": status,
            "date_created": "2025-03-15T09:00:00+00:00",
            "items": [{"name": "Latte", "quantity": 2, "total": total}],
        },
    )


@pytest.fixture
def stamp_program(store):
    loyalty_programs.save_stamp_program(
        store["id"], StampProgramConfig(promotion_name="Coffee Club", min_spend_per_stamp=50, total_stamps=10)
    )
    loyalty_programs.set_program_active(store["id"], "stamps", True)


@pytest.fixture
def welcome_flow(db, store):
    flow = db.seed("whatsapp_followup_flows", store_id=store["id"], name="Welcome", trigger_type="new_customer")
    db.seed("whatsapp_followup_steps", flow_id=flow["id"], message="Thanks for your order!", step_order=1)
    db.seed("whatsapp_followup_steps", flow_id=flow["id"], message="Come back soon", step_order=2, delay_days=3)
    return flow


def test_completed_order_creates_customer_and_credits_card(db, store, stamp_program, welcome_flow, dispatcher):
    outcome = handle_order_event(store, order_payload(), dispatcher=dispatcher, now=NOW)

    assert outcome["processed"] is True
    assert outcome["is_new_customer"] is True
    customer = db.rows("customers")[0]
    assert customer["phone"] == "60123456789"
    assert customer["city"] == "Shah Alam"
    assert customer["total_spent"] == 80.0
    assert customer["orders_count"] == 1
    assert outcome["accrual"].changed is True
    assert outcome["accrual"].stamps == 1
    assert dispatcher.stamps == [(store["id"], customer["id"], 1, 10)]


def test_new_customer_queues_follow_up_steps(db, store, welcome_flow, dispatcher):
    handle_order_event(store, order_payload(), dispatcher=dispatcher, now=NOW)

    jobs = sorted(db.rows("whatsapp_followup_jobs"), key=lambda j: j["scheduled_for"])
    assert [j["message"] for j in jobs] == ["Thanks for your order!", "Come back soon"]
    assert [j["status"] for j in jobs] == ["pending", "scheduled"]
    assert jobs[0]["scheduled_for"] == NOW.isoformat()
    assert jobs[1]["scheduled_for"] == "2025-03-18T09:30:00+00:00"


def test_returning_customer_accumulates_and_gets_no_new_flow(db, store, welcome_flow, dispatcher):
    handle_order_event(store, order_payload(total=80), dispatcher=dispatcher, now=NOW)
    outcome = handle_order_event(store, order_payload(total=20, order_id=1002), dispatcher=dispatcher, now=NOW)

    assert outcome["is_new_customer"] is False
    assert len(db.rows("customers")) == 1
    customer = db.rows("customers")[0]
    assert customer["total_spent"] == 100.0
    assert customer["orders_count"] == 2
    assert customer["last_order_amount"] == 20
    assert len(db.rows("whatsapp_followup_jobs")) == 2


@pytest.mark.parametrize("status", ["processing", "pending", "cancelled", "refunded"])
def test_non_completed_orders_are_ignored(db, store, stamp_program, dispatcher, status):
    outcome = handle_order_event(store, order_payload(status=status), dispatcher=dispatcher, now=NOW)

    assert outcome["processed"] is False
    assert db.rows("customers") == []
    assert db.rows("loyalty_cards") == []


def test_order_without_phone_is_ignored(db, store, dispatcher):
    outcome = handle_order_event(store, order_payload(phone=""), dispatcher=dispatcher, now=NOW)

    assert outcome == {"processed": False, "reason": "Customer phone number missing"}
    assert db.rows("customers") == []


def test_small_order_updates_metrics_but_not_card(db, store, stamp_program, dispatcher):
    outcome = handle_order_event(store, order_payload(total=30), dispatcher=dispatcher, now=NOW)

    assert outcome["processed"] is True
    assert outcome["accrual"].changed is False
    assert db.rows("customers")[0]["total_spent"] == 30.0
    assert db.rows("loyalty_cards") == []


def test_redelivered_order_is_credited_again(db, store, stamp_program, dispatcher):
    handle_order_event(store, order_payload(), dispatcher=dispatcher, now=NOW)
    handle_order_event(store, order_payload(), dispatcher=dispatcher, now=NOW)

    assert db.rows("loyalty_cards")[0]["stamps"] == 2
    assert db.rows("customers")[0]["orders_count"] == 2
