import json

import httpx
import pytest

from app.domain.errors import NotificationDeliveryError, NotificationNotConfiguredError
from app.services.notifications import (
    NotificationDispatcher,
    build_points_message,
    build_stamp_message,
    render_winner_message,
)
from app.services.onsend import OnSendClient

API_URL = "https://onsend.test/api/v1/send"


def make_client(handler, api_key="onsend-key"):
    return OnSendClient(api_key=api_key, api_url=API_URL, transport=httpx.MockTransport(handler))


def test_send_text_posts_json_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    make_client(handler).send_text("60123456789", "Hello!")

    assert seen["auth"] == "Bearer onsend-key"
    assert seen["body"] == {"phone_number": "60123456789", "type": "text", "message": "Hello!"}


def test_http_error_status_raises_delivery_error():
    client = make_client(lambda request: httpx.Response(401, json={"message": "bad key"}))

    with pytest.raises(NotificationDeliveryError) as exc:
        client.send_text("60123456789", "Hello!")
    assert exc.value.status_code == 401


def test_success_false_raises_delivery_error():
    client = make_client(lambda request: httpx.Response(200, json={"success": False, "message": "not on WhatsApp"}))

    with pytest.raises(NotificationDeliveryError, match="not on WhatsApp"):
        client.send_text("60123456789", "Hello!")


def test_transport_failure_raises_delivery_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(NotificationDeliveryError):
        make_client(handler).send_text("60123456789", "Hello!")


@pytest.mark.parametrize("api_key, phone, message", [
    (None, "60123456789", "Hello!"),
    ("onsend-key", "", "Hello!"),
    ("onsend-key", "60123456789", "   "),
])
def test_missing_details_are_refused_before_sending(api_key, phone, message):
    def handler(request):
        raise AssertionError("should not be called")

    with pytest.raises(NotificationNotConfiguredError):
        make_client(handler, api_key=api_key).send_text(phone, message)


# ============================================
# Message templates
# ============================================

def test_render_winner_message_fills_placeholders():
    message = render_winner_message(
        "Tahniah {first_name} {last_name}! You won {prize_name}.",
        {"first_name": "Aisyah", "last_name": "Rahman"},
        "Free Coffee",
    )
    assert message == "Tahniah Aisyah Rahman! You won Free Coffee."


def test_render_winner_message_uses_default_template():
    message = render_winner_message(None, {"first_name": None}, "Tote Bag")
    assert message == "Congratulations there! You've won Tote Bag in our lucky draw!"


def test_stamp_message_mentions_reward_once_earned():
    assert "earned a reward" not in build_stamp_message("Aisyah", 9, 10, "https://x.test/customer")
    assert "earned a reward" in build_stamp_message("Aisyah", 10, 10, "https://x.test/customer")
    assert "earned a reward" in build_stamp_message("Aisyah", 11, 10, "https://x.test/customer")


def test_points_message():
    message = build_points_message("Aisyah", 51, 120, "https://x.test/customer")
    assert "51 points" in message
    assert "120 points" in message


# ============================================
# Dispatcher
# ============================================

class RecordingClient:
    def __init__(self, fail=None):
        self.sent = []
        self.fail = fail

    def send_text(self, phone, message):
        if self.fail:
            raise self.fail
        self.sent.append((phone, message))


def test_dispatcher_sends_stamp_message_with_store_card_link(store):
    client = RecordingClient()
    dispatcher = NotificationDispatcher(client_factory=lambda s: client)

    dispatcher.notify_stamp_earned(store["id"], {"id": "c1", "first_name": "Aisyah", "phone": "60123"}, 3, 10)

    assert client.sent[0][0] == "60123"
    assert "3 out of 10 stamps" in client.sent[0][1]
    assert "https://kopicorner.my/customer" in client.sent[0][1]


def test_dispatcher_returns_warning_instead_of_raising(store):
    client = RecordingClient(fail=NotificationDeliveryError("OnSend returned HTTP 500", status_code=500))
    dispatcher = NotificationDispatcher(client_factory=lambda s: client)

    warning = dispatcher.notify_winner(store["id"], {"id": "c1", "phone": "60123"}, "Mug", None)

    assert warning == "OnSend returned HTTP 500"


def test_dispatcher_without_api_key_warns(db, store):
    db.table("stores").update({"api_key": None}).eq("id", store["id"]).execute()
    dispatcher = NotificationDispatcher(client_factory=lambda s: RecordingClient())

    warning = dispatcher.notify_winner(store["id"], {"id": "c1", "phone": "60123"}, "Mug", None)

    assert "API key not configured" in warning


def test_dispatcher_without_phone_warns(store):
    dispatcher = NotificationDispatcher(client_factory=lambda s: RecordingClient())

    assert dispatcher.notify_winner(store["id"], {"id": "c1"}, "Mug", None) == "Customer phone number not found"
