import copy
import hashlib

import pytest

from atelier.payments.utils import compute_event_checksum, validate_webhook_signature

SECRET = "test_events_secret"


def signed_event(secret: str = SECRET) -> dict:
    event = {
        "event": "transaction.updated",
        "data": {
            "transaction": {
                "id": "1234-1610641025-49201",
                "status": "APPROVED",
                "amount_in_cents": 8700000,
                "reference": "ORD-250314-0001",
            }
        },
        "signature": {
            "properties": ["transaction.id", "transaction.status", "transaction.amount_in_cents"],
            "checksum": "",
        },
        "timestamp": 1710428400,
    }
    concatenated = f"1234-1610641025-49201APPROVED87000001710428400{secret}"
    event["signature"]["checksum"] = hashlib.sha256(concatenated.encode("utf-8")).hexdigest()
    return event


def test_checksum_concatenates_properties_timestamp_and_secret():
    event = signed_event()

    assert compute_event_checksum(event, SECRET) == event["signature"]["checksum"]


def test_valid_signature_is_accepted():
    assert validate_webhook_signature(signed_event(), SECRET, allow_unsigned=False) is True


def test_uppercase_checksum_is_accepted():
    event = signed_event()
    event["signature"]["checksum"] = event["signature"]["checksum"].upper()

    assert validate_webhook_signature(event, SECRET, allow_unsigned=False) is True


@pytest.mark.parametrize("tamper", [
    lambda e: e["data"]["transaction"].update(status="DECLINED"),
    lambda e: e["data"]["transaction"].update(amount_in_cents=100),
    lambda e: e.update(timestamp=1710428401),
])
def test_tampered_event_is_rejected(tamper):
    event = copy.deepcopy(signed_event())
    tamper(event)

    assert validate_webhook_signature(event, SECRET, allow_unsigned=False) is False


def test_wrong_secret_is_rejected():
    assert validate_webhook_signature(signed_event("another_secret"), SECRET, allow_unsigned=False) is False


def test_missing_signature_is_rejected_when_secret_is_set():
    event = signed_event()
    del event["signature"]

    assert validate_webhook_signature(event, SECRET, allow_unsigned=True) is False


def test_missing_property_counts_as_empty_string():
    event = signed_event()
    event["signature"]["properties"].append("transaction.customer_email")

    assert compute_event_checksum(event, SECRET) == event["signature"]["checksum"]


def test_unsigned_events_depend_on_environment():
    event = {"event": "transaction.updated", "data": {}}

    assert validate_webhook_signature(event, None, allow_unsigned=True) is True
    assert validate_webhook_signature(event, "", allow_unsigned=False) is False
