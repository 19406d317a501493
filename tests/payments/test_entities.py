from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from paygate.application.dtos.payments import (
    EventType,
    Item,
    PaymentClass,
    PaymentStatus,
    PaymentType,
    Status,
    WebhookRequest,
)
from paygate.domain.common.exceptions import InvalidPayloadError


@pytest.mark.parametrize("payment_type", list(PaymentType))
def test_exactly_one_class_predicate(payment_type):
    flags = [
        payment_type.is_ewallet,
        payment_type.is_va,
        payment_type.is_qris,
        payment_type.is_cc,
        payment_type.is_retail,
    ]
    assert sum(flags) == 1


def test_method_class():
    assert PaymentType.SHOPEEPAY.method_class is PaymentClass.EWALLET
    assert PaymentType.VA_MANDIRI.method_class is PaymentClass.VIRTUAL_ACCOUNT
    assert PaymentType.CREDIT_CARD.method_class is PaymentClass.CREDIT_CARD
    assert PaymentType.ALFAMART.method_class is PaymentClass.RETAIL


@pytest.mark.parametrize("status", list(Status))
def test_final_statuses(status):
    expected = status in {Status.SUCCESS, Status.FAILED, Status.CANCELLED, Status.EXPIRED}
    assert status.is_final is expected


def test_event_type_from_status():
    assert EventType.from_status(Status.SUCCESS) is EventType.COMPLETED
    assert EventType.from_status(Status.EXPIRED).value == "payment.expired"
    assert EventType.from_status(Status.PROCESSING) is EventType.PENDING


def test_paid_at_requires_success():
    paid_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert PaymentStatus(order_id="O1", status=Status.SUCCESS, paid_at=paid_at).paid_at == paid_at
    with pytest.raises(PydanticValidationError):
        PaymentStatus(order_id="O1", status=Status.PENDING, paid_at=paid_at)


def test_item_constraints():
    with pytest.raises(PydanticValidationError):
        Item(name="N", price=100, quantity=0)
    with pytest.raises(PydanticValidationError):
        Item(name="N", price=-1)


def test_webhook_request_payloads():
    form = WebhookRequest(headers={"Content-Type": "application/x-www-form-urlencoded"}, body=b"a=1&b=")
    assert form.payload() == {"a": "1", "b": ""}
    assert form.header("content-type") == "application/x-www-form-urlencoded"

    body = WebhookRequest(headers={}, body=b' {"a": 1}')
    assert body.is_json()
    assert body.payload() == {"a": 1}

    with pytest.raises(InvalidPayloadError):
        WebhookRequest(headers={"content-type": "application/json"}, body=b"[1, 2]").json()
    with pytest.raises(InvalidPayloadError):
        WebhookRequest(body=b"\xff\xfe").text()
