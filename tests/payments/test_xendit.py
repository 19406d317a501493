import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from paygate.application.dtos.payments import (
    ChargeParams,
    Customer,
    EventType,
    PaymentType,
    Status,
    WebhookRequest,
)
from paygate.core.config import ProviderConfig
from paygate.domain.common.exceptions import FieldError, InvalidPayloadError, ProviderError, error_is
from paygate.infrastructure.external.api_clients.base import HTTPTransport
from paygate.infrastructure.external.payments import xendit_mapper
from paygate.infrastructure.external.payments.xendit_client import XenditClient
from paygate.shared.codes import PaymentCode


SERVER_KEY = "xnd_development_secret"
CALLBACK_TOKEN = "cb-token"


def _client(recorder) -> XenditClient:
    config = ProviderConfig(server_key=SERVER_KEY, client_key=CALLBACK_TOKEN)
    return XenditClient(config, transport=HTTPTransport(transport=recorder.transport))


def _params(**overrides) -> ChargeParams:
    data = dict(
        order_id="ORDER-VA-1",
        amount=150000,
        payment_type=PaymentType.VA_BCA,
        customer=Customer(id="CUST-1", name="Jane", email="jane@example.com"),
    )
    data.update(overrides)
    return ChargeParams(**data)


@pytest.mark.asyncio
async def test_va_create(recorder):
    recorder.reply(200, {"id": "V1", "account_number": "1234567890", "status": "PENDING"})
    client = _client(recorder)

    response = await client.create_charge(_params())

    request = recorder.last
    assert str(request.url) == "https://api.xendit.co/callback_virtual_accounts"
    assert request.headers["authorization"] == "Basic " + base64.b64encode(b"xnd_development_secret:").decode()
    assert recorder.last_json() == {
        "external_id": "ORDER-VA-1",
        "bank_code": "BCA",
        "name": "Jane",
        "expected_amount": 150000,
        "is_closed": True,
        "currency": "IDR",
    }
    assert response.va_number == "1234567890"
    assert response.va_bank == "BCA"
    assert response.status is Status.PENDING
    assert response.transaction_id == "V1"
    assert response.order_id == "ORDER-VA-1"
    assert response.amount == 150000


def test_va_bank_override():
    body = xendit_mapper.to_va_request(_params(custom={"bank_code": "sahabat_sampurna", "va_number": "9999"}))
    assert body["bank_code"] == "SAHABAT_SAMPURNA"
    assert body["virtual_account_number"] == "9999"
    with pytest.raises(FieldError):
        xendit_mapper.to_va_request(_params(custom={"bank_code": "JAGO"}))


@pytest.mark.asyncio
async def test_ewallet_charge(recorder):
    recorder.reply(200, {
        "id": "ewc_1",
        "reference_id": "ORDER-DANA-1",
        "status": "PENDING",
        "charge_amount": 25000,
        "actions": {"mobile_web_checkout_url": "https://checkout/dana"},
        "created": "2024-01-01T03:00:00.000Z",
    })
    params = _params(
        order_id="ORDER-DANA-1",
        amount=25000,
        payment_type=PaymentType.DANA,
        return_url="https://shop/done",
        callback_url="https://shop/cb",
    )
    response = await _client(recorder).create_charge(params)

    assert recorder.last.url.path == "/ewallets"
    body = recorder.last_json()
    assert body["reference_id"] == "ORDER-DANA-1"
    assert body["checkout_method"] == "ONE_TIME_PAYMENT"
    assert body["channel_code"] == "DANA"
    assert body["channel_properties"]["success_redirect_url"] == "https://shop/done"
    assert response.payment_url == "https://checkout/dana"
    assert response.amount == 25000
    assert response.created_at == datetime(2024, 1, 1, 3, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_qris_goes_through_ewallet_endpoint(recorder):
    recorder.reply(200, {"id": "qr_1", "status": "PENDING", "actions": {"qr_checkout_string": "000201..."}})
    response = await _client(recorder).create_charge(_params(payment_type=PaymentType.QRIS, amount=5000))
    assert recorder.last_json()["channel_code"] == "QRIS"
    assert response.qr_string == "000201..."


@pytest.mark.asyncio
async def test_dana_without_redirect_fails_before_io(recorder):
    with pytest.raises(FieldError) as exc_info:
        await _client(recorder).create_charge(_params(payment_type=PaymentType.DANA, amount=25000))
    assert exc_info.value.field == "ChannelProperties.SuccessRedirectURL"
    assert error_is(exc_info.value, PaymentCode.MISSING_PARAMETER)
    assert recorder.requests == []


def test_ovo_one_time_needs_mobile_number():
    body = xendit_mapper.to_ewallet_request(_params(payment_type=PaymentType.OVO, amount=10000))
    with pytest.raises(FieldError) as exc_info:
        xendit_mapper.validate_ewallet_request(body)
    assert exc_info.value.field == "ChannelProperties.MobileNumber"

    customer = Customer(id="C", name="Jane", email="jane@example.com", phone="08123456789")
    body = xendit_mapper.to_ewallet_request(_params(payment_type=PaymentType.OVO, amount=10000, customer=customer))
    assert body["channel_properties"]["mobile_number"] == "+628123456789"
    xendit_mapper.validate_ewallet_request(body)

    body = xendit_mapper.to_ewallet_request(
        _params(payment_type=PaymentType.OVO, amount=10000, custom={"mobile_number": "+15550001111"})
    )
    with pytest.raises(FieldError) as exc_info:
        xendit_mapper.validate_ewallet_request(body)
    assert error_is(exc_info.value, PaymentCode.INVALID_PHONE_NUMBER)


def test_tokenized_checkout_rules():
    tokenized = {"checkout_method": "TOKENIZED_PAYMENT"}
    body = xendit_mapper.to_ewallet_request(_params(payment_type=PaymentType.SHOPEEPAY, amount=10000, custom=tokenized))
    with pytest.raises(FieldError) as exc_info:
        xendit_mapper.validate_ewallet_request(body)
    assert exc_info.value.field == "PaymentMethodID"

    custom = {**tokenized, "payment_method_id": "pm-1", "customer_id": "cust-1"}
    body = xendit_mapper.to_ewallet_request(
        _params(payment_type=PaymentType.SHOPEEPAY, amount=10000, custom=custom, return_url="https://shop/done")
    )
    assert body["channel_properties"]["redeem_points"] == "REDEEM_NONE"
    xendit_mapper.validate_ewallet_request(body)

    body = xendit_mapper.to_ewallet_request(
        _params(
            payment_type=PaymentType.OVO,
            amount=10000,
            custom={**custom, "success_redirect_url": "https://shop/ok"},
        )
    )
    with pytest.raises(FieldError) as exc_info:
        xendit_mapper.validate_ewallet_request(body)
    assert exc_info.value.field == "ChannelProperties"


@pytest.mark.asyncio
async def test_retail_goes_through_invoice(recorder):
    recorder.reply(200, {
        "id": "inv_1",
        "external_id": "ORDER-ALFA-1",
        "status": "PENDING",
        "amount": 20000,
        "invoice_url": "https://checkout.xendit.co/web/inv_1",
    })
    params = _params(order_id="ORDER-ALFA-1", amount=20000, payment_type=PaymentType.ALFAMART, description="Order")
    response = await _client(recorder).create_charge(params)
    assert recorder.last.url.path == "/v2/invoices"
    body = recorder.last_json()
    assert body["payment_methods"] == ["ALFAMART"]
    assert body["customer"] == {"given_names": "Jane", "email": "jane@example.com"}
    assert response.payment_url == "https://checkout.xendit.co/web/inv_1"


@pytest.mark.asyncio
async def test_get_status_paid_invoice(recorder):
    recorder.reply(200, {
        "id": "inv_1",
        "external_id": "ORDER-1",
        "status": "PAID",
        "amount": 20000,
        "paid_amount": 20000,
        "paid_at": "2024-01-01T03:00:00Z",
        "payment_method": "BANK_TRANSFER",
        "payment_channel": "BNI",
    })
    status = await _client(recorder).get_status("ORDER-1")
    assert recorder.last.method == "GET"
    assert recorder.last.url.path == "/v2/invoices/ORDER-1"
    assert status.status is Status.SUCCESS
    assert status.paid_amount == 20000
    assert status.payment_type is PaymentType.VA_BNI
    assert status.paid_at == datetime(2024, 1, 1, 3, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_cancel_backdates_expiry(recorder):
    recorder.reply(200, {"id": "inv_1", "status": "EXPIRED"})
    before = datetime.now(timezone.utc)
    await _client(recorder).cancel("inv_1")
    assert recorder.last.method == "PATCH"
    assert recorder.last.url.path == "/v2/invoices/inv_1"
    expires_at = datetime.fromisoformat(recorder.last_json()["expires_at"])
    assert expires_at <= before - timedelta(minutes=59)


@pytest.mark.asyncio
async def test_http_errors_are_provider_errors(recorder):
    recorder.reply(404, {"error_code": "INVOICE_NOT_FOUND_ERROR", "message": "Invoice not found"})
    with pytest.raises(ProviderError) as exc_info:
        await _client(recorder).get_status("missing")
    err = exc_info.value
    assert err.provider_code == "INVOICE_NOT_FOUND_ERROR"
    assert str(err) == "Invoice not found"
    assert error_is(err, PaymentCode.TRANSACTION_NOT_FOUND)


@pytest.mark.asyncio
async def test_rate_limit(recorder):
    recorder.reply(429, {"error_code": "RATE_LIMIT_EXCEEDED", "message": "slow down"})
    with pytest.raises(ProviderError) as exc_info:
        await _client(recorder).create_charge(_params())
    assert error_is(exc_info.value, PaymentCode.RATE_LIMIT)


@pytest.mark.parametrize(
    "provider_status,expected",
    [
        ("PAID", Status.SUCCESS),
        ("SETTLED", Status.SUCCESS),
        ("SUCCEEDED", Status.SUCCESS),
        ("PENDING", Status.PENDING),
        ("FAILED", Status.FAILED),
        ("EXPIRED", Status.EXPIRED),
        ("VOIDED", Status.CANCELLED),
        ("SOMETHING_NEW", Status.PENDING),
    ],
)
def test_status_mapping(provider_status, expected):
    assert xendit_mapper.to_payment_status("O1", {"status": provider_status}).status is expected


def _webhook(payload: dict, token: str = CALLBACK_TOKEN) -> WebhookRequest:
    return WebhookRequest(
        headers={"Content-Type": "application/json", "X-Callback-Token": token},
        body=json.dumps(payload).encode(),
    )


def test_invoice_webhook(recorder):
    client = _client(recorder)
    request = _webhook({
        "id": "inv_1",
        "external_id": "ORDER-1",
        "status": "PAID",
        "amount": 20000,
        "paid_at": "2024-01-01T03:00:00.000Z",
        "payment_method": "EWALLET",
        "payment_channel": "OVO",
    })
    assert client.verify_webhook(request)
    event = client.parse_webhook(request)
    assert event.provider == "xendit"
    assert event.order_id == "ORDER-1"
    assert event.transaction_id == "inv_1"
    assert event.status is Status.SUCCESS
    assert event.event_type is EventType.COMPLETED
    assert event.payment_type is PaymentType.OVO


def test_ewallet_envelope_webhook(recorder):
    event = _client(recorder).parse_webhook(_webhook({
        "event": "ewallet.capture",
        "data": {
            "id": "ewc_1",
            "reference_id": "ORDER-2",
            "status": "FAILED",
            "charge_amount": 10000,
            "channel_code": "ID_SHOPEEPAY",
        },
    }))
    assert event.order_id == "ORDER-2"
    assert event.status is Status.FAILED
    assert event.event_type is EventType.FAILED
    assert event.amount == 10000
    assert event.payment_type is PaymentType.SHOPEEPAY


def test_webhook_token_mismatch(recorder):
    assert not _client(recorder).verify_webhook(_webhook({"external_id": "O"}, token="wrong"))


def test_webhook_without_order_reference(recorder):
    with pytest.raises(InvalidPayloadError):
        _client(recorder).parse_webhook(_webhook({"status": "PAID"}))


def test_form_encoded_callback(recorder):
    client = _client(recorder)
    request = WebhookRequest(
        headers={"Content-Type": "application/x-www-form-urlencoded", "X-Callback-Token": CALLBACK_TOKEN},
        body=b"external_id=O1&status=PAID&amount=50000&paid_at=2024-01-01T03%3A00%3A00Z",
    )
    assert client.verify_webhook(request)
    event = client.parse_webhook(request)
    assert event.order_id == "O1"
    assert event.transaction_id == "O1"
    assert event.status is Status.SUCCESS
    assert event.amount == 50000
    assert event.timestamp == datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc)
    assert event.raw["external_id"] == "O1"
