import json
import logging

import pytest
import structlog

from paygate import (
    ChargeParams,
    Client,
    Customer,
    Item,
    PaymentType,
    Status,
    WebhookRequest,
    with_client_key,
    with_environment,
    with_logging,
    with_provider,
    with_server_key,
    with_timeout,
)
from paygate.application.ports.payment_gateway import PaymentGateway
from paygate.core.logging_config import get_logger
from paygate.domain.common.exceptions import (
    FieldError,
    InvalidConfigurationError,
    InvalidSignatureError,
    UnsupportedProviderError,
    error_is,
)
from paygate.infrastructure.external.payments.signature import notification_signature
from paygate.infrastructure.external.payments.xendit_client import XenditClient
from paygate.shared.codes import PaymentCode


def _gopay_params(**overrides) -> ChargeParams:
    data = dict(
        order_id="ORDER-GOPAY-1",
        amount=50000,
        payment_type=PaymentType.GOPAY,
        customer=Customer(id="CUST-1", email="a@b.co", phone="+628123456789"),
        items=[Item(id="I1", name="N", price=50000)],
        callback_url="https://cb",
    )
    data.update(overrides)
    return ChargeParams(**data)


@pytest.mark.asyncio
async def test_end_to_end_midtrans_charge(recorder, empty_env):
    recorder.reply(200, {
        "status_code": "201",
        "transaction_id": "T1",
        "order_id": "ORDER-GOPAY-1",
        "gross_amount": "50000",
        "transaction_status": "pending",
        "actions": [{"url": "https://pay/x"}],
    })
    async with Client(
        with_provider("midtrans"),
        with_server_key("SB-Mid-server-XYZ"),
        env=empty_env,
        transport=recorder.transport,
    ) as client:
        assert client.provider.name() == "midtrans"
        assert isinstance(client.provider, PaymentGateway)
        response = await client.create_charge(_gopay_params())
    assert response.status is Status.PENDING
    assert response.payment_url == "https://pay/x"


def test_credential_mismatch_fails_at_construction(recorder, empty_env):
    with pytest.raises(InvalidConfigurationError) as exc_info:
        Client(
            with_provider("midtrans"),
            with_environment("production"),
            with_server_key("SB-Mid-server-XYZ"),
            env=empty_env,
            transport=recorder.transport,
        )
    assert error_is(exc_info.value, PaymentCode.INVALID_CREDENTIALS)
    assert recorder.requests == []


def test_unknown_provider(empty_env):
    with pytest.raises(UnsupportedProviderError):
        Client(with_provider("stripe"), with_server_key("sk_test"), env=empty_env)


def test_doku_requires_client_key(empty_env):
    with pytest.raises(InvalidConfigurationError) as exc_info:
        Client(with_provider("doku"), with_server_key("SK"), env=empty_env)
    assert exc_info.value.field == "ClientKey"


@pytest.mark.asyncio
async def test_min_amount_rejected_before_io(recorder, empty_env):
    client = Client(
        with_provider("xendit"),
        with_server_key("xnd_development_abc"),
        env=empty_env,
        transport=recorder.transport,
    )
    assert isinstance(client.provider, XenditClient)
    params = ChargeParams(
        order_id="ORDER-VA-1",
        amount=1,
        payment_type=PaymentType.VA_BCA,
        customer=Customer(id="CUST-1", name="Jane", email="jane@example.com"),
    )
    with pytest.raises(FieldError) as exc_info:
        await client.create_charge(params)
    assert exc_info.value.field == "Amount"
    assert exc_info.value.inner == PaymentCode.MIN_AMOUNT
    assert recorder.requests == []
    await client.aclose()


@pytest.mark.asyncio
async def test_per_call_timeout_reaches_transport(recorder, empty_env):
    recorder.reply(200, {"status_code": "200", "transaction_status": "pending", "order_id": "O1"})
    client = Client(
        with_provider("midtrans"),
        with_server_key("SB-Mid-server-XYZ"),
        with_timeout(10),
        env=empty_env,
        transport=recorder.transport,
    )
    await client.get_status("O1", timeout=2)
    assert recorder.last.extensions["timeout"]["read"] == 2
    await client.get_status("O1", timeout=60)
    assert recorder.last.extensions["timeout"]["read"] == 10
    await client.aclose()


def _midtrans_webhook(server_key: str) -> WebhookRequest:
    payload = {
        "order_id": "O1",
        "status_code": "200",
        "gross_amount": "50000.00",
        "transaction_status": "settlement",
        "signature_key": notification_signature(["O1", "200", "50000.00"], server_key),
    }
    return WebhookRequest(headers={"Content-Type": "application/json"}, body=json.dumps(payload).encode())


def test_parse_webhook_verifies_first(empty_env):
    client = Client(with_provider("midtrans"), with_server_key("SB-Mid-server-XYZ"), with_logging(), env=empty_env)

    good = _midtrans_webhook("SB-Mid-server-XYZ")
    assert client.verify_webhook(good)
    event = client.parse_webhook(good)
    assert event.status is Status.SUCCESS

    bad = _midtrans_webhook("SB-Mid-server-OTHER")
    assert not client.verify_webhook(bad)
    with pytest.raises(InvalidSignatureError) as exc_info:
        client.parse_webhook(bad)
    assert error_is(exc_info.value, PaymentCode.INVALID_SIGNATURE)


def test_xendit_without_callback_token_rejects_webhooks(empty_env):
    client = Client(with_provider("xendit"), with_server_key("xnd_development_abc"), env=empty_env)
    request = WebhookRequest(headers={"X-Callback-Token": ""}, body=b'{"external_id": "O1"}')
    assert not client.verify_webhook(request)
    with pytest.raises(InvalidSignatureError):
        client.parse_webhook(request)


def test_config_is_exposed(empty_env):
    client = Client(
        with_provider("DOKU"),
        with_server_key("SK"),
        with_client_key("CID"),
        env=empty_env,
    )
    assert client.config.provider == "doku"
    assert client.config.client_key == "CID"


def test_logging_leaves_host_structlog_configuration_alone(empty_env):
    before = structlog.get_config()
    Client(with_provider("midtrans"), with_server_key("SB-Mid-server-XYZ"), with_logging(), env=empty_env)
    assert structlog.get_config() == before
    lib_logger = logging.getLogger("paygate")
    assert any(isinstance(h, logging.StreamHandler) for h in lib_logger.handlers)
    assert lib_logger.propagate is False


def test_library_logger_emits_through_stdlib():
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    std_logger = logging.getLogger("paygate.tests")
    handler = _Collect()
    std_logger.addHandler(handler)
    std_logger.setLevel(logging.INFO)
    std_logger.propagate = False
    try:
        get_logger("paygate.tests").info("charge_created", order_id="O1")
    finally:
        std_logger.removeHandler(handler)
        std_logger.setLevel(logging.NOTSET)
        std_logger.propagate = True
    assert len(records) == 1
    assert records[0].msg["event"] == "charge_created"
    assert records[0].msg["order_id"] == "O1"
