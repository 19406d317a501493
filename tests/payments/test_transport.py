import asyncio

import httpx
import pytest

from paygate.domain.common.exceptions import NetworkError, PaymentTimeoutError, error_is
from paygate.infrastructure.external.api_clients.base import APIError, HTTPMethod, HTTPTransport, encode_body
from paygate.shared.codes import PaymentCode


def test_encode_body():
    assert encode_body(None) is None
    assert encode_body(b'{"a":1}') == b'{"a":1}'
    assert encode_body({"name": "Siti"}) == b'{"name": "Siti"}'


@pytest.mark.asyncio
async def test_default_headers_and_json_decoding(recorder):
    recorder.reply(200, {"ok": True}, headers={"x-request-id": "req-1"})
    async with HTTPTransport(transport=recorder.transport) as transport:
        response = await transport.call(HTTPMethod.POST, "https://example.test/x", body={"a": 1})
    request = recorder.last
    assert request.headers["content-type"] == "application/json"
    assert request.headers["accept"] == "application/json"
    assert request.headers["user-agent"] == "payment-gateway-client/1.0.0"
    assert request.content == b'{"a": 1}'
    assert response.data == {"ok": True}
    assert response.request_id == "req-1"
    assert response.is_success


@pytest.mark.asyncio
async def test_raw_bytes_are_sent_verbatim(recorder):
    recorder.reply(200, {})
    transport = HTTPTransport(transport=recorder.transport)
    await transport.call("POST", "https://example.test/x", body=b'{"b":2}', headers={"Signature": "sig"})
    assert recorder.last.content == b'{"b":2}'
    assert recorder.last.headers["signature"] == "sig"
    await transport.aclose()


@pytest.mark.asyncio
async def test_error_status_raises_api_error(recorder):
    recorder.reply(422, {"message": "bad"})
    transport = HTTPTransport(transport=recorder.transport)
    with pytest.raises(APIError) as exc_info:
        await transport.call("GET", "https://example.test/x")
    assert exc_info.value.status_code == 422
    assert exc_info.value.response.data == {"message": "bad"}


@pytest.mark.asyncio
async def test_transport_failure_is_network_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = HTTPTransport(transport=httpx.MockTransport(boom))
    with pytest.raises(NetworkError) as exc_info:
        await transport.call("GET", "https://example.test/x")
    assert error_is(exc_info.value, PaymentCode.NETWORK_ERROR)


@pytest.mark.asyncio
async def test_httpx_timeout_is_payment_timeout():
    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport = HTTPTransport(transport=httpx.MockTransport(slow))
    with pytest.raises(PaymentTimeoutError):
        await transport.call("GET", "https://example.test/x", timeout=1)


@pytest.mark.asyncio
async def test_deadline_aborts_slow_handler():
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json={})

    transport = HTTPTransport(transport=httpx.MockTransport(slow))
    with pytest.raises(PaymentTimeoutError) as exc_info:
        await transport.call("GET", "https://example.test/x", timeout=0.05)
    assert error_is(exc_info.value, PaymentCode.TIMEOUT)


@pytest.mark.asyncio
async def test_retries_network_errors_only_when_enabled():
    calls = []

    def flaky(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("reset", request=request)
        return httpx.Response(200, json={"ok": True})

    transport = HTTPTransport(transport=httpx.MockTransport(flaky), max_retries=2, retry_delay=0.001)
    response = await transport.call("GET", "https://example.test/x")
    assert response.data == {"ok": True}
    assert len(calls) == 3

    calls.clear()
    no_retry = HTTPTransport(transport=httpx.MockTransport(flaky))
    with pytest.raises(NetworkError):
        await no_retry.call("GET", "https://example.test/x")
    assert len(calls) == 1
