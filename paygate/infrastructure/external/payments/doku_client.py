"""
Doku adapter.

Every call is signed: the body is serialized once, hashed, and the exact
bytes that were signed are the bytes sent.
"""
from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Mapping, Optional

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    PaymentStatus,
    PaymentType,
    WebhookEvent,
    WebhookRequest,
)
from paygate.core.config import ProviderConfig
from paygate.domain.common.exceptions import UnimplementedError
from paygate.infrastructure.external.api_clients.base import HTTPMethod, HTTPTransport, encode_body
from paygate.infrastructure.external.payments import doku_mapper as mapper
from paygate.infrastructure.external.payments.base import BasePaymentClient
from paygate.infrastructure.external.payments.exceptions import provider_error
from paygate.infrastructure.external.payments.registry import register_provider
from paygate.infrastructure.external.payments.signature import RequestSignatureVerifier, request_signature


SANDBOX_URL = "https://api-sandbox.doku.com"
PRODUCTION_URL = "https://api.doku.com"

PAYMENT_PATH = "/payments/v2"
STATUS_PATH = "/transactions/v2"

EWALLET_TYPES = frozenset(pt for pt in PaymentType if pt.is_ewallet)
SUPPORTED_TYPES = frozenset(pt for pt in PaymentType if pt.is_ewallet or pt.is_qris or pt.is_va)


class DokuClient(BasePaymentClient):
    provider = mapper.PROVIDER
    supported_payment_types = SUPPORTED_TYPES
    phone_required_for = EWALLET_TYPES

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: Optional[HTTPTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config, transport=transport)
        self._clock = clock
        self._verifier = RequestSignatureVerifier(config.client_key, config.server_key)

    @property
    def base_url(self) -> str:
        return PRODUCTION_URL if self.config.is_production else SANDBOX_URL

    def _signed(self, body: Mapping[str, Any]) -> tuple[dict[str, str], bytes]:
        content = encode_body(body) or b""
        timestamp = str(int(self._clock()))
        headers = {
            "Client-Id": self.config.client_key,
            "Request-Id": str(uuid.uuid4()),
            "Request-Timestamp": timestamp,
            "Signature": request_signature(self.config.client_key, self.config.server_key, timestamp, content),
        }
        return headers, content

    async def _post(self, path: str, body: Mapping[str, Any], timeout: Optional[float]) -> dict[str, Any]:
        headers, content = self._signed(body)
        data = await self._request(
            HTTPMethod.POST,
            self.base_url + path,
            headers=headers,
            body=content,
            timeout=timeout,
        )
        if not mapper.is_ok(data):
            error = provider_error(self.provider, data)
            self._log_error(error)
            raise error
        return data

    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse:
        self._validate(params)
        body = mapper.to_payment_request(params)
        self._log("charge_request", order_id=params.order_id, payment_type=body["payment_type"], amount=params.amount)
        data = await self._post(PAYMENT_PATH, body, timeout)
        response = mapper.to_charge_response(data, params)
        self._log(
            "charge_response",
            order_id=response.order_id,
            transaction_id=response.transaction_id,
            status=response.status.value,
        )
        return response

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus:
        self._log("status_request", order_id=order_id)
        data = await self._post(STATUS_PATH, mapper.to_status_request(order_id), timeout)
        return mapper.to_payment_status(order_id, data)

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None:
        raise UnimplementedError("payment expires automatically")

    def verify_webhook(self, request: WebhookRequest) -> bool:
        return self._verifier.verify(request)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        event = mapper.to_webhook_event(request.json())
        self._log(
            "webhook_parsed",
            order_id=event.order_id,
            status=event.status.value,
            event_type=event.event_type.value,
        )
        return event


def new_doku_client(config: ProviderConfig, **kwargs: Any) -> DokuClient:
    return DokuClient(config, **kwargs)


register_provider(mapper.PROVIDER, new_doku_client)
