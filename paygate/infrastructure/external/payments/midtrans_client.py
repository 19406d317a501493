"""
Midtrans adapter (Core API, with optional Snap hosted checkout).

Auth is HTTP Basic with the server key as username and an empty password.
Core API responses carry their own ``status_code`` inside a 2xx body, so
the envelope is checked in addition to the HTTP status.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import quote

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    PaymentStatus,
    PaymentType,
    WebhookEvent,
    WebhookRequest,
)
from paygate.core.config import ProviderConfig
from paygate.domain.common.exceptions import (
    DuplicateTransactionError,
    PaymentGatewayException,
    UnimplementedError,
)
from paygate.infrastructure.external.api_clients.base import HTTPMethod, HTTPTransport
from paygate.infrastructure.external.payments import midtrans_mapper as mapper
from paygate.infrastructure.external.payments.base import BasePaymentClient
from paygate.infrastructure.external.payments.exceptions import HTTP_STATUS_KIND, provider_error
from paygate.infrastructure.external.payments.registry import register_provider
from paygate.infrastructure.external.payments.signature import ConcatSHA512Verifier, basic_auth


SANDBOX_URL = "https://api.sandbox.midtrans.com"
PRODUCTION_URL = "https://api.midtrans.com"
SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com"
SNAP_PRODUCTION_URL = "https://app.midtrans.com"

CHARGE_PATH = "/v2/charge"
STATUS_PATH = "/v2/{order_id}/status"
CANCEL_PATH = "/v2/{order_id}/cancel"
SNAP_PATH = "/snap/v1/transactions"

CANCEL_REASON = "User requested cancellation"

# 407 is "transaction expired" and still carries a valid status body
OK_STATUS_CODES = {"200", "201", "407"}

ENVELOPE_KIND: dict[str, type[PaymentGatewayException]] = {
    "406": DuplicateTransactionError,
}

CORE_PAYMENT_TYPES = frozenset(mapper.EWALLET_CODES) | frozenset(mapper.BANK_CODES) | {PaymentType.CREDIT_CARD}
SNAP_PAYMENT_TYPES = frozenset(mapper.SNAP_CODES)


class MidtransClient(BasePaymentClient):
    provider = mapper.PROVIDER
    requires_items = True

    def __init__(self, config: ProviderConfig, *, transport: Optional[HTTPTransport] = None) -> None:
        super().__init__(config, transport=transport)
        self.supported_payment_types = SNAP_PAYMENT_TYPES if config.snap_mode else CORE_PAYMENT_TYPES
        self.phone_required_for = self.supported_payment_types
        self._verifier = ConcatSHA512Verifier(config.server_key)

    @property
    def base_url(self) -> str:
        return PRODUCTION_URL if self.config.is_production else SANDBOX_URL

    @property
    def snap_url(self) -> str:
        return SNAP_PRODUCTION_URL if self.config.is_production else SNAP_SANDBOX_URL

    def _headers(self) -> dict[str, str]:
        return {"Authorization": basic_auth(self.config.server_key, "")}

    def _check_envelope(self, data: Mapping[str, Any]) -> None:
        code = str(data.get("status_code") or "")
        if not code or code in OK_STATUS_CODES:
            return
        kind = ENVELOPE_KIND.get(code)
        if kind is None and code.isdigit():
            kind = HTTP_STATUS_KIND.get(int(code))
        error = provider_error(self.provider, data, inner=kind)
        self._log_error(error)
        raise error

    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse:
        self._validate(params)
        if self.config.snap_mode:
            return await self._create_snap_transaction(params, timeout)

        payment_type = params.payment_type
        if payment_type.is_ewallet or payment_type.is_qris:
            body = mapper.to_ewallet_request(params)
        elif payment_type.is_va:
            body = mapper.to_bank_transfer_request(params)
        elif payment_type.is_cc:
            raise UnimplementedError("credit card charges are not supported through the Core API")
        else:
            raise UnimplementedError(f"{payment_type.value} is not supported by {self.provider}")

        self._log("charge_request", order_id=params.order_id, payment_type=body["payment_type"], amount=params.amount)
        data = await self._request(
            HTTPMethod.POST,
            self.base_url + CHARGE_PATH,
            headers=self._headers(),
            body=body,
            timeout=timeout,
        )
        self._check_envelope(data)
        response = mapper.to_charge_response(data, params)
        self._log(
            "charge_response",
            order_id=response.order_id,
            transaction_id=response.transaction_id,
            status=response.status.value,
        )
        return response

    async def _create_snap_transaction(self, params: ChargeParams, timeout: Optional[float]) -> ChargeResponse:
        body = mapper.to_snap_request(params)
        self._log("snap_request", order_id=params.order_id, enabled_payments=body["enabled_payments"])
        data = await self._request(
            HTTPMethod.POST,
            self.snap_url + SNAP_PATH,
            headers=self._headers(),
            body=body,
            timeout=timeout,
        )
        response = mapper.to_snap_response(data, params)
        self._log("snap_response", order_id=params.order_id, token=response.transaction_id)
        return response

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus:
        self._log("status_request", order_id=order_id)
        data = await self._request(
            HTTPMethod.GET,
            self.base_url + STATUS_PATH.format(order_id=quote(order_id, safe="")),
            headers=self._headers(),
            timeout=timeout,
        )
        self._check_envelope(data)
        return mapper.to_payment_status(order_id, data)

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None:
        self._log("cancel_request", order_id=order_id)
        data = await self._request(
            HTTPMethod.POST,
            self.base_url + CANCEL_PATH.format(order_id=quote(order_id, safe="")),
            headers=self._headers(),
            body={"cancel_reason": CANCEL_REASON},
            timeout=timeout,
        )
        self._check_envelope(data)

    def verify_webhook(self, request: WebhookRequest) -> bool:
        return self._verifier.verify(request)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        event = mapper.to_webhook_event(request.payload())
        self._log(
            "webhook_parsed",
            order_id=event.order_id,
            status=event.status.value,
            event_type=event.event_type.value,
        )
        return event


def new_midtrans_client(config: ProviderConfig, **kwargs: Any) -> MidtransClient:
    return MidtransClient(config, **kwargs)


register_provider(mapper.PROVIDER, new_midtrans_client)
