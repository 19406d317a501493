"""
Xendit adapter.

E-wallet and QRIS charges go to ``/ewallets``, bank virtual accounts to
``/callback_virtual_accounts`` and everything else through a hosted invoice.
One host serves both environments; the key prefix selects the mode.
"""
from __future__ import annotations

from typing import Any, Optional
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
from paygate.infrastructure.external.api_clients.base import HTTPMethod, HTTPTransport
from paygate.infrastructure.external.payments import xendit_mapper as mapper
from paygate.infrastructure.external.payments.base import BasePaymentClient
from paygate.infrastructure.external.payments.registry import register_provider
from paygate.infrastructure.external.payments.signature import CallbackTokenVerifier, basic_auth


BASE_URL = "https://api.xendit.co"

EWALLET_PATH = "/ewallets"
VA_PATH = "/callback_virtual_accounts"
INVOICE_PATH = "/v2/invoices"
INVOICE_ITEM_PATH = "/v2/invoices/{invoice_id}"


class XenditClient(BasePaymentClient):
    provider = mapper.PROVIDER
    supported_payment_types = frozenset(PaymentType)

    def __init__(self, config: ProviderConfig, *, transport: Optional[HTTPTransport] = None) -> None:
        super().__init__(config, transport=transport)
        self._verifier = CallbackTokenVerifier(config.client_key)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": basic_auth(self.config.server_key, "")}

    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse:
        self._validate(params)
        payment_type = params.payment_type
        if payment_type.is_ewallet or payment_type.is_qris:
            body = mapper.to_ewallet_request(params)
            mapper.validate_ewallet_request(body)
            path, to_response = EWALLET_PATH, mapper.from_ewallet_response
        elif payment_type.is_va:
            body = mapper.to_va_request(params)
            path, to_response = VA_PATH, mapper.from_va_response
        else:
            body = mapper.to_invoice_request(params)
            path, to_response = INVOICE_PATH, mapper.from_invoice_response

        self._log("charge_request", order_id=params.order_id, endpoint=path, amount=params.amount)
        data = await self._request(
            HTTPMethod.POST,
            BASE_URL + path,
            headers=self._headers(),
            body=body,
            timeout=timeout,
        )
        response = to_response(data, params)
        self._log(
            "charge_response",
            order_id=response.order_id,
            transaction_id=response.transaction_id,
            status=response.status.value,
        )
        return response

    def _invoice_url(self, order_id: str) -> str:
        return BASE_URL + INVOICE_ITEM_PATH.format(invoice_id=quote(order_id, safe=""))

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus:
        self._log("status_request", order_id=order_id)
        data = await self._request(
            HTTPMethod.GET,
            self._invoice_url(order_id),
            headers=self._headers(),
            timeout=timeout,
        )
        return mapper.to_payment_status(order_id, data)

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None:
        # Invoices cannot be deleted; backdating the expiry closes them
        self._log("cancel_request", order_id=order_id)
        await self._request(
            HTTPMethod.PATCH,
            self._invoice_url(order_id),
            headers=self._headers(),
            body=mapper.expire_invoice_request(),
            timeout=timeout,
        )

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


def new_xendit_client(config: ProviderConfig, **kwargs: Any) -> XenditClient:
    return XenditClient(config, **kwargs)


register_provider(mapper.PROVIDER, new_xendit_client)
