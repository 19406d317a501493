"""
Doku wire mapping for the generate-payment and transaction-status APIs.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    EventType,
    PaymentStatus,
    PaymentType,
    Status,
    WebhookEvent,
    utcnow,
)
from paygate.application.dtos.validation import normalize_phone
from paygate.domain.common.exceptions import InvalidPayloadError
from paygate.infrastructure.external.payments.mapping import (
    format_amount,
    map_provider_status,
    parse_timestamp,
    text,
    to_amount,
)


PROVIDER = "doku"

EWALLET = "EWALLET"
QR_CODE = "QR_CODE"
VIRTUAL_ACCOUNT = "VIRTUAL_ACCOUNT"

OK_RESPONSE_CODES = {"00", "200"}
LOCALE = "en"


def payment_class(payment_type: PaymentType) -> str:
    if payment_type.is_ewallet:
        return EWALLET
    if payment_type.is_qris:
        return QR_CODE
    if payment_type.is_va:
        return VIRTUAL_ACCOUNT
    raise ValueError(f"{payment_type.value} has no Doku payment class")


def payment_detail(params: ChargeParams) -> dict[str, Any]:
    amount = format_amount(params.amount)
    name = params.description or params.order_id
    payment_type = params.payment_type
    if payment_type.is_ewallet:
        return {
            "e_wallet": {
                "name": name,
                "e_wallet_type": payment_type.value,
                "amount": amount,
                "phone_number": normalize_phone(params.customer.phone),
            }
        }
    if payment_type.is_qris:
        return {"qr_code": {"name": "QRIS", "amount": amount, "qr_type": "DYNAMIC"}}
    return {
        "virtual_account": {
            "name": params.customer.name or name,
            "va_type": payment_type.value,
            "amount": amount,
        }
    }


def to_payment_request(params: ChargeParams, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or utcnow()
    customer = params.customer
    body: dict[str, Any] = {
        "order_amount": format_amount(params.amount),
        "transaction_id": params.order_id,
        "transaction_date": now.isoformat(),
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "email": customer.email,
            "phone": normalize_phone(customer.phone) if customer.phone else "",
        },
        "payment_type": payment_class(params.payment_type),
        "payment_detail": payment_detail(params),
        "locale": LOCALE,
    }
    if params.callback_url:
        body["callback_url"] = params.callback_url
    if params.return_url:
        body["return_url"] = params.return_url
    if params.expiry_time is not None:
        body["expired_time"] = params.expiry_time.isoformat()
    return body


def to_status_request(order_id: str) -> dict[str, Any]:
    return {"transaction_id": order_id}


def is_ok(data: Mapping[str, Any]) -> bool:
    code = text(data.get("response_code"))
    return not code or code in OK_RESPONSE_CODES


def unified_payment_type(value: Any) -> Optional[PaymentType]:
    try:
        return PaymentType(text(value).upper())
    except ValueError:
        return None


def to_charge_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    created_at = parse_timestamp(data.get("transaction_date")) or utcnow()
    va_number = text(data.get("virtual_account_number")) or None
    return ChargeResponse(
        transaction_id=text(data.get("transaction_id")) or params.order_id,
        order_id=params.order_id,
        amount=to_amount(data.get("order_amount")) or params.amount,
        status=map_provider_status(PROVIDER, data.get("transaction_status")),
        payment_type=params.payment_type,
        payment_url=text(data.get("payment_url")) or None,
        qr_string=text(data.get("qr_string")) or None,
        va_number=va_number,
        va_bank=(text(data.get("va_bank")) or params.payment_type.value[3:]) if va_number else None,
        expiry_time=parse_timestamp(data.get("expired_time")),
        created_at=created_at,
        updated_at=created_at,
        raw=dict(data),
    )


def to_payment_status(order_id: str, data: Mapping[str, Any]) -> PaymentStatus:
    status = map_provider_status(PROVIDER, data.get("transaction_status"))
    amount = to_amount(data.get("order_amount") or data.get("amount"))
    return PaymentStatus(
        transaction_id=text(data.get("transaction_id")) or order_id,
        order_id=order_id,
        status=status,
        amount=amount,
        paid_amount=amount if status is Status.SUCCESS else 0,
        payment_type=unified_payment_type(data.get("payment_type")),
        paid_at=parse_timestamp(data.get("payment_date")) if status is Status.SUCCESS else None,
        failure_reason=(text(data.get("response_message")) or None) if status is Status.FAILED else None,
        raw=dict(data),
    )


def to_webhook_event(data: Mapping[str, Any]) -> WebhookEvent:
    transaction_id = text(data.get("transaction_id"))
    if not transaction_id:
        raise InvalidPayloadError("doku notification has no transaction_id")
    status = map_provider_status(PROVIDER, data.get("transaction_status"))
    return WebhookEvent(
        provider=PROVIDER,
        # the merchant order id is sent as transaction_id on generate
        order_id=transaction_id,
        transaction_id=transaction_id,
        status=status,
        amount=to_amount(data.get("amount")),
        payment_type=unified_payment_type(data.get("payment_type")),
        event_type=EventType.from_status(status),
        timestamp=parse_timestamp(data.get("payment_date_time")),
        raw=dict(data),
    )
