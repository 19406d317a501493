"""
Midtrans wire mapping (Core API and Snap).

Pure functions: unified ChargeParams -> request bodies, and response or
notification payloads -> unified responses. No I/O happens here.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    Customer,
    EventType,
    Item,
    PaymentStatus,
    PaymentType,
    Status,
    WebhookEvent,
    utcnow,
)
from paygate.application.dtos.validation import normalize_phone
from paygate.domain.common.exceptions import InvalidPayloadError
from paygate.infrastructure.external.payments.mapping import (
    WIB,
    map_provider_status,
    parse_timestamp,
    text,
    to_amount,
)


PROVIDER = "midtrans"

NAME_SPLIT_AT = 20

# payment_type values for the e-wallet/QRIS request shape
EWALLET_CODES: dict[PaymentType, str] = {
    PaymentType.GOPAY: "gopay",
    PaymentType.SHOPEEPAY: "shopeepay",
    PaymentType.OVO: "ovo",
    PaymentType.DANA: "dana",
    PaymentType.LINKAJA: "linkaja",
    PaymentType.QRIS: "qris",
}

BANK_CODES: dict[PaymentType, str] = {
    PaymentType.VA_BCA: "bca",
    PaymentType.VA_BNI: "bni",
    PaymentType.VA_BRI: "bri",
    PaymentType.VA_PERMATA: "permata",
    PaymentType.VA_CIMB: "cimb",
    PaymentType.VA_MANDIRI: "mandiri",
}

# Snap "enabled_payments" codes
SNAP_CODES: dict[PaymentType, str] = {
    PaymentType.GOPAY: "gopay",
    PaymentType.SHOPEEPAY: "shopeepay",
    PaymentType.QRIS: "other_qris",
    PaymentType.VA_BCA: "bca_va",
    PaymentType.VA_BNI: "bni_va",
    PaymentType.VA_BRI: "bri_va",
    PaymentType.VA_PERMATA: "permata_va",
    PaymentType.VA_CIMB: "cimb_va",
    PaymentType.VA_MANDIRI: "echannel",
    PaymentType.CREDIT_CARD: "credit_card",
    PaymentType.ALFAMART: "alfamart",
    PaymentType.INDOMARET: "indomaret",
}

_EWALLET_BY_CODE = {code: pt for pt, code in EWALLET_CODES.items()}
_VA_BY_BANK = {code: pt for pt, code in BANK_CODES.items()}


def split_name(name: str) -> tuple[str, str]:
    if len(name) <= NAME_SPLIT_AT:
        return name, ""
    return name[:NAME_SPLIT_AT], name[NAME_SPLIT_AT:]


def customer_details(customer: Customer) -> Optional[dict[str, Any]]:
    if not customer.name:
        return None
    first_name, last_name = split_name(customer.name)
    details: dict[str, Any] = {"first_name": first_name, "email": customer.email}
    if last_name:
        details["last_name"] = last_name
    if customer.phone:
        details["phone"] = normalize_phone(customer.phone)
    return details


def item_details(items: list[Item]) -> list[dict[str, Any]]:
    result = []
    for item in items:
        detail: dict[str, Any] = {
            "id": item.id,
            "name": item.name,
            "price": item.price,
            "quantity": item.quantity,
        }
        if item.category:
            detail["category"] = item.category
        if item.url:
            detail["url"] = item.url
        result.append(detail)
    return result


def custom_expiry(expiry_time: datetime, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or utcnow()
    minutes = max(1, math.ceil((expiry_time - now).total_seconds() / 60))
    return {
        "order_time": now.astimezone(WIB).strftime("%Y-%m-%d %H:%M:%S %z"),
        "expiry_duration": minutes,
        "unit": "minute",
    }


def _common(params: ChargeParams, payment_type: str, now: Optional[datetime]) -> dict[str, Any]:
    body: dict[str, Any] = {
        "payment_type": payment_type,
        "transaction_details": {
            "order_id": params.order_id,
            "gross_amount": params.amount,
        },
        "item_details": item_details(params.items),
    }
    customer = customer_details(params.customer)
    if customer:
        body["customer_details"] = customer
    if params.expiry_time is not None:
        body["custom_expiry"] = custom_expiry(params.expiry_time, now)
    return body


def to_ewallet_request(params: ChargeParams, now: Optional[datetime] = None) -> dict[str, Any]:
    body = _common(params, EWALLET_CODES[params.payment_type], now)
    if params.payment_type is PaymentType.GOPAY:
        gopay: dict[str, Any] = {}
        if params.callback_url:
            gopay["enable_callback"] = bool(params.custom.get("enable_callback", True))
            gopay["callback_url"] = params.callback_url
        account_id = params.custom_str("gopay_account_id")
        if account_id:
            gopay["account_id"] = account_id
        if gopay:
            body["gopay"] = gopay
    elif params.payment_type is PaymentType.SHOPEEPAY and params.callback_url:
        body["shopeepay"] = {"callback_url": params.callback_url}
    elif params.payment_type is PaymentType.QRIS:
        acquirer = params.custom_str("acquirer")
        if acquirer:
            body["qris"] = {"acquirer": acquirer}
    return body


def to_bank_transfer_request(params: ChargeParams, now: Optional[datetime] = None) -> dict[str, Any]:
    if params.payment_type is PaymentType.VA_MANDIRI:
        body = _common(params, "echannel", now)
        body["echannel"] = {"bill_info1": "Payment", "bill_info2": params.order_id}
        return body
    body = _common(params, "bank_transfer", now)
    bank_transfer: dict[str, Any] = {"bank": BANK_CODES[params.payment_type]}
    va_number = params.custom_str("va_number")
    if va_number:
        bank_transfer["va_number"] = va_number
    body["bank_transfer"] = bank_transfer
    return body


def to_snap_request(params: ChargeParams, now: Optional[datetime] = None) -> dict[str, Any]:
    body = _common(params, SNAP_CODES[params.payment_type], now)
    body.pop("payment_type")
    if "custom_expiry" in body:
        expiry = body.pop("custom_expiry")
        body["expiry"] = {
            "start_time": expiry["order_time"],
            "duration": expiry["expiry_duration"],
            "unit": expiry["unit"],
        }
    body["enabled_payments"] = [SNAP_CODES[params.payment_type]]
    if params.return_url:
        body["callbacks"] = {"finish": params.return_url}
    return body


def unified_payment_type(data: Mapping[str, Any]) -> Optional[PaymentType]:
    code = text(data.get("payment_type")).lower()
    if code in _EWALLET_BY_CODE:
        return _EWALLET_BY_CODE[code]
    if code == "echannel":
        return PaymentType.VA_MANDIRI
    if code == "credit_card":
        return PaymentType.CREDIT_CARD
    if code == "cstore":
        store = text(data.get("store")).lower()
        return {"alfamart": PaymentType.ALFAMART, "indomaret": PaymentType.INDOMARET}.get(store)
    if code == "bank_transfer":
        if data.get("permata_va_number"):
            return PaymentType.VA_PERMATA
        va_numbers = data.get("va_numbers") or []
        if va_numbers and isinstance(va_numbers[0], Mapping):
            return _VA_BY_BANK.get(text(va_numbers[0].get("bank")).lower())
    return None


def _first_action_url(actions: Any) -> Optional[str]:
    for action in actions or []:
        if isinstance(action, Mapping) and action.get("url"):
            return str(action["url"])
    return None


def _qr_string(data: Mapping[str, Any]) -> Optional[str]:
    value = data.get("qr_string")
    return str(value) if value else None


def _va_details(data: Mapping[str, Any]) -> tuple[Optional[str], Optional[str]]:
    va_numbers = data.get("va_numbers") or []
    if va_numbers and isinstance(va_numbers[0], Mapping):
        return text(va_numbers[0].get("va_number")) or None, text(va_numbers[0].get("bank")) or None
    if data.get("permata_va_number"):
        return text(data["permata_va_number"]), "permata"
    if data.get("bill_key"):
        return f"{text(data.get('biller_code'))}-{text(data['bill_key'])}", "mandiri"
    return None, None


def to_charge_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    va_number, va_bank = _va_details(data)
    created_at = parse_timestamp(data.get("transaction_time"), default_tz=WIB) or utcnow()
    return ChargeResponse(
        transaction_id=text(data.get("transaction_id")),
        order_id=text(data.get("order_id")) or params.order_id,
        amount=to_amount(data.get("gross_amount")) or params.amount,
        status=map_provider_status(PROVIDER, data.get("transaction_status")),
        payment_type=unified_payment_type(data) or params.payment_type,
        payment_url=_first_action_url(data.get("actions")) or data.get("redirect_url"),
        qr_string=_qr_string(data),
        va_number=va_number,
        va_bank=va_bank,
        expiry_time=parse_timestamp(data.get("expiry_time"), default_tz=WIB),
        created_at=created_at,
        updated_at=created_at,
        raw=dict(data),
    )


def to_snap_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    token = text(data.get("token"))
    if not token:
        raise InvalidPayloadError("midtrans snap response has no token")
    return ChargeResponse(
        transaction_id=token,
        order_id=params.order_id,
        amount=params.amount,
        status=Status.PENDING,
        payment_type=params.payment_type,
        payment_url=text(data.get("redirect_url")) or None,
        raw=dict(data),
    )


def to_payment_status(order_id: str, data: Mapping[str, Any]) -> PaymentStatus:
    status = map_provider_status(PROVIDER, data.get("transaction_status"))
    amount = to_amount(data.get("gross_amount"))
    transaction_time = parse_timestamp(data.get("transaction_time"), default_tz=WIB)
    settled_at = parse_timestamp(data.get("settlement_time"), default_tz=WIB) or transaction_time
    return PaymentStatus(
        transaction_id=text(data.get("transaction_id")),
        order_id=text(data.get("order_id")) or order_id,
        status=status,
        amount=amount,
        paid_amount=amount if status is Status.SUCCESS else 0,
        payment_type=unified_payment_type(data),
        paid_at=settled_at if status is Status.SUCCESS else None,
        cancelled_at=transaction_time if status is Status.CANCELLED else None,
        expired_at=parse_timestamp(data.get("expiry_time"), default_tz=WIB) if status is Status.EXPIRED else None,
        failure_reason=(text(data.get("status_message")) or None) if status is Status.FAILED else None,
        raw=dict(data),
    )


def to_webhook_event(data: Mapping[str, Any]) -> WebhookEvent:
    order_id = text(data.get("order_id"))
    if not order_id:
        raise InvalidPayloadError("midtrans notification has no order_id")
    status = map_provider_status(PROVIDER, data.get("transaction_status"))
    timestamp = parse_timestamp(
        data.get("settlement_time") or data.get("transaction_time"),
        default_tz=WIB,
    )
    return WebhookEvent(
        provider=PROVIDER,
        order_id=order_id,
        transaction_id=text(data.get("transaction_id")),
        status=status,
        amount=to_amount(data.get("gross_amount")),
        payment_type=unified_payment_type(data),
        event_type=EventType.from_status(status),
        timestamp=timestamp,
        fraud_status=text(data.get("fraud_status")) or None,
        raw=dict(data),
    )
