"""
Xendit wire mapping: e-wallet charges, callback virtual accounts and invoices.
"""
from __future__ import annotations

from datetime import datetime, timedelta
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
from paygate.application.dtos.validation import PHONE_RE, normalize_phone
from paygate.domain.common.exceptions import FieldError, InvalidPayloadError
from paygate.infrastructure.external.payments.mapping import (
    map_provider_status,
    parse_timestamp,
    text,
    to_amount,
)
from paygate.shared.codes import PaymentCode


PROVIDER = "xendit"

ONE_TIME_PAYMENT = "ONE_TIME_PAYMENT"
TOKENIZED_PAYMENT = "TOKENIZED_PAYMENT"
CHECKOUT_METHODS = {ONE_TIME_PAYMENT, TOKENIZED_PAYMENT}

REDEEM_NONE = "REDEEM_NONE"
CURRENCIES = {"IDR", "PHP"}

CHANNEL_CODES: dict[PaymentType, str] = {
    PaymentType.GOPAY: "GOPAY",
    PaymentType.OVO: "OVO",
    PaymentType.DANA: "DANA",
    PaymentType.LINKAJA: "LINKAJA",
    PaymentType.SHOPEEPAY: "SHOPEEPAY",
    PaymentType.QRIS: "QRIS",
}

BANK_CODES: dict[PaymentType, str] = {
    PaymentType.VA_BCA: "BCA",
    PaymentType.VA_BNI: "BNI",
    PaymentType.VA_BRI: "BRI",
    PaymentType.VA_MANDIRI: "MANDIRI",
    PaymentType.VA_PERMATA: "PERMATA",
    PaymentType.VA_CIMB: "CIMB",
}

VA_BANK_CODES = frozenset(BANK_CODES.values()) | {"SAHABAT_SAMPURNA"}

INVOICE_METHODS: dict[PaymentType, str] = {
    PaymentType.CREDIT_CARD: "CREDIT_CARD",
    PaymentType.ALFAMART: "ALFAMART",
    PaymentType.INDOMARET: "INDOMARET",
}

# Channels whose hosted flow must redirect back to the merchant
REDIRECT_REQUIRED = {"DANA", "LINKAJA", "SHOPEEPAY"}

_BY_CHANNEL = {code: pt for pt, code in CHANNEL_CODES.items()}
_BY_BANK = {code: pt for pt, code in BANK_CODES.items()}
_BY_INVOICE_METHOD = {code: pt for pt, code in INVOICE_METHODS.items()}


def _currency(params: ChargeParams) -> str:
    return params.custom_str("currency", "IDR").upper()


def to_ewallet_request(params: ChargeParams) -> dict[str, Any]:
    channel_code = CHANNEL_CODES[params.payment_type]
    checkout_method = params.custom_str("checkout_method", ONE_TIME_PAYMENT).upper()

    properties: dict[str, Any] = {}
    success_url = params.custom_str("success_redirect_url", params.return_url or "")
    failure_url = params.custom_str("failure_redirect_url", params.return_url or "")
    if success_url:
        properties["success_redirect_url"] = success_url
    if failure_url:
        properties["failure_redirect_url"] = failure_url
    if channel_code == "OVO" and checkout_method == ONE_TIME_PAYMENT:
        mobile = params.custom_str("mobile_number", params.customer.phone)
        if mobile:
            properties["mobile_number"] = normalize_phone(mobile)
    redeem_points = params.custom_str("redeem_points")
    if redeem_points:
        properties["redeem_points"] = redeem_points
    elif channel_code in {"SHOPEEPAY", "OVO"} and checkout_method == TOKENIZED_PAYMENT:
        properties["redeem_points"] = REDEEM_NONE

    body: dict[str, Any] = {
        "reference_id": params.order_id,
        "currency": _currency(params),
        "amount": params.amount,
        "checkout_method": checkout_method,
        "channel_code": channel_code,
        "channel_properties": properties,
    }
    for key in ("payment_method_id", "customer_id"):
        value = params.custom_str(key)
        if value:
            body[key] = value
    if params.callback_url:
        body["callback_url"] = params.callback_url
    metadata = params.custom.get("metadata")
    if isinstance(metadata, dict) and metadata:
        body["metadata"] = metadata
    return body


def validate_ewallet_request(body: Mapping[str, Any]) -> None:
    """Channel and checkout-method rules; raises the first FieldError."""
    if not body.get("reference_id"):
        raise FieldError.required("ReferenceID")
    if body.get("currency") not in CURRENCIES:
        raise FieldError("Currency", f"must be one of: {', '.join(sorted(CURRENCIES))}")
    checkout_method = body.get("checkout_method")
    if checkout_method not in CHECKOUT_METHODS:
        raise FieldError("CheckoutMethod", f"must be one of: {', '.join(sorted(CHECKOUT_METHODS))}")
    if checkout_method == TOKENIZED_PAYMENT:
        if not body.get("payment_method_id"):
            raise FieldError.required("PaymentMethodID")
        if not body.get("customer_id"):
            raise FieldError.required("CustomerID")

    channel_code = body.get("channel_code")
    properties = body.get("channel_properties")
    if properties is None:
        raise FieldError.required("ChannelProperties")
    if channel_code in REDIRECT_REQUIRED and not properties.get("success_redirect_url"):
        raise FieldError.required("ChannelProperties.SuccessRedirectURL")
    if channel_code == "OVO":
        if checkout_method == ONE_TIME_PAYMENT:
            mobile = properties.get("mobile_number")
            if not mobile:
                raise FieldError.required("ChannelProperties.MobileNumber")
            if not PHONE_RE.match(mobile):
                raise FieldError(
                    "ChannelProperties.MobileNumber",
                    "must be an Indonesian (+62) or Philippine (+63) number",
                    PaymentCode.INVALID_PHONE_NUMBER,
                )
        elif not properties.get("success_redirect_url") or not properties.get("failure_redirect_url"):
            raise FieldError(
                "ChannelProperties",
                "SuccessRedirectURL and FailureRedirectURL are required for tokenized OVO",
                PaymentCode.MISSING_PARAMETER,
            )


def to_va_request(params: ChargeParams) -> dict[str, Any]:
    # custom "bank_code" reaches banks without a unified PaymentType
    bank_code = params.custom_str("bank_code", BANK_CODES[params.payment_type]).upper()
    if bank_code not in VA_BANK_CODES:
        raise FieldError("BankCode", f"must be one of: {', '.join(sorted(VA_BANK_CODES))}")
    body: dict[str, Any] = {
        "external_id": params.order_id,
        "bank_code": bank_code,
        "name": params.customer.name or params.customer.id,
        "expected_amount": params.amount,
        "is_closed": True,
        "currency": _currency(params),
    }
    va_number = params.custom_str("va_number")
    if va_number:
        body["virtual_account_number"] = va_number
    if params.expiry_time is not None:
        body["expiration_date"] = params.expiry_time.isoformat()
    return body


def to_invoice_request(params: ChargeParams, now: Optional[datetime] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "external_id": params.order_id,
        "amount": params.amount,
        "currency": _currency(params),
    }
    method = INVOICE_METHODS.get(params.payment_type)
    if method:
        body["payment_methods"] = [method]
    if params.description:
        body["description"] = params.description
    customer = params.customer
    if customer.name or customer.email:
        details: dict[str, Any] = {"given_names": customer.name, "email": customer.email}
        if customer.phone:
            details["mobile_number"] = normalize_phone(customer.phone)
        body["customer"] = details
    if params.items:
        body["items"] = [
            {
                key: value
                for key, value in {
                    "name": item.name,
                    "price": item.price,
                    "quantity": item.quantity,
                    "category": item.category,
                    "url": item.url,
                }.items()
                if value is not None
            }
            for item in params.items
        ]
    if params.return_url:
        body["success_redirect_url"] = params.return_url
        body["failure_redirect_url"] = params.return_url
    if params.expiry_time is not None:
        seconds = int((params.expiry_time - (now or utcnow())).total_seconds())
        if seconds > 0:
            body["invoice_duration"] = seconds
    return body


def expire_invoice_request(now: Optional[datetime] = None) -> dict[str, Any]:
    past = (now or utcnow()) - timedelta(hours=1)
    return {"expires_at": past.isoformat()}


def unified_payment_type(data: Mapping[str, Any]) -> Optional[PaymentType]:
    channel = text(data.get("channel_code")).upper()
    if channel.startswith(("ID_", "PH_")):
        channel = channel[3:]
    if channel in _BY_CHANNEL:
        return _BY_CHANNEL[channel]
    bank = text(data.get("bank_code")).upper()
    if bank in _BY_BANK:
        return _BY_BANK[bank]
    method = text(data.get("payment_method")).upper()
    payment_channel = text(data.get("payment_channel")).upper()
    if method == "BANK_TRANSFER" and payment_channel in _BY_BANK:
        return _BY_BANK[payment_channel]
    if method == "EWALLET" and payment_channel in _BY_CHANNEL:
        return _BY_CHANNEL[payment_channel]
    if method == "QR_CODE" or payment_channel == "QRIS":
        return PaymentType.QRIS
    return _BY_INVOICE_METHOD.get(payment_channel) or _BY_INVOICE_METHOD.get(method)


def _checkout_url(actions: Any) -> tuple[Optional[str], Optional[str]]:
    if not isinstance(actions, Mapping):
        return None, None
    url = (
        actions.get("desktop_web_checkout_url")
        or actions.get("mobile_web_checkout_url")
        or actions.get("mobile_deeplink_checkout_url")
    )
    return (text(url) or None), (text(actions.get("qr_checkout_string")) or None)


def _times(data: Mapping[str, Any]) -> dict[str, datetime]:
    created = parse_timestamp(data.get("created")) or utcnow()
    updated = parse_timestamp(data.get("updated")) or created
    return {"created_at": created, "updated_at": updated}


def from_ewallet_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    payment_url, qr_string = _checkout_url(data.get("actions"))
    return ChargeResponse(
        transaction_id=text(data.get("id")),
        order_id=text(data.get("reference_id")) or params.order_id,
        amount=to_amount(data.get("charge_amount")) or params.amount,
        status=map_provider_status(PROVIDER, data.get("status")),
        payment_type=params.payment_type,
        payment_url=payment_url,
        qr_string=qr_string,
        raw=dict(data),
        **_times(data),
    )


def from_va_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    return ChargeResponse(
        transaction_id=text(data.get("id")),
        order_id=text(data.get("external_id")) or params.order_id,
        amount=to_amount(data.get("expected_amount")) or params.amount,
        status=map_provider_status(PROVIDER, data.get("status")),
        payment_type=params.payment_type,
        va_number=text(data.get("account_number")) or None,
        va_bank=text(data.get("bank_code")) or BANK_CODES[params.payment_type],
        expiry_time=parse_timestamp(data.get("expiration_date")),
        raw=dict(data),
        **_times(data),
    )


def from_invoice_response(data: Mapping[str, Any], params: ChargeParams) -> ChargeResponse:
    return ChargeResponse(
        transaction_id=text(data.get("id")),
        order_id=text(data.get("external_id")) or params.order_id,
        amount=to_amount(data.get("amount")) or params.amount,
        status=map_provider_status(PROVIDER, data.get("status")),
        payment_type=params.payment_type,
        payment_url=text(data.get("invoice_url")) or None,
        expiry_time=parse_timestamp(data.get("expiry_date")),
        raw=dict(data),
        **_times(data),
    )


def to_payment_status(order_id: str, data: Mapping[str, Any]) -> PaymentStatus:
    status = map_provider_status(PROVIDER, data.get("status"))
    amount = to_amount(data.get("amount"))
    paid_amount = to_amount(data.get("paid_amount")) or amount
    return PaymentStatus(
        transaction_id=text(data.get("id")),
        order_id=text(data.get("external_id")) or order_id,
        status=status,
        amount=amount,
        paid_amount=paid_amount if status is Status.SUCCESS else 0,
        payment_type=unified_payment_type(data),
        paid_at=(parse_timestamp(data.get("paid_at")) or parse_timestamp(data.get("updated")))
        if status is Status.SUCCESS
        else None,
        expired_at=parse_timestamp(data.get("expiry_date")) if status is Status.EXPIRED else None,
        failure_reason=(text(data.get("failure_code")) or None) if status is Status.FAILED else None,
        raw=dict(data),
    )


def _unwrap(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    # E-wallet callbacks arrive as {"event": ..., "data": {...}}
    data = payload.get("data")
    if isinstance(data, Mapping) and "event" in payload:
        return data
    return payload


def to_webhook_event(payload: Mapping[str, Any]) -> WebhookEvent:
    data = _unwrap(payload)
    order_id = text(data.get("external_id") or data.get("reference_id"))
    if not order_id:
        raise InvalidPayloadError("xendit callback has no external_id or reference_id")
    status = map_provider_status(PROVIDER, data.get("status"))
    amount = to_amount(
        data.get("paid_amount")
        or data.get("amount")
        or data.get("capture_amount")
        or data.get("charge_amount")
    )
    timestamp = (
        parse_timestamp(data.get("paid_at"))
        or parse_timestamp(data.get("updated"))
        or parse_timestamp(data.get("created"))
    )
    return WebhookEvent(
        provider=PROVIDER,
        order_id=order_id,
        transaction_id=text(data.get("id") or data.get("payment_id")) or order_id,
        status=status,
        amount=amount,
        payment_type=unified_payment_type(data),
        event_type=EventType.from_status(status),
        timestamp=timestamp,
        raw=dict(payload),
    )
