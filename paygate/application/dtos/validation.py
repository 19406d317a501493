"""
Charge request validators.

Each validator returns a FieldError (or None); ``validate_charge_params``
runs them in order and raises the first failure, before any network I/O.
"""
from __future__ import annotations

import re
from typing import Callable, Collection, Iterable, Optional

from paygate.application.dtos.payments import ChargeParams, Customer, Item, PaymentClass, PaymentType
from paygate.domain.common.exceptions import FieldError, ValidationError
from paygate.shared.codes import PaymentCode


MAX_ORDER_ID_LENGTH = 100

# Smallest-unit IDR floors per method class
MIN_AMOUNT: dict[PaymentClass, int] = {
    PaymentClass.EWALLET: 100,
    PaymentClass.VIRTUAL_ACCOUNT: 10_000,
    PaymentClass.QRIS: 1_500,
    PaymentClass.CREDIT_CARD: 10_000,
    PaymentClass.RETAIL: 10_000,
}

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?(62|63)[0-9]{9,13}$")

_PHONE_NOISE = re.compile(r"[\s\-().]")


def min_amount_for(payment_type: PaymentType) -> int:
    return MIN_AMOUNT[payment_type.method_class]


def normalize_phone(phone: str) -> str:
    """Normalise local Indonesian numbers to +62 form.

    ``0812-3456-789`` -> ``+628123456789``; ``628...`` -> ``+628...``.
    """
    cleaned = _PHONE_NOISE.sub("", phone or "")
    if cleaned.startswith("0"):
        return "+62" + cleaned[1:]
    if cleaned.startswith(("62", "63")):
        return "+" + cleaned
    return cleaned


def validate_order_id(order_id: str) -> Optional[FieldError]:
    if not order_id:
        return FieldError.required("OrderID")
    if len(order_id) > MAX_ORDER_ID_LENGTH:
        return FieldError("OrderID", f"must not exceed {MAX_ORDER_ID_LENGTH} characters")
    return None


def validate_amount(amount: int, payment_type: PaymentType) -> Optional[FieldError]:
    floor = min_amount_for(payment_type)
    if amount < floor:
        return FieldError("Amount", f"must be at least Rp{floor}", PaymentCode.MIN_AMOUNT)
    return None


def validate_email(email: str, field: str = "Customer.Email") -> Optional[FieldError]:
    if not email:
        return FieldError.required(field)
    if not EMAIL_RE.match(email):
        return FieldError(field, "must be a valid email address")
    return None


def validate_phone(phone: str, field: str = "Customer.Phone") -> Optional[FieldError]:
    if not phone:
        return FieldError.required(field)
    if not PHONE_RE.match(normalize_phone(phone)):
        return FieldError(
            field,
            "must be a valid Indonesian or Philippine phone number (e.g., +628123456789)",
            PaymentCode.INVALID_PHONE_NUMBER,
        )
    return None


def validate_customer(customer: Customer, *, require_phone: bool = False) -> Optional[FieldError]:
    if not customer.id:
        return FieldError.required("Customer.ID")
    error = validate_email(customer.email)
    if error is not None:
        return error
    if require_phone or customer.phone:
        return validate_phone(customer.phone)
    return None


def validate_payment_type(payment_type: PaymentType, supported: Collection[PaymentType]) -> Optional[FieldError]:
    if payment_type not in supported:
        allowed = ", ".join(sorted(p.value for p in supported))
        return FieldError("PaymentType", f"must be one of: {allowed}")
    return None


def validate_items(items: list[Item], *, required: bool = False) -> Optional[FieldError]:
    if required and not items:
        return FieldError.required("Items")
    for index, item in enumerate(items):
        if not item.name:
            return FieldError.required(f"Items[{index}].Name")
    return None


def _checks(
    params: ChargeParams,
    supported: Collection[PaymentType],
    require_phone: bool,
    require_items: bool,
) -> Iterable[Callable[[], Optional[FieldError]]]:
    yield lambda: validate_order_id(params.order_id)
    yield lambda: validate_amount(params.amount, params.payment_type)
    yield lambda: validate_customer(params.customer, require_phone=require_phone)
    yield lambda: validate_payment_type(params.payment_type, supported)
    yield lambda: validate_items(params.items, required=require_items)


def validate_charge_params(
    params: ChargeParams,
    *,
    supported: Collection[PaymentType],
    require_phone: bool = False,
    require_items: bool = False,
) -> None:
    """Raise the first FieldError found, in the documented order."""
    for check in _checks(params, supported, require_phone, require_items):
        error = check()
        if error is not None:
            raise error


def collect_charge_errors(
    params: ChargeParams,
    *,
    supported: Collection[PaymentType],
    require_phone: bool = False,
    require_items: bool = False,
) -> Optional[ValidationError]:
    """Run every check and return all failures, or None."""
    errors = ValidationError()
    for check in _checks(params, supported, require_phone, require_items):
        error = check()
        if error is not None:
            errors.add(error)
    return errors.to_error()
