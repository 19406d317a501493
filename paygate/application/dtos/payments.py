"""
Unified payment DTOs (Pydantic v2) shared by every provider driver.

Amounts are integers in the smallest IDR unit.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field, model_validator

from paygate.core.config import Environment
from paygate.domain.common.exceptions import InvalidPayloadError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentClass(str, Enum):
    EWALLET = "ewallet"
    VIRTUAL_ACCOUNT = "virtual_account"
    QRIS = "qris"
    CREDIT_CARD = "credit_card"
    RETAIL = "retail"


class PaymentType(str, Enum):
    GOPAY = "GOPAY"
    OVO = "OVO"
    DANA = "DANA"
    SHOPEEPAY = "SHOPEEPAY"
    LINKAJA = "LINKAJA"
    VA_BCA = "VA_BCA"
    VA_BNI = "VA_BNI"
    VA_BRI = "VA_BRI"
    VA_MANDIRI = "VA_MANDIRI"
    VA_PERMATA = "VA_PERMATA"
    VA_CIMB = "VA_CIMB"
    QRIS = "QRIS"
    CREDIT_CARD = "CREDIT_CARD"
    ALFAMART = "ALFAMART"
    INDOMARET = "INDOMARET"

    @property
    def method_class(self) -> PaymentClass:
        return _PAYMENT_CLASS[self]

    @property
    def is_ewallet(self) -> bool:
        return self.method_class is PaymentClass.EWALLET

    @property
    def is_va(self) -> bool:
        return self.method_class is PaymentClass.VIRTUAL_ACCOUNT

    @property
    def is_qris(self) -> bool:
        return self.method_class is PaymentClass.QRIS

    @property
    def is_cc(self) -> bool:
        return self.method_class is PaymentClass.CREDIT_CARD

    @property
    def is_retail(self) -> bool:
        return self.method_class is PaymentClass.RETAIL


_PAYMENT_CLASS: dict[PaymentType, PaymentClass] = {
    PaymentType.GOPAY: PaymentClass.EWALLET,
    PaymentType.OVO: PaymentClass.EWALLET,
    PaymentType.DANA: PaymentClass.EWALLET,
    PaymentType.SHOPEEPAY: PaymentClass.EWALLET,
    PaymentType.LINKAJA: PaymentClass.EWALLET,
    PaymentType.VA_BCA: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.VA_BNI: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.VA_BRI: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.VA_MANDIRI: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.VA_PERMATA: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.VA_CIMB: PaymentClass.VIRTUAL_ACCOUNT,
    PaymentType.QRIS: PaymentClass.QRIS,
    PaymentType.CREDIT_CARD: PaymentClass.CREDIT_CARD,
    PaymentType.ALFAMART: PaymentClass.RETAIL,
    PaymentType.INDOMARET: PaymentClass.RETAIL,
}


class Status(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @property
    def is_final(self) -> bool:
        return self in _FINAL_STATUSES


_FINAL_STATUSES = frozenset({Status.SUCCESS, Status.FAILED, Status.CANCELLED, Status.EXPIRED})


class EventType(str, Enum):
    COMPLETED = "payment.completed"
    FAILED = "payment.failed"
    PENDING = "payment.pending"
    EXPIRED = "payment.expired"
    CANCELLED = "payment.cancelled"

    @classmethod
    def from_status(cls, status: Status) -> "EventType":
        return _EVENT_BY_STATUS.get(status, cls.PENDING)


_EVENT_BY_STATUS = {
    Status.SUCCESS: EventType.COMPLETED,
    Status.FAILED: EventType.FAILED,
    Status.CANCELLED: EventType.CANCELLED,
    Status.EXPIRED: EventType.EXPIRED,
}


class Customer(BaseModel):
    id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""


class Item(BaseModel):
    id: str = ""
    name: str
    price: int = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    category: Optional[str] = None
    url: Optional[str] = None


class ChargeParams(BaseModel):
    order_id: str
    amount: int
    payment_type: PaymentType
    customer: Customer = Field(default_factory=Customer)
    items: list[Item] = Field(default_factory=list)
    description: Optional[str] = None
    expiry_time: Optional[datetime] = None
    callback_url: Optional[str] = None
    return_url: Optional[str] = None
    # Provider-specific knobs (e.g. checkout_method, va_number)
    custom: dict[str, Any] = Field(default_factory=dict)

    def custom_str(self, key: str, default: str = "") -> str:
        value = self.custom.get(key)
        return value if isinstance(value, str) and value else default


class ChargeResponse(BaseModel):
    transaction_id: str = ""
    order_id: str = ""
    amount: int = 0
    status: Status = Status.PENDING
    payment_type: Optional[PaymentType] = None
    payment_url: Optional[str] = None
    qr_string: Optional[str] = None
    va_number: Optional[str] = None
    va_bank: Optional[str] = None
    expiry_time: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    raw: dict[str, Any] = Field(default_factory=dict)


class PaymentStatus(BaseModel):
    transaction_id: str = ""
    order_id: str
    status: Status
    amount: int = 0
    paid_amount: int = 0
    payment_type: Optional[PaymentType] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _paid_only_when_successful(self) -> "PaymentStatus":
        if self.paid_at is not None and self.status is not Status.SUCCESS:
            raise ValueError("paid_at is only set for successful payments")
        return self


class WebhookEvent(BaseModel):
    provider: str = ""
    order_id: str
    transaction_id: str = ""
    status: Status
    amount: int = 0
    payment_type: Optional[PaymentType] = None
    event_type: EventType
    timestamp: Optional[datetime] = None
    fraud_status: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class WebhookRequest:
    """Inbound webhook request with its body fully buffered.

    The body is held as bytes, so verifying a signature never consumes it and
    parsers downstream always see the exact bytes that were verified.
    """

    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    method: str = "POST"

    def header(self, name: str, default: str = "") -> str:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default

    @property
    def content_type(self) -> str:
        return self.header("content-type").split(";", 1)[0].strip().lower()

    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidPayloadError("webhook body is not valid UTF-8") from exc

    def form(self) -> dict[str, str]:
        return dict(parse_qsl(self.text(), keep_blank_values=True))

    def json(self) -> dict[str, Any]:
        try:
            data = json.loads(self.text())
        except json.JSONDecodeError as exc:
            raise InvalidPayloadError("webhook body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise InvalidPayloadError("webhook body must be a JSON object")
        return data

    def is_json(self) -> bool:
        if self.content_type == "application/json":
            return True
        return self.body.lstrip().startswith(b"{")

    def payload(self) -> dict[str, Any]:
        """Decode the body as JSON or form data depending on its shape."""
        return self.json() if self.is_json() else self.form()

    @classmethod
    async def from_request(cls, request: Any) -> "WebhookRequest":
        """Build from a Starlette/FastAPI request.

        Starlette caches ``await request.body()``, so the route handler can
        still read the body after this call.
        """
        body = await request.body()
        return cls(headers=dict(request.headers), body=body, method=request.method)


__all__ = [
    "Environment",
    "PaymentClass",
    "PaymentType",
    "Status",
    "EventType",
    "Customer",
    "Item",
    "ChargeParams",
    "ChargeResponse",
    "PaymentStatus",
    "WebhookEvent",
    "WebhookRequest",
]
