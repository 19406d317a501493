"""
Payment gateway port (application/ports) exposing a replaceable protocol.

The Client depends on this Protocol; infrastructure drivers implement it.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    PaymentStatus,
    WebhookEvent,
    WebhookRequest,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Capability set every provider driver offers.

    I/O operations are async and honour ``timeout`` (seconds); webhook
    handling is synchronous.
    """

    provider: str

    def name(self) -> str: ...

    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse: ...

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus: ...

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None: ...

    def verify_webhook(self, request: WebhookRequest) -> bool: ...

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent: ...

    async def aclose(self) -> None: ...
