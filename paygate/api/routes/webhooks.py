"""
Webhook receiver routes.

Mount the router in a host FastAPI app to accept provider callbacks. Each
path segment selects a configured Client; the body is verified before it is
parsed, and verified events are handed to ``on_event``.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Mapping, Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from paygate.application.dtos.payments import WebhookEvent, WebhookRequest
from paygate.application.services.payment_client import Client
from paygate.core.logging_config import get_logger
from paygate.core.response import error_response, success_response
from paygate.domain.common.exceptions import (
    InvalidPayloadError,
    InvalidSignatureError,
    PaymentGatewayException,
)
from paygate.shared.codes import PaymentCode


logger = get_logger(__name__)

EventHandler = Callable[[WebhookEvent], Awaitable[None]]


def _log(client: Client, level: str, event: str, **kwargs) -> None:
    if client.config.log_enabled:
        getattr(logger, level)(event, **kwargs)


def _error(status_code: int, exc: PaymentGatewayException) -> JSONResponse:
    body = error_response(
        code=exc.code,
        message=exc.message,
        error_type=exc.error_type,
        details=exc.details,
        field=exc.field,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_webhook_router(
    clients: Mapping[str, Client],
    on_event: Optional[EventHandler] = None,
) -> APIRouter:
    """Build ``POST /payments/webhooks/{provider}`` bound to ``clients``.

    Keys of ``clients`` are matched case-insensitively against the path.
    """
    registry = {name.lower(): client for name, client in clients.items()}
    router = APIRouter(prefix="/payments", tags=["Payments"])

    @router.post("/webhooks/{provider}")
    async def receive_webhook(provider: str, request: Request):
        client = registry.get(provider.lower())
        if client is None:
            body = error_response(
                code=PaymentCode.UNSUPPORTED_PROVIDER,
                message=f"unknown provider: {provider}",
                error_type="UnsupportedProviderError",
            )
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump(mode="json"))

        webhook = await WebhookRequest.from_request(request)
        try:
            event = client.parse_webhook(webhook)
        except InvalidSignatureError as exc:
            _log(client, "warning", "webhook_invalid_signature", provider=provider)
            return _error(status.HTTP_401_UNAUTHORIZED, exc)
        except InvalidPayloadError as exc:
            _log(client, "warning", "webhook_invalid_payload", provider=provider, error=exc.message)
            return _error(status.HTTP_400_BAD_REQUEST, exc)

        if on_event is not None:
            await on_event(event)

        _log(
            client,
            "info",
            "webhook_received",
            provider=provider,
            order_id=event.order_id,
            status=event.status.value,
        )
        return success_response(data=event.model_dump(mode="json"), message="received")

    return router
