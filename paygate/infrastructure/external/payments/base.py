"""
Base payment client holding the pre-flight shared by every driver.

Concrete providers subclass this and implement provider-specific logic.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    PaymentStatus,
    PaymentType,
    WebhookEvent,
    WebhookRequest,
)
from paygate.application.dtos.validation import validate_charge_params
from paygate.application.ports.payment_gateway import PaymentGateway
from paygate.core.config import MAX_REQUEST_TIMEOUT, ProviderConfig
from paygate.core.logging_config import get_logger
from paygate.domain.common.exceptions import InvalidPayloadError, ProviderError
from paygate.infrastructure.external.api_clients.base import APIError, Body, HTTPMethod, HTTPTransport
from paygate.infrastructure.external.payments.exceptions import from_api_error


logger = get_logger(__name__)


class BasePaymentClient(PaymentGateway):
    provider: str = "base"
    supported_payment_types: frozenset[PaymentType] = frozenset()
    # Payment types for which a customer phone number is mandatory
    phone_required_for: frozenset[PaymentType] = frozenset()
    requires_items: bool = False

    def __init__(self, config: ProviderConfig, *, transport: Optional[HTTPTransport] = None) -> None:
        self.config = config
        self._transport = transport or HTTPTransport(
            timeout=min(config.timeout_seconds, MAX_REQUEST_TIMEOUT),
            max_retries=config.max_retries,
        )

    def name(self) -> str:
        return self.provider

    @property
    def transport(self) -> HTTPTransport:
        return self._transport

    async def aclose(self) -> None:
        """Close the underlying HTTP transport."""
        await self._transport.aclose()

    # Default implementations raise to force override where needed
    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse:
        raise NotImplementedError

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus:
        raise NotImplementedError

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None:
        raise NotImplementedError

    def verify_webhook(self, request: WebhookRequest) -> bool:
        raise NotImplementedError

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        raise NotImplementedError

    # Helpers
    def _validate(self, params: ChargeParams) -> None:
        validate_charge_params(
            params,
            supported=self.supported_payment_types,
            require_phone=params.payment_type in self.phone_required_for,
            require_items=self.requires_items,
        )

    def _deadline(self, timeout: Optional[float]) -> float:
        limits = [self.config.timeout_seconds, MAX_REQUEST_TIMEOUT]
        if timeout is not None:
            limits.append(timeout)
        return min(limits)

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        body: Body = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Dispatch through the transport and return the decoded JSON object."""
        try:
            response = await self._transport.call(
                method,
                url,
                headers=headers,
                body=body,
                timeout=self._deadline(timeout),
            )
        except APIError as exc:
            error = from_api_error(self.provider, exc)
            self._log_error(error)
            raise error from exc
        if not isinstance(response.data, dict):
            raise InvalidPayloadError(f"{self.provider} returned a non-JSON response")
        return response.data

    def _log(self, event: str, **kwargs) -> None:
        if not self.config.log_enabled:
            return
        logger.info(
            event,
            provider=self.provider,
            environment=self.config.environment.value,
            **kwargs,
        )

    def _log_error(self, error: ProviderError) -> None:
        if not self.config.log_enabled:
            return
        logger.error(
            "provider_error",
            provider=self.provider,
            provider_code=error.provider_code,
            status_code=error.status_code,
            message=error.message,
        )
