"""
Client facade: one configured provider behind the unified payment API.

The facade owns configuration and provider lookup. Everything
provider-specific (validation tables, wire mapping, signatures) lives in the
driver it delegates to.
"""
from __future__ import annotations

from typing import Optional

import httpx

from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    PaymentStatus,
    WebhookEvent,
    WebhookRequest,
)
from paygate.application.ports.payment_gateway import PaymentGateway
from paygate.core.config import MAX_REQUEST_TIMEOUT, Config, EnvSettings, Option, build_config
from paygate.core.logging_config import configure_logging, get_logger
from paygate.domain.common.exceptions import InvalidSignatureError
from paygate.infrastructure.external.api_clients.base import HTTPTransport
from paygate.infrastructure.external.payments import create_provider, register_default_providers


logger = get_logger(__name__)


class Client:
    """Unified payment client bound to a single provider.

    Example:
        async with Client(with_provider("midtrans"), with_server_key(key)) as client:
            charge = await client.create_charge(params)

    Args:
        options: configuration options (``with_provider`` and friends)
        env: environment settings; read from ``PG_*`` variables when omitted
        transport: custom httpx transport shared by the driver, mainly for tests
    """

    def __init__(
        self,
        *options: Option,
        env: Optional[EnvSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = build_config(*options, env=env)
        if self._config.log_enabled:
            configure_logging()

        register_default_providers()
        provider_config = self._config.provider_config()
        kwargs = {}
        if transport is not None:
            kwargs["transport"] = HTTPTransport(
                timeout=min(self._config.timeout, MAX_REQUEST_TIMEOUT),
                max_retries=self._config.max_retries,
                transport=transport,
            )
        self._provider: PaymentGateway = create_provider(self._config.provider, provider_config, **kwargs)

    @property
    def provider(self) -> PaymentGateway:
        return self._provider

    @property
    def config(self) -> Config:
        return self._config

    async def create_charge(self, params: ChargeParams, *, timeout: Optional[float] = None) -> ChargeResponse:
        return await self._provider.create_charge(params, timeout=timeout)

    async def get_status(self, order_id: str, *, timeout: Optional[float] = None) -> PaymentStatus:
        return await self._provider.get_status(order_id, timeout=timeout)

    async def cancel(self, order_id: str, *, timeout: Optional[float] = None) -> None:
        await self._provider.cancel(order_id, timeout=timeout)

    def verify_webhook(self, request: WebhookRequest) -> bool:
        return self._provider.verify_webhook(request)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        """Verify, then parse. Raises InvalidSignatureError on a bad signature."""
        if not self._provider.verify_webhook(request):
            if self._config.log_enabled:
                logger.warning("webhook_rejected", provider=self._config.provider)
            raise InvalidSignatureError(f"{self._config.provider} webhook signature mismatch")
        return self._provider.parse_webhook(request)

    async def aclose(self) -> None:
        await self._provider.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
