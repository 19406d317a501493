"""
Translation of provider HTTP failures into the unified error taxonomy.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from paygate.domain.common.exceptions import (
    DuplicateTransactionError,
    InvalidCredentialsError,
    PaymentGatewayException,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    TransactionNotFoundError,
)
from paygate.infrastructure.external.api_clients.base import APIError


HTTP_STATUS_KIND: dict[int, type[PaymentGatewayException]] = {
    401: InvalidCredentialsError,
    403: InvalidCredentialsError,
    404: TransactionNotFoundError,
    409: DuplicateTransactionError,
    429: RateLimitError,
    500: ServiceUnavailableError,
    502: ServiceUnavailableError,
    503: ServiceUnavailableError,
    504: ServiceUnavailableError,
}

_CODE_KEYS = ("error_code", "status_code", "response_code", "code")
_MESSAGE_KEYS = ("message", "status_message", "response_message", "error_message", "error_messages", "error")


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            if isinstance(value, (list, tuple)):
                return "; ".join(str(v) for v in value)
            return str(value)
    return ""


def provider_error(
    provider: str,
    raw: Mapping[str, Any],
    *,
    status_code: Optional[int] = None,
    inner: Optional[type[PaymentGatewayException]] = None,
    default_message: str = "",
) -> ProviderError:
    """Wrap a provider error payload, keeping its code, message and raw body."""
    code = _first(raw, _CODE_KEYS) or (str(status_code) if status_code else "")
    message = _first(raw, _MESSAGE_KEYS) or default_message
    return ProviderError(
        provider=provider,
        provider_code=code,
        message=message,
        raw=dict(raw),
        inner=inner(message or None) if inner is not None else None,
        status_code=status_code,
    )


def from_api_error(provider: str, exc: APIError) -> ProviderError:
    status = exc.status_code or 0
    raw: dict[str, Any] = {}
    if exc.response is not None:
        if isinstance(exc.response.data, dict):
            raw = exc.response.data
        elif exc.response.raw_content:
            raw = {"body": exc.response.text()}
    kind = HTTP_STATUS_KIND.get(status)
    if kind is None and status >= 500:
        kind = ServiceUnavailableError
    return provider_error(
        provider,
        raw,
        status_code=status,
        inner=kind,
        default_message=f"{provider} API request failed with status {status}",
    )
