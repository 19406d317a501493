"""Unified error taxonomy shared by every provider driver.

Each error kind is a subclass of :class:`PaymentGatewayException` carrying a
fixed :class:`PaymentCode`. Composite errors (field, validation, provider,
configuration) point at an inner kind so callers can test for a kind with
:func:`error_is` regardless of how deep it is wrapped.
"""
from __future__ import annotations

from typing import Any, Iterator, Optional

from paygate.shared.codes import PaymentCode


class PaymentGatewayException(Exception):
    """Base class for every error raised by the library."""

    code: PaymentCode = PaymentCode.PROVIDER_ERROR
    default_message: str = "payment gateway error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_type: Optional[str] = None,
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_type = error_type or type(self).__name__
        self.details = details
        self.field = field
        super().__init__(self.message)

    def _inner_errors(self) -> Iterator[BaseException]:
        return iter(())


class UnimplementedError(PaymentGatewayException):
    code = PaymentCode.UNIMPLEMENTED
    default_message = "not yet implemented for this payment method"


class MissingParameterError(PaymentGatewayException):
    code = PaymentCode.MISSING_PARAMETER
    default_message = "missing required parameter"


class InvalidParameterError(PaymentGatewayException):
    code = PaymentCode.INVALID_PARAMETER
    default_message = "invalid parameter"


class MissingCredentialsError(PaymentGatewayException):
    code = PaymentCode.MISSING_CREDENTIALS
    default_message = "missing credentials"


class InvalidCredentialsError(PaymentGatewayException):
    code = PaymentCode.INVALID_CREDENTIALS
    default_message = "invalid credentials"


class MinAmountError(PaymentGatewayException):
    code = PaymentCode.MIN_AMOUNT
    default_message = "amount is below the minimum for this payment method"


class InvalidPhoneNumberError(PaymentGatewayException):
    code = PaymentCode.INVALID_PHONE_NUMBER
    default_message = "phone number must start with +62 (ID) or +63 (PH) followed by 9-13 digits"


class InvalidSignatureError(PaymentGatewayException):
    code = PaymentCode.INVALID_SIGNATURE
    default_message = "invalid webhook signature"


class InvalidPayloadError(PaymentGatewayException):
    code = PaymentCode.INVALID_PAYLOAD
    default_message = "invalid payload"


class DuplicateTransactionError(PaymentGatewayException):
    code = PaymentCode.DUPLICATE_TRANSACTION
    default_message = "duplicate transaction ID"


class TransactionNotFoundError(PaymentGatewayException):
    code = PaymentCode.TRANSACTION_NOT_FOUND
    default_message = "transaction not found"


class TransactionFailedError(PaymentGatewayException):
    code = PaymentCode.TRANSACTION_FAILED
    default_message = "transaction failed"


class PaymentTimeoutError(PaymentGatewayException):
    code = PaymentCode.TIMEOUT
    default_message = "request timeout"


class RateLimitError(PaymentGatewayException):
    code = PaymentCode.RATE_LIMIT
    default_message = "rate limit exceeded"


class ServiceUnavailableError(PaymentGatewayException):
    code = PaymentCode.SERVICE_UNAVAILABLE
    default_message = "service unavailable"


class NetworkError(PaymentGatewayException):
    code = PaymentCode.NETWORK_ERROR
    default_message = "network error"


class WebhookVerificationFailedError(PaymentGatewayException):
    code = PaymentCode.WEBHOOK_VERIFICATION_FAILED
    default_message = "webhook verification failed"


class InvalidWebhookTypeError(PaymentGatewayException):
    code = PaymentCode.INVALID_WEBHOOK_TYPE
    default_message = "invalid webhook type"


class FieldError(PaymentGatewayException):
    """A single failed field, tagged with the kind of failure."""

    def __init__(self, field: str, message: str = "", inner: PaymentCode = PaymentCode.INVALID_PARAMETER) -> None:
        self.inner = inner
        self.code = inner
        text = f"{field}: {message}" if message else f"{field} is invalid"
        super().__init__(text, error_type="FieldError", field=field, details={"reason": message} if message else None)
        self.reason = message

    @classmethod
    def required(cls, field: str) -> "FieldError":
        return cls(field, "is required", PaymentCode.MISSING_PARAMETER)


class ValidationError(PaymentGatewayException):
    """Aggregate of field errors."""

    code = PaymentCode.VALIDATION_FAILED

    def __init__(self, errors: Optional[list[FieldError]] = None) -> None:
        self.errors: list[FieldError] = list(errors or [])
        super().__init__(self._render(), error_type="ValidationError")

    def _render(self) -> str:
        if not self.errors:
            return "validation failed"
        if len(self.errors) == 1:
            return str(self.errors[0])
        return f"validation failed: {len(self.errors)} errors"

    def __str__(self) -> str:
        return self._render()

    def add(self, error: FieldError) -> None:
        self.errors.append(error)
        self.message = self._render()
        self.args = (self.message,)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_error(self) -> Optional["ValidationError"]:
        return self if self.errors else None

    @property
    def first(self) -> Optional[FieldError]:
        return self.errors[0] if self.errors else None

    def _inner_errors(self) -> Iterator[BaseException]:
        return iter(self.errors)


class ProviderError(PaymentGatewayException):
    """Error payload reported by a payment provider."""

    code = PaymentCode.PROVIDER_ERROR

    def __init__(
        self,
        *,
        provider: str,
        provider_code: str = "",
        message: str = "",
        raw: Optional[dict[str, Any]] = None,
        inner: Optional[PaymentGatewayException] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.provider_code = provider_code
        self.raw = raw or {}
        self.inner = inner
        self.status_code = status_code
        super().__init__(
            message or "provider error",
            error_type="ProviderError",
            details={"provider": provider, "provider_code": provider_code, "status_code": status_code},
        )

    def _inner_errors(self) -> Iterator[BaseException]:
        return iter((self.inner,) if self.inner is not None else ())


class InvalidConfigurationError(PaymentGatewayException):
    """Raised when the client configuration does not validate."""

    code = PaymentCode.INVALID_CONFIGURATION

    def __init__(self, errors: ValidationError) -> None:
        self.errors = errors
        first = errors.first
        super().__init__(
            f"invalid configuration: {first}" if first else "invalid configuration",
            field=first.field if first else None,
        )

    def _inner_errors(self) -> Iterator[BaseException]:
        return iter((self.errors,))


class UnsupportedProviderError(PaymentGatewayException):
    code = PaymentCode.UNSUPPORTED_PROVIDER

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"unsupported provider: {provider}", details={"provider": provider})
def _walk(exc: Optional[BaseException]) -> Iterator[BaseException]:
    """Yield ``exc``, the errors it wraps and its ``__cause__`` chain, depth first."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc] if exc is not None else []
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            stack.append(current.__cause__)
        if isinstance(current, PaymentGatewayException):
            stack.extend(reversed(list(current._inner_errors())))


def error_is(exc: Optional[BaseException], code: PaymentCode) -> bool:
    """Report whether ``exc`` is, or wraps, an error of kind ``code``."""
    return any(
        isinstance(current, PaymentGatewayException) and current.code == code
        for current in _walk(exc)
    )


def _find(exc: Optional[BaseException], cls: type) -> Any:
    return next((current for current in _walk(exc) if isinstance(current, cls)), None)


def is_provider_error(exc: BaseException) -> Optional[ProviderError]:
    return _find(exc, ProviderError)


def is_validation_error(exc: BaseException) -> Optional[ValidationError]:
    return _find(exc, ValidationError)


def is_field_error(exc: BaseException) -> Optional[FieldError]:
    return _find(exc, FieldError)
