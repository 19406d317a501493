"""
paygate: one async client for Indonesian payment gateways.
"""
from paygate.application.dtos.payments import (
    ChargeParams,
    ChargeResponse,
    Customer,
    EventType,
    Item,
    PaymentClass,
    PaymentStatus,
    PaymentType,
    Status,
    WebhookEvent,
    WebhookRequest,
)
from paygate.application.services.payment_client import Client
from paygate.core.config import (
    VERSION,
    Config,
    EnvSettings,
    Environment,
    ProviderConfig,
    build_config,
    with_client_key,
    with_environment,
    with_logging,
    with_max_retries,
    with_merchant_id,
    with_provider,
    with_server_key,
    with_snap_mode,
    with_timeout,
)
from paygate.core.logging_config import configure_logging
from paygate.domain.common.exceptions import (
    DuplicateTransactionError,
    FieldError,
    InvalidConfigurationError,
    InvalidCredentialsError,
    InvalidParameterError,
    InvalidPayloadError,
    InvalidPhoneNumberError,
    InvalidSignatureError,
    InvalidWebhookTypeError,
    MinAmountError,
    MissingCredentialsError,
    MissingParameterError,
    NetworkError,
    PaymentGatewayException,
    PaymentTimeoutError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    TransactionFailedError,
    TransactionNotFoundError,
    UnimplementedError,
    UnsupportedProviderError,
    ValidationError,
    WebhookVerificationFailedError,
    error_is,
    is_field_error,
    is_provider_error,
    is_validation_error,
)
from paygate.infrastructure.external.payments import (
    create_provider,
    register_default_providers,
    register_provider,
    registered_providers,
)
from paygate.shared.codes import PaymentCode

__version__ = VERSION

register_default_providers()

__all__ = [
    "__version__",
    "Client",
    "Config",
    "ProviderConfig",
    "EnvSettings",
    "Environment",
    "build_config",
    "with_provider",
    "with_environment",
    "with_server_key",
    "with_client_key",
    "with_merchant_id",
    "with_timeout",
    "with_snap_mode",
    "with_logging",
    "with_max_retries",
    "configure_logging",
    "ChargeParams",
    "ChargeResponse",
    "Customer",
    "Item",
    "PaymentClass",
    "PaymentType",
    "Status",
    "EventType",
    "PaymentStatus",
    "WebhookEvent",
    "WebhookRequest",
    "PaymentCode",
    "PaymentGatewayException",
    "FieldError",
    "ValidationError",
    "ProviderError",
    "InvalidConfigurationError",
    "InvalidPayloadError",
    "InvalidSignatureError",
    "UnsupportedProviderError",
    "UnimplementedError",
    "MissingParameterError",
    "InvalidParameterError",
    "MissingCredentialsError",
    "InvalidCredentialsError",
    "MinAmountError",
    "InvalidPhoneNumberError",
    "DuplicateTransactionError",
    "TransactionNotFoundError",
    "TransactionFailedError",
    "PaymentTimeoutError",
    "RateLimitError",
    "ServiceUnavailableError",
    "NetworkError",
    "WebhookVerificationFailedError",
    "InvalidWebhookTypeError",
    "error_is",
    "is_provider_error",
    "is_validation_error",
    "is_field_error",
    "register_provider",
    "create_provider",
    "registered_providers",
    "register_default_providers",
]
