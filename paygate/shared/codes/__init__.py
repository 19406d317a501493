"""
Shared codes used across layers (Domain/Core/API).

Error kinds live in `paygate.shared.codes.payment_codes` together with the
per-provider status tables.
"""
from .payment_codes import PaymentCode, PROVIDER_STATUS_TO_INTERNAL

__all__ = ["PaymentCode", "PROVIDER_STATUS_TO_INTERNAL"]
