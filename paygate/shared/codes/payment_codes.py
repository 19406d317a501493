"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    INVALID_SIGNATURE = 60002
    TIMEOUT = 60003
    RATE_LIMIT = 60004
    SERVICE_UNAVAILABLE = 60005
    NETWORK_ERROR = 60006
    INVALID_PAYLOAD = 60007
    WEBHOOK_VERIFICATION_FAILED = 60008
    INVALID_WEBHOOK_TYPE = 60009

    # Request validation (61xxx)
    MISSING_PARAMETER = 61000
    INVALID_PARAMETER = 61001
    MIN_AMOUNT = 61002
    INVALID_PHONE_NUMBER = 61003
    VALIDATION_FAILED = 61004

    # Credentials / configuration (62xxx)
    MISSING_CREDENTIALS = 62000
    INVALID_CREDENTIALS = 62001
    INVALID_CONFIGURATION = 62002
    UNSUPPORTED_PROVIDER = 62003

    # Transaction lifecycle (63xxx)
    DUPLICATE_TRANSACTION = 63000
    TRANSACTION_NOT_FOUND = 63001
    TRANSACTION_FAILED = 63002

    UNIMPLEMENTED = 69000


# Provider→unified status mapping; unknown provider values fall back to PENDING
PROVIDER_STATUS_TO_INTERNAL = {
    "midtrans": {
        # Per transaction_status
        "capture": "SUCCESS",
        "settlement": "SUCCESS",
        "pending": "PENDING",
        "authorize": "PROCESSING",
        "deny": "FAILED",
        "failure": "FAILED",
        "cancel": "CANCELLED",
        "expire": "EXPIRED",
    },
    "xendit": {
        # Invoices, callback VAs and e-wallet charges share one table
        "PAID": "SUCCESS",
        "SETTLED": "SUCCESS",
        "SUCCEEDED": "SUCCESS",
        "PENDING": "PENDING",
        "ACTIVE": "PENDING",
        "INACTIVE": "EXPIRED",
        "FAILED": "FAILED",
        "EXPIRED": "EXPIRED",
        "VOIDED": "CANCELLED",
    },
    "doku": {
        "SUCCESS": "SUCCESS",
        "PENDING": "PENDING",
        "FAILED": "FAILED",
        "CANCELLED": "CANCELLED",
        "EXPIRED": "EXPIRED",
    },
}
