"""
Credential shape rules per provider and environment.

Rules are pure functions returning a FieldError (or None) so the config
pipeline can collect them alongside other validation failures.
"""
from __future__ import annotations

from typing import Callable, Optional

from paygate.domain.common.exceptions import FieldError
from paygate.shared.codes import PaymentCode


CredentialRule = Callable[[str, str, str], Optional[FieldError]]


def _mismatch(provider: str, environment: str) -> FieldError:
    return FieldError(
        "ServerKey",
        f"{provider} key does not match the {environment} environment",
        PaymentCode.INVALID_CREDENTIALS,
    )


def _check_midtrans(environment: str, server_key: str, client_key: str) -> Optional[FieldError]:
    # Sandbox keys look like "SB-Mid-server-..."; production keys drop the prefix
    is_sandbox_key = server_key.lower().split("-", 1)[0] == "sb"
    if is_sandbox_key != (environment == "sandbox"):
        return _mismatch("midtrans", environment)
    return None


def _check_xendit(environment: str, server_key: str, client_key: str) -> Optional[FieldError]:
    marker = "xnd_production_" if environment == "production" else "xnd_development_"
    if marker not in server_key.lower():
        return _mismatch("xendit", environment)
    return None


def _check_doku(environment: str, server_key: str, client_key: str) -> Optional[FieldError]:
    if not client_key:
        return FieldError("ClientKey", "is required for doku", PaymentCode.MISSING_CREDENTIALS)
    return None


CREDENTIAL_RULES: dict[str, CredentialRule] = {
    "midtrans": _check_midtrans,
    "xendit": _check_xendit,
    "doku": _check_doku,
}


def check_credentials(provider: str, environment: str, server_key: str, client_key: str = "") -> Optional[FieldError]:
    """Validate key shape for (provider, environment).

    Providers without a registered rule accept any non-empty key.
    """
    if not server_key:
        return FieldError("ServerKey", "is required", PaymentCode.MISSING_CREDENTIALS)
    rule = CREDENTIAL_RULES.get(provider)
    if rule is None:
        return None
    return rule(environment, server_key, client_key)
