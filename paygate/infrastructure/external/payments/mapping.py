"""
Small conversion helpers shared by the provider mappers.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from paygate.application.dtos.payments import Status
from paygate.shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


# Western Indonesia Time, used by providers that send naive local timestamps
WIB = timezone(timedelta(hours=7), "WIB")


def map_provider_status(provider: str, provider_status: Optional[str]) -> Status:
    """Translate a provider status string; unknown values are PENDING."""
    if not provider_status:
        return Status.PENDING
    mapping = PROVIDER_STATUS_TO_INTERNAL.get(provider, {})
    value = (
        mapping.get(provider_status)
        or mapping.get(provider_status.lower())
        or mapping.get(provider_status.upper())
    )
    return Status(value) if value else Status.PENDING


def to_amount(value: Any) -> int:
    """Parse ``50000``, ``50000.0`` or ``"50000.00"`` into whole rupiah."""
    if value is None or value == "" or isinstance(value, bool):
        return 0
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def format_amount(amount: int) -> str:
    """Decimal string rendering of an amount (``50000`` -> ``"50000"``)."""
    return str(int(amount))


def parse_timestamp(value: Any, *, default_tz: timezone = timezone.utc) -> Optional[datetime]:
    """Parse ISO-8601 / ``YYYY-MM-DD HH:MM:SS`` strings; naive values get ``default_tz``."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def text(value: Any) -> str:
    return "" if value is None else str(value)
