"""
Client configuration: defaults, environment variables and explicit options.

Environment variables are read with pydantic-settings (prefix ``PG_``, ``.env``
honoured). ``build_config`` merges the three sources and validates the result.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from paygate.core.credentials import check_credentials
from paygate.domain.common.exceptions import FieldError, InvalidConfigurationError, ValidationError
from paygate.shared.codes import PaymentCode


VERSION = "1.0.0"
USER_AGENT = f"payment-gateway-client/{VERSION}"

DEFAULT_TIMEOUT = 30.0
# Upper bound applied to every outbound request regardless of config
MAX_REQUEST_TIMEOUT = 30.0


class Environment(str, Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"

    def __str__(self) -> str:
        return self.value


class EnvSettings(BaseSettings):
    """Recognised ``PG_*`` environment variables."""

    provider: Optional[str] = None
    server_key: Optional[str] = None
    client_key: Optional[str] = None
    merchant_id: Optional[str] = None
    environment: Optional[str] = None
    timeout: Optional[float] = None
    snap_mode: Optional[bool] = None
    log_enabled: Optional[bool] = None
    max_retries: Optional[int] = None

    model_config = SettingsConfigDict(
        env_prefix="PG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class ProviderConfig(BaseModel):
    """Subset of the configuration handed to a provider factory."""

    environment: Environment = Environment.SANDBOX
    server_key: str = Field(repr=False)
    client_key: str = Field(default="", repr=False)
    merchant_id: str = ""
    timeout_seconds: float = DEFAULT_TIMEOUT
    snap_mode: bool = False
    log_enabled: bool = False
    max_retries: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION


class Config(BaseModel):
    provider: str
    environment: Environment = Environment.SANDBOX
    server_key: str = Field(repr=False)
    client_key: str = Field(default="", repr=False)
    merchant_id: str = ""
    timeout: float = DEFAULT_TIMEOUT
    snap_mode: bool = False
    log_enabled: bool = False
    max_retries: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    def provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            environment=self.environment,
            server_key=self.server_key,
            client_key=self.client_key,
            merchant_id=self.merchant_id,
            timeout_seconds=self.timeout,
            snap_mode=self.snap_mode,
            log_enabled=self.log_enabled,
            max_retries=self.max_retries,
        )


Option = Callable[[dict[str, Any]], None]


def _set(key: str, value: Any) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values[key] = value

    return apply


def with_provider(name: str) -> Option:
    return _set("provider", name)


def with_environment(environment: str | Environment) -> Option:
    return _set("environment", environment)


def with_server_key(key: str) -> Option:
    return _set("server_key", key)


def with_client_key(key: str) -> Option:
    return _set("client_key", key)


def with_merchant_id(merchant_id: str) -> Option:
    return _set("merchant_id", merchant_id)


def with_timeout(seconds: float) -> Option:
    return _set("timeout", seconds)


def with_snap_mode(enabled: bool = True) -> Option:
    return _set("snap_mode", enabled)


def with_logging(enabled: bool = True) -> Option:
    return _set("log_enabled", enabled)


def with_max_retries(retries: int) -> Option:
    return _set("max_retries", retries)


_DEFAULTS: dict[str, Any] = {
    "environment": Environment.SANDBOX.value,
    "timeout": DEFAULT_TIMEOUT,
    "snap_mode": False,
    "log_enabled": False,
    "max_retries": 0,
}

_FIELDS = (
    "provider",
    "server_key",
    "client_key",
    "merchant_id",
    "environment",
    "timeout",
    "snap_mode",
    "log_enabled",
    "max_retries",
)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _label(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def _read_env(env: Optional[EnvSettings], skip: set[str], errors: ValidationError) -> EnvSettings:
    """Load ``PG_*`` settings, reporting unparsable variables as field errors."""
    if env is not None:
        return env
    try:
        return EnvSettings()
    except PydanticValidationError as exc:
        invalid: dict[str, None] = {}
        for detail in exc.errors():
            name = str(detail["loc"][0]) if detail["loc"] else ""
            if name not in _FIELDS or name in invalid:
                continue
            invalid[name] = None
            if name not in skip:
                errors.add(FieldError(_label(name), f"PG_{name.upper()}: {detail['msg']}"))
        return EnvSettings(**invalid)


def _validate(values: dict[str, Any], errors: ValidationError) -> ValidationError:
    provider = values["provider"]
    if not provider:
        errors.add(FieldError.required("Provider"))
    if not values["server_key"]:
        errors.add(FieldError("ServerKey", "is required", PaymentCode.MISSING_CREDENTIALS))
    environment = values["environment"]
    if environment not in {e.value for e in Environment}:
        errors.add(FieldError("Environment", f"must be one of sandbox, production (got {environment!r})"))
    timeout = values["timeout"]
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.add(FieldError("Timeout", "must be greater than zero"))
    retries = values["max_retries"]
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
        errors.add(FieldError("MaxRetries", f"must be a non-negative integer (got {retries!r})"))
    if not errors.has_errors():
        credential_error = check_credentials(provider, environment, values["server_key"], values["client_key"])
        if credential_error is not None:
            errors.add(credential_error)
    return errors


def build_config(*options: Option, env: Optional[EnvSettings] = None) -> Config:
    """Compose defaults, ``PG_*`` variables and ``options`` into a Config.

    Environment variables only fill fields that no default would otherwise
    pin, so ``PG_ENVIRONMENT`` and friends take effect; options always win.
    A variable that cannot be parsed is reported unless an option overrides it.

    Raises:
        InvalidConfigurationError: when any rule fails. The message names the
            first failing field; ``errors`` holds all of them.
    """
    overrides: dict[str, Any] = {}
    for option in options:
        option(overrides)

    errors = ValidationError()
    settings = _read_env(env, set(overrides), errors)

    values: dict[str, Any] = {name: None for name in _FIELDS}
    for name in _FIELDS:
        value = getattr(settings, name)
        if not _is_empty(value):
            values[name] = value

    for name, default in _DEFAULTS.items():
        if _is_empty(values[name]):
            values[name] = default

    values.update(overrides)

    for name in ("provider", "server_key", "client_key", "merchant_id"):
        values[name] = (values[name] or "").strip()
    values["provider"] = values["provider"].lower()
    environment = values["environment"]
    values["environment"] = str(environment.value if isinstance(environment, Environment) else environment or "").strip().lower()

    _validate(values, errors)
    if errors.has_errors():
        raise InvalidConfigurationError(errors)

    return Config(
        provider=values["provider"],
        environment=Environment(values["environment"]),
        server_key=values["server_key"],
        client_key=values["client_key"],
        merchant_id=values["merchant_id"],
        timeout=float(values["timeout"]),
        snap_mode=bool(values["snap_mode"]),
        log_enabled=bool(values["log_enabled"]),
        max_retries=values["max_retries"],
    )
