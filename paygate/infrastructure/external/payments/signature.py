"""
Hash/MAC helpers and webhook signature verifiers.

Verifiers only read ``WebhookRequest.body`` (already buffered bytes), so the
same request can be handed to a parser after verification. They never raise
on malformed input; anything that cannot be verified is simply rejected.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Protocol, Sequence, Union, runtime_checkable

from paygate.application.dtos.payments import WebhookRequest
from paygate.domain.common.exceptions import InvalidPayloadError


BytesLike = Union[str, bytes]


def _to_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def sha512(data: BytesLike) -> str:
    return hashlib.sha512(_to_bytes(data)).hexdigest()


def sha256(data: BytesLike) -> str:
    return hashlib.sha256(_to_bytes(data)).hexdigest()


def hmac_sha512(key: BytesLike, data: BytesLike) -> str:
    return hmac.new(_to_bytes(key), _to_bytes(data), hashlib.sha512).hexdigest()


def hmac_sha256(key: BytesLike, data: BytesLike) -> str:
    return hmac.new(_to_bytes(key), _to_bytes(data), hashlib.sha256).hexdigest()


def basic_auth(username: str, password: str = "") -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def consteq(a: BytesLike, b: BytesLike) -> bool:
    """Compare in time dependent only on ``max(len(a), len(b))``.

    Both inputs are padded to the same length so the comparison itself never
    short-circuits on a length mismatch.
    """
    left, right = _to_bytes(a), _to_bytes(b)
    size = max(len(left), len(right))
    same_bytes = hmac.compare_digest(left.ljust(size, b"\0"), right.ljust(size, b"\0"))
    return same_bytes & (len(left) == len(right))


def request_signature(client_key: str, secret_key: str, timestamp: str, body: bytes) -> str:
    """Signed-request header value: ``<client_key>:<hex(HMAC-SHA512(...))>``.

    The MAC covers ``client_key:timestamp:hex(SHA512(body))``.
    """
    digest = sha512(body)
    mac = hmac_sha512(secret_key, f"{client_key}:{timestamp}:{digest}")
    return f"{client_key}:{mac}"


def notification_signature(fields: Sequence[str], server_key: str) -> str:
    """``hex(SHA512(field_1 + ... + field_n + server_key))``."""
    return sha512("".join(fields) + server_key)


@runtime_checkable
class SignatureVerifier(Protocol):
    def verify(self, request: WebhookRequest) -> bool: ...


class ConcatSHA512Verifier:
    """SHA-512 over selected payload fields followed by the server key.

    The expected signature is read from ``signature_field`` in the payload,
    falling back to ``signature_header``.
    """

    def __init__(
        self,
        server_key: str,
        *,
        fields: Sequence[str] = ("order_id", "status_code", "gross_amount"),
        signature_field: str = "signature_key",
        signature_header: str = "X-Signature",
    ) -> None:
        self.server_key = server_key
        self.fields = tuple(fields)
        self.signature_field = signature_field
        self.signature_header = signature_header

    def verify(self, request: WebhookRequest) -> bool:
        if not self.server_key:
            return False
        try:
            payload = request.payload()
        except InvalidPayloadError:
            return False
        provided = payload.get(self.signature_field) or request.header(self.signature_header)
        if not isinstance(provided, str) or not provided:
            return False
        values = [str(payload.get(name, "")) for name in self.fields]
        return consteq(provided.lower(), notification_signature(values, self.server_key))


class RequestSignatureVerifier:
    """HMAC-SHA512 over the body digest, bound to the client key and timestamp."""

    def __init__(
        self,
        client_key: str,
        secret_key: str,
        *,
        signature_header: str = "Signature",
        timestamp_header: str = "Request-Timestamp",
    ) -> None:
        self.client_key = client_key
        self.secret_key = secret_key
        self.signature_header = signature_header
        self.timestamp_header = timestamp_header

    def verify(self, request: WebhookRequest) -> bool:
        if not self.client_key or not self.secret_key:
            return False
        provided = request.header(self.signature_header)
        timestamp = request.header(self.timestamp_header)
        if not provided or not timestamp:
            return False
        expected = request_signature(self.client_key, self.secret_key, timestamp, request.body)
        return consteq(provided, expected)


class CallbackTokenVerifier:
    """Static shared token echoed by the provider in a header."""

    def __init__(self, token: str, *, header: str = "X-Callback-Token") -> None:
        self.token = token
        self.header = header

    def verify(self, request: WebhookRequest) -> bool:
        if not self.token:
            return False
        provided = request.header(self.header)
        return consteq(provided, self.token)
