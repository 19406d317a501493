"""
HTTP transport used by every provider driver.

Provides:
- JSON encoding of mapping bodies (raw bytes are sent untouched)
- default JSON/User-Agent headers
- per-call deadlines
- error translation (timeouts, transport failures, HTTP status >= 400)
- optional retries of transport failures
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from paygate.core.config import DEFAULT_TIMEOUT, USER_AGENT
from paygate.domain.common.exceptions import NetworkError, PaymentTimeoutError

logger = logging.getLogger(__name__)

# Never echoed into debug logs
SENSITIVE_HEADERS = {"authorization", "signature", "x-callback-token"}

Body = Union[bytes, Mapping[str, Any], BaseModel, None]


class HTTPMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class APIResponse:
    """Buffered HTTP response."""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def json(self) -> Any:
        if self.data is not None:
            return self.data
        return json.loads(self.raw_content)

    def text(self) -> str:
        return self.raw_content.decode("utf-8", errors="replace")


class APIError(Exception):
    """HTTP status >= 400, carrying the status code and buffered body."""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        request_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = request_id
        super().__init__(self.message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


def encode_body(body: Body) -> Optional[bytes]:
    """Serialize a request body; bytes pass through so signatures stay valid."""
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json", exclude_none=True)
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


class HTTPTransport:
    """
    Pooled async HTTP transport.

    One instance belongs to one driver; the underlying ``httpx.AsyncClient``
    is created lazily and shared by concurrent calls.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        retry_delay: float = 0.2,
        headers: Optional[Dict[str, str]] = None,
        verify_ssl: bool = True,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            timeout: default per-request deadline in seconds
            max_retries: retries of transport failures (0 disables retrying)
            retry_delay: base backoff between retries
            headers: extra default headers
            verify_ssl: verify TLS certificates
            debug: log requests and responses at DEBUG level
            transport: custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.verify_ssl = verify_ssl
        self.debug = debug
        self._transport = transport

        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if headers:
            self.default_headers.update(headers)

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                verify=self.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _log_request(self, method: str, url: str, headers: Mapping[str, str]) -> None:
        if self.debug:
            logger.debug(
                "api_request",
                extra={
                    "method": method,
                    "url": url,
                    "headers": {k: v for k, v in headers.items() if k.lower() not in SENSITIVE_HEADERS},
                },
            )

    def _log_response(self, response: APIResponse) -> None:
        if self.debug:
            logger.debug(
                "api_response",
                extra={
                    "status_code": response.status_code,
                    "elapsed_ms": response.elapsed_ms,
                    "request_id": response.request_id,
                },
            )

    async def call(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        body: Body = None,
        timeout: Optional[float] = None,
    ) -> APIResponse:
        """
        Execute one request and buffer the response.

        Raises:
            APIError: status >= 400
            PaymentTimeoutError: the deadline expired
            NetworkError: connection-level failure
        """
        if isinstance(method, HTTPMethod):
            method = method.value
        deadline = timeout if timeout is not None else self.timeout

        request_headers = {**self.default_headers}
        if headers:
            request_headers.update(headers)
        content = encode_body(body)

        self._log_request(method, url, request_headers)

        async def _send_once() -> APIResponse:
            start_time = datetime.now()
            try:
                response = await self.client.request(
                    method=method,
                    url=url,
                    content=content,
                    headers=request_headers,
                    timeout=httpx.Timeout(deadline),
                )
            except httpx.TimeoutException as exc:
                raise PaymentTimeoutError(f"request timeout after {deadline}s") from exc
            except httpx.TransportError as exc:
                raise NetworkError(f"network error: {exc}") from exc

            elapsed = (datetime.now() - start_time).total_seconds() * 1000

            response_data = None
            if response.content:
                try:
                    response_data = response.json()
                except ValueError:
                    response_data = None

            api_response = APIResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                data=response_data,
                raw_content=response.content,
                elapsed_ms=elapsed,
                request_id=response.headers.get("x-request-id"),
            )
            self._log_response(api_response)

            if api_response.is_error:
                raise APIError(
                    message=f"API request failed with status {api_response.status_code}",
                    status_code=api_response.status_code,
                    response=api_response,
                    request_id=api_response.request_id,
                )
            return api_response

        async def _send() -> APIResponse:
            if self.max_retries <= 0:
                return await _send_once()
            retrying = AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(
                    multiplier=self.retry_delay,
                    min=self.retry_delay,
                    max=self.retry_delay * 8,
                ),
                retry=retry_if_exception_type(NetworkError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
            )
            async for attempt in retrying:
                with attempt:
                    return await _send_once()
            raise NetworkError("retries exhausted")  # pragma: no cover

        try:
            return await asyncio.wait_for(_send(), timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise PaymentTimeoutError(f"request timeout after {deadline}s") from exc
