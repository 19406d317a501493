"""
HTTP transport shared by the provider drivers.
"""
from .base import HTTPTransport, HTTPMethod, APIResponse, APIError

__all__ = [
    "HTTPTransport",
    "HTTPMethod",
    "APIResponse",
    "APIError",
]
