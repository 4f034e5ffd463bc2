"""
HTTP clients for SecureBank Python SDK

This module provides the secure HTTP client that combines payload envelopes
with cookie session continuity.
"""

from .secure_client import (
    SecureBankHttpClient,
    HttpClientConfig,
    RequestContext,
    TransportMetrics,
    RequestInterceptor,
    ResponseInterceptor,
    FluentHttpClientBuilder,
    create_secure_http_client,
    create_fluent_http_client,
    create_correlation_middleware,
    create_logging_middleware,
)

__all__ = [
    'SecureBankHttpClient',
    'HttpClientConfig',
    'RequestContext',
    'TransportMetrics',
    'RequestInterceptor',
    'ResponseInterceptor',
    'FluentHttpClientBuilder',
    'create_secure_http_client',
    'create_fluent_http_client',
    'create_correlation_middleware',
    'create_logging_middleware',
]
