"""
SecureBank Python SDK
Payload envelopes and cookie session continuity for the SecureBank API
"""

from .version import __version__
from .envelope import (
    Envelope,
    EnvelopeCodec,
    Direction,
    EnvelopePlacement,
    DecodeOutcome,
    DecodeResult,
    SensitivityPolicy,
    DEFAULT_POLICY,
    OutboundCall,
    RequestEncryptor,
    ResponseDecryptor,
    ENCRYPTED_HEADER,
    REPLAY_WINDOW_MS,
    encrypt,
    decrypt,
    generate_key,
    load_key,
    is_sensitive,
    locate_envelope,
)
from .session import (
    SessionManager,
    SessionState,
    SessionStats,
    CancelToken,
    SharedOutcome,
)
from .exceptions import (
    SecureBankSDKError,
    ValidationError,
    ConfigurationError,
    EncryptionError,
    EnvelopeError,
    MalformedEnvelopeError,
    StaleEnvelopeError,
    CorruptCiphertextError,
    ServerCommunicationError,
    AuthenticationExpired,
    AuthenticationFailed,
    AuthorizationDenied,
    NetworkError,
    RequestTimeout,
    RequestCancelled,
    RefreshBackpressureError,
    GENERIC_FAILURE_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
)
from .http_clients import (
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
from .config import (
    SdkConfig,
    LoggingConfig,
    load_config_from_dict,
    load_config_from_json,
    load_config_from_file,
    load_config_from_env,
)
from .server import EnvelopeServerMiddleware


# Public API exports
__all__ = [
    '__version__',
    # Envelope
    'Envelope',
    'EnvelopeCodec',
    'Direction',
    'EnvelopePlacement',
    'DecodeOutcome',
    'DecodeResult',
    'SensitivityPolicy',
    'DEFAULT_POLICY',
    'OutboundCall',
    'RequestEncryptor',
    'ResponseDecryptor',
    'ENCRYPTED_HEADER',
    'REPLAY_WINDOW_MS',
    'encrypt',
    'decrypt',
    'generate_key',
    'load_key',
    'is_sensitive',
    'locate_envelope',
    # Session
    'SessionManager',
    'SessionState',
    'SessionStats',
    'CancelToken',
    'SharedOutcome',
    # Exceptions
    'SecureBankSDKError',
    'ValidationError',
    'ConfigurationError',
    'EncryptionError',
    'EnvelopeError',
    'MalformedEnvelopeError',
    'StaleEnvelopeError',
    'CorruptCiphertextError',
    'ServerCommunicationError',
    'AuthenticationExpired',
    'AuthenticationFailed',
    'AuthorizationDenied',
    'NetworkError',
    'RequestTimeout',
    'RequestCancelled',
    'RefreshBackpressureError',
    'GENERIC_FAILURE_MESSAGE',
    'SESSION_EXPIRED_MESSAGE',
    # HTTP client
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
    # Configuration
    'SdkConfig',
    'LoggingConfig',
    'load_config_from_dict',
    'load_config_from_json',
    'load_config_from_file',
    'load_config_from_env',
    # Server
    'EnvelopeServerMiddleware',
]
