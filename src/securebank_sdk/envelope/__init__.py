"""
SecureBank Python SDK - Payload Envelope Module

Application-layer AES-256-CBC envelope applied to sensitive banking API
calls, with the path classifier and the outbound/inbound pipelines built on it.
"""

from .types import (
    Envelope,
    Direction,
    EnvelopePlacement,
    DecodeOutcome,
    DecodeResult,
    ENCRYPTED_HEADER,
    ENCRYPTED_HEADER_VALUE,
    KEY_LENGTH,
    IV_LENGTH,
    REPLAY_WINDOW_MS,
)

from .codec import (
    EnvelopeCodec,
    encrypt,
    decrypt,
    generate_key,
    load_key,
    validate_key,
    current_time_ms,
)

from .classifier import (
    SensitivityPolicy,
    DEFAULT_POLICY,
    OUTBOUND_SENSITIVE_PATHS,
    INBOUND_SENSITIVE_PATHS,
    is_sensitive,
)

from .request_pipeline import (
    OutboundCall,
    RequestEncryptor,
)

from .response_pipeline import (
    ResponseDecryptor,
    PLACEMENT_PRECEDENCE,
    locate_envelope,
)

__all__ = [
    # Types
    'Envelope',
    'Direction',
    'EnvelopePlacement',
    'DecodeOutcome',
    'DecodeResult',
    'ENCRYPTED_HEADER',
    'ENCRYPTED_HEADER_VALUE',
    'KEY_LENGTH',
    'IV_LENGTH',
    'REPLAY_WINDOW_MS',
    # Codec
    'EnvelopeCodec',
    'encrypt',
    'decrypt',
    'generate_key',
    'load_key',
    'validate_key',
    'current_time_ms',
    # Classifier
    'SensitivityPolicy',
    'DEFAULT_POLICY',
    'OUTBOUND_SENSITIVE_PATHS',
    'INBOUND_SENSITIVE_PATHS',
    'is_sensitive',
    # Pipelines
    'OutboundCall',
    'RequestEncryptor',
    'ResponseDecryptor',
    'PLACEMENT_PRECEDENCE',
    'locate_envelope',
]
