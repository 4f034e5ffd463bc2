"""
Exception classes for SecureBank Python SDK
"""

from typing import Optional, Dict, Any


GENERIC_FAILURE_MESSAGE = "Failed to process request, please try again."
SESSION_EXPIRED_MESSAGE = "Your session has expired, redirecting to login."


class SecureBankSDKError(Exception):
    """Base exception for all SecureBank SDK errors"""

    user_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ValidationError(SecureBankSDKError):
    """Exception raised for validation failures"""
    pass


class ConfigurationError(SecureBankSDKError):
    """Exception raised when SDK configuration cannot be loaded or is invalid"""

    def __init__(self, message: str, error_code: str = "INVALID_CONFIG", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class EncryptionError(SecureBankSDKError):
    """Exception raised when a payload cannot be sealed into an envelope"""
    pass


class EnvelopeError(SecureBankSDKError):
    """
    Base class for envelope decryption failures.

    Messages never carry key material, IVs or ciphertext. These errors are
    fatal for the single decrypt that raised them and are never retried.
    """

    security_relevant = False


class MalformedEnvelopeError(EnvelopeError):
    """Envelope is structurally invalid (missing fields, bad base64, bad lengths)"""

    def __init__(self, message: str, error_code: str = "MALFORMED_ENVELOPE", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class StaleEnvelopeError(EnvelopeError):
    """Envelope timestamp is outside the replay window"""

    security_relevant = True

    def __init__(self, message: str, error_code: str = "STALE_ENVELOPE", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class CorruptCiphertextError(EnvelopeError):
    """Padding removal failed or the plaintext is not valid UTF-8 JSON"""

    security_relevant = True

    def __init__(self, message: str, error_code: str = "CORRUPT_CIPHERTEXT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class ServerCommunicationError(SecureBankSDKError):
    """Exception raised for server communication errors"""

    def __init__(self, message: str, error_code: str = "SERVER_ERROR",
                 http_status: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.http_status = http_status


class AuthenticationExpired(ServerCommunicationError):
    """HTTP 401 that the session layer could not (or must not) recover from"""

    def __init__(self, message: str = "Authentication required", error_code: str = "AUTHENTICATION_EXPIRED",
                 http_status: int = 401, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, http_status, details)


class AuthenticationFailed(ServerCommunicationError):
    """The session refresh call itself failed; the session is over"""

    user_message = SESSION_EXPIRED_MESSAGE

    def __init__(self, message: str = "Session refresh failed", error_code: str = "AUTHENTICATION_FAILED",
                 http_status: int = 401, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, http_status, details)


class AuthorizationDenied(ServerCommunicationError):
    """HTTP 403; surfaced immediately, never refreshed or retried"""

    def __init__(self, message: str = "Access denied", error_code: str = "AUTHORIZATION_DENIED",
                 http_status: int = 403, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, http_status, details)


class NetworkError(SecureBankSDKError):
    """Connection-level failure; eligible for backoff retry, never for session refresh"""

    def __init__(self, message: str, error_code: str = "NETWORK_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class RequestTimeout(NetworkError):
    """A call exceeded its deadline"""

    def __init__(self, message: str, error_code: str = "REQUEST_TIMEOUT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class RequestCancelled(SecureBankSDKError):
    """The issuing context was torn down before the call (or its retry) was sent"""

    def __init__(self, message: str = "Request cancelled", error_code: str = "REQUEST_CANCELLED",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class RefreshBackpressureError(SecureBankSDKError):
    """Too many calls are already waiting on the in-flight session refresh"""

    def __init__(self, message: str, error_code: str = "REFRESH_QUEUE_FULL", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
