"""
Secure HTTP client for the SecureBank API

This module is the composition root of the SDK. It wires the request
pipeline (classify, then encrypt), the transport, the response pipeline
(classify, locate envelope, decrypt) and the session manager (401 handling)
around a ``requests`` session that holds the httpOnly session cookies.

Callers only ever see decrypted JSON payloads or SDK exceptions; envelopes,
ciphertext and the ``x-encrypted`` header never leave this layer.
"""

import time
import uuid
import logging
import threading
from typing import (
    Dict, Optional, Any, List, Callable, Tuple, Union, Protocol, runtime_checkable
)
from urllib.parse import urljoin, urlparse
from dataclasses import dataclass, field

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import (
    ValidationError,
    ServerCommunicationError,
    AuthenticationExpired,
    AuthenticationFailed,
    AuthorizationDenied,
    NetworkError,
    RequestTimeout,
    SESSION_EXPIRED_MESSAGE,
)
from ..envelope import (
    EnvelopeCodec,
    SensitivityPolicy,
    DEFAULT_POLICY,
    OutboundCall,
    RequestEncryptor,
    ResponseDecryptor,
    DecodeOutcome,
    ENCRYPTED_HEADER,
    load_key,
)
from ..session import SessionManager, CancelToken, DEFAULT_MAX_ATTACHED_CALLS

logger = logging.getLogger(__name__)

# Methods the transport may resubmit on its own. POST and PATCH are left out so
# a funds transfer is never sent twice by the backoff policy.
IDEMPOTENT_METHODS = frozenset(["HEAD", "GET", "PUT", "DELETE", "OPTIONS", "TRACE"])
RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
REDACTED_HEADERS = frozenset(["cookie", "set-cookie", "authorization"])


@dataclass
class HttpClientConfig:
    """Secure HTTP client configuration"""
    base_url: str
    timeout: float = 10.0
    refresh_timeout: float = 10.0
    refresh_wait_timeout: float = 30.0
    verify_ssl: bool = True
    retry_attempts: int = 3
    retry_backoff_factor: float = 0.3

    # Session refresh coordination
    max_attached_calls: int = DEFAULT_MAX_ATTACHED_CALLS

    # Endpoints owned by the session layer
    login_path: str = "auth/login"
    logout_path: str = "auth/logout"
    refresh_path: str = "auth/refresh"
    verify_path: str = "auth/verify"

    # Performance and debugging
    debug_logging: bool = False
    enable_metrics: bool = True

    # Headers and user agent
    default_headers: Dict[str, str] = field(default_factory=dict)
    user_agent: str = "SecureBank-Python-SDK/0.1.0"

    def __post_init__(self):
        """Validate configuration"""
        if not self.base_url:
            raise ValidationError("Base URL cannot be empty")

        if not self.base_url.endswith('/'):
            self.base_url += '/'

        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValidationError(f"Invalid base URL format: {self.base_url}")

        if self.timeout <= 0 or self.refresh_timeout <= 0:
            raise ValidationError("Timeout must be positive")

        if self.refresh_wait_timeout <= 0:
            raise ValidationError("Refresh wait timeout must be positive")

        if self.retry_attempts < 0:
            raise ValidationError("Retry attempts must be non-negative")

        if self.max_attached_calls < 1:
            raise ValidationError("max_attached_calls must be at least 1")

    @property
    def session_paths(self) -> Tuple[str, ...]:
        """Endpoints whose 401 must never start a session refresh"""
        return (self.login_path, self.logout_path, self.refresh_path)


@dataclass
class RequestContext:
    """Context information for request processing"""
    method: str = ""
    path: str = ""
    attempt: int = 0
    start_time: float = field(default_factory=time.time)
    will_be_encrypted: bool = False
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TransportMetrics:
    """Envelope and session counters for one client"""
    total_requests: int = 0
    encrypted_requests: int = 0
    decrypted_responses: int = 0
    passthrough_responses: int = 0
    decode_failures: int = 0
    auth_retries: int = 0

    @property
    def encryption_rate(self) -> float:
        """Share of requests whose body was sealed"""
        if self.total_requests == 0:
            return 0.0
        return self.encrypted_requests / self.total_requests

    @property
    def decode_failure_rate(self) -> float:
        """Share of inspected responses whose envelope could not be opened"""
        inspected = self.decrypted_responses + self.passthrough_responses + self.decode_failures
        if inspected == 0:
            return 0.0
        return self.decode_failures / inspected


@runtime_checkable
class RequestInterceptor(Protocol):
    """Protocol for request interceptors, run on the plaintext call before encryption"""

    def __call__(self, call: OutboundCall, context: RequestContext) -> OutboundCall:
        ...


@runtime_checkable
class ResponseInterceptor(Protocol):
    """Protocol for response interceptors, run on the raw transport response"""

    def __call__(self, response: requests.Response, context: RequestContext) -> requests.Response:
        ...


def _normalize_path(path: str) -> str:
    """Leading-slash form used for classification; URLs are joined without it"""
    return "/" + path.lstrip("/")


def _default_forced_logout() -> None:
    logger.warning(f"Forced logout: {SESSION_EXPIRED_MESSAGE}")


class SecureBankHttpClient:
    """
    HTTP client with payload envelopes and cookie session continuity

    Features:
    - Envelope encryption of sensitive request bodies, encrypted-reply header
    - Fixed-precedence envelope decryption of sensitive responses
    - Single-flight session refresh and one retry per call on 401
    - Bounded exponential backoff for transport failures on idempotent methods
    - Request/response interceptors and transport metrics
    """

    def __init__(
        self,
        config: HttpClientConfig,
        codec: EnvelopeCodec,
        session_manager: Optional[SessionManager] = None,
        policy: SensitivityPolicy = DEFAULT_POLICY,
        on_forced_logout: Optional[Callable[[], None]] = None
    ):
        """
        Initialize secure HTTP client

        Args:
            config: HTTP client configuration
            codec: Envelope codec holding the shared key
            session_manager: Optional pre-built session manager
            policy: Sensitivity policy for both directions
            on_forced_logout: Called once when a session refresh is rejected
        """
        self.config = config
        self.codec = codec
        self.policy = policy
        self.request_encryptor = RequestEncryptor(codec, policy)
        self.response_decryptor = ResponseDecryptor(codec, policy)

        self.session = self._create_session()
        self.metrics = TransportMetrics() if config.enable_metrics else None
        self._metrics_lock = threading.RLock()

        self.session_manager = session_manager or SessionManager(
            max_attached_calls=config.max_attached_calls,
            refresh_wait_timeout=config.refresh_wait_timeout,
        )
        if self.session_manager.refresher is None:
            self.session_manager.refresher = self.refresh_session
        if self.session_manager.on_session_cleared is None:
            self.session_manager.on_session_cleared = self.session.cookies.clear
        if self.session_manager.on_forced_logout is None:
            self.session_manager.on_forced_logout = on_forced_logout or _default_forced_logout

        # Interceptors
        self.request_interceptors: List[RequestInterceptor] = []
        self.response_interceptors: List[ResponseInterceptor] = []

        logger.info(f"Secure HTTP client initialized for: {config.base_url}")

    def _create_session(self) -> requests.Session:
        """Create HTTP session with backoff retry for transport failures"""
        session = requests.Session()

        # 401 and 403 belong to the session layer, never to transport retries
        retry_strategy = Retry(
            total=self.config.retry_attempts,
            status_forcelist=list(RETRY_STATUS_CODES),
            allowed_methods=sorted(IDEMPOTENT_METHODS),
            backoff_factor=self.config.retry_backoff_factor,
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        default_headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': self.config.user_agent
        }
        default_headers.update(self.config.default_headers)
        session.headers.update(default_headers)

        return session

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> None:
        """Add request interceptor"""
        self.request_interceptors.append(interceptor)
        logger.debug(f"Added request interceptor: {interceptor}")

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> None:
        """Add response interceptor"""
        self.response_interceptors.append(interceptor)
        logger.debug(f"Added response interceptor: {interceptor}")

    def remove_request_interceptor(self, interceptor: RequestInterceptor) -> bool:
        """Remove request interceptor"""
        try:
            self.request_interceptors.remove(interceptor)
            return True
        except ValueError:
            return False

    def remove_response_interceptor(self, interceptor: ResponseInterceptor) -> bool:
        """Remove response interceptor"""
        try:
            self.response_interceptors.remove(interceptor)
            return True
        except ValueError:
            return False

    def get_metrics(self) -> Optional[TransportMetrics]:
        """Get current transport metrics"""
        return self.metrics

    def reset_metrics(self) -> None:
        """Reset transport metrics"""
        if self.metrics:
            with self._metrics_lock:
                self.metrics = TransportMetrics()

    def _update_metrics(self, **increments: int) -> None:
        if not self.metrics:
            return
        with self._metrics_lock:
            for name, amount in increments.items():
                setattr(self.metrics, name, getattr(self.metrics, name) + amount)

    def _is_session_path(self, path: str) -> bool:
        normalized = path.lstrip('/')
        return any(normalized.startswith(p.lstrip('/')) for p in self.config.session_paths)

    def _apply_request_interceptors(self, call: OutboundCall, context: RequestContext) -> OutboundCall:
        current_call = call
        for interceptor in self.request_interceptors:
            try:
                current_call = interceptor(current_call, context)
            except Exception as e:
                logger.error(f"Request interceptor failed: {e}")
                if self.config.debug_logging:
                    logger.exception("Request interceptor error details")
        return current_call

    def _apply_response_interceptors(self, response: requests.Response, context: RequestContext) -> requests.Response:
        current_response = response
        for interceptor in self.response_interceptors:
            try:
                current_response = interceptor(current_response, context)
            except Exception as e:
                logger.error(f"Response interceptor failed: {e}")
                if self.config.debug_logging:
                    logger.exception("Response interceptor error details")
        return current_response

    def _send(self, call: OutboundCall, context: RequestContext, timeout: float) -> requests.Response:
        """
        Prepare and transmit one attempt of a call.

        Every attempt is sealed afresh, so a retry carries a new IV and
        timestamp and picks up the cookies current at send time.
        """
        call = self._apply_request_interceptors(call, context)
        wire_call = self.request_encryptor.prepare(call)
        context.will_be_encrypted = wire_call.encrypted

        self._update_metrics(total_requests=1, encrypted_requests=1 if wire_call.encrypted else 0)

        url = urljoin(self.config.base_url, wire_call.path.lstrip('/'))
        kwargs: Dict[str, Any] = {
            'headers': wire_call.headers,
            'timeout': timeout,
            'verify': self.config.verify_ssl,
        }
        if wire_call.params:
            kwargs['params'] = wire_call.params
        if wire_call.files is not None:
            kwargs['files'] = wire_call.files
            # Let requests build the multipart content type
            kwargs['headers'] = dict(wire_call.headers, **{'Content-Type': None})
            if wire_call.json is not None:
                kwargs['data'] = wire_call.json
        elif wire_call.json is not None:
            kwargs['json'] = wire_call.json

        if self.config.debug_logging:
            logger.debug(
                f"Making {wire_call.method} request to {url} "
                f"(attempt {context.attempt}, encrypted={wire_call.encrypted})"
            )

        try:
            response = self.session.request(wire_call.method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise RequestTimeout(
                f"Request timeout after {timeout} seconds: {wire_call.method} {wire_call.path}",
                details={'timeout': timeout}
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {e}") from e

        return self._apply_response_interceptors(response, context)

    def _parse_body(self, response: requests.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ServerCommunicationError(
                f"Invalid JSON response: {e}",
                http_status=response.status_code
            ) from e

    def _error_details(self, response: requests.Response, path: str) -> Tuple[str, str]:
        """Extract message and code from an error response, decrypting it if needed"""
        message = f'HTTP {response.status_code}: {response.reason}'
        code = 'HTTP_ERROR'
        try:
            payload = response.json() if response.content else {}
        except ValueError:
            return message, code

        payload = self.response_decryptor.decode(payload, path).payload
        if not isinstance(payload, dict):
            return message, code

        if isinstance(payload.get('error'), dict):
            error_info = payload['error']
            message = error_info.get('message', message)
            code = error_info.get('code', code)
        elif isinstance(payload.get('message'), str):
            message = payload['message']
            if isinstance(payload.get('code'), str):
                code = payload['code']
        return message, code

    def _handle_response(self, response: requests.Response, call: OutboundCall) -> Any:
        status = response.status_code

        if status == 401:
            message, code = self._error_details(response, call.path)
            raise AuthenticationExpired(
                f"Unauthorized: {message}",
                details={'code': code, 'path': call.path}
            )

        if status == 403:
            message, code = self._error_details(response, call.path)
            raise AuthorizationDenied(
                f"Access denied: {message}",
                details={'code': code, 'path': call.path}
            )

        if not response.ok:
            message, code = self._error_details(response, call.path)
            raise ServerCommunicationError(
                f"Server request failed: {message}",
                http_status=status,
                details={'status_code': status, 'code': code}
            )

        payload = self._parse_body(response)
        result = self.response_decryptor.decode(payload, call.path)

        if result.outcome == DecodeOutcome.DECODE_ERROR:
            self._update_metrics(decode_failures=1)
            raise result.error
        if result.outcome == DecodeOutcome.DECRYPTED:
            self._update_metrics(decrypted_responses=1)
        else:
            self._update_metrics(passthrough_responses=1)

        return result.payload

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        files: Optional[Any] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancelToken] = None
    ) -> Any:
        """
        Make an API call through the envelope and session layers

        Args:
            method: HTTP method
            path: API path relative to the base URL
            json: JSON body, sealed when the path is sensitive
            params: Query parameters
            headers: Extra request headers
            files: Multipart files (never sealed)
            timeout: Per-attempt deadline in seconds
            cancel_token: Token the issuing context cancels when torn down

        Returns:
            Decrypted JSON payload

        Raises:
            EnvelopeError: Response envelope could not be opened
            AuthenticationExpired: 401 the session layer could not recover
            AuthenticationFailed: Session refresh was rejected
            AuthorizationDenied: 403
            NetworkError: Transport failure or timeout
            RequestCancelled: Cancelled before the call or its retry was sent
            ServerCommunicationError: Any other HTTP error
        """
        method = method.upper()
        path = _normalize_path(path)
        call = OutboundCall(
            method=method,
            path=path,
            headers=dict(headers or {}),
            json=json,
            params=params,
            files=files,
        )
        context = RequestContext(method=method, path=path)
        timeout = timeout or self.config.timeout
        exempt = self._is_session_path(path)

        ticket = self.session_manager.begin_call(f"{method} {path}", cancel_token)

        while True:
            ticket.cancel_token.raise_if_cancelled()
            response = self._send(call, context, timeout)

            if response.status_code == 401 and not exempt:
                self.session_manager.handle_unauthorized(ticket)
                self._update_metrics(auth_retries=1)
                context.attempt += 1
                continue

            return self._handle_response(response, call)

    def get(self, path: str, **kwargs) -> Any:
        return self.request('GET', path, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request('POST', path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request('PUT', path, json=json, **kwargs)

    def patch(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request('PATCH', path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request('DELETE', path, **kwargs)

    # Session lifecycle
    def login(self, credentials: Dict[str, Any]) -> Any:
        """
        Authenticate; the server answers with httpOnly session cookies

        Args:
            credentials: Login form (email, password, ...)

        Returns:
            Decrypted login payload
        """
        if not credentials:
            raise ValidationError("credentials cannot be empty")

        logger.info("Logging in")
        payload = self.request('POST', self.config.login_path, json=credentials)
        self.session_manager.mark_authenticated()
        return payload

    def verify_session(self) -> Any:
        """
        Check the current cookies against the server

        Marks the session authenticated when the server accepts cookies
        carried over from an earlier process.
        """
        payload = self.request('GET', self.config.verify_path)
        if not self.session_manager.is_authenticated:
            self.session_manager.mark_authenticated()
        return payload

    def logout(self) -> Any:
        """
        Explicit logout. Local session state is cleared even if the server
        call fails; pending retries are cancelled and no forced-logout action runs.
        """
        logger.info("Logging out")
        try:
            return self.request('POST', self.config.logout_path)
        finally:
            self.session_manager.logout()

    def refresh_session(self) -> None:
        """
        Issue the refresh call: POST, empty body, refresh cookie sent by the transport

        Raises:
            AuthenticationFailed: Server rejected the refresh (401/403)
            NetworkError: Transport failure or timeout
            ServerCommunicationError: Any other HTTP error
        """
        path = _normalize_path(self.config.refresh_path)
        call = OutboundCall(method='POST', path=path)
        context = RequestContext(method='POST', path=path)
        response = self._send(call, context, self.config.refresh_timeout)

        if response.status_code in (401, 403):
            message, code = self._error_details(response, call.path)
            raise AuthenticationFailed(
                f"Session refresh rejected: {message}",
                http_status=response.status_code,
                details={'code': code}
            )

        if not response.ok:
            message, code = self._error_details(response, call.path)
            raise ServerCommunicationError(
                f"Session refresh failed: {message}",
                http_status=response.status_code,
                details={'status_code': response.status_code, 'code': code}
            )

    def close(self) -> None:
        """Close HTTP session and cleanup resources"""
        if hasattr(self, 'session'):
            self.session.close()
        logger.debug("Secure HTTP client closed")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


# Middleware factories
def create_correlation_middleware(
    header_name: str = 'x-request-id',
    id_generator: Optional[Callable[[], str]] = None
) -> RequestInterceptor:
    """
    Create request correlation middleware

    Args:
        header_name: Header name for correlation ID
        id_generator: Optional function to generate correlation IDs

    Returns:
        RequestInterceptor: Correlation middleware
    """
    def generate_id():
        return str(uuid.uuid4())

    generator = id_generator or generate_id

    def correlation_interceptor(call: OutboundCall, context: RequestContext) -> OutboundCall:
        correlation_id = context.correlation_id or call.headers.get(header_name) or generator()
        call.headers[header_name] = correlation_id
        context.correlation_id = correlation_id
        context.metadata['correlation_id'] = correlation_id
        return call

    return correlation_interceptor


def create_logging_middleware(
    log_level: str = 'debug',
    include_headers: bool = False
) -> Tuple[RequestInterceptor, ResponseInterceptor]:
    """
    Create request/response logging middleware

    Bodies are never logged: they are either plaintext of a sensitive call
    or ciphertext.

    Args:
        log_level: Logging level ('debug', 'info', 'warning', 'error')
        include_headers: Whether to log headers (cookies redacted)

    Returns:
        Tuple of (request_interceptor, response_interceptor)
    """
    middleware_logger = logging.getLogger(__name__)
    log_func = getattr(middleware_logger, log_level, middleware_logger.debug)

    def redact(headers: Dict[str, str]) -> Dict[str, str]:
        return {
            k: ('<redacted>' if k.lower() in REDACTED_HEADERS else v)
            for k, v in headers.items()
        }

    def request_interceptor(call: OutboundCall, context: RequestContext) -> OutboundCall:
        log_data = {
            'method': call.method,
            'path': call.path,
            'attempt': context.attempt,
            'correlation_id': context.correlation_id
        }
        if include_headers:
            log_data['headers'] = redact(call.headers)

        log_func(f"HTTP Request: {log_data}")
        return call

    def response_interceptor(response: requests.Response, context: RequestContext) -> requests.Response:
        elapsed_ms = (time.time() - context.start_time) * 1000
        log_data = {
            'status_code': response.status_code,
            'elapsed_ms': f"{elapsed_ms:.2f}",
            'encrypted': response.request.headers.get(ENCRYPTED_HEADER) == 'true'
            if response.request is not None else False,
            'correlation_id': context.correlation_id
        }
        if include_headers:
            log_data['headers'] = redact(dict(response.headers))

        log_func(f"HTTP Response: {log_data}")
        return response

    return request_interceptor, response_interceptor


# Factory functions
def create_secure_http_client(
    base_url: str,
    key: Union[str, bytes],
    on_forced_logout: Optional[Callable[[], None]] = None,
    **config_kwargs
) -> SecureBankHttpClient:
    """
    Create secure HTTP client with default configuration

    Args:
        base_url: SecureBank API base URL
        key: 32-byte envelope key, or its hex or 32-character text form
        on_forced_logout: Called once when a session refresh is rejected
        **config_kwargs: Additional configuration options

    Returns:
        SecureBankHttpClient: Configured HTTP client
    """
    config = HttpClientConfig(base_url=base_url, **config_kwargs)
    return SecureBankHttpClient(config, EnvelopeCodec(load_key(key)), on_forced_logout=on_forced_logout)


class FluentHttpClientBuilder:
    """
    Fluent builder for secure HTTP client configuration
    """

    def __init__(self, base_url: Optional[str] = None):
        self._config_kwargs: Dict[str, Any] = {}
        self._key: Optional[Union[str, bytes]] = None
        self._policy: SensitivityPolicy = DEFAULT_POLICY
        self._on_forced_logout: Optional[Callable[[], None]] = None
        self._interceptors: List[Tuple[str, Dict[str, Any]]] = []

        if base_url:
            self._config_kwargs['base_url'] = base_url

    def base_url(self, url: str) -> 'FluentHttpClientBuilder':
        """Set base URL"""
        self._config_kwargs['base_url'] = url
        return self

    def encryption_key(self, key: Union[str, bytes]) -> 'FluentHttpClientBuilder':
        """Set the shared envelope key"""
        self._key = key
        return self

    def timeout(self, seconds: float) -> 'FluentHttpClientBuilder':
        """Set request timeout"""
        self._config_kwargs['timeout'] = seconds
        return self

    def retries(self, attempts: int) -> 'FluentHttpClientBuilder':
        """Set transport retry attempts"""
        self._config_kwargs['retry_attempts'] = attempts
        return self

    def max_attached_calls(self, limit: int) -> 'FluentHttpClientBuilder':
        """Bound the calls that may wait on one session refresh"""
        self._config_kwargs['max_attached_calls'] = limit
        return self

    def sensitivity_policy(self, policy: SensitivityPolicy) -> 'FluentHttpClientBuilder':
        """Override the default path classification"""
        self._policy = policy
        return self

    def on_forced_logout(self, callback: Callable[[], None]) -> 'FluentHttpClientBuilder':
        """Set the action run when the session cannot be refreshed"""
        self._on_forced_logout = callback
        return self

    def debug_logging(self, enabled: bool = True) -> 'FluentHttpClientBuilder':
        """Enable debug logging"""
        self._config_kwargs['debug_logging'] = enabled
        return self

    def add_correlation_middleware(self, header_name: str = 'x-request-id') -> 'FluentHttpClientBuilder':
        """Add correlation ID middleware"""
        self._interceptors.append(('correlation', {'header_name': header_name}))
        return self

    def add_logging_middleware(
        self,
        log_level: str = 'debug',
        include_headers: bool = False
    ) -> 'FluentHttpClientBuilder':
        """Add logging middleware"""
        self._interceptors.append(('logging', {
            'log_level': log_level,
            'include_headers': include_headers
        }))
        return self

    def build(self) -> SecureBankHttpClient:
        """Build the HTTP client"""
        if 'base_url' not in self._config_kwargs:
            raise ValidationError("Base URL is required")
        if self._key is None:
            raise ValidationError("Encryption key is required")

        config = HttpClientConfig(**self._config_kwargs)
        client = SecureBankHttpClient(
            config,
            EnvelopeCodec(load_key(self._key)),
            policy=self._policy,
            on_forced_logout=self._on_forced_logout
        )

        for middleware_type, kwargs in self._interceptors:
            if middleware_type == 'correlation':
                client.add_request_interceptor(create_correlation_middleware(**kwargs))
            elif middleware_type == 'logging':
                req_interceptor, resp_interceptor = create_logging_middleware(**kwargs)
                client.add_request_interceptor(req_interceptor)
                client.add_response_interceptor(resp_interceptor)

        return client


def create_fluent_http_client(base_url: Optional[str] = None) -> FluentHttpClientBuilder:
    """
    Create fluent HTTP client builder

    Args:
        base_url: Optional base URL to start with

    Returns:
        FluentHttpClientBuilder: Fluent builder instance
    """
    return FluentHttpClientBuilder(base_url)
