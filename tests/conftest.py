"""
Shared test fixtures

The fake bank is an in-process SecureBank API mounted on the client's
``requests`` session as a transport adapter, so tests exercise real cookie
handling, real envelopes on the wire and the server middleware.
"""

import json
import time
import itertools
import threading
from http import HTTPStatus
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import Mock
from urllib.parse import urlparse

import pytest
import requests
from requests.adapters import BaseAdapter

from securebank_sdk.envelope import EnvelopeCodec, EnvelopePlacement
from securebank_sdk.server import EnvelopeServerMiddleware
from securebank_sdk.http_clients import HttpClientConfig, SecureBankHttpClient

TEST_KEY = b"12345678901234567890123456789012"
BASE_URL = "https://bank.test/api"
USER = {'id': 7, 'email': 'alice@securebank.test', 'role': 'customer'}
CREDENTIALS = {'email': 'alice@securebank.test', 'password': 'correct horse'}

Handler = Callable[['FakeRequest'], Tuple[int, Any]]


def wait_for(condition, timeout: float = 5.0) -> None:
    """Poll until condition() is true"""
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.005)


@dataclass
class FakeRequest:
    """A request as received by the fake bank"""
    method: str
    path: str
    headers: Dict[str, str]
    cookies: Dict[str, str]
    raw_body: Any
    body: Any = None


@dataclass
class Route:
    handler: Handler
    placement: EnvelopePlacement
    protected: bool
    sealed: Optional[bool]


def _parse_cookie_header(value: Optional[str]) -> Dict[str, str]:
    cookies = {}
    if not value:
        return cookies
    for part in value.split(';'):
        name, _, cookie_value = part.strip().partition('=')
        if name:
            cookies[name] = cookie_value
    return cookies


def _parse_body(request: requests.PreparedRequest) -> Any:
    body = request.body
    if not body:
        return None
    if 'json' not in (request.headers.get('Content-Type') or ''):
        return body
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    return json.loads(body)


class FakeBankServer(BaseAdapter):
    """In-process SecureBank API speaking the envelope protocol"""

    def __init__(self, codec: EnvelopeCodec):
        super().__init__()
        self.middleware = EnvelopeServerMiddleware(codec)
        self.jar = None
        self.lock = threading.Lock()
        self.log: List[FakeRequest] = []
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.transfers: List[Any] = []

        self._token_ids = itertools.count(1)
        self.valid_access = set()
        self.valid_refresh = set()

        # Refresh behaviour knobs
        self.refresh_gate = threading.Event()
        self.refresh_gate.set()
        self.refresh_status = 200
        self.refresh_error: Optional[Exception] = None

        self._install_routes()

    def attach(self, client: SecureBankHttpClient) -> None:
        """Mount on a client's session; cookies are set into its jar"""
        client.session.mount("https://bank.test/", self)
        self.jar = client.session.cookies

    def route(
        self,
        method: str,
        path: str,
        placement: EnvelopePlacement = EnvelopePlacement.WHOLE,
        protected: bool = True,
        sealed: Optional[bool] = None
    ):
        """Register a handler; ``sealed=None`` seals only when the client asked"""
        def decorator(handler: Handler) -> Handler:
            self.routes[(method, path)] = Route(handler, placement, protected, sealed)
            return handler
        return decorator

    # Session helpers
    def issue_tokens(self) -> str:
        with self.lock:
            n = next(self._token_ids)
            access, refresh = f"access-{n}", f"refresh-{n}"
            self.valid_access.add(access)
            self.valid_refresh.add(refresh)
        self.jar.set('accessToken', access)
        self.jar.set('refreshToken', refresh)
        return access

    def expire_access_tokens(self) -> None:
        with self.lock:
            self.valid_access.clear()

    def requests_to(self, path: str, method: Optional[str] = None) -> List[FakeRequest]:
        with self.lock:
            return [
                r for r in self.log
                if r.path == path and (method is None or r.method == method)
            ]

    def _authorized(self, cookies: Dict[str, str]) -> bool:
        with self.lock:
            return cookies.get('accessToken') in self.valid_access

    # Transport adapter interface
    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        path = urlparse(request.url).path
        headers = dict(request.headers)
        fake = FakeRequest(
            method=request.method,
            path=path,
            headers=headers,
            cookies=_parse_cookie_header(request.headers.get('Cookie')),
            raw_body=_parse_body(request),
        )
        with self.lock:
            self.log.append(fake)

        route = self.routes.get((request.method, path))
        if route is None:
            return self._respond(request, 404, {'success': False, 'message': 'Not found'})

        if route.protected and not self._authorized(fake.cookies):
            return self._respond(request, 401, {'success': False, 'message': 'Token expired'})

        fake.body = self.middleware.decrypt_request_body(headers, fake.raw_body)
        status, payload = route.handler(fake)

        seal = route.sealed if route.sealed is not None else self.middleware.is_encrypted_request(headers)
        if seal and status < 400 and payload is not None:
            payload = self.middleware.encrypt_response(payload, route.placement)

        return self._respond(request, status, payload)

    def close(self):
        pass

    @staticmethod
    def _respond(request, status: int, payload: Any) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        response.reason = HTTPStatus(status).phrase
        response._content = json.dumps(payload).encode('utf-8') if payload is not None else b''
        response.headers['Content-Type'] = 'application/json'
        response.encoding = 'utf-8'
        response.url = request.url
        response.request = request
        return response

    def _install_routes(self) -> None:
        @self.route('POST', '/api/auth/login', EnvelopePlacement.DATA_USER, protected=False)
        def login(req):
            body = req.body or {}
            if body.get('email') != CREDENTIALS['email'] or body.get('password') != CREDENTIALS['password']:
                return 401, {'success': False, 'message': 'Invalid credentials'}
            self.issue_tokens()
            return 200, {'success': True, 'message': 'Login successful', 'data': {'user': USER}}

        @self.route('POST', '/api/auth/refresh', EnvelopePlacement.DATA_USER, protected=False)
        def refresh(req):
            self.refresh_gate.wait(10)
            if self.refresh_error is not None:
                raise self.refresh_error
            if self.refresh_status != 200:
                return self.refresh_status, {'success': False, 'message': 'Refresh unavailable'}
            with self.lock:
                known = req.cookies.get('refreshToken') in self.valid_refresh
            if not known:
                return 401, {'success': False, 'message': 'Invalid refresh token'}
            self.issue_tokens()
            return 200, {'success': True, 'data': {'user': USER}}

        @self.route('POST', '/api/auth/logout', EnvelopePlacement.NONE, protected=False)
        def logout(req):
            with self.lock:
                self.valid_access.discard(req.cookies.get('accessToken'))
                self.valid_refresh.discard(req.cookies.get('refreshToken'))
            return 200, {'success': True, 'message': 'Logged out'}

        @self.route('GET', '/api/auth/verify', EnvelopePlacement.DATA_USER)
        def verify(req):
            return 200, {'success': True, 'data': {'user': USER}}

        @self.route('GET', '/api/accounts')
        def accounts(req):
            return 200, {'success': True, 'data': {'accounts': [{'id': 1, 'balance': 1250.5}]}}

        @self.route('POST', '/api/transfers', EnvelopePlacement.DATA)
        def transfers(req):
            with self.lock:
                self.transfers.append(req.body)
                transfer_id = len(self.transfers)
            return 201, {'success': True, 'data': {'transferId': transfer_id, 'amount': req.body['amount']}}

        @self.route('GET', '/api/security/audit')
        def audit(req):
            return 403, {'success': False, 'error': {'message': 'Admin access required', 'code': 'FORBIDDEN'}}

        @self.route('POST', '/api/uploads', EnvelopePlacement.DATA, sealed=True)
        def uploads(req):
            return 200, {'success': True, 'data': {'documentId': 'doc-1'}}

        @self.route('GET', '/api/health', EnvelopePlacement.NONE, protected=False)
        def health(req):
            return 200, {'status': 'ok'}


@pytest.fixture
def key():
    return TEST_KEY


@pytest.fixture
def codec(key):
    return EnvelopeCodec(key)


@pytest.fixture
def bank(codec):
    return FakeBankServer(codec)


@pytest.fixture
def forced_logout():
    return Mock()


@pytest.fixture
def client(codec, bank, forced_logout):
    config = HttpClientConfig(base_url=BASE_URL, retry_attempts=0, refresh_wait_timeout=10.0)
    http_client = SecureBankHttpClient(config, codec, on_forced_logout=forced_logout)
    bank.attach(http_client)
    yield http_client
    bank.refresh_gate.set()
    http_client.close()


@pytest.fixture
def logged_in_client(client):
    client.login(CREDENTIALS)
    return client
