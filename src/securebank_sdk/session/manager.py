"""
Cookie-based session state machine with single-flight refresh-and-retry

The session manager is the only synchronization point of the SDK. Any number
of threads may observe a 401 at the same time; exactly one of them issues the
refresh call while the others attach to its outcome. When the refresh
succeeds, every attached call is granted exactly one retry. When it fails,
every attached call fails with ``AuthenticationFailed`` and a single forced
logout runs.

States::

    ANONYMOUS --login--> AUTHENTICATED --401--> REFRESHING
    REFRESHING --refresh ok--> AUTHENTICATED
    REFRESHING --refresh rejected--> EXPIRED --forced logout--> ANONYMOUS
    AUTHENTICATED/REFRESHING --logout--> ANONYMOUS
"""

import logging
import threading
from typing import Callable, List, Optional, Any
from dataclasses import dataclass, field, replace
from enum import Enum

from ..exceptions import (
    AuthenticationExpired,
    AuthenticationFailed,
    AuthorizationDenied,
    RefreshBackpressureError,
    RequestCancelled,
    ValidationError,
    SESSION_EXPIRED_MESSAGE,
)
from .single_flight import CancelToken, SharedOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTACHED_CALLS = 64


class SessionState(str, Enum):
    """Authentication state of the client process"""
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    EXPIRED = "expired"


@dataclass(eq=False)
class CallTicket:
    """
    Per-call bookkeeping for the refresh protocol

    Attributes:
        generation: Credential generation current when the call was sent
        cancel_token: Cancellation handle of the issuing context
        label: Human-readable call description for logs
        retried: Whether the call already used its one retry
    """
    generation: int
    cancel_token: CancelToken = field(default_factory=CancelToken)
    label: str = ""
    retried: bool = False


@dataclass
class SessionStats:
    """Counters for the refresh protocol"""
    refresh_calls: int = 0
    refresh_failures: int = 0
    retries_granted: int = 0
    forced_logouts: int = 0
    shed_calls: int = 0


class SessionManager:
    """
    Explicit, constructed session state shared by one HTTP client.

    The refresher performs the refresh network call. It must return normally
    on success and raise ``AuthenticationFailed`` (or another authentication
    error) when the server rejects the refresh. Any other exception is
    treated as transient: attached calls fail with it and the session stays
    authenticated.
    """

    def __init__(
        self,
        refresher: Optional[Callable[[], Any]] = None,
        on_forced_logout: Optional[Callable[[], None]] = None,
        on_session_cleared: Optional[Callable[[], None]] = None,
        max_attached_calls: int = DEFAULT_MAX_ATTACHED_CALLS,
        refresh_wait_timeout: Optional[float] = 30.0
    ):
        """
        Initialize the session manager

        Args:
            refresher: Callable issuing the refresh request
            on_forced_logout: Called once per failed refresh, e.g. to redirect to login
            on_session_cleared: Called whenever credentials must be dropped
            max_attached_calls: Fan-in bound for one in-flight refresh
            refresh_wait_timeout: Seconds an attached call waits for the refresh outcome
        """
        if max_attached_calls < 1:
            raise ValidationError("max_attached_calls must be at least 1")

        self.refresher = refresher
        self.on_forced_logout = on_forced_logout
        self.on_session_cleared = on_session_cleared
        self.max_attached_calls = max_attached_calls
        self.refresh_wait_timeout = refresh_wait_timeout

        self._lock = threading.RLock()
        self._state = SessionState.ANONYMOUS
        self._generation = 0
        self._logout_generation: Optional[int] = None
        self._refresh: Optional[SharedOutcome] = None
        self._attached: List[CallTicket] = []
        self._stats = SessionStats()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def stats(self) -> SessionStats:
        """Snapshot of the refresh counters"""
        with self._lock:
            return replace(self._stats)

    @property
    def attached_count(self) -> int:
        with self._lock:
            return len(self._attached)

    @property
    def is_authenticated(self) -> bool:
        return self.state in (SessionState.AUTHENTICATED, SessionState.REFRESHING)

    def begin_call(self, label: str = "", cancel_token: Optional[CancelToken] = None) -> CallTicket:
        """Capture the credential generation a call is about to be sent with"""
        with self._lock:
            return CallTicket(
                generation=self._generation,
                cancel_token=cancel_token or CancelToken(),
                label=label,
            )

    def mark_authenticated(self) -> None:
        """Record a successful login"""
        with self._lock:
            self._state = SessionState.AUTHENTICATED
            self._generation += 1
        logger.info("Session authenticated")

    def logout(self) -> None:
        """
        Explicit logout: clear the session and drop every queued retry.

        No forced-logout action fires. A refresh still in flight is
        abandoned; its late result is discarded.
        """
        with self._lock:
            pending = self._refresh
            dropped = len(self._attached)
            self._state = SessionState.ANONYMOUS
            self._generation += 1
            self._refresh = None
            self._attached = []
            self._logout_generation = self._generation

        if pending is not None:
            pending.fail(RequestCancelled("Session logged out while refresh was pending"))
            logger.info(f"Logout cancelled {dropped} call(s) waiting on session refresh")

        self._clear_credentials()
        logger.info("Session logged out")

    def handle_unauthorized(self, ticket: CallTicket) -> None:
        """
        React to a 401 received by a call.

        Returns normally when the caller must retry the call exactly once,
        with whatever credentials are current at retry time. Blocks while a
        refresh is in flight.

        Args:
            ticket: Ticket obtained from begin_call when the call was sent

        Raises:
            AuthenticationExpired: No session to refresh, or the retry itself got 401
            AuthenticationFailed: The shared refresh was rejected
            RefreshBackpressureError: Too many calls already attached
            RequestCancelled: The issuing context was torn down
            NetworkError: The refresh failed transiently
        """
        ticket.cancel_token.raise_if_cancelled()

        if ticket.retried:
            raise AuthenticationExpired(
                f"Still unauthorized after session refresh: {ticket.label}",
                details={'retried': True}
            )

        with self._lock:
            if self._state == SessionState.ANONYMOUS:
                raise AuthenticationExpired(
                    f"Not authenticated: {ticket.label}",
                    details={'state': self._state.value}
                )

            if self._state == SessionState.EXPIRED:
                raise AuthenticationFailed(
                    f"Session expired: {ticket.label}",
                    details={'state': self._state.value}
                )

            if self._state == SessionState.AUTHENTICATED and self._generation > ticket.generation:
                # Sent with credentials that a completed refresh already replaced
                self._grant_retry(ticket)
                return

            if self._state == SessionState.REFRESHING:
                if len(self._attached) >= self.max_attached_calls:
                    self._stats.shed_calls += 1
                    raise RefreshBackpressureError(
                        f"Refresh queue full ({self.max_attached_calls} calls attached): {ticket.label}",
                        details={'max_attached_calls': self.max_attached_calls}
                    )
                outcome = self._refresh
                self._attached.append(ticket)
                leader = False
                logger.debug(f"Attached {ticket.label} to in-flight session refresh")
            else:
                outcome = SharedOutcome()
                self._state = SessionState.REFRESHING
                self._refresh = outcome
                self._attached = [ticket]
                self._stats.refresh_calls += 1
                leader = True

        if leader:
            self._run_refresh(outcome)

        try:
            outcome.wait(ticket.cancel_token, self.refresh_wait_timeout)
        finally:
            with self._lock:
                if ticket in self._attached:
                    self._attached.remove(ticket)

        ticket.cancel_token.raise_if_cancelled()
        with self._lock:
            self._grant_retry(ticket)

    def _grant_retry(self, ticket: CallTicket) -> None:
        ticket.retried = True
        ticket.generation = self._generation
        self._stats.retries_granted += 1
        logger.debug(f"Retrying {ticket.label} with refreshed session")

    def _run_refresh(self, outcome: SharedOutcome) -> None:
        if self.refresher is None:
            self._finish_failed(outcome, AuthenticationFailed("No session refresher configured"))
            return

        logger.info("Session refresh started")
        try:
            self.refresher()
        except AuthenticationFailed as e:
            self._finish_failed(outcome, e)
        except (AuthenticationExpired, AuthorizationDenied) as e:
            failure = AuthenticationFailed(
                f"Session refresh rejected: {e}",
                http_status=e.http_status,
                details={'code': e.error_code}
            )
            failure.__cause__ = e
            self._finish_failed(outcome, failure)
        except Exception as e:
            self._finish_transient(outcome, e)
        else:
            self._finish_succeeded(outcome)

    def _finish_succeeded(self, outcome: SharedOutcome) -> None:
        with self._lock:
            current = outcome is self._refresh
            if current:
                self._state = SessionState.AUTHENTICATED
                self._generation += 1
                self._refresh = None
                waiting = len(self._attached)
                self._attached = []
            else:
                # Only the logged-out session may lose the cookies the refresh set
                still_logged_out = (
                    self._state == SessionState.ANONYMOUS
                    and self._generation == self._logout_generation
                )

        if not current:
            logger.info("Discarding session refresh that completed after logout")
            if still_logged_out:
                self._clear_credentials()
            return

        logger.info(f"Session refresh succeeded, retrying {waiting} call(s)")
        outcome.resolve()

    def _finish_transient(self, outcome: SharedOutcome, error: Exception) -> None:
        with self._lock:
            current = outcome is self._refresh
            if current:
                self._state = SessionState.AUTHENTICATED
                self._refresh = None
                self._attached = []

        logger.warning(f"Session refresh failed transiently: {error}")
        outcome.fail(error)

    def _finish_failed(self, outcome: SharedOutcome, failure: AuthenticationFailed) -> None:
        with self._lock:
            current = outcome is self._refresh
            if current:
                self._state = SessionState.EXPIRED
                self._refresh = None
                self._attached = []
                self._stats.refresh_failures += 1

        outcome.fail(failure)
        if current:
            self._force_logout()

    def _force_logout(self) -> None:
        logger.warning(f"Session refresh rejected; forcing logout. {SESSION_EXPIRED_MESSAGE}")
        with self._lock:
            self._stats.forced_logouts += 1
        try:
            self._clear_credentials()
            if self.on_forced_logout is not None:
                self.on_forced_logout()
        finally:
            with self._lock:
                if self._state == SessionState.EXPIRED:
                    self._state = SessionState.ANONYMOUS
                    self._generation += 1

    def _clear_credentials(self) -> None:
        if self.on_session_cleared is not None:
            self.on_session_cleared()
