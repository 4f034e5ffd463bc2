"""
Single-flight coordination primitives

A ``SharedOutcome`` is the one future that every call attached to an
in-flight operation waits on. A ``CancelToken`` lets the context that issued a
call abandon it, waking any wait it is blocked in.
"""

import time
import threading
from typing import Any, Callable, List, Optional

from ..exceptions import RequestCancelled, RequestTimeout


class CancelToken:
    """
    Caller-owned cancellation handle for one logical call.

    Usable as a context manager: leaving the block cancels the token, so a
    retry still queued when the issuing scope is torn down never reaches the
    network.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._listeners: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Cancel the token and wake every wait observing it"""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self.reason = reason
            listeners = list(self._listeners)
            self._listeners.clear()

        for listener in listeners:
            listener()

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a wake-up callback; runs immediately if already cancelled"""
        with self._lock:
            if not self._cancelled:
                self._listeners.append(listener)
                return
        listener()

    def remove_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled(
                f"Request cancelled: {self.reason}",
                details={'reason': self.reason}
            )

    def __enter__(self) -> 'CancelToken':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel("issuing context closed")


class SharedOutcome:
    """
    Outcome of one in-flight operation, shared by every waiter.

    Resolved or failed exactly once; later calls are ignored. Every waiter
    observes the same value or the same exception.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._done = False
        self._value: Any = None
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._done

    def resolve(self, value: Any = None) -> bool:
        """Complete successfully; returns False if already completed"""
        with self._cond:
            if self._done:
                return False
            self._value = value
            self._done = True
            self._cond.notify_all()
            return True

    def fail(self, error: BaseException) -> bool:
        """Complete with an error; returns False if already completed"""
        with self._cond:
            if self._done:
                return False
            self._error = error
            self._done = True
            self._cond.notify_all()
            return True

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def wait(self, cancel_token: Optional[CancelToken] = None, timeout: Optional[float] = None) -> Any:
        """
        Block until the outcome is known.

        Args:
            cancel_token: Token whose cancellation abandons the wait
            timeout: Maximum seconds to wait, None for no limit

        Returns:
            The resolved value

        Raises:
            RequestCancelled: If the token is cancelled before completion
            RequestTimeout: If the timeout elapses before completion
            The failure error, if the operation failed
        """
        deadline = time.monotonic() + timeout if timeout is not None else None

        if cancel_token is not None:
            cancel_token.add_listener(self._wake)

        try:
            with self._cond:
                while not self._done:
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled()

                    remaining = None
                    if deadline is not None:
                        remaining = deadline - time.monotonic()
                        if remaining <= 0:
                            raise RequestTimeout(
                                f"Timed out after {timeout}s waiting for shared operation",
                                details={'timeout': timeout}
                            )
                    self._cond.wait(remaining)

                if self._error is not None:
                    raise self._error
                return self._value
        finally:
            if cancel_token is not None:
                cancel_token.remove_listener(self._wake)
