"""
SecureBank Python SDK - Session Module

Cookie-based session state machine and the single-flight primitives it
uses to collapse concurrent 401s into one refresh call.
"""

from .single_flight import (
    CancelToken,
    SharedOutcome,
)

from .manager import (
    SessionManager,
    SessionState,
    SessionStats,
    CallTicket,
    DEFAULT_MAX_ATTACHED_CALLS,
)

__all__ = [
    'CancelToken',
    'SharedOutcome',
    'SessionManager',
    'SessionState',
    'SessionStats',
    'CallTicket',
    'DEFAULT_MAX_ATTACHED_CALLS',
]
