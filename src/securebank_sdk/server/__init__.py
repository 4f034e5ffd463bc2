"""
Server-side envelope helpers for SecureBank Python SDK
"""

from .middleware import EnvelopeServerMiddleware

__all__ = [
    'EnvelopeServerMiddleware',
]
