"""
Sensitivity classification for request paths

Decides, per path and per direction, whether the payload envelope applies.
The outbound and inbound lists differ for uploads: responses from upload
endpoints are decrypted, while requests to them (multipart bodies) are sent
as-is.
"""

from typing import Iterable, Tuple
from dataclasses import dataclass

from .types import Direction

OUTBOUND_SENSITIVE_PATHS: Tuple[str, ...] = (
    "/auth/",
    "/users",
    "/accounts",
    "/transactions",
    "/transfers",
    "/loans",
    "/notifications",
    "/reports",
    "/security",
)

UPLOAD_PATHS: Tuple[str, ...] = ("/uploads",)

INBOUND_SENSITIVE_PATHS: Tuple[str, ...] = OUTBOUND_SENSITIVE_PATHS + UPLOAD_PATHS


@dataclass(frozen=True)
class SensitivityPolicy:
    """
    Ordered path rules, one list per direction.

    Matching is a substring test against the request path, so
    ``/api/accounts/42`` matches the ``/accounts`` rule.
    """
    outbound: Tuple[str, ...] = OUTBOUND_SENSITIVE_PATHS
    inbound: Tuple[str, ...] = INBOUND_SENSITIVE_PATHS

    def is_sensitive(self, path: str, direction: Direction) -> bool:
        """
        Check whether a path participates in envelope encryption.

        Args:
            path: Request path or URL
            direction: OUTBOUND for request bodies, INBOUND for responses

        Returns:
            bool: True if the envelope applies
        """
        if not path:
            return False

        rules = self.outbound if direction == Direction.OUTBOUND else self.inbound
        return any(rule in path for rule in rules)

    def with_unified_uploads(self) -> 'SensitivityPolicy':
        """Policy that also encrypts outbound upload requests"""
        outbound = self.outbound + tuple(p for p in UPLOAD_PATHS if p not in self.outbound)
        return SensitivityPolicy(outbound=outbound, inbound=self.inbound)

    @classmethod
    def from_rules(cls, outbound: Iterable[str], inbound: Iterable[str]) -> 'SensitivityPolicy':
        return cls(outbound=tuple(outbound), inbound=tuple(inbound))


DEFAULT_POLICY = SensitivityPolicy()


def is_sensitive(path: str, direction: Direction) -> bool:
    """Classify a path against the default policy"""
    return DEFAULT_POLICY.is_sensitive(path, direction)
