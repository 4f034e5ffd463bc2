"""
Outbound request pipeline

Marks envelope-bearing requests and seals their JSON bodies before they reach
the transport.
"""

import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, replace

from .types import Direction, ENCRYPTED_HEADER, ENCRYPTED_HEADER_VALUE
from .codec import EnvelopeCodec
from .classifier import SensitivityPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)


@dataclass
class OutboundCall:
    """
    A request as seen by the envelope layer

    Attributes:
        method: HTTP method
        path: Path relative to the API base URL
        headers: Request headers
        json: JSON body, None when the call has no body
        params: Query parameters
        files: Multipart files, never sealed
        sensitive: Set by the pipeline when the path is classified sensitive
        encrypted: Set by the pipeline when the body was replaced by an envelope
    """
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None
    params: Optional[Dict[str, Any]] = None
    files: Optional[Any] = None
    sensitive: bool = False
    encrypted: bool = False

    @property
    def has_body(self) -> bool:
        return self.json is not None or self.files is not None


class RequestEncryptor:
    """Applies the envelope to outbound calls"""

    def __init__(self, codec: EnvelopeCodec, policy: SensitivityPolicy = DEFAULT_POLICY):
        self.codec = codec
        self.policy = policy

    def prepare(self, call: OutboundCall) -> OutboundCall:
        """
        Prepare a call for the wire.

        The input call is left untouched so it can be prepared again for a
        retry, which then gets a fresh IV and timestamp.

        Args:
            call: Plaintext call

        Returns:
            OutboundCall: Copy carrying the encryption header and sealed body
            when the path is sensitive
        """
        if not self.policy.is_sensitive(call.path, Direction.OUTBOUND):
            logger.debug(f"Not encrypting {call.method} {call.path}: path not sensitive")
            return replace(call, headers=dict(call.headers))

        headers = dict(call.headers)
        headers[ENCRYPTED_HEADER] = ENCRYPTED_HEADER_VALUE

        if call.json is None or call.files is not None:
            # Bodyless or multipart call: the header alone asks for an encrypted reply
            logger.debug(f"Requesting encrypted response for {call.method} {call.path}")
            return replace(call, headers=headers, sensitive=True)

        envelope = self.codec.encrypt(call.json)
        logger.debug(f"Encrypted request body for {call.method} {call.path}")
        return replace(call, headers=headers, json=envelope.to_dict(), sensitive=True, encrypted=True)
