"""
Type definitions for the payload envelope

This module provides the data classes and enums shared by the envelope codec,
the sensitivity classifier and the request/response pipelines.
"""

from typing import Dict, Optional, Any, Union
from dataclasses import dataclass
from enum import Enum

from ..exceptions import EnvelopeError, MalformedEnvelopeError

# Wire constants
ENCRYPTED_HEADER = "x-encrypted"
ENCRYPTED_HEADER_VALUE = "true"
CIPHERTEXT_FIELD = "encrypted"
IV_FIELD = "iv"
TIMESTAMP_FIELD = "timestamp"

KEY_LENGTH = 32
IV_LENGTH = 16
BLOCK_SIZE = 16
REPLAY_WINDOW_MS = 5 * 60 * 1000

JsonValue = Union[Dict[str, Any], list, str, int, float, bool, None]


class Direction(str, Enum):
    """Which way a payload travels relative to this client"""
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class EnvelopePlacement(str, Enum):
    """Where an envelope sits inside a response payload"""
    WHOLE = "whole"
    DATA_USER = "data.user"
    DATA = "data"
    NONE = "none"


class DecodeOutcome(str, Enum):
    """Result tag of a response decode"""
    DECRYPTED = "decrypted"
    PLAINTEXT_PASSTHROUGH = "plaintext_passthrough"
    DECODE_ERROR = "decode_error"


@dataclass(frozen=True)
class Envelope:
    """
    Encrypted payload as it travels on the wire.

    Attributes:
        ciphertext: Base64 AES-256-CBC ciphertext
        iv: Base64 initialization vector (16 bytes once decoded)
        timestamp: Creation time in epoch milliseconds
    """
    ciphertext: str
    iv: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire format"""
        return {
            CIPHERTEXT_FIELD: self.ciphertext,
            IV_FIELD: self.iv,
            TIMESTAMP_FIELD: self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Envelope':
        """
        Parse an envelope from its wire format.

        Args:
            data: Decoded JSON object

        Returns:
            Envelope: Parsed envelope

        Raises:
            MalformedEnvelopeError: If a required field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise MalformedEnvelopeError("Envelope must be a JSON object")

        ciphertext = data.get(CIPHERTEXT_FIELD)
        iv = data.get(IV_FIELD)
        timestamp = data.get(TIMESTAMP_FIELD)

        if not isinstance(ciphertext, str) or not ciphertext:
            raise MalformedEnvelopeError("Envelope ciphertext is missing")
        if not isinstance(iv, str) or not iv:
            raise MalformedEnvelopeError("Envelope IV is missing")
        # bool is an int subclass; reject it explicitly
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise MalformedEnvelopeError("Envelope timestamp must be an integer epoch-ms value")

        return cls(ciphertext=ciphertext, iv=iv, timestamp=timestamp)

    @staticmethod
    def is_envelope_shape(value: Any) -> bool:
        """
        Structural check used to locate envelopes inside responses.

        A top-level ``"encrypted": true`` marker is not an envelope; the
        ciphertext field must be a non-empty string and an IV must be present.
        """
        return (
            isinstance(value, dict)
            and isinstance(value.get(CIPHERTEXT_FIELD), str)
            and bool(value[CIPHERTEXT_FIELD])
            and bool(value.get(IV_FIELD))
        )


@dataclass
class DecodeResult:
    """
    Tagged result of inspecting an inbound payload.

    Attributes:
        outcome: What happened
        payload: Decrypted payload, or the original one on passthrough/error
        placement: Which envelope placement matched
        error: The envelope error when outcome is DECODE_ERROR
    """
    outcome: DecodeOutcome
    payload: Any
    placement: EnvelopePlacement = EnvelopePlacement.NONE
    error: Optional[EnvelopeError] = None

    @property
    def decrypted(self) -> bool:
        return self.outcome == DecodeOutcome.DECRYPTED

    @classmethod
    def passthrough(cls, payload: Any) -> 'DecodeResult':
        return cls(outcome=DecodeOutcome.PLAINTEXT_PASSTHROUGH, payload=payload)
