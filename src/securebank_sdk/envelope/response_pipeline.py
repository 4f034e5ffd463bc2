"""
Inbound response pipeline

Different banking endpoints place their envelope at different depths. This
module resolves them with a single fixed-precedence search, first match wins:

1. the whole payload is an envelope, and its plaintext replaces the payload;
2. ``data.user`` is an envelope, decrypted and spliced back in place;
3. ``data`` is an envelope, decrypted and spliced back in place;
4. anything else passes through unchanged.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from ..exceptions import EnvelopeError
from .types import (
    Direction,
    Envelope,
    EnvelopePlacement,
    DecodeOutcome,
    DecodeResult,
)
from .codec import EnvelopeCodec
from .classifier import SensitivityPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("securebank_sdk.security")

# (placement, locate, splice): locate returns the candidate envelope or None,
# splice returns a new payload with the decrypted value in place
_Locator = Callable[[Any], Any]
_Splicer = Callable[[Any, Any], Any]


def _locate_whole(payload: Any) -> Any:
    return payload


def _splice_whole(payload: Any, plaintext: Any) -> Any:
    return plaintext


def _locate_data_user(payload: Any) -> Any:
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"].get("user")
    return None


def _splice_data_user(payload: Any, plaintext: Any) -> Any:
    data = dict(payload["data"])
    data["user"] = plaintext
    spliced = dict(payload)
    spliced["data"] = data
    return spliced


def _locate_data(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("data")
    return None


def _splice_data(payload: Any, plaintext: Any) -> Any:
    spliced = dict(payload)
    spliced["data"] = plaintext
    return spliced


PLACEMENT_PRECEDENCE: List[Tuple[EnvelopePlacement, _Locator, _Splicer]] = [
    (EnvelopePlacement.WHOLE, _locate_whole, _splice_whole),
    (EnvelopePlacement.DATA_USER, _locate_data_user, _splice_data_user),
    (EnvelopePlacement.DATA, _locate_data, _splice_data),
]


def locate_envelope(payload: Any) -> EnvelopePlacement:
    """Return the first placement whose candidate has envelope shape"""
    for placement, locate, _ in PLACEMENT_PRECEDENCE:
        if Envelope.is_envelope_shape(locate(payload)):
            return placement
    return EnvelopePlacement.NONE


class ResponseDecryptor:
    """Locates and opens envelopes in inbound payloads"""

    def __init__(self, codec: EnvelopeCodec, policy: SensitivityPolicy = DEFAULT_POLICY):
        self.codec = codec
        self.policy = policy

    def decode(self, payload: Any, path: str) -> DecodeResult:
        """
        Inspect a payload and decrypt the envelope it carries, if any.

        Never raises for envelope problems; they come back tagged as
        DECODE_ERROR with the original payload. The input is never mutated.

        Args:
            payload: Parsed JSON response body
            path: Request path the payload answers

        Returns:
            DecodeResult: Tagged outcome
        """
        if not self.policy.is_sensitive(path, Direction.INBOUND):
            return DecodeResult.passthrough(payload)

        for placement, locate, splice in PLACEMENT_PRECEDENCE:
            candidate = locate(payload)
            if not Envelope.is_envelope_shape(candidate):
                continue

            try:
                plaintext = self.codec.decrypt(candidate)
            except EnvelopeError as e:
                self._log_failure(e, path, placement)
                return DecodeResult(
                    outcome=DecodeOutcome.DECODE_ERROR,
                    payload=payload,
                    placement=placement,
                    error=e,
                )

            logger.debug(f"Decrypted {placement.value} envelope for {path}")
            return DecodeResult(
                outcome=DecodeOutcome.DECRYPTED,
                payload=splice(payload, plaintext),
                placement=placement,
            )

        logger.debug(f"No envelope in response for {path}, passing through")
        return DecodeResult.passthrough(payload)

    def process(self, payload: Any, path: str) -> Any:
        """
        Decode a payload for the caller.

        Raises:
            EnvelopeError: When an envelope was found but could not be opened
        """
        result = self.decode(payload, path)
        if result.outcome == DecodeOutcome.DECODE_ERROR:
            raise result.error
        return result.payload

    @staticmethod
    def _log_failure(error: EnvelopeError, path: str, placement: Optional[EnvelopePlacement]) -> None:
        where = placement.value if placement else "unknown"
        if error.security_relevant:
            security_logger.warning(
                f"Rejected {where} envelope from {path}: {error.error_code} {error}"
            )
        else:
            logger.warning(f"Malformed {where} envelope from {path}: {error}")
