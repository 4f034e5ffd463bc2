"""
AES-256-CBC payload envelope for SecureBank Python SDK

This module seals JSON payloads into the portable envelope exchanged between
the client and the banking API, and opens envelopes received from it. The
envelope sits on top of TLS; it is an application-layer scheme shared by both
ends of the link through a static 32-byte key.

CBC mode carries no integrity tag. Tampering is only detected indirectly,
through padding or JSON failures.
"""

import json
import time
import base64
import binascii
import secrets
from typing import Any, Callable, Dict, Optional, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import (
    ValidationError,
    EncryptionError,
    MalformedEnvelopeError,
    StaleEnvelopeError,
    CorruptCiphertextError,
)
from .types import (
    Envelope,
    KEY_LENGTH,
    IV_LENGTH,
    BLOCK_SIZE,
    REPLAY_WINDOW_MS,
)

Clock = Callable[[], int]


def current_time_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


def validate_key(key: bytes) -> None:
    """
    Validate a symmetric envelope key.

    Args:
        key: Key bytes to validate

    Raises:
        ValidationError: If the key is not exactly 32 bytes
    """
    if not isinstance(key, bytes):
        raise ValidationError("Encryption key must be bytes", "INVALID_KEY_TYPE")

    if len(key) != KEY_LENGTH:
        raise ValidationError(
            f"Encryption key must be exactly {KEY_LENGTH} bytes",
            "INVALID_KEY_LENGTH"
        )


def generate_key() -> bytes:
    """Generate a fresh random 32-byte envelope key"""
    return secrets.token_bytes(KEY_LENGTH)


def load_key(value: Union[str, bytes]) -> bytes:
    """
    Load an envelope key from its textual form.

    Accepts 64 hexadecimal characters, or a 32-character string used
    verbatim as UTF-8 bytes (the form the banking web client ships with).

    Args:
        value: Key as hex, as a 32-character string, or as raw bytes

    Returns:
        bytes: 32-byte key

    Raises:
        ValidationError: If the value cannot be turned into a 32-byte key
    """
    if isinstance(value, bytes):
        validate_key(value)
        return value

    if not isinstance(value, str) or not value:
        raise ValidationError("Encryption key cannot be empty", "EMPTY_KEY")

    if len(value) == KEY_LENGTH * 2:
        try:
            key = bytes.fromhex(value)
        except ValueError as e:
            raise ValidationError("Encryption key is not valid hex", "INVALID_KEY_FORMAT") from e
    else:
        key = value.encode("utf-8")

    validate_key(key)
    return key


def _b64decode(value: str, field_name: str) -> bytes:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise MalformedEnvelopeError(f"Envelope {field_name} is not valid base64") from e


class EnvelopeCodec:
    """
    Seals and opens payload envelopes with a fixed key.

    The codec is pure and synchronous; it never performs I/O and is safe to
    share between threads.
    """

    def __init__(
        self,
        key: bytes,
        replay_window_ms: int = REPLAY_WINDOW_MS,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the codec

        Args:
            key: 32-byte AES-256 key shared with the server
            replay_window_ms: Maximum envelope age accepted by decrypt
            clock: Millisecond clock, injectable for tests
        """
        validate_key(key)
        if replay_window_ms <= 0:
            raise ValidationError("Replay window must be positive", "INVALID_REPLAY_WINDOW")

        self._key = key
        self.replay_window_ms = replay_window_ms
        self._clock = clock or current_time_ms

    def __repr__(self) -> str:
        return f"EnvelopeCodec(replay_window_ms={self.replay_window_ms})"

    def encrypt(self, plaintext: Any) -> Envelope:
        """
        Seal a JSON-serializable payload.

        Args:
            plaintext: Any JSON-serializable value

        Returns:
            Envelope: Fresh envelope with a random IV and the current timestamp

        Raises:
            EncryptionError: If the payload is not JSON-serializable
        """
        try:
            serialized = json.dumps(plaintext, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Payload is not JSON-serializable: {e}", "ENCRYPTION_FAILED") from e

        iv = secrets.token_bytes(IV_LENGTH)
        padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
        padded = padder.update(serialized) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return Envelope(
            ciphertext=base64.b64encode(ciphertext).decode("ascii"),
            iv=base64.b64encode(iv).decode("ascii"),
            timestamp=self._clock(),
        )

    def decrypt(self, envelope: Union[Envelope, Dict[str, Any]]) -> Any:
        """
        Open an envelope.

        Args:
            envelope: Envelope instance or its wire-format dict

        Returns:
            The decoded JSON value

        Raises:
            MalformedEnvelopeError: Missing fields, invalid base64 or bad lengths
            StaleEnvelopeError: Envelope older than the replay window
            CorruptCiphertextError: Bad padding, or plaintext that is not UTF-8 JSON
        """
        if not isinstance(envelope, Envelope):
            envelope = Envelope.from_dict(envelope)

        iv = _b64decode(envelope.iv, "IV")
        if len(iv) != IV_LENGTH:
            raise MalformedEnvelopeError(
                f"Envelope IV must be {IV_LENGTH} bytes",
                details={'iv_length': len(iv)}
            )

        ciphertext = _b64decode(envelope.ciphertext, "ciphertext")
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise MalformedEnvelopeError(
                "Envelope ciphertext length is not a whole number of blocks",
                details={'ciphertext_length': len(ciphertext)}
            )

        age_ms = self._clock() - envelope.timestamp
        if age_ms > self.replay_window_ms:
            raise StaleEnvelopeError(
                f"Envelope expired: {age_ms}ms old (window {self.replay_window_ms}ms)",
                details={'age_ms': age_ms, 'replay_window_ms': self.replay_window_ms}
            )

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
            serialized = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise CorruptCiphertextError("Envelope padding is invalid") from e

        try:
            return json.loads(serialized.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise CorruptCiphertextError("Envelope plaintext is not valid UTF-8") from e
        except json.JSONDecodeError as e:
            raise CorruptCiphertextError("Envelope plaintext is not valid JSON") from e


def encrypt(plaintext: Any, key: bytes) -> Envelope:
    """
    Seal a payload with the given key.

    Args:
        plaintext: JSON-serializable payload
        key: 32-byte key

    Returns:
        Envelope: Sealed payload
    """
    return EnvelopeCodec(key).encrypt(plaintext)


def decrypt(envelope: Union[Envelope, Dict[str, Any]], key: bytes) -> Any:
    """
    Open an envelope with the given key, enforcing the default replay window.

    Args:
        envelope: Envelope or wire-format dict
        key: 32-byte key

    Returns:
        The decoded JSON value
    """
    return EnvelopeCodec(key).decrypt(envelope)
