"""
Server-side envelope middleware

Framework-neutral helpers for an API server that speaks the same envelope as
the client: open sealed request bodies and seal response payloads at one of
the placements the client knows how to find.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..exceptions import EnvelopeError, ValidationError
from ..envelope import (
    Envelope,
    EnvelopeCodec,
    EnvelopePlacement,
    ENCRYPTED_HEADER,
    ENCRYPTED_HEADER_VALUE,
)

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("securebank_sdk.security")


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


class EnvelopeServerMiddleware:
    """Seals and opens envelopes on the server side of the link"""

    def __init__(self, codec: EnvelopeCodec):
        self.codec = codec

    def is_encrypted_request(self, headers: Optional[Mapping[str, str]]) -> bool:
        """Whether the client marked the request as envelope-bearing"""
        value = _header(headers, ENCRYPTED_HEADER)
        return value is not None and value.strip().lower() == ENCRYPTED_HEADER_VALUE

    def decrypt_request_body(self, headers: Optional[Mapping[str, str]], body: Any) -> Any:
        """
        Open the request body if the client sealed it

        A marked request without an envelope body (a bodyless GET, say) is
        returned unchanged; it only asks for an encrypted reply.

        Args:
            headers: Request headers
            body: Parsed JSON body

        Returns:
            The plaintext body

        Raises:
            EnvelopeError: The envelope could not be opened
        """
        if not self.is_encrypted_request(headers) or not Envelope.is_envelope_shape(body):
            return body

        try:
            return self.codec.decrypt(body)
        except EnvelopeError as e:
            if e.security_relevant:
                security_logger.warning(f"Rejected request envelope: {e.error_code} {e}")
            else:
                logger.warning(f"Malformed request envelope: {e}")
            raise

    def encrypt_response(
        self,
        payload: Dict[str, Any],
        placement: EnvelopePlacement = EnvelopePlacement.WHOLE
    ) -> Dict[str, Any]:
        """
        Seal a response payload

        ``WHOLE`` seals the entire payload, ``success`` flag included, so the
        reply body is the bare envelope. ``DATA`` and ``DATA_USER`` seal that
        member in place and set a top-level ``encrypted: true`` marker.

        Args:
            payload: Response object
            placement: Where the envelope should go

        Returns:
            New response object; the input is not modified

        Raises:
            ValidationError: The placement does not fit the payload
        """
        if placement == EnvelopePlacement.NONE:
            return dict(payload)

        if placement == EnvelopePlacement.WHOLE:
            return self.codec.encrypt(payload).to_dict()

        data = payload.get('data')
        if placement == EnvelopePlacement.DATA:
            if data is None:
                raise ValidationError("Response has no data member to encrypt")
            sealed = dict(payload)
            sealed['data'] = self.codec.encrypt(data).to_dict()
            sealed['encrypted'] = True
            return sealed

        if not isinstance(data, dict) or 'user' not in data:
            raise ValidationError("Response has no data.user member to encrypt")
        sealed_data = dict(data)
        sealed_data['user'] = self.codec.encrypt(data['user']).to_dict()
        sealed = dict(payload)
        sealed['data'] = sealed_data
        sealed['encrypted'] = True
        return sealed
