"""
Unit tests for the server-side envelope middleware
"""

import pytest

from securebank_sdk.envelope import (
    EnvelopeCodec,
    EnvelopePlacement,
    ResponseDecryptor,
    locate_envelope,
)
from securebank_sdk.server import EnvelopeServerMiddleware
from securebank_sdk.exceptions import StaleEnvelopeError, ValidationError

from conftest import TEST_KEY


class TestRequestSide:
    """Test opening client request bodies"""

    def setup_method(self):
        """Setup test fixtures"""
        self.codec = EnvelopeCodec(TEST_KEY)
        self.middleware = EnvelopeServerMiddleware(self.codec)

    def test_header_detection_is_case_insensitive(self):
        assert self.middleware.is_encrypted_request({'X-Encrypted': 'true'})
        assert self.middleware.is_encrypted_request({'x-encrypted': 'TRUE'})
        assert not self.middleware.is_encrypted_request({'x-encrypted': 'false'})
        assert not self.middleware.is_encrypted_request({})
        assert not self.middleware.is_encrypted_request(None)

    def test_decrypts_marked_envelope(self):
        body = self.codec.encrypt({'amount': 5}).to_dict()

        assert self.middleware.decrypt_request_body({'x-encrypted': 'true'}, body) == {'amount': 5}

    def test_unmarked_body_untouched(self):
        body = self.codec.encrypt({'amount': 5}).to_dict()

        assert self.middleware.decrypt_request_body({}, body) is body

    def test_marked_bodyless_request(self):
        assert self.middleware.decrypt_request_body({'x-encrypted': 'true'}, None) is None

    def test_stale_request_rejected(self, caplog):
        clock_now = [1_700_000_000_000]
        codec = EnvelopeCodec(TEST_KEY, clock=lambda: clock_now[0])
        middleware = EnvelopeServerMiddleware(codec)
        body = codec.encrypt({'amount': 5}).to_dict()
        clock_now[0] += 301_000

        with pytest.raises(StaleEnvelopeError):
            middleware.decrypt_request_body({'x-encrypted': 'true'}, body)

        assert any(r.name == 'securebank_sdk.security' for r in caplog.records)


class TestResponseSide:
    """Test sealing responses at each placement"""

    def setup_method(self):
        """Setup test fixtures"""
        self.codec = EnvelopeCodec(TEST_KEY)
        self.middleware = EnvelopeServerMiddleware(self.codec)
        self.decryptor = ResponseDecryptor(self.codec)

    def test_whole_seals_entire_payload(self):
        payload = {'success': True, 'data': {'balance': 10}}

        sealed = self.middleware.encrypt_response(payload, EnvelopePlacement.WHOLE)

        assert set(sealed) == {'encrypted', 'iv', 'timestamp'}
        assert locate_envelope(sealed) == EnvelopePlacement.WHOLE
        assert self.decryptor.process(sealed, '/accounts') == payload

    def test_data_user(self):
        payload = {'success': True, 'message': 'ok', 'data': {'user': {'id': 1}, 'expiresIn': 900}}

        sealed = self.middleware.encrypt_response(payload, EnvelopePlacement.DATA_USER)

        assert sealed['encrypted'] is True
        assert sealed['data']['expiresIn'] == 900
        assert locate_envelope(sealed) == EnvelopePlacement.DATA_USER
        assert self.decryptor.process(sealed, '/auth/login')['data']['user'] == {'id': 1}

    def test_data(self):
        payload = {'success': True, 'data': {'id': 'u-1'}}

        sealed = self.middleware.encrypt_response(payload, EnvelopePlacement.DATA)

        assert sealed['encrypted'] is True
        assert locate_envelope(sealed) == EnvelopePlacement.DATA
        assert self.decryptor.process(sealed, '/users')['data'] == {'id': 'u-1'}

    def test_input_not_modified(self):
        payload = {'success': True, 'data': {'user': {'id': 1}}}

        self.middleware.encrypt_response(payload, EnvelopePlacement.DATA_USER)

        assert payload == {'success': True, 'data': {'user': {'id': 1}}}

    def test_none_placement(self):
        payload = {'status': 'ok'}
        assert self.middleware.encrypt_response(payload, EnvelopePlacement.NONE) == payload

    def test_placement_must_fit(self):
        with pytest.raises(ValidationError, match="data.user"):
            self.middleware.encrypt_response({'data': {'id': 1}}, EnvelopePlacement.DATA_USER)

        with pytest.raises(ValidationError, match="no data member"):
            self.middleware.encrypt_response({'success': True}, EnvelopePlacement.DATA)
