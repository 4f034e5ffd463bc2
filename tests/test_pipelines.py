"""
Unit tests for the outbound and inbound envelope pipelines
"""

import copy
import logging

import pytest

from securebank_sdk.envelope import (
    EnvelopeCodec,
    EnvelopePlacement,
    DecodeOutcome,
    OutboundCall,
    RequestEncryptor,
    ResponseDecryptor,
    ENCRYPTED_HEADER,
    locate_envelope,
)
from securebank_sdk.exceptions import (
    CorruptCiphertextError,
    MalformedEnvelopeError,
    StaleEnvelopeError,
)

from conftest import TEST_KEY


class TestRequestEncryptor:
    """Test outbound request preparation"""

    def setup_method(self):
        """Setup test fixtures"""
        self.codec = EnvelopeCodec(TEST_KEY)
        self.encryptor = RequestEncryptor(self.codec)

    def test_sensitive_json_body(self):
        """Sensitive bodies are replaced by an envelope and the header is set"""
        call = OutboundCall('POST', '/transfers', json={'amount': 250, 'to': 'ACC-9'})

        prepared = self.encryptor.prepare(call)

        assert prepared.headers[ENCRYPTED_HEADER] == 'true'
        assert prepared.encrypted and prepared.sensitive
        assert set(prepared.json) == {'encrypted', 'iv', 'timestamp'}
        assert self.codec.decrypt(prepared.json) == {'amount': 250, 'to': 'ACC-9'}

    def test_input_call_untouched(self):
        """The caller's call object is never modified"""
        call = OutboundCall('POST', '/transfers', headers={'x-request-id': 'abc'}, json={'amount': 1})
        snapshot = copy.deepcopy(call)

        self.encryptor.prepare(call)

        assert call == snapshot

    def test_reprepare_gets_fresh_iv(self):
        """Preparing the same call twice gives two different envelopes"""
        call = OutboundCall('POST', '/transfers', json={'amount': 1})

        first = self.encryptor.prepare(call)
        second = self.encryptor.prepare(call)

        assert first.json['iv'] != second.json['iv']

    def test_bodyless_sensitive_call(self):
        """A sensitive GET only carries the header"""
        prepared = self.encryptor.prepare(OutboundCall('GET', '/accounts'))

        assert prepared.headers[ENCRYPTED_HEADER] == 'true'
        assert prepared.sensitive and not prepared.encrypted
        assert prepared.json is None

    def test_non_sensitive_call(self):
        """Non-sensitive calls go out unchanged"""
        call = OutboundCall('POST', '/chat', json={'message': 'hi'})

        prepared = self.encryptor.prepare(call)

        assert ENCRYPTED_HEADER not in prepared.headers
        assert prepared.json == {'message': 'hi'}
        assert not prepared.sensitive

    def test_multipart_is_never_sealed(self):
        """Multipart uploads keep their body even on sensitive paths"""
        files = {'file': ('statement.pdf', b'%PDF-1.4', 'application/pdf')}
        call = OutboundCall('POST', '/accounts/1/documents', json={'label': 'May'}, files=files)

        prepared = self.encryptor.prepare(call)

        assert prepared.headers[ENCRYPTED_HEADER] == 'true'
        assert prepared.json == {'label': 'May'}
        assert prepared.files is files
        assert not prepared.encrypted


class TestResponseDecryptor:
    """Test inbound envelope location and decryption"""

    def setup_method(self):
        """Setup test fixtures"""
        self.codec = EnvelopeCodec(TEST_KEY)
        self.decryptor = ResponseDecryptor(self.codec)

    def seal(self, value):
        return self.codec.encrypt(value).to_dict()

    def test_whole_payload(self):
        """A whole-payload envelope is replaced by its plaintext"""
        payload = self.seal({'success': True, 'data': {'accounts': [1, 2]}})

        result = self.decryptor.decode(payload, '/accounts')

        assert result.outcome == DecodeOutcome.DECRYPTED
        assert result.placement == EnvelopePlacement.WHOLE
        assert result.payload == {'success': True, 'data': {'accounts': [1, 2]}}

    def test_data_user(self):
        """An envelope at data.user is spliced back in place"""
        payload = {'success': True, 'encrypted': True, 'data': {'user': self.seal({'id': 7}), 'token': 't'}}

        result = self.decryptor.decode(payload, '/auth/login')

        assert result.placement == EnvelopePlacement.DATA_USER
        assert result.payload == {'success': True, 'encrypted': True, 'data': {'user': {'id': 7}, 'token': 't'}}

    def test_data(self):
        """An envelope at data is spliced back in place"""
        payload = {'success': True, 'encrypted': True, 'data': self.seal({'id': 'u-1'})}

        result = self.decryptor.decode(payload, '/users/register')

        assert result.placement == EnvelopePlacement.DATA
        assert result.payload['data'] == {'id': 'u-1'}
        assert result.payload['success'] is True

    def test_data_user_wins_over_data(self):
        """When data is envelope-shaped and holds a user envelope, data.user is decrypted"""
        data = dict(self.seal("outer"), user=self.seal({'id': 1}))
        payload = {'data': data}

        assert locate_envelope(payload) == EnvelopePlacement.DATA_USER
        result = self.decryptor.decode(payload, '/users')
        assert result.payload['data']['user'] == {'id': 1}

    def test_whole_wins_over_nested(self):
        """A top-level envelope is decrypted even when data.user also holds one"""
        payload = dict(self.seal({'success': True, 'data': {'id': 1}}), data={'user': self.seal({'id': 2})})

        assert locate_envelope(payload) == EnvelopePlacement.WHOLE
        result = self.decryptor.decode(payload, '/users')
        assert result.placement == EnvelopePlacement.WHOLE
        assert result.payload == {'success': True, 'data': {'id': 1}}

    def test_empty_ciphertext_is_not_an_envelope(self):
        """An empty encrypted field passes through instead of failing"""
        payload = {'success': True, 'encrypted': '', 'iv': '', 'data': {'balance': 5}}

        result = self.decryptor.decode(payload, '/accounts')

        assert result.outcome == DecodeOutcome.PLAINTEXT_PASSTHROUGH
        assert result.payload is payload

    def test_encrypted_true_marker_is_not_an_envelope(self):
        """A boolean encrypted marker alone does not trigger decryption"""
        payload = {'success': True, 'encrypted': True, 'data': {'balance': 5}}

        result = self.decryptor.decode(payload, '/accounts')

        assert result.outcome == DecodeOutcome.PLAINTEXT_PASSTHROUGH
        assert result.payload is payload

    def test_non_sensitive_path_passthrough(self):
        """Envelopes on non-sensitive paths are left alone"""
        payload = self.seal({'x': 1})

        result = self.decryptor.decode(payload, '/health')

        assert result.outcome == DecodeOutcome.PLAINTEXT_PASSTHROUGH
        assert result.payload == payload

    def test_upload_responses_are_decrypted(self):
        """Upload responses are inbound-sensitive"""
        payload = {'success': True, 'data': self.seal({'documentId': 'd1'})}

        assert self.decryptor.process(payload, '/uploads')['data'] == {'documentId': 'd1'}

    def test_payload_never_mutated(self):
        """Decoding leaves the input payload untouched"""
        payload = {'success': True, 'data': {'user': self.seal({'id': 7})}}
        snapshot = copy.deepcopy(payload)

        self.decryptor.decode(payload, '/auth/verify')

        assert payload == snapshot

    def test_decode_error_is_tagged(self):
        """A broken envelope comes back as DECODE_ERROR with the original payload"""
        payload = {'data': {'encrypted': 'AAAA', 'iv': 'short', 'timestamp': 1}}

        result = self.decryptor.decode(payload, '/accounts')

        assert result.outcome == DecodeOutcome.DECODE_ERROR
        assert result.placement == EnvelopePlacement.DATA
        assert isinstance(result.error, MalformedEnvelopeError)
        assert result.payload is payload

        with pytest.raises(MalformedEnvelopeError):
            self.decryptor.process(payload, '/accounts')

    def test_stale_envelope_logged_as_security_event(self, caplog):
        """Stale envelopes go to the security logger"""
        clock_now = [1_700_000_000_000]
        codec = EnvelopeCodec(TEST_KEY, clock=lambda: clock_now[0])
        decryptor = ResponseDecryptor(codec)
        payload = codec.encrypt({'a': 1}).to_dict()
        clock_now[0] += 10 * 60 * 1000

        with caplog.at_level(logging.WARNING, logger="securebank_sdk.security"):
            result = decryptor.decode(payload, '/transactions')

        assert isinstance(result.error, StaleEnvelopeError)
        records = [r for r in caplog.records if r.name == "securebank_sdk.security"]
        assert len(records) == 1
        assert payload['iv'] not in records[0].getMessage()
        assert payload['encrypted'] not in records[0].getMessage()

    def test_corrupt_envelope(self):
        """Tampered ciphertext is reported as corrupt"""
        envelope = self.seal({'a': 1})
        other = EnvelopeCodec(b"abcdefghijklmnopqrstuvwxyz012345").encrypt({'a': 1}).to_dict()
        tampered = dict(envelope, encrypted=other['encrypted'], iv=other['iv'])

        result = self.decryptor.decode(tampered, '/accounts')

        assert result.outcome == DecodeOutcome.DECODE_ERROR
        assert isinstance(result.error, CorruptCiphertextError)
