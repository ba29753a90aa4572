"""
Tests for provider keys and attestation signing.
"""

import json

from duckmesh.core.models import InferenceResult, ResultMetadata
from duckmesh.identity.attestation import (
    AttestationSigner,
    hash_result,
    verify_attestation,
)
from duckmesh.identity.keys import KeyManager, verify_signature
from duckmesh.verification.attestation import is_well_formed_attestation


def sample_result():
    return InferenceResult(
        output="The answer is 42.",
        metadata=ResultMetadata(tokens_used=6, execution_time=850, model_version="j2-mid-v1"),
    )


class TestKeyManager:
    """Tests for key generation and management."""

    def test_key_generation(self):
        km = KeyManager()
        assert len(km.public_key_bytes) == 32
        assert len(km.pubkey_hex) == 64
        assert len(km.key_id) == 16

    def test_different_keys_different_ids(self):
        assert KeyManager().key_id != KeyManager().key_id

    def test_sign_and_verify(self):
        km = KeyManager()
        data = b"test data to sign"

        signature = km.sign(data)

        assert len(signature) == 64
        assert verify_signature(km.pubkey_hex, signature, data)
        assert not verify_signature(km.pubkey_hex, signature, b"wrong data")

    def test_malformed_pubkey(self):
        km = KeyManager()
        assert not verify_signature("zz", km.sign(b"x"), b"x")

    def test_save_and_load(self, temp_dir):
        km1 = KeyManager()
        km1.save(temp_dir)

        assert (temp_dir / "private_key.pem").exists()
        identity = json.loads((temp_dir / "identity.json").read_text())
        assert identity == {"keyId": km1.key_id, "pubkey": km1.pubkey_hex}

        km2 = KeyManager.load(temp_dir)
        assert km2.pubkey_hex == km1.pubkey_hex
        assert verify_signature(km1.pubkey_hex, km2.sign(b"data"), b"data")


class TestAttestationSigner:
    """Tests for provider-side attestation."""

    def test_signature_passes_format_check(self, sample_spec):
        signer = AttestationSigner(KeyManager())

        attested = signer.attest(sample_result(), sample_spec)

        assert len(attested.signature) == 128
        assert is_well_formed_attestation(attested.signature)
        assert attested.output == sample_result().output

    def test_payload_binds_result_and_spec(self, sample_spec):
        signer = AttestationSigner(KeyManager())
        payload = signer.build_payload(sample_result(), sample_spec, timestamp_ms=1000)

        assert payload.result_hash == hash_result(sample_result())
        assert payload.spec_hash == sample_spec.content_hash()
        assert payload.timestamp == 1000
        assert payload.model_version == "j2-mid-v1"
        assert payload.execution_time == 850

    def test_verify_attestation(self, sample_spec):
        km = KeyManager()
        signer = AttestationSigner(km)
        payload = signer.build_payload(sample_result(), sample_spec, timestamp_ms=1000)
        signature = signer.sign(payload)

        assert verify_attestation(km.pubkey_hex, payload, signature)

    def test_tampered_payload_rejected(self, sample_spec):
        km = KeyManager()
        signer = AttestationSigner(km)
        payload = signer.build_payload(sample_result(), sample_spec, timestamp_ms=1000)
        signature = signer.sign(payload)
        other = signer.build_payload(sample_result(), sample_spec, timestamp_ms=2000)

        assert not verify_attestation(km.pubkey_hex, other, signature)
        assert not verify_attestation(KeyManager().pubkey_hex, payload, signature)
        assert not verify_attestation(km.pubkey_hex, payload, "not-hex")

    def test_canonical_bytes_are_sorted(self, sample_spec):
        payload = AttestationSigner(KeyManager()).build_payload(
            sample_result(), sample_spec, timestamp_ms=1
        )
        keys = list(json.loads(payload.canonical_bytes()))
        assert keys == sorted(keys)
