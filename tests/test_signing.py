"""
Unit tests for RSA payload signing and verification.

Tests:
- Signing: canonical bytes -> RSASSA-PKCS1-v1_5/SHA-256 -> base64
- Verification: valid signature passes; tampered data, wrong key and
  malformed signatures return False
- Key failures raise typed errors
- PayloadSigner facade with plain and passphrase-protected keys
"""

import base64
from concurrent.futures import ThreadPoolExecutor

import pytest

from novapay.errors import CanonicalizationError, InvalidKeyError, WrongPassphraseError
from novapay.keygen import decrypt_private_key, encrypt_private_key
from novapay.keys import KeyMaterial, KeyRole, load_private_key, load_public_key
from novapay.signer import PayloadSigner
from novapay.utils import signing
from novapay.utils.canonical_json import SCHEME_JSON
from novapay.utils.signing import DEFAULT_PROFILE, SigningProfile

@pytest.fixture
def private_material(key_pair):
    return load_private_key(key_pair.private_pem)


@pytest.fixture
def public_material(key_pair):
    return load_public_key(key_pair.public_pem)


class TestRSASigning:
    """Test signing of payloads."""

    def test_sign_rsa_produces_base64(self, private_material):
        """sign_rsa should return a base64-encoded signature."""
        sig = signing.sign_rsa({"amount": 100, "currency": "UAH"}, private_material)

        # Should be base64 string
        assert isinstance(sig, str)
        decoded = base64.b64decode(sig, validate=True)
        # 2048-bit RSA produces 256 bytes
        assert len(decoded) == 256

    def test_repeated_signing_identical(self, private_material, payment_payload):
        """PKCS#1 v1.5 is deterministic: same payload, same signature."""
        sig1 = signing.sign_rsa(payment_payload, private_material)
        sig2 = signing.sign_rsa(payment_payload, private_material)

        assert sig1 == sig2

    def test_reordered_keys_sign_identically(self, private_material):
        """{"amount", "currency"} in either order yields the same signature."""
        sig1 = signing.sign_rsa({"amount": 100, "currency": "UAH"}, private_material)
        sig2 = signing.sign_rsa({"currency": "UAH", "amount": 100}, private_material)

        assert sig1 == sig2

    def test_reserved_field_does_not_affect_signature(self, private_material):
        """A payload carrying x-sign signs like the same payload without it."""
        sig1 = signing.sign_rsa({"amount": 100, "x-sign": "ignored"}, private_material)
        sig2 = signing.sign_rsa({"amount": 100}, private_material)

        assert sig1 == sig2

    def test_different_data_different_signature(self, private_material):
        sig1 = signing.sign_rsa({"amount": 100}, private_material)
        sig2 = signing.sign_rsa({"amount": 200}, private_material)

        assert sig1 != sig2

    def test_public_material_cannot_sign(self, public_material):
        with pytest.raises(InvalidKeyError):
            signing.sign_rsa({"amount": 100}, public_material)

    def test_signature_payload_uses_profile_scheme(self):
        payload = {"b": 1, "a": True}

        assert signing.signature_payload(payload) == b"a=true&b=1"
        assert signing.signature_payload(payload, SigningProfile(SCHEME_JSON, "sha256")) == b'{"a":true,"b":1}'


class TestRSAVerification:
    """Test verification of signed payloads."""

    def test_verify_valid_signature(self, private_material, public_material, payment_payload):
        """Verify valid signature passes."""
        sig = signing.sign_rsa(payment_payload, private_material)

        assert signing.verify_rsa(payment_payload, sig, public_material) is True

    def test_verify_payload_still_holding_x_sign(self, private_material, public_material):
        """Callbacks may echo the signature in the body; it is ignored."""
        payload = {"session_id": "s-1", "status": "paid"}
        sig = signing.sign_rsa(payload, private_material)
        payload["x-sign"] = sig

        assert signing.verify_rsa(payload, sig, public_material) is True

    @pytest.mark.parametrize("field, value", [
        ("amount", 1000.5),
        ("currency", "USD"),
        ("use_hold", True),
        ("description", "gift"),
        ("external_id", "order-43"),
    ])
    def test_tampered_field_fails(self, private_material, public_material, payment_payload, field, value):
        """Changing any single field must fail verification."""
        sig = signing.sign_rsa(payment_payload, private_material)

        tampered = dict(payment_payload)
        tampered[field] = value

        assert signing.verify_rsa(tampered, sig, public_material) is False

    def test_tampered_nested_field_fails(self, private_material, public_material, payment_payload):
        sig = signing.sign_rsa(payment_payload, private_material)

        tampered = dict(payment_payload)
        tampered["delivery"] = {"weight": 0.5, "city": "odessa"}

        assert signing.verify_rsa(tampered, sig, public_material) is False

    def test_added_field_fails(self, private_material, public_material, payment_payload):
        sig = signing.sign_rsa(payment_payload, private_material)

        tampered = dict(payment_payload)
        tampered["extra"] = "x"

        assert signing.verify_rsa(tampered, sig, public_material) is False

    def test_wrong_key_fails(self, private_material, other_key_pair, payment_payload):
        """Verifying with an unrelated public key must fail."""
        sig = signing.sign_rsa(payment_payload, private_material)
        wrong_public = load_public_key(other_key_pair.public_pem)

        assert signing.verify_rsa(payment_payload, sig, wrong_public) is False

    @pytest.mark.parametrize("bad_signature", [
        "",
        "not-valid-base64!!!",
        base64.b64encode(b"invalid_signature_data").decode("ascii"),
        base64.b64encode(b"\x00" * 256).decode("ascii"),
    ])
    def test_malformed_signature_returns_false(self, public_material, bad_signature):
        """Malformed signatures must fail gracefully, never raise."""
        assert signing.verify_rsa({"amount": 100}, bad_signature, public_material) is False

    def test_malformed_public_key_raises(self):
        material = KeyMaterial(raw=b"invalid_public_key", role=KeyRole.PUBLIC)

        with pytest.raises(InvalidKeyError):
            signing.verify_rsa({"amount": 100}, "c2ln", material)

    def test_profiles_are_not_interchangeable(self, private_material, public_material):
        """A signature made under one profile does not verify under another."""
        json_profile = SigningProfile(SCHEME_JSON, "sha256")
        payload = {"amount": 100, "currency": "UAH"}

        sig = signing.sign_rsa(payload, private_material, json_profile)

        assert signing.verify_rsa(payload, sig, public_material, json_profile) is True
        assert signing.verify_rsa(payload, sig, public_material, DEFAULT_PROFILE) is False


class TestSigningProfile:

    def test_default_profile(self):
        assert DEFAULT_PROFILE.scheme == "sorted-pairs"
        assert DEFAULT_PROFILE.digest == "sha256"

    def test_unknown_digest_rejected(self):
        with pytest.raises(ValueError):
            SigningProfile("sorted-pairs", "md5")

    def test_unknown_scheme_rejected(self):
        with pytest.raises(CanonicalizationError):
            SigningProfile("xml", "sha256")


class TestPayloadSigner:
    """Test the signer bound to a merchant key pair."""

    def test_can_verify_own_signature(self, key_pair):
        signer = PayloadSigner(key_pair.private_pem, key_pair.public_pem)
        data = {"session_id": "test_session_123", "status": "paid", "amount": 250.0}

        sig = signer.create_signature(data)

        assert signer.verify_signature(data, sig) is True

    def test_encrypted_key_with_passphrase(self, encrypted_key_pair, key_passphrase):
        signer = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)
        data = {"merchant_id": "test_merchant", "amount": 100.5, "currency": "UAH"}

        sig = signer.create_signature(data)

        assert signer.verify_signature(data, sig) is True
        assert signer.create_signature(data) == sig

    def test_wrong_passphrase_raises(self, encrypted_key_pair):
        signer = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase="wrong_passphrase")

        with pytest.raises(WrongPassphraseError):
            signer.create_signature({"test": "data"})

    def test_missing_passphrase_raises(self, encrypted_key_pair):
        signer = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem)

        with pytest.raises(WrongPassphraseError):
            signer.create_signature({"test": "data"})

    def test_invalid_private_key_raises(self, key_pair):
        signer = PayloadSigner("invalid_private_key", key_pair.public_pem)

        with pytest.raises(InvalidKeyError):
            signer.create_signature({"test": "data"})

    def test_invalid_public_key_raises(self, key_pair):
        signer = PayloadSigner(key_pair.private_pem, "invalid_public_key")

        with pytest.raises(InvalidKeyError):
            signer.verify_signature({"test": "data"}, "test_signature")

    def test_validate_private_key(self, encrypted_key_pair, key_passphrase):
        good = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)
        bad = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase="wrong")

        assert good.validate_private_key() is True
        with pytest.raises(WrongPassphraseError):
            bad.validate_private_key()

    def test_is_private_key_encrypted(self, key_pair, encrypted_key_pair, key_passphrase):
        encrypted = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)
        plain = PayloadSigner(key_pair.private_pem, key_pair.public_pem)

        assert encrypted.is_private_key_encrypted() is True
        assert plain.is_private_key_encrypted() is False

        # Same answers once the keys have been loaded
        encrypted.validate_private_key()
        plain.validate_private_key()
        assert encrypted.is_private_key_encrypted() is True
        assert plain.is_private_key_encrypted() is False

    def test_create_test_signature(self, encrypted_key_pair, key_passphrase):
        signer = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)

        result = signer.create_test_signature()

        assert set(result) == {"data", "signature"}
        assert "timestamp" in result["data"]
        assert signer.verify_signature(result["data"], result["signature"]) is True

    def test_reencrypted_key_signs_identically(self, encrypted_key_pair, key_passphrase):
        """The same key under a different passphrase produces the same signature."""
        decrypted = decrypt_private_key(encrypted_key_pair.private_pem, key_passphrase)
        new_passphrase = "different_passphrase_123!"
        reencrypted = encrypt_private_key(decrypted.pem, new_passphrase)

        signer1 = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)
        signer2 = PayloadSigner(reencrypted.pem, encrypted_key_pair.public_pem, passphrase=new_passphrase)

        data = {"test": "data", "amount": 100}

        assert signer1.create_signature(data) == signer2.create_signature(data)


class TestConcurrentUse:
    """Test that shared key material and signers work across threads."""

    WORKERS = 16

    def _payloads(self):
        return [{"order": i, "amount": 100 + i, "currency": "UAH"} for i in range(self.WORKERS * 2)]

    def test_shared_key_material(self, private_material, public_material):
        payloads = self._payloads()
        expected = [signing.sign_rsa(p, private_material) for p in payloads]

        def sign_and_verify(payload):
            sig = signing.sign_rsa(payload, private_material)
            return sig, signing.verify_rsa(payload, sig, public_material)

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            results = list(pool.map(sign_and_verify, payloads))

        assert [sig for sig, _ in results] == expected
        assert all(ok for _, ok in results)

    def test_shared_payload_signer(self, encrypted_key_pair, key_passphrase):
        signer = PayloadSigner(encrypted_key_pair.private_pem, encrypted_key_pair.public_pem, passphrase=key_passphrase)
        payloads = self._payloads()
        expected = [signer.create_signature(p) for p in payloads]

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            signatures = list(pool.map(signer.create_signature, payloads))
            verified = list(pool.map(signer.verify_signature, payloads, signatures))

        assert signatures == expected
        assert all(verified)
