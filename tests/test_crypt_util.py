"""Tests for the secp256k1 key primitive."""

import re

import pytest

from vp_toolkit import CryptUtil, CryptUtilError, LocalCryptUtil

from conftest import FORGED_SIGNATURE, HOLDER_MASTER_KEY, ISSUER_MASTER_KEY

HEX_128 = re.compile(r"^[0-9a-f]{128}$")


class TestKeyDerivation:
    """Tests for master key handling and child key derivation."""

    def test_implements_crypt_util_protocol(self):
        assert isinstance(LocalCryptUtil(), CryptUtil)
        assert LocalCryptUtil.algorithm_name == "secp256k1"

    def test_public_key_is_128_hex(self, crypt_util):
        assert HEX_128.match(crypt_util.derive_public_key(0, 0))

    def test_derivation_is_deterministic(self):
        first = LocalCryptUtil(HOLDER_MASTER_KEY)
        second = LocalCryptUtil(HOLDER_MASTER_KEY)
        assert first.derive_public_key(2, 5) == second.derive_public_key(2, 5)

    def test_indices_select_distinct_keys(self, crypt_util):
        keys = {
            crypt_util.derive_public_key(0, 0),
            crypt_util.derive_public_key(0, 1),
            crypt_util.derive_public_key(1, 0),
        }
        assert len(keys) == 3

    def test_master_keys_select_distinct_keys(self, crypt_util, issuer_crypt_util):
        assert crypt_util.derive_public_key(0, 0) != issuer_crypt_util.derive_public_key(0, 0)

    def test_create_and_export_master_key(self):
        crypt_util = LocalCryptUtil()
        master_key = crypt_util.create_master_private_key()
        assert re.match(r"^[0-9a-f]{64}$", master_key)
        assert crypt_util.export_master_private_key() == master_key

    def test_import_replaces_derived_keys(self):
        crypt_util = LocalCryptUtil(HOLDER_MASTER_KEY)
        holder_key = crypt_util.derive_public_key(0, 0)
        crypt_util.import_master_private_key(ISSUER_MASTER_KEY)
        assert crypt_util.derive_public_key(0, 0) != holder_key

    def test_import_rejects_non_hex(self):
        with pytest.raises(CryptUtilError):
            LocalCryptUtil("not-a-hex-key")

    def test_import_rejects_short_key(self):
        with pytest.raises(CryptUtilError):
            LocalCryptUtil("abcd")

    def test_derive_without_master_key(self):
        with pytest.raises(CryptUtilError, match="No master private key"):
            LocalCryptUtil().derive_public_key(0, 0)

    def test_export_without_master_key(self):
        with pytest.raises(CryptUtilError):
            LocalCryptUtil().export_master_private_key()

    @pytest.mark.parametrize("account_id,key_id", [(-1, 0), (0, -1), (True, 0), ("0", 0)])
    def test_invalid_indices(self, crypt_util, account_id, key_id):
        with pytest.raises(CryptUtilError, match="non-negative integers"):
            crypt_util.derive_public_key(account_id, key_id)


class TestSignAndVerify:
    """Tests for payload signatures."""

    def test_sign_then_verify(self, crypt_util):
        signature = crypt_util.sign_payload(0, 0, '{"hello":"world"}')
        assert HEX_128.match(signature)
        assert crypt_util.verify_payload(
            '{"hello":"world"}', crypt_util.derive_public_key(0, 0), signature
        )

    def test_verify_without_master_key(self, crypt_util):
        signature = crypt_util.sign_payload(0, 1, "payload")
        public_key = crypt_util.derive_public_key(0, 1)
        assert LocalCryptUtil().verify_payload("payload", public_key, signature) is True

    def test_verify_accepts_prefixed_public_key(self, crypt_util):
        signature = crypt_util.sign_payload(0, 0, "payload")
        public_key = "04" + crypt_util.derive_public_key(0, 0)
        assert crypt_util.verify_payload("payload", public_key, signature) is True

    def test_tampered_payload(self, crypt_util):
        signature = crypt_util.sign_payload(0, 0, "payload")
        assert crypt_util.verify_payload(
            "payload!", crypt_util.derive_public_key(0, 0), signature
        ) is False

    def test_wrong_public_key(self, crypt_util):
        signature = crypt_util.sign_payload(0, 0, "payload")
        assert crypt_util.verify_payload(
            "payload", crypt_util.derive_public_key(0, 1), signature
        ) is False

    def test_forged_signature(self, crypt_util):
        assert crypt_util.verify_payload(
            "payload", crypt_util.derive_public_key(0, 0), FORGED_SIGNATURE
        ) is False

    @pytest.mark.parametrize("signature", ["", "zz" * 64, "ab" * 63, "undefined"])
    def test_malformed_signature(self, crypt_util, signature):
        assert crypt_util.verify_payload(
            "payload", crypt_util.derive_public_key(0, 0), signature
        ) is False

    @pytest.mark.parametrize("public_key", ["00" * 64, "abcd", "not-hex"])
    def test_malformed_public_key(self, crypt_util, public_key):
        signature = crypt_util.sign_payload(0, 0, "payload")
        assert crypt_util.verify_payload("payload", public_key, signature) is False

    def test_sign_without_master_key(self):
        with pytest.raises(CryptUtilError):
            LocalCryptUtil().sign_payload(0, 0, "payload")
