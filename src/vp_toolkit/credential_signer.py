"""
Verifiable Credential signer.

Signs and verifies the single proof embedded in a credential. The signed
payload is the canonical serialization of the credential with its
``signatureValue`` absent.
"""

from __future__ import annotations

import logging

from vp_toolkit.crypt_util import CryptUtil
from vp_toolkit.models import VerifiableCredential

logger = logging.getLogger(__name__)


class VerifiableCredentialSigner:
    """Produces and checks credential proofs through a ``CryptUtil``."""

    def __init__(self, crypt_util: CryptUtil) -> None:
        self._crypt_util = crypt_util

    @property
    def signature_type(self) -> str:
        """Proof type written by this signer, e.g. ``secp256k1Signature2019``."""
        return self._crypt_util.algorithm_name + "Signature2019"

    @property
    def crypt_util(self) -> CryptUtil:
        return self._crypt_util

    def sign_verifiable_credential(
        self,
        credential: VerifiableCredential,
        account_id: int,
        key_id: int,
    ) -> str:
        """Sign the credential and return the signature value.

        The key is selected by ``account_id`` and ``key_id``; products that
        sign with a single key pass 0 for both.

        Args:
            credential: Credential carrying its proof skeleton.
            account_id: Account index of the signing key.
            key_id: Key index of the signing key.

        Returns:
            The signature value to store in ``proof.signatureValue``.
        """
        payload = credential.without_signatures().serialize()
        signature = self._crypt_util.sign_payload(account_id, key_id, payload)
        logger.debug("Signed credential %s with key %s/%s", credential.id, account_id, key_id)
        return signature

    def verify_verifiable_credential(self, credential: VerifiableCredential) -> bool:
        """Verify the credential's proof against its verification method.

        Returns:
            True if the signature matches, False otherwise.
        """
        proof = credential.proof
        if proof.signature_value is None:
            logger.debug("Credential %s has no signatureValue", credential.id)
            return False

        payload = credential.without_signatures().serialize()
        valid = self._crypt_util.verify_payload(
            payload, proof.verification_method, proof.signature_value
        )
        if not valid:
            logger.debug(
                "Invalid signature on credential %s for %s",
                credential.id,
                proof.verification_method,
            )
        return valid
