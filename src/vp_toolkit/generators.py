"""
Generators for signed documents.

Each generator stamps unsigned document fields with a proof skeleton, lets
the matching signer sign it and returns the assembled document. Caller
supplied ``params`` are never modified.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from vp_toolkit.challenge_request_signer import ChallengeRequestSigner
from vp_toolkit.credential_signer import VerifiableCredentialSigner
from vp_toolkit.models import (
    ChallengeRequest,
    KeyReference,
    Proof,
    VerifiableCredential,
    VerifiablePresentation,
    utc_now,
)
from vp_toolkit.presentation_signer import VerifiablePresentationSigner


class VerifiableCredentialGenerator:
    def __init__(self, signer: VerifiableCredentialSigner) -> None:
        self._signer = signer

    def generate_verifiable_credential(
        self,
        params: Mapping[str, Any],
        account_id: int,
        key_id: int,
        nonce: str | None = None,
    ) -> VerifiableCredential:
        """Generate a signed Verifiable Credential.

        Args:
            params: Credential fields without a proof.
            account_id: Account index of the issuing key (0 for a single-key product).
            key_id: Key index of the issuing key (0 for a single-key product).
            nonce: Optional value stored as ``proof.nonce``.

        Returns:
            The credential with a signed proof.
        """
        proof = Proof(
            type=self._signer.signature_type,
            created=utc_now(),
            verification_method=self._signer.crypt_util.derive_public_key(account_id, key_id),
            nonce=nonce,
        )
        credential = VerifiableCredential.from_dict({**params, "proof": proof})
        signature = self._signer.sign_verifiable_credential(credential, account_id, key_id)
        return credential.with_proof(proof.with_signature(signature))


class VerifiablePresentationGenerator:
    def __init__(self, signer: VerifiablePresentationSigner) -> None:
        self._signer = signer

    def generate_verifiable_presentation(
        self,
        params: Mapping[str, Any],
        keys: Sequence[KeyReference | tuple[int, int]],
        correspondence_id: str | None = None,
    ) -> VerifiablePresentation:
        """Generate a signed Verifiable Presentation.

        One ownership proof is added per key reference, forming a proof set.
        If a single global key is used, pass it once. Any proof in ``params``
        is replaced.

        Args:
            params: Presentation fields; embedded credentials keep their proofs.
            keys: Account and key indices used to prove ownership.
            correspondence_id: Optional value stored as ``nonce`` on each proof.

        Returns:
            The presentation with its signed proof set.
        """
        proofs = self._signer.generate_proofs(params, keys, correspondence_id)
        return VerifiablePresentation.from_dict({**params, "proof": proofs})


class ChallengeRequestGenerator:
    def __init__(self, signer: ChallengeRequestSigner) -> None:
        self._signer = signer

    def generate_challenge_request(
        self,
        params: Mapping[str, Any],
        account_id: int,
        key_id: int,
    ) -> ChallengeRequest:
        """Generate a signed Challenge Request.

        A ``correspondenceId`` is generated when ``params`` has none.

        Args:
            params: Challenge request fields without a proof.
            account_id: Account index of the signing key.
            key_id: Key index of the signing key.

        Returns:
            The challenge request with a signed proof.
        """
        proof = Proof(
            type=self._signer.signature_type,
            created=utc_now(),
            verification_method=self._signer.crypt_util.derive_public_key(account_id, key_id),
        )
        request = ChallengeRequest.from_dict({**params, "proof": proof})
        signature = self._signer.sign_challenge_request(request, account_id, key_id)
        return request.with_proof(proof.with_signature(signature))
