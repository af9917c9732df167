"""
Verifiable Presentation signer.

A presentation carries a proof set: one proof per requested key, in request
order. Every proof in the set signs the same payload, the presentation
serialized with all of its proof skeletons and no ``signatureValue`` at all.
Proofs are therefore independent of each other; proof chains (later proofs
signing earlier signatures) are not supported.

See https://w3c-dvcg.github.io/ld-proofs/#proof-sets
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vp_toolkit.credential_signer import VerifiableCredentialSigner
from vp_toolkit.crypt_util import CryptUtil
from vp_toolkit.models import KeyReference, Proof, VerifiablePresentation, utc_now

logger = logging.getLogger(__name__)


class VerifiablePresentationSigner:
    """Generates and verifies presentation proof sets."""

    def __init__(
        self,
        crypt_util: CryptUtil,
        credential_signer: VerifiableCredentialSigner,
    ) -> None:
        """Initialize the signer.

        Args:
            crypt_util: Key primitive used for the presentation proofs.
            credential_signer: Used to check embedded credentials when
                ``verify_credentials`` is requested.
        """
        self._crypt_util = crypt_util
        self._credential_signer = credential_signer

    @property
    def signature_type(self) -> str:
        return self._crypt_util.algorithm_name + "Signature2019"

    @property
    def crypt_util(self) -> CryptUtil:
        return self._crypt_util

    def generate_proofs(
        self,
        params: VerifiablePresentation | Mapping[str, Any],
        keys: Sequence[KeyReference | tuple[int, int]],
        correspondence_id: str | None = None,
    ) -> list[Proof]:
        """Generate a signed proof set for a presentation.

        Any proof already present in ``params`` is replaced; ``params`` itself
        is not modified.

        Args:
            params: Presentation fields (or a presentation) to prove ownership over.
            keys: Account and key indices, one proof per entry, in order.
            correspondence_id: Optional value stored as ``nonce`` on every proof.

        Returns:
            The signed proofs, in the same order as ``keys``.

        Raises:
            ValueError: If no keys are given.
        """
        if not keys:
            raise ValueError("At least one key reference is required to sign a presentation")

        references = [KeyReference(*key) for key in keys]
        created = utc_now()
        skeletons = [
            Proof(
                type=self.signature_type,
                created=created,
                verification_method=self._crypt_util.derive_public_key(
                    ref.account_id, ref.key_id
                ),
                nonce=correspondence_id,
            )
            for ref in references
        ]

        if isinstance(params, VerifiablePresentation):
            unsigned = params.with_proof(skeletons)
        else:
            unsigned = VerifiablePresentation.from_dict({**params, "proof": skeletons})
        payload = unsigned.serialize()

        proofs: list[Proof] = []
        for ref, skeleton in zip(references, skeletons):
            signature = self._crypt_util.sign_payload(ref.account_id, ref.key_id, payload)
            proofs.append(skeleton.with_signature(signature))
            logger.debug(
                "Generated presentation proof %d with key %s/%s",
                len(proofs) - 1,
                ref.account_id,
                ref.key_id,
            )
        return proofs

    def verify_verifiable_presentation(
        self,
        presentation: VerifiablePresentation,
        verify_credentials: bool = False,
    ) -> bool:
        """Verify every proof in the presentation's proof set.

        Args:
            presentation: The signed presentation.
            verify_credentials: Also verify the proof of every embedded credential.

        Returns:
            True only if every proof verifies.
        """
        payload = presentation.without_signatures().serialize()

        for index, proof in enumerate(presentation.proof):
            if proof.signature_value is None:
                logger.debug("Presentation proof %d has no signatureValue", index)
                return False
            if not self._crypt_util.verify_payload(
                payload, proof.verification_method, proof.signature_value
            ):
                logger.debug(
                    "Invalid presentation proof %d for %s", index, proof.verification_method
                )
                return False

        if verify_credentials:
            for credential in presentation.verifiable_credential:
                if not self._credential_signer.verify_verifiable_credential(credential):
                    return False

        return True
