"""
Challenge Request signer.

Same protocol as the credential signer, applied to the single proof of a
challenge request.
"""

from __future__ import annotations

import logging

from vp_toolkit.crypt_util import CryptUtil
from vp_toolkit.models import ChallengeRequest

logger = logging.getLogger(__name__)


class ChallengeRequestSigner:
    """Produces and checks challenge request proofs."""

    def __init__(self, crypt_util: CryptUtil) -> None:
        self._crypt_util = crypt_util

    @property
    def signature_type(self) -> str:
        return self._crypt_util.algorithm_name + "Signature2019"

    @property
    def crypt_util(self) -> CryptUtil:
        return self._crypt_util

    def sign_challenge_request(
        self,
        request: ChallengeRequest,
        account_id: int,
        key_id: int,
    ) -> str:
        """Sign the challenge request and return the signature value.

        Use 0 for ``account_id`` and ``key_id`` when a single key signs
        everything.
        """
        payload = request.without_signatures().serialize()
        return self._crypt_util.sign_payload(account_id, key_id, payload)

    def verify_challenge_request(self, request: ChallengeRequest) -> bool:
        """Verify the challenge request's proof."""
        proof = request.proof
        if proof.signature_value is None:
            return False

        valid = self._crypt_util.verify_payload(
            request.without_signatures().serialize(),
            proof.verification_method,
            proof.signature_value,
        )
        if not valid:
            logger.debug(
                "Invalid signature on challenge request %s", request.correspondence_id
            )
        return valid
