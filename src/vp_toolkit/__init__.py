"""
vp-toolkit - sign and verify Verifiable Credentials and Presentations.

Supports:
- secp256k1Signature2019 proofs over canonical JSON
- Proof sets on Verifiable Presentations (one proof per signing key)
- Signed Challenge Requests for holder/verifier handshakes
- Keys selected per signature by account and key index
"""

from vp_toolkit.challenge_request_signer import ChallengeRequestSigner
from vp_toolkit.credential_signer import VerifiableCredentialSigner
from vp_toolkit.crypt_util import CryptUtil, CryptUtilError, LocalCryptUtil
from vp_toolkit.generators import (
    ChallengeRequestGenerator,
    VerifiableCredentialGenerator,
    VerifiablePresentationGenerator,
)
from vp_toolkit.models import (
    ChallengeRequest,
    KeyReference,
    ModelValidationError,
    Proof,
    VerifiableCredential,
    VerifiablePresentation,
)
from vp_toolkit.presentation_signer import VerifiablePresentationSigner

__version__ = "0.1.0"

__all__ = [
    "ChallengeRequest",
    "ChallengeRequestGenerator",
    "ChallengeRequestSigner",
    "CryptUtil",
    "CryptUtilError",
    "KeyReference",
    "LocalCryptUtil",
    "ModelValidationError",
    "Proof",
    "VerifiableCredential",
    "VerifiableCredentialGenerator",
    "VerifiableCredentialSigner",
    "VerifiablePresentation",
    "VerifiablePresentationGenerator",
    "VerifiablePresentationSigner",
]
