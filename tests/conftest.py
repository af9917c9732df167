"""Shared fixtures for vp-toolkit tests."""

from datetime import datetime, timezone

import pytest

from vp_toolkit import (
    ChallengeRequestGenerator,
    ChallengeRequestSigner,
    LocalCryptUtil,
    VerifiableCredentialGenerator,
    VerifiableCredentialSigner,
    VerifiablePresentationGenerator,
    VerifiablePresentationSigner,
)

HOLDER_MASTER_KEY = "6f1d9a2c4b3e8f7a0c5d2e1b9a8f7c6d5e4f3a2b1c0d9e8f7a6b5c4d3e2f1a0b"
ISSUER_MASTER_KEY = "0a1b2c3d4e5f60718293a4b5c6d7e8f90a1b2c3d4e5f60718293a4b5c6d7e8f9"

# Syntactically valid but unrelated signature
FORGED_SIGNATURE = (
    "9d967a97e935a17245593c0a4cd5faefa0b5282b9c46e0b358b05571211ddc5c"
    "775b0aa34fa4fc324acf029de20abeb2c47c3c72aa806025d75b672dfd2e16e1"
)


@pytest.fixture
def crypt_util():
    """Holder key material."""
    return LocalCryptUtil(HOLDER_MASTER_KEY)


@pytest.fixture
def issuer_crypt_util():
    """Third-party issuer key material."""
    return LocalCryptUtil(ISSUER_MASTER_KEY)


@pytest.fixture
def vc_signer(crypt_util):
    return VerifiableCredentialSigner(crypt_util)


@pytest.fixture
def vp_signer(crypt_util, vc_signer):
    return VerifiablePresentationSigner(crypt_util, vc_signer)


@pytest.fixture
def challenge_signer(crypt_util):
    return ChallengeRequestSigner(crypt_util)


@pytest.fixture
def vc_generator(vc_signer):
    return VerifiableCredentialGenerator(vc_signer)


@pytest.fixture
def vp_generator(vp_signer):
    return VerifiablePresentationGenerator(vp_signer)


@pytest.fixture
def challenge_generator(challenge_signer):
    return ChallengeRequestGenerator(challenge_signer)


@pytest.fixture
def holder_did(crypt_util):
    return "did:key:" + crypt_util.derive_public_key(0, 0)[:40]


@pytest.fixture
def self_signed_vc_params(holder_did):
    """Params of a DID ownership credential the holder attests about itself."""
    return {
        "id": "did:protocol:address",
        "type": ["VerifiableCredential", "DidOwnership"],
        "issuer": holder_did,
        "issuanceDate": datetime(2019, 1, 1, 23, 34, 45, tzinfo=timezone.utc),
        "credentialSubject": {"id": holder_did},
        "credentialStatus": {"type": "vcStatusRegistry2019", "id": "0xc62CE673"},
    }


@pytest.fixture
def issuer_vc_params(holder_did):
    """Params of a credential issued to the holder by a third party."""
    return {
        "id": "did:protocol:address",
        "type": ["VerifiableCredential"],
        "issuer": "did:eth:0xc62CE67381C12615e0b88FF8dD001609926498b8",
        "issuanceDate": "2019-01-01T23:34:56.000Z",
        "credentialSubject": {"id": holder_did, "givenName": "John"},
        "credentialStatus": {"type": "vcStatusRegistry2019", "id": "0xc62CE673"},
        "@context": ["https://schema.org/givenName"],
    }


@pytest.fixture
def self_signed_vc(vc_generator, self_signed_vc_params):
    return vc_generator.generate_verifiable_credential(
        self_signed_vc_params, 0, 0, nonce="deebe007-ab09-4893-a3be-f47b465edd8c"
    )


@pytest.fixture
def issuer_vc(issuer_crypt_util, issuer_vc_params):
    generator = VerifiableCredentialGenerator(VerifiableCredentialSigner(issuer_crypt_util))
    return generator.generate_verifiable_credential(
        issuer_vc_params, 0, 0, nonce="62a7c7e6-b025-4e00-8956-c3859dacfe92"
    )


@pytest.fixture
def mixed_vp_params(self_signed_vc, issuer_vc):
    """Presentation with one self-attested and one issuer-attested credential."""
    return {
        "id": "urn:uuid:3978344f-8596-4c3a-a978-8fcaba3903c5",
        "type": ["VerifiablePresentation"],
        "verifiableCredential": [self_signed_vc, issuer_vc],
    }


@pytest.fixture
def self_signed_vp_params(self_signed_vc):
    return {
        "id": "urn:uuid:b6c9e11b-97ff-414f-99a2-e88cf4b6245e",
        "type": ["VerifiablePresentation"],
        "verifiableCredential": [self_signed_vc],
    }


@pytest.fixture
def challenge_params():
    return {
        "toAttest": [{"predicate": "https://schema.org/givenName"}],
        "toVerify": [
            {
                "predicate": "https://schema.org/familyName",
                "allowedIssuers": ["did:eth:0xc62CE67381C12615e0b88FF8dD001609926498b8"],
            }
        ],
        "correspondenceId": "a5ab6b8d-3b52-4c2c-9a2d-6d1bbd2c0f41",
        "postEndpoint": "https://example.com/challenge-response",
    }
