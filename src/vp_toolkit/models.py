"""
Document models for credentials, presentations and challenge requests.

Models are frozen dataclasses; changing a proof produces a new document
rather than mutating the old one. List fields are not copied on access, so
callers must not modify them in place. Only the modelled fields are part of
the canonical form: unknown top-level fields are dropped by ``from_dict`` and
are therefore not covered by any signature. Every model round-trips through
``to_dict``/``from_dict`` and ``serialize``/``parse`` without changing its
canonical serialization.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = frozenset({
    "id", "type", "issuer", "issuanceDate", "credentialSubject", "proof",
    "credentialStatus", "@context",
})
PRESENTATION_FIELDS = frozenset({"id", "type", "verifiableCredential", "proof", "@context"})
CHALLENGE_REQUEST_FIELDS = frozenset({
    "toAttest", "toVerify", "proof", "correspondenceId", "postEndpoint",
})


class ModelValidationError(ValueError):
    """Raised when a document is structurally invalid."""


class KeyReference(NamedTuple):
    """Account and key index of a derived keypair.

    Products that sign everything with a single key use ``KeyReference(0, 0)``.
    """

    account_id: int
    key_id: int

    @classmethod
    def parse(cls, value: str) -> KeyReference:
        """Parse ``"accountId:keyId"``, e.g. ``"0:3"``."""
        account_id, sep, key_id = value.partition(":")
        try:
            if not sep:
                raise ValueError(value)
            return cls(int(account_id), int(key_id))
        except ValueError as e:
            raise ModelValidationError(
                f"Invalid key reference {value!r}, expected ACCOUNT_ID:KEY_ID"
            ) from e


def canonicalize(data: Mapping[str, Any]) -> str:
    """Serialize to canonical JSON (sorted keys, no whitespace)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def format_timestamp(value: datetime) -> str:
    """Format as UTC ISO-8601 with milliseconds, e.g. ``2019-07-30T09:51:27.589Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Accept a datetime or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ModelValidationError(f"{field_name} must be an ISO-8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ModelValidationError(f"{field_name} is not a valid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    """Current UTC time truncated to the serialized (millisecond) precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _require(data: Mapping[str, Any], key: str, model: str) -> Any:
    if not isinstance(data, Mapping):
        raise ModelValidationError(f"{model} must be a JSON object")
    if data.get(key) is None:
        raise ModelValidationError(f"Missing {key} in {model}")
    return data[key]


def _log_unknown_fields(data: Any, known: frozenset[str], model: str) -> None:
    if not isinstance(data, Mapping):
        return
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        logger.debug("Dropping unsigned fields from %s: %s", model, ", ".join(unknown))


def _check_type_list(value: Any, required: str, model: str) -> None:
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ModelValidationError(f"{model} type must be a list of strings")
    if required not in value:
        raise ModelValidationError(f"{model} type must include '{required}'")


@dataclass(frozen=True)
class Proof:
    """Signature record attached to a document."""

    type: str
    created: datetime
    verification_method: str
    signature_value: str | None = None
    nonce: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise ModelValidationError("Proof type must be a non-empty string")
        if not isinstance(self.created, datetime):
            raise ModelValidationError("Proof created must be a datetime")
        if not isinstance(self.verification_method, str) or not self.verification_method:
            raise ModelValidationError("Proof verificationMethod must be a non-empty string")
        if self.signature_value is not None and not isinstance(self.signature_value, str):
            raise ModelValidationError("Proof signatureValue must be a string")
        if self.nonce is not None and not isinstance(self.nonce, str):
            raise ModelValidationError("Proof nonce must be a string")

    def with_signature(self, signature_value: str) -> Proof:
        return replace(self, signature_value=signature_value)

    def without_signature(self) -> Proof:
        return replace(self, signature_value=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "created": format_timestamp(self.created),
            "verificationMethod": self.verification_method,
        }
        if self.signature_value is not None:
            data["signatureValue"] = self.signature_value
        if self.nonce is not None:
            data["nonce"] = self.nonce
        return data

    @classmethod
    def from_dict(cls, data: Proof | Mapping[str, Any]) -> Proof:
        if isinstance(data, Proof):
            return data
        return cls(
            type=_require(data, "type", "proof"),
            created=parse_timestamp(_require(data, "created", "proof"), "proof.created"),
            verification_method=_require(data, "verificationMethod", "proof"),
            signature_value=data.get("signatureValue"),
            nonce=data.get("nonce"),
        )


class Document(ABC):
    """Canonical serialization shared by all signed documents."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def serialize(self) -> str:
        """Return the canonical JSON text of this document."""
        return canonicalize(self.to_dict())

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Any:
        raise NotImplementedError

    @classmethod
    def parse(cls, text: str) -> Any:
        """Parse a document from JSON text."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ModelValidationError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class VerifiableCredential(Document):
    """A single claim with exactly one proof."""

    type: list[str]
    issuer: str
    issuance_date: datetime
    credential_subject: dict[str, Any]
    proof: Proof
    id: str | None = None
    credential_status: dict[str, Any] | None = None
    context: list[str] | None = None

    def __post_init__(self) -> None:
        _check_type_list(self.type, "VerifiableCredential", "VerifiableCredential")
        if not isinstance(self.issuer, str) or not self.issuer:
            raise ModelValidationError("VerifiableCredential issuer must be a non-empty string")
        if not isinstance(self.issuance_date, datetime):
            raise ModelValidationError("VerifiableCredential issuanceDate must be a datetime")
        if not isinstance(self.credential_subject, Mapping):
            raise ModelValidationError("VerifiableCredential credentialSubject must be an object")
        if not isinstance(self.proof, Proof):
            raise ModelValidationError("VerifiableCredential proof must be a Proof")
        if self.credential_status is not None and not isinstance(self.credential_status, Mapping):
            raise ModelValidationError("VerifiableCredential credentialStatus must be an object")
        if self.context is not None and not isinstance(self.context, list):
            raise ModelValidationError("VerifiableCredential @context must be a list")

    def with_proof(self, proof: Proof) -> VerifiableCredential:
        return replace(self, proof=proof)

    def without_signatures(self) -> VerifiableCredential:
        return self.with_proof(self.proof.without_signature())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": list(self.type),
            "issuer": self.issuer,
            "issuanceDate": format_timestamp(self.issuance_date),
            "credentialSubject": copy.deepcopy(self.credential_subject),
            "proof": self.proof.to_dict(),
        }
        if self.id is not None:
            data["id"] = self.id
        if self.credential_status is not None:
            data["credentialStatus"] = copy.deepcopy(self.credential_status)
        if self.context is not None:
            data["@context"] = list(self.context)
        return data

    @classmethod
    def from_dict(
        cls, data: VerifiableCredential | Mapping[str, Any]
    ) -> VerifiableCredential:
        if isinstance(data, VerifiableCredential):
            return data
        _log_unknown_fields(data, CREDENTIAL_FIELDS, "VerifiableCredential")
        return cls(
            type=copy.deepcopy(_require(data, "type", "VerifiableCredential")),
            issuer=_require(data, "issuer", "VerifiableCredential"),
            issuance_date=parse_timestamp(
                _require(data, "issuanceDate", "VerifiableCredential"), "issuanceDate"
            ),
            credential_subject=copy.deepcopy(
                _require(data, "credentialSubject", "VerifiableCredential")
            ),
            proof=Proof.from_dict(_require(data, "proof", "VerifiableCredential")),
            id=data.get("id"),
            credential_status=copy.deepcopy(data.get("credentialStatus")),
            context=copy.deepcopy(data.get("@context")),
        )


@dataclass(frozen=True)
class VerifiablePresentation(Document):
    """Envelope of credentials with an ordered proof set."""

    type: list[str]
    verifiable_credential: list[VerifiableCredential]
    proof: list[Proof]
    id: str | None = None
    context: list[str] | None = None

    def __post_init__(self) -> None:
        _check_type_list(self.type, "VerifiablePresentation", "VerifiablePresentation")
        if not isinstance(self.verifiable_credential, list) or not self.verifiable_credential:
            raise ModelValidationError(
                "VerifiablePresentation must contain at least one verifiableCredential"
            )
        if not all(isinstance(vc, VerifiableCredential) for vc in self.verifiable_credential):
            raise ModelValidationError(
                "VerifiablePresentation verifiableCredential entries must be credentials"
            )
        if not isinstance(self.proof, list) or not self.proof:
            raise ModelValidationError("VerifiablePresentation must contain at least one proof")
        if not all(isinstance(p, Proof) for p in self.proof):
            raise ModelValidationError("VerifiablePresentation proof entries must be Proofs")
        if self.context is not None and not isinstance(self.context, list):
            raise ModelValidationError("VerifiablePresentation @context must be a list")

    def with_proof(self, proofs: Sequence[Proof]) -> VerifiablePresentation:
        return replace(self, proof=list(proofs))

    def without_signatures(self) -> VerifiablePresentation:
        """Clear every presentation-level signature; credential proofs are untouched."""
        return self.with_proof([p.without_signature() for p in self.proof])

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": list(self.type),
            "verifiableCredential": [vc.to_dict() for vc in self.verifiable_credential],
            "proof": [p.to_dict() for p in self.proof],
        }
        if self.id is not None:
            data["id"] = self.id
        if self.context is not None:
            data["@context"] = list(self.context)
        return data

    @classmethod
    def from_dict(
        cls, data: VerifiablePresentation | Mapping[str, Any]
    ) -> VerifiablePresentation:
        if isinstance(data, VerifiablePresentation):
            return data
        _log_unknown_fields(data, PRESENTATION_FIELDS, "VerifiablePresentation")
        credentials = _require(data, "verifiableCredential", "VerifiablePresentation")
        proofs = _require(data, "proof", "VerifiablePresentation")
        if not isinstance(credentials, list) or not isinstance(proofs, list):
            raise ModelValidationError(
                "VerifiablePresentation verifiableCredential and proof must be lists"
            )
        return cls(
            type=copy.deepcopy(_require(data, "type", "VerifiablePresentation")),
            verifiable_credential=[VerifiableCredential.from_dict(vc) for vc in credentials],
            proof=[Proof.from_dict(p) for p in proofs],
            id=data.get("id"),
            context=copy.deepcopy(data.get("@context")),
        )


def _check_predicates(items: Any, name: str) -> None:
    if not isinstance(items, list):
        raise ModelValidationError(f"ChallengeRequest {name} must be a list")
    for item in items:
        if not isinstance(item, Mapping) or not isinstance(item.get("predicate"), str):
            raise ModelValidationError(f"ChallengeRequest {name} entries need a predicate")
        issuers = item.get("allowedIssuers")
        if issuers is not None and (
            not isinstance(issuers, list) or not all(isinstance(i, str) for i in issuers)
        ):
            raise ModelValidationError(
                f"ChallengeRequest {name} allowedIssuers must be a list of strings"
            )


@dataclass(frozen=True)
class ChallengeRequest(Document):
    """Handshake asking a holder to attest or present credentials."""

    proof: Proof
    to_attest: list[dict[str, Any]] = field(default_factory=list)
    to_verify: list[dict[str, Any]] = field(default_factory=list)
    correspondence_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    post_endpoint: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.proof, Proof):
            raise ModelValidationError("ChallengeRequest proof must be a Proof")
        _check_predicates(self.to_attest, "toAttest")
        _check_predicates(self.to_verify, "toVerify")
        if not isinstance(self.correspondence_id, str) or not self.correspondence_id:
            raise ModelValidationError("ChallengeRequest correspondenceId must be a string")
        if self.post_endpoint is not None and not isinstance(self.post_endpoint, str):
            raise ModelValidationError("ChallengeRequest postEndpoint must be a string")

    def with_proof(self, proof: Proof) -> ChallengeRequest:
        return replace(self, proof=proof)

    def without_signatures(self) -> ChallengeRequest:
        return self.with_proof(self.proof.without_signature())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "toAttest": copy.deepcopy(self.to_attest),
            "toVerify": copy.deepcopy(self.to_verify),
            "proof": self.proof.to_dict(),
            "correspondenceId": self.correspondence_id,
        }
        if self.post_endpoint is not None:
            data["postEndpoint"] = self.post_endpoint
        return data

    @classmethod
    def from_dict(cls, data: ChallengeRequest | Mapping[str, Any]) -> ChallengeRequest:
        if isinstance(data, ChallengeRequest):
            return data
        _log_unknown_fields(data, CHALLENGE_REQUEST_FIELDS, "ChallengeRequest")
        kwargs: dict[str, Any] = {
            "proof": Proof.from_dict(_require(data, "proof", "ChallengeRequest")),
            "to_attest": copy.deepcopy(data.get("toAttest") or []),
            "to_verify": copy.deepcopy(data.get("toVerify") or []),
            "post_endpoint": data.get("postEndpoint"),
        }
        if data.get("correspondenceId") is not None:
            kwargs["correspondence_id"] = data["correspondenceId"]
        return cls(**kwargs)
