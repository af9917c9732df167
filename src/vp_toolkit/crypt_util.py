"""
Key and signing primitives.

Defines the ``CryptUtil`` capability the signers depend on, and a local
secp256k1 implementation backed by the ``cryptography`` package.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

logger = logging.getLogger(__name__)

# Order of the secp256k1 group
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class CryptUtilError(Exception):
    """Raised when key material is missing or cannot be used."""


@runtime_checkable
class CryptUtil(Protocol):
    """Signing capability used by the signers and generators.

    Implementations must be safe for concurrent derivation if a single
    instance is shared between threads.
    """

    @property
    def algorithm_name(self) -> str: ...

    def derive_public_key(self, account_id: int, key_id: int) -> str: ...

    def sign_payload(self, account_id: int, key_id: int, payload: str) -> str: ...

    def verify_payload(self, payload: str, public_key: str, signature: str) -> bool: ...


class LocalCryptUtil:
    """secp256k1 keys derived locally from a single master private key.

    Child keys are derived with HMAC-SHA256 over ``"{account_id}/{key_id}"``.
    Public keys and signatures are hex encoded (``x || y`` and ``r || s``).
    """

    algorithm_name = "secp256k1"

    def __init__(self, master_private_key: str | None = None) -> None:
        """Initialize the crypt util.

        Args:
            master_private_key: Hex encoded master key. May be imported later;
                verification works without one.
        """
        self._master_key: bytes | None = None
        self._keys: dict[tuple[int, int], ec.EllipticCurvePrivateKey] = {}
        self._lock = threading.Lock()
        if master_private_key is not None:
            self.import_master_private_key(master_private_key)

    def create_master_private_key(self) -> str:
        """Generate, import and return a new random master key."""
        master_key = secrets.token_hex(32)
        self.import_master_private_key(master_key)
        return master_key

    def import_master_private_key(self, master_private_key: str) -> None:
        """Import a hex encoded master key, discarding derived keys."""
        try:
            key_bytes = bytes.fromhex(master_private_key)
        except ValueError as e:
            raise CryptUtilError("Master private key must be hex encoded") from e
        if len(key_bytes) < 16:
            raise CryptUtilError("Master private key must be at least 16 bytes")

        with self._lock:
            self._master_key = key_bytes
            self._keys.clear()

    def export_master_private_key(self) -> str:
        """Return the current master key as hex."""
        if self._master_key is None:
            raise CryptUtilError("No master private key imported")
        return self._master_key.hex()

    def derive_public_key(self, account_id: int, key_id: int) -> str:
        """Derive the hex public key for an account and key index."""
        public_numbers = self._private_key(account_id, key_id).public_key().public_numbers()
        return (
            public_numbers.x.to_bytes(32, byteorder="big")
            + public_numbers.y.to_bytes(32, byteorder="big")
        ).hex()

    def sign_payload(self, account_id: int, key_id: int, payload: str) -> str:
        """Sign a text payload with the derived key, returning ``r || s`` hex."""
        der_signature = self._private_key(account_id, key_id).sign(
            payload.encode("utf-8"),
            ec.ECDSA(hashes.SHA256()),
        )
        r, s = decode_dss_signature(der_signature)
        return (r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")).hex()

    def verify_payload(self, payload: str, public_key: str, signature: str) -> bool:
        """Verify a hex signature over a text payload.

        Returns False for any mismatch, including undecodable keys or signatures.
        """
        try:
            ec_public_key = self._load_public_key(public_key)
            signature_bytes = bytes.fromhex(signature)
        except ValueError as e:
            logger.debug("Rejecting undecodable key or signature: %s", e)
            return False

        if len(signature_bytes) != 64:
            return False

        r = int.from_bytes(signature_bytes[:32], byteorder="big")
        s = int.from_bytes(signature_bytes[32:], byteorder="big")
        try:
            ec_public_key.verify(
                encode_dss_signature(r, s),
                payload.encode("utf-8"),
                ec.ECDSA(hashes.SHA256()),
            )
        except InvalidSignature:
            return False
        return True

    def _private_key(self, account_id: int, key_id: int) -> ec.EllipticCurvePrivateKey:
        for index in (account_id, key_id):
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise CryptUtilError(f"Key indices must be non-negative integers, got {index!r}")

        with self._lock:
            if self._master_key is None:
                raise CryptUtilError("No master private key imported")

            cached = self._keys.get((account_id, key_id))
            if cached is not None:
                return cached

            private_key = ec.derive_private_key(
                self._derive_scalar(self._master_key, account_id, key_id),
                ec.SECP256K1(),
            )
            self._keys[(account_id, key_id)] = private_key
            return private_key

    @staticmethod
    def _derive_scalar(master_key: bytes, account_id: int, key_id: int) -> int:
        counter = 0
        while True:
            message = f"{account_id}/{key_id}".encode("ascii")
            if counter:
                message += f"/{counter}".encode("ascii")
            digest = hmac.new(master_key, message, hashlib.sha256).digest()
            scalar = int.from_bytes(digest, byteorder="big")
            # Scalar must lie in [1, n)
            if 0 < scalar < SECP256K1_ORDER:
                return scalar
            counter += 1

    @staticmethod
    def _load_public_key(public_key: str) -> ec.EllipticCurvePublicKey:
        key_bytes = bytes.fromhex(public_key)
        if len(key_bytes) == 64:
            key_bytes = b"\x04" + key_bytes
        if len(key_bytes) != 65 or key_bytes[0] != 4:
            raise ValueError(f"Unsupported public key length: {len(key_bytes)} bytes")
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), key_bytes)
