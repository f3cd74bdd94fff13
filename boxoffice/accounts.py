"""Dev-network accounts.

Signers are secp256k1 key pairs derived deterministically from a mnemonic, so
``accounts[0]`` is the same address on every run. An address is ``0x`` plus the
last 20 bytes of SHA3-256 over the uncompressed public point (without its
``0x04`` prefix). Transactions are signed with ECDSA over SHA-256.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, List

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from boxoffice.hardening import Validators

ZERO_ADDRESS = "0x" + "00" * 20

# Order of the secp256k1 group.
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def to_address(value: Any, field_name: str = "address") -> str:
    """Validate an address and return its canonical lower-case form."""
    return Validators.validate_address(value, field_name).unwrap()


def is_zero_address(value: str) -> bool:
    return to_address(value) == ZERO_ADDRESS


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed SEC1 encoding (65 bytes, ``0x04`` prefix)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def address_from_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    digest = hashlib.sha3_256(public_key_bytes(public_key)[1:]).hexdigest()
    return "0x" + digest[-40:]


def contract_address(deployer: str, nonce: int) -> str:
    """Address of the contract ``deployer`` creates with transaction ``nonce``."""
    seed = f"{to_address(deployer)}:{nonce}".encode("utf-8")
    return "0x" + hashlib.sha3_256(seed).hexdigest()[-40:]


def _derive_scalar(mnemonic: str, index: int) -> int:
    material = f"{' '.join(mnemonic.split())}/{index}".encode("utf-8")
    counter = 0
    while True:
        digest = hashlib.sha256(material + counter.to_bytes(4, "big")).digest()
        scalar = int.from_bytes(digest, "big")
        if 0 < scalar < SECP256K1_ORDER:
            return scalar
        counter += 1


@dataclass(frozen=True)
class Signer:
    """A key pair able to sign transactions on the dev network."""
    private_key: ec.EllipticCurvePrivateKey = field(repr=False)
    address: str = ""
    index: int = -1

    @classmethod
    def from_private_key(cls, private_key: ec.EllipticCurvePrivateKey, index: int = -1) -> "Signer":
        return cls(
            private_key=private_key,
            address=address_from_public_key(private_key.public_key()),
            index=index,
        )

    @classmethod
    def generate(cls) -> "Signer":
        """Random signer, not reproducible across runs."""
        return cls.from_private_key(ec.generate_private_key(ec.SECP256K1()))

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self.private_key.public_key()

    def sign(self, payload: bytes) -> bytes:
        """DER-encoded ECDSA signature over ``payload``."""
        return self.private_key.sign(payload, ec.ECDSA(hashes.SHA256()))

    def __str__(self) -> str:
        return self.address


def verify_signature(public_key: ec.EllipticCurvePublicKey, payload: bytes, signature: bytes) -> bool:
    try:
        public_key.verify(signature, payload, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True


def derive_signers(mnemonic: str, count: int) -> List[Signer]:
    """Deterministic signers ``0..count-1`` for ``mnemonic``."""
    if not mnemonic or not mnemonic.strip():
        raise ValueError("mnemonic must not be empty")
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    signers = []
    for index in range(count):
        key = ec.derive_private_key(_derive_scalar(mnemonic, index), ec.SECP256K1())
        signers.append(Signer.from_private_key(key, index=index))
    return signers
