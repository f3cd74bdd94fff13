import re

import pytest

from boxoffice.accounts import (
    ZERO_ADDRESS,
    Signer,
    address_from_public_key,
    contract_address,
    derive_signers,
    is_zero_address,
    to_address,
    verify_signature,
)
from boxoffice.config import DEFAULT_MNEMONIC
from boxoffice.hardening import ValidationErrors

ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def test_derive_signers_is_deterministic():
    first = derive_signers(DEFAULT_MNEMONIC, 3)
    second = derive_signers(DEFAULT_MNEMONIC, 3)
    assert [s.address for s in first] == [s.address for s in second]
    assert [s.index for s in first] == [0, 1, 2]
    assert all(ADDRESS_RE.match(s.address) for s in first)


def test_mnemonic_changes_accounts():
    default = derive_signers(DEFAULT_MNEMONIC, 1)[0]
    other = derive_signers("legal winner thank year wave sausage worth useful legal winner thank yellow", 1)[0]
    assert default.address != other.address


def test_mnemonic_whitespace_is_normalized():
    spaced = "  " + DEFAULT_MNEMONIC.replace(" ", "   ") + "\n"
    assert derive_signers(spaced, 1)[0].address == derive_signers(DEFAULT_MNEMONIC, 1)[0].address


def test_derive_signers_rejects_bad_input():
    with pytest.raises(ValueError):
        derive_signers("   ", 1)
    with pytest.raises(ValueError):
        derive_signers(DEFAULT_MNEMONIC, -1)


def test_sign_and_verify():
    signer = derive_signers(DEFAULT_MNEMONIC, 1)[0]
    signature = signer.sign(b"buy 2022-in-person")

    assert verify_signature(signer.public_key, b"buy 2022-in-person", signature)
    assert not verify_signature(signer.public_key, b"buy 2023-in-person", signature)


def test_address_matches_public_key():
    signer = Signer.generate()
    assert signer.address == address_from_public_key(signer.public_key)
    assert str(signer) == signer.address


def test_contract_address():
    deployer = derive_signers(DEFAULT_MNEMONIC, 1)[0].address
    assert contract_address(deployer, 0) == contract_address(deployer.upper().replace("0X", "0x"), 0)
    assert contract_address(deployer, 0) != contract_address(deployer, 1)
    assert ADDRESS_RE.match(contract_address(deployer, 7))


def test_to_address():
    assert to_address("0x78000b0605E81ea9df54b33f72ebC61B5F5c8077") == (
        "0x78000b0605e81ea9df54b33f72ebc61b5f5c8077"
    )
    assert is_zero_address("0x" + "0" * 40)
    assert ZERO_ADDRESS == "0x" + "0" * 40

    for bad in ("0x1234", "78000b0605E81ea9df54b33f72ebC61B5F5c80770x", "0x" + "g" * 40, None):
        with pytest.raises(ValidationErrors):
            to_address(bad)
