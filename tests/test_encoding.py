from __future__ import annotations

import pytest
from web3 import Web3

from identity_manager.encoding import (
    abi_encode,
    decode_text,
    encode_text,
    function_signature,
    hex_to_string,
    normalize_document_hash,
    utf8_to_hex,
)
from identity_manager.errors import EncodingError
from identity_manager.services.blockchain import IDENTITY_MANAGER_ABI


TRANSFER_ABI = [
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


@pytest.mark.parametrize("text", ["184738199010200917", "罗兰", "1990-10-20", "伦敦", "Allen", ""])
def test_text_round_trip(text: str) -> None:
    raw = encode_text(text)
    assert len(raw) == 32
    assert decode_text(raw) == text
    assert hex_to_string(utf8_to_hex(text)) == text


def test_encode_text_pads_right_with_nul() -> None:
    assert encode_text("ab", width=4) == b"ab\x00\x00"


def test_encode_text_rejects_overflow() -> None:
    # 11 CJK characters are 33 bytes in UTF-8
    with pytest.raises(EncodingError):
        encode_text("中" * 11)


def test_encode_text_rejects_non_text() -> None:
    with pytest.raises(EncodingError):
        encode_text(b"bytes")  # type: ignore[arg-type]


def test_decode_text_rejects_invalid_utf8() -> None:
    with pytest.raises(EncodingError):
        decode_text(b"\xff\xfe" + b"\x00" * 30)


def test_hex_to_string_trims_padding() -> None:
    padded = "0x" + "Allen".encode().hex() + "00" * 27
    assert hex_to_string(padded) == "Allen"


def test_utf8_to_hex_matches_bytes() -> None:
    assert utf8_to_hex("罗兰") == "0x" + "罗兰".encode("utf-8").hex()


def test_hex_to_string_rejects_garbage() -> None:
    with pytest.raises(EncodingError):
        hex_to_string("0xzz")


def test_normalize_document_hash() -> None:
    value = "0x" + "89" * 32
    assert normalize_document_hash(value) == bytes.fromhex("89" * 32)
    assert normalize_document_hash(b"\x01" * 32) == b"\x01" * 32


@pytest.mark.parametrize("value", ["0x1234", "89" * 32, b"\x01" * 31, 42])
def test_normalize_document_hash_rejects(value) -> None:
    with pytest.raises(EncodingError):
        normalize_document_hash(value)


def test_abi_encode_known_selector() -> None:
    to = "0x" + "11" * 20
    data = abi_encode(TRANSFER_ABI, "transfer", [to, 1])

    assert data.startswith("0xa9059cbb")
    assert data[10:] == "00" * 12 + "11" * 20 + "00" * 31 + "01"


def test_abi_encode_accepts_artifact_json() -> None:
    account = Web3.to_checksum_address("0x" + "ab" * 20)
    data = abi_encode({"abi": IDENTITY_MANAGER_ABI}, "identityExists", [account])

    selector = bytes(Web3.keccak(text="identityExists(address)")[:4]).hex()
    assert data == "0x" + selector + "00" * 12 + "ab" * 20


def test_abi_encode_create_identity_with_hex_params() -> None:
    params = [
        utf8_to_hex("184738199010200917"),
        utf8_to_hex("罗兰"),
        0,
        utf8_to_hex("1990-10-20"),
        utf8_to_hex("中国"),
        utf8_to_hex("上海"),
        utf8_to_hex("宝山"),
        ["0x" + "89" * 32],
    ]
    data = abi_encode(IDENTITY_MANAGER_ABI, "createIdentity", params)

    # selector + 8 head words + array length + one element
    assert len(data) == 2 + 8 + 64 * 10
    assert data[10:74] == "184738199010200917".encode().hex().ljust(64, "0")


def test_abi_encode_unknown_function() -> None:
    with pytest.raises(EncodingError):
        abi_encode(IDENTITY_MANAGER_ABI, "burnIdentity", [])


def test_abi_encode_wrong_arity() -> None:
    with pytest.raises(EncodingError):
        abi_encode(IDENTITY_MANAGER_ABI, "identityExists", [])


def test_function_signature_expands_arrays() -> None:
    create = next(e for e in IDENTITY_MANAGER_ABI if e["name"] == "createIdentity")
    assert function_signature(create) == (
        "createIdentity(bytes32,bytes32,uint8,bytes32,bytes32,bytes32,bytes32,bytes32[])"
    )
