"""
Identity Manager Encoding Helpers
UTF-8 text <-> fixed-width bytes32 conversion, hex helpers, document hash
normalisation and ABI call encoding for the IdentityManager contract.
"""

from typing import Any, Dict, List, Sequence, Union

from eth_abi import encode as abi_encode_params
from eth_abi.exceptions import EncodingError as AbiEncodingError
from web3 import Web3

from identity_manager.errors import EncodingError


# Width of a bytes32 text field / document hash
FIELD_WIDTH = 32
HASH_SIZE = 32

AbiJson = Union[Dict[str, Any], List[Dict[str, Any]]]


# ============ Text fields ============

def encode_text(text: str, width: int = FIELD_WIDTH) -> bytes:
    """
    Encode UTF-8 text into a fixed-width, NUL right-padded byte string.
    
    Args:
        text: Text to encode
        width: Width of the wire field in bytes
        
    Returns:
        Exactly ``width`` bytes
    """
    if not isinstance(text, str):
        raise EncodingError(f"Expected text, got {type(text).__name__}")
    
    raw = text.encode("utf-8")
    if len(raw) > width:
        raise EncodingError(
            f"Text is {len(raw)} bytes once UTF-8 encoded, field holds {width}",
            {"text": text, "width": width},
        )
    return raw.ljust(width, b"\x00")


def decode_text(raw: bytes) -> str:
    """Decode a padded byte field back to text, trimming trailing NULs."""
    try:
        return bytes(raw).rstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Field is not valid UTF-8: {e}") from e


def pad_field(raw: bytes, width: int = FIELD_WIDTH) -> bytes:
    """Right-pad already-encoded bytes to the wire width."""
    if len(raw) > width:
        raise EncodingError(f"Field is {len(raw)} bytes, wire width is {width}")
    return bytes(raw).ljust(width, b"\x00")


def utf8_to_hex(text: str) -> str:
    """Encode text as a 0x-prefixed hex string of its UTF-8 bytes."""
    if not isinstance(text, str):
        raise EncodingError(f"Expected text, got {type(text).__name__}")
    return Web3.to_hex(text=text)


def hex_to_string(hexstr: str) -> str:
    """Decode a 0x-prefixed hex string to text, trimming trailing padding."""
    try:
        raw = Web3.to_bytes(hexstr=hexstr)
    except (ValueError, TypeError) as e:
        raise EncodingError(f"Invalid hex string: {hexstr!r}") from e
    return decode_text(raw)


# ============ Document hashes ============

def normalize_document_hash(value: Union[bytes, str]) -> bytes:
    """
    Convert a document hash to its 32 raw bytes.
    
    Accepts raw bytes or a 0x-prefixed hex string. The hash content is not
    interpreted, only its size is checked.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        if not value.startswith("0x"):
            raise EncodingError(f"Document hash must be 0x-prefixed hex: {value!r}")
        try:
            raw = Web3.to_bytes(hexstr=value)
        except ValueError as e:
            raise EncodingError(f"Invalid document hash: {value!r}") from e
    else:
        raise EncodingError(f"Unsupported document hash type: {type(value).__name__}")
    
    if len(raw) != HASH_SIZE:
        raise EncodingError(
            f"Document hash must be {HASH_SIZE} bytes, got {len(raw)}",
            {"hash": value if isinstance(value, str) else raw.hex()},
        )
    return raw


def document_hash_to_hex(raw: bytes) -> str:
    return "0x" + bytes(raw).hex()


# ============ ABI call encoding ============

def _canonical_type(param: Dict[str, Any]) -> str:
    """Solidity canonical type of an ABI input, expanding tuples."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def _coerce_param(abi_type: str, value: Any) -> Any:
    """Accept 0x hex strings for bytes types, as web3.js does."""
    if abi_type.endswith("]"):
        inner = abi_type[:abi_type.rindex("[")]
        return [_coerce_param(inner, v) for v in value]
    if abi_type.startswith("bytes") and isinstance(value, str):
        try:
            return Web3.to_bytes(hexstr=value)
        except ValueError as e:
            raise EncodingError(f"Invalid hex for {abi_type}: {value!r}") from e
    return value


def find_function_abi(abi_json: AbiJson, function_name: str) -> Dict[str, Any]:
    """Find a function entry by name in an artifact or a bare ABI list."""
    abis = abi_json.get("abi", []) if isinstance(abi_json, dict) else abi_json
    
    matches = [
        entry for entry in abis
        if entry.get("type") == "function" and entry.get("name") == function_name
    ]
    if not matches:
        raise EncodingError(f"No function named {function_name!r} found in ABI")
    return matches[0]


def function_signature(function_abi: Dict[str, Any]) -> str:
    types = ",".join(_canonical_type(p) for p in function_abi.get("inputs", []))
    return f"{function_abi['name']}({types})"


def function_selector(function_abi: Dict[str, Any]) -> bytes:
    """4-byte selector of a function ABI entry."""
    return bytes(Web3.keccak(text=function_signature(function_abi))[:4])


def abi_encode(abi_json: AbiJson, function_name: str, params: Sequence[Any]) -> str:
    """
    Encode a contract call as calldata.
    
    Args:
        abi_json: Truffle artifact ({"abi": [...]}) or a bare ABI list
        function_name: Name of the function to call
        params: Positional arguments for the call
        
    Returns:
        0x-prefixed selector followed by the ABI-encoded arguments
    """
    function_abi = find_function_abi(abi_json, function_name)
    types = [_canonical_type(p) for p in function_abi.get("inputs", [])]
    
    if len(types) != len(params):
        raise EncodingError(
            f"{function_name} takes {len(types)} arguments, got {len(params)}"
        )
    
    try:
        args = [_coerce_param(t, v) for t, v in zip(types, params)]
        encoded = abi_encode_params(types, args)
    except (AbiEncodingError, ValueError, TypeError) as e:
        raise EncodingError(f"Could not encode arguments for {function_name}: {e}") from e
    
    return "0x" + function_selector(function_abi).hex() + encoded.hex()
