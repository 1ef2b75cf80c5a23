"""
Identity Manager ABI API
Encodes contract calls and converts text fields to and from hex.
"""

from typing import Any, Dict, List, Optional, Union
from fastapi import APIRouter
from pydantic import BaseModel, Field

from identity_manager.encoding import abi_encode, hex_to_string, utf8_to_hex
from identity_manager.services import IDENTITY_MANAGER_ABI


router = APIRouter()


class AbiEncodeRequest(BaseModel):
    """Call to encode; the IdentityManager ABI is used when none is given."""
    function: str
    params: List[Any] = Field(default_factory=list)
    abi: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = None


class AbiEncodeResponse(BaseModel):
    function: str
    data: str


class HexRequest(BaseModel):
    text: Optional[str] = None
    hex: Optional[str] = None


class HexResponse(BaseModel):
    text: str
    hex: str


@router.post("/abi/encode", response_model=AbiEncodeResponse)
def encode_call(payload: AbiEncodeRequest):
    """Selector + ABI-encoded arguments for a contract call."""
    abi = payload.abi if payload.abi is not None else IDENTITY_MANAGER_ABI
    data = abi_encode(abi, payload.function, payload.params)
    return AbiEncodeResponse(function=payload.function, data=data)


@router.post("/abi/hex", response_model=HexResponse)
def convert_hex(payload: HexRequest):
    """Convert text to hex, or hex back to text (trailing padding trimmed)."""
    if payload.text is not None:
        return HexResponse(text=payload.text, hex=utf8_to_hex(payload.text))
    if payload.hex is not None:
        return HexResponse(text=hex_to_string(payload.hex), hex=payload.hex)
    return HexResponse(text="", hex="0x")
