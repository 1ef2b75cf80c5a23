"""
Identity Manager Identity API
Create, modify, remove and query identity records.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from eth_account import Account
from eth_account.messages import encode_defunct

from identity_manager.config import config
from identity_manager.errors import Unauthorized
from identity_manager.models import IdentityFields, IdentityRecord, normalize_account
from identity_manager.services import RegistryService, get_registry_service


router = APIRouter()


class IdentityRequest(BaseModel):
    """Identity fields as UTF-8 text; document hashes as 0x hex."""
    id: str
    name: str
    gender: int = Field(..., ge=0, le=255)
    birthday: str
    nationality: str
    province: str
    city: str
    document_hashes: List[str] = Field(default_factory=list)

    def to_fields(self) -> IdentityFields:
        return IdentityFields.from_text(
            id=self.id,
            name=self.name,
            gender=self.gender,
            birthday=self.birthday,
            nationality=self.nationality,
            province=self.province,
            city=self.city,
            document_hashes=self.document_hashes,
        )


class IdentityWriteResponse(BaseModel):
    """Response for create/modify/remove."""
    success: bool
    owner: str
    address: Optional[str] = None
    message: str


class IdentityDataResponse(BaseModel):
    """Decoded identity record."""
    owner: str
    id: str
    name: str
    gender: int
    birthday: str
    nationality: str
    province: str
    city: str
    document_hashes: List[str]


class ValidityRequest(BaseModel):
    valid: bool


class ValidityResponse(BaseModel):
    account: str
    valid: bool


class ExistsResponse(BaseModel):
    account: str
    exists: bool


class AddressResponse(BaseModel):
    account: str
    address: str


class CountResponse(BaseModel):
    count: int


def caller_message(method: str, path: str, body: bytes) -> str:
    """Text a caller signs (EIP-191 personal_sign) to prove the request is theirs."""
    return f"{method.upper()} {path}\n{body.decode('utf-8', errors='replace')}"


def verify_caller_signature(caller: str, message: str, signature: str) -> None:
    """
    Check that the signature over the message was made by the caller.

    Raises:
        Unauthorized: malformed signature, or signed by another account
    """
    try:
        signer = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        raise Unauthorized(f"Invalid {config.SIGNATURE_HEADER}: {e}", {"caller": caller}) from e
    if normalize_account(signer) != caller:
        raise Unauthorized(
            f"Request is not signed by {caller}",
            {"caller": caller, "signer": normalize_account(signer)}
        )


async def get_caller(request: Request) -> str:
    """Calling account, as supplied (and optionally signed) by the transport layer."""
    caller = request.headers.get(config.CALLER_HEADER)
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {config.CALLER_HEADER} header"
        )
    caller = normalize_account(caller)

    if config.REQUIRE_CALLER_SIGNATURE:
        signature = request.headers.get(config.SIGNATURE_HEADER)
        if not signature:
            raise Unauthorized(f"Missing {config.SIGNATURE_HEADER} header", {"caller": caller})
        message = caller_message(request.method, request.url.path, await request.body())
        verify_caller_signature(caller, message, signature)
    return caller


def _write_response(record: IdentityRecord, message: str) -> IdentityWriteResponse:
    return IdentityWriteResponse(
        success=True,
        owner=record.owner,
        address=record.address,
        message=message
    )


# ============ Self-service ============

@router.post("/identities", response_model=IdentityWriteResponse, status_code=status.HTTP_201_CREATED)
def create_identity(
    payload: IdentityRequest,
    caller: str = Depends(get_caller),
    registry: RegistryService = Depends(get_registry_service)
):
    """Create the caller's identity. Fails with 409 if one already exists."""
    record = registry.create_identity(caller, payload.to_fields())
    return _write_response(record, "Identity created")


@router.put("/identities", response_model=IdentityWriteResponse)
def modify_identity(
    payload: IdentityRequest,
    caller: str = Depends(get_caller),
    registry: RegistryService = Depends(get_registry_service)
):
    """Replace all fields of the caller's identity, keeping owner and validity."""
    record = registry.modify_identity(caller, payload.to_fields())
    return _write_response(record, "Identity modified")


@router.delete("/identities", response_model=IdentityWriteResponse)
def remove_identity(
    caller: str = Depends(get_caller),
    registry: RegistryService = Depends(get_registry_service)
):
    """Delete the caller's identity."""
    registry.remove_identity(caller)
    return IdentityWriteResponse(success=True, owner=caller, message="Identity removed")


# ============ Administrative ============

@router.put("/identities/{account}/validity", response_model=ValidityResponse)
def set_identity_validity(
    account: str,
    payload: ValidityRequest,
    caller: str = Depends(get_caller),
    registry: RegistryService = Depends(get_registry_service)
):
    """Set whether an account's identity has been verified."""
    registry.set_identity_validity(caller, account, payload.valid)
    return ValidityResponse(account=normalize_account(account), valid=payload.valid)


# ============ Queries ============

@router.get("/identities/count", response_model=CountResponse)
def get_identity_count(registry: RegistryService = Depends(get_registry_service)):
    return CountResponse(count=registry.get_identity_count())


@router.get("/identities/{account}/valid", response_model=ValidityResponse)
def identity_valid(account: str, registry: RegistryService = Depends(get_registry_service)):
    """Validity flag; false when the account has no identity."""
    return ValidityResponse(
        account=normalize_account(account),
        valid=registry.identity_valid(account)
    )


@router.get("/identities/{account}/exists", response_model=ExistsResponse)
def identity_exists(account: str, registry: RegistryService = Depends(get_registry_service)):
    return ExistsResponse(
        account=normalize_account(account),
        exists=registry.identity_exists(account)
    )


@router.get("/identities/{account}/address", response_model=AddressResponse)
def get_identity_address(account: str, registry: RegistryService = Depends(get_registry_service)):
    """Record address, or the zero address when the account has no identity."""
    return AddressResponse(
        account=normalize_account(account),
        address=registry.get_identity_address(account)
    )


@router.get("/identities/{account}", response_model=IdentityDataResponse)
def get_identity_data(account: str, registry: RegistryService = Depends(get_registry_service)):
    """
    Full decoded identity of an account.

    Args:
        account: Owning address
    """
    record = registry.get_identity_data(account)
    return IdentityDataResponse(**record.to_text())
