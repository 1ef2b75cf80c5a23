"""
Identity Manager Data Model
Identity records as stored by the registry, in their raw wire form.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Sequence, Tuple, Union

from web3 import Web3

from identity_manager.errors import EncodingError, InvalidAccount
from identity_manager.encoding import (
    FIELD_WIDTH,
    decode_text,
    document_hash_to_hex,
    encode_text,
    normalize_document_hash,
)


# Reserved address meaning "no record"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Order of the text fields in getIdentityData
TEXT_FIELDS = ("id", "name", "birthday", "nationality", "province", "city")


@dataclass(frozen=True)
class IdentityFields:
    """The caller-settable part of an identity record (raw bytes)."""
    id: bytes
    name: bytes
    gender: int
    birthday: bytes
    nationality: bytes
    province: bytes
    city: bytes
    document_hashes: Tuple[bytes, ...] = ()
    
    @classmethod
    def from_text(
        cls,
        id: str,
        name: str,
        gender: int,
        birthday: str,
        nationality: str,
        province: str,
        city: str,
        document_hashes: Sequence[Union[bytes, str]] = (),
        width: int = FIELD_WIDTH,
    ) -> "IdentityFields":
        """Build fields from UTF-8 text, encoding each into its wire width."""
        if not isinstance(gender, int) or isinstance(gender, bool) or not 0 <= gender <= 255:
            raise EncodingError(f"Gender must be an integer code between 0 and 255, got {gender!r}")
        
        return cls(
            id=encode_text(id, width),
            name=encode_text(name, width),
            gender=gender,
            birthday=encode_text(birthday, width),
            nationality=encode_text(nationality, width),
            province=encode_text(province, width),
            city=encode_text(city, width),
            document_hashes=tuple(normalize_document_hash(h) for h in document_hashes),
        )
    
    def to_text(self) -> Dict[str, Any]:
        """Decode the fields back to text with hex document hashes."""
        data: Dict[str, Any] = {name: decode_text(getattr(self, name)) for name in TEXT_FIELDS}
        data["gender"] = self.gender
        data["document_hashes"] = [document_hash_to_hex(h) for h in self.document_hashes]
        return data


@dataclass
class IdentityRecord:
    """One identity per owning account."""
    owner: str
    address: str
    fields: IdentityFields
    valid: bool = False
    
    def as_tuple(self) -> Tuple[Any, ...]:
        """(owner, id, name, gender, birthday, nationality, province, city, documentHashes)"""
        f = self.fields
        return (
            self.owner,
            f.id,
            f.name,
            f.gender,
            f.birthday,
            f.nationality,
            f.province,
            f.city,
            list(f.document_hashes),
        )
    
    def to_text(self) -> Dict[str, Any]:
        data = {"owner": self.owner}
        data.update(self.fields.to_text())
        return data
    
    def copy(self) -> "IdentityRecord":
        return replace(self)


def normalize_account(account: str) -> str:
    """Return the checksummed form of an account address."""
    if not isinstance(account, str) or not Web3.is_address(account):
        raise InvalidAccount(f"Invalid account address: {account!r}", {"account": account})
    return Web3.to_checksum_address(account)
