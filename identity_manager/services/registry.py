"""
Identity Manager In-Process Registry
Keeps identity records in memory with the same semantics as the
IdentityManager contract: one record per account, self-service writes,
a separately managed validity flag.
"""

import logging
import threading
import uuid
from typing import Any, Dict, Iterable, Optional

from web3 import Web3

from identity_manager.errors import AlreadyExists, NotFound, Unauthorized
from identity_manager.models import (
    ZERO_ADDRESS,
    IdentityFields,
    IdentityRecord,
    normalize_account,
)

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """
    In-memory identity registry.

    Every mutating call takes the lock for its whole duration, so each
    operation is applied atomically and in a single global order.
    """

    def __init__(self, validity_admins: Optional[Iterable[str]] = None, salt: Optional[str] = None):
        """
        Initialize an empty registry.

        Args:
            validity_admins: Accounts allowed to set validity (None/empty = anyone)
            salt: Seed for record addresses (random if not given)
        """
        self._records: Dict[str, IdentityRecord] = {}
        self._lock = threading.RLock()
        self._salt = salt or uuid.uuid4().hex
        self._nonce = 0
        self.validity_admins = {normalize_account(a) for a in validity_admins or ()}

    def _derive_address(self, owner: str) -> str:
        """Fresh storage address for a newly created record."""
        self._nonce += 1
        digest = Web3.keccak(text=f"{self._salt}:{owner}:{self._nonce}")
        return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

    def _require_record(self, account: str) -> IdentityRecord:
        record = self._records.get(account)
        if record is None:
            raise NotFound(f"No identity for {account}", {"account": account})
        return record

    # ============ Self-service operations ============

    def create_identity(self, caller: str, fields: IdentityFields) -> IdentityRecord:
        """
        Create the caller's identity record.

        Raises:
            AlreadyExists: the caller already owns a record
        """
        owner = normalize_account(caller)
        with self._lock:
            if owner in self._records:
                logger.warning("Rejected create: %s already has an identity", owner)
                raise AlreadyExists(f"Identity already exists for {owner}", {"account": owner})

            record = IdentityRecord(
                owner=owner,
                address=self._derive_address(owner),
                fields=fields,
                valid=False,
            )
            self._records[owner] = record
            logger.info("Created identity for %s at %s (total %d)",
                        owner, record.address, len(self._records))
            return record.copy()

    def modify_identity(self, caller: str, fields: IdentityFields) -> IdentityRecord:
        """
        Replace every caller-settable field; owner, validity and address are kept.

        Raises:
            NotFound: the caller has no record
        """
        owner = normalize_account(caller)
        with self._lock:
            record = self._require_record(owner)
            record.fields = fields
            logger.info("Modified identity for %s", owner)
            return record.copy()

    def remove_identity(self, caller: str) -> None:
        """
        Delete the caller's record.

        Raises:
            NotFound: the caller has no record
        """
        owner = normalize_account(caller)
        with self._lock:
            self._require_record(owner)
            del self._records[owner]
            logger.info("Removed identity for %s (total %d)", owner, len(self._records))

    # ============ Administrative operations ============

    def set_identity_validity(self, caller: str, account: str, valid: bool) -> None:
        """
        Set the validity flag of an account's record.

        Raises:
            Unauthorized: admins are configured and the caller is not one of them
            NotFound: the account has no record
        """
        setter = normalize_account(caller)
        target = normalize_account(account)
        with self._lock:
            if self.validity_admins and setter not in self.validity_admins:
                logger.warning("Rejected validity change for %s by non-admin %s", target, setter)
                raise Unauthorized(
                    f"{setter} may not set identity validity",
                    {"caller": setter, "account": target},
                )
            record = self._require_record(target)
            record.valid = bool(valid)
            logger.info("Set validity of %s to %s (by %s)", target, record.valid, setter)

    # ============ Queries ============

    def identity_valid(self, account: str) -> bool:
        target = normalize_account(account)
        with self._lock:
            record = self._records.get(target)
            return record.valid if record else False

    def identity_exists(self, account: str) -> bool:
        target = normalize_account(account)
        with self._lock:
            return target in self._records

    def get_identity_address(self, account: str) -> str:
        """Storage address of the account's record, or the zero address."""
        target = normalize_account(account)
        with self._lock:
            record = self._records.get(target)
            return record.address if record else ZERO_ADDRESS

    def get_identity_count(self) -> int:
        with self._lock:
            return len(self._records)

    def get_identity_data(self, account: str) -> IdentityRecord:
        """
        Full record of an account.

        Raises:
            NotFound: the account has no record
        """
        target = normalize_account(account)
        with self._lock:
            return self._require_record(target).copy()

    # ============ Service status ============

    def is_connected(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": "memory",
            "connected": True,
            "configured": True,
            "total_identities": self.get_identity_count(),
            "validity_admins": sorted(self.validity_admins),
        }
