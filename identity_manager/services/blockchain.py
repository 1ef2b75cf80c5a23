"""
Identity Manager Blockchain Service
web3 client for a deployed IdentityManager contract, exposing the same
operations as the in-process registry.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, MismatchedABI, Web3Exception, Web3ValidationError

from identity_manager.config import config
from identity_manager.encoding import pad_field
from identity_manager.errors import (
    AlreadyExists,
    ChainUnavailable,
    EncodingError,
    NotFound,
    RegistryError,
    TransactionFailed,
    Unauthorized,
)
from identity_manager.models import (
    ZERO_ADDRESS,
    IdentityFields,
    IdentityRecord,
    normalize_account,
)

logger = logging.getLogger(__name__)


def _identity_inputs() -> List[Dict[str, str]]:
    return [
        {"name": "id", "type": "bytes32"},
        {"name": "name", "type": "bytes32"},
        {"name": "gender", "type": "uint8"},
        {"name": "birthday", "type": "bytes32"},
        {"name": "nationality", "type": "bytes32"},
        {"name": "province", "type": "bytes32"},
        {"name": "city", "type": "bytes32"},
        {"name": "documentHashes", "type": "bytes32[]"},
    ]


# IdentityManager contract ABI
IDENTITY_MANAGER_ABI = [
    {
        "inputs": _identity_inputs(),
        "name": "createIdentity",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": _identity_inputs(),
        "name": "modifyIdentity",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "removeIdentity",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "valid", "type": "bool"}
        ],
        "name": "setIdentityValidity",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "identityValid",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "identityExists",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "getIdentityAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getIdentityCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "getIdentityData",
        "outputs": [
            {"name": "owner", "type": "address"},
            {"name": "id", "type": "bytes32"},
            {"name": "name", "type": "bytes32"},
            {"name": "gender", "type": "uint8"},
            {"name": "birthday", "type": "bytes32"},
            {"name": "nationality", "type": "bytes32"},
            {"name": "province", "type": "bytes32"},
            {"name": "city", "type": "bytes32"},
            {"name": "documentHashes", "type": "bytes32[]"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]


class ChainIdentityRegistry:
    """Service for driving the IdentityManager contract over JSON-RPC."""

    def __init__(
        self,
        w3: Optional[Web3] = None,
        contract_address: Optional[str] = None,
        private_key: Optional[str] = None,
        validity_admins: Optional[Iterable[str]] = None,
    ):
        """
        Initialize the chain registry.

        Args:
            w3: Web3 connection (defaults to config.RPC_URL)
            contract_address: Deployed IdentityManager address
            private_key: Key used to sign transactions for its own account
            validity_admins: Accounts allowed to set validity (None/empty = anyone)
        """
        self.w3 = w3 or Web3(Web3.HTTPProvider(config.RPC_URL))

        # Load account from private key
        self.private_key = private_key if private_key is not None else config.PRIVATE_KEY
        if self.private_key:
            self.account = Account.from_key(self.private_key)
        else:
            self.account = None

        # Load contract
        address = contract_address if contract_address is not None else config.IDENTITY_MANAGER_ADDRESS
        if address:
            self.contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(address),
                abi=IDENTITY_MANAGER_ABI
            )
        else:
            self.contract = None

        admins = validity_admins if validity_admins is not None else config.VALIDITY_ADMINS
        self.validity_admins = {normalize_account(a) for a in admins}

    def is_connected(self) -> bool:
        """Check if connected to blockchain."""
        try:
            return self.w3.is_connected()
        except Exception:
            return False

    def is_configured(self) -> bool:
        """Check if a contract is loaded and the node is reachable."""
        return self.contract is not None and self.is_connected()

    def _require_contract(self):
        if self.contract is None:
            raise ChainUnavailable("IdentityManager contract not configured")
        return self.contract

    def _call(self, function_name: str, *args) -> Any:
        """Run a read-only contract call."""
        contract = self._require_contract()
        try:
            return getattr(contract.functions, function_name)(*args).call()
        except (Web3Exception, ValueError, OSError) as e:
            logger.error("Call %s failed: %s", function_name, e)
            raise ChainUnavailable(f"Call {function_name} failed: {e}") from e

    def _send_transaction(self, function, caller: str) -> str:
        """
        Send a transaction and wait for it to be mined.

        Transactions for the configured signing account are signed locally;
        any other caller must be an account managed (unlocked) by the node.

        Args:
            function: Bound contract function
            caller: Checksummed sender address

        Returns:
            0x-prefixed transaction hash
        """
        if self.account is not None and caller == self.account.address:
            nonce = self.w3.eth.get_transaction_count(self.account.address)

            tx = function.build_transaction({
                'from': self.account.address,
                'nonce': nonce,
                'gas': config.GAS_LIMIT,
                'gasPrice': self.w3.eth.gas_price,
                'chainId': self.w3.eth.chain_id
            })

            signed_tx = self.w3.eth.account.sign_transaction(
                tx, private_key=self.private_key
            )
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        else:
            tx_hash = function.transact({'from': caller, 'gas': config.GAS_LIMIT})

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=config.TX_TIMEOUT)

        tx_hex = Web3.to_hex(tx_hash)
        if receipt['status'] != 1:
            logger.error("Transaction %s reverted", tx_hex)
            raise TransactionFailed(f"Transaction reverted: {tx_hex}", {"tx_hash": tx_hex})
        return tx_hex

    def _transact(self, function_name: str, caller: str, *args) -> str:
        contract = self._require_contract()
        try:
            function = getattr(contract.functions, function_name)(*args)
            tx_hash = self._send_transaction(function, caller)
        except RegistryError:
            raise
        except (MismatchedABI, Web3ValidationError) as e:
            logger.warning("%s by %s rejected arguments: %s", function_name, caller, e)
            raise EncodingError(f"Arguments do not match {function_name}: {e}") from e
        except ContractLogicError as e:
            logger.error("%s by %s reverted: %s", function_name, caller, e)
            raise TransactionFailed(f"{function_name} reverted: {e}") from e
        except (Web3Exception, ValueError, OSError) as e:
            logger.error("%s by %s failed: %s", function_name, caller, e)
            raise TransactionFailed(f"{function_name} failed: {e}") from e

        logger.info("%s by %s mined in %s", function_name, caller, tx_hash)
        return tx_hash

    def _wire_args(self, fields: IdentityFields) -> List[Any]:
        return [
            pad_field(fields.id),
            pad_field(fields.name),
            fields.gender,
            pad_field(fields.birthday),
            pad_field(fields.nationality),
            pad_field(fields.province),
            pad_field(fields.city),
            [bytes(h) for h in fields.document_hashes],
        ]

    # ============ Self-service operations ============

    def create_identity(self, caller: str, fields: IdentityFields) -> IdentityRecord:
        owner = normalize_account(caller)
        if self.identity_exists(owner):
            logger.warning("Rejected create: %s already has an identity", owner)
            raise AlreadyExists(f"Identity already exists for {owner}", {"account": owner})

        self._transact("createIdentity", owner, *self._wire_args(fields))
        return self.get_identity_data(owner)

    def modify_identity(self, caller: str, fields: IdentityFields) -> IdentityRecord:
        owner = normalize_account(caller)
        if not self.identity_exists(owner):
            raise NotFound(f"No identity for {owner}", {"account": owner})

        self._transact("modifyIdentity", owner, *self._wire_args(fields))
        return self.get_identity_data(owner)

    def remove_identity(self, caller: str) -> None:
        owner = normalize_account(caller)
        if not self.identity_exists(owner):
            raise NotFound(f"No identity for {owner}", {"account": owner})

        self._transact("removeIdentity", owner)

    # ============ Administrative operations ============

    def set_identity_validity(self, caller: str, account: str, valid: bool) -> None:
        setter = normalize_account(caller)
        target = normalize_account(account)
        if self.validity_admins and setter not in self.validity_admins:
            logger.warning("Rejected validity change for %s by non-admin %s", target, setter)
            raise Unauthorized(
                f"{setter} may not set identity validity",
                {"caller": setter, "account": target},
            )
        if not self.identity_exists(target):
            raise NotFound(f"No identity for {target}", {"account": target})

        self._transact("setIdentityValidity", setter, target, bool(valid))

    # ============ Queries ============

    def identity_valid(self, account: str) -> bool:
        return bool(self._call("identityValid", normalize_account(account)))

    def identity_exists(self, account: str) -> bool:
        return bool(self._call("identityExists", normalize_account(account)))

    def get_identity_address(self, account: str) -> str:
        address = self._call("getIdentityAddress", normalize_account(account))
        if not address or int(address, 16) == 0:
            return ZERO_ADDRESS
        return Web3.to_checksum_address(address)

    def get_identity_count(self) -> int:
        return int(self._call("getIdentityCount"))

    def get_identity_data(self, account: str) -> IdentityRecord:
        """
        Read the full record of an account from the contract.

        Raises:
            NotFound: the account has no record
        """
        target = normalize_account(account)
        if not self.identity_exists(target):
            raise NotFound(f"No identity for {target}", {"account": target})

        data = self._call("getIdentityData", target)
        owner, id_, name, gender, birthday, nationality, province, city, hashes = data

        fields = IdentityFields(
            id=bytes(id_),
            name=bytes(name),
            gender=int(gender),
            birthday=bytes(birthday),
            nationality=bytes(nationality),
            province=bytes(province),
            city=bytes(city),
            document_hashes=tuple(bytes(h) for h in hashes),
        )
        return IdentityRecord(
            owner=Web3.to_checksum_address(owner),
            address=self.get_identity_address(target),
            fields=fields,
            valid=self.identity_valid(target),
        )

    # ============ Service status ============

    def get_stats(self) -> Dict[str, Any]:
        """
        Get registry and wallet statistics.

        Returns:
            Dictionary with stats
        """
        stats = {
            "backend": "chain",
            "connected": self.is_connected(),
            "configured": self.contract is not None,
            "contract_address": self.contract.address if self.contract is not None else None,
            "total_identities": None,
            "validity_admins": sorted(self.validity_admins),
        }

        if stats["connected"] and self.contract is not None:
            try:
                stats["total_identities"] = self.get_identity_count()
            except ChainUnavailable as e:
                logger.warning("Could not read identity count: %s", e)

        if self.account:
            stats["wallet_address"] = self.account.address

        return stats
