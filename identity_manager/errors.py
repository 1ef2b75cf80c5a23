"""
Identity Manager Errors
Exception hierarchy shared by the registry backends, the encoding helpers
and the HTTP layer.
"""

from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base class for every rejected registry operation."""
    
    status_code: int = 400
    code: str = "registry_error"
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AlreadyExists(RegistryError):
    """Create attempted when the caller already owns a record."""
    status_code = 409
    code = "identity_exists"


class NotFound(RegistryError):
    """Operation attempted against an account with no record."""
    status_code = 404
    code = "identity_not_found"


class Unauthorized(RegistryError):
    """Caller is not allowed to perform the operation."""
    status_code = 403
    code = "unauthorized"


class InvalidAccount(RegistryError):
    """Account identifier is not a valid address."""
    status_code = 400
    code = "invalid_account"


class EncodingError(RegistryError):
    """Text or hash could not be converted to its wire representation."""
    status_code = 400
    code = "encoding_error"


class TransactionFailed(RegistryError):
    """The network rejected or reverted a transaction."""
    status_code = 502
    code = "transaction_failed"


class ChainUnavailable(RegistryError):
    """The chain backend could not reach the network or the contract."""
    status_code = 503
    code = "chain_unavailable"
