"""
Identity Manager Services Package
Provides the registry backends and contract deployment.
"""

import logging
from functools import lru_cache
from typing import Union

from identity_manager.config import config
from identity_manager.services.blockchain import IDENTITY_MANAGER_ABI, ChainIdentityRegistry
from identity_manager.services.registry import IdentityRegistry

logger = logging.getLogger(__name__)

RegistryService = Union[IdentityRegistry, ChainIdentityRegistry]


def create_registry_service() -> RegistryService:
    """
    Build the registry backend selected by REGISTRY_BACKEND.
    
    Falls back to the in-process registry when the chain backend is
    requested but no contract address is configured.
    """
    if config.is_chain_backend():
        if config.is_blockchain_configured():
            logger.info("[+] Using IdentityManager contract at %s", config.IDENTITY_MANAGER_ADDRESS)
            return ChainIdentityRegistry()
        logger.warning("[!] REGISTRY_BACKEND=chain but IDENTITY_MANAGER_ADDRESS is unset, using memory")
    
    logger.info("Using in-process identity registry")
    return IdentityRegistry(validity_admins=config.VALIDITY_ADMINS)


@lru_cache(maxsize=1)
def get_registry_service() -> RegistryService:
    """Process-wide registry instance."""
    return create_registry_service()


__all__ = [
    'IDENTITY_MANAGER_ABI',
    'ChainIdentityRegistry',
    'IdentityRegistry',
    'RegistryService',
    'create_registry_service',
    'get_registry_service',
]
