"""
Identity Manager Configuration Module
Loads environment variables and provides configuration settings for the
identity registry service and its contract deployment tooling.
"""

import os
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Application configuration settings."""
    
    # ============ API Settings ============
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_LOG_LEVEL: str = os.getenv("API_LOG_LEVEL", "info")
    
    # Header the transport layer uses to pass the calling account
    CALLER_HEADER: str = os.getenv("CALLER_HEADER", "X-Caller-Address")
    
    # EIP-191 signature over "<METHOD> <path>\n<body>" by the caller account.
    # Without it the caller header is taken on trust (local or trusted setups only).
    REQUIRE_CALLER_SIGNATURE: bool = os.getenv("REQUIRE_CALLER_SIGNATURE", "false").lower() in ("1", "true", "yes")
    SIGNATURE_HEADER: str = os.getenv("SIGNATURE_HEADER", "X-Caller-Signature")
    
    # ============ Registry ============
    # "memory" keeps records in-process, "chain" talks to a deployed contract
    REGISTRY_BACKEND: str = os.getenv("REGISTRY_BACKEND", "memory").lower()
    
    # Accounts allowed to set identity validity (empty = anyone)
    VALIDITY_ADMINS: List[str] = field(
        default_factory=lambda: _split_list(os.getenv("VALIDITY_ADMINS", ""))
    )
    
    # ============ Blockchain ============
    IDENTITY_MANAGER_ADDRESS: str = os.getenv("IDENTITY_MANAGER_ADDRESS", "")
    
    # Explicit RPC endpoint; falls back to Alchemy Sepolia, then a local node
    RPC_URL_OVERRIDE: str = os.getenv("RPC_URL", "")
    ALCHEMY_KEY: str = os.getenv("ALCHEMY_KEY", "")
    
    # Wallet
    PRIVATE_KEY: str = os.getenv("PRIVATE_KEY", "")
    
    # Chain settings
    GAS_LIMIT: int = int(os.getenv("GAS_LIMIT", "3000000"))
    TX_TIMEOUT: int = int(os.getenv("TX_TIMEOUT", "120"))
    
    # ============ Deployment ============
    CONTRACT_ARTIFACT: str = os.getenv("CONTRACT_ARTIFACT", "build/contracts/IdentityManager.json")
    DEPLOYMENTS_FILE: str = os.getenv("DEPLOYMENTS_FILE", "deployments.json")
    
    @property
    def RPC_URL(self) -> str:
        """Get the JSON-RPC endpoint to use."""
        if self.RPC_URL_OVERRIDE:
            return self.RPC_URL_OVERRIDE
        if self.ALCHEMY_KEY:
            return f"https://eth-sepolia.g.alchemy.com/v2/{self.ALCHEMY_KEY}"
        return "http://127.0.0.1:8545"
    
    def is_chain_backend(self) -> bool:
        """Check if the registry should talk to a deployed contract."""
        return self.REGISTRY_BACKEND == "chain"
    
    def is_blockchain_configured(self) -> bool:
        """Check if the chain backend has a contract to talk to."""
        return bool(self.IDENTITY_MANAGER_ADDRESS)


# Global config instance
config = Config()
