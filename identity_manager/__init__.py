"""
Identity Manager

Client tooling and service layer for the IdentityManager registry contract:
- One identity record per account, keyed by the owning address
- In-process registry backend and a web3 backend for a deployed contract
- UTF-8 <-> bytes32 text encoding and ABI call encoding helpers
- One-shot contract deployment per network

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Identity Manager Team"
