"""
Identity Manager API Routes Package
Provides identity registry and ABI helper endpoints.
"""

from identity_manager.routes import abi, identities

__all__ = ['abi', 'identities']
