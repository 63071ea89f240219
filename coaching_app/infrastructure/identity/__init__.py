"""
Identity provider integration.

Implements the IdentityProvider protocol from core.clients.accounts.
"""

from .provider import IdentityConfig, InMemoryIdentityProvider, create_identity_provider

__all__ = ["IdentityConfig", "InMemoryIdentityProvider", "create_identity_provider"]
