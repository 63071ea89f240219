"""
In-memory identity provider.

Implements the IdentityProvider protocol for local development and tests,
in place of the hosted authentication service. Accounts are keyed by
normalized email; passwords are stored as bcrypt hashes, never in
plaintext, even though nothing leaves the process.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import bcrypt

from ...core.clients.accounts import (
    AuthenticationError,
    DuplicateAccountError,
    IdentityError,
)

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


@dataclass
class IdentityConfig:
    """Password policy and bcrypt cost factor."""
    password_min_length: int = 6
    hash_rounds: int = 12


@dataclass(frozen=True)
class _Account:
    uid: str
    password_hash: bytes


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class InMemoryIdentityProvider:
    """Dictionary-backed accounts: {normalized_email: account}."""

    def __init__(self, config: Optional[IdentityConfig] = None) -> None:
        self._config = config or IdentityConfig()
        self._accounts: dict[str, _Account] = {}
        self._lock = threading.Lock()

        logger.info("Initialized in-memory identity provider")

    def create_user(self, email: str, password: str) -> str:
        key = _normalize_email(email)
        if not key:
            raise IdentityError("Email is required")
        if len(password) < self._config.password_min_length:
            raise IdentityError(
                f"Password must be at least {self._config.password_min_length} characters"
            )
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise IdentityError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        password_hash = bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self._config.hash_rounds))
        account = _Account(uid=uuid4().hex, password_hash=password_hash)

        with self._lock:
            if key in self._accounts:
                raise DuplicateAccountError(f"An account already exists for {key}")
            self._accounts[key] = account

        logger.info("Identity account created", extra={"uid": account.uid})
        return account.uid

    def authenticate(self, email: str, password: str) -> str:
        with self._lock:
            account = self._accounts.get(_normalize_email(email))

        secret = password.encode("utf-8")
        if (
            account is None
            or len(secret) > MAX_PASSWORD_BYTES
            or not bcrypt.checkpw(secret, account.password_hash)
        ):
            logger.warning("Failed sign-in attempt")
            raise AuthenticationError("Invalid email or password")

        return account.uid


def create_identity_provider(config: Optional[IdentityConfig] = None) -> InMemoryIdentityProvider:
    """Factory for the application's identity provider."""
    return InMemoryIdentityProvider(config)
