"""
Host account domain service - Sign-up and credential checks.

Hosts own events. Passwords are stored as bcrypt hashes and every
authentication attempt runs a bcrypt comparison at the configured cost,
against a dummy hash when the email is unknown or the password cannot be
a valid one, so response time does not reveal which emails have accounts.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

import bcrypt

from .exceptions import HostAlreadyExists, HostValidationError
from .ports import HostRepository
from .registration import normalize_email

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes and rejects longer input
PASSWORD_MAX_BYTES = 72


@lru_cache
def _dummy_hash(cost: int) -> bytes:
    """Hash of "dummy_password_for_timing_safety" at the given cost factor."""
    return bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(rounds=cost))


@dataclass
class HostService:
    """Domain service for host accounts."""

    repository: HostRepository
    bcrypt_cost: int = 10

    def sign_up(self, email: str, password: str) -> str:
        """
        Create a host account.

        Args:
            email: Host email (will be normalized)
            password: Plaintext password (will be hashed)

        Returns:
            New host id

        Raises:
            HostValidationError: If the password is longer than bcrypt accepts
            HostAlreadyExists: If the email already has an account
        """
        encoded = password.encode()
        if len(encoded) > PASSWORD_MAX_BYTES:
            raise HostValidationError(f"password exceeds {PASSWORD_MAX_BYTES} bytes")

        normalized_email = normalize_email(email)
        password_hash = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

        host_id = self.repository.create_host(normalized_email, password_hash)
        if host_id is None:
            raise HostAlreadyExists(normalized_email)

        logger.info("Host %s signed up", host_id)
        return host_id

    def authenticate(self, email: str, password: str) -> str | None:
        """Return the host id if the credentials match, otherwise None."""
        credentials = self.repository.get_credentials(normalize_email(email))
        encoded = password.encode()

        if credentials is None or len(encoded) > PASSWORD_MAX_BYTES:
            bcrypt.checkpw(encoded[:PASSWORD_MAX_BYTES], _dummy_hash(self.bcrypt_cost))
            return None

        host_id, stored_hash = credentials
        if not bcrypt.checkpw(encoded, stored_hash.encode()):
            return None
        return host_id
