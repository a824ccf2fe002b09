"""
Credential Variants
A user's stored secrets as an ordered list of tagged credentials.
"""

import hmac
from dataclasses import dataclass
from typing import Union

from portal.auth.utils import is_bcrypt_hash, verify_password, verify_scrypt_password
from portal.models import User


@dataclass(frozen=True)
class TemporaryCredential:
    """Administrator-issued one-time password, compared as an exact string."""

    value: str

    def verify(self, candidate: str) -> bool:
        return hmac.compare_digest(self.value.encode("utf-8"), candidate.encode("utf-8"))


@dataclass(frozen=True)
class HashedCredential:
    """Salted password hash. ``scheme`` is ``bcrypt`` or the legacy ``scrypt``."""

    scheme: str
    value: str

    @classmethod
    def from_stored(cls, stored: str) -> "HashedCredential":
        return cls(scheme="bcrypt" if is_bcrypt_hash(stored) else "scrypt", value=stored)

    def verify(self, candidate: str) -> bool:
        if self.scheme == "bcrypt":
            return verify_password(candidate, self.value)
        return verify_scrypt_password(candidate, self.value)


Credential = Union[TemporaryCredential, HashedCredential]


def credentials_for(user: User) -> list[Credential]:
    """
    Credentials to try for ``user``, highest precedence first.

    A temporary password outranks the permanent hash when both are set.
    """
    creds: list[Credential] = []
    if user.temporary_password:
        creds.append(TemporaryCredential(user.temporary_password))
    if user.password_hash:
        creds.append(HashedCredential.from_stored(user.password_hash))
    return creds


def verify_any(credentials: list[Credential], candidate: str) -> Credential | None:
    """Return the first credential that accepts ``candidate``, or None."""
    for credential in credentials:
        if credential.verify(candidate):
            return credential
    return None
