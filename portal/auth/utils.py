"""
Authentication Utilities
Password hashing, session token management, and security utilities.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from portal.config import settings

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

# Parameters of the original scrypt format: 64-byte key, N=16384, r=8, p=1
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LENGTH = 64


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def verify_scrypt_password(plain_password: str, stored: str) -> bool:
    """
    Verify a password stored in the legacy ``<hex digest>.<salt>`` scrypt format.

    The salt is used as its literal text, matching how these hashes were
    produced. Comparison is constant-time.
    """
    hashed, _, salt = stored.partition(".")
    if not hashed or not salt:
        return False

    try:
        expected = bytes.fromhex(hashed)
    except ValueError:
        return False

    supplied = hashlib.scrypt(
        plain_password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEY_LENGTH,
    )
    return hmac.compare_digest(expected, supplied)


def is_bcrypt_hash(stored: str) -> bool:
    return stored.startswith(BCRYPT_PREFIXES)


def create_access_token(subject: str) -> tuple[str, datetime]:
    """
    Create a JWT session token with JTI (JWT ID) for revocation tracking.

    Args:
        subject: Token subject (user ID)

    Returns:
        Tuple of (encoded token, expiry)
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        "sub": subject,
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": generate_jti(),
    }

    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, expire


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        Token payload dict if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_token(token: str) -> str:
    """
    Hash a token using SHA256 for secure storage.

    Args:
        token: Token string to hash

    Returns:
        SHA256 hash of the token (hex string)
    """
    return hashlib.sha256(token.encode()).hexdigest()


def generate_jti() -> str:
    """
    Generate a unique JWT ID (JTI) for token tracking.

    Returns:
        URL-safe random token string
    """
    return secrets.token_urlsafe(32)
