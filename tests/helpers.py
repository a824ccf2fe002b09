"""Constants and small builders shared by the test modules."""

import hashlib

from portal.auth.utils import create_access_token
from portal.models import User

PASSWORD = "P@ssw0rd1"
CLIENT_IP = "10.0.0.1"
USER_AGENT = "Mozilla/5.0 (pytest)"


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


def legacy_scrypt_hash(password: str, salt: str = "a1b2c3d4e5f60718") -> str:
    """Build a password hash in the legacy ``<hex digest>.<salt>`` format."""
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt}"
