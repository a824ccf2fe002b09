"""Tests for password hashing and the tagged credential variants."""

from portal.auth.credentials import (
    HashedCredential,
    TemporaryCredential,
    credentials_for,
    verify_any,
)
from portal.auth.utils import (
    create_access_token,
    decode_token,
    hash_password,
    is_bcrypt_hash,
    verify_scrypt_password,
)
from portal.models import User

from tests.helpers import legacy_scrypt_hash


class TestHashedCredential:
    def test_bcrypt_is_detected_and_verified(self):
        credential = HashedCredential.from_stored(hash_password("s3cret!"))

        assert credential.scheme == "bcrypt"
        assert credential.verify("s3cret!") is True
        assert credential.verify("S3cret!") is False

    def test_legacy_scrypt_is_detected_and_verified(self):
        credential = HashedCredential.from_stored(legacy_scrypt_hash("hunter22"))

        assert credential.scheme == "scrypt"
        assert credential.verify("hunter22") is True
        assert credential.verify("hunter23") is False

    def test_bcrypt_prefixes(self):
        assert is_bcrypt_hash("$2a$10$abc")
        assert is_bcrypt_hash("$2b$12$abc")
        assert is_bcrypt_hash("$2y$10$abc")
        assert not is_bcrypt_hash("deadbeef.salt")

    def test_malformed_scrypt_never_matches(self):
        assert verify_scrypt_password("anything", "no-dot-here") is False
        assert verify_scrypt_password("anything", "zz-not-hex.salt") is False
        assert verify_scrypt_password("anything", ".salt") is False


class TestTemporaryCredential:
    def test_exact_match_only(self):
        credential = TemporaryCredential("Temp-1234")

        assert credential.verify("Temp-1234") is True
        assert credential.verify("temp-1234") is False
        assert credential.verify("Temp-1234 ") is False


class TestCredentialsFor:
    def test_temporary_password_comes_first(self):
        user = User(email="a@example.com", temporary_password="Temp-1234", password_hash=hash_password("perm"))

        creds = credentials_for(user)

        assert isinstance(creds[0], TemporaryCredential)
        assert isinstance(creds[1], HashedCredential)
        assert verify_any(creds, "Temp-1234") is creds[0]
        assert verify_any(creds, "perm") is creds[1]
        assert verify_any(creds, "neither") is None

    def test_sso_only_account_has_no_credentials(self):
        user = User(email="sso@example.com", azure_id="oid.tid")
        assert credentials_for(user) == []
        assert verify_any(credentials_for(user), "") is None


class TestAccessToken:
    def test_payload_carries_only_session_claims(self):
        token, expires_at = create_access_token(subject="5f0c1a2e-0000-4000-8000-000000000001")

        payload = decode_token(token)

        assert set(payload) == {"sub", "exp", "type", "iat", "jti"}
        assert payload["type"] == "access"
        assert payload["exp"] == int(expires_at.timestamp())

    def test_each_token_has_its_own_jti(self):
        first, _ = create_access_token(subject="user")
        second, _ = create_access_token(subject="user")
        assert decode_token(first)["jti"] != decode_token(second)["jti"]
