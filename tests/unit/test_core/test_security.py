"""Unit tests for service token security module."""

import jwt
import pytest

from catalog_api.core.security import CallerRole, create_access_token, decode_token, is_privileged

SECRET = "test-secret-key-not-for-production"


class TestJWT:
    """Tests for JWT token creation and decoding."""

    def test_create_and_decode_access_token(self) -> None:
        token = create_access_token("dp-import", CallerRole.PUBLISHER, SECRET)
        payload = decode_token(token, SECRET)
        assert payload["sub"] == "dp-import"
        assert payload["role"] == "publisher"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self) -> None:
        token = create_access_token("dp-import", "publisher", SECRET, expires_minutes=-1)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token, SECRET)

    def test_wrong_secret_rejected(self) -> None:
        token = create_access_token("dp-import", "publisher", SECRET)
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token, "another-secret-key-not-for-production")


class TestIsPrivileged:
    @pytest.mark.parametrize(("role", "expected"), [("admin", True), ("publisher", True), ("viewer", False)])
    def test_roles(self, role: str, expected: bool) -> None:
        assert is_privileged({"type": "access", "role": role}) is expected

    def test_non_access_token(self) -> None:
        assert not is_privileged({"type": "refresh", "role": "admin"})
