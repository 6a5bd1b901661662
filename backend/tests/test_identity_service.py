"""
Shipment Service Backend - Identity Resolver Unit Tests
========================================================

What we test:
    ✅ Bearer extraction: missing header, missing token, wrong scheme
    ✅ Valid token → normalized owner email (email or name claim) + role
    ✅ Expired token → AuthExpiredError, bad signature → AuthInvalidError
    ✅ Token without an email-like claim is rejected
    ✅ Unconfigured secret rejects everything
"""

import pytest

from app.exceptions import AuthExpiredError, AuthInvalidError, AuthMissingError
from app.services.identity_service import IdentityResolver


class TestExtractBearerToken:
    def test_missing_header(self):
        with pytest.raises(AuthMissingError) as exc_info:
            IdentityResolver.extract_bearer_token(None)
        assert exc_info.value.message == "Authorization header missing"
        assert exc_info.value.status_code == 401

    def test_blank_header_counts_as_missing(self):
        with pytest.raises(AuthMissingError):
            IdentityResolver.extract_bearer_token("   ")

    def test_scheme_without_token(self):
        with pytest.raises(AuthMissingError) as exc_info:
            IdentityResolver.extract_bearer_token("Bearer")
        assert exc_info.value.message == "Access token required"

    def test_non_bearer_scheme_is_invalid(self):
        with pytest.raises(AuthInvalidError) as exc_info:
            IdentityResolver.extract_bearer_token("Basic dXNlcjpwYXNz")
        assert exc_info.value.status_code == 403

    def test_scheme_is_case_insensitive(self):
        assert IdentityResolver.extract_bearer_token("bearer abc.def.ghi") == "abc.def.ghi"


class TestDecode:
    def test_valid_token_resolves_email(self, resolver, make_token):
        identity = resolver.resolve(f"Bearer {make_token('alice@example.com')}")
        assert identity.email == "alice@example.com"
        assert identity.role is None

    def test_email_is_normalized(self, resolver, make_token):
        identity = resolver.decode(make_token("  Alice@Example.COM "))
        assert identity.email == "alice@example.com"

    def test_name_claim_fallback(self, resolver, make_token):
        identity = resolver.decode(make_token("alice@example.com", claim="name"))
        assert identity.email == "alice@example.com"

    def test_role_claim_is_exposed(self, resolver, make_token):
        identity = resolver.decode(make_token("alice@example.com", role="admin"))
        assert identity.role == "admin"

    def test_expired_token(self, resolver, make_token):
        with pytest.raises(AuthExpiredError) as exc_info:
            resolver.decode(make_token("alice@example.com", expires_in=-60))
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Access token expired"

    def test_wrong_signature(self, resolver, make_token):
        with pytest.raises(AuthInvalidError):
            resolver.decode(make_token("alice@example.com", secret="someone-elses-secret"))

    def test_garbage_token(self, resolver):
        with pytest.raises(AuthInvalidError):
            resolver.decode("not-a-jwt")

    def test_token_without_email_claim(self, resolver, make_token):
        with pytest.raises(AuthInvalidError):
            resolver.decode(make_token(None))

    def test_name_claim_without_at_sign_is_rejected(self, resolver, make_token):
        with pytest.raises(AuthInvalidError):
            resolver.decode(make_token("alice", claim="name"))

    def test_unconfigured_secret_rejects_valid_token(self, make_token):
        with pytest.raises(AuthInvalidError):
            IdentityResolver(secret="").decode(make_token("alice@example.com"))

    def test_leeway_accepts_recently_expired_token(self, make_token):
        resolver = IdentityResolver(secret="test-secret-not-real", leeway=120)
        identity = resolver.decode(make_token("alice@example.com", expires_in=-30))
        assert identity.email == "alice@example.com"
