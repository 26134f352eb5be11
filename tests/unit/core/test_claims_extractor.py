"""Unit tests for ClaimsExtractor."""

import pydantic
import pytest

from src.pupfinance.core.errors import MalformedClaimsError
from src.pupfinance.core.services.auth import ClaimsExtractor
from src.pupfinance.runtime.config.config_data import AuthConfig

PERMS = "https://api.pupfinance.test/permissions"
ROLES = "https://pupfinance.com/roles"


@pytest.fixture
def extractor() -> ClaimsExtractor:
    return ClaimsExtractor(permissions_claim=PERMS, roles_claim=ROLES)


class TestClaimsExtractor:
    def test_extracts_subject_permissions_and_roles(self, extractor):
        claims = extractor.extract(
            {
                "sub": "auth0|abc",
                PERMS: ["read:accounts", "write:accounts"],
                ROLES: ["admin"],
                "email": "a@example.com",
            }
        )

        assert claims.subject_id == "auth0|abc"
        assert claims.permissions == {"read:accounts", "write:accounts"}
        assert claims.roles == {"admin"}
        assert claims.extra == {"email": "a@example.com"}

    def test_missing_permission_and_role_claims_are_empty(self, extractor):
        claims = extractor.extract({"sub": "auth0|abc"})

        assert claims.permissions == frozenset()
        assert claims.roles == frozenset()

    @pytest.mark.parametrize(
        "value",
        ["read:accounts", {"read:accounts": True}, ["read:accounts", 7], 42],
    )
    def test_malformed_permission_claim_fails_closed(self, extractor, value):
        claims = extractor.extract({"sub": "auth0|abc", PERMS: value})

        assert claims.permissions == frozenset()

    def test_plain_permissions_key_is_ignored_when_namespaced_key_configured(
        self, extractor
    ):
        claims = extractor.extract({"sub": "auth0|abc", "permissions": ["read:x"]})

        assert claims.permissions == frozenset()
        assert claims.extra["permissions"] == ["read:x"]

    @pytest.mark.parametrize("payload", [{}, {"sub": ""}, {"sub": 123}, {"sub": None}])
    def test_missing_or_invalid_subject_raises(self, extractor, payload):
        with pytest.raises(MalformedClaimsError):
            extractor.extract(payload)

    def test_from_config_derives_permissions_claim_from_audience(self):
        extractor = ClaimsExtractor.from_config(
            AuthConfig(domain="t.auth0.com", audience="https://api.pupfinance.test")
        )

        assert extractor.permissions_claim == PERMS
        assert extractor.roles_claim == ROLES

    def test_from_config_honours_explicit_permissions_claim(self):
        extractor = ClaimsExtractor.from_config(
            AuthConfig(audience="https://api.pupfinance.test", permissions_claim="permissions")
        )

        claims = extractor.extract({"sub": "s", "permissions": ["read:x"]})
        assert claims.permissions == {"read:x"}

    def test_claims_are_immutable(self, extractor):
        claims = extractor.extract({"sub": "auth0|abc"})

        with pytest.raises(pydantic.ValidationError):
            claims.subject_id = "other"  # type: ignore[misc]
