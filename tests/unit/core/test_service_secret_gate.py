"""Unit tests for the shared-secret gate."""

import pytest

from src.pupfinance.core.errors import ConfigurationError
from src.pupfinance.core.services.auth import ServiceSecretGate


class TestServiceSecretGate:
    def test_matching_secret_is_allowed(self):
        assert ServiceSecretGate("s3cret").verify("s3cret").allowed

    @pytest.mark.parametrize("presented", [None, "", "s3cre", "s3cret ", "S3CRET"])
    def test_anything_else_is_denied(self, presented):
        decision = ServiceSecretGate("s3cret").verify(presented)

        assert not decision.allowed
        assert decision.reason

    @pytest.mark.parametrize("secret", [None, ""])
    def test_refuses_to_start_without_secret(self, secret):
        with pytest.raises(ConfigurationError):
            ServiceSecretGate(secret)
