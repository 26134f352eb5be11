"""JWT verification service."""

import time
from typing import Any

from authlib.jose import JoseError, JsonWebKey, jwt
from loguru import logger

from src.pupfinance.core.errors import Unauthenticated
from src.pupfinance.core.services.jwt.jwks import JwksService
from src.pupfinance.core.services.jwt.jwt_utils import preview_jwt
from src.pupfinance.runtime.config.config_data import AuthConfig


class JwtVerificationService:
    """Verifies access tokens issued by the configured identity provider.

    Returns the decoded claim mapping; everything downstream trusts it.
    """

    def __init__(self, jwks_service: JwksService, auth_config: AuthConfig):
        self._jwks_service = jwks_service
        self._auth_config = auth_config

    async def verify_jwt(self, token: str) -> dict[str, Any]:
        cfg = self._auth_config
        pv = preview_jwt(token)

        # alg allowlist
        if pv.alg not in cfg.allowed_algorithms:
            raise Unauthenticated("Disallowed JWT algorithm")

        if not cfg.issuer or not cfg.jwks_uri or not cfg.audience:
            raise Unauthenticated("Token verification is not configured")

        if pv.iss != cfg.issuer:
            raise Unauthenticated("Invalid issuer")

        # fetch JWKS and select by kid once
        jwks = await self._jwks_service.fetch_jwks(cfg.jwks_uri)
        jwk_set = (
            {"keys": [k for k in jwks.get("keys", []) if k.get("kid") == pv.kid]}
            if pv.kid
            else jwks
        )
        if pv.kid and not jwk_set.get("keys"):
            raise Unauthenticated(f"No JWK matches kid={pv.kid}")
        try:
            verification_key = JsonWebKey.import_key_set(jwk_set)
        except (JoseError, ValueError) as exc:
            raise Unauthenticated(f"Unusable JWKS: {exc}") from exc

        claims_options = {
            "iss": {"essential": True, "values": [cfg.issuer]},
            "aud": {"essential": True, "values": [cfg.audience]},
            "sub": {"essential": True},
        }

        # verify signature + registered claims
        try:
            logger.debug(
                "Verifying JWT from issuer {} for audience {}", cfg.issuer, cfg.audience
            )
            claims = jwt.decode(token, verification_key, claims_options=claims_options)
            claims.validate(leeway=cfg.clock_skew)
        except (JoseError, ValueError) as exc:
            raise Unauthenticated(f"JWT error: {exc}") from exc

        # extra temporal sanity
        now = int(time.time())
        for k, check in (
            ("exp", lambda v: now > int(v) + cfg.clock_skew),
            ("nbf", lambda v: now < int(v) - cfg.clock_skew),
            ("iat", lambda v: int(v) > now + cfg.clock_skew),
        ):
            v = claims.get(k)
            if v is not None and check(v):
                raise Unauthenticated(f"Invalid {k} with skew")

        return dict(claims)
