import base64
import time
from typing import Any

from authlib.jose import jwt


def oct_jwk(key: bytes, kid: str) -> dict[str, str]:
    return {
        "kty": "oct",
        "k": base64.urlsafe_b64encode(key).rstrip(b"=").decode("ascii"),
        "alg": "HS256",
        "kid": kid,
    }


def sign_hs256(claims: dict[str, Any], key: bytes, kid: str) -> str:
    token = jwt.encode({"alg": "HS256", "kid": kid, "typ": "JWT"}, claims, key)
    return token.decode("ascii") if isinstance(token, bytes) else token


def access_token_claims(
    issuer: str,
    audience: str,
    subject: str | None,
    lifetime: int = 3600,
    **extra: Any,
) -> dict[str, Any]:
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + lifetime,
        **extra,
    }
    if subject is not None:
        claims["sub"] = subject
    return claims
