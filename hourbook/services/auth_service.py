import os

import jwt

JWT_ALGORITHM = "HS256"


def _get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET is required")
    if len(secret) < 32:
        raise ValueError("JWT_SECRET must be at least 32 characters")
    return secret


def _get_jwt_audience() -> str:
    return os.getenv("JWT_AUDIENCE", "authenticated")


def verify_token(token: str) -> dict:
    """Validate a bearer token issued by the identity provider.

    Tokens are never minted here; the provider signs them with the shared
    secret and sets ``aud`` to the configured audience.
    """
    secret = _get_jwt_secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            audience=_get_jwt_audience(),
        )
    except jwt.PyJWTError as exc:
        raise ValueError("Invalid or expired token") from exc

    if not payload.get("sub"):
        raise ValueError("Invalid token claims")

    return payload
