import httpx
import logging
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from fastapi import HTTPException, status

# Use the 'jose' library for all JWT operations
from jose import jwt, jwk

from resume_tailor import config

logger = logging.getLogger(__name__)

RS_ALGORITHMS = ["RS256"]
HS_ALGORITHMS = ["HS256"]

# Cache for JWKS
_jwks_cache: List[Dict[str, Any]] = []


class AuthUser(BaseModel):
    """Claims we rely on from the hosted auth provider's access token."""
    sub: str
    email: Optional[str] = None


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_jwks() -> List[Dict[str, Any]]:
    """
    Retrieves and caches the JSON Web Key Set (JWKS) from the auth provider.
    """
    global _jwks_cache
    if _jwks_cache:
        return _jwks_cache

    if not config.AUTH_ISSUER_URL:
        logger.error("AUTH_ISSUER_URL not set")
        raise HTTPException(status_code=500, detail="Auth issuer URL not configured")

    url = f"{config.AUTH_ISSUER_URL}/.well-known/jwks.json"
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(url)
            response.raise_for_status()
            _jwks_cache = response.json()["keys"]
            return _jwks_cache
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch JWKS: {e}")
        raise HTTPException(status_code=500, detail="Could not fetch JWKS from auth provider")


def _decode_options() -> Dict[str, Any]:
    return {"verify_aud": bool(config.AUTH_AUDIENCE)}


async def verify_token(token: str) -> AuthUser:
    """
    Verifies an access token issued by the auth provider.

    A shared secret (AUTH_JWT_SECRET) selects HS256 verification; otherwise the
    token is checked against the issuer's JWKS with RS256.
    """
    if not token or not isinstance(token, str):
        logger.error("Token validation failed: Token is None or not a string")
        raise _credentials_error("Invalid token format")

    # header.payload.signature
    if token.count('.') != 2:
        logger.error(f"Invalid token format - wrong number of segments (segments: {token.count('.')})")
        raise _credentials_error("Invalid token format")

    try:
        if config.AUTH_JWT_SECRET:
            payload = jwt.decode(
                token,
                config.AUTH_JWT_SECRET,
                algorithms=HS_ALGORITHMS,
                audience=config.AUTH_AUDIENCE,
                options=_decode_options(),
            )
            return AuthUser(**payload)

        jwks = await get_jwks()
        unverified_header = jwt.get_unverified_header(token)

        rsa_key = {}
        for key in jwks:
            if key.get("kid") == unverified_header.get("kid"):
                rsa_key = key
                break

        if not rsa_key:
            raise _credentials_error("Unable to find appropriate key")

        public_key = jwk.construct(rsa_key, algorithm=RS_ALGORITHMS[0])

        payload = jwt.decode(
            token,
            public_key,
            algorithms=RS_ALGORITHMS,
            issuer=config.AUTH_ISSUER_URL,
            audience=config.AUTH_AUDIENCE,
            options=_decode_options(),
        )
        return AuthUser(**payload)

    except jwt.ExpiredSignatureError:
        raise _credentials_error("Token has expired")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error decoding token: {e}")
        raise _credentials_error()
