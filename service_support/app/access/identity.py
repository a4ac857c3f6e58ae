"""
Identity provider client.

Verifies bearer tokens issued by the external identity provider against its
JWKS and turns the verified claims into an ``Identity``.
"""

import time
from typing import Any, Dict, Optional

import httpx
from jose import jwt, jwk
from jose.exceptions import JWTError

from shared.errors import ExternalServiceError
from shared.logging import get_logger
from .errors import Unauthenticated
from .models import Identity


class JWKSClient:
    """Fetches and caches the provider's JSON Web Key Set."""

    def __init__(self, jwks_url: str, cache_ttl: int = 3600, http_client: Optional[httpx.AsyncClient] = None):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self.http_client = http_client
        self.logger = get_logger("support.jwks")

        self._jwks_cache: Optional[Dict[str, Any]] = None
        self._cache_timestamp: float = 0
        self._key_cache: Dict[str, Any] = {}

    async def _fetch_jwks(self) -> Dict[str, Any]:
        if self.http_client is not None:
            response = await self.http_client.get(self.jwks_url)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(self.jwks_url)
            response.raise_for_status()
            return response.json()

    async def get_jwks(self) -> Dict[str, Any]:
        """Get JWKS from cache or fetch from the provider."""
        current_time = time.time()

        if self._jwks_cache is not None and current_time - self._cache_timestamp < self.cache_ttl:
            return self._jwks_cache

        try:
            jwks_data = await self._fetch_jwks()
        except httpx.HTTPError as e:
            self.logger.error("Failed to fetch JWKS", error=str(e))
            # Serve stale keys rather than locking everyone out
            if self._jwks_cache is not None:
                self.logger.warning("Using stale JWKS cache due to fetch failure")
                return self._jwks_cache
            raise ExternalServiceError("identity-provider", "JWKS unavailable") from e

        self._jwks_cache = jwks_data
        self._cache_timestamp = current_time
        self._key_cache.clear()

        self.logger.info("JWKS refreshed successfully", keys_count=len(jwks_data.get("keys", [])))
        return jwks_data

    async def get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        """Get a specific key by key ID."""
        if kid in self._key_cache:
            return self._key_cache[kid]

        jwks = await self.get_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                self._key_cache[kid] = key
                return key

        self.logger.warning("Key not found", kid=kid)
        return None

    def clear_cache(self):
        self._jwks_cache = None
        self._cache_timestamp = 0
        self._key_cache.clear()


class TokenVerifier:
    """Verifies RS256 bearer tokens and yields identities."""

    def __init__(self, jwks_client: JWKSClient, issuer: Optional[str] = None):
        self.jwks_client = jwks_client
        self.issuer = issuer
        self.logger = get_logger("support.token_verifier")

    async def verify(self, token: str) -> Dict[str, Any]:
        """Verify a JWT and return its claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise Unauthenticated(f"Invalid token: {e}") from e

        kid = header.get("kid")
        if not kid:
            raise Unauthenticated("Invalid token: missing key ID")

        key_data = await self.jwks_client.get_key(kid)
        if not key_data:
            raise Unauthenticated(f"Invalid token: unknown key {kid}")

        options = {"verify_exp": True, "verify_aud": False, "verify_iss": self.issuer is not None}
        try:
            claims = jwt.decode(
                token,
                jwk.construct(key_data),
                algorithms=["RS256"],
                issuer=self.issuer,
                options=options
            )
        except JWTError as e:
            self.logger.warning("Token verification failed", error=str(e))
            raise Unauthenticated(f"Invalid token: {e}") from e

        if not claims.get("sub"):
            raise Unauthenticated("Invalid token: missing subject")

        return claims

    async def identify(self, authorization: Optional[str]) -> Optional[Identity]:
        """Resolve an Authorization header to an identity.

        A missing header yields ``None`` so the access gate reports the
        request as unauthenticated; a malformed or invalid token is rejected
        outright.
        """
        if not authorization:
            return None

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise Unauthenticated("Invalid authorization header format")

        claims = await self.verify(token.strip())
        return identity_from_claims(claims)


def identity_from_claims(claims: Dict[str, Any]) -> Identity:
    return Identity(
        subject=claims["sub"],
        email=claims.get("email"),
        first_name=claims.get("given_name") or claims.get("first_name"),
        last_name=claims.get("family_name") or claims.get("last_name"),
        claims=claims,
    )
