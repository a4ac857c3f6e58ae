"""
Unit tests for the identity provider client.
"""

import httpx
import pytest

from shared.errors import ExternalServiceError
from shared.test_helpers import MockTokenGenerator
from service_support.app.access.errors import Unauthenticated
from service_support.app.access.identity import JWKSClient, TokenVerifier, identity_from_claims

JWKS_URL = "http://identity.test/.well-known/jwks.json"


@pytest.fixture(scope="module")
def tokens():
    return MockTokenGenerator(issuer="http://identity.test")


def jwks_transport(tokens, calls, fail=False):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if fail:
            return httpx.Response(503)
        return httpx.Response(200, json=tokens.jwks)
    return httpx.MockTransport(handler)


class TestJWKSClient:
    """Test cases for JWKSClient."""

    @pytest.mark.asyncio
    async def test_keys_are_cached(self, tokens):
        calls = []
        client = JWKSClient(JWKS_URL, http_client=httpx.AsyncClient(transport=jwks_transport(tokens, calls)))

        assert (await client.get_key("test-key"))["kid"] == "test-key"
        await client.get_jwks()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unknown_kid(self, tokens):
        client = JWKSClient(JWKS_URL, http_client=httpx.AsyncClient(transport=jwks_transport(tokens, [])))
        assert await client.get_key("rotated-away") is None

    @pytest.mark.asyncio
    async def test_stale_cache_served_when_refresh_fails(self, tokens):
        client = JWKSClient(JWKS_URL, cache_ttl=0,
                            http_client=httpx.AsyncClient(transport=jwks_transport(tokens, [])))
        keys = await client.get_jwks()

        client.http_client = httpx.AsyncClient(transport=jwks_transport(tokens, [], fail=True))
        assert await client.get_jwks() == keys

    @pytest.mark.asyncio
    async def test_no_cache_and_no_provider(self, tokens):
        client = JWKSClient(JWKS_URL, http_client=httpx.AsyncClient(transport=jwks_transport(tokens, [], fail=True)))
        with pytest.raises(ExternalServiceError):
            await client.get_jwks()


class TestTokenVerifier:
    """Test cases for TokenVerifier."""

    @pytest.fixture
    def verifier(self, tokens):
        client = JWKSClient(JWKS_URL, http_client=httpx.AsyncClient(transport=jwks_transport(tokens, [])))
        return TokenVerifier(client, issuer="http://identity.test")

    @pytest.mark.asyncio
    async def test_valid_token(self, verifier, tokens):
        token = tokens.generate_access_token("user_2abc", email="ada@foundation.org", first_name="Ada", last_name="Obi")

        identity = await verifier.identify(f"Bearer {token}")

        assert identity.subject == "user_2abc"
        assert identity.email == "ada@foundation.org"
        assert identity.first_name == "Ada"
        assert identity.last_name == "Obi"

    @pytest.mark.asyncio
    async def test_missing_header_is_anonymous(self, verifier):
        assert await verifier.identify(None) is None

    @pytest.mark.asyncio
    async def test_wrong_scheme(self, verifier, tokens):
        with pytest.raises(Unauthenticated):
            await verifier.identify(f"Basic {tokens.generate_access_token('user_1')}")

    @pytest.mark.asyncio
    async def test_expired_token(self, verifier, tokens):
        with pytest.raises(Unauthenticated):
            await verifier.identify(f"Bearer {tokens.generate_access_token('user_1', expires_in=-60)}")

    @pytest.mark.asyncio
    async def test_unknown_key(self, verifier, tokens):
        with pytest.raises(Unauthenticated):
            await verifier.identify(f"Bearer {tokens.generate_access_token('user_1', kid='other')}")

    @pytest.mark.asyncio
    async def test_foreign_signature(self, verifier):
        impostor = MockTokenGenerator(issuer="http://identity.test")
        with pytest.raises(Unauthenticated):
            await verifier.identify(f"Bearer {impostor.generate_access_token('user_1')}")

    @pytest.mark.asyncio
    async def test_garbage_token(self, verifier):
        with pytest.raises(Unauthenticated):
            await verifier.identify("Bearer not-a-jwt")

    def test_identity_from_claims(self):
        identity = identity_from_claims({"sub": "user_9", "email": "x@y.org"})
        assert identity.subject == "user_9"
        assert identity.first_name is None
