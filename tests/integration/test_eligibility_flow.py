"""
Integration tests for the sign-in to eligibility flow.

Runs the support service in-process over ASGI with an empty document store
and an identity provider that serves a throwaway JWKS.
"""

import httpx
import pytest

from shared.config import get_config
from shared.test_helpers import MockTokenGenerator
from service_support.app.access.identity import JWKSClient, TokenVerifier
from service_support.app.main import create_app
from service_support.app.persistence import InMemoryDocumentStore


SCHOOL_FEES = {
    "support_type": "school_fees",
    "display_name": "School Fees Support",
    "eligibility_rules": {"min_academic_level": "primary_1", "requires_min_grade": 50},
    "amount_config": [
        {
            "academic_level": "jss",
            "min_amount": 50000,
            "max_amount": 200000,
            "default_amount": 100000,
            "frequency": "termly",
            "school_type_multipliers": {"public": 1.0, "private": 2.0, "international": 3.0},
        },
    ],
}


class TestEligibilityFlow:
    """First sign-in through eligibility evaluation."""

    @pytest.fixture
    def tokens(self):
        return MockTokenGenerator(issuer="http://identity.test")

    @pytest.fixture
    async def client(self, tokens):
        jwks = httpx.MockTransport(lambda request: httpx.Response(200, json=tokens.jwks))
        verifier = TokenVerifier(
            JWKSClient("http://identity.test/jwks", http_client=httpx.AsyncClient(transport=jwks)),
            issuer="http://identity.test"
        )
        app = create_app(
            config=get_config("support", 8013, env="test", jwt_issuer="http://identity.test"),
            store=InMemoryDocumentStore(),
            verifier=verifier
        )
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://support") as client:
            yield client

    @pytest.fixture
    def founder(self, tokens):
        token = tokens.generate_access_token("idp|founder", email="founder@foundation.org",
                                             first_name="Tolu", last_name="Oyinbooke")
        return {"Authorization": f"Bearer {token}"}

    @pytest.fixture
    def student(self, tokens):
        token = tokens.generate_access_token("idp|student", email="chidi@example.org",
                                             first_name="Chidi", last_name="Okafor")
        return {"Authorization": f"Bearer {token}"}

    @pytest.mark.asyncio
    async def test_first_and_second_sign_in(self, client, founder, student):
        first = (await client.get("/me", headers=founder)).json()
        assert first["role"] == "super_admin"
        assert first["tenant"]["name"] == "TheOyinbooke Foundation"
        assert first["tenant"]["settings"]["exchange_rate"] == 1500

        second = (await client.get("/me", headers=student)).json()
        assert second["role"] == "beneficiary"
        assert second["tenant_id"] == first["tenant_id"]

        again = (await client.get("/me", headers=founder)).json()
        assert again["id"] == first["id"]

        history = await client.get(f"/audit-logs/users/{first['id']}",
                                   params={"tenant_id": first["tenant_id"]}, headers=founder)
        assert [r["risk_level"] for r in history.json()] == ["critical"]

    @pytest.mark.asyncio
    async def test_low_grade_is_ineligible_but_unlocked(self, client, founder, student):
        tenant_id = (await client.get("/me", headers=founder)).json()["tenant_id"]
        student_id = (await client.get("/me", headers=student)).json()["id"]

        created = await client.post("/support-configs", params={"tenant_id": tenant_id},
                                    json=SCHOOL_FEES, headers=founder)
        assert created.status_code == 201

        # no profile yet
        before = await client.get("/support-configs/eligible",
                                  params={"tenant_id": tenant_id, "user_id": student_id}, headers=student)
        locked = before.json()[0]["eligibility"]
        assert locked["is_locked"] is True
        assert locked["missing_requirements"] == ["Complete profile setup"]

        profile = await client.patch(f"/users/{student_id}/profile", headers=student, json={
            "date_of_birth": "2011-03-02",
            "gender": "male",
            "academic_info": {
                "current_level": "jss_2",
                "current_school": "Kings College",
                "school_type": "private",
                "last_grade_percentage": 45,
            },
        })
        assert profile.status_code == 200

        after = await client.get("/support-configs/eligible",
                                 params={"tenant_id": tenant_id, "user_id": student_id}, headers=student)
        [program] = after.json()

        assert program["support_type"] == "school_fees"
        assert program["eligibility"]["is_eligible"] is False
        assert program["eligibility"]["is_locked"] is False
        assert program["eligibility"]["reasons"] == ["Requires minimum grade: 50% (you have 45%)"]
        assert program["estimated_amount"] == {
            "min": 100000, "max": 400000, "default": 200000, "currency": "NGN", "frequency": "termly",
        }

        only_eligible = await client.get(
            "/support-configs/eligible",
            params={"tenant_id": tenant_id, "user_id": student_id, "eligible_only": True},
            headers=student
        )
        assert only_eligible.json() == []

    @pytest.mark.asyncio
    async def test_beneficiary_cannot_evaluate_someone_else(self, client, founder, student):
        founder_me = (await client.get("/me", headers=founder)).json()
        await client.get("/me", headers=student)

        response = await client.get("/support-configs/eligible",
                                    params={"tenant_id": founder_me["tenant_id"], "user_id": founder_me["id"]},
                                    headers=student)

        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"
