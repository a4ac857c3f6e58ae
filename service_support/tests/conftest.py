"""
Shared fixtures for support service tests.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from shared.metrics import MetricsCollector
from shared.test_helpers import complete_profile
from service_support.app.access.gate import AccessGate
from service_support.app.access.models import Identity, Role, Tenant, User, UserProfile
from service_support.app.audit.trail import AuditTrail
from service_support.app.eligibility.evaluator import EligibilityEvaluator
from service_support.app.persistence.memory import InMemoryDocumentStore
from service_support.app.support.service import SupportConfigService
from service_support.app.users.service import UserService

TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"

# Fixed evaluation date for age checks
TODAY = date(2025, 1, 10)

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_user(user_id: str, role: Role, tenant_id=TENANT_ID, is_active=True, profile=None, offset=0) -> User:
    created = _BASE_TIME + timedelta(days=offset)
    return User(
        id=user_id,
        subject=f"subject-{user_id}",
        email=f"{user_id}@foundation.org",
        first_name=user_id.split("-")[0].title(),
        last_name="Tester",
        role=role,
        is_active=is_active,
        tenant_id=tenant_id,
        profile=UserProfile.from_dict(profile),
        created_at=created,
        updated_at=created,
    )


def identity_for(user: User) -> Identity:
    return Identity(subject=user.subject, email=user.email)


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def metrics():
    return MetricsCollector("support")


@pytest.fixture
def users():
    return {
        "super_admin": make_user("root-1", Role.SUPER_ADMIN, offset=0),
        "admin": make_user("admin-1", Role.ADMIN, offset=1),
        "reviewer": make_user("reviewer-1", Role.REVIEWER, offset=2),
        "beneficiary": make_user("ada-1", Role.BENEFICIARY, profile=complete_profile(), offset=3),
        "guardian": make_user("guardian-1", Role.GUARDIAN, offset=4),
        "other_beneficiary": make_user("bola-1", Role.BENEFICIARY, profile=complete_profile(level="sss_3"), offset=5),
        "inactive_admin": make_user("gone-1", Role.ADMIN, is_active=False, offset=6),
        "foreign_admin": make_user("alien-1", Role.ADMIN, tenant_id=OTHER_TENANT_ID, offset=7),
        "unassigned": make_user("drifter-1", Role.BENEFICIARY, tenant_id=None, offset=8),
    }


@pytest.fixture
async def store(users):
    store = InMemoryDocumentStore()
    await store.insert_tenant(Tenant(id=TENANT_ID, name="TheOyinbooke Foundation"))
    await store.insert_tenant(Tenant(id=OTHER_TENANT_ID, name="Second Foundation"))
    for user in users.values():
        await store.insert_user(user)
    return store


@pytest.fixture
def gate(store, metrics):
    return AccessGate(store, metrics=metrics)


@pytest.fixture
def audit(store, gate, metrics):
    return AuditTrail(store, gate, metrics=metrics)


@pytest.fixture
def support_service(store, gate, audit, metrics):
    return SupportConfigService(store, gate, audit, EligibilityEvaluator(metrics=metrics))


@pytest.fixture
def user_service(store, gate, audit):
    return UserService(store, gate, audit)


@pytest.fixture
def identities(users):
    return {name: identity_for(user) for name, user in users.items()}
