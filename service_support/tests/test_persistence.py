"""
Unit tests for the document stores.
"""

import json

import asyncpg
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from shared.errors import ConflictError, ServiceError
from service_support.app.access.models import Role, Tenant, User
from service_support.app.persistence import InMemoryDocumentStore, create_store
from service_support.app.persistence.postgres import PostgreSQLDocumentStore
from service_support.app.support.models import SupportConfiguration

TENANT_ID = "tenant-1"


def config(config_id, support_type="school_fees", is_active=True, tenant_id=TENANT_ID):
    return SupportConfiguration(
        id=config_id, tenant_id=tenant_id, support_type=support_type,
        display_name=support_type.replace("_", " ").title(), is_active=is_active,
    )


class TestInMemoryDocumentStore:
    """Test cases for InMemoryDocumentStore."""

    @pytest.fixture
    def store(self):
        return InMemoryDocumentStore()

    @pytest.mark.asyncio
    async def test_one_active_configuration_per_type(self, store):
        await store.insert_configuration(config("c1"))
        await store.insert_configuration(config("c2", is_active=False))
        await store.insert_configuration(config("c3", tenant_id="tenant-2"))

        with pytest.raises(ConflictError):
            await store.insert_configuration(config("c4"))

        inactive = await store.get_configuration("c2")
        inactive.is_active = True
        with pytest.raises(ConflictError):
            await store.save_configuration(inactive)

    @pytest.mark.asyncio
    async def test_active_lookups(self, store):
        await store.insert_configuration(config("c1"))
        await store.insert_configuration(config("c2", "upkeep", is_active=False))

        assert [c.id for c in await store.find_active_configurations(TENANT_ID)] == ["c1"]
        assert (await store.find_active_configuration(TENANT_ID, "school_fees")).id == "c1"
        assert await store.find_active_configuration(TENANT_ID, "upkeep") is None
        assert len(await store.list_configurations(TENANT_ID)) == 2

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, store):
        await store.insert_configuration(config("c1"))

        loaded = await store.get_configuration("c1")
        loaded.display_name = "Changed without saving"

        assert (await store.get_configuration("c1")).display_name == "School Fees"

    @pytest.mark.asyncio
    async def test_duplicate_subject(self, store):
        await store.insert_user(User(id="u1", subject="s1", email="a@x.org", first_name="A", last_name="B"))
        with pytest.raises(ConflictError):
            await store.insert_user(User(id="u2", subject="s1", email="b@x.org", first_name="C", last_name="D"))

        assert await store.count_users() == 1
        assert (await store.find_user_by_subject("s1")).role == Role.BENEFICIARY

    def test_backend_selection(self):
        assert isinstance(create_store("memory"), InMemoryDocumentStore)
        with pytest.raises(ValueError):
            create_store("mongodb")


class TestPostgreSQLDocumentStore:
    """Test cases for PostgreSQLDocumentStore against a mocked pool."""

    @pytest.fixture
    def conn(self):
        return AsyncMock()

    @pytest.fixture
    def store(self, conn):
        store = create_store("postgres", "postgres://db.test/foundation", min_size=1, max_size=2)
        store.pool = MagicMock()
        store.pool.acquire.return_value.__aenter__.return_value = conn
        return store

    @pytest.mark.asyncio
    async def test_start_failure(self):
        store = PostgreSQLDocumentStore("postgres://db.test/foundation")
        with patch("asyncpg.create_pool", new_callable=AsyncMock, side_effect=OSError("connection refused")):
            with pytest.raises(ServiceError):
                await store.start()

        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self, store, conn):
        conn.execute.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ConflictError):
            await store.insert_configuration(config("c1"))

    @pytest.mark.asyncio
    async def test_documents_round_trip_as_json(self, store, conn):
        await store.insert_configuration(config("c1"))
        doc = conn.execute.call_args[0][-1]

        conn.fetchval.return_value = doc
        loaded = await store.get_configuration("c1")

        assert loaded.support_type == "school_fees"
        assert loaded.tenant_id == TENANT_ID

    @pytest.mark.asyncio
    async def test_audit_query_parameters(self, store, conn):
        conn.fetch.return_value = []

        await store.list_audit_records(TENANT_ID, entity_type="users", entity_id="u1", limit=50)

        query, *params = conn.fetch.call_args[0]
        assert params == [TENANT_ID, "users", "u1", 50]
        assert "entity_id = $3" in query
        assert "LIMIT $4" in query

    @pytest.mark.asyncio
    async def test_first_user_provisioned_under_advisory_lock(self, store, conn):
        conn.transaction = MagicMock()
        conn.fetchval.return_value = 0
        user = User(id="u1", subject="s1", email="a@x.org", first_name="A", last_name="B")

        stored, tenant = await store.provision_user(user, Tenant(id="t1", name="TheOyinbooke Foundation"))

        assert stored.role == Role.SUPER_ADMIN
        assert stored.tenant_id == tenant.id == "t1"
        conn.transaction.assert_called_once()
        statements = [c[0][0] for c in conn.execute.call_args_list]
        assert "pg_advisory_xact_lock" in statements[0]
        assert statements[1].startswith("INSERT INTO tenants")
        assert statements[2].startswith("INSERT INTO users")

    @pytest.mark.asyncio
    async def test_later_user_joins_first_active_tenant(self, store, conn):
        conn.transaction = MagicMock()
        tenant_doc = json.dumps(Tenant(id="t1", name="TheOyinbooke Foundation").to_dict())
        conn.fetchval.side_effect = [3, tenant_doc]
        user = User(id="u2", subject="s2", email="b@x.org", first_name="C", last_name="D")

        stored, tenant = await store.provision_user(user, Tenant(id="unused", name="Unused"))

        assert stored.role == Role.BENEFICIARY
        assert stored.tenant_id == "t1"
        assert not any("INSERT INTO tenants" in c[0][0] for c in conn.execute.call_args_list)


class TestProvisioning:
    """Test cases for atomic sign-in provisioning in the in-memory store."""

    @pytest.mark.asyncio
    async def test_only_first_user_becomes_super_admin(self):
        store = InMemoryDocumentStore()
        default = Tenant(id="t1", name="TheOyinbooke Foundation")

        first, tenant = await store.provision_user(
            User(id="u1", subject="s1", email="a@x.org", first_name="A", last_name="B"), default
        )
        second, joined = await store.provision_user(
            User(id="u2", subject="s2", email="b@x.org", first_name="C", last_name="D"),
            Tenant(id="t2", name="Another")
        )

        assert (first.role, tenant.id) == (Role.SUPER_ADMIN, "t1")
        assert (second.role, joined.id) == (Role.BENEFICIARY, "t1")
        assert list(store.tenants) == ["t1"]

    @pytest.mark.asyncio
    async def test_find_user_by_email_ignores_case(self):
        store = InMemoryDocumentStore()
        await store.insert_user(User(id="u1", subject=None, email="Kemi@X.org", first_name="K", last_name="A",
                                     is_active=False))

        found = await store.find_user_by_email("kemi@x.org")

        assert found.id == "u1"
        assert found.is_pending_invitation
