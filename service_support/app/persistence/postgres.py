"""
PostgreSQL document store.

Each document is kept whole in a JSONB ``doc`` column; the columns the
service filters on are copied next to it and indexed. The partial unique
index on ``support_configurations`` enforces one active program per
tenant and support type.
"""

import json
from typing import List, Optional, Tuple

import asyncpg

from shared.errors import ConflictError, ServiceError
from shared.logging import get_logger
from ..access.models import Role, Tenant, User
from ..audit.models import AuditRecord
from ..support.models import SupportConfiguration
from .base import DocumentStore

# pg_advisory_xact_lock key serializing sign-in provisioning
PROVISION_LOCK_KEY = 7_210_431

FIRST_ACTIVE_TENANT = "SELECT doc FROM tenants WHERE is_active ORDER BY created_at LIMIT 1"


class PostgreSQLDocumentStore(DocumentStore):
    """asyncpg backed store."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10, command_timeout: int = 30):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.logger = get_logger("support.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the pool and create tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
            await self._create_tables()
            self.logger.info("PostgreSQL document store started")

        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL document store", error=str(e))
            raise ServiceError("Document store unavailable", details={"error": str(e)}) from e

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL document store stopped")

    async def health_check(self) -> bool:
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (OSError, asyncpg.PostgresError) as e:
            self.logger.warning("PostgreSQL health check failed", error=str(e))
            return False

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tenants (
                    id VARCHAR(64) PRIMARY KEY,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    doc JSONB NOT NULL
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id VARCHAR(64) PRIMARY KEY,
                    subject VARCHAR(255) UNIQUE,
                    tenant_id VARCHAR(64),
                    doc JSONB NOT NULL
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS support_configurations (
                    id VARCHAR(64) PRIMARY KEY,
                    tenant_id VARCHAR(64) NOT NULL,
                    support_type VARCHAR(100) NOT NULL,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    doc JSONB NOT NULL
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS audit_logs (
                    id VARCHAR(64) PRIMARY KEY,
                    tenant_id VARCHAR(64) NOT NULL,
                    entity_type VARCHAR(100) NOT NULL,
                    entity_id VARCHAR(64),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL,
                    doc JSONB NOT NULL
                );
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_tenant ON users(tenant_id);
            """)
            await conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_support_configurations_active_type
                ON support_configurations(tenant_id, support_type) WHERE is_active;
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_audit_logs_entity
                ON audit_logs(tenant_id, entity_type, entity_id, created_at DESC);
            """)

    # users

    async def find_user_by_subject(self, subject: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("SELECT doc FROM users WHERE subject = $1", subject)
        return User.from_dict(json.loads(doc)) if doc else None

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("SELECT doc FROM users WHERE id = $1", user_id)
        return User.from_dict(json.loads(doc)) if doc else None

    async def insert_user(self, user: User) -> User:
        try:
            async with self.pool.acquire() as conn:
                await self._insert_user(conn, user)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("User already exists", details={"subject": user.subject}) from e
        return user

    async def _insert_user(self, conn, user: User):
        await conn.execute(
            "INSERT INTO users (id, subject, tenant_id, doc) VALUES ($1, $2, $3, $4::jsonb)",
            user.id, user.subject, user.tenant_id, json.dumps(user.to_dict())
        )

    async def find_user_by_email(self, email: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("""
                SELECT doc FROM users WHERE lower(doc->>'email') = lower($1)
                ORDER BY doc->>'created_at' LIMIT 1
            """, email)
        return User.from_dict(json.loads(doc)) if doc else None

    async def provision_user(self, user: User, default_tenant: Tenant) -> Tuple[User, Optional[Tenant]]:
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute("SELECT pg_advisory_xact_lock($1)", PROVISION_LOCK_KEY)

                    if await conn.fetchval("SELECT COUNT(*) FROM users") == 0:
                        await self._insert_tenant(conn, default_tenant)
                        user.role = Role.SUPER_ADMIN
                        tenant = default_tenant
                    else:
                        doc = await conn.fetchval(FIRST_ACTIVE_TENANT)
                        tenant = Tenant.from_dict(json.loads(doc)) if doc else None

                    user.tenant_id = tenant.id if tenant else None
                    await self._insert_user(conn, user)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("User already exists", details={"subject": user.subject}) from e
        return user, tenant

    async def save_user(self, user: User) -> User:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    "UPDATE users SET subject = $2, tenant_id = $3, doc = $4::jsonb WHERE id = $1",
                    user.id, user.subject, user.tenant_id, json.dumps(user.to_dict())
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("User already exists", details={"subject": user.subject}) from e
        return user

    async def list_users(self, tenant_id: Optional[str] = None) -> List[User]:
        async with self.pool.acquire() as conn:
            if tenant_id is None:
                rows = await conn.fetch("SELECT doc FROM users")
            else:
                rows = await conn.fetch("SELECT doc FROM users WHERE tenant_id = $1", tenant_id)
        return [User.from_dict(json.loads(row["doc"])) for row in rows]

    async def count_users(self) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM users")

    # tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("SELECT doc FROM tenants WHERE id = $1", tenant_id)
        return Tenant.from_dict(json.loads(doc)) if doc else None

    async def insert_tenant(self, tenant: Tenant) -> Tenant:
        async with self.pool.acquire() as conn:
            await self._insert_tenant(conn, tenant)
        return tenant

    async def _insert_tenant(self, conn, tenant: Tenant):
        await conn.execute(
            "INSERT INTO tenants (id, is_active, created_at, doc) VALUES ($1, $2, $3, $4::jsonb)",
            tenant.id, tenant.is_active, tenant.created_at, json.dumps(tenant.to_dict())
        )

    async def first_active_tenant(self) -> Optional[Tenant]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval(FIRST_ACTIVE_TENANT)
        return Tenant.from_dict(json.loads(doc)) if doc else None

    # support configurations

    async def get_configuration(self, config_id: str) -> Optional[SupportConfiguration]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("SELECT doc FROM support_configurations WHERE id = $1", config_id)
        return SupportConfiguration.from_dict(json.loads(doc)) if doc else None

    async def insert_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO support_configurations (id, tenant_id, support_type, is_active, doc)
                    VALUES ($1, $2, $3, $4, $5::jsonb)
                """,
                    config.id, config.tenant_id, config.support_type, config.is_active,
                    json.dumps(config.to_dict())
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"Support configuration for {config.support_type} already exists",
                details={"support_type": config.support_type}
            ) from e
        return config

    async def save_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    UPDATE support_configurations SET is_active = $2, doc = $3::jsonb WHERE id = $1
                """, config.id, config.is_active, json.dumps(config.to_dict()))
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"Support configuration for {config.support_type} already exists",
                details={"support_type": config.support_type}
            ) from e
        return config

    async def list_configurations(self, tenant_id: str, active_only: bool = False) -> List[SupportConfiguration]:
        query = "SELECT doc FROM support_configurations WHERE tenant_id = $1"
        if active_only:
            query += " AND is_active"
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, tenant_id)
        return [SupportConfiguration.from_dict(json.loads(row["doc"])) for row in rows]

    async def find_active_configuration(self, tenant_id: str, support_type: str) -> Optional[SupportConfiguration]:
        async with self.pool.acquire() as conn:
            doc = await conn.fetchval("""
                SELECT doc FROM support_configurations
                WHERE tenant_id = $1 AND support_type = $2 AND is_active
            """, tenant_id, support_type)
        return SupportConfiguration.from_dict(json.loads(doc)) if doc else None

    # audit trail

    async def insert_audit_record(self, record: AuditRecord) -> AuditRecord:
        async with self.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO audit_logs (id, tenant_id, entity_type, entity_id, created_at, doc)
                VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            """,
                record.id, record.tenant_id, record.entity_type, record.entity_id,
                record.created_at, json.dumps(record.to_dict())
            )
        return record

    async def list_audit_records(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditRecord]:
        conditions = ["tenant_id = $1"]
        params = [tenant_id]
        if entity_type is not None:
            params.append(entity_type)
            conditions.append(f"entity_type = ${len(params)}")
        if entity_id is not None:
            params.append(entity_id)
            conditions.append(f"entity_id = ${len(params)}")
        params.append(limit)

        query = f"""
            SELECT doc FROM audit_logs
            WHERE {' AND '.join(conditions)}
            ORDER BY created_at DESC
            LIMIT ${len(params)}
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [AuditRecord.from_dict(json.loads(row["doc"])) for row in rows]
