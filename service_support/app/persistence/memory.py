"""
In-process document store.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from shared.errors import ConflictError
from ..access.models import Role, Tenant, User
from ..audit.models import AuditRecord
from ..support.models import SupportConfiguration
from .base import DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Keeps serialized documents in dictionaries.

    Documents are stored as plain dicts and rebuilt on every read, so callers
    never share mutable state with the store.
    """

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.tenants: Dict[str, dict] = {}
        self.configurations: Dict[str, dict] = {}
        self.audit_records: List[dict] = []
        self._provision_lock = asyncio.Lock()

    # users

    async def find_user_by_subject(self, subject: str) -> Optional[User]:
        for doc in self.users.values():
            if doc["subject"] == subject:
                return User.from_dict(doc)
        return None

    async def get_user(self, user_id: str) -> Optional[User]:
        doc = self.users.get(user_id)
        return User.from_dict(doc) if doc else None

    def _check_subject_unique(self, user: User):
        if user.subject is None:
            return
        for doc in self.users.values():
            if doc["id"] != user.id and doc["subject"] == user.subject:
                raise ConflictError("User already exists", details={"subject": user.subject})

    async def insert_user(self, user: User) -> User:
        self._check_subject_unique(user)
        self.users[user.id] = user.to_dict()
        return user

    async def find_user_by_email(self, email: str) -> Optional[User]:
        matches = [doc for doc in self.users.values() if doc["email"].lower() == email.lower()]
        if not matches:
            return None
        return User.from_dict(min(matches, key=lambda doc: doc["created_at"]))

    async def provision_user(self, user: User, default_tenant: Tenant) -> Tuple[User, Optional[Tenant]]:
        async with self._provision_lock:
            if await self.count_users() == 0:
                await self.insert_tenant(default_tenant)
                user.role = Role.SUPER_ADMIN
                tenant = default_tenant
            else:
                tenant = await self.first_active_tenant()
            user.tenant_id = tenant.id if tenant else None
            await self.insert_user(user)
        return user, tenant

    async def save_user(self, user: User) -> User:
        self._check_subject_unique(user)
        self.users[user.id] = user.to_dict()
        return user

    async def list_users(self, tenant_id: Optional[str] = None) -> List[User]:
        return [
            User.from_dict(doc) for doc in self.users.values()
            if tenant_id is None or doc["tenant_id"] == tenant_id
        ]

    async def count_users(self) -> int:
        return len(self.users)

    # tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        doc = self.tenants.get(tenant_id)
        return Tenant.from_dict(doc) if doc else None

    async def insert_tenant(self, tenant: Tenant) -> Tenant:
        self.tenants[tenant.id] = tenant.to_dict()
        return tenant

    async def first_active_tenant(self) -> Optional[Tenant]:
        for doc in self.tenants.values():
            if doc["is_active"]:
                return Tenant.from_dict(doc)
        return None

    # support configurations

    def _check_active_unique(self, config: SupportConfiguration):
        if not config.is_active:
            return
        for doc in self.configurations.values():
            if (doc["id"] != config.id and doc["is_active"]
                    and doc["tenant_id"] == config.tenant_id
                    and doc["support_type"] == config.support_type):
                raise ConflictError(
                    f"Support configuration for {config.support_type} already exists",
                    details={"support_type": config.support_type}
                )

    async def get_configuration(self, config_id: str) -> Optional[SupportConfiguration]:
        doc = self.configurations.get(config_id)
        return SupportConfiguration.from_dict(doc) if doc else None

    async def insert_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        self._check_active_unique(config)
        self.configurations[config.id] = config.to_dict()
        return config

    async def save_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        self._check_active_unique(config)
        self.configurations[config.id] = config.to_dict()
        return config

    async def list_configurations(self, tenant_id: str, active_only: bool = False) -> List[SupportConfiguration]:
        return [
            SupportConfiguration.from_dict(doc) for doc in self.configurations.values()
            if doc["tenant_id"] == tenant_id and (doc["is_active"] or not active_only)
        ]

    # audit trail

    async def insert_audit_record(self, record: AuditRecord) -> AuditRecord:
        self.audit_records.append(record.to_dict())
        return record

    async def list_audit_records(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditRecord]:
        matches = [
            doc for doc in reversed(self.audit_records)
            if doc["tenant_id"] == tenant_id
            and (entity_type is None or doc["entity_type"] == entity_type)
            and (entity_id is None or doc["entity_id"] == entity_id)
        ]
        return [AuditRecord.from_dict(doc) for doc in matches[:limit]]
