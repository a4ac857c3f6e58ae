"""
Document store protocol.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..access.models import Tenant, User
from ..audit.models import AuditRecord
from ..support.models import SupportConfiguration


class DocumentStore(ABC):
    """Indexed document storage for users, tenants, programs and audit records."""

    async def start(self):
        """Open connections. No-op by default."""

    async def stop(self):
        """Release connections. No-op by default."""

    async def health_check(self) -> bool:
        return True

    # users

    @abstractmethod
    async def find_user_by_subject(self, subject: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def insert_user(self, user: User) -> User:
        """Insert a user. Raises ConflictError on a duplicate subject."""

    @abstractmethod
    async def find_user_by_email(self, email: str) -> Optional[User]:
        """Oldest user with this email, compared case-insensitively."""

    @abstractmethod
    async def provision_user(self, user: User, default_tenant: Tenant) -> Tuple[User, Optional[Tenant]]:
        """Insert a signing-in user as one atomic step.

        When no user exists yet, ``default_tenant`` is inserted and ``user``
        becomes its super_admin. Otherwise ``user`` joins the first active
        tenant, or none. Returns the stored user and its tenant. Raises
        ConflictError on a duplicate subject.
        """

    @abstractmethod
    async def save_user(self, user: User) -> User:
        ...

    @abstractmethod
    async def list_users(self, tenant_id: Optional[str] = None) -> List[User]:
        ...

    @abstractmethod
    async def count_users(self) -> int:
        ...

    # tenants

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        ...

    @abstractmethod
    async def insert_tenant(self, tenant: Tenant) -> Tenant:
        ...

    @abstractmethod
    async def first_active_tenant(self) -> Optional[Tenant]:
        ...

    # support configurations

    @abstractmethod
    async def get_configuration(self, config_id: str) -> Optional[SupportConfiguration]:
        ...

    @abstractmethod
    async def insert_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        """Insert a configuration. Raises ConflictError if the type is already active."""

    @abstractmethod
    async def save_configuration(self, config: SupportConfiguration) -> SupportConfiguration:
        """Replace a configuration. Raises ConflictError if the type is already active."""

    @abstractmethod
    async def list_configurations(self, tenant_id: str, active_only: bool = False) -> List[SupportConfiguration]:
        ...

    async def find_active_configurations(self, tenant_id: str) -> List[SupportConfiguration]:
        return await self.list_configurations(tenant_id, active_only=True)

    async def find_active_configuration(self, tenant_id: str, support_type: str) -> Optional[SupportConfiguration]:
        for config in await self.find_active_configurations(tenant_id):
            if config.support_type == support_type:
                return config
        return None

    # audit trail

    @abstractmethod
    async def insert_audit_record(self, record: AuditRecord) -> AuditRecord:
        ...

    @abstractmethod
    async def list_audit_records(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditRecord]:
        """Records of a tenant, newest first."""
