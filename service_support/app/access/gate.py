"""
Access gate: resolves the acting user and applies role and tenant checks.
"""

from typing import Collection, Optional, Protocol

from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from .capabilities import roles_for
from .errors import (
    Unauthenticated, UserNotFound, AccountDeactivated, WrongTenant, InsufficientPermissions
)
from .models import Identity, Role, User


class UserLookup(Protocol):
    async def find_user_by_subject(self, subject: str) -> Optional[User]:
        ...


class AccessGate:
    """Authorize an identity for an operation scoped to a tenant.

    Checks run in a fixed order and the first failure wins:

    1. no identity -> ``Unauthenticated``
    2. no stored user for the identity subject -> ``UserNotFound``
    3. user inactive -> ``AccountDeactivated``
    4. non super_admin outside the requested tenant -> ``WrongTenant``
    5. role outside the allow-list -> ``InsufficientPermissions``

    ``tenant_id=None`` means the operation is tenant-agnostic. super_admin
    skips the tenant check but still needs to be in the allow-list.
    The gate reads one record and never writes.
    """

    def __init__(self, users: UserLookup, metrics: Optional[MetricsCollector] = None):
        self.users = users
        self.metrics = metrics
        self.logger = get_logger("support.access_gate")

    async def authorize(
        self,
        identity: Optional[Identity],
        tenant_id: Optional[str],
        allowed_roles: Collection[Role]
    ) -> User:
        if not allowed_roles:
            raise ValueError("allowed_roles must not be empty")

        try:
            user = await self._check(identity, tenant_id, frozenset(Role(r) for r in allowed_roles))
        except (Unauthenticated, UserNotFound, AccountDeactivated, WrongTenant, InsufficientPermissions) as e:
            self.logger.info(
                "Access denied",
                reason=e.code,
                subject=identity.subject if identity else None,
                tenant_id=tenant_id
            )
            self._record(e.code.lower())
            raise

        self._record("allowed")
        set_user_context(user.id, user.tenant_id, user.role.value)
        return user

    async def _check(self, identity: Optional[Identity], tenant_id: Optional[str], allowed: frozenset) -> User:
        if identity is None:
            raise Unauthenticated()

        user = await self.users.find_user_by_subject(identity.subject)
        if user is None:
            raise UserNotFound()

        if not user.is_active:
            raise AccountDeactivated()

        if user.role != Role.SUPER_ADMIN and tenant_id is not None and user.tenant_id != tenant_id:
            raise WrongTenant(details={"tenant_id": tenant_id})

        if user.role not in allowed:
            raise InsufficientPermissions(details={"role": user.role.value})

        return user

    def _record(self, outcome: str):
        if self.metrics:
            self.metrics.increment_counter("authorization_decisions_total", outcome=outcome)

    async def authorize_operation(
        self,
        identity: Optional[Identity],
        tenant_id: Optional[str],
        operation: str
    ) -> User:
        """Authorize against the allow-list registered for ``operation``."""
        return await self.authorize(identity, tenant_id, roles_for(operation))
