"""
User lifecycle operations.
"""

import uuid
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.logging import get_logger, set_user_context
from shared.tracing import trace_function
from ..access.errors import AccessDenied
from ..access.gate import AccessGate
from ..access.models import (
    AcademicInfo, Address, Identity, Role, Tenant, User, UserProfile, utc_now
)
from ..audit.models import RiskLevel
from ..audit.trail import AuditTrail
from ..persistence.base import DocumentStore
from .models import ProfileUpdateRequest

ENTITY_TYPE = "users"

DEFAULT_TENANT_DESCRIPTION = "Default foundation for educational support system"


def default_tenant_settings(currency: str = "NGN") -> Dict[str, Any]:
    return {
        "default_currency": currency,
        "exchange_rate": 1500,
        "academic_year_start": "September",
        "academic_year_end": "July",
        "application_deadline": "March 31",
        "payment_terms": "30 days",
    }


class UserService:
    """Sign-in provisioning and administration of user accounts."""

    def __init__(self, store: DocumentStore, gate: AccessGate, audit: AuditTrail,
                 default_tenant_name: str = "TheOyinbooke Foundation", default_currency: str = "NGN"):
        self.store = store
        self.gate = gate
        self.audit = audit
        self.default_tenant_name = default_tenant_name
        self.default_currency = default_currency
        self.logger = get_logger("support.users")

    @trace_function("users.ensure")
    async def ensure_user(self, identity: Identity) -> Optional[User]:
        """Resolve the stored user for ``identity``, creating it on first sign-in.

        A pending invitation for the identity's email is accepted, keeping the
        invited foundation and role. Otherwise the first user ever becomes
        super_admin and bootstraps the default foundation; later users join
        the first active foundation as beneficiaries, or stay unassigned when
        there is none. The store makes the first-user decision atomically.
        Deactivated users resolve to ``None``.
        """
        existing = await self.store.find_user_by_subject(identity.subject)
        if existing is not None:
            if not existing.is_active:
                return None
            return await self._refresh_identity(existing, identity)

        invited = await self._accept_invitation(identity)
        if invited is not None:
            return invited

        default_tenant = Tenant(
            id=str(uuid.uuid4()),
            name=self.default_tenant_name,
            description=DEFAULT_TENANT_DESCRIPTION,
            settings=default_tenant_settings(self.default_currency),
        )
        user = User(
            id=str(uuid.uuid4()),
            subject=identity.subject,
            email=identity.email or "",
            first_name=identity.first_name or "",
            last_name=identity.last_name or "",
            role=Role.BENEFICIARY,
        )
        try:
            user, tenant = await self.store.provision_user(user, default_tenant)
        except ConflictError:
            # concurrent first sign-in of the same subject
            return await self.store.find_user_by_subject(identity.subject)

        is_first_user = tenant is not None and tenant.id == default_tenant.id
        if is_first_user:
            self.logger.info("Default foundation created", tenant_id=tenant.id)

        if tenant is not None:
            await self.audit.record(
                user, tenant.id, "user_created", ENTITY_TYPE, user.id,
                f"New user account created for {user.full_name}",
                RiskLevel.CRITICAL if is_first_user else RiskLevel.LOW
            )

        self.logger.info("User provisioned", user_id=user.id, role=user.role.value, tenant_id=user.tenant_id)
        return user

    async def current_user(self, identity: Identity) -> Optional[Dict[str, Any]]:
        """Signed-in user with their foundation, provisioning on first call."""
        user = await self.ensure_user(identity)
        if user is None:
            return None
        set_user_context(user.id, user.tenant_id, user.role.value)
        tenant = await self.store.get_tenant(user.tenant_id) if user.tenant_id else None
        return {**user.to_dict(), "tenant": tenant.to_dict() if tenant else None}

    async def get_user(self, identity: Optional[Identity], user_id: str) -> User:
        """Self, admins, and reviewers looking at a beneficiary may view a user."""
        target = await self._get_target(user_id)
        requester = await self.gate.authorize_operation(identity, target.tenant_id, "users.get")

        if (requester.id != target.id
                and not requester.is_admin
                and not (requester.role == Role.REVIEWER and target.role == Role.BENEFICIARY)):
            raise AccessDenied()
        return target

    async def list_users(
        self,
        identity: Optional[Identity],
        tenant_id: str,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> List[User]:
        """Users of a foundation, newest first."""
        await self.gate.authorize_operation(identity, tenant_id, "users.list")

        users = await self.store.list_users(tenant_id)
        if role is not None:
            users = [u for u in users if u.role == Role(role)]
        if is_active is not None:
            users = [u for u in users if u.is_active == is_active]
        if search:
            needle = search.lower()
            users = [
                u for u in users
                if needle in u.first_name.lower()
                or needle in u.last_name.lower()
                or needle in u.email.lower()
                or (u.phone and search in u.phone)
            ]

        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def list_by_roles(self, identity: Optional[Identity], tenant_id: str, roles: List[Role],
                            is_active: Optional[bool] = None) -> List[User]:
        """Users holding any of ``roles``, sorted by name."""
        await self.gate.authorize_operation(identity, tenant_id, "users.list_by_roles")

        wanted = {Role(r) for r in roles}
        users = [
            u for u in await self.store.list_users(tenant_id)
            if u.role in wanted and (is_active is None or u.is_active == is_active)
        ]
        users.sort(key=lambda u: u.full_name.lower())
        return users

    async def get_statistics(self, identity: Optional[Identity], tenant_id: str) -> Dict[str, Any]:
        await self.gate.authorize_operation(identity, tenant_id, "users.statistics")

        users = await self.store.list_users(tenant_id)
        return {
            "total": len(users),
            "active": sum(1 for u in users if u.is_active),
            "inactive": sum(1 for u in users if not u.is_active),
            "by_role": {
                role.value: sum(1 for u in users if u.role == role)
                for role in Role if role != Role.SUPER_ADMIN
            },
        }

    @trace_function("users.update_profile")
    async def update_profile(self, identity: Optional[Identity], user_id: str,
                             updates: ProfileUpdateRequest) -> User:
        target = await self._get_target(user_id)
        requester = await self.gate.authorize_operation(identity, target.tenant_id, "users.update_profile")

        if requester.id != target.id and not requester.is_admin:
            raise AccessDenied()

        provided = updates.provided()
        if not provided:
            raise ValidationError("No updates provided")
        if updates.has_unknown_level():
            raise ValidationError(
                f"Unrecognised academic level: {updates.academic_info.current_level}",
                details={"field": "academic_info.current_level"}
            )

        for name in ("first_name", "last_name", "phone"):
            if name in provided:
                setattr(target, name, provided[name])

        profile = target.profile or UserProfile()
        if "date_of_birth" in provided:
            profile.date_of_birth = provided["date_of_birth"]
        if "gender" in provided:
            profile.gender = provided["gender"]
        if "address" in provided:
            profile.address = Address(**updates.address.model_dump())
        if "academic_info" in provided:
            academic = profile.academic_info or AcademicInfo()
            for name in updates.academic_info.model_fields_set:
                setattr(academic, name, getattr(updates.academic_info, name))
            profile.academic_info = academic
        if profile != UserProfile():
            target.profile = profile

        target.updated_at = utc_now()
        await self.store.save_user(target)

        if target.tenant_id:
            await self.audit.record(
                requester, target.tenant_id, "profile_updated", ENTITY_TYPE, target.id,
                f"Updated user profile for {target.full_name}",
                RiskLevel.LOW
            )
        return target

    @trace_function("users.deactivate")
    async def deactivate_user(self, identity: Optional[Identity], user_id: str, reason: str) -> User:
        target = await self._get_target(user_id)
        requester = await self.gate.authorize_operation(identity, target.tenant_id, "users.deactivate")

        if requester.id == target.id:
            raise ValidationError("Cannot deactivate your own account")
        if target.role == Role.SUPER_ADMIN and requester.role != Role.SUPER_ADMIN:
            raise AccessDenied("Only super admins can deactivate other super admins")

        target.is_active = False
        target.updated_at = utc_now()
        await self.store.save_user(target)

        if target.tenant_id:
            await self.audit.record(
                requester, target.tenant_id, "user_deactivated", ENTITY_TYPE, target.id,
                f"Deactivated user account for {target.full_name}: {reason}",
                RiskLevel.HIGH
            )
        self.logger.info("User deactivated", user_id=target.id, by=requester.id)
        return target

    @trace_function("users.reactivate")
    async def reactivate_user(self, identity: Optional[Identity], user_id: str) -> User:
        target = await self._get_target(user_id)
        requester = await self.gate.authorize_operation(identity, target.tenant_id, "users.reactivate")

        target.is_active = True
        target.updated_at = utc_now()
        await self.store.save_user(target)

        if target.tenant_id:
            await self.audit.record(
                requester, target.tenant_id, "user_reactivated", ENTITY_TYPE, target.id,
                f"Reactivated user account for {target.full_name}",
                RiskLevel.MEDIUM
            )
        return target

    @trace_function("users.change_role")
    async def change_role(self, identity: Optional[Identity], user_id: str, role: Role) -> User:
        requester = await self.gate.authorize_operation(identity, None, "users.change_role")
        target = await self._get_target(user_id)

        previous = target.role
        target.role = Role(role)
        target.updated_at = utc_now()
        await self.store.save_user(target)

        tenant_id = target.tenant_id or requester.tenant_id
        if tenant_id:
            await self.audit.record(
                requester, tenant_id, "role_changed", ENTITY_TYPE, target.id,
                f"Changed role from {previous.value} to {target.role.value} for {target.full_name}",
                RiskLevel.HIGH
            )
        return target

    @trace_function("users.assign_tenant")
    async def assign_to_tenant(self, identity: Optional[Identity], user_id: str, tenant_id: str) -> User:
        requester = await self.gate.authorize_operation(identity, None, "users.assign_tenant")
        target = await self._get_target(user_id)

        tenant = await self.store.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError("Foundation not found", details={"tenant_id": tenant_id})

        target.tenant_id = tenant.id
        target.updated_at = utc_now()
        await self.store.save_user(target)

        await self.audit.record(
            requester, tenant.id, "user_assigned", ENTITY_TYPE, target.id,
            f"Assigned {target.full_name} to {tenant.name}",
            RiskLevel.HIGH
        )
        return target

    @trace_function("users.invite")
    async def invite_user(
        self,
        identity: Optional[Identity],
        tenant_id: str,
        email: str,
        first_name: str,
        last_name: str,
        role: Role = Role.BENEFICIARY,
        message: Optional[str] = None
    ) -> User:
        """Create a pending user that is activated on the invitee's first sign-in."""
        requester = await self.gate.authorize_operation(identity, tenant_id, "users.invite")

        role = Role(role)
        if role == Role.SUPER_ADMIN:
            raise ValidationError("Super admins cannot be invited", details={"field": "role"})
        if await self.store.find_user_by_email(email) is not None:
            raise ConflictError("A user with this email already exists", details={"email": email})

        user = User(
            id=str(uuid.uuid4()),
            subject=None,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=False,
            tenant_id=tenant_id,
            invited_by=requester.id,
        )
        await self.store.insert_user(user)

        await self.audit.record(
            requester, tenant_id, "user_invited", ENTITY_TYPE, user.id,
            f"Invited {user.full_name} ({email}) as {role.value}",
            RiskLevel.HIGH if role == Role.ADMIN else RiskLevel.LOW
        )
        # TODO: deliver the invitation email with ``message`` once a mail provider is configured
        self.logger.info("Invitation created", user_id=user.id, role=role.value, has_message=bool(message))
        return user

    async def _accept_invitation(self, identity: Identity) -> Optional[User]:
        """Bind a pending invitation for the identity's email to its subject."""
        if not identity.email:
            return None
        invited = await self.store.find_user_by_email(identity.email)
        if invited is None or not invited.is_pending_invitation:
            return None

        invited.subject = identity.subject
        invited.is_active = True
        invited.first_name = identity.first_name or invited.first_name
        invited.last_name = identity.last_name or invited.last_name
        invited.updated_at = utc_now()
        try:
            await self.store.save_user(invited)
        except ConflictError:
            return await self.store.find_user_by_subject(identity.subject)

        if invited.tenant_id:
            await self.audit.record(
                invited, invited.tenant_id, "user_account_created", ENTITY_TYPE, invited.id,
                "User account created via invitation acceptance",
                RiskLevel.LOW
            )
        self.logger.info("Invitation accepted", user_id=invited.id, role=invited.role.value)
        return invited

    async def _refresh_identity(self, user: User, identity: Identity) -> User:
        """Copy changed identity attributes onto the stored user."""
        changed = False
        for name in ("email", "first_name", "last_name"):
            value = getattr(identity, name)
            if value and value != getattr(user, name):
                setattr(user, name, value)
                changed = True
        if changed:
            user.updated_at = utc_now()
            await self.store.save_user(user)
        return user

    async def _get_target(self, user_id: str) -> User:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user
