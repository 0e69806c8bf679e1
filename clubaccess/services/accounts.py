"""
Account provisioning service.

Creates, registers, updates and deletes actor accounts. Every operation runs
in one unit of work: the User insert and its role-specific side record (an
Athlete profile for athletes, the guardian link for parents) commit together
or not at all.
"""

from datetime import date
from typing import Any, Callable
from uuid import UUID

import structlog
from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext
from pydantic import TypeAdapter

from clubaccess.core.config import AuthSettings, settings
from clubaccess.core.errors import Conflict, Forbidden, NotFound, Outcome, ValidationFailed
from clubaccess.core.hooks import HookManager, hooks as default_hooks
from clubaccess.core.uow import UnitOfWork
from clubaccess.models.athlete import Athlete
from clubaccess.models.requests import ApprovalRequest, RequestStatus
from clubaccess.models.user import User, UserRole
from clubaccess.permissions.resolver import PermissionService
from clubaccess.repositories.base import parse_id
from clubaccess.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AthleteAccountCreate,
    AthleteCreate,
    ParentAccountCreate,
    SignupRequest,
)
from clubaccess.services.athlete_profile import AthleteProfile, derive_profile
from clubaccess.services.avatars import AvatarCleaner
from clubaccess.services.base import run_operation
from clubaccess.utils.timezone import utc_today

logger = structlog.get_logger()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.auth.bcrypt_rounds,
)

account_create_adapter: TypeAdapter = TypeAdapter(AccountCreate)

# Fields only a superadmin may change on an account
ADMIN_ONLY_FIELDS = frozenset({"role", "role_id", "is_active", "needs_approval", "athlete_id"})
NON_NULLABLE_FIELDS = frozenset({"email", "first_name", "last_name", "role", "is_active", "needs_approval"})


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain, hashed)


def normalize_email(email: str) -> str:
    """Trim, lowercase and syntax-check an email address."""
    normalized = email.strip().lower()
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationFailed(f"Invalid email: {e}") from e
    return normalized


class AccountProvisioningService:
    """
    Account lifecycle.

    Usage:
        accounts = AccountProvisioningService(uow_factory)
        outcome = await accounts.create_account({
            "email": "coach@example.com",
            "password": "secret1",
            "first_name": "Ana",
            "last_name": "Pop",
            "role": "coach",
        })
        if outcome.ok:
            user = outcome.value
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        avatar_cleaner: AvatarCleaner | None = None,
        hook_manager: HookManager | None = None,
        auth_settings: AuthSettings | None = None,
        clock: Callable[[], date] = utc_today,
    ):
        self.uow_factory = uow_factory
        self.avatars = avatar_cleaner
        self.hooks = hook_manager or default_hooks
        self.auth = auth_settings or settings.auth
        self.clock = clock

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _check_password(self, password: str | None) -> None:
        if not password or len(password) < self.auth.password_min_length:
            raise ValidationFailed(
                f"Password must be at least {self.auth.password_min_length} characters"
            )

    async def _ensure_email_free(
        self,
        uow: UnitOfWork,
        email: str,
        exclude_id: UUID | None = None,
    ) -> str:
        normalized = normalize_email(email)
        if await uow.users.get_by_email(normalized, exclude_id=exclude_id):
            raise Conflict("Email already registered")
        return normalized

    async def _require_coach(self, uow: UnitOfWork, coach_id: UUID | None) -> UUID:
        if coach_id is None:
            raise ValidationFailed("An athlete must be assigned to a coach")
        coach = await uow.users.get_by_id(coach_id)
        if coach is None:
            raise NotFound("Coach not found")
        return coach.id

    def _derive_athlete(
        self,
        *,
        first_name: str,
        last_name: str,
        fields: Any,
    ) -> AthleteProfile:
        return derive_profile(
            first_name=first_name,
            last_name=last_name,
            date_of_birth=fields.date_of_birth,
            age=fields.age,
            category=fields.category,
            gender=fields.gender,
            today=self.clock(),
        )

    async def _ensure_unique_athlete(self, uow: UnitOfWork, profile: AthleteProfile) -> None:
        duplicate = await uow.athletes.find_duplicate(
            profile.first_name, profile.last_name, profile.date_of_birth
        )
        if duplicate is not None:
            raise Conflict("An athlete with the same name and date of birth already exists")

    async def _prepare_athlete(
        self,
        uow: UnitOfWork,
        payload: AthleteAccountCreate,
    ) -> tuple[AthleteProfile, UUID]:
        if payload.profile is None:
            raise ValidationFailed("Athlete accounts require a profile")
        fields = payload.profile
        profile = self._derive_athlete(
            first_name=fields.first_name or payload.first_name,
            last_name=fields.last_name or payload.last_name,
            fields=fields,
        )
        coach_id = await self._require_coach(uow, fields.coach_id or payload.coach_id)
        await self._ensure_unique_athlete(uow, profile)
        return profile, coach_id

    async def _prepare_guardian_link(
        self,
        uow: UnitOfWork,
        payload: ParentAccountCreate,
    ) -> tuple[Athlete, UUID | None]:
        """Lock the selected athlete; returns it with the coach the guardian is attached to."""
        if payload.linked_athlete_id is None:
            raise ValidationFailed("A guardian account requires a selected athlete")
        athlete = await uow.athletes.get_by_id(payload.linked_athlete_id, for_update=True)
        if athlete is None:
            raise NotFound("Athlete not found")
        if athlete.parent_id is not None:
            raise Conflict("Athlete is already linked to a guardian")
        if (
            payload.coach_id is not None
            and athlete.coach_id is not None
            and payload.coach_id != athlete.coach_id
        ):
            raise Conflict("Selected coach does not train this athlete")
        return athlete, payload.coach_id or athlete.coach_id

    async def _check_signup_context(self, uow: UnitOfWork, data: SignupRequest) -> UUID | None:
        """
        The coach and athlete a guardian names at signup must exist and belong
        together. Returns the named coach, else the athlete's coach.
        """
        athlete = None
        if data.athlete_id is not None:
            athlete = await uow.athletes.get_by_id(data.athlete_id)
            if athlete is None:
                raise NotFound("Athlete not found")
        if data.coach_id is not None:
            coach = await uow.users.get_by_id(data.coach_id)
            if coach is None or coach.role != UserRole.COACH:
                raise NotFound("Coach not found")
            if athlete is not None and athlete.coach_id is not None and athlete.coach_id != coach.id:
                raise Conflict("Selected coach does not train this athlete")
            return coach.id
        return athlete.coach_id if athlete is not None else None

    async def _check_role_id(self, uow: UnitOfWork, role_id: UUID | None) -> None:
        if role_id is not None and await uow.roles.get_by_id(role_id) is None:
            raise NotFound("Role not found")

    # =========================================================================
    # Create
    # =========================================================================

    async def create_account(self, payload: Any, acting: User | None = None) -> Outcome[User]:
        """
        Create an account and its role-specific records atomically.

        Args:
            payload: AccountCreate variant or a plain dict validated into one
            acting: Calling actor; when given, users.create is required
        """
        attached_coach: list[UUID | None] = [None]

        async def body(uow: UnitOfWork) -> User:
            if acting is not None:
                await PermissionService(uow).require(acting, "users.create")
            data = payload if not isinstance(payload, dict) else account_create_adapter.validate_python(payload)
            user, attached_coach[0] = await self._create(uow, data)
            return user

        outcome = await run_operation(self.uow_factory, "account.create", body)
        if outcome.ok:
            coach_id = attached_coach[0]
            logger.info(
                "Account created",
                user_id=str(outcome.value.id),
                role=outcome.value.role,
                coach_id=str(coach_id) if coach_id else None,
            )
            await self.hooks.trigger("account.created", user=outcome.value, coach_id=coach_id)
        return outcome

    async def _create(self, uow: UnitOfWork, payload: Any) -> tuple[User, UUID | None]:
        """Insert the user and its side record; returns it with the coach it is attached to."""
        self._check_password(payload.password)
        email = await self._ensure_email_free(uow, payload.email)

        profile: AthleteProfile | None = None
        coach_id: UUID | None = None
        linked: Athlete | None = None
        if isinstance(payload, AthleteAccountCreate):
            profile, coach_id = await self._prepare_athlete(uow, payload)
        elif isinstance(payload, ParentAccountCreate):
            linked, coach_id = await self._prepare_guardian_link(uow, payload)
        await self._check_role_id(uow, payload.role_id)

        user = await uow.users.add(User(
            email=email,
            password_hash=hash_password(payload.password),
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            role=payload.role,
            role_id=payload.role_id,
            is_active=payload.is_active is not False,
            needs_approval=payload.needs_approval is True,
        ))

        if profile is not None:
            athlete = await uow.athletes.add(Athlete(
                first_name=profile.first_name,
                last_name=profile.last_name,
                date_of_birth=profile.date_of_birth,
                age=profile.age,
                category=profile.category,
                gender=profile.gender,
                coach_id=coach_id,
                parent_id=None,
            ))
            await uow.users.update(user, athlete_id=athlete.id)
        elif linked is not None:
            await uow.athletes.update(linked, parent_id=user.id)

        return user, coach_id

    async def register(self, payload: SignupRequest | dict) -> Outcome[User]:
        """
        Self-registration.

        Roles listed in AUTH_ROLES_REQUIRING_APPROVAL start inactive with a
        pending approval request; the request carries the optional guardian
        context when the schema has those columns.
        """
        named_coach: list[UUID | None] = [None]

        async def body(uow: UnitOfWork) -> User:
            data = payload if isinstance(payload, SignupRequest) else SignupRequest.model_validate(payload)
            if data.role == UserRole.SUPERADMIN:
                raise Forbidden("Administrator accounts cannot be self-registered")
            self._check_password(data.password)
            email = await self._ensure_email_free(uow, data.email)
            named_coach[0] = await self._check_signup_context(uow, data)

            needs_approval = data.role in self.auth.roles_requiring_approval
            user = await uow.users.add(User(
                email=email,
                password_hash=hash_password(data.password),
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                role=data.role,
                is_active=not needs_approval,
                needs_approval=needs_approval,
            ))

            if needs_approval:
                request = ApprovalRequest(
                    user_id=user.id,
                    requested_role=data.role,
                    status=RequestStatus.PENDING.value,
                )
                if uow.capabilities.approval_request_context:
                    request.coach_id = data.coach_id
                    request.athlete_id = data.athlete_id
                    request.approval_notes = data.approval_notes
                await uow.approval_requests.add(request)
            return user

        outcome = await run_operation(self.uow_factory, "account.register", body)
        if outcome.ok:
            logger.info(
                "Account registered",
                user_id=str(outcome.value.id),
                role=outcome.value.role,
                needs_approval=outcome.value.needs_approval,
            )
            await self.hooks.trigger("account.created", user=outcome.value, coach_id=named_coach[0])
        return outcome

    async def create_athlete(self, acting: User, payload: AthleteCreate | dict) -> Outcome[Athlete]:
        """Staff creation of an athlete profile without an account."""
        async def body(uow: UnitOfWork) -> Athlete:
            await PermissionService(uow).require(acting, "athletes.create")
            data = payload if isinstance(payload, AthleteCreate) else AthleteCreate.model_validate(payload)
            profile = self._derive_athlete(
                first_name=data.first_name, last_name=data.last_name, fields=data
            )
            coach_id = data.coach_id
            if coach_id is None and acting.role == UserRole.COACH:
                coach_id = acting.id
            coach_id = await self._require_coach(uow, coach_id)
            await self._ensure_unique_athlete(uow, profile)
            return await uow.athletes.add(Athlete(
                first_name=profile.first_name,
                last_name=profile.last_name,
                date_of_birth=profile.date_of_birth,
                age=profile.age,
                category=profile.category,
                gender=profile.gender,
                coach_id=coach_id,
            ))

        return await run_operation(self.uow_factory, "athlete.create", body, actor_id=str(acting.id))

    # =========================================================================
    # Read
    # =========================================================================

    async def get_account(self, acting: User, user_id: UUID | str) -> Outcome[User]:
        async def body(uow: UnitOfWork) -> User:
            target_id = parse_id(user_id)
            if acting.id != target_id:
                await PermissionService(uow).require(acting, "users.view")
            user = await uow.users.get_by_id(target_id) if target_id else None
            if user is None:
                raise NotFound("User not found")
            return user

        return await run_operation(self.uow_factory, "account.get", body)

    async def list_accounts(self, acting: User, role: str | None = None) -> Outcome[list[User]]:
        async def body(uow: UnitOfWork) -> list[User]:
            await PermissionService(uow).require(acting, "users.view")
            return await uow.users.all(role=role)

        return await run_operation(self.uow_factory, "account.list", body)

    # =========================================================================
    # Update / delete
    # =========================================================================

    async def update_account(
        self,
        acting: User,
        user_id: UUID | str,
        changes: AccountUpdate | dict,
    ) -> Outcome[User]:
        """
        Update an account.

        Only the account owner or a superadmin may update. Owners cannot touch
        role, role_id, activation, approval or athlete link, and must confirm
        their current password to set a new one. A replaced avatar is deleted
        from storage after commit.
        """
        replaced_avatar: list[str] = []
        changed: set[str] = set()

        async def body(uow: UnitOfWork) -> User:
            data = changes if isinstance(changes, AccountUpdate) else AccountUpdate.model_validate(changes)
            fields = data.model_dump(exclude_unset=True)
            target_id = parse_id(user_id)
            if target_id is None:
                raise NotFound("User not found")
            is_admin = acting.role == UserRole.SUPERADMIN

            if not is_admin and acting.id != target_id:
                raise Forbidden("Cannot update another user's account")
            restricted = ADMIN_ONLY_FIELDS & fields.keys()
            if not is_admin and restricted:
                raise Forbidden(f"Cannot change {', '.join(sorted(restricted))}")

            user = await uow.users.get_by_id(target_id, for_update=True)
            if user is None:
                raise NotFound("User not found")

            current_password = fields.pop("current_password", None)
            for field in NON_NULLABLE_FIELDS & fields.keys():
                if fields[field] is None:
                    raise ValidationFailed(f"{field} cannot be empty")

            if "email" in fields:
                fields["email"] = await self._ensure_email_free(uow, fields["email"], exclude_id=user.id)
            for field in ("first_name", "last_name"):
                if field in fields:
                    fields[field] = fields[field].strip()

            if "password" in fields:
                new_password = fields.pop("password")
                self._check_password(new_password)
                if not is_admin and (
                    not current_password or not verify_password(current_password, user.password_hash)
                ):
                    raise Forbidden("Current password is incorrect")
                fields["password_hash"] = hash_password(new_password)

            if fields.get("role_id") is not None:
                await self._check_role_id(uow, fields["role_id"])
            if fields.get("athlete_id") is not None and await uow.athletes.get_by_id(fields["athlete_id"]) is None:
                raise NotFound("Athlete not found")

            if "avatar_path" in fields:
                if not uow.capabilities.user_avatar:
                    fields.pop("avatar_path")
                elif user.avatar_path and user.avatar_path != fields["avatar_path"]:
                    replaced_avatar.append(user.avatar_path)

            changed.update(k for k, v in fields.items() if getattr(user, k) != v)
            return await uow.users.update(user, **fields)

        outcome = await run_operation(
            self.uow_factory, "account.update", body, actor_id=str(acting.id)
        )
        if outcome.ok:
            if replaced_avatar and self.avatars is not None:
                self.avatars.schedule(replaced_avatar[0])
            logger.info("Account updated", user_id=str(outcome.value.id), fields=sorted(changed))
            await self.hooks.trigger("account.updated", user=outcome.value, changed=changed)
        return outcome

    async def delete_account(self, acting: User, user_id: UUID | str) -> Outcome[None]:
        """Delete a user and its owned athlete profile. Superadmins are undeletable."""
        avatar: list[str] = []

        async def body(uow: UnitOfWork) -> None:
            await PermissionService(uow).require(acting, "users.delete")
            user = await uow.users.get_by_id(user_id, for_update=True)
            if user is None:
                raise NotFound("User not found")
            if user.is_superadmin:
                raise Forbidden("Administrator accounts cannot be deleted")

            if user.avatar_path:
                avatar.append(user.avatar_path)
            athlete_id = user.athlete_id
            if athlete_id is not None:
                await uow.users.update(user, athlete_id=None)
                await uow.athletes.delete(athlete_id)
            await uow.users.remove(user)

        outcome = await run_operation(
            self.uow_factory, "account.delete", body, actor_id=str(acting.id)
        )
        if outcome.ok:
            if avatar and self.avatars is not None:
                self.avatars.schedule(avatar[0])
            logger.info("Account deleted", user_id=str(user_id))
            await self.hooks.trigger("account.deleted", user_id=parse_id(user_id))
        return outcome
