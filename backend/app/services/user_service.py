"""UserService: profile registration, device management and admin user maintenance."""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.user import Device, User
from app.db.transaction import run_transaction
from app.domain.emissions import DeviceCategory

logger = structlog.get_logger(__name__)

DEVICE_FIELDS = ("category", "cpu", "gpu", "ram", "capacity", "motherboard", "psu")
PROFILE_EDITABLE = ("name", "organization", "region")


@dataclass
class UserDeletion:
    devices: int
    memberships: int
    notifications: int
    projects: int


@dataclass
class DeviceSpec:
    category: str
    cpu: str
    gpu: str
    ram: str
    capacity: str
    motherboard: str
    psu: float

    def validate(self) -> None:
        missing = [f for f in DEVICE_FIELDS if getattr(self, f) in (None, "")]
        if missing:
            raise ValidationError(f"All device fields are required; missing: {', '.join(missing)}")
        try:
            DeviceCategory(self.category)
        except ValueError as exc:
            raise ValidationError(f"Unknown device category: {self.category}") from exc


def _device_row(user_id: uuid.UUID, spec: DeviceSpec) -> Device:
    return Device(
        id=uuid.uuid4(),
        user_id=user_id,
        category=spec.category,
        cpu=spec.cpu,
        gpu=spec.gpu,
        ram=spec.ram,
        capacity=spec.capacity,
        motherboard=spec.motherboard,
        psu=float(spec.psu),
    )


class UserService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def register_profile(
        self,
        user_id: uuid.UUID,
        name: str,
        email: str,
        organization: str,
        region: str | None,
        device: DeviceSpec,
    ) -> User:
        """Create the profile for an authenticated identity plus its first device.

        Raises:
            ValidationError: missing device fields or unknown category
            ConflictError: identity already registered or email taken
        """
        device.validate()
        normalized_email = email.strip().lower()

        async def work(session: AsyncSession) -> User:
            if await session.get(User, user_id) is not None:
                raise ConflictError("Profile already registered")
            taken = await session.execute(select(User.id).where(User.email == normalized_email))
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Email already registered")

            user = User(
                id=user_id,
                name=name,
                email=normalized_email,
                organization=organization,
                region=region,
            )
            session.add(user)
            await session.flush()

            row = _device_row(user_id, device)
            session.add(row)
            await session.flush()
            user.current_device_id = row.id
            return user

        user = await run_transaction(self.session_factory, work, operation="register_profile")
        logger.info("profile_registered", user_id=str(user_id), region=region)
        return user

    async def get_profile(self, user_id: uuid.UUID) -> User:
        async with self.session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            return user

    async def add_device(self, user_id: uuid.UUID, device: DeviceSpec, make_current: bool = False) -> Device:
        device.validate()

        async def work(session: AsyncSession) -> Device:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            row = _device_row(user_id, device)
            session.add(row)
            await session.flush()
            if make_current or user.current_device_id is None:
                user.current_device_id = row.id
            return row

        row = await run_transaction(self.session_factory, work, operation="add_device")
        logger.info("device_added", user_id=str(user_id), device_id=str(row.id), category=row.category)
        return row

    async def list_devices(self, user_id: uuid.UUID) -> tuple[list[Device], uuid.UUID | None]:
        """Devices of the user and the id of the current one."""
        async with self.session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            result = await session.execute(
                select(Device).where(Device.user_id == user_id).order_by(Device.created_at)
            )
            return list(result.scalars().all()), user.current_device_id

    async def set_current_device(self, user_id: uuid.UUID, device_id: uuid.UUID) -> None:
        async def work(session: AsyncSession) -> None:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            device = await session.get(Device, device_id)
            if device is None or device.user_id != user_id:
                raise NotFoundError("Device not found")
            user.current_device_id = device.id

        await run_transaction(self.session_factory, work, operation="set_current_device")
        logger.info("current_device_set", user_id=str(user_id), device_id=str(device_id))

    async def update_profile(self, user_id: uuid.UUID, changes: dict) -> User:
        """Edit name, organization or region. Email is the identity key and stays fixed.

        Raises:
            ValidationError: unknown field or blank name
            NotFoundError: profile not registered
        """
        unknown = set(changes) - set(PROFILE_EDITABLE)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("name must not be blank")

        async def work(session: AsyncSession) -> User:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            for key, value in changes.items():
                if key == "organization" and value is None:
                    value = ""
                setattr(user, key, value.strip() if isinstance(value, str) else value)
            return user

        user = await run_transaction(self.session_factory, work, operation="update_profile")
        logger.info("profile_updated", user_id=str(user_id), fields=sorted(changes))
        return user

    async def list_users(self, page: int = 1, per_page: int = 50, search: str | None = None) -> list[User]:
        """Newest first, optionally filtered by a name or email substring."""
        async with self.session_factory() as session:
            query = select(User)
            if search:
                pattern = f"%{search}%"
                query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
            query = query.order_by(User.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def delete_user(self, user_id: uuid.UUID) -> UserDeletion:
        """Hard-delete a user with their devices, memberships, notifications and owned projects.

        Stage progress records and project requests are audit history and stay.

        Raises:
            NotFoundError: no such user
        """

        async def work(session: AsyncSession) -> UserDeletion:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")

            owned = select(ProjectStageInstance.id).where(ProjectStageInstance.user_id == user_id)
            notifications = await session.execute(
                delete(Notification).where(
                    or_(
                        Notification.sender_id == user_id,
                        Notification.recipient_id == user_id,
                        Notification.stage_instance_id.in_(owned),
                    )
                ).execution_options(synchronize_session=False)
            )
            memberships = await session.execute(
                delete(ProjectMembership).where(
                    or_(
                        ProjectMembership.user_id == user_id,
                        ProjectMembership.stage_instance_id.in_(owned),
                    )
                ).execution_options(synchronize_session=False)
            )
            projects = await session.execute(
                delete(ProjectStageInstance).where(ProjectStageInstance.user_id == user_id)
            )
            devices = await session.execute(delete(Device).where(Device.user_id == user_id))
            await session.delete(user)
            return UserDeletion(
                devices=devices.rowcount,
                memberships=memberships.rowcount,
                notifications=notifications.rowcount,
                projects=projects.rowcount,
            )

        deleted = await run_transaction(self.session_factory, work, operation="delete_user")
        logger.info("user_deleted", user_id=str(user_id), **deleted.__dict__)
        return deleted
