"""EmissionService: folds a work session's carbon into a project's totals."""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.user import Device, User
from app.db.transaction import run_transaction
from app.domain.emissions import (
    Catalog,
    DeviceCategory,
    carbon_factor_for,
    component_catalogs,
    ddr_generation,
    session_energy,
)
from app.services.catalog_service import lookup_wattage
from app.services.project_access import get_live_instance, participant_roles

logger = structlog.get_logger(__name__)


@dataclass
class AccrualResult:
    stage_instance_id: uuid.UUID
    device_id: uuid.UUID
    total_watts: float
    energy_wh: float
    carbon_factor: float
    carbon_delta: float
    session_duration: float


async def device_watts(session: AsyncSession, device: Device) -> list[float]:
    """Average wattage of each component of ``device``.

    Desktops add the PSU rating; laptop and mobile devices read the mobile
    catalogs and have no PSU term.
    """
    category = DeviceCategory(device.category)
    cpu_catalog, gpu_catalog = component_catalogs(category)
    watts = [
        await lookup_wattage(session, cpu_catalog, device.cpu),
        await lookup_wattage(session, gpu_catalog, device.gpu),
        await lookup_wattage(session, Catalog.RAM, ddr_generation(device.ram)),
    ]
    if not category.uses_mobile_catalog:
        watts.append(float(device.psu or 0))
    return watts


class EmissionService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def accrue(
        self,
        instance_id: uuid.UUID,
        user_id: uuid.UUID,
        session_duration_seconds: float,
        record_session_duration: bool = True,
    ) -> AccrualResult:
        """Compute the session's carbon and add it to the instance totals.

        The increment is a single relative UPDATE, so concurrent sessions on
        the same instance never lose each other's deltas.

        Args:
            instance_id: stage instance the session was spent on
            user_id: the working user (owner or member)
            session_duration_seconds: elapsed session time
            record_session_duration: also add the elapsed time to session_duration

        Raises:
            ValidationError: negative duration
            NotFoundError: instance, profile, current device or wattage data missing
            ForbiddenError: user is not a participant
        """
        if session_duration_seconds < 0:
            raise ValidationError("session_duration_seconds must be non-negative")
        settings = get_settings()

        async def work(session: AsyncSession) -> AccrualResult:
            instance = await get_live_instance(session, instance_id)
            await participant_roles(session, instance, user_id)

            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found")
            if user.current_device_id is None:
                raise NotFoundError("Current device not set")
            device = await session.get(Device, user.current_device_id)
            if device is None:
                raise NotFoundError("User device information not found")

            energy = session_energy(
                await device_watts(session, device),
                session_duration_seconds,
                carbon_factor_for(user.region, settings.carbon_factors, settings.default_carbon_factor),
            )
            delta = energy.carbon_delta

            values = {"carbon_emit": ProjectStageInstance.carbon_emit + delta}
            if record_session_duration:
                values["session_duration"] = ProjectStageInstance.session_duration + session_duration_seconds
            await session.execute(
                update(ProjectStageInstance)
                .where(ProjectStageInstance.id == instance.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

            return AccrualResult(
                stage_instance_id=instance.id,
                device_id=device.id,
                total_watts=energy.total_watts,
                energy_wh=energy.energy_wh,
                carbon_factor=energy.carbon_factor,
                carbon_delta=delta,
                session_duration=session_duration_seconds,
            )

        result = await run_transaction(self.session_factory, work, operation="accrue_emission")
        logger.info(
            "emission_accrued",
            stage_instance_id=str(instance_id),
            user_id=str(user_id),
            total_watts=result.total_watts,
            energy_wh=round(result.energy_wh, 4),
            carbon_delta=round(result.carbon_delta, 4),
        )
        return result
