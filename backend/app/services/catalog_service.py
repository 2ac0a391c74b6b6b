"""CatalogService: component wattage reference data."""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import NotFoundError, ValidationError
from app.db.models.component_wattage import ComponentWattage
from app.db.transaction import run_transaction
from app.domain.emissions import Catalog

logger = structlog.get_logger(__name__)


def _catalog(value: str | Catalog) -> Catalog:
    try:
        return Catalog(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown catalog: {value}") from exc


async def lookup_wattage(session: AsyncSession, catalog: Catalog, model: str) -> float:
    """Average watts for ``model`` in ``catalog``.

    Raises:
        NotFoundError: model not in the catalog
    """
    result = await session.execute(
        select(ComponentWattage.avg_watt_usage).where(
            ComponentWattage.catalog == catalog.value,
            ComponentWattage.model == model,
        )
    )
    watts = result.scalar_one_or_none()
    if watts is None:
        raise NotFoundError(f"No wattage data for {catalog.value} model '{model}'")
    return float(watts)


class CatalogService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_options(self, catalog: str) -> list[ComponentWattage]:
        parsed = _catalog(catalog)
        async with self.session_factory() as session:
            result = await session.execute(
                select(ComponentWattage)
                .where(ComponentWattage.catalog == parsed.value)
                .order_by(ComponentWattage.manufacturer, ComponentWattage.model)
            )
            return list(result.scalars().all())

    async def upsert_component(
        self,
        catalog: str,
        model: str,
        avg_watt_usage: float,
        manufacturer: str | None = None,
        series: str | None = None,
    ) -> uuid.UUID:
        """Insert or update one catalog row keyed by (catalog, model)."""
        parsed = _catalog(catalog)
        if avg_watt_usage < 0:
            raise ValidationError("avg_watt_usage must be non-negative")

        async def work(session: AsyncSession) -> uuid.UUID:
            result = await session.execute(
                select(ComponentWattage).where(
                    ComponentWattage.catalog == parsed.value,
                    ComponentWattage.model == model,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = ComponentWattage(id=uuid.uuid4(), catalog=parsed.value, model=model)
                session.add(row)
            row.avg_watt_usage = avg_watt_usage
            row.manufacturer = manufacturer
            row.series = series
            return row.id

        component_id = await run_transaction(self.session_factory, work, operation="upsert_component")
        logger.info("component_upserted", catalog=parsed.value, model=model, avg_watt_usage=avg_watt_usage)
        return component_id
