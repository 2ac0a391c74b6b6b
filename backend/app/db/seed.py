"""Idempotent seed data for the component wattage catalog."""

from sqlalchemy import select

from app.db.base import get_session_factory
from app.db.models.component_wattage import ComponentWattage

COMPONENT_WATTAGES = [
    # Desktop CPUs
    {"catalog": "cpus", "manufacturer": "Intel", "series": "Core i5", "model": "Intel Core i5-12400", "avg_watt_usage": 65},
    {"catalog": "cpus", "manufacturer": "Intel", "series": "Core i7", "model": "Intel Core i7-12700K", "avg_watt_usage": 125},
    {"catalog": "cpus", "manufacturer": "Intel", "series": "Core i9", "model": "Intel Core i9-13900K", "avg_watt_usage": 125},
    {"catalog": "cpus", "manufacturer": "AMD", "series": "Ryzen 5", "model": "AMD Ryzen 5 5600X", "avg_watt_usage": 65},
    {"catalog": "cpus", "manufacturer": "AMD", "series": "Ryzen 7", "model": "AMD Ryzen 7 5800X", "avg_watt_usage": 105},
    {"catalog": "cpus", "manufacturer": "AMD", "series": "Ryzen 9", "model": "AMD Ryzen 9 7950X", "avg_watt_usage": 170},
    # Desktop GPUs
    {"catalog": "gpus", "manufacturer": "NVIDIA", "series": "GeForce RTX 30", "model": "NVIDIA GeForce RTX 3060", "avg_watt_usage": 170},
    {"catalog": "gpus", "manufacturer": "NVIDIA", "series": "GeForce RTX 30", "model": "NVIDIA GeForce RTX 3080", "avg_watt_usage": 320},
    {"catalog": "gpus", "manufacturer": "NVIDIA", "series": "GeForce RTX 40", "model": "NVIDIA GeForce RTX 4070", "avg_watt_usage": 200},
    {"catalog": "gpus", "manufacturer": "AMD", "series": "Radeon RX 6000", "model": "AMD Radeon RX 6700 XT", "avg_watt_usage": 230},
    {"catalog": "gpus", "manufacturer": "Intel", "series": "UHD", "model": "Intel UHD Graphics 730", "avg_watt_usage": 15},
    # Laptop / mobile CPUs
    {"catalog": "cpus_mobile", "manufacturer": "Intel", "series": "12th Gen", "model": "Intel Core i5-1235U", "avg_watt_usage": 15},
    {"catalog": "cpus_mobile", "manufacturer": "Intel", "series": "12th Gen", "model": "Intel Core i7-12700H", "avg_watt_usage": 45},
    {"catalog": "cpus_mobile", "manufacturer": "AMD", "series": "Ryzen 6000", "model": "AMD Ryzen 7 6800U", "avg_watt_usage": 28},
    {"catalog": "cpus_mobile", "manufacturer": "Apple", "series": "M-series", "model": "Apple M1", "avg_watt_usage": 20},
    {"catalog": "cpus_mobile", "manufacturer": "Apple", "series": "M-series", "model": "Apple M2", "avg_watt_usage": 22},
    # Laptop / mobile GPUs
    {"catalog": "gpus_mobile", "manufacturer": "Intel", "series": "Iris Xe", "model": "Intel Iris Xe Graphics", "avg_watt_usage": 15},
    {"catalog": "gpus_mobile", "manufacturer": "NVIDIA", "series": "GeForce RTX 30 Laptop", "model": "NVIDIA GeForce RTX 3050 Laptop", "avg_watt_usage": 60},
    {"catalog": "gpus_mobile", "manufacturer": "NVIDIA", "series": "GeForce RTX 40 Laptop", "model": "NVIDIA GeForce RTX 4060 Laptop", "avg_watt_usage": 80},
    {"catalog": "gpus_mobile", "manufacturer": "Apple", "series": "M-series", "model": "Apple M1 GPU", "avg_watt_usage": 10},
    # RAM, keyed by DDR generation
    {"catalog": "ram", "manufacturer": None, "series": None, "model": "DDR3", "avg_watt_usage": 4},
    {"catalog": "ram", "manufacturer": None, "series": None, "model": "DDR4", "avg_watt_usage": 3},
    {"catalog": "ram", "manufacturer": None, "series": None, "model": "DDR5", "avg_watt_usage": 2.5},
]


async def seed_component_wattages() -> int:
    """Insert catalog rows that don't already exist. Returns the number inserted."""
    factory = get_session_factory()
    inserted = 0

    async with factory() as session:
        for row in COMPONENT_WATTAGES:
            result = await session.execute(
                select(ComponentWattage.id).where(
                    ComponentWattage.catalog == row["catalog"],
                    ComponentWattage.model == row["model"],
                )
            )
            if result.scalar_one_or_none() is None:
                session.add(ComponentWattage(**row))
                inserted += 1

        await session.commit()

    return inserted
