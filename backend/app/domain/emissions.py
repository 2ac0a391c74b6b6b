"""Energy and carbon arithmetic for a work session.

Pure functions with no external dependencies.
"""
from dataclasses import dataclass
from enum import Enum


class DeviceCategory(str, Enum):
    DESKTOP = "desktop"
    LAPTOP = "laptop"
    MOBILE = "mobile"

    @property
    def uses_mobile_catalog(self) -> bool:
        return self != DeviceCategory.DESKTOP


class Catalog(str, Enum):
    CPUS = "cpus"
    GPUS = "gpus"
    CPUS_MOBILE = "cpus_mobile"
    GPUS_MOBILE = "gpus_mobile"
    RAM = "ram"


def component_catalogs(category: DeviceCategory) -> tuple[Catalog, Catalog]:
    """CPU and GPU catalogs to read wattage from for a device category."""
    if category.uses_mobile_catalog:
        return Catalog.CPUS_MOBILE, Catalog.GPUS_MOBILE
    return Catalog.CPUS, Catalog.GPUS


def ddr_generation(ram_model: str) -> str:
    """Extract the DDR generation a RAM descriptor belongs to.

    ``"Corsair Vengeance 16GB DDR4-3200"`` -> ``"DDR4"``. Descriptors without a
    recognisable generation are returned unchanged.
    """
    upper = ram_model.upper()
    idx = upper.find("DDR")
    if idx == -1:
        return ram_model
    gen = "DDR"
    for ch in upper[idx + 3 :]:
        if ch.isdigit():
            gen += ch
        else:
            break
    return gen


@dataclass
class SessionEnergy:
    total_watts: float
    energy_wh: float
    carbon_factor: float

    @property
    def carbon_delta(self) -> float:
        return self.energy_wh * self.carbon_factor


def carbon_factor_for(region: str | None, factors: dict[str, float], default: float) -> float:
    """Regional factor, falling back to ``default`` for unknown regions."""
    if not region:
        return default
    return factors.get(region, default)


def session_energy(
    component_watts: list[float],
    duration_seconds: float,
    carbon_factor: float,
) -> SessionEnergy:
    """Energy (Wh) = (sum of average watts / 3600) * seconds."""
    total = float(sum(component_watts))
    energy = total * duration_seconds / 3600
    return SessionEnergy(total_watts=total, energy_wh=energy, carbon_factor=carbon_factor)
