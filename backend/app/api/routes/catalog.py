"""Reference data routes: stage sequence and component wattage catalogs."""

from fastapi import APIRouter, Depends

from app.core.auth import AuthUser, require_auth
from app.db.base import get_session_factory
from app.schemas.catalog import CatalogName, ComponentResponse
from app.schemas.projects import StageOption
from app.services.catalog_service import CatalogService
from app.services.project_service import ProjectService

router = APIRouter()


@router.get("/stages", response_model=list[StageOption])
async def list_stages():
    """The fixed stage order used by completeStage."""
    return ProjectService.stage_order()


@router.get("/{catalog}", response_model=list[ComponentResponse])
async def list_options(catalog: CatalogName, user: AuthUser = Depends(require_auth)):
    """Selectable component models for device registration."""
    return await CatalogService(get_session_factory()).list_options(catalog)
