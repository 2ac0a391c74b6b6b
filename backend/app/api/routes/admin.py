"""Admin API routes: project requests, rosters, project edits, catalog, users, reports."""

import uuid

from fastapi import APIRouter, Depends, Query

from app.core.auth import AuthUser, require_admin
from app.db.base import get_session_factory
from app.schemas.catalog import CatalogName, ComponentResponse, ComponentUpsert
from app.schemas.project_requests import ApprovalResponse, ProjectRequestResponse, ReviewRequest
from app.schemas.projects import AddMemberRequest, AdminProjectUpdate, EmissionReportRowResponse, ProjectResponse
from app.schemas.users import ProfileResponse
from app.services.catalog_service import CatalogService
from app.services.membership_service import MembershipService
from app.services.project_request_service import ProjectRequestService
from app.services.project_service import ProjectService
from app.services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------- Project requests ----------


@router.get("/project-requests", response_model=list[ProjectRequestResponse])
async def list_project_requests(
    status: str | None = Query(None, pattern="^(pending|approved|rejected)$"),
    _: AuthUser = Depends(require_admin),
):
    return await ProjectRequestService(get_session_factory()).list_all(status)


@router.post("/project-requests/{request_id}/approve", response_model=ApprovalResponse)
async def approve_project_request(
    request_id: uuid.UUID,
    body: ReviewRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Approve a pending request; creates the first stage instance with owner and leader."""
    service = ProjectRequestService(get_session_factory())
    instance_id = await service.approve(request_id, admin.user_id, body.notes)
    return ApprovalResponse(request_id=request_id, stage_instance_id=instance_id)


@router.post("/project-requests/{request_id}/reject", status_code=204)
async def reject_project_request(
    request_id: uuid.UUID,
    body: ReviewRequest,
    admin: AuthUser = Depends(require_admin),
):
    await ProjectRequestService(get_session_factory()).reject(request_id, admin.user_id, body.notes)


# ---------- Projects ----------


@router.patch("/projects/{instance_id}", response_model=ProjectResponse)
async def update_project(
    instance_id: uuid.UUID,
    body: AdminProjectUpdate,
    _: AuthUser = Depends(require_admin),
):
    service = ProjectService(get_session_factory())
    return await service.admin_update(instance_id, body.model_dump(exclude_unset=True))


@router.delete("/projects/{instance_id}", status_code=204)
async def delete_project(instance_id: uuid.UUID, _: AuthUser = Depends(require_admin)):
    """Hard delete; memberships and notifications go with it."""
    await ProjectService(get_session_factory()).admin_delete(instance_id)


@router.post("/projects/{instance_id}/members", status_code=201)
async def add_member(
    instance_id: uuid.UUID,
    body: AddMemberRequest,
    _: AuthUser = Depends(require_admin),
):
    membership_id = await MembershipService(get_session_factory()).add_member(instance_id, body.email, body.role)
    return {"membership_id": str(membership_id)}


@router.delete("/projects/{instance_id}/members/{user_id}", status_code=204)
async def remove_member(
    instance_id: uuid.UUID,
    user_id: uuid.UUID,
    _: AuthUser = Depends(require_admin),
):
    await MembershipService(get_session_factory()).remove_member(instance_id, user_id)


# ---------- Catalog ----------


@router.put("/catalog/{catalog}", response_model=ComponentResponse)
async def upsert_component(
    catalog: CatalogName,
    body: ComponentUpsert,
    _: AuthUser = Depends(require_admin),
):
    service = CatalogService(get_session_factory())
    await service.upsert_component(
        catalog,
        body.model,
        body.avg_watt_usage,
        manufacturer=body.manufacturer,
        series=body.series,
    )
    options = await service.list_options(catalog)
    return next(o for o in options if o.model == body.model)


# ---------- Users ----------


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    search: str | None = None,
    _: AuthUser = Depends(require_admin),
):
    """Paginated user list, optionally filtered by name or email."""
    return await UserService(get_session_factory()).list_users(page, per_page, search)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(user_id: uuid.UUID, _: AuthUser = Depends(require_admin)):
    """Hard delete with devices, memberships and owned projects; progress history stays."""
    await UserService(get_session_factory()).delete_user(user_id)


# ---------- Reports ----------


@router.get("/emissions", response_model=list[EmissionReportRowResponse])
async def emission_report(
    view_by: str = Query("organization", pattern="^(organization|individual)$"),
    _: AuthUser = Depends(require_admin),
):
    """Carbon totals per project owner, grouped by organization or listed by individual."""
    return await ProjectService(get_session_factory()).emission_report(view_by)
