"""Project API routes: listing, stage completion, emissions, rosters."""

import uuid

from fastapi import APIRouter, Depends

from app.core.auth import AuthUser, require_auth
from app.db.base import get_session_factory
from app.schemas.invitations import InviteRequest, InviteResponse
from app.schemas.projects import (
    AccrualResponse,
    AccrueEmissionRequest,
    CompleteStageRequest,
    EmissionSummaryResponse,
    MemberResponse,
    ProjectEmission,
    ProjectResponse,
    StageProgressResponse,
    TransitionResponse,
    UserProjectResponse,
)
from app.services.emission_service import EmissionService
from app.services.membership_service import MembershipService
from app.services.project_service import ProjectService
from app.services.stage_transition_service import StageTransitionService

router = APIRouter()


@router.get("", response_model=list[UserProjectResponse])
async def list_projects(user: AuthUser = Depends(require_auth)):
    """Live projects the caller owns or belongs to, with their own role and progress."""
    views = await ProjectService(get_session_factory()).list_for_user(user.user_id)
    return [
        UserProjectResponse(
            **ProjectResponse.model_validate(view.instance).model_dump(),
            owner_name=view.owner_name,
            owner_email=view.owner_email,
            roles=view.roles,
            progress_status=view.progress_status,
            current_stage=view.current_stage,
            visible=view.visible,
        )
        for view in views
    ]


@router.get("/emissions/summary", response_model=EmissionSummaryResponse)
async def emission_summary(user: AuthUser = Depends(require_auth)):
    summary = await ProjectService(get_session_factory()).emission_summary(user.user_id)
    return EmissionSummaryResponse(
        projects=[ProjectEmission(**p) for p in summary.projects],
        highest_emission=summary.highest_emission,
        lowest_emission=summary.lowest_emission,
    )


@router.post("/{instance_id}/complete-stage", response_model=TransitionResponse)
async def complete_stage(
    instance_id: uuid.UUID,
    request: CompleteStageRequest,
    user: AuthUser = Depends(require_auth),
):
    """Mark the caller done with the current stage; advance or finalize the project.

    Raises:
        404: project missing or archived
        403: caller is not owner or member
        422: unknown stage or next stage not after current
    """
    service = StageTransitionService(get_session_factory())
    result = await service.complete_stage(
        instance_id,
        user.user_id,
        current_stage=request.current_stage,
        next_stage=request.next_stage,
    )
    return TransitionResponse(
        outcome=result.outcome.value,
        branch=result.branch.value,
        stage_instance_id=result.stage_instance_id,
        stage=result.stage.value,
        all_completed=result.all_completed,
        completed_members=result.completed_members,
        total_members=result.total_members,
    )


@router.post("/{instance_id}/emissions", response_model=AccrualResponse)
async def accrue_emission(
    instance_id: uuid.UUID,
    request: AccrueEmissionRequest,
    user: AuthUser = Depends(require_auth),
):
    """Add a work session's carbon (from the caller's current device) to the project."""
    service = EmissionService(get_session_factory())
    result = await service.accrue(
        instance_id,
        user.user_id,
        request.session_duration_seconds,
        record_session_duration=request.record_session_duration,
    )
    return AccrualResponse(**result.__dict__)


@router.post("/{instance_id}/archive", status_code=204)
async def archive_project(instance_id: uuid.UUID, user: AuthUser = Depends(require_auth)):
    await ProjectService(get_session_factory()).archive(instance_id, user.user_id)


@router.get("/{instance_id}/members", response_model=list[MemberResponse])
async def list_members(instance_id: uuid.UUID, user: AuthUser = Depends(require_auth)):
    service = MembershipService(get_session_factory())
    members = await service.list_members(instance_id, user.user_id, is_admin=user.is_admin)
    return [MemberResponse(**m.__dict__) for m in members]


@router.get("/{instance_id}/progress", response_model=StageProgressResponse)
async def stage_progress(instance_id: uuid.UUID, user: AuthUser = Depends(require_auth)):
    progress = await ProjectService(get_session_factory()).get_stage_progress(
        instance_id, user.user_id, is_admin=user.is_admin
    )
    return StageProgressResponse(**progress.__dict__)


@router.post("/{instance_id}/invitations", response_model=InviteResponse, status_code=201)
async def invite(instance_id: uuid.UUID, request: InviteRequest, user: AuthUser = Depends(require_auth)):
    """Invite a registered user by email. Membership is created on acceptance."""
    service = MembershipService(get_session_factory())
    notification_id = await service.invite(user.user_id, request.email, instance_id, request.message)
    return InviteResponse(notification_id=notification_id)
