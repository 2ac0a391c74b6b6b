"""Project request submission routes (admin disposition lives in admin.py)."""

from fastapi import APIRouter, Depends

from app.core.auth import AuthUser, require_auth
from app.db.base import get_session_factory
from app.schemas.project_requests import ProjectRequestCreate, ProjectRequestCreated, ProjectRequestResponse
from app.services.project_request_service import ProjectRequestService

router = APIRouter()


@router.post("", response_model=ProjectRequestCreated, status_code=201)
async def submit_project_request(request: ProjectRequestCreate, user: AuthUser = Depends(require_auth)):
    service = ProjectRequestService(get_session_factory())
    request_id = await service.submit(
        user.user_id,
        title=request.title,
        description=request.description,
        stage=request.stage,
        organization=request.organization,
        stage_duration=request.stage_duration,
        project_start_date=request.project_start_date,
        project_due_date=request.project_due_date,
    )
    return ProjectRequestCreated(request_id=request_id)


@router.get("/mine", response_model=list[ProjectRequestResponse])
async def list_my_requests(user: AuthUser = Depends(require_auth)):
    return await ProjectRequestService(get_session_factory()).list_for_user(user.user_id)
