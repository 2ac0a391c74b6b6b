"""Notification inbox and invitation response routes."""

import uuid

from fastapi import APIRouter, Depends

from app.core.auth import AuthUser, require_auth
from app.db.base import get_session_factory
from app.schemas.invitations import NotificationResponse, RespondRequest, RespondResponse
from app.services.membership_service import MembershipService
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(user: AuthUser = Depends(require_auth)):
    views = await NotificationService(get_session_factory()).list_for_recipient(user.user_id)
    return [NotificationResponse(**v.__dict__) for v in views]


@router.post("/{notification_id}/read", status_code=204)
async def mark_read(notification_id: uuid.UUID, user: AuthUser = Depends(require_auth)):
    await NotificationService(get_session_factory()).mark_read(notification_id, user.user_id)


@router.post("/{notification_id}/respond", response_model=RespondResponse)
async def respond_to_invitation(
    notification_id: uuid.UUID,
    request: RespondRequest,
    user: AuthUser = Depends(require_auth),
):
    """Accept or reject an invitation. Repeating the same answer is a no-op."""
    service = MembershipService(get_session_factory())
    changed = await service.respond(notification_id, user.user_id, request.response)
    return RespondResponse(notification_id=notification_id, response=request.response, changed=changed)
