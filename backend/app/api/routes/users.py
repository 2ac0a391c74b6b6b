"""User profile and device API routes."""

from fastapi import APIRouter, Depends

from app.core.auth import AuthUser, require_auth
from app.db.base import get_session_factory
from app.schemas.users import (
    DeviceCreate,
    DeviceListResponse,
    DeviceResponse,
    ProfileRegister,
    ProfileResponse,
    ProfileUpdate,
    SetCurrentDeviceRequest,
)
from app.services.user_service import DeviceSpec, UserService

router = APIRouter()


def _spec(device) -> DeviceSpec:
    return DeviceSpec(**device.model_dump(include={"category", "cpu", "gpu", "ram", "capacity", "motherboard", "psu"}))


@router.post("/me", response_model=ProfileResponse, status_code=201)
async def register_profile(request: ProfileRegister, user: AuthUser = Depends(require_auth)):
    """Register the profile and first device of the authenticated identity."""
    service = UserService(get_session_factory())
    return await service.register_profile(
        user.user_id,
        name=request.name,
        email=request.email,
        organization=request.organization,
        region=request.region,
        device=_spec(request.device),
    )


@router.get("/me", response_model=ProfileResponse)
async def get_profile(user: AuthUser = Depends(require_auth)):
    return await UserService(get_session_factory()).get_profile(user.user_id)


@router.patch("/me", response_model=ProfileResponse)
async def update_profile(request: ProfileUpdate, user: AuthUser = Depends(require_auth)):
    service = UserService(get_session_factory())
    return await service.update_profile(user.user_id, request.model_dump(exclude_unset=True))


@router.get("/me/devices", response_model=DeviceListResponse)
async def list_devices(user: AuthUser = Depends(require_auth)):
    devices, current_id = await UserService(get_session_factory()).list_devices(user.user_id)
    return DeviceListResponse(
        devices=[DeviceResponse.model_validate(d) for d in devices],
        current_device_id=current_id,
    )


@router.post("/me/devices", response_model=DeviceResponse, status_code=201)
async def add_device(request: DeviceCreate, user: AuthUser = Depends(require_auth)):
    service = UserService(get_session_factory())
    return await service.add_device(user.user_id, _spec(request), make_current=request.make_current)


@router.put("/me/current-device", status_code=204)
async def set_current_device(request: SetCurrentDeviceRequest, user: AuthUser = Depends(require_auth)):
    await UserService(get_session_factory()).set_current_device(user.user_id, request.device_id)
