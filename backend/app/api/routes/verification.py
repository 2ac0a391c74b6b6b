"""One-time verification code routes (public; used before a profile exists)."""

from fastapi import APIRouter, Depends

from app.core.config import get_settings
from app.db.redis import get_redis
from app.schemas.verification import IssueCodeRequest, IssueCodeResponse, VerifyCodeRequest, VerifyCodeResponse
from app.services.verification_store import VerificationCodeStore

router = APIRouter()


def get_verification_store() -> VerificationCodeStore:
    """Dependency that provides the Redis-backed code store.

    Override this dependency in tests via app.dependency_overrides.
    """
    return VerificationCodeStore(get_redis(), get_settings().verification_code_ttl_seconds)


@router.post("/codes", response_model=IssueCodeResponse, status_code=202)
async def issue_code(
    request: IssueCodeRequest,
    store: VerificationCodeStore = Depends(get_verification_store),
):
    """Issue a code for ``email``. The code is never returned; delivery is external."""
    await store.issue(request.email)
    return IssueCodeResponse(issued=True, expires_in=store.ttl_seconds)


@router.post("/verify", response_model=VerifyCodeResponse)
async def verify_code(
    request: VerifyCodeRequest,
    store: VerificationCodeStore = Depends(get_verification_store),
):
    return VerifyCodeResponse(verified=await store.verify(request.email, request.code))
