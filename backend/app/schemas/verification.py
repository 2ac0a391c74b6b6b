"""One-time verification code Pydantic schemas."""

from pydantic import BaseModel, Field


class IssueCodeRequest(BaseModel):
    email: str = Field(..., min_length=3)


class IssueCodeResponse(BaseModel):
    issued: bool
    expires_in: int


class VerifyCodeRequest(BaseModel):
    email: str = Field(..., min_length=3)
    code: str = Field(..., min_length=6, max_length=6)


class VerifyCodeResponse(BaseModel):
    verified: bool
