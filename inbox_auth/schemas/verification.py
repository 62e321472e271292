from typing import Optional

from pydantic import BaseModel, Field


class SendCodeRequest(BaseModel):
    identifier: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = None


class AdminSendCodeRequest(BaseModel):
    identifier: Optional[str] = Field(default=None, max_length=255)


class SendCodeResponse(BaseModel):
    ok: bool = True
    message: str = "Code sent"


class VerifyCodeRequest(BaseModel):
    identifier: Optional[str] = Field(default=None, max_length=255)
    code: Optional[str] = Field(default=None, max_length=32)


class VerifyCodeResponse(BaseModel):
    ok: bool = True
    message: str = "Email verified"
    token: str
    role: str
    email: str


class VerifyTokenRequest(BaseModel):
    token: Optional[str] = None


class VerifyTokenResponse(BaseModel):
    valid: bool
    email: Optional[str] = None
    role: Optional[str] = None
    error: Optional[str] = None


class IdentityResponse(BaseModel):
    email: str
    role: str


class TransportCheckResponse(BaseModel):
    ok: bool
    error: Optional[str] = None
