from pydantic import BaseModel
from typing import Optional


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    success: bool
    message: str
    user_id: Optional[str] = None


class PlatformInitResponse(BaseModel):
    platform: str
    auth_url: str


class PlatformCallbackRequest(BaseModel):
    code: str
    state: Optional[str] = None


class PlatformCallbackResponse(BaseModel):
    platform: str
    session_id: str
