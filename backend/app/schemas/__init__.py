from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PlatformInitResponse,
    PlatformCallbackRequest,
    PlatformCallbackResponse,
)
from app.schemas.user import LocationUpdate, UserResponse, SocialAccountResponse
from app.schemas.match import (
    GenerateMatchesRequest,
    GenerateMatchesResponse,
    MatchResponse,
    MatchStatusUpdate,
    OutreachResponse,
    MatchStatsResponse,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "PlatformInitResponse",
    "PlatformCallbackRequest",
    "PlatformCallbackResponse",
    "LocationUpdate",
    "UserResponse",
    "SocialAccountResponse",
    "GenerateMatchesRequest",
    "GenerateMatchesResponse",
    "MatchResponse",
    "MatchStatusUpdate",
    "OutreachResponse",
    "MatchStatsResponse",
]
