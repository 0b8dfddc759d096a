from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional


class GenerateMatchesRequest(BaseModel):
    max_distance: Optional[float] = Field(None, gt=0, le=500)
    min_followers: int = Field(0, ge=0)
    max_followers: Optional[int] = Field(None, ge=0)
    platforms: Optional[list[str]] = None
    min_engagement: float = Field(0.0, ge=0)
    limit: int = Field(20, ge=1, le=100)


class MatchedUserResponse(BaseModel):
    id: str
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    social_accounts: list["MatchedAccountResponse"] = []

    class Config:
        from_attributes = True


class MatchedAccountResponse(BaseModel):
    platform: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    followers: int
    engagement_rate: float
    profile_url: Optional[str] = None

    class Config:
        from_attributes = True


MatchedUserResponse.model_rebuild()


class MatchResponse(BaseModel):
    id: str
    matched_user_id: str
    match_score: float
    distance_miles: Optional[float] = None
    match_reasons: dict[str, Any]
    collaboration_formats: list[dict[str, Any]]
    audience_insights: dict[str, Any]
    status: str
    outreach_sent: bool
    outreach_sent_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    matched_user: Optional[MatchedUserResponse] = None

    class Config:
        from_attributes = True


class GenerateMatchesResponse(BaseModel):
    message: str
    matches: list[MatchResponse]
    candidates_considered: int = 0
    skipped: int = 0


class MatchStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class OutreachResponse(BaseModel):
    match_id: str
    message: str


class MatchStatsResponse(BaseModel):
    total_matches: int
    matches_by_status: dict[str, int]
    avg_match_score: float
    outreach_sent: int
