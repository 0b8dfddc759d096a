from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


class LocationUpdate(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    search_radius: Optional[int] = Field(None, ge=1, le=500)

    @field_validator("search_radius")
    @classmethod
    def radius_not_null(cls, v: Optional[int]) -> Optional[int]:
        # Omit the field to keep the saved radius; null cannot be stored
        if v is None:
            raise ValueError("search_radius cannot be null")
        return v


class SocialAccountResponse(BaseModel):
    id: str
    platform: str
    platform_user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    followers: int
    following: int
    post_count: int
    engagement_rate: float
    recent_topics: list[str] = []
    profile_url: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    search_radius: int
    has_location: bool
    social_accounts: list[SocialAccountResponse] = []

    class Config:
        from_attributes = True
