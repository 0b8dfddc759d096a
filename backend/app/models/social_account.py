"""
SocialAccount Model - Normalized creator profile per platform

One row per connected platform account. Follower counts and engagement are
refreshed on connect and by the periodic resync job.
"""

from sqlalchemy import Column, String, Integer, Float, Text, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import uuid

PLATFORMS = ("instagram", "tiktok", "youtube")


class SocialAccount(Base):
    """
    Connected social media account.

    Attributes:
        platform: One of instagram, tiktok, youtube
        platform_user_id: Account id on the platform (unique per platform)
        followers/following/post_count: Non-negative counters
        engagement_rate: Average interactions per post as % of followers
        profile_data: JSON blob, holds "recent_topics" (up to 5 strings)
        last_synced_at: Last successful fetch from the platform API
    """

    __tablename__ = "social_accounts"
    __table_args__ = (
        UniqueConstraint("platform", "platform_user_id", name="uq_social_platform_user"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False, index=True)
    platform_user_id = Column(String(255), nullable=False)
    username = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    profile_data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    followers = Column(Integer, nullable=False, default=0)
    following = Column(Integer, nullable=False, default=0)
    post_count = Column(Integer, nullable=False, default=0)
    engagement_rate = Column(Float, nullable=False, default=0.0)
    profile_url = Column(String(2000), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="social_accounts")

    @property
    def recent_topics(self) -> list[str]:
        return list((self.profile_data or {}).get("recent_topics", []))[:5]

    def __repr__(self) -> str:
        return f"<SocialAccount(platform='{self.platform}', username='{self.username}')>"
