"""
User Model - Creator identity and location

A user is a content creator who can connect social accounts and request
nearby collaborator matches. Matching needs both coordinates and at least one
connected social account.
"""

from sqlalchemy import Column, String, Integer, Float, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import uuid


class User(Base):
    """
    Creator account with location preferences.

    Attributes:
        email: Unique login identifier
        name: Display name used in outreach messages
        city/state/country/zip_code: Free-text address fields
        latitude/longitude: Signed decimal degrees (nullable until set)
        search_radius: Default match radius in miles
        social_accounts: Connected Instagram/TikTok/YouTube accounts
    """

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(320), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    country = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True, index=True)
    longitude = Column(Float, nullable=True, index=True)
    search_radius = Column(Integer, nullable=False, default=50)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    social_accounts = relationship(
        "SocialAccount",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="SocialAccount.created_at",
    )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', email='{self.email}')>"
