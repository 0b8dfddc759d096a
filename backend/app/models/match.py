"""
CollaboratorMatch Model - Persisted match outcome

Owned by the subject (user_id) who requested matches; matched_user_id is the
candidate. At most one row per (user_id, matched_user_id) pair.

Status Flow:
    pending → contacted → accepted/rejected → archived
    pending → archived

Regenerating a match overwrites score, distance, reasons, formats and
insights only; status, outreach flags and notes belong to the user.
"""

from sqlalchemy import Column, String, Float, Text, DateTime, Boolean, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import uuid

MATCH_STATUSES = ("pending", "contacted", "accepted", "rejected", "archived")

# Fields a match regeneration is allowed to overwrite
REGENERATED_FIELDS = (
    "match_score",
    "distance_miles",
    "match_reasons",
    "collaboration_formats",
    "audience_insights",
)


class CollaboratorMatch(Base):
    """
    AI-scored collaborator suggestion.

    Attributes:
        match_score: Blended score 0-100 (2 decimals)
        distance_miles: Great-circle distance (2 decimals)
        match_reasons: {"distance": str, "compatibility": float, "platforms": [str]}
        collaboration_formats: List of suggested format dicts
        audience_insights: Compatibility analysis of the first profile pair
        status: pending, contacted, accepted, rejected, archived (indexed)
        outreach_sent/outreach_sent_at: Set by mark-outreach-sent
        notes: User notes
    """

    __tablename__ = "collaborator_matches"
    __table_args__ = (
        UniqueConstraint("user_id", "matched_user_id", name="uq_match_pair"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    matched_user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    match_score = Column(Float, nullable=False, index=True)
    distance_miles = Column(Float, nullable=True)
    match_reasons = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    collaboration_formats = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    audience_insights = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="pending", index=True)
    outreach_sent = Column(Boolean, nullable=False, default=False)
    outreach_sent_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    matched_user = relationship("User", foreign_keys=[matched_user_id])
