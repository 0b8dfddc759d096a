"""
Creator Store - Data access for users, social accounts and matches

All database access used by the matching pipeline and the API goes through
CreatorStore, which wraps one AsyncSession. Methods flush but leave commits to
the caller, except for the single-record mutations (status update, outreach
sent, location, social account) which commit themselves.

Match Upsert Policy:
    A single INSERT ... ON CONFLICT (user_id, matched_user_id) DO UPDATE.
    The update only touches the regenerated fields (score, distance, reasons,
    formats, insights); status, outreach_sent, outreach_sent_at and notes are
    written on insert only, so regenerating never resets user decisions.

Status Transitions:
    pending   → contacted, archived
    contacted → accepted, rejected, archived
    accepted  → archived
    rejected  → archived
    Re-asserting the current status is allowed (notes-only update).
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import InvalidStatusTransitionError, MatchNotFoundError, UserNotFoundError
from app.models import CollaboratorMatch, MATCH_STATUSES, REGENERATED_FIELDS, SocialAccount, User
from app.services.geo import BoundingBox

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    "pending": frozenset({"contacted", "archived"}),
    "contacted": frozenset({"accepted", "rejected", "archived"}),
    "accepted": frozenset({"archived"}),
    "rejected": frozenset({"archived"}),
    "archived": frozenset(),
}


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime (without time zone) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def validate_transition(current: str, requested: str) -> None:
    """Raise InvalidStatusTransitionError unless current → requested is allowed."""
    if requested not in MATCH_STATUSES:
        raise InvalidStatusTransitionError(current, requested)
    if requested == current:
        return
    if requested not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransitionError(current, requested)


@dataclass
class MatchFilters:
    """
    Secondary predicate on candidate social accounts.

    A candidate qualifies when at least one of its accounts satisfies every
    active filter; only those accounts are used for analysis.
    """
    min_followers: int = 0
    max_followers: Optional[int] = None
    platforms: Optional[List[str]] = None
    min_engagement: float = 0.0

    def account_criteria(self) -> List[Any]:
        criteria = []
        if self.min_followers > 0:
            criteria.append(SocialAccount.followers >= self.min_followers)
        if self.max_followers is not None:
            criteria.append(SocialAccount.followers <= self.max_followers)
        if self.platforms:
            criteria.append(SocialAccount.platform.in_(self.platforms))
        if self.min_engagement > 0:
            criteria.append(SocialAccount.engagement_rate >= self.min_engagement)
        return criteria


@dataclass
class CandidateRow:
    """A candidate user with the social accounts that passed the filters."""
    user: User
    accounts: List[SocialAccount] = field(default_factory=list)


class CreatorStore:
    """
    Async data-access collaborator over one session.

    Attributes:
        session: SQLAlchemy AsyncSession
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    # ==================== Users ====================

    async def get_user_with_profiles(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.social_accounts))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_user(self, user_id: str) -> User:
        user = await self.get_user_with_profiles(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def update_location(self, user_id: str, fields: Dict[str, Any]) -> User:
        """Apply location fields to a user and commit."""
        user = await self.require_user(user_id)
        for name, value in fields.items():
            setattr(user, name, value)
        await self.session.commit()
        return await self.require_user(user_id)

    async def find_candidates(
        self,
        box: BoundingBox,
        filters: MatchFilters,
        exclude_id: str,
        limit: int,
        center: Optional[tuple] = None,
    ) -> List[CandidateRow]:
        """
        Bounding-box pre-filter query.

        Args:
            box: Rectangular coordinate range (superset of the search circle)
            filters: Social-account predicate applied in the same query
            exclude_id: Subject id, never returned
            limit: Maximum users to return
            center: Optional (lat, lon); when given, rows nearest the center
                (by flat-earth approximation) are preferred under the limit

        Returns:
            CandidateRow per user, each with its filtered accounts
        """
        if box.crosses_antimeridian:
            lon_clause = or_(User.longitude >= box.min_lon, User.longitude <= box.max_lon)
        else:
            lon_clause = User.longitude.between(box.min_lon, box.max_lon)

        criteria = filters.account_criteria()
        query = select(User).where(
            User.id != exclude_id,
            User.latitude.is_not(None),
            User.longitude.is_not(None),
            User.latitude.between(box.min_lat, box.max_lat),
            lon_clause,
            User.social_accounts.any(and_(*criteria) if criteria else None),
        )

        if center is not None:
            lat0, lon0 = center
            lon_scale = math.cos(math.radians(lat0))
            d_lat = User.latitude - lat0
            raw_d_lon = User.longitude - lon0
            if box.crosses_antimeridian:
                # Measure across ±180 so wrapped rows sort by their true offset
                raw_d_lon = case(
                    (raw_d_lon < -180, raw_d_lon + 360),
                    (raw_d_lon > 180, raw_d_lon - 360),
                    else_=raw_d_lon,
                )
            d_lon = raw_d_lon * lon_scale
            query = query.order_by(d_lat * d_lat + d_lon * d_lon)

        result = await self.session.execute(query.limit(limit))
        users = list(result.scalars().all())
        if not users:
            return []

        accounts_result = await self.session.execute(
            select(SocialAccount)
            .where(SocialAccount.user_id.in_([u.id for u in users]), *criteria)
            .order_by(SocialAccount.created_at, SocialAccount.id)
        )
        by_user: Dict[str, List[SocialAccount]] = {}
        for account in accounts_result.scalars().all():
            by_user.setdefault(account.user_id, []).append(account)

        return [CandidateRow(user=u, accounts=by_user.get(u.id, [])) for u in users]

    # ==================== Social Accounts ====================

    async def list_social_accounts(self, user_id: str) -> List[SocialAccount]:
        result = await self.session.execute(
            select(SocialAccount)
            .where(SocialAccount.user_id == user_id)
            .order_by(SocialAccount.created_at.desc())
        )
        return list(result.scalars().all())

    async def upsert_social_account(self, user_id: str, values: Dict[str, Any]) -> SocialAccount:
        """Create or refresh the account keyed on (platform, platform_user_id) and commit."""
        result = await self.session.execute(
            select(SocialAccount).where(
                SocialAccount.platform == values["platform"],
                SocialAccount.platform_user_id == values["platform_user_id"],
            )
        )
        account = result.scalar_one_or_none()

        if account is None:
            account = SocialAccount(user_id=user_id, **values)
            self.session.add(account)
        else:
            account.user_id = user_id
            for name, value in values.items():
                setattr(account, name, value)

        await self.session.commit()
        await self.session.refresh(account)
        return account

    async def find_stale_accounts(self, older_than: datetime) -> List[SocialAccount]:
        result = await self.session.execute(
            select(SocialAccount).where(
                SocialAccount.access_token.is_not(None),
                or_(SocialAccount.last_synced_at.is_(None), SocialAccount.last_synced_at < older_than),
            )
        )
        return list(result.scalars().all())

    # ==================== Matches ====================

    def _match_query(self):
        return select(CollaboratorMatch).options(
            selectinload(CollaboratorMatch.matched_user).selectinload(User.social_accounts)
        )

    async def upsert_match(self, values: Dict[str, Any]) -> None:
        """
        Insert a match or overwrite its regenerated fields.

        Args:
            values: user_id, matched_user_id and the REGENERATED_FIELDS
        """
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert

        row = {field_name: values[field_name] for field_name in REGENERATED_FIELDS}
        stmt = insert(CollaboratorMatch).values(
            id=str(uuid.uuid4()),
            user_id=values["user_id"],
            matched_user_id=values["matched_user_id"],
            status="pending",
            outreach_sent=False,
            **row,
        )
        update_set = {name: getattr(stmt.excluded, name) for name in REGENERATED_FIELDS}
        update_set["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "matched_user_id"],
            set_=update_set,
        )
        await self.session.execute(stmt)

    async def get_matches_for_pairs(self, user_id: str, matched_user_ids: List[str]) -> List[CollaboratorMatch]:
        """Re-read matches with candidate user and accounts joined, best score first."""
        if not matched_user_ids:
            return []
        result = await self.session.execute(
            self._match_query()
            .where(
                CollaboratorMatch.user_id == user_id,
                CollaboratorMatch.matched_user_id.in_(matched_user_ids),
            )
            .order_by(CollaboratorMatch.match_score.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_matches(self, user_id: str, status: Optional[str] = None) -> List[CollaboratorMatch]:
        query = self._match_query().where(CollaboratorMatch.user_id == user_id)
        if status:
            query = query.where(CollaboratorMatch.status == status)
        result = await self.session.execute(
            query.order_by(CollaboratorMatch.match_score.desc(), CollaboratorMatch.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_match(self, match_id: str, user_id: str) -> CollaboratorMatch:
        """Fetch a match owned by user_id or raise MatchNotFoundError."""
        result = await self.session.execute(
            self._match_query()
            .where(
                CollaboratorMatch.id == match_id,
                CollaboratorMatch.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        match = result.scalar_one_or_none()
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    async def update_match_status(
        self,
        match_id: str,
        user_id: str,
        status: str,
        notes: Optional[str] = None,
    ) -> CollaboratorMatch:
        match = await self.get_match(match_id, user_id)
        validate_transition(match.status, status)

        match.status = status
        if notes is not None:
            match.notes = notes

        await self.session.commit()
        return await self.get_match(match_id, user_id)

    async def mark_outreach_sent(self, match_id: str, user_id: str) -> CollaboratorMatch:
        """Flag outreach as sent; a pending match moves to contacted."""
        match = await self.get_match(match_id, user_id)

        match.outreach_sent = True
        match.outreach_sent_at = utcnow()
        if match.status == "pending":
            match.status = "contacted"

        await self.session.commit()
        return await self.get_match(match_id, user_id)

    async def match_stats(self, user_id: str) -> Dict[str, Any]:
        total_result = await self.session.execute(
            select(func.count(CollaboratorMatch.id)).where(CollaboratorMatch.user_id == user_id)
        )
        total = total_result.scalar() or 0

        status_result = await self.session.execute(
            select(CollaboratorMatch.status, func.count(CollaboratorMatch.id))
            .where(CollaboratorMatch.user_id == user_id)
            .group_by(CollaboratorMatch.status)
        )
        by_status = {row[0]: row[1] for row in status_result.all()}
        for status in MATCH_STATUSES:
            by_status.setdefault(status, 0)

        avg_result = await self.session.execute(
            select(func.avg(CollaboratorMatch.match_score)).where(CollaboratorMatch.user_id == user_id)
        )
        avg_score = round(avg_result.scalar() or 0, 1)

        outreach_result = await self.session.execute(
            select(func.count(CollaboratorMatch.id)).where(
                CollaboratorMatch.user_id == user_id,
                CollaboratorMatch.outreach_sent.is_(True),
            )
        )

        return {
            "total_matches": total,
            "matches_by_status": by_status,
            "avg_match_score": avg_score,
            "outreach_sent": outreach_result.scalar() or 0,
        }
