"""
Collaborator Matching Service - Find and score nearby creators

Pipeline (generate_matches):
    1. Load the subject with social accounts; missing location or accounts is
       a precondition error the client resolves by finishing setup
    2. Resolve the search radius (request → user's saved radius → 50 miles)
    3. Bounding-box query with the follower/platform/engagement filters,
       oversampled to 2× the limit
    4. Exact Haversine distance; drop candidates beyond the radius, sort by
       distance, keep the closest `limit`
    5. For every (subject account × candidate account) pair, ask the AI
       service for a compatibility analysis and collaboration formats
    6. Mean compatibility + distance decay → final score (see scorer.py)
    7. Upsert one match per (subject, candidate) and return them best first

Failure Isolation:
    The AI service answers with local fallbacks when the model is
    unavailable, so a candidate normally always gets a (possibly
    fallback-derived) score. If analysis for a candidate still raises or
    exceeds its timeout, that candidate is skipped and counted; the rest of
    the batch is saved. Database write errors fail the whole call.

Concurrency:
    Candidates are analysed concurrently under a semaphore; profile pairs
    within one candidate run in order. Database work stays sequential on the
    request's session.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from app.config import Settings, get_settings
from app.exceptions import LocationNotSetError, NoSocialAccountsError
from app.middleware.metrics import record_match_generation
from app.models import CollaboratorMatch, SocialAccount, User
from app.services.ai_service import AIService, AudienceAnalysis, CollaborationFormat, CreatorProfile
from app.services.geo import bounding_box, describe_distance, haversine_distance
from app.services.scorer import blend_score, mean_compatibility
from app.services.store import CreatorStore, MatchFilters

logger = logging.getLogger(__name__)

# Fetch this many times the limit from the box query; the exact-distance
# filter discards rows in the box corners
OVERSAMPLE_FACTOR = 2

NO_MATCHES_MESSAGE = (
    "No potential collaborators found in your area. Try increasing your search radius."
)


@dataclass
class MatchOptions:
    """
    Search options for find_matches / generate_matches.

    Attributes:
        max_distance: Radius in miles; None uses the user's saved radius
        min_followers/max_followers: Follower bounds on candidate accounts
        platforms: Restrict candidate accounts to these platforms
        min_engagement: Minimum engagement rate (%) on candidate accounts
        limit: Maximum candidates to analyse
    """
    max_distance: Optional[float] = None
    min_followers: int = 0
    max_followers: Optional[int] = None
    platforms: Optional[List[str]] = None
    min_engagement: float = 0.0
    limit: int = 20

    def filters(self) -> MatchFilters:
        return MatchFilters(
            min_followers=self.min_followers,
            max_followers=self.max_followers,
            platforms=self.platforms,
            min_engagement=self.min_engagement,
        )


@dataclass
class CandidateMatch:
    """A candidate within the search radius."""
    user: User
    distance_miles: float
    accounts: List[SocialAccount] = field(default_factory=list)


@dataclass
class PairAnalysis:
    """AI output for one (subject account, candidate account) pair."""
    subject_platform: str
    candidate_platform: str
    analysis: AudienceAnalysis
    formats: List[CollaborationFormat]


@dataclass
class GenerateMatchesResult:
    message: str
    matches: List[CollaboratorMatch] = field(default_factory=list)
    candidates_considered: int = 0
    skipped: int = 0


def effective_radius(options: MatchOptions, subject: User, default_radius: float = 50) -> float:
    return options.max_distance or subject.search_radius or default_radius


def build_match_values(
    subject_id: str,
    candidate: CandidateMatch,
    analyses: List[PairAnalysis],
) -> Dict[str, Any]:
    """
    Aggregate pair analyses into the stored match fields.

    The first pair's formats and analysis are stored as the representative
    collaboration_formats and audience_insights.
    """
    compatibility = mean_compatibility(a.analysis.compatibility_score for a in analyses)
    first = analyses[0] if analyses else None

    return {
        "user_id": subject_id,
        "matched_user_id": candidate.user.id,
        "match_score": blend_score(compatibility, candidate.distance_miles),
        "distance_miles": round(candidate.distance_miles, 2),
        "match_reasons": {
            "distance": describe_distance(candidate.distance_miles),
            "compatibility": round(compatibility, 1),
            "platforms": [f"{a.subject_platform} ↔ {a.candidate_platform}" for a in analyses],
        },
        "collaboration_formats": [f.model_dump() for f in first.formats] if first else [],
        "audience_insights": first.analysis.model_dump() if first else {},
    }


class MatchingService:
    """
    Match orchestrator.

    Attributes:
        store: CreatorStore bound to the request's session
        ai: AIService used for pair analyses and outreach drafts
        settings: Timeouts, concurrency and the default radius
    """

    def __init__(self, store: CreatorStore, ai: AIService, settings: Optional[Settings] = None):
        self.store = store
        self.ai = ai
        self.settings = settings or get_settings()

    async def load_subject(self, subject_id: str) -> User:
        """Load the subject and enforce the matching preconditions."""
        subject = await self.store.require_user(subject_id)

        if not subject.has_location:
            raise LocationNotSetError()
        if not subject.social_accounts:
            raise NoSocialAccountsError()

        return subject

    async def find_matches(
        self,
        subject_id: str,
        options: Optional[MatchOptions] = None,
    ) -> Tuple[User, List[CandidateMatch]]:
        """
        Find candidates within the search radius, closest first.

        Returns:
            Tuple of (subject, up to options.limit CandidateMatch objects)

        Raises:
            UserNotFoundError, LocationNotSetError, NoSocialAccountsError
        """
        options = options or MatchOptions()
        subject = await self.load_subject(subject_id)

        radius = effective_radius(options, subject, self.settings.default_search_radius)
        lat, lon = float(subject.latitude), float(subject.longitude)
        box = bounding_box(lat, lon, radius)

        logger.info(
            f"Finding matches for user {subject_id}: radius={radius} miles, "
            f"accounts={len(subject.social_accounts)}, options={options}"
        )
        logger.debug(
            f"Bounding box lat {box.min_lat:.4f}..{box.max_lat:.4f}, "
            f"lon {box.min_lon:.4f}..{box.max_lon:.4f} (antimeridian={box.crosses_antimeridian})"
        )

        rows = await self.store.find_candidates(
            box,
            options.filters(),
            exclude_id=subject.id,
            limit=options.limit * OVERSAMPLE_FACTOR,
            center=(lat, lon),
        )

        candidates = []
        for row in rows:
            if row.user.id == subject.id:
                continue
            distance = haversine_distance(lat, lon, float(row.user.latitude), float(row.user.longitude))
            if distance <= radius:
                candidates.append(CandidateMatch(user=row.user, distance_miles=distance, accounts=row.accounts))

        candidates.sort(key=lambda c: c.distance_miles)
        candidates = candidates[:options.limit]

        logger.info(
            f"  {len(rows)} users in bounding box, {len(candidates)} within {radius} miles"
        )
        return subject, candidates

    async def analyze_candidate(self, subject: User, candidate: CandidateMatch) -> List[PairAnalysis]:
        """Run compatibility + format suggestions for every profile pair, in order."""
        analyses = []
        for subject_account in subject.social_accounts:
            subject_profile = CreatorProfile.from_account(subject_account, subject)
            for candidate_account in candidate.accounts:
                candidate_profile = CreatorProfile.from_account(
                    candidate_account, candidate.user, candidate.distance_miles
                )

                analysis = await self.ai.analyze_compatibility(subject_profile, candidate_profile)
                formats = await self.ai.suggest_collaboration_formats(
                    subject_profile, candidate_profile, candidate.distance_miles
                )
                analyses.append(PairAnalysis(
                    subject_platform=subject_account.platform,
                    candidate_platform=candidate_account.platform,
                    analysis=analysis,
                    formats=formats,
                ))
        return analyses

    async def _analyze_all(
        self,
        subject: User,
        candidates: List[CandidateMatch],
    ) -> List[Optional[List[PairAnalysis]]]:
        """
        Analyse candidates concurrently with per-candidate and overall timeouts.

        Returns:
            One entry per candidate (same order): the analyses, or None when
            that candidate failed or timed out
        """
        semaphore = asyncio.Semaphore(max(1, self.settings.match_analysis_concurrency))
        per_candidate_timeout = self.settings.match_candidate_timeout_seconds

        async def run(candidate: CandidateMatch) -> List[PairAnalysis]:
            async with semaphore:
                return await asyncio.wait_for(
                    self.analyze_candidate(subject, candidate),
                    timeout=per_candidate_timeout,
                )

        tasks = [asyncio.create_task(run(c)) for c in candidates]
        done, pending = await asyncio.wait(
            tasks, timeout=self.settings.match_generation_timeout_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Match generation timed out; {len(pending)} candidates not analysed")

        results: List[Optional[List[PairAnalysis]]] = []
        for candidate, task in zip(candidates, tasks):
            if task in pending:
                results.append(None)
                continue
            error = task.exception()
            if error is not None:
                logger.error(f"Error generating match for user {candidate.user.id}: {error!r}")
                results.append(None)
                continue
            results.append(task.result())
        return results

    async def generate_matches(
        self,
        subject_id: str,
        options: Optional[MatchOptions] = None,
    ) -> GenerateMatchesResult:
        """
        Find, analyse, score and save matches for a subject.

        Returns:
            GenerateMatchesResult with matches sorted by score (best first)

        Raises:
            UserNotFoundError, LocationNotSetError, NoSocialAccountsError
            SQLAlchemyError: the match upsert failed
        """
        start_time = time.perf_counter()
        subject, candidates = await self.find_matches(subject_id, options)

        if not candidates:
            return GenerateMatchesResult(message=NO_MATCHES_MESSAGE)

        results = await self._analyze_all(subject, candidates)

        saved_ids = []
        skipped = 0
        try:
            for candidate, analyses in zip(candidates, results):
                if analyses is None:
                    skipped += 1
                    continue
                await self.store.upsert_match(build_match_values(subject.id, candidate, analyses))
                saved_ids.append(candidate.user.id)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        matches = await self.store.get_matches_for_pairs(subject.id, saved_ids)

        record_match_generation(time.perf_counter() - start_time, len(matches), skipped)
        logger.info(
            f"Generated {len(matches)} matches for user {subject_id} "
            f"({skipped} skipped of {len(candidates)} candidates)"
        )

        return GenerateMatchesResult(
            message=f"Found {len(matches)} potential collaborators",
            matches=matches,
            candidates_considered=len(candidates),
            skipped=skipped,
        )

    # ==================== Saved matches ====================

    async def get_saved_matches(self, subject_id: str, status: Optional[str] = None) -> List[CollaboratorMatch]:
        return await self.store.find_matches(subject_id, status)

    async def update_match_status(
        self,
        match_id: str,
        subject_id: str,
        status: str,
        notes: Optional[str] = None,
    ) -> CollaboratorMatch:
        return await self.store.update_match_status(match_id, subject_id, status, notes)

    async def mark_outreach_sent(self, match_id: str, subject_id: str) -> CollaboratorMatch:
        return await self.store.mark_outreach_sent(match_id, subject_id)

    async def generate_outreach(self, match_id: str, subject_id: str) -> str:
        """
        Draft an outreach message for a saved match.

        Uses the candidate's most-followed account as the target and the
        subject's account on the same platform (if any) as the sender.
        """
        subject = await self.store.require_user(subject_id)
        match = await self.store.get_match(match_id, subject_id)
        candidate = match.matched_user

        target_account = max(candidate.social_accounts, key=lambda a: a.followers or 0, default=None)
        if target_account is not None:
            target = CreatorProfile.from_account(target_account, candidate, match.distance_miles)
        else:
            target = CreatorProfile(
                platform="social media",
                display_name=candidate.name,
                distance_miles=match.distance_miles,
            )

        sender_account = next(
            (a for a in subject.social_accounts if a.platform == target.platform),
            subject.social_accounts[0] if subject.social_accounts else None,
        )
        if sender_account is not None:
            sender = CreatorProfile.from_account(sender_account, subject)
        else:
            sender = CreatorProfile(platform=target.platform, name=subject.name, city=subject.city, state=subject.state)

        formats = []
        for item in match.collaboration_formats or []:
            try:
                formats.append(CollaborationFormat.model_validate(item))
            except ValueError:
                logger.warning(f"Ignoring malformed stored collaboration format on match {match_id}")

        return await self.ai.generate_outreach_message(sender, target, formats)

    async def match_stats(self, subject_id: str) -> Dict[str, Any]:
        return await self.store.match_stats(subject_id)
