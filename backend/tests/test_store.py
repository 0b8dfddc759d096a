"""
Tests for CreatorStore against a real SQLite database

Tests cover:
- Bounding-box candidate query with account filters
- Match upsert: insert, regeneration, preservation of user decisions
- Status transitions and outreach tracking
- Social account upsert and stale account lookup
- Match statistics
"""

import pytest
from datetime import timedelta

from app.exceptions import InvalidStatusTransitionError, MatchNotFoundError, UserNotFoundError
from app.services.geo import bounding_box
from app.services.store import ALLOWED_TRANSITIONS, MatchFilters, utcnow, validate_transition


def match_values(user_id, matched_user_id, score=70.0, distance=8.3):
    return {
        "user_id": user_id,
        "matched_user_id": matched_user_id,
        "match_score": score,
        "distance_miles": distance,
        "match_reasons": {"distance": f"{distance:.1f} miles away", "compatibility": 60.0, "platforms": []},
        "collaboration_formats": [{"type": "Joint Content Series"}],
        "audience_insights": {"compatibility_score": 60.0},
    }


@pytest.fixture
async def pair(make_creator):
    subject = await make_creator(
        "maya@example.com", 37.7749, -122.4194, accounts=[{"platform": "instagram"}], name="Maya"
    )
    candidate = await make_creator(
        "devon@example.com", 37.8044, -122.2712, accounts=[{"platform": "youtube"}], name="Devon"
    )
    return subject, candidate


class TestValidateTransition:
    """Test the match status state machine."""

    @pytest.mark.parametrize("current,requested", [
        ("pending", "contacted"),
        ("pending", "archived"),
        ("contacted", "accepted"),
        ("contacted", "rejected"),
        ("accepted", "archived"),
        ("rejected", "archived"),
        ("accepted", "accepted"),
    ])
    def test_allowed(self, current, requested):
        validate_transition(current, requested)

    @pytest.mark.parametrize("current,requested", [
        ("contacted", "pending"),
        ("accepted", "pending"),
        ("archived", "pending"),
        ("pending", "accepted"),
        ("archived", "contacted"),
        ("pending", "bogus"),
    ])
    def test_rejected(self, current, requested):
        with pytest.raises(InvalidStatusTransitionError):
            validate_transition(current, requested)

    def test_nothing_returns_to_pending(self):
        assert all("pending" not in targets for targets in ALLOWED_TRANSITIONS.values())


class TestFindCandidates:
    """Test the bounding-box query."""

    @pytest.mark.asyncio
    async def test_returns_users_in_box_excluding_subject(self, store, make_creator, pair):
        subject, candidate = pair
        await make_creator("la@example.com", 34.0522, -118.2437, accounts=[{"platform": "tiktok"}])
        await make_creator("nowhere@example.com", accounts=[{"platform": "tiktok"}])

        rows = await store.find_candidates(
            bounding_box(subject.latitude, subject.longitude, 50), MatchFilters(), subject.id, limit=10
        )

        assert [row.user.id for row in rows] == [candidate.id]
        assert [a.platform for a in rows[0].accounts] == ["youtube"]

    @pytest.mark.asyncio
    async def test_users_without_accounts_are_skipped(self, store, make_creator, pair):
        subject, _ = pair
        await make_creator("lurker@example.com", 37.78, -122.41)

        rows = await store.find_candidates(
            bounding_box(subject.latitude, subject.longitude, 50), MatchFilters(), subject.id, limit=10
        )

        assert "lurker@example.com" not in [row.user.email for row in rows]

    @pytest.mark.asyncio
    async def test_account_filters(self, store, make_creator, pair):
        subject, _ = pair
        big = await make_creator("big@example.com", 37.79, -122.40, accounts=[
            {"platform": "tiktok", "followers": 500000, "engagement_rate": 8.0},
            {"platform": "instagram", "followers": 900, "engagement_rate": 1.0},
        ])

        rows = await store.find_candidates(
            bounding_box(subject.latitude, subject.longitude, 50),
            MatchFilters(min_followers=100000, platforms=["tiktok"], min_engagement=5.0),
            subject.id,
            limit=10,
        )

        assert [row.user.id for row in rows] == [big.id]
        assert [a.platform for a in rows[0].accounts] == ["tiktok"]

    @pytest.mark.asyncio
    async def test_max_followers(self, store, pair):
        subject, _ = pair
        rows = await store.find_candidates(
            bounding_box(subject.latitude, subject.longitude, 50),
            MatchFilters(max_followers=100),
            subject.id,
            limit=10,
        )
        assert rows == []

    @pytest.mark.asyncio
    async def test_limit_prefers_nearest(self, store, make_creator, pair):
        subject, candidate = pair
        await make_creator("sanjose@example.com", 37.3382, -121.8863, accounts=[{"platform": "tiktok"}])

        rows = await store.find_candidates(
            bounding_box(subject.latitude, subject.longitude, 50),
            MatchFilters(),
            subject.id,
            limit=1,
            center=(subject.latitude, subject.longitude),
        )

        assert [row.user.id for row in rows] == [candidate.id]

    @pytest.mark.asyncio
    async def test_antimeridian_box(self, store, make_creator):
        subject = await make_creator("fiji@example.com", -17.0, 179.9, accounts=[{"platform": "instagram"}])
        across = await make_creator("across@example.com", -17.0, -179.8, accounts=[{"platform": "tiktok"}])
        await make_creator("greenwich@example.com", -17.0, 0.0, accounts=[{"platform": "tiktok"}])

        rows = await store.find_candidates(bounding_box(-17.0, 179.9, 50), MatchFilters(), subject.id, limit=10)

        assert [row.user.id for row in rows] == [across.id]

    @pytest.mark.asyncio
    async def test_antimeridian_nearest_first_under_limit(self, store, make_creator):
        subject = await make_creator("fiji@example.com", -17.0, 179.9, accounts=[{"platform": "instagram"}])
        across = await make_creator("across@example.com", -17.0, -179.8, accounts=[{"platform": "tiktok"}])
        for i in range(2):
            await make_creator(f"west{i}@example.com", -17.0, 179.5, accounts=[{"platform": "tiktok"}])

        rows = await store.find_candidates(
            bounding_box(-17.0, 179.9, 50),
            MatchFilters(),
            subject.id,
            limit=1,
            center=(-17.0, 179.9),
        )

        assert [row.user.id for row in rows] == [across.id]


class TestUpsertMatch:
    """Test the match upsert policy."""

    @pytest.mark.asyncio
    async def test_insert_creates_pending_match(self, store, pair):
        subject, candidate = pair

        await store.upsert_match(match_values(subject.id, candidate.id))
        await store.commit()

        matches = await store.find_matches(subject.id)
        assert len(matches) == 1
        assert matches[0].status == "pending"
        assert matches[0].outreach_sent is False
        assert matches[0].matched_user.id == candidate.id
        assert matches[0].matched_user.social_accounts[0].platform == "youtube"

    @pytest.mark.asyncio
    async def test_regeneration_is_idempotent(self, store, pair):
        subject, candidate = pair

        for _ in range(3):
            await store.upsert_match(match_values(subject.id, candidate.id))
            await store.commit()

        assert len(await store.find_matches(subject.id)) == 1

    @pytest.mark.asyncio
    async def test_regeneration_preserves_user_decisions(self, store, pair):
        subject, candidate = pair
        await store.upsert_match(match_values(subject.id, candidate.id, score=60.0))
        await store.commit()
        match = (await store.find_matches(subject.id))[0]

        await store.mark_outreach_sent(match.id, subject.id)
        await store.update_match_status(match.id, subject.id, "accepted", notes="Coffee on Friday")

        await store.upsert_match(match_values(subject.id, candidate.id, score=88.5, distance=9.0))
        await store.commit()

        refreshed = await store.get_match(match.id, subject.id)
        assert refreshed.match_score == 88.5
        assert refreshed.distance_miles == 9.0
        assert refreshed.status == "accepted"
        assert refreshed.outreach_sent is True
        assert refreshed.outreach_sent_at is not None
        assert refreshed.notes == "Coffee on Friday"

    @pytest.mark.asyncio
    async def test_get_matches_for_pairs_sorted_by_score(self, store, make_creator, pair):
        subject, candidate = pair
        other = await make_creator("leo@example.com", 37.87, -122.27, accounts=[{"platform": "instagram"}])

        await store.upsert_match(match_values(subject.id, candidate.id, score=55.0))
        await store.upsert_match(match_values(subject.id, other.id, score=91.0))
        await store.commit()

        matches = await store.get_matches_for_pairs(subject.id, [candidate.id, other.id])
        assert [m.matched_user_id for m in matches] == [other.id, candidate.id]
        assert await store.get_matches_for_pairs(subject.id, []) == []


class TestMatchMutations:
    """Test status updates and outreach tracking."""

    @pytest.fixture
    async def match(self, store, pair):
        subject, candidate = pair
        await store.upsert_match(match_values(subject.id, candidate.id))
        await store.commit()
        return (await store.find_matches(subject.id))[0]

    @pytest.mark.asyncio
    async def test_status_update_with_notes(self, store, match):
        updated = await store.update_match_status(match.id, match.user_id, "contacted", notes="DM sent")
        assert updated.status == "contacted"
        assert updated.notes == "DM sent"

    @pytest.mark.asyncio
    async def test_status_update_without_notes_keeps_notes(self, store, match):
        await store.update_match_status(match.id, match.user_id, "contacted", notes="DM sent")
        updated = await store.update_match_status(match.id, match.user_id, "accepted")
        assert updated.notes == "DM sent"

    @pytest.mark.asyncio
    async def test_invalid_transition(self, store, match):
        with pytest.raises(InvalidStatusTransitionError):
            await store.update_match_status(match.id, match.user_id, "accepted")

    @pytest.mark.asyncio
    async def test_match_owned_by_someone_else(self, store, match):
        with pytest.raises(MatchNotFoundError):
            await store.get_match(match.id, match.matched_user_id)

    @pytest.mark.asyncio
    async def test_outreach_sent_moves_pending_to_contacted(self, store, match):
        updated = await store.mark_outreach_sent(match.id, match.user_id)
        assert updated.outreach_sent is True
        assert updated.status == "contacted"

    @pytest.mark.asyncio
    async def test_outreach_sent_keeps_later_status(self, store, match):
        await store.update_match_status(match.id, match.user_id, "archived")
        updated = await store.mark_outreach_sent(match.id, match.user_id)
        assert updated.status == "archived"

    @pytest.mark.asyncio
    async def test_filter_by_status(self, store, match):
        assert await store.find_matches(match.user_id, status="contacted") == []
        assert len(await store.find_matches(match.user_id, status="pending")) == 1

    @pytest.mark.asyncio
    async def test_stats(self, store, match):
        await store.mark_outreach_sent(match.id, match.user_id)

        stats = await store.match_stats(match.user_id)

        assert stats["total_matches"] == 1
        assert stats["matches_by_status"]["contacted"] == 1
        assert stats["matches_by_status"]["pending"] == 0
        assert stats["avg_match_score"] == 70.0
        assert stats["outreach_sent"] == 1

    @pytest.mark.asyncio
    async def test_stats_for_user_without_matches(self, store, pair):
        stats = await store.match_stats(pair[1].id)
        assert stats["total_matches"] == 0
        assert stats["avg_match_score"] == 0


class TestUsersAndAccounts:
    """Test user lookup, location and social account upsert."""

    @pytest.mark.asyncio
    async def test_require_user_missing(self, store):
        with pytest.raises(UserNotFoundError):
            await store.require_user("missing")

    @pytest.mark.asyncio
    async def test_get_user_by_email_is_case_insensitive(self, store, pair):
        user = await store.get_user_by_email("MAYA@example.com")
        assert user.id == pair[0].id

    @pytest.mark.asyncio
    async def test_update_location(self, store, pair):
        user = await store.update_location(pair[0].id, {"city": "Oakland", "search_radius": 25})
        assert user.city == "Oakland"
        assert user.search_radius == 25

    @pytest.mark.asyncio
    async def test_upsert_social_account_creates_then_updates(self, store, pair):
        subject, _ = pair
        values = {
            "platform": "tiktok",
            "platform_user_id": "open-123",
            "username": "mayaeats",
            "followers": 1000,
            "profile_data": {"recent_topics": ["food"]},
        }

        created = await store.upsert_social_account(subject.id, values)
        updated = await store.upsert_social_account(subject.id, {**values, "followers": 2500})

        assert created.id == updated.id
        assert updated.followers == 2500
        assert updated.recent_topics == ["food"]
        accounts = await store.list_social_accounts(subject.id)
        assert sorted(a.platform for a in accounts) == ["instagram", "tiktok"]

    @pytest.mark.asyncio
    async def test_find_stale_accounts(self, store, make_creator):
        now = utcnow()
        await make_creator("fresh@example.com", accounts=[
            {"platform": "youtube", "access_token": "t1", "last_synced_at": now},
        ])
        stale_user = await make_creator("stale@example.com", accounts=[
            {"platform": "youtube", "access_token": "t2", "last_synced_at": now - timedelta(days=3)},
            {"platform": "tiktok", "access_token": "t3"},
            {"platform": "instagram"},
        ])

        stale = await store.find_stale_accounts(now - timedelta(days=1))

        assert {a.user_id for a in stale} == {stale_user.id}
        assert sorted(a.platform for a in stale) == ["tiktok", "youtube"]
