#!/usr/bin/env python3
"""
Test Creator Seed Script

Creates a handful of Bay Area creators with connected social accounts so the
matching pipeline has candidates during local development. Accounts carry no
OAuth tokens, so the resync job leaves them alone.

Usage:
    # Create test users (skips emails that already exist)
    python scripts/seed_test_users.py

    # Replace existing test users
    python scripts/seed_test_users.py --force
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.database import async_session, init_db
from app.models import SocialAccount, User

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# ==============================================================================
# Seed Data - Bay Area Creators
# ==============================================================================

TEST_USERS = [
    {
        "email": "maya.food@example.com",
        "name": "Maya Chen",
        "city": "San Francisco", "state": "CA", "country": "US", "zip_code": "94103",
        "latitude": 37.7749, "longitude": -122.4194,
        "accounts": [
            {"platform": "instagram", "username": "mayaeatssf", "followers": 48000, "engagement_rate": 4.2,
             "topics": ["food", "restaurants", "brunch", "recipes", "bayarea"]},
            {"platform": "tiktok", "username": "mayaeats", "followers": 120000, "engagement_rate": 7.8,
             "topics": ["food", "streetfood", "reviews", "cooking", "sanfrancisco"]},
        ],
    },
    {
        "email": "devon.fitness@example.com",
        "name": "Devon Brooks",
        "city": "Oakland", "state": "CA", "country": "US", "zip_code": "94612",
        "latitude": 37.8044, "longitude": -122.2712,
        "accounts": [
            {"platform": "youtube", "username": "devonmoves", "followers": 65000, "engagement_rate": 3.1,
             "topics": ["fitness", "running", "workouts", "nutrition", "trails"]},
        ],
    },
    {
        "email": "priya.tech@example.com",
        "name": "Priya Raman",
        "city": "San Jose", "state": "CA", "country": "US", "zip_code": "95113",
        "latitude": 37.3382, "longitude": -121.8863,
        "accounts": [
            {"platform": "youtube", "username": "priyabuilds", "followers": 210000, "engagement_rate": 2.6,
             "topics": ["tech", "gadgets", "reviews", "coding", "startups"]},
            {"platform": "instagram", "username": "priyabuilds", "followers": 35000, "engagement_rate": 3.9,
             "topics": ["tech", "desksetup", "productivity", "travel", "coffee"]},
        ],
    },
    {
        "email": "leo.art@example.com",
        "name": "Leo Martinez",
        "city": "Berkeley", "state": "CA", "country": "US", "zip_code": "94704",
        "latitude": 37.8715, "longitude": -122.2730,
        "accounts": [
            {"platform": "instagram", "username": "leopaints", "followers": 12000, "engagement_rate": 6.5,
             "topics": ["murals", "painting", "streetart", "design", "process"]},
        ],
    },
    {
        "email": "sam.travel@example.com",
        "name": "Sam Okafor",
        "city": "Palo Alto", "state": "CA", "country": "US", "zip_code": "94301",
        "latitude": 37.4419, "longitude": -122.1430,
        "accounts": [
            {"platform": "tiktok", "username": "samwanders", "followers": 88000, "engagement_rate": 5.4,
             "topics": ["travel", "hiking", "roadtrips", "camping", "california"]},
        ],
    },
]


# ==============================================================================
# Seeding
# ==============================================================================

def build_user(data: dict) -> User:
    user = User(
        email=data["email"],
        name=data["name"],
        city=data["city"],
        state=data["state"],
        country=data["country"],
        zip_code=data["zip_code"],
        latitude=data["latitude"],
        longitude=data["longitude"],
        search_radius=50,
    )
    for account in data["accounts"]:
        user.social_accounts.append(
            SocialAccount(
                platform=account["platform"],
                platform_user_id=f"seed_{account['platform']}_{account['username']}",
                username=account["username"],
                display_name=data["name"],
                followers=account["followers"],
                engagement_rate=account["engagement_rate"],
                profile_data={"recent_topics": account["topics"]},
            )
        )
    return user


async def seed(force: bool = False) -> int:
    """
    Insert the test users.

    Args:
        force: Delete and recreate users whose email already exists

    Returns:
        Number of users created
    """
    await init_db()
    emails = [u["email"] for u in TEST_USERS]
    created = 0

    async with async_session() as db:
        result = await db.execute(select(User.email).where(User.email.in_(emails)))
        existing = set(result.scalars().all())

        if existing and force:
            # Relationship cascade removes the accounts
            result = await db.execute(
                select(User).where(User.email.in_(existing)).options(selectinload(User.social_accounts))
            )
            for user in result.scalars().all():
                await db.delete(user)
            await db.flush()
            logger.info(f"Removed {len(existing)} existing test users")
            existing = set()

        for data in TEST_USERS:
            if data["email"] in existing:
                logger.info(f"Skipping {data['email']} (already exists, use --force to replace)")
                continue
            db.add(build_user(data))
            created += 1

        await db.commit()

    logger.info(f"Created {created} test users")
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed Bay Area test creators")
    parser.add_argument("--force", action="store_true", help="Replace existing test users")
    args = parser.parse_args()

    asyncio.run(seed(force=args.force))


if __name__ == "__main__":
    main()
