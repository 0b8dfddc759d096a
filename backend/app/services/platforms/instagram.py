import logging
from typing import Any, Dict, List

from app.exceptions import PlatformAPIError
from app.services.platforms.base import (
    RECENT_ACTIVITY_LIMIT,
    NormalizedProfile,
    PlatformClient,
    engagement_rate,
    extract_topics,
    to_int,
)

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.instagram.com"


class InstagramClient(PlatformClient):
    """Instagram Basic Display / Graph API."""

    platform = "instagram"
    authorize_endpoint = "https://api.instagram.com/oauth/authorize"
    token_endpoint = "https://api.instagram.com/oauth/access_token"

    def authorize_params(self) -> Dict[str, str]:
        return {
            "client_id": self.settings.instagram_client_id,
            "redirect_uri": self.settings.instagram_redirect_uri,
            "scope": "user_profile,user_media",
            "response_type": "code",
        }

    def token_request(self, code: str) -> Dict[str, str]:
        return {
            "client_id": self.settings.instagram_client_id,
            "client_secret": self.settings.instagram_client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": self.settings.instagram_redirect_uri,
            "code": code,
        }

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        profile = await self._request(
            "GET",
            f"{GRAPH_URL}/me",
            params={"fields": "id,username,account_type,media_count", "access_token": access_token},
        )
        if not profile.get("id"):
            raise PlatformAPIError("instagram profile response missing id")

        # Follower counts need a business/creator account; personal accounts report zero
        try:
            counts = await self._request(
                "GET",
                f"{GRAPH_URL}/{profile['id']}",
                params={"fields": "followers_count,follows_count", "access_token": access_token},
            )
        except PlatformAPIError:
            logger.info(f"No follower counts for instagram user {profile['id']}")
            counts = {}

        profile["followers_count"] = to_int(counts.get("followers_count"))
        profile["follows_count"] = to_int(counts.get("follows_count"))
        return profile

    async def fetch_recent_activity(self, access_token: str, profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"{GRAPH_URL}/{profile['id']}/media",
            params={
                "fields": "id,caption,media_type,timestamp,like_count,comments_count",
                "limit": RECENT_ACTIVITY_LIMIT,
                "access_token": access_token,
            },
        )
        return data.get("data", [])[:RECENT_ACTIVITY_LIMIT]

    def compute_engagement(self, activity: List[Dict[str, Any]], followers: int) -> float:
        return engagement_rate(
            (to_int(m.get("like_count")) + to_int(m.get("comments_count")) for m in activity),
            followers,
        )

    def normalize(self, profile: Dict[str, Any], activity: List[Dict[str, Any]]) -> NormalizedProfile:
        followers = to_int(profile.get("followers_count"))
        username = profile.get("username")
        return NormalizedProfile(
            platform=self.platform,
            platform_user_id=str(profile["id"]),
            username=username,
            display_name=username,
            followers=followers,
            following=to_int(profile.get("follows_count")),
            post_count=to_int(profile.get("media_count")),
            engagement_rate=self.compute_engagement(activity, followers),
            recent_topics=extract_topics(m.get("caption") for m in activity),
            profile_url=f"https://instagram.com/{username}" if username else None,
        )
