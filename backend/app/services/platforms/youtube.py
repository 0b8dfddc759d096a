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

API_URL = "https://www.googleapis.com/youtube/v3"


class YouTubeClient(PlatformClient):
    """YouTube Data API v3 (channel owner via OAuth)."""

    platform = "youtube"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"

    def authorize_params(self) -> Dict[str, str]:
        return {
            "client_id": self.settings.youtube_client_id,
            "redirect_uri": self.settings.youtube_redirect_uri,
            "response_type": "code",
            "scope": "https://www.googleapis.com/auth/youtube.readonly",
            "access_type": "offline",
        }

    def token_request(self, code: str) -> Dict[str, str]:
        return {
            "client_id": self.settings.youtube_client_id,
            "client_secret": self.settings.youtube_client_secret,
            "redirect_uri": self.settings.youtube_redirect_uri,
            "grant_type": "authorization_code",
            "code": code,
        }

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        data = await self._request(
            "GET",
            f"{API_URL}/channels",
            params={"part": "snippet,statistics", "mine": "true"},
            headers=self._headers(access_token),
        )
        items = data.get("items") or []
        if not items:
            raise PlatformAPIError("No YouTube channel found for this account")
        return items[0]

    async def fetch_recent_activity(self, access_token: str, profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        search = await self._request(
            "GET",
            f"{API_URL}/search",
            params={
                "part": "id",
                "channelId": profile["id"],
                "order": "date",
                "type": "video",
                "maxResults": RECENT_ACTIVITY_LIMIT,
            },
            headers=self._headers(access_token),
        )
        video_ids = [
            item["id"]["videoId"]
            for item in search.get("items", [])
            if isinstance(item.get("id"), dict) and item["id"].get("videoId")
        ]
        if not video_ids:
            return []

        videos = await self._request(
            "GET",
            f"{API_URL}/videos",
            params={"part": "snippet,statistics", "id": ",".join(video_ids)},
            headers=self._headers(access_token),
        )
        return videos.get("items", [])

    def compute_engagement(self, activity: List[Dict[str, Any]], followers: int) -> float:
        interactions = []
        for video in activity:
            stats = video.get("statistics", {})
            interactions.append(to_int(stats.get("likeCount")) + to_int(stats.get("commentCount")))
        return engagement_rate(interactions, followers)

    def normalize(self, profile: Dict[str, Any], activity: List[Dict[str, Any]]) -> NormalizedProfile:
        snippet = profile.get("snippet", {})
        stats = profile.get("statistics", {})
        followers = to_int(stats.get("subscriberCount"))
        custom_url = snippet.get("customUrl")

        return NormalizedProfile(
            platform=self.platform,
            platform_user_id=str(profile["id"]),
            username=custom_url or snippet.get("title"),
            display_name=snippet.get("title"),
            followers=followers,
            following=0,
            post_count=to_int(stats.get("videoCount")),
            engagement_rate=self.compute_engagement(activity, followers),
            recent_topics=extract_topics(v.get("snippet", {}).get("title") for v in activity),
            profile_url=f"https://youtube.com/channel/{profile['id']}",
        )
