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

API_URL = "https://open.tiktokapis.com/v2"

USER_FIELDS = "open_id,union_id,avatar_url,display_name,username,follower_count,following_count,video_count,likes_count,profile_deep_link"
VIDEO_FIELDS = "id,title,video_description,create_time,like_count,comment_count,share_count,view_count"


class TikTokClient(PlatformClient):
    """TikTok Login Kit + Display API v2."""

    platform = "tiktok"
    authorize_endpoint = "https://www.tiktok.com/v2/auth/authorize/"
    token_endpoint = f"{API_URL}/oauth/token/"

    def authorize_params(self) -> Dict[str, str]:
        return {
            "client_key": self.settings.tiktok_client_key,
            "redirect_uri": self.settings.tiktok_redirect_uri,
            "scope": "user.info.basic,user.info.stats,video.list",
            "response_type": "code",
        }

    def token_request(self, code: str) -> Dict[str, str]:
        return {
            "client_key": self.settings.tiktok_client_key,
            "client_secret": self.settings.tiktok_client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.settings.tiktok_redirect_uri,
        }

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        data = await self._request(
            "GET",
            f"{API_URL}/user/info/",
            params={"fields": USER_FIELDS},
            headers=self._headers(access_token),
        )
        user = (data.get("data") or {}).get("user")
        if not user or not user.get("open_id"):
            raise PlatformAPIError("tiktok user info response missing open_id")
        return user

    async def fetch_recent_activity(self, access_token: str, profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST",
            f"{API_URL}/video/list/",
            params={"fields": VIDEO_FIELDS},
            json={"max_count": RECENT_ACTIVITY_LIMIT},
            headers=self._headers(access_token),
        )
        return (data.get("data") or {}).get("videos", [])

    def compute_engagement(self, activity: List[Dict[str, Any]], followers: int) -> float:
        return engagement_rate(
            (
                to_int(v.get("like_count")) + to_int(v.get("comment_count")) + to_int(v.get("share_count"))
                for v in activity
            ),
            followers,
        )

    def normalize(self, profile: Dict[str, Any], activity: List[Dict[str, Any]]) -> NormalizedProfile:
        followers = to_int(profile.get("follower_count"))
        username = profile.get("username")
        return NormalizedProfile(
            platform=self.platform,
            platform_user_id=str(profile["open_id"]),
            username=username,
            display_name=profile.get("display_name"),
            followers=followers,
            following=to_int(profile.get("following_count")),
            post_count=to_int(profile.get("video_count")),
            engagement_rate=self.compute_engagement(activity, followers),
            recent_topics=extract_topics(v.get("title") or v.get("video_description") for v in activity),
            profile_url=profile.get("profile_deep_link") or (f"https://tiktok.com/@{username}" if username else None),
        )
