import logging
import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode

import httpx

from app.config import Settings, get_settings
from app.exceptions import PlatformAPIError
from app.services.token_store import PlatformToken

logger = logging.getLogger(__name__)

MAX_TOPICS = 5
RECENT_ACTIVITY_LIMIT = 20

_TOPIC_WORD = re.compile(r"\b\w{4,}\b")


@dataclass
class NormalizedProfile:
    """Platform-independent creator profile."""
    platform: str
    platform_user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    followers: int = 0
    following: int = 0
    post_count: int = 0
    engagement_rate: float = 0.0
    recent_topics: List[str] = field(default_factory=list)
    profile_url: Optional[str] = None

    def to_account_values(self) -> Dict[str, Any]:
        """Column values for SocialAccount."""
        return {
            "platform": self.platform,
            "platform_user_id": self.platform_user_id,
            "username": self.username,
            "display_name": self.display_name,
            "followers": self.followers,
            "following": self.following,
            "post_count": self.post_count,
            "engagement_rate": self.engagement_rate,
            "profile_url": self.profile_url,
            "profile_data": {"recent_topics": self.recent_topics[:MAX_TOPICS]},
        }


def engagement_rate(interactions: Iterable[int], followers: int) -> float:
    """Mean interactions per post as a percentage of followers (2 decimals)."""
    counts = list(interactions)
    if not counts or not followers:
        return 0.0
    return round(sum(counts) / len(counts) / followers * 100, 2)


def extract_topics(texts: Iterable[Optional[str]], limit: int = MAX_TOPICS) -> List[str]:
    """Most frequent words of 4+ characters across captions/titles."""
    words = _TOPIC_WORD.findall(" ".join(t or "" for t in texts).lower())
    return [word for word, _ in Counter(words).most_common(limit)]


def to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class PlatformClient(ABC):
    """
    Base class for social platform integrations.

    Subclasses provide the OAuth endpoints, profile/activity fetches and the
    platform's engagement formula; registration in app.services.platforms
    makes them available by platform name.
    """

    platform: str = "unknown"
    authorize_endpoint: str = ""
    token_endpoint: str = ""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=30.0, transport=self.transport)

    # ==================== OAuth ====================

    @abstractmethod
    def authorize_params(self) -> Dict[str, str]:
        """Query parameters for the authorization URL."""

    @abstractmethod
    def token_request(self, code: str) -> Dict[str, str]:
        """Form body for the authorization-code exchange."""

    def authorize_url(self, state: Optional[str] = None) -> str:
        params = self.authorize_params()
        if state:
            params["state"] = state
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> PlatformToken:
        """Exchange an authorization code for an access token."""
        data = await self._request("POST", self.token_endpoint, data=self.token_request(code))
        payload = data.get("data", data) if isinstance(data.get("data"), dict) else data

        access_token = payload.get("access_token")
        if not access_token:
            raise PlatformAPIError(f"{self.platform} token exchange returned no access token")

        return PlatformToken(
            platform=self.platform,
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
        )

    # ==================== Profile ====================

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        """Raw profile/channel payload."""

    @abstractmethod
    async def fetch_recent_activity(self, access_token: str, profile: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Up to RECENT_ACTIVITY_LIMIT recent posts/videos."""

    @abstractmethod
    def compute_engagement(self, activity: List[Dict[str, Any]], followers: int) -> float:
        """Engagement rate in percent."""

    @abstractmethod
    def normalize(self, profile: Dict[str, Any], activity: List[Dict[str, Any]]) -> NormalizedProfile:
        """Map raw payloads to a NormalizedProfile."""

    async def fetch_normalized(self, access_token: str) -> NormalizedProfile:
        """
        Fetch and normalize a creator profile.

        A failing activity fetch degrades to zero engagement and no topics;
        a failing profile fetch raises PlatformAPIError.
        """
        profile = await self.fetch_profile(access_token)
        try:
            activity = await self.fetch_recent_activity(access_token, profile)
        except PlatformAPIError as e:
            logger.warning(f"{self.platform} recent activity unavailable: {e}")
            activity = []
        return self.normalize(profile, activity)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error(f"{self.platform} API error ({method} {url}): {e}")
            raise PlatformAPIError(f"{self.platform} API request failed") from e
        except ValueError as e:
            raise PlatformAPIError(f"{self.platform} API returned invalid JSON") from e
