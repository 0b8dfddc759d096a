"""Social platform clients, looked up by platform name."""

from typing import Dict, Optional, Type

import httpx

from app.config import Settings
from app.exceptions import UnsupportedPlatformError
from app.services.platforms.base import NormalizedProfile, PlatformClient
from app.services.platforms.instagram import InstagramClient
from app.services.platforms.tiktok import TikTokClient
from app.services.platforms.youtube import YouTubeClient

PLATFORM_CLIENTS: Dict[str, Type[PlatformClient]] = {
    InstagramClient.platform: InstagramClient,
    TikTokClient.platform: TikTokClient,
    YouTubeClient.platform: YouTubeClient,
}


def get_platform_client(
    name: str,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PlatformClient:
    client_class = PLATFORM_CLIENTS.get(name.lower())
    if client_class is None:
        raise UnsupportedPlatformError(name)
    return client_class(settings=settings, transport=transport)


__all__ = [
    "PLATFORM_CLIENTS",
    "NormalizedProfile",
    "PlatformClient",
    "InstagramClient",
    "TikTokClient",
    "YouTubeClient",
    "get_platform_client",
]
