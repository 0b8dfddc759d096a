import logging
from typing import Optional, Tuple

import httpx

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Geocoder:
    """Nominatim lookup for locations submitted without coordinates."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self.transport = transport

    async def geocode(
        self,
        city: str,
        state: Optional[str] = None,
        country: Optional[str] = None,
        zip_code: Optional[str] = None,
    ) -> Optional[Tuple[float, float]]:
        """
        Resolve a place to (latitude, longitude).

        Returns None when nothing matches or the service is unreachable;
        the caller stores the location without coordinates.
        """
        query = ", ".join(part for part in (city, state, zip_code, country) if part)
        params = {"q": query, "format": "json", "limit": 1}
        headers = {"User-Agent": self.settings.geocoding_user_agent}

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.get(self.settings.geocoding_url, params=params, headers=headers)
                response.raise_for_status()
                results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geocoding failed for '{query}': {e}")
            return None

        if not results:
            logger.info(f"No geocoding result for '{query}'")
            return None

        try:
            return float(results[0]["lat"]), float(results[0]["lon"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected geocoding payload for '{query}': {e}")
            return None
