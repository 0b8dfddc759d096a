"""
Domain exceptions.

Precondition errors are user-recoverable: the API layer turns them into 4xx
responses and, for incomplete setup, tells the client which setup step to
send the user to. LLMUnavailableError never leaves the AI service; it only
selects the local fallback.
"""

from typing import Optional


class CreatorNetworkError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PreconditionError(CreatorNetworkError):
    """A required record or piece of setup is missing."""

    status_code = 422
    setup_step: Optional[str] = None


class UserNotFoundError(PreconditionError):
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("User not found")
        self.user_id = user_id


class MatchNotFoundError(PreconditionError):
    status_code = 404

    def __init__(self, match_id: str):
        super().__init__("Match not found")
        self.match_id = match_id


class LocationNotSetError(PreconditionError):
    setup_step = "location"

    def __init__(self):
        super().__init__(
            "User location not set. Please update your profile with your location "
            "in the Location Setup tab."
        )


class NoSocialAccountsError(PreconditionError):
    setup_step = "platforms"

    def __init__(self):
        super().__init__(
            "No social accounts connected. Please connect at least one social media "
            "account in the Connected Platforms tab."
        )


class InvalidStatusTransitionError(CreatorNetworkError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change match status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class UnsupportedPlatformError(CreatorNetworkError):
    status_code = 400

    def __init__(self, platform: str):
        super().__init__(f"Invalid platform: {platform}")
        self.platform = platform


class PlatformSessionNotFoundError(CreatorNetworkError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("Platform session not found or expired")
        self.session_id = session_id


class PlatformAPIError(CreatorNetworkError):
    """A social platform API call or token exchange failed."""

    status_code = 502


class LLMUnavailableError(CreatorNetworkError):
    """No LLM provider is configured, or the provider call failed."""

    status_code = 503
