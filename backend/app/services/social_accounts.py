import logging
from datetime import timedelta
from typing import Callable

from app.exceptions import CreatorNetworkError, PlatformSessionNotFoundError
from app.models import SocialAccount
from app.services.platforms import PlatformClient, get_platform_client
from app.services.store import CreatorStore, utcnow
from app.services.token_store import PlatformToken, TokenStore, new_session_id

logger = logging.getLogger(__name__)


class SocialAccountService:
    """Connects platform sessions to users and keeps account stats fresh."""

    def __init__(
        self,
        store: CreatorStore,
        tokens: TokenStore,
        client_factory: Callable[[str], PlatformClient] = get_platform_client,
    ):
        self.store = store
        self.tokens = tokens
        self.client_factory = client_factory

    async def start_session(self, platform: str, code: str) -> str:
        """Exchange an OAuth code and park the token under a new session id."""
        client = self.client_factory(platform)
        token = await client.exchange_code(code)
        session_id = new_session_id(client.platform)
        await self.tokens.put(session_id, token)
        logger.info(f"Stored {client.platform} token for session {session_id}")
        return session_id

    async def connect(self, user_id: str, session_id: str) -> SocialAccount:
        """
        Fetch the creator profile for a stored platform session and attach it
        to the user.

        Raises:
            PlatformSessionNotFoundError: unknown or expired session id
            UnsupportedPlatformError: session id prefix is not a known platform
            PlatformAPIError: the platform profile request failed
        """
        token = await self.tokens.get(session_id)
        if token is None:
            raise PlatformSessionNotFoundError(session_id)

        await self.store.require_user(user_id)
        client = self.client_factory(token.platform)
        profile = await client.fetch_normalized(token.access_token)

        values = profile.to_account_values()
        values.update(self._token_values(token))
        values["last_synced_at"] = utcnow()

        account = await self.store.upsert_social_account(user_id, values)
        logger.info(
            f"Connected {profile.platform} account {profile.username or profile.platform_user_id} "
            f"to user {user_id} ({profile.followers} followers)"
        )
        return account

    async def resync_stale_accounts(self, max_age: timedelta) -> int:
        """
        Re-fetch accounts not synced within max_age.

        Failures are logged and skipped so one revoked token doesn't stop the
        batch. Returns the number of accounts refreshed.
        """
        stale = await self.store.find_stale_accounts(utcnow() - max_age)
        if not stale:
            return 0

        logger.info(f"Resyncing {len(stale)} social accounts")
        refreshed = 0
        for account in stale:
            try:
                client = self.client_factory(account.platform)
                profile = await client.fetch_normalized(account.access_token)
            except CreatorNetworkError as e:
                logger.warning(f"Resync failed for {account.platform} account {account.id}: {e}")
                continue

            values = profile.to_account_values()
            values["last_synced_at"] = utcnow()
            await self.store.upsert_social_account(account.user_id, values)
            refreshed += 1

        logger.info(f"Resynced {refreshed}/{len(stale)} social accounts")
        return refreshed

    @staticmethod
    def _token_values(token: PlatformToken) -> dict:
        values = {"access_token": token.access_token, "refresh_token": token.refresh_token}
        if token.expires_in:
            values["token_expires_at"] = utcnow() + timedelta(seconds=int(token.expires_in))
        return values

