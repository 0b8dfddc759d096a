from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.exceptions import CreatorNetworkError
from app.services.ai_service import AIService, get_ai_service
from app.services.geocoding import Geocoder
from app.services.matching import MatchingService
from app.services.social_accounts import SocialAccountService
from app.services.store import CreatorStore
from app.services.token_store import TokenStore, get_token_store


async def get_store(db: AsyncSession = Depends(get_db)) -> CreatorStore:
    return CreatorStore(db)


def get_matching_service(
    store: CreatorStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
) -> MatchingService:
    return MatchingService(store, ai)


def get_social_account_service(
    store: CreatorStore = Depends(get_store),
    tokens: TokenStore = Depends(get_token_store),
) -> SocialAccountService:
    return SocialAccountService(store, tokens)


def get_geocoder() -> Geocoder:
    return Geocoder()


def http_error(error: CreatorNetworkError) -> HTTPException:
    """Translate a domain error into an HTTPException."""
    detail = {"error": error.message}
    setup_step = getattr(error, "setup_step", None)
    if setup_step:
        detail["setup_step"] = setup_step
    return HTTPException(status_code=error.status_code, detail=detail)
