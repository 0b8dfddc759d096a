import logging
from fastapi import APIRouter, Depends, HTTPException
from app.schemas import LocationUpdate, UserResponse, SocialAccountResponse
from app.auth import get_current_user
from app.api.deps import get_store, get_social_account_service, get_geocoder, http_error
from app.exceptions import CreatorNetworkError
from app.services.geocoding import Geocoder
from app.services.social_accounts import SocialAccountService
from app.services.store import CreatorStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user/profile", response_model=UserResponse)
async def get_profile(
    store: CreatorStore = Depends(get_store),
    user_id: str = Depends(get_current_user),
):
    try:
        user = await store.require_user(user_id)
    except CreatorNetworkError as e:
        raise http_error(e)
    return UserResponse.model_validate(user)


@router.put("/user/location", response_model=UserResponse)
async def update_location(
    update: LocationUpdate,
    store: CreatorStore = Depends(get_store),
    geocoder: Geocoder = Depends(get_geocoder),
    user_id: str = Depends(get_current_user),
):
    fields = update.model_dump(exclude_unset=True)

    has_lat = fields.get("latitude") is not None
    has_lon = fields.get("longitude") is not None
    if has_lat != has_lon:
        raise HTTPException(
            status_code=422,
            detail={"error": "Latitude and longitude must be provided together"},
        )

    if not has_lat and fields.get("city"):
        coords = await geocoder.geocode(
            fields["city"],
            state=fields.get("state"),
            country=fields.get("country"),
            zip_code=fields.get("zip_code"),
        )
        if coords:
            fields["latitude"], fields["longitude"] = coords
        else:
            # Old coordinates no longer describe the new city
            fields["latitude"] = fields["longitude"] = None
            logger.info(f"Saving location for user {user_id} without coordinates")

    try:
        user = await store.update_location(user_id, fields)
    except CreatorNetworkError as e:
        raise http_error(e)
    return UserResponse.model_validate(user)


@router.get("/user/social-accounts", response_model=list[SocialAccountResponse])
async def list_social_accounts(
    store: CreatorStore = Depends(get_store),
    user_id: str = Depends(get_current_user),
):
    accounts = await store.list_social_accounts(user_id)
    return [SocialAccountResponse.model_validate(a) for a in accounts]


@router.get("/creator/{session_id}", response_model=SocialAccountResponse)
async def connect_creator_profile(
    session_id: str,
    accounts: SocialAccountService = Depends(get_social_account_service),
    user_id: str = Depends(get_current_user),
):
    try:
        account = await accounts.connect(user_id, session_id)
    except CreatorNetworkError as e:
        raise http_error(e)
    return SocialAccountResponse.model_validate(account)
