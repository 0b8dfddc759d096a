from fastapi import APIRouter, Depends, Response, HTTPException, status
from app.schemas import (
    LoginRequest,
    LoginResponse,
    PlatformInitResponse,
    PlatformCallbackRequest,
    PlatformCallbackResponse,
)
from app.auth import verify_password, create_session_token, get_current_user, COOKIE_NAME
from app.api.deps import get_store, get_social_account_service, http_error
from app.exceptions import CreatorNetworkError
from app.services.platforms import get_platform_client
from app.services.social_accounts import SocialAccountService
from app.services.store import CreatorStore

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    store: CreatorStore = Depends(get_store),
):
    user = await store.get_user_by_email(request.email)
    if not user or not verify_password(request.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_session_token(user.id)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=30 * 24 * 60 * 60,  # 30 days
        samesite="lax",
    )
    return LoginResponse(success=True, message="Logged in successfully", user_id=user.id)


@router.post("/logout", response_model=LoginResponse)
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return LoginResponse(success=True, message="Logged out successfully")


@router.get("/check")
async def check_auth(user_id: str = Depends(get_current_user)):
    return {"authenticated": True, "user_id": user_id}


@router.get("/{platform}/init", response_model=PlatformInitResponse)
async def init_platform_auth(
    platform: str,
    _: str = Depends(get_current_user),
):
    try:
        client = get_platform_client(platform)
    except CreatorNetworkError as e:
        raise http_error(e)
    return PlatformInitResponse(platform=client.platform, auth_url=client.authorize_url())


@router.post("/{platform}/callback", response_model=PlatformCallbackResponse)
async def platform_callback(
    platform: str,
    request: PlatformCallbackRequest,
    accounts: SocialAccountService = Depends(get_social_account_service),
    _: str = Depends(get_current_user),
):
    try:
        session_id = await accounts.start_session(platform, request.code)
    except CreatorNetworkError as e:
        raise http_error(e)
    return PlatformCallbackResponse(platform=platform.lower(), session_id=session_id)
