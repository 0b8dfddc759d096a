from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from app.schemas import (
    GenerateMatchesRequest,
    GenerateMatchesResponse,
    MatchResponse,
    MatchStatusUpdate,
    OutreachResponse,
)
from app.auth import get_current_user
from app.api.deps import get_matching_service, http_error
from app.exceptions import CreatorNetworkError
from app.models import MATCH_STATUSES
from app.services.matching import MatchingService, MatchOptions

router = APIRouter()


@router.get("", response_model=list[MatchResponse])
async def list_matches(
    status: Optional[str] = Query(None),
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    if status and status not in MATCH_STATUSES:
        raise HTTPException(status_code=400, detail={"error": f"Invalid status: {status}"})

    matches = await service.get_saved_matches(user_id, status)
    return [MatchResponse.model_validate(m) for m in matches]


@router.post("/generate", response_model=GenerateMatchesResponse)
async def generate_matches(
    request: Optional[GenerateMatchesRequest] = None,
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    request = request or GenerateMatchesRequest()
    options = MatchOptions(**request.model_dump())

    try:
        result = await service.generate_matches(user_id, options)
    except CreatorNetworkError as e:
        raise http_error(e)

    return GenerateMatchesResponse(
        message=result.message,
        matches=[MatchResponse.model_validate(m) for m in result.matches],
        candidates_considered=result.candidates_considered,
        skipped=result.skipped,
    )


@router.put("/{match_id}/status", response_model=MatchResponse)
async def update_match_status(
    match_id: str,
    update: MatchStatusUpdate,
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    try:
        match = await service.update_match_status(match_id, user_id, update.status, update.notes)
    except CreatorNetworkError as e:
        raise http_error(e)
    return MatchResponse.model_validate(match)


@router.post("/{match_id}/outreach", response_model=OutreachResponse)
async def generate_outreach(
    match_id: str,
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    try:
        message = await service.generate_outreach(match_id, user_id)
    except CreatorNetworkError as e:
        raise http_error(e)
    return OutreachResponse(match_id=match_id, message=message)


@router.post("/{match_id}/outreach/sent", response_model=MatchResponse)
async def mark_outreach_sent(
    match_id: str,
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    try:
        match = await service.mark_outreach_sent(match_id, user_id)
    except CreatorNetworkError as e:
        raise http_error(e)
    return MatchResponse.model_validate(match)
