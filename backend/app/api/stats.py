from fastapi import APIRouter, Depends
from app.schemas import MatchStatsResponse
from app.auth import get_current_user
from app.api.deps import get_matching_service
from app.services.matching import MatchingService

router = APIRouter()


@router.get("", response_model=MatchStatsResponse)
async def get_stats(
    service: MatchingService = Depends(get_matching_service),
    user_id: str = Depends(get_current_user),
):
    stats = await service.match_stats(user_id)
    return MatchStatsResponse(**stats)
