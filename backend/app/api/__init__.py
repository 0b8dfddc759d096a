from fastapi import APIRouter
from app.api import auth, matches, stats, users

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/api", tags=["users"])
api_router.include_router(matches.router, prefix="/api/matches", tags=["matches"])
api_router.include_router(stats.router, prefix="/api/stats", tags=["stats"])
