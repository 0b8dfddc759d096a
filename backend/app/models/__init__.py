from app.models.user import User
from app.models.social_account import SocialAccount, PLATFORMS
from app.models.match import CollaboratorMatch, MATCH_STATUSES, REGENERATED_FIELDS

__all__ = [
    "User",
    "SocialAccount",
    "PLATFORMS",
    "CollaboratorMatch",
    "MATCH_STATUSES",
    "REGENERATED_FIELDS",
]
