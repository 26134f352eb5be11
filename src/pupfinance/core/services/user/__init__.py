"""User services."""

from .profile import ProfileService
from .user_sync import UserSyncEngine, generate_username, normalize_local_part

__all__ = [
    "ProfileService",
    "UserSyncEngine",
    "generate_username",
    "normalize_local_part",
]
