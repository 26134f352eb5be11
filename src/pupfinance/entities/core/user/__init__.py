"""User entity module.

This module contains all User-related classes organized by responsibility:
- User: Domain entity
- UserTable: Database persistence model
- UserRepository: Data access layer
- UserSyncProfile / ProfileUpdate: payloads that create or change a user
"""

from .entity import (
    ProfileUpdate,
    SyncResult,
    User,
    UserProfileResponse,
    UserSyncProfile,
)
from .repository import UserRepository
from .table import UserTable

__all__ = [
    "ProfileUpdate",
    "SyncResult",
    "User",
    "UserProfileResponse",
    "UserRepository",
    "UserSyncProfile",
    "UserTable",
]
