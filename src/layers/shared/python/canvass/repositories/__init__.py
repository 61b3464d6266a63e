"""DynamoDB repositories."""

from canvass.repositories.base import BaseRepository
from canvass.repositories.category import CategoryRepository
from canvass.repositories.member import MemberRepository, MemberSearchRepository
from canvass.repositories.profile import ProfileRepository
from canvass.repositories.status_history import StatusHistoryRepository

__all__ = [
    "BaseRepository",
    "CategoryRepository",
    "MemberRepository",
    "MemberSearchRepository",
    "ProfileRepository",
    "StatusHistoryRepository",
]
