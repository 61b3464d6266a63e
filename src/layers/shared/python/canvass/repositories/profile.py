"""Repository for user profiles."""

from canvass.models.profile import UserProfile
from canvass.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[UserProfile]):
    """Repository for signed-in users' profiles."""

    def __init__(self, table_name: str | None = None):
        """Initialize profile repository."""
        super().__init__(UserProfile, table_name)

    def get_by_user_id(self, user_id: str) -> UserProfile | None:
        """Get the profile of a user."""
        return self.get(pk=f"PROFILE#{user_id}", sk="PROFILE")
