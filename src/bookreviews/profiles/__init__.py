"""Reader profiles: display names and per-user activity."""

from .models import Profile
from .manager import ProfileManager
from .schemas import ProfileActivity, ProfileUpdate

__all__ = [
    "Profile",
    "ProfileManager",
    "ProfileActivity",
    "ProfileUpdate",
]
