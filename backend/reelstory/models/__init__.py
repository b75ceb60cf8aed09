from reelstory.models.user import User, AdminBootstrap
from reelstory.models.drama import Drama, Episode
from reelstory.models.favorite import Favorite

__all__ = [
    "User",
    "AdminBootstrap",
    "Drama",
    "Episode",
    "Favorite",
]
