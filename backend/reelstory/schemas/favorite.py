from reelstory.schemas.common import CamelModel
from reelstory.schemas.episode import EpisodeListItem


class FavoriteToggleRequest(CamelModel):
    episode_id: str


class FavoriteToggleResponse(CamelModel):
    message: str
    is_favorite: bool


class FavoriteEpisodeResponse(EpisodeListItem):
    is_favorite: bool = True
