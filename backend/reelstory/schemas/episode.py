from datetime import datetime
from pydantic import Field, field_validator

from reelstory.schemas.common import CamelModel


class DramaSummary(CamelModel):
    title: str


class DramaDetail(CamelModel):
    title: str
    description: str


class EpisodeCreate(CamelModel):
    title: str
    description: str = ""
    video_url: str
    thumbnail_url: str
    duration: int = Field(default=0, ge=0)
    is_premium: bool = False
    drama_id: str

    @field_validator("title", "video_url", "thumbnail_url", "drama_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v


class EpisodeResponse(CamelModel):
    id: str
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration: int
    is_premium: bool
    drama_id: str
    created_at: datetime


class EpisodeListItem(EpisodeResponse):
    drama: DramaSummary | None = None


class EpisodeDetailResponse(EpisodeResponse):
    drama: DramaDetail | None = None
