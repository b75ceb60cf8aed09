from datetime import datetime
from pydantic import field_validator

from reelstory.schemas.common import CamelModel


class DramaCreate(CamelModel):
    title: str
    description: str | None = None
    image_url: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class DramaResponse(CamelModel):
    id: str
    title: str
    description: str
    image_url: str
    created_at: datetime
