from pydantic import Field

from reelstory.schemas.common import CamelModel


class AdminStatusResponse(CamelModel):
    is_admin: bool


class AdminGrantResponse(CamelModel):
    success: bool
    message: str
    is_admin: bool


class SyncRequest(CamelModel):
    drama_id: str | None = None
    # file-name prefix -> drama id; the longest matching prefix wins
    drama_map: dict[str, str] = Field(default_factory=dict)


class SyncAdded(CamelModel):
    id: str
    title: str
    file_name: str


class SyncFileError(CamelModel):
    file_name: str
    error: str


class SyncResults(CamelModel):
    added: list[SyncAdded] = []
    existing: list[str] = []
    errors: list[SyncFileError] = []


class SyncResponse(CamelModel):
    success: bool
    message: str
    results: SyncResults
