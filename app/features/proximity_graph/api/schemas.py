"""
Request and response models for the proximity graph API.
Field aliases match the camelCase payloads the mobile client sends.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.features.proximity_graph.domain import Visibility


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ShortRangeResolveRequest(CamelModel):
    token: str | None = Field(default=None, description="Short-range token observed nearby")


class ContactExportRequest(CamelModel):
    file_path: str | None = Field(default=None, alias="filePath")
    bucket_name: str | None = Field(default=None, alias="bucketName")


class ContactExportResponse(BaseModel):
    tokens_written: int


class PostRequest(CamelModel):
    text: str = Field(default="", max_length=2000)
    visibility: Visibility = Visibility.FIRST_DEGREE
    group_ids: list[str] = Field(default_factory=list, alias="groupIds")
    tags: list[str] = Field(default_factory=list, max_length=50)
    start_at: datetime | None = Field(default=None, alias="startAt")
    end_at: datetime | None = Field(default=None, alias="endAt")


class PostResponse(BaseModel):
    id: str
    author_id: str
    visibility: Visibility
    group_ids: list[str]
    tags: list[str]
    start_at: datetime | None
    end_at: datetime | None
    text: str


class AvailabilityRequest(CamelModel):
    open: bool
    audience: Visibility = Visibility.FIRST_DEGREE
    custom_group_ids: list[str] = Field(default_factory=list, alias="customGroupIds")
    until: datetime | None = None


class AvailabilityResponse(BaseModel):
    user_id: str
    open: bool
    audience: Visibility
    custom_group_ids: list[str]
    until: datetime | None
    updated_at: datetime | None


class AudienceGroupRequest(CamelModel):
    name: str | None = Field(default=None, max_length=100)
    member_user_ids: list[str] = Field(default_factory=list, alias="memberUserIds")


class AudienceGroupResponse(BaseModel):
    group_id: str
    name: str | None
    member_user_ids: list[str]


class DeviceTokenRequest(CamelModel):
    token: str = Field(..., min_length=1)
    platform: str | None = Field(default=None, max_length=20)
