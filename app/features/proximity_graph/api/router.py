"""
Proximity graph routes.

Content writes respond as soon as the row is stored; audience recompute and
notification fan-out run afterwards as background tasks.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.auth.verify import get_caller_id
from app.features.proximity_graph.api.schemas import (
    AudienceGroupRequest,
    AudienceGroupResponse,
    AvailabilityRequest,
    AvailabilityResponse,
    ContactExportRequest,
    ContactExportResponse,
    DeviceTokenRequest,
    PostRequest,
    PostResponse,
    ShortRangeResolveRequest,
)
from app.features.proximity_graph.domain import Availability, ContentItem
from app.features.proximity_graph.pipeline.content_pipeline import content_events
from app.features.proximity_graph.services import (
    contact_import_service,
    content_service,
    short_range_service,
)

router = APIRouter(prefix="/putrace", tags=["proximity-graph"])


def _post_response(post: ContentItem) -> PostResponse:
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        visibility=post.visibility,
        group_ids=list(post.group_ids),
        tags=sorted(post.tags),
        start_at=post.start_at,
        end_at=post.end_at,
        text=post.text,
    )


def _availability_response(availability: Availability) -> AvailabilityResponse:
    return AvailabilityResponse(
        user_id=availability.user_id,
        open=availability.open,
        audience=availability.audience,
        custom_group_ids=list(availability.custom_group_ids),
        until=availability.until,
        updated_at=availability.updated_at,
    )


@router.post("/short-range/resolve")
async def resolve_short_range_token(
    request: ShortRangeResolveRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict:
    """`{allowed: false}` unless the token owner is within two hops of the caller."""
    resolution = await short_range_service.resolve(caller_id, request.token)
    return resolution.to_dict()


@router.post("/contact-exports", response_model=ContactExportResponse)
async def submit_contact_export(
    request: ContactExportRequest,
    caller_id: str = Depends(get_caller_id),
):
    return await contact_import_service.submit_contact_export(
        caller_id, request.file_path, request.bucket_name
    )


@router.post("/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: PostRequest,
    background_tasks: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
):
    post, event = await content_service.create_post(
        caller_id,
        text=request.text,
        visibility=request.visibility,
        group_ids=request.group_ids,
        tags=set(request.tags),
        start_at=request.start_at,
        end_at=request.end_at,
    )
    background_tasks.add_task(content_events.publish, event)
    return _post_response(post)


@router.put("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    request: PostRequest,
    background_tasks: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
):
    post, event = await content_service.update_post(
        caller_id,
        post_id,
        text=request.text,
        visibility=request.visibility,
        group_ids=request.group_ids,
        tags=set(request.tags),
        start_at=request.start_at,
        end_at=request.end_at,
    )
    background_tasks.add_task(content_events.publish, event)
    return _post_response(post)


@router.put("/availability", response_model=AvailabilityResponse)
async def set_availability(
    request: AvailabilityRequest,
    background_tasks: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
):
    availability, event = await content_service.set_availability(
        caller_id,
        open=request.open,
        audience=request.audience,
        custom_group_ids=request.custom_group_ids,
        until=request.until,
    )
    background_tasks.add_task(content_events.publish, event)
    return _availability_response(availability)


@router.put("/groups/{group_id}", response_model=AudienceGroupResponse)
async def upsert_group(
    group_id: str,
    request: AudienceGroupRequest,
    background_tasks: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
):
    group, event = await content_service.upsert_group(
        caller_id, group_id, name=request.name, member_user_ids=set(request.member_user_ids)
    )
    background_tasks.add_task(content_events.publish, event)
    return AudienceGroupResponse(
        group_id=group.group_id,
        name=group.name,
        member_user_ids=sorted(group.member_user_ids),
    )


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: str,
    background_tasks: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
):
    event = await content_service.delete_group(caller_id, group_id)
    background_tasks.add_task(content_events.publish, event)


@router.post("/devices", status_code=status.HTTP_204_NO_CONTENT)
async def register_device(
    request: DeviceTokenRequest,
    caller_id: str = Depends(get_caller_id),
):
    await content_service.register_device(caller_id, request.token, request.platform)
