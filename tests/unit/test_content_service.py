from datetime import datetime

import pytest

from app.features.proximity_graph.domain import InvalidArgument, ResourceNotFound, Visibility
from app.features.proximity_graph.pipeline.events import GroupChanged, PostWritten
from app.features.proximity_graph.services.content_service import ContentService


class FakePosts:
    def __init__(self):
        self.created = []

    async def create_post(self, item):
        self.created.append(item)
        return item

    async def update_post(self, item):
        return None


@pytest.mark.asyncio
async def test_create_post_emits_created_event():
    posts = FakePosts()
    service = ContentService(posts=posts)

    post, event = await service.create_post(
        "A",
        text="Coffee?",
        visibility=Visibility.FIRST_DEGREE,
        group_ids=[],
        tags={"coffee"},
        start_at=None,
        end_at=None,
    )

    assert isinstance(event, PostWritten)
    assert event.created is True
    assert event.post is post
    assert post.allowed_user_ids == set()


@pytest.mark.asyncio
async def test_window_must_be_ordered():
    with pytest.raises(InvalidArgument):
        await ContentService(posts=FakePosts()).create_post(
            "A",
            text="",
            visibility=Visibility.FIRST_DEGREE,
            group_ids=[],
            tags=set(),
            start_at=datetime(2026, 1, 2),
            end_at=datetime(2026, 1, 1),
        )


@pytest.mark.asyncio
async def test_updating_someone_elses_post_is_rejected():
    with pytest.raises(ResourceNotFound):
        await ContentService(posts=FakePosts()).update_post(
            "A",
            "p-of-b",
            text="",
            visibility=Visibility.FIRST_DEGREE,
            group_ids=[],
            tags=set(),
            start_at=None,
            end_at=None,
        )


@pytest.mark.asyncio
async def test_group_owner_is_dropped_from_members(group_repo):
    group, event = await ContentService(groups=group_repo).upsert_group(
        "A", "g1", name="friends", member_user_ids={"A", "B"}
    )

    assert group.member_user_ids == {"B"}
    assert event == GroupChanged(owner_id="A", group_id="g1")


@pytest.mark.asyncio
async def test_deleting_missing_group_is_rejected(group_repo):
    with pytest.raises(ResourceNotFound):
        await ContentService(groups=group_repo).delete_group("A", "nope")


@pytest.mark.asyncio
async def test_register_device_requires_token(device_repo):
    service = ContentService(devices=device_repo)

    await service.register_device("A", " tok-1 ", "ios")
    with pytest.raises(InvalidArgument):
        await service.register_device("A", "  ", "ios")

    assert device_repo.tokens["A"] == ["tok-1"]
