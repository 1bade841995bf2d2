from datetime import datetime, timedelta

import pytest

from app.features.proximity_graph.domain import ContentItem, Visibility
from app.features.proximity_graph.pipeline.overlap_matcher import (
    OverlapMatcher,
    is_overlapping,
    windows_overlap,
)

T0 = datetime(2026, 5, 1, 18, 0)


def _post(post_id, author, start_h, end_h, tags):
    return ContentItem(
        id=post_id,
        author_id=author,
        visibility=Visibility.FIRST_DEGREE,
        start_at=T0 + timedelta(hours=start_h),
        end_at=T0 + timedelta(hours=end_h),
        tags=set(tags),
    )


class FakePostRepository:
    def __init__(self, posts):
        self.posts = posts
        self.calls = []

    async def find_window_overlaps(self, author_ids, start_at, end_at, *, exclude_id, limit):
        self.calls.append((tuple(author_ids), exclude_id, limit))
        return [
            p
            for p in self.posts
            if p.author_id in author_ids
            and p.id != exclude_id
            and p.start_at <= end_at
            and p.end_at >= start_at
        ][:limit]


def test_windows_touching_at_boundary_overlap():
    assert windows_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(hours=1), T0 + timedelta(hours=2))
    assert not windows_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(hours=2), T0 + timedelta(hours=3))


def test_same_item_is_not_an_overlap():
    post = _post("p1", "A", 0, 2, {"coffee"})
    assert not is_overlapping(post, post)


@pytest.mark.asyncio
async def test_counts_only_time_and_tag_matches():
    item = _post("new", "A", 0, 2, {"coffee", "run"})
    repo = FakePostRepository(
        [
            _post("match", "B", 1, 3, {"coffee"}),
            _post("no-tag", "B", 1, 3, {"dinner"}),
            _post("later", "C", 5, 6, {"coffee"}),
            _post("outsider", "Z", 0, 2, {"coffee"}),
        ]
    )

    count = await OverlapMatcher(repo).count_overlaps(item, {"B", "C"})

    assert count == 1
    assert repo.calls[0][1] == "new"


@pytest.mark.asyncio
async def test_no_window_or_no_tags_skips_query():
    repo = FakePostRepository([])
    matcher = OverlapMatcher(repo)

    no_window = ContentItem(id="x", author_id="A", visibility=Visibility.FIRST_DEGREE, tags={"a"})
    no_tags = _post("y", "A", 0, 1, set())

    assert await matcher.count_overlaps(no_window, {"B"}) == 0
    assert await matcher.count_overlaps(no_tags, {"B"}) == 0
    assert await matcher.count_overlaps(_post("z", "A", 0, 1, {"a"}), set()) == 0
    assert repo.calls == []
