"""
Repository tests with the database helpers patched out: they check which
statements are batched together and how rows map back to domain objects.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.features.proximity_graph.domain import ContactToken, GraphEdge, TokenKind, Visibility
from app.features.proximity_graph.repository import (
    ContactTokenRepository,
    EphemeralRepository,
    GraphEdgeRepository,
    AvailabilityRepository,
    PostRepository,
    SweepPlan,
)


@pytest.mark.asyncio
async def test_edge_replace_is_one_batch(monkeypatch):
    execute_batch = AsyncMock(return_value={"upserted": 2, "deleted": 2})
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.graph_edge_repository.execute_batch",
        execute_batch,
    )

    counts = await GraphEdgeRepository.replace_first_degree_edges(
        [GraphEdge("A", "B", 1, 3), GraphEdge("B", "A", 1, 3)],
        {("C", "D"), ("D", "C")},
    )

    (writes,), _ = execute_batch.await_args
    assert [w.label for w in writes] == ["upserted", "deleted"]
    assert writes[0].params == [("A", "B", 1, 3), ("B", "A", 1, 3)]
    assert writes[1].params == [("C", "D"), ("D", "C")]
    assert counts == {"upserted": 2, "deleted": 2}


@pytest.mark.asyncio
async def test_contact_tokens_deduplicated_before_upsert(monkeypatch):
    execute_batch = AsyncMock(return_value={"contact_tokens": 1})
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.contact_token_repository.execute_batch",
        execute_batch,
    )
    token = ContactToken("A", "abc", TokenKind.EMAIL)

    written = await ContactTokenRepository.upsert_tokens([token, token])

    (writes,), _ = execute_batch.await_args
    assert written == 1
    assert writes[0].params == [("A", "email", "abc")]


@pytest.mark.asyncio
async def test_tokens_grouped_by_owner(monkeypatch):
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.contact_token_repository.fetch_all",
        AsyncMock(
            return_value=[
                {"owner_user_id": "A", "token": "t1"},
                {"owner_user_id": "A", "token": "t2"},
                {"owner_user_id": "B", "token": "t1"},
            ]
        ),
    )

    assert await ContactTokenRepository.load_tokens_by_user() == {"A": {"t1", "t2"}, "B": {"t1"}}


@pytest.mark.asyncio
async def test_sweep_applies_every_collection_in_one_batch(monkeypatch):
    execute_batch = AsyncMock(return_value={})
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.ephemeral_repository.execute_batch",
        execute_batch,
    )
    now = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
    cutoff = now - timedelta(days=30)
    plan = SweepPlan(
        now=now,
        alert_cutoff=cutoff,
        presence_user_ids=["u1"],
        short_range_tokens=["tok"],
        alert_ids=[7, 8],
        availability_user_ids=["u2"],
    )

    await EphemeralRepository.apply_sweep(plan)

    execute_batch.assert_awaited_once()
    (writes,), _ = execute_batch.await_args
    assert {w.label: w.params for w in writes} == {
        "presence": [("u1", now)],
        "short_range_tokens": [("tok", now)],
        "alerts": [(7, cutoff), (8, cutoff)],
        "availability": [("u2", now)],
    }
    assert all(" < %s" in w.query for w in writes)


@pytest.mark.asyncio
async def test_post_row_mapping(monkeypatch):
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.content_repository.fetch_one",
        AsyncMock(
            return_value={
                "id": "p1",
                "author_id": "A",
                "text": "Coffee?",
                "visibility": "custom",
                "group_ids": ["g1"],
                "tags": ["coffee"],
                "start_at": None,
                "end_at": None,
                "allowed_user_ids": ["B", "C"],
            }
        ),
    )

    post = await PostRepository.get_post("p1")

    assert post.visibility is Visibility.CUSTOM
    assert post.tags == {"coffee"}
    assert post.allowed_user_ids == {"B", "C"}


@pytest.mark.asyncio
async def test_custom_availability_looked_up_by_group(monkeypatch):
    fetch_all = AsyncMock(
        return_value=[
            {
                "user_id": "A",
                "open": True,
                "audience": "custom",
                "custom_group_ids": ["g1", "g2"],
                "until": None,
                "updated_at": None,
            }
        ]
    )
    monkeypatch.setattr(
        "app.features.proximity_graph.repository.content_repository.fetch_all", fetch_all
    )

    signals = await AvailabilityRepository.availability_referencing_group("A", "g1")

    (query, params), _ = fetch_all.await_args
    assert params == ("A", "g1")
    assert "ANY(custom_group_ids)" in query
    assert signals[0].audience is Visibility.CUSTOM
    assert signals[0].custom_group_ids == ["g1", "g2"]
