"""
Tests for first-degree edge derivation and the graph build commit.
"""

import pytest

from app.features.proximity_graph.domain import BatchCommitFailure, GraphEdge
from app.features.proximity_graph.pipeline.graph_builder import (
    GraphBuilder,
    derive_first_degree_edges,
)
from tests.fakes import FakeEdgeRepository, FakeTokenRepository


def _edge_map(edges):
    return {edge.key: edge.shared_contact_count for edge in edges}


def test_shared_token_produces_mutual_edges():
    edges = derive_first_degree_edges({"A": {"t1"}, "B": {"t1"}})

    assert set(edges) == {GraphEdge("A", "B", 1, 1), GraphEdge("B", "A", 1, 1)}


def test_shared_count_is_intersection_size():
    edges = derive_first_degree_edges(
        {"A": {"t1", "t2", "t3"}, "B": {"t2", "t3", "t4"}, "C": {"t9"}}
    )

    assert _edge_map(edges) == {("A", "B"): 2, ("B", "A"): 2}


def test_no_edges_without_overlap_or_tokens():
    edges = derive_first_degree_edges({"A": {"t1"}, "B": {"t2"}, "C": set()})

    assert edges == []


def test_no_self_edges():
    edges = derive_first_degree_edges({"A": {"t1", "t2"}, "B": {"t1"}})

    assert all(edge.owner_id != edge.peer_user_id for edge in edges)


def test_sharded_derivation_matches_single_pass():
    tokens = {f"user-{i}": {f"t{i % 4}", f"t{i % 7}"} for i in range(30)}
    expected = _edge_map(derive_first_degree_edges(tokens))

    merged = {}
    for index in range(3):
        merged.update(_edge_map(derive_first_degree_edges(tokens, shard_index=index, shard_count=3)))

    assert merged == expected


def test_invalid_shard_rejected():
    with pytest.raises(ValueError):
        derive_first_degree_edges({}, shard_index=2, shard_count=2)


@pytest.mark.asyncio
async def test_build_is_idempotent():
    tokens = FakeTokenRepository({"A": {"t1"}, "B": {"t1", "t2"}, "C": {"t2"}})
    edges = FakeEdgeRepository()
    builder = GraphBuilder(tokens, edges)

    first = await builder.build()
    snapshot = dict(edges.edges)
    second = await builder.build()

    assert edges.edges == snapshot
    assert first["edges_upserted"] == second["edges_upserted"] == 4
    assert second["edges_deleted"] == 0


@pytest.mark.asyncio
async def test_build_removes_edges_that_lost_their_overlap():
    tokens = FakeTokenRepository({"A": {"t1"}, "B": {"t9"}})
    edges = FakeEdgeRepository.mutual(("A", "B"))

    result = await GraphBuilder(tokens, edges).build()

    assert edges.edges == {}
    assert result["edges_deleted"] == 2


@pytest.mark.asyncio
async def test_failed_commit_leaves_graph_untouched():
    tokens = FakeTokenRepository({"A": {"t1"}, "C": {"t1"}})
    edges = FakeEdgeRepository.mutual(("A", "B"))
    edges.fail_commit = True

    with pytest.raises(BatchCommitFailure):
        await GraphBuilder(tokens, edges).build()

    assert set(edges.edges) == {("A", "B"), ("B", "A")}
