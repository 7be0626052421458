"""
Tests for the Neo4j repository mapping, with the query executor stubbed out.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from memory_vault.core.errors import PersistenceError
from memory_vault.domain.models import Memory, MemoryCluster, MemoryType
from memory_vault.infrastructure.neo4j.queries import ClusterQueries, MemoryQueries, SchemaQueries
from memory_vault.infrastructure.repositories.neo4j import (
    Neo4jMemoryRepository,
    cluster_from_node,
    cluster_to_props,
    memory_from_node,
    memory_to_props,
)


class StubQuery:
    """Replays canned records through the repository's transformers."""

    def __init__(self, records=None, value=None):
        self.records = records or []
        self.value = value
        self.calls: list[tuple[str, dict]] = []

    async def execute_list(self, query, params=None, result_transformer=None):
        self.calls.append((query, params))
        return [result_transformer(r) for r in self.records]

    async def execute_single(self, query, params=None, result_transformer=None):
        self.calls.append((query, params))
        if not self.records:
            return None
        return result_transformer(self.records[0])

    async def execute_value(self, query, params=None):
        self.calls.append((query, params))
        return self.value


def _repository(stub: StubQuery) -> Neo4jMemoryRepository:
    repository = Neo4jMemoryRepository(MagicMock())
    repository.query = stub
    return repository


def _node(memory: Memory) -> dict:
    return {"id": str(memory.id), **memory_to_props(memory)}


class FakeDateTime:
    def __init__(self, value: datetime):
        self.value = value

    def to_native(self) -> datetime:
        return self.value


class TestMapping:
    def test_memory_props(self):
        memory = Memory(user_id="alice", content="  Hello   World ", memory_type=MemoryType.PERSONAL, cluster_id=uuid4())
        props = memory_to_props(memory)

        assert "id" not in props
        assert props["memory_type"] == "personal"
        assert props["cluster_id"] == str(memory.cluster_id)
        assert props["normalized_content"] == "hello world"

    def test_memory_from_node_converts_driver_datetimes(self):
        memory = Memory(user_id="alice", content="Hello world")
        node = _node(memory)
        node["created_at"] = FakeDateTime(datetime(2026, 1, 1, 12, 0))

        parsed = memory_from_node(node)

        assert parsed.id == memory.id
        assert parsed.created_at == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def test_schema_mismatch_is_persistence_error(self):
        with pytest.raises(PersistenceError):
            memory_from_node({"id": "not-a-uuid", "user_id": "alice", "content": "x"})

    def test_cluster_round_trip(self):
        cluster = MemoryCluster(user_id="alice", name="General Cluster", centroid_embedding=[1.0, 0.0])
        parsed = cluster_from_node({"id": str(cluster.id), **cluster_to_props(cluster)})
        assert parsed == cluster


class TestQueries:
    def test_schema_is_idempotent(self):
        statements = SchemaQueries.all()
        assert all("IF NOT EXISTS" in s for s in statements)
        assert any("(m.user_id, m.normalized_content)" in s for s in statements)

    @pytest.mark.parametrize(
        ("search", "pattern"),
        [
            (MemoryQueries.similarity_search, "MATCH (m:Memory {user_id: $user_id})"),
            (ClusterQueries.similarity_search, "MATCH (c:MemoryCluster {user_id: $user_id})"),
        ],
    )
    def test_similarity_search_scores_only_the_users_nodes(self, search, pattern):
        query, _ = search()
        # Tenant filter precedes scoring; a global top-k could miss the user's own rows
        assert query.index(pattern) < query.index("vector.similarity.cosine")
        assert "2 * vector.similarity.cosine" in query
        assert "queryNodes" not in query

    def test_decay_is_clamped_to_unit_range(self):
        query, _ = MemoryQueries.decay_all()
        assert "WHEN decayed < 0.0 THEN 0.0" in query
        assert "WHEN decayed > 1.0 THEN 1.0" in query


class TestNeo4jMemoryRepository:
    async def test_find_similar_memories(self):
        memory = Memory(user_id="alice", content="Hello world")
        stub = StubQuery(records=[{"m": _node(memory), "similarity": 1.0000001}])

        hits = await _repository(stub).find_similar_memories([1.0, 0.0], "alice", 3, 0.5)

        assert hits[0].id == memory.id
        assert hits[0].similarity == 1.0
        _, params = stub.calls[0]
        assert params == {"embedding": [1.0, 0.0], "user_id": "alice", "threshold": 0.5, "limit": 3}

    async def test_update_of_missing_memory_raises(self):
        stub = StubQuery(value=0)
        with pytest.raises(PersistenceError):
            await _repository(stub).update_memory(Memory(user_id="alice", content="Hello world"))

    async def test_insert_without_returned_row_raises(self):
        with pytest.raises(PersistenceError):
            await _repository(StubQuery()).insert_memory(Memory(user_id="alice", content="Hello world"))

    async def test_counts_and_flags(self):
        stub = StubQuery(value=2)
        repository = _repository(stub)
        at = datetime(2026, 1, 1, tzinfo=UTC)

        assert await repository.count_memories("alice") == 2
        assert await repository.delete_memory(uuid4(), "alice")
        assert await repository.record_access([uuid4()], "alice", at) == 2
        assert await repository.decay_relevance(0.95) == 2
        assert stub.calls[-1][1] == {"factor": 0.95}
