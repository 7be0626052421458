"""Centralized Cypher for the memory vault.

Every per-user query matches on ``user_id``. Similarity search scores only the
caller's own nodes with ``vector.similarity.cosine``: a global vector index
returns a top-k across all tenants, and filtering that afterwards can drop a
user's closest match. The scan is linear in the user's node count. Neo4j
reports cosine as ``(1 + cos) / 2``, so queries convert back to raw cosine
before thresholding.
"""

from typing import Any, LiteralString


class SchemaQueries:
    """Constraints and indexes."""

    @staticmethod
    def all() -> list[LiteralString]:
        return [
            "CREATE CONSTRAINT memory_id IF NOT EXISTS FOR (m:Memory) REQUIRE m.id IS UNIQUE",
            "CREATE CONSTRAINT cluster_id IF NOT EXISTS FOR (c:MemoryCluster) REQUIRE c.id IS UNIQUE",
            "CREATE INDEX memory_user IF NOT EXISTS FOR (m:Memory) ON (m.user_id)",
            "CREATE INDEX memory_user_content IF NOT EXISTS FOR (m:Memory) ON (m.user_id, m.normalized_content)",
            "CREATE INDEX cluster_user IF NOT EXISTS FOR (c:MemoryCluster) ON (c.user_id)",
        ]


class MemoryQueries:
    """All memory-related queries in one place."""

    @staticmethod
    def upsert() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MERGE (m:Memory {id: $id})
            SET m += $props
            WITH m
            OPTIONAL MATCH (old:MemoryCluster)<-[r:BELONGS_TO]-(m)
            DELETE r
            WITH DISTINCT m
            OPTIONAL MATCH (c:MemoryCluster {id: m.cluster_id, user_id: m.user_id})
            FOREACH (_ IN CASE WHEN c IS NULL THEN [] ELSE [1] END | MERGE (m)-[:BELONGS_TO]->(c))
            RETURN m
            """
        return query, {}

    @staticmethod
    def get() -> tuple[LiteralString, dict[str, Any]]:
        return "MATCH (m:Memory {id: $id, user_id: $user_id}) RETURN m", {}

    @staticmethod
    def exists() -> tuple[LiteralString, dict[str, Any]]:
        return "MATCH (m:Memory {id: $id, user_id: $user_id}) RETURN count(m) AS found", {}

    @staticmethod
    def delete() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {id: $id, user_id: $user_id})
            WITH m, m.id AS id
            DETACH DELETE m
            RETURN count(id) AS deleted
            """
        return query, {}

    @staticmethod
    def list_for_user() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id})
            WHERE $reviewed IS NULL OR coalesce(m.reviewed, false) = $reviewed
            RETURN m
            ORDER BY m.created_at ASC
            """
        return query, {}

    @staticmethod
    def count_for_user() -> tuple[LiteralString, dict[str, Any]]:
        return "MATCH (m:Memory {user_id: $user_id}) RETURN count(m) AS total", {}

    @staticmethod
    def by_normalized_content() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id, normalized_content: $normalized})
            RETURN m
            ORDER BY m.created_at ASC
            LIMIT 1
            """
        return query, {}

    @staticmethod
    def similarity_search() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id})
            WHERE m.embedding IS NOT NULL
            WITH m, 2 * vector.similarity.cosine(m.embedding, $embedding) - 1 AS similarity
            WHERE similarity >= $threshold
            RETURN m, similarity
            ORDER BY similarity DESC
            LIMIT $limit
            """
        return query, {}

    @staticmethod
    def record_access() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id})
            WHERE m.id IN $ids
            SET m.access_count = coalesce(m.access_count, 0) + 1,
                m.last_accessed = $at
            RETURN count(m) AS updated
            """
        return query, {}

    @staticmethod
    def decay_all() -> tuple[LiteralString, dict[str, Any]]:
        # Global maintenance: the only query without a user filter
        query = """
            MATCH (m:Memory)
            WITH m, coalesce(m.relevance_score, 0.0) * $factor AS decayed
            SET m.relevance_score = CASE
                WHEN decayed < 0.0 THEN 0.0
                WHEN decayed > 1.0 THEN 1.0
                ELSE decayed
            END
            RETURN count(m) AS updated
            """
        return query, {}

    @staticmethod
    def mark_reviewed() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id})
            WHERE m.id IN $ids
            SET m.reviewed = true, m.reviewed_at = $at, m.reviewed_by = $reviewer_id
            RETURN count(m) AS updated
            """
        return query, {}


class ClusterQueries:
    """Cluster queries."""

    @staticmethod
    def upsert() -> tuple[LiteralString, dict[str, Any]]:
        return "MERGE (c:MemoryCluster {id: $id}) SET c += $props RETURN c", {}

    @staticmethod
    def get() -> tuple[LiteralString, dict[str, Any]]:
        return "MATCH (c:MemoryCluster {id: $id, user_id: $user_id}) RETURN c", {}

    @staticmethod
    def list_for_user() -> tuple[LiteralString, dict[str, Any]]:
        return "MATCH (c:MemoryCluster {user_id: $user_id}) RETURN c ORDER BY c.created_at ASC", {}

    @staticmethod
    def similarity_search() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (c:MemoryCluster {user_id: $user_id})
            WHERE c.centroid_embedding IS NOT NULL
            WITH c, 2 * vector.similarity.cosine(c.centroid_embedding, $embedding) - 1 AS similarity
            WHERE similarity >= $threshold
            RETURN c, similarity
            ORDER BY similarity DESC
            LIMIT $limit
            """
        return query, {}

    @staticmethod
    def members() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            MATCH (m:Memory {user_id: $user_id, cluster_id: $cluster_id})
            RETURN m
            ORDER BY m.created_at ASC
            """
        return query, {}
