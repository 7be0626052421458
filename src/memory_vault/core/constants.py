"""Tunable constants shared across the memory services."""

# Content bounds
MIN_CONTENT_LENGTH = 5
CANDIDATE_MIN_LENGTH = 10
MAX_CONTENT_LENGTH = 1000
MAX_SEMANTIC_TAGS = 5

# Quality gate
QUALITY_FLOOR = 0.2

# Duplicate detection. Two thresholds exist in practice: the write path uses
# 0.95, the stricter batch variant 0.98. Callers pass the one they want.
DUPLICATE_THRESHOLD_DEFAULT = 0.95
DUPLICATE_THRESHOLD_STRICT = 0.98
CONSOLIDATION_THRESHOLD_DEFAULT = 0.9
DUPLICATE_MATCH_COUNT = 3

# Clustering
CLUSTER_SIMILARITY_THRESHOLD = 0.7
CLUSTER_MATCH_COUNT = 3

# Retrieval
RETRIEVAL_LIMIT_DEFAULT = 5
RETRIEVAL_THRESHOLD_DEFAULT = 0.6
RANKING_TOLERANCE = 0.1

# Session cache
SESSION_TTL_SECONDS = 30 * 60
SESSION_SWEEP_INTERVAL_MINUTES = 5

# Embeddings
MAX_EMBEDDING_INPUT_CHARS = 8192

# Completions
COMPLETION_DEFAULT_MODEL = "claude-haiku-4-5-20251001"

# Relevance lifecycle
RELEVANCE_DECAY_FACTOR = 0.95
DECAY_INTERVAL_HOURS = 24
PRUNE_RELEVANCE_THRESHOLD = 0.3
PRUNE_IDLE_DAYS = 30
PRUNE_MAX_ACCESS_COUNT = 3
ARCHIVED_RELEVANCE = 0.1

# Summarization
SUMMARIZE_MIN_LENGTH = 200

# Background processing
BACKGROUND_QUEUE_CAPACITY = 100
BACKGROUND_BATCH_SIZE = 5
BACKGROUND_BATCH_PAUSE_SECONDS = 0.1
MAX_MEMORIES_PER_CONVERSATION = 3
EXTRACTION_BUDGET_SECONDS = 2.0
CANDIDATE_MIN_CONFIDENCE = 0.3
