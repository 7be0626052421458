"""Configuration management."""

from enum import Enum

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from memory_vault.core import constants


class CentroidStrategy(str, Enum):
    """How a cluster centroid evolves as memories join it."""

    STATIC = "static"  # founding memory's embedding, never recomputed
    RUNNING_MEAN = "running_mean"


class MemoryConfig(BaseModel):
    """Thresholds and policies of the memory write and read paths."""

    quality_floor: float = Field(default=constants.QUALITY_FLOOR, ge=0.0, le=1.0)
    duplicate_threshold: float = Field(
        default=constants.DUPLICATE_THRESHOLD_DEFAULT,
        ge=0.0,
        le=1.0,
        description="Cosine similarity at which a new memory counts as a near-duplicate",
    )
    cluster_similarity_threshold: float = Field(default=constants.CLUSTER_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)
    cluster_match_count: int = Field(default=constants.CLUSTER_MATCH_COUNT, ge=1)
    centroid_strategy: CentroidStrategy = CentroidStrategy.STATIC
    retrieval_limit: int = Field(default=constants.RETRIEVAL_LIMIT_DEFAULT, ge=1)
    retrieval_threshold: float = Field(default=constants.RETRIEVAL_THRESHOLD_DEFAULT, ge=0.0, le=1.0)
    session_ttl_seconds: float = Field(default=constants.SESSION_TTL_SECONDS, gt=0)
    allowed_sources: list[str] = Field(
        default_factory=lambda: ["user"],
        description="Content sources the application layer may save from ('user', 'ai', 'system')",
    )


class MaintenanceConfig(BaseModel):
    """Background queue and periodic maintenance settings."""

    decay_factor: float = Field(default=constants.RELEVANCE_DECAY_FACTOR, gt=0.0, le=1.0)
    decay_interval_hours: float = Field(default=constants.DECAY_INTERVAL_HOURS, gt=0)
    session_sweep_interval_minutes: float = Field(default=constants.SESSION_SWEEP_INTERVAL_MINUTES, gt=0)
    queue_capacity: int = Field(default=constants.BACKGROUND_QUEUE_CAPACITY, ge=1)
    batch_size: int = Field(default=constants.BACKGROUND_BATCH_SIZE, ge=1)
    batch_pause_seconds: float = Field(default=constants.BACKGROUND_BATCH_PAUSE_SECONDS, ge=0)
    enable_scheduler: bool = True


class VoyageConfig(BaseModel):
    api_key: SecretStr = SecretStr("")
    model: str = "voyage-3"
    max_input_chars: int = constants.MAX_EMBEDDING_INPUT_CHARS


class AnthropicConfig(BaseModel):
    api_key: SecretStr = SecretStr("")
    model: str = constants.COMPLETION_DEFAULT_MODEL
    max_tokens: int = 150
    temperature: float = 0.3


class Neo4jConfig(BaseModel):
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: SecretStr = SecretStr("password")


class Settings(BaseSettings):
    # App config
    debug: bool = False
    service_name: str = "memory-vault"

    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)
    voyage: VoyageConfig = Field(default_factory=VoyageConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MEMORY_VAULT_",
        extra="ignore",  # Ignore extra fields in .env file
        env_nested_delimiter="__",  # Allows MEMORY_VAULT_MEMORY__DUPLICATE_THRESHOLD=0.98
    )


settings = Settings()
