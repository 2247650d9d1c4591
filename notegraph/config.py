from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTEGRAPH_", env_file=".env", extra="ignore")

    # Storage settings
    graph_state_path: str = "data/graph.json"
    vector_store_path: str = "data/vectors.json"

    # Embedding settings
    embedder: Literal["voyage", "openai"] = "voyage"
    voyage_ai_api_key: str | None = None
    openai_api_key: str | None = None
    min_embedding_text_length: int = 20

    # Layout settings
    repulsion_constant: float = 5000.0
    repulsion_softening: float = 100.0
    spring_length: float = 150.0
    spring_constant: float = 0.01
    centering_strength: float = 0.001
    damping: float = 0.9
    tick_rate_hz: float = 60.0
    initial_spread: float = 300.0
    initial_velocity: float = 1.0
    node_radius: float = 8.0

    # Connection settings
    initial_edge_strength: float = 1.0
    auto_link_increment: float = 0.3
    manual_link_increment: float = 0.5
    min_node_weight: float = 0.2
    weight_per_link: float = 0.2
    weight_decay_per_day: float = 0.05

    # Linker settings
    suggestion_count: int = 5
    semantic_link_max_distance: float | None = 0.5

    # Community settings
    community_max_passes: int = 20
    community_resolution: float = 1.0
    community_epsilon: float = 1e-9
    community_seed: int | None = 42

    # Clustering settings
    cluster_min_notes: int = 3
    cluster_min_k: int = 2
    cluster_max_k: int = 5
    cluster_min_text_length: int = 20
    cluster_seed: int = 42
    cluster_palette: list[str] = ["#FEE2E2", "#DBEAFE", "#E0E7FF", "#FCE7F3", "#FEF3C7"]

    # Housekeeping settings
    ephemeral_archive_days: float = 2.0
    rediscover_stale_days: float = 7.0
    surprising_strength: float = 3.0

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
