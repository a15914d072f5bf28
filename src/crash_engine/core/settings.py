"""Application settings and configuration.

This module defines all configuration options for the crash engine service.
Settings are loaded from environment variables with sensible defaults.
Tuple and list valued settings are read from the environment as JSON, e.g.
``RARE_TIERS='[[0.0001, 250, 500], [0.0005, 100, 250]]'``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Crash Engine", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    port: int = Field(default=3000, alias="PORT")

    # Database configuration
    database_url: str = Field(default="sqlite:///./crash_engine.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Outcome distribution
    house_edge: float = Field(default=0.1, alias="HOUSE_EDGE")
    min_multiplier: float = Field(default=1.01, alias="MIN_MULTIPLIER")
    max_multiplier: float = Field(default=500.0, alias="MAX_MULTIPLIER")
    multiplier_precision: int = Field(default=2, alias="MULTIPLIER_PRECISION")
    # (probability, low, high), rarest band first
    rare_tiers: list[tuple[float, float, float]] = Field(
        default=[(0.0001, 250.0, 500.0), (0.0005, 100.0, 250.0), (0.002, 50.0, 100.0)],
        alias="RARE_TIERS",
    )
    rng_seed: int | None = Field(default=None, alias="RNG_SEED")
    history_capacity: int = Field(default=100, alias="HISTORY_CAPACITY")

    # Pattern breaking: (modulus, probability, low, high)
    modulo_rules: list[tuple[int, float, float, float]] = Field(
        default=[(13, 0.5, 1.01, 1.01), (7, 0.3, 1.01, 1.3)],
        alias="MODULO_RULES",
    )
    damping_window: int = Field(default=10, alias="DAMPING_WINDOW")
    damping_threshold: float = Field(default=10.0, alias="DAMPING_THRESHOLD")
    damping_min_count: int = Field(default=3, alias="DAMPING_MIN_COUNT")
    damping_factor_range: tuple[float, float] = Field(
        default=(0.2, 0.7), alias="DAMPING_FACTOR_RANGE"
    )
    jitter: float = Field(default=0.05, alias="JITTER")
    oscillation_amplitude: float = Field(default=0.03, alias="OSCILLATION_AMPLITUDE")
    oscillation_frequency: float = Field(default=0.37, alias="OSCILLATION_FREQUENCY")

    # Streak relief tiers, most severe first
    floor_streak: int = Field(default=3, alias="FLOOR_STREAK")
    floor_relief_range: tuple[float, float] = Field(
        default=(2.0, 5.0), alias="FLOOR_RELIEF_RANGE"
    )
    low_threshold: float = Field(default=1.2, alias="LOW_THRESHOLD")
    low_streak: int = Field(default=5, alias="LOW_STREAK")
    low_relief_range: tuple[float, float] = Field(default=(1.5, 3.0), alias="LOW_RELIEF_RANGE")
    long_window: int = Field(default=20, alias="LONG_WINDOW")
    long_window_low_ratio: float = Field(default=0.6, alias="LONG_WINDOW_LOW_RATIO")
    long_window_relief_range: tuple[float, float] = Field(
        default=(1.3, 2.0), alias="LONG_WINDOW_RELIEF_RANGE"
    )

    # Batching and pacing
    batch_size: int = Field(default=100, alias="BATCH_SIZE")
    queue_threshold: int = Field(default=10, alias="QUEUE_THRESHOLD")
    queue_check_interval_seconds: float = Field(
        default=5.0, alias="QUEUE_CHECK_INTERVAL_SECONDS"
    )
    default_start_round: int = Field(default=1000, alias="DEFAULT_START_ROUND")
    generator_enabled: bool = Field(default=True, alias="GENERATOR_ENABLED")

    # Downstream presentation (socket) server
    socket_server_url: str = Field(default="http://localhost:3001", alias="SOCKET_SERVER_URL")
    socket_server_secret: str | None = Field(default=None, alias="SOCKET_SERVER_SECRET")
    socket_server_timeout_seconds: float = Field(
        default=5.0, alias="SOCKET_SERVER_TIMEOUT_SECONDS"
    )

    # Query API
    max_range_size: int = Field(default=1000, alias="MAX_RANGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["GET", "POST", "OPTIONS"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()
