from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./iwc.db"
    LOG_LEVEL: str = "INFO"
    # API authentication (unset means all requests pass, for local dev)
    IWC_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:3000"
    # aisstream.io: real-time AIS WebSocket feed for the in-memory index
    AISSTREAM_API_KEY: str | None = None
    AISSTREAM_WS_URL: str = "wss://stream.aisstream.io/v0/stream"
    AISSTREAM_MAX_RECONNECT_ATTEMPTS: int = 10
    AISSTREAM_BASE_DELAY_SECONDS: float = 1.0
    AISSTREAM_MAX_DELAY_SECONDS: float = 30.0
    # Log index size every N feed messages
    AISSTREAM_LOG_EVERY: int = 5000
    # Marinesia: remote vessel profile service
    MARINESIA_API_KEY: str | None = None
    MARINESIA_BASE_URL: str = "https://api.marinesia.com/api/v1"
    MARINESIA_TIMEOUT: float = 15.0
    MARINESIA_SEARCH_LIMIT: int = 10
    # Search limits
    SEARCH_MIN_QUERY_LENGTH: int = 2
    SEARCH_RESULT_LIMIT: int = 50


settings = Settings()
