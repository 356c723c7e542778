from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Inbound webhook and outbound replies
    webhook_secret: str = Field("", validation_alias="WEBHOOK_SECRET")
    telegram_bot_token: str = Field("", validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_api_url: str = Field("https://api.telegram.org", validation_alias="TELEGRAM_API_URL")
    reply_backend: str = Field("telegram", validation_alias="REPLY_BACKEND")
    reply_timeout_seconds: float = Field(10.0, validation_alias="REPLY_TIMEOUT_SECONDS")

    # Versioned bookmark log
    store_backend: str = Field("github", validation_alias="STORE_BACKEND")
    github_api_url: str = Field("https://api.github.com", validation_alias="GITHUB_API_URL")
    github_token: str = Field("", validation_alias="GITHUB_TOKEN")
    github_owner: str = Field("", validation_alias="GITHUB_OWNER")
    github_repo: str = Field("", validation_alias="GITHUB_REPO")
    github_branch: str = Field("", validation_alias="GITHUB_BRANCH")
    bookmarks_path: str = Field("data/bookmarks.jsonl", validation_alias="BOOKMARKS_PATH")
    store_timeout_seconds: float = Field(10.0, validation_alias="STORE_TIMEOUT_SECONDS")
    # Conditional-write attempts per append (first write included).
    append_max_attempts: int = Field(3, validation_alias="APPEND_MAX_ATTEMPTS")
    append_backoff_min_seconds: float = Field(0.2, validation_alias="APPEND_BACKOFF_MIN_SECONDS")
    append_backoff_max_seconds: float = Field(0.7, validation_alias="APPEND_BACKOFF_MAX_SECONDS")

    # Retry queue
    retry_queue_backend: str = Field("mongo", validation_alias="RETRY_QUEUE_BACKEND")
    database_host: str = Field("localhost", validation_alias="DATABASE_HOST")
    database_port: int = Field(27017, validation_alias="DATABASE_PORT")
    database_user: str = Field("", validation_alias="DATABASE_USER")
    database_password: str = Field("", validation_alias="DATABASE_PASSWORD")
    database_name: str = Field("linklog", validation_alias="DATABASE_NAME")
    database_collection: str = Field("retry_queue", validation_alias="DATABASE_COLLECTION")
    database_connection_timeout_ms: int = Field(5000, validation_alias="DATABASE_CONNECTION_TIMEOUT_MS")
    queue_timeout_seconds: float = Field(10.0, validation_alias="QUEUE_TIMEOUT_SECONDS")
    # Entry is dropped once a failing sweep finds attempts >= retry_max_attempts.
    retry_max_attempts: int = Field(3, validation_alias="RETRY_MAX_ATTEMPTS")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(8.0, validation_alias="MAX_BACKOFF_SECONDS")
    max_connection_attempts: int = Field(5, validation_alias="MAX_CONNECTION_ATTEMPTS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")

    # Metadata resolution
    metadata_timeout_seconds: float = Field(5.0, validation_alias="METADATA_TIMEOUT_SECONDS")
    metadata_connect_timeout_seconds: float = Field(3.0, validation_alias="METADATA_CONNECT_TIMEOUT_SECONDS")
    metadata_user_agent: str = Field(
        "Mozilla/5.0 (compatible; LinklogBot/1.0)",
        validation_alias="METADATA_USER_AGENT",
    )

    # Sweep
    sweep_interval_seconds: float = Field(3600.0, validation_alias="SWEEP_INTERVAL_SECONDS")
    dropped_entry_policy: str = Field("log", validation_alias="DROPPED_ENTRY_POLICY")
    alert_chat_id: str = Field("", validation_alias="ALERT_CHAT_ID")

    readiness_ping_timeout_seconds: float = Field(5.0, validation_alias="READINESS_PING_TIMEOUT_SECONDS")
