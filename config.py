from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEFAULT_LANGUAGE: str = "en"
    LOG_LEVEL: str = "INFO"
    # empty disables the file handler
    LOG_FILE: str = "logs/ziva.log"
    PORT: int = 3000

    # Data files for the knowledge store
    FAQ_PATH: str = "faq.json"
    HEALTH_ENTRIES_PATH: str = "health_entries.json"
    ALERTS_PATH: str = "alerts.json"
    MODEL_DIR: str = "models"

    # Arbitration / retrieval thresholds, all on the [0,1] scale
    MIN_ACCEPT_SCORE: float = 0.12
    TRIGRAM_FLOOR: float = 0.10
    CONTAINS_CONFIDENCE: float = 0.15
    SIMILARITY_THRESHOLD: float = 0.3
    LOOSE_CANDIDATE_LIMIT: int = 200

    SOURCE_TIMEOUT_SECONDS: float = 8.0
    TRANSLATION_TIMEOUT_SECONDS: float = 5.0
    TRANSLATION_CACHE_TTL_SECONDS: int = 24 * 60 * 60

    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_PHONE_NUMBER: str | None = None


settings = Settings()
