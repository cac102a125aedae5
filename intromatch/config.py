from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_PATH = Path(__file__).resolve().parent.parent
ENV_PATH = ROOT_PATH / ".env.local"
EVAL_DATA_PATH = ROOT_PATH / "data" / "eval"


class ConfigurationError(Exception):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, message: str, setting: str | None = None):
        super().__init__(message)
        self.setting = setting


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase Postgres (contacts, conversations, match_suggestions, match_feedback)
    SUPABASE_DB_URL: str | None = None

    # OpenAI settings (optional, used for match explanations)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    # =================================================================
    # MATCHING SETTINGS
    # =================================================================
    MATCH_VERSION: str = "v1.2-calibrated"
    MATCH_MAX_SUGGESTIONS: int = 20
    MATCH_EXPLAIN_TOP_N: int = 5

    # =================================================================
    # EVALUATION / TUNING SETTINGS
    # =================================================================
    EVAL_MRR_THRESHOLD: float = 0.40
    EVAL_BOOTSTRAP_SAMPLES: int = 1000
    EVAL_RANDOM_SEED: int | None = None
    EVAL_GOLDEN_SET_PATH: Path = EVAL_DATA_PATH / "golden_set.json"
    EVAL_FEEDBACK_LABELS_PATH: Path = EVAL_DATA_PATH / "feedback_labels.json"
    EVAL_BATCH_CONCURRENCY: int = 5
    EVAL_BATCH_DELAY_SECONDS: float = 0.2
    # "vacuous_pass" scores an empty top-k as 1.0 when there are no positives
    EVAL_PRECISION_EMPTY_POLICY: str = "vacuous_pass"

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 8
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def require_database_url(self) -> str:
        """Return the database URL or fail fast when it is not configured."""
        if not self.SUPABASE_DB_URL:
            raise ConfigurationError(
                "SUPABASE_DB_URL is not set. Add it to the environment or .env.local.",
                setting="SUPABASE_DB_URL",
            )
        return self.SUPABASE_DB_URL

    def explanations_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Batch tools and the API share these values; development runs smaller.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
