from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # System
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    DATA_DIR: Path = Path("./data")

    # LLM
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    LLM_TEMPERATURE: float = 0.7
    SCORING_TEMPERATURE: float = 0.3
    LLM_TIMEOUT: float = 30.0  # Per-call timeout in seconds

    # Curation
    ARTICLE_CHUNK_SIZE: int = 100  # Articles per scoring call
    RELEVANCE_THRESHOLD: int = 70
    MAX_ARTICLES_FOR_CURATION: int = 500
    SCORING_MAX_ATTEMPTS: int = 3
    SCORING_RETRY_DELAY: float = 15.0  # Seconds between timed-out attempts
    FALLBACK_ARTICLE_COUNT: int = 10
    FALLBACK_SECTIONS: str = "news|world"
    SECTION_SELECTOR_STRICT: bool = True

    # Article libraries
    LIBRARY_BASE_URL: str = "https://raw.githubusercontent.com/AkashCiel/juggernaut-reports/main/backend/data/article-library/"
    SECTION_SUMMARIES_URL: str = "https://raw.githubusercontent.com/AkashCiel/juggernaut-reports/main/backend/data/functional_section_summaries.json"
    LIBRARY_TIMEOUT: float = 15.0
    LIBRARY_CACHE_TTL: float = 6 * 60 * 60  # 6 hours

    # Email
    EMAIL_ENABLED: bool = False
    EMAIL_SMTP_HOST: str = "smtp.gmail.com"
    EMAIL_SMTP_PORT: int = 465 # Default to SSL for Gmail
    EMAIL_TIMEOUT: int = 180
    EMAIL_FROM: str | None = None
    EMAIL_PASSWORD: str | None = None

    def ensure_dirs(self):
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)

settings = Settings()
