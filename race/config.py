"""Configuration management for the RACE engine."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Engine configuration loaded from environment variables."""

    # Embedding provider (OpenAI)
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Completion / speech provider (OpenAI-compatible)
    @classmethod
    def get_completion_api_key(cls) -> str:
        """Get the completion provider API key.

        Returns:
            COMPLETION_API_KEY, falling back to FANAR_API_KEY, or empty string.
        """
        return os.getenv("COMPLETION_API_KEY") or os.getenv("FANAR_API_KEY", "")

    COMPLETION_BASE_URL: str = os.getenv(
        "COMPLETION_BASE_URL", "https://api.fanar.qa/v1"
    )

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Chunking / embedding
    CHUNK_MAX_LENGTH: int = int(os.getenv("CHUNK_MAX_LENGTH", "1000"))
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002")
    EMBEDDING_MAX_RETRIES: int = int(os.getenv("EMBEDDING_MAX_RETRIES", "2"))
    EMBEDDING_RETRY_BACKOFF: float = float(
        os.getenv("EMBEDDING_RETRY_BACKOFF", "1.0")
    )
    EMBEDDING_MAX_RETRY_DELAY: float = float(
        os.getenv("EMBEDDING_MAX_RETRY_DELAY", "30")
    )

    # Retrieval
    RETRIEVAL_THRESHOLD: float = float(os.getenv("RETRIEVAL_THRESHOLD", "0.75"))
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "5"))
    REFERENCE_EXCERPT_CHARS: int = int(os.getenv("REFERENCE_EXCERPT_CHARS", "150"))
    CONTEXT_MAX_CHARS: int = int(os.getenv("CONTEXT_MAX_CHARS", "6000"))
    INDEX_MAX_MATERIALS: int = int(os.getenv("INDEX_MAX_MATERIALS", "64"))

    # Completion Model Configuration
    COMPLETION_MODEL: str = os.getenv("COMPLETION_MODEL", "Fanar-S-1-7B")
    COMPLETION_MAX_TOKENS: int = int(os.getenv("COMPLETION_MAX_TOKENS", "500"))
    COMPLETION_TEMPERATURE: float = float(
        os.getenv("COMPLETION_TEMPERATURE", "0.1")
    )
    HISTORY_MAX_TURNS: int = int(os.getenv("HISTORY_MAX_TURNS", "6"))

    # Seconds
    PROVIDER_TIMEOUT: float = float(os.getenv("PROVIDER_TIMEOUT", "60"))

    # Speech synthesis (advisory)
    TTS_MODEL: str = os.getenv("TTS_MODEL", "Fanar-Aura-TTS-1")
    TTS_VOICE: str = os.getenv("TTS_VOICE", "default")
    TTS_MAX_CHARS: int = int(os.getenv("TTS_MAX_CHARS", "1000"))

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "RACE/1.0")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ValueError: If a provider API key is not set.
        """
        if not cls.get_openai_api_key():
            msg = (
                "OPENAI_API_KEY is required. Please set it in .env file or environment."
            )
            raise ValueError(msg)
        if not cls.get_completion_api_key():
            msg = (
                "COMPLETION_API_KEY (or FANAR_API_KEY) is required. "
                "Please set it in .env file or environment."
            )
            raise ValueError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        logging.getLogger("openai").setLevel(
            getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
