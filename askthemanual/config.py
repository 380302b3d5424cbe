"""
Centralized configuration module.

Loads environment variables and provides configuration settings
for the application.
"""

# imports built-in modules
import logging
import os
import sys
from typing import Optional

# imports third-party modules
from dotenv import load_dotenv

# Use basic logger here to avoid circular import with askthemanual.utils.logger
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Google Gemini API (optional preset; bypasses the key picker when set)
    GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY")

    # Gemini Model Configuration
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # File Search stores
    STORE_NAME_PREFIX: str = os.getenv("STORE_NAME_PREFIX", "chat-session")
    OPERATION_POLL_SECONDS: float = float(os.getenv("OPERATION_POLL_SECONDS", "2"))

    # Session timing
    SUGGESTION_INTERVAL_SECONDS: float = float(
        os.getenv("SUGGESTION_INTERVAL_SECONDS", "5")
    )
    COMPLETION_HOLD_SECONDS: float = float(os.getenv("COMPLETION_HOLD_SECONDS", "0.5"))

    # File Upload
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
    MAX_FILES: int = int(os.getenv("MAX_FILES", "10"))
    UPLOAD_TIMEOUT: int = int(os.getenv("UPLOAD_TIMEOUT", "180"))
    SAMPLE_FETCH_TIMEOUT: float = float(os.getenv("SAMPLE_FETCH_TIMEOUT", "30"))

    # Chat display (requires unsafe_allow_html in .chainlit/config.toml)
    RENDER_HTML: bool = os.getenv("RENDER_HTML", "true").lower() in ("1", "true", "yes")

    # Paths
    LOGS_DIR: str = os.getenv("LOGS_DIR", "logs")

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration values.

        A missing ``GOOGLE_API_KEY`` is not an error: the user is asked for
        a key at runtime instead.

        Returns
        -------
        bool
            True if the configuration is usable.
        """
        errors = []

        if not cls.GEMINI_MODEL:
            errors.append("GEMINI_MODEL environment variable is empty")

        if cls.OPERATION_POLL_SECONDS <= 0:
            errors.append("OPERATION_POLL_SECONDS must be positive")

        if cls.SUGGESTION_INTERVAL_SECONDS <= 0:
            errors.append("SUGGESTION_INTERVAL_SECONDS must be positive")

        if cls.MAX_FILES < 1:
            errors.append("MAX_FILES must be at least 1")

        if errors:
            for error in errors:
                logger.error(f"❌ Configuration Error: {error}")
            return False

        if not cls.GOOGLE_API_KEY:
            logger.info("GOOGLE_API_KEY not set; users will be asked for a key")

        return True

    @classmethod
    def validate_or_exit(cls) -> None:
        """Validate configuration and exit if invalid."""
        if not cls.validate():
            sys.exit(1)


# Create a singleton instance for easy access
config = Config()
