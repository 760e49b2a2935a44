"""
RoomTally configuration settings.

Manages application settings via environment variables with sensible defaults.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import TransportError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROOMTALLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "RoomTally"
    app_version: str = "0.1.0"
    debug: bool = False

    # Measurement defaults
    default_unit: str = "ft"  # "ft" or "m", or an alias such as "feet"

    # Transport (image ingestion + analysis submission)
    ingest_endpoint: str = "http://localhost:8100/api/extract-rooms"
    analysis_endpoint: str = "http://localhost:8100/api/analyze"
    request_timeout_s: float = 30.0
    # Status codes meaning "origin refused the primary exchange"; the request is
    # re-sent in degraded mode and its body is never read.
    degraded_status_codes: List[int] = [403]

    # CORS for the presentation layer
    cors_origins: List[str] = [
        "http://localhost:3000",  # Next.js dev server
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ]

    # Export
    export_language: str = "en"  # "en" or "de"

    def endpoint_for(self, purpose: str, override: Optional[str] = None) -> str:
        """
        Resolve the endpoint for an exchange purpose.

        Precedence: explicit override, then environment/.env, then the
        built-in default (the last two are already merged by pydantic).

        Raises:
            TransportError: Unknown purpose, or no endpoint configured
        """
        if override:
            return override
        if purpose == "ingest":
            endpoint = self.ingest_endpoint
        elif purpose == "analysis":
            endpoint = self.analysis_endpoint
        else:
            raise TransportError(
                f"Unknown exchange purpose: {purpose}",
                details={"purpose": str(purpose)},
            )
        if not endpoint.strip():
            raise TransportError(
                f"No endpoint configured for {purpose} exchanges",
                details={"purpose": purpose, "setting": f"ROOMTALLY_{purpose.upper()}_ENDPOINT"},
            )
        return endpoint


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
