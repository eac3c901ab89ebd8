"""Library configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Settings are loaded in this priority order (highest to lowest):
    1. Environment variables (prefixed with ``PATENTDOC_``)
    2. .env file (for local development)
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="PATENTDOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Logging
    # =========================================================================
    debug: bool = False
    log_level: str = Field(
        default="INFO",
        description="Root log level used by the command line entry point",
    )

    # =========================================================================
    # Structural rewriting
    # =========================================================================
    # Tables are not kept in the sanitized output, so <TBLREF> nodes become
    # this literal placeholder.
    table_reference_text: str = Field(
        default="Table-Reference",
        description="Text substituted for table reference nodes",
    )
    indent_marker: str = Field(
        default="\u00a0",
        min_length=1,
        description="Marker prepended to paragraphs, once per nesting level",
    )

    # =========================================================================
    # Plain text
    # =========================================================================
    max_line_width: int | None = Field(
        default=None,
        gt=0,
        description="Default wrap width for plain text output (None = no wrap)",
    )


settings = Settings()
