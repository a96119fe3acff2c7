"""Configuration management for InstructionGen.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the INSTRUCTIONGEN_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (INSTRUCTIONGEN_* prefix)
2. .env file in the project root
3. Default values defined in InstructionGenConfig

The Gemini API key is the one exception to the prefix rule: it is also read
from the plain ``GEMINI_API_KEY`` or ``API_KEY`` variables so an existing
Gemini setup works unchanged.

Example .env file:
    INSTRUCTIONGEN_GEMINI_API_KEY=your-key
    INSTRUCTIONGEN_MODEL_ID=gemini-2.5-flash
    INSTRUCTIONGEN_REQUEST_TIMEOUT=60
    INSTRUCTIONGEN_MAX_RETRIES=1

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from instructiongen.core.config import config

    print(config.model_id)
    print(config.max_upload_bytes)

Model Service Calls
-------------------
By default each model call is a single request with no timeout beyond the
transport default and no retries (``request_timeout=None``,
``max_retries=0``).  Raising
either value never changes how failures are classified: a caption failure is
still fatal to the run and an edition failure still degrades to the fallback
text for that edition only.

See Also
--------
- .env.example: Template with all available configuration options
- InstructionGenConfig: Full configuration class documentation
"""

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InstructionGenConfig(BaseSettings):
    """Main configuration for InstructionGen.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the INSTRUCTIONGEN_
    prefix, with fallback to defaults defined here.

    Attributes
    ----------
    Model Service Settings:
        gemini_api_key : str | None
            API key for the Gemini API (also read from GEMINI_API_KEY / API_KEY)
        model_id : str
            Gemini model used for both captioning and diff instructions
        request_timeout : float | None
            Per-call timeout in seconds (None keeps the transport default)
        max_retries : int
            Extra attempts after a failed model call (0 disables retries)

    Upload Limits:
        max_upload_mb : int
            Maximum size of a single uploaded image in megabytes
        allowed_mime_types : list[str]
            Image formats accepted by the model service
        max_editions : int
            Maximum number of editions per session
        max_sessions : int
            Maximum number of API sessions kept in memory

    Server Settings:
        server_host : str
            Bind address for the REST API
        server_port : int
            Port for the REST API (1024-65535)
        gradio_server_name : str
            Bind address for the Gradio UI
        gradio_server_port : int
            Port for the Gradio UI (1024-65535)
        gradio_share : bool
            Create public gradio.live link (keep False for local-only)
        log_level : str
            Root log level used by the entry points

    Examples
    --------
        >>> custom_config = InstructionGenConfig(
        ...     gemini_api_key="test-key",
        ...     request_timeout=30,
        ...     max_retries=2,
        ... )
        >>> custom_config.max_upload_bytes
        20971520
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INSTRUCTIONGEN_",
        case_sensitive=False,
        extra="ignore",
    )

    # Model service settings
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "gemini_api_key",
            "INSTRUCTIONGEN_GEMINI_API_KEY",
            "GEMINI_API_KEY",
            "API_KEY",
        ),
        description="API key for the Gemini API",
    )
    model_id: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for captioning and diff instructions",
    )
    request_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-call timeout in seconds (None keeps the transport default)",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        le=5,
        description="Extra attempts after a failed model call",
    )

    # Upload limits
    max_upload_mb: int = Field(default=20, ge=1, le=100)
    allowed_mime_types: list[str] = Field(
        default=[
            "image/png",
            "image/jpeg",
            "image/webp",
        ],
        description="Image formats accepted by the model service",
    )
    max_editions: int = Field(default=12, ge=1, le=50)
    max_sessions: int = Field(default=100, ge=1, le=10000)

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Bind address for the REST API",
    )
    server_port: int = Field(default=7860, ge=1024, le=65535)

    # UI settings
    gradio_server_name: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    gradio_server_port: int = Field(default=7861, ge=1024, le=65535)
    gradio_share: bool = Field(
        default=False,
        description="Create public gradio.live link (keep False for local-only)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def max_upload_bytes(self) -> int:
        """Maximum upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


# Global configuration instance
# Loads values from environment variables (INSTRUCTIONGEN_* prefix) and .env file.
config = InstructionGenConfig()
