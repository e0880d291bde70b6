"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class OpenAIConfig(BaseModel):
    """OpenAI API configuration."""

    api_key: Optional[str] = Field(
        default=None, alias="OPENAI_API_KEY", description="OpenAI API key for authentication"
    )
    model: str = Field(default="gpt-4o", alias="OPENAI_MODEL", description="Chat model used by the conversation loop")
    base_url: Optional[str] = Field(
        default=None, alias="OPENAI_BASE_URL", description="Custom OpenAI-compatible API base URL (optional)"
    )

    model_config = {"populate_by_name": True}


class LinearConfig(BaseModel):
    """Linear GraphQL API configuration."""

    api_key: Optional[str] = Field(
        default=None, alias="LINEAR_API_KEY", description="Linear personal API key for authentication"
    )
    api_url: str = Field(
        default="https://api.linear.app/graphql", alias="LINEAR_API_URL", description="Linear GraphQL endpoint"
    )
    team_key: str = Field(default="ENG", alias="LINEAR_TEAM_KEY", description="Key of the Linear team issues live in")
    timeout_seconds: float = Field(
        default=15.0, alias="LINEAR_TIMEOUT_SECONDS", description="Timeout of a single Linear API request"
    )

    model_config = {"populate_by_name": True}


class ActionConfig(BaseModel):
    """Conversation loop and action lifecycle configuration."""

    max_tool_iterations: int = Field(
        default=5, alias="CHAT_MAX_TOOL_ITERATIONS", description="Max model completions per chat turn"
    )
    proposal_ttl_seconds: Optional[int] = Field(
        default=None,
        alias="ACTION_PROPOSAL_TTL_SECONDS",
        description="Approval window of a proposal in seconds (unset means proposals never expire)",
    )
    revalidate_on_execute: bool = Field(
        default=True,
        alias="ACTION_REVALIDATE_ON_EXECUTE",
        description="Fail execution when previewed current values changed upstream",
    )

    model_config = {"populate_by_name": True}


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # ActionGate-AI Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="ActionGate-AI server host address to bind to",
        alias="ACTIONGATE_AI_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="ActionGate-AI server port number",
        alias="ACTIONGATE_AI_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="ActionGate-AI server logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="ACTIONGATE_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Console log format (simple, detailed, json)",
        alias="LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory of the rotating log files",
        alias="LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to files under log_file_dir",
        alias="ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./actiongate.db",
        description="Async database URL (postgresql+asyncpg://... in production)",
        alias="DATABASE_URL",
    )

    # =====================================================================
    # OpenAI Configuration
    # =====================================================================
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")

    # =====================================================================
    # Linear Configuration
    # =====================================================================
    linear_api_key: Optional[str] = Field(default=None, alias="LINEAR_API_KEY")
    linear_api_url: str = Field(default="https://api.linear.app/graphql", alias="LINEAR_API_URL")
    linear_team_key: str = Field(default="ENG", alias="LINEAR_TEAM_KEY")
    linear_timeout_seconds: float = Field(default=15.0, alias="LINEAR_TIMEOUT_SECONDS")

    # =====================================================================
    # Chat / Action Configuration
    # =====================================================================
    chat_max_tool_iterations: int = Field(default=5, alias="CHAT_MAX_TOOL_ITERATIONS")
    action_proposal_ttl_seconds: Optional[int] = Field(default=None, alias="ACTION_PROPOSAL_TTL_SECONDS")
    action_revalidate_on_execute: bool = Field(default=True, alias="ACTION_REVALIDATE_ON_EXECUTE")

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def openai(self) -> OpenAIConfig:
        """Get OpenAI configuration from environment variables."""
        return OpenAIConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def linear(self) -> LinearConfig:
        """Get Linear configuration from environment variables."""
        return LinearConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def actions(self) -> ActionConfig:
        """Get conversation loop and action lifecycle configuration."""
        return ActionConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
