"""
Application configuration management using pydantic-settings

Values come from the environment (or a local .env file). When the agent runs
as a GitHub Action, inputs arrive as INPUT_<NAME> variables and are accepted
as aliases of the matching setting.
"""
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Literal, Optional, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from remediator.errors import ConfigurationError

if TYPE_CHECKING:
    from remediator.agent.tool_registry import ToolDescriptor


def _env(name: str) -> AliasChoices:
    return AliasChoices(name, f"INPUT_{name}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # GitHub
    GITHUB_TOKEN: str = ""
    GITHUB_REPOSITORY: str = ""  # owner/repo
    GITHUB_API_URL: str = "https://api.github.com"
    BASE_BRANCH: str = "main"

    # Model
    MODEL: str = Field("gpt-4.1-mini", validation_alias=_env("MODEL"))
    MODEL_ENDPOINT: str = "https://models.github.ai/inference"
    MODEL_TOKEN: str = ""  # falls back to GITHUB_TOKEN
    GOOGLE_API_KEY: str = ""
    MODEL_TEMPERATURE: float = 0.2
    MODEL_TIMEOUT_SECONDS: float = 120.0

    # Run inputs
    WORKING_DIRECTORY: str = Field(".", validation_alias=_env("WORKING_DIRECTORY"))
    ISSUE_NUMBER: Optional[int] = Field(None, validation_alias=_env("ISSUE_NUMBER"))
    USER_PROMPT_PATH: Optional[str] = Field(None, validation_alias=_env("USER_PROMPT_PATH"))
    AGENT_MODE: Literal["plan_execute", "propose"] = Field(
        "plan_execute", validation_alias=_env("AGENT_MODE")
    )
    DRY_RUN: bool = Field(False, validation_alias=_env("DRY_RUN"))

    # Agent limits
    AGENT_MAX_STEPS: int = Field(10, ge=1)
    MAX_PATCH_FILES: int = Field(25, ge=1)
    MAX_PATCH_BYTES: int = Field(50 * 1024, ge=1)
    MEMORY_COMMENT_LIMIT: int = 100

    # Tool servers
    TOOL_SESSION_POLICY: Literal["continue", "abort"] = "continue"
    TOOL_CALL_TIMEOUT_SECONDS: Optional[float] = 60.0

    # HTTP service
    API_TOKEN: str = ""
    WEBHOOK_SECRET: str = ""
    APP_NAME: str = "remediator"
    APP_VERSION: str = "0.3.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
    )

    @field_validator("ISSUE_NUMBER", "USER_PROMPT_PATH", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        # Action inputs that were not provided arrive as empty strings
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def repository(self) -> Tuple[str, str]:
        """Split GITHUB_REPOSITORY into (owner, repo)"""
        owner, sep, repo = self.GITHUB_REPOSITORY.partition("/")
        if not sep or not owner or not repo:
            raise ConfigurationError(
                f"GITHUB_REPOSITORY must look like 'owner/repo', got '{self.GITHUB_REPOSITORY}'"
            )
        return owner, repo

    @property
    def model_token(self) -> str:
        return self.MODEL_TOKEN or self.GITHUB_TOKEN


@dataclass
class KnowledgeBase:
    """A named document fed to the planner as background knowledge"""
    name: str
    content: str


@dataclass
class AgentConfiguration:
    """Working-directory configuration: prompt, knowledge and tool servers"""
    system_prompt: str
    knowledge_bases: List[KnowledgeBase] = field(default_factory=list)
    tool_descriptors: Dict[str, "ToolDescriptor"] = field(default_factory=dict)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for an entrypoint"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Global settings instance
settings = Settings()
