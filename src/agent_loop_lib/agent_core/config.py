"""Configuration for the conversation loop using pydantic-settings."""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetryPolicy(BaseModel):
    """
    Retry behaviour for model backend calls.

    Attributes:
        max_retries: Retries after the first attempt. ``0`` disables retrying.
        base_delay: Seconds to wait before the first retry.
        multiplier: Factor applied to the delay after every retry.
        max_delay: Upper bound for a single delay.
    """

    max_retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=30.0, ge=0)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the failed attempt number ``attempt`` (0-based)."""
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)


class OrchestratorConfig(BaseSettings):
    """Settings for a conversation orchestrator.

    All settings can be overridden via environment variables with the AGENT_LOOP_ prefix.
    For example, AGENT_LOOP_TOOL_TIMEOUT overrides tool_timeout and
    AGENT_LOOP_RETRY__MAX_RETRIES overrides retry.max_retries.
    """

    # Tools
    tool_timeout: float = Field(default=30.0, gt=0)
    max_concurrent_tools: int = Field(default=4, ge=1)

    # Conversation
    max_rounds: Optional[int] = Field(default=None, ge=1)

    # Status channel
    status_queue_size: int = Field(default=100, ge=1)

    # Model backend
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    model_config = SettingsConfigDict(env_prefix="AGENT_LOOP_", env_nested_delimiter="__")
