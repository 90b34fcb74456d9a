"""Configuration settings for the AI bookkeeper."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Ledger API (Zoho Books compatible)
    ledger_api_url: str = Field(
        default="https://www.zohoapis.ca/books/v3", validation_alias="LEDGER_API_URL"
    )
    ledger_organization_id: str | None = Field(
        default=None, validation_alias="LEDGER_ORGANIZATION_ID"
    )
    ledger_access_token: SecretStr | None = Field(
        default=None, validation_alias="LEDGER_ACCESS_TOKEN"
    )
    ledger_timeout: float = Field(default=30.0, validation_alias="LEDGER_TIMEOUT")
    ledger_max_retries: int = Field(default=3, validation_alias="LEDGER_MAX_RETRIES")
    ledger_page_size: int = Field(default=200, validation_alias="LEDGER_PAGE_SIZE")
    # Delay between list pages, keeps us under 100 requests per minute
    ledger_page_delay: float = Field(default=0.65, validation_alias="LEDGER_PAGE_DELAY")

    # LLM
    anthropic_api_key: SecretStr | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    claude_model: str = Field(
        default="claude-sonnet-4-20250514", validation_alias="CLAUDE_MODEL"
    )
    llm_max_tokens: int = Field(default=4096, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.2, validation_alias="LLM_TEMPERATURE")
    chat_temperature: float = Field(default=0.3, validation_alias="CHAT_TEMPERATURE")
    task_temperature: float = Field(default=0.2, validation_alias="TASK_TEMPERATURE")
    analysis_temperature: float = Field(
        default=0.1, validation_alias="ANALYSIS_TEMPERATURE"
    )

    # Tool loop
    chat_max_turns: int = Field(default=15, validation_alias="CHAT_MAX_TURNS")
    task_max_turns: int = Field(default=10, validation_alias="TASK_MAX_TURNS")
    tool_result_max_chars: int = Field(
        default=50_000, validation_alias="TOOL_RESULT_MAX_CHARS"
    )
    tool_result_preview_records: int = Field(
        default=50, validation_alias="TOOL_RESULT_PREVIEW_RECORDS"
    )
    parallel_tools: bool = Field(default=False, validation_alias="PARALLEL_TOOLS")

    # Learned categorization rules
    rule_initial_confidence: float = Field(
        default=0.7, validation_alias="RULE_INITIAL_CONFIDENCE"
    )
    rule_confidence_step: float = Field(
        default=0.05, validation_alias="RULE_CONFIDENCE_STEP"
    )
    rule_accept_threshold: float = Field(
        default=0.8, validation_alias="RULE_ACCEPT_THRESHOLD"
    )
    rule_confidence_decay: float = Field(
        default=0.0, validation_alias="RULE_CONFIDENCE_DECAY"
    )

    # Task queue durability: unset keeps tasks in memory only
    task_store_path: Path | None = Field(default=None, validation_alias="TASK_STORE_PATH")

    # Business description injected into prompts
    business_context: str = Field(
        default=(
            "Transway Group, a Canadian trucking and transport company "
            "working in CAD with HST/GST (Ontario)"
        ),
        validation_alias="BUSINESS_CONTEXT",
    )
    currency: str = Field(default="CAD", validation_alias="CURRENCY")

    # Reports and ad-hoc analysis
    report_temperature: float = Field(default=0.3, validation_alias="REPORT_TEMPERATURE")
    report_max_tokens: int = Field(default=4096, validation_alias="REPORT_MAX_TOKENS")
    adhoc_max_tokens: int = Field(default=2048, validation_alias="ADHOC_MAX_TOKENS")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
