"""CLI configuration management using pydantic-settings.

Handles output formatting, request defaults and logging setup
from ``ZKSCHEMA_`` environment variables or a ``.env`` file.
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

from zkschema.sdk.generator import DEFAULT_JSONLD_CONTEXT_URL
from zkschema.sdk.query import DEFAULT_REASON

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ZkSchemaConfig(BaseSettings):
    """zkschema CLI configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix='ZKSCHEMA_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    json_indent: int = Field(
        default=2,
        description="Indentation for JSON output"
    )
    jsonld_context_url: str = Field(
        default=DEFAULT_JSONLD_CONTEXT_URL,
        description="URL written to $metadata.jsonLdContext of generated schemas"
    )
    verifier_did: str | None = Field(
        default=None,
        description="Verifier DID added to on-chain requests"
    )
    request_reason: str = Field(
        default=DEFAULT_REASON,
        description="Reason shown in verification requests"
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI"
    )

    @field_validator('json_indent')
    @classmethod
    def validate_json_indent(cls, v: int) -> int:
        """Validate indent is not negative."""
        if v < 0:
            raise ValueError("JSON indent must not be negative")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known logging level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


def configure_logging(level: str) -> None:
    """Send package logs to stderr through rich."""
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(level=level.upper(), format="%(message)s", handlers=[handler], force=True)
