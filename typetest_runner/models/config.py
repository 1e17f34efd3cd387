"""Resolved runner configuration."""

from collections.abc import Sequence
from pathlib import Path

from pydantic import Field, field_validator

from typetest_runner.models.base import Model


class RunnerConfig(Model):
    """Options the run engine depends on."""

    root_path: Path = Field(
        default_factory=Path.cwd, description="Directory watched for test files"
    )
    config_file_path: Path | None = Field(
        default=None, description="Config file watched for changes in watch mode"
    )
    target: Sequence[str] = Field(
        default=("current",),
        description="Target versions to run against, in order",
    )
    fail_fast: bool = Field(
        default=False, description="Stop the run after the first error"
    )
    only: str | None = Field(
        default=None, description="Run only declarations whose name matches"
    )
    skip: str | None = Field(
        default=None, description="Skip declarations whose name matches"
    )
    watch: bool = Field(default=False, description="Re-run tests when files change")
    debounce_delay: float = Field(
        default=0.1, description="Seconds of quiet before changed files are run"
    )

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: Sequence[str]) -> Sequence[str]:
        if not v:
            raise ValueError("At least one target must be given")
        if any(not tag.strip() for tag in v):
            raise ValueError("Target cannot be empty")
        return tuple(v)

    @field_validator("debounce_delay")
    @classmethod
    def validate_debounce_delay(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Debounce delay must be greater than 0")
        return v

    @field_validator("only", "skip")
    @classmethod
    def validate_pattern(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v
