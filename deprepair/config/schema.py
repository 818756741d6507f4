"""Configuration schema definitions using Pydantic for validation.

This module provides the strongly-typed configuration for a repair run.
Using Pydantic ensures configuration errors are caught early with clear
error messages, before any manifest is touched.
"""

import shlex
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

ALL_AT_ONCE = "all-at-once"
ONE_BY_ONE = "one-by-one"
VALID_STRATEGIES = (ALL_AT_ONCE, ONE_BY_ONE)

DEFAULT_COMMAND = ["mvn", "-q", "clean", "install"]


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class RepairConfig(BaseModel):
    """Top-level configuration for a repair run.

    Attributes:
        indent: Indentation unit used in the manifest.
        dependency_managed: Versions are managed centrally; omit ``<version>``
            from added entries (except the project's own version).
        command: Verification command run in the project directory.
        manifest_name: File name of the manifest inside the project.
        backup_suffix: Suffix of the sibling backup file.
        strategies: Enabled removal tiers, in order.
        include: Only remove coordinates matching one of these substrings.
        exclude: Never remove coordinates matching one of these substrings.
        precheck: Verify the untouched project before editing.
        rollback_on_final_failure: Restore the pre-repair manifest when the
            final re-verification fails.
        verify_timeout: Seconds before a verification run is killed.
        properties: Extra ``${key}`` values for placeholder resolution.
    """

    indent: str = "    "
    dependency_managed: bool = False
    command: List[str] = Field(default_factory=lambda: list(DEFAULT_COMMAND))
    manifest_name: str = Field(default="pom.xml", min_length=1)
    backup_suffix: str = Field(default=".backup", min_length=1)
    strategies: List[str] = Field(default_factory=lambda: list(VALID_STRATEGIES))
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    precheck: bool = False
    rollback_on_final_failure: bool = False
    verify_timeout: Optional[float] = Field(default=None, gt=0)
    properties: Dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "allow"}  # Allow extra fields for extensibility

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: str) -> str:
        """Indentation must be whitespace only."""
        if v.strip():
            raise ValueError(f"indent must contain only whitespace, got {v!r}")
        return v

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, v: Any) -> Any:
        """Accept the command as a single shell-like string."""
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("command must not be empty")
        return v

    @field_validator("strategies", "include", "exclude", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        """Accept comma-separated strings for list options."""
        return _split_csv(v)

    @field_validator("strategies")
    @classmethod
    def validate_strategies(cls, v: List[str]) -> List[str]:
        """Validate that strategies are known removal tiers."""
        if not v:
            raise ValueError("at least one removal strategy is required")
        for strategy in v:
            if strategy not in VALID_STRATEGIES:
                raise ValueError(
                    f"Invalid strategy '{strategy}'. Valid strategies: {VALID_STRATEGIES}"
                )
        return v

    @property
    def use_bulk(self) -> bool:
        return ALL_AT_ONCE in self.strategies

    @property
    def use_per_item(self) -> bool:
        return ONE_BY_ONE in self.strategies

    @classmethod
    def default(cls) -> "RepairConfig":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepairConfig":
        """Create configuration from dictionary.

        Raises:
            ValidationError: If configuration is invalid.
        """
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
