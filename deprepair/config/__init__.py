"""Configuration schema and validation for deprepair."""

from .schema import (
    ALL_AT_ONCE,
    DEFAULT_COMMAND,
    ONE_BY_ONE,
    VALID_STRATEGIES,
    RepairConfig,
)

__all__ = [
    "ALL_AT_ONCE",
    "DEFAULT_COMMAND",
    "ONE_BY_ONE",
    "VALID_STRATEGIES",
    "RepairConfig",
]
