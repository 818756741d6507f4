"""Helpers for loading repair configuration and analysis input from TOML/JSON.

This module provides two entry points:

* `load_repair_config` accepts None, a dict, a path to a .toml/.json file
  or an inline TOML/JSON string and returns a validated RepairConfig.
* `load_analysis_input` reads the used-undeclared / unused-declared
  coordinate lists produced by an external dependency analysis.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union
import json
import logging

from deprepair.config import RepairConfig
from deprepair.manifest.coordinate import Coordinate

logger = logging.getLogger("deprepair.runtime.config_loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]

USED_UNDECLARED_KEY = "used_undeclared"
UNUSED_DECLARED_KEY = "unused_declared"


def _parse_toml(text: str) -> Dict[str, Any]:
    """Parse TOML text into a dict.

    Uses stdlib tomllib on Python 3.11+ and `tomli` on older interpreters.
    """
    try:
        import tomllib  # type: ignore[attr-defined]
        return tomllib.loads(text)
    except ImportError as exc:  # pragma: no cover - Python <3.11 path
        try:
            import tomli  # type: ignore[import-not-found]

            return tomli.loads(text)
        except ImportError as inner_exc:
            raise RuntimeError(
                "TOML configuration requires Python 3.11+ (tomllib) or the "
                "`tomli` package installed"
            ) from inner_exc


def _load_mapping(source: Union[str, Path]) -> Dict[str, Any]:
    """Read a TOML/JSON file, or parse an inline TOML/JSON string."""
    path = Path(source)
    text: Optional[str] = None
    fmt: Optional[str] = None

    if path.exists():
        # Treat as filesystem path
        text = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        if suffix in {".toml", ".tml"}:
            fmt = "toml"
        elif suffix == ".json":
            fmt = "json"
        else:
            # Fallback: guess from content
            stripped = text.lstrip()
            fmt = "json" if stripped.startswith(("{", "[")) else "toml"
        logger.info("Loading configuration from file: %s (fmt=%s)", path, fmt)
    else:
        # Inline string; auto-detect format
        text = str(source)
        stripped = text.lstrip()
        fmt = "json" if stripped.startswith(("{", "[")) else "toml"
        logger.info("Loading configuration from inline %s string", fmt)

    if fmt == "json":
        data = json.loads(text)
    else:
        data = _parse_toml(text)

    if not isinstance(data, dict):
        raise ValueError("Top-level configuration must be a mapping/dict")
    return data


def load_repair_config(source: ConfigSource) -> RepairConfig:
    """Load RepairConfig from various configuration sources.

    Args:
        source: One of:
            * None: returns RepairConfig.default()
            * dict: treated as already-parsed configuration mapping
            * str/Path: either a filesystem path to a .toml/.json file,
              or an inline TOML/JSON string (auto-detected)

    Returns:
        RepairConfig instance.

    Raises:
        ValueError: If the source cannot be parsed (JSON/TOML decode errors
            and pydantic validation errors are both ValueError subclasses).
    """
    if source is None:
        logger.debug("No config source provided; using default RepairConfig")
        return RepairConfig.default()

    if isinstance(source, dict):
        logger.debug("Loading RepairConfig from provided dict")
        return RepairConfig.from_dict(source)

    if isinstance(source, (str, Path)):
        data = _load_mapping(source)
        # Allow a [deprepair] table so the settings can share a file.
        if "deprepair" in data and isinstance(data["deprepair"], dict):
            data = data["deprepair"]
        return RepairConfig.from_dict(data)

    raise TypeError(f"Unsupported config source type: {type(source)!r}")


def _coordinates(data: Dict[str, Any], key: str) -> Set[Coordinate]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        raise ValueError(f"'{key}' must be a list of coordinates")
    result: Set[Coordinate] = set()
    for item in raw:
        if isinstance(item, dict):
            result.add(
                Coordinate(
                    str(item.get("groupId") or item.get("group_id") or ""),
                    str(item.get("artifactId") or item.get("artifact_id") or ""),
                    version=item.get("version"),
                    scope=item.get("scope") or "compile",
                )
            )
        else:
            result.add(Coordinate.parse(str(item)))
    return result


def load_analysis_input(
    source: Union[str, Path],
) -> Tuple[Set[Coordinate], Set[Coordinate]]:
    """Load (used_undeclared, unused_declared) coordinate sets.

    Entries are either ``g:a[:version[:scope]]`` strings or tables with
    ``groupId``/``artifactId``/``version``/``scope`` keys.

    Raises:
        ValueError: If the input is malformed.
    """
    data = _load_mapping(source)
    used = _coordinates(data, USED_UNDECLARED_KEY)
    unused = _coordinates(data, UNUSED_DECLARED_KEY)
    logger.info(
        "Loaded %d used-undeclared and %d unused-declared coordinates",
        len(used),
        len(unused),
    )
    return used, unused


def parse_coordinates(values: Optional[List[str]]) -> Set[Coordinate]:
    """Parse repeated command-line coordinate arguments."""
    return {Coordinate.parse(value) for value in values or []}


__all__ = [
    "load_analysis_input",
    "load_repair_config",
    "parse_coordinates",
]
