"""Manifest model: coordinates, backups and the structured POM editor."""

from .backup import DEFAULT_BACKUP_SUFFIX, ManifestBackup, backup_path_for
from .coordinate import DEFAULT_SCOPE, Coordinate
from .editor import ManifestDocument, ManifestEditor
from .filter import CoordinateFilter
from .formatting import FormattingPolicy
from .project import PROJECT_VERSION_PLACEHOLDER, ProjectInfo, read_project_info

__all__ = [
    "DEFAULT_BACKUP_SUFFIX",
    "DEFAULT_SCOPE",
    "PROJECT_VERSION_PLACEHOLDER",
    "Coordinate",
    "CoordinateFilter",
    "FormattingPolicy",
    "ManifestBackup",
    "ManifestDocument",
    "ManifestEditor",
    "ProjectInfo",
    "backup_path_for",
    "read_project_info",
]
