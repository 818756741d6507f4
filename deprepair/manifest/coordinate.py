"""Dependency coordinate value type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_SCOPE = "compile"


@dataclass(frozen=True, eq=False)
class Coordinate:
    """Identity of a Maven dependency.

    Two coordinates are equal when their group and artifact match and, if
    both carry a version, the versions match too. Hashing only uses the
    group and artifact so a versioned and an unversioned coordinate for the
    same artifact land in the same bucket.

    Attributes:
        group_id: Maven groupId.
        artifact_id: Maven artifactId.
        version: Optional version; absent when matching by identity only.
        scope: Dependency scope, ``compile`` by default.
    """

    group_id: str
    artifact_id: str
    version: Optional[str] = None
    scope: str = DEFAULT_SCOPE

    def __post_init__(self) -> None:
        if not self.group_id or not self.group_id.strip():
            raise ValueError("groupId must not be empty")
        if not self.artifact_id or not self.artifact_id.strip():
            raise ValueError("artifactId must not be empty")
        if not self.scope:
            object.__setattr__(self, "scope", DEFAULT_SCOPE)

    @classmethod
    def parse(cls, text: str) -> "Coordinate":
        """Parse ``groupId:artifactId[:version[:scope]]``.

        Empty version or scope segments are treated as absent, so
        ``g:a::test`` is an unversioned test-scoped coordinate.
        """
        parts = [part.strip() for part in text.strip().split(":")]
        if len(parts) < 2 or len(parts) > 4:
            raise ValueError(
                f"Invalid coordinate '{text}'. Expected groupId:artifactId[:version[:scope]]"
            )
        group_id, artifact_id = parts[0], parts[1]
        version = parts[2] if len(parts) > 2 and parts[2] else None
        scope = parts[3] if len(parts) > 3 and parts[3] else DEFAULT_SCOPE
        return cls(group_id, artifact_id, version=version, scope=scope)

    @property
    def key(self) -> str:
        """``groupId:artifactId`` identity string."""
        return f"{self.group_id}:{self.artifact_id}"

    def matches(self, group_id: str, artifact_id: str) -> bool:
        return self.group_id == group_id and self.artifact_id == artifact_id

    def _sort_key(self) -> tuple:
        return (self.group_id, self.artifact_id, self.version or "")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        if not self.matches(other.group_id, other.artifact_id):
            return False
        if self.version is not None and other.version is not None:
            return self.version == other.version
        return True

    def __hash__(self) -> int:
        return hash((self.group_id, self.artifact_id))

    def __lt__(self, other: "Coordinate") -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __le__(self, other: "Coordinate") -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return self == other or self < other

    def __str__(self) -> str:
        text = self.key
        if self.version:
            text = f"{text}:{self.version}"
        if self.scope != DEFAULT_SCOPE:
            text = f"{text}:{self.scope}" if self.version else f"{text}::{self.scope}"
        return text


__all__ = ["Coordinate", "DEFAULT_SCOPE"]
