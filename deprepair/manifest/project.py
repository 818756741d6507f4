"""Project-level facts read from a Maven POM.

Provides the project's own coordinates, its packaging, and the property
table used to resolve ``${...}`` placeholders in dependency entries.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from deprepair.errors import IOFailure, MalformedManifest

logger = logging.getLogger("deprepair.manifest.project")

PROJECT_VERSION_PLACEHOLDER = "${project.version}"


@dataclass
class ProjectInfo:
    """Identity and properties of the project owning a manifest."""

    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    properties: Dict[str, str] = field(default_factory=dict)

    @property
    def is_aggregator(self) -> bool:
        """True for ``pom`` packaging, which has no code of its own."""
        return self.packaging == "pom"


def local_name(tag: object) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def detect_namespace(root: ET.Element) -> str:
    if isinstance(root.tag, str) and root.tag.startswith("{"):
        return root.tag.split("}")[0][1:]
    return ""


def ns_tag(tag: str, ns: str) -> str:
    """Qualify a ``/``-separated child path with the document namespace."""
    if not ns:
        return tag
    return "/".join(f"{{{ns}}}{part}" for part in tag.split("/"))


def find_text(elem: ET.Element, tag: str, ns: str) -> Optional[str]:
    target = elem.find(ns_tag(tag, ns))
    if target is not None and target.text:
        return target.text.strip()
    return None


def extract_gav(root: ET.Element, ns: str) -> Tuple[str, str, str]:
    """Return the project's groupId, artifactId and version.

    Group and version fall back to the ``<parent>`` block when the project
    inherits them.
    """
    group_id = find_text(root, "groupId", ns)
    artifact_id = find_text(root, "artifactId", ns) or ""
    version = find_text(root, "version", ns)

    parent = root.find(ns_tag("parent", ns))
    if parent is not None:
        group_id = group_id or find_text(parent, "groupId", ns)
        version = version or find_text(parent, "version", ns)

    return (group_id or "", artifact_id, version or "")


def collect_properties(root: ET.Element, ns: str) -> Dict[str, str]:
    """Build the placeholder table for a POM root element.

    Includes every ``<properties>`` entry plus the ``project.*`` identity
    keys and their legacy ``pom.*`` aliases.
    """
    props: Dict[str, str] = {}
    props_node = root.find(ns_tag("properties", ns))
    if props_node is not None:
        for child in props_node:
            name = local_name(child.tag)
            if name:
                props[name] = (child.text or "").strip()

    group_id, artifact_id, version = extract_gav(root, ns)
    for prefix in ("project", "pom"):
        if group_id:
            props[f"{prefix}.groupId"] = group_id
        if artifact_id:
            props[f"{prefix}.artifactId"] = artifact_id
        if version:
            props[f"{prefix}.version"] = version
    return props


def resolve_placeholders(text: str, properties: Dict[str, str]) -> str:
    """Substitute every known ``${key}`` in ``text`` literally.

    Unknown placeholders are left as-is.
    """
    resolved = text
    for key, value in properties.items():
        token = "${" + key + "}"
        if token in resolved:
            resolved = resolved.replace(token, value)
    return resolved


def project_info_from_root(root: ET.Element) -> ProjectInfo:
    ns = detect_namespace(root)
    group_id, artifact_id, version = extract_gav(root, ns)
    return ProjectInfo(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        packaging=find_text(root, "packaging", ns) or "jar",
        properties=collect_properties(root, ns),
    )


def read_project_info(path: Path) -> ProjectInfo:
    """Parse a POM and return its project facts.

    Raises:
        IOFailure: If the file cannot be read.
        MalformedManifest: If the file is not well-formed XML.
    """
    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise MalformedManifest(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise IOFailure(f"Failed to read {path}: {exc}") from exc

    info = project_info_from_root(tree.getroot())
    logger.debug(
        "Project %s:%s:%s (%s)",
        info.group_id,
        info.artifact_id,
        info.version,
        info.packaging,
    )
    return info


__all__ = [
    "PROJECT_VERSION_PLACEHOLDER",
    "ProjectInfo",
    "collect_properties",
    "detect_namespace",
    "extract_gav",
    "find_text",
    "local_name",
    "ns_tag",
    "project_info_from_root",
    "read_project_info",
    "resolve_placeholders",
]
