"""In-place editing of the dependency list of a Maven POM.

The manifest is parsed into an ElementTree with comments and processing
instructions kept as nodes. Text outside the root element (XML declaration,
license headers) is carried over verbatim, and line endings and byte-order
mark are restored on write, so committing an unchanged document reproduces
the original element content.
"""

from __future__ import annotations

import codecs
import io
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from deprepair.errors import InvalidState, IOFailure, MalformedManifest, NotFound
from deprepair.manifest.backup import write_atomic
from deprepair.manifest.coordinate import DEFAULT_SCOPE, Coordinate
from deprepair.manifest.formatting import FormattingPolicy
from deprepair.manifest.project import (
    PROJECT_VERSION_PLACEHOLDER,
    ProjectInfo,
    find_text,
    local_name,
    project_info_from_root,
    resolve_placeholders,
)

logger = logging.getLogger("deprepair.manifest.editor")

DEPENDENCIES_TAG = "dependencies"
DEPENDENCY_TAG = "dependency"

# Markup that may precede the root element, or the root's start tag itself.
_PROLOG_TOKEN = re.compile(
    r"<!--.*?-->|<\?.*?\?>|<!DOCTYPE(?:[^\[>]|\[.*?\])*>|<([A-Za-z_][\w.:-]*)",
    re.DOTALL,
)
_ENCODING_DECL = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


def _is_element(node: ET.Element) -> bool:
    return isinstance(node.tag, str)


def _split_document(text: str) -> Tuple[str, str, str]:
    """Split raw XML into (prolog, root name, epilog)."""
    root_name = ""
    prolog_end = 0
    for match in _PROLOG_TOKEN.finditer(text):
        if match.group(1):
            root_name = match.group(1)
            prolog_end = match.start()
            break
    if not root_name:
        return "", "", ""

    epilog = ""
    close_at = text.rfind(f"</{root_name}")
    if close_at != -1:
        close_end = text.find(">", close_at)
        if close_end != -1:
            epilog = text[close_end + 1:]
    return text[:prolog_end], root_name, epilog


class ManifestDocument:
    """Structured in-memory copy of a manifest file.

    Owns exactly one dependency-list node, the first ``<dependencies>``
    element directly below the root.
    """

    def __init__(
        self,
        root: ET.Element,
        dependencies: ET.Element,
        prolog: str = "",
        epilog: str = "",
        namespaces: Optional[List[Tuple[str, str]]] = None,
        encoding: str = "utf-8",
        crlf: bool = False,
        bom: bool = False,
    ) -> None:
        self.root = root
        self.dependencies = dependencies
        self.prolog = prolog
        self.epilog = epilog
        self.namespaces = namespaces or []
        self.encoding = encoding
        self.crlf = crlf
        self.bom = bom
        self.namespace = ""
        if root.tag.startswith("{"):
            self.namespace = root.tag.split("}")[0][1:]

    @classmethod
    def from_bytes(cls, data: bytes, source: str = "<manifest>") -> "ManifestDocument":
        """Parse manifest bytes.

        Raises:
            MalformedManifest: If the content is not well-formed XML or has no
                dependency list.
        """
        bom = data.startswith(codecs.BOM_UTF8)
        if bom:
            data = data[len(codecs.BOM_UTF8):]
        declared = _ENCODING_DECL.match(data)
        encoding = declared.group(1).decode("ascii") if declared else "utf-8"
        try:
            text = data.decode(encoding)
        except (LookupError, UnicodeDecodeError) as exc:
            raise MalformedManifest(f"Failed to decode {source}: {exc}") from exc

        namespaces: List[Tuple[str, str]] = []
        try:
            for _event, (prefix, uri) in ET.iterparse(
                io.StringIO(text), events=("start-ns",)
            ):
                namespaces.append((prefix, uri))
            parser = ET.XMLParser(
                target=ET.TreeBuilder(insert_comments=True, insert_pis=True)
            )
            parser.feed(text)
            root = parser.close()
        except ET.ParseError as exc:
            raise MalformedManifest(f"Failed to parse {source}: {exc}") from exc
        # Trailing text belongs to the epilog.
        root.tail = None

        dependencies = None
        for child in root:
            if _is_element(child) and local_name(child.tag) == DEPENDENCIES_TAG:
                dependencies = child
                break
        if dependencies is None:
            raise MalformedManifest(f"No <dependencies> node in {source}")

        prolog, _root_name, epilog = _split_document(text)
        return cls(
            root,
            dependencies,
            prolog=prolog,
            epilog=epilog,
            namespaces=namespaces,
            encoding=encoding,
            crlf="\r\n" in text,
            bom=bom,
        )

    def qualify(self, tag: str) -> str:
        """Put ``tag`` in the document's default namespace."""
        return f"{{{self.namespace}}}{tag}" if self.namespace else tag

    def entries(self) -> List[ET.Element]:
        """Element children of the dependency list (comments skipped)."""
        return [child for child in self.dependencies if _is_element(child)]

    def to_bytes(self) -> bytes:
        """Serialize the document back to bytes.

        Declared prefixes (including the default namespace, as the empty
        prefix) are registered with ElementTree so elements and attributes
        keep their original qualified names instead of ``ns0:`` aliases.

        Raises:
            MalformedManifest: If the tree cannot be written back.
        """
        for prefix, uri in self.namespaces:
            try:
                ET.register_namespace(prefix, uri)
            except ValueError:
                logger.debug("Cannot register reserved prefix %s", prefix)

        try:
            body = ET.tostring(self.root, encoding="unicode")
        except (TypeError, ValueError) as exc:
            raise MalformedManifest(f"Cannot serialize manifest: {exc}") from exc

        text = self.prolog + body + self.epilog
        if self.crlf:
            text = text.replace("\r\n", "\n").replace("\n", "\r\n")
        # Characters outside the declared encoding become character references.
        data = text.encode(self.encoding, errors="xmlcharrefreplace")
        if self.bom:
            data = codecs.BOM_UTF8 + data
        return data


class ManifestEditor:
    """Editing session over one manifest file.

    The session is valid from :meth:`open` until :meth:`commit` (or
    :meth:`close`); any later call raises :class:`InvalidState`. Used as a
    context manager, leaving the block without committing discards the edits.

    Example:
        editor = ManifestEditor.open(pom, indent="  ")
        editor.add_dependency(Coordinate("org.slf4j", "slf4j-api", "2.0.9"))
        editor.commit()
    """

    def __init__(
        self,
        path: Path,
        document: ManifestDocument,
        indent: str = "    ",
        dependency_managed: bool = False,
        properties: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.path = path
        self.document = document
        self.dependency_managed = dependency_managed
        self.policy = FormattingPolicy(indent=indent)
        self.project: ProjectInfo = project_info_from_root(document.root)
        self.properties: Dict[str, str] = dict(self.project.properties)
        if properties:
            self.properties.update(properties)
        self._open = True

    @classmethod
    def open(
        cls,
        path: Path,
        indent: str = "    ",
        dependency_managed: bool = False,
        properties: Optional[Mapping[str, str]] = None,
    ) -> "ManifestEditor":
        """Parse the manifest at ``path`` into an editing session.

        Raises:
            IOFailure: If the file cannot be read.
            MalformedManifest: If it is not well-formed or lacks a dependency
                list.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise IOFailure(f"Failed to read {path}: {exc}") from exc
        document = ManifestDocument.from_bytes(data, source=str(path))
        logger.debug("Opened %s (%d dependencies)", path, len(document.entries()))
        return cls(
            path,
            document,
            indent=indent,
            dependency_managed=dependency_managed,
            properties=properties,
        )

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "ManifestEditor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._open = False

    def add_dependency(self, coordinate: Coordinate) -> ET.Element:
        """Append a dependency entry for ``coordinate``.

        Returns:
            ET.Element: The new ``<dependency>`` element.
        """
        self._ensure_open()
        if any(existing == coordinate for existing in self.declared()):
            logger.warning("%s is already declared in %s", coordinate.key, self.path)

        fields = [
            ("groupId", coordinate.group_id),
            ("artifactId", coordinate.artifact_id),
        ]
        version = self._version_text(coordinate)
        if version is not None:
            fields.append(("version", version))
        if coordinate.scope != DEFAULT_SCOPE:
            fields.append(("scope", coordinate.scope))

        doc = self.document
        entry = self.policy.build(
            doc.qualify(DEPENDENCY_TAG),
            [(doc.qualify(tag), value) for tag, value in fields],
            level=2,
        )
        self.policy.append(doc.dependencies, entry, level=2)
        return entry

    def remove_dependency(self, coordinate: Coordinate) -> int:
        """Remove every entry whose resolved groupId/artifactId match.

        Returns:
            int: Number of entries removed (duplicates are all removed).

        Raises:
            NotFound: If no entry matched; the document is left unchanged.
        """
        self._ensure_open()
        matches = [
            entry
            for entry in self.document.entries()
            if coordinate.matches(*self._resolved_identity(entry))
        ]
        if not matches:
            raise NotFound(f"Dependency {coordinate.key} not found in {self.path}")
        for entry in matches:
            self.policy.detach(self.document.dependencies, entry)
        if len(matches) > 1:
            logger.info("Removed %d declarations of %s", len(matches), coordinate.key)
        return len(matches)

    def declared(self) -> List[Coordinate]:
        """Coordinates currently declared, with placeholders resolved.

        Entries without a groupId or artifactId are skipped.
        """
        self._ensure_open()
        ns = self.document.namespace
        result: List[Coordinate] = []
        for entry in self.document.entries():
            group_id, artifact_id = self._resolved_identity(entry)
            if not group_id or not artifact_id:
                continue
            version = find_text(entry, "version", ns)
            scope = find_text(entry, "scope", ns) or DEFAULT_SCOPE
            result.append(
                Coordinate(
                    group_id,
                    artifact_id,
                    version=resolve_placeholders(version, self.properties) if version else None,
                    scope=scope,
                )
            )
        return result

    def commit(self) -> None:
        """Write the document back to disk and end the session.

        Raises:
            IOFailure: If the manifest cannot be written.
            MalformedManifest: If the tree cannot be serialized.
            InvalidState: If the session already ended.
        """
        self._ensure_open()
        self._open = False
        data = self.document.to_bytes()
        try:
            write_atomic(self.path, data)
        except OSError as exc:
            raise IOFailure(f"Failed to write {self.path}: {exc}") from exc
        logger.debug("Committed %s", self.path)

    def close(self) -> None:
        """End the session without writing."""
        self._open = False

    def _version_text(self, coordinate: Coordinate) -> Optional[str]:
        version = coordinate.version
        own_version = self.project.version
        if version and (version == PROJECT_VERSION_PLACEHOLDER or version == own_version):
            return PROJECT_VERSION_PLACEHOLDER
        if self.dependency_managed:
            return None
        return version

    def _resolved_identity(self, entry: ET.Element) -> Tuple[str, str]:
        ns = self.document.namespace
        group_id = find_text(entry, "groupId", ns) or ""
        artifact_id = find_text(entry, "artifactId", ns) or ""
        return (
            resolve_placeholders(group_id, self.properties),
            resolve_placeholders(artifact_id, self.properties),
        )

    def _ensure_open(self) -> None:
        if not self._open:
            raise InvalidState(f"Editing session for {self.path} has ended")


__all__ = ["ManifestDocument", "ManifestEditor", "DEPENDENCIES_TAG", "DEPENDENCY_TAG"]
