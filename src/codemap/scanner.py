"""Filesystem Scanner: walk a repository and create one node per source file.

The walk uses an explicit stack and visits each directory's entries sorted
folders-first, then by name, so the node order is the same on every run.
Along the way it counts files per extension, runs manifest parsers and
records conventional entry points.
"""

import fnmatch
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from codemap.cache import ContentCache
from codemap.classify import classify_node_type
from codemap.languages import LanguageRegistry
from codemap.manifests import parse_manifest
from codemap.models import GraphNode, ProjectStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 5000
DEFAULT_ENTRY_POINT_MAX_DEPTH = 2


class AnalysisError(Exception):
    """Base exception for dependency analysis failures."""


class ScanError(AnalysisError):
    """The repository root could not be listed."""


# ── Data Classes ──


@dataclass
class ScanResult:
    """Everything the scan pass learned about the repository."""

    nodes: list[GraphNode] = field(default_factory=list)
    stats: ProjectStats = field(default_factory=ProjectStats)
    framework_versions: dict[str, str] = field(default_factory=dict)
    root_manifests: dict[str, str] = field(default_factory=dict)  # filename -> raw content
    truncated: bool = False


# ── Scanner ──


class FileScanner:
    """Walks one repository root.

    Usage::

        scanner = FileScanner("/path/to/repo", default_registry(), ContentCache())
        result = scanner.scan()
    """

    def __init__(
        self,
        root: str | Path,
        registry: LanguageRegistry,
        cache: ContentCache,
        max_files: int = DEFAULT_MAX_FILES,
        entry_point_max_depth: int = DEFAULT_ENTRY_POINT_MAX_DEPTH,
    ):
        self._root = Path(root).resolve()
        self._registry = registry
        self._cache = cache
        self._max_files = max_files
        self._entry_point_max_depth = entry_point_max_depth

        self._skip_dirs = registry.skip_dirs()
        self._entry_points = registry.entry_point_names()
        manifests = registry.manifest_names()
        self._manifest_names = {m for m in manifests if "*" not in m}
        self._manifest_globs = sorted(m for m in manifests if "*" in m)

    @property
    def root(self) -> Path:
        return self._root

    # ── Public API ──

    def scan(self) -> ScanResult:
        """Walk the tree. Raises ScanError if the root itself cannot be listed."""
        result = ScanResult()
        languages: Counter = Counter()

        try:
            root_entries = self._list_dir(self._root)
        except OSError as e:
            raise ScanError(f"Cannot list repository root {self._root}: {e}") from e

        # Stack of (path, relative path, is_dir); pushed reversed so pops follow sort order
        stack: list[tuple[Path, str, bool]] = list(reversed(root_entries))
        while stack:
            path, rel, is_dir = stack.pop()

            if is_dir:
                try:
                    entries = self._list_dir(path, rel)
                except OSError as e:
                    logger.warning("Skipping unreadable directory %s: %s", rel, e)
                    continue
                stack.extend(reversed(entries))
                continue

            if result.stats.total_files >= self._max_files:
                result.truncated = True
                logger.warning(
                    "File cap of %d reached; stopping scan of %s", self._max_files, self._root
                )
                break
            result.stats.total_files += 1
            self._visit_file(path, rel, result, languages)

        result.stats.languages = dict(languages)
        result.stats.truncated = result.truncated
        logger.info(
            "Scanned %d files in %s (%d source files, %d frameworks)",
            result.stats.total_files,
            self._root,
            len(result.nodes),
            len(result.stats.frameworks),
        )
        return result

    # ── Walk Helpers ──

    def _list_dir(self, path: Path, rel: str = "") -> list[tuple[Path, str, bool]]:
        """Child entries of *path* that survive the skip rules, folders first."""
        entries = []
        for child in path.iterdir():
            is_dir = child.is_dir()
            if is_dir and (child.is_symlink() or self._should_skip_dir(child.name)):
                continue
            if not is_dir and not child.is_file():
                continue
            child_rel = f"{rel}/{child.name}" if rel else child.name
            entries.append((child, child_rel, is_dir))
        entries.sort(key=lambda e: (not e[2], e[0].name.lower(), e[0].name))
        return entries

    def _should_skip_dir(self, name: str) -> bool:
        return name in self._skip_dirs or name.endswith(".egg-info")

    def _is_manifest(self, name: str) -> bool:
        if name in self._manifest_names:
            return True
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self._manifest_globs)

    def _visit_file(self, path: Path, rel: str, result: ScanResult, languages: Counter) -> None:
        name = path.name
        ext = path.suffix.lower()
        if ext:
            languages[ext[1:]] += 1

        # 1. Manifests
        if self._is_manifest(name):
            content = self._cache.get(path)
            detected = parse_manifest(name, content, result.framework_versions)
            for framework in detected:
                if framework not in result.stats.frameworks:
                    result.stats.frameworks.append(framework)
            if "/" not in rel:
                result.root_manifests[name] = content

        # 2. Entry points
        if name in self._entry_points and len(rel.split("/")) <= self._entry_point_max_depth:
            result.stats.entry_points.append(rel)

        # 3. Source files become nodes
        if self._registry.for_extension(ext) is None:
            return
        content = self._cache.get(path)
        result.nodes.append(GraphNode(
            id=str(path),
            label=name,
            type=classify_node_type(name, rel, content),
            path=rel,
        ))
