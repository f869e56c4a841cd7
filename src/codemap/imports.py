"""Import Extractor & Resolver: turn import statements into target node ids.

Extraction runs every pattern of a ``LanguageSpec`` over the whole file.
Resolution maps a raw import string to at most one node, using the
strategy named by the file's ``LanguageSpec``. Anything that does not
resolve to a scanned file (standard library, third-party packages) is
silently dropped.

All paths handled here are POSIX paths relative to the repository root.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Optional

from codemap.languages import LanguageRegistry, LanguageSpec, clean_block_entry

logger = logging.getLogger(__name__)

# Longest module-path suffix tried against the file set
MAX_SUFFIX_SEGMENTS = 4

# Where "@/x" and "~/x" may point: the repository root, then src/
ALIAS_ROOTS = ("", "src")

_PATH_SEPARATOR_RE = re.compile(r"[/\\]+")


# ── Extraction ──


@dataclass
class ParsedImport:
    """One import target found in a file, with the names it binds."""

    path: str
    specifiers: list[str] = field(default_factory=list)


def extract_imports(content: str, spec: LanguageSpec) -> list[ParsedImport]:
    """Collect every import in *content*, in pattern order then file order."""
    results: list[ParsedImport] = []
    for pattern in spec.import_patterns:
        for match in pattern.finditer(content):
            raw = spec.extract_path(match)
            if not raw:
                continue
            if "\n" in raw:
                for line in raw.splitlines():
                    entry = clean_block_entry(line)
                    if entry:
                        results.append(ParsedImport(path=entry))
                continue
            results.append(ParsedImport(path=raw, specifiers=spec.extract_specifiers(match)))
    return results


# ── Resolution ──


class ImportResolver:
    """Resolve parsed imports against the set of scanned files.

    Args:
        registry: Language table used to find the ``LanguageSpec`` of a target candidate.
        path_to_id: Relative path -> node id for every node in the graph.

    The suffix indexes used by ``module_path`` resolution are built once
    here and only read afterwards, so one resolver can be shared by worker
    threads.
    """

    def __init__(self, registry: LanguageRegistry, path_to_id: dict[str, str]):
        self._registry = registry
        self._path_to_id = path_to_id
        # spec name -> path suffix (no extension) -> rel paths
        self._file_suffixes: dict[str, dict[str, list[str]]] = {}
        # spec name -> directory suffix -> rel paths of files directly inside
        self._dir_suffixes: dict[str, dict[str, list[str]]] = {}
        self._strategies = {
            "relative": self._resolve_relative,
            "header": self._resolve_header,
            "dotted": self._resolve_dotted,
            "module_path": self._resolve_module_path,
            "namespace": self._resolve_namespace,
        }
        self._build_suffix_indexes()

    def _build_suffix_indexes(self) -> None:
        for rel in sorted(self._path_to_id):
            stem, ext = posixpath.splitext(rel)
            spec = self._registry.for_extension(ext)
            if spec is None or spec.resolver != "module_path":
                continue
            parts = stem.split("/")
            files = self._file_suffixes.setdefault(spec.name, {})
            for k in range(1, min(MAX_SUFFIX_SEGMENTS, len(parts)) + 1):
                files.setdefault("/".join(parts[-k:]), []).append(rel)
            dir_parts = parts[:-1]
            dirs = self._dir_suffixes.setdefault(spec.name, {})
            for k in range(1, min(MAX_SUFFIX_SEGMENTS, len(dir_parts)) + 1):
                dirs.setdefault("/".join(dir_parts[-k:]), []).append(rel)

    def resolve(self, source_path: str, imp: ParsedImport, spec: LanguageSpec) -> Optional[str]:
        """Return the node id *imp* refers to, or None for external imports."""
        target = imp.path.strip()
        if not target:
            return None
        current_dir = posixpath.dirname(source_path)

        for prefix in spec.alias_prefixes:
            if target.startswith(prefix):
                return self._probe_roots(target[len(prefix):], ALIAS_ROOTS, spec)
        if target.startswith(("./", "../")) or target in (".", ".."):
            return self._probe(posixpath.join(current_dir, target), spec)
        if target.startswith("/"):
            return self._probe(target.lstrip("/"), spec)

        return self._strategies[spec.resolver](target, current_dir, spec)

    # ── Candidate probing ──

    def _probe(self, candidate: str, spec: LanguageSpec) -> Optional[str]:
        """Exact node at *candidate*, else the first probe suffix that exists."""
        rel = posixpath.normpath(candidate) if candidate else "."
        if rel == ".." or rel.startswith("../"):
            return None
        if rel != ".":
            node_id = self._path_to_id.get(rel)
            if node_id:
                return node_id
        for suffix in spec.probe_suffixes:
            if rel == ".":
                if not suffix.startswith("/"):
                    continue
                probe = suffix[1:]
            else:
                probe = rel + suffix
            node_id = self._path_to_id.get(probe)
            if node_id:
                return node_id
        return None

    def _probe_roots(self, target: str, roots: tuple[str, ...], spec: LanguageSpec) -> Optional[str]:
        for root in roots:
            node_id = self._probe(posixpath.join(root, target) if root else target, spec)
            if node_id:
                return node_id
        return None

    # ── Strategies ──

    def _resolve_relative(self, target: str, current_dir: str, spec: LanguageSpec) -> Optional[str]:
        # Bare specifiers are packages, except under the language's search roots
        return self._probe_roots(target, spec.search_roots, spec)

    def _resolve_header(self, target: str, current_dir: str, spec: LanguageSpec) -> Optional[str]:
        return self._probe_roots(target, (current_dir, "") + spec.search_roots, spec)

    def _resolve_dotted(self, target: str, current_dir: str, spec: LanguageSpec) -> Optional[str]:
        module = target.lstrip(".")
        dots = len(target) - len(module)
        module_path = module.replace(".", "/")
        if dots:
            base = posixpath.join(current_dir, *([".."] * (dots - 1)))
            return self._probe(posixpath.join(base, module_path), spec)
        return self._probe_roots(module_path, ("",) + spec.search_roots, spec)

    def _resolve_namespace(self, target: str, current_dir: str, spec: LanguageSpec) -> Optional[str]:
        segments = [s for s in target.split("::") if s]
        if not segments:
            return None

        head = segments[0]
        if head == "crate":
            base, rest = _crate_root(current_dir), segments[1:]
        elif head == "super":
            base, rest = current_dir, segments
            while rest and rest[0] == "super":
                base = posixpath.join(base, "..")
                rest = rest[1:]
        elif head == "self":
            base, rest = current_dir, segments[1:]
        else:
            base, rest = current_dir, segments

        # The last segment may name an item (struct, fn) inside the module
        for end in (len(rest), len(rest) - 1):
            if end <= 0:
                continue
            node_id = self._probe(posixpath.join(base, *rest[:end]), spec)
            if node_id:
                return node_id
        return None

    def _resolve_module_path(self, target: str, current_dir: str, spec: LanguageSpec) -> Optional[str]:
        if "/" in target or "\\" in target:
            segments = [s for s in _PATH_SEPARATOR_RE.split(target) if s]
        else:
            segments = [s for s in target.split(".") if s]
        if not segments:
            return None
        stem, ext = posixpath.splitext(segments[-1])
        if ext and ext.lower() in spec.extensions:
            segments[-1] = stem

        files = self._file_suffixes.get(spec.name, {})
        dirs = self._dir_suffixes.get(spec.name, {})
        # Static members: com.foo.Bar.method names the file com/foo/Bar
        attempts = [segments] + ([segments[:-1]] if len(segments) > 1 else [])
        for segs in attempts:
            for k in range(min(MAX_SUFFIX_SEGMENTS, len(segs)), 0, -1):
                key = "/".join(segs[-k:])
                matches = files.get(key)
                if matches:
                    return self._path_to_id[matches[0]]
                members = dirs.get(key)
                if members:
                    return self._path_to_id[_package_file(members)]
        return None


# ── Helpers ──


def _crate_root(current_dir: str) -> str:
    """Nearest enclosing ``src`` directory, else ``src`` at the root."""
    parts = current_dir.split("/") if current_dir else []
    if "src" in parts:
        last = len(parts) - 1 - parts[::-1].index("src")
        return "/".join(parts[: last + 1])
    return "src"


def _package_file(members: list[str]) -> str:
    """Representative file of a package directory.

    Prefers ``<dir>/<dir>.<ext>``, then the first non-test file, then the
    first file. *members* is sorted.
    """
    package_dir = posixpath.dirname(members[0])
    candidates = [m for m in members if posixpath.dirname(m) == package_dir]
    dirname = posixpath.basename(package_dir)
    for rel in candidates:
        if posixpath.splitext(posixpath.basename(rel))[0] == dirname:
            return rel
    for rel in candidates:
        if "test" not in posixpath.basename(rel).lower():
            return rel
    return candidates[0]
