"""Language Parser Registry: per-language import patterns and conventions.

Each supported language is described by a small ``LanguageSpec`` record:
regex import patterns, two pure extractor functions (import path and named
specifiers), the resolution strategy used by ``codemap.imports``, plus the
entry-point filenames, manifest filenames and directories to skip for that
ecosystem.

Detection is deliberately heuristic. Patterns approximate each grammar well
enough to find import statements; they are not parsers.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

# Directories skipped regardless of which languages are registered
VCS_DIRS = (".git", ".hg", ".svn")

# Resolution strategies understood by codemap.imports.ImportResolver
RESOLVERS = ("relative", "dotted", "module_path", "namespace", "header")


# ── Data Classes ──


@dataclass(frozen=True)
class LanguageSpec:
    """Capability record for one language.

    ``extract_path`` returns the raw import target for a match, ``None`` to
    skip the match, or a newline-separated blob for grouped import blocks
    (the caller splits and cleans the entries).
    """

    name: str
    extensions: tuple[str, ...]
    import_patterns: tuple[re.Pattern, ...]
    extract_path: Callable[[re.Match], Optional[str]]
    extract_specifiers: Callable[[re.Match], list[str]]
    resolver: str = "relative"
    entry_points: tuple[str, ...] = ()
    manifests: tuple[str, ...] = ()
    skip_dirs: tuple[str, ...] = ()
    default_extension: str = ""
    probe_suffixes: tuple[str, ...] = ()
    alias_prefixes: tuple[str, ...] = ()
    search_roots: tuple[str, ...] = ()

    def __post_init__(self):
        if self.resolver not in RESOLVERS:
            raise ValueError(f"Unknown resolver {self.resolver!r} for {self.name}")


class LanguageRegistry:
    """Extension -> LanguageSpec lookup. The last registration for an extension wins."""

    def __init__(self, specs: Iterable[LanguageSpec] = ()):
        self._by_extension: dict[str, LanguageSpec] = {}
        self._specs: list[LanguageSpec] = []
        for spec in specs:
            self.register(spec)

    def register(self, spec: LanguageSpec) -> None:
        self._specs.append(spec)
        for ext in spec.extensions:
            self._by_extension[ext.lower()] = spec

    def for_extension(self, ext: str) -> Optional[LanguageSpec]:
        return self._by_extension.get(ext.lower())

    def supported_extensions(self) -> set[str]:
        return set(self._by_extension)

    def specs(self) -> list[LanguageSpec]:
        """Specs still reachable through at least one extension."""
        live = {id(s) for s in self._by_extension.values()}
        return [s for s in self._specs if id(s) in live]

    def skip_dirs(self) -> set[str]:
        dirs = set(VCS_DIRS)
        for spec in self._specs:
            dirs.update(spec.skip_dirs)
        return dirs

    def entry_point_names(self) -> set[str]:
        names: set[str] = set()
        for spec in self._specs:
            names.update(spec.entry_points)
        return names

    def manifest_names(self) -> set[str]:
        names: set[str] = set()
        for spec in self._specs:
            names.update(spec.manifests)
        return names


# ── Shared Helpers ──

_QUOTED_RE = re.compile(r"""["'`]([^"'`]+)["'`]""")
_ALIAS_SPLIT_RE = re.compile(r"\s+as\s+")


def clean_block_entry(entry: str) -> Optional[str]:
    """Clean one line of a grouped import block.

    Strips comments, quotes, alias prefixes (Go ``f "fmt"``), ``as`` suffixes
    and trailing punctuation. Returns None for blank or comment-only lines.
    """
    entry = entry.split("//")[0].split("#")[0].strip()
    if not entry:
        return None
    quoted = _QUOTED_RE.search(entry)
    if quoted:
        return quoted.group(1).strip() or None
    entry = _ALIAS_SPLIT_RE.split(entry)[0]
    entry = entry.strip().strip(",;()").strip()
    return entry or None


def _group(match: re.Match, name: str) -> Optional[str]:
    return match.groupdict().get(name)


def _path_group(match: re.Match) -> Optional[str]:
    value = _group(match, "path")
    return value.strip() if value else None


def _no_specifiers(match: re.Match) -> list[str]:
    return []


def _split_names(text: str) -> list[str]:
    """Split ``a, b as c, (d)`` into ``[a, b, d]``."""
    names = []
    for part in text.replace("(", " ").replace(")", " ").split(","):
        name = _ALIAS_SPLIT_RE.split(part.strip())[0].strip()
        if name:
            names.append(name)
    return names


def _last_segment(match: re.Match) -> list[str]:
    path = _path_group(match)
    if not path:
        return []
    last = re.split(r"[./\\:]+", path)[-1]
    return [last] if last else []


# ── JavaScript / TypeScript ──

# import X, { a, b as c } from 'module'   /   import type { T } from 'module'
_JS_IMPORT_FROM_RE = re.compile(
    r"""^[ \t]*import\s+(?:type\s+)?(?P<names>[\w$*{}\s,]+?)\s+from\s+['"](?P<path>[^'"]+)['"]""",
    re.MULTILINE,
)

# import 'module'  (side-effect)
_JS_IMPORT_SIDE_EFFECT_RE = re.compile(
    r"""^[ \t]*import\s+['"](?P<path>[^'"]+)['"]""", re.MULTILINE
)

# export { a } from 'module'   /   export * from 'module'
_JS_REEXPORT_RE = re.compile(
    r"""^[ \t]*export\s+(?:type\s+)?(?P<names>\*(?:\s+as\s+\w+)?|\{[^}]*\})\s+from\s+['"](?P<path>[^'"]+)['"]""",
    re.MULTILINE,
)

# require('module')
_JS_REQUIRE_RE = re.compile(
    r"""\brequire\s*\(\s*['"](?P<path>[^'"]+)['"]\s*\)"""
)

_JS_PATTERNS = (
    _JS_IMPORT_FROM_RE,
    _JS_IMPORT_SIDE_EFFECT_RE,
    _JS_REEXPORT_RE,
    _JS_REQUIRE_RE,
)

_JS_NAMESPACE_RE = re.compile(r"\*\s+as\s+([\w$]+)")


def _js_specifiers(match: re.Match) -> list[str]:
    clause = _group(match, "names")
    if not clause:
        return []
    clause = clause.strip()
    names: list[str] = []
    brace = re.search(r"\{([^}]*)\}", clause)
    head = clause[: brace.start()] if brace else clause
    for part in head.split(","):
        part = part.strip()
        if not part:
            continue
        ns = _JS_NAMESPACE_RE.match(part)
        names.append(ns.group(1) if ns else part)
    if brace:
        for part in brace.group(1).split(","):
            part = part.strip()
            if part.startswith("type "):
                part = part[5:].strip()
            name = _ALIAS_SPLIT_RE.split(part)[0].strip()
            if name:
                names.append(name)
    return names


_JS_PROBES = (
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".vue",
    ".svelte",
    "/index.ts",
    "/index.tsx",
    "/index.js",
    "/index.jsx",
)

_JS_SKIP_DIRS = (
    "node_modules",
    ".next",
    ".nuxt",
    ".svelte-kit",
    ".turbo",
    ".vercel",
    ".cache",
    "dist",
    "build",
    "out",
    "coverage",
    "bower_components",
)

_JS_ENTRY_POINTS = (
    "page.tsx",
    "page.jsx",
    "layout.tsx",
    "layout.jsx",
    "index.ts",
    "index.tsx",
    "index.js",
    "index.jsx",
    "App.tsx",
    "App.jsx",
    "App.vue",
    "main.ts",
    "main.tsx",
    "main.js",
    "server.js",
    "server.ts",
    "app.js",
    "app.ts",
)


def _js_family(name: str, extensions: tuple[str, ...], default_extension: str) -> LanguageSpec:
    return LanguageSpec(
        name=name,
        extensions=extensions,
        import_patterns=_JS_PATTERNS,
        extract_path=_path_group,
        extract_specifiers=_js_specifiers,
        resolver="relative",
        entry_points=_JS_ENTRY_POINTS,
        manifests=("package.json",),
        skip_dirs=_JS_SKIP_DIRS,
        default_extension=default_extension,
        probe_suffixes=_JS_PROBES,
        alias_prefixes=("@/", "~/"),
    )


# ── Python ──

_PY_FROM_IMPORT_RE = re.compile(
    r"^[ \t]*from[ \t]+(?P<path>\.+[\w.]*|[\w.]+)[ \t]+import[ \t]+(?P<names>\([^)]*\)|[^\n#;]+)",
    re.MULTILINE,
)

_PY_IMPORT_RE = re.compile(
    r"^[ \t]*import[ \t]+(?P<path>[\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)",
    re.MULTILINE,
)


def _python_path(match: re.Match) -> Optional[str]:
    path = _path_group(match)
    if not path:
        return None
    if match.re is _PY_IMPORT_RE:
        if "," in path:
            return "\n".join(p.strip() for p in path.split(","))
        return _ALIAS_SPLIT_RE.split(path)[0].strip()
    # "from . import a, b" names sibling modules rather than a package attribute
    if not path.strip("."):
        names = [n for n in _python_specifiers(match) if n != "*"]
        if names:
            return "\n".join(path + n for n in names)
    return path


def _python_specifiers(match: re.Match) -> list[str]:
    names = _group(match, "names")
    return _split_names(names) if names else []


# ── Go ──

_GO_IMPORT_RE = re.compile(
    r"""^[ \t]*import[ \t]+(?:[\w.]+[ \t]+)?"(?P<path>[^"]+)\"""", re.MULTILINE
)

_GO_IMPORT_BLOCK_RE = re.compile(
    r"^[ \t]*import[ \t]*\((?P<block>[^)]*)\)", re.MULTILINE
)


def _go_path(match: re.Match) -> Optional[str]:
    block = _group(match, "block")
    if block is None:
        return _path_group(match)
    if "\n" in block.strip():
        return block
    return clean_block_entry(block)


# ── Rust ──

_RUST_USE_RE = re.compile(
    r"^[ \t]*(?:pub(?:\([\w:]+\))?[ \t]+)?use[ \t]+(?P<path>[\w:]+?)"
    r"(?:::\{(?P<names>[^}]*)\}|::\*)?(?:[ \t]+as[ \t]+\w+)?[ \t]*;",
    re.MULTILINE,
)

_RUST_MOD_RE = re.compile(
    r"^[ \t]*(?:pub(?:\([\w:]+\))?[ \t]+)?mod[ \t]+(?P<path>\w+)[ \t]*;",
    re.MULTILINE,
)


def _rust_specifiers(match: re.Match) -> list[str]:
    names = _group(match, "names")
    if names:
        return _split_names(names)
    if match.re is _RUST_MOD_RE:
        return []
    return _last_segment(match)


# ── JVM (Java / Kotlin / Scala) ──

_JAVA_IMPORT_RE = re.compile(
    r"^[ \t]*import[ \t]+(?:static[ \t]+)?(?P<path>[\w.]+?)(?:\.\*)?[ \t]*;",
    re.MULTILINE,
)

_KOTLIN_IMPORT_RE = re.compile(
    r"^[ \t]*import[ \t]+(?P<path>[\w.]+?)(?:\.\*)?(?:[ \t]+as[ \t]+\w+)?[ \t]*;?[ \t]*$",
    re.MULTILINE,
)

_SCALA_IMPORT_RE = re.compile(
    r"^[ \t]*import[ \t]+(?P<path>[\w.]+?)(?:\.\{(?P<names>[^}]*)\}|\._|\.\*)?[ \t]*$",
    re.MULTILINE,
)


def _jvm_specifiers(match: re.Match) -> list[str]:
    names = _group(match, "names")
    if names:
        return [n.split("=>")[0].strip() for n in names.split(",") if n.strip()]
    last = _last_segment(match)
    # Only class-like last segments are specifiers; lowercase means a package
    return [n for n in last if n[:1].isupper()]


_JVM_SKIP_DIRS = ("target", "build", ".gradle", ".mvn", "out", ".idea")
_JVM_MANIFESTS = ("pom.xml", "build.gradle", "build.gradle.kts")


# ── C / C++ ──

_C_INCLUDE_RE = re.compile(
    r"""^[ \t]*#[ \t]*(?:include|import)[ \t]*"(?P<path>[^"]+)\"""", re.MULTILINE
)


# ── C# ──

_CSHARP_USING_RE = re.compile(
    r"^[ \t]*(?:global[ \t]+)?using[ \t]+(?:static[ \t]+)?(?P<path>[\w.]+)[ \t]*;",
    re.MULTILINE,
)


# ── Ruby ──

_RUBY_REQUIRE_RELATIVE_RE = re.compile(
    r"""^[ \t]*require_relative[ \t]*\(?[ \t]*['"](?P<path>[^'"]+)['"]""", re.MULTILINE
)

_RUBY_REQUIRE_RE = re.compile(
    r"""^[ \t]*require[ \t]*\(?[ \t]*['"](?P<path>[^'"]+)['"]""", re.MULTILINE
)


def _ruby_path(match: re.Match) -> Optional[str]:
    path = _path_group(match)
    if path and match.re is _RUBY_REQUIRE_RELATIVE_RE and not path.startswith("."):
        return "./" + path
    return path


# ── PHP ──

_PHP_USE_RE = re.compile(
    r"^[ \t]*use[ \t]+(?:function[ \t]+|const[ \t]+)?(?P<path>[\w\\]+)(?:[ \t]+as[ \t]+\w+)?[ \t]*;",
    re.MULTILINE,
)

_PHP_INCLUDE_RE = re.compile(
    r"""\b(?:require|include)(?:_once)?[ \t]*\(?[ \t]*(?P<dir>__DIR__[ \t]*\.[ \t]*)?['"](?P<path>[^'"]+)['"]"""
)


def _php_path(match: re.Match) -> Optional[str]:
    path = _path_group(match)
    if not path:
        return None
    if match.re is _PHP_USE_RE:
        return path.strip("\\")
    if _group(match, "dir"):
        return "." + path if path.startswith("/") else "./" + path
    return path


# ── Swift ──

_SWIFT_IMPORT_RE = re.compile(
    r"^[ \t]*(?:@testable[ \t]+)?import[ \t]+"
    r"(?:(?:class|struct|enum|protocol|func|var|let|typealias)[ \t]+)?(?P<path>[\w.]+)",
    re.MULTILINE,
)


# ── Dart ──

_DART_IMPORT_RE = re.compile(
    r"""^[ \t]*(?:import|export|part)[ \t]+['"](?P<path>[^'"]+)['"]"""
    r"""(?:[ \t]+as[ \t]+\w+)?(?:[ \t]+show[ \t]+(?P<names>[\w, \t]+))?""",
    re.MULTILINE,
)


def _dart_path(match: re.Match) -> Optional[str]:
    path = _path_group(match)
    if not path or path.startswith("dart:"):
        return None
    if path.startswith("package:"):
        # package:<name>/<rest> maps to lib/<rest> when the package is this project
        _, _, rest = path[len("package:"):].partition("/")
        return "/lib/" + rest if rest else None
    if path.startswith((".", "/")):
        return path
    return "./" + path


def _dart_specifiers(match: re.Match) -> list[str]:
    names = _group(match, "names")
    return _split_names(names) if names else []


# ── Stock Table ──


def default_specs() -> list[LanguageSpec]:
    """The built-in language table, in registration order."""
    return [
        _js_family("javascript", (".js", ".jsx", ".mjs", ".cjs"), ".js"),
        _js_family("typescript", (".ts", ".tsx", ".mts", ".cts"), ".ts"),
        _js_family("vue", (".vue",), ".vue"),
        _js_family("svelte", (".svelte",), ".svelte"),
        LanguageSpec(
            name="python",
            extensions=(".py", ".pyi"),
            import_patterns=(_PY_FROM_IMPORT_RE, _PY_IMPORT_RE),
            extract_path=_python_path,
            extract_specifiers=_python_specifiers,
            resolver="dotted",
            entry_points=("main.py", "app.py", "manage.py", "wsgi.py", "asgi.py", "__main__.py", "run.py"),
            manifests=("requirements*.txt", "pyproject.toml", "Pipfile", "setup.py", "setup.cfg"),
            skip_dirs=(
                "__pycache__",
                ".venv",
                "venv",
                "env",
                ".tox",
                ".nox",
                ".mypy_cache",
                ".pytest_cache",
                ".ruff_cache",
                ".eggs",
                "site-packages",
            ),
            default_extension=".py",
            probe_suffixes=(".py", ".pyi", "/__init__.py"),
            search_roots=("src",),
        ),
        LanguageSpec(
            name="go",
            extensions=(".go",),
            import_patterns=(_GO_IMPORT_RE, _GO_IMPORT_BLOCK_RE),
            extract_path=_go_path,
            extract_specifiers=_no_specifiers,
            resolver="module_path",
            entry_points=("main.go",),
            manifests=("go.mod",),
            skip_dirs=("vendor",),
            default_extension=".go",
            probe_suffixes=(".go",),
        ),
        LanguageSpec(
            name="rust",
            extensions=(".rs",),
            import_patterns=(_RUST_USE_RE, _RUST_MOD_RE),
            extract_path=_path_group,
            extract_specifiers=_rust_specifiers,
            resolver="namespace",
            entry_points=("main.rs", "lib.rs"),
            manifests=("Cargo.toml",),
            skip_dirs=("target",),
            default_extension=".rs",
            probe_suffixes=(".rs", "/mod.rs"),
        ),
        LanguageSpec(
            name="java",
            extensions=(".java",),
            import_patterns=(_JAVA_IMPORT_RE,),
            extract_path=_path_group,
            extract_specifiers=_jvm_specifiers,
            resolver="module_path",
            entry_points=("Main.java", "Application.java", "App.java"),
            manifests=_JVM_MANIFESTS,
            skip_dirs=_JVM_SKIP_DIRS,
            default_extension=".java",
            probe_suffixes=(".java",),
        ),
        LanguageSpec(
            name="kotlin",
            extensions=(".kt", ".kts"),
            import_patterns=(_KOTLIN_IMPORT_RE,),
            extract_path=_path_group,
            extract_specifiers=_jvm_specifiers,
            resolver="module_path",
            entry_points=("Main.kt", "Application.kt", "App.kt"),
            manifests=_JVM_MANIFESTS,
            skip_dirs=_JVM_SKIP_DIRS,
            default_extension=".kt",
            probe_suffixes=(".kt",),
        ),
        LanguageSpec(
            name="scala",
            extensions=(".scala",),
            import_patterns=(_SCALA_IMPORT_RE,),
            extract_path=_path_group,
            extract_specifiers=_jvm_specifiers,
            resolver="module_path",
            entry_points=("Main.scala",),
            manifests=("build.sbt",),
            skip_dirs=("target", ".bsp", ".metals"),
            default_extension=".scala",
            probe_suffixes=(".scala",),
        ),
        LanguageSpec(
            name="c",
            extensions=(".c", ".h", ".cpp", ".cc", ".cxx", ".hpp", ".hh", ".hxx", ".m", ".mm"),
            import_patterns=(_C_INCLUDE_RE,),
            extract_path=_path_group,
            extract_specifiers=_no_specifiers,
            resolver="header",
            entry_points=("main.c", "main.cpp", "main.cc"),
            manifests=("CMakeLists.txt", "vcpkg.json"),
            skip_dirs=("cmake-build-debug", "cmake-build-release", "CMakeFiles"),
            default_extension=".h",
            probe_suffixes=(".h", ".hpp", ".hh"),
            search_roots=("include", "src"),
        ),
        LanguageSpec(
            name="csharp",
            extensions=(".cs",),
            import_patterns=(_CSHARP_USING_RE,),
            extract_path=_path_group,
            extract_specifiers=_no_specifiers,
            resolver="module_path",
            entry_points=("Program.cs", "Startup.cs"),
            manifests=("*.csproj", "packages.config"),
            skip_dirs=("bin", "obj", ".vs"),
            default_extension=".cs",
            probe_suffixes=(".cs",),
        ),
        LanguageSpec(
            name="ruby",
            extensions=(".rb",),
            import_patterns=(_RUBY_REQUIRE_RELATIVE_RE, _RUBY_REQUIRE_RE),
            extract_path=_ruby_path,
            extract_specifiers=_no_specifiers,
            resolver="relative",
            entry_points=("main.rb", "app.rb", "config.ru"),
            manifests=("Gemfile",),
            skip_dirs=(".bundle", "vendor"),
            default_extension=".rb",
            probe_suffixes=(".rb",),
            search_roots=("lib",),
        ),
        LanguageSpec(
            name="php",
            extensions=(".php",),
            import_patterns=(_PHP_USE_RE, _PHP_INCLUDE_RE),
            extract_path=_php_path,
            extract_specifiers=_last_segment,
            resolver="module_path",
            entry_points=("index.php", "artisan"),
            manifests=("composer.json",),
            skip_dirs=("vendor",),
            default_extension=".php",
            probe_suffixes=(".php",),
        ),
        LanguageSpec(
            name="swift",
            extensions=(".swift",),
            import_patterns=(_SWIFT_IMPORT_RE,),
            extract_path=_path_group,
            extract_specifiers=_no_specifiers,
            resolver="module_path",
            entry_points=("main.swift", "AppDelegate.swift", "App.swift"),
            manifests=("Package.swift",),
            skip_dirs=(".build", "Pods", "DerivedData"),
            default_extension=".swift",
            probe_suffixes=(".swift",),
        ),
        LanguageSpec(
            name="dart",
            extensions=(".dart",),
            import_patterns=(_DART_IMPORT_RE,),
            extract_path=_dart_path,
            extract_specifiers=_dart_specifiers,
            resolver="relative",
            entry_points=("main.dart",),
            manifests=("pubspec.yaml",),
            skip_dirs=(".dart_tool", ".pub-cache"),
            default_extension=".dart",
            probe_suffixes=(".dart",),
        ),
    ]


def default_registry() -> LanguageRegistry:
    return LanguageRegistry(default_specs())
