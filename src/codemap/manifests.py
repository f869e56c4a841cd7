"""Manifest Parsers: framework and runtime-version detection per ecosystem.

Every parser has the same shape::

    parse(content: str, versions: dict[str, str]) -> list[str]

It returns the display names of the frameworks it recognised and writes any
version it could read into ``versions`` (range operators stripped). Broken
manifests never raise: the parser logs a warning and returns ``[]``.

Structured formats (JSON, TOML, setup.cfg, setup.py) are parsed properly;
line-oriented formats are scanned line by line; build files without a
convenient machine-readable form (Maven, Gradle, CMake, SwiftPM) are scanned
for marker substrings.
"""

import ast
import configparser
import fnmatch
import json
import logging
import re
from typing import Callable, Optional

# Try tomllib (Python 3.11+) then tomli for TOML manifests
try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redefine]
    except ImportError:
        tomllib = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

ManifestParser = Callable[[str, dict], list[str]]

# ── Known Frameworks (package name -> display name) ──

JS_FRAMEWORKS = {
    "next": "Next.js",
    "react": "React",
    "react-native": "React Native",
    "vue": "Vue",
    "nuxt": "Nuxt",
    "svelte": "Svelte",
    "@sveltejs/kit": "SvelteKit",
    "@angular/core": "Angular",
    "@remix-run/react": "Remix",
    "astro": "Astro",
    "gatsby": "Gatsby",
    "solid-js": "Solid",
    "electron": "Electron",
    "express": "Express",
    "fastify": "Fastify",
    "koa": "Koa",
    "@nestjs/core": "NestJS",
    "tailwindcss": "TailwindCSS",
    "typescript": "TypeScript",
    "vite": "Vite",
    "prisma": "Prisma",
    "mongoose": "Mongoose",
    "jest": "Jest",
    "vitest": "Vitest",
}

PYTHON_FRAMEWORKS = {
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
    "starlette": "Starlette",
    "tornado": "Tornado",
    "pyramid": "Pyramid",
    "aiohttp": "aiohttp",
    "sqlalchemy": "SQLAlchemy",
    "pydantic": "Pydantic",
    "celery": "Celery",
    "streamlit": "Streamlit",
    "torch": "PyTorch",
    "tensorflow": "TensorFlow",
    "pandas": "pandas",
    "numpy": "NumPy",
    "pytest": "pytest",
}

GO_FRAMEWORKS = {
    "github.com/gin-gonic/gin": "Gin",
    "github.com/labstack/echo": "Echo",
    "github.com/gofiber/fiber": "Fiber",
    "github.com/gorilla/mux": "Gorilla Mux",
    "github.com/go-chi/chi": "Chi",
    "github.com/spf13/cobra": "Cobra",
    "gorm.io/gorm": "GORM",
    "google.golang.org/grpc": "gRPC",
}

RUST_FRAMEWORKS = {
    "actix-web": "Actix Web",
    "axum": "Axum",
    "rocket": "Rocket",
    "warp": "Warp",
    "tokio": "Tokio",
    "serde": "Serde",
    "diesel": "Diesel",
    "sqlx": "SQLx",
    "tauri": "Tauri",
    "bevy": "Bevy",
}

JVM_MARKERS = {
    "spring-boot": "Spring Boot",
    "io.quarkus": "Quarkus",
    "io.micronaut": "Micronaut",
    "io.ktor": "Ktor",
    "hibernate": "Hibernate",
    "junit": "JUnit",
    "com.android.application": "Android",
    "org.jetbrains.kotlin": "Kotlin",
}

RUBY_FRAMEWORKS = {
    "rails": "Ruby on Rails",
    "sinatra": "Sinatra",
    "hanami": "Hanami",
    "rspec": "RSpec",
    "sidekiq": "Sidekiq",
}

PHP_FRAMEWORKS = {
    "laravel/framework": "Laravel",
    "symfony/framework-bundle": "Symfony",
    "symfony/symfony": "Symfony",
    "slim/slim": "Slim",
    "cakephp/cakephp": "CakePHP",
    "phpunit/phpunit": "PHPUnit",
}

DART_FRAMEWORKS = {
    "flutter": "Flutter",
    "flutter_bloc": "Bloc",
    "provider": "Provider",
    "riverpod": "Riverpod",
}

DOTNET_FRAMEWORKS = {
    "Microsoft.AspNetCore": "ASP.NET Core",
    "Microsoft.EntityFrameworkCore": "Entity Framework Core",
    "xunit": "xUnit",
    "NUnit": "NUnit",
}

CMAKE_MARKERS = {
    "Qt5": "Qt",
    "Qt6": "Qt",
    "Boost": "Boost",
    "OpenCV": "OpenCV",
    "GTest": "GoogleTest",
}

SWIFT_MARKERS = {
    "vapor/vapor": "Vapor",
    "Alamofire": "Alamofire",
    "swift-composable-architecture": "TCA",
}

# Leading range operators stripped from version specs ("^1.2.3" -> "1.2.3")
_RANGE_PREFIX_RE = re.compile(r"^[\^~><=!v\s]+")


# ── Helpers ──


def clean_version(spec: str) -> str:
    """Strip leading range operators and whitespace from a version spec."""
    return _RANGE_PREFIX_RE.sub("", spec.strip()).strip()


def _normalize_package_name(name: str) -> str:
    """Normalize a Python package name per PEP 503."""
    return re.sub(r"[-_.]+", "-", name).lower()


def _parse_dep_string(dep_str: str) -> tuple[str, str]:
    """Parse a PEP 508 dependency string into (name, version_spec).

    Examples:
        "flask>=2.0"        -> ("flask", ">=2.0")
        "requests[security]" -> ("requests", "")
        "numpy==1.24; python_version >= '3.8'" -> ("numpy", "==1.24")
    """
    s = dep_str.strip()
    # Strip environment markers (after ;)
    if ";" in s:
        s = s[: s.index(";")].strip()
    match = re.match(r"^([A-Za-z0-9][A-Za-z0-9._-]*)(?:\[.*?\])?\s*(.*)", s)
    if match:
        return match.group(1), match.group(2).strip()
    return s, ""


def _first_version(spec: str) -> str:
    """First concrete version in a PEP 440 spec ("<3,>=2.1" -> "2.1")."""
    for part in spec.split(","):
        cleaned = clean_version(part)
        if cleaned:
            return cleaned
    return ""


def _match_known(
    deps: dict[str, str],
    known: dict[str, str],
    versions: dict[str, str],
    normalize: Callable[[str], str] = lambda n: n,
) -> list[str]:
    """Record every known framework present in *deps* (name -> version spec)."""
    lookup = {normalize(k): v for k, v in deps.items()}
    detected: list[str] = []
    for pkg, display in known.items():
        key = normalize(pkg)
        if key not in lookup:
            continue
        if display not in detected:
            detected.append(display)
        version = _first_version(lookup[key]) if lookup[key] else ""
        if version and display not in versions:
            versions[display] = version
    return detected


def _scan_markers(
    content: str,
    markers: dict[str, str],
    versions: dict[str, str],
    version_patterns: tuple[str, ...] = (),
) -> list[str]:
    """Detect frameworks by substring; probe optional version regexes per marker.

    Each entry of *version_patterns* is a format string taking the escaped
    marker and exposing the version as group 1.
    """
    detected: list[str] = []
    for marker, display in markers.items():
        if marker not in content:
            continue
        if display not in detected:
            detected.append(display)
        if display in versions:
            continue
        for template in version_patterns:
            m = re.search(template.format(marker=re.escape(marker)), content)
            if m:
                versions[display] = clean_version(m.group(1))
                break
    return detected


def _load_toml(content: str, source: str) -> Optional[dict]:
    if tomllib is None:
        logger.warning("No TOML parser available; skipping %s", source)
        return None
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse %s: %s", source, e)
        return None


def _load_json(content: str, source: str) -> Optional[dict]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse %s: %s", source, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Failed to parse %s: top level is not an object", source)
        return None
    return data


def _string_map(value: object) -> dict[str, str]:
    """Coerce a manifest dependency table to name -> version string."""
    if not isinstance(value, dict):
        return {}
    result: dict[str, str] = {}
    for name, spec in value.items():
        if isinstance(spec, str):
            result[str(name)] = spec
        elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
            result[str(name)] = spec["version"]
        else:
            result[str(name)] = ""
    return result


# ── JavaScript ──


def parse_package_json(content: str, versions: dict[str, str]) -> list[str]:
    """package.json: dependencies, devDependencies and peerDependencies."""
    data = _load_json(content, "package.json")
    if data is None:
        return []
    deps: dict[str, str] = {}
    for section in ("peerDependencies", "devDependencies", "dependencies"):
        deps.update(_string_map(data.get(section)))
    return _match_known(deps, JS_FRAMEWORKS, versions)


# ── Python ──


def _python_deps(lines: list[str]) -> dict[str, str]:
    deps: dict[str, str] = {}
    for line in lines:
        name, version_spec = _parse_dep_string(line)
        if name:
            deps[name] = version_spec
    return deps


def parse_requirements_txt(content: str, versions: dict[str, str]) -> list[str]:
    """requirements*.txt: one PEP 508 requirement per line."""
    lines: list[str] = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        # Strip inline comments
        if " #" in line:
            line = line[: line.index(" #")].strip()
        lines.append(line)
    return _match_known(_python_deps(lines), PYTHON_FRAMEWORKS, versions, _normalize_package_name)


def parse_pyproject_toml(content: str, versions: dict[str, str]) -> list[str]:
    """pyproject.toml: PEP 621 [project] tables and Poetry dependency tables."""
    data = _load_toml(content, "pyproject.toml")
    if data is None:
        return []
    project = data.get("project", {})
    lines = [d for d in project.get("dependencies", []) if isinstance(d, str)]
    for extra in project.get("optional-dependencies", {}).values():
        lines.extend(d for d in extra if isinstance(d, str))
    deps = _python_deps(lines)

    poetry = data.get("tool", {}).get("poetry", {})
    deps.update(_string_map(poetry.get("dependencies")))
    deps.update(_string_map(poetry.get("dev-dependencies")))
    for group in poetry.get("group", {}).values():
        if isinstance(group, dict):
            deps.update(_string_map(group.get("dependencies")))
    return _match_known(deps, PYTHON_FRAMEWORKS, versions, _normalize_package_name)


def parse_pipfile(content: str, versions: dict[str, str]) -> list[str]:
    data = _load_toml(content, "Pipfile")
    if data is None:
        return []
    deps = _string_map(data.get("packages"))
    deps.update(_string_map(data.get("dev-packages")))
    # Pipfile uses "*" for "any version"
    deps = {k: ("" if v == "*" else v) for k, v in deps.items()}
    return _match_known(deps, PYTHON_FRAMEWORKS, versions, _normalize_package_name)


def parse_setup_py(content: str, versions: dict[str, str]) -> list[str]:
    """setup.py: ``install_requires`` read from the AST, never executed."""
    try:
        tree = ast.parse(content)
    except (SyntaxError, ValueError) as e:
        logger.warning("Failed to parse setup.py: %s", e)
        return []

    lines: list[str] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        func_name = _get_static_call_name(node)
        if func_name not in ("setup", "setuptools.setup"):
            continue
        for kw in node.keywords:
            if kw.arg == "install_requires":
                lines.extend(_extract_string_list(kw.value))
                break
    return _match_known(_python_deps(lines), PYTHON_FRAMEWORKS, versions, _normalize_package_name)


def parse_setup_cfg(content: str, versions: dict[str, str]) -> list[str]:
    """setup.cfg: [options] install_requires."""
    config = configparser.ConfigParser()
    try:
        config.read_string(content, source="setup.cfg")
    except configparser.Error as e:
        logger.warning("Failed to parse setup.cfg: %s", e)
        return []

    if not config.has_option("options", "install_requires"):
        return []
    requires_str = config.get("options", "install_requires")
    lines = [
        line.strip()
        for line in requires_str.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    return _match_known(_python_deps(lines), PYTHON_FRAMEWORKS, versions, _normalize_package_name)


def _get_static_call_name(node: ast.Call) -> str:
    """Get the function name from a Call node for setup.py parsing."""
    if isinstance(node.func, ast.Name):
        return node.func.id
    if isinstance(node.func, ast.Attribute) and isinstance(node.func.value, ast.Name):
        return f"{node.func.value.id}.{node.func.attr}"
    return ""


def _extract_string_list(node: ast.expr) -> list[str]:
    """Extract a list of string literals from an AST node."""
    strings = []
    if isinstance(node, (ast.List, ast.Tuple)):
        for elt in node.elts:
            if isinstance(elt, ast.Constant) and isinstance(elt.value, str):
                strings.append(elt.value)
    return strings


# ── Go ──

_GO_REQUIRE_LINE_RE = re.compile(r"^\s*(?:require\s+)?([\w./~-]+)\s+(v[\w.+-]+)")


def parse_go_mod(content: str, versions: dict[str, str]) -> list[str]:
    """go.mod: ``require`` directives, single-line and block form."""
    deps: dict[str, str] = {}
    in_block = False
    for raw in content.splitlines():
        line = raw.split("//")[0].strip()
        if not line:
            continue
        if line.startswith("require ("):
            in_block = True
            continue
        if in_block and line == ")":
            in_block = False
            continue
        if in_block or line.startswith("require "):
            m = _GO_REQUIRE_LINE_RE.match(line)
            if m:
                deps[m.group(1)] = m.group(2)

    # Major-version suffixes (github.com/labstack/echo/v4) match their base path
    detected: list[str] = []
    for module, version in deps.items():
        base = re.sub(r"/v\d+$", "", module)
        display = GO_FRAMEWORKS.get(base)
        if display and display not in detected:
            detected.append(display)
            versions.setdefault(display, clean_version(version))
    return detected


# ── Rust ──


def parse_cargo_toml(content: str, versions: dict[str, str]) -> list[str]:
    data = _load_toml(content, "Cargo.toml")
    if data is None:
        return []
    deps: dict[str, str] = {}
    for section in ("dependencies", "dev-dependencies", "build-dependencies"):
        deps.update(_string_map(data.get(section)))
    deps.update(_string_map(data.get("workspace", {}).get("dependencies")))
    return _match_known(deps, RUST_FRAMEWORKS, versions)


# ── JVM ──

_MAVEN_VERSION_PATTERNS = (
    r"{marker}[\w.-]*</artifactId>\s*<version>\s*([^<\s]+)",
    r"{marker}[\w.-]*</groupId>\s*<artifactId>[^<]*</artifactId>\s*<version>\s*([^<\s]+)",
)

_GRADLE_VERSION_PATTERNS = (
    r"{marker}[\w.-]*:[\w.-]+:(\d[\w.-]*)",
    r"{marker}[\w.-]*:(\d[\w.-]*)",
    r"""{marker}[\w.-]*['"]\)?\s+version\s+['"]([^'"]+)['"]""",
)


def parse_pom_xml(content: str, versions: dict[str, str]) -> list[str]:
    return _scan_markers(content, JVM_MARKERS, versions, _MAVEN_VERSION_PATTERNS)


def parse_build_gradle(content: str, versions: dict[str, str]) -> list[str]:
    return _scan_markers(content, JVM_MARKERS, versions, _GRADLE_VERSION_PATTERNS)


def parse_build_sbt(content: str, versions: dict[str, str]) -> list[str]:
    markers = {"akka-http": "Akka HTTP", "play": "Play Framework", "zio": "ZIO", "spark-core": "Apache Spark"}
    return _scan_markers(
        content, markers, versions, (r"""['"]{marker}['"]\s*%%?\s*['"]([^'"]+)['"]""",)
    )


# ── Ruby ──

_GEM_LINE_RE = re.compile(r"""^\s*gem\s+['"]([\w.-]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")


def parse_gemfile(content: str, versions: dict[str, str]) -> list[str]:
    deps: dict[str, str] = {}
    for line in content.splitlines():
        m = _GEM_LINE_RE.match(line)
        if m:
            deps[m.group(1)] = m.group(2) or ""
    return _match_known(deps, RUBY_FRAMEWORKS, versions)


# ── PHP ──


def parse_composer_json(content: str, versions: dict[str, str]) -> list[str]:
    data = _load_json(content, "composer.json")
    if data is None:
        return []
    deps = _string_map(data.get("require-dev"))
    deps.update(_string_map(data.get("require")))
    return _match_known(deps, PHP_FRAMEWORKS, versions)


# ── Dart ──

_PUBSPEC_DEP_RE = re.compile(r"^  ([\w-]+):\s*(.*)$")


def parse_pubspec_yaml(content: str, versions: dict[str, str]) -> list[str]:
    """pubspec.yaml: two-space indented entries under the dependency sections."""
    deps: dict[str, str] = {}
    section = None
    for line in content.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        if not line.startswith(" "):
            section = line.split(":")[0].strip()
            continue
        if section not in ("dependencies", "dev_dependencies"):
            continue
        m = _PUBSPEC_DEP_RE.match(line)
        if m:
            value = m.group(2).strip().strip("'\"")
            deps[m.group(1)] = value if re.match(r"[\^~<>=\d]", value) else ""
    return _match_known(deps, DART_FRAMEWORKS, versions)


# ── .NET ──

_PACKAGE_REFERENCE_RE = re.compile(
    r"""<PackageReference\s+Include=["']([\w.-]+)["'](?:\s+Version=["']([^"']+)["'])?"""
)

_PACKAGES_CONFIG_RE = re.compile(
    r"""<package\s+id=["']([\w.-]+)["']\s+version=["']([^"']+)["']"""
)


def parse_csproj(content: str, versions: dict[str, str]) -> list[str]:
    deps = {m.group(1): m.group(2) or "" for m in _PACKAGE_REFERENCE_RE.finditer(content)}
    deps.update({m.group(1): m.group(2) for m in _PACKAGES_CONFIG_RE.finditer(content)})
    if "Microsoft.NET.Sdk.Web" in content:
        deps.setdefault("Microsoft.AspNetCore", "")
    # Package ids are namespaced (Microsoft.AspNetCore.Mvc); match on the prefix
    prefixed: dict[str, str] = {}
    for pkg_id, version in deps.items():
        for known in DOTNET_FRAMEWORKS:
            if pkg_id == known or pkg_id.startswith(known + "."):
                prefixed.setdefault(known, version)
    return _match_known(prefixed, DOTNET_FRAMEWORKS, versions)


# ── Native / Swift ──


def parse_cmakelists(content: str, versions: dict[str, str]) -> list[str]:
    return _scan_markers(
        content, CMAKE_MARKERS, versions, (r"find_package\s*\(\s*{marker}\s+(\d[\w.]*)",)
    )


def parse_package_swift(content: str, versions: dict[str, str]) -> list[str]:
    return _scan_markers(
        content, SWIFT_MARKERS, versions, (r"""{marker}[^"]*"\s*,\s*from:\s*"([^"]+)\"""",)
    )


def parse_vcpkg_json(content: str, versions: dict[str, str]) -> list[str]:
    data = _load_json(content, "vcpkg.json")
    if data is None:
        return []
    names = []
    for dep in data.get("dependencies", []):
        if isinstance(dep, str):
            names.append(dep)
        elif isinstance(dep, dict) and isinstance(dep.get("name"), str):
            names.append(dep["name"])
    markers = {"qt": "Qt", "boost": "Boost", "opencv": "OpenCV", "gtest": "GoogleTest"}
    return _match_known({n.split("-")[0]: "" for n in names}, markers, versions)


# ── Registry ──

MANIFEST_PARSERS: dict[str, ManifestParser] = {
    "package.json": parse_package_json,
    "requirements.txt": parse_requirements_txt,
    "requirements*.txt": parse_requirements_txt,
    "pyproject.toml": parse_pyproject_toml,
    "Pipfile": parse_pipfile,
    "setup.py": parse_setup_py,
    "setup.cfg": parse_setup_cfg,
    "go.mod": parse_go_mod,
    "Cargo.toml": parse_cargo_toml,
    "pom.xml": parse_pom_xml,
    "build.gradle": parse_build_gradle,
    "build.gradle.kts": parse_build_gradle,
    "build.sbt": parse_build_sbt,
    "Gemfile": parse_gemfile,
    "composer.json": parse_composer_json,
    "pubspec.yaml": parse_pubspec_yaml,
    "*.csproj": parse_csproj,
    "packages.config": parse_csproj,
    "CMakeLists.txt": parse_cmakelists,
    "vcpkg.json": parse_vcpkg_json,
    "Package.swift": parse_package_swift,
}


def find_manifest_parser(filename: str) -> Optional[ManifestParser]:
    """Exact filename first, then glob patterns (``*.csproj``)."""
    parser = MANIFEST_PARSERS.get(filename)
    if parser is not None:
        return parser
    for pattern, candidate in MANIFEST_PARSERS.items():
        if "*" in pattern and fnmatch.fnmatchcase(filename, pattern):
            return candidate
    return None


def parse_manifest(filename: str, content: str, versions: dict[str, str]) -> list[str]:
    """Dispatch to the parser for *filename*. Never raises for bad content."""
    parser = find_manifest_parser(filename)
    if parser is None:
        return []
    try:
        return parser(content, versions)
    except (AttributeError, TypeError, ValueError, RecursionError) as e:
        # Well-formed syntax with an unexpected shape (e.g. "dependencies": [])
        logger.warning("Failed to read %s: %s", filename, e)
        return []


# ── Runtime Versions ──

_GO_DIRECTIVE_RE = re.compile(r"^go\s+(\d[\w.]*)", re.MULTILINE)
_GEMFILE_RUBY_RE = re.compile(r"""^\s*ruby\s+['"]([^'"]+)['"]""", re.MULTILINE)
_POM_JAVA_RE = re.compile(
    r"<(?:java\.version|maven\.compiler\.(?:source|release))>\s*([^<\s]+)"
)
_PUBSPEC_SDK_RE = re.compile(
    r"""^environment:\s*\n(?:[ \t]+.*\n)*?[ \t]+sdk:\s*['"]?([^'"\n]+)""", re.MULTILINE
)


def detect_language_version(filename: str, content: str) -> Optional[tuple[str, str]]:
    """Return ``(runtime, version)`` declared by a root manifest, if any."""
    try:
        if filename == "package.json":
            data = _load_json(content, filename) or {}
            node = (data.get("engines") or {}).get("node")
            return ("node", clean_version(node)) if isinstance(node, str) else None
        if filename == "pyproject.toml":
            data = _load_toml(content, filename) or {}
            spec = data.get("project", {}).get("requires-python")
            if not isinstance(spec, str):
                spec = data.get("tool", {}).get("poetry", {}).get("dependencies", {}).get("python")
            return ("python", _first_version(spec)) if isinstance(spec, str) else None
        if filename == "go.mod":
            m = _GO_DIRECTIVE_RE.search(content)
            return ("go", m.group(1)) if m else None
        if filename == "Cargo.toml":
            data = _load_toml(content, filename) or {}
            version = data.get("package", {}).get("rust-version")
            return ("rust", clean_version(version)) if isinstance(version, str) else None
        if filename == "pom.xml":
            m = _POM_JAVA_RE.search(content)
            return ("java", m.group(1)) if m else None
        if filename == "Gemfile":
            m = _GEMFILE_RUBY_RE.search(content)
            return ("ruby", clean_version(m.group(1))) if m else None
        if filename == "composer.json":
            data = _load_json(content, filename) or {}
            php = (data.get("require") or {}).get("php")
            return ("php", _first_version(php.replace("|", ","))) if isinstance(php, str) else None
        if filename == "pubspec.yaml":
            m = _PUBSPEC_SDK_RE.search(content)
            return ("dart", _first_version(m.group(1).replace(" ", ","))) if m else None
    except (AttributeError, TypeError) as e:
        logger.warning("Failed to read runtime version from %s: %s", filename, e)
    return None
