"""Node-type and architectural-layer classification.

Both classifiers are ordered rule lists evaluated top to bottom; the first
rule that matches wins. They look only at the relative path, the filename
and (for components) the file's text.
"""

import posixpath
import re

from codemap.models import LayerClassification

# ── Node Type ──

_TEST_DIRS = {"test", "tests", "__tests__", "__test__", "spec", "specs", "testing", "e2e"}
_TEST_NAME_RE = re.compile(
    r"(^test_.*\.py$)|(_test\.\w+$)|(\.(test|spec)\.\w+$)|(^.+Tests?\.(java|kt|cs|swift|scala)$)|(_spec\.rb$)"
)

_CONFIG_DIRS = {"config", "configs", "configuration", "settings"}
_CONFIG_NAMES = {
    "settings.py",
    "config.py",
    "conf.py",
    "conftest.py",
    "config.go",
    "constants.ts",
    "env.ts",
    "env.js",
}
_CONFIG_NAME_RE = re.compile(r"(^|[.\-_])config\.(js|ts|mjs|cjs|mts|cts|json)$|^\.\w+rc\.(js|cjs|ts)$")

_API_DIRS = {"api", "apis", "routes", "routers", "controllers", "handlers", "endpoints", "resolvers"}
_API_NAME_RE = re.compile(r"(controller|route|router|handler|endpoint|resolver|^api)", re.IGNORECASE)

_MIDDLEWARE_DIRS = {"middleware", "middlewares", "interceptors", "guards"}
_MIDDLEWARE_NAME_RE = re.compile(r"(middleware|interceptor|guard)", re.IGNORECASE)

_MODEL_DIRS = {"models", "model", "entities", "entity", "schemas", "schema", "dto", "dtos"}
_MODEL_NAME_RE = re.compile(r"(model|schema|entity|dto)", re.IGNORECASE)

_SERVICE_DIRS = {"services", "service", "repositories", "usecases", "use_cases"}
_SERVICE_NAME_RE = re.compile(r"(service|repository|usecase)", re.IGNORECASE)

_UTIL_DIRS = {"utils", "util", "helpers", "helper", "lib", "libs", "common", "shared"}
_UTIL_NAME_RE = re.compile(r"(util|helper)", re.IGNORECASE)

_HOOK_NAME_RE = re.compile(r"^use[A-Z_-]")
_HOOK_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

_SFC_EXTENSIONS = (".vue", ".svelte")
_JSX_EXTENSIONS = (".jsx", ".tsx")

# export function Button / export const Card = / export default class Page
_COMPONENT_EXPORT_RES = (
    re.compile(r"export\s+(?:default\s+)?function\s+[A-Z]"),
    re.compile(r"export\s+(?:const|let|var)\s+[A-Z]"),
    re.compile(r"export\s+default\s+class\s+[A-Z]"),
)


def _dir_segments(rel_path: str) -> set[str]:
    return {seg.lower() for seg in posixpath.dirname(rel_path).split("/") if seg}


def is_test_file(filename: str, rel_path: str) -> bool:
    return bool(_TEST_NAME_RE.search(filename)) or bool(_dir_segments(rel_path) & _TEST_DIRS)


def classify_node_type(filename: str, rel_path: str, content: str) -> str:
    """Semantic type of a source file: test, config, api, ..., or ``file``."""
    dirs = _dir_segments(rel_path)
    stem, ext = posixpath.splitext(filename)
    ext = ext.lower()

    if is_test_file(filename, rel_path):
        return "test"
    if filename in _CONFIG_NAMES or _CONFIG_NAME_RE.search(filename) or dirs & _CONFIG_DIRS:
        return "config"
    if dirs & _API_DIRS or _API_NAME_RE.search(stem):
        return "api"
    if dirs & _MIDDLEWARE_DIRS or _MIDDLEWARE_NAME_RE.search(stem):
        return "middleware"
    if dirs & _MODEL_DIRS or _MODEL_NAME_RE.search(stem):
        return "model"
    if dirs & _SERVICE_DIRS or _SERVICE_NAME_RE.search(stem):
        return "service"
    if ext in _HOOK_EXTENSIONS and _HOOK_NAME_RE.match(stem):
        return "hook"
    if ext in _SFC_EXTENSIONS:
        return "component"
    if ext in _JSX_EXTENSIONS and any(p.search(content) for p in _COMPONENT_EXPORT_RES):
        return "component"
    if dirs & _UTIL_DIRS or _UTIL_NAME_RE.search(stem):
        return "util"
    return "file"


# ── Layer ──

# Checked in this order; the first layer with a keyword in the path wins
LAYER_KEYWORDS = (
    (
        "presentation",
        {
            "components", "component", "pages", "views", "view", "app", "ui",
            "screens", "layouts", "templates", "widgets", "frontend", "web",
            "styles", "public",
        },
    ),
    (
        "business",
        {
            "services", "service", "domain", "usecases", "use_cases", "core",
            "business", "logic", "features", "workflows",
        },
    ),
    (
        "data",
        {
            "models", "model", "entities", "schemas", "db", "database",
            "repositories", "repository", "migrations", "dao", "prisma",
            "store", "stores", "data",
        },
    ),
    (
        "infrastructure",
        {
            "infra", "infrastructure", "utils", "util", "lib", "helpers",
            "middleware", "adapters", "clients", "scripts", "deploy", "docker",
            "config", "platform",
        },
    ),
)

# Fallback layer when no path keyword matches
_TYPE_LAYERS = {
    "component": "presentation",
    "hook": "presentation",
    "api": "presentation",
    "service": "business",
    "model": "data",
    "middleware": "infrastructure",
    "util": "infrastructure",
}

DIRECT_CONFIDENCE = 0.95
KEYWORD_CONFIDENCE = 0.8
TYPE_CONFIDENCE = 0.6
DEFAULT_CONFIDENCE = 0.3


# Keywords this short must equal a whole path token; longer ones match anywhere
_SHORT_KEYWORD_LEN = 4
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_TOKEN_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")


def _path_tokens(stem: str) -> set[str]:
    """Lowercased words of *stem*, split on separators and camelCase humps."""
    return {tok.lower() for tok in _TOKEN_SPLIT_RE.split(_CAMEL_RE.sub(r"\1 \2", stem)) if tok}


def classify_layer(node_type: str, rel_path: str) -> LayerClassification:
    if node_type in ("test", "config"):
        return LayerClassification(layer=node_type, confidence=DIRECT_CONFIDENCE)

    stem = posixpath.splitext(rel_path)[0]
    lowered = stem.lower()
    tokens = _path_tokens(stem)
    for layer, keywords in LAYER_KEYWORDS:
        for keyword in keywords:
            if len(keyword) > _SHORT_KEYWORD_LEN:
                hit = keyword in lowered
            else:
                hit = keyword in tokens
            if hit:
                return LayerClassification(layer=layer, confidence=KEYWORD_CONFIDENCE)

    if node_type in _TYPE_LAYERS:
        return LayerClassification(layer=_TYPE_LAYERS[node_type], confidence=TYPE_CONFIDENCE)
    return LayerClassification(layer="infrastructure", confidence=DEFAULT_CONFIDENCE)
