"""Graph Post-Processor: rankings, module roles, patterns and aggregates.

Architectural-pattern detection is table driven: ``PATTERN_RULES`` is a
list of ``PatternRule`` records, each with a predicate over
``ProjectStats``. Add a rule to the table to recognise a new layout.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Callable, Optional

from codemap.models import ArchitecturalPattern, GraphNode, ProjectStats

TOP_N = 5
MONOREPO_ENTRY_THRESHOLD = 10


# ── Fan Rankings ──


def top_fan_ids(nodes: list[GraphNode], attr: str, n: int = TOP_N) -> list[str]:
    """Ids of the *n* nodes with the highest ``fan_in``/``fan_out``, zeros dropped.

    The sort is stable, so ties keep node (scan) order.
    """
    ranked = sorted(nodes, key=lambda node: getattr(node, attr), reverse=True)
    return [node.id for node in ranked[:n] if getattr(node, attr) > 0]


# ── Module Roles ──


def assign_module_roles(nodes: list[GraphNode]) -> None:
    """Classify every node as core, connector or peripheral, in place."""
    if not nodes:
        return
    fan_in_threshold = max(1, max(node.fan_in for node in nodes))
    fan_out_threshold = max(1, max(node.fan_out for node in nodes))
    for node in nodes:
        fi, fo = node.fan_in, node.fan_out
        if fi >= max(2, fan_in_threshold * 0.5) and fo <= 3:
            node.module_role = "core"
        elif fo >= max(2, fan_out_threshold * 0.5) and fi <= 3:
            node.module_role = "connector"
        elif fi <= 1 and fo <= 1:
            node.module_role = "peripheral"
        else:
            node.module_role = "connector"


# ── Architectural Patterns ──


@dataclass(frozen=True)
class PatternRule:
    name: str
    confidence: str
    hint: str
    predicate: Callable[[ProjectStats, dict], bool]


def _has_any(stats: ProjectStats, names: set[str]) -> bool:
    return any(f in names for f in stats.frameworks)


def _entry_matches(stats: ProjectStats, *needles: str) -> bool:
    return any(
        needle in ep.lower() for ep in stats.entry_points for needle in needles
    )


_REACT_FAMILY = {"Next.js", "React"}
_MVC_FRAMEWORKS = {"Ruby on Rails", "Laravel", "Spring Boot", "ASP.NET Core", "Symfony", "CakePHP"}
_SERVICE_FRAMEWORKS = {
    "Flask", "FastAPI", "Gin", "Echo", "Fiber", "Chi", "Express", "Fastify",
    "Koa", "NestJS", "Sinatra", "Actix Web", "Axum", "Rocket", "Ktor", "Vapor",
}
_MOBILE_FRAMEWORKS = {"Flutter", "React Native"}


PATTERN_RULES: list[PatternRule] = [
    PatternRule(
        name="App Router / File-based routing",
        confidence="high",
        hint="app/ directory with page/layout files",
        predicate=lambda s, opts: _has_any(s, _REACT_FAMILY) and _entry_matches(s, "app/", "page"),
    ),
    PatternRule(
        name="Pages Router (Next.js)",
        confidence="medium",
        hint="pages/ directory detected",
        predicate=lambda s, opts: _entry_matches(s, "pages/"),
    ),
    PatternRule(
        name="API routes / Backend layer",
        confidence="medium",
        hint="API entry points present",
        predicate=lambda s, opts: _has_any(s, {"Next.js", "Express"}) and _entry_matches(s, "api"),
    ),
    PatternRule(
        name="MVT (Model-View-Template)",
        confidence="high",
        hint="Django project layout",
        predicate=lambda s, opts: "Django" in s.frameworks,
    ),
    PatternRule(
        name="MVC (Model-View-Controller)",
        confidence="medium",
        hint="MVC web framework detected",
        predicate=lambda s, opts: _has_any(s, _MVC_FRAMEWORKS),
    ),
    PatternRule(
        name="Service-oriented API",
        confidence="medium",
        hint="Lightweight HTTP framework with route handlers",
        predicate=lambda s, opts: _has_any(s, _SERVICE_FRAMEWORKS),
    ),
    PatternRule(
        name="Layered (lib/components + types)",
        confidence="low",
        hint="TypeScript + React/Next with common structure",
        predicate=lambda s, opts: (
            bool(s.languages) and _has_any(s, _REACT_FAMILY) and "TypeScript" in s.frameworks
        ),
    ),
    PatternRule(
        name="Monorepo / Multi-package",
        confidence="medium",
        hint="Many entry points across packages",
        predicate=lambda s, opts: len(s.entry_points) > opts.get(
            "monorepo_entry_threshold", MONOREPO_ENTRY_THRESHOLD
        ),
    ),
    PatternRule(
        name="Mobile application",
        confidence="medium",
        hint="Mobile UI framework detected",
        predicate=lambda s, opts: _has_any(s, _MOBILE_FRAMEWORKS),
    ),
]

FALLBACK_PATTERN = ArchitecturalPattern(
    name="Conventional file-based structure",
    confidence="low",
    hint="Standard entry points and file layout",
)


def detect_architectural_patterns(
    stats: ProjectStats,
    rules: Optional[list[PatternRule]] = None,
    monorepo_entry_threshold: int = MONOREPO_ENTRY_THRESHOLD,
) -> list[ArchitecturalPattern]:
    """Every rule that fires, in table order. Never empty."""
    opts = {"monorepo_entry_threshold": monorepo_entry_threshold}
    patterns = [
        ArchitecturalPattern(name=rule.name, confidence=rule.confidence, hint=rule.hint)
        for rule in (PATTERN_RULES if rules is None else rules)
        if rule.predicate(stats, opts)
    ]
    if not patterns:
        patterns.append(ArchitecturalPattern(
            name=FALLBACK_PATTERN.name,
            confidence=FALLBACK_PATTERN.confidence,
            hint=FALLBACK_PATTERN.hint,
        ))
    return patterns


# ── Aggregates ──


def layer_breakdown(nodes: list[GraphNode]) -> dict[str, int]:
    counts = Counter(
        node.layer_classification.layer for node in nodes if node.layer_classification
    )
    return dict(sorted(counts.items()))


def primary_language(
    languages: dict[str, int], supported: Optional[set[str]] = None
) -> Optional[str]:
    """Most common extension; ties go to the alphabetically first.

    With *supported* (extensions without the dot), only source languages
    compete, so a repository full of Markdown still reports its code.
    """
    candidates = {
        ext: count for ext, count in languages.items() if supported is None or ext in supported
    }
    if not candidates:
        return None
    return min(candidates.items(), key=lambda item: (-item[1], item[0]))[0]
