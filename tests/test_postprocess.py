"""Tests for fan rankings, module roles, pattern detection and aggregates.

Covers: top-N ordering with stable ties, the core / connector /
peripheral rules, table-driven architectural patterns with the fallback,
layer counts, and primary-language selection.
"""

from codemap.models import GraphNode, LayerClassification, ProjectStats
from codemap.postprocess import (
    FALLBACK_PATTERN,
    PatternRule,
    assign_module_roles,
    detect_architectural_patterns,
    layer_breakdown,
    primary_language,
    top_fan_ids,
)


def _node(name, fan_in=0, fan_out=0, layer=None):
    node = GraphNode(id=name, label=f"{name}.ts", type="file", path=f"{name}.ts")
    node.fan_in = fan_in
    node.fan_out = fan_out
    if layer:
        node.layer_classification = LayerClassification(layer=layer, confidence=0.8)
    return node


def _roles(nodes):
    assign_module_roles(nodes)
    return {n.id: n.module_role for n in nodes}


# ── Rankings ──


class TestTopFanIds:
    def test_ordering_and_ties(self):
        fan_ins = [0, 3, 1, 3, 0, 2, 5]
        nodes = [_node(name, fan_in=f) for name, f in zip("abcdefg", fan_ins)]
        assert top_fan_ids(nodes, "fan_in") == ["g", "b", "d", "f", "c"]

    def test_zeros_dropped(self):
        nodes = [_node("a", fan_out=0), _node("b", fan_out=2), _node("c", fan_out=0)]
        assert top_fan_ids(nodes, "fan_out", n=5) == ["b"]

    def test_custom_n(self):
        nodes = [_node("a", fan_in=1), _node("b", fan_in=2)]
        assert top_fan_ids(nodes, "fan_in", n=1) == ["b"]


# ── Roles ──


class TestAssignModuleRoles:
    def test_two_file_chain_is_peripheral(self):
        roles = _roles([_node("a", fan_out=1), _node("b", fan_in=1)])
        assert roles == {"a": "peripheral", "b": "peripheral"}

    def test_hub_is_core(self):
        nodes = [_node("hub", fan_in=4)] + [_node(x, fan_out=1) for x in "abcd"]
        roles = _roles(nodes)
        assert roles["hub"] == "core"
        assert roles["a"] == "peripheral"

    def test_aggregator_is_connector(self):
        nodes = [_node("agg", fan_out=4)] + [_node(x, fan_in=1) for x in "abcd"]
        roles = _roles(nodes)
        assert roles["agg"] == "connector"
        assert roles["a"] == "peripheral"

    def test_mid_node_falls_back_to_connector(self):
        nodes = [
            _node("big_in", fan_in=10),
            _node("big_out", fan_out=10),
            _node("mid", fan_in=2, fan_out=2),
        ]
        roles = _roles(nodes)
        assert roles == {"big_in": "core", "big_out": "connector", "mid": "connector"}

    def test_empty(self):
        assign_module_roles([])


# ── Patterns ──


def _names(patterns):
    return [p.name for p in patterns]


class TestDetectArchitecturalPatterns:
    def test_next_app_router(self):
        stats = ProjectStats(
            languages={"tsx": 3},
            frameworks=["Next.js", "React", "TypeScript"],
            entry_points=["app/page.tsx"],
        )
        assert _names(detect_architectural_patterns(stats)) == [
            "App Router / File-based routing",
            "Layered (lib/components + types)",
        ]

    def test_django(self):
        stats = ProjectStats(languages={"py": 4}, frameworks=["Django"])
        patterns = detect_architectural_patterns(stats)
        assert _names(patterns) == ["MVT (Model-View-Template)"]
        assert patterns[0].confidence == "high"

    def test_service_framework(self):
        stats = ProjectStats(languages={"go": 2}, frameworks=["Gin"])
        assert _names(detect_architectural_patterns(stats)) == ["Service-oriented API"]

    def test_mobile(self):
        stats = ProjectStats(languages={"dart": 2}, frameworks=["Flutter"])
        assert _names(detect_architectural_patterns(stats)) == ["Mobile application"]

    def test_fallback(self):
        patterns = detect_architectural_patterns(ProjectStats())
        assert _names(patterns) == [FALLBACK_PATTERN.name]
        assert patterns[0].confidence == "low"

    def test_monorepo_threshold(self):
        stats = ProjectStats(entry_points=[f"p{i}/index.ts" for i in range(11)])
        assert _names(detect_architectural_patterns(stats)) == ["Monorepo / Multi-package"]
        raised = detect_architectural_patterns(stats, monorepo_entry_threshold=20)
        assert _names(raised) == [FALLBACK_PATTERN.name]

    def test_custom_rules(self):
        rule = PatternRule(
            name="Hexagonal",
            confidence="medium",
            hint="ports/ and adapters/",
            predicate=lambda stats, opts: "ports/main.go" in stats.entry_points,
        )
        stats = ProjectStats(entry_points=["ports/main.go"])
        patterns = detect_architectural_patterns(stats, rules=[rule])
        assert _names(patterns) == ["Hexagonal"]
        assert patterns[0].hint == "ports/ and adapters/"


# ── Aggregates ──


class TestLayerBreakdown:
    def test_counts_sorted(self):
        nodes = [
            _node("a", layer="presentation"),
            _node("b", layer="data"),
            _node("c", layer="presentation"),
            _node("d"),
        ]
        breakdown = layer_breakdown(nodes)
        assert breakdown == {"data": 1, "presentation": 2}
        assert list(breakdown) == ["data", "presentation"]


class TestPrimaryLanguage:
    def test_most_common(self):
        assert primary_language({"ts": 3, "py": 1}) == "ts"

    def test_tie_goes_alphabetical(self):
        assert primary_language({"py": 2, "go": 2}) == "go"

    def test_only_supported_compete(self):
        assert primary_language({"md": 9, "ts": 3}, supported={"ts", "py"}) == "ts"
        assert primary_language({"md": 9}, supported={"ts"}) is None

    def test_empty(self):
        assert primary_language({}) is None
