"""Graph data model: nodes, edges, stats and the DependencyGraph result.

All entities are owned by one analysis run. Nodes are created once by the
scanner and then mutated in place by later passes (fan counts, metrics,
risk, cycle flag); they are never re-created or removed.

``DependencyGraph.as_dict()`` produces the camelCase shape consumed by
front-ends; ``DependencyGraph.from_dict()`` reads it back.
"""

from dataclasses import dataclass, field
from typing import Optional

# ── Vocabularies ──

NODE_TYPES = (
    "file",
    "component",
    "hook",
    "util",
    "api",
    "config",
    "model",
    "test",
    "middleware",
    "service",
    "other",
)

RISK_LEVELS = ("low", "medium", "high")

MODULE_ROLES = ("core", "peripheral", "connector")

LAYERS = ("presentation", "business", "data", "infrastructure", "test", "config")

EDGE_TYPES = ("static", "dynamic")

INSIGHT_TYPES = (
    "hardcoded-secret",
    "sql-injection-risk",
    "unsafe-eval",
    "no-auth-check",
    "unsafe-regex",
)

SEVERITIES = ("info", "warning", "critical")


# ── Data Classes ──


@dataclass
class CodeMetrics:
    """Size and complexity figures for a single file."""

    lines_of_code: int = 0
    cyclomatic_complexity: int = 1
    comment_ratio: float = 0.0

    def as_dict(self) -> dict:
        return {
            "linesOfCode": self.lines_of_code,
            "cyclomaticComplexity": self.cyclomatic_complexity,
            "commentRatio": self.comment_ratio,
        }


@dataclass
class LayerClassification:
    """Architectural layer assigned to a file, with a 0..1 confidence."""

    layer: str
    confidence: float

    def as_dict(self) -> dict:
        return {"layer": self.layer, "confidence": self.confidence}


@dataclass
class RiskDetail:
    """Numeric risk score plus the factors that contributed to it, in order."""

    level: str = "low"
    score: int = 0
    factors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"level": self.level, "score": self.score, "factors": list(self.factors)}


@dataclass
class SecurityInsight:
    """A finding from the line-level security pattern scan."""

    type: str
    file_path: str
    severity: str
    message: str
    line: Optional[int] = None

    def as_dict(self) -> dict:
        return _drop_none({
            "type": self.type,
            "filePath": self.file_path,
            "line": self.line,
            "severity": self.severity,
            "message": self.message,
        })


@dataclass
class GraphNode:
    """One analyzable source file.

    ``id`` is the absolute path and is unique across the node set.
    ``path`` is the POSIX path relative to the repository root.
    """

    id: str
    label: str
    type: str
    path: str
    risk_level: str = "low"
    fan_in: int = 0
    fan_out: int = 0
    module_role: Optional[str] = None
    in_cycle: bool = False
    metrics: Optional[CodeMetrics] = None
    layer_classification: Optional[LayerClassification] = None
    risk_detail: Optional[RiskDetail] = None

    @property
    def extension(self) -> str:
        dot = self.label.rfind(".")
        return self.label[dot:].lower() if dot > 0 else ""

    def as_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "path": self.path,
            "riskLevel": self.risk_level,
            "fanIn": self.fan_in,
            "fanOut": self.fan_out,
            "moduleRole": self.module_role,
            "inCycle": self.in_cycle,
            "metrics": self.metrics.as_dict() if self.metrics else None,
            "layerClassification": (
                self.layer_classification.as_dict() if self.layer_classification else None
            ),
            "riskDetail": self.risk_detail.as_dict() if self.risk_detail else None,
        })


@dataclass
class GraphEdge:
    """A directed "imports" relationship. At most one per (source, target) pair."""

    id: str
    source: str
    target: str
    type: str = "static"
    label: Optional[str] = None
    imports: list[str] = field(default_factory=list)

    def merge_imports(self, specifiers: list[str]) -> None:
        """Union *specifiers* into this edge, keeping first-seen order."""
        for name in specifiers:
            if name not in self.imports:
                self.imports.append(name)

    def as_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "label": self.label,
            "imports": list(self.imports),
        })


@dataclass
class DetectedFramework:
    name: str
    version: Optional[str] = None

    def as_dict(self) -> dict:
        return _drop_none({"name": self.name, "version": self.version})


@dataclass
class ArchitecturalPattern:
    name: str
    confidence: str
    hint: Optional[str] = None

    def as_dict(self) -> dict:
        return _drop_none({"name": self.name, "confidence": self.confidence, "hint": self.hint})


@dataclass
class ProjectStats:
    """Aggregate statistics for one analysis run."""

    languages: dict[str, int] = field(default_factory=dict)  # extension -> file count
    language_versions: dict[str, str] = field(default_factory=dict)
    frameworks: list[str] = field(default_factory=list)
    framework_versions: list[DetectedFramework] = field(default_factory=list)
    entry_points: list[str] = field(default_factory=list)
    total_files: int = 0
    primary_language: Optional[str] = None
    architectural_patterns: list[ArchitecturalPattern] = field(default_factory=list)
    truncated: bool = False  # True when the file cap stopped the scan

    def as_dict(self) -> dict:
        return _drop_none({
            "languages": dict(self.languages),
            "languageVersions": dict(self.language_versions) or None,
            "frameworks": list(self.frameworks),
            "frameworkVersions": [f.as_dict() for f in self.framework_versions],
            "entryPoints": list(self.entry_points),
            "totalFiles": self.total_files,
            "primaryLanguage": self.primary_language,
            "architecturalPatterns": [p.as_dict() for p in self.architectural_patterns],
            "truncated": self.truncated,
        })


@dataclass
class CircularDependency:
    """One strongly-connected component with two or more members."""

    ids: list[str]
    path_labels: list[str]

    def as_dict(self) -> dict:
        return {"ids": list(self.ids), "pathLabels": list(self.path_labels)}


@dataclass
class DependencyGraph:
    """Complete result of analysing one repository."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    stats: ProjectStats = field(default_factory=ProjectStats)
    circular_dependencies: list[CircularDependency] = field(default_factory=list)
    high_fan_in_ids: list[str] = field(default_factory=list)
    high_fan_out_ids: list[str] = field(default_factory=list)
    security_insights: list[SecurityInsight] = field(default_factory=list)
    layer_breakdown: dict[str, int] = field(default_factory=dict)
    code_quality_score: int = 100

    def node_by_id(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def as_dict(self) -> dict:
        """Serialise to a plain dict suitable for JSON output."""
        return {
            "nodes": [n.as_dict() for n in self.nodes],
            "edges": [e.as_dict() for e in self.edges],
            "stats": self.stats.as_dict(),
            "circularDependencies": [c.as_dict() for c in self.circular_dependencies],
            "highFanInIds": list(self.high_fan_in_ids),
            "highFanOutIds": list(self.high_fan_out_ids),
            "securityInsights": [s.as_dict() for s in self.security_insights],
            "layerBreakdown": dict(self.layer_breakdown),
            "codeQualityScore": self.code_quality_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DependencyGraph":
        """Rebuild a graph from the output of :meth:`as_dict`."""
        stats_data = data.get("stats") or {}
        stats = ProjectStats(
            languages=dict(stats_data.get("languages", {})),
            language_versions=dict(stats_data.get("languageVersions") or {}),
            frameworks=list(stats_data.get("frameworks", [])),
            framework_versions=[
                DetectedFramework(name=f["name"], version=f.get("version"))
                for f in stats_data.get("frameworkVersions", [])
            ],
            entry_points=list(stats_data.get("entryPoints", [])),
            total_files=stats_data.get("totalFiles", 0),
            primary_language=stats_data.get("primaryLanguage"),
            architectural_patterns=[
                ArchitecturalPattern(
                    name=p["name"], confidence=p["confidence"], hint=p.get("hint")
                )
                for p in stats_data.get("architecturalPatterns", [])
            ],
            truncated=stats_data.get("truncated", False),
        )
        return cls(
            nodes=[_node_from_dict(n) for n in data.get("nodes", [])],
            edges=[
                GraphEdge(
                    id=e["id"],
                    source=e["source"],
                    target=e["target"],
                    type=e.get("type", "static"),
                    label=e.get("label"),
                    imports=list(e.get("imports", [])),
                )
                for e in data.get("edges", [])
            ],
            stats=stats,
            circular_dependencies=[
                CircularDependency(ids=list(c["ids"]), path_labels=list(c["pathLabels"]))
                for c in data.get("circularDependencies", [])
            ],
            high_fan_in_ids=list(data.get("highFanInIds", [])),
            high_fan_out_ids=list(data.get("highFanOutIds", [])),
            security_insights=[
                SecurityInsight(
                    type=s["type"],
                    file_path=s["filePath"],
                    severity=s["severity"],
                    message=s["message"],
                    line=s.get("line"),
                )
                for s in data.get("securityInsights", [])
            ],
            layer_breakdown=dict(data.get("layerBreakdown", {})),
            code_quality_score=data.get("codeQualityScore", 100),
        )


# ── Helpers ──


def _drop_none(d: dict) -> dict:
    """Omit keys whose value is None (absent optional fields)."""
    return {k: v for k, v in d.items() if v is not None}


def _node_from_dict(data: dict) -> GraphNode:
    metrics = data.get("metrics")
    layer = data.get("layerClassification")
    risk = data.get("riskDetail")
    return GraphNode(
        id=data["id"],
        label=data["label"],
        type=data["type"],
        path=data["path"],
        risk_level=data.get("riskLevel", "low"),
        fan_in=data.get("fanIn", 0),
        fan_out=data.get("fanOut", 0),
        module_role=data.get("moduleRole"),
        in_cycle=data.get("inCycle", False),
        metrics=CodeMetrics(
            lines_of_code=metrics["linesOfCode"],
            cyclomatic_complexity=metrics["cyclomaticComplexity"],
            comment_ratio=metrics["commentRatio"],
        ) if metrics else None,
        layer_classification=LayerClassification(
            layer=layer["layer"], confidence=layer["confidence"]
        ) if layer else None,
        risk_detail=RiskDetail(
            level=risk["level"], score=risk["score"], factors=list(risk["factors"])
        ) if risk else None,
    )
