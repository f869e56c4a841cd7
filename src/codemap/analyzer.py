"""Dependency Analyzer: run every pass over one repository.

Pass order::

    scan -> resolve imports + per-file metrics (batched, threaded)
         -> risk scoring -> cycle detection (+ cycle penalty)
         -> post-processing -> DependencyGraph

Only file reads overlap. Worker threads return their findings and the
calling thread merges them in node order, so the edge list, fan counts and
everything derived from them are identical from run to run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from codemap.cache import ContentCache
from codemap.classify import classify_layer
from codemap.cycles import find_circular_dependencies
from codemap.imports import ImportResolver, extract_imports
from codemap.languages import LanguageRegistry, default_registry
from codemap.manifests import detect_language_version
from codemap.metrics import (
    RiskPolicy,
    apply_cycle_penalty,
    compute_code_metrics,
    project_quality_score,
    scan_security,
    score_risk,
)
from codemap.models import (
    CodeMetrics,
    DependencyGraph,
    DetectedFramework,
    GraphEdge,
    GraphNode,
    LayerClassification,
    ProjectStats,
    SecurityInsight,
)
from codemap.postprocess import (
    assign_module_roles,
    detect_architectural_patterns,
    layer_breakdown,
    primary_language,
    top_fan_ids,
)
from codemap.scanner import FileScanner, ScanError

logger = logging.getLogger(__name__)


# ── Configuration ──


@dataclass
class AnalyzerConfig:
    """Tunables for one analysis run.

    Attributes:
        max_files: Hard cap on files visited by the scanner.
        batch_size: Nodes processed concurrently per batch (and worker count).
        top_n: Length of the high fan-in / fan-out lists.
        entry_point_max_depth: Deepest path (in components) still recorded
            as an entry point.
        monorepo_entry_threshold: Entry-point count above which the
            monorepo pattern fires.
        risk_policy: Risk thresholds and weights.
        registry: Language table; the stock registry when None.
    """

    max_files: int = 5000
    batch_size: int = 50
    top_n: int = 5
    entry_point_max_depth: int = 2
    monorepo_entry_threshold: int = 10
    risk_policy: RiskPolicy = field(default_factory=RiskPolicy)
    registry: Optional[LanguageRegistry] = None

    def __post_init__(self):
        if self.max_files < 1:
            raise ValueError(f"max_files must be positive, got {self.max_files}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


@dataclass
class _NodeFindings:
    """What a worker learned about one node."""

    targets: list[tuple[str, list[str]]] = field(default_factory=list)  # (target id, specifiers)
    metrics: CodeMetrics = field(default_factory=CodeMetrics)
    layer: Optional[LayerClassification] = None
    insights: list[SecurityInsight] = field(default_factory=list)


# ── Analyzer ──


class DependencyAnalyzer:
    """Builds a DependencyGraph for a directory on local disk.

    Holds configuration only; every call to :meth:`analyze` owns its own
    content cache, so one analyzer can serve several repositories.

    Usage::

        graph = DependencyAnalyzer().analyze("/path/to/repo")
        print(len(graph.nodes), len(graph.edges), graph.code_quality_score)
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self._config = config or AnalyzerConfig()
        self._registry = self._config.registry or default_registry()

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    # ── Public API ──

    def analyze(self, root: str | Path) -> DependencyGraph:
        """Analyze *root*. An unreadable root yields an empty graph, not an error."""
        cache = ContentCache()
        try:
            return self._run(Path(root), cache)
        finally:
            cache.clear()

    # ── Passes ──

    def _run(self, root: Path, cache: ContentCache) -> DependencyGraph:
        cfg = self._config

        # 1. Scan
        scanner = FileScanner(
            root,
            self._registry,
            cache,
            max_files=cfg.max_files,
            entry_point_max_depth=cfg.entry_point_max_depth,
        )
        try:
            scan = scanner.scan()
        except ScanError as e:
            logger.warning("Scan failed: %s", e)
            return DependencyGraph()

        nodes = scan.nodes
        stats = scan.stats

        # 2. Imports, metrics, layers and security (batched)
        findings = self._analyze_nodes(nodes, cache)
        edges = self._build_edges(nodes, findings)
        insights: list[SecurityInsight] = []
        for node, found in zip(nodes, findings):
            node.metrics = found.metrics
            node.layer_classification = found.layer
            insights.extend(found.insights)

        # 3. Risk
        for node in nodes:
            node.risk_detail = score_risk(
                node.metrics,
                node.fan_in,
                node.fan_out,
                node.extension,
                cache.get(node.id),
                policy=cfg.risk_policy,
            )
            node.risk_level = node.risk_detail.level

        # 4. Cycles
        cycles = find_circular_dependencies(nodes, edges)
        cyclic_ids = {node_id for cycle in cycles for node_id in cycle.ids}
        for node in nodes:
            node.in_cycle = node.id in cyclic_ids
            if node.in_cycle:
                apply_cycle_penalty(node, cfg.risk_policy)

        # 5. Post-processing
        assign_module_roles(nodes)
        self._finish_stats(stats, scan.framework_versions, scan.root_manifests)

        logger.info(
            "Analyzed %s: %d nodes, %d edges, %d cycles",
            scanner.root,
            len(nodes),
            len(edges),
            len(cycles),
        )
        return DependencyGraph(
            nodes=nodes,
            edges=edges,
            stats=stats,
            circular_dependencies=cycles,
            high_fan_in_ids=top_fan_ids(nodes, "fan_in", cfg.top_n),
            high_fan_out_ids=top_fan_ids(nodes, "fan_out", cfg.top_n),
            security_insights=sorted(insights, key=lambda s: (s.file_path, s.line or 0)),
            layer_breakdown=layer_breakdown(nodes),
            code_quality_score=project_quality_score(nodes),
        )

    def _analyze_nodes(self, nodes: list[GraphNode], cache: ContentCache) -> list[_NodeFindings]:
        """Run the per-file work in batches of ``batch_size``; results follow node order."""
        resolver = ImportResolver(self._registry, {n.path: n.id for n in nodes})
        results: list[Optional[_NodeFindings]] = [None] * len(nodes)
        batch_size = self._config.batch_size

        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for start in range(0, len(nodes), batch_size):
                batch = range(start, min(start + batch_size, len(nodes)))
                future_to_index = {
                    executor.submit(self._analyze_node, nodes[i], cache, resolver): i
                    for i in batch
                }
                for future in as_completed(future_to_index):
                    i = future_to_index[future]
                    try:
                        results[i] = future.result()
                    except Exception as e:
                        logger.warning("Failed to analyze %s: %s", nodes[i].path, e)
                        results[i] = _NodeFindings(
                            layer=classify_layer(nodes[i].type, nodes[i].path)
                        )
        return results

    def _analyze_node(
        self, node: GraphNode, cache: ContentCache, resolver: ImportResolver
    ) -> _NodeFindings:
        content = cache.get(node.id)
        found = _NodeFindings(
            metrics=compute_code_metrics(content),
            layer=classify_layer(node.type, node.path),
            insights=scan_security(content, node.path),
        )
        spec = self._registry.for_extension(node.extension)
        if spec is None:
            return found
        for imp in extract_imports(content, spec):
            target = resolver.resolve(node.path, imp, spec)
            if target and target != node.id:
                found.targets.append((target, imp.specifiers))
        return found

    def _build_edges(
        self, nodes: list[GraphNode], findings: list[_NodeFindings]
    ) -> list[GraphEdge]:
        """One edge per (source, target); repeats merge their specifiers."""
        by_id = {node.id: node for node in nodes}
        edges: dict[tuple[str, str], GraphEdge] = {}
        for node, found in zip(nodes, findings):
            for target_id, specifiers in found.targets:
                key = (node.id, target_id)
                edge = edges.get(key)
                if edge is None:
                    target = by_id[target_id]
                    edge = GraphEdge(
                        id=f"{node.id}-{target_id}",
                        source=node.id,
                        target=target_id,
                        label=f"{node.label} → {target.label}",
                    )
                    edges[key] = edge
                    node.fan_out += 1
                    target.fan_in += 1
                edge.merge_imports(specifiers)
        return list(edges.values())

    def _finish_stats(
        self,
        stats: ProjectStats,
        framework_versions: dict[str, str],
        root_manifests: dict[str, str],
    ) -> None:
        stats.framework_versions = [
            DetectedFramework(name=name, version=framework_versions.get(name) or None)
            for name in stats.frameworks
        ]
        for filename in sorted(root_manifests):
            detected = detect_language_version(filename, root_manifests[filename])
            if detected and detected[1]:
                runtime, version = detected
                stats.language_versions.setdefault(runtime, version)

        supported = {ext.lstrip(".") for ext in self._registry.supported_extensions()}
        stats.primary_language = primary_language(stats.languages, supported)
        stats.architectural_patterns = detect_architectural_patterns(
            stats, monorepo_entry_threshold=self._config.monorepo_entry_threshold
        )


def analyze_repository(
    root: str | Path, config: Optional[AnalyzerConfig] = None
) -> DependencyGraph:
    """Convenience wrapper: ``DependencyAnalyzer(config).analyze(root)``."""
    return DependencyAnalyzer(config).analyze(root)
