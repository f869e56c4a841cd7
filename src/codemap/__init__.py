"""codemap — Multi-language static dependency analysis for source repositories."""

from codemap.analyzer import (
    AnalyzerConfig,
    DependencyAnalyzer,
    analyze_repository,
)
from codemap.cache import ContentCache
from codemap.languages import (
    LanguageRegistry,
    LanguageSpec,
    default_registry,
)
from codemap.metrics import RiskPolicy
from codemap.models import (
    ArchitecturalPattern,
    CircularDependency,
    CodeMetrics,
    DependencyGraph,
    DetectedFramework,
    GraphEdge,
    GraphNode,
    LayerClassification,
    ProjectStats,
    RiskDetail,
    SecurityInsight,
)
from codemap.postprocess import PATTERN_RULES, PatternRule
from codemap.scanner import AnalysisError, FileScanner, ScanError, ScanResult
from codemap.tree import FileTreeNode, build_file_tree

__all__ = [
    # Analyzer
    "analyze_repository",
    "DependencyAnalyzer",
    "AnalyzerConfig",
    "AnalysisError",
    "ScanError",
    # Graph model
    "DependencyGraph",
    "GraphNode",
    "GraphEdge",
    "ProjectStats",
    "CodeMetrics",
    "LayerClassification",
    "RiskDetail",
    "SecurityInsight",
    "DetectedFramework",
    "ArchitecturalPattern",
    "CircularDependency",
    # Language registry
    "LanguageRegistry",
    "LanguageSpec",
    "default_registry",
    # Scanning
    "FileScanner",
    "ScanResult",
    "ContentCache",
    # Policies
    "RiskPolicy",
    "PatternRule",
    "PATTERN_RULES",
    # File tree
    "FileTreeNode",
    "build_file_tree",
]
