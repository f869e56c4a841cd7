"""Code metrics, security pattern scan, and risk / quality scoring.

Everything here is a pure function of file content or of an already
populated ``GraphNode``. The thresholds and weights of the risk score live
in ``RiskPolicy`` so callers can tune them without touching the logic.
"""

import re
from dataclasses import dataclass

from codemap.models import CodeMetrics, GraphNode, RiskDetail, SecurityInsight

# ── Code Metrics ──

# Decision points counted by the cyclomatic-complexity proxy
COMPLEXITY_PATTERNS = (
    re.compile(r"\bif\b"),
    re.compile(r"\belif\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b"),
    re.compile(r"\bexcept\b"),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
    re.compile(r"\band\b"),
    re.compile(r"\bor\b"),
    re.compile(r"\s\?\s"),
    re.compile(r"\bmatch\b"),
    re.compile(r"\bwhen\b"),
)

COMMENT_MARKERS = ("//", "#", "/*", "*", "--", "<!--", '"""', "'''")


def compute_code_metrics(content: str) -> CodeMetrics:
    lines = [line.strip() for line in content.splitlines()]
    code_lines = [line for line in lines if line]
    loc = len(code_lines)
    complexity = 1 + sum(len(p.findall(content)) for p in COMPLEXITY_PATTERNS)
    comments = sum(1 for line in code_lines if line.startswith(COMMENT_MARKERS))
    ratio = comments / loc if loc else 0.0
    return CodeMetrics(
        lines_of_code=loc,
        cyclomatic_complexity=complexity,
        comment_ratio=round(ratio, 4),
    )


# ── Security Scan ──

# apiKey = "...", SECRET_TOKEN: '...', client_secret := "...", password: str = "..."
_SECRET_RE = re.compile(
    r"""(?i)\b[\w-]*(?:api[_-]?key|secret|token|passw(?:or)?d|pwd|private[_-]?key|access[_-]?key)[\w-]*"""
    r"""["']?\s*(?::\s*[\w<>\[\].]+(?:\s*\|\s*[\w<>\[\].]+)*\s*)?"""
    r"""(?::=|=|:)\s*["'`]([^"'`\s]{8,})["'`]"""
)
# Matched against the quoted value only
_PLACEHOLDER_MARKERS = (
    "example",
    "placeholder",
    "changeme",
    "change_me",
    "xxx",
    "your_",
    "your-",
    "<your",
    "test",
    "dummy",
    "sample",
    "fake",
)

_EVAL_RES = (
    re.compile(r"(?<![\w.])eval\s*\("),
    re.compile(r"\bnew\s+Function\s*\("),
    re.compile(r"(?<![\w.])exec\s*\("),
)

# .query(`...${x}`)  cursor.execute(f"...")  db.raw("..." + x)  execute("..." % x)
_SQL_CALL_RE = re.compile(r"""\b(?:query|execute|executemany|raw|exec_sql|rawQuery)\s*\((.*)""", re.IGNORECASE)
_SQL_INTERPOLATION_RES = (
    re.compile(r"\$\{"),
    re.compile(r"""(?<![\w])f["']"""),
    re.compile(r"""["'`]\s*\+|\+\s*["'`]"""),
    re.compile(r"""["']\s*%\s*[\w(]"""),
    re.compile(r"""["']\.format\("""),
)


def _is_comment_line(stripped: str) -> bool:
    return stripped.startswith(COMMENT_MARKERS)


def _is_placeholder(value: str) -> bool:
    lowered = value.lower()
    return any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


def scan_security(content: str, rel_path: str) -> list[SecurityInsight]:
    """Line-level pattern scan. Line numbers are 1-based."""
    insights: list[SecurityInsight] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue

        secret = _SECRET_RE.search(line)
        if secret and not _is_placeholder(secret.group(1)):
            insights.append(SecurityInsight(
                type="hardcoded-secret",
                file_path=rel_path,
                line=lineno,
                severity="critical",
                message="Possible hardcoded credential assigned to a secret-like name",
            ))

        if _is_comment_line(stripped):
            continue

        if any(p.search(line) for p in _EVAL_RES):
            insights.append(SecurityInsight(
                type="unsafe-eval",
                file_path=rel_path,
                line=lineno,
                severity="warning",
                message="Dynamic code evaluation (eval/exec/new Function)",
            ))

        call = _SQL_CALL_RE.search(line)
        if call and any(p.search(call.group(1)) for p in _SQL_INTERPOLATION_RES):
            insights.append(SecurityInsight(
                type="sql-injection-risk",
                file_path=rel_path,
                line=lineno,
                severity="warning",
                message="Query built with string interpolation or concatenation",
            ))
    return insights


# ── Risk Scoring ──


@dataclass(frozen=True)
class RiskPolicy:
    """Thresholds and weights of the per-file risk score."""

    loc_high: int = 500
    loc_high_weight: int = 20
    loc_medium: int = 300
    loc_medium_weight: int = 10
    complexity_high: int = 20
    complexity_high_weight: int = 20
    complexity_medium: int = 10
    complexity_medium_weight: int = 10
    low_comment_ratio: float = 0.05
    low_comment_min_loc: int = 50
    low_comment_weight: int = 5
    fan_in_high: int = 10
    fan_in_high_weight: int = 15
    fan_in_medium: int = 5
    fan_in_medium_weight: int = 8
    fan_out_high: int = 10
    fan_out_high_weight: int = 10
    cycle_weight: int = 15
    any_type_weight: int = 5
    any_type_extensions: tuple[str, ...] = (".ts", ".tsx")
    high_score: int = 50
    medium_score: int = 25

    def level_for(self, score: int) -> str:
        if score > self.high_score:
            return "high"
        if score > self.medium_score:
            return "medium"
        return "low"


DEFAULT_POLICY = RiskPolicy()

CYCLE_FACTOR = "Part of a circular dependency"

# ": any", "<any>", "as any", "any[]"
_ANY_TYPE_RE = re.compile(r"(?::\s*any\b|<any>|\bas\s+any\b|\bany\[\])")


def score_risk(
    metrics: CodeMetrics,
    fan_in: int,
    fan_out: int,
    extension: str,
    content: str,
    in_cycle: bool = False,
    policy: RiskPolicy = DEFAULT_POLICY,
) -> RiskDetail:
    score = 0
    factors: list[str] = []

    loc = metrics.lines_of_code
    if loc > policy.loc_high:
        score += policy.loc_high_weight
        factors.append(f"Large file ({loc} lines)")
    elif loc > policy.loc_medium:
        score += policy.loc_medium_weight
        factors.append(f"Moderately large file ({loc} lines)")

    cc = metrics.cyclomatic_complexity
    if cc > policy.complexity_high:
        score += policy.complexity_high_weight
        factors.append(f"High cyclomatic complexity ({cc})")
    elif cc > policy.complexity_medium:
        score += policy.complexity_medium_weight
        factors.append(f"Moderate cyclomatic complexity ({cc})")

    if metrics.comment_ratio < policy.low_comment_ratio and loc > policy.low_comment_min_loc:
        score += policy.low_comment_weight
        factors.append("Low comment ratio")

    if fan_in > policy.fan_in_high:
        score += policy.fan_in_high_weight
        factors.append(f"High fan-in ({fan_in} dependents)")
    elif fan_in > policy.fan_in_medium:
        score += policy.fan_in_medium_weight
        factors.append(f"Moderate fan-in ({fan_in} dependents)")

    if fan_out > policy.fan_out_high:
        score += policy.fan_out_high_weight
        factors.append(f"High fan-out ({fan_out} dependencies)")

    if in_cycle:
        score += policy.cycle_weight
        factors.append(CYCLE_FACTOR)

    if extension.lower() in policy.any_type_extensions and _ANY_TYPE_RE.search(content):
        score += policy.any_type_weight
        factors.append("Uses 'any' type")

    return RiskDetail(level=policy.level_for(score), score=score, factors=factors)


def apply_cycle_penalty(node: GraphNode, policy: RiskPolicy = DEFAULT_POLICY) -> None:
    """Second-pass update for a node found in a cycle. Applied at most once."""
    detail = node.risk_detail or RiskDetail()
    if CYCLE_FACTOR in detail.factors:
        return
    detail.score += policy.cycle_weight
    detail.factors.append(CYCLE_FACTOR)
    detail.level = policy.level_for(detail.score)
    node.risk_detail = detail
    node.risk_level = detail.level


# ── Quality ──


def node_quality(node: GraphNode) -> int:
    score = node.risk_detail.score if node.risk_detail else 0
    return max(0, 100 - score)


def project_quality_score(nodes: list[GraphNode]) -> int:
    """Mean per-node quality, rounded half up; 100 for an empty graph."""
    if not nodes:
        return 100
    mean = sum(node_quality(n) for n in nodes) / len(nodes)
    return int(mean + 0.5)
