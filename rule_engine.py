"""
Rule Engine - shared machinery for the category analyzers.

Every analyzer is an ordered table of rule checks. A rule check examines one
or more input fields against fixed thresholds and returns a CheckOutcome:
the findings it raised and the points it contributes to the category's
running score. The analyzer then folds the outcomes into a 0-10 score using
its own scoring convention.

Rule checks never raise for missing optional data: a check that does not
apply returns None and is not counted.
"""

from typing import Dict, Any, List, Optional, Callable
from dataclasses import dataclass, field
from enum import Enum

from risk_logging import get_logger
from risk_types import Finding, GameTheoryContext, PoolData, ProtocolInput, RiskCategory
from thresholds import (
    SEVERITY_SCALE,
    SEVERITY_ORDER,
    CONFIDENCE_SEVERITY,
    SEVERITY_WEIGHTS,
)

logger = get_logger(__name__)

MAX_SCORE = 10.0


class ScoringMode(Enum):
    MEAN_PER_CHECK = "mean_per_check"
    MEAN_PER_FINDING = "mean_per_finding"
    CONFIDENCE_WEIGHTED = "confidence_weighted"
    CONFIDENCE_MEAN = "confidence_mean"


@dataclass
class CheckOutcome:
    """Result of a single rule check."""
    check_id: str
    findings: List[Finding] = field(default_factory=list)
    score: float = 0.0


@dataclass
class RuleCheck:
    """One entry of an analyzer's rule table."""
    check_id: str
    condition: str
    evaluate: Callable[[ProtocolInput], Optional[CheckOutcome]]


# =============================================================================
# SEVERITY HELPERS
# =============================================================================

def score_to_severity(score: float) -> str:
    """Convert a 0-10 risk score to its severity tier."""
    for severity in reversed(SEVERITY_ORDER):
        if score >= SEVERITY_SCALE[severity]["min"]:
            return severity
    return "low"


def confidence_to_severity(confidence: float) -> str:
    """Map a finding's confidence to a severity tier (game-theory weighting)."""
    for tier in CONFIDENCE_SEVERITY:
        if confidence >= tier["min_confidence"]:
            return tier["severity"]
    return "low"


def severity_rank(severity: str) -> int:
    """Position in SEVERITY_ORDER; unknown values rank as low."""
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        return 0


def clamp_score(score: float) -> float:
    return max(0.0, min(MAX_SCORE, score))


# =============================================================================
# FINDING TEMPLATES
# =============================================================================

def make_finding(
    template: Dict[str, Any],
    game_theory: Optional[GameTheoryContext] = None,
    **values,
) -> Finding:
    """
    Build a Finding from a template dict.

    Args:
        template: Dict with title, description, confidence and optional
                  attack_vector / mitigation. Text fields may contain
                  str.format placeholders filled from `values`.
        game_theory: Optional game-theoretic annotation
        **values: Placeholder values

    Returns:
        Finding
    """
    def fill(key: str) -> Optional[str]:
        text = template.get(key)
        if text is None:
            return None
        return text.format(**values) if values else text

    return Finding(
        title=fill("title"),
        description=fill("description"),
        confidence=template["confidence"],
        attack_vector=fill("attack_vector"),
        mitigation=fill("mitigation"),
        game_theory=game_theory,
    )


def placeholder_category(name: str, score: float, template: Dict[str, Any]) -> RiskCategory:
    """Category returned when the input section an analyzer needs is absent."""
    return RiskCategory(
        name=name,
        score=score,
        severity=score_to_severity(score),
        findings=[make_finding(template)],
    )


# =============================================================================
# POOL METRICS
# =============================================================================

def total_liquidity(pools: List[PoolData]) -> float:
    return sum(p.liquidity for p in pools)


def total_volume(pools: List[PoolData]) -> float:
    return sum(p.volume24h for p in pools)


def pool_turnover(pool: PoolData) -> float:
    """Daily volume relative to liquidity. Zero liquidity is treated as $1."""
    return pool.volume24h / (pool.liquidity or 1)


# =============================================================================
# ANALYZER BASE
# =============================================================================

class RiskAnalyzer:
    """
    Base class for the six category analyzers.

    Subclasses set `category_name` and `scoring_mode`, implement rule_checks()
    and optionally placeholder() for a missing input section.
    """

    category_name = "Risk"
    scoring_mode = ScoringMode.MEAN_PER_FINDING

    def rule_checks(self) -> List[RuleCheck]:
        raise NotImplementedError

    def placeholder(self, protocol: ProtocolInput) -> Optional[RiskCategory]:
        """Return a placeholder category when required data is absent, else None."""
        return None

    def analyze(self, protocol: ProtocolInput) -> RiskCategory:
        placeholder = self.placeholder(protocol)
        if placeholder is not None:
            logger.debug("analyzer_placeholder", category=self.category_name)
            return placeholder

        outcomes: List[CheckOutcome] = []
        for check in self.rule_checks():
            outcome = check.evaluate(protocol)
            if outcome is None:
                continue
            outcomes.append(outcome)
            if outcome.findings:
                logger.debug(
                    "rule_check_triggered",
                    category=self.category_name,
                    check_id=check.check_id,
                    findings=len(outcome.findings),
                    points=outcome.score,
                )

        findings = [f for outcome in outcomes for f in outcome.findings]
        score = clamp_score(self.score(outcomes, findings))

        return RiskCategory(
            name=self.category_name,
            score=score,
            severity=score_to_severity(score),
            findings=findings,
        )

    def score(self, outcomes: List[CheckOutcome], findings: List[Finding]) -> float:
        """Fold check outcomes into a raw (unclamped) category score."""
        if self.scoring_mode == ScoringMode.MEAN_PER_CHECK:
            if not outcomes:
                return 0.0
            return sum(o.score for o in outcomes) / len(outcomes)

        if not findings:
            return 0.0

        if self.scoring_mode == ScoringMode.MEAN_PER_FINDING:
            return sum(o.score for o in outcomes) / len(findings)

        if self.scoring_mode == ScoringMode.CONFIDENCE_WEIGHTED:
            weighted = sum(
                SEVERITY_WEIGHTS[confidence_to_severity(f.confidence)] * f.confidence
                for f in findings
            )
            return weighted / len(findings)

        # CONFIDENCE_MEAN
        return sum(f.confidence * 10 for f in findings) / len(findings)
