"""
Protocol Risk Scoring Implementation.

Runs the six category analyzers over one protocol description and blends the
results into a single ProtocolRiskReport:

    overall score    = weighted mean of category scores (see CATEGORY_WEIGHTS)
    overall severity = highest category severity (not derived from the score)

The weighted mean smooths, the max-severity escalates: a single critical
category always surfaces as a critical report even when the blended score is
moderate.
"""

import math
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Any

from risk_logging import get_logger
from risk_settings import ENGINE_CONFIG
from risk_types import (
    MissingRequiredField,
    Finding,
    RiskCategory,
    ProtocolRiskReport,
    ProtocolInput,
    TokenomicsData,
    GovernanceData,
    PoolData,
    NashEquilibriumContext,
    DominantStrategyContext,
)
from rule_engine import RiskAnalyzer, clamp_score, score_to_severity, severity_rank
from thresholds import CATEGORY_WEIGHTS, REPORT_SETTINGS
from economic_risk import EconomicAnalyzer
from governance_risk import GovernanceAnalyzer
from liquidity_risk import LiquidityAnalyzer
from mev_risk import MEVAnalyzer
from game_theory import GameTheoryAnalyzer
from composability_risk import ComposabilityAnalyzer
from data_adapter import load_protocol_input

logger = get_logger(__name__)


# =============================================================================
# ANALYZER REGISTRY
# =============================================================================

# Report key -> analyzer. Key order is the report's category order.
ANALYZERS = {
    "economic": EconomicAnalyzer,
    "governance": GovernanceAnalyzer,
    "liquidity": LiquidityAnalyzer,
    "composability": ComposabilityAnalyzer,
    "mev": MEVAnalyzer,
    "gameTheory": GameTheoryAnalyzer,
}


# =============================================================================
# DEMO PROTOCOL
# =============================================================================

DEMO_PROTOCOL = ProtocolInput(
    address="DemoProtocol111111111111111111111111111111111",
    name="Risky DeFi Protocol",
    tvl=50_000_000,
    tokenomics=TokenomicsData(
        total_supply=1_000_000_000,
        circulating_supply=250_000_000,
        emission_rate=100_000,
        concentration=0.75,
    ),
    governance=GovernanceData(
        quorum=0.03,
        voting_period=2 * 24 * 3600,
        timelock_delay=12 * 3600,
        proposal_threshold=0.01,
        top_holder_voting_power=0.45,
    ),
    pools=[
        PoolData(address="pool1", token0="SOL", token1="DEMO", liquidity=50_000, volume24h=45_000, fees=0.003),
        PoolData(address="pool2", token0="USDC", token1="DEMO", liquidity=200_000, volume24h=150_000, fees=0.001),
        PoolData(address="pool3", token0="DEMO", token1="JUP", liquidity=30_000, volume24h=25_000, fees=0.003),
    ],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _empty_category(key: str) -> RiskCategory:
    return RiskCategory(name=key, score=0.0, severity="low", findings=[])


def _has_valid_confidence(finding: Any) -> bool:
    if not isinstance(finding, Finding):
        return False
    confidence = finding.confidence
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return False
    return math.isfinite(confidence)


def _sanitize_category(key: str, category: Any) -> RiskCategory:
    """Zero-score low category for anything missing or malformed.

    Scores are clamped to [0, 10] and severity is always recomputed from the
    score. Findings without a finite numeric confidence are dropped.
    """
    if not isinstance(category, RiskCategory):
        return _empty_category(key)
    try:
        score = float(category.score)
    except (TypeError, ValueError):
        return _empty_category(key)
    if not math.isfinite(score):
        return _empty_category(key)
    score = clamp_score(score)
    findings = [f for f in (category.findings or []) if _has_valid_confidence(f)]
    return RiskCategory(name=category.name or key, score=score, severity=score_to_severity(score), findings=findings)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round with halves going up (round() would send 0.25 to 0.2)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def build_summary(protocol_name: str, all_findings: List[Finding], high_confidence: List[Finding],
                  game_theory_findings: List[Finding]) -> str:
    summary = (
        f"Analyzed {protocol_name}: Found {len(all_findings)} potential risk factors. "
        f"{len(high_confidence)} high-confidence findings require immediate attention."
    )

    threshold = REPORT_SETTINGS["game_theory_summary_confidence"]
    concepts: List[str] = []
    for finding in game_theory_findings:
        if finding.confidence <= threshold or finding.game_theory is None:
            continue
        concept = finding.game_theory.concept
        if concept and concept not in concepts:
            concepts.append(concept)

    if concepts:
        shown = ", ".join(concepts[:REPORT_SETTINGS["max_summary_concepts"]])
        summary += f" Game-theoretic vulnerabilities detected: {shown}."
    return summary


def build_recommendations(high_confidence: List[Finding]) -> List[str]:
    """Top mitigations (or titles) by descending confidence; sort is stable."""
    ranked = sorted(high_confidence, key=lambda f: f.confidence, reverse=True)
    recommendations = []
    for finding in ranked[:REPORT_SETTINGS["max_recommendations"]]:
        text = finding.mitigation or finding.title
        if text:
            recommendations.append(text)
    return recommendations


def extract_nash_equilibria(game_theory_findings: List[Finding]) -> Optional[List[str]]:
    equilibria = [
        eq
        for f in game_theory_findings
        if isinstance(f.game_theory, NashEquilibriumContext)
        for eq in f.game_theory.equilibria
    ]
    return equilibria or None


def extract_dominant_strategies(game_theory_findings: List[Finding]) -> Optional[List[str]]:
    strategies = [
        f"{f.game_theory.strategy} ({f.game_theory.dominance})"
        for f in game_theory_findings
        if isinstance(f.game_theory, DominantStrategyContext)
        and f.game_theory.strategy
        and f.game_theory.dominance
    ]
    return strategies or None


# =============================================================================
# AGGREGATION
# =============================================================================

def aggregate_report(
    protocol_name: str,
    address: str,
    categories: Dict[str, Any],
) -> ProtocolRiskReport:
    """
    Blend category results into one report.

    Never raises: a category that is missing or malformed is scored as a
    zero-score, low-severity category with no findings.

    Args:
        protocol_name: Display name of the protocol
        address: Protocol address / identifier
        categories: Dict keyed economic, governance, liquidity, composability,
                    mev, gameTheory

    Returns:
        ProtocolRiskReport
    """
    categories = categories or {}
    clean = {key: _sanitize_category(key, categories.get(key)) for key in CATEGORY_WEIGHTS}

    overall_score = sum(
        clean[key].score * config["weight"]
        for key, config in CATEGORY_WEIGHTS.items()
    )

    overall_severity = "low"
    for category in clean.values():
        if severity_rank(category.severity) > severity_rank(overall_severity):
            overall_severity = category.severity

    all_findings = [f for category in clean.values() for f in category.findings]
    high_confidence = [f for f in all_findings if f.confidence > REPORT_SETTINGS["high_confidence"]]
    game_theory_findings = clean["gameTheory"].findings

    return ProtocolRiskReport(
        protocol=protocol_name,
        address=address,
        timestamp=int(time.time() * 1000),
        overall_score=round_half_up(overall_score, 1),
        overall_severity=overall_severity,
        categories=clean,
        summary=build_summary(protocol_name, all_findings, high_confidence, game_theory_findings),
        recommendations=build_recommendations(high_confidence),
        nash_equilibria=extract_nash_equilibria(game_theory_findings),
        dominant_strategies=extract_dominant_strategies(game_theory_findings),
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def validate_protocol(protocol: ProtocolInput) -> None:
    """Raise MissingRequiredField when address or name is absent or blank."""
    for field_name in ("address", "name"):
        value = getattr(protocol, field_name, None)
        if not isinstance(value, str) or not value.strip():
            raise MissingRequiredField(field_name)


def run_analyzers(
    protocol: ProtocolInput,
    parallel: Optional[bool] = None,
    max_workers: Optional[int] = None,
) -> Dict[str, RiskCategory]:
    """Run every registered analyzer; results keyed by report category key."""
    if parallel is None:
        parallel = ENGINE_CONFIG["parallel_analyzers"]
    if max_workers is None:
        max_workers = ENGINE_CONFIG["max_workers"]

    analyzers: Dict[str, RiskAnalyzer] = {key: cls() for key, cls in ANALYZERS.items()}

    if not parallel:
        return {key: analyzer.analyze(protocol) for key, analyzer in analyzers.items()}

    results: Dict[str, RiskCategory] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(analyzer.analyze, protocol): key
            for key, analyzer in analyzers.items()
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    # Report order does not depend on completion order
    return {key: results[key] for key in ANALYZERS}


def score_protocol(
    protocol: ProtocolInput,
    parallel: Optional[bool] = None,
) -> ProtocolRiskReport:
    """
    Score one protocol across all six categories.

    Args:
        protocol: Validated protocol description. Only address and name are
                  required; missing optional sections degrade to placeholder
                  findings inside the affected categories.
        parallel: Run analyzers in a thread pool. Defaults to
                  RISK_PARALLEL_ANALYZERS. Results are identical either way.

    Returns:
        ProtocolRiskReport

    Raises:
        MissingRequiredField: address or name missing
    """
    validate_protocol(protocol)

    start = time.perf_counter()
    categories = run_analyzers(protocol, parallel=parallel)

    for key, category in categories.items():
        logger.debug(
            "category_scored",
            category=key,
            score=round(category.score, 2),
            severity=category.severity,
            findings=len(category.findings),
        )

    report = aggregate_report(protocol.name, protocol.address, categories)

    logger.info(
        "report_generated",
        protocol=report.protocol,
        overall_score=report.overall_score,
        overall_severity=report.overall_severity,
        findings=len(report.all_findings()),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return report


def score_protocol_data(data: Dict[str, Any], parallel: Optional[bool] = None) -> ProtocolRiskReport:
    """Score a JSON-style protocol document (camelCase keys)."""
    return score_protocol(load_protocol_input(data), parallel=parallel)


def get_report_findings(report: ProtocolRiskReport) -> List[dict]:
    """
    Flatten a report into one row per finding for display.

    Args:
        report: Output from score_protocol

    Returns:
        List of finding rows
    """
    rows = []
    for key, category in report.categories.items():
        for finding in category.findings:
            rows.append({
                "category": category.name,
                "category_key": key,
                "category_score": round(category.score, 2),
                "severity": category.severity,
                "title": finding.title,
                "confidence": finding.confidence,
                "description": finding.description,
                "attack_vector": finding.attack_vector or "",
                "mitigation": finding.mitigation or "",
                "concept": finding.game_theory.concept if finding.game_theory else "",
            })
    return rows
