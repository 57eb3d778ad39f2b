"""
MEV Risk Analyzer.

Identifies Maximum Extractable Value exposure:
- Sandwich attack surfaces (high turnover, shallow pools)
- JIT liquidity targets (low fee tier, deep pools)
- Oracle update front-running

Scoring: mean of triggered points per finding.
"""

from typing import List, Optional

from risk_types import ProtocolInput, RiskCategory
from rule_engine import (
    RiskAnalyzer,
    RuleCheck,
    CheckOutcome,
    ScoringMode,
    make_finding,
    placeholder_category,
    pool_turnover,
)
from thresholds import MEV_THRESHOLDS


FINDINGS = {
    "no_data": {
        "title": "No Pool Data Available",
        "description": "Unable to analyze MEV exposure without pool/DEX data.",
        "confidence": 0.3,
        "points": 2,
    },
    "high_sandwich": {
        "title": "High Sandwich Attack Exposure: {pair}",
        "description": "Pool has {turnover_pct:.0f}% daily volume relative to liquidity with only "
                       "${liquidity_k:.0f}k TVL.",
        "attack_vector": "Searchers can profitably sandwich large trades. Expected cost to users: 0.5-2% per trade.",
        "mitigation": "Use private mempools (Jito), implement MEV-aware routing, or add minimum output protection.",
        "confidence": 0.85,
        "points": 7,
    },
    "moderate_sandwich": {
        "title": "Moderate Sandwich Risk: {pair}",
        "description": "Active pool with {turnover_pct:.0f}% daily turnover may attract MEV bots.",
        "attack_vector": "Large trades (>1% of pool) are sandwichable.",
        "confidence": 0.6,
        "points": 4,
    },
    "jit_target": {
        "title": "JIT Liquidity Target: {pair}",
        "description": "Low fee pool ({fee_pct:.2f}%) with high liquidity attracts JIT attacks.",
        "attack_vector": "JIT liquidity providers can add/remove liquidity around large trades, "
                         "extracting fees from passive LPs.",
        "mitigation": "Consider higher fee tiers or concentrated liquidity with active management.",
        "confidence": 0.7,
        "points": 5,
    },
    "oracle_frontrun": {
        "title": "Oracle Update Front-Running Risk",
        "description": "Protocols using on-chain oracles are vulnerable to front-running around price updates.",
        "attack_vector": "Searchers monitor oracle update transactions and front-run with arbitrage or liquidations.",
        "mitigation": "Use pull oracles (Pyth), implement commit-reveal schemes, or add oracle update delays.",
        "confidence": 0.5,
        "points": 3,
    },
}


class MEVAnalyzer(RiskAnalyzer):
    """Per-pool sandwich / JIT exposure plus the generic oracle front-running warning."""

    category_name = "MEV Risk"
    scoring_mode = ScoringMode.MEAN_PER_FINDING

    def placeholder(self, protocol: ProtocolInput) -> Optional[RiskCategory]:
        if not protocol.pools:
            return placeholder_category(self.category_name, 2, FINDINGS["no_data"])
        return None

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("pool_mev", "turnover / liquidity / fee tier per pool", self.check_pools),
            RuleCheck("oracle_frontrun", "always", self.check_oracle_frontrun),
        ]

    def check_pools(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []
        points = 0

        for pool in protocol.pools:
            # Low liquidity + high volume = profitable sandwiches
            turnover = pool_turnover(pool)
            if (turnover > MEV_THRESHOLDS["sandwich_high_turnover"]["value"]
                    and pool.liquidity < MEV_THRESHOLDS["sandwich_high_max_liquidity_usd"]["value"]):
                template = FINDINGS["high_sandwich"]
                findings.append(make_finding(
                    template,
                    pair=pool.pair,
                    turnover_pct=turnover * 100,
                    liquidity_k=pool.liquidity / 1000,
                ))
                points += template["points"]
            elif turnover > MEV_THRESHOLDS["sandwich_moderate_turnover"]["value"]:
                template = FINDINGS["moderate_sandwich"]
                findings.append(make_finding(template, pair=pool.pair, turnover_pct=turnover * 100))
                points += template["points"]

            if (pool.fees < MEV_THRESHOLDS["jit_max_fee"]["value"]
                    and pool.liquidity > MEV_THRESHOLDS["jit_min_liquidity_usd"]["value"]):
                template = FINDINGS["jit_target"]
                findings.append(make_finding(template, pair=pool.pair, fee_pct=pool.fees * 100))
                points += template["points"]

        if not findings:
            return None
        return CheckOutcome("pool_mev", findings, points)

    def check_oracle_frontrun(self, protocol: ProtocolInput) -> CheckOutcome:
        template = FINDINGS["oracle_frontrun"]
        return CheckOutcome("oracle_frontrun", [make_finding(template)], template["points"])
