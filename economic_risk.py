"""
Economic Risk Analyzer.

Identifies economic attack vectors:
- Supply concentration and dilution (whale dumps, farm-and-dump spirals)
- Imminent cliff unlocks
- Flash-loan manipulable pools
- Oracle dependency
- Withdrawal-race (bank run) incentives

Scoring: mean over rule checks. The flash-loan, oracle and incentive checks
always count (even when nothing fires); the tokenomics check counts only when
tokenomics data was supplied and contributes the mean of its own triggered
points.
"""

import time
from typing import List, Optional

from risk_types import ProtocolInput, TokenomicsData
from rule_engine import (
    RiskAnalyzer,
    RuleCheck,
    CheckOutcome,
    ScoringMode,
    make_finding,
    pool_turnover,
)
from thresholds import ECONOMIC_THRESHOLDS


# =============================================================================
# FINDING DEFINITIONS
# =============================================================================

FINDINGS = {
    "extreme_concentration": {
        "title": "Extreme Token Concentration",
        "description": "Token supply is highly concentrated (Gini: {gini:.2f}). "
                       "Top holders control majority of supply.",
        "attack_vector": "Whale manipulation: Large holders can crash price, front-run governance, "
                         "or execute dump-and-pump schemes.",
        "mitigation": "Implement vesting schedules, progressive decentralization, or holder caps.",
        "confidence": 0.9,
        "points": 8,
    },
    "moderate_concentration": {
        "title": "Moderate Token Concentration",
        "description": "Token supply shows moderate concentration (Gini: {gini:.2f}).",
        "attack_vector": "Coordinated selling pressure from top holders could cause significant price impact.",
        "confidence": 0.7,
        "points": 4,
    },
    "hyperinflation": {
        "title": "Hyperinflationary Emission Schedule",
        "description": "Annual emission rate ({dilution_pct:.0f}%) exceeds circulating supply. "
                       "Severe dilution risk.",
        "attack_vector": "Early participants can farm and dump before dilution impacts price. Death spiral risk.",
        "mitigation": "Implement emission curve decay, buyback mechanisms, or utility sinks.",
        "confidence": 0.95,
        "points": 9,
    },
    "high_emission": {
        "title": "High Emission Rate",
        "description": "Annual dilution of {dilution_pct:.0f}% may outpace organic demand.",
        "attack_vector": "Sustained sell pressure from reward farming could suppress price appreciation.",
        "confidence": 0.8,
        "points": 5,
    },
    "cliff_unlock": {
        "title": "Major Token Unlock Imminent",
        "description": "{unlock_pct:.1f}% of circulating supply unlocks within {window_days} days.",
        "attack_vector": "Unlocking insiders may sell immediately, causing significant price impact.",
        "mitigation": "Monitor unlock dates, consider hedging positions before unlock events.",
        "confidence": 0.85,
        "points": 7,
    },
    "flash_loan": {
        "title": "Low Liquidity Pools Vulnerable to Manipulation",
        "description": "{count} pool(s) have liquidity under ${limit:,.0f}, making them susceptible "
                       "to flash loan price manipulation.",
        "attack_vector": "Attacker can borrow large amounts via flash loan, manipulate pool price, exploit "
                         "price-dependent operations, then repay loan in single transaction.",
        "mitigation": "Use TWAP oracles, implement price impact limits, or require multi-block settlement.",
        "confidence": 0.8,
        "points": 7,
    },
    "oracle_review": {
        "title": "Oracle Configuration Review Required",
        "description": "Unable to automatically determine oracle configuration. Manual review recommended.",
        "attack_vector": "Single oracle dependency can lead to price manipulation or stale price exploitation.",
        "mitigation": "Use decentralized oracles (Pyth, Switchboard) with staleness checks and circuit breakers.",
        "confidence": 0.5,
        "points": 3,
    },
    "withdrawal_race": {
        "title": "High Utilization Creates Withdrawal Race",
        "description": "Average pool utilization is {utilization_pct:.0f}%. In a stress event, rational "
                       "actors will race to exit, potentially causing cascading liquidations.",
        "attack_vector": "Bank run dynamics: First withdrawers get full value, late withdrawers face "
                         "slippage or insolvency.",
        "mitigation": "Implement withdrawal queues, dynamic fees, or circuit breakers during high-stress periods.",
        "confidence": 0.75,
        "points": 6,
    },
}


def annual_dilution(tokenomics: TokenomicsData) -> Optional[float]:
    """Yearly emissions as a fraction of circulating supply (None if not computable)."""
    if not tokenomics.emission_rate or not tokenomics.circulating_supply:
        return None
    return (tokenomics.emission_rate * 365 * 24) / tokenomics.circulating_supply


class EconomicAnalyzer(RiskAnalyzer):
    """Tokenomics, flash-loan, oracle and incentive-alignment checks."""

    category_name = "Economic Risk"
    scoring_mode = ScoringMode.MEAN_PER_CHECK

    def __init__(self, now: Optional[float] = None):
        # Fixed clock for reproducible vesting checks; defaults to wall time per call
        self._now = now

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("tokenomics", "Concentration, dilution and unlock schedule", self.check_tokenomics),
            RuleCheck("flash_loan", "Any pool liquidity < $100k", self.check_flash_loan),
            RuleCheck("oracle", "Oracle configuration cannot be verified", self.check_oracle),
            RuleCheck("incentive_alignment", "Average pool utilization > 90%", self.check_incentive_alignment),
        ]

    def check_tokenomics(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        tokenomics = protocol.tokenomics
        if tokenomics is None:
            return None

        findings = []
        points = 0

        # Supply concentration (Gini coefficient)
        gini = tokenomics.concentration
        if gini is not None:
            if gini > ECONOMIC_THRESHOLDS["concentration_extreme"]["value"]:
                template = FINDINGS["extreme_concentration"]
            elif gini > ECONOMIC_THRESHOLDS["concentration_moderate"]["value"]:
                template = FINDINGS["moderate_concentration"]
            else:
                template = None
            if template:
                findings.append(make_finding(template, gini=gini))
                points += template["points"]

        # Emission rate vs circulating supply
        dilution = annual_dilution(tokenomics)
        if dilution is not None:
            if dilution > ECONOMIC_THRESHOLDS["annual_dilution_hyperinflation"]["value"]:
                template = FINDINGS["hyperinflation"]
            elif dilution > ECONOMIC_THRESHOLDS["annual_dilution_high"]["value"]:
                template = FINDINGS["high_emission"]
            else:
                template = None
            if template:
                findings.append(make_finding(template, dilution_pct=dilution * 100))
                points += template["points"]

        # Upcoming cliff vesting
        if tokenomics.vesting_schedule and tokenomics.circulating_supply:
            now = self._now if self._now is not None else time.time()
            window_days = ECONOMIC_THRESHOLDS["vesting_window_days"]["value"]
            window_end = now + window_days * 24 * 3600
            upcoming = sum(
                v.amount for v in tokenomics.vesting_schedule
                if now < v.timestamp < window_end
            )
            unlock_pct = upcoming / tokenomics.circulating_supply * 100
            if unlock_pct > ECONOMIC_THRESHOLDS["vesting_unlock_pct"]["value"]:
                template = FINDINGS["cliff_unlock"]
                findings.append(make_finding(template, unlock_pct=unlock_pct, window_days=window_days))
                points += template["points"]

        score = points / len(findings) if findings else 0
        return CheckOutcome("tokenomics", findings, score)

    def check_flash_loan(self, protocol: ProtocolInput) -> CheckOutcome:
        limit = ECONOMIC_THRESHOLDS["flash_loan_liquidity_usd"]["value"]
        low_liquidity = [p for p in protocol.pools or [] if p.liquidity < limit]
        if not low_liquidity:
            return CheckOutcome("flash_loan")
        template = FINDINGS["flash_loan"]
        return CheckOutcome(
            "flash_loan",
            [make_finding(template, count=len(low_liquidity), limit=limit)],
            template["points"],
        )

    def check_oracle(self, protocol: ProtocolInput) -> CheckOutcome:
        # Oracle setup is never part of the input, so this always fires
        template = FINDINGS["oracle_review"]
        return CheckOutcome("oracle", [make_finding(template)], template["points"])

    def check_incentive_alignment(self, protocol: ProtocolInput) -> CheckOutcome:
        pools = protocol.pools or []
        if not pools:
            return CheckOutcome("incentive_alignment")

        avg_utilization = sum(pool_turnover(p) for p in pools) / len(pools)
        if avg_utilization <= ECONOMIC_THRESHOLDS["withdrawal_race_utilization"]["value"]:
            return CheckOutcome("incentive_alignment")

        template = FINDINGS["withdrawal_race"]
        return CheckOutcome(
            "incentive_alignment",
            [make_finding(template, utilization_pct=avg_utilization * 100)],
            template["points"],
        )
