"""
Governance Risk Analyzer.

Identifies governance attack vectors:
- Quorum manipulation (flash-loan governance, low-activity proposals)
- Timelocks too short for users to exit
- Voting power concentration (unilateral control or minority veto)
- Plutocratic proposal thresholds

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
)
from thresholds import GOVERNANCE_THRESHOLDS


FINDINGS = {
    "no_data": {
        "title": "No Governance Data Available",
        "description": "Unable to analyze governance structure. Manual review recommended.",
        "confidence": 0.3,
        "points": 0,
    },
    "critical_quorum": {
        "title": "Critically Low Quorum Threshold",
        "description": "Quorum of {quorum_pct:.1f}% allows proposals to pass with minimal participation.",
        "attack_vector": "Attacker can pass malicious proposals during low-activity periods. "
                         "Flash loan governance attacks become viable.",
        "mitigation": "Implement minimum participation thresholds, time-weighted voting, or conviction voting.",
        "confidence": 0.9,
        "points": 8,
    },
    "low_quorum": {
        "title": "Low Quorum Threshold",
        "description": "Quorum of {quorum_pct:.1f}% may be achievable by coordinated minority.",
        "attack_vector": "Well-funded attacker could accumulate enough tokens to single-handedly meet quorum.",
        "confidence": 0.7,
        "points": 4,
    },
    "short_timelock": {
        "title": "Short Timelock Delay",
        "description": "Timelock of {hours} hours gives users limited time to exit before malicious "
                       "proposals execute.",
        "attack_vector": "Users may not have time to withdraw funds before a passed malicious proposal takes effect.",
        "mitigation": "Extend timelock to 48-72 hours minimum. Consider rage-quit mechanisms.",
        "confidence": 0.85,
        "points": 6,
    },
    "majority_power": {
        "title": "Majority Voting Power Concentration",
        "description": "Top holder(s) control {power_pct:.0f}% of voting power.",
        "attack_vector": "Single entity can pass any proposal unilaterally. Governance is effectively centralized.",
        "mitigation": "Implement quadratic voting, delegation caps, or veto mechanisms for minority protection.",
        "confidence": 0.95,
        "points": 9,
    },
    "veto_power": {
        "title": "High Voting Power Concentration",
        "description": "Top holder(s) control {power_pct:.0f}% of voting power, enough to block proposals.",
        "attack_vector": "Minority veto power can be used to extract rent or block beneficial upgrades.",
        "confidence": 0.8,
        "points": 5,
    },
    "high_proposal_threshold": {
        "title": "High Proposal Threshold",
        "description": "Proposal threshold of {threshold_pct:.1f}% excludes most token holders from proposing.",
        "attack_vector": "Governance capture: only large holders can propose, leading to plutocratic outcomes.",
        "mitigation": "Lower threshold or implement delegated proposal rights.",
        "confidence": 0.6,
        "points": 3,
    },
}


def _single(check_id: str, template_key: str, **values) -> CheckOutcome:
    template = FINDINGS[template_key]
    return CheckOutcome(check_id, [make_finding(template, **values)], template["points"])


class GovernanceAnalyzer(RiskAnalyzer):
    """Quorum, timelock, voting power and proposal threshold checks."""

    category_name = "Governance Risk"
    scoring_mode = ScoringMode.MEAN_PER_FINDING

    def placeholder(self, protocol: ProtocolInput) -> Optional[RiskCategory]:
        if protocol.governance is None:
            return placeholder_category(self.category_name, 0, FINDINGS["no_data"])
        return None

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("quorum", "quorum < 4% (critical) or < 10% (low)", self.check_quorum),
            RuleCheck("timelock", "timelock delay < 24h", self.check_timelock),
            RuleCheck("voting_power", "top holder > 50% (majority) or > 33% (veto)", self.check_voting_power),
            RuleCheck("proposal_threshold", "proposal threshold > 5%", self.check_proposal_threshold),
        ]

    def check_quorum(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        quorum = protocol.governance.quorum
        if quorum < GOVERNANCE_THRESHOLDS["quorum_critical"]["value"]:
            return _single("quorum", "critical_quorum", quorum_pct=quorum * 100)
        if quorum < GOVERNANCE_THRESHOLDS["quorum_low"]["value"]:
            return _single("quorum", "low_quorum", quorum_pct=quorum * 100)
        return None

    def check_timelock(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        delay = protocol.governance.timelock_delay
        if delay < GOVERNANCE_THRESHOLDS["timelock_min_seconds"]["value"]:
            return _single("timelock", "short_timelock", hours=int(delay // 3600))
        return None

    def check_voting_power(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        power = protocol.governance.top_holder_voting_power
        if power > GOVERNANCE_THRESHOLDS["voting_power_majority"]["value"]:
            return _single("voting_power", "majority_power", power_pct=power * 100)
        if power > GOVERNANCE_THRESHOLDS["voting_power_veto"]["value"]:
            return _single("voting_power", "veto_power", power_pct=power * 100)
        return None

    def check_proposal_threshold(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        threshold = protocol.governance.proposal_threshold
        if threshold > GOVERNANCE_THRESHOLDS["proposal_threshold_max"]["value"]:
            return _single("proposal_threshold", "high_proposal_threshold", threshold_pct=threshold * 100)
        return None
