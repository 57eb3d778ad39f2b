"""
Protocol Risk Data Model.

Defines:
1. Scoring input - the protocol description supplied by the caller
2. Scoring output - findings, risk categories and the aggregated report
3. Errors surfaced to callers

Input types use snake_case attributes. Output types serialize through
to_dict() into the camelCase JSON form consumed by agents and the dashboard.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


# =============================================================================
# ERRORS
# =============================================================================

class MissingRequiredField(ValueError):
    """A required identifier (address or name) is absent. No report is produced."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class InvalidProtocolData(ValueError):
    """Input document has a field of the wrong shape (raised by the data adapter only)."""


# =============================================================================
# SCORING INPUT
# =============================================================================

@dataclass
class VestingEvent:
    """Scheduled token unlock."""
    timestamp: float  # unix seconds
    amount: float
    recipient: str = ""


@dataclass
class TokenomicsData:
    """Token supply and distribution."""
    total_supply: Optional[float] = None
    circulating_supply: Optional[float] = None
    emission_rate: Optional[float] = None  # tokens per hour
    concentration: Optional[float] = None  # Gini coefficient 0-1
    vesting_schedule: List[VestingEvent] = field(default_factory=list)
    holder_balances: Optional[List[float]] = None


@dataclass
class GovernanceData:
    """On-chain governance parameters."""
    quorum: float  # fraction of voting power
    voting_period: float  # seconds
    timelock_delay: float  # seconds
    proposal_threshold: float  # fraction of supply
    top_holder_voting_power: float  # fraction of voting power


@dataclass
class PoolData:
    """A liquidity pool trading the protocol's token."""
    address: str
    token0: str
    token1: str
    liquidity: float  # USD
    volume24h: float  # USD
    fees: float  # fee tier, 0-1

    @property
    def pair(self) -> str:
        return f"{self.token0}/{self.token1}"


@dataclass
class ProtocolInput:
    """Everything the engine knows about one protocol for one scoring pass."""
    address: str
    name: str
    tvl: Optional[float] = None  # USD
    tokenomics: Optional[TokenomicsData] = None
    governance: Optional[GovernanceData] = None
    pools: Optional[List[PoolData]] = None  # None = not supplied, [] = supplied but empty

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back into the JSON input format."""
        data: Dict[str, Any] = {"address": self.address, "name": self.name}
        if self.tvl is not None:
            data["tvl"] = self.tvl
        if self.tokenomics is not None:
            t = self.tokenomics
            tokenomics: Dict[str, Any] = {}
            if t.total_supply is not None:
                tokenomics["totalSupply"] = t.total_supply
            if t.circulating_supply is not None:
                tokenomics["circulatingSupply"] = t.circulating_supply
            if t.emission_rate is not None:
                tokenomics["emissionRate"] = t.emission_rate
            if t.concentration is not None:
                tokenomics["concentration"] = t.concentration
            if t.vesting_schedule:
                tokenomics["vestingSchedule"] = [
                    {"timestamp": v.timestamp, "amount": v.amount, "recipient": v.recipient}
                    for v in t.vesting_schedule
                ]
            if t.holder_balances is not None:
                tokenomics["holderBalances"] = list(t.holder_balances)
            data["tokenomics"] = tokenomics
        if self.governance is not None:
            g = self.governance
            data["governance"] = {
                "quorum": g.quorum,
                "votingPeriod": g.voting_period,
                "timelockDelay": g.timelock_delay,
                "proposalThreshold": g.proposal_threshold,
                "topHolderVotingPower": g.top_holder_voting_power,
            }
        if self.pools is not None:
            data["pools"] = [
                {
                    "address": p.address,
                    "token0": p.token0,
                    "token1": p.token1,
                    "liquidity": p.liquidity,
                    "volume24h": p.volume24h,
                    "fees": p.fees,
                }
                for p in self.pools
            ]
        return data


# =============================================================================
# GAME THEORY CONTEXT
# =============================================================================

@dataclass
class GameTheoryContext:
    """
    Game-theoretic annotation attached to a finding.

    `details` holds free-form labels (payoff matrix, amplifiers, outcome...)
    that are informational only. The subclasses carry the fields the
    aggregator extracts.
    """
    concept: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {"concept": self.concept}
        data.update(self.details)
        return data


@dataclass
class NashEquilibriumContext(GameTheoryContext):
    equilibria: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["equilibria"] = list(self.equilibria)
        return data


@dataclass
class DominantStrategyContext(GameTheoryContext):
    strategy: str = ""
    dominance: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["strategy"] = self.strategy
        if self.dominance:
            data["dominance"] = self.dominance
        return data


@dataclass
class MechanismFlawContext(GameTheoryContext):
    violation: str = ""
    fix: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["violation"] = self.violation
        data["fix"] = self.fix
        return data


# =============================================================================
# SCORING OUTPUT
# =============================================================================

@dataclass
class Finding:
    """One detected issue."""
    title: str
    description: str
    confidence: float
    attack_vector: Optional[str] = None
    mitigation: Optional[str] = None
    game_theory: Optional[GameTheoryContext] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title, "description": self.description}
        if self.attack_vector:
            data["attackVector"] = self.attack_vector
        if self.mitigation:
            data["mitigation"] = self.mitigation
        data["confidence"] = self.confidence
        if self.game_theory is not None:
            data["gameTheory"] = self.game_theory.to_dict()
        return data


@dataclass
class RiskCategory:
    """Score, severity tier and findings for one risk category."""
    name: str
    score: float  # 0-10, higher = more risk
    severity: str  # low | medium | high | critical
    findings: List[Finding] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "severity": self.severity,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass
class ProtocolRiskReport:
    """Aggregated result of one scoring pass."""
    protocol: str
    address: str
    timestamp: int  # milliseconds since epoch
    overall_score: float
    overall_severity: str
    categories: Dict[str, RiskCategory]
    summary: str
    recommendations: List[str] = field(default_factory=list)
    nash_equilibria: Optional[List[str]] = None
    dominant_strategies: Optional[List[str]] = None

    def all_findings(self) -> List[Finding]:
        return [f for category in self.categories.values() for f in category.findings]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "protocol": self.protocol,
            "address": self.address,
            "timestamp": self.timestamp,
            "overallScore": self.overall_score,
            "overallSeverity": self.overall_severity,
            "categories": {key: cat.to_dict() for key, cat in self.categories.items()},
            "summary": self.summary,
            "recommendations": list(self.recommendations),
        }
        # Absent (not empty) when nothing qualified
        if self.nash_equilibria is not None:
            data["nashEquilibria"] = list(self.nash_equilibria)
        if self.dominant_strategies is not None:
            data["dominantStrategies"] = list(self.dominant_strategies)
        return data
