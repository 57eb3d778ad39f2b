"""
Composability Risk Analyzer.

Cross-protocol dependency and integration risks, inferred from the protocol
name and its pool set:
- Dependency stacks (yield aggregators, liquid staking, derivatives)
- Oracle dependency of large protocols
- Liquidity fragmentation across venues
- Collateral chains / rehypothecation in lending markets
- Economic re-entrancy through external integrations
- Bridge and wrapped-asset exposure

Name classification is a heuristic: each class is a list of lowercase
substrings matched against the lowercased name. A protocol can match several
classes; findings follow table order.

Scoring: mean of confidence x 10 over findings.
"""

from typing import Any, Dict, List, Optional

from risk_types import (
    ProtocolInput,
    GameTheoryContext,
    NashEquilibriumContext,
)
from rule_engine import (
    RiskAnalyzer,
    RuleCheck,
    CheckOutcome,
    ScoringMode,
    make_finding,
    total_liquidity,
)
from thresholds import COMPOSABILITY_THRESHOLDS


# =============================================================================
# NAME CLASSIFICATION TABLES
# =============================================================================

DEPENDENCY_CLASSES = [
    {
        "class": "yield_aggregator",
        "markers": ["yield", "vault", "farm"],
        "finding": {
            "title": "Yield Aggregator Dependency Stack",
            "description": "Yield aggregators typically depend on 2-4 underlying protocols, creating "
                           "cascading failure risk.",
            "attack_vector": "DEPENDENCY CASCADE: If any underlying protocol is exploited, paused, or depegs, "
                             "the aggregator inherits that risk. Users may not understand the full dependency tree.",
            "mitigation": "Document full dependency chain. Implement circuit breakers. Diversify across independent "
                          "protocols. Monitor underlying protocol health.",
            "confidence": 0.7,
        },
        "context": {
            "concept": "Cascading Failure",
            "details": {
                "vulnerability": "Single point of failure amplified through dependency chain",
                "mechanism": "Failure propagates upward through composability stack",
            },
        },
    },
    {
        "class": "liquid_staking",
        "markers": ["staked", "liquid", "lst"],
        "finding": {
            "title": "Liquid Staking Derivative Risk",
            "description": "LSTs depend on validator performance, withdrawal queues, and peg maintenance mechanisms.",
            "attack_vector": "DEPEG SCENARIO: If validators are slashed, withdrawals delayed, or market loses "
                             "confidence, LST can trade below underlying value. Arbitrageurs may not restore peg if "
                             "withdrawal queue is too long.",
            "mitigation": "Monitor validator performance. Implement insurance mechanisms. Maintain liquid reserves "
                          "for redemptions.",
            "confidence": 0.65,
        },
        "context": {
            "concept": "Peg Stability Game",
            "details": {"vulnerability": "Confidence-dependent stability"},
            "equilibria": ["Peg maintained (confidence)", "Depeg spiral (panic)"],
        },
    },
    {
        "class": "derivative",
        "markers": ["perp", "option", "synthetic"],
        "finding": {
            "title": "Derivative Protocol Layered Risk",
            "description": "Derivatives inherit underlying asset risk plus additional mechanism complexity.",
            "attack_vector": "ORACLE + MARGIN ATTACK: Manipulate underlying price briefly to trigger liquidations, "
                             "then profit from forced selling. Complexity increases attack surface.",
            "mitigation": "Use manipulation-resistant oracles. Implement gradual liquidations. Add margin call delays.",
            "confidence": 0.75,
        },
        "context": {
            "concept": "Mechanism Complexity Risk",
            "details": {
                "vulnerability": "More moving parts = more attack surface",
                "outcome": "Sophisticated attackers exploit mechanism interactions",
            },
        },
    },
]

LENDING_MARKERS = ["lend", "borrow", "aave", "compound", "margin"]
BRIDGE_MARKERS = ["bridge", "wormhole", "layerzero", "cross"]
WRAPPED_TOKEN_MARKERS = ["w", "bridge"]


FINDINGS = {
    "oracle_dependency": {
        "title": "Oracle Dependency Analysis Required",
        "description": "Protocol with ${tvl_m:.0f}M TVL likely depends on price oracles for critical operations.",
        "attack_vector": "ORACLE MANIPULATION: If protocol uses single oracle or low-liquidity price sources, "
                         "attackers can manipulate prices to trigger liquidations or favorable trades.",
        "mitigation": "Use multiple independent oracles. Implement TWAP. Add circuit breakers for extreme price "
                      "moves. Verify oracle source liquidity.",
        "confidence": 0.6,
    },
    "fragmentation": {
        "title": "Liquidity Fragmentation Risk",
        "description": "Liquidity is fragmented across {pools} pools, with {small} pools below average size.",
        "attack_vector": "FRAGMENTATION EXPLOIT: Fragmented liquidity means (1) worse execution for traders, "
                         "(2) easier price manipulation per-venue, (3) arbitrageurs extract value moving between "
                         "venues.",
        "mitigation": "Consolidate liquidity to fewer venues. Use aggregators for routing. Incentivize primary "
                      "liquidity venue.",
        "confidence": 0.6,
    },
    "rehypothecation": {
        "title": "Collateral Chain / Rehypothecation Risk",
        "description": "Lending protocols enable recursive borrowing: deposit A, borrow B, deposit B elsewhere, "
                       "borrow more. Creates hidden leverage.",
        "attack_vector": "LEVERAGE CASCADE: In a downturn, recursive positions unwind simultaneously. Each "
                         "liquidation triggers more liquidations. Actual leverage in system may be 3-10x what "
                         "individual positions show.",
        "mitigation": "Track cross-protocol positions. Implement global exposure limits. Monitor system-wide "
                      "leverage metrics. Add liquidation delays during high-stress periods.",
        "confidence": 0.7,
    },
    "reentrancy": {
        "title": "Cross-Contract Interaction Risk",
        "description": "Protocol integrates with external contracts (DEXes, oracles, tokens), creating "
                       "re-entrancy and callback attack surfaces.",
        "attack_vector": "ECONOMIC RE-ENTRANCY: Even without code bugs, economic re-entrancy is possible. "
                         "Example: Flash loan -> manipulate pool -> trigger protocol action -> profit from "
                         "manipulated state -> repay loan.",
        "mitigation": "Implement checks-effects-interactions pattern. Use reentrancy guards. Verify state "
                      "consistency after external calls. Consider flash loan protection.",
        "confidence": 0.55,
    },
    "bridge": {
        "title": "Bridge Protocol - Maximum Composability Risk",
        "description": "Bridges are the highest-risk composability component. They depend on multiple chains, "
                       "validators/relayers, and have been the target of largest DeFi exploits.",
        "attack_vector": "BRIDGE EXPLOITS: Fake deposit proofs, validator collusion, message replay, incomplete "
                         "finality checks. Bridges hold locked assets that can be drained with a single exploit.",
        "mitigation": "Use battle-tested bridges only. Limit exposure to bridged assets. Verify bridge security "
                      "model (optimistic vs ZK vs validator set). Monitor bridge TVL and activity anomalies.",
        "confidence": 0.85,
    },
    "wrapped_asset": {
        "title": "Wrapped Asset Dependency",
        "description": "Protocol uses wrapped/bridged assets that depend on external bridge security.",
        "attack_vector": "WRAPPED ASSET DEPEG: If the bridge backing wrapped assets is exploited, wrapped tokens "
                         "become worthless while appearing to have value. Protocol may hold unbacked IOUs.",
        "mitigation": "Verify bridge backing. Monitor bridge health. Consider native assets where possible. "
                      "Implement wrapped asset exposure limits.",
        "confidence": 0.6,
    },
}


def name_matches(name: str, markers: List[str]) -> bool:
    lowered = (name or "").lower()
    return any(marker in lowered for marker in markers)


def _context(context: Dict[str, Any]) -> GameTheoryContext:
    if "equilibria" in context:
        return NashEquilibriumContext(
            concept=context["concept"],
            details=dict(context.get("details", {})),
            equilibria=list(context["equilibria"]),
        )
    return GameTheoryContext(concept=context["concept"], details=dict(context.get("details", {})))


class ComposabilityAnalyzer(RiskAnalyzer):
    """Dependency-chain risks inferred from name, TVL and pools."""

    category_name = "Composability Risk"
    scoring_mode = ScoringMode.CONFIDENCE_MEAN

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("dependency_depth", "name contains aggregator/staking/derivative marker",
                      self.check_dependency_depth),
            RuleCheck("oracle_dependency", "TVL > $10M", self.check_oracle_dependency),
            RuleCheck("fragmentation", "> 3 pools, most below half the mean", self.check_fragmentation),
            RuleCheck("collateral_chain", "lending name and TVL > $50M", self.check_collateral_chain),
            RuleCheck("reentrancy", "any pool supplied", self.check_reentrancy),
            RuleCheck("bridge", "bridge name or wrapped pool token", self.check_bridge),
        ]

    def check_dependency_depth(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = [
            make_finding(entry["finding"], game_theory=_context(entry["context"]))
            for entry in DEPENDENCY_CLASSES
            if name_matches(protocol.name, entry["markers"])
        ]
        return CheckOutcome("dependency_depth", findings) if findings else None

    def check_oracle_dependency(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        if not protocol.tvl or protocol.tvl <= COMPOSABILITY_THRESHOLDS["oracle_dependency_tvl_usd"]["value"]:
            return None
        finding = make_finding(
            FINDINGS["oracle_dependency"],
            game_theory=GameTheoryContext(
                concept="Single Point of Failure",
                details={
                    "attack": "Oracle manipulation for downstream exploitation",
                    "cost": "Cost of moving oracle price temporarily",
                },
            ),
            tvl_m=protocol.tvl / 1e6,
        )
        return CheckOutcome("oracle_dependency", [finding])

    def check_fragmentation(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        pools = protocol.pools or []
        if len(pools) <= COMPOSABILITY_THRESHOLDS["fragmentation_min_pools"]["value"]:
            return None

        mean_liquidity = total_liquidity(pools) / len(pools)
        cutoff = mean_liquidity * COMPOSABILITY_THRESHOLDS["fragmentation_small_pool_ratio"]["value"]
        small = [p for p in pools if p.liquidity < cutoff]
        if len(small) <= len(pools) * COMPOSABILITY_THRESHOLDS["fragmentation_small_pool_share"]["value"]:
            return None

        finding = make_finding(
            FINDINGS["fragmentation"],
            game_theory=GameTheoryContext(
                concept="Coordination Failure",
                details={
                    "outcome": "Suboptimal equilibrium where liquidity is dispersed",
                    "vulnerability": "Each venue is independently manipulable",
                },
            ),
            pools=len(pools),
            small=len(small),
        )
        return CheckOutcome("fragmentation", [finding])

    def check_collateral_chain(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        if not name_matches(protocol.name, LENDING_MARKERS):
            return None
        if not protocol.tvl or protocol.tvl <= COMPOSABILITY_THRESHOLDS["rehypothecation_tvl_usd"]["value"]:
            return None
        finding = make_finding(
            FINDINGS["rehypothecation"],
            game_theory=NashEquilibriumContext(
                concept="Hidden Leverage / Systemic Risk",
                details={
                    "mechanism": "Recursive borrowing creates correlated positions",
                    "vulnerability": "Cascade liquidations amplify price moves",
                },
                equilibria=["Stable leverage (calm markets)", "Deleveraging spiral (stress)"],
            ),
        )
        return CheckOutcome("collateral_chain", [finding])

    def check_reentrancy(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        if not protocol.pools:
            return None
        finding = make_finding(
            FINDINGS["reentrancy"],
            game_theory=GameTheoryContext(
                concept="Atomicity Exploitation",
                details={
                    "attack": "Use single transaction to create temporary invalid states",
                    "cost": "Flash loan fees only",
                    "outcome": "Extract value from state inconsistencies",
                },
            ),
        )
        return CheckOutcome("reentrancy", [finding])

    def check_bridge(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        if name_matches(protocol.name, BRIDGE_MARKERS):
            findings.append(make_finding(
                FINDINGS["bridge"],
                game_theory=GameTheoryContext(
                    concept="Trust Minimization Failure",
                    details={
                        "vulnerability": "Bridges introduce trusted components into trustless systems",
                        "impact": "Total loss of bridged assets possible",
                        "examples": ["Ronin: $625M", "Wormhole: $320M", "Nomad: $190M"],
                    },
                ),
            ))

        # Any "w" in a symbol counts as wrapped (wSOL, but also SWAP-like tickers)
        uses_wrapped = any(
            name_matches(token, WRAPPED_TOKEN_MARKERS)
            for pool in protocol.pools or []
            for token in (pool.token0, pool.token1)
        )
        if uses_wrapped:
            findings.append(make_finding(
                FINDINGS["wrapped_asset"],
                game_theory=GameTheoryContext(
                    concept="Counterparty Risk",
                    details={
                        "vulnerability": "Wrapped asset value depends on bridge solvency",
                        "outcome": "Depeg if bridge is exploited or insolvent",
                    },
                ),
            ))

        return CheckOutcome("bridge", findings) if findings else None
