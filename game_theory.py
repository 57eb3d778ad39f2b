"""
Game-Theoretic Risk Analyzer.

Mechanism design analysis in five passes:
1. Nash equilibria - where rational actors stabilize (bank runs, deadlocks)
2. Dominant strategies - what rational actors WILL do (farm-and-dump, MEV)
3. Coordination games - Schelling points and multi-venue manipulation
4. Mechanism design flaws - incentive compatibility and budget balance
5. Multi-agent dynamics - cascades, arms races, information asymmetry

Most DeFi exploits are not bugs: they are rational actors following incentives
to unintended conclusions. Findings carry a game-theory context that the
aggregator mines for equilibria and dominant strategies.

Scoring: each finding's confidence is mapped to a severity weight
(>=0.85 critical 10, >=0.7 high 7, >=0.5 medium 4, else 1), multiplied by the
confidence and averaged over findings.
"""

from typing import List, Optional

from risk_types import (
    ProtocolInput,
    GameTheoryContext,
    NashEquilibriumContext,
    DominantStrategyContext,
    MechanismFlawContext,
)
from rule_engine import (
    RiskAnalyzer,
    RuleCheck,
    CheckOutcome,
    ScoringMode,
    make_finding,
    pool_turnover,
    total_liquidity,
    total_volume,
)
from thresholds import GAME_THEORY_THRESHOLDS as T


FINDINGS = {
    # Nash equilibria
    "bank_run": {
        "title": "Bank Run Equilibrium Exists",
        "description": "Only {ratio_pct:.0f}% of TVL is liquid. Two Nash equilibria exist: (1) Everyone stays "
                       "-> stable, (2) Everyone withdraws -> collapse. Both are self-fulfilling.",
        "attack_vector": "TRIGGER MECHANISM: Any shock (hack rumor, whale exit, market crash) can flip the system "
                         "from equilibrium 1 to 2. Once the run starts, staying becomes irrational and the run "
                         "completes.",
        "mitigation": "Implement withdrawal queues, dynamic exit fees, or overcollateralization to make \"stay\" "
                      "dominant regardless of others' actions.",
        "confidence": 0.85,
    },
    "governance_deadlock": {
        "title": "Governance Deadlock Equilibrium",
        "description": "Top holder has {power_pct:.0f}% (blocking minority) while quorum requires "
                       "{quorum_pct:.0f}%. Nash equilibrium is permanent stalemate.",
        "attack_vector": "EXPLOIT: Attacker accumulates blocking stake, then extracts rent by threatening to block "
                         "beneficial proposals unless paid. Governance hostage situation.",
        "mitigation": "Implement optimistic governance (proposals pass unless vetoed), or conviction voting to "
                      "break deadlocks.",
        "confidence": 0.75,
    },
    # Dominant strategies
    "farm_and_dump": {
        "title": "Dominant Strategy: Farm-and-Dump",
        "description": "Daily emission dilution of {dilution_pct:.2f}% creates a dominant strategy to sell "
                       "rewards immediately.",
        "attack_vector": "DOMINANT STRATEGY PROOF: If you hold rewards, you lose value to dilution. If you sell, "
                         "you capture value. Selling is strictly better regardless of others' actions -> death "
                         "spiral.",
        "mitigation": "Implement ve-tokenomics (locking for voting power), real yield from protocol fees, or "
                      "aggressive buyback-and-burn.",
        "confidence": 0.9,
    },
    "mev_extraction": {
        "title": "Dominant Strategy: MEV Extraction",
        "description": "{count} pool(s) have profitable sandwich conditions. Searchers have dominant strategy "
                       "to extract.",
        "attack_vector": "EXPECTED VALUE: For searchers, sandwiching is +EV regardless of competition. Nash "
                         "equilibrium is maximum extraction until marginal profit = gas cost.",
        "mitigation": "Private mempools, MEV-share mechanisms, or batch auctions to redirect value to users.",
        "confidence": 0.8,
    },
    # Coordination games
    "schelling_point": {
        "title": "Schelling Point Attack Surface",
        "description": "Short voting period ({hours}h) enables coordination attacks around public focal points.",
        "attack_vector": "ATTACK: Attacker publicly announces \"vote YES on proposal X at block Y\". This creates "
                         "a Schelling point: voters coordinate on the announced strategy because they expect "
                         "others to. Flash loans amplify.",
        "mitigation": "Implement commit-reveal voting, time-weighted voting power, or minimum deliberation periods.",
        "confidence": 0.7,
    },
    "oracle_coordination": {
        "title": "Cross-Venue Oracle Manipulation",
        "description": "{count} low-liquidity pools can be manipulated simultaneously to move aggregate "
                       "price oracles.",
        "attack_vector": "COORDINATION: Attacker manipulates multiple venues in same block. TWAP oracles that "
                         "aggregate see consistent \"real\" price movement. Liquidations triggered on false signals.",
        "mitigation": "Use median oracles, implement circuit breakers, require minimum source liquidity.",
        "confidence": 0.75,
    },
    # Mechanism design
    "incentive_compatibility": {
        "title": "Incentive Compatibility Analysis",
        "description": "Governance votes are public and non-binding pre-vote. Users can misrepresent "
                       "preferences to manipulate expectations.",
        "attack_vector": "IC VIOLATION: Voters can vote against their true preference if they believe it "
                         "influences others (strategic voting). True preferences are not revealed.",
        "mitigation": "Implement quadratic voting, futarchy (prediction markets), or conviction voting to align "
                      "revealed and true preferences.",
        "confidence": 0.6,
    },
    "value_leakage": {
        "title": "Value Leakage to External Extractors",
        "description": "Estimated MEV extraction (~${mev_usd:,.0f}/day) exceeds {ratio_pct:.0f}% of LP fee revenue.",
        "attack_vector": "BUDGET IMBALANCE: Protocol participants (LPs, traders) generate value that leaks to "
                         "non-participants (MEV searchers, builders). Negative-sum for protocol ecosystem.",
        "mitigation": "MEV internalization via protocol-owned searchers, MEV-share, or batch auctions.",
        "confidence": 0.65,
    },
    "value_leakage_no_fees": {
        "title": "Value Leakage to External Extractors",
        "description": "Estimated MEV extraction (~${mev_usd:,.0f}/day) while pools earn no LP fee revenue.",
        "attack_vector": "BUDGET IMBALANCE: Protocol participants (LPs, traders) generate value that leaks to "
                         "non-participants (MEV searchers, builders). Negative-sum for protocol ecosystem.",
        "mitigation": "MEV internalization via protocol-owned searchers, MEV-share, or batch auctions.",
        "confidence": 0.65,
    },
    # Multi-agent dynamics
    "liquidation_cascade": {
        "title": "Liquidation Cascade Dynamics",
        "description": "Low liquidity ratio ({ratio_pct:.0f}%) creates conditions for cascading liquidations.",
        "attack_vector": "CASCADE MECHANISM: Initial liquidation -> sell pressure -> price drop -> more positions "
                         "underwater -> more liquidations -> accelerating spiral. Each agent's rational exit "
                         "worsens conditions for remaining agents.",
        "mitigation": "Implement gradual liquidations, liquidation insurance funds, or dynamic collateral "
                      "requirements based on liquidity conditions.",
        "confidence": 0.8,
    },
    "arms_race": {
        "title": "Frontrunning Arms Race",
        "description": "High-volume pools incentivize competitive latency optimization among searchers.",
        "attack_vector": "ARMS RACE: Searchers invest in faster infrastructure -> margins compress -> only "
                         "well-capitalized players survive -> centralization of MEV extraction -> potential for "
                         "censorship/manipulation.",
        "mitigation": "Time-based ordering (batch auctions), encrypted mempools, or MEV-smoothing mechanisms.",
        "confidence": 0.7,
    },
    "information_asymmetry": {
        "title": "Information Asymmetry Exploitation",
        "description": "Short timelock ({hours}h) favors sophisticated actors who monitor proposals continuously.",
        "attack_vector": "ASYMMETRY: Sophisticated actors exit before harmful proposals execute. Retail users "
                         "with slower information processing bear the cost. Creates adverse selection: only "
                         "naive capital remains.",
        "mitigation": "Extend timelocks, implement proposal notification systems, or add automatic position "
                      "unwinding for impacted users.",
        "confidence": 0.65,
    },
}


def liquid_ratio(protocol: ProtocolInput) -> Optional[float]:
    """Pool liquidity over TVL. Requires pools supplied (possibly empty) and a non-zero TVL."""
    if protocol.pools is None or not protocol.tvl:
        return None
    return total_liquidity(protocol.pools) / protocol.tvl


def _outcome(check_id: str, findings: list) -> Optional[CheckOutcome]:
    # Score is derived from confidences, so outcomes carry no points
    return CheckOutcome(check_id, findings) if findings else None


class GameTheoryAnalyzer(RiskAnalyzer):
    """Equilibrium, dominant strategy, coordination, mechanism and multi-agent analysis."""

    category_name = "Game-Theoretic Risk"
    scoring_mode = ScoringMode.CONFIDENCE_WEIGHTED

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("nash_equilibria", "bank run / governance deadlock", self.check_nash_equilibria),
            RuleCheck("dominant_strategies", "farm-and-dump / MEV extraction", self.check_dominant_strategies),
            RuleCheck("coordination_games", "Schelling points / multi-venue oracles", self.check_coordination),
            RuleCheck("mechanism_design", "incentive compatibility / budget balance", self.check_mechanism_design),
            RuleCheck("multi_agent", "cascades / arms race / asymmetry", self.check_multi_agent),
        ]

    def check_nash_equilibria(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        # Bank run: classic coordination failure
        ratio = liquid_ratio(protocol)
        if ratio is not None and ratio < T["bank_run_liquidity_ratio"]["value"]:
            findings.append(make_finding(
                FINDINGS["bank_run"],
                game_theory=NashEquilibriumContext(
                    concept="Multiple Nash Equilibria",
                    details={
                        "payoffMatrix": "Stay/Stay: (1,1), Stay/Run: (-1,0), Run/Stay: (0,-1), Run/Run: (0,0)",
                        "vulnerability": "Coordination failure via belief shift",
                    },
                    equilibria=["(Stay, Stay)", "(Run, Run)"],
                ),
                ratio_pct=ratio * 100,
            ))

        # Top holder can block but not pass, and quorum is hard to reach
        gov = protocol.governance
        if (gov is not None
                and T["deadlock_min_voting_power"]["value"] < gov.top_holder_voting_power
                < T["deadlock_max_voting_power"]["value"]
                and gov.quorum > T["deadlock_min_quorum"]["value"]):
            findings.append(make_finding(
                FINDINGS["governance_deadlock"],
                game_theory=NashEquilibriumContext(
                    concept="Veto Player Deadlock",
                    details={"vulnerability": "Rent extraction via blocking power"},
                    equilibria=["Stalemate (no proposals pass)"],
                ),
                power_pct=gov.top_holder_voting_power * 100,
                quorum_pct=gov.quorum * 100,
            ))

        return _outcome("nash_equilibria", findings)

    def check_dominant_strategies(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        tokenomics = protocol.tokenomics
        if tokenomics is not None and tokenomics.emission_rate and tokenomics.circulating_supply:
            daily_dilution = tokenomics.emission_rate * 24 / tokenomics.circulating_supply
            if daily_dilution > T["farm_dump_daily_dilution"]["value"]:
                findings.append(make_finding(
                    FINDINGS["farm_and_dump"],
                    game_theory=DominantStrategyContext(
                        concept="Strictly Dominant Strategy",
                        details={
                            "outcome": "Sustained sell pressure -> price decline -> reduced TVL -> "
                                       "reduced rewards -> spiral",
                        },
                        strategy="Sell immediately upon receiving rewards",
                        dominance="Strictly dominant, always better regardless of others",
                    ),
                    dilution_pct=daily_dilution * 100,
                ))

        if protocol.pools is not None:
            vulnerable = [
                p for p in protocol.pools
                if pool_turnover(p) > T["mev_extraction_turnover"]["value"]
                and p.liquidity < T["mev_extraction_max_liquidity_usd"]["value"]
            ]
            if vulnerable:
                # No dominance label: excluded from the report's dominant strategies
                findings.append(make_finding(
                    FINDINGS["mev_extraction"],
                    game_theory=DominantStrategyContext(
                        concept="Tragedy of the Commons",
                        details={"outcome": "Users bear cost, LPs exit, liquidity degrades"},
                        strategy="Extract maximum MEV",
                    ),
                    count=len(vulnerable),
                ))

        return _outcome("dominant_strategies", findings)

    def check_coordination(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        gov = protocol.governance
        if gov is not None and gov.voting_period < T["schelling_voting_period_seconds"]["value"]:
            findings.append(make_finding(
                FINDINGS["schelling_point"],
                game_theory=GameTheoryContext(
                    concept="Schelling Point / Focal Point",
                    details={
                        "vulnerability": "Public announcements become self-fulfilling coordination devices",
                        "amplifiers": ["Flash loans", "Social media", "Whale wallets"],
                    },
                ),
                hours=int(gov.voting_period // 3600),
            ))

        if protocol.pools:
            low_liquidity = [
                p for p in protocol.pools
                if p.liquidity < T["oracle_coordination_liquidity_usd"]["value"]
            ]
            if len(low_liquidity) >= T["oracle_coordination_min_pools"]["value"]:
                findings.append(make_finding(
                    FINDINGS["oracle_coordination"],
                    game_theory=GameTheoryContext(
                        concept="Coordinated Deviation",
                        details={
                            "attack": "Multi-venue simultaneous manipulation",
                            "cost": "Flash loan fees only, capital efficient",
                        },
                    ),
                    count=len(low_liquidity),
                ))

        return _outcome("coordination_games", findings)

    def check_mechanism_design(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        # IC: are users incentivized to report preferences truthfully?
        if protocol.governance is not None:
            findings.append(make_finding(
                FINDINGS["incentive_compatibility"],
                game_theory=MechanismFlawContext(
                    concept="Incentive Compatibility (Revelation Principle)",
                    violation="Strategic voting is rational",
                    fix="Mechanism should make truth-telling dominant",
                ),
            ))

        # Budget balance: value leaking to searchers vs fees retained by LPs
        if protocol.pools is not None:
            volume = total_volume(protocol.pools)
            fees = sum(p.volume24h * p.fees for p in protocol.pools)
            mev_estimate = volume * T["mev_leakage_rate"]["value"]
            if mev_estimate > fees * T["mev_leakage_fee_share"]["value"]:
                context = GameTheoryContext(
                    concept="Budget Balance / Value Leakage",
                    details={
                        "leakage": "MEV to external searchers",
                        "impact": "LPs subsidize searcher profits",
                    },
                )
                if fees > 0:
                    finding = make_finding(
                        FINDINGS["value_leakage"],
                        game_theory=context,
                        mev_usd=mev_estimate,
                        ratio_pct=mev_estimate / fees * 100,
                    )
                else:
                    finding = make_finding(
                        FINDINGS["value_leakage_no_fees"], game_theory=context, mev_usd=mev_estimate
                    )
                findings.append(finding)

        return _outcome("mechanism_design", findings)

    def check_multi_agent(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []

        ratio = liquid_ratio(protocol)
        if ratio is not None and ratio < T["cascade_liquidity_ratio"]["value"]:
            findings.append(make_finding(
                FINDINGS["liquidation_cascade"],
                game_theory=GameTheoryContext(
                    concept="Negative Externality Cascade",
                    details={
                        "mechanism": "Each exit imposes cost on remaining participants",
                        "outcome": "Race to exit first",
                    },
                ),
                ratio_pct=ratio * 100,
            ))

        if protocol.pools and any(p.volume24h > T["arms_race_volume_usd"]["value"] for p in protocol.pools):
            findings.append(make_finding(
                FINDINGS["arms_race"],
                game_theory=GameTheoryContext(
                    concept="Red Queen Effect / Arms Race",
                    details={
                        "outcome": "Socially wasteful investment in speed",
                        "centralisation": "Tends toward oligopoly of sophisticated actors",
                    },
                ),
            ))

        gov = protocol.governance
        if gov is not None and gov.timelock_delay < T["asymmetry_timelock_seconds"]["value"]:
            findings.append(make_finding(
                FINDINGS["information_asymmetry"],
                game_theory=GameTheoryContext(
                    concept="Adverse Selection / Lemon Problem",
                    details={
                        "asymmetry": "Speed of information processing",
                        "outcome": "Sophisticated actors extract from naive actors",
                    },
                ),
                hours=int(gov.timelock_delay // 3600),
            ))

        return _outcome("multi_agent", findings)
