"""
Unit tests for game_theory module.

Each pass (equilibria, dominant strategies, coordination, mechanism design,
multi-agent dynamics) is exercised in isolation, then the confidence-weighted
score.
"""

import pytest
import sys
from pathlib import Path
from dataclasses import replace

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from risk_types import (
    TokenomicsData,
    GameTheoryContext,
    NashEquilibriumContext,
    DominantStrategyContext,
    MechanismFlawContext,
)
from game_theory import GameTheoryAnalyzer, liquid_ratio


def titles(category):
    return [f.title for f in category.findings]


def finding_by_title(category, title):
    matches = [f for f in category.findings if f.title == title]
    assert len(matches) == 1, titles(category)
    return matches[0]


class TestLiquidRatio:

    @pytest.mark.unit
    def test_ratio(self, protocol_factory, pool_factory):
        protocol = protocol_factory(tvl=10_000_000, pools=[pool_factory(liquidity=1_000_000)])
        assert liquid_ratio(protocol) == pytest.approx(0.1)

    @pytest.mark.unit
    def test_empty_pools_count_as_zero_liquidity(self, protocol_factory):
        assert liquid_ratio(protocol_factory(tvl=1_000_000, pools=[])) == 0

    @pytest.mark.unit
    @pytest.mark.parametrize("tvl,pools", [(None, []), (0, []), (1_000_000, None)])
    def test_not_computable(self, protocol_factory, tvl, pools):
        assert liquid_ratio(protocol_factory(tvl=tvl, pools=pools)) is None


class TestEmptyInput:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_no_findings(self, protocol_factory):
        category = GameTheoryAnalyzer().analyze(protocol_factory())
        assert category.name == "Game-Theoretic Risk"
        assert category.findings == []
        assert category.score == 0
        assert category.severity == "low"


class TestNashEquilibria:

    @pytest.mark.unit
    def test_bank_run(self, protocol_factory, pool_factory):
        protocol = protocol_factory(tvl=10_000_000, pools=[pool_factory(liquidity=2_500_000, volume24h=1_000)])
        category = GameTheoryAnalyzer().analyze(protocol)
        finding = finding_by_title(category, "Bank Run Equilibrium Exists")
        assert finding.confidence == 0.85
        assert finding.description.startswith("Only 25% of TVL is liquid.")
        assert isinstance(finding.game_theory, NashEquilibriumContext)
        assert finding.game_theory.concept == "Multiple Nash Equilibria"
        assert finding.game_theory.equilibria == ["(Stay, Stay)", "(Run, Run)"]
        assert "payoffMatrix" in finding.game_theory.to_dict()

    @pytest.mark.unit
    def test_bank_run_with_supplied_but_empty_pools(self, protocol_factory):
        category = GameTheoryAnalyzer().analyze(protocol_factory(tvl=1_000_000, pools=[]))
        assert "Bank Run Equilibrium Exists" in titles(category)
        assert "Liquidation Cascade Dynamics" in titles(category)

    @pytest.mark.unit
    def test_bank_run_needs_pools_supplied(self, protocol_factory):
        category = GameTheoryAnalyzer().analyze(protocol_factory(tvl=1_000_000))
        assert "Bank Run Equilibrium Exists" not in titles(category)

    @pytest.mark.unit
    def test_governance_deadlock(self, protocol_factory, healthy_governance):
        governance = replace(healthy_governance, top_holder_voting_power=0.4, quorum=0.25)
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=governance))
        finding = finding_by_title(category, "Governance Deadlock Equilibrium")
        assert finding.game_theory.equilibria == ["Stalemate (no proposals pass)"]

    @pytest.mark.unit
    def test_no_deadlock_with_low_quorum(self, protocol_factory, governance_sample):
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=governance_sample))
        assert "Governance Deadlock Equilibrium" not in titles(category)


class TestDominantStrategies:

    @pytest.mark.unit
    def test_farm_and_dump(self, protocol_factory):
        # 1M/h * 24 over 10M circulating = 240% daily
        tokenomics = TokenomicsData(circulating_supply=10_000_000, emission_rate=1_000_000)
        category = GameTheoryAnalyzer().analyze(protocol_factory(tokenomics=tokenomics))
        finding = finding_by_title(category, "Dominant Strategy: Farm-and-Dump")
        assert isinstance(finding.game_theory, DominantStrategyContext)
        assert finding.game_theory.strategy == "Sell immediately upon receiving rewards"
        assert finding.game_theory.dominance

    @pytest.mark.unit
    def test_slow_emission_not_flagged(self, protocol_factory):
        tokenomics = TokenomicsData(circulating_supply=250_000_000, emission_rate=100_000)
        category = GameTheoryAnalyzer().analyze(protocol_factory(tokenomics=tokenomics))
        assert "Dominant Strategy: Farm-and-Dump" not in titles(category)

    @pytest.mark.unit
    def test_mev_extraction_has_no_dominance_label(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=100_000, volume24h=50_000)]
        category = GameTheoryAnalyzer().analyze(protocol_factory(pools=pools))
        finding = finding_by_title(category, "Dominant Strategy: MEV Extraction")
        assert finding.game_theory.concept == "Tragedy of the Commons"
        assert finding.game_theory.dominance is None
        assert "dominance" not in finding.game_theory.to_dict()


class TestCoordinationGames:

    @pytest.mark.unit
    def test_schelling_point(self, protocol_factory, governance_sample):
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=governance_sample))
        finding = finding_by_title(category, "Schelling Point Attack Surface")
        assert "(48h)" in finding.description
        assert finding.game_theory.details["amplifiers"] == ["Flash loans", "Social media", "Whale wallets"]

    @pytest.mark.unit
    def test_long_vote_no_schelling_point(self, protocol_factory, healthy_governance):
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=healthy_governance))
        assert "Schelling Point Attack Surface" not in titles(category)

    @pytest.mark.unit
    def test_oracle_coordination_needs_two_cheap_pools(self, protocol_factory, pool_factory):
        one = [pool_factory(liquidity=50_000, volume24h=100)]
        two = one + [pool_factory(liquidity=60_000, volume24h=100)]
        analyzer = GameTheoryAnalyzer()
        assert "Cross-Venue Oracle Manipulation" not in titles(analyzer.analyze(protocol_factory(pools=one)))
        assert "Cross-Venue Oracle Manipulation" in titles(analyzer.analyze(protocol_factory(pools=two)))


class TestMechanismDesign:

    @pytest.mark.unit
    def test_incentive_compatibility_with_governance(self, protocol_factory, healthy_governance):
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=healthy_governance))
        finding = finding_by_title(category, "Incentive Compatibility Analysis")
        assert isinstance(finding.game_theory, MechanismFlawContext)
        assert finding.game_theory.violation == "Strategic voting is rational"
        assert finding.confidence == 0.6

    @pytest.mark.unit
    def test_value_leakage(self, protocol_factory, pool_factory):
        # MEV estimate $1,000 vs fees $100
        pools = [pool_factory(liquidity=5_000_000, volume24h=200_000, fees=0.0005)]
        category = GameTheoryAnalyzer().analyze(protocol_factory(pools=pools))
        finding = finding_by_title(category, "Value Leakage to External Extractors")
        assert "$1,000/day" in finding.description
        assert "1000%" in finding.description

    @pytest.mark.unit
    def test_value_leakage_without_fees(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=5_000_000, volume24h=200_000, fees=0)]
        category = GameTheoryAnalyzer().analyze(protocol_factory(pools=pools))
        finding = finding_by_title(category, "Value Leakage to External Extractors")
        assert "$1,000/day" in finding.description

    @pytest.mark.unit
    def test_fees_cover_leakage(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=5_000_000, volume24h=200_000, fees=0.01)]
        category = GameTheoryAnalyzer().analyze(protocol_factory(pools=pools))
        assert "Value Leakage to External Extractors" not in titles(category)


class TestMultiAgent:

    @pytest.mark.unit
    def test_liquidation_cascade(self, protocol_factory, pool_factory):
        protocol = protocol_factory(tvl=10_000_000, pools=[pool_factory(liquidity=1_000_000, volume24h=1_000)])
        category = GameTheoryAnalyzer().analyze(protocol)
        finding = finding_by_title(category, "Liquidation Cascade Dynamics")
        assert finding.game_theory.concept == "Negative Externality Cascade"

    @pytest.mark.unit
    def test_arms_race(self, protocol_factory, pool_factory):
        pools = [pool_factory(volume24h=150_000)]
        category = GameTheoryAnalyzer().analyze(protocol_factory(pools=pools))
        assert "Frontrunning Arms Race" in titles(category)

    @pytest.mark.unit
    def test_information_asymmetry(self, protocol_factory, governance_sample):
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=governance_sample))
        finding = finding_by_title(category, "Information Asymmetry Exploitation")
        assert "(12h)" in finding.description


class TestGameTheoryScore:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_confidence_weighted_mean(self, protocol_factory, healthy_governance):
        """A lone 0.6 finding: medium weight 4 x 0.6."""
        category = GameTheoryAnalyzer().analyze(protocol_factory(governance=healthy_governance))
        assert titles(category) == ["Incentive Compatibility Analysis"]
        assert category.score == pytest.approx(2.4)

    @pytest.mark.unit
    def test_every_finding_carries_context(self, demo_protocol):
        category = GameTheoryAnalyzer().analyze(demo_protocol)
        assert category.findings
        for finding in category.findings:
            assert isinstance(finding.game_theory, GameTheoryContext)
            assert finding.game_theory.concept
