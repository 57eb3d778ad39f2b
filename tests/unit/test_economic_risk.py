"""
Unit tests for economic_risk module.

Tokenomics (concentration, dilution, cliff unlocks), flash-loan surface,
oracle review and withdrawal-race checks, plus the mean-per-check score.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from risk_types import TokenomicsData, VestingEvent
from economic_risk import EconomicAnalyzer, annual_dilution


def titles(category):
    return [f.title for f in category.findings]


class TestConcentration:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_extreme_concentration_alone(self, protocol_factory):
        """Gini 0.9 with no other tokenomics fields: (8 + 0 + 3 + 0) / 4."""
        protocol = protocol_factory(tokenomics=TokenomicsData(concentration=0.9))
        category = EconomicAnalyzer().analyze(protocol)

        extreme = [f for f in category.findings if f.title == "Extreme Token Concentration"]
        assert len(extreme) == 1
        assert extreme[0].confidence == 0.9
        assert "0.90" in extreme[0].description
        assert category.score == pytest.approx(2.75)
        assert category.severity == "low"

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_moderate_concentration(self, protocol_factory, tokenomics_factory):
        protocol = protocol_factory(tokenomics=tokenomics_factory(concentration=0.7))
        category = EconomicAnalyzer().analyze(protocol)
        assert "Moderate Token Concentration" in titles(category)

    @pytest.mark.unit
    @pytest.mark.parametrize("gini", [0.6, 0.3])
    def test_low_concentration_not_flagged(self, protocol_factory, tokenomics_factory, gini):
        protocol = protocol_factory(tokenomics=tokenomics_factory(concentration=gini))
        category = EconomicAnalyzer().analyze(protocol)
        assert not any("Concentration" in t for t in titles(category))


class TestEmission:

    @pytest.mark.unit
    def test_annual_dilution(self, tokenomics_factory):
        tokenomics = tokenomics_factory(circulating_supply=8_760_000, emission_rate=1_000)
        assert annual_dilution(tokenomics) == pytest.approx(1.0)

    @pytest.mark.unit
    def test_annual_dilution_needs_supply(self):
        assert annual_dilution(TokenomicsData(emission_rate=1_000)) is None
        assert annual_dilution(TokenomicsData(circulating_supply=0, emission_rate=1_000)) is None

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_hyperinflation(self, protocol_factory, tokenomics_factory):
        # 100k/h over 250M circulating = 350% a year
        protocol = protocol_factory(tokenomics=tokenomics_factory(
            circulating_supply=250_000_000, emission_rate=100_000
        ))
        category = EconomicAnalyzer().analyze(protocol)
        finding = category.findings[0]
        assert finding.title == "Hyperinflationary Emission Schedule"
        assert finding.confidence == 0.95
        assert "350%" in finding.description

    @pytest.mark.unit
    def test_high_emission(self, protocol_factory, tokenomics_factory):
        # 40k/h over 500M circulating = ~70% a year
        protocol = protocol_factory(tokenomics=tokenomics_factory(emission_rate=40_000))
        category = EconomicAnalyzer().analyze(protocol)
        assert "High Emission Rate" in titles(category)

    @pytest.mark.unit
    def test_modest_emission_not_flagged(self, protocol_factory, tokenomics_factory):
        protocol = protocol_factory(tokenomics=tokenomics_factory(emission_rate=1_000))
        category = EconomicAnalyzer().analyze(protocol)
        assert titles(category) == ["Oracle Configuration Review Required"]


class TestVesting:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_cliff_unlock_within_window(self, protocol_factory, tokenomics_factory, fixed_now):
        schedule = [
            VestingEvent(timestamp=fixed_now + 5 * 86400, amount=40_000_000),
            VestingEvent(timestamp=fixed_now + 20 * 86400, amount=20_000_000),
        ]
        protocol = protocol_factory(tokenomics=tokenomics_factory(vesting_schedule=schedule))
        category = EconomicAnalyzer(now=fixed_now).analyze(protocol)

        unlock = [f for f in category.findings if f.title == "Major Token Unlock Imminent"]
        assert len(unlock) == 1
        assert "12.0% of circulating supply" in unlock[0].description

    @pytest.mark.unit
    def test_unlocks_outside_window_ignored(self, protocol_factory, tokenomics_factory, fixed_now):
        schedule = [
            VestingEvent(timestamp=fixed_now - 86400, amount=400_000_000),
            VestingEvent(timestamp=fixed_now + 60 * 86400, amount=400_000_000),
        ]
        protocol = protocol_factory(tokenomics=tokenomics_factory(vesting_schedule=schedule))
        category = EconomicAnalyzer(now=fixed_now).analyze(protocol)
        assert "Major Token Unlock Imminent" not in titles(category)

    @pytest.mark.unit
    def test_vesting_skipped_without_circulating_supply(self, protocol_factory, fixed_now):
        schedule = [VestingEvent(timestamp=fixed_now + 86400, amount=1)]
        protocol = protocol_factory(tokenomics=TokenomicsData(vesting_schedule=schedule))
        category = EconomicAnalyzer(now=fixed_now).analyze(protocol)
        assert "Major Token Unlock Imminent" not in titles(category)


class TestPoolChecks:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_flash_loan_counts_low_liquidity_pools(self, protocol_factory, pool_factory):
        pools = [
            pool_factory(liquidity=50_000, volume24h=1_000),
            pool_factory(liquidity=30_000, volume24h=1_000),
            pool_factory(liquidity=5_000_000, volume24h=1_000),
        ]
        category = EconomicAnalyzer().analyze(protocol_factory(pools=pools))
        flash = category.findings[0]
        assert flash.title == "Low Liquidity Pools Vulnerable to Manipulation"
        assert flash.description.startswith("2 pool(s) have liquidity under $100,000")
        # flash 7 + oracle 3 + incentive 0 over three checks
        assert category.score == pytest.approx(10 / 3)

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_withdrawal_race(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=1_000_000, volume24h=950_000)]
        category = EconomicAnalyzer().analyze(protocol_factory(pools=pools))
        race = [f for f in category.findings if f.title == "High Utilization Creates Withdrawal Race"]
        assert len(race) == 1
        assert "95%" in race[0].description

    @pytest.mark.unit
    def test_oracle_review_always_present(self, protocol_factory):
        category = EconomicAnalyzer().analyze(protocol_factory())
        assert titles(category) == ["Oracle Configuration Review Required"]
        assert category.findings[0].confidence == 0.5


class TestEconomicScore:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_no_tokenomics_scores_over_three_checks(self, protocol_factory):
        category = EconomicAnalyzer().analyze(protocol_factory())
        assert category.name == "Economic Risk"
        assert category.score == pytest.approx(1.0)

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_tokenomics_check_contributes_its_mean(self, protocol_factory, tokenomics_factory):
        # moderate (4) + hyperinflation (9) -> 6.5 for the tokenomics check
        protocol = protocol_factory(tokenomics=tokenomics_factory(
            circulating_supply=250_000_000, emission_rate=100_000, concentration=0.75
        ))
        category = EconomicAnalyzer().analyze(protocol)
        assert category.score == pytest.approx((6.5 + 0 + 3 + 0) / 4)
