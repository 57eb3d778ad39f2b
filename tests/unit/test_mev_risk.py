"""
Unit tests for mev_risk module.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from mev_risk import MEVAnalyzer


def titles(category):
    return [f.title for f in category.findings]


class TestNoPools:

    @pytest.mark.unit
    @pytest.mark.scoring
    @pytest.mark.parametrize("pools", [None, []])
    def test_placeholder(self, protocol_factory, pools):
        category = MEVAnalyzer().analyze(protocol_factory(pools=pools))
        assert category.name == "MEV Risk"
        assert category.score == 2
        assert titles(category) == ["No Pool Data Available"]
        assert category.findings[0].confidence == 0.3


class TestSandwich:

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_high_exposure(self, protocol_factory, pool_factory):
        pools = [pool_factory(token0="SOL", token1="DEMO", liquidity=50_000, volume24h=45_000)]
        category = MEVAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category) == [
            "High Sandwich Attack Exposure: SOL/DEMO",
            "Oracle Update Front-Running Risk",
        ]
        assert category.findings[0].description == (
            "Pool has 90% daily volume relative to liquidity with only $50k TVL."
        )
        # (7 + 3) / 2
        assert category.score == pytest.approx(5.0)

    @pytest.mark.unit
    def test_deep_pool_is_only_moderate(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=800_000, volume24h=600_000)]
        category = MEVAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category)[0] == "Moderate Sandwich Risk: USDC/TKN"
        assert "75% daily turnover" in category.findings[0].description

    @pytest.mark.unit
    def test_quiet_pool_not_flagged(self, protocol_factory, pool_factory):
        category = MEVAnalyzer().analyze(protocol_factory(pools=[pool_factory()]))
        assert titles(category) == ["Oracle Update Front-Running Risk"]
        assert category.score == 3


class TestJIT:

    @pytest.mark.unit
    def test_low_fee_deep_pool(self, protocol_factory, pool_factory):
        pools = [pool_factory(fees=0.0005)]
        category = MEVAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category)[0] == "JIT Liquidity Target: USDC/TKN"
        assert "(0.05%)" in category.findings[0].description

    @pytest.mark.unit
    def test_standard_fee_tier_not_flagged(self, protocol_factory, pool_factory):
        category = MEVAnalyzer().analyze(protocol_factory(pools=[pool_factory(fees=0.003)]))
        assert not any(t.startswith("JIT") for t in titles(category))

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_pool_can_raise_sandwich_and_jit(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=2_000_000, volume24h=1_500_000, fees=0.001)]
        category = MEVAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category) == [
            "Moderate Sandwich Risk: USDC/TKN",
            "JIT Liquidity Target: USDC/TKN",
            "Oracle Update Front-Running Risk",
        ]
        assert category.score == pytest.approx((4 + 5 + 3) / 3)
