"""
Unit tests for liquidity_risk module.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from liquidity_risk import LiquidityAnalyzer, fee_apr, has_stablecoin_leg


def titles(category):
    return [f.title for f in category.findings]


class TestHelpers:

    @pytest.mark.unit
    def test_fee_apr(self, pool_factory):
        pool = pool_factory(liquidity=365_000, volume24h=100_000, fees=0.01)
        assert fee_apr(pool) == pytest.approx(1.0)

    @pytest.mark.unit
    def test_fee_apr_without_liquidity(self, pool_factory):
        assert fee_apr(pool_factory(liquidity=0)) is None

    @pytest.mark.unit
    @pytest.mark.parametrize("token0,token1,expected", [
        ("USDC", "SOL", True),
        ("SOL", "USDT", True),
        ("SOL", "sUSD", True),
        ("SOL", "JUP", False),
    ])
    def test_stablecoin_leg(self, pool_factory, token0, token1, expected):
        assert has_stablecoin_leg(pool_factory(token0=token0, token1=token1)) is expected


class TestNoPools:

    @pytest.mark.unit
    @pytest.mark.scoring
    @pytest.mark.parametrize("pools", [None, []])
    def test_placeholder(self, protocol_factory, pools):
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert category.name == "Liquidity Risk"
        assert category.score == 2
        assert category.severity == "low"
        assert titles(category) == ["No Liquidity Pool Data"]


class TestLiquidityRules:

    @pytest.mark.unit
    def test_healthy_pools(self, protocol_factory, pool_factory):
        pools = [pool_factory(), pool_factory(token0="USDT")]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert category.findings == []
        assert category.score == 0

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_venue_concentration(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=9_000_000, volume24h=900_000), pool_factory()]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category) == ["Extreme Liquidity Concentration"]
        assert "82%" in category.findings[0].description

    @pytest.mark.unit
    def test_zero_total_liquidity_skips_concentration(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=0, volume24h=0), pool_factory(liquidity=0, volume24h=0)]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert "Extreme Liquidity Concentration" not in titles(category)
        assert titles(category) == ["Critically Thin Liquidity: USDC/TKN"] * 2

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_tvl_mismatch(self, protocol_factory, pool_factory):
        pools = [pool_factory(), pool_factory()]
        category = LiquidityAnalyzer().analyze(protocol_factory(tvl=100_000_000, pools=pools))
        finding = category.findings[0]
        assert finding.title == "Liquidity-TVL Mismatch"
        assert finding.description == (
            "Tradeable liquidity ($4.0M) is only 4% of reported TVL ($100.0M)."
        )

    @pytest.mark.unit
    def test_critically_thin(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=5_000, volume24h=5_000), pool_factory(), pool_factory()]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        finding = category.findings[0]
        assert finding.title == "Critically Thin Liquidity: USDC/TKN"
        assert finding.description == "Pool has only $5,000 in liquidity."
        assert finding.confidence == 0.9

    @pytest.mark.unit
    def test_low_liquidity(self, protocol_factory, pool_factory):
        pools = [pool_factory(liquidity=50_000, volume24h=45_000), pool_factory(), pool_factory()]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        finding = category.findings[0]
        assert finding.title == "Low Liquidity Pool: USDC/TKN"
        assert finding.description == "Pool has $50k in liquidity, vulnerable to large trades."
        assert finding.attack_vector == "Trades over $500 will incur >1% slippage."

    @pytest.mark.unit
    def test_unsustainable_lp(self, protocol_factory, pool_factory):
        # 10k volume * 0.3% * 365 / 2M = 0.55% APR
        pools = [pool_factory(volume24h=10_000), pool_factory()]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category) == ["Unsustainable LP Economics: USDC/TKN"]
        assert "0.5%" in category.findings[0].description

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_impermanent_loss(self, protocol_factory, pool_factory):
        pools = [
            pool_factory(token0="SOL", token1="TKN"),
            pool_factory(token0="JUP", token1="TKN"),
            pool_factory(token0="ETH", token1="TKN"),
            pool_factory(),
        ]
        category = LiquidityAnalyzer().analyze(protocol_factory(pools=pools))
        assert titles(category) == ["High Impermanent Loss Exposure"]
        assert category.findings[0].description.startswith("3 of 4 pools")
        assert category.score == 5

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_mean_per_finding(self, protocol_factory, pool_factory):
        """Two low-liquidity pools (4 + 4) and a TVL mismatch (6) over three findings."""
        pools = [
            pool_factory(token0="SOL", token1="DEMO", liquidity=50_000, volume24h=45_000),
            pool_factory(token0="USDC", token1="DEMO", liquidity=200_000, volume24h=150_000, fees=0.001),
            pool_factory(token0="DEMO", token1="JUP", liquidity=30_000, volume24h=25_000),
        ]
        category = LiquidityAnalyzer().analyze(protocol_factory(tvl=50_000_000, pools=pools))
        assert len(category.findings) == 3
        assert category.score == pytest.approx(14 / 3)
        assert category.severity == "medium"
