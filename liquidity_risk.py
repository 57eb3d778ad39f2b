"""
Liquidity Risk Analyzer.

Identifies liquidity-related vulnerabilities:
- Liquidity concentrated in a single venue
- Tradeable liquidity far below reported TVL
- Thin individual pools
- LP fee revenue too low to retain liquidity
- Impermanent loss exposure from volatile-volatile pairs

Scoring: mean of triggered points per finding.
"""

from typing import List, Optional

from risk_types import PoolData, ProtocolInput, RiskCategory
from rule_engine import (
    RiskAnalyzer,
    RuleCheck,
    CheckOutcome,
    ScoringMode,
    make_finding,
    placeholder_category,
    total_liquidity,
)
from thresholds import LIQUIDITY_THRESHOLDS


FINDINGS = {
    "no_data": {
        "title": "No Liquidity Pool Data",
        "description": "Unable to analyze liquidity risks without pool data.",
        "confidence": 0.3,
        "points": 2,
    },
    "venue_concentration": {
        "title": "Extreme Liquidity Concentration",
        "description": "{share_pct:.0f}% of liquidity is in a single pool. Protocol health depends on one venue.",
        "attack_vector": "If the dominant pool is drained or depegs, the entire protocol loses liquidity. "
                         "Single point of failure.",
        "mitigation": "Incentivize liquidity across multiple pools/DEXes. Implement liquidity mining diversification.",
        "confidence": 0.85,
        "points": 7,
    },
    "tvl_mismatch": {
        "title": "Liquidity-TVL Mismatch",
        "description": "Tradeable liquidity (${liquidity_m:.1f}M) is only {ratio_pct:.0f}% of reported "
                       "TVL (${tvl_m:.1f}M).",
        "attack_vector": "Exit liquidity crisis: Users may not be able to withdraw at stated values. "
                         "Paper gains vs realizable value.",
        "mitigation": "Verify TVL methodology. Check for locked/illiquid portions. Implement withdrawal limits.",
        "confidence": 0.75,
        "points": 6,
    },
    "critically_thin": {
        "title": "Critically Thin Liquidity: {pair}",
        "description": "Pool has only ${liquidity:,.0f} in liquidity.",
        "attack_vector": "Any significant trade will cause extreme slippage. Easy to manipulate for oracle attacks.",
        "mitigation": "Avoid using this pool for price discovery. Add liquidity mining incentives.",
        "confidence": 0.9,
        "points": 8,
    },
    "low_liquidity": {
        "title": "Low Liquidity Pool: {pair}",
        "description": "Pool has ${liquidity_k:.0f}k in liquidity, vulnerable to large trades.",
        "attack_vector": "Trades over ${max_trade:,.0f} will incur >1% slippage.",
        "confidence": 0.7,
        "points": 4,
    },
    "unsustainable_lp": {
        "title": "Unsustainable LP Economics: {pair}",
        "description": "Fee APR of {apr_pct:.1f}% may not compensate LPs for impermanent loss risk.",
        "attack_vector": "Rational LPs will withdraw, reducing liquidity over time. Death spiral risk.",
        "mitigation": "Add token incentives, increase fee tier, or improve volume through integrations.",
        "confidence": 0.6,
        "points": 3,
    },
    "impermanent_loss": {
        "title": "High Impermanent Loss Exposure",
        "description": "{volatile} of {total} pools are volatile-volatile pairs with no stablecoin anchor.",
        "attack_vector": "LPs face significant IL during price divergence. Can lose 5-25% vs holding "
                         "during volatile periods.",
        "mitigation": "Consider single-sided staking, concentrated liquidity management, or IL protection mechanisms.",
        "confidence": 0.7,
        "points": 5,
    },
}


def fee_apr(pool: PoolData) -> Optional[float]:
    """Annualized LP fee yield. None for a pool with no liquidity."""
    if pool.liquidity <= 0:
        return None
    return pool.volume24h * pool.fees * 365 / pool.liquidity


def has_stablecoin_leg(pool: PoolData) -> bool:
    markers = LIQUIDITY_THRESHOLDS["stablecoin_markers"]["value"]
    return any(marker in token for token in (pool.token0, pool.token1) for marker in markers)


class LiquidityAnalyzer(RiskAnalyzer):
    """Venue concentration, TVL realizability, pool depth and LP economics."""

    category_name = "Liquidity Risk"
    scoring_mode = ScoringMode.MEAN_PER_FINDING

    def placeholder(self, protocol: ProtocolInput) -> Optional[RiskCategory]:
        if not protocol.pools:
            return placeholder_category(self.category_name, 2, FINDINGS["no_data"])
        return None

    def rule_checks(self) -> List[RuleCheck]:
        return [
            RuleCheck("venue_concentration", "largest pool > 80% of liquidity", self.check_concentration),
            RuleCheck("tvl_mismatch", "total liquidity < 10% of TVL", self.check_tvl_mismatch),
            RuleCheck("pool_health", "per pool depth and fee APR", self.check_pool_health),
            RuleCheck("impermanent_loss", "> 70% of pools without stablecoin leg", self.check_impermanent_loss),
        ]

    def check_concentration(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        total = total_liquidity(protocol.pools)
        if total <= 0:
            return None
        share = max(p.liquidity for p in protocol.pools) / total
        if share <= LIQUIDITY_THRESHOLDS["largest_pool_share"]["value"]:
            return None
        template = FINDINGS["venue_concentration"]
        return CheckOutcome(
            "venue_concentration",
            [make_finding(template, share_pct=share * 100)],
            template["points"],
        )

    def check_tvl_mismatch(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        if not protocol.tvl:
            return None
        total = total_liquidity(protocol.pools)
        if total >= protocol.tvl * LIQUIDITY_THRESHOLDS["liquidity_to_tvl_min"]["value"]:
            return None
        template = FINDINGS["tvl_mismatch"]
        finding = make_finding(
            template,
            liquidity_m=total / 1e6,
            ratio_pct=total / protocol.tvl * 100,
            tvl_m=protocol.tvl / 1e6,
        )
        return CheckOutcome("tvl_mismatch", [finding], template["points"])

    def check_pool_health(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        findings = []
        points = 0

        for pool in protocol.pools:
            # Depth
            if pool.liquidity < LIQUIDITY_THRESHOLDS["pool_liquidity_critical_usd"]["value"]:
                template = FINDINGS["critically_thin"]
                findings.append(make_finding(template, pair=pool.pair, liquidity=pool.liquidity))
                points += template["points"]
            elif pool.liquidity < LIQUIDITY_THRESHOLDS["pool_liquidity_low_usd"]["value"]:
                template = FINDINGS["low_liquidity"]
                findings.append(make_finding(
                    template,
                    pair=pool.pair,
                    liquidity_k=pool.liquidity / 1000,
                    max_trade=pool.liquidity * 0.01,
                ))
                points += template["points"]

            # Volume sustainability
            apr = fee_apr(pool)
            if apr is not None and apr < LIQUIDITY_THRESHOLDS["fee_apr_min"]["value"]:
                template = FINDINGS["unsustainable_lp"]
                findings.append(make_finding(template, pair=pool.pair, apr_pct=apr * 100))
                points += template["points"]

        if not findings:
            return None
        return CheckOutcome("pool_health", findings, points)

    def check_impermanent_loss(self, protocol: ProtocolInput) -> Optional[CheckOutcome]:
        pools = protocol.pools
        volatile = [p for p in pools if not has_stablecoin_leg(p)]
        if len(volatile) <= len(pools) * LIQUIDITY_THRESHOLDS["volatile_pair_share"]["value"]:
            return None
        template = FINDINGS["impermanent_loss"]
        return CheckOutcome(
            "impermanent_loss",
            [make_finding(template, volatile=len(volatile), total=len(pools))],
            template["points"],
        )
