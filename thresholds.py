"""
Risk Scoring Thresholds and Justifications.

All numeric trigger points used by the six category analyzers, the severity
scale that maps a 0-10 score to a tier, and the category weights used to blend
category scores into the overall protocol score.

Scores are RISK scores: 0 = no detected risk, 10 = maximum risk.

Each threshold includes:
- value: The numeric trigger point
- justification: Why the rule fires at this point
"""

# =============================================================================
# SEVERITY SCALE
# =============================================================================

SEVERITY_SCALE = {
    "low": {
        "min": 0,
        "max": 3,
        "label": "Low",
        "description": "No material risk factors detected, or only informational findings.",
    },
    "medium": {
        "min": 3,
        "max": 6,
        "label": "Medium",
        "description": "Notable risk factors that warrant monitoring before committing capital.",
    },
    "high": {
        "min": 6,
        "max": 8,
        "label": "High",
        "description": "Significant attack surface. Interact only with position limits and exit plans.",
    },
    "critical": {
        "min": 8,
        "max": 10,
        "label": "Critical",
        "description": "Severe, likely exploitable risk factors. Avoid interaction.",
    },
}

# Rank order used for severity escalation (lowest first)
SEVERITY_ORDER = ["low", "medium", "high", "critical"]

# =============================================================================
# CATEGORY WEIGHTS
# =============================================================================

CATEGORY_WEIGHTS = {
    "economic": {
        "weight": 0.20,
        "justification": "Tokenomics, flash-loan surface and incentive alignment drive most "
                        "economic exploits (dilution spirals, whale dumps, withdrawal races).",
    },
    "governance": {
        "weight": 0.15,
        "justification": "Governance capture is slower to exploit than economic attacks but "
                        "gives an attacker full control once achieved.",
    },
    "liquidity": {
        "weight": 0.20,
        "justification": "Exit liquidity determines whether positions can be unwound at stated "
                        "value during stress.",
    },
    "composability": {
        "weight": 0.10,
        "justification": "Inherited risk from dependencies. Heuristic (name based), so weighted lower.",
    },
    "mev": {
        "weight": 0.10,
        "justification": "MEV is a recurring cost to users rather than a solvency threat.",
    },
    "gameTheory": {
        "weight": 0.25,
        "justification": "Most DeFi exploits are rational actors following incentives to "
                        "unintended conclusions. Highest weight: this is the differentiator.",
    },
}

# =============================================================================
# ECONOMIC RISK THRESHOLDS
# =============================================================================

ECONOMIC_THRESHOLDS = {
    "concentration_extreme": {
        "value": 0.8,
        "justification": "Gini above 0.8: top holders control the majority of supply.",
    },
    "concentration_moderate": {
        "value": 0.6,
        "justification": "Gini above 0.6: coordinated selling by top holders moves price.",
    },
    "annual_dilution_hyperinflation": {
        "value": 1.0,
        "justification": "Yearly emissions exceed circulating supply.",
    },
    "annual_dilution_high": {
        "value": 0.5,
        "justification": "50%+ yearly dilution tends to outpace organic demand.",
    },
    "vesting_window_days": {
        "value": 30,
        "justification": "Unlocks within a month are actionable for position sizing.",
    },
    "vesting_unlock_pct": {
        "value": 10,
        "justification": "Unlocking >10% of circulating supply causes material sell pressure.",
    },
    "flash_loan_liquidity_usd": {
        "value": 100_000,
        "justification": "Pools under $100k can be moved with trivially sized flash loans.",
    },
    "withdrawal_race_utilization": {
        "value": 0.9,
        "justification": "Average daily volume above 90% of liquidity signals bank-run dynamics.",
    },
}

# =============================================================================
# GOVERNANCE RISK THRESHOLDS
# =============================================================================

GOVERNANCE_THRESHOLDS = {
    "quorum_critical": {
        "value": 0.04,
        "justification": "Quorum under 4% is reachable during low-activity periods or with flash loans.",
    },
    "quorum_low": {
        "value": 0.10,
        "justification": "Quorum under 10% is reachable by a coordinated minority.",
    },
    "timelock_min_seconds": {
        "value": 24 * 3600,
        "justification": "Less than 24h leaves users too little time to exit.",
    },
    "voting_power_majority": {
        "value": 0.5,
        "justification": "A single entity can pass any proposal unilaterally.",
    },
    "voting_power_veto": {
        "value": 0.33,
        "justification": "Enough voting power to block proposals.",
    },
    "proposal_threshold_max": {
        "value": 0.05,
        "justification": "Proposal rights above 5% of supply are plutocratic.",
    },
}

# =============================================================================
# LIQUIDITY RISK THRESHOLDS
# =============================================================================

LIQUIDITY_THRESHOLDS = {
    "largest_pool_share": {
        "value": 0.8,
        "justification": "More than 80% of liquidity in one venue is a single point of failure.",
    },
    "liquidity_to_tvl_min": {
        "value": 0.1,
        "justification": "Tradeable liquidity under 10% of TVL means stated value is not realizable.",
    },
    "pool_liquidity_critical_usd": {
        "value": 10_000,
        "justification": "Any meaningful trade causes extreme slippage.",
    },
    "pool_liquidity_low_usd": {
        "value": 100_000,
        "justification": "Large trades incur >1% slippage.",
    },
    "fee_apr_min": {
        "value": 0.02,
        "justification": "Fee APR under 2% does not compensate LPs for impermanent loss.",
    },
    "volatile_pair_share": {
        "value": 0.7,
        "justification": "More than 70% of pools without a stablecoin anchor.",
    },
    "stablecoin_markers": {
        "value": ["USD", "USDC", "USDT"],
        "justification": "Token symbol substrings treated as stablecoin legs.",
    },
}

# =============================================================================
# MEV RISK THRESHOLDS
# =============================================================================

MEV_THRESHOLDS = {
    "sandwich_high_turnover": {
        "value": 0.5,
        "justification": "Daily volume above 50% of liquidity makes sandwiches profitable.",
    },
    "sandwich_high_max_liquidity_usd": {
        "value": 500_000,
        "justification": "Below $500k, typical trades move price enough to sandwich.",
    },
    "sandwich_moderate_turnover": {
        "value": 0.3,
        "justification": "Active pools attract MEV bots.",
    },
    "jit_max_fee": {
        "value": 0.003,
        "justification": "Fee tiers under 0.3% are the usual JIT liquidity targets.",
    },
    "jit_min_liquidity_usd": {
        "value": 1_000_000,
        "justification": "Deep pools route the large trades JIT providers wait for.",
    },
}

# =============================================================================
# GAME THEORY THRESHOLDS
# =============================================================================

GAME_THEORY_THRESHOLDS = {
    "bank_run_liquidity_ratio": {
        "value": 0.3,
        "justification": "Under 30% of TVL liquid: both 'stay' and 'run' are self-fulfilling equilibria.",
    },
    "deadlock_min_voting_power": {
        "value": 0.33,
        "justification": "Blocking minority.",
    },
    "deadlock_max_voting_power": {
        "value": 0.5,
        "justification": "Below majority - can block but cannot pass.",
    },
    "deadlock_min_quorum": {
        "value": 0.2,
        "justification": "High quorum makes the blocking minority decisive.",
    },
    "farm_dump_daily_dilution": {
        "value": 0.01,
        "justification": "More than 1% daily dilution makes selling rewards strictly dominant.",
    },
    "mev_extraction_turnover": {
        "value": 0.3,
        "justification": "Same turnover as moderate sandwich exposure.",
    },
    "mev_extraction_max_liquidity_usd": {
        "value": 500_000,
        "justification": "Same liquidity bound as high sandwich exposure.",
    },
    "schelling_voting_period_seconds": {
        "value": 5 * 24 * 3600,
        "justification": "Short votes leave no time to counter publicly announced focal points.",
    },
    "oracle_coordination_liquidity_usd": {
        "value": 100_000,
        "justification": "Pools cheap enough to manipulate in the same block.",
    },
    "oracle_coordination_min_pools": {
        "value": 2,
        "justification": "Aggregated oracles need two or more manipulable venues to be fooled.",
    },
    "mev_leakage_rate": {
        "value": 0.005,
        "justification": "Rough share of volume extracted by searchers.",
    },
    "mev_leakage_fee_share": {
        "value": 0.5,
        "justification": "Leakage above half of LP fee revenue breaks budget balance.",
    },
    "cascade_liquidity_ratio": {
        "value": 0.2,
        "justification": "Under 20% of TVL liquid: liquidations feed on themselves.",
    },
    "arms_race_volume_usd": {
        "value": 100_000,
        "justification": "Daily volume worth competing on latency for.",
    },
    "asymmetry_timelock_seconds": {
        "value": 48 * 3600,
        "justification": "Under 48h, only continuously monitoring actors exit in time.",
    },
}

# Finding-confidence tiers used to weight game-theoretic findings
CONFIDENCE_SEVERITY = [
    {"min_confidence": 0.85, "severity": "critical"},
    {"min_confidence": 0.7, "severity": "high"},
    {"min_confidence": 0.5, "severity": "medium"},
]

SEVERITY_WEIGHTS = {
    "critical": 10,
    "high": 7,
    "medium": 4,
    "low": 1,
}

# =============================================================================
# COMPOSABILITY RISK THRESHOLDS
# =============================================================================

COMPOSABILITY_THRESHOLDS = {
    "oracle_dependency_tvl_usd": {
        "value": 10_000_000,
        "justification": "Protocols above $10M TVL almost always price collateral via oracles.",
    },
    "fragmentation_min_pools": {
        "value": 3,
        "justification": "Fragmentation is only meaningful with more than three venues.",
    },
    "fragmentation_small_pool_ratio": {
        "value": 0.5,
        "justification": "A pool below half the mean pool size is considered small.",
    },
    "fragmentation_small_pool_share": {
        "value": 0.5,
        "justification": "More than half the venues are small.",
    },
    "rehypothecation_tvl_usd": {
        "value": 50_000_000,
        "justification": "Large lending markets are where recursive leverage accumulates.",
    },
}

# =============================================================================
# AGGREGATION
# =============================================================================

REPORT_SETTINGS = {
    "high_confidence": 0.7,          # findings counted as high-confidence / eligible for recommendations
    "game_theory_summary_confidence": 0.6,
    "max_recommendations": 5,
    "max_summary_concepts": 3,
}
