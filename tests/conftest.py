"""
Pytest configuration and fixtures for the Protocol Risk Framework.

This file contains shared fixtures used across all test modules.
Fixtures follow the pattern: factory functions returning fresh objects.
"""

import pytest
import json
import sys
from pathlib import Path
from typing import Dict, Any

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from risk_types import (
    ProtocolInput,
    TokenomicsData,
    GovernanceData,
    PoolData,
)


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def demo_config_path(project_root: Path) -> Path:
    return project_root / "example_demo_protocol.json"


# =============================================================================
# PROTOCOL FIXTURES
# =============================================================================

@pytest.fixture
def demo_protocol_data(demo_config_path: Path) -> Dict[str, Any]:
    """Load the bundled demo protocol (camelCase JSON)."""
    with open(demo_config_path, "r") as f:
        return json.load(f)


@pytest.fixture
def demo_protocol(demo_protocol_data) -> ProtocolInput:
    from data_adapter import load_protocol_input
    return load_protocol_input(demo_protocol_data)


@pytest.fixture
def governance_sample() -> GovernanceData:
    """
    Weak governance: 3% quorum, 12h timelock, 45% top holder.

    Raises critical quorum, short timelock and veto power findings.
    """
    return GovernanceData(
        quorum=0.03,
        voting_period=2 * 24 * 3600,
        timelock_delay=12 * 3600,
        proposal_threshold=0.01,
        top_holder_voting_power=0.45,
    )


@pytest.fixture
def healthy_governance() -> GovernanceData:
    """Governance that trips no governance rule."""
    return GovernanceData(
        quorum=0.15,
        voting_period=7 * 24 * 3600,
        timelock_delay=72 * 3600,
        proposal_threshold=0.01,
        top_holder_voting_power=0.10,
    )


@pytest.fixture
def pool_factory():
    """
    Factory fixture for creating pools.

    Usage:
        def test_something(pool_factory):
            pool = pool_factory(liquidity=5_000, volume24h=10_000)
    """
    def _create_pool(**overrides) -> PoolData:
        base = {
            "address": "pool",
            "token0": "USDC",
            "token1": "TKN",
            "liquidity": 2_000_000,
            "volume24h": 200_000,
            "fees": 0.003,
        }
        base.update(overrides)
        return PoolData(**base)

    return _create_pool


@pytest.fixture
def protocol_factory():
    """
    Factory fixture for creating protocol inputs.

    Only address and name are set by default; every optional section is
    absent unless passed in.

    Usage:
        def test_something(protocol_factory, governance_sample):
            protocol = protocol_factory(governance=governance_sample)
    """
    def _create_protocol(**overrides) -> ProtocolInput:
        base = {
            "address": "TestProtocol1111111111111111111111111111111",
            "name": "Test Protocol",
        }
        base.update(overrides)
        return ProtocolInput(**base)

    return _create_protocol


@pytest.fixture
def tokenomics_factory():
    def _create_tokenomics(**overrides) -> TokenomicsData:
        base = {
            "total_supply": 1_000_000_000,
            "circulating_supply": 500_000_000,
        }
        base.update(overrides)
        return TokenomicsData(**base)

    return _create_tokenomics


@pytest.fixture
def fixed_now() -> float:
    """Fixed clock for vesting checks (2024-01-01T00:00:00Z)."""
    return 1_704_067_200.0

