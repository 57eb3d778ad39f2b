"""
Data Adapter Layer for the Risk Engine.

Bridges JSON protocol documents (camelCase keys, as produced by agents and
data-fetch collaborators) and the engine's ProtocolInput dataclasses:

1. load_protocol_input / load_protocol_file - parse + coerce + validate
2. validate_protocol_data - non-raising completeness report for the dashboard
3. gini - concentration from raw holder balances

Only the adapter raises InvalidProtocolData. The engine itself only ever
raises MissingRequiredField.
"""

import json
import math
from typing import Dict, Any, List, Optional

import numpy as np

from risk_logging import get_logger
from risk_types import (
    MissingRequiredField,
    InvalidProtocolData,
    ProtocolInput,
    TokenomicsData,
    GovernanceData,
    PoolData,
    VestingEvent,
)

logger = get_logger(__name__)


# =============================================================================
# CONCENTRATION
# =============================================================================

def gini(amounts) -> float:
    """
    Gini coefficient of a balance distribution.

    0 = perfectly equal, approaching 1 = one holder owns everything.
    Empty input or zero total returns 0.
    """
    balances = np.asarray(amounts, dtype=float)
    n = len(balances)
    if n == 0:
        return 0.0
    total = np.sum(balances)
    if total <= 0:
        return 0.0
    sorted_balances = np.sort(balances)
    index = np.arange(1, n + 1)
    return float((2 * np.sum(index * sorted_balances)) / (n * total) - (n + 1) / n)


# =============================================================================
# FIELD COERCION
# =============================================================================

def _get(data: Dict[str, Any], camel: str, snake: Optional[str] = None) -> Any:
    """Read a camelCase key, falling back to its snake_case spelling."""
    if camel in data:
        return data[camel]
    if snake and snake in data:
        return data[snake]
    return None


def _to_float(value: Any, field_path: str, required: bool = False) -> Optional[float]:
    if value is None:
        if required:
            raise InvalidProtocolData(f"{field_path} is required")
        return None
    if isinstance(value, bool):
        raise InvalidProtocolData(f"{field_path} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidProtocolData(f"{field_path} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidProtocolData(f"{field_path} must be finite, got {value!r}")
    return number


def _to_str(value: Any, field_path: str, default: Optional[str] = None) -> str:
    if value is None:
        if default is None:
            raise InvalidProtocolData(f"{field_path} is required")
        return default
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise InvalidProtocolData(f"{field_path} must be a string, got {value!r}")
    return str(value)


def _require_mapping(value: Any, field_path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidProtocolData(f"{field_path} must be an object")
    return value


def _require_list(value: Any, field_path: str) -> list:
    if not isinstance(value, list):
        raise InvalidProtocolData(f"{field_path} must be a list")
    return value


# =============================================================================
# SECTION PARSERS
# =============================================================================

def parse_tokenomics(data: Dict[str, Any]) -> TokenomicsData:
    data = _require_mapping(data, "tokenomics")

    vesting = []
    raw_vesting = _get(data, "vestingSchedule", "vesting_schedule")
    if raw_vesting is not None:
        for i, event in enumerate(_require_list(raw_vesting, "tokenomics.vestingSchedule")):
            path = f"tokenomics.vestingSchedule[{i}]"
            event = _require_mapping(event, path)
            vesting.append(VestingEvent(
                timestamp=_to_float(event.get("timestamp"), f"{path}.timestamp", required=True),
                amount=_to_float(event.get("amount"), f"{path}.amount", required=True),
                recipient=_to_str(event.get("recipient"), f"{path}.recipient", default=""),
            ))

    balances = None
    raw_balances = _get(data, "holderBalances", "holder_balances")
    if raw_balances is not None:
        balances = [
            _to_float(b, f"tokenomics.holderBalances[{i}]", required=True)
            for i, b in enumerate(_require_list(raw_balances, "tokenomics.holderBalances"))
        ]
        if any(b < 0 for b in balances):
            raise InvalidProtocolData("tokenomics.holderBalances must not contain negative balances")

    concentration = _to_float(_get(data, "concentration"), "tokenomics.concentration")
    if concentration is None and balances:
        concentration = gini(balances)
        logger.info("concentration_derived", holders=len(balances), gini=round(concentration, 4))

    return TokenomicsData(
        total_supply=_to_float(_get(data, "totalSupply", "total_supply"), "tokenomics.totalSupply"),
        circulating_supply=_to_float(
            _get(data, "circulatingSupply", "circulating_supply"), "tokenomics.circulatingSupply"
        ),
        emission_rate=_to_float(_get(data, "emissionRate", "emission_rate"), "tokenomics.emissionRate"),
        concentration=concentration,
        vesting_schedule=vesting,
        holder_balances=balances,
    )


def parse_governance(data: Dict[str, Any]) -> GovernanceData:
    data = _require_mapping(data, "governance")
    return GovernanceData(
        quorum=_to_float(_get(data, "quorum"), "governance.quorum", required=True),
        voting_period=_to_float(
            _get(data, "votingPeriod", "voting_period"), "governance.votingPeriod", required=True
        ),
        timelock_delay=_to_float(
            _get(data, "timelockDelay", "timelock_delay"), "governance.timelockDelay", required=True
        ),
        proposal_threshold=_to_float(
            _get(data, "proposalThreshold", "proposal_threshold"), "governance.proposalThreshold", required=True
        ),
        top_holder_voting_power=_to_float(
            _get(data, "topHolderVotingPower", "top_holder_voting_power"),
            "governance.topHolderVotingPower",
            required=True,
        ),
    )


def parse_pools(data: List[Any]) -> List[PoolData]:
    pools = []
    for i, pool in enumerate(_require_list(data, "pools")):
        path = f"pools[{i}]"
        pool = _require_mapping(pool, path)
        pools.append(PoolData(
            address=_to_str(pool.get("address"), f"{path}.address", default=""),
            token0=_to_str(pool.get("token0"), f"{path}.token0"),
            token1=_to_str(pool.get("token1"), f"{path}.token1"),
            liquidity=_to_float(pool.get("liquidity"), f"{path}.liquidity", required=True),
            volume24h=_to_float(_get(pool, "volume24h", "volume_24h"), f"{path}.volume24h", required=True),
            fees=_to_float(pool.get("fees"), f"{path}.fees", required=True),
        ))
    return pools


# =============================================================================
# ENTRY POINTS
# =============================================================================

def load_protocol_input(data: Dict[str, Any]) -> ProtocolInput:
    """
    Build a ProtocolInput from a JSON-style document.

    Args:
        data: Dict with required address and name, optional tvl,
              tokenomics, governance and pools (camelCase keys; snake_case
              spellings are accepted too)

    Returns:
        ProtocolInput

    Raises:
        MissingRequiredField: address or name missing/blank
        InvalidProtocolData: a field has the wrong shape
    """
    if not isinstance(data, dict):
        raise InvalidProtocolData("Protocol document must be a JSON object")

    for field_name in ("address", "name"):
        value = data.get(field_name)
        if not isinstance(value, str) or not value.strip():
            raise MissingRequiredField(field_name)

    tokenomics = data.get("tokenomics")
    governance = data.get("governance")
    pools = data.get("pools")

    return ProtocolInput(
        address=data["address"],
        name=data["name"],
        tvl=_to_float(data.get("tvl"), "tvl"),
        tokenomics=parse_tokenomics(tokenomics) if tokenomics is not None else None,
        governance=parse_governance(governance) if governance is not None else None,
        pools=parse_pools(pools) if pools is not None else None,
    )


def load_protocol_file(file_path: str) -> ProtocolInput:
    """Load and parse a protocol JSON file."""
    with open(file_path, "r") as f:
        data = json.load(f)
    logger.debug("protocol_file_loaded", path=str(file_path))
    return load_protocol_input(data)


def validate_protocol_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a protocol document without raising.

    Returns:
        Dict with:
        - is_valid: bool
        - errors: List of error messages
        - warnings: List of warning messages (sections that will degrade to
          placeholder findings)
        - completeness: Dict showing which optional sections are present
    """
    errors = []
    warnings = []

    try:
        protocol = load_protocol_input(data)
    except (MissingRequiredField, InvalidProtocolData) as e:
        return {
            "is_valid": False,
            "errors": [str(e)],
            "warnings": [],
            "completeness": {},
        }

    completeness = {
        "tvl": protocol.tvl is not None,
        "tokenomics": protocol.tokenomics is not None,
        "governance": protocol.governance is not None,
        "pools": bool(protocol.pools),
    }

    if not completeness["governance"]:
        warnings.append("No governance section: governance risk will be a placeholder")
    if not completeness["pools"]:
        warnings.append("No pools: liquidity and MEV risk will be placeholders")
    if not completeness["tvl"]:
        warnings.append("No TVL: TVL-relative liquidity checks are skipped")
    if protocol.tokenomics is not None and protocol.tokenomics.concentration is None:
        warnings.append("No concentration or holder balances: supply concentration is not checked")

    return {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "completeness": completeness,
    }
