"""
Unit tests for report_renderer module.
"""

import pytest
import json
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from protocol_score import score_protocol
from report_renderer import (
    RESET,
    format_timestamp,
    report_to_json,
    render_markdown,
    render_text_report,
)


@pytest.fixture
def demo_report(demo_protocol):
    return score_protocol(demo_protocol)


class TestReportToJson:

    @pytest.mark.unit
    def test_camel_case_keys(self, demo_report):
        data = json.loads(report_to_json(demo_report))
        assert list(data["categories"]) == [
            "economic", "governance", "liquidity", "composability", "mev", "gameTheory",
        ]
        assert "overallScore" in data
        assert "overallSeverity" in data
        assert data["nashEquilibria"] == ["(Stay, Stay)", "(Run, Run)"]
        assert "dominantStrategies" not in data

    @pytest.mark.unit
    def test_finding_optional_fields(self, demo_report):
        data = json.loads(report_to_json(demo_report))
        veto = next(
            f for f in data["categories"]["governance"]["findings"]
            if f["title"] == "High Voting Power Concentration"
        )
        assert "attackVector" in veto
        assert "mitigation" not in veto
        assert "gameTheory" not in veto


class TestTimestamp:

    @pytest.mark.unit
    def test_milliseconds_to_iso(self):
        assert format_timestamp(1_704_067_200_000) == "2024-01-01T00:00:00+00:00"


class TestTextReport:

    @pytest.mark.unit
    def test_sections(self, demo_report):
        text = render_text_report(demo_report, color=False)
        assert "PROTOCOL RISK REPORT: Risky DeFi Protocol" in text
        assert "Overall Risk Score: 5.1/10 (HIGH)" in text
        assert "TOP RECOMMENDATIONS" in text
        assert "NASH EQUILIBRIA" in text
        assert "DOMINANT STRATEGIES" not in text
        assert "    * Short Timelock Delay" in text

    @pytest.mark.unit
    def test_no_ansi_without_color(self, demo_report):
        assert "\x1b[" not in render_text_report(demo_report, color=False)

    @pytest.mark.unit
    def test_ansi_with_color(self, demo_report):
        assert RESET in render_text_report(demo_report, color=True)

    @pytest.mark.unit
    def test_attack_vectors_truncated(self, demo_report):
        text = render_text_report(demo_report, color=False)
        attack_lines = [line for line in text.splitlines() if line.strip().startswith("Attack:")]
        assert attack_lines
        for line in attack_lines:
            preview = line.strip()[len("Attack: "):]
            assert len(preview) <= 103


class TestMarkdown:

    @pytest.mark.unit
    def test_structure(self, demo_report):
        md = render_markdown(demo_report)
        assert md.startswith("# Protocol Risk Report: Risky DeFi Protocol")
        assert "| Governance Risk | 6.3 | high | 3 |" in md
        assert "## Recommendations" in md
        assert "- Nash equilibrium: (Stay, Stay)" in md
        assert "### Game-Theoretic Risk" in md

    @pytest.mark.unit
    def test_empty_report(self, protocol_factory):
        md = render_markdown(score_protocol(protocol_factory()))
        assert "## Game-Theoretic Insights" not in md
        assert "### Game-Theoretic Risk" not in md
        assert "**No Governance Data Available** (confidence 0.30)" in md
