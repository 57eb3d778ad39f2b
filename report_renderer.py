"""
Report renderers.

- report_to_json: camelCase JSON document (the agent-facing wire format)
- render_text_report: console report with ANSI severity colors
- render_markdown: markdown report for sharing / PR comments
"""

import json
from datetime import datetime, timezone

from risk_types import ProtocolRiskReport
from thresholds import SEVERITY_SCALE

SEVERITY_COLORS = {
    "critical": "\x1b[31m",  # red
    "high": "\x1b[33m",      # yellow
    "medium": "\x1b[36m",    # cyan
    "low": "\x1b[32m",       # green
}
RESET = "\x1b[0m"
BOLD = "\x1b[1m"

ATTACK_PREVIEW_CHARS = 100


def report_to_json(report: ProtocolRiskReport, indent: int = 2) -> str:
    return json.dumps(report.to_dict(), indent=indent)


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def render_text_report(report: ProtocolRiskReport, color: bool = True) -> str:
    """Plain-text report. color=False strips ANSI codes (files, pipes)."""
    bold = BOLD if color else ""
    reset = RESET if color else ""

    def tint(severity: str) -> str:
        return SEVERITY_COLORS.get(severity, RESET) if color else ""

    lines = [
        "",
        "=" * 60,
        f"{bold}PROTOCOL RISK REPORT: {report.protocol}{reset}",
        "=" * 60,
        f"Address: {report.address}",
        f"Timestamp: {format_timestamp(report.timestamp)}",
        "",
        f"{bold}Overall Risk Score: {tint(report.overall_severity)}{report.overall_score}/10 "
        f"({report.overall_severity.upper()}){reset}",
        "",
        f"{bold}SUMMARY{reset}",
        report.summary,
        "",
    ]

    if report.recommendations:
        lines.append(f"{bold}TOP RECOMMENDATIONS{reset}")
        for i, rec in enumerate(report.recommendations, 1):
            lines.append(f"  {i}. {rec}")
        lines.append("")

    if report.nash_equilibria:
        lines.append(f"{bold}NASH EQUILIBRIA{reset}")
        lines.extend(f"  - {eq}" for eq in report.nash_equilibria)
        lines.append("")

    if report.dominant_strategies:
        lines.append(f"{bold}DOMINANT STRATEGIES{reset}")
        lines.extend(f"  - {s}" for s in report.dominant_strategies)
        lines.append("")

    lines.append(f"{bold}CATEGORY BREAKDOWN{reset}")
    for category in report.categories.values():
        lines.append("")
        lines.append(
            f"  {bold}{category.name}{reset}: {tint(category.severity)}"
            f"{category.score:.1f}/10 ({category.severity}){reset}"
        )
        for finding in category.findings:
            lines.append(f"    * {finding.title}")
            if finding.attack_vector:
                preview = finding.attack_vector
                if len(preview) > ATTACK_PREVIEW_CHARS:
                    preview = preview[:ATTACK_PREVIEW_CHARS] + "..."
                lines.append(f"      Attack: {preview}")

    lines.append("")
    lines.append("=" * 60)
    lines.append("")
    return "\n".join(lines)


def render_markdown(report: ProtocolRiskReport) -> str:
    severity_label = SEVERITY_SCALE.get(report.overall_severity, {}).get("label", report.overall_severity)

    lines = [
        f"# Protocol Risk Report: {report.protocol}",
        "",
        f"- **Address:** `{report.address}`",
        f"- **Generated:** {format_timestamp(report.timestamp)}",
        f"- **Overall Risk Score:** {report.overall_score}/10 ({severity_label})",
        "",
        "## Summary",
        "",
        report.summary,
        "",
        "## Category Scores",
        "",
        "| Category | Score | Severity | Findings |",
        "|---|---|---|---|",
    ]
    for category in report.categories.values():
        lines.append(
            f"| {category.name} | {category.score:.1f} | {category.severity} | {len(category.findings)} |"
        )
    lines.append("")

    if report.recommendations:
        lines.append("## Recommendations")
        lines.append("")
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(report.recommendations, 1))
        lines.append("")

    if report.nash_equilibria or report.dominant_strategies:
        lines.append("## Game-Theoretic Insights")
        lines.append("")
        for eq in report.nash_equilibria or []:
            lines.append(f"- Nash equilibrium: {eq}")
        for strategy in report.dominant_strategies or []:
            lines.append(f"- Dominant strategy: {strategy}")
        lines.append("")

    lines.append("## Findings")
    for category in report.categories.values():
        if not category.findings:
            continue
        lines.append("")
        lines.append(f"### {category.name}")
        for finding in category.findings:
            lines.append("")
            lines.append(f"**{finding.title}** (confidence {finding.confidence:.2f})")
            lines.append("")
            lines.append(finding.description)
            if finding.attack_vector:
                lines.append("")
                lines.append(f"- Attack vector: {finding.attack_vector}")
            if finding.mitigation:
                if not finding.attack_vector:
                    lines.append("")
                lines.append(f"- Mitigation: {finding.mitigation}")

    lines.append("")
    return "\n".join(lines)
