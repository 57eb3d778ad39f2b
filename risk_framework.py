#!/usr/bin/env python3
"""
Risk Framework - Unified Runner
Scores a protocol description (JSON file or the bundled demo) and prints or
writes the report.

    python risk_framework.py --demo
    python risk_framework.py --config protocol.json --format markdown -o report.md
    python risk_framework.py --example-config > protocol.json
"""

import json
import argparse
import sys
from typing import List, Optional

from risk_logging import configure_structlog, get_logger
from risk_settings import __version__
from risk_types import MissingRequiredField, InvalidProtocolData
from data_adapter import load_protocol_file
from protocol_score import score_protocol, DEMO_PROTOCOL
from report_renderer import report_to_json, render_text_report, render_markdown

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Protocol Risk Framework - Unified Runner")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--config", "-c", type=str, help="Path to protocol JSON file")
    source.add_argument("--demo", action="store_true", help="Score the bundled demo protocol")
    source.add_argument("--example-config", action="store_true", help="Print example protocol JSON and exit")
    parser.add_argument("--output", "-o", type=str, help="Path to output file")
    parser.add_argument(
        "--format", "-f",
        choices=["json", "text", "markdown"],
        default="json",
        help="Report format (default: json)",
    )
    parser.add_argument("--parallel", action="store_true", help="Run analyzers in a thread pool")
    parser.add_argument("--log-level", type=str, help="Override RISK_LOG_LEVEL")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        configure_structlog(level=args.log_level)

    if args.example_config:
        print(json.dumps(DEMO_PROTOCOL.to_dict(), indent=2))
        return EXIT_OK

    if args.demo:
        protocol = DEMO_PROTOCOL
    elif args.config:
        try:
            protocol = load_protocol_file(args.config)
        except (MissingRequiredField, InvalidProtocolData) as e:
            logger.error("invalid_protocol", path=args.config, error=str(e))
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_INVALID_INPUT
        except (OSError, json.JSONDecodeError) as e:
            logger.error("config_load_failed", path=args.config, error=str(e))
            print(f"Error: could not read {args.config}: {e}", file=sys.stderr)
            return EXIT_ERROR
    else:
        parser.print_help()
        return EXIT_OK

    try:
        report = score_protocol(protocol, parallel=args.parallel or None)
    except MissingRequiredField as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    if args.format == "markdown":
        output = render_markdown(report)
    elif args.format == "text":
        # No ANSI colors when writing to a file or pipe
        output = render_text_report(report, color=not args.output and sys.stdout.isatty())
    else:
        output = report_to_json(report)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        print(f"Results written to: {args.output}", file=sys.stderr)
    else:
        print(output)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
