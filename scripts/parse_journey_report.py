from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from usability_server.frame_response import parse_frame_response
from usability_server.step_reconciler import analyze_report


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parse a saved model report into structured journey steps and print them as JSON.",
    )
    parser.add_argument(
        "report",
        type=Path,
        help="Path to a UTF-8 text file holding the raw model response.",
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=None,
        help="Number of frames in the analyzed journey. Omit to parse a single-frame response.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log which extraction strategy resolved each step.",
    )
    return parser


def main() -> int:
    args = _parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.report.exists():
        raise SystemExit(f"Report not found: {args.report}")
    if args.steps is not None and args.steps < 0:
        raise SystemExit("--steps must not be negative")

    report = args.report.read_text(encoding="utf-8")
    if args.steps is None:
        payload = parse_frame_response(report).to_dict()
    else:
        payload = analyze_report(report, args.steps).to_dict()

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
