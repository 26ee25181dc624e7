#!/usr/bin/env python3
"""Score a sketch against a reference image from the command line.

Usage:
    python score_sketch.py --submission drawing.png --reference apple.png --difficulty easy
    python score_sketch.py --submission drawing.png --reference apple.png --output-dir out/ --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from config import config
from scoring.engine import score_files
from scoring.errors import DecodeError
from scoring.models import Difficulty
from utils.log_utils import configure_logging

logger = logging.getLogger(__name__)

ARTIFACT_FILENAMES = {
    "heatmap": "heatmap.png",
    "side_by_side": "side_by_side.png",
    "overlay": "overlay.png",
    "normalized_reference": "reference.png",
    "normalized_submission": "submission.png",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score a sketch against a reference image")
    parser.add_argument("--submission", required=True, help="Path to the drawn image")
    parser.add_argument("--reference", required=True, help="Path to the reference image")
    parser.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.MEDIUM.value,
        help="Difficulty tier used to weight the score (default: medium)",
    )
    parser.add_argument("--output-dir", default=None, help="Write diagnostic PNGs here")
    parser.add_argument("--json", action="store_true", help="Print the response as JSON")
    parser.add_argument("--log-level", default=None, help="Logging level (default: from config)")
    return parser


def write_artifacts(artifacts, output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for field, filename in ARTIFACT_FILENAMES.items():
        path = output_dir / filename
        path.write_bytes(getattr(artifacts, field))
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or config.log_level)

    try:
        result = score_files(args.submission, args.reference, args.difficulty)
    except (DecodeError, FileNotFoundError) as e:
        logger.error(f"[score.failed] {type(e).__name__}: {e}")
        return 2

    if args.output_dir:
        for path in write_artifacts(result.artifacts, Path(args.output_dir)):
            logger.info(f"[artifact.written] {path}")

    if args.json:
        print(json.dumps(result.to_response(include_artifacts=False), indent=2))
    else:
        breakdown = result.breakdown
        print(f"Score: {result.score:.2f}% ({result.difficulty.value})")
        print(f"  contour:   {breakdown.contour_score:.2f}%")
        print(f"  keypoints: {breakdown.keypoint_score:.2f}%")
        print(f"  local:     {breakdown.local_similarity_score:.2f}%")
        print(
            f"  penalties: ink x{result.penalties.ink_density:.2f}, "
            f"spatial x{result.penalties.spatial_extra:.2f}"
        )
        if result.reference_substituted:
            print("  (reference not found: scored against itself)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
