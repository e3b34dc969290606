#!/usr/bin/env python3
"""
Compress a point cloud file with the Gaussian-summary compression filter.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from gauss_compress import constants
from gauss_compress.config import load_config
from gauss_compress.io import load_point_set, save_point_set
from gauss_compress.operators.compression import compress_point_set

logger = logging.getLogger("gauss_compress")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Gaussian-summary point cloud compression")
    ap.add_argument("input", help="Input cloud (.npz, .xyz, .txt, .csv)")
    ap.add_argument("output", help="Output cloud (.npz keeps the summary attributes)")
    ap.add_argument("--config", help="YAML parameter file")
    ap.add_argument("--knn", type=int, help="Neighbors per query (incl. self)")
    ap.add_argument("--max-dist", help="Search radius cutoff ('inf' = unbounded)")
    ap.add_argument("--epsilon", type=float, help="Approximate search tolerance")
    ap.add_argument("--initial-variance", type=float, help="Prior variance for fresh points")
    ap.add_argument("--max-deviation", type=float, help="Merge acceptance threshold")
    ap.add_argument(
        "--metric",
        choices=constants.ACCEPTANCE_METRICS,
        help="Acceptance metric tensor",
    )
    ap.add_argument("--max-passes", type=int, help="Cap on merge passes")
    ap.add_argument("--workers", type=int, help="Neighbor query threads (-1 = all cores)")
    ap.add_argument("--report", help="Output JSON report path")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "knn": args.knn,
        "maxDist": args.max_dist,
        "epsilon": args.epsilon,
        "initialVariance": args.initial_variance,
        "maxDeviation": args.max_deviation,
        "acceptance_metric": args.metric,
        "max_passes": args.max_passes,
        "workers": args.workers,
    }
    try:
        config = load_config(args.config, overrides)
        point_set = load_point_set(args.input)
        result, report = compress_point_set(point_set, config)
        save_point_set(result.point_set, args.output)
    except (ValueError, OSError) as exc:
        logger.error("compression failed: %s", exc)
        return 1

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(json.dumps(report.to_dict(), indent=2, sort_keys=True))

    print(f"{args.input}: {result.n_input} -> {result.n_output} points")
    return 0


if __name__ == "__main__":
    sys.exit(main())
