#!/usr/bin/env python3
"""seascape

Whole-pipeline entrypoint: covariate table, heatmaps, composites.

Subsystem CLIs (run pieces on their own):
  python -m seascape.extract  # Site covariate table
  python -m seascape.geo      # Cropping, basemap data
  python -m seascape.plot     # Heatmaps, composites

Examples:
  python -m seascape run
  python -m seascape run --config config/pipeline.yaml --skip-plots
  python -m seascape run --dry-run
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from seascape.config import DEFAULT_PIPELINE_YAML, load_pipeline_config
from seascape.errors import SeascapeError


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="seascape",
        description="Environmental covariates and heatmaps for seascape genetics",
    )
    ap.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_PIPELINE_YAML,
        help=f"Path to pipeline YAML (default: {DEFAULT_PIPELINE_YAML})",
    )
    ap.add_argument("--dry-run", action="store_true", help="Print planned actions without writing files")

    sub = ap.add_subparsers(dest="command", required=True)
    run = sub.add_parser("run", help="Run the whole pipeline")
    run.add_argument("--skip-plots", action="store_true", help="Only write the covariate table")
    run.add_argument(
        "--no-overwrite",
        dest="overwrite",
        action="store_false",
        help="Skip figures that already exist (the table is always rewritten)",
    )
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.command != "run":
        raise SystemExit(f"Unknown command: {args.command}")

    from seascape.pipeline import run_pipeline

    try:
        cfg = load_pipeline_config(args.config)
        run_pipeline(cfg, skip_plots=args.skip_plots, overwrite=args.overwrite, dry_run=args.dry_run)
    except SeascapeError as e:
        raise SystemExit(f"[run] failed: {e}") from e
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
