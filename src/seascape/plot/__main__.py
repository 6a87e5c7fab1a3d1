#!/usr/bin/env python3
"""seascape.plot

Plotting CLI for seascape: one heatmap per variable, plus composites.

Examples:
  # All heatmaps from the config
  python -m seascape.plot heatmaps

  # Only the temperatures
  python -m seascape.plot heatmaps --vars sst_mean sbt_mean

  # Composite figures (rebuilds the plots they need)
  python -m seascape.plot composites --names 9.temp_sal_heatmap.png
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from seascape.config import DEFAULT_PIPELINE_YAML, PipelineConfig, load_pipeline_config
from seascape.errors import SeascapeError


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for seascape.plot."""
    ap = argparse.ArgumentParser(
        prog="seascape.plot",
        description="Heatmaps and composite figures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_PIPELINE_YAML,
        help=f"Path to pipeline YAML (default: {DEFAULT_PIPELINE_YAML})",
    )
    ap.add_argument("--dry-run", action="store_true", help="Print planned actions without writing files")
    ap.add_argument(
        "--no-overwrite",
        dest="overwrite",
        action="store_false",
        help="Skip figures that already exist (default: overwrite)",
    )

    sub = ap.add_subparsers(dest="command", required=True)

    hm = sub.add_parser("heatmaps", help="One heatmap image per variable")
    hm.add_argument("--vars", nargs="+", default=None, help="Variables to plot (default: all)")

    comp = sub.add_parser("composites", help="Combined figures from the config")
    comp.add_argument("--names", nargs="+", default=None, help="Composite names to render (default: all)")

    return ap


def _handle_heatmaps(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    from seascape.pipeline import PipelineContext, plot_stage
    from seascape.plot.heatmap import render_heatmaps

    names = args.vars or [v.name for v in cfg.variables]
    variables = [cfg.variable(n) for n in names]

    ctx = PipelineContext(cfg=cfg)
    if not args.dry_run:
        plot_stage(ctx, names)
    render_heatmaps(
        ctx.plots,
        variables,
        cfg.output.figure_dir,
        cfg.heatmap_size,
        overwrite=args.overwrite,
        dry_run=args.dry_run,
    )
    return 0


def _handle_composites(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    from seascape.pipeline import PipelineContext, composite_names, plot_stage
    from seascape.plot.composite import render_composites

    known = {c.name for c in cfg.composites}
    if args.names:
        unknown = [n for n in args.names if n not in known]
        if unknown:
            raise SystemExit(f"Unknown composite(s) {unknown}. Known: {sorted(known)}")
    specs = [c for c in cfg.composites if args.names is None or c.name in args.names]
    if not specs:
        print("No composites configured")
        return 0

    ctx = PipelineContext(cfg=cfg)
    if not args.dry_run:
        plot_stage(ctx, composite_names(cfg, [c.name for c in specs]))
    render_composites(
        ctx.plots,
        specs,
        cfg.output.figure_dir,
        overwrite=args.overwrite,
        dry_run=args.dry_run,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for seascape.plot CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)

    handlers = {
        "heatmaps": _handle_heatmaps,
        "composites": _handle_composites,
    }
    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(f"Unknown command: {args.command}")

    try:
        cfg = load_pipeline_config(args.config)
        return handler(args, cfg)
    except SeascapeError as e:
        raise SystemExit(f"[{args.command}] failed: {e}") from e


if __name__ == "__main__":
    raise SystemExit(main())
