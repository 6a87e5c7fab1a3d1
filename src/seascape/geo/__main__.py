#!/usr/bin/env python3
"""seascape.geo

Geospatial processing CLI for seascape.

This is one of several seascape subsystem CLIs:
- seascape.extract → site covariate table
- seascape.geo     → cropping and basemap data (this file)
- seascape.plot    → heatmaps and composite figures

seascape.geo handles the map-side preparation:
- Cropping a layer to the configured bounds and exporting its cells
- Fetching the Natural Earth land polygons used as basemap

Examples:
  # Export the cropped surface temperature cells as x, y, sst_mean
  python -m seascape.geo crop --var sst_mean --out outputs/sst_cropped.csv

  # Download the basemap ZIP into the cache
  python -m seascape.geo fetch-basemap
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from seascape.config import DEFAULT_PIPELINE_YAML, PipelineConfig, format_bbox, load_pipeline_config
from seascape.errors import SeascapeError


# -----------------------------------------------------------------------------
# CLI structure
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for seascape.geo."""
    ap = argparse.ArgumentParser(
        prog="seascape.geo",
        description="Geospatial processing for seascape (crop, basemap)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # --- Global args ---
    ap.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_PIPELINE_YAML,
        help=f"Path to pipeline YAML (default: {DEFAULT_PIPELINE_YAML})",
    )
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print planned actions without writing files",
    )
    ap.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite existing output files",
    )

    # --- Subcommands ---
    sub = ap.add_subparsers(dest="command", required=True)

    crop = sub.add_parser(
        "crop",
        help="Crop one layer to the bounds and export its cells",
        description="""
Crop a configured layer to the config bounds and write one row per
retained (non-missing) cell: x, y, <variable>.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    crop.add_argument("--var", required=True, help="Variable name from the config")
    crop.add_argument("--out", required=True, type=Path, help="Output CSV path")

    sub.add_parser("fetch-basemap", help="Download Natural Earth land polygons into the cache")

    return ap


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def _handle_crop(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    var = cfg.variable(args.var)

    if args.out.exists() and not args.overwrite:
        print(f"[SKIP] {args.out} exists (use --overwrite)")
        return 0

    if args.dry_run:
        print("[dry-run] Would crop layer:")
        print(f"  Raster: {var.path}")
        print(f"  Bounds: {format_bbox(cfg.bounds.as_tuple())}")
        print(f"  Output: {args.out}")
        return 0

    # Lazy import: avoids loading rasterio until needed
    from seascape.extract.rasters import load_raster
    from seascape.geo.crop import crop_layer, write_grid_csv

    grid = crop_layer(load_raster(var.path, var.name), cfg.bounds)
    write_grid_csv(grid, args.out)
    print(f"[CROP] Wrote {len(grid)} cells -> {args.out}")
    return 0


def _handle_fetch_basemap(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    from seascape.geo.basemap import fetch_basemap

    fetch_basemap(cfg.basemap, overwrite=args.overwrite, dry_run=args.dry_run)
    return 0


# -----------------------------------------------------------------------------
# Main entrypoint
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for seascape.geo CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)

    handlers = {
        "crop": _handle_crop,
        "fetch-basemap": _handle_fetch_basemap,
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
