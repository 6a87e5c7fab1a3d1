#!/usr/bin/env python3
"""seascape.extract

Covariate extraction CLI for seascape.

This is one of several seascape subsystem CLIs:
- seascape.extract → site covariate table (this file)
- seascape.geo     → cropping and basemap data
- seascape.plot    → heatmaps and composite figures
- seascape         → the whole pipeline (`python -m seascape run`)

Examples:
  # Extract all configured variables at the sites, write the table
  python -m seascape.extract sites

  # Same, different output
  python -m seascape.extract sites --out outputs/env_sites.csv

  # Check that every configured input exists
  python -m seascape.extract verify --json
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from seascape.config import DEFAULT_PIPELINE_YAML, PipelineConfig, load_pipeline_config
from seascape.errors import SeascapeError


# -----------------------------------------------------------------------------
# CLI structure
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for seascape.extract."""
    ap = argparse.ArgumentParser(
        prog="seascape.extract",
        description="Extract environmental covariates at sampling sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Subsystem CLIs:
  python -m seascape.extract  # Site covariate table (this)
  python -m seascape.geo      # Cropping, basemap data
  python -m seascape.plot     # Heatmaps, composites
  python -m seascape run      # Everything
        """,
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

    # --- Subcommands ---
    sub = ap.add_subparsers(dest="command", required=True)

    sites = sub.add_parser(
        "sites",
        help="Extract every variable at every site and write the table",
        description="""
Sample each configured raster at each site (nearest cell) and write one
row per site. Sites outside a layer get NA for that layer; no site is
dropped. The table is overwritten on every run.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sites.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output CSV (default: output.table from the config)",
    )

    ver = sub.add_parser("verify", help="Verify that configured inputs exist")
    ver.add_argument("--json", action="store_true", help="Emit JSON to stdout")

    return ap


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def _verify_inputs(cfg: PipelineConfig) -> List[Dict[str, Any]]:
    """One result per input file: rasters, the site table, the basemap cache."""
    from seascape.geo.basemap import basemap_cache_path

    checks = [(v.name, v.path) for v in cfg.variables]
    checks.append(("sites", cfg.sites.path))
    results: List[Dict[str, Any]] = []
    for source, path in checks:
        r: Dict[str, Any] = {"source": source, "path": str(path), "ok": path.exists()}
        if not r["ok"]:
            r["reason"] = "file not found"
        results.append(r)

    # Basemap is fetched on demand, so a missing cache is not a failure
    bm = basemap_cache_path(cfg.basemap)
    results.append({"source": "basemap", "path": str(bm), "ok": True, "cached": bm.exists()})
    return results


def _handle_sites(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    from seascape.extract.extract_points import extract_sites

    extract_sites(cfg, out_path=args.out, dry_run=args.dry_run)
    return 0


def _handle_verify(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    results = _verify_inputs(cfg)
    ok = all(r["ok"] for r in results)
    if args.json:
        print(json.dumps({"ok": ok, "results": results}, indent=2))
    else:
        for r in results:
            status = "OK" if r["ok"] else "MISSING"
            print(f"[{status}] {r['source']}: {r['path']}")
            if "reason" in r:
                print(f"  - reason: {r['reason']}")
            if r.get("cached") is False:
                print("  - not cached yet (fetched on first plot run)")
        print(f"Overall: {'OK' if ok else 'NOT OK'}")
    return 0 if ok else 2


# -----------------------------------------------------------------------------
# Main entrypoint
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for seascape.extract CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)

    handlers = {
        "sites": _handle_sites,
        "verify": _handle_verify,
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
