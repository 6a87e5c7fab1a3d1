#!/usr/bin/env python3
"""seascape.pipeline

The whole run as explicit stages over a PipelineContext.

Branch 1: rasters -> extract at sites -> covariate table
Branch 2: rasters -> crop -> heatmaps -> composites

Each stage reads what earlier stages put on the context and adds its own
outputs. Nothing flows backwards and nothing lives at module level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from seascape.config import PipelineConfig, format_bbox
from seascape.extract.extract_points import ExtractedRecord, extract_sites
from seascape.extract.rasters import RasterLayer, load_rasters
from seascape.geo.basemap import BasemapPolygons, load_basemap
from seascape.geo.crop import CroppedGrid, crop_layers
from seascape.plot.composite import render_composites
from seascape.plot.heatmap import HeatmapPlot, make_heatmap_plot, render_heatmaps


@dataclass
class PipelineContext:
    cfg: PipelineConfig
    layers: Dict[str, RasterLayer] = field(default_factory=dict)
    records: List[ExtractedRecord] = field(default_factory=list)
    grids: Dict[str, CroppedGrid] = field(default_factory=dict)
    basemap: Optional[BasemapPolygons] = None
    plots: Dict[str, HeatmapPlot] = field(default_factory=dict)


def load_layers(ctx: PipelineContext, names: Optional[Iterable[str]] = None) -> None:
    wanted = list(names) if names is not None else [v.name for v in ctx.cfg.variables]
    todo = [ctx.cfg.variable(n) for n in wanted if n not in ctx.layers]
    if todo:
        ctx.layers.update(load_rasters(todo, require_aligned=ctx.cfg.require_aligned_grids))


def extract_stage(ctx: PipelineContext) -> None:
    load_layers(ctx)
    ctx.records = extract_sites(ctx.cfg, layers=ctx.layers)


def crop_stage(ctx: PipelineContext, names: Optional[Iterable[str]] = None) -> None:
    wanted = list(names) if names is not None else [v.name for v in ctx.cfg.variables]
    load_layers(ctx, wanted)
    todo = {n: ctx.layers[n] for n in wanted if n not in ctx.grids}
    ctx.grids.update(crop_layers(todo, ctx.cfg.bounds))


def basemap_stage(ctx: PipelineContext, *, overwrite: bool = False) -> BasemapPolygons:
    if ctx.basemap is None:
        ctx.basemap = load_basemap(ctx.cfg.basemap, ctx.cfg.bounds, overwrite=overwrite)
    return ctx.basemap


def plot_stage(ctx: PipelineContext, names: Optional[Iterable[str]] = None) -> None:
    """Build plot objects (no files written) for the given variables."""
    wanted = list(names) if names is not None else [v.name for v in ctx.cfg.variables]
    crop_stage(ctx, wanted)
    basemap = basemap_stage(ctx)
    for name in wanted:
        if name in ctx.plots:
            continue
        var = ctx.cfg.variable(name)
        ctx.plots[name] = make_heatmap_plot(var, ctx.grids[name], basemap, ctx.cfg.scale_for(var))


def composite_names(cfg: PipelineConfig, composites: Optional[Iterable[str]] = None) -> List[str]:
    """Variables needed by the selected composites, declaration order."""
    chosen = set(composites) if composites is not None else None
    needed = set()
    for spec in cfg.composites:
        if chosen is None or spec.name in chosen:
            for row in spec.rows:
                needed.update(row)
    return [v.name for v in cfg.variables if v.name in needed]


def run_pipeline(
    cfg: PipelineConfig,
    *,
    skip_plots: bool = False,
    overwrite: bool = True,
    dry_run: bool = False,
    ctx: Optional[PipelineContext] = None,
) -> PipelineContext:
    """Run extraction, then (unless skipped) heatmaps and composites."""
    ctx = ctx or PipelineContext(cfg=cfg)
    print(f"[RUN] {len(cfg.variables)} variables, bounds {format_bbox(cfg.bounds.as_tuple(), precision=2)}")

    if dry_run:
        extract_sites(cfg, dry_run=True)
        if not skip_plots:
            render_heatmaps({}, cfg.variables, cfg.output.figure_dir, cfg.heatmap_size,
                            overwrite=overwrite, dry_run=True)
            render_composites({}, cfg.composites, cfg.output.figure_dir,
                              overwrite=overwrite, dry_run=True)
        return ctx

    extract_stage(ctx)
    if skip_plots:
        return ctx

    plot_stage(ctx)
    render_heatmaps(ctx.plots, cfg.variables, cfg.output.figure_dir, cfg.heatmap_size, overwrite=overwrite)
    render_composites(ctx.plots, cfg.composites, cfg.output.figure_dir, overwrite=overwrite)
    print("[RUN] Done")
    return ctx
