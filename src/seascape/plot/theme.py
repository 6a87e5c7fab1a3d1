#!/usr/bin/env python3
"""theme.py

Shared look of every heatmap: font sizes, panel border, colour ramps.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import numpy as np
from matplotlib.axes import Axes
from matplotlib.colors import LinearSegmentedColormap, Normalize, to_hex

from seascape.config import ColorScale


# Sizes in points
TITLE_SIZE = 15
AXIS_TITLE_SIZE = 12
AXIS_TEXT_SIZE = 10
LEGEND_TITLE_SIZE = 13
LEGEND_TEXT_SIZE = 12
TAG_SIZE = 14
BORDER_WIDTH = 0.5

LAND_COLOR = "black"
PANEL_COLOR = "#ebebeb"
# Tiles outside fixed limits
NA_COLOR = "#7f7f7f"


def apply_theme(ax: Axes) -> None:
    """Black thin border, black tick labels, no grid."""
    ax.grid(False)
    ax.set_facecolor(PANEL_COLOR)
    for spine in ax.spines.values():
        spine.set_visible(True)
        spine.set_color("black")
        spine.set_linewidth(BORDER_WIDTH)
    ax.tick_params(axis="both", labelsize=AXIS_TEXT_SIZE, labelcolor="black", colors="black")
    ax.xaxis.label.set_size(AXIS_TITLE_SIZE)
    ax.yaxis.label.set_size(AXIS_TITLE_SIZE)
    ax.title.set_size(TITLE_SIZE)


def ramp(scale: ColorScale) -> List[str]:
    """Expand the scale's anchor colours to `steps` evenly spaced colours."""
    base = LinearSegmentedColormap.from_list(f"{scale.category}_anchors", list(scale.colors))
    return [to_hex(base(t)) for t in np.linspace(0.0, 1.0, scale.steps)]


def make_cmap(scale: ColorScale) -> LinearSegmentedColormap:
    """Continuous gradient through the ramp; out-of-limits tiles go grey.

    Cells dropped by the crop stay transparent so the panel shows through.
    """
    cmap = LinearSegmentedColormap.from_list(scale.category, ramp(scale))
    cmap.set_bad((0.0, 0.0, 0.0, 0.0))
    if scale.limits is not None:
        cmap.set_under(NA_COLOR)
        cmap.set_over(NA_COLOR)
    return cmap


def make_norm(scale: ColorScale, values: Iterable[np.ndarray]) -> Normalize:
    """Fixed limits when configured, else the finite range of all values."""
    if scale.limits is not None:
        return Normalize(vmin=scale.limits[0], vmax=scale.limits[1])

    lo: Optional[float] = None
    hi: Optional[float] = None
    for v in values:
        v = np.asarray(v, dtype=float)
        v = v[np.isfinite(v)]
        if v.size == 0:
            continue
        lo = float(v.min()) if lo is None else min(lo, float(v.min()))
        hi = float(v.max()) if hi is None else max(hi, float(v.max()))
    if lo is None or hi is None:
        return Normalize(vmin=0.0, vmax=1.0)
    if lo == hi:
        # flat layer; widen so the colorbar still has a range
        lo, hi = lo - 0.5, hi + 0.5
    return Normalize(vmin=lo, vmax=hi)
