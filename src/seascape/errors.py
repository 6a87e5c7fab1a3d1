#!/usr/bin/env python3
"""seascape.errors

Error kinds raised by the pipeline stages.

Every error is fatal to a run. The CLIs catch SeascapeError and turn it
into SystemExit with a message naming the step that failed.
"""

from __future__ import annotations


class SeascapeError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(SeascapeError):
    """Invalid pipeline configuration (bad bounds, unknown scale, etc.)."""


class LoadError(SeascapeError):
    """Missing or malformed input file, or missing required column."""


class GeometryError(SeascapeError):
    """Bounding box does not intersect a layer, or retains zero cells."""


class RenderError(SeascapeError):
    """An image could not be composed or written."""


class ExportError(SeascapeError):
    """A table could not be written."""
