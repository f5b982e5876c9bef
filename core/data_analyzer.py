"""
Summaries of a loaded hierarchy and intensity statistics of rasters.
"""

import logging

import numpy as np

from core.hierarchy import NodeKind
from core.image_processor import intensity


class DataAnalyzer:
    """Describes loaded acquisitions for metadata displays and reports."""

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger('stack_composer')

    def summarize_tree(self, tree):
        """Per-series dimensions: width, height, depth, channel and time counts."""
        summary = []
        for series in tree.series:
            width = height = 0
            depth_count = time_count = 0
            for channel in series.channels:
                width = max(width, channel.base_raster.width)
                height = max(height, channel.base_raster.height)
                depth_count = max(depth_count, channel.depth_count)
                time_count = max(time_count, channel.time_count)

            summary.append({
                'series': series.series_id,
                'width': width,
                'height': height,
                'depth': depth_count,
                'channels': len(series.channels),
                'time': time_count,
            })

        self.logger.debug(f"Summarized {len(summary)} series")
        return summary

    def format_summary(self, summary, name=None):
        """Render a tree summary as text, one block per series."""
        lines = []
        if name:
            lines.append(f"File: {name}")
        lines.append(f"Series count: {len(summary)}")
        lines.append("")

        for entry in summary:
            lines.append(f"Series {entry['series']}:")
            lines.append(
                f"  Dimensions: {entry['width']} x {entry['height']} x "
                f"{entry['depth']} (Z), {entry['channels']} (C), {entry['time']} (T)"
            )
        return "\n".join(lines)

    def count_nodes(self, tree):
        """Number of series, channel, real slice and synthetic slice nodes."""
        counts = {'series': 0, 'channels': 0, 'slices': 0, 'projections': 0}
        for node in tree.walk():
            if node.kind is NodeKind.SERIES:
                counts['series'] += 1
            elif node.kind is NodeKind.CHANNEL:
                counts['channels'] += 1
            elif node.kind is NodeKind.SLICE:
                counts['projections' if node.synthetic else 'slices'] += 1
            else:
                raise TypeError(f"Unknown node kind: {node.kind}")
        return counts

    def intensity_statistics(self, raster):
        """Mean, std, min and max of the raster's grey level max(R, G, B)."""
        grey = intensity(raster)
        return {
            'mean': float(np.mean(grey)),
            'std': float(np.std(grey)),
            'min': int(np.min(grey)),
            'max': int(np.max(grey)),
            'count': int(grey.size),
        }
