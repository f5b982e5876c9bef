"""
Series -> channel -> slice tree built from a flat list of decoded planes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from core.errors import InvalidParameter
from core.image_processor import ImageProcessor
from core.raster import Raster


class NodeKind(Enum):
    SERIES = 'series'
    CHANNEL = 'channel'
    SLICE = 'slice'


@dataclass(frozen=True)
class PlaneRecord:
    """One decoded 2D plane with its position in the acquisition.

    Fields follow the decoder tuple (series, channel, depth, time, raster).
    """

    series_id: int
    channel_id: int
    depth_index: int
    time_index: int
    raster: Raster

    def __post_init__(self):
        for name in ('series_id', 'channel_id', 'depth_index', 'time_index'):
            if getattr(self, name) < 0:
                raise InvalidParameter(f"{name} must be >= 0, got {getattr(self, name)}")

    def label(self, with_time=False):
        """Display label such as 'S0-C1-Z5' or 'S0-C1-Z5-T2'."""
        text = f"S{self.series_id}-C{self.channel_id}-Z{self.depth_index}"
        if with_time:
            text += f"-T{self.time_index}"
        return text


@dataclass(frozen=True)
class SliceNode:
    """A single raster at one depth (and time) position of a channel.

    Synthetic slices hold a derived projection. They have no depth or time
    position and are never used as projection or blend sources.
    """

    raster: Raster
    depth_index: Optional[int]
    time_index: Optional[int]
    synthetic: bool = False
    kind: NodeKind = field(default=NodeKind.SLICE, init=False)

    @classmethod
    def projection(cls, raster):
        return cls(raster, None, None, synthetic=True)

    @property
    def label(self):
        if self.synthetic:
            return "MIP"
        if self.time_index:
            return f"Z{self.depth_index}-T{self.time_index}"
        return f"Z{self.depth_index}"


@dataclass(frozen=True)
class ChannelNode:
    """One detector stream of a series with its ordered slices."""

    series_id: int
    channel_id: int
    slices: Tuple[SliceNode, ...]
    base_raster: Raster
    kind: NodeKind = field(default=NodeKind.CHANNEL, init=False)

    @property
    def label(self):
        return f"Channel {self.channel_id}"

    @property
    def source_slices(self):
        """Slices that came from the decoder, excluding synthetic projections."""
        return tuple(s for s in self.slices if not s.synthetic)

    def source_rasters(self):
        return [s.raster for s in self.source_slices]

    @property
    def depth_count(self):
        return len({s.depth_index for s in self.source_slices})

    @property
    def time_count(self):
        return len({s.time_index for s in self.source_slices})


@dataclass(frozen=True)
class SeriesNode:
    """One independent acquisition and its channels in first-seen order."""

    series_id: int
    channels: Tuple[ChannelNode, ...]
    kind: NodeKind = field(default=NodeKind.SERIES, init=False)

    @property
    def label(self):
        return f"Series {self.series_id}"

    def find_channel(self, channel_id):
        for channel in self.channels:
            if channel.channel_id == channel_id:
                return channel
        return None


@dataclass(frozen=True)
class HierarchyTree:
    """Immutable result of one load. Replace it wholesale on the next load."""

    series: Tuple[SeriesNode, ...] = ()

    def __len__(self):
        return len(self.series)

    @property
    def is_empty(self):
        return not self.series

    def find_series(self, series_id):
        for series in self.series:
            if series.series_id == series_id:
                return series
        return None

    def find_channel(self, series_id, channel_id):
        series = self.find_series(series_id)
        if series is None:
            return None
        return series.find_channel(channel_id)

    def first_channel(self):
        """Channel selected by default after a load, or None for an empty tree."""
        for series in self.series:
            if series.channels:
                return series.channels[0]
        return None

    def channel_bases(self, series_id):
        """Ordered {channel label: base raster} for one series, the blend sources."""
        series = self.find_series(series_id)
        if series is None:
            return {}
        return {channel.label: channel.base_raster for channel in series.channels}

    def walk(self):
        """Yield every node depth-first: series, then its channels, then slices."""
        for series in self.series:
            yield series
            for channel in series.channels:
                yield channel
                yield from channel.slices


def node_children(node):
    """Children of any tree node, dispatching on its kind."""
    if node.kind is NodeKind.SERIES:
        return node.channels
    if node.kind is NodeKind.CHANNEL:
        return node.slices
    if node.kind is NodeKind.SLICE:
        return ()
    raise TypeError(f"Unknown node kind: {node.kind}")


class HierarchyBuilder:
    """Groups plane records into a series -> channel -> slice tree."""

    def __init__(self, synthesize_projection_slices=False, logger=None):
        self.synthesize_projection_slices = synthesize_projection_slices
        self.logger = logger or logging.getLogger('stack_composer')
        self.processor = ImageProcessor(self.logger)

    @classmethod
    def from_config(cls, config, logger=None):
        hierarchy = config.get('hierarchy', {})
        return cls(hierarchy.get('synthesize_projection_slices', False), logger)

    def build(self, planes):
        """Build a new tree from planes in decoder order.

        Series and channels keep first-seen order; slices keep arrival order.
        """
        grouped = {}
        for plane in planes:
            channels = grouped.setdefault(plane.series_id, {})
            slices = channels.setdefault(plane.channel_id, [])
            slices.append(SliceNode(plane.raster, plane.depth_index, plane.time_index))

        series_nodes = []
        for series_id, channels in grouped.items():
            channel_nodes = tuple(
                self._build_channel(series_id, channel_id, slices)
                for channel_id, slices in channels.items()
            )
            series_nodes.append(SeriesNode(series_id, channel_nodes))

        tree = HierarchyTree(tuple(series_nodes))
        self.logger.info(
            f"Built hierarchy with {len(tree)} series and "
            f"{sum(len(s.channels) for s in tree.series)} channels"
        )
        return tree

    def _build_channel(self, series_id, channel_id, slices):
        if len(slices) == 1:
            base = slices[0].raster
        else:
            base = self.processor.project(s.raster for s in slices)

        if self.synthesize_projection_slices and len(slices) > 1:
            slices = slices + [SliceNode.projection(base)]

        return ChannelNode(series_id, channel_id, tuple(slices), base)


def build_hierarchy(planes, synthesize_projection_slices=False):
    """Convenience wrapper around HierarchyBuilder.build."""
    return HierarchyBuilder(synthesize_projection_slices).build(planes)
