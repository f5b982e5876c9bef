#!/usr/bin/env python3
"""
Command line entry point for Stack Composer.

Loads an image file or folder, builds its series/channel/slice hierarchy and
prints a summary of what was found.
"""

import sys
import argparse
from pathlib import Path

from core.errors import StackComposerError
from core.data_analyzer import DataAnalyzer
from core.hierarchy import HierarchyBuilder
from core.image_loader import ImageLoader
from utils.logger import LogCapture, setup_logger
from utils.config import load_config, reset_to_defaults


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Stack Composer')

    parser.add_argument('path', type=str, help='Image file (TIFF, HDF5, PNG, ...) or folder of images')
    parser.add_argument('--mip', action='store_true', help='Add a projection slice to every multi-slice channel')
    parser.add_argument('--stats', action='store_true', help='Print intensity statistics of each channel')
    parser.add_argument('--debug', '-d', action='store_true', help='Enable debug mode')
    parser.add_argument('--config', '-c', type=str, help='Path to configuration file')
    parser.add_argument('--log-dir', type=str, help='Directory for log files')
    parser.add_argument('--reset-config', action='store_true', help='Overwrite the configuration file with defaults')

    return parser.parse_args(argv)


def main(argv=None):
    """Application entry point."""
    args = parse_arguments(argv)

    logger = setup_logger(args.debug, args.log_dir)
    logger.info("Starting Stack Composer")

    try:
        if args.reset_config:
            config = reset_to_defaults(args.config)
        else:
            config = load_config(args.config)
        if args.mip:
            config['hierarchy']['synthesize_projection_slices'] = True

        with LogCapture(logger, f"load {args.path}") as capture:
            loader = ImageLoader.from_config(config, logger)
            planes = loader.load(args.path)
            tree = HierarchyBuilder.from_config(config, logger).build(planes)
    except (OSError, StackComposerError) as e:
        logger.error(f"Could not load {args.path}: {e}")
        return 1

    analyzer = DataAnalyzer(logger)
    print(analyzer.format_summary(analyzer.summarize_tree(tree), Path(args.path).name))

    counts = analyzer.count_nodes(tree)
    print(f"\n{counts['slices']} slices, {counts['projections']} projection slices")

    if capture.warnings:
        print(f"\n{len(capture.warnings)} warnings while loading:")
        for message in capture.warnings:
            print(f"  {message}")

    if args.stats:
        for series in tree.series:
            for channel in series.channels:
                stats = analyzer.intensity_statistics(channel.base_raster)
                print(f"{series.label} / {channel.label}: "
                      f"mean={stats['mean']:.2f} std={stats['std']:.2f} "
                      f"min={stats['min']} max={stats['max']}")

    logger.info("Stack Composer finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
