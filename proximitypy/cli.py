"""
Command-line proximity analysis of an exported detection table.

Usage:
    proximitypy --cells detections.csv --target Tumor --reference CD8 \
        --threshold 20 --max-neighbors 5 --pixel-size 0.5 --output-dir results
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from proximitypy.analysis.engine import ProximityAnalysis
from proximitypy.analysis.measurements import measurements_frame
from proximitypy.core.cells import ImageRoot
from proximitypy.core.config import LineStyle, Metric, PartitionMode, ProximityConfig
from proximitypy.io.loaders import cells_by_class, load_cells_csv, load_cells_geojson

logger = logging.getLogger(__name__)


def run_analysis(
    cells_path: str,
    target_class: str,
    reference_class: str,
    threshold: float,
    config: ProximityConfig,
    pixel_size: float = 1.0,
    output_dir: str = "./proximity_results",
    partition_col: Optional[str] = None,
) -> dict:
    """
    Load cells, run one analysis and write measurement tables as CSV.

    Parameters
    ----------
    cells_path : str
        CSV/TSV table (WKT ``geometry`` or ``x``/``y`` columns) or GeoJSON.
    target_class, reference_class : str
        Classifications selecting the two populations.
    threshold : float
        Interaction distance threshold (physical units).
    config : ProximityConfig
        Analysis configuration.
    pixel_size : float, default=1.0
        Physical size of one pixel.
    output_dir : str
        Output directory; created if missing.
    partition_col : str, optional
        Table column (or GeoJSON property) naming the enclosing partition of each cell.

    Returns
    -------
    dict
        Paths of the written files.
    """
    cells_path = Path(cells_path)
    if cells_path.suffix in (".geojson", ".json"):
        cells = load_cells_geojson(cells_path, partition_property=partition_col)
    else:
        cells = load_cells_csv(cells_path, partition_col=partition_col)

    targets = cells_by_class(cells, target_class)
    references = cells_by_class(cells, reference_class)
    logger.info(f"Loaded {len(cells)} cells: {len(targets)} '{target_class}', {len(references)} '{reference_class}'")

    analysis = ProximityAnalysis.build(targets, references, config, pixel_size=pixel_size)

    image = ImageRoot(cells_path.stem)
    analysis.add_measurements(image, target_class, reference_class, threshold=threshold)
    analysis.add_cell_measurements(target_class, reference_class)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    files = {
        "image": output_dir / "image_measurements.csv",
        "cells": output_dir / "cell_measurements.csv",
        "config": output_dir / "config.json",
    }

    measurements_frame([image]).to_csv(files["image"], index=False)
    measurements_frame(analysis.targets, name_column="cell").to_csv(files["cells"], index=False)

    if config.partition_mode is PartitionMode.PER_PARTITION:
        partitions = analysis.add_partition_measurements(target_class, reference_class, threshold)
        files["partitions"] = output_dir / "partition_measurements.csv"
        measurements_frame(partitions, name_column="partition").to_csv(files["partitions"], index=False)

    config.save(files["config"])
    for label, path in files.items():
        logger.info(f"Saved {label}: {path}")
    return files


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Nearest-neighbor proximity analysis between two cell populations",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--cells", required=True, help="Cell table (CSV/TSV) or GeoJSON")
    parser.add_argument("--target", required=True, help="Target classification")
    parser.add_argument("--reference", required=True, help="Reference classification")
    parser.add_argument("--threshold", type=float, default=0.0, help="Interaction distance threshold")
    parser.add_argument("--max-neighbors", type=int, default=10, help="Interactions to test")
    parser.add_argument("--pixel-size", type=float, default=1.0, help="Physical size of one pixel")
    parser.add_argument("--metric", choices=[m.value for m in Metric], default=Metric.EDGE.value)
    parser.add_argument(
        "--line-style", choices=[s.value for s in LineStyle], default=LineStyle.LINE.value
    )
    parser.add_argument("--partition-col", default=None, help="Column or GeoJSON property naming each cell's partition")
    parser.add_argument("--config", default=None, help="JSON configuration (overrides options)")
    parser.add_argument("--output-dir", default="./proximity_results", help="Output directory")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.config is not None:
        config = ProximityConfig.load(args.config)
    else:
        config = ProximityConfig(
            max_neighbors=args.max_neighbors,
            partition_mode=(
                PartitionMode.PER_PARTITION if args.partition_col else PartitionMode.WHOLE_IMAGE
            ),
            metric=args.metric,
            line_style=args.line_style,
        )

    run_analysis(
        args.cells,
        args.target,
        args.reference,
        args.threshold,
        config,
        pixel_size=args.pixel_size,
        output_dir=args.output_dir,
        partition_col=args.partition_col,
    )


if __name__ == "__main__":
    main()
