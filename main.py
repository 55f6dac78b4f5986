#!/usr/bin/env python3
"""
Solar System Charts
Loads the solar-system bodies table and renders the four teaching charts

This script:
1. Loads the dataset (solar_data.DATA_URL)
2. Builds one ChartSpec per chart
3. Renders each spec and writes it under OUTPUT_DIR
4. Reports what was saved and what failed (one bad chart never stops the rest)
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

import output_sink
import renderer
from chart_spec import ChartKind, ChartSpec
from errors import DataSourceError, RenderError, SchemaError
from solar_data import (DATA_URL, DIAMETER_COLUMN, DISTANCE_COLUMN, TEMP_MAX_COLUMN,
                        TEMP_MIN_COLUMN, load_table)


# ---------- CONFIG ----------
OUTPUT_DIR = "."


@dataclass
class BatchReport:
    written: list = field(default_factory=list)    # output paths
    failures: list = field(default_factory=list)   # (output path, exception)

    @property
    def ok(self) -> bool:
        return not self.failures


def build_chart_specs(table: pd.DataFrame, output_dir=OUTPUT_DIR) -> list:
    """
    The four charts: plain distance bars, the labelled horizontal version,
    the orbit-ring diagram and the min/max temperature scatterplot.
    """
    out = Path(output_dir)
    return [
        ChartSpec(
            chart_kind=ChartKind.BAR,
            table=table,
            field_map={"x": "object", "y": DISTANCE_COLUMN},
            style_options={"title": "Distance from the Sun (million km)"},
            output_path=str(out / "distance_from_the_sun.png"),
            width=8, height=6,
        ),
        ChartSpec(
            chart_kind=ChartKind.BAR_LABELED_HORIZONTAL,
            table=table,
            field_map={"x": "object", "y": DISTANCE_COLUMN},
            style_options={"title": "Distance from the Sun (million km)",
                           "label_inside_threshold": 500},
            output_path=str(out / "distance_from_the_sun_pretty.png"),
            width=8, height=6,
        ),
        ChartSpec(
            chart_kind=ChartKind.RADIAL_ORBIT,
            table=table,
            field_map={"x": DISTANCE_COLUMN, "size": DIAMETER_COLUMN, "label": "object"},
            style_options={"title": "Orbits around the Sun",
                           "label_distance_cutoff": 1000,
                           "size_legend_breaks": (5000, 50000, 100000)},
            output_path=str(out / "distance_from_the_sun_circles.png"),
            width=8, height=6,
        ),
        ChartSpec(
            chart_kind=ChartKind.SCATTER,
            table=table,
            field_map={"x": TEMP_MIN_COLUMN, "y": TEMP_MAX_COLUMN, "label": "object"},
            style_options={"title": "Minimum vs maximum temperature (°C)"},
            output_path=str(out / "temperature.png"),
            width=7, height=7,
        ),
    ]


def render_batch(specs) -> BatchReport:
    """
    Renders and writes every spec. RenderError and OSError are recorded
    against that chart and the loop moves on; anything else propagates.
    """
    report = BatchReport()
    for spec in specs:
        try:
            artifact = renderer.render(spec)
            output_sink.write(artifact, spec.output_path, *spec.pixel_size)
        except (RenderError, OSError) as exc:
            report.failures.append((spec.output_path, exc))
            print(f"✗ Failed: {spec.output_path} ({exc})")
            continue
        report.written.append(spec.output_path)
        print(f"✓ Saved: {spec.output_path}")
    return report


def main(source: str = DATA_URL, output_dir=OUTPUT_DIR) -> int:
    """
    Main function - loads the data and creates all charts.
    Returns a process exit code: 0 when every chart was written.
    """
    print("\n" + "=" * 60)
    print("SOLAR SYSTEM CHARTS")
    print("=" * 60)

    try:
        table = load_table(source)
    except (DataSourceError, SchemaError) as exc:
        print(f"\n⚠ Could not load data: {exc}")
        return 1

    print(f"\nLoaded {len(table)} bodies from {source}")
    print(table.to_string(index=False))

    print("\n" + "=" * 60)
    print("CREATING VISUALIZATIONS")
    print("=" * 60)

    report = render_batch(build_chart_specs(table, output_dir))

    print("\n" + "=" * 60)
    if report.ok:
        print("✓ ALL CHARTS COMPLETE!")
    else:
        print(f"⚠ {len(report.failures)} chart(s) failed")
    print("=" * 60)
    print("\nGenerated files:")
    for path in report.written:
        print(f"  - {path}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
