"""Pytest fixtures shared across the chart tests."""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd
import pytest


RAW_CSV = """Object,Distance from Sun (Million km),Diameter (km),Temperature Min (C),Temperature Max (C)
Mercury,57.9,4879,-173,427
Venus,108.2,"12,104",167,464
Earth,149.6,12756,-88,58
Mars,227.9,6792,-153,20
Ceres (an asteroid),413.7,939,-105,-38
"""


@pytest.fixture
def planets_table() -> pd.DataFrame:
    """Return a cleaned five-row table (the inner bodies plus Jupiter)."""

    return pd.DataFrame(
        {
            "object": ["Mercury", "Venus", "Earth", "Mars", "Jupiter"],
            "distance_from_sun_million_km": [57.9, 108.2, 149.6, 227.9, 778.6],
            "diameter_km": [4879.0, 12104.0, 12756.0, 6792.0, 142984.0],
            "temperature_min_c": [-173.0, 167.0, -88.0, -153.0, -148.0],
            "temperature_max_c": [427.0, 464.0, 58.0, 20.0, -108.0],
        }
    )


@pytest.fixture
def raw_csv_path(tmp_path):
    """Return a CSV on disk using the source's original column headers."""

    path = tmp_path / "solar_system.csv"
    path.write_text(RAW_CSV, encoding="utf-8")
    return path


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    - `unit`: pure, fast tests with no file or network access.
    - `integration`: tests touching the filesystem or the full pipeline.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            invalid.append(item.nodeid)

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n" + joined
        )
