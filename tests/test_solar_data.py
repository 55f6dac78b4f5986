"""Tests for loading and cleaning the solar-system CSV."""

from __future__ import annotations

import math

import pandas as pd
import pytest
import requests

import solar_data
from errors import DataSourceError, SchemaError
from solar_data import clean_object_name, clean_table, load_table, normalize_column_name

from conftest import RAW_CSV


class FakeResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, text: str, status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Distance from Sun (Million km)", "distance_from_sun_million_km"),
        ("Diameter (km)", "diameter_km"),
        ("  Temperature Min (C) ", "temperature_min_c"),
        ("Object", "object"),
        ("temperature__max--c", "temperature_max_c"),
    ],
)
def test_normalize_column_name(raw: str, expected: str) -> None:
    """Case-fold and collapse punctuation/whitespace runs to one underscore."""

    assert normalize_column_name(raw) == expected


@pytest.mark.unit
def test_clean_object_name_strips_asteroid_suffix() -> None:
    """The '(an asteroid)' artifact and its whitespace disappear."""

    assert clean_object_name("Ceres (an asteroid)") == "Ceres"
    assert clean_object_name("  Ceres   (an asteroid)  ") == "Ceres"
    assert clean_object_name("Mars") == "Mars"


@pytest.mark.unit
def test_clean_table_coerces_bad_numbers_to_missing() -> None:
    """Non-numeric text in a metric becomes NaN; the row survives."""

    raw = pd.DataFrame(
        {
            "Object": ["Mars", "Earth"],
            "Distance from Sun (Million km)": ["227.9", "149.6"],
            "Diameter (km)": ["unknown", "12,756"],
            "Temperature Min (C)": ["-153", "-88"],
            "Temperature Max (C)": ["20", "58"],
        }
    )
    table = clean_table(raw)

    assert list(table["object"]) == ["Mars", "Earth"]
    assert math.isnan(table.loc[0, "diameter_km"])
    assert table.loc[1, "diameter_km"] == 12756.0


@pytest.mark.unit
def test_clean_table_drops_rows_without_distance() -> None:
    """Rows missing the distance metric are excluded, with a warning."""

    raw = pd.DataFrame(
        {
            "Object": ["Sun", "Earth"],
            "Distance from Sun (Million km)": [None, "149.6"],
            "Diameter (km)": ["1,392,700", "12756"],
            "Temperature Min (C)": ["5500", "-88"],
            "Temperature Max (C)": ["5500", "58"],
        }
    )
    with pytest.warns(UserWarning, match="Dropped 1 row"):
        table = clean_table(raw)

    assert list(table["object"]) == ["Earth"]
    assert list(table.index) == [0]


@pytest.mark.unit
def test_clean_table_keeps_extra_columns() -> None:
    """Unrecognized columns pass through after normalization."""

    raw = pd.DataFrame(
        {
            "Object": ["Earth"],
            "Distance from Sun (Million km)": ["149.6"],
            "Diameter (km)": ["12756"],
            "Temperature Min (C)": ["-88"],
            "Temperature Max (C)": ["58"],
            "Moons (count)": ["1"],
        }
    )
    table = clean_table(raw)
    assert table.loc[0, "moons_count"] == 1.0


@pytest.mark.unit
def test_clean_table_missing_required_column() -> None:
    """A required column that is absent after normalization is a SchemaError."""

    raw = pd.DataFrame({"Object": ["Earth"], "Diameter (km)": ["12756"]})
    with pytest.raises(SchemaError, match="distance_from_sun_million_km"):
        clean_table(raw)


@pytest.mark.unit
def test_clean_table_rejects_duplicate_objects() -> None:
    """Object identifiers must stay unique after cleaning."""

    raw = pd.DataFrame(
        {
            "Object": ["Ceres", "Ceres (an asteroid)"],
            "Distance from Sun (Million km)": ["413.7", "413.7"],
            "Diameter (km)": ["939", "939"],
            "Temperature Min (C)": ["-105", "-105"],
            "Temperature Max (C)": ["-38", "-38"],
        }
    )
    with pytest.raises(SchemaError, match="Ceres"):
        clean_table(raw)


@pytest.mark.integration
def test_load_table_from_local_csv(raw_csv_path) -> None:
    """Load a five-row fixture from disk into the canonical table."""

    table = load_table(str(raw_csv_path))

    assert list(table.columns) == [
        "object",
        "distance_from_sun_million_km",
        "diameter_km",
        "temperature_min_c",
        "temperature_max_c",
    ]
    assert list(table["object"]) == ["Mercury", "Venus", "Earth", "Mars", "Ceres"]
    assert table.loc[1, "diameter_km"] == 12104.0
    assert table["distance_from_sun_million_km"].dtype == float


@pytest.mark.integration
def test_load_table_missing_file(tmp_path) -> None:
    """A file that does not exist is a DataSourceError."""

    with pytest.raises(DataSourceError):
        load_table(str(tmp_path / "nope.csv"))


@pytest.mark.integration
def test_load_table_empty_file(tmp_path) -> None:
    """An empty file cannot be parsed."""

    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(DataSourceError):
        load_table(str(path))


@pytest.mark.integration
def test_load_table_bundled_dataset() -> None:
    """The bundled CSV loads; the Sun has no distance and is dropped."""

    with pytest.warns(UserWarning):
        table = load_table()

    assert "Sun" not in set(table["object"])
    assert "Ceres" in set(table["object"])
    assert len(table) == 10
    assert table["distance_from_sun_million_km"].notna().all()


@pytest.mark.unit
def test_load_table_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    """HTTP sources go through requests.get with a timeout."""

    calls = {}

    def fake_get(url, timeout=None):
        calls["url"] = url
        calls["timeout"] = timeout
        return FakeResponse(RAW_CSV)

    monkeypatch.setattr(solar_data.requests, "get", fake_get)
    table = load_table("https://example.org/solar.csv")

    assert calls == {"url": "https://example.org/solar.csv", "timeout": solar_data.REQUEST_TIMEOUT}
    assert len(table) == 5


@pytest.mark.unit
def test_load_table_http_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    """A non-2xx status is wrapped as DataSourceError."""

    monkeypatch.setattr(solar_data.requests, "get", lambda url, timeout=None: FakeResponse("", 404))
    with pytest.raises(DataSourceError, match="404"):
        load_table("https://example.org/solar.csv")


@pytest.mark.unit
def test_load_table_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """Connection problems are wrapped as DataSourceError."""

    def boom(url, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(solar_data.requests, "get", boom)
    with pytest.raises(DataSourceError, match="connection refused"):
        load_table("http://example.org/solar.csv")


@pytest.mark.integration
def test_load_table_invalid_utf8(tmp_path) -> None:
    """Bytes that are not UTF-8 are a DataSourceError, not a decode crash."""

    path = tmp_path / "latin.csv"
    path.write_bytes(b"object,x\n\xff\xfe,1\n")
    with pytest.raises(DataSourceError, match="latin.csv"):
        load_table(str(path))
