"""
Solar System Data Collection
Loads the solar-system bodies CSV (over HTTP or from disk) into a pandas table
Cleans column names, coerces metrics to numbers and drops unusable rows
"""

import io
import re
import warnings
from pathlib import Path

import pandas as pd
import requests

from errors import DataSourceError, SchemaError


# ---------- CONFIG ----------
DATA_URL        = str(Path(__file__).resolve().parent / "data" / "solar_system.csv")
REQUEST_TIMEOUT = 30  # seconds

KEY_COLUMN          = "object"
DISTANCE_COLUMN     = "distance_from_sun_million_km"
DIAMETER_COLUMN     = "diameter_km"
TEMP_MIN_COLUMN     = "temperature_min_c"
TEMP_MAX_COLUMN     = "temperature_max_c"
REQUIRED_COLUMNS    = (KEY_COLUMN, DISTANCE_COLUMN, DIAMETER_COLUMN,
                       TEMP_MIN_COLUMN, TEMP_MAX_COLUMN)

# Ceres ships as "Ceres (an asteroid)" in the source data
LABEL_ARTIFACT_PATTERN = re.compile(r"\s*\(an asteroid\)\s*")


# ---------- FETCH ----------

def fetch_csv_text(source: str) -> str:
    """
    Returns the raw CSV text behind `source`.

    Parameters
    ----------
    source : str
        An http(s) URL or a path on disk.

    Raises
    ------
    DataSourceError
        On any network, HTTP status or file read failure.
    """
    if source.startswith(("http://", "https://")):
        try:
            resp = requests.get(source, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DataSourceError(f"Error fetching {source}: {exc}") from exc
        return resp.text

    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DataSourceError(f"Error reading {source}: {exc}") from exc


def parse_csv(text: str, source: str = "<text>") -> pd.DataFrame:
    """
    Parses CSV text with a header row. Everything is read as strings;
    numeric coercion happens later so a stray bad cell never fails the parse.
    """
    try:
        return pd.read_csv(io.StringIO(text), dtype=str, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DataSourceError(f"Could not parse CSV from {source}: {exc}") from exc


# ---------- CLEANING ----------

def normalize_column_name(name) -> str:
    """
    'Distance from Sun (million km)' -> 'distance_from_sun_million_km'
    """
    folded = str(name).strip().casefold()
    return re.sub(r"[^0-9a-z]+", "_", folded).strip("_")


def as_numeric(column: pd.Series) -> pd.Series:
    """
    Helper: converts a column to floats, leaving NaN wherever a cell
    is not a number (e.g. 'unknown'). Thousands separators are allowed.
    """
    cleaned = column.map(lambda v: v.replace(",", "").strip() if isinstance(v, str) else v)
    return pd.to_numeric(cleaned, errors="coerce").astype(float)


def clean_object_name(name) -> str:
    if pd.isna(name):
        return ""
    return LABEL_ARTIFACT_PATTERN.sub(" ", str(name)).strip()


def clean_table(raw: pd.DataFrame, required_metrics=(DISTANCE_COLUMN,)) -> pd.DataFrame:
    """
    Turns a freshly parsed CSV into the canonical table.

    Steps
    -----
    1. Normalize column names.
    2. Check every column in REQUIRED_COLUMNS (plus `required_metrics`) exists.
    3. Coerce all non-key columns to numbers.
    4. Drop rows missing any of `required_metrics` or with an empty `object`.
    5. Strip the '(an asteroid)' artifact from `object`.

    Raises
    ------
    SchemaError
        If a required column is absent or `object` values repeat.
    """
    table = raw.copy()
    table.columns = [normalize_column_name(c) for c in table.columns]

    if table.columns.duplicated().any():
        dupes = sorted(set(table.columns[table.columns.duplicated()]))
        raise SchemaError(f"Columns collide after normalization: {dupes}")

    missing = [c for c in dict.fromkeys(REQUIRED_COLUMNS + tuple(required_metrics))
               if c not in table.columns]
    if missing:
        raise SchemaError(f"Required column(s) missing: {', '.join(missing)}")

    for column in table.columns:
        if column != KEY_COLUMN:
            table[column] = as_numeric(table[column])

    table[KEY_COLUMN] = table[KEY_COLUMN].map(clean_object_name)

    keep = table[list(required_metrics)].notna().all(axis=1) & (table[KEY_COLUMN] != "")
    dropped = int((~keep).sum())
    if dropped:
        warnings.warn(f"Dropped {dropped} row(s) missing {', '.join(required_metrics)} or a name")
    table = table[keep].reset_index(drop=True)

    repeated = table[KEY_COLUMN][table[KEY_COLUMN].duplicated()]
    if not repeated.empty:
        raise SchemaError(f"Duplicate object identifiers: {', '.join(repeated.unique())}")

    return table


# ---------- MAIN ENTRY ----------

def load_table(source: str = DATA_URL, required_metrics=(DISTANCE_COLUMN,)) -> pd.DataFrame:
    """
    Fetches, parses and cleans the dataset. See clean_table for the rules.
    """
    return clean_table(parse_csv(fetch_csv_text(source), source), required_metrics)
