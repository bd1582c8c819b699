"""
CSV and Excel export of merged readings.

CSV: one row per distinct timestamp, one column per bucket:measurement.
Excel: one worksheet per bucket, one column per measurement.
"""

import io
import logging
import re
from typing import List, Sequence, Set

import numpy as np
import pandas as pd

from ..api.queries.shaping import series_key
from ..api.queries.types import Reading, UNKNOWN_SERIES

logger = logging.getLogger("sensorboard.export")

CSV_MEDIA_TYPE = "text/csv"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_FORMATS = {
    "csv": (CSV_MEDIA_TYPE, "csv"),
    "excel": (EXCEL_MEDIA_TYPE, "xlsx"),
}

_SHEET_INVALID = re.compile(r"[\[\]:*?/\\]")
MAX_SHEET_NAME = 31


def readings_frame(readings: Sequence[Reading]) -> pd.DataFrame:
    """Long-format frame: timestamp, bucket, measurement, series, value."""
    return pd.DataFrame({
        "timestamp": [r.timestamp for r in readings],
        "bucket": [r.bucket or UNKNOWN_SERIES for r in readings],
        "measurement": [r.measurement or UNKNOWN_SERIES for r in readings],
        "series": [series_key(r) for r in readings],
        "value": pd.to_numeric(pd.Series([r.value for r in readings], dtype=object), errors="coerce"),
    })


def pivot_by(frame: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    Wide table indexed by timestamp with one column per distinct `column`.

    Rows are ordered by instant, columns by first appearance. A repeated
    (timestamp, column) pair keeps its last value so rows never duplicate.
    """
    table = frame.groupby(["timestamp", column], sort=False)["value"].last().unstack(column)
    table = table.reindex(columns=list(dict.fromkeys(frame[column])))

    times = pd.to_datetime(table.index, utc=True, format="ISO8601")
    table = table.iloc[np.argsort(times.asi8, kind="stable")]
    table.index.name = "timestamp"
    table.columns.name = None
    return table


def to_csv(readings: Sequence[Reading]) -> str:
    if not readings:
        return "timestamp\n"
    return pivot_by(readings_frame(readings), "series").to_csv()


def sheet_name(bucket: str, taken: Set[str]) -> str:
    """Excel-safe, unique (case-insensitive) worksheet name for a bucket."""
    base = _SHEET_INVALID.sub("_", bucket).strip("'")[:MAX_SHEET_NAME] or UNKNOWN_SERIES
    name, n = base, 1
    while name.lower() in taken:
        n += 1
        suffix = f"_{n}"
        name = base[:MAX_SHEET_NAME - len(suffix)] + suffix
    taken.add(name.lower())
    return name


def to_excel(readings: Sequence[Reading]) -> bytes:
    buffer = io.BytesIO()
    frame = readings_frame(readings)
    taken: Set[str] = set()

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        if frame.empty:
            pd.DataFrame(columns=["timestamp"]).to_excel(writer, sheet_name="data", index=False)
        for bucket, group in frame.groupby("bucket", sort=False):
            pivot_by(group, "measurement").to_excel(writer, sheet_name=sheet_name(bucket, taken))

    logger.debug(f"Excel export: {len(taken)} worksheets, {len(frame)} readings")
    return buffer.getvalue()


def export_filename(extension: str, label: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", label).strip("_.-") or "export"
    return f"sensor_data_{safe}.{extension}"


def render_export(readings: List[Reading], export_format: str) -> bytes:
    if export_format == "csv":
        return to_csv(readings).encode("utf-8")
    if export_format == "excel":
        return to_excel(readings)
    raise ValueError(f"unsupported export format: {export_format}")
