# --- loading + coercion for the post dataset ---
from __future__ import annotations
import re
from typing import Dict, List, Sequence
import pandas as pd

from .errors import MalformedDateError, MissingFieldError
from .log import get_logger

logger = get_logger(__name__)

COUNTER_RX = re.compile(r"_count(?:_|$)")
# full calendar date, optionally followed by a time of day and an offset
DATE_RX = re.compile(
    r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}"
    r"(?:[T ]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*(?:Z|[+-]\d{2}:?\d{2})?)?$"
)


def normalize_column(name: str) -> str:
    s = (name or "").strip().lower()
    s = re.sub(r"\s+", "_", s)
    return s


def coerce_posts(
    df: pd.DataFrame,
    *,
    date_column: str = "date",
    category_columns: Sequence[str] = ("type", "sentiment"),
) -> pd.DataFrame:
    """
    Return a copy with:
      date column -> datetime64 (day resolution)
      category columns -> pandas 'category' dtype
    Raises MissingFieldError / MalformedDateError instead of coercing bad rows to NaT.
    """
    required = [date_column, *category_columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MissingFieldError(missing[0], missing=missing, available=list(df.columns))

    out = df.copy()

    # strip zero-width/BOM before parsing
    raw = out[date_column]
    txt = (raw.astype(str)
              .str.strip()
              .str.replace(r"[\u200b\u200e\ufeff]", "", regex=True))
    # fragments like "June" or "5" would otherwise parse into year 1 or today
    well_formed = raw.notna() & txt.str.match(DATE_RX)
    parsed = pd.to_datetime(txt.where(well_formed), errors="coerce", format="mixed")
    bad = parsed.isna()
    if bad.any():
        pos = int(bad.to_numpy().argmax())
        raise MalformedDateError(raw.iloc[pos], index=pos)
    if parsed.dt.tz is not None:
        parsed = parsed.dt.tz_localize(None)
    out[date_column] = parsed.dt.normalize()

    for col in category_columns:
        out[col] = out[col].astype("category")
    return out


def load_posts(
    path: str,
    *,
    date_column: str = "date",
    category_columns: Sequence[str] = ("type", "sentiment"),
) -> pd.DataFrame:
    """
    Load the post CSV and normalize column names (case/whitespace-insensitive),
    then coerce dates and categories (see coerce_posts).
    """
    df = pd.read_csv(path)
    df = df.rename(columns={c: normalize_column(c) for c in df.columns})
    out = coerce_posts(df, date_column=normalize_column(date_column),
                       category_columns=[normalize_column(c) for c in category_columns])
    logger.info(f"Loaded {len(out)} posts x {out.shape[1]} columns from {path}")
    return out


def counter_columns(df: pd.DataFrame) -> List[str]:
    """Integer engagement counters, e.g. likes_count_fb / comments_count_fb."""
    return [c for c in df.columns
            if COUNTER_RX.search(str(c)) and pd.api.types.is_integer_dtype(df[c])]


def dataset_overview(df: pd.DataFrame) -> Dict[str, object]:
    return {
        "rows": int(df.shape[0]),
        "columns": int(df.shape[1]),
        "dtypes": {str(c): str(t) for c, t in df.dtypes.items()},
    }
