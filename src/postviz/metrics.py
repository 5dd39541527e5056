from __future__ import annotations
import math, numbers
from collections import defaultdict
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from .data_prep import DATE_RX
from .errors import InvalidPeriodError, InvalidValueError, MalformedDateError, MissingFieldError
from .log import get_logger

logger = get_logger(__name__)

BucketKey = Tuple[Hashable, date]
Aggregate = Dict[BucketKey, Union[int, float]]


# ----------------------------
# Descriptive statistics
# ----------------------------
def _require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    for c in columns:
        if c not in df.columns:
            raise MissingFieldError(c, available=list(df.columns))


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    return df.describe(include="all")


def counter_stats(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Mean and max per counter column (one row per column)."""
    _require_columns(df, columns)
    return pd.DataFrame({
        "mean": [float(df[c].mean()) for c in columns],
        "max": [df[c].max() for c in columns],
    }, index=list(columns))


def frequency_table(df: pd.DataFrame, column: str, normalize: bool = False) -> pd.Series:
    """
    Counts per category (or proportions with normalize=True).
    Categorical columns keep their declared category order; others are sorted.
    """
    _require_columns(df, [column])
    counts = df[column].value_counts(normalize=normalize, sort=False)
    if not isinstance(df[column].dtype, pd.CategoricalDtype):
        counts = counts.sort_index()
    return counts


def top_post(df: pd.DataFrame, column: str) -> pd.Series:
    """The row with the largest value of `column` (first one on ties)."""
    _require_columns(df, [column])
    if df.empty:
        raise ValueError("Cannot pick a top post from an empty frame")
    return df.loc[df[column].idxmax()]


def top_post_link(df: pd.DataFrame, column: str, link_column: str = "post_link") -> str:
    _require_columns(df, [link_column])
    return str(top_post(df, column)[link_column])


# ----------------------------
# Periods + flooring
# ----------------------------
class Period(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: Any) -> "Period":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidPeriodError(value)


def _parse_date(value: Any, index: Optional[int] = None) -> date:
    if isinstance(value, str):
        value = value.strip()
        if not DATE_RX.match(value):
            raise MalformedDateError(value, index)
    elif not isinstance(value, (date, np.datetime64)):
        raise MalformedDateError(value, index)
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError) as e:
        raise MalformedDateError(value, index) from e
    if pd.isna(ts):
        raise MalformedDateError(value, index)
    return ts.date()


def _floor(d: date, period: Period) -> date:
    if period is Period.WEEK:
        return d - timedelta(days=d.weekday())  # Monday
    if period is Period.MONTH:
        return d.replace(day=1)
    return d


def floor_date(value: Any, period: Union[Period, str]) -> date:
    """Start of the day/week (Monday)/month containing `value`."""
    return _floor(_parse_date(value), Period.parse(period))


# ----------------------------
# Aggregation
# ----------------------------
_MISSING = object()


def _is_missing(v: Any) -> bool:
    return v is None or (pd.api.types.is_scalar(v) and bool(pd.isna(v)))


def _iter_fields(records: Any, fields: Sequence[str]) -> Iterator[Tuple[Any, ...]]:
    if isinstance(records, pd.DataFrame):
        _require_columns(records, fields)
        yield from zip(*(records[f].tolist() for f in fields))
        return
    for i, rec in enumerate(records):
        row = []
        for f in fields:
            if isinstance(rec, Mapping):
                v = rec.get(f, _MISSING)
            else:
                v = getattr(rec, f, _MISSING)
            if v is _MISSING:
                raise MissingFieldError(f, index=i)
            row.append(v)
        yield tuple(row)


def _exact_sum(values: Sequence[Union[int, float]]) -> Union[int, float]:
    # order-independent: fsum is correctly rounded
    if all(isinstance(v, int) for v in values):
        return sum(values)
    return math.fsum(values)


def _check_value(v: Any, field: str, index: int) -> Union[int, float]:
    x = v
    if isinstance(x, str):
        s = x.strip()
        try:
            x = int(s)
        except ValueError:
            try:
                x = float(s)
            except ValueError:
                raise InvalidValueError(field, v, index) from None
    if isinstance(x, (bool, np.bool_)) or not isinstance(x, numbers.Real):
        raise InvalidValueError(field, v, index)
    if isinstance(x, np.generic):
        x = x.item()
    if x != x or x < 0:  # NaN or negative
        raise InvalidValueError(field, v, index)
    return x


def aggregate(
    records: Any,
    category_field: str,
    date_field: str,
    value_field: str,
    period: Union[Period, str],
) -> Aggregate:
    """
    Sum `value_field` per (category, period start).

    records: a DataFrame or any iterable of mappings / objects with the named fields.
    period:  Period.DAY | Period.WEEK (Monday start) | Period.MONTH, or its name.

    Every record lands in exactly one bucket; a bad date, a missing field or a
    negative/non-numeric value raises instead of being skipped, so bucket totals
    always add up to the input total.
    """
    period = Period.parse(period)
    if records is None:
        raise TypeError("records must be a sequence, not None")

    buckets: Dict[BucketKey, List[Union[int, float]]] = defaultdict(list)
    n = 0
    for i, (cat, raw_date, raw_val) in enumerate(
            _iter_fields(records, (category_field, date_field, value_field))):
        key = (None if _is_missing(cat) else cat, _floor(_parse_date(raw_date, i), period))
        buckets[key].append(_check_value(raw_val, value_field, i))
        n += 1

    logger.debug(f"aggregate: {n} records -> {len(buckets)} buckets "
                 f"({category_field} x {period.value} of {date_field}, sum of {value_field})")
    return {key: _exact_sum(vals) for key, vals in buckets.items()}


def aggregate_frame(
    records: Any,
    category_field: str,
    date_field: str,
    value_field: str,
    period: Union[Period, str],
    value_name: Optional[str] = None,
) -> pd.DataFrame:
    """
    aggregate() as a tidy table ready for line/area charts:
      [category_field, date_field (datetime64), value_name (default total_<value_field>)]
    sorted by category, then date.
    """
    result = aggregate(records, category_field, date_field, value_field, period)
    value_name = value_name or f"total_{value_field}"
    rows = [(cat, pd.Timestamp(d), v) for (cat, d), v in result.items()]
    out = pd.DataFrame(rows, columns=[category_field, date_field, value_name])
    out[date_field] = pd.to_datetime(out[date_field])

    # keep the source category order so colors match the other charts
    if isinstance(records, pd.DataFrame) and isinstance(records[category_field].dtype, pd.CategoricalDtype):
        out[category_field] = pd.Categorical(out[category_field],
                                             categories=records[category_field].cat.categories)
    return out.sort_values([category_field, date_field], kind="mergesort").reset_index(drop=True)


def merge_aggregates(*results: Mapping[BucketKey, Union[int, float]]) -> Aggregate:
    """Combine aggregates computed on separate partitions of the same record set."""
    merged: Dict[BucketKey, List[Union[int, float]]] = defaultdict(list)
    for res in results:
        for key, v in res.items():
            merged[key].append(v)
    return {key: _exact_sum(vals) for key, vals in merged.items()}


def bucket_total(result: Mapping[BucketKey, Union[int, float]]) -> Union[int, float]:
    return _exact_sum(list(result.values()))
