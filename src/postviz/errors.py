# src/postviz/errors.py
from __future__ import annotations
from typing import Any, Optional


class PostVizError(Exception):
    """Base class for every error raised by postviz."""


class MalformedDateError(PostVizError, ValueError):
    def __init__(self, value: Any, index: Optional[int] = None):
        self.value = value
        self.index = index
        where = f" (record {index})" if index is not None else ""
        super().__init__(f"Cannot parse date {value!r}{where}")


class InvalidPeriodError(PostVizError, ValueError):
    def __init__(self, period: Any):
        self.period = period
        super().__init__(f"Unsupported period {period!r}; expected one of: day, week, month")


class MissingFieldError(PostVizError, KeyError):
    """
    `field` is the first absent name; `missing` lists every absent name when
    a whole frame was checked at once.
    """

    def __init__(self, field: str, index: Optional[int] = None, available: Optional[list] = None,
                 missing: Optional[list] = None):
        self.field = field
        self.index = index
        self.available = available
        self.missing = list(missing) if missing else [field]
        if len(self.missing) > 1:
            msg = f"Missing fields {self.missing!r}"
        else:
            msg = f"Missing field {field!r}"
        if index is not None:
            msg += f" in record {index}"
        if available is not None:
            msg += f". Found: {available}"
        super().__init__(msg)

    # KeyError.__str__ would repr() the message
    def __str__(self) -> str:
        return str(self.args[0])


class InvalidValueError(PostVizError, ValueError):
    def __init__(self, field: str, value: Any, index: Optional[int] = None):
        self.field = field
        self.value = value
        self.index = index
        where = f" in record {index}" if index is not None else ""
        super().__init__(f"Field {field!r} must be a non-negative number, got {value!r}{where}")


class InvalidChartError(PostVizError, ValueError):
    """A chart component was given an option it does not understand."""
