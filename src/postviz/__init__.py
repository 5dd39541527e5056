from .errors import (InvalidChartError, InvalidPeriodError, InvalidValueError, MalformedDateError,
                     MissingFieldError, PostVizError)
from .metrics import Period, aggregate, aggregate_frame, floor_date, merge_aggregates

__version__ = "0.1.0"
