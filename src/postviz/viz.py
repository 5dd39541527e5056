"""
Layered chart builder.

A Chart holds the data, a default aesthetic mapping and an ordered tuple of
components (geometries, scales, a facet, labels, a theme). Adding a component
returns a new Chart; nothing is drawn until render()/save():

    chart = (Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb", color="type"))
             + Point(alpha=0.5)
             + ScaleLog10("x") + ScaleLog10("y")
             + Smooth(method="lm")
             + Labels(x="Comments Count", y="Likes Count", title="Comments and Likes"))
    chart.save("plots/comments_vs_likes.png")
"""
from __future__ import annotations
import itertools, os, re
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
from matplotlib.colors import to_rgba
from sklearn.linear_model import LinearRegression
from statsmodels.nonparametric.smoothers_lowess import lowess

from .errors import InvalidChartError, MissingFieldError
from .log import get_logger

logger = get_logger(__name__)

AesValue = Union[str, float, int, None]

MARKERS = ["o", "^", "s", "D", "v", "P", "X", "*"]
LINETYPES = {"solid": "-", "dashed": "--", "dotted": ":", "dotdash": "-.", "longdash": (0, (8, 3))}
GREY_PANEL = "#EBEBEB"


def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)


# ----------------------------
# Aesthetics
# ----------------------------
@dataclass(frozen=True)
class Aes:
    """Column names (str) or constants (numbers) for each visual channel."""
    x: AesValue = None
    y: AesValue = None
    color: Optional[str] = None
    fill: Optional[str] = None
    shape: Optional[str] = None

    def merge(self, other: Optional["Aes"]) -> "Aes":
        """`other` wins wherever it sets a channel."""
        if other is None:
            return self
        return Aes(**{f.name: getattr(other, f.name) if getattr(other, f.name) is not None
                      else getattr(self, f.name) for f in fields(self)})


def _is_discrete(s: pd.Series) -> bool:
    return (isinstance(s.dtype, pd.CategoricalDtype)
            or pd.api.types.is_object_dtype(s)
            or pd.api.types.is_bool_dtype(s)
            or pd.api.types.is_string_dtype(s))


def _sorted_levels(values: list) -> list:
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


class _Context:
    """Per-render state shared by every panel: category levels, colors, log axes."""

    def __init__(self, data: pd.DataFrame, log_axes: Sequence[str]):
        self.data = data
        self.log_axes = set(log_axes)
        self._levels: Dict[str, list] = {}

    def series(self, col: str) -> pd.Series:
        if col not in self.data.columns:
            raise MissingFieldError(col, available=list(self.data.columns))
        return self.data[col]

    def levels(self, col: str) -> list:
        if col not in self._levels:
            s = self.series(col)
            if isinstance(s.dtype, pd.CategoricalDtype):
                self._levels[col] = list(s.cat.remove_unused_categories().cat.categories)
            else:
                self._levels[col] = _sorted_levels(s.dropna().unique().tolist())
        return self._levels[col]

    def colors(self, col: str) -> Dict[Any, Any]:
        cmap = plt.get_cmap("tab10")
        return {lv: cmap(i % 10) for i, lv in enumerate(self.levels(col))}

    def markers(self, col: str) -> Dict[Any, str]:
        return {lv: MARKERS[i % len(MARKERS)] for i, lv in enumerate(self.levels(col))}


class _Panel:
    """One axes plus the slice of data drawn on it."""

    def __init__(self, ax: plt.Axes, data: pd.DataFrame, ctx: _Context):
        self.ax = ax
        self.data = data
        self.ctx = ctx
        self.zorder = 2
        self.default_y_label: Optional[str] = None
        self.legend_title: Optional[str] = None

    def values(self, v: AesValue, channel: str = "x", data: Optional[pd.DataFrame] = None) -> pd.Series:
        data = self.data if data is None else data
        if v is None:
            raise InvalidChartError(f"This layer needs an '{channel}' aesthetic")
        if isinstance(v, str):
            self.ctx.series(v)
            return data[v]
        return pd.Series(v, index=data.index)

    def column(self, v: AesValue, channel: str = "x") -> str:
        """Like values(), but the channel must name a column."""
        self.values(v, channel)
        if not isinstance(v, str):
            raise InvalidChartError(f"The '{channel}' aesthetic of this layer must be a column, got {v!r}")
        return v

    def category_ticks(self, col: str) -> list:
        levels = self.ctx.levels(col)
        self.ax.set_xticks(range(len(levels)))
        self.ax.set_xticklabels([str(lv) for lv in levels])
        return levels

    def x_positions(self, col: AesValue, data: Optional[pd.DataFrame] = None) -> Tuple[np.ndarray, bool]:
        """Numeric x values; discrete columns map to 0..n-1 and get category ticks."""
        s = self.values(col, "x", data)
        if isinstance(col, str) and _is_discrete(self.ctx.series(col)):
            lookup = {lv: i for i, lv in enumerate(self.category_ticks(col))}
            pos = np.array([lookup.get(v, np.nan) for v in s.tolist()], dtype=float)
            return pos, True
        return s.to_numpy(), False

    def groups(self, data: pd.DataFrame, color_col: Optional[str], shape_col: Optional[str] = None,
               default_color: Any = "black") -> Iterator[Tuple[pd.DataFrame, Dict[str, Any]]]:
        cols = [c for c in dict.fromkeys([color_col, shape_col]) if c]
        if not cols:
            yield data, {"color": default_color, "marker": "o", "label": None}
            return
        self.legend_title = " / ".join(cols)
        colors = self.ctx.colors(color_col) if color_col else {}
        markers = self.ctx.markers(shape_col) if shape_col else {}
        for combo in itertools.product(*(self.ctx.levels(c) for c in cols)):
            mask = np.ones(len(data), dtype=bool)
            for c, lv in zip(cols, combo):
                mask &= (data[c] == lv).to_numpy()
            if not mask.any():
                continue
            style = {
                "color": colors[combo[cols.index(color_col)]] if color_col else default_color,
                "marker": markers[combo[cols.index(shape_col)]] if shape_col else "o",
                "label": ", ".join(str(v) for v in combo),
            }
            yield data[mask], style


def _as_float(x: np.ndarray) -> np.ndarray:
    if np.issubdtype(np.asarray(x).dtype, np.datetime64):
        return mdates.date2num(np.asarray(x))
    return np.asarray(x, dtype=float)


# ----------------------------
# Geometries
# ----------------------------
class Layer:
    aes: Optional[Aes] = None

    def draw(self, panel: _Panel, aes: Aes) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Histogram(Layer):
    binwidth: Optional[float] = None
    bins: int = 30
    fill: Optional[str] = None
    alpha: float = 1.0
    aes: Optional[Aes] = None

    def _edges(self, x: np.ndarray) -> Union[int, np.ndarray]:
        if self.binwidth is None:
            return self.bins
        if self.binwidth <= 0:
            raise InvalidChartError(f"binwidth must be positive, got {self.binwidth}")
        start = np.floor(x.min() / self.binwidth) * self.binwidth
        n = int(np.floor((x.max() - start) / self.binwidth)) + 1
        return start + self.binwidth * np.arange(n + 1)

    def draw(self, panel, aes):
        panel.default_y_label = "count"
        xcol = panel.column(aes.x, "x")
        data = panel.data[panel.data[xcol].notna().to_numpy()]
        if data.empty:
            return
        x_all = _as_float(data[xcol].to_numpy())
        edges = self._edges(x_all)
        if aes.fill:
            panel.column(aes.fill, "fill")
            arrays, colors, labels = [], [], []
            for sub, style in panel.groups(data, aes.fill):
                arrays.append(_as_float(sub[xcol].to_numpy()))
                colors.append(style["color"])
                labels.append(style["label"])
            if not arrays:
                return
            panel.ax.hist(arrays, bins=edges, stacked=True, color=colors, label=labels,
                          alpha=self.alpha, zorder=panel.zorder)
        else:
            panel.ax.hist(x_all, bins=edges, color=self.fill or "#595959",
                          alpha=self.alpha, zorder=panel.zorder)


@dataclass(frozen=True)
class Bar(Layer):
    """Counts per x category; `fill` splits each bar by a second category."""
    position: str = "stack"
    alpha: float = 1.0
    width: float = 0.9
    aes: Optional[Aes] = None

    def __post_init__(self):
        if self.position not in ("stack", "dodge", "fill"):
            raise InvalidChartError(f"Bar position must be stack, dodge or fill, got {self.position!r}")

    def draw(self, panel, aes):
        panel.default_y_label = "count"
        x_levels = panel.category_ticks(panel.column(aes.x, "x"))
        idx = np.arange(len(x_levels))
        data = panel.data
        if data.empty:
            return
        if not aes.fill:
            counts = data[aes.x].value_counts().reindex(x_levels, fill_value=0)
            panel.ax.bar(idx, counts.to_numpy(), width=self.width, color="#595959",
                         alpha=self.alpha, zorder=panel.zorder)
            return

        panel.column(aes.fill, "fill")
        f_levels = panel.ctx.levels(aes.fill)
        colors = panel.ctx.colors(aes.fill)
        table = (data.groupby([aes.x, aes.fill], observed=True).size()
                     .unstack(fill_value=0)
                     .reindex(index=x_levels, columns=f_levels, fill_value=0))
        if self.position == "fill":
            totals = table.sum(axis=1).replace(0, np.nan)
            table = table.div(totals, axis=0).fillna(0.0)
        panel.legend_title = aes.fill

        bottom = np.zeros(len(x_levels))
        n = max(len(f_levels), 1)
        for j, lv in enumerate(f_levels):
            heights = table[lv].to_numpy(dtype=float)
            if self.position == "dodge":
                w = self.width / n
                panel.ax.bar(idx - self.width / 2 + w * (j + 0.5), heights, width=w,
                             color=colors[lv], alpha=self.alpha, label=str(lv), zorder=panel.zorder)
            else:
                panel.ax.bar(idx, heights, width=self.width, bottom=bottom,
                             color=colors[lv], alpha=self.alpha, label=str(lv), zorder=panel.zorder)
                bottom = bottom + heights


def _by_category(panel: _Panel, aes: Aes) -> Tuple[List[int], List[np.ndarray]]:
    xcol = panel.column(aes.x, "x")
    y = panel.values(aes.y, "y")
    positions, arrays = [], []
    for i, lv in enumerate(panel.category_ticks(xcol)):
        arr = y[(panel.data[xcol] == lv).to_numpy()].dropna().to_numpy(dtype=float)
        if len(arr):
            positions.append(i)
            arrays.append(arr)
    return positions, arrays


@dataclass(frozen=True)
class Boxplot(Layer):
    alpha: float = 1.0
    fill: str = "white"
    width: float = 0.6
    aes: Optional[Aes] = None

    def draw(self, panel, aes):
        positions, arrays = _by_category(panel, aes)
        if not arrays:
            return
        bp = panel.ax.boxplot(arrays, positions=positions, widths=self.width, patch_artist=True,
                              manage_ticks=False, zorder=panel.zorder,
                              medianprops={"color": "black"},
                              flierprops={"marker": "o", "markersize": 3})
        for box in bp["boxes"]:
            box.set_facecolor(to_rgba(self.fill, self.alpha))
            box.set_edgecolor("black")


@dataclass(frozen=True)
class Violin(Layer):
    alpha: float = 0.7
    fill: str = "#BDBDBD"
    width: float = 0.8
    aes: Optional[Aes] = None

    def draw(self, panel, aes):
        positions, arrays = _by_category(panel, aes)
        # a density needs spread
        keep = [(p, a) for p, a in zip(positions, arrays) if len(a) > 1 and np.ptp(a) > 0]
        if not keep:
            return
        parts = panel.ax.violinplot([a for _, a in keep], positions=[p for p, _ in keep],
                                    widths=self.width, showmedians=True)
        for body in parts["bodies"]:
            body.set_facecolor(self.fill)
            body.set_edgecolor("black")
            body.set_alpha(self.alpha)
            body.set_zorder(panel.zorder)


def _marker_area(size: float) -> float:
    return (size * 3.0) ** 2


@dataclass(frozen=True)
class Point(Layer):
    alpha: float = 1.0
    color: Optional[str] = None
    size: float = 1.5
    aes: Optional[Aes] = None

    def _x(self, panel: _Panel, aes: Aes, data: pd.DataFrame) -> np.ndarray:
        x, _ = panel.x_positions(aes.x, data)
        return x

    def draw(self, panel, aes):
        const_x = aes.x is not None and not isinstance(aes.x, str)
        const_y = aes.y is not None and not isinstance(aes.y, str)
        if const_x and const_y:
            panel.ax.scatter([aes.x], [aes.y], s=_marker_area(self.size), color=self.color or "black",
                             alpha=self.alpha, zorder=panel.zorder)
            return
        panel.values(aes.x, "x")
        panel.values(aes.y, "y")
        for sub, style in panel.groups(panel.data, aes.color, aes.shape, self.color or "black"):
            panel.ax.scatter(self._x(panel, aes, sub), panel.values(aes.y, "y", sub).to_numpy(),
                             s=_marker_area(self.size), color=self.color or style["color"],
                             marker=style["marker"], alpha=self.alpha, label=style["label"],
                             zorder=panel.zorder)


@dataclass(frozen=True)
class Jitter(Point):
    """Points with random horizontal offset; handy over boxplots."""
    width: float = 0.2
    seed: Optional[int] = 0

    def _x(self, panel, aes, data):
        x = super()._x(panel, aes, data)
        if np.issubdtype(x.dtype, np.datetime64):
            return x
        rng = np.random.default_rng(self.seed)
        return x.astype(float) + rng.uniform(-self.width, self.width, len(x))


def _sorted_xy(sub: pd.DataFrame, aes: Aes) -> Tuple[np.ndarray, np.ndarray]:
    ordered = sub[[aes.x, aes.y]].dropna().sort_values(aes.x, kind="mergesort")
    return ordered[aes.x].to_numpy(), ordered[aes.y].to_numpy(dtype=float)


@dataclass(frozen=True)
class Line(Layer):
    linewidth: float = 1.5
    color: Optional[str] = None
    aes: Optional[Aes] = None

    def draw(self, panel, aes):
        panel.column(aes.x, "x")
        panel.column(aes.y, "y")
        for sub, style in panel.groups(panel.data, aes.color, default_color=self.color or "black"):
            x, y = _sorted_xy(sub, aes)
            panel.ax.plot(x, y, color=self.color or style["color"], linewidth=self.linewidth,
                          label=style["label"], zorder=panel.zorder)


@dataclass(frozen=True)
class Smooth(Layer):
    """
    Trend line per color group:
      method="loess"    local linear regression over a `span` share of the points (statsmodels lowess)
      method="lm"       least-squares straight line
      method="rolling"  centered rolling mean over `window` points
    loess and lm are fitted on log10 data under log scales.
    """
    method: str = "loess"
    span: float = 0.75
    iterations: int = 0
    window: int = 7
    color: Optional[str] = None
    linewidth: float = 1.5
    n_points: int = 80
    aes: Optional[Aes] = None

    def __post_init__(self):
        if self.method not in ("loess", "lm", "rolling"):
            raise InvalidChartError(f"Smooth method must be 'loess', 'lm' or 'rolling', got {self.method!r}")
        if not 0 < self.span <= 1:
            raise InvalidChartError("Smooth span must be in (0, 1]")
        if self.iterations < 0:
            raise InvalidChartError("Smooth iterations must be >= 0")
        if self.window < 1:
            raise InvalidChartError("Smooth window must be >= 1")

    def _fit(self, x: np.ndarray, y: np.ndarray, log_x: bool, log_y: bool):
        is_date = np.issubdtype(x.dtype, np.datetime64)
        xf, yf = _as_float(x), y.astype(float)
        ok = np.isfinite(xf) & np.isfinite(yf)
        if log_x:
            ok &= xf > 0
        if log_y:
            ok &= yf > 0
        xf, yf = xf[ok], yf[ok]
        if len(np.unique(xf)) < 2:
            return None
        xt = np.log10(xf) if log_x else xf
        yt = np.log10(yf) if log_y else yf

        if self.method == "lm":
            model = LinearRegression().fit(xt.reshape(-1, 1), yt)
            grid = np.linspace(xt.min(), xt.max(), self.n_points)
            pred = model.predict(grid.reshape(-1, 1))
        else:
            fitted = lowess(yt, xt, frac=self.span, it=self.iterations, return_sorted=True)
            fitted = fitted[np.isfinite(fitted[:, 1])]
            grid, pred = fitted[:, 0], fitted[:, 1]

        gx = 10 ** grid if log_x else grid
        gy = 10 ** pred if log_y else pred
        if is_date:
            gx = pd.DatetimeIndex(mdates.num2date(gx)).tz_convert(None)
        return gx, gy

    def draw(self, panel, aes):
        panel.column(aes.x, "x")
        panel.column(aes.y, "y")
        for sub, style in panel.groups(panel.data, aes.color, default_color=self.color or "#3366FF"):
            x, y = _sorted_xy(sub, aes)
            if len(x) == 0:
                continue
            if self.method == "rolling":
                y = pd.Series(y).rolling(self.window, min_periods=1, center=True).mean().to_numpy()
            else:
                fitted = self._fit(x, y, "x" in panel.ctx.log_axes, "y" in panel.ctx.log_axes)
                if fitted is None:
                    continue
                x, y = fitted
            panel.ax.plot(x, y, color=self.color or style["color"], linewidth=self.linewidth,
                          label=style["label"], zorder=panel.zorder)


@dataclass(frozen=True)
class Area(Layer):
    """
    position="stack"     groups stacked on top of each other
    position="identity"  groups overlap (use alpha)
    position="fill"      stacked shares of the per-x total
    """
    position: str = "stack"
    alpha: float = 1.0
    aes: Optional[Aes] = None

    def __post_init__(self):
        if self.position not in ("stack", "identity", "fill"):
            raise InvalidChartError(f"Area position must be stack, identity or fill, got {self.position!r}")

    def draw(self, panel, aes):
        panel.column(aes.x, "x")
        panel.column(aes.y, "y")
        data = panel.data
        if data.empty:
            return
        if not aes.fill:
            x, y = _sorted_xy(data, aes)
            panel.ax.fill_between(x, 0, y, color="#595959", alpha=self.alpha, zorder=panel.zorder)
            return

        panel.column(aes.fill, "fill")
        levels = panel.ctx.levels(aes.fill)
        colors = panel.ctx.colors(aes.fill)
        table = (data.pivot_table(index=aes.x, columns=aes.fill, values=aes.y, aggfunc="sum", observed=True)
                     .reindex(columns=levels)
                     .fillna(0.0)
                     .sort_index())
        table = table.loc[:, [lv for lv in levels if lv in table.columns and (table[lv] != 0).any()]]
        if table.empty:
            return
        if self.position == "fill":
            totals = table.sum(axis=1).replace(0, np.nan)
            table = table.div(totals, axis=0).fillna(0.0)
        panel.legend_title = aes.fill

        x = table.index.to_numpy()
        if self.position == "identity":
            for lv in table.columns:
                panel.ax.fill_between(x, 0, table[lv].to_numpy(dtype=float), color=colors[lv],
                                      alpha=self.alpha, label=str(lv), zorder=panel.zorder)
        else:
            panel.ax.stackplot(x, table.to_numpy(dtype=float).T, labels=[str(c) for c in table.columns],
                               colors=[colors[c] for c in table.columns], alpha=self.alpha,
                               zorder=panel.zorder)


def _intercept(v: Any) -> Any:
    if isinstance(v, (str, date, np.datetime64)):
        return pd.Timestamp(v).to_pydatetime()
    return v


def _linestyle(linetype: str) -> Any:
    try:
        return LINETYPES[linetype]
    except KeyError:
        raise InvalidChartError(f"Unknown linetype {linetype!r}; use one of {sorted(LINETYPES)}") from None


@dataclass(frozen=True)
class VLine(Layer):
    xintercept: Any = None
    color: str = "black"
    linetype: str = "solid"
    linewidth: float = 1.0
    aes: Optional[Aes] = None

    def __post_init__(self):
        if self.xintercept is None:
            raise InvalidChartError("VLine needs an xintercept")
        _linestyle(self.linetype)

    def draw(self, panel, aes):
        panel.ax.axvline(_intercept(self.xintercept), color=self.color, linestyle=_linestyle(self.linetype),
                         linewidth=self.linewidth, zorder=panel.zorder)


@dataclass(frozen=True)
class HLine(Layer):
    yintercept: Any = None
    color: str = "black"
    linetype: str = "solid"
    linewidth: float = 1.0
    aes: Optional[Aes] = None

    def __post_init__(self):
        if self.yintercept is None:
            raise InvalidChartError("HLine needs a yintercept")
        _linestyle(self.linetype)

    def draw(self, panel, aes):
        panel.ax.axhline(_intercept(self.yintercept), color=self.color, linestyle=_linestyle(self.linetype),
                         linewidth=self.linewidth, zorder=panel.zorder)


# ----------------------------
# Scales, facets, labels, themes
# ----------------------------
class Scale:
    def apply(self, ax: plt.Axes) -> None:
        raise NotImplementedError


def _check_axis(axis: str) -> None:
    if axis not in ("x", "y"):
        raise InvalidChartError(f"axis must be 'x' or 'y', got {axis!r}")


@dataclass(frozen=True)
class ScaleLog10(Scale):
    axis: str = "x"

    def __post_init__(self):
        _check_axis(self.axis)

    def apply(self, ax):
        if self.axis == "x":
            ax.set_xscale("log", nonpositive="mask")
        else:
            ax.set_yscale("log", nonpositive="mask")


BREAKS_RX = re.compile(r"^\s*(\d+)?\s*(day|week|month|year)s?\s*$", re.I)


def parse_breaks(breaks: str) -> Tuple[int, str]:
    """'1 month' -> (1, 'month'); 'week' -> (1, 'week')."""
    m = BREAKS_RX.match(breaks or "")
    if not m:
        raise InvalidChartError(f"Cannot understand date breaks {breaks!r}; use e.g. '1 month' or '2 weeks'")
    n = int(m.group(1) or 1)
    if n < 1:
        raise InvalidChartError("date breaks interval must be >= 1")
    return n, m.group(2).lower()


@dataclass(frozen=True)
class ScaleDate(Scale):
    labels: str = "%m/%y"
    breaks: str = "1 month"

    def __post_init__(self):
        parse_breaks(self.breaks)

    def locator(self) -> mdates.DateLocator:
        n, unit = parse_breaks(self.breaks)
        if unit == "day":
            return mdates.DayLocator(interval=n)
        if unit == "week":
            return mdates.WeekdayLocator(byweekday=mdates.MO, interval=n)
        if unit == "month":
            return mdates.MonthLocator(interval=n)
        return mdates.YearLocator(base=n)

    def apply(self, ax):
        ax.xaxis.set_major_locator(self.locator())
        ax.xaxis.set_major_formatter(mdates.DateFormatter(self.labels))


@dataclass(frozen=True)
class Limits(Scale):
    axis: str = "y"
    lower: Optional[float] = None
    upper: Optional[float] = None

    def __post_init__(self):
        _check_axis(self.axis)

    def apply(self, ax):
        if self.axis == "x":
            ax.set_xlim(self.lower, self.upper)
        else:
            ax.set_ylim(self.lower, self.upper)


@dataclass(frozen=True)
class FacetWrap:
    column: str
    ncol: Optional[int] = None


@dataclass(frozen=True)
class Labels:
    x: Optional[str] = None
    y: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None


class Theme:
    def apply(self, ax: plt.Axes) -> None:
        ax.set_facecolor(GREY_PANEL)
        ax.grid(True, color="white", linewidth=1.0)
        ax.set_axisbelow(True)
        for s in ax.spines.values():
            s.set_visible(False)


class ThemeBW(Theme):
    def apply(self, ax):
        ax.set_facecolor("white")
        ax.grid(True, color="#D9D9D9", linewidth=0.8)
        ax.set_axisbelow(True)
        for s in ax.spines.values():
            s.set_visible(True)
            s.set_color("#333333")


Component = Union[Layer, Scale, FacetWrap, Labels, Theme]


# ----------------------------
# Chart
# ----------------------------
@dataclass(frozen=True, eq=False)
class Chart:
    data: pd.DataFrame
    aes: Aes = field(default_factory=Aes)
    components: Tuple[Component, ...] = ()

    def __add__(self, component: Component) -> "Chart":
        if not isinstance(component, (Layer, Scale, FacetWrap, Labels, Theme)):
            raise InvalidChartError(f"Cannot add {type(component).__name__} to a chart")
        return replace(self, components=self.components + (component,))

    # component views
    @property
    def layers(self) -> List[Layer]:
        return [c for c in self.components if isinstance(c, Layer)]

    @property
    def scales(self) -> List[Scale]:
        return [c for c in self.components if isinstance(c, Scale)]

    @property
    def facet(self) -> Optional[FacetWrap]:
        facets = [c for c in self.components if isinstance(c, FacetWrap)]
        return facets[-1] if facets else None

    @property
    def labels(self) -> Labels:
        """Later Labels components override earlier ones field by field."""
        merged: Dict[str, Optional[str]] = {f.name: None for f in fields(Labels)}
        for c in self.components:
            if isinstance(c, Labels):
                merged.update({k: v for k, v in vars(c).items() if v is not None})
        return Labels(**merged)

    @property
    def theme(self) -> Theme:
        themes = [c for c in self.components if isinstance(c, Theme)]
        return themes[-1] if themes else Theme()

    # rendering
    def _log_axes(self) -> List[str]:
        axes = []
        for sc in self.scales:
            if not isinstance(sc, ScaleLog10):
                continue
            axes.append(sc.axis)
            cols = {getattr(self.aes.merge(l.aes), sc.axis) for l in self.layers} | {getattr(self.aes, sc.axis)}
            for col in cols:
                if isinstance(col, str) and col in self.data.columns:
                    n_bad = int((pd.to_numeric(self.data[col], errors="coerce") <= 0).sum())
                    if n_bad:
                        logger.warning(f"{n_bad} non-positive values of '{col}' are not shown on the log10 {sc.axis} axis")
        return axes

    def _draw_panel(self, ax: plt.Axes, data: pd.DataFrame, ctx: _Context) -> _Panel:
        panel = _Panel(ax, data, ctx)
        for i, layer in enumerate(self.layers):
            panel.zorder = 2 + i
            layer.draw(panel, self.aes.merge(layer.aes))
        for sc in self.scales:
            sc.apply(ax)
        self.theme.apply(ax)
        return panel

    def _axis_titles(self, panel: Optional[_Panel]) -> Tuple[str, str]:
        first = self.aes.merge(self.layers[0].aes) if self.layers else self.aes
        x = first.x if isinstance(first.x, str) else ""
        y = first.y if isinstance(first.y, str) else ((panel.default_y_label if panel else None) or "")
        lab = self.labels
        return (lab.x if lab.x is not None else x), (lab.y if lab.y is not None else y)

    def _legend(self, ax: plt.Axes, panel: _Panel) -> None:
        handles, labels = ax.get_legend_handles_labels()
        unique = dict(zip(labels, handles))
        if unique:
            ax.legend(list(unique.values()), list(unique.keys()), title=panel.legend_title,
                      fontsize=9, frameon=False)

    def render(self, figsize: Optional[Tuple[float, float]] = None) -> plt.Figure:
        """Draw every component onto a new figure; the figure is closed again if drawing fails."""
        ctx = _Context(self.data, self._log_axes())
        facet = self.facet
        if facet is None:
            levels = None
            fig, axes = plt.subplots(figsize=figsize or (8, 5.5))
        else:
            if facet.column not in self.data.columns:
                raise InvalidChartError(f"Facet column {facet.column!r} not in data")
            levels = ctx.levels(facet.column) or [None]
            ncol = facet.ncol or int(np.ceil(np.sqrt(len(levels))))
            nrow = int(np.ceil(len(levels) / ncol))
            fig, axes = plt.subplots(nrow, ncol, figsize=figsize or (4 * ncol + 1, 3.5 * nrow + 0.5),
                                     sharex=True, sharey=True, squeeze=False)
        try:
            self._draw_figure(fig, axes, levels, ctx)
        except BaseException:
            plt.close(fig)
            raise
        return fig

    def _draw_figure(self, fig: plt.Figure, axes: Any, levels: Optional[List[Any]], ctx: _Context) -> None:
        if levels is None:
            panel = self._draw_panel(axes, self.data, ctx)
            xl, yl = self._axis_titles(panel)
            axes.set_xlabel(xl)
            axes.set_ylabel(yl)
            self._legend(axes, panel)
        else:
            column = self.facet.column
            panel = None
            for ax, lv in zip(axes.flat, levels):
                sub = self.data if lv is None else self.data[(self.data[column] == lv).to_numpy()]
                panel = self._draw_panel(ax, sub, ctx)
                ax.set_title(str(lv), fontsize=10)
            for ax in list(axes.flat)[len(levels):]:
                ax.set_visible(False)
            xl, yl = self._axis_titles(panel)
            fig.supxlabel(xl)
            fig.supylabel(yl)
            if panel is not None:
                self._legend(panel.ax, panel)

        lab = self.labels
        if lab.title or lab.subtitle:
            block = "\n".join(t for t in (lab.title, lab.subtitle) if t)
            fig.suptitle(block, x=0.02, ha="left", fontsize=13)
        fig.tight_layout()

    def save(self, path: str, *, dpi: int = 150, figsize: Optional[Tuple[float, float]] = None) -> str:
        """Render and write the image (format from the extension); the figure is always closed."""
        fig = self.render(figsize)
        try:
            _ensure_dir(path)
            fig.savefig(path, dpi=dpi, bbox_inches="tight")
        finally:
            plt.close(fig)
        logger.info(f"Chart saved: {path}")
        return path

    def show(self, figsize: Optional[Tuple[float, float]] = None) -> None:
        self.render(figsize)
        plt.show()
