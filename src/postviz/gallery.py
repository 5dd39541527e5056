# src/postviz/gallery.py
# One function per chart of the walkthrough. Every recipe takes the post frame
# explicitly and returns an unrendered Chart.
from __future__ import annotations
from datetime import date
from typing import Dict, Optional
import pandas as pd

from .metrics import Period, aggregate_frame
from .viz import (Aes, Area, Bar, Boxplot, Chart, FacetWrap, HLine, Histogram, Jitter, Labels,
                  Limits, Line, Point, ScaleDate, ScaleLog10, Smooth, ThemeBW, VLine, Violin)

LIKES = "likes_count_fb"
COMMENTS = "comments_count_fb"
SHARES = "shares_count_fb"
EU_REFERENDUM = date(2016, 6, 23)


# ----------------------------
# Distributions
# ----------------------------
def counter_histogram(df: pd.DataFrame, column: str = COMMENTS, *, binwidth: float = 100,
                      fill: Optional[str] = None, alpha: float = 1.0, mark_mean: bool = False) -> Chart:
    chart = Chart(df, Aes(x=column)) + Histogram(binwidth=binwidth, fill=fill, alpha=alpha)
    if mark_mean:
        chart = chart + VLine(xintercept=float(df[column].mean()), color="red", linetype="dashed")
    return chart


def counter_histogram_by(df: pd.DataFrame, column: str = COMMENTS, group: str = "type",
                         *, binwidth: float = 100, alpha: float = 0.5) -> Chart:
    return Chart(df, Aes(x=column)) + Histogram(binwidth=binwidth, alpha=alpha, aes=Aes(fill=group))


# ----------------------------
# Categorical
# ----------------------------
def type_bar(df: pd.DataFrame, fill: Optional[str] = None, position: str = "stack") -> Chart:
    chart = Chart(df, Aes(x="type", fill=fill)) + Bar(position=position)
    if position == "fill":
        chart = chart + Labels(y="proportion")
    return chart


def counter_boxplot(df: pd.DataFrame, column: str = COMMENTS, *, with_points: bool = False) -> Chart:
    chart = Chart(df, Aes(x="type", y=column))
    if not with_points:
        return chart + Boxplot()
    return chart + Boxplot(alpha=0) + Jitter(alpha=0.3, color="tomato")


def valence_by_type(df: pd.DataFrame, *, violin: bool = False) -> Chart:
    """Jitter first so the box/violin is drawn over the points."""
    chart = Chart(df, Aes(x="type", y="valence")) + Jitter(alpha=0.4, aes=Aes(color="sentiment"))
    return chart + (Violin(alpha=0.5) if violin else Boxplot(alpha=0))


# ----------------------------
# Two counters
# ----------------------------
def counter_scatter(df: pd.DataFrame, x: str = COMMENTS, y: str = LIKES, *,
                    show_means: Optional[str] = None) -> Chart:
    """show_means: None, 'lines' (mean reference lines) or 'point' (one red mean marker)."""
    chart = Chart(df, Aes(x=x, y=y)) + Point()
    mx, my = float(df[x].mean()), float(df[y].mean())
    if show_means == "lines":
        chart = chart + VLine(xintercept=mx) + HLine(yintercept=my)
    elif show_means == "point":
        chart = chart + Point(color="red", size=6, aes=Aes(x=mx, y=my))
    return chart


def comments_vs_likes(df: pd.DataFrame, *, facet: bool = False, bw: bool = True) -> Chart:
    aes = Aes(x=COMMENTS, y=LIKES) if facet else Aes(x=COMMENTS, y=LIKES, color="type")
    chart = (Chart(df, aes)
             + Point(alpha=0.5)
             + ScaleLog10("x") + ScaleLog10("y")
             + Smooth(method="lm"))
    if facet:
        chart = chart + FacetWrap("type")
    else:
        chart = chart + Labels(x="Comments Count", y="Likes Count",
                               title="Comments and Likes", subtitle="One post per dot")
    return chart + ThemeBW() if bw else chart


def shares_vs_comments(df: pd.DataFrame) -> Chart:
    return (Chart(df, Aes(x=COMMENTS, y=SHARES, color="type", shape="type"))
            + Point(alpha=0.6)
            + ScaleLog10("x") + ScaleLog10("y")
            + Labels(x="Comments Count", y="Shares Count"))


# ----------------------------
# Time
# ----------------------------
def counter_over_time(df: pd.DataFrame, column: str = LIKES, *, style: str = "point",
                      ylim: Optional[float] = None) -> Chart:
    """style: 'point', 'line' (per type) or 'trend' (loess per type over the points)."""
    if style == "point":
        chart = Chart(df, Aes(x="date", y=column)) + Point()
    elif style == "line":
        chart = Chart(df, Aes(x="date", y=column, color="type")) + Line()
    else:
        chart = (Chart(df, Aes(x="date", y=column, color="type"))
                 + Smooth(method="loess") + Point(alpha=0.3))
    chart = chart + ScaleDate(labels="%m/%y", breaks="1 month")
    if ylim is not None:
        chart = chart + Limits("y", 0, ylim)
    return chart


def period_totals(df: pd.DataFrame, column: str = LIKES, period: Period = Period.MONTH,
                  value_name: Optional[str] = None) -> pd.DataFrame:
    return aggregate_frame(df, "type", "date", column, period, value_name=value_name)


def period_totals_chart(totals: pd.DataFrame, value_name: str, *, kind: str = "line",
                        position: str = "stack", alpha: float = 1.0) -> Chart:
    if kind == "line":
        return Chart(totals, Aes(x="date", y=value_name, color="type")) + Line()
    return Chart(totals, Aes(x="date", y=value_name, fill="type")) + Area(position=position, alpha=alpha)


def weekly_comments(df: pd.DataFrame) -> Chart:
    totals = period_totals(df, COMMENTS, Period.WEEK, value_name="total_comments")
    return (period_totals_chart(totals, "total_comments")
            + VLine(xintercept=EU_REFERENDUM, color="red", linetype="dashed")
            + Labels(y="Comments per week", title="Weekly comments by post type",
                     subtitle="Dashed line: EU referendum, 23 June 2016"))


# ----------------------------
# The whole sequence
# ----------------------------
def build_gallery(df: pd.DataFrame) -> Dict[str, Chart]:
    """Every chart of the walkthrough, in order, keyed by file-friendly name."""
    monthly = period_totals(df, LIKES, Period.MONTH, value_name="total_likes")
    charts: Dict[str, Chart] = {
        "comments_histogram": counter_histogram(df, COMMENTS),
        "comments_histogram_mean": counter_histogram(df, COMMENTS, mark_mean=True),
        "comments_histogram_red": counter_histogram(df, COMMENTS, fill="red", alpha=0.5),
        "comments_histogram_by_type": counter_histogram_by(df, COMMENTS, "type"),
        "likes_histogram": counter_histogram(df, LIKES, mark_mean=True),
        "type_bar": type_bar(df),
        "type_sentiment_bar": type_bar(df, fill="sentiment"),
        "type_sentiment_bar_dodge": type_bar(df, fill="sentiment", position="dodge"),
        "type_sentiment_bar_fill": type_bar(df, fill="sentiment", position="fill"),
        "comments_boxplot": counter_boxplot(df, COMMENTS),
        "comments_boxplot_points": counter_boxplot(df, COMMENTS, with_points=True),
    }
    if "valence" in df.columns:
        charts["valence_boxplot"] = valence_by_type(df)
        charts["valence_violin"] = valence_by_type(df, violin=True)
    charts.update({
        "comments_likes_scatter": counter_scatter(df),
        "comments_likes_mean_lines": counter_scatter(df, show_means="lines"),
        "comments_likes_mean_point": counter_scatter(df, show_means="point"),
        "comments_likes_by_type": comments_vs_likes(df),
        "comments_likes_facets": comments_vs_likes(df, facet=True),
        "shares_comments_by_type": shares_vs_comments(df),
        "likes_over_time": counter_over_time(df),
        "likes_over_time_by_type": counter_over_time(df, style="line"),
        "likes_trend_by_type": counter_over_time(df, style="trend", ylim=2000),
        "monthly_likes_line": period_totals_chart(monthly, "total_likes"),
        "monthly_likes_area_stack": period_totals_chart(monthly, "total_likes", kind="area"),
        "monthly_likes_area_identity": period_totals_chart(monthly, "total_likes", kind="area",
                                                           position="identity", alpha=0.8),
        "monthly_likes_area_fill": period_totals_chart(monthly, "total_likes", kind="area", position="fill"),
        "weekly_comments": weekly_comments(df),
    })
    return charts
