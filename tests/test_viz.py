import logging
import os

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from postviz.errors import InvalidChartError, MissingFieldError
from postviz.metrics import aggregate_frame
from postviz.viz import (Aes, Area, Bar, Boxplot, Chart, FacetWrap, HLine, Histogram, Jitter, Labels,
                         Limits, Line, Point, ScaleDate, ScaleLog10, Smooth, ThemeBW, VLine, Violin,
                         parse_breaks)


def _visible_axes(fig):
    return [ax for ax in fig.axes if ax.get_visible()]


# --- building ---

def test_adding_components_returns_new_chart(posts):
    base = Chart(posts, Aes(x="comments_count_fb"))
    chart = base + Histogram(binwidth=100)
    assert base.components == ()
    assert len(chart.components) == 1
    assert chart.layers == [Histogram(binwidth=100)]


def test_only_components_can_be_added(posts):
    with pytest.raises(InvalidChartError):
        Chart(posts) + "geom_point"


def test_aes_merge_prefers_layer_mapping():
    merged = Aes(x="a", y="b", color="c").merge(Aes(y="z", fill="f"))
    assert merged == Aes(x="a", y="z", color="c", fill="f")


def test_later_labels_override_earlier_ones(posts):
    chart = Chart(posts) + Labels(x="Comments", title="First") + Labels(title="Second")
    assert chart.labels == Labels(x="Comments", title="Second")


@pytest.mark.parametrize("make", [
    lambda: Bar(position="sideways"),
    lambda: Area(position="dodge"),
    lambda: Smooth(method="spline"),
    lambda: Smooth(span=0),
    lambda: Smooth(iterations=-1),
    lambda: Smooth(window=0),
    lambda: ScaleLog10("z"),
    lambda: Limits("depth", 0, 1),
    lambda: ScaleDate(breaks="fortnightly"),
    lambda: VLine(xintercept=1, linetype="wavy"),
    lambda: VLine(),
    lambda: HLine(),
])
def test_bad_component_options(make):
    with pytest.raises(InvalidChartError):
        make()


@pytest.mark.parametrize("text,expected", [
    ("1 month", (1, "month")),
    ("2 weeks", (2, "week")),
    ("day", (1, "day")),
    (" 3 Years ", (3, "year")),
])
def test_parse_breaks(text, expected):
    assert parse_breaks(text) == expected


# --- rendering ---

def test_histogram_binwidth_sets_bins():
    df = pd.DataFrame({"n": [0, 50, 150, 250]})
    fig = (Chart(df, Aes(x="n")) + Histogram(binwidth=100)).render()
    ax = fig.axes[0]
    assert len(ax.patches) == 3
    assert ax.get_ylabel() == "count"
    assert ax.get_xlabel() == "n"


def test_histogram_with_mean_line_and_fill_groups(posts):
    mean = posts["comments_count_fb"].mean()
    chart = (Chart(posts, Aes(x="comments_count_fb"))
             + Histogram(binwidth=100, alpha=0.5, aes=Aes(fill="type"))
             + VLine(xintercept=mean, color="red", linetype="dashed"))
    ax = chart.render().axes[0]
    assert [t.get_text() for t in ax.get_legend().get_texts()] == ["link", "photo", "status", "video"]
    assert ax.get_legend().get_title().get_text() == "type"
    assert any(np.allclose(line.get_xdata(), [mean, mean]) for line in ax.get_lines())


def test_bar_fill_position_gives_proportions(posts):
    chart = Chart(posts, Aes(x="type", fill="sentiment")) + Bar(position="fill") + Labels(y="proportion")
    ax = chart.render().axes[0]
    heights = np.array([[rect.get_height() for rect in container] for container in ax.containers])
    assert heights.shape == (3, 4)
    assert np.allclose(heights.sum(axis=0), 1.0)
    assert ax.get_ylabel() == "proportion"
    assert [t.get_text() for t in ax.get_xticklabels()] == ["link", "photo", "status", "video"]


def test_bar_dodge_places_bars_side_by_side(posts):
    ax = (Chart(posts, Aes(x="type", fill="sentiment")) + Bar(position="dodge")).render().axes[0]
    lefts = sorted(rect.get_x() for container in ax.containers for rect in container)
    assert len(lefts) == 12
    assert len(set(np.round(lefts, 6))) == 12


def test_plain_bar_counts_each_category(posts):
    ax = (Chart(posts, Aes(x="type")) + Bar()).render().axes[0]
    assert [rect.get_height() for rect in ax.containers[0]] == [15, 15, 15, 15]


def test_boxplot_with_jitter_and_violin(posts):
    chart = (Chart(posts, Aes(x="type", y="valence"))
             + Jitter(alpha=0.3, aes=Aes(color="sentiment"))
             + Boxplot(alpha=0)
             + Violin(alpha=0.5))
    ax = chart.render().axes[0]
    assert len(ax.collections) >= 3 + 4   # 3 sentiment scatters + 4 violin bodies
    assert [t.get_text() for t in ax.get_xticklabels()] == ["link", "photo", "status", "video"]


def test_jitter_keeps_points_near_their_category(posts):
    ax = (Chart(posts, Aes(x="type", y="comments_count_fb")) + Jitter(width=0.2)).render().axes[0]
    xs = ax.collections[0].get_offsets()[:, 0]
    assert len(xs) == len(posts)
    assert np.all(np.abs(xs - np.round(xs)) <= 0.2)


def test_scatter_colored_and_shaped_by_type(posts):
    chart = Chart(posts, Aes(x="comments_count_fb", y="shares_count_fb", color="type", shape="type")) + Point()
    ax = chart.render().axes[0]
    assert len(ax.collections) == 4
    assert sum(len(c.get_offsets()) for c in ax.collections) == len(posts)


def test_constant_point_draws_single_marker(posts):
    mx, my = posts["comments_count_fb"].mean(), posts["likes_count_fb"].mean()
    chart = (Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb"))
             + Point()
             + Point(color="red", size=6, aes=Aes(x=mx, y=my)))
    ax = chart.render().axes[0]
    assert len(ax.collections) == 2
    assert np.allclose(ax.collections[1].get_offsets(), [[mx, my]])


def test_log_scales_warn_about_zeros_and_fit_lines(posts, caplog):
    df = posts.copy()
    df.loc[:2, "comments_count_fb"] = 0
    chart = (Chart(df, Aes(x="comments_count_fb", y="likes_count_fb", color="type"))
             + Point(alpha=0.5)
             + ScaleLog10("x") + ScaleLog10("y")
             + Smooth(method="lm")
             + ThemeBW())
    with caplog.at_level(logging.WARNING, logger="postviz"):
        ax = chart.render().axes[0]
    assert ax.get_xscale() == "log"
    assert ax.get_yscale() == "log"
    assert len(ax.get_lines()) == 4
    assert any("non-positive" in r.getMessage() for r in caplog.records)


def test_lm_smooth_follows_a_straight_line():
    df = pd.DataFrame({"x": np.arange(10.0), "y": 2 * np.arange(10.0) + 1})
    ax = (Chart(df, Aes(x="x", y="y")) + Smooth(method="lm")).render().axes[0]
    line = ax.get_lines()[0]
    assert np.allclose(line.get_ydata(), 2 * line.get_xdata() + 1)


def test_loess_follows_a_straight_line():
    df = pd.DataFrame({"x": np.arange(20.0), "y": 3 * np.arange(20.0) - 2})
    ax = (Chart(df, Aes(x="x", y="y")) + Smooth(method="loess")).render().axes[0]
    line = ax.get_lines()[0]
    assert len(line.get_xdata()) == len(df)
    assert np.allclose(line.get_ydata(), 3 * line.get_xdata() - 2)


def test_loess_trend_over_dates_draws_one_line_per_type(posts):
    chart = (Chart(posts, Aes(x="date", y="likes_count_fb", color="type"))
             + Smooth(method="loess") + Point(alpha=0.3))
    ax = chart.render().axes[0]
    assert len(ax.get_lines()) == 4
    xs = pd.to_datetime(np.asarray(ax.get_lines()[0].get_xdata()))
    assert xs.is_monotonic_increasing


def test_time_series_with_date_scale_and_limits(posts):
    chart = (Chart(posts, Aes(x="date", y="likes_count_fb", color="type"))
             + Smooth(method="rolling", window=5)
             + Point(alpha=0.3)
             + ScaleDate(labels="%m/%y", breaks="1 month")
             + Limits("y", 0, 2000))
    ax = chart.render().axes[0]
    assert isinstance(ax.xaxis.get_major_locator(), mdates.MonthLocator)
    assert ax.get_ylim() == (0, 2000)
    assert len(ax.get_lines()) == 4


def test_aggregated_line_and_areas(posts):
    totals = aggregate_frame(posts, "type", "date", "likes_count_fb", "month", value_name="total_likes")
    line_ax = (Chart(totals, Aes(x="date", y="total_likes", color="type")) + Line()).render().axes[0]
    assert len(line_ax.get_lines()) == 4
    for position in ("stack", "identity", "fill"):
        chart = Chart(totals, Aes(x="date", y="total_likes", fill="type")) + Area(position=position, alpha=0.8)
        ax = chart.render().axes[0]
        assert len(ax.collections) == 4
        plt.close(ax.figure)


def test_facet_wrap_makes_one_panel_per_level(posts):
    chart = (Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb"))
             + Point(alpha=0.5)
             + FacetWrap("type"))
    fig = chart.render()
    panels = _visible_axes(fig)
    assert len(panels) == 4
    assert [ax.get_title() for ax in panels] == ["link", "photo", "status", "video"]


def test_facet_wrap_hides_spare_cells(posts):
    fig = (Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb")) + Point()
           + FacetWrap("sentiment", ncol=2)).render()
    assert len(fig.axes) == 4
    assert len(_visible_axes(fig)) == 3


def test_unknown_columns_fail_loudly(posts):
    with pytest.raises(MissingFieldError):
        (Chart(posts, Aes(x="views_count_fb")) + Histogram()).render()
    with pytest.raises(InvalidChartError):
        (Chart(posts, Aes(x="comments_count_fb")) + Point() + FacetWrap("region")).render()
    with pytest.raises(InvalidChartError):
        (Chart(posts, Aes(x="comments_count_fb")) + Point()).render()


def test_title_and_subtitle(posts):
    chart = (Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb")) + Point()
             + Labels(title="Comments and Likes", subtitle="One post per dot"))
    fig = chart.render()
    assert fig._suptitle.get_text() == "Comments and Likes\nOne post per dot"


def test_save_writes_file_and_closes_figure(tmp_path, posts):
    path = str(tmp_path / "nested" / "dir" / "my_plot.png")
    chart = Chart(posts, Aes(x="comments_count_fb", y="likes_count_fb", color="type")) + Point()
    assert chart.save(path, dpi=50) == path
    assert os.path.getsize(path) > 0
    assert plt.get_fignums() == []


def test_empty_chart_renders(posts):
    fig = Chart(posts).render()
    assert len(fig.axes) == 1


def test_failed_save_leaves_no_open_figure(tmp_path, posts):
    chart = Chart(posts, Aes(x="comments_count_fb", y="missing_col")) + Point()
    path = tmp_path / "broken.png"
    with pytest.raises(MissingFieldError):
        chart.save(str(path))
    assert plt.get_fignums() == []
    assert not path.exists()


def test_failed_facet_render_leaves_no_open_figure(posts):
    chart = Chart(posts, Aes(x="comments_count_fb", y="views_count_fb")) + Point() + FacetWrap("type")
    with pytest.raises(MissingFieldError):
        chart.render()
    assert plt.get_fignums() == []
