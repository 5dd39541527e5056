import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from postviz import log as postviz_log

TYPES = ["link", "photo", "status", "video"]
SENTIMENTS = ["negative", "neutral", "positive"]


def make_posts(n: int = 60, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    return pd.DataFrame({
        "date": pd.date_range("2016-05-01", periods=n, freq="2D"),
        "type": pd.Categorical([TYPES[i % 4] for i in range(n)]),
        "sentiment": pd.Categorical([SENTIMENTS[i % 3] for i in range(n)]),
        "likes_count_fb": rng.integers(0, 3000, n),
        "comments_count_fb": rng.integers(0, 800, n),
        "shares_count_fb": rng.integers(0, 400, n),
        "valence": rng.normal(0.0, 1.0, n),
        "post_link": [f"https://www.facebook.com/snp/posts/{i}" for i in range(n)],
    })


@pytest.fixture
def posts() -> pd.DataFrame:
    return make_posts()


@pytest.fixture
def posts_csv(tmp_path, posts) -> str:
    """Same posts on disk, with messy header names and ISO date strings."""
    raw = posts.copy()
    raw["date"] = raw["date"].dt.strftime("%Y-%m-%d")
    raw = raw.rename(columns={"date": " Date", "type": "Type", "sentiment": "SENTIMENT "})
    path = tmp_path / "snp.csv"
    raw.to_csv(path, index=False)
    return str(path)


@pytest.fixture(autouse=True)
def _reset_plots_and_logging():
    logger = logging.getLogger(postviz_log.PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate, postviz_log._configured)
    yield
    plt.close("all")
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    postviz_log._configured = saved[3]
