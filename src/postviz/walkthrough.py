# src/postviz/walkthrough.py
from __future__ import annotations
import argparse, os, sys
from dataclasses import replace
from typing import List, Optional

from .config import Settings
from .data_prep import counter_columns, dataset_overview, load_posts
from .errors import PostVizError
from .gallery import COMMENTS, LIKES, SHARES, build_gallery
from .log import configure_logging, get_logger
from .metrics import Period, aggregate, bucket_total, counter_stats, frequency_table, top_post, top_post_link

logger = get_logger(__name__)


def run(settings: Settings) -> List[str]:
    """
    Load the posts, log the descriptive statistics, then render and save every
    gallery chart into settings.output_dir. Returns the saved paths in order.
    """
    df = load_posts(settings.data_path)

    overview = dataset_overview(df)
    logger.info(f"Dataset: {overview['rows']} rows x {overview['columns']} columns")
    for col, dtype in overview["dtypes"].items():
        logger.debug(f"  {col}: {dtype}")

    counters = counter_columns(df)
    if counters:
        stats = counter_stats(df, counters)
        for col, row in stats.iterrows():
            logger.info(f"{col}: mean={row['mean']:.1f} max={row['max']}")

    for col in ("type", "sentiment"):
        shares = frequency_table(df, col, normalize=True)
        logger.info(f"{col} shares: " + ", ".join(f"{k}={v:.1%}" for k, v in shares.items()))

    for col in (LIKES, COMMENTS, SHARES):
        if col in df.columns:
            post = top_post(df, col)
            link = top_post_link(df, col) if "post_link" in df.columns else "n/a"
            logger.info(f"Most {col}: row {post.name} ({post[col]}) {link}")

    monthly = aggregate(df, "type", "date", LIKES, Period.MONTH)
    logger.info(f"Monthly likes: {len(monthly)} buckets, {bucket_total(monthly)} likes in total "
                f"(input total {df[LIKES].sum()})")

    saved = []
    for name, chart in build_gallery(df).items():
        path = os.path.join(settings.output_dir, f"{name}.{settings.figure_format}")
        saved.append(chart.save(path, dpi=settings.dpi))
    logger.info(f"Saved {len(saved)} charts to {settings.output_dir}")
    return saved


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Explore the social-media post dataset and save the charts.")
    parser.add_argument("data_path", nargs="?", help="CSV file (default: $POSTVIZ_DATA_PATH or data/snp.csv)")
    parser.add_argument("output_dir", nargs="?", help="where images go (default: $POSTVIZ_OUTPUT_DIR or plots)")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    overrides = {k: v for k, v in (("data_path", args.data_path), ("output_dir", args.output_dir)) if v}
    if overrides:
        settings = replace(settings, **overrides)

    configure_logging(settings.log_level)
    try:
        run(settings)
    except PostVizError as e:
        logger.error(f"Walkthrough failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
