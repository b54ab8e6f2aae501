from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Iterable

import pandas as pd

from site_news_scraper.types import CanonicalItem


ITEM_COLUMNS = [
    "id",
    "title",
    "url",
    "published_at",
    "summary",
    "author",
    "image_url",
    "source",
    "source_url",
    "tags",
]


def items_to_frame(items: Iterable[CanonicalItem]) -> pd.DataFrame:
    rows = []
    for it in items:
        d = asdict(it)
        d["tags"] = list(d.get("tags") or ())
        rows.append(d)
    df = pd.DataFrame(rows, columns=ITEM_COLUMNS)
    df["published_at"] = pd.to_datetime(df["published_at"], utc=True, errors="coerce")
    return df


def write_frame(path: Path, df: pd.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        try:
            df.to_parquet(path, index=False)
            return
        except ImportError:
            # no parquet engine installed: fall back to CSV next to parquet
            df.to_csv(path.with_suffix(".csv"), index=False, encoding="utf-8")
            return
    if suffix in {".jsonl", ".json"}:
        df.to_json(path, orient="records", lines=True, date_format="iso", force_ascii=False)
        return

    # default to csv
    df.to_csv(path, index=False, encoding="utf-8")
