from __future__ import annotations

import collections
import logging
from typing import FrozenSet, Iterable

import pandas as pd
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from .config import MetaTextConfig


def normalize_token(token: str) -> str:
    return token.strip().lower()


def load_stop_words(config: MetaTextConfig, extra: Iterable[str] = ()) -> FrozenSet[str]:
    words = {normalize_token(t) for t in ENGLISH_STOP_WORDS}
    words.update(normalize_token(t) for t in config.stop_words)
    words.update(normalize_token(t) for t in extra)
    return frozenset(w for w in words if w)


def is_stop_word(token: str, stop_words: FrozenSet[str]) -> bool:
    return normalize_token(token) in stop_words


def stop_word_report(
    tokens_raw: pd.DataFrame, tokens_kept: pd.DataFrame, config: MetaTextConfig, field: str
) -> None:
    raw_counts = collections.Counter(tokens_raw["word"])
    kept_counts = collections.Counter(tokens_kept["word"])
    removed_counts = raw_counts - kept_counts
    total = sum(raw_counts.values())
    removed_total = sum(removed_counts.values())
    lines = [
        f"# Stop word report ({field})",
        f"Run: {config.run_id}",
        f"Tokens before filtering: {total}",
        f"Tokens removed: {removed_total}"
        + (f" ({removed_total / total:.1%})" if total else ""),
        "",
        "## Top removed tokens",
    ]
    for tok, count in removed_counts.most_common(25):
        lines.append(f"- {tok}: {count}")
    lines.append("\n## Top kept tokens")
    for tok, count in kept_counts.most_common(25):
        lines.append(f"- {tok}: {count}")
    report_path = config.output_path(f"metatext_stop_word_report_{field}.md")
    report_path.write_text("\n".join(lines))
    logging.info("Wrote stop word report to %s", report_path)
