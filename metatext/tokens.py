from __future__ import annotations

import logging
import re
from typing import FrozenSet, List, Tuple

import pandas as pd

from .stopwords import is_stop_word

# letters/digits with inner apostrophes or dots, so "v1.0" and "earth's" survive
TOKEN_RE = re.compile(r"[^\W_]+(?:['.][^\W_]+)*")


def tokenize_text(text) -> List[str]:
    if not isinstance(text, str) or not text.strip():
        return []
    return TOKEN_RE.findall(text.lower())


def unnest_tokens(df: pd.DataFrame, column: str, id_column: str = "id") -> pd.DataFrame:
    """One row per token occurrence, in document order."""
    rows = []
    for doc_id, text in zip(df[id_column], df[column]):
        for word in tokenize_text(text):
            rows.append({id_column: doc_id, "word": word})
    return pd.DataFrame(rows, columns=[id_column, "word"])


def remove_stop_words(tokens: pd.DataFrame, stop_words: FrozenSet[str]) -> pd.DataFrame:
    stopped = tokens["word"].map(lambda w: is_stop_word(w, stop_words)).astype(bool)
    kept = tokens[~stopped]
    return kept.reset_index(drop=True)


def count_tokens(tokens: pd.DataFrame, id_column: str = "id") -> pd.DataFrame:
    if tokens.empty:
        return pd.DataFrame(columns=[id_column, "word", "n"])
    counts = tokens.groupby([id_column, "word"]).size().rename("n").reset_index()
    counts = counts.sort_values(
        ["n", id_column, "word"], ascending=[False, True, True], kind="mergesort"
    )
    return counts.reset_index(drop=True)


def word_frequencies(tokens: pd.DataFrame) -> pd.DataFrame:
    freq = tokens["word"].value_counts().rename_axis("word").rename("n").reset_index()
    return freq.sort_values(["n", "word"], ascending=[False, True]).reset_index(drop=True)


def keyword_frequencies(keywords: pd.DataFrame) -> pd.DataFrame:
    freq = keywords["keyword"].value_counts().rename_axis("keyword").rename("n").reset_index()
    return freq.sort_values(["n", "keyword"], ascending=[False, True]).reset_index(drop=True)


def tokenize_field(
    table: pd.DataFrame, field: str, stop_words: FrozenSet[str]
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    raw = unnest_tokens(table, field)
    kept = remove_stop_words(raw, stop_words)
    logging.info(
        "Tokenized %s: %d tokens, %d after stop word removal", field, len(raw), len(kept)
    )
    return raw, kept
