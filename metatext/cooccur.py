from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
import pandas as pd
from scipy import sparse

from .config import MetaTextConfig


def _incidence(df: pd.DataFrame, item: str, feature: str) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """Binary feature x item matrix; items come back sorted."""
    pairs = df[[feature, item]].dropna().drop_duplicates()
    feat_codes, feats = pd.factorize(pairs[feature])
    item_codes, items = pd.factorize(pairs[item], sort=True)
    matrix = sparse.csr_matrix(
        (np.ones(len(pairs), dtype=np.int64), (feat_codes, item_codes)),
        shape=(len(feats), len(items)),
    )
    return matrix, np.asarray(items)


def pairwise_count(df: pd.DataFrame, item: str = "word", feature: str = "id") -> pd.DataFrame:
    """Count features shared by each unordered pair of items, once per pair."""
    columns = ["item1", "item2", "n"]
    if df.empty:
        return pd.DataFrame(columns=columns)
    matrix, items = _incidence(df, item, feature)
    shared = sparse.triu(matrix.T @ matrix, k=1).tocoo()
    result = pd.DataFrame(
        {
            "item1": items[shared.row],
            "item2": items[shared.col],
            "n": shared.data.astype(np.int64),
        }
    )
    result = result[result["n"] > 0]
    return result.sort_values(
        ["n", "item1", "item2"], ascending=[False, True, True]
    ).reset_index(drop=True)


def pairwise_cor(
    df: pd.DataFrame, item: str = "keyword", feature: str = "id", min_count: int = 0
) -> pd.DataFrame:
    """Phi coefficient between item presence vectors across features."""
    columns = ["item1", "item2", "correlation"]
    if df.empty:
        return pd.DataFrame(columns=columns)
    matrix, items = _incidence(df, item, feature)
    n_features = matrix.shape[0]
    item_counts = np.asarray(matrix.sum(axis=0)).ravel()
    # items present everywhere have no variance
    keep = (item_counts >= min_count) & (item_counts < n_features)
    if keep.sum() < 2:
        return pd.DataFrame(columns=columns)
    matrix = matrix[:, np.flatnonzero(keep)]
    items = items[keep]
    counts = item_counts[keep].astype(float)
    shared = (matrix.T @ matrix).toarray().astype(float)
    numerator = n_features * shared - np.outer(counts, counts)
    spread = counts * (n_features - counts)
    denominator = np.sqrt(np.outer(spread, spread))
    phi = numerator / denominator
    rows, cols = np.triu_indices(len(items), k=1)
    result = pd.DataFrame(
        {"item1": items[rows], "item2": items[cols], "correlation": phi[rows, cols]}
    )
    return result.sort_values(
        ["correlation", "item1", "item2"], ascending=[False, True, True]
    ).reset_index(drop=True)


def cooccurrence_tables(
    title_tokens: pd.DataFrame,
    desc_tokens: pd.DataFrame,
    keywords: pd.DataFrame,
    config: MetaTextConfig,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    title_pairs = pairwise_count(title_tokens, item="word", feature="id")
    desc_pairs = pairwise_count(desc_tokens, item="word", feature="id")
    keyword_cors = pairwise_cor(
        keywords, item="keyword", feature="id", min_count=config.min_keyword_count
    )
    outputs = {
        "metatext_title_word_pairs.parquet": title_pairs[title_pairs["n"] >= config.min_pair_count],
        "metatext_description_word_pairs.parquet": desc_pairs[
            desc_pairs["n"] >= config.min_pair_count
        ],
        "metatext_keyword_correlations.parquet": keyword_cors,
    }
    for name, table in outputs.items():
        path = config.output_path(name)
        table.to_parquet(path, index=False)
        logging.info("Wrote %d rows to %s", len(table), path)
    return title_pairs, desc_pairs, keyword_cors
