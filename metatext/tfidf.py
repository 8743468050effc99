from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from .config import MetaTextConfig
from .tokens import keyword_frequencies


def bind_tf_idf(
    counts: pd.DataFrame, document: str = "id", term: str = "word", n: str = "n"
) -> pd.DataFrame:
    """Add tf, idf and tf_idf columns to a (document, term, n) table.

    tf is the term count over the document's total count; idf is the natural
    log of the number of documents over the number containing the term.
    """
    table = counts[[document, term, n]].copy()
    if table.empty:
        for col in ["tf", "idf", "tf_idf"]:
            table[col] = pd.Series(dtype=float)
        return table
    totals = table.groupby(document)[n].transform("sum")
    table["tf"] = table[n] / totals
    n_documents = table[document].nunique()
    doc_freq = table.groupby(term)[document].transform("nunique")
    table["idf"] = np.log(n_documents / doc_freq)
    table["tf_idf"] = table["tf"] * table["idf"]
    return table.sort_values(
        ["tf_idf", document, term], ascending=[False, True, True]
    ).reset_index(drop=True)


def default_keywords(keywords: pd.DataFrame, n: int = 6) -> List[str]:
    if keywords.empty:
        return []
    return keyword_frequencies(keywords)["keyword"].head(n).tolist()


def top_tfidf_by_keyword(
    tfidf: pd.DataFrame,
    keywords: pd.DataFrame,
    selected: Optional[List[str]] = None,
    top_n: int = 10,
) -> pd.DataFrame:
    """Highest tf-idf words among documents tagged with each selected keyword."""
    columns = ["keyword", "word", "tf_idf"]
    if tfidf.empty or keywords.empty:
        return pd.DataFrame(columns=columns)
    joined = tfidf.merge(keywords, on="id", how="inner")
    if selected:
        joined = joined[joined["keyword"].isin(selected)]
    joined = joined.sort_values(["keyword", "tf_idf", "word"], ascending=[True, False, True])
    # a word can score in many documents under one keyword; keep its best score
    joined = joined.drop_duplicates(subset=["keyword", "word"], keep="first")
    top = joined.groupby("keyword", sort=True).head(top_n)
    return top[columns].reset_index(drop=True)


def run_tfidf(desc_counts: pd.DataFrame, keywords: pd.DataFrame, config: MetaTextConfig):
    tfidf = bind_tf_idf(desc_counts)
    selected = config.tfidf_keywords or default_keywords(keywords)
    if config.uppercase_keywords:
        selected = [kw.upper() for kw in selected]
    by_keyword = top_tfidf_by_keyword(tfidf, keywords, selected, top_n=config.top_n)
    path = config.output_path("metatext_description_tfidf.parquet")
    tfidf.to_parquet(path, index=False)
    logging.info("Wrote tf-idf table with %d rows to %s", len(tfidf), path)
    kw_path = config.output_path("metatext_tfidf_by_keyword.parquet")
    by_keyword.to_parquet(kw_path, index=False)
    logging.info("Wrote tf-idf words for %d keywords to %s", len(selected), kw_path)
    return tfidf, by_keyword
