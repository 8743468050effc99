from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.decomposition import LatentDirichletAllocation

from .config import MetaTextConfig
from .stopwords import normalize_token
from .tokens import count_tokens


def build_dtm(
    counts: pd.DataFrame, document: str = "id", term: str = "word", n: str = "n"
) -> Tuple[sparse.csr_matrix, np.ndarray, np.ndarray]:
    doc_codes, doc_ids = pd.factorize(counts[document], sort=True)
    term_codes, vocab = pd.factorize(counts[term], sort=True)
    dtm = sparse.csr_matrix(
        (counts[n].to_numpy(dtype=np.int64), (doc_codes, term_codes)),
        shape=(len(doc_ids), len(vocab)),
    )
    return dtm, np.asarray(doc_ids), np.asarray(vocab)


def fit_lda(
    dtm: sparse.csr_matrix, n_topics: int, seed: int, max_iter: int = 20
) -> LatentDirichletAllocation:
    if n_topics < 1:
        raise ValueError(f"n_topics must be at least 1, got {n_topics}")
    if dtm.shape[0] == 0 or dtm.shape[1] == 0 or dtm.nnz == 0:
        raise ValueError("Document-term matrix is empty; nothing to fit.")
    model = LatentDirichletAllocation(
        n_components=n_topics,
        learning_method="batch",
        max_iter=max_iter,
        random_state=seed,
    )
    model.fit(dtm)
    return model


def tidy_beta(model: LatentDirichletAllocation, vocab: Sequence[str]) -> pd.DataFrame:
    components = model.components_
    beta = components / components.sum(axis=1, keepdims=True)
    n_topics, n_terms = beta.shape
    return pd.DataFrame(
        {
            "topic": np.repeat(np.arange(n_topics), n_terms),
            "term": np.tile(np.asarray(vocab), n_topics),
            "beta": beta.ravel(),
        }
    )


def tidy_gamma(
    model: LatentDirichletAllocation, dtm: sparse.csr_matrix, doc_ids: Sequence[str]
) -> pd.DataFrame:
    gamma = model.transform(dtm)
    # renormalise to clear float drift
    gamma = gamma / gamma.sum(axis=1, keepdims=True)
    n_docs, n_topics = gamma.shape
    return pd.DataFrame(
        {
            "document": np.repeat(np.asarray(doc_ids), n_topics),
            "topic": np.tile(np.arange(n_topics), n_docs),
            "gamma": gamma.ravel(),
        }
    )


def top_terms(beta: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    ranked = beta.sort_values(["topic", "beta", "term"], ascending=[True, False, True])
    return ranked.groupby("topic", sort=True).head(n).reset_index(drop=True)


def assign_topics(gamma: pd.DataFrame) -> pd.DataFrame:
    """Most probable topic per document."""
    idx = gamma.groupby("document")["gamma"].idxmax()
    return gamma.loc[idx, ["document", "topic", "gamma"]].reset_index(drop=True)


def topic_keywords(
    gamma: pd.DataFrame, keywords: pd.DataFrame, threshold: float = 0.9, n: int = 5
) -> pd.DataFrame:
    columns = ["topic", "keyword", "n"]
    confident = gamma[gamma["gamma"] > threshold]
    if confident.empty or keywords.empty:
        return pd.DataFrame(columns=columns)
    joined = confident.merge(keywords, left_on="document", right_on="id", how="inner")
    counted = joined.groupby(["topic", "keyword"]).size().rename("n").reset_index()
    counted = counted.sort_values(["topic", "n", "keyword"], ascending=[True, False, True])
    return counted.groupby("topic", sort=True).head(n)[columns].reset_index(drop=True)


def select_topic_count(
    dtm: sparse.csr_matrix, candidates: Sequence[int], seed: int, max_iter: int = 20
) -> Tuple[pd.DataFrame, Optional[int]]:
    rows: List[Dict] = []
    for k in sorted(set(candidates)):
        model = fit_lda(dtm, k, seed, max_iter=max_iter)
        rows.append(
            {
                "k": k,
                "perplexity": float(model.perplexity(dtm)),
                "log_likelihood": float(model.score(dtm)),
            }
        )
        logging.info("Topic count %d: perplexity %.2f", k, rows[-1]["perplexity"])
    table = pd.DataFrame(rows, columns=["k", "perplexity", "log_likelihood"])
    if table.empty:
        return table, None
    best = int(table.loc[table["perplexity"].idxmin(), "k"])
    return table, best


def run_topic_model(
    desc_tokens: pd.DataFrame, keywords: pd.DataFrame, config: MetaTextConfig
) -> Dict[str, pd.DataFrame]:
    topic_stop = {normalize_token(t) for t in config.topic_stop_words}
    tokens = desc_tokens[~desc_tokens["word"].isin(topic_stop)]
    counts = count_tokens(tokens)
    if counts.empty:
        logging.warning("No description tokens left after stop word removal; skipping topic model.")
        return {}
    dtm, doc_ids, vocab = build_dtm(counts)
    logging.info("Document-term matrix: %d documents x %d terms", dtm.shape[0], dtm.shape[1])
    if dtm.nnz == 0:
        logging.warning("Document-term matrix is empty; skipping topic model.")
        return {}

    results: Dict[str, pd.DataFrame] = {}
    if config.topic_grid:
        grid, best = select_topic_count(
            dtm, config.topic_grid, config.random_seed, max_iter=config.lda_max_iter
        )
        results["topic_grid"] = grid
        logging.info("Lowest perplexity at k=%s; fitting configured k=%d", best, config.n_topics)

    model = fit_lda(dtm, config.n_topics, config.random_seed, max_iter=config.lda_max_iter)
    beta = tidy_beta(model, vocab)
    gamma = tidy_gamma(model, dtm, doc_ids)
    results.update(
        {
            "beta": beta,
            "gamma": gamma,
            "top_terms": top_terms(beta, config.top_n),
            "assignments": assign_topics(gamma),
            "topic_keywords": topic_keywords(
                gamma, keywords, threshold=config.gamma_threshold, n=config.top_n
            ),
        }
    )
    for name, table in results.items():
        path = config.output_path(f"metatext_lda_{name}.parquet")
        table.to_parquet(path, index=False)
        logging.info("Wrote %s (%d rows) to %s", name, len(table), path)
    return results
