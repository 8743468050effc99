from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from scipy import sparse

from metatext.topics import (
    assign_topics,
    build_dtm,
    fit_lda,
    run_topic_model,
    select_topic_count,
    tidy_beta,
    tidy_gamma,
    top_terms,
    topic_keywords,
)


@pytest.fixture
def counts():
    rows = []
    ocean = ["ocean", "sea", "temperature", "buoy", "chlorophyll"]
    solar = ["solar", "flare", "sunspot", "telescope", "corona"]
    for i in range(6):
        vocab = ocean if i % 2 == 0 else solar
        for j, word in enumerate(vocab):
            rows.append({"id": f"doc{i}", "word": word, "n": 1 + (i + j) % 3})
    return pd.DataFrame(rows)


def test_build_dtm(counts):
    dtm, doc_ids, vocab = build_dtm(counts)
    assert sparse.issparse(dtm)
    assert dtm.shape == (6, 10)
    assert list(vocab) == sorted(vocab)
    assert dtm.sum() == counts["n"].sum()
    row = list(doc_ids).index("doc0")
    col = list(vocab).index("ocean")
    assert dtm[row, col] == counts.query("id == 'doc0' and word == 'ocean'")["n"].iloc[0]


def test_fit_lda_rejects_bad_input(counts):
    dtm, _, _ = build_dtm(counts)
    with pytest.raises(ValueError):
        fit_lda(dtm, 0, seed=1)
    with pytest.raises(ValueError):
        fit_lda(sparse.csr_matrix((3, 4)), 2, seed=1)


def test_beta_and_gamma_are_distributions(counts):
    dtm, doc_ids, vocab = build_dtm(counts)
    model = fit_lda(dtm, 2, seed=1234, max_iter=10)
    beta = tidy_beta(model, vocab)
    gamma = tidy_gamma(model, dtm, doc_ids)
    assert len(beta) == 2 * len(vocab)
    assert len(gamma) == 2 * len(doc_ids)
    np.testing.assert_allclose(beta.groupby("topic")["beta"].sum(), 1.0, atol=1e-9)
    np.testing.assert_allclose(gamma.groupby("document")["gamma"].sum(), 1.0, atol=1e-9)
    assert (beta["beta"] >= 0).all()
    assert (gamma["gamma"] >= 0).all()


def test_fit_lda_is_reproducible(counts):
    dtm, doc_ids, vocab = build_dtm(counts)
    first = tidy_beta(fit_lda(dtm, 2, seed=7, max_iter=5), vocab)
    second = tidy_beta(fit_lda(dtm, 2, seed=7, max_iter=5), vocab)
    pd.testing.assert_frame_equal(first, second)


def test_top_terms_and_assignments():
    beta = pd.DataFrame(
        {
            "topic": [0, 0, 0, 1, 1, 1],
            "term": ["a", "b", "c", "a", "b", "c"],
            "beta": [0.5, 0.3, 0.2, 0.1, 0.1, 0.8],
        }
    )
    top = top_terms(beta, n=2)
    assert top[top["topic"] == 0]["term"].tolist() == ["a", "b"]
    assert top[top["topic"] == 1]["term"].tolist() == ["c", "a"]
    gamma = pd.DataFrame(
        {
            "document": ["d1", "d1", "d2", "d2"],
            "topic": [0, 1, 0, 1],
            "gamma": [0.95, 0.05, 0.3, 0.7],
        }
    )
    assigned = assign_topics(gamma).sort_values("document")
    assert assigned["topic"].tolist() == [0, 1]


def test_topic_keywords():
    gamma = pd.DataFrame(
        {
            "document": ["d1", "d1", "d2", "d2", "d3", "d3"],
            "topic": [0, 1, 0, 1, 0, 1],
            "gamma": [0.95, 0.05, 0.92, 0.08, 0.5, 0.5],
        }
    )
    keywords = pd.DataFrame(
        {
            "id": ["d1", "d1", "d2", "d3"],
            "keyword": ["OCEANS", "SEA SURFACE", "OCEANS", "SOLAR ACTIVITY"],
        }
    )
    result = topic_keywords(gamma, keywords, threshold=0.9, n=5)
    assert result.to_dict("records") == [
        {"topic": 0, "keyword": "OCEANS", "n": 2},
        {"topic": 0, "keyword": "SEA SURFACE", "n": 1},
    ]
    assert topic_keywords(gamma, keywords, threshold=0.99).empty


def test_select_topic_count(counts):
    dtm, _, _ = build_dtm(counts)
    table, best = select_topic_count(dtm, [3, 2, 2], seed=1234, max_iter=5)
    assert table["k"].tolist() == [2, 3]
    assert best in (2, 3)
    assert (table["perplexity"] > 0).all()
    empty, none = select_topic_count(dtm, [], seed=1)
    assert empty.empty and none is None


def test_run_topic_model(config, counts):
    tokens = counts.loc[counts.index.repeat(counts["n"]), ["id", "word"]].reset_index(drop=True)
    tokens = pd.concat(
        [tokens, pd.DataFrame({"id": ["doc0"], "word": ["data"]})], ignore_index=True
    )
    keywords = pd.DataFrame({"id": ["doc0", "doc1"], "keyword": ["OCEANS", "SOLAR ACTIVITY"]})
    config.topic_grid = [2, 3]
    results = run_topic_model(tokens, keywords, config)
    assert {"beta", "gamma", "top_terms", "assignments", "topic_keywords", "topic_grid"} <= set(results)
    # topic-only stop words never reach the matrix
    assert "data" not in set(results["beta"]["term"])
    assert results["gamma"]["document"].nunique() == 6
    assert config.output_path("metatext_lda_gamma.parquet").exists()


def test_run_topic_model_skips_when_no_terms_remain(config):
    tokens = pd.DataFrame({"id": ["doc0", "doc1"], "word": ["data", "set"]})
    keywords = pd.DataFrame({"id": ["doc0"], "keyword": ["OCEANS"]})
    assert run_topic_model(tokens, keywords, config) == {}
    assert run_topic_model(tokens.iloc[0:0], keywords, config) == {}
    assert not config.output_path("metatext_lda_gamma.parquet").exists()
