from __future__ import annotations

import hashlib
import json
import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .config import MetaTextConfig, save_config_snapshot

PROBABILITY_TOLERANCE = 1e-6


def _universe_hash(series: pd.Series) -> str:
    joined = "|".join(sorted(series.astype(str).tolist()))
    return hashlib.md5(joined.encode("utf-8")).hexdigest()


def max_probability_error(df: pd.DataFrame, group: str, value: str) -> float:
    """Largest deviation from 1 of the per-group probability sums."""
    if df.empty:
        return 0.0
    sums = df.groupby(group)[value].sum()
    return float(np.abs(sums - 1.0).max())


def tfidf_violations(tfidf: pd.DataFrame, document: str = "id", term: str = "word") -> Dict[str, int]:
    if tfidf.empty:
        return {"negative": 0, "ubiquitous_nonzero": 0}
    n_documents = tfidf[document].nunique()
    doc_freq = tfidf.groupby(term)[document].transform("nunique")
    ubiquitous = tfidf[doc_freq == n_documents]
    return {
        "negative": int((tfidf["tf_idf"] < 0).sum()),
        "ubiquitous_nonzero": int((ubiquitous["tf_idf"] != 0).sum()),
    }


def run_integrity(
    datasets: pd.DataFrame,
    desc_counts: pd.DataFrame,
    tfidf: pd.DataFrame,
    topic_results: Optional[Dict[str, pd.DataFrame]],
    config: MetaTextConfig,
) -> Tuple[str, Dict[str, float]]:
    save_config_snapshot(config)
    topic_results = topic_results or {}
    gamma = topic_results.get("gamma", pd.DataFrame(columns=["document", "topic", "gamma"]))
    beta = topic_results.get("beta", pd.DataFrame(columns=["topic", "term", "beta"]))
    manifest = {
        "run_id": config.run_id,
        "output_dir": config.output_dir,
        "source": config.source,
        "row_counts": {
            "datasets": len(datasets),
            "description_counts": len(desc_counts),
            "tfidf": len(tfidf),
            "gamma": len(gamma),
            "beta": len(beta),
        },
        "config": json.loads(config.to_json()),
    }
    universe_hash = _universe_hash(datasets["id"])
    counts_positive = bool(desc_counts.empty or (desc_counts["n"] >= 1).all())
    violations = tfidf_violations(tfidf)
    gamma_error = max_probability_error(gamma, "document", "gamma")
    beta_error = max_probability_error(beta, "topic", "beta")
    documents_known = bool(set(gamma["document"]).issubset(set(datasets["id"])))

    gate_failures = []
    if not counts_positive:
        gate_failures.append("Gate1: non-positive token counts")
    if violations["negative"]:
        gate_failures.append(f"Gate2: {violations['negative']} negative tf-idf scores")
    if violations["ubiquitous_nonzero"]:
        gate_failures.append(
            f"Gate2: {violations['ubiquitous_nonzero']} non-zero tf-idf scores for terms in every document"
        )
    if gamma_error > PROBABILITY_TOLERANCE:
        gate_failures.append(f"Gate3: document-topic sums off by {gamma_error:.2e}")
    if beta_error > PROBABILITY_TOLERANCE:
        gate_failures.append(f"Gate3: topic-term sums off by {beta_error:.2e}")
    if not documents_known:
        gate_failures.append("Gate4: topic documents missing from dataset records")
    run_status = "INVALID" if gate_failures else "VALID"
    manifest["run_status"] = run_status
    manifest["gate_failures"] = gate_failures
    manifest_path = config.output_path("metatext_run_manifest.json")
    manifest_path.write_text(json.dumps(manifest, indent=2))
    lines = [
        "# Integrity report",
        f"Run: {config.run_id}",
        f"Run status: {run_status}",
        f"Universe hash: {universe_hash}",
        f"Token counts positive: {counts_positive}",
        f"Negative tf-idf scores: {violations['negative']}",
        f"Non-zero tf-idf for ubiquitous terms: {violations['ubiquitous_nonzero']}",
        f"Max gamma sum error: {gamma_error:.2e}",
        f"Max beta sum error: {beta_error:.2e}",
        f"Topic documents known: {documents_known}",
        "",
        "## Troubleshooting",
        "- probability sums off -> check that the topic model was fit on the matrix being scored",
        "- topic documents unknown -> verify description tokens were built from the same catalog",
        "",
        "## Gate failures" if gate_failures else "## All gates passed",
    ]
    for failure in gate_failures:
        lines.append(f"- {failure}")
    report_path = config.output_path("metatext_integrity_report.md")
    report_path.write_text("\n".join(lines))
    logging.info("Wrote integrity report to %s", report_path)
    metrics = {
        "gamma_error": gamma_error,
        "beta_error": beta_error,
        "negative_tfidf": violations["negative"],
        "ubiquitous_nonzero_tfidf": violations["ubiquitous_nonzero"],
        "counts_positive": counts_positive,
        "documents_known": documents_known,
    }
    return run_status, metrics
