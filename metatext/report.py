from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pandas as pd

from .config import MetaTextConfig


def _pairs_lines(pairs: pd.DataFrame, value: str, limit: int, fmt: str = "{}") -> List[str]:
    if pairs.empty:
        return ["- none"]
    return [
        f"- {a} / {b}: {fmt.format(v)}"
        for a, b, v in zip(
            pairs["item1"].head(limit), pairs["item2"].head(limit), pairs[value].head(limit)
        )
    ]


def _freq_lines(freq: pd.DataFrame, label: str, limit: int) -> List[str]:
    if freq.empty:
        return ["- none"]
    return [f"- {w}: {n}" for w, n in zip(freq[label].head(limit), freq["n"].head(limit))]


def build_report(
    datasets: pd.DataFrame,
    title_freq: pd.DataFrame,
    desc_freq: pd.DataFrame,
    keyword_freq: pd.DataFrame,
    title_pairs: pd.DataFrame,
    desc_pairs: pd.DataFrame,
    keyword_cors: pd.DataFrame,
    tfidf_by_keyword: pd.DataFrame,
    topic_results: Optional[Dict[str, pd.DataFrame]],
    run_status: str,
    config: MetaTextConfig,
) -> None:
    limit = config.top_n
    lines = [
        "# Catalog text report",
        f"Run: {config.run_id}",
        f"Source: {config.source}",
        f"Run status: {run_status}",
        f"Datasets: {len(datasets)}",
        f"Distinct title words: {len(title_freq)}",
        f"Distinct description words: {len(desc_freq)}",
        f"Distinct keywords: {len(keyword_freq)}",
    ]
    lines.append("\n## Most common title words")
    lines.extend(_freq_lines(title_freq, "word", limit))
    lines.append("\n## Most common description words")
    lines.extend(_freq_lines(desc_freq, "word", limit))
    lines.append("\n## Most common keywords")
    lines.extend(_freq_lines(keyword_freq, "keyword", limit))

    lines.append("\n## Title word pairs")
    lines.extend(_pairs_lines(title_pairs, "n", limit))
    lines.append("\n## Description word pairs")
    lines.extend(_pairs_lines(desc_pairs, "n", limit))
    lines.append("\n## Keyword correlations")
    lines.extend(_pairs_lines(keyword_cors, "correlation", limit, fmt="{:.3f}"))

    lines.append("\n## Highest tf-idf words by keyword")
    if tfidf_by_keyword.empty:
        lines.append("- none")
    for keyword, group in tfidf_by_keyword.groupby("keyword", sort=True):
        snippet = ", ".join(f"{w} ({s:.3f})" for w, s in zip(group["word"], group["tf_idf"]))
        lines.append(f"- **{keyword}**: {snippet}")

    topic_results = topic_results or {}
    if "topic_grid" in topic_results:
        lines.append("\n## Topic count search")
        for k, perp, ll in topic_results["topic_grid"][["k", "perplexity", "log_likelihood"]].itertuples(index=False):
            lines.append(f"- k={k}: perplexity {perp:.2f}, log likelihood {ll:.1f}")
    if "top_terms" in topic_results:
        lines.append("\n## Topics")
        keywords_by_topic = topic_results["topic_keywords"].groupby("topic")
        sizes = topic_results["assignments"]["topic"].value_counts()
        for topic, group in topic_results["top_terms"].groupby("topic", sort=True):
            lines.append(f"### Topic {topic} ({int(sizes.get(topic, 0))} documents)")
            lines.append("- terms: " + ", ".join(group["term"]))
            if topic in keywords_by_topic.groups:
                kw = keywords_by_topic.get_group(topic)
                lines.append(
                    "- keywords: " + ", ".join(f"{k} ({n})" for k, n in zip(kw["keyword"], kw["n"]))
                )
    report_path = config.output_path("metatext_report.md")
    report_path.write_text("\n".join(lines))
    logging.info("Wrote report to %s", report_path)
